"""
Firebase Admin SDK bootstrap.

Builds (once per process) the `firebase_admin.App` the Firebase adapters
share. Credentials come from a service account key file when
SERVICE_ACCOUNT_KEY_PATH is set, otherwise from the FIREBASE_* variables.
"""

import logging
import threading

import firebase_admin
from firebase_admin import credentials

from gateway.core.config import Settings
from gateway.domain.backend.errors import BackendUnavailableError

logger = logging.getLogger(__name__)

_lock = threading.Lock()

TOKEN_URI = "https://oauth2.googleapis.com/token"


def _service_account_info(config: Settings) -> dict:
    missing = [
        name
        for name, value in (
            ("FIREBASE_PROJECT_ID", config.firebase_project_id),
            ("FIREBASE_PRIVATE_KEY", config.firebase_private_key),
            ("FIREBASE_CLIENT_EMAIL", config.firebase_client_email),
        )
        if not value
    ]
    if missing:
        raise BackendUnavailableError(
            "Firebase",
            f"missing environment variables: {', '.join(missing)}",
        )
    return {
        "type": "service_account",
        "project_id": config.firebase_project_id,
        "private_key": config.firebase_private_key.replace("\\n", "\n"),
        "client_email": config.firebase_client_email,
        "token_uri": TOKEN_URI,
    }


def _load_credential(config: Settings) -> credentials.Certificate:
    if config.service_account_key_path:
        try:
            cred = credentials.Certificate(config.service_account_key_path)
            logger.info("Firebase service account loaded from file")
            return cred
        except (OSError, ValueError) as exc:
            logger.warning("Could not load service account from file: %s", exc)

    try:
        cred = credentials.Certificate(_service_account_info(config))
    except ValueError as exc:
        raise BackendUnavailableError("Firebase", str(exc)) from exc
    logger.info("Firebase service account loaded from environment variables")
    return cred


def initialize_firebase(config: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use.

    Raises:
        BackendUnavailableError: If no usable credentials are configured.
    """
    with _lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass

        cred = _load_credential(config)
        options = {}
        if config.firebase_storage_bucket:
            options["storageBucket"] = config.firebase_storage_bucket
        if config.firebase_project_id:
            options["projectId"] = config.firebase_project_id

        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin SDK initialized (project=%s)", app.project_id)
        return app
