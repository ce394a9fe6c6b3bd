"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        environment: Deployment environment. "production" hides diagnostics.
        debug: Enable debug mode (OpenAPI docs). Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file_path: Optional path of a rotating log file.
        api_prefix: Prefix mounted in front of every API router.
        cors_origin: Comma-separated list of allowed CORS origins.
        rate_limit_default: Default rate limit for all endpoints.
        max_upload_size_bytes: Largest accepted single upload.
        max_upload_files: Most files accepted by one multi-upload.

    Firebase credentials come either from a service account key file or
    from the individual FIREBASE_* variables. Setting
    USE_IN_MEMORY_BACKENDS replaces every Firebase service with an
    in-process implementation (local development and tests).
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    project_name: str = "Firebase Admin Gateway"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file_path: Optional[str] = None
    api_prefix: str = "/api/v1"

    cors_origin: str = "http://localhost:3000"
    cors_credentials: bool = False
    rate_limit_default: str = "100/minute"

    max_upload_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    max_upload_files: int = 5
    signed_url_ttl_seconds: int = 24 * 60 * 60

    # Firebase
    service_account_key_path: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None
    use_in_memory_backends: bool = False

    # Change fan-out
    fanout_queue_size: int = 100
    fanout_delivery_timeout_seconds: float = 5.0
    fanout_history_size: int = 500

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]

    @property
    def has_firebase_credentials(self) -> bool:
        return bool(self.service_account_key_path) or all(
            (
                self.firebase_project_id,
                self.firebase_private_key,
                self.firebase_client_email,
            )
        )


def collect_config_warnings(config: Settings) -> list[str]:
    """Return human-readable warnings about an incomplete configuration.

    Nothing here is fatal: the application still starts, and backend
    calls fail with a normalized `backend-unavailable` error instead.
    """
    warnings: list[str] = []
    if not config.use_in_memory_backends:
        if not config.has_firebase_credentials:
            warnings.append(
                "Firebase configuration missing. Provide SERVICE_ACCOUNT_KEY_PATH "
                "or FIREBASE_PROJECT_ID, FIREBASE_PRIVATE_KEY and FIREBASE_CLIENT_EMAIL."
            )
        if not config.firebase_storage_bucket:
            warnings.append(
                "FIREBASE_STORAGE_BUCKET not set. Storage operations will fail."
            )
    if config.is_production:
        if config.debug:
            warnings.append("DEBUG is enabled in production.")
        if config.cors_origin == Settings.model_fields["cors_origin"].default:
            warnings.append("CORS_ORIGIN not set in production.")
    return warnings


settings = Settings()
