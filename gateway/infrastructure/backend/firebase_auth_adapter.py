"""
Adapter: Firebase Authentication.

Implements IdentityProviderPort with `firebase_admin.auth`. Auth SDK
errors become IdentityProviderError (user management) or TokenError
(ID token verification).
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from firebase_admin import auth
from firebase_admin import exceptions as fb_exceptions

from gateway.domain.backend.entities import DecodedToken, UserPage, UserRecord
from gateway.domain.backend.errors import (
    IdentityProviderError,
    TokenError,
    UserNotFoundError,
)
from gateway.domain.backend.ports import IdentityProviderPort

logger = logging.getLogger(__name__)

_USER_ERRORS: tuple[tuple[type[Exception], str], ...] = (
    (auth.EmailAlreadyExistsError, "email-already-exists"),
    (auth.UidAlreadyExistsError, "uid-already-exists"),
    (auth.PhoneNumberAlreadyExistsError, "phone-number-already-exists"),
    (auth.UserDisabledError, "user-disabled"),
    (fb_exceptions.ResourceExhaustedError, "too-many-requests"),
    (fb_exceptions.PermissionDeniedError, "operation-not-allowed"),
    (fb_exceptions.InvalidArgumentError, "invalid-argument"),
)

# ValueError messages raised by the SDK's client-side argument checks.
_ARGUMENT_HINTS = (
    ("email", "invalid-email"),
    ("password", "weak-password"),
)

_SDK_FIELDS = frozenset(
    (
        "uid",
        "email",
        "password",
        "display_name",
        "phone_number",
        "photo_url",
        "disabled",
        "email_verified",
    )
)


def _argument_code(message: str) -> str:
    lowered = message.lower()
    for hint, code in _ARGUMENT_HINTS:
        if hint in lowered:
            return code
    return "invalid-argument"


@contextmanager
def _translate_errors(operation: str, identifier: str | None = None) -> Iterator[None]:
    try:
        yield
    except auth.UserNotFoundError as exc:
        raise UserNotFoundError(identifier or "unknown user") from exc
    except fb_exceptions.FirebaseError as exc:
        code = next(
            (code for exc_type, code in _USER_ERRORS if isinstance(exc, exc_type)),
            exc.code.lower() if isinstance(exc.code, str) else None,
        )
        raise IdentityProviderError(
            f"{operation} failed: {exc}", source_code=code
        ) from exc
    except ValueError as exc:
        raise IdentityProviderError(
            f"{operation} failed: {exc}", source_code=_argument_code(str(exc))
        ) from exc


def _millis(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _to_user(record) -> UserRecord:
    metadata = record.user_metadata
    return UserRecord(
        uid=record.uid,
        email=record.email,
        display_name=record.display_name,
        phone_number=record.phone_number,
        photo_url=record.photo_url,
        disabled=record.disabled,
        email_verified=record.email_verified,
        creation_time=_millis(metadata.creation_timestamp) if metadata else None,
        last_sign_in_time=_millis(metadata.last_sign_in_timestamp) if metadata else None,
        custom_claims=record.custom_claims,
        provider_ids=tuple(p.provider_id for p in record.provider_data),
    )


def _sdk_kwargs(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in fields.items()
        if key in _SDK_FIELDS and value is not None
    }


class FirebaseIdentityProvider(IdentityProviderPort):
    """Concrete IdentityProviderPort backed by Firebase Authentication."""

    def __init__(self, app) -> None:
        self._app = app

    def verify_id_token(self, id_token: str) -> DecodedToken:
        try:
            claims = auth.verify_id_token(id_token, app=self._app, check_revoked=True)
        except auth.ExpiredIdTokenError as exc:
            raise TokenError(str(exc), source_code="expired") from exc
        except auth.RevokedIdTokenError as exc:
            raise TokenError(str(exc), source_code="revoked") from exc
        except auth.UserDisabledError as exc:
            raise IdentityProviderError(str(exc), source_code="user-disabled") from exc
        except (auth.InvalidIdTokenError, ValueError) as exc:
            raise TokenError(str(exc), source_code="invalid") from exc
        except auth.CertificateFetchError as exc:
            raise TokenError(str(exc), source_code="certificate-fetch") from exc

        firebase_claims = claims.get("firebase", {})
        logger.info("Token verified for user: %s", claims["uid"])
        return DecodedToken(
            uid=claims["uid"],
            email=claims.get("email"),
            email_verified=bool(claims.get("email_verified", False)),
            name=claims.get("name"),
            picture=claims.get("picture"),
            provider=firebase_claims.get("sign_in_provider"),
            claims=firebase_claims.get("identities", {}),
        )

    def create_user(self, **fields: Any) -> UserRecord:
        with _translate_errors("Create user"):
            record = auth.create_user(app=self._app, **_sdk_kwargs(fields))
        logger.info("User created: %s", record.uid)
        return _to_user(record)

    def get_user(self, uid: str) -> UserRecord:
        with _translate_errors("Get user", uid):
            return _to_user(auth.get_user(uid, app=self._app))

    def get_user_by_email(self, email: str) -> UserRecord:
        with _translate_errors("Get user by email", email):
            return _to_user(auth.get_user_by_email(email, app=self._app))

    def update_user(self, uid: str, **fields: Any) -> UserRecord:
        with _translate_errors("Update user", uid):
            record = auth.update_user(uid, app=self._app, **_sdk_kwargs(fields))
        logger.info("User updated: %s", uid)
        return _to_user(record)

    def delete_user(self, uid: str) -> None:
        with _translate_errors("Delete user", uid):
            auth.delete_user(uid, app=self._app)
        logger.info("User deleted: %s", uid)

    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        with _translate_errors("Set custom claims", uid):
            auth.set_custom_user_claims(uid, claims, app=self._app)
        logger.info("Custom claims set for user: %s", uid)

    def list_users(self, limit: int, page_token: str | None = None) -> UserPage:
        with _translate_errors("List users"):
            page = auth.list_users(
                page_token=page_token, max_results=limit, app=self._app
            )
        return UserPage(
            users=[_to_user(u) for u in page.users],
            next_page_token=page.next_page_token or None,
        )

    def create_custom_token(
        self, uid: str, claims: dict[str, Any] | None = None
    ) -> str:
        with _translate_errors("Create custom token", uid):
            token = auth.create_custom_token(uid, claims or None, app=self._app)
        logger.info("Custom token generated for user: %s", uid)
        return token.decode("utf-8") if isinstance(token, bytes) else token
