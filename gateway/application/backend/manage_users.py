"""
User directory use cases.

Thin orchestration over IdentityProviderPort: every method forwards to
the port and logs the administrative action. Errors propagate as
IdentityProviderError / TokenError for the error boundary to normalize.
"""

import logging
from typing import Any

from gateway.domain.backend.entities import DecodedToken, UserPage, UserRecord
from gateway.domain.backend.ports import IdentityProviderPort

logger = logging.getLogger(__name__)


class UserManagementService:
    """Administrative operations on Firebase Auth users."""

    def __init__(self, identity: IdentityProviderPort) -> None:
        self._identity = identity

    def verify_token(self, id_token: str) -> DecodedToken:
        decoded = self._identity.verify_id_token(id_token)
        logger.info("Token verified for user: %s", decoded.uid)
        return decoded

    def create_user(self, **fields: Any) -> UserRecord:
        user = self._identity.create_user(**fields)
        logger.info("User created: %s (%s)", user.uid, user.email)
        return user

    def get_user(self, uid: str) -> UserRecord:
        return self._identity.get_user(uid)

    def get_user_by_email(self, email: str) -> UserRecord:
        return self._identity.get_user_by_email(email)

    def update_user(self, uid: str, **fields: Any) -> UserRecord:
        changes = {k: v for k, v in fields.items() if v is not None}
        user = self._identity.update_user(uid, **changes)
        logger.info("User updated: %s (%s)", uid, ", ".join(sorted(changes)) or "no fields")
        return user

    def delete_user(self, uid: str) -> None:
        self._identity.delete_user(uid)
        logger.info("User deleted: %s", uid)

    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> UserRecord:
        """Replace a user's custom claims and return the updated user."""
        self._identity.set_custom_claims(uid, claims)
        logger.info("Custom claims set for user %s: %s", uid, sorted(claims))
        return self._identity.get_user(uid)

    def list_users(self, limit: int, page_token: str | None = None) -> UserPage:
        page = self._identity.list_users(limit, page_token)
        logger.info("Listed %d users", len(page.users))
        return page

    def generate_custom_token(
        self, uid: str, claims: dict[str, Any] | None = None
    ) -> str:
        token = self._identity.create_custom_token(uid, claims)
        logger.info("Custom token generated for user: %s", uid)
        return token
