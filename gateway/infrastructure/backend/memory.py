"""
In-memory backend adapters.

Test doubles and local-development stand-ins for Firestore, Firebase
Auth and Cloud Storage. They honor the same port contracts and raise
the same BackendError subclasses as the Firebase adapters.
"""

from __future__ import annotations

import copy
import hashlib
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from gateway.domain.backend.entities import (
    BatchOperation,
    BatchOperationType,
    CollectionRef,
    DecodedToken,
    Document,
    DocumentQuery,
    FilePage,
    StoredFile,
    UserPage,
    UserRecord,
)
from gateway.domain.backend.errors import (
    DocumentAlreadyExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
    IdentityProviderError,
    StoredFileNotFoundError,
    TokenError,
    UserNotFoundError,
)
from gateway.domain.backend.ports import (
    DocumentStorePort,
    IdentityProviderPort,
    ObjectStoragePort,
)

_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array-contains": lambda a, b: isinstance(a, list) and b in a,
    "array-contains-any": lambda a, b: isinstance(a, list) and any(x in a for x in b),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentStore(DocumentStorePort):
    """Dict-of-dicts document store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Document]] = {}

    def reset(self) -> None:
        with self._lock:
            self._collections.clear()

    def list_collections(self) -> list[CollectionRef]:
        with self._lock:
            return [
                CollectionRef(id=name, path=name)
                for name, docs in sorted(self._collections.items())
                if docs
            ]

    def get(self, collection: str, document_id: str) -> Document | None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(document_id)
            return copy.deepcopy(doc)

    def query(self, query: DocumentQuery) -> list[Document]:
        with self._lock:
            docs = list(self._collections.get(query.collection, {}).values())

        for condition in query.conditions:
            op = _OPERATORS.get(condition.operator)
            if op is None:
                raise DocumentStoreError(
                    f"Unsupported operator: {condition.operator}",
                    source_code="invalid-argument",
                )
            try:
                docs = [
                    d for d in docs if op(d.data.get(condition.field), condition.value)
                ]
            except TypeError as exc:
                raise DocumentStoreError(
                    f"Cannot compare field {condition.field}: {exc}",
                    source_code="invalid-argument",
                ) from exc

        for order in reversed(query.order_by):
            docs.sort(
                key=lambda d: (d.data.get(order.field) is None, d.data.get(order.field)),
                reverse=order.direction == "desc",
            )

        if query.start_after:
            ids = [d.id for d in docs]
            if query.start_after in ids:
                docs = docs[ids.index(query.start_after) + 1:]

        return copy.deepcopy(docs[: query.limit])

    def create(
        self, collection: str, data: dict[str, Any], document_id: str | None = None
    ) -> Document:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            document_id = document_id or uuid.uuid4().hex[:20]
            if document_id in docs:
                raise DocumentAlreadyExistsError(collection, document_id)
            now = _now()
            doc = Document(
                id=document_id,
                collection=collection,
                data=copy.deepcopy(data),
                create_time=now,
                update_time=now,
            )
            docs[document_id] = doc
            return copy.deepcopy(doc)

    def replace(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> Document:
        with self._lock:
            existing = self._collections.get(collection, {}).get(document_id)
            if existing is None:
                raise DocumentNotFoundError(collection, document_id)
            doc = replace(existing, data=copy.deepcopy(data), update_time=_now())
            self._collections[collection][document_id] = doc
            return copy.deepcopy(doc)

    def delete(self, collection: str, document_id: str) -> Document:
        with self._lock:
            existing = self._collections.get(collection, {}).pop(document_id, None)
            if existing is None:
                raise DocumentNotFoundError(collection, document_id)
            return existing

    def commit_batch(self, operations: list[BatchOperation]) -> None:
        with self._lock:
            staged = copy.deepcopy(self._collections)
            now = _now()
            for op in operations:
                docs = staged.setdefault(op.collection, {})
                existing = docs.get(op.document_id)
                if op.type is BatchOperationType.SET:
                    docs[op.document_id] = Document(
                        id=op.document_id,
                        collection=op.collection,
                        data=copy.deepcopy(op.data or {}),
                        create_time=existing.create_time if existing else now,
                        update_time=now,
                    )
                elif op.type is BatchOperationType.UPDATE:
                    if existing is None:
                        raise DocumentNotFoundError(op.collection, op.document_id)
                    merged = {**existing.data, **copy.deepcopy(op.data or {})}
                    docs[op.document_id] = replace(existing, data=merged, update_time=now)
                else:
                    docs.pop(op.document_id, None)
            self._collections = staged

    def count(self, collection: str, limit: int) -> int:
        with self._lock:
            return min(len(self._collections.get(collection, {})), limit)


class InMemoryIdentityProvider(IdentityProviderPort):
    """User directory with opaque tokens of the form `token:<uid>`.

    `expired:<uid>` and `revoked:<uid>` tokens exercise the token fault
    paths; anything else is rejected as invalid.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, UserRecord] = {}

    def reset(self) -> None:
        with self._lock:
            self._users.clear()

    def verify_id_token(self, id_token: str) -> DecodedToken:
        prefix, _, uid = id_token.partition(":")
        if prefix == "expired":
            raise TokenError("ID token has expired", source_code="expired")
        if prefix == "revoked":
            raise TokenError("ID token has been revoked", source_code="revoked")
        if prefix != "token" or not uid:
            raise TokenError("ID token is malformed", source_code="invalid")
        with self._lock:
            user = self._users.get(uid)
        if user is None:
            raise TokenError(f"No user for token subject {uid}", source_code="invalid")
        if user.disabled:
            raise IdentityProviderError("User is disabled", source_code="user-disabled")
        return DecodedToken(
            uid=user.uid,
            email=user.email,
            email_verified=user.email_verified,
            name=user.display_name,
            picture=user.photo_url,
            provider="password",
            claims=dict(user.custom_claims or {}),
        )

    def create_user(self, **fields: Any) -> UserRecord:
        with self._lock:
            uid = fields.pop("uid", None) or uuid.uuid4().hex[:28]
            if uid in self._users:
                raise IdentityProviderError(
                    f"User {uid} already exists", source_code="uid-already-exists"
                )
            email = fields.get("email")
            if email and any(u.email == email for u in self._users.values()):
                raise IdentityProviderError(
                    f"Email {email} already exists", source_code="email-already-exists"
                )
            password = fields.pop("password", None)
            if password is not None and len(password) < 6:
                raise IdentityProviderError(
                    "Password must be at least 6 characters",
                    source_code="weak-password",
                )
            user = UserRecord(
                uid=uid,
                email=email,
                display_name=fields.get("display_name"),
                phone_number=fields.get("phone_number"),
                photo_url=fields.get("photo_url"),
                disabled=bool(fields.get("disabled", False)),
                email_verified=bool(fields.get("email_verified", False)),
                creation_time=_now(),
                provider_ids=("password",) if password else (),
            )
            self._users[uid] = user
            return user

    def get_user(self, uid: str) -> UserRecord:
        with self._lock:
            user = self._users.get(uid)
        if user is None:
            raise UserNotFoundError(uid)
        return user

    def get_user_by_email(self, email: str) -> UserRecord:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user
        raise UserNotFoundError(email)

    def update_user(self, uid: str, **fields: Any) -> UserRecord:
        with self._lock:
            user = self.get_user(uid)
            fields.pop("password", None)
            changes = {
                k: v
                for k, v in fields.items()
                if k in ("email", "display_name", "phone_number", "photo_url",
                         "disabled", "email_verified")
            }
            user = replace(user, **changes)
            self._users[uid] = user
            return user

    def delete_user(self, uid: str) -> None:
        with self._lock:
            if self._users.pop(uid, None) is None:
                raise UserNotFoundError(uid)

    def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        with self._lock:
            user = self.get_user(uid)
            self._users[uid] = replace(user, custom_claims=dict(claims))

    def list_users(self, limit: int, page_token: str | None = None) -> UserPage:
        with self._lock:
            uids = sorted(self._users)
            start = uids.index(page_token) + 1 if page_token in uids else 0
            page = uids[start : start + limit]
            users = [self._users[uid] for uid in page]
        next_token = page[-1] if len(page) == limit and start + limit < len(uids) else None
        return UserPage(users=users, next_page_token=next_token)

    def create_custom_token(
        self, uid: str, claims: dict[str, Any] | None = None
    ) -> str:
        self.get_user(uid)
        return f"custom:{uid}"


class InMemoryObjectStorage(ObjectStoragePort):
    """Bucket backed by a dict of path → (bytes, metadata)."""

    def __init__(self, bucket: str = "in-memory-bucket",
                 base_url: str = "https://storage.example.test") -> None:
        self._bucket = bucket
        self._base_url = base_url
        self._lock = threading.RLock()
        self._objects: dict[str, tuple[bytes, StoredFile]] = {}

    def reset(self) -> None:
        with self._lock:
            self._objects.clear()

    def list_files(
        self, prefix: str, limit: int, page_token: str | None = None
    ) -> FilePage:
        with self._lock:
            names = sorted(n for n in self._objects if n.startswith(prefix))
            start = names.index(page_token) + 1 if page_token in names else 0
            page = names[start : start + limit]
            files = [self._objects[n][1] for n in page]
        next_token = page[-1] if start + limit < len(names) and page else None
        return FilePage(files=files, next_page_token=next_token)

    def get_file(self, path: str) -> StoredFile:
        with self._lock:
            stored = self._objects.get(path)
        if stored is None:
            raise StoredFileNotFoundError(path)
        return stored[1]

    def get_bytes(self, path: str) -> bytes:
        with self._lock:
            stored = self._objects.get(path)
        if stored is None:
            raise StoredFileNotFoundError(path)
        return stored[0]

    def upload(
        self,
        path: str,
        content: bytes,
        content_type: str | None,
        metadata: dict[str, str],
    ) -> StoredFile:
        now = _now()
        md5 = hashlib.md5(content).hexdigest()  # noqa: S324
        with self._lock:
            previous = self._objects.get(path)
            generation = str(int(previous[1].generation or 0) + 1) if previous else "1"
            stored = StoredFile(
                name=path,
                size=len(content),
                content_type=content_type,
                bucket=self._bucket,
                generation=generation,
                time_created=previous[1].time_created if previous else now,
                updated=now,
                md5_hash=md5,
                etag=md5,
                custom_metadata=dict(metadata),
            )
            self._objects[path] = (bytes(content), stored)
        return stored

    def delete_file(self, path: str) -> None:
        with self._lock:
            if self._objects.pop(path, None) is None:
                raise StoredFileNotFoundError(path)

    def signed_url(self, path: str, expires_in: int) -> str:
        self.get_file(path)
        return f"{self._base_url}/{self._bucket}/{path}?op=get&expires={expires_in}"

    def bucket_name(self) -> str:
        return self._bucket
