"""
Backend health and activity use cases.

Probe each Firebase service with the cheapest call it supports and
summarize the results. Probes never raise: a failing service is
reported, not propagated.

Analytics report, for a trailing window (hour, day, week or month),
which collections had documents updated and how many users signed up.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from gateway.application.backend.dtos import ConnectionReport, ServiceStatus
from gateway.domain.backend.entities import DocumentQuery, OrderBy, QueryCondition
from gateway.domain.backend.errors import BackendError
from gateway.domain.backend.ports import (
    DocumentStorePort,
    IdentityProviderPort,
    ObjectStoragePort,
)

logger = logging.getLogger(__name__)

DASHBOARD_SCAN_LIMIT = 1000
DASHBOARD_SAMPLE_COLLECTIONS = 5
DASHBOARD_SAMPLE_DOCUMENTS = 5

AnalyticsPeriod = Literal["hour", "day", "week", "month"]

ANALYTICS_WINDOWS: dict[str, timedelta] = {
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}
ANALYTICS_RECENT_LIMIT = 10
ANALYTICS_USER_SCAN_LIMIT = 1000


class BackendHealthService:
    """Connection tests, the admin dashboard summary and activity analytics.

    Ports are passed as factories so that a service whose adapter
    cannot even be constructed is reported as failed.
    """

    def __init__(
        self,
        documents: Callable[[], DocumentStorePort],
        identity: Callable[[], IdentityProviderPort],
        storage: Callable[[], ObjectStoragePort],
    ) -> None:
        self._documents = documents
        self._identity = identity
        self._storage = storage

    def test_connections(self) -> ConnectionReport:
        probes = {
            "firestore": lambda: self._documents().list_collections(),
            "auth": lambda: self._identity().list_users(1),
            "storage": lambda: self._storage().list_files("", 1),
        }
        services = {}
        for name, probe in probes.items():
            try:
                probe()
                services[name] = ServiceStatus(status="connected")
            except Exception as exc:  # noqa: BLE001
                logger.warning("Connection test failed for %s: %s", name, exc)
                services[name] = ServiceStatus(status="failed", error=str(exc))
        report = ConnectionReport(services=services)
        logger.info(
            "Connection tests completed: %s",
            {name: s.status for name, s in services.items()},
        )
        return report

    def dashboard(self) -> dict:
        """Counts of collections, users and files plus sample documents.

        Counts stop at a fixed scan limit and are reported as "N+" when
        the limit is reached.
        """
        store = self._documents()
        collections = store.list_collections()

        users = self._identity().list_users(DASHBOARD_SCAN_LIMIT).users
        files = self._storage().list_files("", DASHBOARD_SCAN_LIMIT).files
        total_size = sum(f.size for f in files)

        samples = []
        for ref in collections[:DASHBOARD_SAMPLE_COLLECTIONS]:
            docs = store.query(
                DocumentQuery(collection=ref.id, limit=DASHBOARD_SAMPLE_DOCUMENTS)
            )
            samples.append(
                {
                    "id": ref.id,
                    "path": ref.path,
                    "documentCount": len(docs),
                    "sampleDocuments": [{"id": d.id, "data": d.data} for d in docs],
                }
            )

        return {
            "statistics": {
                "collections": len(collections),
                "users": _capped(len(users)),
                "files": _capped(len(files)),
                "storageSize": f"{total_size / (1024 * 1024):.2f} MB",
            },
            "sampleCollections": samples,
        }

    def analytics(
        self, period: AnalyticsPeriod = "day", now: datetime | None = None
    ) -> dict:
        """Activity inside the trailing window ending at `now`.

        A collection counts as active when at least one of its documents
        has `updatedAt` inside the window; up to ten of the most recent
        ones are counted. A collection that cannot be queried is skipped
        with a warning, and so is the user count.

        Args:
            period: Window length.
            now: End of the window; the current time when omitted.
        """
        end = now or datetime.now(timezone.utc)
        start = end - ANALYTICS_WINDOWS[period]

        store = self._documents()
        collections = store.list_collections()
        active = []
        for ref in collections:
            try:
                docs = store.query(
                    DocumentQuery(
                        collection=ref.id,
                        conditions=(QueryCondition("updatedAt", ">=", start),),
                        order_by=(OrderBy("updatedAt", "desc"),),
                        limit=ANALYTICS_RECENT_LIMIT,
                    )
                )
            except BackendError as exc:
                logger.warning("Analytics skipped collection %s: %s", ref.id, exc)
                continue
            if docs:
                active.append(
                    {
                        "collection": ref.id,
                        "recentDocuments": len(docs),
                        "lastActivity": docs[0].data.get("updatedAt"),
                    }
                )

        users = {"newUsers": 0, "totalUsers": 0}
        try:
            records = self._identity().list_users(ANALYTICS_USER_SCAN_LIMIT).users
        except BackendError as exc:
            logger.warning("Could not get user analytics: %s", exc)
        else:
            users["totalUsers"] = len(records)
            users["newUsers"] = sum(
                1
                for user in records
                if user.creation_time is not None and user.creation_time >= start
            )

        return {
            "period": period,
            "timeRange": {"start": start.isoformat(), "end": end.isoformat()},
            "collections": {
                "total": len(collections),
                "withRecentActivity": len(active),
                "recentActivity": active,
            },
            "users": users,
        }


def _capped(count: int) -> int | str:
    return f"{count}+" if count >= DASHBOARD_SCAN_LIMIT else count
