"""
Tests for health, admin endpoints and the cross-cutting middleware
(security headers, rate limiting, unexpected errors).
"""

import logging

import pytest
from fastapi.testclient import TestClient

from gateway.core.config import Settings
from gateway.domain.backend.errors import DocumentStoreError
from gateway.infrastructure.backend import Backends
from gateway.infrastructure.backend.memory import InMemoryDocumentStore
from gateway.infrastructure.realtime.fanout import ChangeFanout
from gateway.main import create_app
from gateway.shared.security.headers import SECURE_HEADERS
from gateway.shared.security.rate_limiting import build_limiter

API = "/api/v1"
ADMIN = f"{API}/admin"
HANDLER_LOGGER = "gateway.shared.errors.handlers"


class UnreachableDocumentStore(InMemoryDocumentStore):
    def list_collections(self):
        raise DocumentStoreError("connection refused", source_code="unavailable")


class ExplodingDocumentStore(InMemoryDocumentStore):
    def list_collections(self):
        raise RuntimeError("pool exhausted at 10.0.0.7")


def _settings(**overrides) -> Settings:
    values = {
        "_env_file": None,
        "use_in_memory_backends": True,
        "rate_limit_default": "1000/minute",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def _client(config: Settings, backends: Backends | None = None, **kwargs) -> TestClient:
    backends = backends or Backends.in_memory(config)
    return TestClient(create_app(config, backends, ChangeFanout()), **kwargs)


class TestHealth:
    """Tests for GET /health."""

    def test_health_ok(self, client, settings) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == settings.version
        assert body["environment"] == "test"

    def test_security_headers_present(self, client) -> None:
        response = client.get("/health")
        for header, value in SECURE_HEADERS.items():
            assert response.headers[header] == value

    def test_error_responses_carry_security_headers(self, client) -> None:
        response = client.get(f"{API}/nowhere")
        assert response.status_code == 404
        assert response.headers["X-Frame-Options"] == "DENY"


class TestRateLimiting:
    def test_rate_limit_returns_normalized_429(self) -> None:
        client = _client(_settings(rate_limit_default="2/minute"))

        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 200
        response = client.get("/health")

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "rate-limit-exceeded"
        assert error["message"] == "Too many requests, please try again later"
        assert error["statusCode"] == 429

    def test_budget_covers_prefixed_routers(self) -> None:
        client = _client(_settings(rate_limit_default="2/minute"))

        assert client.get(f"{API}/firestore/collections").status_code == 200
        assert client.get(f"{ADMIN}/system-info").status_code == 200
        response = client.get(f"{API}/auth/users")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "rate-limit-exceeded"

    def test_disabled_limiter_never_rejects(self) -> None:
        config = _settings(rate_limit_default="1/minute")
        app = create_app(config, Backends.in_memory(config), ChangeFanout())
        app.state.limiter = build_limiter("1/minute", enabled=False)
        client = TestClient(app)

        assert [client.get("/health").status_code for _ in range(3)] == [200, 200, 200]


class TestUnexpectedErrors:
    """Exceptions no adapter translated still produce the envelope."""

    def test_internal_error_outside_production(self) -> None:
        config = _settings()
        backends = Backends(config, documents=ExplodingDocumentStore())
        client = _client(config, backends, raise_server_exceptions=False)

        response = client.get(f"{API}/firestore/collections")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "internal-server-error"
        assert error["message"] == "pool exhausted at 10.0.0.7"
        assert error["details"]["detail"] == "RuntimeError"

    def test_internal_error_hidden_in_production(self) -> None:
        config = _settings(environment="production")
        backends = Backends(config, documents=ExplodingDocumentStore())
        client = _client(config, backends, raise_server_exceptions=False)

        response = client.get(f"{API}/firestore/collections")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["message"] == "Internal server error"
        assert "details" not in error

    def test_unconfigured_firebase_is_503(self) -> None:
        config = _settings(use_in_memory_backends=False)
        client = _client(config, Backends(config))

        response = client.get(f"{API}/firestore/collections")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "backend-unavailable"

    def test_validation_details_hidden_in_production(self) -> None:
        client = _client(_settings(environment="production"))

        response = client.post(f"{API}/firestore/collections/users/documents", json={})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation-error"
        assert "details" not in error


class TestConnections:
    """Tests for POST /admin/test-connections and GET /admin/health-detailed."""

    def test_all_connected(self, client) -> None:
        body = client.post(f"{ADMIN}/test-connections").json()

        assert body["success"] is True
        assert body["data"]["overall"] == "all services connected"
        assert {s["status"] for s in body["data"]["services"].values()} == {"connected"}

    def test_one_service_failed(self) -> None:
        config = _settings()
        backends = Backends(config, documents=UnreachableDocumentStore())
        body = _client(config, backends).post(f"{ADMIN}/test-connections").json()

        assert body["success"] is False
        assert body["data"]["overall"] == "some services failed"
        assert body["data"]["services"]["firestore"]["status"] == "failed"
        assert body["data"]["services"]["auth"]["status"] == "connected"

    def test_health_detailed_healthy(self, client) -> None:
        response = client.get(f"{ADMIN}/health-detailed")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["services"]["storage"] == {"status": "healthy", "message": "Connected"}

    def test_health_detailed_degraded(self) -> None:
        config = _settings()
        backends = Backends(config, documents=UnreachableDocumentStore())
        response = _client(config, backends).get(f"{ADMIN}/health-detailed")

        assert response.status_code == 503
        data = response.json()["data"]
        assert data["status"] == "degraded"
        assert data["services"]["firestore"]["status"] == "unhealthy"

    def test_unconfigured_firebase_reported_as_failed(self) -> None:
        config = _settings(use_in_memory_backends=False)
        body = _client(config, Backends(config)).post(f"{ADMIN}/test-connections").json()

        assert body["success"] is False
        assert {s["status"] for s in body["data"]["services"].values()} == {"failed"}


class TestSystemInfo:
    def test_system_info(self, client) -> None:
        data = client.get(f"{ADMIN}/system-info").json()["data"]

        assert data["server"]["environment"] == "test"
        assert data["configuration"]["inMemoryBackends"] is True
        assert data["configuration"]["maxUploadFiles"] == 2
        assert data["realtime"]["activeConnections"] == 0

    def test_dashboard(self, client) -> None:
        client.post(
            f"{API}/firestore/collections/users/documents",
            json={"id": "u1", "data": {"name": "Ada"}},
        )
        client.post(
            f"{API}/auth/create-user",
            json={"email": "ada@example.com", "password": "secret1"},
        )

        data = client.get(f"{ADMIN}/dashboard").json()["data"]
        assert data["statistics"]["collections"] == 1
        assert data["statistics"]["users"] == 1
        assert data["statistics"]["files"] == 0
        assert data["sampleCollections"][0]["id"] == "users"
        assert data["sampleCollections"][0]["sampleDocuments"][0]["id"] == "u1"


class TestErrorLogging:
    """Handlers log client errors at WARNING and server errors at ERROR."""

    @pytest.fixture
    def failing_client(self) -> TestClient:
        # Built at setup: create_app reconfigures the root logger.
        config = _settings()
        backends = Backends(config, documents=ExplodingDocumentStore())
        return _client(config, backends, raise_server_exceptions=False)

    def _records(self, caplog) -> list[logging.LogRecord]:
        return [r for r in caplog.records if r.name == HANDLER_LOGGER]

    def test_client_error_logged_as_warning(self, failing_client, caplog) -> None:
        caplog.set_level(logging.WARNING, logger=HANDLER_LOGGER)

        failing_client.get(f"{API}/nowhere")

        [record] = self._records(caplog)
        assert record.levelno == logging.WARNING
        assert "route-not-found" in record.getMessage()
        assert record.exc_info is None

    def test_server_error_logged_as_error_with_traceback(
        self, failing_client, caplog
    ) -> None:
        caplog.set_level(logging.WARNING, logger=HANDLER_LOGGER)

        failing_client.get(f"{API}/firestore/collections")

        [record] = self._records(caplog)
        assert record.levelno == logging.ERROR
        assert "internal-server-error" in record.getMessage()
        assert record.exc_info is not None
        assert record.exc_info[0] is RuntimeError


class TestAnalytics:
    """Tests for GET /admin/analytics."""

    def test_recent_writes_are_reported(self, client) -> None:
        client.post(
            f"{API}/firestore/collections/orders/documents",
            json={"id": "o1", "data": {"total": 10}},
        )
        client.post(
            f"{API}/auth/create-user",
            json={"email": "ada@example.com", "password": "secret1"},
        )

        response = client.get(f"{ADMIN}/analytics", params={"period": "hour"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["period"] == "hour"
        assert data["collections"]["withRecentActivity"] == 1
        assert data["collections"]["recentActivity"][0]["collection"] == "orders"
        assert data["users"] == {"newUsers": 1, "totalUsers": 1}
        assert "cpuTimeSeconds" in data["systemMetrics"]

    def test_default_period_is_day(self, client) -> None:
        data = client.get(f"{ADMIN}/analytics").json()["data"]
        assert data["period"] == "day"
        assert data["collections"]["total"] == 0

    def test_unknown_period_is_rejected(self, client) -> None:
        response = client.get(f"{ADMIN}/analytics", params={"period": "year"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation-error"
        assert error["details"]["errors"][0]["field"] == "period"
