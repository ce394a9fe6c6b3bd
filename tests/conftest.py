"""
Shared fixtures: an application wired to in-memory backends.
"""

import pytest
from fastapi.testclient import TestClient

from gateway.core.config import Settings
from gateway.infrastructure.backend import Backends
from gateway.infrastructure.realtime.fanout import ChangeFanout
from gateway.main import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        use_in_memory_backends=True,
        rate_limit_default="1000/minute",
        max_upload_size_bytes=1024,
        max_upload_files=2,
        log_level="WARNING",
    )


@pytest.fixture
def backends(settings: Settings) -> Backends:
    return Backends.in_memory(settings)


@pytest.fixture
def fanout() -> ChangeFanout:
    hub = ChangeFanout(delivery_timeout=1.0)
    yield hub
    hub.close()


@pytest.fixture
def app(settings: Settings, backends: Backends, fanout: ChangeFanout):
    return create_app(settings, backends, fanout)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
