"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from navisight.core.hls_proxy import HlsProxy
from navisight.database import CameraDatabase

HLS_URL = "https://cam.local/live/index.m3u8"
MJPEG_URL = "http://cam.local/axis-cgi/mjpg/video.cgi"


class FakeUpstream:
    """httpx.MockTransport handler that records every upstream request."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, text="#EXTM3U\n"
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def database(tmp_path: Path) -> CameraDatabase:
    """Fresh SQLite database in a temporary directory."""
    return CameraDatabase(str(tmp_path / "data" / "navisight.db"))


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def api_client(database: CameraDatabase, upstream: FakeUpstream) -> TestClient:
    """Test client wired to the temporary database and the fake upstream."""
    import navisight.app as app_module

    proxy = HlsProxy(timeout=5.0, transport=httpx.MockTransport(upstream))
    app_module.init_services(db=database, proxy=proxy)
    return TestClient(app_module.app)


@pytest.fixture
def auth_headers(database: CameraDatabase) -> dict:
    """Bearer header of a signed-in operator."""
    database.create_session(
        token="operator-token",
        user_id="user-1",
        email="operator@navisight.test",
        name="Operator",
        role="CLIENT",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )
    return {"Authorization": "Bearer operator-token"}


@pytest.fixture
def admin_headers(database: CameraDatabase) -> dict:
    """Bearer header of a signed-in administrator."""
    database.create_session(
        token="admin-token",
        user_id="admin-1",
        email="admin@navisight.test",
        name="Admin",
        role="ADMINISTRATOR",
    )
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def hls_camera(database: CameraDatabase) -> dict:
    return database.create_camera(
        name="Harbor Gate",
        stream_url=HLS_URL,
        project_id="project-1",
        status="ONLINE",
    )


@pytest.fixture
def mjpeg_camera(database: CameraDatabase) -> dict:
    return database.create_camera(
        name="Aft Deck",
        stream_url=MJPEG_URL,
        project_id="project-1",
        status="ONLINE",
    )
