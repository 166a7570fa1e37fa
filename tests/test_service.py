import asyncio
import json
import threading
from urllib.parse import urlencode

import httpx
import pytest
from fastapi.testclient import TestClient

from bridge import PulseService, create_app
from settings import REDIRECT_URI
from usage.activity import LocalActivityAggregator
from tests.conftest import FakeSurface, clock_at, wait_until_loaded

USAGE_BODY = {
    "five_hour": {"utilization": 21, "resets_at": "2026-01-01T09:00:00Z"},
    "seven_day": {"utilization": 68},
    "extra_usage": {"is_enabled": False},
}


def api_handler(request):
    if request.url.path == "/v1/oauth/token":
        return httpx.Response(200, json={"access_token": "fresh", "refresh_token": "r", "expires_in": 3600})
    return httpx.Response(200, json=USAGE_BODY)


@pytest.fixture
def activity(tmp_path):
    return LocalActivityAggregator(
        stats_cache_file=str(tmp_path / "stats-cache.json"),
        projects_dir=str(tmp_path / "projects"),
        clock=clock_at(),
    )


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def service(store, activity, surface):
    return PulseService(
        storage=store,
        activity=activity,
        surface_factory=lambda: surface,
        transport=httpx.MockTransport(api_handler),
    )


def test_logout_without_credentials_is_success(service, credentials_file):
    assert service.logout() == {"success": True}
    assert not credentials_file.exists()


def test_logout_twice_same_state_as_once(service, credentials_file, stored_credentials):
    assert service.logout() == {"success": True}
    after_once = credentials_file.read_bytes()
    assert service.logout() == {"success": True}
    assert credentials_file.read_bytes() == after_once
    assert "claudeAiOauth" not in json.loads(after_once)


async def test_refresh_without_credentials_is_error_dict(service):
    data = await service.refresh()
    assert data["error"] is True
    assert data["errorType"] == "credentials_not_found"
    assert service.last_data == data


async def test_refresh_returns_snapshot_dict(service, stored_credentials):
    data = await service.refresh()
    assert data["error"] is False
    assert data["session"]["utilization"] == pytest.approx(0.21)
    assert data["weekly"]["utilization"] == pytest.approx(0.68)


async def test_mock_refresh(store, activity):
    service = PulseService(storage=store, activity=activity, mock=True)
    data = await service.refresh()
    assert data["error"] is False
    assert data["subscriptionType"] == "max"
    assert data["overage"]["spent"] == "15.82"


async def test_login_success_fetches_usage(service, surface):
    task = asyncio.create_task(service.login())
    await wait_until_loaded(surface)
    assert service.login_in_progress is True

    surface.emit_will_navigate(f"{REDIRECT_URI}?{urlencode({'code': 'abc'})}")
    result = await task

    assert result["success"] is True
    assert result["data"]["error"] is False
    assert service.login_in_progress is False
    assert service.storage.read().access_token == "fresh"


async def test_login_failure_is_reported(service, surface):
    task = asyncio.create_task(service.login())
    await wait_until_loaded(surface)

    surface.close()
    result = await task

    assert result == {"success": False, "error": "Login window was closed"}
    assert service.login_in_progress is False


async def test_second_login_while_pending_is_rejected(service, surface):
    task = asyncio.create_task(service.login())
    await wait_until_loaded(surface)

    assert await service.login() == {"success": False, "error": "Login already in progress"}

    surface.close()
    await task


def test_settings(service):
    assert service.get_settings() == {"refreshInterval": 120000, "debug": False}


def test_bridge_endpoints(store, activity, stored_credentials):
    service = PulseService(storage=store, activity=activity, mock=True)
    client = TestClient(create_app(service))

    health = client.get("/health").json()
    assert health == {"status": "ok", "mock": True, "loginInProgress": False, "hasSnapshot": False}
    assert client.get("/api/usage/last").status_code == 204

    usage = client.get("/api/usage").json()
    assert usage["overallStatus"] == "active"
    assert client.get("/api/usage/last").json() == usage

    assert client.get("/api/settings").json()["refreshInterval"] == 120000
    assert client.get("/api/auth/status").json()["has_tokens"] is True

    assert client.post("/api/logout").json() == {"success": True}
    assert client.get("/api/auth/status").json()["has_tokens"] is False


async def test_mock_refresh_reads_local_stats_off_loop(store, activity, monkeypatch):
    threads = []

    def today():
        threads.append(threading.current_thread())
        return None

    monkeypatch.setattr(activity, "today", today)
    service = PulseService(storage=store, activity=activity, mock=True)

    data = await service.refresh()

    assert data["error"] is False
    assert threads and threads[0] is not threading.main_thread()
