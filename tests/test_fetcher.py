import json

import httpx
import pytest

from oauth.models import RefreshResult
from usage.activity import LocalActivityAggregator
from usage.fetcher import UsageFetcher
from usage.models import ActivityStats, UsageError, UsageSnapshot
from tests.conftest import FIXED_NOW, Recorder, clock_at, write_json

USAGE_BODY = {
    "five_hour": {"utilization": 21, "resets_at": "2026-01-01T09:00:00Z"},
    "seven_day": {"utilization": 68, "resets_at": "2026-01-05T04:00:00Z"},
    "seven_day_sonnet": {"utilization": 2, "resets_at": None},
    "extra_usage": {"is_enabled": False},
}


class StubActivity:
    def __init__(self, stats=None, error=None):
        self.stats = stats
        self.error = error

    def today(self):
        if self.error:
            raise self.error
        return self.stats

    def invalidate(self):
        pass


class StubRefresher:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def refresh(self, refresh_token):
        self.calls.append(refresh_token)
        return self.result


def make_fetcher(store, recorder, refresher=None, activity=None):
    return UsageFetcher(
        store,
        refresher=refresher,
        activity=activity or StubActivity(),
        usage_url="https://api.test/usage",
        transport=recorder.transport(),
        clock=clock_at(),
    )


def expire(credentials_file, stored):
    stored["claudeAiOauth"]["expiresAt"] = int(FIXED_NOW * 1000) - 1000
    write_json(credentials_file, stored)


async def test_end_to_end_fetch(store, stored_credentials):
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))
    stats = ActivityStats(activity_date="2026-01-01", today_messages=5, today_sessions=2, today_tool_calls=9)

    result = await make_fetcher(store, recorder, activity=StubActivity(stats)).fetch()

    assert isinstance(result, UsageSnapshot)
    assert result.session.utilization == pytest.approx(0.21)
    assert result.session.reset == 1767258000
    assert result.weekly.utilization == pytest.approx(0.68)
    assert result.weekly_sonnet.reset is None
    assert result.overage.utilization == 0
    assert result.overage.reset is None
    assert result.overage.spent is None
    assert result.overall_status == "active"
    assert result.subscription_type == "max"
    assert result.rate_limit_tier == "default_claude_max_5x"
    assert result.local_stats == stats
    assert result.timestamp == int(FIXED_NOW * 1000)
    assert result.all_headers["seven_day.utilization"] == "68%"

    request = recorder.requests[0]
    assert request.headers["authorization"] == "Bearer access-1"
    assert request.headers["anthropic-version"] == "2023-06-01"
    assert request.headers["anthropic-beta"] == "oauth-2025-04-20"


async def test_snapshot_serializes_with_camel_case(store, stored_credentials):
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))
    data = (await make_fetcher(store, recorder).fetch()).to_dict()

    assert data["error"] is False
    assert data["overallStatus"] == "active"
    assert data["weeklySonnet"]["utilization"] == pytest.approx(0.02)
    assert data["localStats"] is None
    assert "allHeaders" in data
    json.dumps(data)


async def test_overage_enabled(store, stored_credentials):
    body = dict(USAGE_BODY, extra_usage={
        "is_enabled": True,
        "utilization": 31,
        "used_credits": 1582,
        "monthly_limit": 5000,
        "resets_at": "2030-01-01T00:00:00Z",
    })
    recorder = Recorder(httpx.Response(200, json=body))

    result = await make_fetcher(store, recorder).fetch()

    assert result.overage.utilization == pytest.approx(0.31)
    assert result.overage.spent == "15.82"
    assert result.overage.limit == "50.00"
    # 2026-02-01T00:00:00Z, not the API value
    assert result.overage.reset == 1769904000


async def test_rate_limited_status(store, stored_credentials):
    body = dict(USAGE_BODY, seven_day={"utilization": 100})
    recorder = Recorder(httpx.Response(200, json=body))

    result = await make_fetcher(store, recorder).fetch()
    assert result.overall_status == "rate_limited"


async def test_expired_token_is_refreshed_once_before_request(store, credentials_file, stored_credentials):
    expire(credentials_file, stored_credentials)
    refresher = StubRefresher(RefreshResult(success=True, access_token="access-2"))
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))

    result = await make_fetcher(store, recorder, refresher=refresher).fetch()

    assert isinstance(result, UsageSnapshot)
    assert refresher.calls == ["refresh-1"]
    assert len(recorder.requests) == 1
    assert recorder.requests[0].headers["authorization"] == "Bearer access-2"


async def test_expired_token_refresh_through_token_endpoint(store, credentials_file, stored_credentials):
    expire(credentials_file, stored_credentials)

    def handler(request):
        if request.url.path == "/v1/oauth/token":
            return httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600})
        return httpx.Response(200, json=USAGE_BODY)

    calls = []

    def recording_handler(request):
        calls.append(request)
        return handler(request)

    fetcher = UsageFetcher(
        store,
        activity=StubActivity(),
        usage_url="https://api.test/usage",
        transport=httpx.MockTransport(recording_handler),
        clock=clock_at(),
    )
    result = await fetcher.fetch()

    assert isinstance(result, UsageSnapshot)
    assert [request.method for request in calls] == ["POST", "GET"]
    assert calls[1].headers["authorization"] == "Bearer access-2"
    assert store.read().access_token == "access-2"


async def test_failed_refresh_falls_back_to_stored_token(store, credentials_file, stored_credentials):
    expire(credentials_file, stored_credentials)
    refresher = StubRefresher(RefreshResult(success=False, error="boom"))
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))

    result = await make_fetcher(store, recorder, refresher=refresher).fetch()

    assert isinstance(result, UsageSnapshot)
    assert recorder.requests[0].headers["authorization"] == "Bearer access-1"


async def test_valid_token_is_not_refreshed(store, stored_credentials):
    refresher = StubRefresher(RefreshResult(success=True, access_token="unused"))
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))

    await make_fetcher(store, recorder, refresher=refresher).fetch()
    assert refresher.calls == []


async def test_missing_credentials(store):
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))

    result = await make_fetcher(store, recorder).fetch()

    assert isinstance(result, UsageError)
    assert result.error_type == "credentials_not_found"
    assert "Please login to continue" in result.error_message
    assert recorder.requests == []


async def test_parse_error_credentials(store, credentials_file):
    credentials_file.parent.mkdir(parents=True)
    credentials_file.write_text("{")

    result = await make_fetcher(store, Recorder(httpx.Response(200))).fetch()
    assert result.error_type == "parse_error"
    assert result.error_message.startswith("Error reading credentials:")


async def test_no_oauth_section(store, credentials_file):
    write_json(credentials_file, {"other": True})

    result = await make_fetcher(store, Recorder(httpx.Response(200))).fetch()
    assert result.error_type == "no_oauth_data"


async def test_missing_access_token(store, credentials_file):
    write_json(credentials_file, {"claudeAiOauth": {"refreshToken": "r"}})

    result = await make_fetcher(store, Recorder(httpx.Response(200))).fetch()
    assert result.error_type == "no_token"


async def test_unauthorized(store, stored_credentials):
    result = await make_fetcher(store, Recorder(httpx.Response(401, json={}))).fetch()

    assert result.error_type == "auth_expired"
    assert result.error_message == "Session expired. Please login again."


async def test_server_error(store, stored_credentials):
    result = await make_fetcher(store, Recorder(httpx.Response(503, text="down"))).fetch()

    assert result.error_type == "api_error"
    assert "HTTP 503" in result.error_message


async def test_network_error(store, stored_credentials):
    result = await make_fetcher(store, Recorder(httpx.ConnectTimeout("timed out"))).fetch()

    assert result.error_type == "network_error"
    assert result.error_message.startswith("Network error:")


async def test_unexpected_exception_becomes_error_snapshot(store, stored_credentials):
    result = await make_fetcher(store, Recorder(RuntimeError("kaboom"))).fetch()

    assert isinstance(result, UsageError)
    assert result.error_type == "unexpected"
    assert "kaboom" in result.error_message
    assert result.to_dict() == {
        "error": True,
        "errorType": "unexpected",
        "errorMessage": "Unexpected error: kaboom",
    }


async def test_local_stats_failure_does_not_fail_fetch(store, stored_credentials):
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))
    activity = StubActivity(error=OSError("disk gone"))

    result = await make_fetcher(store, recorder, activity=activity).fetch()

    assert isinstance(result, UsageSnapshot)
    assert result.local_stats is None


async def test_default_aggregator_reads_stats_cache(store, stored_credentials, tmp_path):
    write_json(tmp_path / "stats-cache.json", {"dailyActivity": [
        {"date": "2026-01-01", "messageCount": 3, "sessionCount": 1, "toolCallCount": 4},
    ]})
    activity = LocalActivityAggregator(
        stats_cache_file=str(tmp_path / "stats-cache.json"),
        projects_dir=str(tmp_path / "projects"),
        clock=clock_at(),
    )
    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))

    result = await make_fetcher(store, recorder, activity=activity).fetch()
    assert result.local_stats.today_messages == 3


async def test_undecodable_refresh_body_falls_back_to_stored_token(store, credentials_file, stored_credentials):
    expire(credentials_file, stored_credentials)
    calls = []

    def handler(request):
        calls.append(request)
        if request.url.path == "/v1/oauth/token":
            return httpx.Response(502, content=b"\x80\x81 gateway")
        return httpx.Response(200, json=USAGE_BODY)

    fetcher = UsageFetcher(
        store,
        activity=StubActivity(),
        usage_url="https://api.test/usage",
        transport=httpx.MockTransport(handler),
        clock=clock_at(),
    )
    result = await fetcher.fetch()

    assert isinstance(result, UsageSnapshot)
    assert [request.method for request in calls] == ["POST", "GET"]
    assert calls[1].headers["authorization"] == "Bearer access-1"


async def test_raising_refresher_falls_back_to_stored_token(store, credentials_file, stored_credentials):
    expire(credentials_file, stored_credentials)

    class BrokenRefresher:
        async def refresh(self, refresh_token):
            raise RuntimeError("refresher broke")

    recorder = Recorder(httpx.Response(200, json=USAGE_BODY))
    result = await make_fetcher(store, recorder, refresher=BrokenRefresher()).fetch()

    assert isinstance(result, UsageSnapshot)
    assert recorder.requests[0].headers["authorization"] == "Bearer access-1"


async def test_undecodable_usage_body_is_api_error(store, stored_credentials):
    result = await make_fetcher(store, Recorder(httpx.Response(200, content=b"\x80garbage"))).fetch()

    assert isinstance(result, UsageError)
    assert result.error_type == "api_error"
