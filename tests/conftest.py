import asyncio
import json
from pathlib import Path

import httpx
import pytest

from oauth.browser import BrowserSurface
from utils.storage import CredentialStore

# 2026-01-01T12:00:00Z
FIXED_NOW = 1767268800.0


class FakeSurface(BrowserSurface):
    """Scriptable surface: tests fire navigation events by hand"""

    def __init__(self):
        super().__init__()
        self.loaded_url = None
        self.close_calls = 0

    async def load_url(self, url):
        self.loaded_url = url

    def _teardown(self):
        self.close_calls += 1


class Recorder:
    """httpx.MockTransport handler that records requests and replays responses"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def transport(self):
        return httpx.MockTransport(self)


def clock_at(value=FIXED_NOW):
    return lambda: value


async def wait_until_loaded(surface, attempts=50):
    for _ in range(attempts):
        if surface.loaded_url:
            return
        await asyncio.sleep(0)
    raise AssertionError("surface never loaded a URL")


def write_json(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


@pytest.fixture
def credentials_file(tmp_path):
    return tmp_path / ".claude" / ".credentials.json"


@pytest.fixture
def store(credentials_file):
    return CredentialStore(str(credentials_file))


@pytest.fixture
def stored_credentials(credentials_file):
    """A non-expired record plus an unrelated top-level key"""
    data = {
        "mcpOAuth": {"server": "keep-me"},
        "claudeAiOauth": {
            "accessToken": "access-1",
            "refreshToken": "refresh-1",
            "expiresAt": int(FIXED_NOW * 1000) + 3600 * 1000,
            "scopes": ["user:inference", "user:profile"],
            "subscriptionType": "max",
            "rateLimitTier": "default_claude_max_5x",
        },
    }
    write_json(credentials_file, data)
    return data


@pytest.fixture
def fake_surface():
    return FakeSurface()
