"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from keygate.app_factory import create_app
from keygate.config import Settings
from keygate.engine import KeyLifecycleEngine
from keygate.monetizzy import MonetizzyGateway
from keygate.store import KeyStore
from keygate.sweeper import ExpirySweeper

TOKEN = "secret-token"
SHORT_URL = "https://ufly.monetizzy.com/abc"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonetizzy:
    """httpx.MockTransport handler standing in for the Monetizzy API."""

    def __init__(self):
        self.status_code = 200
        self.body = {"shortened_url": SHORT_URL}
        self.timeout = False
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def keys_path(tmp_path):
    return tmp_path / "keys.json"


@pytest.fixture
def store(keys_path):
    store = KeyStore(keys_path)
    store.load()
    return store


@pytest.fixture
def engine(store, clock):
    return KeyLifecycleEngine(store, clock=clock)


@pytest.fixture
def sweeper(store, clock):
    return ExpirySweeper(store, interval=3600, clock=clock)


@pytest.fixture
def monetizzy():
    return FakeMonetizzy()


@pytest.fixture
def gateway(monetizzy):
    return MonetizzyGateway(token=TOKEN, transport=httpx.MockTransport(monetizzy))


@pytest.fixture
def settings(keys_path):
    return Settings(_env_file=None, monetizzy_token=TOKEN, keys_file=str(keys_path))


@pytest.fixture
def app(settings, gateway, clock):
    return create_app(settings, gateway=gateway, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sample_links():
    return [
        "https://example.com/a",
        "https://github.com/user/repo",
        "http://stackoverflow.com/questions/123456",
    ]
