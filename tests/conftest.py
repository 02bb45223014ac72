"""Shared fixtures: relay settings and a scripted stand-in for the gateway."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from payrelay.common.config import RelaySettings
from payrelay.services.relay.main import create_app


class FakeGateway:
    """Records every outbound request and answers with the current scripted reply."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.reply = lambda request: httpx.Response(200, json={"success": True, "code": "OK"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    def respond(self, status_code: int = 200, **kwargs) -> None:
        self.reply = lambda request: httpx.Response(status_code, **kwargs)

    def fail(self, exc: Exception) -> None:
        def raise_(request):
            raise exc

        self.reply = raise_

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


def build_settings(**overrides) -> RelaySettings:
    values = {
        "phonepe_merchant_id": "M",
        "phonepe_salt_key": "S",
        "environment": "development",
        "base_url": "https://relay.example.com",
        "frontend_success_url": "https://shop.example.com/success",
        "frontend_failure_url": "https://shop.example.com/failure",
        "otel_exporter_otlp_endpoint": None,
    }
    values.update(overrides)
    return RelaySettings(_env_file=None, **values)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_settings():
    """Settings with test defaults; keyword arguments override fields."""

    return build_settings


@pytest.fixture
def settings():
    return build_settings()


@pytest.fixture
def client_factory(gateway):
    """Build a TestClient for given settings, wired to the fake gateway."""

    clients = []

    def factory(settings: RelaySettings) -> TestClient:
        client = TestClient(create_app(settings, transport=httpx.MockTransport(gateway)))
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_factory, settings):
    return client_factory(settings)
