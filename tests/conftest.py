import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lead_relay.core.settings import Settings
from lead_relay.main import create_app
from tests.stubs import StubRelay, StubSink, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def relay() -> StubRelay:
    return StubRelay()


@pytest.fixture
def sink() -> StubSink:
    return StubSink()


@pytest.fixture
def app(settings: Settings, relay: StubRelay, sink: StubSink) -> FastAPI:
    return create_app(settings=settings, relay=relay, sink=sink)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
