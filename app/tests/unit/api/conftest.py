"""Fixtures for API route tests."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies.rate_limits import setup_rate_limiter
from api.router import api_router
from infrastructure.configuration import Settings
from infrastructure.services import get_delivery_engine, get_settings


@pytest.fixture
def test_settings():
    return Settings(GIT_SHA="abc123")


@pytest.fixture
def app(engine, test_settings):
    """Application with the real routers and the fake-backed engine injected."""
    application = FastAPI()
    setup_rate_limiter(application)
    application.include_router(api_router)
    application.dependency_overrides[get_delivery_engine] = lambda: engine
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
