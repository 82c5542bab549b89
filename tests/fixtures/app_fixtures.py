"""Application fixtures for route tests."""
import pytest
from fastapi.testclient import TestClient

from gateway_api.main import create_app


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
