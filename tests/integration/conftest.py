"""Integration test fixtures (app and client).

Each test gets its own app built around test settings and a fresh
predictor, so model state never leaks between tests.
"""

import pytest
from fastapi.testclient import TestClient

from position_predictor.inference.predictor import PositionPredictor
from position_predictor.main import create_app


@pytest.fixture
def app(test_settings, predictor):
    """App serving the default test model directory."""
    return create_app(test_settings, predictor)


@pytest.fixture
def client(app):
    """Started client: the startup event has loaded the model."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unloaded_client(test_settings):
    """Started client whose app skips the model load on startup."""
    test_settings.LOAD_MODEL_ON_STARTUP = False
    app = create_app(test_settings, PositionPredictor.from_settings(test_settings))
    with TestClient(app) as test_client:
        yield test_client
