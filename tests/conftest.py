"""Shared test fixtures and configuration for all tests.

This conftest.py provides settings and tiny TensorFlow.js layers models
written with numpy, so no real model artifact is needed.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from fixtures.tfjs_models import MODEL_FILENAME, WEIGHTS_FILENAME, build_dense_model

from position_predictor.config import Settings
from position_predictor.inference.loader import ModelLoader
from position_predictor.inference.predictor import PositionPredictor
from position_predictor.models.enums import PositionLabel
from position_predictor.models.input_models import PlayerAttributes


@pytest.fixture
def dense_model_factory() -> Callable[..., tuple[Dict[str, Any], bytes]]:
    """Factory fixture for build_dense_model.

    Usage:
        def test_something(dense_model_factory):
            model_json, weights = dense_model_factory(input_dim=4)
    """
    return build_dense_model


@pytest.fixture
def write_model(tmp_path: Path):
    """Factory fixture that writes a model JSON and its weights to a directory.

    Usage:
        def test_something(write_model):
            model_dir = write_model(input_dim=4)
    """
    def _write(directory: Optional[Path] = None, **kwargs) -> Path:
        directory = directory or tmp_path / "model"
        directory.mkdir(parents=True, exist_ok=True)
        model_json, weights = build_dense_model(**kwargs)
        (directory / MODEL_FILENAME).write_text(json.dumps(model_json), encoding="utf-8")
        (directory / WEIGHTS_FILENAME).write_bytes(weights)
        return directory

    return _write


@pytest.fixture
def model_dir(write_model) -> Path:
    """Directory holding the default 3-input, 16-output model."""
    return write_model()


@pytest.fixture
def test_settings(model_dir: Path) -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.TOP_K = 5
    """
    return Settings(
        # === Application ===
        APP_NAME="Player Position Predictor (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Model Source ===
        MODEL_SOURCE="local",
        MODEL_DIR=str(model_dir),
        MODEL_JSON_FILENAME=MODEL_FILENAME,
        MODEL_URL=None,
        LOAD_MODEL_ON_STARTUP=True,

        # === Features & Labels ===
        FEATURE_NAMES=["pace", "shooting", "passing"],
        POSITION_LABELS=PositionLabel.ordered(),
        TOP_K=3,

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def predictor(test_settings: Settings) -> PositionPredictor:
    """Predictor built from test settings (not loaded yet)."""
    return PositionPredictor.from_settings(test_settings)


@pytest.fixture
def loader() -> ModelLoader:
    """Model loader with default file name and limits."""
    return ModelLoader(json_filename=MODEL_FILENAME)


@pytest.fixture
def sample_attributes() -> PlayerAttributes:
    """Typical winger-ish attribute readings."""
    return PlayerAttributes(pace=88, shooting=74, passing=69)
