"""Unit test fixtures (mocks and stubs).

Provides an in-memory HTTP model host so URL loading is tested without a
network.
"""

import json
from typing import Callable, Dict, Optional

import httpx
import pytest

from fixtures.tfjs_models import MODEL_FILENAME, WEIGHTS_FILENAME, build_dense_model


MODEL_BASE_URL = "https://models.example.com/fc24/"


def make_model_host(
    files: Dict[str, bytes],
    status_overrides: Optional[Dict[str, int]] = None,
) -> httpx.MockTransport:
    """
    Transport that serves `files` by URL path under MODEL_BASE_URL.

    Unknown paths answer 404; `status_overrides` forces a status per file name.
    """
    status_overrides = status_overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name in status_overrides:
            return httpx.Response(status_overrides[name])
        if name not in files:
            return httpx.Response(404)
        return httpx.Response(200, content=files[name])

    return httpx.MockTransport(handler)


@pytest.fixture
def model_files() -> Dict[str, bytes]:
    """Default model as uploaded/served files (name -> bytes)."""
    model_json, weights = build_dense_model()
    return {
        MODEL_FILENAME: json.dumps(model_json).encode("utf-8"),
        WEIGHTS_FILENAME: weights,
    }


@pytest.fixture
def model_host(model_files) -> Callable[..., httpx.MockTransport]:
    """Factory fixture for a mock model host.

    Usage:
        def test_something(model_host):
            transport = model_host(status_overrides={"my-model.json": 500})
    """
    def _host(files: Optional[Dict[str, bytes]] = None, **kwargs) -> httpx.MockTransport:
        return make_model_host(model_files if files is None else files, **kwargs)

    return _host


@pytest.fixture
def model_url() -> str:
    return MODEL_BASE_URL + MODEL_FILENAME
