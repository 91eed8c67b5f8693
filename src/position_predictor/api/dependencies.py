"""
FastAPI dependency injection for the Position Predictor.

The settings and the predictor live on `app.state` (see main.create_app),
so tests can build an app around their own instances.
"""

from fastapi import Request

from position_predictor.config import Settings
from position_predictor.inference.predictor import PositionPredictor


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_predictor(request: Request) -> PositionPredictor:
    """
    Get the app's predictor.

    One instance per app: it owns the single model handle.

    Args:
        request: Incoming request (injected)

    Returns:
        PositionPredictor instance
    """
    return request.app.state.predictor
