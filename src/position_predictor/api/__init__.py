"""
FastAPI API routes and endpoints.

- routes_api.py: JSON endpoints (POST /predict, /model/*, GET /health, /positions, /version)
- routes_ui.py: HTML page (GET /, POST /, POST /upload)
- dependencies.py: Settings and predictor injection
- models.py: API-specific response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request id tracing
"""

from position_predictor.api import dependencies, error_handlers, models
from position_predictor.api.routes_api import router as api_router
from position_predictor.api.routes_ui import router as ui_router

__all__ = [
    "api_router",
    "ui_router",
    "dependencies",
    "error_handlers",
    "models",
]
