"""
FastAPI application entry point for the Player Position Predictor.
"""

from typing import Optional

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from position_predictor.api.error_handlers import EXCEPTION_HANDLERS
from position_predictor.api.middleware import RequestTracingMiddleware
from position_predictor.api.routes_api import router as api_router
from position_predictor.api.routes_ui import router as ui_router
from position_predictor.config import Settings, settings as default_settings
from position_predictor.inference.exceptions import PredictorError
from position_predictor.inference.predictor import PositionPredictor
from position_predictor.logging_config import configure_logging

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    predictor: Optional[PositionPredictor] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings (defaults to the environment)
        predictor: Predictor to serve (defaults to one built from settings)

    Returns:
        Configured FastAPI app
    """
    settings = settings or default_settings
    predictor = predictor or PositionPredictor.from_settings(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Predict a football player's position from pace, shooting, passing and defending",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.predictor = predictor

    # Request tracing middleware (request_id in all logs)
    app.add_middleware(RequestTracingMiddleware)

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    app.include_router(ui_router, tags=["ui"])
    app.include_router(api_router, tags=["api"])

    @app.on_event("startup")
    async def startup():
        """Load the model from the configured source, like the page did on load."""
        logger.info(
            "Application startup",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            model_source=settings.MODEL_SOURCE,
            features=settings.FEATURE_NAMES,
        )

        if not settings.LOAD_MODEL_ON_STARTUP:
            logger.info("Model load on startup disabled")
            return

        try:
            await predictor.load_configured()
        except PredictorError:
            # Status text carries the failure; the upload form is the fallback
            logger.warning("Starting without a model", status_text=predictor.status_text)
        except Exception:
            logger.exception("Starting without a model", status_text=predictor.status_text)

        logger.info("Application startup complete", model_status=predictor.status.value)

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("Application shutdown")

    if settings.PROMETHEUS_ENABLED:
        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    return app


configure_logging(default_settings.LOG_LEVEL, default_settings.ENVIRONMENT)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "position_predictor.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
    )
