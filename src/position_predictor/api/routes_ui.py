"""
HTML page: sliders, predict button, status text, ranking and pitch marker.

Form posts re-render the same template, so the page works without any
client-side model code. Errors are rendered as status text instead of
JSON error responses.
"""

from pathlib import Path
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError as PydanticValidationError

from position_predictor.api.dependencies import get_app_settings, get_predictor
from position_predictor.api.uploads import read_uploads
from position_predictor.config import Settings
from position_predictor.inference.exceptions import (
    InvalidAttributesError,
    InvalidUploadError,
    ModelLoadError,
    ModelNotLoadedError,
    PredictorError,
)
from position_predictor.inference.predictor import PositionPredictor
from position_predictor.models.input_models import PlayerAttributes
from position_predictor.models.output_models import PredictionResult

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(include_in_schema=False)


def _render(
    request: Request,
    settings: Settings,
    predictor: PositionPredictor,
    values: Optional[dict[str, float]] = None,
    result: Optional[PredictionResult] = None,
    error: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    values = values or {}
    sliders = [
        {
            "name": name,
            "label": name.capitalize(),
            "value": values.get(name, settings.ATTRIBUTE_DEFAULT),
        }
        for name in settings.FEATURE_NAMES
    ]
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "app_name": settings.APP_NAME,
            "sliders": sliders,
            "attribute_min": settings.ATTRIBUTE_MIN,
            "attribute_max": settings.ATTRIBUTE_MAX,
            "model": predictor.info(),
            "ready": predictor.is_ready,
            "result": result,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    predictor: PositionPredictor = Depends(get_predictor),
) -> HTMLResponse:
    """Render the page with default slider values."""
    return _render(request, settings, predictor)


@router.post("/", response_class=HTMLResponse)
async def predict_form(
    request: Request,
    pace: Optional[float] = Form(None),
    shooting: Optional[float] = Form(None),
    passing: Optional[float] = Form(None),
    defending: Optional[float] = Form(None),
    settings: Settings = Depends(get_app_settings),
    predictor: PositionPredictor = Depends(get_predictor),
) -> HTMLResponse:
    """Predict from the submitted sliders and render the result."""
    # Missing sliders are left to PlayerAttributes so they render as a page error
    submitted = {"pace": pace, "shooting": shooting, "passing": passing, "defending": defending}
    values = {name: value for name, value in submitted.items() if value is not None}

    try:
        attributes = PlayerAttributes(**values)
        result = predictor.predict(attributes)
    except PydanticValidationError as exc:
        return _render(
            request, settings, predictor, values,
            error=(
                f"Invalid attributes: {exc.error_count()} problem(s) "
                f"({', '.join(str(err['loc'][0]) for err in exc.errors() if err['loc'])})"
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except InvalidAttributesError as exc:
        return _render(
            request, settings, predictor, values,
            error=exc.message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except ModelNotLoadedError:
        return _render(
            request, settings, predictor, values,
            error="Model not loaded yet",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except PredictorError as exc:
        logger.error("Prediction failed", error=exc.message, details=exc.details)
        return _render(
            request, settings, predictor, values,
            error=f"Prediction failed: {exc.message}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return _render(request, settings, predictor, values, result=result)


@router.post("/upload", response_class=HTMLResponse)
async def upload_form(
    request: Request,
    files: list[UploadFile] = File(...),
    settings: Settings = Depends(get_app_settings),
    predictor: PositionPredictor = Depends(get_predictor),
) -> HTMLResponse:
    """Load a model from the file picker and render the new status."""
    try:
        contents = await read_uploads(files, predictor.loader.max_upload_bytes)
    except InvalidUploadError as exc:
        return _render(
            request, settings, predictor,
            error=exc.message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        await predictor.load_from_files(contents)
    except ModelLoadError:
        # The predictor's status text already describes the failure
        return _render(request, settings, predictor, status_code=status.HTTP_400_BAD_REQUEST)
    return _render(request, settings, predictor)
