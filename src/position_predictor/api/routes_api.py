"""
JSON API routes: prediction, model lifecycle and service metadata.

The HTML page (routes_ui.py) drives the same PositionPredictor, so both
surfaces always show the same model and status.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from position_predictor.api.dependencies import get_app_settings, get_predictor
from position_predictor.api.models import (
    ErrorResponse,
    HealthResponse,
    PositionAnchor,
    PositionsResponse,
    VersionResponse,
)
from position_predictor.api.uploads import read_uploads
from position_predictor.config import Settings
from position_predictor.inference.predictor import PositionPredictor
from position_predictor.models.input_models import PlayerAttributes
from position_predictor.models.output_models import ModelInfo, PredictionResult
from position_predictor.models.pitch import anchor_for

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/predict",
    response_model=PredictionResult,
    status_code=status.HTTP_200_OK,
    summary="Predict playing position",
    description="""
    Predict the playing position for one set of attribute readings.

    Returns the best position, the top-K ranking with percentages, the pitch
    marker placement and debug information about the raw model output.
    """,
    responses={
        200: {"description": "Prediction completed"},
        400: {"model": ErrorResponse, "description": "Attributes missing or out of range"},
        503: {"model": ErrorResponse, "description": "Model not loaded"},
    },
)
async def predict(
    attributes: PlayerAttributes,
    predictor: PositionPredictor = Depends(get_predictor),
) -> PredictionResult:
    """
    Predict a position.

    Args:
        attributes: Slider readings
        predictor: Position predictor (injected)

    Returns:
        PredictionResult
    """
    return predictor.predict(attributes)


@router.get(
    "/model/status",
    response_model=ModelInfo,
    summary="Model status",
)
async def model_status(
    predictor: PositionPredictor = Depends(get_predictor),
) -> ModelInfo:
    """Return the state of the model handle and its status text."""
    return predictor.info()


@router.post(
    "/model/reload",
    response_model=ModelInfo,
    summary="Reload model from the configured source",
    responses={
        422: {"model": ErrorResponse, "description": "Model files are invalid"},
        502: {"model": ErrorResponse, "description": "Model source unavailable"},
    },
)
async def reload_model(
    predictor: PositionPredictor = Depends(get_predictor),
) -> ModelInfo:
    """Reload from MODEL_DIR or MODEL_URL. A failed reload keeps the current model."""
    return await predictor.load_configured()


@router.post(
    "/model/upload",
    response_model=ModelInfo,
    summary="Load model from uploaded files",
    description="""
    Load a model from user-selected files: the model `.json` plus every
    weights `.bin` file it lists. Used when the configured source is not
    reachable.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "File set is not a model artifact, or a file is too large"},
        422: {"model": ErrorResponse, "description": "Model files are invalid"},
    },
)
async def upload_model(
    files: list[UploadFile] = File(..., description="Model .json and weights .bin files"),
    predictor: PositionPredictor = Depends(get_predictor),
) -> ModelInfo:
    """
    Load a model from uploaded files.

    Args:
        files: Uploaded model files
        predictor: Position predictor (injected)

    Returns:
        ModelInfo for the newly loaded model
    """
    contents = await read_uploads(files, predictor.loader.max_upload_bytes)
    logger.info("Model upload received", extra={"files": [name for name, _ in contents]})
    return await predictor.load_from_files(contents)


@router.get(
    "/positions",
    response_model=PositionsResponse,
    summary="Position labels and pitch anchors",
)
async def positions(
    settings: Settings = Depends(get_app_settings),
) -> PositionsResponse:
    """Labels in model output order with their pitch anchors."""
    anchors = []
    for index, label in enumerate(settings.POSITION_LABELS):
        x, y = anchor_for(label)
        anchors.append(PositionAnchor(label=label, index=index, x=x, y=y))
    return PositionsResponse(positions=anchors)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Healthy when a model is loaded and predictions can be served.
    """,
    responses={
        200: {"description": "Model loaded"},
        503: {"description": "No model loaded"},
    },
)
async def health_check(
    predictor: PositionPredictor = Depends(get_predictor),
    settings: Settings = Depends(get_app_settings),
):
    """
    Report whether predictions can be served.

    Args:
        predictor: Position predictor (injected)
        settings: Application settings (injected)

    Returns:
        HealthResponse with 200 or 503
    """
    healthy = predictor.is_ready
    response = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.APP_VERSION,
        model_status=predictor.status,
        status_text=predictor.status_text,
        timestamp=datetime.utcnow(),
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )


@router.get(
    "/version",
    response_model=VersionResponse,
    summary="Application and configuration info",
)
async def get_version(
    settings: Settings = Depends(get_app_settings),
) -> VersionResponse:
    """Return version, configured features and model source."""
    location = settings.MODEL_URL if settings.MODEL_SOURCE == "url" else settings.MODEL_DIR
    return VersionResponse(
        app_version=settings.APP_VERSION,
        features=settings.FEATURE_NAMES,
        label_count=len(settings.POSITION_LABELS),
        top_k=settings.TOP_K,
        model_source=settings.MODEL_SOURCE,
        model_location=location,
    )
