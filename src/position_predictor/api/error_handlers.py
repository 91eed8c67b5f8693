"""
FastAPI exception handlers for structured error responses.

Maps predictor exceptions to appropriate HTTP status codes and formats.
"""

import logging
from datetime import datetime

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from position_predictor.inference.exceptions import (
    InvalidAttributesError,
    InvalidUploadError,
    ModelFormatError,
    ModelLoadError,
    ModelNotLoadedError,
    ModelSourceError,
    PredictionError,
    PredictorError,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, exc: PredictorError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": exc.message,
            "details": exc.details,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def model_not_loaded_handler(request: Request, exc: ModelNotLoadedError) -> JSONResponse:
    """
    Handle predictions requested before a model is loaded.

    Maps to 503 Service Unavailable (load the model, then retry).
    """
    logger.warning("Prediction requested without a model", extra={"details": exc.details})
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "model_not_loaded", exc)


async def invalid_attributes_handler(request: Request, exc: InvalidAttributesError) -> JSONResponse:
    """
    Handle missing or out-of-range slider readings.

    Maps to 400 Bad Request (client error).
    """
    logger.warning("Invalid attributes", extra={"details": exc.details})
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid_attributes", exc)


async def invalid_upload_handler(request: Request, exc: InvalidUploadError) -> JSONResponse:
    """
    Handle an uploaded file set that is not a model artifact.

    Maps to 400 Bad Request (client error).
    """
    logger.warning("Invalid model upload", extra={"details": exc.details})
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid_upload", exc)


async def model_source_error_handler(request: Request, exc: ModelSourceError) -> JSONResponse:
    """
    Handle unreadable model sources (missing files, unreachable URL).

    Maps to 502 Bad Gateway (model source unavailable).
    """
    logger.error("Model source unavailable", extra={"error": exc.message, "details": exc.details})
    return _error_response(status.HTTP_502_BAD_GATEWAY, "model_source_unavailable", exc)


async def model_format_error_handler(request: Request, exc: ModelFormatError) -> JSONResponse:
    """
    Handle artifacts that were read but cannot be used.

    Maps to 422 Unprocessable Entity (invalid model files).
    """
    logger.error("Invalid model artifact", extra={"error": exc.message, "details": exc.details})
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_model", exc)


async def model_load_error_handler(request: Request, exc: ModelLoadError) -> JSONResponse:
    """
    Handle other load failures (e.g., misconfigured source).

    Maps to 500 Internal Server Error.
    """
    logger.error("Model load failed", extra={"error": exc.message, "details": exc.details})
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "model_load_failed", exc)


async def prediction_error_handler(request: Request, exc: PredictionError) -> JSONResponse:
    """
    Handle forward pass failures.

    Maps to 500 Internal Server Error.
    """
    logger.error("Prediction failed", extra={"error": exc.message, "details": exc.details}, exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "prediction_failed", exc)


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors (invalid request format).

    Maps to 400 Bad Request (client error).
    """
    logger.warning(
        "Invalid request format",
        extra={"errors": exc.errors()},
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": {"errors": exc.errors(include_url=False, include_context=False)},
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request bodies and form fields FastAPI could not parse.

    Maps to 400 Bad Request with the same body as other invalid requests.
    """
    errors = [
        {key: error[key] for key in ("type", "loc", "msg") if key in error}
        for error in jsonable_encoder(exc.errors())
    ]
    logger.warning("Invalid request", extra={"path": request.url.path, "errors": errors})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": {"errors": errors},
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception(
        "Unexpected error",
        extra={"error_type": type(exc).__name__},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ModelNotLoadedError: model_not_loaded_handler,
    InvalidAttributesError: invalid_attributes_handler,
    PredictionError: prediction_error_handler,
    InvalidUploadError: invalid_upload_handler,
    ModelSourceError: model_source_error_handler,
    ModelFormatError: model_format_error_handler,
    ModelLoadError: model_load_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: pydantic_validation_error_handler,
    Exception: generic_error_handler,
}
