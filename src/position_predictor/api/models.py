"""
API-specific request and response models for FastAPI endpoints.

Prediction and model status endpoints return the core domain models
(PredictionResult, ModelInfo) directly; the models here cover the
service-level endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from position_predictor.models.enums import ModelStatus


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    model_config = ConfigDict(protected_namespaces=())

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "unhealthy"]
    )
    version: str = Field(
        description="Application version",
        examples=["0.1.0"]
    )
    model_status: ModelStatus = Field(
        description="State of the model handle"
    )
    status_text: str = Field(
        description="Human-readable model status"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Health check timestamp (UTC)"
    )


class VersionResponse(BaseModel):
    """Response for version info endpoint."""

    model_config = ConfigDict(protected_namespaces=())

    app_version: str
    features: list[str] = Field(
        description="Attribute names in model input order",
        examples=[["pace", "shooting", "passing"]]
    )
    label_count: int = Field(ge=0)
    top_k: int = Field(ge=1)
    model_source: str = Field(
        description="Configured model source",
        examples=["local", "url"]
    )
    model_location: Optional[str] = Field(
        default=None,
        description="Directory or URL of the configured source"
    )


class PositionAnchor(BaseModel):
    """A position label and its pitch anchor."""

    label: str
    index: int = Field(ge=0, description="Model output index")
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)


class PositionsResponse(BaseModel):
    """Response for positions endpoint."""

    positions: list[PositionAnchor]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        description="Error code or type",
        examples=["model_not_loaded", "invalid_attributes", "model_load_failed"]
    )
    message: str = Field(
        description="Human-readable error message"
    )
    details: Optional[dict] = Field(
        default=None,
        description="Additional error details"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Error timestamp (UTC)"
    )
