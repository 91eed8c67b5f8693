"""
Output data models for the Position Predictor.

A PredictionResult carries everything the page renders: the badge label,
the top-K ranking, the pitch marker and a debug block.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from position_predictor.models.enums import ModelSource, ModelStatus, NormalizationMethod


class PositionProbability(BaseModel):
    """One ranked position with its probability."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Position label (e.g., ST) or Class{i} fallback")
    index: int = Field(..., ge=0, description="Index of the model output")
    probability: float = Field(..., ge=0.0, le=1.0, description="Normalized probability")

    @computed_field
    @property
    def percent(self) -> str:
        """Probability as display text with one decimal, e.g. '42.0%'."""
        return f"{self.probability * 100:.1f}%"


class PitchMarker(BaseModel):
    """Marker placement on the schematic pitch."""

    label: str
    x: float = Field(..., ge=0.0, le=1.0, description="Normalized x anchor")
    y: float = Field(..., ge=0.0, le=1.0, description="Normalized y anchor")
    left_percent: float = Field(..., description="CSS left offset in percent")
    top_percent: float = Field(..., description="CSS top offset in percent")


class PredictionDebug(BaseModel):
    """Diagnostics shown in the debug text node."""

    inputs: list[float] = Field(..., description="Feature vector passed to the model")
    raw_output: list[Optional[float]] = Field(
        ..., description="Model output before normalization (non-finite values as null)"
    )
    normalization: NormalizationMethod
    non_finite_count: int = Field(default=0, ge=0)


class PredictionResult(BaseModel):
    """Complete prediction for one set of attributes."""

    best: PositionProbability
    top: list[PositionProbability] = Field(default_factory=list)
    marker: PitchMarker
    debug: PredictionDebug
    warnings: list[str] = Field(default_factory=list)
    duration_ms: float = Field(default=0.0, ge=0.0)

    @property
    def top_lines(self) -> list[str]:
        """Ranking as display lines: 'ST: 61.2%'."""
        return [f"{entry.label}: {entry.percent}" for entry in self.top]


class LayerSummary(BaseModel):
    """One layer of the loaded model."""

    name: str
    class_name: str


class ModelInfo(BaseModel):
    """Current state of the model handle."""

    status: ModelStatus
    status_text: str
    source: Optional[ModelSource] = None
    location: Optional[str] = Field(default=None, description="Directory, URL or uploaded file name")
    input_dim: Optional[int] = None
    output_dim: Optional[int] = None
    layer_count: Optional[int] = None
    layers: list[LayerSummary] = Field(default_factory=list, description="Layers in execution order")
    generated_by: Optional[str] = Field(default=None, description="Library that produced the model")
    converted_by: Optional[str] = Field(default=None, description="Converter that wrote the artifact")
