"""
Pydantic data models for the Position Predictor.

Includes:
- Enums (PositionLabel, ModelStatus, ModelSource, NormalizationMethod)
- Pitch anchors and marker geometry
- Input models (PlayerAttributes)
- Output models (PredictionResult, PositionProbability, PitchMarker, ModelInfo)
"""

from position_predictor.models.enums import (
    ModelSource,
    ModelStatus,
    NormalizationMethod,
    PositionLabel,
)
from position_predictor.models.input_models import PlayerAttributes
from position_predictor.models.output_models import (
    LayerSummary,
    ModelInfo,
    PitchMarker,
    PositionProbability,
    PredictionDebug,
    PredictionResult,
)
from position_predictor.models.pitch import POSITION_ANCHORS, anchor_for, label_for_index

__all__ = [
    # Enums
    "PositionLabel",
    "ModelStatus",
    "ModelSource",
    "NormalizationMethod",
    # Pitch
    "POSITION_ANCHORS",
    "anchor_for",
    "label_for_index",
    # Input models
    "PlayerAttributes",
    # Output models
    "PositionProbability",
    "PitchMarker",
    "PredictionDebug",
    "PredictionResult",
    "LayerSummary",
    "ModelInfo",
]
