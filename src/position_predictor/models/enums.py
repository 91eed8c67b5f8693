"""
Enumerations for Position Predictor data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class PositionLabel(str, Enum):
    """
    Closed taxonomy of playing positions.

    Declaration order is the model output order: output i of the classifier
    is the probability of the i-th member.
    """

    GK = "GK"
    RB = "RB"
    RWB = "RWB"
    CB = "CB"
    LB = "LB"
    LWB = "LWB"
    CDM = "CDM"
    CM = "CM"
    CAM = "CAM"
    RM = "RM"
    LM = "LM"
    RW = "RW"
    LW = "LW"
    CF = "CF"
    ST = "ST"
    SW = "SW"

    @classmethod
    def ordered(cls) -> list[str]:
        """Label strings in model output order."""
        return [member.value for member in cls]


class ModelStatus(str, Enum):
    """Lifecycle of the single loaded model handle."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelSource(str, Enum):
    """Where the model artifact was read from."""

    LOCAL = "local"
    URL = "url"
    UPLOAD = "upload"


class NormalizationMethod(str, Enum):
    """How raw model output was turned into probabilities."""

    IDENTITY = "identity"  # already a distribution
    SOFTMAX = "softmax"
