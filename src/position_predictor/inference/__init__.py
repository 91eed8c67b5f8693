"""
Model loading and inference.

- tfjs_format.py: TensorFlow.js layers-model JSON and weight shard reader
- layers_model.py: numpy forward pass for the supported layers
- loader.py: local directory, HTTP URL and uploaded-file sources
- probabilities.py: sanitize, softmax, normalize and top-K ranking
- predictor.py: PositionPredictor service owning the model handle
- exceptions.py: load and prediction errors
"""

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
from position_predictor.inference.layers_model import LayersModel
from position_predictor.inference.loader import LoadedModel, ModelLoader
from position_predictor.inference.predictor import PositionPredictor
from position_predictor.inference.probabilities import (
    is_probability_distribution,
    normalize,
    sanitize,
    softmax,
    top_k,
)

__all__ = [
    # Exceptions
    "PredictorError",
    "ModelLoadError",
    "ModelSourceError",
    "ModelFormatError",
    "InvalidUploadError",
    "ModelNotLoadedError",
    "PredictionError",
    "InvalidAttributesError",
    # Model
    "LayersModel",
    "LoadedModel",
    "ModelLoader",
    "PositionPredictor",
    # Probabilities
    "sanitize",
    "is_probability_distribution",
    "softmax",
    "normalize",
    "top_k",
]
