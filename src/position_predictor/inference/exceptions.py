"""
Custom exceptions for model loading and prediction.

Every exception carries a human-readable message suitable for the page's
status text, plus a details dict for logs and JSON error responses.
"""


class PredictorError(Exception):
    """
    Base exception for all predictor errors.

    Allows catching any loading or prediction failure with a single except
    clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelLoadError(PredictorError):
    """
    Raised when the model artifact cannot be loaded.

    The previously loaded model (if any) stays active.
    """
    pass


class ModelSourceError(ModelLoadError):
    """
    Raised when the artifact files cannot be read.

    Includes missing files, unreachable URLs, non-200 responses and
    oversized uploads.
    """
    pass


class ModelFormatError(ModelLoadError):
    """
    Raised when the artifact is readable but not a usable layers model.

    Examples:
    - Invalid JSON or missing modelTopology / weightsManifest
    - Unsupported layer class or activation
    - Weight buffer shorter than the manifest declares
    - Input width that does not match the configured features
    """
    pass


class ModelNotLoadedError(PredictorError):
    """Raised when a prediction is requested before any model has loaded."""
    pass


class PredictionError(PredictorError):
    """Raised when the forward pass or post-processing fails."""
    pass


class InvalidAttributesError(PredictionError):
    """
    Raised when slider readings are missing or out of range.

    Separate from generic prediction errors so the API can answer 400
    instead of 500.
    """
    pass


class InvalidUploadError(ModelSourceError):
    """
    Raised when user-selected files do not form a model artifact.

    Examples: no .json file, two .json files, a weights file not selected,
    a file over the upload size limit.
    """
    pass
