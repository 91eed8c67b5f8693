"""
Position predictor service.

Owns the single model handle and the status text shown on the page:
- Loads from the configured source (or uploaded files) and warms the model up
- Validates slider readings and builds the feature vector
- Runs the forward pass, normalizes the output and ranks positions
"""

import asyncio
import time
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Sequence

import httpx
import numpy as np
import structlog

from position_predictor.config import Settings
from position_predictor.inference.exceptions import (
    InvalidAttributesError,
    ModelFormatError,
    ModelLoadError,
    ModelNotLoadedError,
    PredictionError,
    PredictorError,
)
from position_predictor.inference.loader import LoadedModel, ModelLoader
from position_predictor.inference.probabilities import normalize, top_k
from position_predictor.models.enums import ModelSource, ModelStatus
from position_predictor.models.input_models import PlayerAttributes
from position_predictor.models.output_models import (
    ModelInfo,
    PitchMarker,
    PredictionDebug,
    PredictionResult,
)
from position_predictor.models.pitch import anchor_for, to_percent_offsets
from position_predictor.monitoring.metrics import (
    model_loads_total,
    non_finite_outputs_total,
    predicted_position_total,
    prediction_latency_seconds,
    predictions_total,
)


logger = structlog.get_logger(__name__)

STATUS_NOT_LOADED = "Model not loaded"
STATUS_LOADING = "Loading model…"
STATUS_READY = "Model loaded ✓"


class PositionPredictor:
    """
    Holds the loaded model and turns attributes into a PredictionResult.

    The model handle is replaced only by a successful load; a failed load
    keeps serving the previous model. Loads are serialized by a lock.
    """

    def __init__(
        self,
        loader: ModelLoader,
        feature_names: Sequence[str] = ("pace", "shooting", "passing"),
        labels: Sequence[str] = (),
        k: int = 3,
        sum_tolerance: float = 0.05,
        warmup_value: float = 70.0,
        input_scale: float = 1.0,
        attribute_min: float = 0.0,
        attribute_max: float = 100.0,
        model_source: str = "local",
        model_dir: Optional[str] = None,
        model_url: Optional[str] = None,
    ):
        if input_scale == 0:
            raise ValueError("input_scale must be non-zero")

        self.loader = loader
        self.feature_names = list(feature_names)
        self.labels = list(labels)
        self.k = k
        self.sum_tolerance = sum_tolerance
        self.warmup_value = warmup_value
        self.input_scale = input_scale
        self.attribute_min = attribute_min
        self.attribute_max = attribute_max
        self.model_source = ModelSource(model_source)
        self.model_dir = model_dir
        self.model_url = model_url

        self._loaded: Optional[LoadedModel] = None
        self._status = ModelStatus.NOT_LOADED
        self._status_text = STATUS_NOT_LOADED
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PositionPredictor":
        """Build a predictor (and its loader) from application settings."""
        loader = ModelLoader(
            json_filename=settings.MODEL_JSON_FILENAME,
            fetch_timeout=settings.MODEL_FETCH_TIMEOUT,
            max_upload_bytes=settings.MAX_UPLOAD_BYTES,
            transport=transport,
        )
        return cls(
            loader=loader,
            feature_names=settings.FEATURE_NAMES,
            labels=settings.POSITION_LABELS,
            k=settings.TOP_K,
            sum_tolerance=settings.PROBABILITY_SUM_TOLERANCE,
            warmup_value=settings.WARMUP_VALUE,
            input_scale=settings.INPUT_SCALE,
            attribute_min=settings.ATTRIBUTE_MIN,
            attribute_max=settings.ATTRIBUTE_MAX,
            model_source=settings.MODEL_SOURCE,
            model_dir=settings.MODEL_DIR,
            model_url=settings.MODEL_URL,
        )

    # === State ===

    @property
    def is_ready(self) -> bool:
        return self._loaded is not None

    @property
    def status(self) -> ModelStatus:
        return self._status

    @property
    def status_text(self) -> str:
        return self._status_text

    def info(self) -> ModelInfo:
        """Snapshot of the model handle for status endpoints and the page."""
        loaded = self._loaded
        return ModelInfo(
            status=self._status,
            status_text=self._status_text,
            source=loaded.source if loaded else None,
            location=loaded.location if loaded else None,
            input_dim=loaded.model.input_dim if loaded else None,
            output_dim=loaded.model.output_dim if loaded else None,
            layer_count=len(loaded.model.layers) if loaded else None,
            layers=loaded.model.summary() if loaded else [],
            generated_by=loaded.artifact.generated_by if loaded else None,
            converted_by=loaded.artifact.converted_by if loaded else None,
        )

    # === Loading ===

    async def load_configured(self) -> ModelInfo:
        """Load from MODEL_SOURCE: the model directory or MODEL_URL."""
        if self.model_source is ModelSource.URL:
            if not self.model_url:
                return await self._load(ModelSource.URL, self._raise_no_url, hint="")
            url = self.model_url
            return await self._load(
                ModelSource.URL,
                lambda: self.loader.load_from_url(url),
                hint=f"Check that {url} is reachable.",
            )

        directory = self.model_dir or "."
        return await self._load(
            ModelSource.LOCAL,
            lambda: self.loader.load_from_directory(directory),
            hint=(
                f"Check the model files are in '{directory}', "
                "or choose them with the file picker."
            ),
        )

    async def load_from_files(self, files: Mapping[str, bytes] | Iterable[tuple[str, bytes]]) -> ModelInfo:
        """Load from user-selected files (the file-picker fallback)."""
        return await self._load(
            ModelSource.UPLOAD,
            lambda: self.loader.load_from_files(files),
            hint="Select the model .json file and its .bin weights together.",
        )

    @staticmethod
    async def _raise_no_url() -> LoadedModel:
        raise ModelLoadError("MODEL_SOURCE is 'url' but MODEL_URL is not set")

    async def _load(
        self,
        source: ModelSource,
        load: Callable[[], Awaitable[LoadedModel]],
        hint: str,
    ) -> ModelInfo:
        async with self._lock:
            previous = self._loaded
            self._status = ModelStatus.LOADING
            self._status_text = STATUS_LOADING

            try:
                loaded = await load()
                self._check_and_warm_up(loaded)
            except ModelLoadError as exc:
                model_loads_total.labels(source=source.value, success="false").inc()
                logger.error(
                    "Model load failed",
                    source=source.value,
                    error_type=type(exc).__name__,
                    error=exc.message,
                    details=exc.details,
                )
                message = f"Failed to load model: {exc.message}"
                if hint:
                    message = f"{message}. {hint}"
                self._mark_failed(message, previous)
                raise
            except Exception:
                model_loads_total.labels(source=source.value, success="false").inc()
                logger.exception("Unexpected error while loading model", source=source.value)
                self._mark_failed("Failed to load model: unexpected error.", previous)
                raise

            self._loaded = loaded
            self._status = ModelStatus.READY
            self._status_text = STATUS_READY
            model_loads_total.labels(source=source.value, success="true").inc()

            if loaded.model.output_dim != len(self.labels):
                logger.warning(
                    "Model output count differs from label count",
                    output_dim=loaded.model.output_dim,
                    label_count=len(self.labels),
                )

            logger.info(
                "Model loaded",
                source=source.value,
                location=loaded.location,
                input_dim=loaded.model.input_dim,
                output_dim=loaded.model.output_dim,
                layers=len(loaded.model.layers),
                duration_ms=loaded.load_duration_ms,
            )
            return self.info()

    def _mark_failed(self, message: str, previous: Optional[LoadedModel]) -> None:
        if previous is not None:
            self._status = ModelStatus.READY
            self._status_text = f"{message} Still using the previously loaded model."
        else:
            self._status = ModelStatus.FAILED
            self._status_text = message

    def _check_and_warm_up(self, loaded: LoadedModel) -> None:
        model = loaded.model
        if model.input_dim != len(self.feature_names):
            raise ModelFormatError(
                f"Model expects {model.input_dim} inputs but {len(self.feature_names)} "
                f"attributes are configured ({', '.join(self.feature_names)})",
                details={"input_dim": model.input_dim, "features": self.feature_names},
            )

        warmup = np.full((1, model.input_dim), self.warmup_value, dtype=np.float64) / self.input_scale
        try:
            model.predict(warmup)
        except PredictionError as exc:
            raise ModelFormatError(
                f"Warm-up prediction failed: {exc.message}",
                details=exc.details,
            ) from exc

    # === Prediction ===

    def feature_vector(self, attributes: PlayerAttributes) -> list[float]:
        """
        Readings in configured feature order.

        Raises:
            InvalidAttributesError: A configured feature is missing or out of range
        """
        values: list[float] = []
        missing: list[str] = []
        out_of_range: dict[str, float] = {}

        for name in self.feature_names:
            value = attributes.value_of(name)
            if value is None:
                missing.append(name)
                continue
            if not self.attribute_min <= value <= self.attribute_max:
                out_of_range[name] = value
            values.append(float(value))

        if missing:
            raise InvalidAttributesError(
                f"Missing attribute(s): {', '.join(missing)}",
                details={"missing": missing, "features": self.feature_names},
            )
        if out_of_range:
            raise InvalidAttributesError(
                f"Attribute(s) outside {self.attribute_min:g}-{self.attribute_max:g}: "
                f"{', '.join(out_of_range)}",
                details={"out_of_range": out_of_range},
            )
        return values

    def predict(self, attributes: PlayerAttributes) -> PredictionResult:
        """
        Predict the playing position for one set of attributes.

        Raises:
            ModelNotLoadedError: No model has been loaded yet
            InvalidAttributesError: Attributes missing or out of range
            PredictionError: Forward pass failed or produced no outputs
        """
        start_time = time.perf_counter()
        try:
            result = self._predict(attributes, start_time)
        except ModelNotLoadedError:
            predictions_total.labels(status="not_loaded").inc()
            raise
        except InvalidAttributesError:
            predictions_total.labels(status="invalid_input").inc()
            raise
        except PredictorError:
            predictions_total.labels(status="error").inc()
            raise

        predictions_total.labels(status="success").inc()
        predicted_position_total.labels(position=result.best.label).inc()
        prediction_latency_seconds.observe(time.perf_counter() - start_time)
        return result

    def _predict(self, attributes: PlayerAttributes, start_time: float) -> PredictionResult:
        loaded = self._loaded
        if loaded is None:
            raise ModelNotLoadedError(
                "Model not loaded yet",
                details={"status": self._status.value, "status_text": self._status_text},
            )

        inputs = self.feature_vector(attributes)
        output = loaded.model.predict(np.asarray([inputs], dtype=np.float64) / self.input_scale)
        raw = np.array(output[0], dtype=np.float64)
        # Release the batch buffer, only the single row is kept
        del output

        normalized = normalize(raw, self.sum_tolerance)
        ranking = top_k(normalized.probabilities, self.labels, self.k)
        if not ranking:
            raise PredictionError("Model returned no outputs")

        warnings: list[str] = []
        if normalized.non_finite_count:
            non_finite_outputs_total.inc(normalized.non_finite_count)
            warnings.append(
                f"Model output contained {normalized.non_finite_count} non-finite value(s), treated as 0"
            )
            logger.warning(
                "Non-finite model output",
                count=normalized.non_finite_count,
                inputs=inputs,
            )

        best = ranking[0]
        x, y = anchor_for(best.label)
        left, top = to_percent_offsets((x, y))

        result = PredictionResult(
            best=best,
            top=ranking,
            marker=PitchMarker(label=best.label, x=x, y=y, left_percent=left, top_percent=top),
            debug=PredictionDebug(
                inputs=inputs,
                raw_output=[float(v) if np.isfinite(v) else None for v in raw],
                normalization=normalized.method,
                non_finite_count=normalized.non_finite_count,
            ),
            warnings=warnings,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )

        logger.info(
            "Prediction completed",
            best=best.label,
            probability=round(best.probability, 4),
            normalization=normalized.method.value,
            duration_ms=result.duration_ms,
        )
        return result
