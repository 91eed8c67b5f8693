"""
Numpy forward pass for TensorFlow.js layers models.

Covers the dense classifiers the predictor ships with:
- Sequential models (Keras 2 list config or dict with "layers")
- Functional models whose layers form a single chain
- Dense, activations, normalization and inference-time no-op layers

Anything else is rejected at load time with ModelFormatError, so a model
that loads is a model that predicts.
"""

from typing import Any, Callable, Mapping, Optional

import numpy as np
import structlog

from position_predictor.inference.exceptions import ModelFormatError, PredictionError
from position_predictor.inference.tfjs_format import ModelArtifact


logger = structlog.get_logger(__name__)


Activation = Callable[[np.ndarray], np.ndarray]

_SELU_ALPHA = 1.6732632423543772
_SELU_SCALE = 1.0507009873554805


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form never overflows
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def _softmax_rows(x: np.ndarray, axis: int = -1) -> np.ndarray:
    exps = np.exp(x - np.max(x, axis=axis, keepdims=True))
    return exps / np.sum(exps, axis=axis, keepdims=True)


ACTIVATIONS: dict[str, Activation] = {
    "linear": lambda x: x,
    "relu": lambda x: np.maximum(x, 0.0),
    "relu6": lambda x: np.clip(x, 0.0, 6.0),
    "elu": lambda x: np.where(x > 0, x, np.expm1(np.minimum(x, 0.0))),
    "selu": lambda x: _SELU_SCALE * np.where(x > 0, x, _SELU_ALPHA * np.expm1(np.minimum(x, 0.0))),
    "sigmoid": _sigmoid,
    "hard_sigmoid": lambda x: np.clip(0.2 * x + 0.5, 0.0, 1.0),
    "tanh": np.tanh,
    "softmax": _softmax_rows,
    "softplus": lambda x: np.logaddexp(0.0, x),
    "softsign": lambda x: x / (1.0 + np.abs(x)),
    "swish": lambda x: x * _sigmoid(x),
    "silu": lambda x: x * _sigmoid(x),
}

# tfjs uses camelCase identifiers in some exports
_ACTIVATION_ALIASES = {
    "hardSigmoid": "hard_sigmoid",
    "hardsigmoid": "hard_sigmoid",
    "softPlus": "softplus",
    "softSign": "softsign",
}


def _activation_name(value: Any) -> str:
    """Activation identifier from a Keras 2 string or a Keras 3 serialized dict."""
    if value is None:
        return "linear"
    if isinstance(value, Mapping):
        inner = value.get("config")
        value = inner if isinstance(inner, str) else value.get("class_name", "linear")
    name = str(value)
    return _ACTIVATION_ALIASES.get(name, name)


def get_activation(value: Any) -> Activation:
    """Resolve an activation config to a numpy function."""
    name = _activation_name(value)
    try:
        return ACTIVATIONS[name]
    except KeyError:
        raise ModelFormatError(
            f"Unsupported activation '{name}'",
            details={"activation": name, "supported": sorted(ACTIVATIONS)},
        ) from None


class Layer:
    """A layer with optional named parameters (kernel, bias, ...)."""

    param_names: tuple[str, ...] = ()
    optional_params: tuple[str, ...] = ()

    def __init__(self, name: str, config: Mapping[str, Any]):
        self.name = name
        self.config = dict(config)
        self.params: dict[str, np.ndarray] = {}
        self.class_name = type(self).__name__

    def required_params(self) -> tuple[str, ...]:
        return tuple(p for p in self.param_names if p not in self.optional_params)

    def bind(self, params: Mapping[str, np.ndarray]) -> None:
        missing = [p for p in self.required_params() if p not in params]
        if missing:
            raise ModelFormatError(
                f"Layer '{self.name}' is missing weights: {', '.join(missing)}",
                details={"layer": self.name, "missing": missing, "available": sorted(params)},
            )
        self.params = {k: np.asarray(v, dtype=np.float64) for k, v in params.items() if k in self.param_names}

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return x


class InputLayer(Layer):
    pass


class Identity(Layer):
    """Dropout and noise layers are inactive at inference time."""


class Flatten(Layer):
    def __call__(self, x: np.ndarray) -> np.ndarray:
        return x.reshape(x.shape[0], -1)


class Dense(Layer):
    param_names = ("kernel", "bias")

    def __init__(self, name: str, config: Mapping[str, Any]):
        super().__init__(name, config)
        self.units = int(config["units"])
        self.use_bias = bool(config.get("use_bias", True))
        self.activation = get_activation(config.get("activation"))
        if not self.use_bias:
            self.optional_params = ("bias",)

    def bind(self, params: Mapping[str, np.ndarray]) -> None:
        super().bind(params)
        kernel = self.params["kernel"]
        if kernel.ndim != 2 or kernel.shape[1] != self.units:
            raise ModelFormatError(
                f"Layer '{self.name}' kernel shape {kernel.shape} does not match units={self.units}",
                details={"layer": self.name, "shape": list(kernel.shape), "units": self.units},
            )

    def __call__(self, x: np.ndarray) -> np.ndarray:
        y = x @ self.params["kernel"]
        if self.use_bias and "bias" in self.params:
            y = y + self.params["bias"]
        return self.activation(y)


class ActivationLayer(Layer):
    def __init__(self, name: str, config: Mapping[str, Any]):
        super().__init__(name, config)
        self.activation = get_activation(config.get("activation"))

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.activation(x)


class ReLU(Layer):
    def __call__(self, x: np.ndarray) -> np.ndarray:
        max_value = self.config.get("max_value")
        slope = float(self.config.get("negative_slope") or 0.0)
        threshold = float(self.config.get("threshold") or 0.0)
        y = np.where(x >= threshold, x, slope * (x - threshold))
        if max_value is not None:
            y = np.minimum(y, float(max_value))
        return y


class LeakyReLU(Layer):
    def __call__(self, x: np.ndarray) -> np.ndarray:
        # Keras 2 calls it alpha, Keras 3 negative_slope
        slope = self.config.get("negative_slope", self.config.get("alpha", 0.3))
        return np.where(x > 0, x, float(slope) * x)


class Softmax(Layer):
    def __call__(self, x: np.ndarray) -> np.ndarray:
        return _softmax_rows(x, axis=int(self.config.get("axis", -1)))


class BatchNormalization(Layer):
    param_names = ("gamma", "beta", "moving_mean", "moving_variance")

    def __init__(self, name: str, config: Mapping[str, Any]):
        super().__init__(name, config)
        self.epsilon = float(config.get("epsilon", 1e-3))
        optional = []
        if not config.get("scale", True):
            optional.append("gamma")
        if not config.get("center", True):
            optional.append("beta")
        self.optional_params = tuple(optional)

    def __call__(self, x: np.ndarray) -> np.ndarray:
        p = self.params
        y = (x - p["moving_mean"]) / np.sqrt(p["moving_variance"] + self.epsilon)
        if "gamma" in p:
            y = y * p["gamma"]
        if "beta" in p:
            y = y + p["beta"]
        return y


LAYER_TYPES: dict[str, type[Layer]] = {
    "InputLayer": InputLayer,
    "Dense": Dense,
    "Activation": ActivationLayer,
    "ReLU": ReLU,
    "LeakyReLU": LeakyReLU,
    "Softmax": Softmax,
    "Flatten": Flatten,
    "BatchNormalization": BatchNormalization,
    "Dropout": Identity,
    "AlphaDropout": Identity,
    "GaussianNoise": Identity,
    "GaussianDropout": Identity,
}


def _layer_entries(topology: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Layer dicts in execution order; rejects graphs that are not a chain."""
    class_name = topology.get("class_name")
    config = topology.get("config")

    if config is None:
        config = {}
    if not isinstance(config, (Mapping, list)):
        raise ModelFormatError(
            "Model config must be an object or a list of layers",
            details={"class_name": class_name, "config_type": type(config).__name__},
        )

    if class_name == "Sequential":
        # Keras 2.0 stored the layer list directly as config
        entries = config if isinstance(config, list) else config.get("layers", [])
        return _checked_entries(entries)

    if class_name in ("Model", "Functional"):
        if not isinstance(config, Mapping):
            raise ModelFormatError("Functional model config must be an object")
        entries = _checked_entries(config.get("layers", []))
        previous: Optional[str] = None
        for entry in entries:
            inbound = _inbound_names(entry)
            if previous is None:
                if inbound:
                    raise ModelFormatError("Functional model does not start with an input layer")
            elif inbound != [previous]:
                raise ModelFormatError(
                    "Only single-chain functional models are supported",
                    details={"layer": _entry_name(entry), "inbound": inbound},
                )
            previous = _entry_name(entry)
        return entries

    raise ModelFormatError(
        f"Unsupported model class '{class_name}'",
        details={"class_name": class_name},
    )


def _checked_entries(entries: Any) -> list[Mapping[str, Any]]:
    if not isinstance(entries, list) or not all(isinstance(entry, Mapping) for entry in entries):
        raise ModelFormatError("Model layers must be a list of objects")
    for entry in entries:
        _entry_config(entry)
    return entries


def _entry_config(entry: Mapping[str, Any]) -> Mapping[str, Any]:
    """Layer config dict; a missing or null config counts as empty."""
    config = entry.get("config")
    if config is None:
        return {}
    if not isinstance(config, Mapping):
        raise ModelFormatError(
            "Layer config must be an object",
            details={"class_name": str(entry.get("class_name")), "config_type": type(config).__name__},
        )
    return config


def _entry_name(entry: Mapping[str, Any]) -> str:
    return str(entry.get("name") or _entry_config(entry).get("name") or "")


def _inbound_names(entry: Mapping[str, Any]) -> list[str]:
    """Names of the layers feeding this one (Keras 2 lists or Keras 3 dicts)."""
    nodes = entry.get("inbound_nodes") or []
    if not isinstance(nodes, list):
        raise ModelFormatError("inbound_nodes must be a list", details={"layer": _entry_name(entry)})
    if len(nodes) > 1:
        raise ModelFormatError(
            "Shared layers are not supported",
            details={"layer": _entry_name(entry)},
        )

    names: list[str] = []
    for node in nodes:
        if isinstance(node, Mapping):
            for arg in node.get("args") or []:
                arg_config = arg.get("config") if isinstance(arg, Mapping) else None
                history = arg_config.get("keras_history") if isinstance(arg_config, Mapping) else None
                if isinstance(history, list) and history:
                    names.append(str(history[0]))
        elif isinstance(node, list):
            names.extend(str(inbound[0]) for inbound in node if isinstance(inbound, list) and inbound)
        else:
            raise ModelFormatError("Malformed inbound node", details={"layer": _entry_name(entry)})
    return names


def _width(value: Any) -> Optional[int]:
    """Last dimension of a declared shape; None when unknown."""
    if isinstance(value, (list, tuple)):
        value = value[-1] if value else None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _declared_input_dim(entries: list[Mapping[str, Any]]) -> Optional[int]:
    for entry in entries[:1]:
        cfg = _entry_config(entry)
        for key in ("batch_input_shape", "batch_shape", "input_shape", "input_dim"):
            width = _width(cfg.get(key))
            if width is not None:
                return width
    return None


def _group_weights(weights: Mapping[str, np.ndarray]) -> dict[str, dict[str, np.ndarray]]:
    """'scope/dense_1/kernel:0' -> {'scope/dense_1': {'kernel': ...}}"""
    grouped: dict[str, dict[str, np.ndarray]] = {}
    for full_name, value in weights.items():
        prefix, _, param = full_name.rpartition("/")
        param = param.split(":", 1)[0]
        grouped.setdefault(prefix, {})[param] = value
    return grouped


def _params_for(layer_name: str, grouped: Mapping[str, dict[str, np.ndarray]]) -> dict[str, np.ndarray]:
    if layer_name in grouped:
        return grouped[layer_name]
    for prefix, params in grouped.items():
        if prefix.endswith("/" + layer_name):
            return params
    return {}


class LayersModel:
    """
    A loaded classifier ready for prediction.

    Built from a parsed artifact plus decoded weights. Construction runs a
    zero-input forward pass to validate shapes and derive output_dim.
    """

    def __init__(self, name: str, layers: list[Layer], input_dim: int):
        self.name = name
        self.layers = layers
        self.input_dim = input_dim
        try:
            sample = self._forward(np.zeros((1, input_dim)))
        except (ValueError, IndexError) as exc:
            raise ModelFormatError(
                "Layer shapes are inconsistent",
                details={"error": str(exc)},
            ) from exc
        self.output_dim = int(sample.shape[-1])

    @classmethod
    def from_artifact(cls, artifact: ModelArtifact, weights: Mapping[str, np.ndarray]) -> "LayersModel":
        """
        Assemble layers from topology and bind their weights by layer name.

        Raises:
            ModelFormatError: Unsupported layer, missing weights or unknown input width
        """
        entries = _layer_entries(artifact.topology)
        if not entries:
            raise ModelFormatError("Model topology has no layers")

        grouped = _group_weights(weights)
        layers: list[Layer] = []

        for entry in entries:
            class_name = entry.get("class_name")
            config = _entry_config(entry)
            layer_type = LAYER_TYPES.get(class_name) if isinstance(class_name, str) else None
            if layer_type is None:
                raise ModelFormatError(
                    f"Unsupported layer '{class_name}'",
                    details={"class_name": str(class_name), "supported": sorted(LAYER_TYPES)},
                )
            name = _entry_name(entry) or f"{class_name.lower()}_{len(layers)}"
            try:
                layer = layer_type(name, config)
            except (KeyError, TypeError, ValueError) as exc:
                raise ModelFormatError(
                    f"Invalid config for layer '{name}'",
                    details={"layer": name, "error": str(exc)},
                ) from exc
            layer.class_name = class_name
            if layer.param_names:
                layer.bind(_params_for(name, grouped))
            layers.append(layer)

        input_dim = _declared_input_dim(entries)
        if input_dim is None:
            first_dense = next((layer for layer in layers if isinstance(layer, Dense)), None)
            if first_dense is None:
                raise ModelFormatError("Cannot determine the model input width")
            input_dim = int(first_dense.params["kernel"].shape[0])

        config = artifact.topology.get("config")
        model_name = str(config.get("name") or "model") if isinstance(config, Mapping) else "model"

        model = cls(name=model_name, layers=layers, input_dim=input_dim)
        logger.debug(
            "Layers model assembled",
            model=model_name,
            layers=[layer.name for layer in layers],
            input_dim=model.input_dim,
            output_dim=model.output_dim,
        )
        return model

    def _forward(self, x: np.ndarray) -> np.ndarray:
        with np.errstate(over="ignore", invalid="ignore"):
            for layer in self.layers:
                x = layer(x)
        return x

    def predict(self, batch: np.ndarray | list) -> np.ndarray:
        """
        Run the forward pass.

        Args:
            batch: Shape (n, input_dim), or a single row of length input_dim

        Returns:
            Array of shape (n, output_dim)

        Raises:
            PredictionError: If the input width does not match the model
        """
        x = np.asarray(batch, dtype=np.float64)
        if x.ndim == 1:
            x = x.reshape(1, -1)
        if x.ndim != 2 or x.shape[1] != self.input_dim:
            raise PredictionError(
                f"Model expects {self.input_dim} inputs, got shape {tuple(x.shape)}",
                details={"expected": self.input_dim, "shape": list(x.shape)},
            )
        return self._forward(x)

    def summary(self) -> list[dict[str, Any]]:
        """Layer names and classes, for status endpoints."""
        return [{"name": layer.name, "class_name": layer.class_name} for layer in self.layers]
