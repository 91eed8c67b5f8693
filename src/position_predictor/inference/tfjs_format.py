"""
Reader for the TensorFlow.js layers-model artifact.

An artifact is a JSON file plus binary weight shards:

    {
        "format": "layers-model",
        "modelTopology": {...Keras model config...},
        "weightsManifest": [
            {
                "paths": ["my-model.weights.bin"],
                "weights": [
                    {"name": "dense_1/kernel", "shape": [3, 32], "dtype": "float32"},
                    {"name": "dense_1/bias", "shape": [32], "dtype": "float32"}
                ]
            }
        ]
    }

Within a group the shards are concatenated in `paths` order and the weights
are laid out back to back in manifest order, little-endian.
"""

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np

from position_predictor.inference.exceptions import ModelFormatError


# dtype -> (numpy dtype, bytes per element)
WEIGHT_DTYPES: dict[str, tuple[str, int]] = {
    "float32": ("<f4", 4),
    "int32": ("<i4", 4),
    "bool": ("u1", 1),
}

QUANTIZED_DTYPES: dict[str, tuple[str, int]] = {
    "uint8": ("u1", 1),
    "uint16": ("<u2", 2),
    "float16": ("<f2", 2),
}


@dataclass(frozen=True)
class WeightSpec:
    """One entry of a manifest group."""

    name: str
    shape: tuple[int, ...]
    dtype: str = "float32"
    quantization: Optional[dict[str, Any]] = None

    @property
    def size(self) -> int:
        """Number of elements."""
        count = 1
        for dim in self.shape:
            count *= dim
        return count

    @property
    def storage_dtype(self) -> tuple[str, int]:
        """(numpy dtype, element size) of the bytes on disk."""
        if self.quantization:
            return QUANTIZED_DTYPES[self.quantization["dtype"]]
        return WEIGHT_DTYPES[self.dtype]

    @property
    def byte_length(self) -> int:
        return self.size * self.storage_dtype[1]


@dataclass(frozen=True)
class WeightGroup:
    """Shards that are concatenated into one buffer, and the weights inside it."""

    paths: tuple[str, ...]
    weights: tuple[WeightSpec, ...]

    @property
    def byte_length(self) -> int:
        return sum(spec.byte_length for spec in self.weights)


@dataclass(frozen=True)
class ModelArtifact:
    """Parsed model JSON."""

    topology: dict[str, Any]
    weight_groups: tuple[WeightGroup, ...]
    format: Optional[str] = None
    generated_by: Optional[str] = None
    converted_by: Optional[str] = None

    @property
    def shard_paths(self) -> list[str]:
        """Every shard path in manifest order."""
        return [path for group in self.weight_groups for path in group.paths]


def _parse_weight_spec(entry: Any) -> WeightSpec:
    if not isinstance(entry, Mapping):
        raise ModelFormatError("Invalid weight entry in weightsManifest", details={"entry": entry})
    try:
        name = str(entry["name"])
        shape = tuple(int(dim) for dim in entry["shape"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelFormatError(
            "Invalid weight entry in weightsManifest",
            details={"entry": dict(entry)},
        ) from exc
    if any(dim < 0 for dim in shape):
        raise ModelFormatError(
            f"Weight '{name}' has a negative dimension",
            details={"weight": name, "shape": list(shape)},
        )

    dtype = entry.get("dtype", "float32")
    if not isinstance(dtype, str) or dtype not in WEIGHT_DTYPES:
        raise ModelFormatError(
            f"Unsupported weight dtype '{dtype}'",
            details={"weight": name, "dtype": dtype},
        )

    quantization = entry.get("quantization")
    if quantization is not None:
        if not isinstance(quantization, Mapping):
            raise ModelFormatError(
                f"Quantization for weight '{name}' must be an object",
                details={"weight": name, "quantization": quantization},
            )
        q_dtype = quantization.get("dtype")
        if not isinstance(q_dtype, str) or q_dtype not in QUANTIZED_DTYPES:
            raise ModelFormatError(
                f"Unsupported quantization dtype '{q_dtype}'",
                details={"weight": name, "quantization": quantization},
            )
        if q_dtype != "float16" and ("scale" not in quantization or "min" not in quantization):
            raise ModelFormatError(
                "Affine quantization requires 'scale' and 'min'",
                details={"weight": name, "quantization": quantization},
            )
        if q_dtype != "float16":
            try:
                float(quantization["scale"])
                float(quantization["min"])
            except (TypeError, ValueError) as exc:
                raise ModelFormatError(
                    "Quantization 'scale' and 'min' must be numbers",
                    details={"weight": name, "quantization": quantization},
                ) from exc
        quantization = dict(quantization)

    return WeightSpec(name=name, shape=shape, dtype=dtype, quantization=quantization)


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def unwrap_topology(topology: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return the {"class_name", "config"} model dict.

    Older Keras exports nest it under "model_config" next to
    "keras_version" and "backend".
    """
    if "model_config" in topology:
        topology = topology["model_config"]
    if not isinstance(topology, Mapping) or "class_name" not in topology:
        raise ModelFormatError(
            "modelTopology has no class_name",
            details={"keys": sorted(topology) if isinstance(topology, Mapping) else None},
        )
    return dict(topology)


def parse_model_json(data: bytes | str | Mapping[str, Any]) -> ModelArtifact:
    """
    Parse a layers-model JSON document.

    Args:
        data: Raw file content or an already decoded dict

    Returns:
        ModelArtifact with the unwrapped topology and the weight manifest

    Raises:
        ModelFormatError: On invalid JSON or a missing/invalid section
    """
    if isinstance(data, (bytes, str)):
        try:
            doc = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ModelFormatError(
                "Model file is not valid JSON",
                details={"error": str(exc)},
            ) from exc
    else:
        doc = data

    if not isinstance(doc, Mapping):
        raise ModelFormatError("Model JSON must be an object")

    missing = [key for key in ("modelTopology", "weightsManifest") if key not in doc]
    if missing:
        raise ModelFormatError(
            f"Model JSON is missing {', '.join(missing)}",
            details={"missing": missing},
        )

    model_format = doc.get("format")
    if model_format is not None and model_format != "layers-model":
        raise ModelFormatError(
            f"Unsupported model format '{model_format}' (expected 'layers-model')",
            details={"format": model_format},
        )

    manifest = doc["weightsManifest"]
    if not isinstance(manifest, list):
        raise ModelFormatError("weightsManifest must be a list")

    groups = []
    for group in manifest:
        if not isinstance(group, Mapping) or "paths" not in group or "weights" not in group:
            raise ModelFormatError("Each weightsManifest group needs 'paths' and 'weights'")
        if not isinstance(group["paths"], list) or not isinstance(group["weights"], list):
            raise ModelFormatError("weightsManifest 'paths' and 'weights' must be lists")
        groups.append(
            WeightGroup(
                paths=tuple(str(path) for path in group["paths"]),
                weights=tuple(_parse_weight_spec(entry) for entry in group["weights"]),
            )
        )

    return ModelArtifact(
        topology=unwrap_topology(doc["modelTopology"]),
        weight_groups=tuple(groups),
        format=model_format,
        generated_by=_optional_text(doc.get("generatedBy")),
        converted_by=_optional_text(doc.get("convertedBy")),
    )


def _decode_one(spec: WeightSpec, buffer: bytes, offset: int) -> np.ndarray:
    storage, _ = spec.storage_dtype
    raw = np.frombuffer(buffer, dtype=storage, count=spec.size, offset=offset)

    if spec.quantization:
        if spec.quantization["dtype"] == "float16":
            values = raw.astype(np.float32)
        else:
            scale = float(spec.quantization["scale"])
            minimum = float(spec.quantization["min"])
            values = raw.astype(np.float32) * scale + minimum
        if spec.dtype == "int32":
            values = np.round(values).astype(np.int32)
    elif spec.dtype == "bool":
        values = raw.astype(bool)
    else:
        # Copy so the array owns its memory and is writable
        values = raw.copy()

    return values.reshape(spec.shape)


def decode_weights(
    groups: tuple[WeightGroup, ...] | list[WeightGroup],
    shards: Mapping[str, bytes],
) -> dict[str, np.ndarray]:
    """
    Slice shard bytes into named numpy arrays.

    Args:
        groups: Manifest groups from parse_model_json
        shards: Shard content keyed by manifest path

    Returns:
        Dict of weight name -> array with the manifest shape

    Raises:
        ModelFormatError: If a shard is missing or a buffer is too short
    """
    weights: dict[str, np.ndarray] = {}

    for group in groups:
        missing = [path for path in group.paths if path not in shards]
        if missing:
            raise ModelFormatError(
                f"Missing weight file(s): {', '.join(missing)}",
                details={"missing": missing},
            )

        buffer = b"".join(shards[path] for path in group.paths)
        expected = group.byte_length
        if len(buffer) < expected:
            raise ModelFormatError(
                "Weight data is shorter than the manifest declares",
                details={"paths": list(group.paths), "expected_bytes": expected, "actual_bytes": len(buffer)},
            )

        offset = 0
        for spec in group.weights:
            weights[spec.name] = _decode_one(spec, buffer, offset)
            offset += spec.byte_length

    return weights
