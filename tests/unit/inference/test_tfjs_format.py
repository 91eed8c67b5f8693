"""
Unit tests for the layers-model JSON reader and weight decoding.
"""

import json

import numpy as np
import pytest

from fixtures.tfjs_models import build_dense_model

from position_predictor.inference.exceptions import ModelFormatError
from position_predictor.inference.tfjs_format import (
    WeightGroup,
    WeightSpec,
    decode_weights,
    parse_model_json,
    unwrap_topology,
)


class TestParseModelJson:
    """Tests for parse_model_json."""

    def test_parses_bytes(self):
        model_json, _ = build_dense_model()

        artifact = parse_model_json(json.dumps(model_json).encode("utf-8"))

        assert artifact.format == "layers-model"
        assert artifact.topology["class_name"] == "Sequential"
        assert artifact.shard_paths == ["my-model.weights.bin"]
        assert artifact.converted_by.startswith("TensorFlow.js")
        spec = artifact.weight_groups[0].weights[0]
        assert spec.name == "dense_Dense1/kernel"
        assert spec.shape == (3, 16)

    def test_parses_dict(self):
        model_json, _ = build_dense_model()

        artifact = parse_model_json(model_json)

        assert len(artifact.weight_groups) == 1
        assert artifact.weight_groups[0].byte_length == (3 * 16 + 16) * 4

    def test_invalid_json(self):
        with pytest.raises(ModelFormatError, match="not valid JSON"):
            parse_model_json(b"{not json")

    def test_non_object(self):
        with pytest.raises(ModelFormatError):
            parse_model_json("[1, 2, 3]")

    def test_missing_sections(self):
        with pytest.raises(ModelFormatError) as exc_info:
            parse_model_json({"format": "layers-model"})

        assert exc_info.value.details["missing"] == ["modelTopology", "weightsManifest"]

    def test_graph_model_rejected(self):
        model_json, _ = build_dense_model()
        model_json["format"] = "graph-model"

        with pytest.raises(ModelFormatError, match="graph-model"):
            parse_model_json(model_json)

    def test_unsupported_dtype(self):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0]["weights"][0]["dtype"] = "complex64"

        with pytest.raises(ModelFormatError, match="complex64"):
            parse_model_json(model_json)

    def test_affine_quantization_needs_scale_and_min(self):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0]["weights"][0]["quantization"] = {"dtype": "uint8"}

        with pytest.raises(ModelFormatError, match="scale"):
            parse_model_json(model_json)

    def test_generator_metadata(self):
        model_json, _ = build_dense_model()

        artifact = parse_model_json(model_json)

        assert artifact.generated_by == "keras v2.15.0"
        assert artifact.converted_by == "TensorFlow.js Converter v4.17.0"

    def test_non_string_generator_coerced(self):
        model_json, _ = build_dense_model()
        model_json["generatedBy"] = 2

        assert parse_model_json(model_json).generated_by == "2"


class TestMalformedManifest:
    """Manifests with the right keys but wrong value types."""

    @pytest.mark.parametrize(
        "field,value,match",
        [
            ("quantization", "uint8", "must be an object"),
            ("quantization", {"dtype": ["uint8"]}, "quantization dtype"),
            ("quantization", {"dtype": "uint8", "scale": "big", "min": 0}, "must be numbers"),
            ("dtype", ["float32"], "Unsupported weight dtype"),
            ("shape", [-1, 16], "negative dimension"),
            ("shape", 3, "Invalid weight entry"),
        ],
    )
    def test_bad_weight_entry(self, field, value, match):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0]["weights"][0][field] = value

        with pytest.raises(ModelFormatError, match=match):
            parse_model_json(model_json)

    def test_weight_entry_not_an_object(self):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0]["weights"][0] = "dense/kernel"

        with pytest.raises(ModelFormatError, match="Invalid weight entry"):
            parse_model_json(model_json)

    @pytest.mark.parametrize("key", ["paths", "weights"])
    def test_group_values_must_be_lists(self, key):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0][key] = "my-model.weights.bin"

        with pytest.raises(ModelFormatError, match="must be lists"):
            parse_model_json(model_json)


class TestUnwrapTopology:
    """Tests for topology unwrapping."""

    def test_nested_model_config(self):
        topology = unwrap_topology({"keras_version": "2.15.0", "model_config": {"class_name": "Sequential", "config": {}}})

        assert topology["class_name"] == "Sequential"

    def test_plain_topology(self):
        assert unwrap_topology({"class_name": "Functional", "config": {}})["class_name"] == "Functional"

    def test_missing_class_name(self):
        with pytest.raises(ModelFormatError):
            unwrap_topology({"config": {}})


class TestDecodeWeights:
    """Tests for slicing shard bytes into arrays."""

    def test_float32_round_trip_shapes(self):
        kernel = np.arange(6, dtype=np.float32).reshape(2, 3)
        bias = np.array([0.5, -0.5, 1.5], dtype=np.float32)
        group = WeightGroup(
            paths=("w.bin",),
            weights=(WeightSpec("d/kernel", (2, 3)), WeightSpec("d/bias", (3,))),
        )

        weights = decode_weights([group], {"w.bin": kernel.tobytes() + bias.tobytes()})

        np.testing.assert_array_equal(weights["d/kernel"], kernel)
        np.testing.assert_array_equal(weights["d/bias"], bias)
        assert weights["d/kernel"].flags.writeable

    def test_shards_are_concatenated_in_order(self):
        values = np.arange(8, dtype="<f4")
        raw = values.tobytes()
        group = WeightGroup(
            paths=("group1-shard1of2.bin", "group1-shard2of2.bin"),
            weights=(WeightSpec("w", (8,)),),
        )

        weights = decode_weights(
            [group],
            {"group1-shard1of2.bin": raw[:12], "group1-shard2of2.bin": raw[12:]},
        )

        np.testing.assert_array_equal(weights["w"], values)

    def test_uint8_affine_dequantization(self):
        spec = WeightSpec("q", (3,), quantization={"dtype": "uint8", "scale": 0.5, "min": -1.0})
        group = WeightGroup(paths=("q.bin",), weights=(spec,))

        weights = decode_weights([group], {"q.bin": bytes([0, 2, 4])})

        np.testing.assert_allclose(weights["q"], [-1.0, 0.0, 1.0])

    def test_uint16_affine_dequantization(self):
        spec = WeightSpec("q", (2,), quantization={"dtype": "uint16", "scale": 0.01, "min": 0.0})
        group = WeightGroup(paths=("q.bin",), weights=(spec,))

        weights = decode_weights([group], {"q.bin": np.array([100, 250], dtype="<u2").tobytes()})

        np.testing.assert_allclose(weights["q"], [1.0, 2.5], rtol=1e-6)

    def test_float16_dequantization(self):
        spec = WeightSpec("h", (2,), quantization={"dtype": "float16"})
        group = WeightGroup(paths=("h.bin",), weights=(spec,))

        weights = decode_weights([group], {"h.bin": np.array([0.5, -2.0], dtype="<f2").tobytes()})

        assert weights["h"].dtype == np.float32
        np.testing.assert_array_equal(weights["h"], [0.5, -2.0])

    def test_missing_shard(self):
        group = WeightGroup(paths=("absent.bin",), weights=(WeightSpec("w", (1,)),))

        with pytest.raises(ModelFormatError, match="absent.bin"):
            decode_weights([group], {})

    def test_short_buffer(self):
        group = WeightGroup(paths=("w.bin",), weights=(WeightSpec("w", (4,)),))

        with pytest.raises(ModelFormatError, match="shorter") as exc_info:
            decode_weights([group], {"w.bin": b"\x00" * 8})

        assert exc_info.value.details["expected_bytes"] == 16
        assert exc_info.value.details["actual_bytes"] == 8
