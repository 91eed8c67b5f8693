"""
Unit tests for ModelLoader (directory, mocked HTTP and uploads).
"""

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from fixtures.tfjs_models import MODEL_FILENAME, WEIGHTS_FILENAME, build_dense_model

from position_predictor.inference.exceptions import (
    InvalidUploadError,
    ModelFormatError,
    ModelSourceError,
)
from position_predictor.inference.loader import ModelLoader
from position_predictor.models.enums import ModelSource


class TestLoadFromDirectory:
    """Tests for local directory loading."""

    @pytest.mark.asyncio
    async def test_loads_model(self, loader, model_dir):
        loaded = await loader.load_from_directory(model_dir)

        assert loaded.source == ModelSource.LOCAL
        assert loaded.location == str(model_dir.resolve())
        assert loaded.model.input_dim == 3
        assert loaded.model.output_dim == 16
        assert loaded.load_duration_ms >= 0

    @pytest.mark.asyncio
    async def test_files_read_off_the_event_loop(self, loader, model_dir, monkeypatch):
        read = []
        original = asyncio.to_thread

        async def recording(func, *args, **kwargs):
            read.append(Path(func.__self__).name)
            return await original(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording)

        await loader.load_from_directory(model_dir)

        assert read == [MODEL_FILENAME, WEIGHTS_FILENAME]

    @pytest.mark.asyncio
    async def test_missing_model_file(self, loader, tmp_path):
        with pytest.raises(ModelSourceError, match="Model file not found"):
            await loader.load_from_directory(tmp_path / "nowhere")

    @pytest.mark.asyncio
    async def test_missing_weights_file(self, loader, model_dir):
        (model_dir / WEIGHTS_FILENAME).unlink()

        with pytest.raises(ModelSourceError, match="Weight file not found"):
            await loader.load_from_directory(model_dir)

    @pytest.mark.asyncio
    async def test_weights_path_outside_directory(self, loader, write_model, tmp_path):
        model_dir = write_model(weights_path="../secret.bin")

        with pytest.raises(ModelSourceError, match="escapes"):
            await loader.load_from_directory(model_dir)

    @pytest.mark.asyncio
    async def test_corrupt_json(self, loader, model_dir):
        (model_dir / MODEL_FILENAME).write_text("{", encoding="utf-8")

        with pytest.raises(ModelFormatError):
            await loader.load_from_directory(model_dir)

    @pytest.mark.asyncio
    async def test_string_quantization_is_format_error(self, loader, model_dir):
        model_json, _ = build_dense_model()
        model_json["weightsManifest"][0]["weights"][0]["quantization"] = "uint8"
        (model_dir / MODEL_FILENAME).write_text(json.dumps(model_json), encoding="utf-8")

        with pytest.raises(ModelFormatError, match="must be an object"):
            await loader.load_from_directory(model_dir)

    @pytest.mark.asyncio
    async def test_unexpected_parse_failure_is_format_error(self, loader, model_dir, monkeypatch):
        def broken(data):
            raise AttributeError("'str' object has no attribute 'get'")

        monkeypatch.setattr("position_predictor.inference.loader.parse_model_json", broken)

        with pytest.raises(ModelFormatError, match="Model JSON is malformed") as exc_info:
            await loader.load_from_directory(model_dir)

        assert exc_info.value.details["error"].startswith("AttributeError")

    @pytest.mark.asyncio
    async def test_unexpected_decode_failure_is_format_error(self, loader, model_dir, monkeypatch):
        def broken(groups, shards):
            raise TypeError("unsupported operand")

        monkeypatch.setattr("position_predictor.inference.loader.decode_weights", broken)

        with pytest.raises(ModelFormatError, match="Model files are malformed"):
            await loader.load_from_directory(model_dir)

    @pytest.mark.asyncio
    async def test_custom_json_filename(self, model_dir):
        (model_dir / MODEL_FILENAME).rename(model_dir / "fc24.json")
        loader = ModelLoader(json_filename="fc24.json")

        loaded = await loader.load_from_directory(model_dir)

        assert loaded.model.output_dim == 16


class TestLoadFromUrl:
    """Tests for HTTP loading with a mock transport."""

    @pytest.mark.asyncio
    async def test_loads_model_and_resolves_shards(self, model_host, model_url):
        requested = []
        inner = model_host()

        async def recording(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return await inner.handle_async_request(request)

        loader = ModelLoader(transport=httpx.MockTransport(recording))

        loaded = await loader.load_from_url(model_url)

        assert loaded.source == ModelSource.URL
        assert loaded.location == model_url
        assert loaded.model.output_dim == 16
        assert requested == [
            model_url,
            "https://models.example.com/fc24/" + WEIGHTS_FILENAME,
        ]

    @pytest.mark.asyncio
    async def test_http_error_on_model_json(self, model_host, model_url):
        loader = ModelLoader(transport=model_host(status_overrides={MODEL_FILENAME: 403}))

        with pytest.raises(ModelSourceError, match="HTTP 403") as exc_info:
            await loader.load_from_url(model_url)

        assert exc_info.value.details["status_code"] == 403

    @pytest.mark.asyncio
    async def test_missing_shard_is_404(self, model_host, model_files, model_url):
        files = {MODEL_FILENAME: model_files[MODEL_FILENAME]}
        loader = ModelLoader(transport=model_host(files=files))

        with pytest.raises(ModelSourceError, match="HTTP 404"):
            await loader.load_from_url(model_url)

    @pytest.mark.asyncio
    async def test_timeout(self, model_url):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        loader = ModelLoader(fetch_timeout=0.5, transport=httpx.MockTransport(handler))

        with pytest.raises(ModelSourceError, match="Timed out") as exc_info:
            await loader.load_from_url(model_url)

        assert exc_info.value.details["timeout"] == 0.5

    @pytest.mark.asyncio
    async def test_connection_error(self, model_url):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        loader = ModelLoader(transport=httpx.MockTransport(handler))

        with pytest.raises(ModelSourceError, match="ConnectError"):
            await loader.load_from_url(model_url)

    @pytest.mark.asyncio
    async def test_html_instead_of_json(self, model_host, model_url):
        files = {MODEL_FILENAME: b"<html>blocked</html>"}
        loader = ModelLoader(transport=model_host(files=files))

        with pytest.raises(ModelFormatError, match="not valid JSON"):
            await loader.load_from_url(model_url)


class TestLoadFromFiles:
    """Tests for the upload fallback."""

    @pytest.mark.asyncio
    async def test_loads_model(self, loader, model_files):
        loaded = await loader.load_from_files(model_files)

        assert loaded.source == ModelSource.UPLOAD
        assert loaded.location == MODEL_FILENAME
        assert loaded.model.output_dim == 16

    @pytest.mark.asyncio
    async def test_shards_matched_by_base_name(self, loader):
        model_json, weights = build_dense_model(weights_path="shards/group1-shard1of1.bin")
        files = {
            "C:\\Users\\me\\Downloads\\model.json": json.dumps(model_json).encode("utf-8"),
            "group1-shard1of1.bin": weights,
        }

        loaded = await loader.load_from_files(files)

        assert loaded.location == "model.json"

    @pytest.mark.asyncio
    async def test_no_json_file(self, loader, model_files):
        with pytest.raises(InvalidUploadError, match="exactly one"):
            await loader.load_from_files({WEIGHTS_FILENAME: model_files[WEIGHTS_FILENAME]})

    @pytest.mark.asyncio
    async def test_two_json_files(self, loader, model_files):
        files = dict(model_files)
        files["other.json"] = files[MODEL_FILENAME]

        with pytest.raises(InvalidUploadError, match="exactly one"):
            await loader.load_from_files(files)

    @pytest.mark.asyncio
    async def test_weights_not_selected(self, loader, model_files):
        with pytest.raises(InvalidUploadError, match=WEIGHTS_FILENAME):
            await loader.load_from_files({MODEL_FILENAME: model_files[MODEL_FILENAME]})

    @pytest.mark.asyncio
    async def test_oversized_file(self, model_files):
        loader = ModelLoader(max_upload_bytes=64)

        with pytest.raises(InvalidUploadError, match="larger than 64 bytes"):
            await loader.load_from_files(model_files)

    @pytest.mark.asyncio
    async def test_upload_error_is_a_source_error(self, loader):
        with pytest.raises(ModelSourceError):
            await loader.load_from_files({})

    @pytest.mark.asyncio
    async def test_accepts_name_content_pairs(self, loader, model_files):
        loaded = await loader.load_from_files(list(model_files.items()))

        assert loaded.location == MODEL_FILENAME

    @pytest.mark.asyncio
    async def test_same_name_selected_twice(self, loader, model_files):
        files = list(model_files.items()) + [(WEIGHTS_FILENAME, b"\x00" * 4)]

        with pytest.raises(InvalidUploadError, match="more than once") as exc_info:
            await loader.load_from_files(files)

        assert exc_info.value.details["duplicates"] == [WEIGHTS_FILENAME]

    @pytest.mark.asyncio
    async def test_same_base_name_in_two_folders(self, loader, model_files):
        files = dict(model_files)
        files[f"backup/{WEIGHTS_FILENAME}"] = files[WEIGHTS_FILENAME]

        with pytest.raises(InvalidUploadError, match=WEIGHTS_FILENAME):
            await loader.load_from_files(files)
