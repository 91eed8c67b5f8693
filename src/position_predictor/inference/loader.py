"""
Model artifact loading from the three supported sources.

- Local directory: model JSON and shards read from MODEL_DIR
- HTTP URL: model JSON fetched with httpx, shard URLs resolved relative to it
- Uploaded files: the file-picker fallback when no source is reachable

Every failure is raised as ModelSourceError (cannot read) or
ModelFormatError (read but unusable), both carrying a message that can be
shown to the user as is.
"""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Mapping, Optional

import httpx
import structlog

from position_predictor.inference.exceptions import InvalidUploadError, ModelFormatError, ModelSourceError
from position_predictor.inference.layers_model import LayersModel
from position_predictor.inference.tfjs_format import ModelArtifact, decode_weights, parse_model_json
from position_predictor.models.enums import ModelSource


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LoadedModel:
    """A ready model plus where it came from."""

    model: LayersModel
    artifact: ModelArtifact
    source: ModelSource
    location: str
    load_duration_ms: float = 0.0


# Raised by numpy or dict access on artifacts with the right keys but wrong value types
_MALFORMED_ERRORS = (AttributeError, TypeError, ValueError, KeyError, IndexError)


def read_artifact(model_json: bytes) -> ModelArtifact:
    """parse_model_json, with any malformed-value failure reported as ModelFormatError."""
    try:
        return parse_model_json(model_json)
    except _MALFORMED_ERRORS as exc:
        raise ModelFormatError(
            "Model JSON is malformed",
            details={"error": f"{type(exc).__name__}: {exc}"},
        ) from exc


def assemble(
    artifact: ModelArtifact,
    shards: Mapping[str, bytes],
    source: ModelSource,
    location: str,
    started: Optional[float] = None,
) -> LoadedModel:
    """Decode the shards and build a model from a parsed artifact."""
    started = started if started is not None else time.perf_counter()
    try:
        weights = decode_weights(artifact.weight_groups, shards)
        model = LayersModel.from_artifact(artifact, weights)
    except _MALFORMED_ERRORS as exc:
        raise ModelFormatError(
            "Model files are malformed",
            details={"error": f"{type(exc).__name__}: {exc}"},
        ) from exc
    return LoadedModel(
        model=model,
        artifact=artifact,
        source=source,
        location=location,
        load_duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )


class ModelLoader:
    """
    Reads layers-model artifacts into LoadedModel instances.

    Holds no model state itself; PositionPredictor decides what to keep.
    """

    def __init__(
        self,
        json_filename: str = "my-model.json",
        fetch_timeout: float = 10.0,
        max_upload_bytes: int = 20 * 1024 * 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize loader.

        Args:
            json_filename: Model JSON file name inside a model directory
            fetch_timeout: HTTP timeout in seconds for URL loads
            max_upload_bytes: Per-file size limit for uploads
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.json_filename = json_filename
        self.fetch_timeout = fetch_timeout
        self.max_upload_bytes = max_upload_bytes
        self._transport = transport

    async def load_from_directory(self, directory: str | Path) -> LoadedModel:
        """
        Load `json_filename` and its shards from a directory.

        Raises:
            ModelSourceError: Directory, model file or a shard is missing
            ModelFormatError: Files are not a usable layers model
        """
        started = time.perf_counter()
        root = Path(directory).resolve()
        json_path = root / self.json_filename

        logger.info("Loading model from directory", path=str(json_path))

        if not json_path.is_file():
            raise ModelSourceError(
                f"Model file not found: {json_path}",
                details={"path": str(json_path)},
            )

        model_json = await asyncio.to_thread(json_path.read_bytes)
        artifact = read_artifact(model_json)

        shards: dict[str, bytes] = {}
        for shard_path in artifact.shard_paths:
            resolved = (root / shard_path).resolve()
            if not resolved.is_relative_to(root):
                raise ModelSourceError(
                    f"Weight path escapes the model directory: {shard_path}",
                    details={"path": shard_path},
                )
            if not resolved.is_file():
                raise ModelSourceError(
                    f"Weight file not found: {resolved}",
                    details={"path": str(resolved)},
                )
            shards[shard_path] = await asyncio.to_thread(resolved.read_bytes)

        return assemble(artifact, shards, ModelSource.LOCAL, str(root), started)

    async def load_from_url(self, url: str) -> LoadedModel:
        """
        Fetch the model JSON and its shards over HTTP.

        Shard paths in the manifest are resolved relative to the JSON URL,
        the same way a browser resolves them.

        Raises:
            ModelSourceError: Network error, timeout or non-2xx response
            ModelFormatError: Response is not a usable layers model
        """
        started = time.perf_counter()
        logger.info("Fetching model", url=url)

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.fetch_timeout),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            model_json = await self._fetch(client, url)
            artifact = read_artifact(model_json)

            base = httpx.URL(url)
            shards: dict[str, bytes] = {}
            for shard_path in artifact.shard_paths:
                shards[shard_path] = await self._fetch(client, str(base.join(shard_path)))

        return assemble(artifact, shards, ModelSource.URL, url, started)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ModelSourceError(
                f"Timed out fetching {url}",
                details={"url": url, "timeout": self.fetch_timeout},
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ModelSourceError(
                f"Fetching {url} failed with HTTP {exc.response.status_code}",
                details={"url": url, "status_code": exc.response.status_code},
            ) from exc
        except httpx.RequestError as exc:
            raise ModelSourceError(
                f"Could not reach {url} ({type(exc).__name__})",
                details={"url": url, "error": str(exc)},
            ) from exc

        logger.debug("Fetched model file", url=url, bytes=len(response.content))
        return response.content

    async def load_from_files(
        self,
        files: Mapping[str, bytes] | Iterable[tuple[str, bytes]],
    ) -> LoadedModel:
        """
        Load from user-supplied files.

        Exactly one `.json` file is expected; shards are matched to manifest
        paths by file name, since browsers only send base names.

        Args:
            files: Uploaded file name -> content, as a mapping or (name, content) pairs

        Raises:
            InvalidUploadError: Wrong file set, two files with the same name or a file over the size limit
            ModelFormatError: Files are not a usable layers model
        """
        started = time.perf_counter()
        pairs = files.items() if isinstance(files, Mapping) else files
        by_name: dict[str, bytes] = {}
        duplicates: list[str] = []
        for name, content in pairs:
            base_name = PurePosixPath(name.replace("\\", "/")).name
            if base_name in by_name:
                duplicates.append(base_name)
            by_name[base_name] = content
        if duplicates:
            raise InvalidUploadError(
                f"File(s) selected more than once: {', '.join(sorted(set(duplicates)))}",
                details={"duplicates": sorted(set(duplicates))},
            )

        oversized = [name for name, content in by_name.items() if len(content) > self.max_upload_bytes]
        if oversized:
            raise InvalidUploadError(
                f"File(s) larger than {self.max_upload_bytes} bytes: {', '.join(oversized)}",
                details={"files": oversized, "limit": self.max_upload_bytes},
            )

        json_names = [name for name in by_name if name.lower().endswith(".json")]
        if len(json_names) != 1:
            raise InvalidUploadError(
                "Select exactly one model .json file together with its weights file(s)",
                details={"json_files": json_names},
            )
        json_name = json_names[0]

        logger.info("Loading model from uploaded files", files=sorted(by_name))

        artifact = read_artifact(by_name[json_name])

        shards: dict[str, bytes] = {}
        for shard_path in artifact.shard_paths:
            base_name = PurePosixPath(shard_path).name
            if base_name not in by_name:
                raise InvalidUploadError(
                    f"Weights file '{base_name}' was not selected",
                    details={"missing": base_name, "selected": sorted(by_name)},
                )
            shards[shard_path] = by_name[base_name]

        return assemble(artifact, shards, ModelSource.UPLOAD, json_name, started)
