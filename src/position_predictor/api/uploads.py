"""
Bounded reads of multipart uploads for the model file picker.
"""

from fastapi import UploadFile

from position_predictor.inference.exceptions import InvalidUploadError


def _too_large(name: str, limit: int) -> InvalidUploadError:
    return InvalidUploadError(
        f"File(s) larger than {limit} bytes: {name}",
        details={"files": [name], "limit": limit},
    )


async def read_uploads(files: list[UploadFile], limit: int) -> list[tuple[str, bytes]]:
    """
    Read each upload, never holding more than limit + 1 bytes of one file.

    Returns (file name, content) pairs in upload order; repeated names are
    kept so the loader can reject them.

    Raises:
        InvalidUploadError: A file is over the limit
    """
    contents: list[tuple[str, bytes]] = []
    for index, upload in enumerate(files):
        name = upload.filename or f"file{index}"
        if upload.size is not None and upload.size > limit:
            raise _too_large(name, limit)
        data = await upload.read(limit + 1)
        if len(data) > limit:
            raise _too_large(name, limit)
        contents.append((name, data))
    return contents
