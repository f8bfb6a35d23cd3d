"""Helpers for storing multipart audio uploads on disk."""

import logging
from pathlib import Path

from fastapi import UploadFile

from ...core.utils.file_utils import create_directory, generate_upload_filename, remove_file
from ..errors import BadRequestError, PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


async def store_upload(upload: UploadFile, uploads_dir: Path, max_size_mb: int) -> Path:
    """Copy an upload into ``uploads_dir`` under a unique name and return its path.

    Raises:
        PayloadTooLargeError: when the upload exceeds ``max_size_mb``
        BadRequestError: when the upload is empty
    """
    create_directory(uploads_dir)
    destination = Path(uploads_dir) / generate_upload_filename(upload.filename)
    limit = max_size_mb * 1024 * 1024
    written = 0
    try:
        with open(destination, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise PayloadTooLargeError(
                        f"Audio file too large (max {max_size_mb}MB)",
                        {"max_size_mb": max_size_mb},
                    )
                out.write(chunk)
    except BaseException:
        remove_file(destination)
        raise
    finally:
        await upload.close()

    if written == 0:
        remove_file(destination)
        raise BadRequestError("Audio file is empty")

    logger.info(f"Stored upload {upload.filename!r} as {destination} ({written} bytes)")
    return destination
