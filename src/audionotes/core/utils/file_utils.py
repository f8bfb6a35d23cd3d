"""
File utility functions for the Audio Notes service.
"""

import logging
import os
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def get_file_extension(filename: str) -> str:
    """Get file extension from filename."""
    return Path(filename).suffix.lower()


def validate_file_type(filename: str, allowed_formats: List[str]) -> bool:
    """Validate if file type is allowed (formats given without the dot)."""
    extension = get_file_extension(filename).lstrip(".")
    return extension in {fmt.lower().lstrip(".") for fmt in allowed_formats}


def create_directory(directory_path: PathLike) -> bool:
    """Create directory if it doesn't exist."""
    try:
        Path(directory_path).mkdir(parents=True, exist_ok=True)
        return True
    except OSError:
        return False


def generate_upload_filename(original_filename: Optional[str], default_extension: str = ".webm") -> str:
    """Build a unique filename for a stored upload, keeping its extension."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    unique_id = uuid.uuid4().hex[:12]
    extension = get_file_extension(original_filename or "") or default_extension
    return f"audio_{timestamp}_{unique_id}{extension}"


def timestamp_millis() -> int:
    """Epoch milliseconds, used to name generated documents."""
    return int(time.time() * 1000)


def remove_file(path: Optional[PathLike]) -> bool:
    """Delete a file if it exists. Returns True when nothing is left behind."""
    if not path:
        return True
    try:
        os.unlink(path)
        logger.debug(f"Removed file: {path}")
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Failed to remove file {path}: {e}")
        return False


def remove_files(paths: Iterable[Optional[PathLike]]) -> bool:
    """Delete every path, continuing past individual failures."""
    results = [remove_file(path) for path in paths]
    return all(results)
