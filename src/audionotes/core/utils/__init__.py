"""Shared helpers."""

from .file_utils import (
    create_directory,
    generate_upload_filename,
    get_file_extension,
    remove_file,
    remove_files,
    timestamp_millis,
    validate_file_type,
)

__all__ = [
    "create_directory",
    "generate_upload_filename",
    "get_file_extension",
    "remove_file",
    "remove_files",
    "timestamp_millis",
    "validate_file_type",
]
