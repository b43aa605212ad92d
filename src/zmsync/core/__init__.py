"""Core module - Dates, checksums, and run configuration."""

from zmsync.core.config import DEFAULT_FOLDER_NAME, TOKEN_FILE_NAME, SyncConfig
from zmsync.core.dates import DateRange, MalformedPathError, decode_event_path
from zmsync.core.hashing import compute_file_md5
from zmsync.core.types import SyncPhase

__all__ = [
    # Config
    "DEFAULT_FOLDER_NAME",
    "TOKEN_FILE_NAME",
    "SyncConfig",
    # Dates
    "DateRange",
    "MalformedPathError",
    "decode_event_path",
    # Hashing
    "compute_file_md5",
    # Types
    "SyncPhase",
]
