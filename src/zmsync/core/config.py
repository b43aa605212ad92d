"""Run configuration for zmsync.

This module defines the configuration consumed by the sync orchestrator.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from zmsync.core.dates import DateRange

DEFAULT_FOLDER_NAME = "zm-events"
TOKEN_FILE_NAME = "credentials.json"


@dataclass
class SyncConfig:
    """Configuration for a single sync run.

    Attributes:
        events_dir: Root directory holding the event folders.
        secret_path: OAuth client secret JSON file.
        token_dir: Directory of the cached credentials.json.
        date_range: Only events strictly inside this range are synced.
        folder_name: Name of the target folder at the Drive root.
        archive_workers: Concurrent archive jobs (defaults to CPU count).
        upload_workers: Concurrent uploads (1 = sequential).
        upload_retries: Retry attempts for a transient upload failure.
    """

    events_dir: Path
    secret_path: Path
    token_dir: Path
    date_range: DateRange = field(default_factory=DateRange)
    folder_name: str = DEFAULT_FOLDER_NAME
    archive_workers: int | None = None
    upload_workers: int = 1
    upload_retries: int = 3

    def __post_init__(self) -> None:
        """Normalize paths and validate worker counts."""
        self.events_dir = Path(self.events_dir).expanduser().resolve()
        self.secret_path = Path(self.secret_path).expanduser()
        self.token_dir = Path(self.token_dir).expanduser()
        if self.archive_workers is None:
            self.archive_workers = max(os.cpu_count() or 2, 2)
        if self.archive_workers < 1 or self.upload_workers < 1:
            raise ValueError("Worker counts must be at least 1")
        if self.upload_retries < 0:
            raise ValueError("upload_retries must not be negative")
        if not self.folder_name:
            raise ValueError("folder_name must not be empty")

    @property
    def token_path(self) -> Path:
        """Path of the cached OAuth token."""
        return self.token_dir / TOKEN_FILE_NAME
