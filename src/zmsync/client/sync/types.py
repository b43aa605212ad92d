"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, DiscoveryError, ArchiveError, UploadError: Exception classes
- EventDirectory: A discovered event folder and its timestamp
- ArchiveFile: A zip produced from an event folder
- SyncPlan: Archives to upload vs. archives already on the remote store
- SyncReport: Overall result of a sync run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from zmsync.core.types import SyncPhase


class SyncError(Exception):
    """Base exception for sync errors."""


class DiscoveryError(SyncError):
    """Events root directory is missing or unreadable."""


class ArchiveError(SyncError):
    """Failed to archive an event directory."""


class UploadError(SyncError):
    """Failed to upload an archive."""


@dataclass(frozen=True)
class EventDirectory:
    """A leaf directory holding the images of one event."""

    path: Path
    timestamp: datetime


@dataclass(frozen=True)
class ArchiveFile:
    """A zip archive produced from an event directory.

    Attributes:
        source: The archived event directory.
        path: Location of the zip in the scratch directory.
        checksum: MD5 of the zip content.
    """

    source: Path
    path: Path
    checksum: str

    @property
    def name(self) -> str:
        """File name used on the remote store."""
        return self.path.name


@dataclass
class SyncPlan:
    """Archives split by presence on the remote store."""

    pending: list[ArchiveFile]
    skipped: list[ArchiveFile]


@dataclass
class SyncReport:
    """Result of a sync run."""

    phase: SyncPhase = SyncPhase.IDLE
    discovered: int = 0
    archived: int = 0
    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    archive_failures: list[str] = field(default_factory=list)
    upload_failures: list[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """Check if any archive or upload failed."""
        return bool(self.archive_failures or self.upload_failures)
