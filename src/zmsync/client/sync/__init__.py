"""Sync operations for event directories.

Architecture:
    discover_events → Archiver → SyncOrchestrator → RemoteStore

Components:
- **discover_events**: Finds event directories under the events root
- **ZipArchiver / CommandZipArchiver**: Deterministic zip backends
- **WorkerPool**: Bounded concurrency with per-job outcomes
- **SyncOrchestrator**: Drives a run through its phases and dedups by MD5
"""

from zmsync.client.sync.archive import (
    ARCHIVERS,
    Archiver,
    CommandZipArchiver,
    ZipArchiver,
    archive_name_for,
)
from zmsync.client.sync.discovery import IMAGE_EXTENSIONS, discover_events
from zmsync.client.sync.orchestrator import SyncOrchestrator, compute_sync_plan
from zmsync.client.sync.pool import WorkerPool, WorkerResult
from zmsync.client.sync.retry import is_transient_error, retry_with_backoff
from zmsync.client.sync.types import (
    ArchiveError,
    ArchiveFile,
    DiscoveryError,
    EventDirectory,
    SyncError,
    SyncPlan,
    SyncReport,
    UploadError,
)

__all__ = [
    # Archives
    "ARCHIVERS",
    "Archiver",
    "CommandZipArchiver",
    "ZipArchiver",
    "archive_name_for",
    # Discovery
    "IMAGE_EXTENSIONS",
    "discover_events",
    # Orchestration
    "SyncOrchestrator",
    "compute_sync_plan",
    "WorkerPool",
    "WorkerResult",
    "is_transient_error",
    "retry_with_backoff",
    # Types and errors
    "ArchiveError",
    "ArchiveFile",
    "DiscoveryError",
    "EventDirectory",
    "SyncError",
    "SyncPlan",
    "SyncReport",
    "UploadError",
]
