"""Sync orchestrator: discover, archive, plan, upload.

This module provides:
- SyncOrchestrator: Runs one sync through its phases
- compute_sync_plan: Split archives by presence on the remote store

Flow:
    discover_events → Archiver (pool) → authenticate → list_files
    → compute_sync_plan → upload (pool)

Per-item failures (one archive, one upload) are collected as
WorkerResults and reported; they never abort the run. Fatal errors
(discovery root, authentication, remote folder or manifest) move the
run to FAILED and propagate. The scratch directory holding the archives
is removed on every exit path.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path

from zmsync.client.auth import Credential, TokenCache
from zmsync.client.drive import ZIP_MIME_TYPE, RemoteFile, RemoteFolder, RemoteStore
from zmsync.client.sync.archive import Archiver, ZipArchiver, archive_name_for
from zmsync.client.sync.discovery import discover_events
from zmsync.client.sync.pool import WorkerPool, WorkerResult
from zmsync.client.sync.retry import retry_with_backoff
from zmsync.client.sync.types import (
    ArchiveFile,
    EventDirectory,
    SyncPlan,
    SyncReport,
    UploadError,
)
from zmsync.core.config import SyncConfig
from zmsync.core.types import SyncPhase

logger = logging.getLogger(__name__)

# Type alias for user-facing status lines
StatusCallback = Callable[[str], None]

SCRATCH_PREFIX = "zmsync-"


def compute_sync_plan(
    archives: Iterable[ArchiveFile],
    manifest: Iterable[RemoteFile],
) -> SyncPlan:
    """Split archives into those to upload and those already present.

    An archive is pending when its checksum is absent from the manifest.
    Local archives sharing a checksum are planned once.

    Args:
        archives: Local archives of this run.
        manifest: Files already in the remote folder.

    Returns:
        SyncPlan with pending and skipped archives.
    """
    known = {f.checksum for f in manifest if f.checksum}
    pending: list[ArchiveFile] = []
    skipped: list[ArchiveFile] = []

    for archive in archives:
        if archive.checksum in known:
            skipped.append(archive)
        else:
            known.add(archive.checksum)
            pending.append(archive)

    return SyncPlan(pending=pending, skipped=skipped)


class SyncOrchestrator:
    """Runs one incremental sync of event directories to the remote store."""

    def __init__(
        self,
        config: SyncConfig,
        store: RemoteStore,
        archiver: Archiver | None = None,
        on_status: StatusCallback | None = None,
        retry_backoff: float = 1.0,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Run configuration.
            store: Remote store receiving the archives.
            archiver: Archive backend (defaults to ZipArchiver).
            on_status: Optional callback for user-facing status lines.
            retry_backoff: Initial backoff in seconds between upload retries.
        """
        self._config = config
        self._store = store
        self._archiver = archiver or ZipArchiver()
        self._on_status = on_status
        self._retry_backoff = retry_backoff
        self._phase = SyncPhase.IDLE
        self._history: list[SyncPhase] = [SyncPhase.IDLE]

    @property
    def phase(self) -> SyncPhase:
        """Current phase of the run."""
        return self._phase

    @property
    def history(self) -> list[SyncPhase]:
        """Phases visited so far, in order."""
        return list(self._history)

    def _enter(self, phase: SyncPhase) -> None:
        logger.debug(f"Phase {self._phase.value} -> {phase.value}")
        self._phase = phase
        self._history.append(phase)

    def _status(self, message: str) -> None:
        logger.info(message)
        if self._on_status:
            self._on_status(message)

    def run(self) -> SyncReport:
        """Run the sync.

        Returns:
            SyncReport describing what was uploaded, skipped and failed.

        Raises:
            DiscoveryError: If the events root cannot be read.
            AuthError: If no credential can be obtained.
            APIError: If the remote folder or manifest cannot be accessed.
        """
        report = SyncReport()
        scratch: Path | None = None

        try:
            self._enter(SyncPhase.DISCOVERING)
            events = discover_events(self._config.events_dir, self._config.date_range)
            report.discovered = len(events)
            if not events:
                self._status("No directories to upload.")
                self._enter(SyncPhase.DONE)
                return report
            self._status(f"Found {len(events)} event directories.")

            self._enter(SyncPhase.ARCHIVING)
            scratch = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX))
            archives = self._archive_all(events, scratch, report)

            self._enter(SyncPhase.AUTHENTICATING)
            credential = self._store.authenticate(
                self._config.secret_path, TokenCache(self._config.token_path)
            )
            folder = self._store.ensure_directory(self._config.folder_name, credential)

            self._enter(SyncPhase.PLANNING)
            manifest = self._store.list_files(ZIP_MIME_TYPE, folder, credential)
            plan = compute_sync_plan(archives, manifest)
            report.skipped = [a.name for a in plan.skipped]
            self._status(
                f"Uploading {len(plan.pending)} files, skipping {len(plan.skipped)}."
            )

            self._enter(SyncPhase.UPLOADING)
            self._upload_all(plan.pending, folder, credential, report)

            self._enter(SyncPhase.DONE)
            return report
        except Exception:
            self._enter(SyncPhase.FAILED)
            raise
        finally:
            report.phase = self._phase
            if scratch is not None:
                shutil.rmtree(scratch, ignore_errors=True)
                logger.debug(f"Removed scratch directory {scratch}")

    def _archive_all(
        self,
        events: list[EventDirectory],
        scratch: Path,
        report: SyncReport,
    ) -> list[ArchiveFile]:
        """Archive every event directory, dropping failures.

        Two directories can map to the same archive name ("a-b/..." and
        "a/b/..."); only the first is archived, the others are failures.
        """
        claimed: dict[str, EventDirectory] = {}
        unique: list[EventDirectory] = []
        for event in events:
            name = archive_name_for(event.path)
            if name in claimed:
                logger.warning(
                    f"Skipping {event.path}: archive name {name} already used by "
                    f"{claimed[name].path}"
                )
                report.archive_failures.append(str(event.path))
                continue
            claimed[name] = event
            unique.append(event)

        pool = WorkerPool(self._config.archive_workers or 1, name="archive")
        results = pool.run(
            lambda event: self._archiver.archive(event.path, scratch), unique
        )

        archives: list[ArchiveFile] = []
        for result in results:
            if result.success:
                archives.append(result.result)
            else:
                logger.warning(f"Skipping {result.item.path}: {result.error}")
                report.archive_failures.append(str(result.item.path))

        report.archived = len(archives)
        return archives

    def _find_uploaded(
        self, archive: ArchiveFile, folder: RemoteFolder, credential: Credential
    ) -> RemoteFile | None:
        """Remote file holding archive's content, if any."""
        for remote in self._store.list_files(ZIP_MIME_TYPE, folder, credential):
            if remote.checksum == archive.checksum:
                return remote
        return None

    def _upload_one(
        self, archive: ArchiveFile, folder: RemoteFolder, credential: Credential
    ) -> RemoteFile:
        """Upload one archive, retrying transient failures.

        A failed create may still have been applied by the server (e.g. a
        timeout after the body was sent), so each retry first looks for the
        archive's checksum in the folder and never uploads it twice.
        """
        attempts = 0

        def attempt() -> RemoteFile:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                existing = self._find_uploaded(archive, folder, credential)
                if existing is not None:
                    logger.info(f"{archive.name} was stored by a failed attempt ({existing.id})")
                    return existing
            return self._store.upload(archive.path, folder, credential)

        try:
            remote: RemoteFile = retry_with_backoff(
                attempt,
                max_retries=self._config.upload_retries,
                initial_backoff=self._retry_backoff,
            )
        except Exception as e:
            raise UploadError(f"Failed to upload {archive.name}: {e}") from e

        if remote.checksum and remote.checksum != archive.checksum:
            logger.warning(
                f"Checksum mismatch for {archive.name}: "
                f"local {archive.checksum}, remote {remote.checksum}"
            )
        return remote

    def _upload_all(
        self,
        pending: list[ArchiveFile],
        folder: RemoteFolder,
        credential: Credential,
        report: SyncReport,
    ) -> None:
        """Upload pending archives, recording each outcome."""

        def on_result(result: WorkerResult[ArchiveFile]) -> None:
            if result.success:
                report.uploaded.append(result.item.name)
            else:
                logger.warning(result.error)
                report.upload_failures.append(result.item.name)

        pool = WorkerPool(self._config.upload_workers, name="upload")
        pool.run(
            lambda archive: self._upload_one(archive, folder, credential),
            pending,
            on_result=on_result,
        )
