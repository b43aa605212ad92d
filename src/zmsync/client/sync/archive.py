"""Deterministic zip archives of event directories.

This module provides:
- Archiver: Protocol implemented by archive backends
- ZipArchiver: Native zipfile backend (default)
- CommandZipArchiver: Backend shelling out to `zip -X` on a staged copy
- archive_name_for: Remote file name derived from the source path

Archives must be byte-identical for identical directory content, whenever
and wherever they are produced: the remote store is deduplicated by MD5, so
any timestamp or permission leaking into the zip would defeat it.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import time
import zipfile
from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import Protocol

from zmsync.client.sync.types import ArchiveError, ArchiveFile
from zmsync.core.hashing import compute_file_md5

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"

# Earliest timestamp a zip entry can hold
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
FILE_MODE = 0o100644
DIR_MODE = 0o040755
UNIX_SYSTEM = 3
COMPRESS_LEVEL = 6

# zip stores local time, so the staged copy is stamped with FIXED_DATE_TIME local
STAGED_MTIME = time.mktime(FIXED_DATE_TIME + (0, 0, -1))


def archive_name_for(source_dir: str | Path) -> str:
    """Build the archive file name for an event directory.

    Path separators are replaced by "-", so "/var/ev/19/03/04/21/22"
    becomes "-var-ev-19-03-04-21-22.zip".
    """
    name = str(source_dir).replace(os.sep, "-")
    if os.altsep:
        name = name.replace(os.altsep, "-")
    return name + ARCHIVE_EXTENSION


class Archiver(Protocol):
    """Produces one archive file from one directory."""

    def archive(self, source_dir: Path, out_dir: Path) -> ArchiveFile:
        """Archive source_dir into out_dir.

        Raises:
            ArchiveError: If the archive cannot be produced.
        """
        ...


def _entry_root(source_dir: Path) -> PurePosixPath:
    """Archive path of source_dir: the path without its anchor, as zip -r stores it."""
    parts = source_dir.parts[1:] if source_dir.anchor else source_dir.parts
    return PurePosixPath(*parts)


def _walk_sorted(directory: Path) -> Iterator[Path]:
    """Yield directory entries depth-first in name order."""
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            yield path
            yield from _walk_sorted(path)
        elif entry.is_file():
            yield path


def _zip_info(arcname: str, mode: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=FIXED_DATE_TIME)
    info.create_system = UNIX_SYSTEM
    info.external_attr = mode << 16
    return info


def _dir_info(arcname: str) -> zipfile.ZipInfo:
    info = _zip_info(f"{arcname}/", DIR_MODE)
    info.external_attr |= 0x10  # MS-DOS directory flag
    info.file_size = 0
    info.compress_size = 0
    info.CRC = 0
    return info


def _stage(source_dir: Path, staging: Path) -> list[str]:
    """Copy source_dir below staging with fixed modes and mtimes.

    Returns:
        Entry names relative to staging, in archive order.
    """
    root = _entry_root(source_dir)
    (staging / root).mkdir(parents=True)
    names = [str(root)]
    directories = [staging / root]

    for path in _walk_sorted(source_dir):
        relative = root / path.relative_to(source_dir).as_posix()
        target = staging / relative
        if path.is_dir():
            target.mkdir()
            directories.append(target)
            names.append(str(relative))
        else:
            shutil.copyfile(path, target)
            target.chmod(FILE_MODE & 0o777)
            os.utime(target, (STAGED_MTIME, STAGED_MTIME))
            names.append(str(relative))

    # Directories last: writing into a directory updates its mtime
    for directory in reversed(directories):
        directory.chmod(DIR_MODE & 0o777)
        os.utime(directory, (STAGED_MTIME, STAGED_MTIME))
    return names


class ZipArchiver:
    """Native zip backend with all file metadata stripped.

    Entries are written in name order with a fixed timestamp, fixed
    permissions and no extra fields, so the output depends only on the
    directory's path and file contents.
    """

    def archive(self, source_dir: Path, out_dir: Path) -> ArchiveFile:
        """Archive source_dir into out_dir.

        Args:
            source_dir: Event directory to archive (left untouched).
            out_dir: Directory receiving the zip.

        Returns:
            The created archive with its MD5 checksum.

        Raises:
            ArchiveError: If the source cannot be read or the zip written.
        """
        source_dir = Path(source_dir)
        zip_path = Path(out_dir) / archive_name_for(source_dir)
        if not source_dir.is_dir():
            raise ArchiveError(f"Not a directory: {source_dir}")

        root = _entry_root(source_dir)
        try:
            with zipfile.ZipFile(zip_path, "w") as zf:
                zf.mkdir(_dir_info(str(root)))
                for path in _walk_sorted(source_dir):
                    arcname = root / path.relative_to(source_dir).as_posix()
                    if path.is_dir():
                        zf.mkdir(_dir_info(str(arcname)))
                    else:
                        zf.writestr(
                            _zip_info(str(arcname), FILE_MODE),
                            path.read_bytes(),
                            compress_type=zipfile.ZIP_DEFLATED,
                            compresslevel=COMPRESS_LEVEL,
                        )
            checksum = compute_file_md5(zip_path)
        except OSError as e:
            zip_path.unlink(missing_ok=True)
            raise ArchiveError(f"Failed to archive {source_dir}: {e}") from e

        logger.debug(f"Archived {source_dir} -> {zip_path.name} ({checksum})")
        return ArchiveFile(source=source_dir, path=zip_path, checksum=checksum)


class CommandZipArchiver:
    """Backend running the `zip` command line tool.

    zip records each file's mtime and mode, and `-r` adds entries in
    directory order. The source is therefore staged first: a copy with
    fixed permissions and the fixed entry timestamp, whose names are fed to
    `zip -X -@` in sorted order.
    """

    def __init__(self, executable: str = "zip") -> None:
        self._executable = executable

    def archive(self, source_dir: Path, out_dir: Path) -> ArchiveFile:
        """Archive source_dir into out_dir with `zip -qX -@`.

        Raises:
            ArchiveError: If zip is not installed or fails.
        """
        source_dir = Path(source_dir)
        zip_path = (Path(out_dir) / archive_name_for(source_dir)).resolve()
        if not source_dir.is_dir():
            raise ArchiveError(f"Not a directory: {source_dir}")

        binary = shutil.which(self._executable)
        if binary is None:
            raise ArchiveError(f"Compressor not found: {self._executable}")

        staging: Path | None = None
        try:
            staging = Path(tempfile.mkdtemp(prefix=".stage-", dir=zip_path.parent))
            names = _stage(source_dir, staging)
            subprocess.run(
                [binary, "-qX", "-@", str(zip_path)],
                input="\n".join(names).encode(),
                cwd=staging,
                check=True,
                capture_output=True,
            )
            checksum = compute_file_md5(zip_path)
        except subprocess.CalledProcessError as e:
            zip_path.unlink(missing_ok=True)
            stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
            raise ArchiveError(
                f"zip exited with {e.returncode} for {source_dir}: {stderr}"
            ) from e
        except OSError as e:
            zip_path.unlink(missing_ok=True)
            raise ArchiveError(f"Failed to archive {source_dir}: {e}") from e
        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)

        logger.debug(f"Archived {source_dir} -> {zip_path.name} ({checksum})")
        return ArchiveFile(source=source_dir, path=zip_path, checksum=checksum)


ARCHIVERS: dict[str, type[ZipArchiver] | type[CommandZipArchiver]] = {
    "native": ZipArchiver,
    "zip": CommandZipArchiver,
}
