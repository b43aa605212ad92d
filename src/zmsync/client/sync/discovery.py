"""Discovery of event directories.

This module provides:
- discover_events: Find event directories under a root, filtered by date
- IMAGE_EXTENSIONS: File extensions recognised as event images

An event directory is any directory that directly holds at least one image
and whose path ends with YY/MM/DD/HH/mm. Hidden entries (names starting with
a dot) are never descended into, so images below a hidden directory do not
qualify.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from zmsync.client.sync.types import DiscoveryError, EventDirectory
from zmsync.core.dates import DateRange, MalformedPathError, decode_event_path

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp"})

HIDDEN_PREFIX = "."


def _is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def _is_image(name: str, extensions: Iterable[str]) -> bool:
    return not _is_hidden(name) and os.path.splitext(name)[1].lower() in extensions


def _check_root(root: Path) -> None:
    if not root.exists():
        raise DiscoveryError(f"Events directory not found: {root}")
    if not root.is_dir():
        raise DiscoveryError(f"Events path is not a directory: {root}")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise DiscoveryError(f"Cannot read events directory {root}: {e}") from e


def find_image_directories(
    root: Path,
    extensions: Iterable[str] = IMAGE_EXTENSIONS,
) -> set[Path]:
    """Find every non-hidden directory under root holding an image.

    Args:
        root: Directory to walk.
        extensions: Lower-case file extensions counted as images.

    Returns:
        Set of directories, each listed once however many images it holds.
    """
    extensions = frozenset(extensions)
    found: set[Path] = set()

    def on_error(error: OSError) -> None:
        logger.warning(f"Skipping unreadable directory: {error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        # Prune in place so os.walk never enters hidden directories
        dirnames[:] = [d for d in dirnames if not _is_hidden(d)]
        if any(_is_image(name, extensions) for name in filenames):
            found.add(Path(dirpath))

    return found


def discover_events(
    root: Path,
    date_range: DateRange | None = None,
    extensions: Iterable[str] = IMAGE_EXTENSIONS,
) -> list[EventDirectory]:
    """Discover event directories under root.

    Args:
        root: Events root directory.
        date_range: Optional timestamp filter (None = everything).
        extensions: Lower-case file extensions counted as images.

    Returns:
        Event directories sorted by timestamp, then path.

    Raises:
        DiscoveryError: If root is missing or unreadable.
    """
    root = Path(root)
    _check_root(root)
    date_range = date_range or DateRange.unbounded()

    events: list[EventDirectory] = []
    for directory in find_image_directories(root, extensions):
        try:
            timestamp = decode_event_path(directory)
        except MalformedPathError as e:
            logger.info(f"Not an event directory, skipping: {e}")
            continue

        if not date_range.contains(timestamp):
            logger.debug(f"Outside {date_range}: {directory}")
            continue

        events.append(EventDirectory(path=directory, timestamp=timestamp))

    events.sort(key=lambda event: (event.timestamp, str(event.path)))
    logger.info(f"Discovered {len(events)} event directories under {root}")
    return events
