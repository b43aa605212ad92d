"""Tests for event directory discovery."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from zmsync.client.sync.discovery import discover_events, find_image_directories
from zmsync.client.sync.types import DiscoveryError
from zmsync.core.dates import DateRange


class TestFindImageDirectories:
    """Tests for find_image_directories."""

    def test_directory_listed_once(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """A directory with many images should appear once."""
        event = make_event("1/19/03/04/21/22", images=25)
        assert find_image_directories(events_root) == {event}

    def test_ignores_directories_without_images(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Directories holding only non-image files are not returned."""
        make_event("1/19/03/04/21/22", images=1, ext=".txt")
        assert find_image_directories(events_root) == set()

    def test_extension_case_insensitive(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Upper-case extensions should count as images."""
        event = make_event("1/19/03/04/21/22", images=1, ext=".JPG")
        assert find_image_directories(events_root) == {event}

    def test_hidden_images_ignored(self, events_root: Path) -> None:
        """Hidden image files do not make a directory qualify."""
        directory = events_root / "1/19/03/04/21/22"
        directory.mkdir(parents=True)
        (directory / ".thumb.jpg").write_bytes(b"x")
        assert find_image_directories(events_root) == set()


class TestDiscoverEvents:
    """Tests for discover_events."""

    def test_finds_event_directories(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Should return event directories with decoded timestamps."""
        event = make_event("1/19/03/04/21/22")

        events = discover_events(events_root)

        assert len(events) == 1
        assert events[0].path == event
        assert events[0].timestamp == datetime(2019, 3, 4, 21, 22)

    def test_deterministic_order(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Repeated discovery on the same tree gives the same sorted list."""
        make_event("2/19/05/01/08/00")
        make_event("1/19/03/04/21/22")
        make_event("1/19/03/04/21/23")
        make_event("2/19/03/04/21/22")

        first = discover_events(events_root)
        second = discover_events(events_root)

        assert first == second
        assert [e.timestamp for e in first] == sorted(e.timestamp for e in first)
        # Same timestamp ties are broken by path
        assert str(first[0].path) < str(first[1].path)

    def test_hidden_directory_excluded(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Images below a hidden directory are never discovered."""
        make_event(".hidden/19/03/04/21/22")
        make_event("1/.trash/19/03/04/21/22")
        visible = make_event("1/19/03/04/21/22")

        events = discover_events(events_root)

        assert [e.path for e in events] == [visible]

    def test_malformed_directory_skipped(
        self, events_root: Path, make_event, caplog: pytest.LogCaptureFixture  # type: ignore[no-untyped-def]
    ) -> None:
        """Directories that do not decode as dates are skipped, not fatal."""
        make_event("snapshots/latest")
        make_event("1/19/13/04/21/22")
        good = make_event("1/19/03/04/21/22")

        with caplog.at_level(logging.INFO, logger="zmsync"):
            events = discover_events(events_root)

        assert [e.path for e in events] == [good]
        assert "Not an event directory" in caplog.text

    def test_range_filter(self, events_root: Path, make_event) -> None:  # type: ignore[no-untyped-def]
        """Only events strictly inside the range are returned."""
        inside = make_event("1/19/03/04/21/22")
        make_event("1/18/12/31/23/59")
        make_event("1/19/06/01/00/00")

        events = discover_events(
            events_root,
            DateRange(start=datetime(2019, 1, 1), end=datetime(2019, 6, 1)),
        )

        assert [e.path for e in events] == [inside]

    def test_empty_root(self, events_root: Path) -> None:
        """An empty root yields no events."""
        assert discover_events(events_root) == []

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """A missing root is fatal."""
        with pytest.raises(DiscoveryError, match="not found"):
            discover_events(tmp_path / "nope")

    def test_file_root_raises(self, tmp_path: Path) -> None:
        """A root that is a file is fatal."""
        path = tmp_path / "file"
        path.write_text("x")
        with pytest.raises(DiscoveryError, match="not a directory"):
            discover_events(path)

    def test_unreadable_root_raises(self, events_root: Path) -> None:
        """A root that cannot be listed is fatal."""
        with patch("zmsync.client.sync.discovery.os.scandir", side_effect=PermissionError("denied")):
            with pytest.raises(DiscoveryError, match="Cannot read"):
                discover_events(events_root)
