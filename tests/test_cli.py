"""Tests for CLI commands - sync, auth, ls."""

import json
import tempfile
from contextlib import nullcontext
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from zmsync.client.auth import AuthError
from zmsync.client.cli import cli
from zmsync.client.drive import RemoteFile, RemoteFolder
from zmsync.client.sync.archive import archive_name_for


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path):  # type: ignore[no-untyped-def]
    """Point the per-user config directory at a temporary one."""
    config = tmp_path / ".zmsync"
    config.mkdir()
    with patch("zmsync.client.cli.config.get_config_dir", return_value=config):
        yield config


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Directory receiving scratch directories."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def store_patch(module: str, store):  # type: ignore[no-untyped-def]
    """Patch a command's create_store to hand out the fake store."""
    return patch(f"zmsync.client.cli.{module}.create_store", return_value=nullcontext(store))


class TestSyncCommand:
    """Tests for 'zmsync sync' command."""

    def test_nothing_to_upload(self, runner, config_dir, events_root, secret_file, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """An empty events root ends successfully."""
        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync", str(events_root), "--secret", str(secret_file)])

        assert result.exit_code == 0
        assert "No directories to upload." in result.output
        assert "Done!" in result.output

    def test_uploads_events(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """New events are uploaded and reported."""
        make_event("1/19/03/04/21/22")
        make_event("1/19/03/04/21/23")

        with store_patch("sync", fake_store):
            result = runner.invoke(
                cli, ["sync", str(events_root), "--secret", str(secret_file), "--workers", "2"]
            )

        assert result.exit_code == 0, result.output
        assert "Found 2 event directories." in result.output
        assert "Uploading 2 files, skipping 0." in result.output
        assert "Done!" in result.output
        assert len(fake_store.uploaded_names()) == 2
        assert list(scratch_root.iterdir()) == []

    def test_second_run_skips(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """Running twice uploads nothing the second time."""
        make_event("1/19/03/04/21/22")
        args = ["sync", str(events_root), "--secret", str(secret_file)]

        with store_patch("sync", fake_store):
            runner.invoke(cli, args)
            result = runner.invoke(cli, args)

        assert result.exit_code == 0
        assert "Uploading 0 files, skipping 1." in result.output
        assert len(fake_store.upload_calls) == 1

    def test_custom_folder(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """--folder selects the remote folder."""
        make_event("1/19/03/04/21/22")

        with store_patch("sync", fake_store):
            result = runner.invoke(
                cli,
                ["sync", str(events_root), "--secret", str(secret_file), "--folder", "garage"],
            )

        assert result.exit_code == 0
        assert len(fake_store.uploaded_names("garage")) == 1

    def test_date_range(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """--from and --to restrict the synced events."""
        make_event("19/03/04/21/22")
        inside = make_event("19/03/05/12/00")

        with store_patch("sync", fake_store):
            result = runner.invoke(
                cli,
                [
                    "sync", str(events_root), "--secret", str(secret_file),
                    "--from", "2019-03-05", "--to", "2019-03-06",
                ],
            )

        assert result.exit_code == 0
        assert fake_store.uploaded_names() == [archive_name_for(inside.resolve())]

    def test_invalid_date_range(self, runner, config_dir, events_root, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """An empty date range is rejected."""
        with store_patch("sync", fake_store):
            result = runner.invoke(
                cli,
                [
                    "sync", str(events_root), "--secret", str(secret_file),
                    "--from", "2019-03-06", "--to", "2019-03-05",
                ],
            )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_auth_failure_exits_1(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """Fatal errors print the error and exit with 1."""
        make_event("1/19/03/04/21/22")
        fake_store.auth_error = AuthError("access denied")

        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync", str(events_root), "--secret", str(secret_file)])

        assert result.exit_code == 1
        assert "Error: access denied" in result.output
        assert "Done!" not in result.output
        assert list(scratch_root.iterdir()) == []

    def test_missing_root_exits_1(self, runner, config_dir, tmp_path, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """A missing events root is fatal."""
        with store_patch("sync", fake_store):
            result = runner.invoke(
                cli, ["sync", str(tmp_path / "nope"), "--secret", str(secret_file)]
            )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_partial_failure_exits_3(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """A failed upload completes the run with exit code 3."""
        bad = make_event("1/19/03/04/21/22")
        make_event("1/19/03/04/21/23")
        fake_store.fail_uploads = {archive_name_for(bad.resolve())}

        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync", str(events_root), "--secret", str(secret_file)])

        assert result.exit_code == 3
        assert "Not uploaded:" in result.output
        assert archive_name_for(bad.resolve()) in result.output
        assert "Done!" in result.output
        assert len(fake_store.uploaded_names()) == 1

    def test_missing_secret_is_usage_error(self, runner, config_dir, events_root, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Without --secret or config, the command refuses to run."""
        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync", str(events_root)])

        assert result.exit_code == 2
        assert "--secret" in result.output

    def test_missing_events_dir_is_usage_error(self, runner, config_dir, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """EVENTS_DIR is required when config.json does not set it."""
        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync", "--secret", str(secret_file)])

        assert result.exit_code == 2
        assert "EVENTS_DIR" in result.output

    def test_defaults_from_config_file(self, runner, config_dir, events_root, secret_file, make_event, fake_store, scratch_root) -> None:  # type: ignore[no-untyped-def]
        """config.json provides the events dir, secret and folder."""
        make_event("1/19/03/04/21/22")
        (config_dir / "config.json").write_text(json.dumps({
            "events_dir": str(events_root),
            "secret": str(secret_file),
            "folder": "from-config",
        }))

        with store_patch("sync", fake_store):
            result = runner.invoke(cli, ["sync"])

        assert result.exit_code == 0, result.output
        assert len(fake_store.uploaded_names("from-config")) == 1

    def test_invalid_archiver(self, runner, config_dir, events_root, secret_file) -> None:  # type: ignore[no-untyped-def]
        """Unknown archive backends are rejected by click."""
        result = runner.invoke(
            cli,
            ["sync", str(events_root), "--secret", str(secret_file), "--archiver", "rar"],
        )

        assert result.exit_code == 2


class TestAuthCommand:
    """Tests for 'zmsync auth' command."""

    def test_auth_caches_token(self, runner, config_dir, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Successful authorization reports the token location."""
        with store_patch("auth", fake_store):
            result = runner.invoke(cli, ["auth", "--secret", str(secret_file)])

        assert result.exit_code == 0
        assert f"Token cached at {config_dir / 'credentials.json'}" in result.output
        assert len(fake_store.credentials) == 1

    def test_auth_custom_token_dir(self, runner, config_dir, tmp_path, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """--token-dir changes where the token is cached."""
        token_dir = tmp_path / "tokens"

        with store_patch("auth", fake_store):
            result = runner.invoke(
                cli, ["auth", "--secret", str(secret_file), "--token-dir", str(token_dir)]
            )

        assert result.exit_code == 0
        assert str(token_dir / "credentials.json") in result.output

    def test_auth_failure(self, runner, config_dir, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Authorization errors exit with 1."""
        fake_store.auth_error = AuthError("invalid_grant")

        with store_patch("auth", fake_store):
            result = runner.invoke(cli, ["auth", "--secret", str(secret_file)])

        assert result.exit_code == 1
        assert "Error: invalid_grant" in result.output


class TestListCommand:
    """Tests for 'zmsync ls' command."""

    def test_lists_archives(self, runner, config_dir, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Archives are listed by name with their checksums."""
        fake_store.folders["zm-events"] = RemoteFolder(id="f", name="zm-events")
        fake_store.files["f"] = [
            RemoteFile(id="2", name="b.zip", checksum="b" * 32),
            RemoteFile(id="1", name="a.zip", checksum="a" * 32),
        ]

        with store_patch("remote", fake_store):
            result = runner.invoke(cli, ["ls", "--secret", str(secret_file)])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == f"{'a' * 32}  a.zip"
        assert lines[1] == f"{'b' * 32}  b.zip"
        assert lines[2] == "2 archives in zm-events."

    def test_missing_folder(self, runner, config_dir, secret_file, fake_store) -> None:  # type: ignore[no-untyped-def]
        """A missing remote folder is reported, not created."""
        with store_patch("remote", fake_store):
            result = runner.invoke(cli, ["ls", "--secret", str(secret_file)])

        assert result.exit_code == 0
        assert "Remote folder zm-events does not exist." in result.output
        assert fake_store.folders == {}
