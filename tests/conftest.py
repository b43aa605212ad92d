"""Shared fixtures for zmsync tests."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from googleapiclient.http import HttpMockSequence

from zmsync.client.auth import Credential, TokenCache
from zmsync.client.drive import RemoteFile, RemoteFolder

EventFactory = Callable[..., Path]


@pytest.fixture
def events_root(tmp_path: Path) -> Path:
    """Empty events root directory."""
    root = tmp_path / "events"
    root.mkdir()
    return root


@pytest.fixture
def make_event(events_root: Path) -> EventFactory:
    """Create an event directory holding a few images.

    Usage:
        path = make_event("1/19/03/04/21/22", images=3)
    """

    def _make(relative: str, images: int = 2, ext: str = ".jpg") -> Path:
        directory = events_root / relative
        directory.mkdir(parents=True, exist_ok=True)
        for i in range(images):
            (directory / f"{i:05d}-capture{ext}").write_bytes(
                f"{relative}:{i}".encode() * 50
            )
        return directory

    return _make


@pytest.fixture
def secret_file(tmp_path: Path) -> Path:
    """OAuth client secret file for an installed application."""
    path = tmp_path / "client_secret.json"
    path.write_text(json.dumps({
        "installed": {
            "client_id": "client-123.apps.googleusercontent.com",
            "client_secret": "s3cret",
            "redirect_uris": ["urn:ietf:wg:oauth:2.0:oob", "http://localhost"],
        }
    }))
    return path


@dataclass
class FakeRemoteStore:
    """In-memory remote store recording uploads by MD5."""

    folders: dict[str, RemoteFolder] = field(default_factory=dict)
    files: dict[str, list[RemoteFile]] = field(default_factory=dict)
    fail_uploads: set[str] = field(default_factory=set)
    auth_error: Exception | None = None
    list_error: Exception | None = None
    upload_calls: list[str] = field(default_factory=list)
    credentials: list[Credential] = field(default_factory=list)

    def authenticate(self, secret_path: Path, token_cache: TokenCache) -> Credential:
        if self.auth_error:
            raise self.auth_error
        credential = Credential(token="fake-token")
        self.credentials.append(credential)
        return credential

    def find_directory(self, name: str, credential: Credential) -> RemoteFolder | None:
        return self.folders.get(name)

    def ensure_directory(self, name: str, credential: Credential) -> RemoteFolder:
        if name not in self.folders:
            self.folders[name] = RemoteFolder(id=f"folder-{len(self.folders)}", name=name)
            self.files[self.folders[name].id] = []
        return self.folders[name]

    def list_files(
        self, mime_type: str, folder: RemoteFolder, credential: Credential
    ) -> list[RemoteFile]:
        if self.list_error:
            raise self.list_error
        return list(self.files.get(folder.id, []))

    def upload(
        self, local_path: Path, folder: RemoteFolder, credential: Credential
    ) -> RemoteFile:
        self.upload_calls.append(local_path.name)
        if local_path.name in self.fail_uploads:
            raise OSError(f"connection reset while uploading {local_path.name}")
        remote = RemoteFile(
            id=f"file-{len(self.upload_calls)}",
            name=local_path.name,
            checksum=hashlib.md5(local_path.read_bytes()).hexdigest(),
        )
        self.files.setdefault(folder.id, []).append(remote)
        return remote

    def uploaded_names(self, folder_name: str = "zm-events") -> list[str]:
        folder = self.folders.get(folder_name)
        return sorted(f.name for f in self.files.get(folder.id, [])) if folder else []


@pytest.fixture
def fake_store() -> FakeRemoteStore:
    """In-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture(autouse=True)
def reset_zmsync_logger():  # type: ignore[no-untyped-def]
    """Undo CLI logging setup so caplog sees zmsync records."""
    yield
    zmsync_logger = logging.getLogger("zmsync")
    for handler in zmsync_logger.handlers[:]:
        zmsync_logger.removeHandler(handler)
    zmsync_logger.setLevel(logging.NOTSET)
    zmsync_logger.propagate = True


def json_response(payload: Any, status: int = 200, **headers: str) -> tuple[dict[str, str], bytes]:
    """One canned response for RecordingHttp."""
    return {"status": str(status), **headers}, json.dumps(payload).encode()


class RecordingHttp(HttpMockSequence):
    """HttpMockSequence that also records each request."""

    def __init__(self, responses: list[tuple[dict[str, str], bytes]]) -> None:
        super().__init__(responses)
        self.requests: list[tuple[str, str, Any, dict[str, str]]] = []

    def request(  # type: ignore[override]
        self,
        uri: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        redirections: int = 1,
        connection_type: Any = None,
    ) -> Any:
        # Resumable uploads send stream slices; the file is closed afterwards
        if hasattr(body, "read"):
            body = body.read()
        self.requests.append((uri, method, body, dict(headers or {})))
        return super().request(uri, method, body, headers, redirections, connection_type)

    def close(self) -> None:
        pass

    @property
    def remaining(self) -> int:
        return len(self._iterable)
