"""Google Drive client used as the remote store.

This module provides:
- RemoteStore: Protocol consumed by the sync orchestrator
- DriveStore: Drive v3 implementation over google-api-python-client
- RemoteFolder, RemoteFile: Metadata returned by the store

Every call takes an explicit Credential. Requests go through an
AuthorizedHttp, which refreshes an expired access token before sending
and retries once after a 401.
"""

from __future__ import annotations

import logging
import mimetypes
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest, MediaFileUpload

from zmsync.client.auth import AuthError, CodeProvider, Credential, TokenCache, authorize

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
ZIP_MIME_TYPE = "application/zip"
PAGE_SIZE = 1000

# Uploads are streamed from disk in chunks of this size
UPLOAD_CHUNK_SIZE = 8 * 1024 * 1024

HttpFactory = Callable[[], httplib2.Http]


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


@dataclass(frozen=True)
class RemoteFolder:
    """Folder on the remote store."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFolder:
        """Create from API response dictionary."""
        return cls(id=data["id"], name=data.get("name", ""))


@dataclass(frozen=True)
class RemoteFile:
    """File on the remote store (one manifest entry)."""

    id: str
    name: str
    checksum: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFile:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            checksum=data.get("md5Checksum"),
        )


class RemoteStore(Protocol):
    """Operations the sync orchestrator needs from a remote store."""

    def authenticate(self, secret_path: Path, token_cache: TokenCache) -> Credential:
        """Obtain or refresh a credential."""
        ...

    def ensure_directory(self, name: str, credential: Credential) -> RemoteFolder:
        """Return the named root folder, creating it if absent."""
        ...

    def list_files(
        self, mime_type: str, folder: RemoteFolder, credential: Credential
    ) -> Sequence[RemoteFile]:
        """List non-trashed files of mime_type in folder."""
        ...

    def upload(
        self, local_path: Path, folder: RemoteFolder, credential: Credential
    ) -> RemoteFile:
        """Upload a local file into folder."""
        ...


def _quote(value: str) -> str:
    """Escape a string literal for a Drive search query."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _api_error(error: HttpError) -> APIError:
    """Map a googleapiclient error to the store's exceptions."""
    status = int(error.resp.status)
    detail = error.reason or str(error)
    if status == 401:
        return AuthenticationError(f"Invalid or expired token: {detail}", 401)
    if status == 404:
        return NotFoundError(detail, 404)
    return APIError(detail, status)


class DriveStore:
    """Google Drive v3 implementation of RemoteStore.

    httplib2 connections are not thread-safe, so each worker thread gets
    its own Drive service.
    """

    def __init__(
        self,
        code_provider: CodeProvider | None = None,
        http_factory: HttpFactory | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the store.

        Args:
            code_provider: Source of authorization codes when no cached
                token exists (None = fail instead of prompting).
            http_factory: Creates the underlying httplib2 transport.
            timeout: Socket timeout in seconds for the default transport.
        """
        self._code_provider = code_provider
        self._http_factory = http_factory or (lambda: httplib2.Http(timeout=timeout))
        self._local = threading.local()
        self._lock = threading.Lock()
        self._services: list[Resource] = []

    def close(self) -> None:
        """Close every Drive service created by this store."""
        with self._lock:
            services, self._services = self._services, []
        for service in services:
            service.close()

    def __enter__(self) -> DriveStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _service(self, credential: Credential) -> Resource:
        """Drive service of the calling thread for credential."""
        cached = getattr(self._local, "service", None)
        if cached is not None and cached[0] is credential:
            return cached[1]

        authorized = google_auth_httplib2.AuthorizedHttp(credential, http=self._http_factory())
        service = build("drive", "v3", http=authorized, cache_discovery=False)
        self._local.service = (credential, service)
        with self._lock:
            self._services.append(service)
        return service

    def _execute(self, request: HttpRequest) -> dict[str, Any]:
        """Execute a request, mapping API and token errors."""
        try:
            response: dict[str, Any] = request.execute(num_retries=0)
        except HttpError as e:
            raise _api_error(e) from e
        except GoogleAuthError as e:
            raise AuthError(f"Token refresh failed: {e}") from e
        return response

    def _search(
        self, query: str, fields: str, credential: Credential
    ) -> list[dict[str, Any]]:
        """Run a files.list query, following every result page."""
        files_api = self._service(credential).files()
        files: list[dict[str, Any]] = []
        request = files_api.list(
            q=query,
            fields=f"nextPageToken, files({fields})",
            pageSize=PAGE_SIZE,
            spaces="drive",
        )
        while request is not None:
            response = self._execute(request)
            files.extend(response.get("files", []))
            request = files_api.list_next(request, response)
        return files

    # === Authentication ===

    def authenticate(self, secret_path: Path, token_cache: TokenCache) -> Credential:
        """Obtain or refresh a credential.

        Raises:
            AuthError: If no credential can be obtained.
        """
        request = google_auth_httplib2.Request(self._http_factory())
        return authorize(secret_path, token_cache, self._code_provider, request)

    # === Folder operations ===

    def find_directory(self, name: str, credential: Credential) -> RemoteFolder | None:
        """Find a non-trashed folder by exact name at the Drive root.

        Returns:
            The folder, or None if absent.
        """
        query = (
            f"name = {_quote(name)} and mimeType = '{FOLDER_MIME_TYPE}' "
            "and trashed = false and 'root' in parents"
        )
        for data in self._search(query, "id, name", credential):
            if data.get("name") == name:
                return RemoteFolder.from_dict(data)
        return None

    def create_directory(self, name: str, credential: Credential) -> RemoteFolder:
        """Create a folder at the Drive root."""
        request = self._service(credential).files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": ["root"]},
            fields="id, name",
        )
        folder = RemoteFolder.from_dict(self._execute(request))
        logger.info(f"Created remote folder {name} ({folder.id})")
        return folder

    def ensure_directory(self, name: str, credential: Credential) -> RemoteFolder:
        """Return the named root folder, creating it if absent."""
        existing = self.find_directory(name, credential)
        if existing is not None:
            logger.debug(f"Using remote folder {name} ({existing.id})")
            return existing
        return self.create_directory(name, credential)

    # === File operations ===

    def list_files(
        self, mime_type: str, folder: RemoteFolder, credential: Credential
    ) -> list[RemoteFile]:
        """List non-trashed files of mime_type in folder.

        Args:
            mime_type: Only files of this type are listed.
            folder: Folder to list.
            credential: Drive credential.

        Returns:
            Files with their MD5 checksums.
        """
        query = (
            f"mimeType = {_quote(mime_type)} and trashed = false "
            f"and {_quote(folder.id)} in parents"
        )
        files = [
            RemoteFile.from_dict(f)
            for f in self._search(query, "id, name, md5Checksum", credential)
        ]
        logger.debug(f"Listed {len(files)} {mime_type} files in {folder.name}")
        return files

    def upload(
        self, local_path: Path, folder: RemoteFolder, credential: Credential
    ) -> RemoteFile:
        """Upload a local file into folder.

        The file is streamed in UPLOAD_CHUNK_SIZE chunks through a
        resumable upload session. The content type is guessed from the
        extension.

        Args:
            local_path: File to upload.
            folder: Destination folder.
            credential: Drive credential.

        Returns:
            The created file.
        """
        local_path = Path(local_path)
        mime_type = mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"
        media = MediaFileUpload(
            str(local_path), mimetype=mime_type, chunksize=UPLOAD_CHUNK_SIZE, resumable=True
        )
        request = self._service(credential).files().create(
            body={"name": local_path.name, "parents": [folder.id]},
            media_body=media,
            fields="id, name, md5Checksum",
        )
        try:
            remote = RemoteFile.from_dict(self._execute(request))
        finally:
            media.stream().close()
        logger.info(f"Uploaded {local_path.name} ({remote.id})")
        return remote
