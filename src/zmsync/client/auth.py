"""OAuth authorization for Google Drive.

This module provides:
- ClientSecret: Installed-application OAuth client credentials
- Credential: google.oauth2 user credentials passed to every Drive call
- TokenCache: Persistence of the credential between runs
- authorize: Obtain a usable credential, prompting only when needed

The cached token uses the same JSON layout as the Node googleapis client
(expiry_date in epoch milliseconds), so existing credentials.json files
keep working.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

# Drive calls take google.oauth2 credentials; they refresh themselves when
# used through an authorized transport.
Credential = Credentials

# Receives the consent URL, returns the authorization code
CodeProvider = Callable[[str], str]


class AuthError(Exception):
    """Failed to obtain a Drive credential."""


@dataclass(frozen=True)
class ClientSecret:
    """OAuth client of an installed application."""

    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientSecret:
        """Create from a client secret JSON document.

        Raises:
            AuthError: If required fields are missing.
        """
        section = data.get("installed") or data.get("web")
        if not isinstance(section, dict):
            raise AuthError("Client secret has no 'installed' section")
        try:
            return cls(
                client_id=section["client_id"],
                client_secret=section["client_secret"],
                redirect_uri=section["redirect_uris"][0],
                auth_uri=section.get("auth_uri", DEFAULT_AUTH_URI),
                token_uri=section.get("token_uri", DEFAULT_TOKEN_URI),
            )
        except (KeyError, IndexError, TypeError) as e:
            raise AuthError(f"Client secret is missing a field: {e}") from e

    @classmethod
    def load(cls, path: Path) -> ClientSecret:
        """Load the client secret file.

        Raises:
            AuthError: If the file cannot be read or parsed.
        """
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, ValueError) as e:
            raise AuthError(f"Cannot read client secret {path}: {e}") from e
        return cls.from_dict(data)

    def to_client_config(self) -> dict[str, Any]:
        """Client configuration in the layout InstalledAppFlow expects."""
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.redirect_uri],
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }


def credential_from_token(data: dict[str, Any], secret: ClientSecret) -> Credential:
    """Build a credential from a cached token and the client secret.

    google-auth works with naive UTC expiry datetimes.
    """
    expiry_ms = data.get("expiry_date")
    scope = data.get("scope")
    return Credentials(
        token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        token_uri=secret.token_uri,
        client_id=secret.client_id,
        client_secret=secret.client_secret,
        scopes=scope.split() if scope else [DRIVE_SCOPE],
        expiry=(
            datetime.fromtimestamp(expiry_ms / 1000, tz=UTC).replace(tzinfo=None)
            if expiry_ms is not None
            else None
        ),
    )


def token_from_credential(credential: Credential) -> dict[str, Any]:
    """Serialize a credential for the token cache."""
    data: dict[str, Any] = {"access_token": credential.token, "token_type": "Bearer"}
    if credential.refresh_token:
        data["refresh_token"] = credential.refresh_token
    if credential.scopes:
        data["scope"] = " ".join(credential.scopes)
    if credential.expiry:
        data["expiry_date"] = int(credential.expiry.replace(tzinfo=UTC).timestamp() * 1000)
    return data


class TokenCache:
    """Stores the credential as JSON on disk."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Location of the token file."""
        return self._path

    def load(self, secret: ClientSecret) -> Credential | None:
        """Load the cached credential.

        Args:
            secret: Client the token was issued to (needed for refresh).

        Returns:
            The credential, or None if absent or unreadable.
        """
        if not self._path.exists():
            return None
        try:
            return credential_from_token(json.loads(self._path.read_text()), secret)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable token cache {self._path}: {e}")
            return None

    def save(self, credential: Credential) -> None:
        """Persist the credential, creating the token directory if needed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(token_from_credential(credential)))
        logger.info(f"Token stored to {self._path}")


def code_from_file(path: Path) -> CodeProvider:
    """Code provider reading the authorization code from a file.

    Used on hosts without a terminal: the consent URL is logged, and the
    operator writes the code to the file before the next run.
    """

    def provide(url: str) -> str:
        logger.warning(f"Authorize this app by visiting this url: {url}")
        try:
            code = Path(path).read_text().strip()
        except OSError as e:
            raise AuthError(f"Cannot read authorization code from {path}: {e}") from e
        if not code:
            raise AuthError(f"Authorization code file {path} is empty")
        return code

    return provide


def _request_new_token(secret: ClientSecret, code_provider: CodeProvider) -> Credential:
    """Run the consent flow, asking code_provider for the code."""
    flow = InstalledAppFlow.from_client_config(
        secret.to_client_config(),
        scopes=[DRIVE_SCOPE],
        redirect_uri=secret.redirect_uri,
    )
    url, _ = flow.authorization_url(access_type="offline", prompt="consent")
    code = code_provider(url)
    try:
        flow.fetch_token(code=code.strip())
    except (OAuth2Error, OSError) as e:
        raise AuthError(f"Authorization code exchange failed: {e}") from e
    credential: Credential = flow.credentials
    return credential


def authorize(
    secret_path: Path,
    token_cache: TokenCache,
    code_provider: CodeProvider | None,
    request: Request | None = None,
) -> Credential:
    """Obtain a valid Drive credential.

    Uses the cached token when possible, refreshing it if expired.
    Otherwise asks code_provider for a new authorization code.

    Args:
        secret_path: OAuth client secret JSON file.
        token_cache: Where the credential is read from and saved to.
        code_provider: Interactive or file-based code source (None = fail
            instead of prompting).
        request: google-auth transport for token refresh.

    Returns:
        A credential with a non-expired access token.

    Raises:
        AuthError: If no credential can be obtained.
    """
    secret = ClientSecret.load(secret_path)

    credential = token_cache.load(secret)
    if credential is not None:
        if credential.valid:
            return credential
        try:
            if not credential.refresh_token:
                raise AuthError("Token expired and no refresh token is available")
            credential.refresh(request or google_auth_httplib2.Request(httplib2.Http()))
        except (AuthError, GoogleAuthError) as e:
            if code_provider is None:
                raise AuthError(f"Token refresh failed: {e}") from e
            logger.warning(f"Token refresh failed, re-authorizing: {e}")
        else:
            token_cache.save(credential)
            return credential

    if code_provider is None:
        raise AuthError(
            f"No cached token at {token_cache.path} and interactive authorization is disabled"
        )

    credential = _request_new_token(secret, code_provider)
    token_cache.save(credential)
    return credential
