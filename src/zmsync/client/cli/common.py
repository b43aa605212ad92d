"""Helpers shared by zmsync CLI commands.

This module provides:
- configure_logging: Route zmsync logs to stderr at the requested verbosity
- prompt_for_code: Interactive authorization code provider
- create_store: Build the Drive store for a command
- Reusable click options
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from zmsync.client.auth import CodeProvider, TokenCache, code_from_file
from zmsync.client.cli.config import config_path, default_token_dir, load_config
from zmsync.client.drive import DriveStore
from zmsync.core.config import TOKEN_FILE_NAME

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(verbose: int) -> None:
    """Install a stderr handler on the zmsync logger.

    Args:
        verbose: 0 = warnings only, 1 = info, 2+ = debug.
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    zmsync_logger = logging.getLogger("zmsync")
    for existing in zmsync_logger.handlers[:]:
        zmsync_logger.removeHandler(existing)
    zmsync_logger.addHandler(handler)
    zmsync_logger.setLevel(level)
    zmsync_logger.propagate = False


def prompt_for_code(url: str) -> str:
    """Ask the user to authorize the app in a browser and paste the code."""
    click.echo(f"Authorize this app by visiting this url: {url}")
    code: str = click.prompt("Enter the code from that page here")
    return code


def create_store(auth_code_file: Path | None) -> DriveStore:
    """Create the Drive store used by a command.

    Args:
        auth_code_file: Read the authorization code from this file instead
            of prompting on the terminal.
    """
    provider: CodeProvider = (
        code_from_file(auth_code_file) if auth_code_file else prompt_for_code
    )
    return DriveStore(code_provider=provider)


def resolve_secret(secret: Path | None) -> Path:
    """Secret path from the option or config.json.

    Raises:
        click.UsageError: If neither provides one.
    """
    secret = secret or config_path(load_config(), "secret")
    if secret is None:
        raise click.UsageError("Missing option '--secret' (or 'secret' in config.json).")
    return secret


def resolve_token_dir(token_dir: Path | None) -> Path:
    """Token directory from the option, config.json or the default."""
    return token_dir or config_path(load_config(), "token_dir") or default_token_dir()


def token_cache_for(token_dir: Path) -> TokenCache:
    """Token cache stored in token_dir."""
    return TokenCache(token_dir / TOKEN_FILE_NAME)


def auth_options(func: F) -> F:
    """Options common to every command talking to Drive."""
    func = click.option(
        "--secret",
        type=click.Path(dir_okay=False, path_type=Path),
        help="OAuth client secret JSON file.",
    )(func)
    func = click.option(
        "--token-dir",
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory of the cached credentials.json (default: ~/.zmsync).",
    )(func)
    func = click.option(
        "--auth-code-file",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Read the authorization code from this file instead of prompting.",
    )(func)
    func = click.option(
        "--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv)."
    )(func)
    return func
