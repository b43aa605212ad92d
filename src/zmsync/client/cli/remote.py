"""Remote listing command for zmsync CLI.

Commands:
- ls: List archives already uploaded to the remote folder
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import httplib2

from zmsync.client.auth import AuthError
from zmsync.client.cli.common import (
    auth_options,
    configure_logging,
    create_store,
    resolve_secret,
    resolve_token_dir,
    token_cache_for,
)
from zmsync.client.cli.config import load_config
from zmsync.client.drive import ZIP_MIME_TYPE, APIError
from zmsync.core.config import DEFAULT_FOLDER_NAME


@click.command(name="ls")
@auth_options
@click.option("--folder", help=f"Remote folder name (default: {DEFAULT_FOLDER_NAME}).")
def list_remote(
    secret: Path | None,
    token_dir: Path | None,
    auth_code_file: Path | None,
    verbose: int,
    folder: str | None,
) -> None:
    """List archives in the remote folder with their checksums."""
    configure_logging(verbose)
    folder_name = folder or load_config().get("folder") or DEFAULT_FOLDER_NAME
    token_cache = token_cache_for(resolve_token_dir(token_dir))

    with create_store(auth_code_file) as store:
        try:
            credential = store.authenticate(resolve_secret(secret), token_cache)
            remote_folder = store.find_directory(folder_name, credential)
            if remote_folder is None:
                click.echo(f"Remote folder {folder_name} does not exist.")
                return
            files = store.list_files(ZIP_MIME_TYPE, remote_folder, credential)
        except (AuthError, APIError, httplib2.HttpLib2Error, OSError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    for remote_file in sorted(files, key=lambda f: f.name):
        click.echo(f"{remote_file.checksum or '-':32}  {remote_file.name}")
    click.echo(f"{len(files)} archives in {folder_name}.")
