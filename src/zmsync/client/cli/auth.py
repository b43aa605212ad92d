"""Authorization command for zmsync CLI.

Commands:
- auth: Authorize zmsync once and cache the Drive token
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from zmsync.client.auth import AuthError
from zmsync.client.cli.common import (
    auth_options,
    configure_logging,
    create_store,
    resolve_secret,
    resolve_token_dir,
    token_cache_for,
)


@click.command()
@auth_options
def auth(
    secret: Path | None,
    token_dir: Path | None,
    auth_code_file: Path | None,
    verbose: int,
) -> None:
    """Authorize access to Google Drive and cache the token.

    Run this once interactively so that scheduled syncs never need to prompt.
    """
    configure_logging(verbose)
    token_cache = token_cache_for(resolve_token_dir(token_dir))

    with create_store(auth_code_file) as store:
        try:
            store.authenticate(resolve_secret(secret), token_cache)
        except AuthError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    click.echo(f"Authorized. Token cached at {token_cache.path}")
