"""Command-line interface for zmsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Archive event directories and upload the new ones to Drive
- auth: Authorize once and cache the Drive token
- ls: List archives already in the remote folder
"""

from __future__ import annotations

import click

from zmsync.client.cli.auth import auth
from zmsync.client.cli.config import get_config_dir, get_config_file, load_config
from zmsync.client.cli.remote import list_remote
from zmsync.client.cli.sync import sync


@click.group()
@click.version_option(package_name="zmsync")
def cli() -> None:
    """zmsync - Incremental upload of motion-detection events to Google Drive."""


cli.add_command(sync)
cli.add_command(auth)
cli.add_command(list_remote)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
]
