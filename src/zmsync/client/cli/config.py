"""Configuration utilities for zmsync CLI.

This module provides shared configuration functions used across CLI commands.
Values in config.json act as defaults for command-line options:

    {"events_dir": "/var/cache/zoneminder/events",
     "secret": "~/.zmsync/client_secret.json",
     "token_dir": "~/.zmsync",
     "folder": "zm-events"}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the configuration directory for zmsync.

    Returns:
        Path to ~/.zmsync or equivalent.
    """
    return Path.home() / ".zmsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if not config_file.exists():
        return {}
    try:
        return dict(json.loads(config_file.read_text()))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable config file {config_file}: {e}")
        return {}


def default_token_dir() -> Path:
    """Directory holding credentials.json when --token-dir is not given."""
    return get_config_dir()


def config_path(config: dict[str, Any], key: str) -> Path | None:
    """Read a path-valued config entry.

    Returns:
        Expanded path, or None if the key is unset.
    """
    value = config.get(key)
    return Path(value).expanduser() if value else None
