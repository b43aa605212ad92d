"""Shared types for zmsync.

This module defines enums used by the sync orchestrator and the CLI.
"""

from __future__ import annotations

from enum import Enum


class SyncPhase(str, Enum):
    """Phase of a sync run.

    A run walks the phases in declaration order and ends in DONE,
    or in FAILED when a fatal error interrupts it.
    """

    IDLE = "idle"
    DISCOVERING = "discovering"
    ARCHIVING = "archiving"
    AUTHENTICATING = "authenticating"
    PLANNING = "planning"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"
