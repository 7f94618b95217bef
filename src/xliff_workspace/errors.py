"""Exceptions raised by workspace scanning and watching."""

from __future__ import annotations

from pathlib import Path


class WorkspaceError(OSError):
    """Base error for workspace operations on a filesystem path."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ScanError(WorkspaceError):
    """Scan root missing, unreadable, or traversal failed."""


class WatchError(WorkspaceError):
    """Initial directory registration failed when starting a watcher."""
