"""Translate raw watchdog notifications into workspace file events."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from .naming import is_hidden, is_localization_file

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent


class EventType(str, enum.Enum):
    """Domain vocabulary of file changes."""

    CREATED = "create"
    MODIFIED = "modify"
    DELETED = "delete"
    RENAMED = "rename"


@dataclass(frozen=True)
class FileWatchEvent:
    """A change to a localization file inside a watched workspace.

    Directory events (``is_directory``) stand for every file below the
    directory: a deleted or moved-away directory takes its files with it.
    """

    type: EventType
    path: Path
    old_path: Path | None = None
    is_directory: bool = False

    def __str__(self) -> str:
        if self.type is EventType.RENAMED and self.old_path != self.path:
            return f"{self.type.value}: {self.old_path} -> {self.path}"
        return f"{self.type.value}: {self.path}"


def _as_path(raw_path: bytes | str) -> Path:
    """Convert a watchdog path, which may be bytes, to a Path."""
    return Path(os.fsdecode(raw_path))


def translate_event(event: FileSystemEvent) -> FileWatchEvent | None:
    """Map a watchdog event onto a FileWatchEvent.

    Args:
        event: Raw watchdog event.

    Returns:
        The domain event, or None for non-localization files and event
        kinds with no domain meaning (opened, closed, directory created or
        modified). Deleted and moved directories are reported with
        ``is_directory`` set.

    """
    src_path = _as_path(event.src_path)

    if event.is_directory:
        if isinstance(event, DirDeletedEvent):
            return FileWatchEvent(EventType.DELETED, src_path, is_directory=True)
        if isinstance(event, DirMovedEvent):
            dest_path = _as_path(event.dest_path) if event.dest_path else src_path
            return FileWatchEvent(EventType.RENAMED, dest_path, old_path=src_path, is_directory=True)
        return None

    if isinstance(event, FileMovedEvent):
        dest_path = _as_path(event.dest_path) if event.dest_path else src_path
        if not (is_localization_file(src_path) or is_localization_file(dest_path)):
            return None
        return FileWatchEvent(EventType.RENAMED, dest_path, old_path=src_path)

    if not is_localization_file(src_path):
        return None

    if isinstance(event, FileCreatedEvent):
        return FileWatchEvent(EventType.CREATED, src_path)
    if isinstance(event, FileModifiedEvent):
        return FileWatchEvent(EventType.MODIFIED, src_path)
    if isinstance(event, FileDeletedEvent):
        return FileWatchEvent(EventType.DELETED, src_path)

    return None


def directory_to_register(event: FileSystemEvent) -> Path | None:
    """Return a newly appeared directory that must be added to the watch set.

    A directory created or moved into the workspace is recorded, and the
    files it already holds are reported, since they may predate its watch.
    Hidden directories are never registered.

    """
    if isinstance(event, DirMovedEvent):
        path = _as_path(event.dest_path) if event.dest_path else None
    elif isinstance(event, (DirCreatedEvent, FileCreatedEvent)):
        path = _as_path(event.src_path)
    else:
        return None

    if path is None or is_hidden(path.name):
        return None
    # Some backends report directory creation without the directory flag
    if not (event.is_directory or path.is_dir()):
        return None
    return path


def directory_to_release(event: FileSystemEvent) -> Path | None:
    """Return a directory that left the workspace and must be unwatched."""
    if isinstance(event, (DirDeletedEvent, DirMovedEvent)):
        return _as_path(event.src_path)
    return None
