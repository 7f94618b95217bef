"""Updatable index of translation groups, kept current from watch events."""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from operator import attrgetter
from pathlib import Path
from typing import TYPE_CHECKING

from .events import EventType, FileWatchEvent
from .naming import FileIdentity, GroupKey, is_hidden, is_localization_file
from .scanner import TranslationGroup, WorkspaceScan, iter_workspace_directories, sort_groups

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class WorkspaceIndex:
    """Translation groups of one workspace, updated one file at a time.

    Seeded from a full scan, then kept current by applying the events a
    watcher reports. Safe to share between the watcher thread and readers.
    """

    def __init__(self, root_path: str | os.PathLike[str], paths: Iterable[Path] = ()) -> None:
        self.root_path = Path(os.path.abspath(root_path))
        self._groups: dict[GroupKey, TranslationGroup] = {}
        # Every known file, including ones shadowed by a same-language sibling
        self._files: dict[Path, FileIdentity] = {}
        self._lock = threading.RLock()
        for path in paths:
            self.add_path(path)

    @classmethod
    def from_scan(cls, scan: WorkspaceScan) -> WorkspaceIndex:
        """Build an index holding the files of a scan, shadowed ones included."""
        index = cls(scan.root_path)
        with index._lock:
            index._files.update((f.path, f) for f in scan.files)
            for group in scan.groups:
                index._groups[group.key] = dataclasses.replace(group, files=dict(group.files))
                index._files.update((f.path, f) for f in group.files.values())
        return index

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    @property
    def total_files(self) -> int:
        """Number of localization files known to the index."""
        with self._lock:
            return len(self._files)

    def groups(self) -> tuple[TranslationGroup, ...]:
        """Groups ordered the same way as a scan orders them."""
        with self._lock:
            return sort_groups(list(self._groups.values()))

    def group_for_path(self, path: str | os.PathLike[str]) -> TranslationGroup | None:
        """Find the group a file belongs to, whether or not it is indexed."""
        identity = FileIdentity.from_path(path)
        with self._lock:
            return self._groups.get(identity.key)

    def snapshot(self) -> WorkspaceScan:
        """Copy the current state into a WorkspaceScan."""
        with self._lock:
            groups = [dataclasses.replace(g, files=dict(g.files)) for g in self._groups.values()]
            return WorkspaceScan(
                root_path=self.root_path,
                groups=sort_groups(groups),
                total_files=len(self._files),
                files=tuple(sorted(self._files.values(), key=attrgetter("path"))),
            )

    def _in_workspace(self, path: Path) -> bool:
        return self.root_path in path.parents

    def add_path(self, path: str | os.PathLike[str]) -> bool:
        """Index a file, creating its group on first sight.

        Returns:
            True if the index changed.

        """
        identity = FileIdentity.from_path(path)
        if not is_localization_file(identity.name) or not self._in_workspace(identity.path):
            return False

        with self._lock:
            known = identity.path in self._files
            self._files[identity.path] = identity

            group = self._groups.get(identity.key)
            if group is None:
                group = TranslationGroup.for_identity(identity, self.root_path)
                self._groups[identity.key] = group
                logger.debug("New group: %s", group.display_name)

            if group.files.get(identity.language) == identity:
                return not known
            group.add(identity)
            return True

    def remove_path(self, path: str | os.PathLike[str]) -> bool:
        """Drop a file from the index, and its group once empty.

        Returns:
            True if the index changed.

        """
        identity = FileIdentity.from_path(path)
        with self._lock:
            if self._files.pop(identity.path, None) is None:
                return False

            group = self._groups.get(identity.key)
            if group is None or group.files.get(identity.language) != identity:
                return True

            group.remove(identity.language)
            # Promote a sibling that was shadowed by the removed file
            for other in self._files.values():
                if other.key == identity.key and other.language == identity.language:
                    group.add(other)
                    break

            if group.is_empty:
                del self._groups[identity.key]
                logger.debug("Removed empty group: %s", group.display_name)
            return True

    def remove_tree(self, directory: str | os.PathLike[str]) -> bool:
        """Drop every file indexed below a directory.

        Returns:
            True if the index changed.

        """
        top = Path(os.path.abspath(directory))
        with self._lock:
            gone = [path for path in self._files if top in path.parents]
            for path in gone:
                self.remove_path(path)
        if gone:
            logger.debug("Removed %d files under %s", len(gone), top)
        return bool(gone)

    def add_tree(self, directory: str | os.PathLike[str]) -> bool:
        """Index the files below a directory, skipping hidden directories.

        Returns:
            True if the index changed.

        """
        top = Path(os.path.abspath(directory))
        if top != self.root_path and not self._in_workspace(top):
            return False
        if any(is_hidden(part) for part in top.relative_to(self.root_path).parts):
            return False

        changed = False
        for path, file_names in iter_workspace_directories(top, onerror=_log_walk_error):
            for name in file_names:
                changed = self.add_path(path / name) or changed
        return changed

    def _reconcile(self, path: Path) -> bool:
        """Add or remove a path depending on whether it exists now."""
        if path.is_file():
            return self.add_path(path)
        return self.remove_path(path)

    def _reconcile_tree(self, directory: Path) -> bool:
        """Add or remove a directory's files depending on whether it exists now."""
        if directory.is_dir():
            return self.add_tree(directory)
        return self.remove_tree(directory)

    def apply(self, event: FileWatchEvent) -> bool:
        """Fold a watch event into the index.

        Args:
            event: Event reported by a watcher.

        Returns:
            True if the index changed.

        """
        if event.type is EventType.DELETED:
            if event.is_directory:
                return self.remove_tree(event.path)
            return self.remove_path(event.path)

        if event.type in (EventType.CREATED, EventType.MODIFIED):
            return self._reconcile(event.path)

        # Renames are not reliably paired, so trust the filesystem
        reconcile = self._reconcile_tree if event.is_directory else self._reconcile
        changed = False
        if event.old_path is not None and event.old_path != event.path:
            changed = reconcile(event.old_path)
        return reconcile(event.path) or changed


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read directory %s: %s", error.filename, error.strerror or error)
