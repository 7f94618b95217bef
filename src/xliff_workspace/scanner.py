"""Scan a workspace for XLIFF files and group them into translation units."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from operator import attrgetter
from pathlib import Path

from .errors import ScanError
from .naming import (
    DEFAULT_LANGUAGE,
    FileIdentity,
    GroupKey,
    is_hidden,
    is_localization_file,
    language_sort_key,
)


def display_name_for(root: Path, directory: Path, base_name: str) -> str:
    """Build a group's display name, prefixed by its directory when nested.

    Args:
        root: Workspace root.
        directory: Directory holding the group's files.
        base_name: Shared base name of the group.

    Returns:
        ``base_name`` for groups in the root, ``<rel/dir>/<base_name>`` otherwise.

    """
    relative = os.path.relpath(directory, root)
    if relative in (".", ""):
        return base_name
    return f"{Path(relative).as_posix()}/{base_name}"


@dataclass
class TranslationGroup:
    """All language variants of one file sharing a directory and base name."""

    key: GroupKey
    base_name: str
    display_name: str
    directory: Path
    files: dict[str, FileIdentity] = field(default_factory=dict)
    source_file: FileIdentity | None = None

    @classmethod
    def for_identity(cls, identity: FileIdentity, root: Path) -> TranslationGroup:
        """Create an empty group that ``identity`` belongs to."""
        return cls(
            key=identity.key,
            base_name=identity.base_name,
            display_name=display_name_for(root, identity.directory, identity.base_name),
            directory=identity.directory,
        )

    @property
    def id(self) -> str:
        """Stable string identifier of the group."""
        return self.key.id

    @property
    def is_empty(self) -> bool:
        """Whether the group has no remaining files."""
        return not self.files

    def add(self, identity: FileIdentity) -> None:
        """Insert or replace the file for the identity's language.

        Raises:
            ValueError: If the identity belongs to a different group.

        """
        if identity.key != self.key:
            msg = f"{identity.path} does not belong to group {self.id}"
            raise ValueError(msg)

        self.files[identity.language] = identity
        if identity.language == DEFAULT_LANGUAGE:
            self.source_file = identity

    def remove(self, language: str) -> FileIdentity | None:
        """Remove the file for a language.

        Returns:
            The removed identity, or None if the language was not present.

        """
        removed = self.files.pop(language, None)
        if language == DEFAULT_LANGUAGE:
            self.source_file = None
        return removed

    def languages(self) -> list[str]:
        """Languages in this group, ``"default"`` first, then alphabetically."""
        return sorted(self.files, key=language_sort_key)

    def path_for_language(self, language: str) -> Path:
        """Path at which the variant for ``language`` lives or would live."""
        if language == DEFAULT_LANGUAGE:
            if self.source_file is not None:
                return self.source_file.path
            return self.directory / f"{self.base_name}.xlf"
        return self.directory / f"{language}.{self.base_name}.xlf"

    def __str__(self) -> str:
        return f"TranslationGroup({self.display_name}: {', '.join(self.languages())})"


def sort_groups(groups: list[TranslationGroup]) -> tuple[TranslationGroup, ...]:
    """Order groups by display name, ties broken by group id."""
    return tuple(sorted(groups, key=lambda g: (g.display_name, g.id)))


@dataclass(frozen=True)
class WorkspaceScan:
    """Result of a full workspace scan.

    ``files`` holds every matching file sorted by path, including a file
    displaced from its group by another file with the same language.
    """

    root_path: Path
    groups: tuple[TranslationGroup, ...]
    total_files: int
    files: tuple[FileIdentity, ...] = ()

    def group_for(self, key: GroupKey) -> TranslationGroup | None:
        """Look up a group by its key."""
        for group in self.groups:
            if group.key == key:
                return group
        return None


def raise_scan_error(error: OSError) -> None:
    """Abort a directory walk on the first traversal error."""
    path = Path(error.filename) if error.filename else None
    raise ScanError(f"Cannot read {error.filename}: {error.strerror or error}", path) from error


def iter_workspace_directories(
    root: Path,
    onerror: Callable[[OSError], None] = raise_scan_error,
) -> Iterator[tuple[Path, list[str]]]:
    """Walk a workspace top-down, skipping hidden directories.

    The root is always yielded, even when its own name is hidden.

    Yields:
        Tuples of ``(directory, file_names)``.

    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        dirnames[:] = [name for name in dirnames if not is_hidden(name)]
        yield Path(dirpath), filenames


def scan_workspace(root_path: str | os.PathLike[str]) -> WorkspaceScan:
    """Scan a directory tree and group its XLIFF files.

    Args:
        root_path: Root directory of the workspace.

    Returns:
        WorkspaceScan with groups sorted by display name.

    Raises:
        ScanError: If the root is missing or traversal fails. No partial
            result is returned.

    """
    root = Path(os.path.abspath(root_path))
    if not root.is_dir():
        raise ScanError(f"Workspace root is not a directory: {root}", root)

    groups: dict[GroupKey, TranslationGroup] = {}
    files: list[FileIdentity] = []

    for directory, file_names in iter_workspace_directories(root):
        for name in file_names:
            if not is_localization_file(name):
                continue
            identity = FileIdentity.from_path(directory / name)
            files.append(identity)

            group = groups.get(identity.key)
            if group is None:
                group = TranslationGroup.for_identity(identity, root)
                groups[identity.key] = group
            group.add(identity)

    return WorkspaceScan(
        root_path=root,
        groups=sort_groups(list(groups.values())),
        total_files=len(files),
        files=tuple(sorted(files, key=attrgetter("path"))),
    )


class WorkspaceScanner:
    """Scans workspaces and logs what was found."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize the scanner.

        Args:
            logger: Logger instance. Defaults to the module logger.

        """
        self.logger = logger or logging.getLogger(__name__)

    def scan(self, root_path: str | os.PathLike[str]) -> WorkspaceScan:
        """Scan a workspace.

        Args:
            root_path: Root directory of the workspace.

        Returns:
            Fresh WorkspaceScan owned by the caller.

        Raises:
            ScanError: If the scan fails.

        """
        started = time.perf_counter()
        try:
            result = scan_workspace(root_path)
        except ScanError as e:
            self.logger.error("Scan failed: %s", e)
            raise

        self.logger.debug(
            "Scanned %s in %.3fs: %d groups, %d files",
            result.root_path,
            time.perf_counter() - started,
            len(result.groups),
            result.total_files,
        )
        return result
