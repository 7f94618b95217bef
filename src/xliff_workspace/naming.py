"""Derive translation identity from XLIFF file names."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

DEFAULT_LANGUAGE = "default"

# Case-sensitive, ".XLF" is not a localization file
LOCALIZATION_SUFFIXES: tuple[str, ...] = (".xlf", ".xliff")

# <lang>.<basename>.xlf, only the .xlf suffix carries a language prefix
LANGUAGE_FILE_PATTERN = re.compile(r"^([a-z]{2})\.(.+)\.xlf$")

LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2}$")


def is_localization_file(path: str | os.PathLike[str]) -> bool:
    """Check whether a path or file name ends in a localization suffix."""
    return os.fspath(path).endswith(LOCALIZATION_SUFFIXES)


def is_hidden(name: str) -> bool:
    """Check whether a directory entry name is hidden."""
    return name.startswith(".")


def parse_file_name(file_name: str) -> tuple[str, str]:
    """Split a file name into its language tag and base name.

    Never fails: names without a language prefix map to the ``"default"``
    language, and names without a localization suffix are returned whole.

    Args:
        file_name: Bare file name, without directory.

    Returns:
        Tuple of ``(language, base_name)``.

    """
    if match := LANGUAGE_FILE_PATTERN.match(file_name):
        return match.group(1), match.group(2)

    for suffix in LOCALIZATION_SUFFIXES:
        if file_name.endswith(suffix):
            return DEFAULT_LANGUAGE, file_name[: -len(suffix)]

    return DEFAULT_LANGUAGE, file_name


def is_language_code(code: str) -> bool:
    """Check whether a string is a valid two-letter language code."""
    return LANGUAGE_CODE_PATTERN.match(code) is not None


class GroupKey(NamedTuple):
    """Identifies a translation group: same directory, same base name."""

    directory: str
    base_name: str

    @property
    def id(self) -> str:
        """String form of the key, ``<directory>/<base_name>``."""
        return os.path.join(self.directory, self.base_name)


def group_key(directory: str | os.PathLike[str], base_name: str) -> GroupKey:
    """Build the grouping key for a directory and base name.

    The directory is normalized so trailing or doubled separators do not
    produce distinct keys for the same location.
    """
    return GroupKey(os.path.normpath(os.fspath(directory)), base_name)


def language_sort_key(language: str) -> tuple[bool, str]:
    """Sort key placing ``"default"`` first, then languages alphabetically."""
    return (language != DEFAULT_LANGUAGE, language)


@dataclass(frozen=True)
class FileIdentity:
    """Parsed identity of a single localization file."""

    path: Path
    name: str
    language: str
    base_name: str
    directory: Path

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> FileIdentity:
        """Compute the identity of a file from its path.

        Args:
            path: Path to the file. Made absolute, not resolved.

        Returns:
            FileIdentity for the current file name.

        """
        path = Path(os.path.abspath(path))
        language, base_name = parse_file_name(path.name)
        return cls(
            path=path,
            name=path.name,
            language=language,
            base_name=base_name,
            directory=path.parent,
        )

    @property
    def key(self) -> GroupKey:
        """Grouping key of the translation group this file belongs to."""
        return group_key(self.directory, self.base_name)

    @property
    def is_source(self) -> bool:
        """Whether this is the language-less source file."""
        return self.language == DEFAULT_LANGUAGE

    def __str__(self) -> str:
        return f"FileIdentity({self.name} -> {self.language}:{self.base_name})"
