"""Write localization files and create new language variants."""

from __future__ import annotations

import contextlib
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from .naming import is_language_code

if TYPE_CHECKING:
    from .scanner import TranslationGroup

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".xliff-workspace-"
DEFAULT_FILE_MODE = 0o644


def write_file_atomic(path: Path, content: str, *, exclusive: bool = False) -> None:
    """Replace a file's content in one step.

    Writes to a hidden temporary file next to ``path`` and renames it into
    place, keeping the permissions of the file being replaced.

    Args:
        path: File to write.
        content: Full new content.
        exclusive: Fail instead of replacing an existing ``path``.

    Raises:
        FileExistsError: If ``exclusive`` is set and ``path`` exists.
        OSError: If writing or renaming fails. The temporary file is removed.

    """
    fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE
        tmp_path.chmod(mode)

        if exclusive:
            # Raises FileExistsError when path already exists
            os.link(tmp_path, path)
            tmp_path.unlink()
        else:
            os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def create_language_file(template_path: Path, new_path: Path) -> None:
    """Create a language file from a template file.

    Args:
        template_path: Existing file whose content is copied.
        new_path: File to create. Parent directories are created.

    Raises:
        FileExistsError: If ``new_path`` already exists.
        OSError: If reading or writing fails.

    """
    content = template_path.read_text(encoding="utf-8")

    if new_path.exists():
        raise FileExistsError(f"File already exists: {new_path}")

    new_path.parent.mkdir(parents=True, exist_ok=True)
    write_file_atomic(new_path, content, exclusive=True)
    logger.info("Created %s from %s", new_path.name, template_path.name)


def create_language_variant(group: TranslationGroup, language: str) -> Path:
    """Add a language to a translation group.

    The source file is used as template when the group has one, otherwise
    the first variant in language order.

    Args:
        group: Group to extend.
        language: Two-letter lowercase language code.

    Returns:
        Path of the created file.

    Raises:
        ValueError: If ``language`` is not a valid code or the group is empty.
        FileExistsError: If the variant already exists.

    """
    if not is_language_code(language):
        raise ValueError(f"Invalid language code: {language!r}")
    if group.is_empty:
        raise ValueError(f"Group has no files to copy: {group.display_name}")

    template = group.source_file or group.files[group.languages()[0]]
    new_path = group.path_for_language(language)
    create_language_file(template.path, new_path)
    return new_path
