"""
GitLab position encoding.

GitLab identifies a line of a merge request diff by a ``line_code``:
``<sha1 of the file path>_<old line>_<new line>``. It is used both for the
inline position of a discussion and for ``/diffs#<line_code>`` deep links.
"""

import hashlib
import logging
from dataclasses import replace
from typing import Optional

from .diff_parser import build_line_mapping
from .models import ChangeKind, FileCoordinateTable, PlatformPosition

logger = logging.getLogger(__name__)


def file_path_digest(file_path: str) -> str:
    """Lower-case hex SHA-1 of the UTF-8 encoded path."""
    return hashlib.sha1((file_path or "").encode("utf-8")).hexdigest()


def _known(line: Optional[int]) -> bool:
    return isinstance(line, int) and line > 0


def _entry_index(table: FileCoordinateTable, kind: ChangeKind, attr: str, line: int) -> Optional[int]:
    for index, entry in enumerate(table.entries):
        if entry.change_kind is kind and getattr(entry, attr) == line:
            return index
    return None


def _old_line_before_addition(new_line: int, table: Optional[FileCoordinateTable]) -> int:
    if table is not None:
        index = _entry_index(table, ChangeKind.ADD, "new_line", new_line)
        if index is not None:
            for entry in reversed(table.entries[:index]):
                if entry.old_line is not None:
                    return entry.old_line
        previous = build_line_mapping(table).new_to_old.get(new_line - 1)
        if previous is not None:
            return previous
    return new_line - 1


def _new_line_after_deletion(old_line: int, table: Optional[FileCoordinateTable]) -> int:
    if table is not None:
        index = _entry_index(table, ChangeKind.REMOVE, "old_line", old_line)
        if index is not None:
            for entry in table.entries[index + 1:]:
                if entry.new_line is not None:
                    return entry.new_line
        following = build_line_mapping(table).old_to_new.get(old_line + 1)
        if following is not None:
            return following
    return old_line + 1


def generate_line_code(
    file_path: str,
    old_line: Optional[int],
    new_line: Optional[int],
    table: Optional[FileCoordinateTable] = None
) -> str:
    """Build the GitLab line code for a position.

    A missing side is inferred: an added line takes the old line just before
    it, a removed line takes the new line just after it. Without any line the
    code is ``<sha>_0_0``.

    Args:
        file_path: Repository path of the file
        old_line: Line number in the old version, if known
        new_line: Line number in the new version, if known
        table: Coordinate table of the file, used to infer the missing side

    Returns:
        Line code string
    """
    digest = file_path_digest(file_path)
    has_old, has_new = _known(old_line), _known(new_line)

    if has_old and has_new:
        return f"{digest}_{old_line}_{new_line}"
    if has_new:
        return f"{digest}_{_old_line_before_addition(new_line, table)}_{new_line}"
    if has_old:
        return f"{digest}_{old_line}_{_new_line_after_deletion(old_line, table)}"
    return f"{digest}_0_0"


def normalize_position(
    position: PlatformPosition,
    file_path: str,
    table: Optional[FileCoordinateTable] = None
) -> PlatformPosition:
    """Fill both line numbers of a position and attach its line code.

    The line code is computed from the lines as given, before filling.
    A position without any line comes back with both lines set to 0.
    """
    old_line = position.old_line if _known(position.old_line) else None
    new_line = position.new_line if _known(position.new_line) else None
    line_code = generate_line_code(file_path, old_line, new_line, table)

    if old_line is None and new_line is None:
        logger.warning(f"Position for {file_path} has no line numbers; using 0/0")
        return replace(position, old_line=0, new_line=0, line_code=line_code)

    if table is not None and (old_line is None or new_line is None):
        mapping = build_line_mapping(table)
        if old_line is None:
            old_line = mapping.new_to_old.get(new_line, new_line)
        else:
            new_line = mapping.old_to_new.get(old_line, old_line)

    return replace(position, old_line=old_line, new_line=new_line, line_code=line_code)
