"""
Diff coordinate parser for the GitLab AI Code Reviewer.

Turns unified diff text into one FileCoordinateTable per file. Every content
line of every hunk becomes a DiffLineEntry carrying its 1-based position in
the full diff text (the numbering shown to the AI reviewer) and its real line
number in the old and/or new version of the file.
"""

import logging
import re
from typing import Dict, List, Optional

from unidiff import PatchSet, UnidiffParseError

from .models import ChangeKind, DiffLineEntry, FileCoordinateTable, LineMapping
from .utils import DEV_NULL, strip_diff_path_prefix


logger = logging.getLogger(__name__)

HUNK_HEADER_RE = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')
GIT_HEADER_RE = re.compile(r'^diff --git a/(\S+) b/(\S+)')


class DiffParsingError(Exception):
    """Raised when the structured parser rejects the diff text."""
    pass


def _table_key(old_path: Optional[str], new_path: Optional[str]) -> Optional[str]:
    """Tables are keyed by the new path, or the old path for deletions."""
    if new_path and new_path != DEV_NULL:
        return new_path
    if old_path and old_path != DEV_NULL:
        return old_path
    return None


def _add_entry(rendered: int, new_line: int) -> DiffLineEntry:
    return DiffLineEntry(rendered, new_line, True, ChangeKind.ADD, new_line=new_line)


def _remove_entry(rendered: int, old_line: int) -> DiffLineEntry:
    return DiffLineEntry(rendered, old_line, True, ChangeKind.REMOVE, old_line=old_line)


def _context_entry(rendered: int, old_line: int, new_line: int) -> DiffLineEntry:
    return DiffLineEntry(rendered, new_line, False, ChangeKind.CONTEXT, old_line=old_line, new_line=new_line)


def _is_blank_context(lines: List[str], index: int, old_remaining: int, new_remaining: int) -> bool:
    """Whether the empty line at ``index`` is a context line with its leading space trimmed.

    It is while the hunk header still expects lines on both sides, or when more
    hunk body lines follow it.
    """
    if old_remaining > 0 and new_remaining > 0:
        return True
    for following in lines[index + 1:]:
        if following:
            return following[:1] in ('+', '-', ' ', '\\') and not following.startswith(('--- ', '+++ '))
    return False


class _TableBuilder:
    """Accumulates entries for one file until its table is sealed."""

    def __init__(self, old_path: Optional[str] = None, new_path: Optional[str] = None):
        self.old_path = old_path
        self.new_path = new_path
        self.entries: List[DiffLineEntry] = []
        self.seen_hunk = False

    def build(self) -> Optional[FileCoordinateTable]:
        key = _table_key(self.old_path, self.new_path)
        if key is None:
            return None
        old_path = self.old_path if self.old_path and self.old_path != DEV_NULL else None
        return FileCoordinateTable(file_path=key, entries=tuple(self.entries), old_path=old_path)


class DiffParser:
    """Builds coordinate tables from unified diffs.

    The structured path uses ``unidiff``. When it rejects the text (hunk
    lengths that disagree with the header, a malformed hunk header...), a line
    scanner that tolerates those defects is used instead.
    """

    def __init__(self):
        self._parsed_files = 0
        self._total_additions = 0
        self._total_deletions = 0
        self._total_context_lines = 0
        self._fallback_parses = 0

    def parse_diff(self, diff_content: str) -> Dict[str, FileCoordinateTable]:
        """Parse diff text into coordinate tables keyed by file path.

        Never raises; unusable input yields an empty dict.
        """
        if not diff_content or not isinstance(diff_content, str):
            logger.debug("Empty or non-string diff content; nothing to parse")
            return {}

        try:
            tables = self._parse_with_unidiff(diff_content)
            if '@@' in diff_content:
                self._check_hunk_coverage(diff_content, tables)
        except DiffParsingError as e:
            logger.warning(f"Falling back to line scanner: {e}")
            tables = self._parse_manually(diff_content)
            self._fallback_parses += 1

        self._update_statistics(tables)
        logger.debug(f"Parsed coordinate tables for {len(tables)} file(s)")
        return tables

    def _parse_with_unidiff(self, diff_content: str) -> Dict[str, FileCoordinateTable]:
        try:
            patch_set = PatchSet.from_string(diff_content)
        except UnidiffParseError as e:
            raise DiffParsingError(str(e)) from e

        tables: Dict[str, FileCoordinateTable] = {}
        for patched_file in patch_set:
            old_path = strip_diff_path_prefix(patched_file.source_file)
            new_path = strip_diff_path_prefix(patched_file.target_file)
            builder = _TableBuilder(old_path, new_path)

            for hunk in patched_file:
                builder.seen_hunk = True
                for line in hunk:
                    if line.is_added:
                        builder.entries.append(_add_entry(line.diff_line_no, line.target_line_no))
                    elif line.is_removed:
                        builder.entries.append(_remove_entry(line.diff_line_no, line.source_line_no))
                    elif line.is_context:
                        builder.entries.append(
                            _context_entry(line.diff_line_no, line.source_line_no, line.target_line_no)
                        )

            table = builder.build()
            if table is not None:
                tables[table.file_path] = table
        return tables

    def _check_hunk_coverage(self, diff_content: str, tables: Dict[str, FileCoordinateTable]) -> None:
        """Raise DiffParsingError when unidiff kept fewer changed lines than the text has.

        unidiff stops reading a hunk once its header counts are used up, so a
        header that undercounts silently drops the remaining lines.
        """
        if not any(table.entries for table in tables.values()):
            raise DiffParsingError("structured parser found no hunk lines in diff with hunks")

        parsed = sum(len(table.change_entries) for table in tables.values())
        scanned = sum(len(table.change_entries) for table in self._parse_manually(diff_content).values())
        if scanned > parsed:
            raise DiffParsingError(
                f"structured parser kept {parsed} of {scanned} changed lines; hunk header undercounts"
            )

    def _parse_manually(self, diff_content: str) -> Dict[str, FileCoordinateTable]:
        lines = diff_content.split('\n')
        if diff_content.endswith('\n'):
            lines.pop()
        tables: Dict[str, FileCoordinateTable] = {}
        current: Optional[_TableBuilder] = None
        in_hunk = False
        old_line_num = 0
        new_line_num = 0
        old_remaining = 0
        new_remaining = 0

        def seal(builder: Optional[_TableBuilder]) -> None:
            if builder is None:
                return
            table = builder.build()
            if table is not None:
                tables[table.file_path] = table

        for index, line in enumerate(lines):
            rendered = index + 1

            git_header = GIT_HEADER_RE.match(line)
            if git_header:
                seal(current)
                current = _TableBuilder(git_header.group(1), git_header.group(2))
                in_hunk = False
                continue

            next_line = lines[index + 1] if index + 1 < len(lines) else ""
            if line.startswith('--- ') and next_line.startswith('+++ '):
                if current is None or current.seen_hunk:
                    seal(current)
                    current = _TableBuilder()
                current.old_path = strip_diff_path_prefix(line[4:])
                in_hunk = False
                continue

            if line.startswith('+++ ') and not in_hunk and current is not None:
                current.new_path = strip_diff_path_prefix(line[4:])
                continue

            if line.startswith('@@'):
                match = HUNK_HEADER_RE.match(line)
                if match and current is not None:
                    old_line_num = int(match.group(1))
                    new_line_num = int(match.group(3))
                    old_remaining = int(match.group(2)) if match.group(2) is not None else 1
                    new_remaining = int(match.group(4)) if match.group(4) is not None else 1
                    current.seen_hunk = True
                    in_hunk = True
                elif not match:
                    logger.debug(f"Malformed hunk header at diff line {rendered}: {line[:80]}")
                continue

            if not in_hunk or current is None:
                continue

            marker = line[:1]
            if marker == '+':
                current.entries.append(_add_entry(rendered, new_line_num))
                new_line_num += 1
                new_remaining -= 1
            elif marker == '-':
                current.entries.append(_remove_entry(rendered, old_line_num))
                old_line_num += 1
                old_remaining -= 1
            elif marker == ' ' or (not line and _is_blank_context(lines, index, old_remaining, new_remaining)):
                current.entries.append(_context_entry(rendered, old_line_num, new_line_num))
                old_line_num += 1
                new_line_num += 1
                old_remaining -= 1
                new_remaining -= 1

        seal(current)
        return tables

    def _update_statistics(self, tables: Dict[str, FileCoordinateTable]) -> None:
        for table in tables.values():
            self._parsed_files += 1
            self._total_additions += table.total_additions
            self._total_deletions += table.total_deletions
            self._total_context_lines += sum(1 for e in table.entries if not e.is_change)

    def get_parsing_statistics(self) -> Dict[str, int]:
        """Get statistics accumulated over all parse_diff calls."""
        return {
            "parsed_files": self._parsed_files,
            "total_additions": self._total_additions,
            "total_deletions": self._total_deletions,
            "total_context_lines": self._total_context_lines,
            "fallback_parses": self._fallback_parses,
        }

    def reset_statistics(self) -> None:
        """Reset parsing statistics."""
        self._parsed_files = 0
        self._total_additions = 0
        self._total_deletions = 0
        self._total_context_lines = 0
        self._fallback_parses = 0


def build_line_mapping(table: FileCoordinateTable) -> LineMapping:
    """Old/new correspondence for the context lines shown in the diff."""
    mapping = LineMapping()
    for entry in table.entries:
        if entry.change_kind is ChangeKind.CONTEXT and entry.old_line is not None and entry.new_line is not None:
            mapping.new_to_old[entry.new_line] = entry.old_line
            mapping.old_to_new[entry.old_line] = entry.new_line
    return mapping


def build_complete_line_mapping(
    table: FileCoordinateTable,
    new_total_lines: int,
    old_total_lines: int
) -> LineMapping:
    """Old/new correspondence for every unchanged line of the file.

    Lines outside the hunks are not in the table; the i-th unchanged old line
    always pairs with the i-th unchanged new line, so walking both files while
    skipping added and removed lines recovers them.

    Args:
        table: Coordinate table of the file
        new_total_lines: Number of lines in the new version
        old_total_lines: Number of lines in the old version
    """
    added = {e.new_line for e in table.entries if e.change_kind is ChangeKind.ADD}
    removed = {e.old_line for e in table.entries if e.change_kind is ChangeKind.REMOVE}

    mapping = LineMapping()
    old_line, new_line = 1, 1
    while old_line <= old_total_lines and new_line <= new_total_lines:
        if new_line in added:
            new_line += 1
            continue
        if old_line in removed:
            old_line += 1
            continue
        mapping.new_to_old[new_line] = old_line
        mapping.old_to_new[old_line] = new_line
        old_line += 1
        new_line += 1
    return mapping


def get_old_line_from_new_line(new_line: int, mapping: LineMapping) -> Optional[int]:
    return mapping.new_to_old.get(new_line)


def get_new_line_from_old_line(old_line: int, mapping: LineMapping) -> Optional[int]:
    return mapping.old_to_new.get(old_line)


def get_change_lines_for_file(file_path: str, tables: Dict[str, FileCoordinateTable]) -> List[int]:
    """Resolved line numbers of every added/removed line of a file."""
    table = tables.get(file_path)
    if table is None:
        return []
    return [entry.resolved_line_number for entry in table.entries if entry.is_change]
