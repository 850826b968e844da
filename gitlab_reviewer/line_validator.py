"""
Line number validation for AI review feedback.

An AI reviewer sees the whole diff with numbered lines and answers with a
(file, line) pair that may point at a context line, a line outside every hunk,
or nothing at all. ``validate_line_number`` classifies such a pair against the
coordinate tables and proposes the nearest real change when one exists.

Every function here is pure and never raises.
"""

from typing import Dict, Optional

from .models import (
    CorrectedTo, FileCoordinateTable, UnresolvedWarning, Valid, ValidationOutcome
)


REASON_NO_MAPPING = "no mapping for file"
REASON_NO_CHANGES = "no changes in file"
REASON_OUTSIDE_DIFF = "line not in diff"
REASON_INVALID_LINE = "invalid line number"


def nearest_change(table: FileCoordinateTable, rendered_line_number: int) -> Optional[CorrectedTo]:
    """Change entry closest to ``rendered_line_number`` in diff-text order.

    Distance is measured on rendered line numbers; on a tie the entry that
    occurs first in the diff wins.
    """
    best = None
    best_distance = None
    for entry in table.entries:
        if not entry.is_change:
            continue
        distance = abs(entry.rendered_line_number - rendered_line_number)
        if best_distance is None or distance < best_distance:
            best = entry
            best_distance = distance

    if best is None:
        return None
    return CorrectedTo(
        line=best.resolved_line_number,
        change_kind=best.change_kind,
        rendered_line_number=best.rendered_line_number
    )


def find_nearest_change_line(
    file_path: str,
    rendered_line_number: int,
    tables: Dict[str, FileCoordinateTable]
) -> Optional[CorrectedTo]:
    """Nearest change line of ``file_path``, or None without a table or changes."""
    table = (tables or {}).get(file_path)
    if table is None:
        return None
    return nearest_change(table, rendered_line_number)


def validate_line_number(
    file_path: str,
    proposed_line,
    tables: Dict[str, FileCoordinateTable]
) -> ValidationOutcome:
    """Decide whether ``proposed_line`` names an added or removed line of ``file_path``.

    Returns:
        Valid when it does; CorrectedTo the nearest change when it names a
        context line; UnresolvedWarning otherwise. For lines outside the diff
        the warning carries the nearest change as ``candidate``.
    """
    table = (tables or {}).get(file_path) if isinstance(file_path, str) else None
    if table is None:
        return UnresolvedWarning(REASON_NO_MAPPING)

    try:
        line = int(proposed_line)
    except (TypeError, ValueError, OverflowError):
        return UnresolvedWarning(REASON_INVALID_LINE)

    if not table.has_changes:
        return UnresolvedWarning(REASON_NO_CHANGES)

    if table.find_change(line) is not None:
        return Valid()

    context_entry = table.find_context(line)
    if context_entry is not None:
        corrected = nearest_change(table, context_entry.rendered_line_number)
        if corrected is not None:
            return corrected
        return UnresolvedWarning(REASON_NO_CHANGES)

    # The AI may have answered with a diff-text line number; anchor there.
    return UnresolvedWarning(REASON_OUTSIDE_DIFF, candidate=nearest_change(table, line))
