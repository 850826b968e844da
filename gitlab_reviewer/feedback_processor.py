"""
Feedback processor for the GitLab AI Code Reviewer.

This module applies line number validation to batches of AI feedback:
correcting or annotating each item, filtering context-line feedback,
reporting accuracy statistics and attaching GitLab positions.
"""

import logging
from dataclasses import replace
from typing import List, Dict, Optional, Tuple

from .config import ReviewConfig
from .line_validator import validate_line_number
from .models import (
    AccuracyStats, ChangeKind, CorrectedTo, FeedbackItem, FileCoordinateTable,
    MergeRequestDetails, OutsideDiffPolicy, PlatformPosition, UnresolvedWarning,
    ValidationOutcome
)

logger = logging.getLogger(__name__)


CORRECTED_NOTE = (
    "⚠️ Note: Line number was automatically corrected from AI response "
    "(line {original} referenced unchanged context; moved to line {corrected})."
)
RELOCATED_NOTE = (
    "⚠️ Note: Line number was mapped to nearest actual change "
    "(line {original} is outside the diff; moved to line {corrected})."
)
UNVERIFIED_NOTE = (
    "⚠️ Warning: Line number {original} could not be verified against the diff ({reason})."
)


def _is_line(line_number) -> bool:
    return isinstance(line_number, int) and not isinstance(line_number, bool) and line_number > 0


def _annotate(description: str, note: str) -> str:
    if description:
        return f"{description}\n\n{note}"
    return note


class FeedbackProcessor:
    """Validates, corrects and positions AI feedback items."""

    def __init__(self, review_config: ReviewConfig):
        """Initialize feedback processor with configuration.

        Args:
            review_config: Review configuration (outside-diff policy)
        """
        self.review_config = review_config

    def evaluate(
        self,
        feedback: List[FeedbackItem],
        tables: Dict[str, FileCoordinateTable]
    ) -> List[Tuple[FeedbackItem, ValidationOutcome]]:
        """Pair every item with its validation outcome."""
        return [
            (item, validate_line_number(item.file_path, item.line_number, tables))
            for item in feedback
        ]

    def apply_outcome(self, item: FeedbackItem, outcome: ValidationOutcome) -> FeedbackItem:
        """Return the item corrected and/or annotated according to ``outcome``.

        Any correction or warning is appended to the description so a human can
        tell an adjusted location from an original one.
        """
        if outcome.is_valid:
            return item

        if isinstance(outcome, CorrectedTo):
            logger.warning(
                f"Correcting line number from {item.line_number} to {outcome.line} for {item.file_path}"
            )
            note = CORRECTED_NOTE.format(original=item.line_number, corrected=outcome.line)
            return replace(
                item,
                line_number=outcome.line,
                description=_annotate(item.description, note),
                position=None
            )

        if isinstance(outcome, UnresolvedWarning):
            if outcome.candidate is not None and self.review_config.outside_diff_policy is OutsideDiffPolicy.RELOCATE:
                logger.warning(
                    f"Mapping line {item.line_number} to nearest change at line "
                    f"{outcome.candidate.line} for {item.file_path}"
                )
                note = RELOCATED_NOTE.format(original=item.line_number, corrected=outcome.candidate.line)
                return replace(
                    item,
                    line_number=outcome.candidate.line,
                    description=_annotate(item.description, note),
                    position=None
                )

            logger.warning(
                f"Could not validate line number {item.line_number} for {item.file_path}: {outcome.reason}"
            )
            note = UNVERIFIED_NOTE.format(original=item.line_number, reason=outcome.reason)
            return replace(item, description=_annotate(item.description, note))

        return item

    def process_feedback(
        self,
        feedback: List[FeedbackItem],
        tables: Dict[str, FileCoordinateTable]
    ) -> List[FeedbackItem]:
        """Validate every item, returning a parallel list of corrected items."""
        if not feedback:
            return []
        return [self.apply_outcome(item, outcome) for item, outcome in self.evaluate(feedback, tables)]

    def filter_context_line_feedback(
        self,
        feedback: List[FeedbackItem],
        tables: Dict[str, FileCoordinateTable]
    ) -> List[FeedbackItem]:
        """Drop items whose line number names an unchanged context line."""
        kept = []
        for item, outcome in self.evaluate(feedback or [], tables):
            if isinstance(outcome, CorrectedTo):
                logger.warning(
                    f"Filtered out AI feedback for context line {item.line_number} in "
                    f"{item.file_path}: {item.title}"
                )
                continue
            kept.append(item)
        return kept

    def get_accuracy_stats(
        self,
        feedback: List[FeedbackItem],
        tables: Dict[str, FileCoordinateTable]
    ) -> AccuracyStats:
        """Count accurate, corrected and unmappable line numbers.

        Outside-diff items count as corrected only when the configured policy
        relocates them.
        """
        stats = AccuracyStats(total=len(feedback or []))
        relocate = self.review_config.outside_diff_policy is OutsideDiffPolicy.RELOCATE

        for _, outcome in self.evaluate(feedback or [], tables):
            if outcome.is_valid:
                stats.accurate += 1
            elif isinstance(outcome, CorrectedTo):
                stats.corrected += 1
                stats.context_line_errors += 1
            elif isinstance(outcome, UnresolvedWarning) and relocate and outcome.candidate is not None:
                stats.corrected += 1
            else:
                stats.unmappable += 1

        logger.info(f"AI line number accuracy: {stats.to_dict()}")
        return stats

    def populate_positions(
        self,
        feedback: List[FeedbackItem],
        mr_details: MergeRequestDetails
    ) -> List[FeedbackItem]:
        """Attach a GitLab position to items that can be anchored inline.

        Items that already have a position, have no positive integer line
        (file-level feedback, unparsable AI output) or reference a file absent
        from the diff are returned unchanged.
        """
        positioned = []
        for item in feedback or []:
            if item.position is not None or not _is_line(item.line_number):
                positioned.append(item)
                continue

            table = mr_details.coordinate_tables.get(item.file_path)
            if table is None:
                positioned.append(item)
                continue

            old_line, new_line = self._position_lines(table, item.line_number)
            position = PlatformPosition(
                base_sha=mr_details.base_sha,
                start_sha=mr_details.start_sha,
                head_sha=mr_details.head_sha,
                old_path=table.old_path or table.file_path,
                new_path=table.file_path,
                old_line=old_line,
                new_line=new_line
            )
            positioned.append(replace(item, position=position))
        return positioned

    @staticmethod
    def _position_lines(table: FileCoordinateTable, line_number: int) -> Tuple[Optional[int], Optional[int]]:
        entry = table.find_entry(line_number)
        if entry is None or entry.change_kind is ChangeKind.ADD:
            return None, line_number
        if entry.change_kind is ChangeKind.REMOVE:
            return line_number, None
        return entry.old_line, entry.new_line
