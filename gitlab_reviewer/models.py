"""
Data models for the GitLab AI Code Reviewer.

This module defines the coordinate tables built from unified diffs, the
feedback items produced by the AI reviewer, the validation outcomes used to
reconcile AI line numbers with the diff, and the GitLab position and
submission structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple


class ChangeKind(Enum):
    """Role of a rendered diff line."""
    ADD = "add"
    REMOVE = "remove"
    CONTEXT = "context"


class Severity(Enum):
    """Severity levels attached to AI feedback."""
    CRITICAL = "Critical"
    WARNING = "Warning"
    SUGGESTION = "Suggestion"
    INFO = "Info"


class OutsideDiffPolicy(Enum):
    """What to do with a line number that matches no line of the diff."""
    WARN = "warn"
    RELOCATE = "relocate"


class SubmissionState(Enum):
    """States of the comment submission state machine."""
    START = "start"
    TRY_INLINE = "try_inline"
    FALLBACK_GENERAL = "fallback_general"
    POSTED = "posted"
    FAILED = "failed"


@dataclass(frozen=True)
class DiffLineEntry:
    """One physical line of a file's diff as rendered in the full diff text."""
    rendered_line_number: int
    resolved_line_number: int
    is_change: bool
    change_kind: ChangeKind
    old_line: Optional[int] = None
    new_line: Optional[int] = None


@dataclass(frozen=True)
class FileCoordinateTable:
    """Ordered diff line entries for a single file."""
    file_path: str
    entries: Tuple[DiffLineEntry, ...] = ()
    old_path: Optional[str] = None

    @property
    def change_entries(self) -> Tuple[DiffLineEntry, ...]:
        """Entries for added and removed lines."""
        return tuple(entry for entry in self.entries if entry.is_change)

    @property
    def has_changes(self) -> bool:
        """Whether the table holds at least one added or removed line."""
        return any(entry.is_change for entry in self.entries)

    @property
    def total_additions(self) -> int:
        return sum(1 for entry in self.entries if entry.change_kind is ChangeKind.ADD)

    @property
    def total_deletions(self) -> int:
        return sum(1 for entry in self.entries if entry.change_kind is ChangeKind.REMOVE)

    def find_change(self, line_number: int) -> Optional[DiffLineEntry]:
        """First change entry resolving to ``line_number``, if any."""
        for entry in self.entries:
            if entry.is_change and entry.resolved_line_number == line_number:
                return entry
        return None

    def find_context(self, line_number: int) -> Optional[DiffLineEntry]:
        """First context entry resolving to ``line_number``, if any."""
        for entry in self.entries:
            if not entry.is_change and entry.resolved_line_number == line_number:
                return entry
        return None

    def find_entry(self, line_number: int) -> Optional[DiffLineEntry]:
        """Best entry for ``line_number``: additions, then removals, then context."""
        matches = [entry for entry in self.entries if entry.resolved_line_number == line_number]
        for kind in (ChangeKind.ADD, ChangeKind.REMOVE, ChangeKind.CONTEXT):
            for entry in matches:
                if entry.change_kind is kind:
                    return entry
        return None


@dataclass
class LineMapping:
    """Old/new line correspondence for the unchanged lines of one file."""
    new_to_old: Dict[int, int] = field(default_factory=dict)
    old_to_new: Dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PlatformPosition:
    """GitLab diff position for an inline comment."""
    base_sha: str = ""
    start_sha: str = ""
    head_sha: str = ""
    old_path: str = ""
    new_path: str = ""
    old_line: Optional[int] = None
    new_line: Optional[int] = None
    line_code: Optional[str] = None
    position_type: str = "text"

    @property
    def has_line(self) -> bool:
        """Whether at least one positive line number is set."""
        return bool(self.old_line) or bool(self.new_line)

    @property
    def is_complete(self) -> bool:
        """Whether GitLab has everything it needs to anchor an inline comment."""
        return all([
            self.base_sha, self.start_sha, self.head_sha,
            self.old_path, self.new_path,
        ]) and self.has_line

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the ``position`` object of a GitLab discussion request."""
        return {
            "base_sha": self.base_sha,
            "start_sha": self.start_sha,
            "head_sha": self.head_sha,
            "old_path": self.old_path,
            "new_path": self.new_path,
            "position_type": self.position_type,
            "old_line": self.old_line,
            "new_line": self.new_line,
        }


@dataclass(frozen=True)
class FeedbackItem:
    """A single piece of AI review feedback."""
    file_path: str
    line_number: int
    severity: Severity = Severity.SUGGESTION
    title: str = ""
    description: str = ""
    position: Optional[PlatformPosition] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of checking an AI line number against the coordinate tables."""

    @property
    def is_valid(self) -> bool:
        return False


@dataclass(frozen=True)
class Valid(ValidationOutcome):
    """The line number names an actual added or removed line."""

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class CorrectedTo(ValidationOutcome):
    """A context line was referenced; the nearest change line replaces it."""
    line: int
    change_kind: ChangeKind
    rendered_line_number: Optional[int] = None


@dataclass(frozen=True)
class UnresolvedWarning(ValidationOutcome):
    """The line could not be verified.

    ``candidate`` is set when the line lies outside the diff but the file has
    changes; callers decide whether to relocate to it.
    """
    reason: str
    candidate: Optional[CorrectedTo] = None


@dataclass
class AccuracyStats:
    """Counts describing how well AI line numbers matched the diff."""
    total: int = 0
    accurate: int = 0
    corrected: int = 0
    context_line_errors: int = 0
    unmappable: int = 0

    @property
    def accuracy_rate(self) -> Optional[float]:
        if self.total == 0:
            return None
        return self.accurate / self.total

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "accurate": self.accurate,
            "corrected": self.corrected,
            "context_line_errors": self.context_line_errors,
            "unmappable": self.unmappable,
        }


@dataclass
class FileDiff:
    """Per-file diff as returned by the GitLab merge request diffs API."""
    old_path: str
    new_path: str
    diff: str = ""
    new_file: bool = False
    deleted_file: bool = False
    renamed_file: bool = False


@dataclass
class MergeRequestDetails:
    """Merge request metadata needed to anchor and post comments."""
    project_id: int
    mr_iid: int
    base_sha: str
    start_sha: str
    head_sha: str
    web_url: str = ""
    project_path: str = ""
    title: str = ""
    source_branch: str = ""
    target_branch: str = ""
    file_diffs: List[FileDiff] = field(default_factory=list)
    diff_text: str = ""
    coordinate_tables: Dict[str, FileCoordinateTable] = field(default_factory=dict)


@dataclass
class SubmissionResult:
    """Outcome of submitting one feedback item."""
    feedback: FeedbackItem
    state: SubmissionState
    posted_inline: bool = False
    line_code: Optional[str] = None
    response: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None
    fallback_error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.state is SubmissionState.POSTED


@dataclass
class ProcessingStats:
    """Statistics for one publishing run."""
    start_time: float
    end_time: Optional[float] = None
    feedback_received: int = 0
    posted_inline: int = 0
    posted_general: int = 0
    failed: int = 0

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass
class PublishResult:
    """Everything produced by publishing AI feedback to a merge request."""
    mr_details: MergeRequestDetails
    results: List[SubmissionResult] = field(default_factory=list)
    accuracy: AccuracyStats = field(default_factory=AccuracyStats)
    stats: Optional[ProcessingStats] = None

    @property
    def failures(self) -> List[SubmissionResult]:
        return [result for result in self.results if not result.success]

    @property
    def success(self) -> bool:
        return not self.failures
