"""
Data models for the PR Reporter.

This module contains the data classes and enums shared by the reconciliation
engine, the channel reporters and the GitHub transport layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Severity(Enum):
    """Severity level of a feedback item."""
    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


class Channel(Enum):
    """Presentation channels a reporter can post to."""
    CHECK_RUN = "check_run"
    COMMENT = "comment"
    REVIEW = "review"


class CommentMode(Enum):
    """How previously posted comments are treated."""
    UPDATE = "update"    # update the tracked comment in place
    APPEND = "append"    # always post a new comment, keep history
    REPLACE = "replace"  # delete previous comments, then post fresh


class OutOfRangeStrategy(Enum):
    """Where line comments go when their line is not part of the diff."""
    DISMISS = "dismiss"
    FALLBACK_TO_COMMENT = "fallback_to_comment"
    FALLBACK_TO_CHECK_RUN = "fallback_to_check_run"


class OverflowStrategy(Enum):
    """How check run annotations beyond one request batch are handled."""
    TRUNCATE = "truncate"
    MULTIPLE_RUNS = "multiple_runs"
    FALLBACK_TO_COMMENT = "fallback_to_comment"


class CheckRunStatus(Enum):
    """Check run status values accepted by GitHub."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckRunConclusion(Enum):
    """Check run conclusion values accepted by GitHub."""
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"


def _to_int(value: Any, path: str, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Feedback item for {path} has invalid '{field_name}': {value!r}")


@dataclass(frozen=True)
class FeedbackItem:
    """A single piece of feedback to post on a pull request."""
    path: str
    line: int
    severity: Severity
    message: str
    end_line: Optional[int] = None
    column: Optional[int] = None
    title: Optional[str] = None
    sticky: bool = False

    @property
    def tracking_identity(self) -> Tuple[str, int, str]:
        """Identity used to recognise the same item across runs.

        Severity and title are deliberately left out so a re-run that only
        changes the severity still maps onto the same item.
        """
        return (self.path, self.line, self.message)

    @property
    def is_failure(self) -> bool:
        return self.severity is Severity.FAILURE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FeedbackItem':
        """Build an item from the JSON shape accepted by the CLI."""
        if not isinstance(data, dict):
            raise ValueError(f"Feedback item must be an object, got {type(data).__name__}")

        path = data.get("path") or data.get("file")
        if not path:
            raise ValueError("Feedback item is missing 'path'")
        if "line" not in data:
            raise ValueError(f"Feedback item for {path} is missing 'line'")
        message = data.get("message")
        if not message:
            raise ValueError(f"Feedback item for {path}:{data['line']} is missing 'message'")

        raw_level = str(data.get("severity") or data.get("level") or "warning").strip().lower()
        if raw_level == "error":
            raw_level = "failure"
        try:
            severity = Severity(raw_level)
        except ValueError:
            raise ValueError(f"Unknown severity '{raw_level}' for {path}:{data['line']}")

        end_line = data.get("end_line", data.get("endLine"))
        column = data.get("column")
        return cls(
            path=str(path),
            line=_to_int(data["line"], path, "line"),
            severity=severity,
            message=str(message),
            end_line=_to_int(end_line, path, "end_line") if end_line is not None else None,
            column=_to_int(column, path, "column") if column is not None else None,
            title=data.get("title") or None,
            sticky=bool(data.get("sticky", False)),
        )


@dataclass
class PullRequestFile:
    """A file changed in a pull request, as listed by GitHub."""
    filename: str
    status: str = "modified"
    patch: Optional[str] = None
    previous_filename: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    sha: Optional[str] = None

    @property
    def is_renamed(self) -> bool:
        return bool(self.previous_filename) and self.previous_filename != self.filename


@dataclass
class TrackedComment:
    """A comment that lives on GitHub and may carry one of our markers."""
    id: int
    body: str
    path: Optional[str] = None
    line: Optional[int] = None
    side: Optional[str] = None
    position: Optional[int] = None
    url: Optional[str] = None


@dataclass
class CheckRunInfo:
    """The subset of a GitHub check run the reporter cares about."""
    id: int
    name: str
    external_id: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    url: Optional[str] = None


@dataclass
class ReportResult:
    """Outcome of a report, summary or cleanup call."""
    posted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    dismissed: int = 0
    check_run_id: Optional[int] = None
    check_run_url: Optional[str] = None
    comment_id: Optional[int] = None
    comment_url: Optional[str] = None

    def merge(self, other: Optional['ReportResult']) -> 'ReportResult':
        """Combine counts with another result; identifiers already set here win."""
        if other is None:
            return self
        return ReportResult(
            posted=self.posted + other.posted,
            updated=self.updated + other.updated,
            deleted=self.deleted + other.deleted,
            skipped=self.skipped + other.skipped,
            dismissed=self.dismissed + other.dismissed,
            check_run_id=self.check_run_id if self.check_run_id is not None else other.check_run_id,
            check_run_url=self.check_run_url or other.check_run_url,
            comment_id=self.comment_id if self.comment_id is not None else other.comment_id,
            comment_url=self.comment_url or other.comment_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "posted": self.posted,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "dismissed": self.dismissed,
            "check_run_id": self.check_run_id,
            "check_run_url": self.check_run_url,
            "comment_id": self.comment_id,
            "comment_url": self.comment_url,
        }
