"""
Data models for the review pipeline.

Defines all types used between fetching a pull request and posting comments.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SeverityBucket(str, Enum):
    """Counting bucket used for per-file and aggregate statistics."""

    CRITICAL = "critical"
    WARNING = "warning"
    SUGGESTION = "suggestion"  # suggestion + info


class Severity(str, Enum):
    """How severe is the issue."""

    CRITICAL = "critical"
    WARNING = "warning"
    SUGGESTION = "suggestion"
    INFO = "info"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Coerce engine output into a severity, defaulting to INFO."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.INFO

    @property
    def bucket(self) -> SeverityBucket:
        if self is Severity.CRITICAL:
            return SeverityBucket.CRITICAL
        if self is Severity.WARNING:
            return SeverityBucket.WARNING
        return SeverityBucket.SUGGESTION


class Category(str, Enum):
    """What kind of problem the issue describes."""

    SECURITY = "security"
    PERFORMANCE = "performance"
    MAINTAINABILITY = "maintainability"
    STYLE = "style"
    BEST_PRACTICE = "best-practice"
    BUG = "bug"
    LOGIC = "logic"
    DOCUMENTATION = "documentation"
    TESTING = "testing"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "Category | None":
        """Coerce engine output into a category.

        Missing or blank values give None, unknown labels give OTHER.
        """
        if not isinstance(value, str) or not value.strip():
            return None
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(normalized)
        except ValueError:
            return cls.OTHER


class ReviewEvent(str, Enum):
    """Event attached to a formal pull request review."""

    COMMENT = "COMMENT"
    APPROVE = "APPROVE"


@dataclass(frozen=True)
class ReviewIssue:
    """A single finding reported by the review engine."""

    line: int
    message: str
    severity: Severity = Severity.INFO
    category: Category | None = None
    suggestion: str | None = None  # kept for consumers, never rendered by default


@dataclass(frozen=True)
class ReviewResult:
    """Validated engine output for one file."""

    issues: tuple[ReviewIssue, ...] = ()
    summary: str = ""


@dataclass(frozen=True)
class ReviewComment:
    """An inline comment anchored at a diff position."""

    path: str
    position: int
    body: str
    side: str = "RIGHT"

    def to_payload(self) -> dict[str, Any]:
        """Shape expected by the review comment API."""
        return {
            "path": self.path,
            "line": self.position,
            "body": self.body,
            "side": self.side,
        }


@dataclass(frozen=True)
class PullRequestDetails:
    """Metadata of the pull request under review."""

    title: str
    body: str | None = None
    number: int | None = None
    head_sha: str | None = None


@dataclass(frozen=True)
class PullRequestFile:
    """A changed file as reported by the VCS."""

    filename: str
    status: str = "modified"  # added, removed, modified, renamed
    patch: str | None = None

    @property
    def is_reviewable(self) -> bool:
        return self.status != "removed" and bool(self.patch)


@dataclass(frozen=True)
class FileSummary:
    """Input line for the aggregate summary call."""

    file_path: str
    summary: str
    issue_count: int


@dataclass
class FileOutcome:
    """Review outcome for a single file."""

    file_path: str
    summary: str = ""
    comment_count: int = 0
    critical_count: int = 0
    warning_count: int = 0
    suggestion_count: int = 0

    def count(self, issues: "tuple[ReviewIssue, ...] | list[ReviewIssue]") -> None:
        """Tally issues into the severity buckets."""
        for issue in issues:
            bucket = issue.severity.bucket
            if bucket is SeverityBucket.CRITICAL:
                self.critical_count += 1
            elif bucket is SeverityBucket.WARNING:
                self.warning_count += 1
            else:
                self.suggestion_count += 1

    def to_summary(self) -> FileSummary:
        return FileSummary(
            file_path=self.file_path,
            summary=self.summary,
            issue_count=self.comment_count,
        )


@dataclass(frozen=True)
class AggregateReport:
    """Complete run output."""

    total_files: int = 0
    files_reviewed: int = 0
    total_comments: int = 0
    critical_issues: int = 0
    warnings: int = 0
    suggestions: int = 0
    summary: str = ""

    # Diagnostics
    files_skipped_by_limit: int = 0
    files_skipped: int = 0  # removed or no patch
    files_failed: int = 0

    @classmethod
    def empty(cls, summary: str = "No files to review") -> "AggregateReport":
        return cls(summary=summary)

    @classmethod
    def from_outcomes(
        cls,
        outcomes: list[FileOutcome],
        *,
        total_files: int,
        total_comments: int,
        summary: str,
        files_skipped_by_limit: int = 0,
        files_skipped: int = 0,
        files_failed: int = 0,
    ) -> "AggregateReport":
        """Sum per-file outcomes into the run report."""
        return cls(
            total_files=total_files,
            files_reviewed=len(outcomes),
            total_comments=total_comments,
            critical_issues=sum(o.critical_count for o in outcomes),
            warnings=sum(o.warning_count for o in outcomes),
            suggestions=sum(o.suggestion_count for o in outcomes),
            summary=summary,
            files_skipped_by_limit=files_skipped_by_limit,
            files_skipped=files_skipped,
            files_failed=files_failed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "total_files": self.total_files,
            "files_reviewed": self.files_reviewed,
            "total_comments": self.total_comments,
            "critical_issues": self.critical_issues,
            "warnings": self.warnings,
            "suggestions": self.suggestions,
            "summary": self.summary,
            "files_skipped_by_limit": self.files_skipped_by_limit,
            "files_skipped": self.files_skipped,
            "files_failed": self.files_failed,
        }


@dataclass(frozen=True)
class CommentPolicy:
    """What parts of an issue may be rendered into a posted comment.

    The engine is unreliable at producing line-exact replacement code, so
    suggestions stay out of comment bodies unless explicitly enabled.
    """

    render_suggestions: bool = False


@dataclass
class RunAccumulator:
    """Mutable per-run state owned by the orchestrator."""

    comments: list[ReviewComment] = field(default_factory=list)
    outcomes: list[FileOutcome] = field(default_factory=list)
    skipped: int = 0
    failed: int = 0
