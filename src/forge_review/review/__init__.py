"""
Review Module

Maps model feedback onto diff positions and drives one review run.
"""

from .models import (
    AggregateReport,
    Category,
    CommentPolicy,
    FileOutcome,
    PullRequestDetails,
    PullRequestFile,
    ReviewComment,
    ReviewEvent,
    ReviewIssue,
    ReviewResult,
    Severity,
)
from .diff_mapper import DiffLineMapper, map_new_line_to_position
from .response_parser import ReviewResponseValidator, parse_review_response
from .file_filter import FileFilter
from .orchestrator import ReviewOrchestrator

__all__ = [
    "AggregateReport",
    "Category",
    "CommentPolicy",
    "FileOutcome",
    "PullRequestDetails",
    "PullRequestFile",
    "ReviewComment",
    "ReviewEvent",
    "ReviewIssue",
    "ReviewResult",
    "Severity",
    "DiffLineMapper",
    "map_new_line_to_position",
    "ReviewResponseValidator",
    "parse_review_response",
    "FileFilter",
    "ReviewOrchestrator",
]
