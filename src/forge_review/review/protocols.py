"""Collaborator interfaces consumed by the review orchestrator."""

from typing import Protocol

from .models import (
    FileSummary,
    PullRequestDetails,
    PullRequestFile,
    ReviewComment,
    ReviewEvent,
    ReviewResult,
)


class VCSClient(Protocol):
    """Protocol for the hosting version-control service."""

    async def get_pr_details(self) -> PullRequestDetails:
        """Get title and description of the pull request."""
        ...

    async def get_changed_files(
        self, exclude_patterns: list[str]
    ) -> list[PullRequestFile]:
        """Get changed files in fetch order, minus excluded paths.

        Args:
            exclude_patterns: Glob patterns of paths to leave out

        Returns:
            Changed files with their patch text
        """
        ...

    async def post_review_comments(self, comments: list[ReviewComment]) -> None:
        """Post inline comments one by one."""
        ...

    async def post_general_comment(self, body: str) -> None:
        """Post a conversation-level comment."""
        ...

    async def create_review(
        self, comments: list[ReviewComment], body: str, event: ReviewEvent
    ) -> None:
        """Submit one formal review carrying all comments.

        Args:
            comments: Inline comments (may be empty)
            body: Review body
            event: COMMENT or APPROVE
        """
        ...


class ReviewEngine(Protocol):
    """Protocol for the generative review engine."""

    async def review_code(
        self,
        file_path: str,
        diff_text: str,
        system_prompt: str,
        pr_title: str | None = None,
        pr_description: str | None = None,
    ) -> ReviewResult:
        """Review one file's diff."""
        ...

    async def generate_summary(
        self, file_summaries: list[FileSummary], system_prompt: str
    ) -> str:
        """Produce a short narrative over all per-file results."""
        ...
