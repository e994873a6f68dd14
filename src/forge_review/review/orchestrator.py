"""
Review Orchestrator

Runs one pull request review from file fetch to posted comments.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from forge_review.resilience.errors import SetupError
from forge_review.resilience.retry import (
    GITHUB_RETRY_CONDITIONS,
    LLM_RETRY_CONDITIONS,
    RetryExecutor,
    RetryPolicy,
)

from .diff_mapper import DiffLineMapper
from .formatting import build_comment_body, format_approval_body, format_review_body
from .models import (
    AggregateReport,
    CommentPolicy,
    FileOutcome,
    PullRequestDetails,
    PullRequestFile,
    ReviewComment,
    ReviewEvent,
    ReviewIssue,
    RunAccumulator,
)
from .protocols import ReviewEngine, VCSClient

if TYPE_CHECKING:
    from forge_review.config import ReviewConfig

logger = structlog.get_logger(__name__)

NO_FILES_SUMMARY = "No files to review"

# One retry less for the summary; it is cosmetic and has a fallback
ENGINE_REVIEW_POLICY = RetryPolicy(max_attempts=3, is_retryable=LLM_RETRY_CONDITIONS)
ENGINE_SUMMARY_POLICY = RetryPolicy(max_attempts=2, is_retryable=LLM_RETRY_CONDITIONS)
VCS_POLICY = RetryPolicy(max_attempts=3, is_retryable=GITHUB_RETRY_CONDITIONS)


class ReviewOrchestrator:
    """
    Coordinates a single review run.

    Stages:
    1. Setup: fetch PR metadata and the changed file list (fatal on failure)
    2. Per-file review: one engine call per file, strictly sequential
    3. Aggregate: overall summary and statistics
    4. Post: one formal review, or individual comments plus a summary comment
    """

    def __init__(
        self,
        config: ReviewConfig,
        vcs: VCSClient,
        engine: ReviewEngine,
        retry: RetryExecutor | None = None,
        mapper: DiffLineMapper | None = None,
        comment_policy: CommentPolicy | None = None,
        engine_policy: RetryPolicy | None = None,
        summary_policy: RetryPolicy | None = None,
        vcs_policy: RetryPolicy | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Run configuration (prompt, limits, posting strategy)
            vcs: Version-control collaborator
            engine: Generative review collaborator
            retry: Executor wrapping every outbound call
            mapper: Line-to-position mapper
            comment_policy: What issue fields may be rendered into comments
            engine_policy: Retry policy for per-file review calls
            summary_policy: Retry policy for the aggregate summary call
            vcs_policy: Retry policy for VCS calls
        """
        self.config = config
        self.vcs = vcs
        self.engine = engine
        self.retry = retry or RetryExecutor()
        self.mapper = mapper or DiffLineMapper()
        self.comment_policy = comment_policy or CommentPolicy()
        self.engine_policy = engine_policy or ENGINE_REVIEW_POLICY
        self.summary_policy = summary_policy or ENGINE_SUMMARY_POLICY
        self.vcs_policy = vcs_policy or VCS_POLICY

    async def run_review(self) -> AggregateReport:
        """
        Run the complete review process.

        Returns:
            AggregateReport with statistics and the overall summary

        Raises:
            SetupError: PR metadata or changed files could not be fetched
        """
        start_time = time.monotonic()
        logger.info("Starting AI code review")

        pr = await self._fetch_details()
        logger.info("Reviewing PR", title=pr.title, number=pr.number)

        files = await self._fetch_files()

        if not files:
            logger.info(NO_FILES_SUMMARY)
            return AggregateReport.empty(NO_FILES_SUMMARY)

        files_to_review = self._limit_files(files)
        skipped_by_limit = len(files) - len(files_to_review)

        run = RunAccumulator()
        for file in files_to_review:
            await self._review_one(file, pr, run)

        overall_summary = await self._generate_summary(run.outcomes)

        report = AggregateReport.from_outcomes(
            run.outcomes,
            total_files=len(files),
            total_comments=len(run.comments),
            summary=overall_summary,
            files_skipped_by_limit=skipped_by_limit,
            files_skipped=run.skipped,
            files_failed=run.failed,
        )

        await self._post(run, report)

        logger.info(
            "Review completed",
            duration_s=round(time.monotonic() - start_time, 1),
            files_reviewed=report.files_reviewed,
            total_comments=report.total_comments,
            critical=report.critical_issues,
            warnings=report.warnings,
            suggestions=report.suggestions,
            files_failed=report.files_failed,
        )

        return report

    async def _fetch_details(self) -> PullRequestDetails:
        try:
            return await self.retry.execute(
                self.vcs.get_pr_details,
                self.vcs_policy,
                description="get_pr_details",
            )
        except Exception as e:
            raise SetupError(f"Could not fetch pull request details: {e}") from e

    async def _fetch_files(self) -> list[PullRequestFile]:
        exclude = list(self.config.exclude_patterns)
        try:
            return await self.retry.execute(
                lambda: self.vcs.get_changed_files(exclude),
                self.vcs_policy,
                description="get_changed_files",
            )
        except Exception as e:
            raise SetupError(f"Could not fetch changed files: {e}") from e

    def _limit_files(self, files: list[PullRequestFile]) -> list[PullRequestFile]:
        """Keep the first max_files files in fetch order."""
        max_files = self.config.max_files
        if max_files <= 0 or len(files) <= max_files:
            return files

        limited = files[:max_files]
        logger.warning(
            "Limiting files to review",
            reviewing=len(limited),
            skipped=len(files) - len(limited),
        )
        return limited

    async def _review_one(
        self, file: PullRequestFile, pr: PullRequestDetails, run: RunAccumulator
    ) -> None:
        """Review a single file, recording its outcome. Never raises."""
        if not file.is_reviewable:
            logger.info("Skipping file (removed or no patch)", file_path=file.filename)
            run.skipped += 1
            return

        try:
            comments, outcome = await self.review_file(file, pr)
        except Exception as e:
            logger.error("Failed to review file", file_path=file.filename, error=str(e))
            run.failed += 1
            return

        run.comments.extend(comments)
        run.outcomes.append(outcome)

    async def review_file(
        self, file: PullRequestFile, pr: PullRequestDetails
    ) -> tuple[list[ReviewComment], FileOutcome]:
        """
        Review a single file.

        Returns:
            Tuple of (comments, outcome)
        """
        patch = file.patch or ""
        result = await self.retry.execute(
            lambda: self.engine.review_code(
                file.filename,
                patch,
                self.config.prompt,
                pr.title or None,
                pr.body or None,
            ),
            self.engine_policy,
            description=f"review_code:{file.filename}",
        )

        comments = self.create_review_comments(file.filename, list(result.issues), patch)

        outcome = FileOutcome(
            file_path=file.filename,
            summary=result.summary,
            comment_count=len(comments),
        )
        outcome.count(result.issues)

        logger.info(
            "Reviewed file",
            file_path=file.filename,
            issues=len(result.issues),
            comments=len(comments),
        )
        return comments, outcome

    def create_review_comments(
        self, file_path: str, issues: list[ReviewIssue], patch: str
    ) -> list[ReviewComment]:
        """Convert issues into inline comments, dropping lines outside the diff."""
        comments: list[ReviewComment] = []

        for issue in issues:
            position = self.mapper.map_new_line_to_position(patch, issue.line)
            if position is None:
                logger.debug(
                    "Could not map line to diff",
                    file_path=file_path,
                    line=issue.line,
                )
                continue

            comments.append(
                ReviewComment(
                    path=file_path,
                    position=position,
                    body=build_comment_body(issue, self.comment_policy),
                )
            )

        return comments

    async def _generate_summary(self, outcomes: list[FileOutcome]) -> str:
        """Ask the engine for an overall narrative, with a templated fallback."""
        summaries = [o.to_summary() for o in outcomes]
        try:
            return await self.retry.execute(
                lambda: self.engine.generate_summary(summaries, self.config.prompt),
                self.summary_policy,
                description="generate_summary",
            )
        except Exception as e:
            logger.warning("Failed to generate summary", error=str(e))
            return f"Reviewed {len(outcomes)} file(s)"

    async def _post(self, run: RunAccumulator, report: AggregateReport) -> None:
        """Post results using the configured strategy."""
        if report.total_comments == 0:
            await self._post_approval(report.summary)
            return

        body = format_review_body(
            report.summary,
            run.outcomes,
            report.critical_issues,
            report.warnings,
            report.suggestions,
        )

        if self.config.post_as_review:
            await self.retry.execute(
                lambda: self.vcs.create_review(run.comments, body, ReviewEvent.COMMENT),
                self.vcs_policy,
                description="create_review",
            )
        else:
            await self.retry.execute(
                lambda: self.vcs.post_review_comments(run.comments),
                self.vcs_policy,
                description="post_review_comments",
            )
            await self.retry.execute(
                lambda: self.vcs.post_general_comment(body),
                self.vcs_policy,
                description="post_general_comment",
            )

    async def _post_approval(self, summary: str) -> None:
        """Post the no-issues message; a separate path from the issue formatter."""
        body = format_approval_body(summary)

        if self.config.post_as_review:
            await self.retry.execute(
                lambda: self.vcs.create_review([], body, ReviewEvent.APPROVE),
                self.vcs_policy,
                description="create_review",
            )
        else:
            await self.retry.execute(
                lambda: self.vcs.post_general_comment(body),
                self.vcs_policy,
                description="post_general_comment",
            )
