"""
Tests for ReviewOrchestrator.

Collaborators are AsyncMock fakes; retries use a recording sleep so no test
waits on real delays.
"""

import dataclasses
from unittest.mock import AsyncMock

import pytest

from forge_review.resilience.errors import (
    FatalServiceError,
    ServiceError,
    SetupError,
    TransientServiceError,
)
from forge_review.resilience.retry import RetryableConditions, RetryPolicy
from forge_review.review.models import (
    Category,
    CommentPolicy,
    ReviewEvent,
    ReviewIssue,
    ReviewResult,
    Severity,
)
from forge_review.review.orchestrator import ReviewOrchestrator


@pytest.fixture
def orchestrator(review_config, mock_vcs, mock_engine, retry_executor) -> ReviewOrchestrator:
    return ReviewOrchestrator(review_config, mock_vcs, mock_engine, retry=retry_executor)


# =============================================================================
# Setup stage
# =============================================================================

class TestSetup:
    @pytest.mark.asyncio
    async def test_zero_files(self, orchestrator, mock_vcs, mock_engine) -> None:
        mock_vcs.get_changed_files.return_value = []

        report = await orchestrator.run_review()

        assert report.total_files == 0
        assert report.files_reviewed == 0
        assert report.total_comments == 0
        assert report.summary == "No files to review"
        mock_engine.review_code.assert_not_awaited()
        mock_engine.generate_summary.assert_not_awaited()
        mock_vcs.create_review.assert_not_awaited()
        mock_vcs.post_general_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exclude_patterns_passed_to_vcs(self, orchestrator, review_config, mock_vcs) -> None:
        review_config.exclude_patterns = ["*.lock"]

        await orchestrator.run_review()

        mock_vcs.get_changed_files.assert_awaited_once_with(["*.lock"])

    @pytest.mark.asyncio
    async def test_details_failure_is_setup_error(self, orchestrator, mock_vcs) -> None:
        mock_vcs.get_pr_details.side_effect = FatalServiceError("github returned 404", status_code=404)

        with pytest.raises(SetupError):
            await orchestrator.run_review()

        mock_vcs.get_changed_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_files_failure_after_retries(self, orchestrator, mock_vcs, recorded_sleeps) -> None:
        mock_vcs.get_changed_files.side_effect = TransientServiceError("github returned 502")

        with pytest.raises(SetupError):
            await orchestrator.run_review()

        assert mock_vcs.get_changed_files.await_count == 3
        assert recorded_sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_transient_details_failure_recovers(self, orchestrator, mock_vcs, pr_details) -> None:
        mock_vcs.get_pr_details.side_effect = [TransientServiceError("github returned 503"), pr_details]

        report = await orchestrator.run_review()

        assert report.files_reviewed == 1


# =============================================================================
# Per-file review
# =============================================================================

class TestFileLoop:
    @pytest.mark.asyncio
    async def test_max_files_limits_review(self, orchestrator, review_config, mock_vcs, mock_engine, make_file) -> None:
        review_config.max_files = 2
        mock_vcs.get_changed_files.return_value = [make_file(f"f{i}.py") for i in range(5)]

        report = await orchestrator.run_review()

        reviewed = [call.args[0] for call in mock_engine.review_code.await_args_list]
        assert reviewed == ["f0.py", "f1.py"]
        assert report.total_files == 5
        assert report.files_reviewed == 2
        assert report.files_skipped_by_limit == 3
        assert report.files_failed == 0

    @pytest.mark.asyncio
    async def test_zero_max_files_is_unlimited(self, orchestrator, review_config, mock_vcs, mock_engine, make_file) -> None:
        review_config.max_files = 0
        mock_vcs.get_changed_files.return_value = [make_file(f"f{i}.py") for i in range(4)]

        report = await orchestrator.run_review()

        assert mock_engine.review_code.await_count == 4
        assert report.files_skipped_by_limit == 0

    @pytest.mark.asyncio
    async def test_removed_and_binary_files_skipped(self, orchestrator, mock_vcs, mock_engine, make_file) -> None:
        mock_vcs.get_changed_files.return_value = [
            make_file("gone.py", status="removed"),
            make_file("logo.png", patch=None, status="added"),
            make_file("kept.py"),
        ]

        report = await orchestrator.run_review()

        mock_engine.review_code.assert_awaited_once()
        assert mock_engine.review_code.await_args.args[0] == "kept.py"
        assert report.files_skipped == 2
        assert report.files_reviewed == 1

    @pytest.mark.asyncio
    async def test_one_file_failure_does_not_stop_run(self, orchestrator, mock_vcs, mock_engine, make_file) -> None:
        mock_vcs.get_changed_files.return_value = [make_file("bad.py"), make_file("good.py")]
        good = ReviewResult(
            issues=(ReviewIssue(line=10, message="ok", severity=Severity.CRITICAL),),
            summary="fine",
        )

        async def review(file_path, *args):
            if file_path == "bad.py":
                raise FatalServiceError("llm returned 400", status_code=400)
            return good

        mock_engine.review_code.side_effect = review

        report = await orchestrator.run_review()

        assert report.files_failed == 1
        assert report.files_reviewed == 1
        assert report.total_comments == 1
        assert report.critical_issues == 1

    @pytest.mark.asyncio
    async def test_engine_retried_on_transient_error(self, orchestrator, mock_engine, recorded_sleeps) -> None:
        result = mock_engine.review_code.return_value
        mock_engine.review_code.side_effect = [
            TransientServiceError("llm returned 429", status_code=429),
            TransientServiceError("llm returned 503", status_code=503),
            result,
        ]

        report = await orchestrator.run_review()

        assert mock_engine.review_code.await_count == 3
        assert recorded_sleeps == [1.0, 2.0]
        assert report.files_reviewed == 1

    @pytest.mark.asyncio
    async def test_engine_receives_prompt_and_pr_context(self, orchestrator, mock_engine, simple_patch) -> None:
        await orchestrator.run_review()

        mock_engine.review_code.assert_awaited_once_with(
            "src/widget.py",
            simple_patch,
            "Review this code.",
            "Add widget support",
            "Adds widgets.",
        )


# =============================================================================
# Comment construction
# =============================================================================

class TestComments:
    def test_unmapped_issues_dropped(self, orchestrator, simple_patch) -> None:
        issues = [
            ReviewIssue(line=11, message="mapped"),
            ReviewIssue(line=99, message="outside diff"),
        ]
        comments = orchestrator.create_review_comments("a.py", issues, simple_patch)

        assert len(comments) == 1
        assert comments[0].path == "a.py"
        assert comments[0].position == 3

    def test_duplicate_positions_kept(self, orchestrator, simple_patch) -> None:
        issues = [
            ReviewIssue(line=12, message="first"),
            ReviewIssue(line=12, message="second"),
        ]
        comments = orchestrator.create_review_comments("a.py", issues, simple_patch)

        assert [c.position for c in comments] == [5, 5]

    def test_suggestion_not_rendered(self, orchestrator, simple_patch) -> None:
        issue = ReviewIssue(
            line=10,
            message="Use a constant",
            severity=Severity.SUGGESTION,
            category=Category.MAINTAINABILITY,
            suggestion="LIMIT = 10",
        )
        comments = orchestrator.create_review_comments("a.py", [issue], simple_patch)

        assert comments[0].body == "\U0001f4a1 **MAINTAINABILITY**\n\nUse a constant"

    def test_comment_policy_can_render_suggestion(self, review_config, mock_vcs, mock_engine, simple_patch) -> None:
        orchestrator = ReviewOrchestrator(
            review_config, mock_vcs, mock_engine, comment_policy=CommentPolicy(render_suggestions=True)
        )
        issue = ReviewIssue(line=10, message="m", suggestion="LIMIT = 10")
        comments = orchestrator.create_review_comments("a.py", [issue], simple_patch)

        assert "LIMIT = 10" in comments[0].body

    @pytest.mark.asyncio
    async def test_counts_include_unmapped_issues(self, orchestrator, mock_engine) -> None:
        mock_engine.review_code.return_value = ReviewResult(
            issues=(
                ReviewIssue(line=11, message="a", severity=Severity.WARNING),
                ReviewIssue(line=500, message="b", severity=Severity.CRITICAL),
            ),
            summary="two",
        )

        report = await orchestrator.run_review()

        assert report.total_comments == 1
        assert report.warnings == 1
        assert report.critical_issues == 1


# =============================================================================
# Summary and posting
# =============================================================================

class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_from_engine(self, orchestrator, mock_engine) -> None:
        report = await orchestrator.run_review()

        assert report.summary == "Looks mostly fine."
        summaries, prompt = mock_engine.generate_summary.await_args.args
        assert [s.file_path for s in summaries] == ["src/widget.py"]
        assert summaries[0].issue_count == 1
        assert prompt == "Review this code."

    @pytest.mark.asyncio
    async def test_summary_fallback(self, orchestrator, mock_engine, recorded_sleeps) -> None:
        mock_engine.generate_summary.side_effect = TransientServiceError("llm returned 502")

        report = await orchestrator.run_review()

        assert report.summary == "Reviewed 1 file(s)"
        assert mock_engine.generate_summary.await_count == 2


class TestPosting:
    @pytest.mark.asyncio
    async def test_formal_review(self, orchestrator, mock_vcs) -> None:
        await orchestrator.run_review()

        mock_vcs.create_review.assert_awaited_once()
        comments, body, event = mock_vcs.create_review.await_args.args
        assert len(comments) == 1
        assert event is ReviewEvent.COMMENT
        assert body.startswith("## AI Code Review")
        mock_vcs.post_review_comments.assert_not_awaited()
        mock_vcs.post_general_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_individual_comments(self, review_config, mock_vcs, mock_engine, retry_executor) -> None:
        config = dataclasses.replace(review_config, post_as_review=False)
        orchestrator = ReviewOrchestrator(config, mock_vcs, mock_engine, retry=retry_executor)

        await orchestrator.run_review()

        mock_vcs.post_review_comments.assert_awaited_once()
        mock_vcs.post_general_comment.assert_awaited_once()
        assert mock_vcs.post_general_comment.await_args.args[0].startswith("## AI Code Review")
        mock_vcs.create_review.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approval_as_review(self, orchestrator, mock_vcs, mock_engine) -> None:
        mock_engine.review_code.return_value = ReviewResult(issues=(), summary="clean")

        report = await orchestrator.run_review()

        assert report.total_comments == 0
        comments, body, event = mock_vcs.create_review.await_args.args
        assert comments == []
        assert event is ReviewEvent.APPROVE
        assert "**No issues found!**" in body

    @pytest.mark.asyncio
    async def test_approval_as_comment(self, review_config, mock_vcs, mock_engine, retry_executor) -> None:
        config = dataclasses.replace(review_config, post_as_review=False)
        orchestrator = ReviewOrchestrator(config, mock_vcs, mock_engine, retry=retry_executor)
        mock_engine.review_code.return_value = ReviewResult(issues=(), summary="clean")

        await orchestrator.run_review()

        mock_vcs.post_general_comment.assert_awaited_once()
        assert "AI Code Review Complete" in mock_vcs.post_general_comment.await_args.args[0]
        mock_vcs.post_review_comments.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_posting_failure_propagates(self, orchestrator, mock_vcs) -> None:
        mock_vcs.create_review.side_effect = FatalServiceError("github returned 422", status_code=422)

        with pytest.raises(FatalServiceError):
            await orchestrator.run_review()

        mock_vcs.create_review.assert_awaited_once()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_report_fields(self, orchestrator, mock_vcs, make_file) -> None:
        mock_vcs.get_changed_files.return_value = [make_file("a.py"), make_file("b.py")]

        report = await orchestrator.run_review()

        assert report.to_dict() == {
            "total_files": 2,
            "files_reviewed": 2,
            "total_comments": 2,
            "critical_issues": 0,
            "warnings": 2,
            "suggestions": 0,
            "summary": "Looks mostly fine.",
            "files_skipped_by_limit": 0,
            "files_skipped": 0,
            "files_failed": 0,
        }



class TestRetryVocabularies:
    @pytest.mark.asyncio
    async def test_server_error_retried_for_github(self, orchestrator, mock_vcs, pr_details, recorded_sleeps) -> None:
        mock_vcs.get_pr_details.side_effect = [ServiceError("github returned 500", status_code=500), pr_details]

        report = await orchestrator.run_review()

        assert mock_vcs.get_pr_details.await_count == 2
        assert recorded_sleeps == [1.0]
        assert report.files_reviewed == 1

    @pytest.mark.asyncio
    async def test_server_error_not_retried_for_engine(self, orchestrator, mock_engine) -> None:
        mock_engine.review_code.side_effect = ServiceError("llm returned 500", status_code=500)

        report = await orchestrator.run_review()

        assert mock_engine.review_code.await_count == 1
        assert report.files_failed == 1
        assert report.files_reviewed == 0

    @pytest.mark.asyncio
    async def test_injected_policy_replaces_vocabulary(self, review_config, mock_vcs, mock_engine, retry_executor) -> None:
        policy = RetryPolicy(max_attempts=2, is_retryable=RetryableConditions(status_codes=frozenset({500})))
        orchestrator = ReviewOrchestrator(
            review_config, mock_vcs, mock_engine, retry=retry_executor, engine_policy=policy
        )
        mock_engine.review_code.side_effect = ServiceError("llm returned 500", status_code=500)

        await orchestrator.run_review()

        assert mock_engine.review_code.await_count == 2
