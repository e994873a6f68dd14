"""Pytest configuration and shared fixtures for forge-review tests."""

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from forge_review.config import ReviewConfig
from forge_review.resilience.retry import RetryExecutor
from forge_review.review.models import (
    PullRequestDetails,
    PullRequestFile,
    ReviewIssue,
    ReviewResult,
    Severity,
)


# =============================================================================
# SAMPLE DIFFS
# =============================================================================

# New-file lines 10, 11, 12 sit at positions 2, 3, 5; position 4 is removed
SIMPLE_PATCH = """\
@@ -5,3 +10,4 @@ def helper():
     context_line = 1
+    added_one = 2
-    removed = 3
+    added_two = 4
"""

TWO_HUNK_PATCH = """\
@@ -1,3 +1,4 @@
 import os
+import sys

 def main():
@@ -20,2 +21,3 @@ def main():
     run()
+    cleanup()
     return 0
"""


# =============================================================================
# CONFIG / COLLABORATORS
# =============================================================================

@pytest.fixture
def review_config() -> ReviewConfig:
    """Configuration suitable for orchestrator tests."""
    return ReviewConfig(
        llm_base_url="https://llm.example.com/v1",
        llm_model="test-model",
        llm_api_key="test-key",
        prompt="Review this code.",
        max_files=50,
        exclude_patterns=[],
        github_token="gh-token",
        repository="octo/widgets",
        pr_number=7,
    )


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def retry_executor(recorded_sleeps: list[float]) -> RetryExecutor:
    """Retry executor that records delays instead of sleeping."""

    async def fake_sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return RetryExecutor(sleep=fake_sleep)


@pytest.fixture
def pr_details() -> PullRequestDetails:
    return PullRequestDetails(
        title="Add widget support",
        body="Adds widgets.",
        number=7,
        head_sha="abc123",
    )


@pytest.fixture
def simple_patch() -> str:
    return SIMPLE_PATCH


@pytest.fixture
def two_hunk_patch() -> str:
    return TWO_HUNK_PATCH


@pytest.fixture
def make_file():
    """Factory for changed files; defaults to a modified file with SIMPLE_PATCH."""

    def _make(name: str, patch: str | None = SIMPLE_PATCH, status: str = "modified") -> PullRequestFile:
        return PullRequestFile(filename=name, status=status, patch=patch)

    return _make


@pytest.fixture
def mock_vcs(pr_details: PullRequestDetails, make_file) -> AsyncMock:
    """VCS collaborator returning one reviewable file."""
    vcs = AsyncMock()
    vcs.get_pr_details.return_value = pr_details
    vcs.get_changed_files.return_value = [make_file("src/widget.py")]
    vcs.post_review_comments.return_value = None
    vcs.post_general_comment.return_value = None
    vcs.create_review.return_value = None
    return vcs


@pytest.fixture
def mock_engine() -> AsyncMock:
    """Review engine reporting one warning on new-file line 11."""
    engine = AsyncMock()
    engine.review_code.return_value = ReviewResult(
        issues=(ReviewIssue(line=11, message="Check this", severity=Severity.WARNING),),
        summary="One concern",
    )
    engine.generate_summary.return_value = "Looks mostly fine."
    return engine


@pytest.fixture(autouse=True)
def captured_logs():
    """Route structlog events into a list instead of stdout."""
    with capture_logs() as logs:
        yield logs
