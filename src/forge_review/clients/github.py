"""
GitHub client

REST v3 implementation of the VCS collaborator for one pull request.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from forge_review.resilience.errors import (
    ConfigError,
    ServiceError,
    error_from_response,
    error_from_transport,
)
from forge_review.resilience.retry import GITHUB_RETRY_CONDITIONS, RetryExecutor, RetryPolicy
from forge_review.review.file_filter import FileFilter
from forge_review.review.models import (
    PullRequestDetails,
    PullRequestFile,
    ReviewComment,
    ReviewEvent,
)

logger = structlog.get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"
SERVICE = "github"

GITHUB_TRANSIENT_STATUS: frozenset[int] = GITHUB_RETRY_CONDITIONS.status_codes

COMMENT_POLICY = RetryPolicy(max_attempts=3, is_retryable=GITHUB_RETRY_CONDITIONS)

FILES_PER_PAGE = 100


class GitHubClient:
    """Talk to the pull request endpoints of the GitHub REST API."""

    def __init__(
        self,
        token: str,
        repository: str,
        pr_number: int,
        api_base: str = GITHUB_API_BASE,
        http_client: httpx.AsyncClient | None = None,
        retry: RetryExecutor | None = None,
    ):
        """
        Initialize the client.

        Args:
            token: Token with pull request write access
            repository: "owner/repo"
            pr_number: Pull request number
            api_base: API root (GitHub Enterprise uses its own)
            http_client: Shared client; one is created when omitted
            retry: Executor for single-comment posts
        """
        if "/" not in repository:
            raise ConfigError(f"Repository must be 'owner/repo', got {repository!r}")

        self.repository = repository
        self.pr_number = pr_number
        self.api_base = api_base.rstrip("/")
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "forge-review",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

        self._client = http_client or httpx.AsyncClient(timeout=30.0)
        self._owns_client = http_client is None
        self._head_sha: str | None = None
        self._retry = retry or RetryExecutor(COMMENT_POLICY)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def _pull_url(self) -> str:
        return f"{self.api_base}/repos/{self.repository}/pulls/{self.pr_number}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return its JSON body, translating failures."""
        try:
            resp = await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
        except httpx.TransportError as e:
            raise error_from_transport(e, service=SERVICE) from e

        if resp.is_error:
            raise error_from_response(
                resp, service=SERVICE, transient_status=GITHUB_TRANSIENT_STATUS
            )

        if not resp.content:
            return None
        return resp.json()

    async def get_pr_details(self) -> PullRequestDetails:
        """Get title, description and head commit of the pull request."""
        data = await self._request("GET", self._pull_url)

        self._head_sha = (data.get("head") or {}).get("sha")
        return PullRequestDetails(
            title=data.get("title") or "",
            body=data.get("body"),
            number=data.get("number", self.pr_number),
            head_sha=self._head_sha,
        )

    async def get_changed_files(
        self, exclude_patterns: list[str]
    ) -> list[PullRequestFile]:
        """Get all changed files, page by page, minus excluded paths."""
        files: list[PullRequestFile] = []
        page = 1

        while True:
            batch = await self._request(
                "GET",
                f"{self._pull_url}/files",
                params={"per_page": FILES_PER_PAGE, "page": page},
            )
            if not batch:
                break

            for item in batch:
                files.append(
                    PullRequestFile(
                        filename=item["filename"],
                        status=item.get("status", "modified"),
                        patch=item.get("patch"),
                    )
                )

            if len(batch) < FILES_PER_PAGE:
                break
            page += 1

        kept, excluded = FileFilter(exclude_patterns).filter(files)
        if excluded:
            logger.info(
                "Excluded files by pattern",
                excluded=len(excluded),
                remaining=len(kept),
            )
        logger.info("Fetched changed files", count=len(kept))
        return kept

    async def _get_head_sha(self) -> str | None:
        if self._head_sha is None:
            await self.get_pr_details()
        return self._head_sha

    async def post_review_comments(self, comments: list[ReviewComment]) -> None:
        """
        Post inline comments one at a time.

        Each post is retried on transient failures. A comment that still
        fails is logged and skipped. Only a batch where every comment failed
        raises, so retrying the batch never duplicates comments.
        """
        if not comments:
            return

        commit_id = await self._get_head_sha()
        url = f"{self._pull_url}/comments"
        posted = 0
        last_error: ServiceError | None = None

        for comment in comments:
            payload = {**comment.to_payload(), "commit_id": commit_id}
            try:
                await self._retry.execute(
                    lambda payload=payload: self._request("POST", url, json=payload),
                    description=f"post_review_comment:{comment.path}",
                )
                posted += 1
            except ServiceError as e:
                last_error = e
                logger.warning(
                    "Failed to post review comment",
                    path=comment.path,
                    line=comment.position,
                    error=str(e),
                )

        logger.info("Posted review comments", posted=posted, total=len(comments))
        if posted == 0 and last_error is not None:
            raise last_error

    async def post_general_comment(self, body: str) -> None:
        """Post a conversation-level comment on the pull request."""
        url = f"{self.api_base}/repos/{self.repository}/issues/{self.pr_number}/comments"
        await self._request("POST", url, json={"body": body})
        logger.info("Posted general comment")

    async def create_review(
        self, comments: list[ReviewComment], body: str, event: ReviewEvent
    ) -> None:
        """Submit a formal review with all inline comments."""
        payload: dict[str, Any] = {
            "body": body,
            "event": event.value,
            "comments": [c.to_payload() for c in comments],
        }
        commit_id = await self._get_head_sha()
        if commit_id:
            payload["commit_id"] = commit_id

        await self._request("POST", f"{self._pull_url}/reviews", json=payload)
        logger.info("Created review", event=event.value, comments=len(comments))
