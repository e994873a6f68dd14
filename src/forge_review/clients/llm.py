"""
LLM client

Review engine backed by any OpenAI-compatible chat completions endpoint.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from forge_review.resilience.errors import (
    FatalServiceError,
    ServiceError,
    error_from_response,
    error_from_transport,
)
from forge_review.resilience.retry import LLM_RETRY_CONDITIONS
from forge_review.review.models import FileSummary, ReviewResult
from forge_review.review.response_parser import ReviewResponseValidator

logger = structlog.get_logger(__name__)

SERVICE = "llm"

LLM_TRANSIENT_STATUS: frozenset[int] = LLM_RETRY_CONDITIONS.status_codes

REQUEST_TIMEOUT = 120.0  # seconds

REVIEW_TEMPERATURE = 0.1
REVIEW_MAX_TOKENS = 4000
SUMMARY_TEMPERATURE = 0.3
SUMMARY_MAX_TOKENS = 500

EMPTY_REVIEW_SUMMARY = "No review generated"
EMPTY_SUMMARY = "Review completed"

_STATUS_HINTS = {
    429: "Rate limit exceeded. Consider increasing retry delays.",
    401: "Authentication failed. Check your API key.",
    400: "Bad request. The prompt may be too long or malformed.",
}


def normalize_base_url(base_url: str) -> str:
    """Make sure the base URL ends in /v1."""
    base = base_url.rstrip("/")
    if base.endswith("/v1"):
        return base
    return f"{base}/v1"


def number_diff_lines(diff: str) -> str:
    """Prefix each diff line with a right-aligned reference number."""
    return "\n".join(
        f"{index:>4}: {line}" for index, line in enumerate(diff.split("\n"), start=1)
    )


class LLMClient:
    """Generative review engine over the chat completions API."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        http_client: httpx.AsyncClient | None = None,
        validator: ReviewResponseValidator | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Bearer token for the endpoint
            base_url: Endpoint root, with or without the /v1 suffix
            model: Model name sent with every request
            http_client: Shared client; one is created when omitted
            validator: Parser for review responses
        """
        self.base_url = normalize_base_url(base_url)
        self.model = model
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._client = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        self._owns_client = http_client is None
        self.validator = validator or ReviewResponseValidator()

        logger.info("LLM client initialized", model=model, base_url=self.base_url)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        """Send one chat completion request and return the decoded body."""
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            resp = await self._client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers,
                json=payload,
                timeout=REQUEST_TIMEOUT,
            )
        except httpx.TransportError as e:
            raise error_from_transport(e, service=SERVICE) from e

        if resp.is_error:
            raise error_from_response(
                resp, service=SERVICE, transient_status=LLM_TRANSIENT_STATUS
            )

        try:
            return resp.json()
        except ValueError as e:
            raise FatalServiceError(
                f"{SERVICE} returned a non-JSON body", service=SERVICE
            ) from e

    @staticmethod
    def _content_of(body: dict[str, Any]) -> str:
        choices = body.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    async def review_code(
        self,
        file_path: str,
        diff_text: str,
        system_prompt: str,
        pr_title: str | None = None,
        pr_description: str | None = None,
    ) -> ReviewResult:
        """Review one file's diff."""
        user_prompt = self.build_review_prompt(file_path, diff_text, pr_title, pr_description)

        logger.debug(
            "Reviewing file",
            file_path=file_path,
            prompt_chars=len(system_prompt) + len(user_prompt),
        )

        try:
            body = await self._complete(
                [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=REVIEW_TEMPERATURE,
                max_tokens=REVIEW_MAX_TOKENS,
            )
        except ServiceError as e:
            self._log_error(e, file_path)
            raise

        content = self._content_of(body)
        logger.debug("Raw LLM response", file_path=file_path, content=content or "(empty)")

        usage = body.get("usage")
        if usage:
            logger.debug(
                "Token usage",
                prompt=usage.get("prompt_tokens"),
                completion=usage.get("completion_tokens"),
                total=usage.get("total_tokens"),
            )

        if not content:
            logger.warning("Empty response from LLM", file_path=file_path)
            return ReviewResult(issues=(), summary=EMPTY_REVIEW_SUMMARY)

        return self.validator.parse(content, file_path)

    def build_review_prompt(
        self,
        file_path: str,
        diff_text: str,
        pr_title: str | None = None,
        pr_description: str | None = None,
    ) -> str:
        """Build the user prompt for a single file."""
        context = [f"File: {file_path}"]
        if pr_title:
            context.append(f"PR Title: {pr_title}")
        if pr_description:
            context.append(f"PR Description: {pr_description}")

        return "\n".join([
            *context,
            "",
            "Code Changes (diff with line numbers):",
            number_diff_lines(diff_text),
            "",
            "IMPORTANT: The line numbers shown above are for reference only. When providing feedback:",
            '- The "line" field should be the actual line number in the new file',
            "- If you suggest a fix, the suggestion MUST replace the exact line you're commenting on",
            "",
            "Please review the code changes above and provide feedback in the specified JSON format.",
        ])

    async def generate_summary(
        self, file_summaries: list[FileSummary], system_prompt: str
    ) -> str:
        """Summarize all per-file results in a few sentences."""
        lines = "\n".join(
            f"- {s.file_path}: {s.issue_count} issue(s) - {s.summary}" for s in file_summaries
        )
        summary_prompt = (
            "Please provide a concise overall summary of the following code review results:\n\n"
            f"{lines}\n\n"
            "Provide a brief overall assessment (2-3 sentences) of the PR quality "
            "and any major concerns."
        )

        body = await self._complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": summary_prompt},
            ],
            temperature=SUMMARY_TEMPERATURE,
            max_tokens=SUMMARY_MAX_TOKENS,
        )
        return self._content_of(body).strip() or EMPTY_SUMMARY

    def _log_error(self, error: ServiceError, file_path: str) -> None:
        logger.error(
            "LLM API error",
            file_path=file_path,
            status=error.status_code,
            error=str(error),
        )
        hint = _STATUS_HINTS.get(error.status_code or 0)
        if hint:
            logger.error(hint, file_path=file_path)
