"""
Review Response Validator

Turns the engine's raw text into a ReviewResult. The payload comes from a
generative model with no schema guarantee, so nothing here may raise.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, StrictInt, ValidationError, field_validator

from .models import Category, ReviewIssue, ReviewResult, Severity

logger = structlog.get_logger(__name__)

PARSE_FAILURE_SUMMARY = "Failed to parse review response"
MISSING_REVIEWS_SUMMARY = "Review completed"

# Markdown fences the model likes to wrap JSON in
_FENCE = re.compile(r"```(?:json)?\n?|\n?```", re.IGNORECASE)


class IssuePayload(BaseModel):
    """One entry of the `reviews` array."""

    model_config = ConfigDict(extra="ignore")

    line: StrictInt
    message: str
    severity: Severity = Severity.INFO
    category: Category | None = None
    suggestion: str | None = None

    @field_validator("line", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("line must be an integer")
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _require_message(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("message must be a non-empty string")
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        return Severity.parse(value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category | None:
        return Category.parse(value)

    @field_validator("suggestion", mode="before")
    @classmethod
    def _coerce_suggestion(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value
        return None

    def to_issue(self) -> ReviewIssue:
        return ReviewIssue(
            line=self.line,
            message=self.message,
            severity=self.severity,
            category=self.category,
            suggestion=self.suggestion,
        )


class ResponseEnvelope(BaseModel):
    """Top-level object the engine is asked to produce."""

    model_config = ConfigDict(extra="ignore")

    reviews: list[Any]
    summary: str | None = None

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


@dataclass(frozen=True)
class WellFormed:
    """The payload matched the expected shape."""

    result: ReviewResult
    dropped: int = 0


@dataclass(frozen=True)
class Malformed:
    """The payload could not be used; carries the reason for diagnostics."""

    reason: str
    summary: str
    undecodable: bool = False


ParseOutcome = WellFormed | Malformed


class ReviewResponseValidator:
    """Decode and validate engine output."""

    def strip_fences(self, raw_text: str) -> str:
        """Remove markdown code fences around the JSON payload."""
        return _FENCE.sub("", raw_text).strip()

    def decode(self, raw_text: str, file_path: str = "") -> ParseOutcome:
        """
        Decode raw engine text into a tagged outcome.

        Args:
            raw_text: Text returned by the engine
            file_path: File the review was for (diagnostics only)

        Returns:
            WellFormed with the validated result, or Malformed with a reason
        """
        cleaned = self.strip_fences(raw_text or "")

        try:
            payload = json.loads(cleaned)
        except (ValueError, RecursionError) as e:
            return Malformed(
                reason=f"invalid JSON: {e}",
                summary=PARSE_FAILURE_SUMMARY,
                undecodable=True,
            )

        if not isinstance(payload, dict):
            return Malformed(
                reason=f"expected an object, got {type(payload).__name__}",
                summary=MISSING_REVIEWS_SUMMARY,
            )

        try:
            envelope = ResponseEnvelope.model_validate(payload)
        except ValidationError:
            summary = payload.get("summary")
            if not isinstance(summary, str) or not summary.strip():
                summary = MISSING_REVIEWS_SUMMARY
            return Malformed(reason="missing reviews array", summary=summary)

        issues: list[ReviewIssue] = []
        dropped = 0
        for candidate in envelope.reviews:
            try:
                issues.append(IssuePayload.model_validate(candidate).to_issue())
            except ValidationError as e:
                dropped += 1
                logger.debug(
                    "Skipping invalid review entry",
                    file_path=file_path,
                    errors=[err["loc"] for err in e.errors()],
                )

        summary = envelope.summary or f"Reviewed {file_path}"
        return WellFormed(
            result=ReviewResult(issues=tuple(issues), summary=summary),
            dropped=dropped,
        )

    def parse(self, raw_text: str, file_path: str = "") -> ReviewResult:
        """Decode raw engine text, degrading to an empty result."""
        outcome = self.decode(raw_text, file_path)

        if isinstance(outcome, Malformed):
            if outcome.undecodable:
                logger.warning(
                    "Failed to parse LLM response",
                    file_path=file_path,
                    reason=outcome.reason,
                )
                logger.debug("Unparseable response", file_path=file_path, response=raw_text)
            else:
                logger.warning(
                    "Invalid response structure",
                    file_path=file_path,
                    reason=outcome.reason,
                )
            return ReviewResult(issues=(), summary=outcome.summary)

        logger.info(
            "Parsed review response",
            file_path=file_path,
            issues=len(outcome.result.issues),
            dropped=outcome.dropped,
        )
        return outcome.result


_default_validator = ReviewResponseValidator()


def parse_review_response(raw_text: str, file_path: str = "") -> ReviewResult:
    """Module-level shortcut for ReviewResponseValidator.parse."""
    return _default_validator.parse(raw_text, file_path)
