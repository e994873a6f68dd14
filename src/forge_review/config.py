"""Configuration management for forge-review.

Inputs follow the GitHub Action convention (INPUT_<NAME>) and fall back to
plain environment variables, so the same settings work for the action, the
CLI and the webhook server.
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

import structlog

from forge_review.prompts import get_default_prompt
from forge_review.resilience.errors import ConfigError
from forge_review.review.file_filter import DEFAULT_EXCLUDE_PATTERNS

logger = structlog.get_logger(__name__)


class ReviewMode(str, Enum):
    """Which default prompt drives the review."""

    SUMMARY = "summary"
    DETAILED = "detailed"
    SECURITY = "security"
    PERFORMANCE = "performance"


def get_input(name: str, default: str = "") -> str:
    """Read an input from INPUT_<NAME>, then <NAME>."""
    for key in (f"INPUT_{name}", name):
        value = os.getenv(key)
        if value is not None and value.strip():
            return value.strip()
    return default


def _require(name: str) -> str:
    value = get_input(name)
    if not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def _parse_pr_number(raw: str) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid PR_NUMBER: {raw}") from e


def pr_number_from_event(event_path: str | None) -> int | None:
    """Read the pull request number from a GitHub event payload file."""
    if not event_path:
        return None
    path = Path(event_path)
    if not path.is_file():
        return None
    try:
        event = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read event payload", path=event_path, error=str(e))
        return None

    pull_request = event.get("pull_request") or {}
    number = pull_request.get("number", event.get("number"))
    return number if isinstance(number, int) else None


@dataclass
class ReviewConfig:
    """Review run configuration."""

    # LLM configuration
    llm_base_url: str = ""
    llm_model: str = ""
    llm_api_key: str = field(default="", repr=False)

    # Review behaviour
    review_mode: ReviewMode = ReviewMode.DETAILED
    prompt: str = field(default_factory=lambda: get_default_prompt("detailed"))
    max_files: int = 50  # 0 = unlimited
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    fail_on_error: bool = False
    post_as_review: bool = True

    # GitHub configuration
    github_token: str = field(default="", repr=False)
    github_api_url: str = "https://api.github.com"
    repository: str = ""  # owner/repo
    pr_number: int | None = None

    # Server / logging
    webhook_secret: str | None = field(default=None, repr=False)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ReviewConfig":
        """Create and validate configuration from environment variables."""
        llm_base_url = _require("LLM_BASE_URL")
        llm_model = _require("LLM_MODEL")
        llm_api_key = _require("LLM_API_KEY")
        github_token = _require("GITHUB_TOKEN")

        mode_input = get_input("REVIEW_MODE", "detailed").lower()
        try:
            review_mode = ReviewMode(mode_input)
        except ValueError as e:
            valid = ", ".join(m.value for m in ReviewMode)
            raise ConfigError(
                f"Invalid REVIEW_MODE: {mode_input}. Must be one of: {valid}"
            ) from e

        max_files_input = get_input("MAX_FILES", "50")
        try:
            max_files = int(max_files_input)
        except ValueError as e:
            raise ConfigError(f"Invalid MAX_FILES: {max_files_input}") from e

        exclude_input = get_input("EXCLUDE_PATTERNS")
        exclude_patterns = (
            [p.strip() for p in exclude_input.split(",") if p.strip()]
            if exclude_input
            else list(DEFAULT_EXCLUDE_PATTERNS)
        )

        pr_number = _parse_pr_number(get_input("PR_NUMBER"))
        if pr_number is None:
            pr_number = pr_number_from_event(os.getenv("GITHUB_EVENT_PATH"))

        config = cls(
            llm_base_url=llm_base_url,
            llm_model=llm_model,
            llm_api_key=llm_api_key,
            review_mode=review_mode,
            prompt=get_input("PROMPT") or get_default_prompt(review_mode.value),
            max_files=max_files,
            exclude_patterns=exclude_patterns,
            fail_on_error=get_input("FAIL_ON_ERROR").lower() == "true",
            post_as_review=get_input("POST_AS_REVIEW").lower() != "false",
            github_token=github_token,
            github_api_url=get_input("GITHUB_API_URL", "https://api.github.com"),
            repository=get_input("GITHUB_REPOSITORY"),
            pr_number=pr_number,
            webhook_secret=get_input("WEBHOOK_SECRET") or None,
            log_level=get_input("LOG_LEVEL", "INFO").upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigError for values that cannot work."""
        parsed = urlparse(self.llm_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid LLM_BASE_URL: {self.llm_base_url}")

        if self.max_files < 0:
            raise ConfigError(f"Invalid MAX_FILES: {self.max_files}")

    def log_summary(self) -> None:
        """Log the configuration without secrets."""
        logger.info(
            "Configuration loaded",
            llm_base_url=self.llm_base_url,
            llm_model=self.llm_model,
            review_mode=self.review_mode.value,
            max_files=self.max_files or "unlimited",
            exclude_patterns=", ".join(self.exclude_patterns),
            post_as_review=self.post_as_review,
            fail_on_error=self.fail_on_error,
            repository=self.repository,
            pr_number=self.pr_number,
        )
