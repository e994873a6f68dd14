"""Wire configuration, clients and orchestrator for one review run."""

from __future__ import annotations

import httpx

from forge_review.clients.github import GitHubClient
from forge_review.clients.llm import REQUEST_TIMEOUT, LLMClient
from forge_review.config import ReviewConfig
from forge_review.resilience.errors import ConfigError
from forge_review.review.models import AggregateReport
from forge_review.review.orchestrator import ReviewOrchestrator


async def run_review(config: ReviewConfig) -> AggregateReport:
    """
    Run one review for the pull request named in the configuration.

    HTTP clients live exactly as long as the run.

    Raises:
        ConfigError: Repository or PR number missing
        SetupError: PR metadata or file list unavailable
    """
    if not config.repository:
        raise ConfigError("GITHUB_REPOSITORY is not set")
    if config.pr_number is None:
        raise ConfigError("Could not determine the pull request number")

    async with (
        httpx.AsyncClient(timeout=30.0) as github_http,
        httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as llm_http,
    ):
        github = GitHubClient(
            token=config.github_token,
            repository=config.repository,
            pr_number=config.pr_number,
            api_base=config.github_api_url,
            http_client=github_http,
        )
        llm = LLMClient(
            api_key=config.llm_api_key,
            base_url=config.llm_base_url,
            model=config.llm_model,
            http_client=llm_http,
        )

        orchestrator = ReviewOrchestrator(config, vcs=github, engine=llm)
        return await orchestrator.run_review()
