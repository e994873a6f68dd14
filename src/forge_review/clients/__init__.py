"""HTTP clients for GitHub and the review model."""

from .github import GitHubClient
from .llm import LLMClient

__all__ = ["GitHubClient", "LLMClient"]
