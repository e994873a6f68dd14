"""AI pull request review: diff-anchored inline comments from an LLM."""

__version__ = "0.1.0"
