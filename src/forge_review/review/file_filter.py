"""
File Filter

Drops changed files whose paths match the configured exclude globs
(lock files, minified bundles, build output and the like).
"""

import pathspec

from .models import PullRequestFile

DEFAULT_EXCLUDE_PATTERNS = [
    "*.lock",
    "*.min.js",
    "*.min.css",
    "dist/**",
    "build/**",
    "node_modules/**",
    "coverage/**",
]


class FileFilter:
    """Filter changed files by gitignore-style patterns."""

    def __init__(self, exclude_patterns: list[str] | None = None):
        """Initialize filter with exclude patterns."""
        self.exclude_patterns = [
            p.strip()
            for p in (exclude_patterns if exclude_patterns is not None else DEFAULT_EXCLUDE_PATTERNS)
            if p and p.strip()
        ]
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.exclude_patterns)

    def is_excluded(self, path: str) -> bool:
        """Check whether a path matches any exclude pattern."""
        return self._spec.match_file(path)

    def filter(
        self, files: list[PullRequestFile]
    ) -> tuple[list[PullRequestFile], list[PullRequestFile]]:
        """
        Split files into kept and excluded, preserving order.

        Returns:
            Tuple of (kept, excluded)
        """
        kept: list[PullRequestFile] = []
        excluded: list[PullRequestFile] = []

        for f in files:
            if self.is_excluded(f.filename):
                excluded.append(f)
            else:
                kept.append(f)

        return kept, excluded
