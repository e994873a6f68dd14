"""Markdown bodies for inline comments, reviews and approvals."""

from .models import CommentPolicy, FileOutcome, ReviewIssue, Severity

SEVERITY_MARKERS = {
    Severity.CRITICAL: "\U0001f534",
    Severity.WARNING: "\U0001f7e1",
    Severity.SUGGESTION: "\U0001f4a1",
    Severity.INFO: "ℹ️",
}

AI_DISCLAIMER = (
    "*This review was generated by AI. Please review the suggestions "
    "carefully before applying them.*"
)


def severity_marker(severity: Severity) -> str:
    """Get the marker shown in front of a comment."""
    return SEVERITY_MARKERS.get(severity, "\U0001f4dd")


def build_comment_body(issue: ReviewIssue, policy: CommentPolicy | None = None) -> str:
    """Render one issue as an inline comment body.

    The issue's suggestion is left out unless the policy enables it.
    """
    policy = policy or CommentPolicy()

    header = severity_marker(issue.severity)
    if issue.category is not None:
        header = f"{header} **{issue.category.value.upper()}**"

    parts = [header, "", issue.message]

    if policy.render_suggestions and issue.suggestion:
        parts.extend(["", "**Suggested change:**", "```", issue.suggestion, "```"])

    return "\n".join(parts)


def format_stats(critical: int, warnings: int, suggestions: int) -> str:
    stats = []
    if critical > 0:
        stats.append(f"{severity_marker(Severity.CRITICAL)} {critical} critical")
    if warnings > 0:
        stats.append(f"{severity_marker(Severity.WARNING)} {warnings} warnings")
    if suggestions > 0:
        stats.append(f"{severity_marker(Severity.SUGGESTION)} {suggestions} suggestions")
    return " | ".join(stats) if stats else "✅ No issues found"


def format_file_line(outcome: FileOutcome) -> str:
    count = outcome.comment_count
    if count == 0:
        return f"- {outcome.file_path}"
    plural = "s" if count > 1 else ""
    return f"- {outcome.file_path} ({count} comment{plural})"


def format_review_body(
    summary: str,
    outcomes: list[FileOutcome],
    critical: int,
    warnings: int,
    suggestions: int,
) -> str:
    """Body of the review (or general comment) that accompanies inline comments."""
    files = "\n".join(format_file_line(o) for o in outcomes)
    return "\n".join([
        "## AI Code Review",
        "",
        summary,
        "",
        "### Summary",
        format_stats(critical, warnings, suggestions),
        "",
        "### Files Reviewed",
        files,
        "",
        "---",
        AI_DISCLAIMER,
    ])


def format_approval_body(summary: str) -> str:
    """Body posted when the run produced no comments."""
    return "\n".join([
        "## ✅ AI Code Review Complete",
        "",
        summary,
        "",
        "**No issues found!** Great job! \U0001f389",
    ])
