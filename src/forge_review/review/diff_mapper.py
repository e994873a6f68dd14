"""
Diff Line Mapper

Maps a line number in the new version of a file to its position inside the
unified diff, which is how the review comment API anchors inline comments.
"""

import re
from collections.abc import Iterator


class DiffLineMapper:
    """Translate new-file line numbers into diff positions."""

    # Regex patterns for the parts of a patch the scan cares about
    HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
    FILE_HEADER = re.compile(r"^diff --git ")
    NO_NEWLINE_MARKER = "\\"

    def iter_new_file_lines(self, diff_text: str) -> Iterator[tuple[int, int, str]]:
        """
        Walk the diff and yield every line that exists in the new file.

        Yields:
            Tuples of (diff position, new-file line number, raw diff line).
            Positions are 1-based indexes into the raw diff lines.
        """
        lines = diff_text.split("\n")
        if lines and lines[-1] == "":
            # Trailing newline, not a context line
            lines.pop()

        current_line = 0
        in_hunk = False

        for index, line in enumerate(lines):
            hunk_match = self.HUNK_HEADER.match(line)
            if hunk_match:
                in_hunk = True
                current_line = int(hunk_match.group(1)) - 1
                continue

            if self.FILE_HEADER.match(line):
                in_hunk = False
                continue

            if not in_hunk:
                continue

            if line.startswith("-") or line.startswith(self.NO_NEWLINE_MARKER):
                continue

            # Added and context lines both advance the new-file counter
            current_line += 1
            yield index + 1, current_line, line

    def map_new_line_to_position(self, diff_text: str, target_line: int) -> int | None:
        """
        Find the diff position of a new-file line.

        Args:
            diff_text: Unified diff (one file's patch)
            target_line: 1-based line number in the new file

        Returns:
            1-based diff position, or None when the line is not part of the diff
        """
        if target_line < 1:
            return None

        for position, new_line, _ in self.iter_new_file_lines(diff_text):
            if new_line == target_line:
                return position

        return None


_default_mapper = DiffLineMapper()


def map_new_line_to_position(diff_text: str, target_line: int) -> int | None:
    """Module-level shortcut for DiffLineMapper.map_new_line_to_position."""
    return _default_mapper.map_new_line_to_position(diff_text, target_line)


def iter_new_file_lines(diff_text: str) -> Iterator[tuple[int, int, str]]:
    """Module-level shortcut for DiffLineMapper.iter_new_file_lines."""
    return _default_mapper.iter_new_file_lines(diff_text)
