"""Line-oriented view of a source file and the blank/comment line classifier."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from gapcheck import errors

# A line closes a multi-line comment if it ends with ``*/``.
_ENDS_COMMENT_PAT = re.compile(r".*\*/\s*$")

# A line opens a multi-line comment if it contains ``/*`` anywhere.
_BEGINS_COMMENT_PAT = re.compile(r".*/\*.*$")

_LINE_BREAK_PAT = re.compile(r"\r?\n")


def split_lines(source: str) -> list[str]:
    """Split *source* into lines the way the parser numbers rows.

    Only ``\\n`` (optionally preceded by ``\\r``) ends a line. Form feeds and
    Unicode line separators stay inside their line, unlike ``str.splitlines``.
    """
    lines = _LINE_BREAK_PAT.split(source)
    if lines[-1] == "":
        lines.pop()
    return lines


class LineView:
    """Immutable, 1-based view of the raw lines of one file.

    Blankness is derived from the text. Whether a line is a full comment line
    is an oracle supplied by the parser front end. Multi-line comment
    boundaries are matched with regexes over the raw text, so a ``/*`` inside
    a string literal also counts as the start of a comment.
    """

    def __init__(self, lines: Sequence[str], comment_lines: Iterable[int] = ()) -> None:
        """Initialize from raw lines and the set of full comment lines.

        Args:
            lines: Raw text lines, without line terminators.
            comment_lines: 1-based numbers of lines that consist entirely of
                a single-line or fully contained comment.
        """
        self._lines: tuple[str, ...] = tuple(lines)
        self._comment_lines: frozenset[int] = frozenset(comment_lines)

    def __len__(self) -> int:
        return len(self._lines)

    def require(self, line: int) -> int:
        """Return *line* if it lies inside the file.

        Raises:
            errors.ContractViolation: If *line* is out of range.
        """
        if not 1 <= line <= len(self._lines):
            msg = f"line {line} is outside the file (1..{len(self._lines)})"
            raise errors.ContractViolation(msg)
        return line

    def text(self, line: int) -> str:
        """Return the raw text of *line*."""
        return self._lines[self.require(line) - 1]

    def is_blank(self, line: int) -> bool:
        """Return True if *line* contains only whitespace."""
        return not self.text(line).strip()

    def is_comment_line(self, line: int) -> bool:
        """Return True if *line* is entirely a single-line comment."""
        return self.require(line) in self._comment_lines

    def ends_multiline_comment(self, line: int) -> bool:
        """Return True if *line* looks like the last line of a block comment."""
        return _ENDS_COMMENT_PAT.match(self.text(line)) is not None

    def begins_multiline_comment(self, line: int) -> bool:
        """Return True if *line* looks like the first line of a block comment."""
        return _BEGINS_COMMENT_PAT.match(self.text(line)) is not None

    def has_blank_line(self, first: int, last: int) -> bool:
        """Return True if any line in the inclusive range is blank.

        An empty range (``first > last``) contains no blank line.
        """
        return any(self.is_blank(line) for line in range(first, last + 1))

    def nearest_content_line_before(self, line: int) -> int:
        """Return the first line above *line* that is not part of a comment.

        Scans upward from ``line - 1``. Comment lines are skipped. A line that
        ends a block comment switches the scan into the inside-comment state,
        and a line that begins one switches it back out; both boundary lines
        are skipped themselves, as is everything in between. The returned line
        may be blank.

        Returns:
            The 1-based line number, or 0 if the scan reaches the top of the
            file.
        """
        current = self.require(line) - 1
        inside_comment = False
        while current >= 1:
            if self.is_comment_line(current):
                current -= 1
            elif self.ends_multiline_comment(current):
                inside_comment = True
                current -= 1
            elif self.begins_multiline_comment(current):
                inside_comment = False
                current -= 1
            elif inside_comment:
                current -= 1
            else:
                break
        return current

    def has_empty_line_before(self, line: int) -> bool:
        """Return True if the nearest non-comment line above *line* is blank."""
        if line == 1:
            return False
        previous = self.nearest_content_line_before(line)
        return previous >= 1 and self.is_blank(previous)

    def has_two_empty_lines_before(self, line: int) -> bool:
        """Return True if the two nearest non-comment lines above *line* are blank."""
        if not self.has_empty_line_before(line):
            return False
        pre_previous = self.nearest_content_line_before(
            self.nearest_content_line_before(line)
        )
        return pre_previous >= 1 and self.is_blank(pre_previous)
