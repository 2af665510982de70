"""Orchestrates rule execution against a parsed Java file."""

from __future__ import annotations

import dataclasses
import re
import typing

from gapcheck import java

if typing.TYPE_CHECKING:
    from gapcheck import lines as gap_lines
    from gapcheck.rules import base

# Matches:  // gapcheck: noqa          (suppress all rules on this line)
#           // gapcheck: noqa: SEP001  (suppress specific rules on this line)
#           /* gapcheck: noqa */       (block comment form)
_LINE_NOQA_PAT = re.compile(
    r"(?://|/\*)\s*gapcheck:\s*noqa(?::\s*([A-Z0-9][A-Z0-9,\s]*))?",
    re.IGNORECASE,
)

# Matches:  // gapcheck: disable-file           (suppress all rules in this file)
#           // gapcheck: disable-file: WRP001   (suppress specific rules in this file)
_FILE_DISABLE_PAT = re.compile(
    r"(?://|/\*)\s*gapcheck:\s*disable-file(?::\s*([A-Z0-9][A-Z0-9,\s]*))?",
    re.IGNORECASE,
)


def _rule_ids(raw: str | None) -> frozenset[str] | None:
    """Parse rule IDs from a suppression comment capture group.

    Returns None to indicate all rules are suppressed, or a frozenset of
    specific uppercased rule IDs.
    """
    if not raw or not raw.strip():
        return None
    ids = frozenset(part.strip().upper() for part in raw.split(",") if part.strip())
    return ids or None


def _covers(suppressed: frozenset[str] | None, rule_id: str) -> bool:
    """Return True if rule_id falls within the suppression set.

    None means all rules are suppressed.
    """
    return suppressed is None or rule_id in suppressed


@dataclasses.dataclass(frozen=True)
class Suppressions:
    """Inline suppressions collected from the lines of one file.

    A value of ``None`` in ``by_line`` or ``file_wide`` means every rule is
    suppressed there; ``file_wide`` is empty when no directive was found.
    """

    by_line: dict[int, frozenset[str] | None]
    file_wide: frozenset[str] | None = frozenset()

    @classmethod
    def scan(cls, lines: gap_lines.LineView) -> Suppressions:
        """Collect ``noqa`` and ``disable-file`` directives from *lines*.

        The last ``disable-file`` directive in the file wins.
        """
        by_line: dict[int, frozenset[str] | None] = {}
        file_wide: frozenset[str] | None = frozenset()
        for lineno in range(1, len(lines) + 1):
            text = lines.text(lineno)
            file_match = _FILE_DISABLE_PAT.search(text)
            if file_match:
                file_wide = _rule_ids(file_match.group(1))
            line_match = _LINE_NOQA_PAT.search(text)
            if line_match:
                by_line[lineno] = _rule_ids(line_match.group(1))
        return cls(by_line=by_line, file_wide=file_wide)

    def covers(self, diag: base.Diagnostic) -> bool:
        """Return True if *diag* is silenced by a directive."""
        if _covers(self.file_wide, diag.rule_id):
            return True
        return diag.line in self.by_line and _covers(
            self.by_line[diag.line], diag.rule_id
        )


class Analyzer:
    """Runs all registered rules against a source file."""

    def __init__(self, rules: list[base.Rule]) -> None:
        """Initialize with a list of rule instances.

        Args:
            rules: Rule instances to run on every analysis request.
        """
        self.rules = rules

    def analyze(self, source: str) -> list[base.Diagnostic]:
        """Parse source, run all rules, and apply inline suppressions.

        The analyzer holds no per-file state, so one instance may analyze
        several files concurrently.

        Args:
            source: Raw Java source code to analyze.

        Returns:
            Diagnostics sorted by (line, col) with suppressed entries removed.
            Returns an empty list if the source has syntax errors.

        Raises:
            gapcheck.errors.ContractViolation: If the parsed tree breaks an
                invariant the rules rely on. The file's analysis is aborted.
        """
        parsed = java.parse(source)
        if parsed.has_error:
            return []

        diagnostics = sorted(
            [
                diag
                for rule in self.rules
                for diag in rule.check(parsed.tree, parsed.lines)
            ],
            key=lambda diag: (diag.line, diag.col),
        )
        suppressions = Suppressions.scan(parsed.lines)
        return [diag for diag in diagnostics if not suppressions.covers(diag)]
