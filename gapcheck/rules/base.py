"""Base abstractions for gapcheck rules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gapcheck import lines as gap_lines
    from gapcheck import tree as gap_tree


class Severity(Enum):
    """LSP diagnostic severity levels."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class ViolationKind(Enum):
    """What a blank-line finding is about."""

    SHOULD_BE_SEPARATED = "should-be-separated"
    MULTIPLE_LINES = "multiple-lines"
    MULTIPLE_LINES_AFTER = "multiple-lines-after"
    MISSING_BLOCK_SEPARATOR = "missing-block-separator"
    FORBIDDEN_BLOCK_SEPARATOR = "forbidden-block-separator"


@dataclass(frozen=True)
class Violation:
    """A single finding produced by an evaluator."""

    line: int  # 1-indexed
    kind: ViolationKind
    subject: str | None = None


@dataclass
class Diagnostic:
    """A single diagnostic emitted by a rule."""

    rule_id: str
    kind: ViolationKind
    message: str
    line: int      # 1-indexed
    col: int       # 0-indexed
    end_line: int
    end_col: int
    severity: Severity


class Rule(ABC):
    """Abstract base class for all gapcheck rules."""

    @property
    def rule_id(self) -> str:
        """The rule ID, which is also the class name (e.g. ``SEP001``)."""
        return type(self).__name__

    @abstractmethod
    def check(
        self, tree: gap_tree.SyntaxTree, lines: gap_lines.LineView
    ) -> list[Diagnostic]:
        """Analyze the tree and return any diagnostics.

        Args:
            tree: The syntax tree of the source file.
            lines: The raw lines of the same file.

        Returns:
            A list of Diagnostic instances, empty if no issues are found.

        Raises:
            gapcheck.errors.ContractViolation: If the tree and lines are
                inconsistent.
        """

    def configure(self, options: dict[str, object]) -> Rule:
        """Return a rule with *options* applied.

        Rules without options ignore them and return themselves.

        Raises:
            gapcheck.errors.ConfigurationError: If an option value is not
                recognised.
        """
        return self

    def _diagnostic(
        self,
        violation: Violation,
        message: str,
        lines: gap_lines.LineView,
    ) -> Diagnostic:
        """Build a diagnostic spanning the stripped text of the violation line."""
        text = lines.text(violation.line)
        col = len(text) - len(text.lstrip())
        return Diagnostic(
            rule_id=self.rule_id,
            kind=violation.kind,
            message=message,
            line=violation.line,
            col=col,
            end_line=violation.line,
            end_col=max(col, len(text.rstrip())),
            severity=Severity.WARNING,
        )
