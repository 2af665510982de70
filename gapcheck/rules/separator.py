"""Declaration separator rule: SEP001."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import TYPE_CHECKING

from gapcheck import errors
from gapcheck import tree as gap_tree
from gapcheck.rules import base

if TYPE_CHECKING:
    from gapcheck import lines as gap_lines

_K = gap_tree.NodeKind

DECLARATION_KINDS: frozenset[gap_tree.NodeKind] = frozenset(
    {
        _K.PACKAGE,
        _K.IMPORT,
        _K.TYPE,
        _K.FIELD,
        _K.METHOD,
        _K.CONSTRUCTOR,
        _K.STATIC_INIT,
        _K.INSTANCE_INIT,
    }
)

_MESSAGES: dict[base.ViolationKind, str] = {
    base.ViolationKind.SHOULD_BE_SEPARATED: (
        "'{subject}' should be separated from previous statement"
    ),
    base.ViolationKind.MULTIPLE_LINES: "'{subject}' has more than 1 empty lines before",
    base.ViolationKind.MULTIPLE_LINES_AFTER: (
        "'{subject}' has more than 1 empty lines after"
    ),
}


@dataclasses.dataclass(frozen=True)
class SeparatorPolicy:
    """Options for the declaration separator evaluator.

    Attributes:
        allow_no_empty_line_between_fields: Let consecutive class fields sit
            on adjacent lines.
        allow_multiple_empty_lines: Let declarations be preceded by more than
            one blank line.
    """

    allow_no_empty_line_between_fields: bool = False
    allow_multiple_empty_lines: bool = True


class _Evaluation:
    """One pass of the separator evaluator over one file."""

    def __init__(
        self,
        tree: gap_tree.SyntaxTree,
        lines: gap_lines.LineView,
        policy: SeparatorPolicy,
        report: Callable[[base.Violation], None],
    ) -> None:
        self.tree = tree
        self.lines = lines
        self.policy = policy
        self.report = report

    def _emit(
        self, kind: base.ViolationKind, node: gap_tree.SyntaxNode
    ) -> None:
        self.report(base.Violation(line=node.line, kind=kind, subject=node.text))

    def _has_two_empty_lines_before(self, node: gap_tree.SyntaxNode) -> bool:
        """Return True if *node* has two blank lines above it and that is forbidden."""
        return (
            not self.policy.allow_multiple_empty_lines
            and self.lines.has_two_empty_lines_before(node.line)
        )

    def _has_empty_line_after(
        self, node: gap_tree.SyntaxNode, next_node: gap_tree.SyntaxNode
    ) -> bool:
        """Return True if a blank line sits between the end of *node* and *next_node*."""
        current_end = self.tree.last_descendant_line(node.index)
        return self.lines.has_blank_line(current_end + 1, next_node.line - 1)

    def _violates_field_policy(self, next_node: gap_tree.SyntaxNode) -> bool:
        if next_node.kind is _K.BLOCK_CLOSE:
            return False
        if self.policy.allow_no_empty_line_between_fields:
            return next_node.kind is not _K.FIELD
        return True

    def visit(self, node: gap_tree.SyntaxNode) -> None:
        """Check one declaration against its next sibling."""
        is_type_field = node.kind is _K.FIELD and self.tree.is_class_level(node.index)
        if (
            node.kind is not _K.FIELD or is_type_field
        ) and self._has_two_empty_lines_before(node):
            self._emit(base.ViolationKind.MULTIPLE_LINES, node)

        next_node = self.tree.next_sibling(node.index)
        if next_node is None:
            return

        if node.kind is _K.PACKAGE:
            if node.line > 1 and not self.lines.has_empty_line_before(node.line):
                self._emit(base.ViolationKind.SHOULD_BE_SEPARATED, node)
            if not self._has_empty_line_after(node, next_node):
                self._emit(base.ViolationKind.SHOULD_BE_SEPARATED, next_node)
        elif node.kind is _K.IMPORT:
            if next_node.kind is not _K.IMPORT and not self._has_empty_line_after(
                node, next_node
            ):
                self._emit(base.ViolationKind.SHOULD_BE_SEPARATED, next_node)
        elif is_type_field:
            if not self._has_empty_line_after(
                node, next_node
            ) and self._violates_field_policy(next_node):
                self._emit(base.ViolationKind.SHOULD_BE_SEPARATED, next_node)
        elif next_node.kind is _K.BLOCK_CLOSE:
            if self._has_two_empty_lines_before(next_node):
                self._emit(base.ViolationKind.MULTIPLE_LINES_AFTER, node)
        elif not self._has_empty_line_after(node, next_node):
            self._emit(base.ViolationKind.SHOULD_BE_SEPARATED, next_node)


def evaluate_declaration_separators(
    tree: gap_tree.SyntaxTree,
    lines: gap_lines.LineView,
    policy: SeparatorPolicy,
    report: Callable[[base.Violation], None],
) -> None:
    """Report every blank-line separator violation between declarations.

    Declarations (package, import, type, field, method, constructor, and
    initializers) are visited in document order and each one is compared
    with its next non-comment sibling.

    Args:
        tree: The file's syntax tree.
        lines: The file's line view.
        policy: Separator options.
        report: Called once per violation, in the order found.

    Raises:
        errors.ContractViolation: If a node points outside the line view.
    """
    evaluation = _Evaluation(tree, lines, policy, report)
    for node in tree.walk():
        if node.kind in DECLARATION_KINDS:
            evaluation.visit(node)


def _bool_option(options: dict[str, object], key: str, default: bool) -> bool:  # noqa: FBT001
    value = options.get(key, default)
    if not isinstance(value, bool):
        msg = f"option {key!r} must be true or false, got {value!r}"
        raise errors.ConfigurationError(msg)
    return value


class SEP001(base.Rule):
    """Flag declarations that are not separated by a blank line.

    Checks package, import, type, field, method, constructor, and
    initializer declarations:

    - the package statement needs a blank line before (unless on line 1)
      and after it;
    - the last import needs a blank line before whatever follows;
    - fields need a blank line before the next member, except before the
      closing brace (and, with ``allow_no_empty_line_between_fields``,
      before another field);
    - every other declaration needs a blank line before the next member;
    - with ``allow_multiple_empty_lines = false``, two blank lines before a
      declaration, or before the closing brace after it, are flagged.

    Comments between declarations are skipped when looking for the blank
    line before a declaration.

    Allowed:
        int count;

        void reset() {}

    Flagged:
        int count;
        void reset() {}
    """

    def __init__(self, policy: SeparatorPolicy | None = None) -> None:
        """Initialise with a separator policy (defaults if omitted)."""
        self.policy = policy or SeparatorPolicy()

    def configure(self, options: dict[str, object]) -> base.Rule:
        """Return a new SEP001 with options applied.

        Args:
            options: Recognises ``allow_no_empty_line_between_fields`` and
                ``allow_multiple_empty_lines`` (both bool).

        Returns:
            A new SEP001 instance with the configured policy.

        Raises:
            errors.ConfigurationError: If an option is not a boolean.
        """
        return SEP001(
            SeparatorPolicy(
                allow_no_empty_line_between_fields=_bool_option(
                    options,
                    "allow_no_empty_line_between_fields",
                    self.policy.allow_no_empty_line_between_fields,
                ),
                allow_multiple_empty_lines=_bool_option(
                    options,
                    "allow_multiple_empty_lines",
                    self.policy.allow_multiple_empty_lines,
                ),
            )
        )

    def check(
        self, tree: gap_tree.SyntaxTree, lines: gap_lines.LineView
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for each separator violation."""
        violations: list[base.Violation] = []
        evaluate_declaration_separators(tree, lines, self.policy, violations.append)
        return [
            self._diagnostic(
                violation,
                _MESSAGES[violation.kind].format(subject=violation.subject),
                lines,
            )
            for violation in violations
        ]
