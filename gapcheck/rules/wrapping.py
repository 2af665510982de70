"""Block wrapping rule: WRP001."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING

from gapcheck import errors
from gapcheck import tree as gap_tree
from gapcheck.rules import base

if TYPE_CHECKING:
    from gapcheck import lines as gap_lines

_K = gap_tree.NodeKind

# Block-owning kinds that can be selected with the ``blocks`` option.
BLOCK_OWNER_KINDS: frozenset[gap_tree.NodeKind] = frozenset(
    {_K.TYPE_BODY, _K.METHOD_BODY, _K.IF, _K.WHILE, _K.FOR, _K.SWITCH}
)

_OWNERS_BY_NAME: dict[str, gap_tree.NodeKind] = {
    kind.value: kind for kind in BLOCK_OWNER_KINDS
}

# Kinds that are the ``{ ... }`` container themselves rather than owning one.
_SELF_CONTAINED: frozenset[gap_tree.NodeKind] = frozenset(
    {_K.TYPE_BODY, _K.METHOD_BODY}
)

_MESSAGES: dict[base.ViolationKind, str] = {
    base.ViolationKind.MISSING_BLOCK_SEPARATOR: (
        "Block should be wrapped with an empty line {side} '{subject}'"
    ),
    base.ViolationKind.FORBIDDEN_BLOCK_SEPARATOR: (
        "Block should not be wrapped with an empty line {side} '{subject}'"
    ),
}

_SIDES: dict[str, str] = {"{": "after", "}": "before"}


class BlockSeparator(enum.Enum):
    """Policy for the blank line at one inner edge of a block."""

    EMPTY_LINE_ALLOWED = "empty_line_allowed"
    EMPTY_LINE = "empty_line"
    NO_EMPTY_LINE = "no_empty_line"

    @classmethod
    def parse(cls, value: object) -> BlockSeparator:
        """Decode a configuration value, ignoring case and surrounding spaces.

        Raises:
            errors.ConfigurationError: If *value* names no option.
        """
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        msg = f"unable to parse {value}"
        raise errors.ConfigurationError(msg)

    def violation(self, has_blank: bool) -> base.ViolationKind | None:  # noqa: FBT001
        """Return the violation for an edge with or without a blank line."""
        if self is BlockSeparator.EMPTY_LINE and not has_blank:
            return base.ViolationKind.MISSING_BLOCK_SEPARATOR
        if self is BlockSeparator.NO_EMPTY_LINE and has_blank:
            return base.ViolationKind.FORBIDDEN_BLOCK_SEPARATOR
        return None


@dataclasses.dataclass(frozen=True)
class WrappingPolicy:
    """Options for the block wrapping evaluator.

    Attributes:
        top_separator: Policy for the line after the opening brace.
        bottom_separator: Policy for the line before the closing brace.
        blocks: Block-owning kinds whose blocks are checked.
    """

    top_separator: BlockSeparator = BlockSeparator.EMPTY_LINE_ALLOWED
    bottom_separator: BlockSeparator = BlockSeparator.EMPTY_LINE_ALLOWED
    blocks: frozenset[gap_tree.NodeKind] = frozenset({_K.TYPE_BODY})


def parse_block_kinds(value: object) -> frozenset[gap_tree.NodeKind]:
    """Decode a comma-separated list of block-owning kind names.

    Raises:
        errors.ConfigurationError: If *value* is not a string or names an
            unknown kind.
    """
    if not isinstance(value, str):
        msg = f"unable to parse {value}"
        raise errors.ConfigurationError(msg)
    kinds: set[gap_tree.NodeKind] = set()
    for name in value.split(","):
        if not name.strip():
            continue
        kind = _OWNERS_BY_NAME.get(name.strip().lower())
        if kind is None:
            msg = f"unable to parse {name.strip()}"
            raise errors.ConfigurationError(msg)
        kinds.add(kind)
    return frozenset(kinds)


def iter_wrapped_blocks(
    tree: gap_tree.SyntaxTree, kinds: Iterable[gap_tree.NodeKind]
) -> Iterator[gap_tree.SyntaxNode]:
    """Yield the ``{ ... }`` containers owned by nodes of the given kinds.

    Type and method bodies are containers themselves. Conditionals, loops,
    and switches own the generic blocks among their children (both branches
    of an if/else, a loop body, a switch block).
    """
    selected = frozenset(kinds)
    for node in tree.walk():
        if node.kind not in selected:
            continue
        if node.kind in _SELF_CONTAINED:
            yield node
        else:
            yield from (
                child for child in tree.children(node.index) if child.kind is _K.BLOCK
            )


def _delimiters(
    tree: gap_tree.SyntaxTree, block: gap_tree.SyntaxNode
) -> tuple[gap_tree.SyntaxNode, gap_tree.SyntaxNode, list[gap_tree.SyntaxNode]]:
    """Split the children of *block* into open brace, close brace, and inner items."""
    children = tree.children(block.index)
    opens = [pos for pos, child in enumerate(children) if child.kind is _K.BLOCK_OPEN]
    closes = [pos for pos, child in enumerate(children) if child.kind is _K.BLOCK_CLOSE]
    if not opens or not closes or opens[0] > closes[-1]:
        msg = f"block at line {block.line} has no enclosing braces"
        raise errors.ContractViolation(msg)
    start, end = opens[0], closes[-1]
    return children[start], children[end], children[start + 1 : end]


def evaluate_block_wrapping(
    tree: gap_tree.SyntaxTree,
    block: gap_tree.SyntaxNode,
    lines: gap_lines.LineView,
    policy: WrappingPolicy,
    report: Callable[[base.Violation], None],
) -> None:
    """Report blank-line wrapping violations at the inner edges of *block*.

    The first item's start includes the comments directly before it, so a
    documentation comment under the opening brace counts as content. A
    trailing comment before the closing brace counts as content as well.
    Empty blocks are not checked.

    Raises:
        errors.ContractViolation: If *block* has no braces or a brace lies
            outside the line view.
    """
    open_brace, close_brace, inner = _delimiters(tree, block)
    lines.require(open_brace.line)
    lines.require(close_brace.line)
    if not inner:
        return

    statements = [item for item in inner if item.kind is not _K.COMMENT]
    first = statements[0] if statements else inner[0]
    comment_line = tree.leading_comment_line(first.index)
    first_content_line = first.line if comment_line is None else comment_line
    last_content_line = tree.last_descendant_line(inner[-1].index)

    top = policy.top_separator.violation(first_content_line - open_brace.line > 1)
    if top is not None:
        report(base.Violation(line=open_brace.line, kind=top, subject=open_brace.text))
    bottom = policy.bottom_separator.violation(
        close_brace.line - last_content_line > 1
    )
    if bottom is not None:
        report(
            base.Violation(line=close_brace.line, kind=bottom, subject=close_brace.text)
        )


class WRP001(base.Rule):
    """Flag blocks whose first or last line break the blank-line wrapping policy.

    ``top_separator`` governs the line after the opening brace and
    ``bottom_separator`` the line before the closing brace. Each accepts
    ``empty_line_allowed`` (default, never flagged), ``empty_line`` (a blank
    line is required), or ``no_empty_line`` (a blank line is forbidden).
    ``blocks`` selects which blocks are checked: any of ``type_body``
    (default), ``method_body``, ``if``, ``while``, ``for``, ``switch``.

    A comment directly under the opening brace belongs to the first member,
    so the blank line has to go above the comment. Empty blocks are skipped.

    Allowed (top_separator = "empty_line"):
        class Point {

            int x;
        }

    Flagged (top_separator = "empty_line"):
        class Point {
            int x;
        }
    """

    def __init__(self, policy: WrappingPolicy | None = None) -> None:
        """Initialise with a wrapping policy (defaults if omitted)."""
        self.policy = policy or WrappingPolicy()

    def configure(self, options: dict[str, object]) -> base.Rule:
        """Return a new WRP001 with options applied.

        Args:
            options: Recognises ``top_separator``, ``bottom_separator``, and
                ``blocks`` (all strings).

        Returns:
            A new WRP001 instance with the configured policy.

        Raises:
            errors.ConfigurationError: If an option value is not recognised.
        """
        top = self.policy.top_separator
        if "top_separator" in options:
            top = BlockSeparator.parse(options["top_separator"])
        bottom = self.policy.bottom_separator
        if "bottom_separator" in options:
            bottom = BlockSeparator.parse(options["bottom_separator"])
        blocks = self.policy.blocks
        if "blocks" in options:
            blocks = parse_block_kinds(options["blocks"])
        return WRP001(
            WrappingPolicy(top_separator=top, bottom_separator=bottom, blocks=blocks)
        )

    def check(
        self, tree: gap_tree.SyntaxTree, lines: gap_lines.LineView
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for each wrapping violation."""
        violations: list[base.Violation] = []
        for block in iter_wrapped_blocks(tree, self.policy.blocks):
            evaluate_block_wrapping(tree, block, lines, self.policy, violations.append)
        return [
            self._diagnostic(
                violation,
                _MESSAGES[violation.kind].format(
                    side=_SIDES.get(violation.subject or "", "at"),
                    subject=violation.subject,
                ),
                lines,
            )
            for violation in violations
        ]
