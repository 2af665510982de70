"""Java front end: parse source with tree-sitter and adapt it into an arena."""

from __future__ import annotations

import dataclasses

import tree_sitter
import tree_sitter_java

from gapcheck import lines as gap_lines
from gapcheck import tree as gap_tree

JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

_K = gap_tree.NodeKind

_TYPE_BODIES: frozenset[str] = frozenset(
    {"class_body", "interface_body", "enum_body", "annotation_type_body"}
)

_KINDS: dict[str, gap_tree.NodeKind] = {
    "program": _K.ROOT,
    "package_declaration": _K.PACKAGE,
    "import_declaration": _K.IMPORT,
    "class_declaration": _K.TYPE,
    "interface_declaration": _K.TYPE,
    "enum_declaration": _K.TYPE,
    "record_declaration": _K.TYPE,
    "annotation_type_declaration": _K.TYPE,
    "field_declaration": _K.FIELD,
    "constant_declaration": _K.FIELD,
    "method_declaration": _K.METHOD,
    "constructor_declaration": _K.CONSTRUCTOR,
    "compact_constructor_declaration": _K.CONSTRUCTOR,
    "static_initializer": _K.STATIC_INIT,
    "constructor_body": _K.METHOD_BODY,
    "if_statement": _K.IF,
    "while_statement": _K.WHILE,
    "do_statement": _K.WHILE,
    "for_statement": _K.FOR,
    "enhanced_for_statement": _K.FOR,
    "switch_expression": _K.SWITCH,
    "switch_statement": _K.SWITCH,
    "switch_block": _K.BLOCK,
    "{": _K.BLOCK_OPEN,
    "}": _K.BLOCK_CLOSE,
    "line_comment": _K.COMMENT,
    "block_comment": _K.COMMENT,
    "comment": _K.COMMENT,
    **{body: _K.TYPE_BODY for body in _TYPE_BODIES},
}

# Blocks are classified by their owner.
_BLOCK_OWNERS: dict[str, gap_tree.NodeKind] = {
    "method_declaration": _K.METHOD_BODY,
    "compact_constructor_declaration": _K.METHOD_BODY,
    "enum_body_declarations": _K.INSTANCE_INIT,
    **{body: _K.INSTANCE_INIT for body in _TYPE_BODIES},
}

# Wrapper nodes whose children are attached to the wrapper's parent instead,
# so enum members are siblings of the enum's closing brace.
_SPLICED: frozenset[str] = frozenset({"enum_body_declarations"})

_KEYWORDS: dict[gap_tree.NodeKind, str] = {
    _K.PACKAGE: "package",
    _K.IMPORT: "import",
    _K.STATIC_INIT: "static",
    _K.INSTANCE_INIT: "{",
    _K.BLOCK_OPEN: "{",
    _K.BLOCK_CLOSE: "}",
}

_NAMED_KINDS: frozenset[gap_tree.NodeKind] = frozenset(
    {_K.TYPE, _K.METHOD, _K.CONSTRUCTOR}
)


@dataclasses.dataclass(frozen=True)
class ParsedFile:
    """A syntax tree and line view for the same source text.

    Attributes:
        tree: The adapted syntax tree.
        lines: The line view with the comment-line oracle filled in.
        has_error: True if tree-sitter had to recover from syntax errors.
    """

    tree: gap_tree.SyntaxTree
    lines: gap_lines.LineView
    has_error: bool


def _text(node: tree_sitter.Node) -> str:
    return (node.text or b"").decode("utf-8", errors="replace")


def _kind_of(node: tree_sitter.Node, parent_type: str) -> gap_tree.NodeKind:
    if node.type == "block":
        return _BLOCK_OWNERS.get(parent_type, _K.BLOCK)
    return _KINDS.get(node.type, _K.OTHER)


def _subject(node: tree_sitter.Node, kind: gap_tree.NodeKind) -> str:
    """Return the name a message should use for *node*."""
    name_node: tree_sitter.Node | None = None
    if kind in _NAMED_KINDS:
        name_node = node.child_by_field_name("name")
    elif kind is _K.FIELD:
        declarator = node.child_by_field_name("declarator")
        if declarator is not None:
            name_node = declarator.child_by_field_name("name")
    if name_node is not None:
        return _text(name_node)
    return _KEYWORDS.get(kind, node.type)


def _line_span(node: tree_sitter.Node) -> tuple[int, int]:
    """Return the 1-based (start, end) lines of *node*.

    A node that ends at column 0 ends on the previous line; its span only
    reaches the next line because it swallowed a line terminator.
    """
    start_row, _ = node.start_point
    end_row, end_col = node.end_point
    if end_col == 0 and end_row > start_row:
        end_row -= 1
    return start_row + 1, end_row + 1


def _is_whole_line(node: tree_sitter.Node, raw_lines: list[str]) -> bool:
    """Return True if the single-row comment *node* is all its line holds."""
    row, _ = node.start_point
    if node.end_point[0] != row or row >= len(raw_lines):
        return False
    return raw_lines[row].strip() == _text(node).strip()


def parse(source: str) -> ParsedFile:
    """Parse Java *source* into a SyntaxTree and a LineView.

    The tree-sitter tree is walked iteratively so that deeply nested
    expressions do not hit the recursion limit.
    """
    parser = tree_sitter.Parser(JAVA_LANGUAGE)
    ts_tree = parser.parse(source.encode("utf-8"))
    raw_lines = gap_lines.split_lines(source)

    builder = gap_tree.TreeBuilder()
    comment_lines: set[int] = set()
    # None marks the point where the most recently opened node is complete.
    stack: list[tuple[tree_sitter.Node, str] | None] = [(ts_tree.root_node, "")]
    while stack:
        item = stack.pop()
        if item is None:
            builder.close()
            continue
        ts_node, parent_type = item
        if ts_node.type in _SPLICED:
            stack.extend((child, parent_type) for child in reversed(ts_node.children))
            continue
        kind = _kind_of(ts_node, parent_type)
        start, end = _line_span(ts_node)
        if kind is _K.COMMENT and _is_whole_line(ts_node, raw_lines):
            comment_lines.add(start)
        builder.open(kind, start, end, _subject(ts_node, kind))
        stack.append(None)
        stack.extend((child, ts_node.type) for child in reversed(ts_node.children))

    return ParsedFile(
        tree=builder.build(),
        lines=gap_lines.LineView(raw_lines, comment_lines),
        has_error=ts_tree.root_node.has_error,
    )
