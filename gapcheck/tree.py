"""Read-only syntax tree stored as an arena of index-addressed nodes."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterator, Sequence

from gapcheck import errors


class NodeKind(enum.Enum):
    """Node kinds the blank-line checks distinguish."""

    ROOT = "root"
    PACKAGE = "package"
    IMPORT = "import"
    TYPE = "type"
    FIELD = "field"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    STATIC_INIT = "static_init"
    INSTANCE_INIT = "instance_init"
    BLOCK_OPEN = "block_open"
    BLOCK_CLOSE = "block_close"
    TYPE_BODY = "type_body"
    METHOD_BODY = "method_body"
    IF = "if"
    WHILE = "while"
    FOR = "for"
    SWITCH = "switch"
    BLOCK = "block"
    COMMENT = "comment"
    OTHER = "other"


@dataclasses.dataclass(frozen=True)
class SyntaxNode:
    """A node of the arena.

    Attributes:
        index: Position of the node in the arena; pre-order, so index order
            is document order.
        kind: The node kind.
        line: 1-based line the node starts on.
        end_line: 1-based line the node ends on.
        text: Short subject text used in messages (a name or a keyword).
        parent: Index of the parent node, ``None`` for the root.
        children: Indices of the child nodes in document order.
        position: Index of this node within its parent's children.
    """

    index: int
    kind: NodeKind
    line: int
    end_line: int
    text: str = ""
    parent: int | None = None
    children: tuple[int, ...] = ()
    position: int = 0


class SyntaxTree:
    """Arena of SyntaxNodes with O(1) parent, child, and sibling navigation.

    Comment nodes stay in the arena as children, but sibling navigation
    skips them; a run of comments directly before a node is reachable as
    that node's leading comment.
    """

    def __init__(self, nodes: Sequence[SyntaxNode]) -> None:
        """Initialize from nodes whose ``index`` equals their arena position.

        Raises:
            errors.ContractViolation: If an index or link is inconsistent.
        """
        self._nodes: tuple[SyntaxNode, ...] = tuple(nodes)
        for position, node in enumerate(self._nodes):
            if node.index != position:
                msg = f"node at arena slot {position} has index {node.index}"
                raise errors.ContractViolation(msg)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> SyntaxNode:
        """The first node of the arena."""
        return self.node(0)

    def node(self, index: int) -> SyntaxNode:
        """Return the node at *index*."""
        if not 0 <= index < len(self._nodes):
            msg = f"node index {index} is outside the tree"
            raise errors.ContractViolation(msg)
        return self._nodes[index]

    def walk(self) -> Iterator[SyntaxNode]:
        """Yield every node in document order."""
        yield from self._nodes

    def parent(self, index: int) -> SyntaxNode | None:
        """Return the parent of *index*, or None for the root."""
        parent = self.node(index).parent
        return None if parent is None else self.node(parent)

    def children(self, index: int) -> list[SyntaxNode]:
        """Return the children of *index* in document order."""
        return [self.node(child) for child in self.node(index).children]

    def _sibling(self, index: int, step: int) -> SyntaxNode | None:
        node = self.node(index)
        if node.parent is None:
            return None
        siblings = self.node(node.parent).children
        position = node.position + step
        while 0 <= position < len(siblings):
            sibling = self.node(siblings[position])
            if sibling.kind is not NodeKind.COMMENT:
                return sibling
            position += step
        return None

    def next_sibling(self, index: int) -> SyntaxNode | None:
        """Return the next non-comment sibling of *index*, if any."""
        return self._sibling(index, 1)

    def previous_sibling(self, index: int) -> SyntaxNode | None:
        """Return the previous non-comment sibling of *index*, if any."""
        return self._sibling(index, -1)

    def last_descendant_line(self, index: int) -> int:
        """Return the line where the deepest last descendant of *index* ends.

        Follows the last child down to a leaf. Leaves report their end line so
        that multi-line comments and text blocks end where they actually end.
        """
        node = self.node(index)
        while node.children:
            node = self.node(node.children[-1])
        return node.end_line

    def leading_comment_line(self, index: int) -> int | None:
        """Return the start line of the comments directly before *index*.

        Only the uninterrupted run of comment siblings immediately preceding
        the node counts. Returns None if the node has no such comment.
        """
        node = self.node(index)
        if node.parent is None:
            return None
        siblings = self.node(node.parent).children
        start: int | None = None
        position = node.position - 1
        while position >= 0:
            sibling = self.node(siblings[position])
            if sibling.kind is not NodeKind.COMMENT:
                break
            start = sibling.line
            position -= 1
        return start

    def is_class_level(self, index: int) -> bool:
        """Return True if the grandparent of *index* is a type declaration."""
        parent = self.parent(index)
        if parent is None:
            return False
        grandparent = self.parent(parent.index)
        return grandparent is not None and grandparent.kind is NodeKind.TYPE


class TreeBuilder:
    """Assemble an arena in pre-order while children are still being visited.

    Call ``open`` when entering a node and ``close`` after all of its
    children have been opened and closed.
    """

    def __init__(self) -> None:
        self._slots: list[SyntaxNode] = []
        self._children: list[list[int]] = []
        self._stack: list[int] = []

    def open(self, kind: NodeKind, line: int, end_line: int, text: str = "") -> int:
        """Reserve the next index for a node and make it the current parent."""
        index = len(self._slots)
        parent = self._stack[-1] if self._stack else None
        position = 0
        if parent is not None:
            position = len(self._children[parent])
            self._children[parent].append(index)
        self._slots.append(
            SyntaxNode(
                index=index,
                kind=kind,
                line=line,
                end_line=end_line,
                text=text,
                parent=parent,
                position=position,
            )
        )
        self._children.append([])
        self._stack.append(index)
        return index

    def close(self) -> None:
        """Finish the current node, freezing its child list."""
        if not self._stack:
            msg = "close() called with no open node"
            raise errors.ContractViolation(msg)
        index = self._stack.pop()
        self._slots[index] = dataclasses.replace(
            self._slots[index], children=tuple(self._children[index])
        )

    def build(self) -> SyntaxTree:
        """Return the finished tree.

        Raises:
            errors.ContractViolation: If a node is still open.
        """
        if self._stack:
            msg = f"{len(self._stack)} node(s) still open"
            raise errors.ContractViolation(msg)
        return SyntaxTree(self._slots)
