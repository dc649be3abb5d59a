"""Node base classes and source positions."""

__all__ = ["Node", "SourcePosition"]

from dataclasses import dataclass


@dataclass(frozen=True)
class SourcePosition:
    """Source code position information for syntax nodes.

    Tracks where a node originated in the script text, used for ordering
    invocations, error messages and debugging.

    Attributes:
        filename: Source file path, or None for in-memory scripts
        start_line: Starting line number (1-indexed)
        start_column: Starting column number (1-indexed)
        end_line: Ending line number (1-indexed)
        end_column: Ending column number (1-indexed)
        start_offset: Character offset of the first character
        end_offset: Character offset just past the last character
    """
    filename: str | None = None
    start_line: int | None = None
    start_column: int | None = None
    end_line: int | None = None
    end_column: int | None = None
    start_offset: int | None = None
    end_offset: int | None = None

    def __str__(self) -> str:
        """Format position for error messages."""
        where = self.filename or "<script>"
        if self.start_line:
            return f"{where}:{self.start_line}:{self.start_column}"
        return where


class Node:
    """Base class for all syntax tree nodes.

    Nodes are built by the parser and treated as read-only afterwards. Each
    subclass stores its meaningful parts as named attributes and also lists
    every child node in `kids`, in source order, so generic traversal never
    needs to know the node type.

    Attributes:
        kids: Child nodes in source order
        position: Where the node came from in the source text
        text: The exact source text covered by the node
    """

    def __init__(self, kids=None):
        self.kids = [kid for kid in kids if kid is not None] if kids else []
        self.position = SourcePosition()
        self.text = ""

    def __repr__(self):
        """Compact representation showing type and scalar attributes."""
        attrs = []
        if self.kids:
            attrs.append(f'*{len(self.kids)}')
        for key, value in self.__dict__.items():
            if key in ('kids', 'position', 'text'):
                continue
            if isinstance(value, (Node, list, tuple)):
                continue
            attrs.append(f'{key}={value!r}')
        return f"{self.__class__.__name__}({' '.join(attrs)})"

    @property
    def start(self) -> int:
        """Offset of the first character, -1 when unknown."""
        offset = self.position.start_offset
        return -1 if offset is None else offset

    @property
    def end(self) -> int:
        """Offset just past the last character, -1 when unknown."""
        offset = self.position.end_offset
        return -1 if offset is None else offset

    def tree(self, indent=0, show_positions=False):
        """Print tree structure."""
        suffix = f"  @{self.position}" if show_positions else ""
        print(f"{'  '*indent}{self!r}{suffix}")
        for kid in self.kids:
            kid.tree(indent + 1, show_positions)

    def walk(self):
        """Yield this node and all descendants in document order."""
        yield self
        for kid in self.kids:
            yield from kid.walk()

    def find(self, node_type):
        """Find first descendant of given type, including self."""
        if isinstance(self, node_type):
            return self
        for kid in self.kids:
            if result := kid.find(node_type):
                return result
        return None

    def find_all(self, node_type):
        """Find all descendants of given type, including self."""
        results = [self] if isinstance(self, node_type) else []
        for kid in self.kids:
            results.extend(kid.find_all(node_type))
        return results

    def matches(self, other) -> bool:
        """Hierarchical comparison of tree structure.

        Compares node types, scalar attributes and recursively all children.
        Positions and source text are ignored, so the same code parsed from
        differently formatted sources still matches.
        """
        if not isinstance(other, type(self)):
            return False
        if len(self.kids) != len(other.kids):
            return False
        for key, value in self.__dict__.items():
            if key in ('kids', 'position', 'text'):
                continue
            if isinstance(value, (Node, list, tuple)):
                continue
            if other.__dict__.get(key, object()) != value:
                return False
        return all(mine.matches(theirs)
                   for mine, theirs in zip(self.kids, other.kids, strict=True))
