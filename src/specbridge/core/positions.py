"""Position tree data model.

A discovered tree is stored as an arena: positions live in a flat list in
pre-order, each with the index of its parent and the indices of its
children. All traversal is done over those indices, so a tree holds no
reference cycles and can be shared freely once built.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

ID_SEPARATOR = "::"

Range = tuple[int, int, int, int]


class PositionType(str, Enum):
    """Kind of a discovered position."""

    DIR = "dir"
    FILE = "file"
    NAMESPACE = "namespace"
    TEST = "test"


@dataclass(frozen=True)
class Position:
    """A node in the discovered test hierarchy.

    Lines in ``range`` are 1-indexed and inclusive, columns are 0-indexed.
    Directories carry no range.
    """

    id: str
    type: PositionType
    name: str
    path: str
    range: Optional[Range] = None

    @property
    def start_line(self) -> Optional[int]:
        return self.range[0] if self.range else None

    @property
    def end_line(self) -> Optional[int]:
        return self.range[2] if self.range else None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "path": self.path,
            "range": list(self.range) if self.range else None,
        }


@dataclass
class PositionNode:
    """A position with its children, used while a tree is being assembled."""

    position: Position
    children: list["PositionNode"] = field(default_factory=list)


class Tree:
    """Immutable arena of positions with explicit parent pointers."""

    def __init__(self, positions: list[Position], parents: list[Optional[int]]):
        if len(positions) != len(parents):
            raise ValueError("positions and parents must have the same length")
        if not positions:
            raise ValueError("a tree needs at least one position")

        self._positions = list(positions)
        self._parents = list(parents)
        self._children: list[list[int]] = [[] for _ in positions]
        self._index: dict[str, int] = {}

        for i, (pos, parent) in enumerate(zip(positions, parents)):
            if pos.id in self._index:
                raise ValueError(f"Duplicate position id: {pos.id}")
            self._index[pos.id] = i
            if parent is not None:
                self._children[parent].append(i)

        # (start line, document order) for every ranged position
        self._starts = sorted(
            (pos.range[0], i) for i, pos in enumerate(positions) if pos.range
        )

    @classmethod
    def from_node(cls, root: PositionNode) -> "Tree":
        """Flatten a nested node structure into an arena, in pre-order."""
        positions: list[Position] = []
        parents: list[Optional[int]] = []

        stack: list[tuple[PositionNode, Optional[int]]] = [(root, None)]
        while stack:
            node, parent = stack.pop()
            index = len(positions)
            positions.append(node.position)
            parents.append(parent)
            for child in reversed(node.children):
                stack.append((child, index))

        return cls(positions, parents)

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, position_id: str) -> bool:
        return position_id in self._index

    @property
    def root(self) -> Position:
        return self._positions[0]

    def get(self, position_id: str) -> Position:
        """Get a position by id, raising KeyError if it is unknown."""
        return self._positions[self._index[position_id]]

    def iter_nodes(self) -> Iterator[Position]:
        """Iterate over all positions in document (pre-)order."""
        return iter(self._positions)

    def iter_parents(self, position_id: str) -> Iterator[Position]:
        """Iterate over the ancestors of a position, nearest first."""
        parent = self._parents[self._index[position_id]]
        while parent is not None:
            yield self._positions[parent]
            parent = self._parents[parent]

    def parent(self, position_id: str) -> Optional[Position]:
        return next(self.iter_parents(position_id), None)

    def children(self, position_id: str) -> list[Position]:
        return [self._positions[i] for i in self._children[self._index[position_id]]]

    def subtree(self, position_id: str) -> "Tree":
        """Build a new tree rooted at the given position."""
        start = self._index[position_id]
        remap = {start: 0}
        positions = [self._positions[start]]
        parents: list[Optional[int]] = [None]

        # Descendants of a pre-order node form a contiguous run after it
        for i in range(start + 1, len(self._positions)):
            parent = self._parents[i]
            if parent not in remap:
                break
            remap[i] = len(positions)
            positions.append(self._positions[i])
            parents.append(remap[parent])

        return Tree(positions, parents)

    def nearest_by_line(self, line: int) -> Optional[Position]:
        """Find the position with the greatest start line not after ``line``.

        Ties on the start line resolve to the last position in document
        order, which is the innermost one. A namespace whose first test starts
        on the same line therefore never matches: every location on that line
        attaches to the test.
        """
        i = bisect_right(self._starts, (line, len(self._positions)))
        if i == 0:
            return None
        return self._positions[self._starts[i - 1][1]]

    def to_dict(self, position_id: Optional[str] = None) -> dict:
        """Convert to a nested dictionary."""
        pos = self.get(position_id) if position_id else self.root
        data = pos.to_dict()
        data["children"] = [self.to_dict(child.id) for child in self.children(pos.id)]
        return data
