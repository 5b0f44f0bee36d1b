"""Position discovery for spec files and directories."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from specbridge.core.positions import (
    ID_SEPARATOR,
    Position,
    PositionNode,
    PositionType,
    Range,
    Tree,
)

logger = logging.getLogger(__name__)

DEFAULT_TEST_FILE_SUFFIXES = ("_spec.lua",)


@dataclass(frozen=True)
class DeclarationQuery:
    """Callee patterns that mark namespace and test declarations.

    Patterns are regular expressions searched within the callee name.
    """

    namespace_pattern: str = "describe"
    test_pattern: str = "it"


@dataclass(frozen=True)
class Declaration:
    """A namespace or test call found in a source file."""

    kind: PositionType
    name: str
    range: Range


@dataclass
class FileStructure:
    """Everything a query engine reports about one file."""

    range: Range
    declarations: list[Declaration] = field(default_factory=list)


class StructuralQueryEngine(Protocol):
    """Parses a source file and reports its declarations in source order."""

    def parse(self, path: Path, query: DeclarationQuery) -> FileStructure:
        ...


def is_test_file(path: Path | str, suffixes: Sequence[str] = DEFAULT_TEST_FILE_SUFFIXES) -> bool:
    """Check whether a file name marks it as a spec file."""
    name = Path(path).name
    return any(name.endswith(suffix) for suffix in suffixes)


def _contains(outer: Range, inner: Range) -> bool:
    return (outer[0], outer[1]) <= (inner[0], inner[1]) and (inner[2], inner[3]) <= (
        outer[2],
        outer[3],
    )


class TreeBuilder:
    """Builds position trees from files and directories."""

    def __init__(
        self,
        engine: StructuralQueryEngine,
        query: Optional[DeclarationQuery] = None,
        test_file_predicate: Callable[[Path], bool] = is_test_file,
    ):
        """Initialize the builder.

        Args:
            engine: Structural query engine used to read declarations
            query: Callee patterns for namespaces and tests
            test_file_predicate: Decides which files a directory scan keeps
        """
        self.engine = engine
        self.query = query or DeclarationQuery()
        self.is_test_file = test_file_predicate

    def build(self, target_path: Path | str) -> Optional[Tree]:
        """Discover positions under a file or directory.

        Returns:
            The position tree, or None if nothing was discovered
        """
        path = Path(target_path).resolve()
        if path.is_dir():
            node = self._build_dir(path)
        elif path.is_file():
            node = self._build_file(path)
        else:
            logger.debug("Nothing to discover at %s", path)
            node = None

        if node is None:
            return None
        return Tree.from_node(node)

    def _build_file(self, path: Path) -> PositionNode:
        structure = self.engine.parse(path, self.query)
        file_node = PositionNode(
            Position(
                id=str(path),
                type=PositionType.FILE,
                name=path.name,
                path=str(path),
                range=structure.range,
            )
        )

        ordered = sorted(
            structure.declarations,
            key=lambda d: (d.range[0], d.range[1], -d.range[2], -d.range[3]),
        )

        # Open scopes, outermost first; the file is always at the bottom
        stack: list[PositionNode] = [file_node]
        for decl in ordered:
            while len(stack) > 1 and not _contains(stack[-1].position.range, decl.range):
                stack.pop()

            parent = stack[-1]
            if parent.position.type == PositionType.TEST:
                logger.debug("Skipping %s nested in test %s", decl.name, parent.position.id)
                continue

            position = Position(
                id=self._child_id(parent, decl),
                type=decl.kind,
                name=decl.name,
                path=str(path),
                range=decl.range,
            )
            node = PositionNode(position)
            parent.children.append(node)
            stack.append(node)

        return file_node

    @staticmethod
    def _child_id(parent: PositionNode, decl: Declaration) -> str:
        position_id = f"{parent.position.id}{ID_SEPARATOR}{decl.name}"
        if any(child.position.id == position_id for child in parent.children):
            position_id = f"{position_id}@{decl.range[0]}"
        return position_id

    def _build_dir(self, root: Path) -> Optional[PositionNode]:
        files = sorted(p for p in root.rglob("*") if p.is_file() and self.is_test_file(p))
        if not files:
            return None

        logger.debug("Found %d test files under %s", len(files), root)

        dirs: dict[Path, PositionNode] = {}

        def dir_node(directory: Path) -> PositionNode:
            if directory not in dirs:
                dirs[directory] = PositionNode(
                    Position(
                        id=str(directory),
                        type=PositionType.DIR,
                        name=directory.name,
                        path=str(directory),
                    )
                )
                if directory != root:
                    dir_node(directory.parent).children.append(dirs[directory])
            return dirs[directory]

        for file_path in files:
            dir_node(file_path.parent).children.append(self._build_file(file_path))

        return dirs[root]
