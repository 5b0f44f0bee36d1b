"""Tree-sitter based structural query engine for Lua spec files."""

import logging
import re
from pathlib import Path
from typing import Optional

import tree_sitter_lua
from tree_sitter import Language, Node, Parser

from specbridge.core.discovery import Declaration, DeclarationQuery, FileStructure
from specbridge.core.positions import PositionType, Range

logger = logging.getLogger(__name__)

LUA_LANGUAGE = Language(tree_sitter_lua.language())


def _node_range(node: Node) -> Range:
    return (
        node.start_point[0] + 1,
        node.start_point[1],
        node.end_point[0] + 1,
        node.end_point[1],
    )


def _text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


class LuaQueryEngine:
    """Finds ``describe``/``it`` style calls in Lua source.

    A call counts as a declaration when its callee is a plain identifier
    matching one of the query patterns and its arguments are a name
    expression followed by a function definition.
    """

    def __init__(self):
        self.parser = Parser(LUA_LANGUAGE)

    def parse(self, path: Path, query: DeclarationQuery) -> FileStructure:
        source = Path(path).read_bytes()
        return self.parse_source(source, query)

    def parse_source(self, source: bytes, query: DeclarationQuery) -> FileStructure:
        tree = self.parser.parse(source)
        root = tree.root_node

        namespace_re = re.compile(query.namespace_pattern)
        test_re = re.compile(query.test_pattern)

        declarations = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "function_call":
                decl = self._declaration(node, namespace_re, test_re)
                if decl is not None:
                    declarations.append(decl)
            stack.extend(reversed(node.children))

        logger.debug("Parsed %d declarations", len(declarations))
        return FileStructure(
            range=(1, 0, root.end_point[0] + 1, root.end_point[1]),
            declarations=declarations,
        )

    @staticmethod
    def _declaration(
        node: Node, namespace_re: re.Pattern, test_re: re.Pattern
    ) -> Optional[Declaration]:
        callee = node.child_by_field_name("name")
        arguments = node.child_by_field_name("arguments")
        if callee is None or arguments is None or callee.type != "identifier":
            return None

        args = [child for child in arguments.named_children if child.type != "comment"]
        if len(args) < 2 or args[-1].type != "function_definition":
            return None

        func_name = _text(callee)
        if namespace_re.search(func_name):
            kind = PositionType.NAMESPACE
        elif test_re.search(func_name):
            kind = PositionType.TEST
        else:
            return None

        return Declaration(kind=kind, name=_text(args[0]), range=_node_range(node))
