"""
Error-tolerant parsing on top of tree-sitter

tree-sitter never rejects input: unparseable regions become ERROR or
MISSING nodes and the rest of the file keeps its structure, which is what
the inferred graph builder needs for files that do not compile.
"""
from typing import List, Optional, Tuple

import tree_sitter_python as tspython
from tree_sitter import Language, Parser

DECLARATION_TYPES = ('function_definition', 'class_definition')


class PartialTree:
    """A possibly broken syntax tree plus the bytes it was parsed from"""

    def __init__(self, tree, source: bytes, path: str = ''):
        self.tree = tree
        self.source = source
        self.path = path

    @property
    def root(self):
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def text(self, node) -> str:
        return self.source[node.start_byte:node.end_byte].decode('utf-8', errors='replace')

    def error_ranges(self) -> List[Tuple[int, int]]:
        """(start_line, end_line) of every ERROR or MISSING node"""
        ranges = []

        def walk(node):
            if node.type == 'ERROR' or node.is_missing:
                ranges.append((node.start_point[0], node.end_point[0]))
                return
            if node.has_error:
                for child in node.children:
                    walk(child)

        walk(self.root)
        return ranges

    def node_at(self, line: int, column: int = 0):
        point = (line, column)
        return self.root.descendant_for_point_range(point, point)

    def enclosing_declaration(self, line: int, column: int = 0):
        """
        Smallest function or class containing the position

        Decorated declarations are returned with their decorators. When no
        declaration encloses the position (for example the header itself is
        broken), the top-level statement containing it is returned instead.

        Returns:
            Tree-sitter node or None if the position is outside the file
        """
        if line < 0 or line > self.root.end_point[0]:
            return None
        node = self.node_at(line, column)
        if node is None:
            return None

        current = node
        while current is not None:
            if current.type in DECLARATION_TYPES:
                parent = current.parent
                if parent is not None and parent.type == 'decorated_definition':
                    return parent
                return current
            current = current.parent

        current = node
        while current.parent is not None and current.parent.type != 'module':
            current = current.parent
        if current.type == 'module':
            return None
        return current

    def declaration_name(self, node) -> Optional[str]:
        """Qualified name of a declaration node (Outer.inner for members)"""
        definition = node
        if node.type == 'decorated_definition':
            definition = node.child_by_field_name('definition')
        if definition is None or definition.type not in DECLARATION_TYPES:
            return None
        name_node = definition.child_by_field_name('name')
        if name_node is None:
            return None

        parts = [self.text(name_node)]
        parent = definition.parent
        while parent is not None:
            if parent.type == 'class_definition':
                outer_name = parent.child_by_field_name('name')
                if outer_name is not None:
                    parts.append(self.text(outer_name))
            parent = parent.parent
        return '.'.join(reversed(parts))

    def declarations(self) -> List[Tuple[str, object]]:
        """(qualified name, node) for every function and class in the file"""
        found = []

        def walk(node):
            if node.type in DECLARATION_TYPES:
                outer = node.parent if node.parent is not None and node.parent.type == 'decorated_definition' else node
                name = self.declaration_name(node)
                if name:
                    found.append((name, outer))
            for child in node.children:
                walk(child)

        walk(self.root)
        return found

    def find_call_sites(self, node, name: str) -> List[Tuple[int, int]]:
        """Positions of calls to `name` (bare or as an attribute) below node"""
        sites = []

        def walk(current):
            if current.type == 'call':
                function = current.child_by_field_name('function')
                target = function
                if function is not None and function.type == 'attribute':
                    target = function.child_by_field_name('attribute')
                if target is not None and target.type == 'identifier' and self.text(target) == name:
                    sites.append((target.start_point[0], target.start_point[1]))
            for child in current.children:
                walk(child)

        walk(node)
        return sites


class TreeSitterParser:
    """Resilient parser for Python source"""

    def __init__(self):
        self.language = Language(tspython.language())
        self.parser = Parser(self.language)

    def parse(self, text, path: str = '') -> PartialTree:
        """
        Parse source text; never fails

        Args:
            text: Source as str or bytes
            path: Optional file path kept for locations

        Returns:
            PartialTree with error nodes in place of unparseable regions
        """
        source = text.encode('utf-8') if isinstance(text, str) else text
        return PartialTree(self.parser.parse(source), source, path)
