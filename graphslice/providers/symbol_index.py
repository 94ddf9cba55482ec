"""
Symbol resolution backed by a tree-sitter scan of the repository

Answers the SymbolProvider questions (definition, references, outgoing
calls, type information) from the declarations and name usages the
extractor records, resolving names through same-file declarations
and import tables. Names a function binds locally never resolve to
repository declarations.
"""
import logging
import os
from collections import defaultdict
from typing import Dict, List, Optional

from graphslice.extractors.python_extractor import SELF_NAMES
from graphslice.graph import Node, NodeKind
from graphslice.models.location import Location, Span, TypeInfo
from graphslice.parsers.repository_scanner import RepositoryScanner
from graphslice.utils.call_graph_builder import CallGraphBuilder
from graphslice.utils.node_search import NodeSearch

logger = logging.getLogger(__name__)


class RepositoryIndex:
    """SymbolProvider over every Python file of one repository"""

    def __init__(self, scanner: RepositoryScanner, repository_path: str = '.', sources: Optional[Dict[str, bytes]] = None):
        """
        Args:
            scanner: A scanner that has already indexed the repository
            repository_path: Root the relative paths of the index refer to
            sources: In-memory file contents, used instead of the disk when given
        """
        self.scanner = scanner
        self.repository_path = os.path.abspath(repository_path)
        self._sources = sources or {}
        self._node_cache = {}
        self._build()

    @classmethod
    def scan(cls, repository_path: str, ignore_patterns=None) -> 'RepositoryIndex':
        scanner = RepositoryScanner(ignore_patterns)
        scanner.scan_repository(repository_path)
        return cls(scanner, repository_path)

    @classmethod
    def from_sources(cls, sources: Dict[str, str], repository_path: str = '.') -> 'RepositoryIndex':
        """Index in-memory files keyed by relative path"""
        scanner = RepositoryScanner()
        encoded = {}
        for rel_path, text in sources.items():
            encoded[rel_path] = text.encode('utf-8')
            scanner.scan_source(encoded[rel_path], rel_path)
            scanner.file_count += 1
        return cls(scanner, repository_path, encoded)

    def _build(self):
        self.nodes = self.scanner.nodes
        self.node_map = self.scanner.node_map
        self.usages = self.scanner.usages
        self.imports = self.scanner.imports

        self._modules = {}
        self._top_level = defaultdict(dict)
        self._by_file = defaultdict(list)
        for sem in self.nodes:
            if sem.node_type == 'module':
                self._modules[sem.name] = sem.full_path
                continue
            self._by_file[sem.filepath].append(sem)
            if '.' not in sem.qualified_name:
                self._top_level[sem.filepath][sem.name] = sem.full_path

        self._usages_at = defaultdict(list)
        self._refs = defaultdict(list)
        unresolved = 0
        for usage in self.usages:
            usage.target = self._resolve(usage)
            self._usages_at[(usage.filepath, usage.line)].append(usage)
            if usage.target is None:
                unresolved += 1
                continue
            if usage.target == usage.enclosing and usage.role != 'call':
                continue
            self._refs[usage.target].append(usage)

        CallGraphBuilder.build_call_graph(self.nodes, self.node_map, self.usages)
        logger.debug("Resolved %d of %d usages", len(self.usages) - unresolved, len(self.usages))

    # ---------------------------------------------------------------- resolution

    def _resolve(self, usage):
        enclosing = self.node_map.get(usage.enclosing)
        local_names = enclosing.local_names if enclosing is not None else ()

        if usage.qualifier is None:
            if usage.name in local_names:
                return None
            return self._resolve_name(usage.name, usage.filepath)

        if usage.qualifier in SELF_NAMES:
            owner = self._enclosing_class(usage.enclosing)
        elif usage.qualifier.split('.')[0] in local_names:
            return None
        else:
            owner = self._resolve_name(usage.qualifier, usage.filepath)
        return self._resolve_member(owner, usage.name) if owner else None

    def _resolve_name(self, name, filepath):
        if '.' in name:
            head, *rest = name.split('.')
            owner = self._resolve_name(head, filepath)
            for part in rest:
                if owner is None:
                    return None
                owner = self._resolve_member(owner, part)
            return owner

        local = self._top_level.get(filepath, {}).get(name)
        if local:
            return local

        imported = self.imports.get(filepath, {}).get(name)
        if not imported:
            return None
        module, symbol = imported
        module_path = self._module(module)
        if symbol is None:
            return module_path
        if module_path:
            hit = self._top_level.get(self.node_map[module_path].filepath, {}).get(symbol)
            if hit:
                return hit
        return self._module(f"{module}.{symbol}")

    def _module(self, dotted):
        """Module node for an import, also under a source root such as src/"""
        exact = self._modules.get(dotted)
        if exact:
            return exact
        suffix = '.' + dotted
        candidates = [path for name, path in self._modules.items() if name.endswith(suffix)]
        return candidates[0] if len(candidates) == 1 else None

    def _resolve_member(self, owner, name, seen=None):
        sem = self.node_map.get(owner)
        if sem is None:
            return None

        if sem.node_type == 'module':
            hit = self._top_level.get(sem.filepath, {}).get(name)
            return hit or self._modules.get(f"{sem.name}.{name}")

        if sem.node_type != 'class':
            return None

        member = f"{sem.filepath}::{sem.qualified_name}.{name}"
        if member in self.node_map:
            return member

        seen = seen or set()
        seen.add(owner)
        for base in sem.bases:
            base_path = self._resolve_name(base, sem.filepath)
            if base_path and base_path not in seen:
                hit = self._resolve_member(base_path, name, seen)
                if hit:
                    return hit
        return None

    def _enclosing_class(self, enclosing):
        sem = self.node_map.get(enclosing)
        if sem is None:
            return None
        if sem.node_type == 'class':
            return sem.full_path
        if sem.node_type == 'method':
            return f"{sem.filepath}::{sem.parent_class}"
        return None

    def _innermost(self, path, line):
        best = None
        for sem in self._by_file.get(path, []):
            if sem.start_line <= line <= sem.end_line:
                if best is None or (sem.end_line - sem.start_line) <= (best.end_line - best.start_line):
                    best = sem
        return best

    def relative_path(self, path: str) -> str:
        if os.path.isabs(path):
            path = os.path.relpath(path, self.repository_path)
        return path.replace(os.sep, '/')

    def read_source(self, path: str) -> bytes:
        """Current contents of a file of the index"""
        rel_path = self.relative_path(path)
        if rel_path in self._sources:
            return self._sources[rel_path]
        with open(os.path.join(self.repository_path, rel_path), 'rb') as f:
            return f.read()

    def has_file(self, path: str) -> bool:
        rel_path = self.relative_path(path)
        return rel_path in self._sources or os.path.isfile(os.path.join(self.repository_path, rel_path))

    def to_node(self, sem) -> Node:
        """Graph node for an index record (cached so repeated answers are identical)"""
        cached = self._node_cache.get(sem.full_path)
        if cached is not None:
            return cached

        if sem.node_type == 'class':
            kind = NodeKind.TYPE
        elif sem.node_type == 'constant':
            kind = NodeKind.CONSTANT
        elif sem.node_type == 'module':
            kind = NodeKind.MODULE
        elif sem.is_test:
            kind = NodeKind.TEST
        else:
            kind = NodeKind.FUNCTION

        node = Node(
            id=sem.full_path,
            name=sem.name,
            kind=kind,
            span=Span(sem.filepath, sem.start_line, sem.end_line, sem.start_byte, sem.end_byte),
            confidence=1.0,
            source=sem.source,
            comment=sem.comment
        )
        self._node_cache[sem.full_path] = node
        return node

    # ------------------------------------------------------------------ provider

    def define(self, location: Location) -> Optional[Node]:
        """Declaration a location refers to, or the one it sits in"""
        path = self.relative_path(location.path)
        for usage in self._usages_at.get((path, location.line), []):
            if usage.target and usage.column <= location.column < usage.column + len(usage.name):
                return self.to_node(self.node_map[usage.target])

        sem = self._innermost(path, location.line)
        return self.to_node(sem) if sem else None

    def references(self, node: Node) -> List[Location]:
        return [
            Location(u.filepath, u.line, u.column, u.role)
            for u in self._refs.get(node.id, [])
        ]

    def outgoing_calls(self, node: Node) -> List[Node]:
        sem = self.node_map.get(node.id)
        if sem is None:
            return []
        return [self.to_node(self.node_map[target]) for target in sem.calls]

    def hover(self, location: Location) -> TypeInfo:
        node = self.define(location)
        if node is None:
            return TypeInfo()
        sem = self.node_map[node.id]

        def type_locations(names):
            found = []
            for name in names:
                target = self._resolve_name(name, sem.filepath)
                if target and self.node_map[target].node_type == 'class':
                    decl = self.node_map[target]
                    loc = Location(decl.filepath, decl.start_line, 0)
                    if loc not in found:
                        found.append(loc)
            return tuple(found)

        return TypeInfo(
            signature=sem.signature,
            types=type_locations(sem.annotations),
            bases=type_locations(sem.bases)
        )

    def enclosing(self, location: Location) -> Optional[Node]:
        path = self.relative_path(location.path)
        sem = self._innermost(path, location.line)
        if sem is None:
            module = self.node_map.get(f"{path}::<module>")
            return self.to_node(module) if module else None
        return self.to_node(sem)

    def related_tests(self, node: Node) -> List[Node]:
        """Tests that reference the node, then tests named after it"""
        tests = []
        for usage in self._refs.get(node.id, []):
            sem = self.node_map.get(usage.enclosing)
            if sem is not None and sem.is_test and sem not in tests:
                tests.append(sem)

        test_name_patterns = [
            f"test_{node.name}",
            f"test{node.name.capitalize()}",
            node.name.replace('_', '').lower()
        ]
        for sem in self.nodes:
            if sem.is_test and sem not in tests:
                for pattern in test_name_patterns:
                    if pattern.lower() in sem.name.lower():
                        tests.append(sem)
                        break

        return [self.to_node(sem) for sem in tests[:5]]

    def lookup(self, name: str) -> List[Node]:
        return [self.to_node(sem) for sem in NodeSearch.search_name(self.nodes, name)]
