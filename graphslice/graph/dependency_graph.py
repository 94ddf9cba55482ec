"""
Dependency graph shared by both graph builders

Nodes live in a flat map keyed by fully qualified identifier and edges
refer to nodes by identifier only, so mutual recursion and cyclic type
references need no special handling.
"""
import itertools
from collections import defaultdict, deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from graphslice.exceptions import DanglingEdge
from graphslice.models.location import Location, Span


class NodeKind(str, Enum):
    """Kinds of code entities"""
    FUNCTION = 'function'
    TYPE = 'type'
    CONSTANT = 'constant'
    MODULE = 'module'
    TEST = 'test'


class EdgeTier(Enum):
    """Compression tiers, from most to least relevant"""
    DIRECT = 1
    TRANSITIVE = 2
    CONTEXTUAL = 3


class EdgeKind(str, Enum):
    """Typed relations between two nodes"""
    DEFINES = 'defines'
    CALLS = 'calls'
    READS = 'reads'
    WRITES = 'writes'
    IMPLEMENTS = 'implements'
    IMPORTS = 'imports'
    TESTS = 'tests'

    @property
    def tier(self) -> EdgeTier:
        return _EDGE_TIERS[self]

    @property
    def priority(self) -> int:
        """Traversal priority, lower is visited first"""
        return _EDGE_PRIORITY[self]


_EDGE_TIERS = {
    EdgeKind.DEFINES: EdgeTier.DIRECT,
    EdgeKind.CALLS: EdgeTier.DIRECT,
    EdgeKind.READS: EdgeTier.DIRECT,
    EdgeKind.WRITES: EdgeTier.DIRECT,
    EdgeKind.IMPLEMENTS: EdgeTier.TRANSITIVE,
    EdgeKind.IMPORTS: EdgeTier.TRANSITIVE,
    EdgeKind.TESTS: EdgeTier.CONTEXTUAL,
}

_EDGE_PRIORITY = {
    EdgeKind.DEFINES: 0,
    EdgeKind.CALLS: 1,
    EdgeKind.READS: 2,
    EdgeKind.WRITES: 2,
    EdgeKind.IMPLEMENTS: 3,
    EdgeKind.IMPORTS: 4,
    EdgeKind.TESTS: 5,
}


class Provenance(str, Enum):
    """How an edge was discovered"""
    EXACT = 'exact'
    INFERRED = 'inferred'


class Direction(Enum):
    OUTGOING = 'outgoing'
    INCOMING = 'incoming'
    BOTH = 'both'


@dataclass(frozen=True)
class Node:
    """A code entity. Immutable once created."""
    id: str
    name: str
    kind: NodeKind
    span: Span
    confidence: float = 1.0
    source: str = ''
    comment: str = ''

    @property
    def qualified_name(self) -> str:
        return self.id.split('::', 1)[-1]


@dataclass(frozen=True)
class Edge:
    """
    Directed, typed relation between two node identifiers.

    sites holds the reference locations that justify the edge; guard is an
    optional predicate gating it. Both feed reachability pruning.
    """
    source: str
    target: str
    kind: EdgeKind
    confidence: float = 1.0
    provenance: Provenance = Provenance.EXACT
    sites: Tuple[Location, ...] = ()
    guard: Optional[object] = None

    @property
    def key(self) -> Tuple[str, str, EdgeKind]:
        return (self.source, self.target, self.kind)

    def other(self, node_id: str) -> str:
        """Endpoint opposite to node_id"""
        return self.target if node_id == self.source else self.source


@dataclass(frozen=True)
class Visit:
    """One step of a breadth-first traversal"""
    node: Node
    distance: int
    via: Optional[Edge] = None


class DependencyGraph:
    """
    Nodes keyed by identifier, ordered edges, one designated root.

    Every edge endpoint exists as a node; add_edge enforces it.
    """

    def __init__(self, root: Node):
        self.nodes: Dict[str, Node] = {}
        self._edges: Dict[Tuple[str, str, EdgeKind], Edge] = {}
        self._order: Dict[Tuple[str, str, EdgeKind], int] = {}
        self._outgoing: Dict[str, List[Tuple[str, str, EdgeKind]]] = defaultdict(list)
        self._incoming: Dict[str, List[Tuple[str, str, EdgeKind]]] = defaultdict(list)
        self._counter = itertools.count()
        self.root_id = root.id
        self.add_node(root)

    @property
    def root(self) -> Node:
        return self.nodes[self.root_id]

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    def __len__(self):
        return len(self.nodes)

    def __contains__(self, node_id):
        return node_id in self.nodes

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def add_node(self, node: Node) -> Node:
        """
        Insert a node, or keep whichever version has the higher confidence

        Returns:
            The node stored under node.id
        """
        existing = self.nodes.get(node.id)
        if existing is None or node.confidence > existing.confidence:
            self.nodes[node.id] = node
            return node
        return existing

    def add_edge(self, edge: Edge) -> Edge:
        """
        Append an edge, deduplicating on (source, target, kind)

        A duplicate replaces the stored edge only with a strictly higher
        confidence; at equal confidence the call sites are unioned.

        Raises:
            DanglingEdge: if either endpoint is not a node of this graph
        """
        if edge.source not in self.nodes or edge.target not in self.nodes:
            raise DanglingEdge(edge.source, edge.target)
        if not 0.0 <= edge.confidence <= 1.0:
            raise ValueError(f"Edge confidence out of range: {edge.confidence}")

        key = edge.key
        existing = self._edges.get(key)
        if existing is None:
            self._edges[key] = edge
            self._order[key] = next(self._counter)
            self._outgoing[edge.source].append(key)
            self._incoming[edge.target].append(key)
            return edge

        if edge.confidence > existing.confidence:
            self._edges[key] = edge
        elif edge.confidence == existing.confidence and edge.sites:
            merged = existing.sites + tuple(s for s in edge.sites if s not in existing.sites)
            self._edges[key] = replace(existing, sites=merged)
        return self._edges[key]

    def remove_edge(self, edge: Edge):
        key = edge.key
        if key not in self._edges:
            return
        del self._edges[key]
        del self._order[key]
        self._outgoing[edge.source].remove(key)
        self._incoming[edge.target].remove(key)

    def remove_node(self, node_id: str):
        """Remove a node and every edge touching it. The root cannot be removed."""
        if node_id == self.root_id:
            raise ValueError("The root node cannot be removed")
        for edge in self.neighbors(node_id, Direction.BOTH):
            self.remove_edge(edge)
        self.nodes.pop(node_id, None)
        self._outgoing.pop(node_id, None)
        self._incoming.pop(node_id, None)

    def neighbors(self, node_id: str, direction: Direction = Direction.OUTGOING) -> List[Edge]:
        """Edges leaving and/or entering node_id, in insertion order"""
        keys = []
        if direction in (Direction.OUTGOING, Direction.BOTH):
            keys.extend(self._outgoing.get(node_id, []))
        if direction in (Direction.INCOMING, Direction.BOTH):
            keys.extend(k for k in self._incoming.get(node_id, []) if k not in keys)
        return [self._edges[k] for k in sorted(keys, key=self._order.__getitem__)]

    def traverse(
        self,
        root: Optional[str] = None,
        direction: Direction = Direction.BOTH,
        kinds: Optional[Iterable[EdgeKind]] = None
    ) -> Iterator[Visit]:
        """
        Lazy breadth-first traversal

        Each node is visited once at its first-discovered distance. Edges
        leaving a node are explored by kind priority, then insertion order,
        so the order is fixed for a fixed graph.

        Args:
            root: Start node (defaults to the graph root)
            direction: Which edge directions to follow
            kinds: Only follow these edge kinds (all kinds when None)

        Yields:
            Visit(node, distance, discovering edge)
        """
        start = root or self.root_id
        allowed = set(kinds) if kinds is not None else None
        visited = {start}
        queue = deque([(start, 0, None)])

        while queue:
            node_id, distance, via = queue.popleft()
            yield Visit(self.nodes[node_id], distance, via)

            candidates = [
                e for e in self.neighbors(node_id, direction)
                if allowed is None or e.kind in allowed
            ]
            candidates.sort(key=lambda e: (e.kind.priority, self._order[e.key]))
            for edge in candidates:
                other = edge.other(node_id)
                if other not in visited:
                    visited.add(other)
                    queue.append((other, distance + 1, edge))

    def bfs_from(
        self,
        root: Optional[str] = None,
        direction: Direction = Direction.BOTH,
        kinds: Optional[Iterable[EdgeKind]] = None
    ) -> Iterator[Tuple[Node, int]]:
        """(node, distance) pairs in breadth-first order"""
        for visit in self.traverse(root, direction, kinds):
            yield visit.node, visit.distance

    def reachable_from(self, root: Optional[str] = None, direction: Direction = Direction.BOTH) -> Set[str]:
        return {node.id for node, _ in self.bfs_from(root, direction)}

    def prune_unreachable(self, direction: Direction = Direction.BOTH) -> List[str]:
        """
        Drop every node the root can no longer reach

        Returns:
            Identifiers of the removed nodes
        """
        reachable = self.reachable_from(self.root_id, direction)
        removed = [node_id for node_id in self.nodes if node_id not in reachable]
        for node_id in removed:
            self.remove_node(node_id)
        return removed

    def edges_between(self, node_ids: Iterable[str]) -> List[Edge]:
        ids = set(node_ids)
        return [e for e in self._edges.values() if e.source in ids and e.target in ids]

    def __repr__(self):
        return f"<DependencyGraph root={self.root_id} nodes={len(self.nodes)} edges={len(self._edges)}>"
