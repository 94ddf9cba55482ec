"""
Closure compressor: fit the dependency closure of a root into a token budget
"""
import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from graphslice.compression.budget import ContextBudget, InclusionLevel, estimate_tokens
from graphslice.compression.render import NodeRenderer
from graphslice.graph import DependencyGraph, Direction, Edge, EdgeKind, EdgeTier, Node

logger = logging.getLogger(__name__)

TIER_CAPS = {
    EdgeTier.DIRECT: InclusionLevel.FULL_SOURCE,
    EdgeTier.TRANSITIVE: InclusionLevel.INTERFACE_SUMMARY,
    EdgeTier.CONTEXTUAL: InclusionLevel.FULL_SOURCE,
}


@dataclass(frozen=True)
class SliceEntry:
    node: Node
    level: InclusionLevel
    text: str
    distance: int
    tokens: int


@dataclass(frozen=True)
class SliceMetadata:
    """Accounting for one slice; degraded outcomes are recorded here"""
    capacity: int
    consumed: int
    demoted: int = 0
    dropped: int = 0
    unvisited: int = 0
    budget_exhausted: bool = False
    pruned_edges: int = 0
    pruned_nodes: int = 0
    unresolved_hints: int = 0
    engine: Optional[str] = None
    iterations: int = 0
    converged: bool = True
    timeouts: int = 0
    equivalence: Optional[object] = None


@dataclass(frozen=True)
class Slice:
    """
    Ordered, finalized selection of nodes with their inclusion levels

    entries are in inclusion order, the root first. edges is the manifest
    of graph edges whose endpoints are both in the slice.
    """
    entries: Tuple[SliceEntry, ...]
    edges: Tuple[Edge, ...]
    metadata: SliceMetadata

    @property
    def root(self) -> SliceEntry:
        return self.entries[0]

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(entry.node.id for entry in self.entries)

    def level_of(self, node_id: str) -> Optional[InclusionLevel]:
        for entry in self.entries:
            if entry.node.id == node_id:
                return entry.level
        return None

    def with_metadata(self, **changes) -> 'Slice':
        return replace(self, metadata=replace(self.metadata, **changes))

    def __contains__(self, node_id):
        return any(entry.node.id == node_id for entry in self.entries)

    def __len__(self):
        return len(self.entries)


class ClosureCompressor:
    """Greedy breadth-first selection of inclusion levels under a budget"""

    def __init__(self, renderer: Optional[NodeRenderer] = None):
        self.renderer = renderer or NodeRenderer()

    @staticmethod
    def default_level(distance: int, via: Optional[Edge], overrides: Dict[EdgeKind, InclusionLevel]) -> InclusionLevel:
        """
        Level by distance from the root, capped by the discovering edge

        Args:
            distance: Hops from the root
            via: Edge that discovered the node (None for the root)
            overrides: Per-edge-kind caps replacing the tier cap

        Returns:
            Starting InclusionLevel before any budget demotion
        """
        if distance <= 1:
            level = InclusionLevel.FULL_SOURCE
        elif distance == 2:
            level = InclusionLevel.INTERFACE_SUMMARY
        else:
            level = InclusionLevel.REFERENCE_ONLY

        if via is None:
            return level
        cap = overrides.get(via.kind, TIER_CAPS[via.kind.tier])
        return min(level, cap)

    def compress(
        self,
        graph: DependencyGraph,
        budget: ContextBudget,
        overrides: Optional[Dict[EdgeKind, InclusionLevel]] = None,
        include_tests: bool = False
    ) -> Slice:
        """
        Select nodes and levels for the closure of the graph root

        The root is always included at full source and charged even when it
        alone exceeds the budget. Every other node gets its default level;
        when that does not fit it is demoted once, and if the demoted
        rendering still does not fit the traversal stops.

        Args:
            graph: Dependency graph (not modified)
            budget: Token budget, charged as nodes are included
            overrides: Per-edge-kind level caps
            include_tests: Follow 'tests' edges

        Returns:
            Finalized Slice
        """
        overrides = dict(overrides or {})
        kinds = [
            kind for kind in EdgeKind
            if kind.tier != EdgeTier.CONTEXTUAL or include_tests
        ]

        visits = graph.traverse(graph.root_id, Direction.BOTH, kinds)
        root_visit = next(visits)
        root_text = self.renderer.render(root_visit.node, InclusionLevel.FULL_SOURCE)
        root_cost = estimate_tokens(root_text)
        budget.charge(root_cost, force=True)
        entries = [SliceEntry(root_visit.node, InclusionLevel.FULL_SOURCE, root_text, 0, root_cost)]
        if budget.consumed > budget.capacity:
            logger.info("Root %s alone exceeds the budget (%d > %d)", graph.root_id, root_cost, budget.capacity)

        demoted = dropped = 0
        for visit in visits:
            level = self.default_level(visit.distance, visit.via, overrides)
            text = self.renderer.render(visit.node, level)
            cost = estimate_tokens(text)

            if not budget.fits(cost):
                lower = level.demoted()
                if lower is not None:
                    text = self.renderer.render(visit.node, lower)
                    cost = estimate_tokens(text)
                if lower is None or not budget.fits(cost):
                    dropped += 1
                    logger.info("Budget exhausted at %s (%d tokens left)", visit.node.id, budget.remaining)
                    break
                logger.debug("Demoted %s from %s to %s", visit.node.id, level.label, lower.label)
                level = lower
                demoted += 1

            budget.charge(cost)
            entries.append(SliceEntry(visit.node, level, text, visit.distance, cost))

        unvisited = sum(1 for _ in visits)

        included = [entry.node.id for entry in entries]
        metadata = SliceMetadata(
            capacity=budget.capacity,
            consumed=budget.consumed,
            demoted=demoted,
            dropped=dropped,
            unvisited=unvisited,
            budget_exhausted=dropped > 0 or budget.exhausted
        )
        return Slice(tuple(entries), tuple(graph.edges_between(included)), metadata)
