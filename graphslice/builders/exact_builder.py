"""
Exact graph builder: edges straight from symbol resolution
"""
import logging
from collections import OrderedDict

from graphslice.builders.result import BuildReport, BuildResult
from graphslice.exceptions import ProviderTimeout, SymbolNotFound
from graphslice.graph import DependencyGraph, Edge, EdgeKind, NodeKind, Provenance
from graphslice.models.location import Location, TypeInfo
from graphslice.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

ROLE_KINDS = {
    'call': EdgeKind.CALLS,
    'read': EdgeKind.READS,
    'write': EdgeKind.WRITES,
}


class ExactGraphBuilder:
    """
    Build a graph around a target from a SymbolProvider

    Assumes the involved files compile; there is no partial recovery.
    Every edge carries confidence 1.0 and provenance 'exact'.
    """

    def __init__(self, provider, timeout=None):
        """
        Args:
            provider: SymbolProvider answering define/references/outgoing_calls/hover
            timeout: Deadline in seconds for each provider call
        """
        self.provider = provider
        self.timeout = timeout

    def build(self, location: Location, include_tests: bool = False, intent: str = '') -> BuildResult:
        """
        Build the dependency graph rooted at the symbol defined at location

        Args:
            location: Target position
            include_tests: Also add 'tests' edges from related tests
            intent: Unused by the exact engine

        Returns:
            BuildResult with the graph and a build report

        Raises:
            SymbolNotFound: if the location does not resolve
        """
        report = BuildReport(engine='exact')

        try:
            root = call_with_timeout(self.provider.define, self.timeout, location, operation='define')
        except ProviderTimeout as e:
            raise SymbolNotFound(f"No definition at {location}: {e}")
        if root is None:
            raise SymbolNotFound(f"No definition at {location}")

        graph = DependencyGraph(root)
        logger.info("Exact build rooted at %s", root.id)

        self._add_callers(graph, root, report)
        self._add_callees(graph, root, report)
        self._add_signature_types(graph, root, report)
        if include_tests:
            self._add_tests(graph, root, report)

        return BuildResult(graph, report)

    def _ask(self, method, arg, report, default):
        try:
            return call_with_timeout(method, self.timeout, arg, operation=getattr(method, '__name__', 'provider call'))
        except ProviderTimeout as e:
            logger.warning("%s; continuing without it", e)
            report.timeouts += 1
            return default

    def _add_callers(self, graph, root, report):
        grouped = OrderedDict()
        for ref in self._ask(self.provider.references, root, report, []):
            caller = self._ask(self.provider.enclosing, ref, report, None)
            if caller is None or caller.id == root.id:
                continue
            if caller.kind == NodeKind.TEST:
                kind = EdgeKind.TESTS
            else:
                kind = ROLE_KINDS.get(ref.role, EdgeKind.READS)
            entry = grouped.setdefault((caller.id, kind), (caller, []))
            entry[1].append(ref)

        for (_, kind), (caller, sites) in grouped.items():
            graph.add_node(caller)
            sites = tuple(sites) if kind != EdgeKind.TESTS else ()
            graph.add_edge(Edge(caller.id, root.id, kind, 1.0, Provenance.EXACT, sites))

    def _add_callees(self, graph, root, report):
        for callee in self._ask(self.provider.outgoing_calls, root, report, []):
            if callee.id == root.id:
                continue
            sites = tuple(
                loc for loc in self._ask(self.provider.references, callee, report, [])
                if loc.role == 'call' and root.span.contains(loc)
            )
            graph.add_node(callee)
            graph.add_edge(Edge(root.id, callee.id, EdgeKind.CALLS, 1.0, Provenance.EXACT, sites))

    def _add_signature_types(self, graph, root, report):
        info = self._ask(
            self.provider.hover,
            Location(root.span.path, root.span.start_line, 0),
            report,
            TypeInfo()
        )
        for kind, locations in ((EdgeKind.DEFINES, info.types), (EdgeKind.IMPLEMENTS, info.bases)):
            for loc in locations:
                type_node = self._ask(self.provider.define, loc, report, None)
                if type_node is None or type_node.id == root.id:
                    continue
                graph.add_node(type_node)
                graph.add_edge(Edge(root.id, type_node.id, kind, 1.0, Provenance.EXACT))

    def _add_tests(self, graph, root, report):
        for test in self._ask(self.provider.related_tests, root, report, []):
            if test.id == root.id:
                continue
            graph.add_node(test)
            graph.add_edge(Edge(test.id, root.id, EdgeKind.TESTS, 1.0, Provenance.EXACT))
