"""
Inferred graph builder for files that do not compile

Starts from an error-tolerant parse, asks the inference service for
dependencies, then runs a bounded verify/refine loop. The iteration cap is
a resource bound: reaching it is a normal end state, not an error.
"""
import logging
import re
from dataclasses import replace

from graphslice.builders.result import BuildReport, BuildResult
from graphslice.exceptions import InferenceResponseError, ProviderTimeout, SymbolNotFound
from graphslice.graph import DependencyGraph, Edge, EdgeKind, Node, NodeKind, Provenance
from graphslice.models.location import Location, Span
from graphslice.providers.base import InferenceContext
from graphslice.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

HEADER = re.compile(r'^\s*(?:@.*\n\s*)*(?:async\s+)?(def|class)\s+([A-Za-z_]\w*)')


class InferredGraphBuilder:
    """Build a graph from a partial tree plus inference-service suggestions"""

    def __init__(self, parser, inference, symbols=None, read_source=None, max_iterations=5, timeout=None):
        """
        Args:
            parser: ResilientParser producing PartialTree objects
            inference: InferenceService proposing edges and checking completeness
            symbols: Provider with lookup(name) used to resolve proposed names
            read_source: Callable path -> bytes (defaults to reading the file)
            max_iterations: Cap on completeness checks
            timeout: Deadline in seconds for each inference call
        """
        self.parser = parser
        self.inference = inference
        self.symbols = symbols
        self.read_source = read_source or self._read_file
        self.max_iterations = max_iterations
        self.timeout = timeout

    @staticmethod
    def _read_file(path):
        with open(path, 'rb') as f:
            return f.read()

    def build(self, location: Location, include_tests: bool = False, intent: str = '') -> BuildResult:
        """
        Build the dependency graph for the declaration enclosing location

        Args:
            location: Target position inside a file that may not compile
            include_tests: Keep proposed 'tests' edges (they are always kept
                in the graph; the compressor decides whether to render them)
            intent: Edit intent passed to the completeness check

        Raises:
            SymbolNotFound: if no declaration or statement encloses location
        """
        report = BuildReport(engine='inferred', converged=False)
        path = location.path
        tree = self.parser.parse(self.read_source(path), path)

        declaration = tree.enclosing_declaration(location.line, location.column)
        if declaration is None:
            raise SymbolNotFound(f"Nothing to slice at {location}")

        root = self._root_node(tree, declaration, path)
        graph = DependencyGraph(root)
        local = dict(tree.declarations())
        logger.info("Inferred build rooted at %s (%d syntax error regions)", root.id, len(tree.error_ranges()))
        if self.inference is None:
            logger.warning("No inference service configured; %s gets no inferred edges", root.id)
            return BuildResult(graph, report)

        context = InferenceContext(
            target_name=root.qualified_name,
            target_source=root.source,
            file_path=path,
            surrounding=self._imports_text(tree),
            known_symbols=tuple(name for name in local if name != root.qualified_name)
        )
        self._merge(graph, tree, declaration, self._propose(context, report), local, report)

        for iteration in range(1, self.max_iterations + 1):
            report.iterations = iteration
            hints = self._check(graph, intent or f"understand {root.qualified_name}", report)

            if hints is not None and not hints:
                report.converged = True
                report.unresolved_hints = 0
                break
            if hints:
                report.unresolved_hints = len(hints)
            if iteration == self.max_iterations:
                logger.info("Refinement stopped at the %d-iteration cap", self.max_iterations)
                break
            if hints:
                logger.debug("Round %d: %d missing-dependency hints", iteration, len(hints))
                refined = replace(context, hints=tuple(hints))
                self._merge(graph, tree, declaration, self._propose(refined, report), local, report)

        return BuildResult(graph, report)

    def _propose(self, context, report):
        try:
            return call_with_timeout(self.inference.propose, self.timeout, context, operation='propose')
        except ProviderTimeout as e:
            logger.warning("%s; no edges this round", e)
            report.timeouts += 1
        except InferenceResponseError as e:
            logger.warning("Discarding proposal: %s", e)
        return []

    def _check(self, graph, intent, report):
        """Hints from the completeness check, or None when there was no answer"""
        try:
            return call_with_timeout(self.inference.check_complete, self.timeout, graph, intent, operation='check_complete')
        except ProviderTimeout as e:
            logger.warning("%s; counting the round as not converged", e)
            report.timeouts += 1
        except InferenceResponseError as e:
            logger.warning("Discarding completeness answer: %s", e)
        return None

    def _merge(self, graph, tree, declaration, proposals, local, report):
        root = graph.root
        for proposal in proposals:
            target = self._resolve(proposal.target, root.span.path, tree, local)
            if target is None:
                if proposal.target not in report.unresolved_names:
                    report.unresolved_names.append(proposal.target)
                continue
            if target.id == root.id:
                continue

            confidence = min(max(float(proposal.confidence), 0.0), 1.0)
            graph.add_node(replace(target, confidence=confidence))

            sites = ()
            if proposal.kind == EdgeKind.CALLS:
                simple = proposal.target.rsplit('.', 1)[-1]
                sites = tuple(
                    Location(root.span.path, line, column, 'call')
                    for line, column in tree.find_call_sites(declaration, simple)
                )

            if proposal.kind == EdgeKind.TESTS:
                edge = Edge(target.id, root.id, proposal.kind, confidence, Provenance.INFERRED)
            else:
                edge = Edge(root.id, target.id, proposal.kind, confidence, Provenance.INFERRED, sites)
            graph.add_edge(edge)

    def _resolve(self, name, path, tree, local):
        candidates = self.symbols.lookup(name) if self.symbols is not None else []
        if candidates:
            same_file = [c for c in candidates if c.span.path == path]
            return (same_file or candidates)[0]

        simple = name.rsplit('.', 1)[-1]
        for qualified, node in local.items():
            if qualified == name or qualified.rsplit('.', 1)[-1] == simple:
                return self._tree_node(tree, node, path, qualified)
        return None

    def _root_node(self, tree, declaration, path):
        qualified = tree.declaration_name(declaration)
        if qualified is None:
            match = HEADER.match(tree.text(declaration))
            if match:
                qualified = match.group(2)
            else:
                qualified = f"<statement:{declaration.start_point[0] + 1}>"
        return self._tree_node(tree, declaration, path, qualified)

    @staticmethod
    def _tree_node(tree, node, path, qualified):
        text = tree.text(node)
        match = HEADER.match(text)
        name = qualified.rsplit('.', 1)[-1]
        if match and match.group(1) == 'class':
            kind = NodeKind.TYPE
        elif match and name.startswith('test'):
            kind = NodeKind.TEST
        elif match:
            kind = NodeKind.FUNCTION
        else:
            kind = NodeKind.MODULE

        return Node(
            id=f"{path}::{qualified}",
            name=name,
            kind=kind,
            span=Span(path, node.start_point[0], node.end_point[0], node.start_byte, node.end_byte),
            confidence=1.0,
            source=text
        )

    @staticmethod
    def _imports_text(tree):
        lines = []
        for child in tree.root.children:
            if child.type in ('import_statement', 'import_from_statement'):
                lines.append(tree.text(child))
        return '\n'.join(lines)
