"""
Verifier: reachability pruning and advisory equivalence certification
"""
import difflib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from graphslice.exceptions import ProviderTimeout, UnsupportedPredicate
from graphslice.graph import DependencyGraph, Edge
from graphslice.parsers.partial_tree import TreeSitterParser
from graphslice.providers.base import SolverResult
from graphslice.utils.timeouts import call_with_timeout
from graphslice.verifier.guards import GuardExtractor
from graphslice.verifier.predicates import PredicateTranslator, conjunction, differs, parse_predicate

logger = logging.getLogger(__name__)

CONTROL_POINTS = ('if_statement', 'elif_clause', 'while_statement')


@dataclass
class PruneReport:
    pruned_edges: List[Edge] = field(default_factory=list)
    pruned_nodes: List[str] = field(default_factory=list)
    unknown: int = 0
    unsupported: int = 0


class PairOutcome(str, Enum):
    EQUIVALENT = 'equivalent'
    DIFFERENT = 'different'
    UNDECIDED = 'undecided'


class EquivalenceStatus(str, Enum):
    PROVEN = 'proven'
    UNKNOWN = 'unknown'
    FAILED = 'failed'


@dataclass(frozen=True)
class PairVerdict:
    original: str
    modified: str
    outcome: PairOutcome
    confidence: float


@dataclass(frozen=True)
class EquivalenceResult:
    status: EquivalenceStatus
    confidence: float
    pairs: Tuple[PairVerdict, ...] = ()
    reason: str = ''


class Verifier:
    """
    Remove provably unreachable edges and compare control predicates

    Pruning only ever removes an edge when the solver proves every one of
    its sites unreachable; UNKNOWN answers, timeouts and unsupported
    predicates keep the edge.
    """

    def __init__(self, solver, read_source=None, parser=None, timeout=None):
        """
        Args:
            solver: ConstraintSolver
            read_source: Callable path -> bytes (defaults to reading the file)
            parser: ResilientParser (defaults to TreeSitterParser)
            timeout: Deadline in seconds for each solver call
        """
        self.solver = solver
        self.read_source = read_source or self._read_file
        self.parser = parser or TreeSitterParser()
        self.timeout = timeout
        self.guards = GuardExtractor()

    @staticmethod
    def _read_file(path):
        with open(path, 'rb') as f:
            return f.read()

    def prune(self, graph: DependencyGraph) -> PruneReport:
        """
        Remove edges whose every site is unreachable, then orphaned nodes

        Args:
            graph: Graph to prune in place

        Returns:
            PruneReport listing what was removed
        """
        report = PruneReport()
        trees = {}

        for edge in graph.edges:
            if edge.guard is None and not edge.sites:
                continue
            if self._unreachable(edge, trees, report):
                logger.info("Pruning unreachable edge %s -[%s]-> %s", edge.source, edge.kind.value, edge.target)
                graph.remove_edge(edge)
                report.pruned_edges.append(edge)

        if report.pruned_edges:
            report.pruned_nodes = graph.prune_unreachable()
            if report.pruned_nodes:
                logger.info("Pruned %d nodes no longer reachable from %s", len(report.pruned_nodes), graph.root_id)
        return report

    def _unreachable(self, edge, trees, report) -> bool:
        explicit = self._explicit_guard(edge, report)
        predicates = []
        if not edge.sites:
            if explicit is None:
                return False
            predicates.append(explicit)

        for site in edge.sites:
            tree = self._tree(site.path, trees)
            if tree is None:
                return False
            guard = self.guards.guard_at(tree, site.line, site.column)
            report.unsupported += guard.unsupported
            if guard.trivial and explicit is None:
                return False
            predicates.append(conjunction([p for p in (explicit, guard.predicate) if p is not None]))

        for predicate in predicates:
            if self._check(predicate, report) != SolverResult.UNSAT:
                return False
        return True

    def _explicit_guard(self, edge, report):
        if edge.guard is None:
            return None
        if isinstance(edge.guard, str):
            try:
                return parse_predicate(edge.guard, self.parser)
            except UnsupportedPredicate as e:
                logger.debug("Ignoring edge guard: %s", e)
                report.unsupported += 1
                return None
        return edge.guard

    def _check(self, predicate, report=None) -> SolverResult:
        try:
            result = call_with_timeout(self.solver.check, self.timeout, predicate, operation='solver check')
        except ProviderTimeout as e:
            logger.warning("%s; treating it as unknown", e)
            result = SolverResult.UNKNOWN
        if result == SolverResult.UNKNOWN and report is not None:
            report.unknown += 1
        return result

    def _tree(self, path, trees):
        if path not in trees:
            try:
                trees[path] = self.parser.parse(self.read_source(path), path)
            except OSError as e:
                logger.warning("Cannot read %s for guard extraction: %s", path, e)
                trees[path] = None
        return trees[path]

    # ------------------------------------------------------------ equivalence

    def certify_equivalence(self, original: str, modified: str) -> EquivalenceResult:
        """
        Check that a change preserves the control predicates of the code

        Control points (if, elif and while conditions) are aligned in
        document order and each pair is checked for logical equivalence.
        The result is advisory.

        Args:
            original: Source before the change
            modified: Source after the change

        Returns:
            EquivalenceResult: PROVEN when every pair is equivalent, FAILED
            when the control points cannot be extracted or aligned, UNKNOWN
            with a heuristic confidence otherwise
        """
        before_tree = self.parser.parse(original)
        after_tree = self.parser.parse(modified)
        before = self._control_points(before_tree)
        after = self._control_points(after_tree)

        if not before or not after:
            return EquivalenceResult(EquivalenceStatus.FAILED, 0.0, reason='no control points')
        if len(before) != len(after):
            return EquivalenceResult(
                EquivalenceStatus.FAILED, 0.0,
                reason=f'{len(before)} control points before, {len(after)} after'
            )

        pairs = []
        for old_node, new_node in zip(before, after):
            old_text = before_tree.text(old_node)
            new_text = after_tree.text(new_node)
            outcome = PairOutcome.UNDECIDED
            try:
                old_predicate = PredicateTranslator(before_tree).condition(old_node)
                new_predicate = PredicateTranslator(after_tree).condition(new_node)
            except UnsupportedPredicate as e:
                logger.debug("Control point outside the fragment: %s", e)
            else:
                answer = self._check(differs(old_predicate, new_predicate))
                if answer == SolverResult.UNSAT:
                    outcome = PairOutcome.EQUIVALENT
                elif answer == SolverResult.SAT:
                    outcome = PairOutcome.DIFFERENT

            if outcome == PairOutcome.EQUIVALENT:
                confidence = 1.0
            elif outcome == PairOutcome.DIFFERENT:
                confidence = 0.0
            else:
                confidence = difflib.SequenceMatcher(None, old_text, new_text).ratio()
            pairs.append(PairVerdict(old_text, new_text, outcome, confidence))

        overall = sum(p.confidence for p in pairs) / len(pairs)
        if all(p.outcome == PairOutcome.EQUIVALENT for p in pairs):
            return EquivalenceResult(EquivalenceStatus.PROVEN, 1.0, tuple(pairs))
        return EquivalenceResult(EquivalenceStatus.UNKNOWN, overall, tuple(pairs))

    @staticmethod
    def _control_points(tree) -> list:
        points = []

        def walk(node):
            if node.type in CONTROL_POINTS:
                condition = node.child_by_field_name('condition')
                if condition is not None:
                    points.append(condition)
            for child in node.children:
                walk(child)

        walk(tree.root)
        return points
