"""
Unit tests for the constraint-backed verifier: predicates, guards,
reachability pruning and equivalence certification.
"""
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from graphslice.builders import ExactGraphBuilder
from graphslice.exceptions import UnsupportedPredicate
from graphslice.graph import DependencyGraph, Edge, EdgeKind
from graphslice.models.location import Location
from graphslice.providers.base import SolverResult
from graphslice.providers.symbol_index import RepositoryIndex
from graphslice.verifier import (
    EquivalenceStatus,
    GuardExtractor,
    PairOutcome,
    Verifier,
    Z3Solver,
)
from graphslice.verifier.predicates import (
    And,
    BinOp,
    Compare,
    IntConst,
    IntVar,
    Not,
    conjunction,
    parse_predicate,
)

from conftest import DEAD_CODE_SOURCE, line_of, make_node


BRANCHES_SOURCE = '''\
def route(x):
    if x > 10:
        high()
    elif x > 5:
        middle()
    else:
        low()
'''

OPAQUE_SOURCE = '''\
def main(x):
    if check(x):
        maybe()
    return 0
'''


class UnknownSolver:
    def check(self, predicate):
        return SolverResult.UNKNOWN


class SlowSolver:
    def __init__(self, delay):
        self.delay = delay

    def check(self, predicate):
        time.sleep(self.delay)
        return SolverResult.UNSAT


def dead_code_graph(index):
    location = Location('app.py', line_of(DEAD_CODE_SOURCE, 'def main'), 4)
    return ExactGraphBuilder(index).build(location).graph


# ─── Solver ──────────────────────────────────────────────────


class TestZ3Solver:

    def test_contradiction_is_unsat(self):
        assert Z3Solver().check(Compare('>', IntConst(1), IntConst(5))) == SolverResult.UNSAT

    def test_open_condition_is_sat(self):
        assert Z3Solver().check(Compare('>', IntVar('x'), IntConst(0))) == SolverResult.SAT

    def test_linear_arithmetic(self):
        x = IntVar('x')
        predicate = And((
            Compare('==', BinOp('+', x, IntConst(3)), IntConst(7)),
            Compare('!=', x, IntConst(4)),
        ))
        assert Z3Solver().check(predicate) == SolverResult.UNSAT

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            Z3Solver(timeout_ms=0)

    def test_concurrent_checks_use_separate_contexts(self):
        solver = Z3Solver()
        x = IntVar('x')

        def window(bound):
            open_window = And((Compare('>', x, IntConst(bound)), Compare('<', x, IntConst(bound + 2))))
            closed_window = And((Compare('>', x, IntConst(bound)), Compare('<', x, IntConst(bound + 1))))
            return [(solver.check(open_window), solver.check(closed_window)) for _ in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            batches = list(pool.map(window, range(16)))

        for batch in batches:
            assert set(batch) == {(SolverResult.SAT, SolverResult.UNSAT)}


# ─── Predicates ─────────────────────────────────────────────


class TestParsePredicate:

    def test_boolean_combination(self, parser):
        predicate = parse_predicate('x > 0 and y < x', parser)
        assert predicate == And((
            Compare('>', IntVar('x'), IntConst(0)),
            Compare('<', IntVar('y'), IntVar('x')),
        ))

    def test_chained_comparison(self, parser):
        predicate = parse_predicate('0 <= i < n', parser)
        assert predicate == And((
            Compare('<=', IntConst(0), IntVar('i')),
            Compare('<', IntVar('i'), IntVar('n')),
        ))

    def test_integer_literals(self, parser):
        assert parse_predicate('0x10 == 1_6', parser) == Compare('==', IntConst(16), IntConst(16))

    def test_negation(self, parser):
        assert parse_predicate('not x', parser) == Not(Compare('!=', IntVar('x'), IntConst(0)))

    @pytest.mark.parametrize('text', ['f(x) > 0', 'x * y > 0', 'obj.size > 2', 'name == "a"', 'x >'])
    def test_unsupported(self, parser, text):
        with pytest.raises(UnsupportedPredicate):
            parse_predicate(text, parser)

    def test_conjunction_of_nothing_is_true(self):
        assert conjunction([]).value is True


# ─── Guards ─────────────────────────────────────────────────


class TestGuardExtractor:

    def test_elif_branch_negates_earlier_conditions(self, parser):
        tree = parser.parse(BRANCHES_SOURCE)
        guard = GuardExtractor().guard_at(tree, line_of(BRANCHES_SOURCE, 'middle()'), 8)

        assert guard.conditions == 2
        assert guard.predicate == And((
            Compare('>', IntVar('x'), IntConst(5)),
            Not(Compare('>', IntVar('x'), IntConst(10))),
        ))

    def test_else_branch(self, parser):
        tree = parser.parse(BRANCHES_SOURCE)
        guard = GuardExtractor().guard_at(tree, line_of(BRANCHES_SOURCE, 'low()'), 8)
        too_big = Compare('>', IntVar('x'), IntConst(7))

        assert guard.conditions == 2
        assert Z3Solver().check(conjunction([guard.predicate, too_big])) == SolverResult.UNSAT

    def test_unguarded_position_is_trivial(self, parser):
        tree = parser.parse(DEAD_CODE_SOURCE)
        guard = GuardExtractor().guard_at(tree, line_of(DEAD_CODE_SOURCE, 'return helper()'), 11)
        assert guard.trivial

    def test_single_assignment_becomes_a_fact(self, parser):
        tree = parser.parse(DEAD_CODE_SOURCE)
        guard = GuardExtractor().guard_at(tree, line_of(DEAD_CODE_SOURCE, '        unreachable_fn()'), 8)

        assert Compare('==', IntVar('x'), IntConst(10)) in guard.predicate.operands

    def test_reassigned_names_are_not_facts(self, parser):
        source = DEAD_CODE_SOURCE.replace('    x = 10\n', '    x = 10\n    x += 1\n')
        tree = parser.parse(source)
        guard = GuardExtractor().guard_at(tree, line_of(source, '        unreachable_fn()'), 8)

        assert guard.predicate == Compare('<', IntVar('x'), IntConst(5))

    def test_unsupported_condition_is_dropped(self, parser):
        tree = parser.parse(OPAQUE_SOURCE)
        guard = GuardExtractor().guard_at(tree, line_of(OPAQUE_SOURCE, 'maybe()'), 8)

        assert guard.trivial
        assert guard.unsupported == 1


# ─── Pruning ────────────────────────────────────────────────


class TestPrune:

    def test_removes_provably_dead_call(self, dead_code_index):
        graph = dead_code_graph(dead_code_index)
        assert 'app.py::unreachable_fn' in graph

        report = Verifier(Z3Solver(), read_source=dead_code_index.read_source).prune(graph)

        assert [(e.source, e.target) for e in report.pruned_edges] == [('app.py::main', 'app.py::unreachable_fn')]
        assert report.pruned_nodes == ['app.py::unreachable_fn']
        assert 'app.py::unreachable_fn' not in graph
        assert 'app.py::helper' in graph

    def test_explicit_guard_object(self):
        graph = DependencyGraph(make_node('a.py::root'))
        graph.add_node(make_node('a.py::target'))
        graph.add_edge(Edge('a.py::root', 'a.py::target', EdgeKind.CALLS,
                            guard=Compare('>', IntConst(1), IntConst(5))))

        report = Verifier(Z3Solver()).prune(graph)

        assert len(report.pruned_edges) == 1
        assert 'a.py::target' not in graph

    def test_explicit_guard_text(self):
        graph = DependencyGraph(make_node('a.py::root'))
        graph.add_node(make_node('a.py::target'))
        graph.add_edge(Edge('a.py::root', 'a.py::target', EdgeKind.CALLS, guard='1 > 5'))

        Verifier(Z3Solver()).prune(graph)

        assert 'a.py::target' not in graph

    def test_satisfiable_guard_keeps_edge(self):
        graph = DependencyGraph(make_node('a.py::root'))
        graph.add_node(make_node('a.py::target'))
        graph.add_edge(Edge('a.py::root', 'a.py::target', EdgeKind.CALLS, guard='x > 5'))

        report = Verifier(Z3Solver()).prune(graph)

        assert report.pruned_edges == []
        assert 'a.py::target' in graph

    def test_unknown_answer_keeps_edge(self, dead_code_index):
        graph = dead_code_graph(dead_code_index)
        report = Verifier(UnknownSolver(), read_source=dead_code_index.read_source).prune(graph)

        assert report.pruned_edges == []
        assert report.unknown == 1
        assert 'app.py::unreachable_fn' in graph

    def test_solver_timeout_keeps_edge(self, dead_code_index):
        graph = dead_code_graph(dead_code_index)
        verifier = Verifier(SlowSolver(0.5), read_source=dead_code_index.read_source, timeout=0.05)

        report = verifier.prune(graph)

        assert report.pruned_edges == []
        assert report.unknown == 1

    def test_unsupported_guard_keeps_edge(self):
        index = RepositoryIndex.from_sources({'app.py': OPAQUE_SOURCE + '\n\ndef maybe():\n    return 1\n'})
        location = Location('app.py', line_of(OPAQUE_SOURCE, 'def main'), 4)
        graph = ExactGraphBuilder(index).build(location).graph

        report = Verifier(Z3Solver(), read_source=index.read_source).prune(graph)

        assert report.pruned_edges == []
        assert report.unsupported == 1
        assert 'app.py::maybe' in graph


# ─── Equivalence ────────────────────────────────────────────


class TestCertifyEquivalence:

    @staticmethod
    def certify(before, after):
        return Verifier(Z3Solver()).certify_equivalence(before, after)

    def test_rewritten_condition_is_proven(self):
        result = self.certify('if x > 5:\n    go()\n', 'if 5 < x:\n    go()\n')

        assert result.status == EquivalenceStatus.PROVEN
        assert result.confidence == 1.0
        assert result.pairs[0].outcome == PairOutcome.EQUIVALENT

    def test_changed_boundary_is_different(self):
        result = self.certify('if x > 5:\n    go()\n', 'if x >= 5:\n    go()\n')

        assert result.status == EquivalenceStatus.UNKNOWN
        assert result.confidence == 0.0
        assert result.pairs[0].outcome == PairOutcome.DIFFERENT

    def test_mismatched_control_points_fail(self):
        before = 'if x > 5:\n    go()\n'
        after = 'if x > 5:\n    go()\nwhile y:\n    y -= 1\n'

        assert self.certify(before, after).status == EquivalenceStatus.FAILED

    def test_no_control_points_fail(self):
        assert self.certify('go()\n', 'go()\n').status == EquivalenceStatus.FAILED

    def test_unsupported_pair_uses_text_similarity(self):
        source = 'if check(x):\n    go()\n'
        result = self.certify(source, source)

        assert result.status == EquivalenceStatus.UNKNOWN
        assert result.confidence == 1.0
        assert result.pairs[0].outcome == PairOutcome.UNDECIDED
