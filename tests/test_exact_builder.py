"""
Unit tests for the exact graph builder over the in-memory sample repository.
"""
import time

import pytest

from graphslice.builders import ExactGraphBuilder
from graphslice.exceptions import SymbolNotFound
from graphslice.graph import EdgeKind, Provenance
from graphslice.models.location import Location
from graphslice.providers.symbol_index import RepositoryIndex

from conftest import MODELS_SOURCE, SERVICE_SOURCE, line_of


RUN = Location('pkg/service.py', line_of(SERVICE_SOURCE, 'def run'), 4)


class SlowReferences:
    """Delegates to a real index but stalls on references()"""

    def __init__(self, index, delay):
        self.index = index
        self.delay = delay

    def references(self, node):
        time.sleep(self.delay)
        return self.index.references(node)

    def __getattr__(self, name):
        return getattr(self.index, name)


class TestExactGraphBuilder:

    def test_callers_callees_and_types(self, index):
        graph = ExactGraphBuilder(index).build(RUN).graph

        assert graph.root_id == 'pkg/service.py::run'
        assert set(graph.nodes) == {
            'pkg/service.py::run',
            'pkg/service.py::main',
            'pkg/service.py::helper',
            'pkg/models.py::Config',
            'tests/test_service.py::test_run',
        }
        kinds = {(e.source, e.target): e.kind for e in graph.edges}
        assert kinds[('pkg/service.py::main', 'pkg/service.py::run')] == EdgeKind.CALLS
        assert kinds[('pkg/service.py::run', 'pkg/service.py::helper')] == EdgeKind.CALLS
        assert kinds[('pkg/service.py::run', 'pkg/models.py::Config')] == EdgeKind.DEFINES
        assert kinds[('tests/test_service.py::test_run', 'pkg/service.py::run')] == EdgeKind.TESTS

    def test_edges_are_exact(self, index):
        graph = ExactGraphBuilder(index).build(RUN).graph
        for edge in graph.edges:
            assert edge.confidence == 1.0
            assert edge.provenance == Provenance.EXACT

    def test_call_sites_inside_root(self, index):
        graph = ExactGraphBuilder(index).build(RUN).graph
        edge = next(e for e in graph.edges if e.target == 'pkg/service.py::helper')

        assert len(edge.sites) == 1
        assert edge.sites[0].line == line_of(SERVICE_SOURCE, 'total = helper')
        assert edge.sites[0].role == 'call'

    def test_idempotent(self, index):
        builder = ExactGraphBuilder(index)
        first = builder.build(RUN).graph
        second = builder.build(RUN).graph

        assert first.nodes == second.nodes
        assert first.edges == second.edges

    def test_no_dangling_edges(self, index):
        graph = ExactGraphBuilder(index).build(RUN, include_tests=True).graph
        for edge in graph.edges:
            assert edge.source in graph
            assert edge.target in graph

    def test_type_root_gets_implements_edge(self, index):
        location = Location('pkg/models.py', line_of(MODELS_SOURCE, 'class Config'), 6)
        graph = ExactGraphBuilder(index).build(location).graph

        implements = [e for e in graph.edges if e.kind == EdgeKind.IMPLEMENTS]
        assert [(e.source, e.target) for e in implements] == [('pkg/models.py::Config', 'pkg/models.py::Base')]

    def test_unresolvable_location(self, index):
        with pytest.raises(SymbolNotFound):
            ExactGraphBuilder(index).build(Location('pkg/service.py', 1, 0))

    def test_slow_provider_calls_are_skipped(self, index):
        builder = ExactGraphBuilder(SlowReferences(index, delay=0.5), timeout=0.05)
        result = builder.build(RUN)

        assert result.report.timeouts >= 1
        assert 'pkg/service.py::main' not in result.graph
        assert 'pkg/service.py::helper' in result.graph


# ─── Local names ────────────────────────────────────────────


CALLBACK_SOURCE = '''\
def run(callback):
    return callback()


def total():
    result = 3
    for item in range(result):
        result += item
    return result
'''

SHADOWED_SOURCE = '''\
def callback():
    return 1


def result():
    return 2


def item():
    return 3
'''


class TestLocalNames:

    @pytest.fixture
    def shadow_index(self):
        return RepositoryIndex.from_sources({'a.py': CALLBACK_SOURCE, 'b.py': SHADOWED_SOURCE})

    def test_parameter_call_is_not_an_edge(self, shadow_index):
        location = Location('a.py', line_of(CALLBACK_SOURCE, 'def run'), 4)
        graph = ExactGraphBuilder(shadow_index).build(location).graph

        assert 'b.py::callback' not in graph
        assert graph.edges == []

    def test_locals_shadow_other_files(self, shadow_index):
        location = Location('a.py', line_of(CALLBACK_SOURCE, 'def total'), 4)
        graph = ExactGraphBuilder(shadow_index).build(location).graph

        assert set(graph.nodes) == {'a.py::total'}

    def test_shadowed_declarations_have_no_references(self, shadow_index):
        for name in ('callback', 'result', 'item'):
            node = shadow_index.lookup(name)[0]
            assert shadow_index.references(node) == []

    def test_unimported_names_stay_unresolved(self):
        index = RepositoryIndex.from_sources({
            'a.py': 'def run():\n    return compute()\n',
            'b.py': 'def compute():\n    return 1\n',
        })
        assert index.outgoing_calls(index.lookup('run')[0]) == []

    def test_global_statement_keeps_module_binding(self):
        source = 'COUNT = 0\n\n\ndef bump():\n    global COUNT\n    COUNT += 1\n'
        index = RepositoryIndex.from_sources({'a.py': source})
        refs = index.references(index.lookup('COUNT')[0])

        assert [(ref.line, ref.role) for ref in refs] == [(5, 'write')]
