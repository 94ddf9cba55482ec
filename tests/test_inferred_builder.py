"""
Unit tests for the inferred graph builder and its refinement loop.
"""
import time

import pytest

from graphslice.builders import InferredGraphBuilder
from graphslice.exceptions import InferenceResponseError, SymbolNotFound
from graphslice.graph import EdgeKind, Provenance
from graphslice.models.location import Location
from graphslice.providers.base import MissingHint, ProposedEdge

from conftest import BROKEN_SOURCE, line_of


MAIN = Location('broken.py', line_of(BROKEN_SOURCE, 'return helper()'), 4)


class ScriptedInference:
    """Replays one proposal list and one hint list per round"""

    def __init__(self, proposals, hints, delay=0.0):
        self.proposals = list(proposals)
        self.hints = list(hints)
        self.delay = delay
        self.contexts = []
        self.check_calls = 0

    def propose(self, context):
        self.contexts.append(context)
        index = min(len(self.contexts), len(self.proposals)) - 1
        return self.proposals[index] if self.proposals else []

    def check_complete(self, graph, intent):
        time.sleep(self.delay)
        self.check_calls += 1
        index = min(self.check_calls, len(self.hints)) - 1
        return self.hints[index] if self.hints else []


class BrokenProposals(ScriptedInference):
    def propose(self, context):
        raise InferenceResponseError("Failed to parse LLM response")


def builder_for(inference, parser, **kwargs):
    return InferredGraphBuilder(parser, inference, read_source=lambda path: BROKEN_SOURCE.encode(), **kwargs)


# ─── Refinement loop ─────────────────────────────────────────


class TestRefinement:

    def test_converges_after_three_rounds(self, parser):
        inference = ScriptedInference(
            proposals=[
                [ProposedEdge('helper', EdgeKind.CALLS, 0.9)],
                [ProposedEdge('config_value', EdgeKind.READS, 0.6)],
                [ProposedEdge('log_it', EdgeKind.CALLS, 0.8)],
            ],
            hints=[
                [MissingHint('where the config comes from')],
                [MissingHint('how failures are logged', 'log_it')],
                [],
            ]
        )
        result = builder_for(inference, parser).build(MAIN)

        assert len(inference.contexts) == 3
        assert result.report.iterations == 3
        assert result.report.converged
        assert result.report.unresolved_hints == 0
        assert set(result.graph.nodes) == {
            'broken.py::main', 'broken.py::helper', 'broken.py::config_value', 'broken.py::log_it'
        }

    def test_hints_are_passed_to_the_next_round(self, parser):
        inference = ScriptedInference(
            proposals=[[ProposedEdge('helper', EdgeKind.CALLS, 0.9)]],
            hints=[[MissingHint('logging', 'log_it')], []]
        )
        builder_for(inference, parser).build(MAIN)

        assert inference.contexts[0].hints == ()
        assert inference.contexts[1].hints == (MissingHint('logging', 'log_it'),)
        assert 'helper' in inference.contexts[0].known_symbols
        assert 'main' not in inference.contexts[0].known_symbols
        assert inference.contexts[0].surrounding == 'import os'

    def test_iteration_cap_is_not_an_error(self, parser):
        inference = ScriptedInference(
            proposals=[[ProposedEdge('helper', EdgeKind.CALLS, 0.9)]],
            hints=[[MissingHint('more'), MissingHint('still more')]]
        )
        result = builder_for(inference, parser, max_iterations=5).build(MAIN)

        assert result.report.iterations == 5
        assert not result.report.converged
        assert result.report.unresolved_hints == 2
        assert len(inference.contexts) == 5

    def test_slow_completeness_checks_time_out(self, parser):
        inference = ScriptedInference(proposals=[[]], hints=[[]], delay=0.3)
        result = builder_for(inference, parser, max_iterations=2, timeout=0.05).build(MAIN)

        assert result.report.timeouts == 2
        assert result.report.iterations == 2
        assert not result.report.converged

    def test_unparseable_proposal_yields_no_edges(self, parser):
        result = builder_for(BrokenProposals([], [[]]), parser).build(MAIN)

        assert list(result.graph.nodes) == [result.graph.root_id]
        assert result.report.converged


# ─── Merging proposals ──────────────────────────────────────


class TestMerge:

    def test_root_of_broken_function(self, parser):
        inference = ScriptedInference(proposals=[[]], hints=[[]])
        graph = builder_for(inference, parser).build(MAIN).graph

        assert graph.root_id.endswith('::main')
        assert graph.root.span.path == 'broken.py'

    def test_edges_are_inferred_with_call_sites(self, parser):
        inference = ScriptedInference(proposals=[[ProposedEdge('helper', EdgeKind.CALLS, 0.9)]], hints=[[]])
        graph = builder_for(inference, parser).build(MAIN).graph

        edge = graph.edges[0]
        assert edge.provenance == Provenance.INFERRED
        assert edge.confidence == pytest.approx(0.9)
        assert [site.line for site in edge.sites] == [line_of(BROKEN_SOURCE, 'return helper()')]

    def test_repeated_proposals_keep_highest_confidence(self, parser):
        inference = ScriptedInference(
            proposals=[
                [ProposedEdge('helper', EdgeKind.CALLS, 0.4)],
                [ProposedEdge('helper', EdgeKind.CALLS, 0.9)],
            ],
            hints=[[MissingHint('again')], []]
        )
        graph = builder_for(inference, parser).build(MAIN).graph

        assert len(graph.edges) == 1
        assert graph.edges[0].confidence == pytest.approx(0.9)
        assert graph.nodes['broken.py::helper'].confidence == pytest.approx(0.9)

    def test_unknown_names_are_reported(self, parser):
        inference = ScriptedInference(
            proposals=[[ProposedEdge('does_not_exist', EdgeKind.CALLS, 0.5)]],
            hints=[[]]
        )
        result = builder_for(inference, parser).build(MAIN)

        assert result.report.unresolved_names == ['does_not_exist']
        assert len(result.graph.nodes) == 1

    def test_without_inference_service(self, parser):
        result = builder_for(None, parser).build(MAIN)

        assert list(result.graph.nodes) == [result.graph.root_id]
        assert not result.report.converged

    def test_location_outside_the_file(self, parser):
        with pytest.raises(SymbolNotFound):
            builder_for(None, parser).build(Location('broken.py', 500, 0))
