"""
Unit tests for the LLM inference service and client wrapper.
All model calls are mocked.
"""
import sys
from unittest.mock import MagicMock

import pytest
from langchain_core.output_parsers import PydanticOutputParser

from graphslice.exceptions import InferenceResponseError
from graphslice.graph import DependencyGraph, EdgeKind
from graphslice.llm_integration import LLMClient, LLMConfig, LLMInferenceService, parse_response
from graphslice.llm_integration.schemas import (
    DEFAULT_CONFIDENCE,
    CompletenessReport,
    DependencyEntry,
    DependencyProposal,
)
from graphslice.providers.base import InferenceContext, MissingHint

from conftest import make_node


CONTEXT = InferenceContext(
    target_name='main',
    target_source='def main():\n    let x = ;\n    return helper()\n',
    file_path='broken.py',
    surrounding='import os',
    known_symbols=('helper',)
)


def service_returning(text):
    client = MagicMock()
    client.complete.return_value = text
    return LLMInferenceService(client), client


# ─── Response parsing ───────────────────────────────────────


class TestParsing:

    def test_fenced_json_is_accepted(self):
        parser = PydanticOutputParser(pydantic_object=CompletenessReport)
        report = parse_response(parser, '```json\n{"missing": []}\n```')
        assert report == CompletenessReport(missing=[])

    def test_plain_names_become_entries(self):
        proposal = DependencyProposal.model_validate({'calls': ['helper']})
        assert proposal.calls == [DependencyEntry(name='helper')]
        assert proposal.calls[0].confidence == DEFAULT_CONFIDENCE

    def test_invalid_json(self):
        parser = PydanticOutputParser(pydantic_object=DependencyProposal)
        with pytest.raises(InferenceResponseError):
            parse_response(parser, 'the code calls helper')

    def test_non_object(self):
        parser = PydanticOutputParser(pydantic_object=DependencyProposal)
        with pytest.raises(InferenceResponseError):
            parse_response(parser, '["helper"]')

    def test_schema_violation(self):
        parser = PydanticOutputParser(pydantic_object=DependencyProposal)
        with pytest.raises(InferenceResponseError):
            parse_response(parser, '{"calls": [{"name": "helper", "confidence": "very"}]}')


# ─── Proposals ──────────────────────────────────────────────


class TestPropose:

    def test_categories_map_to_edge_kinds(self):
        service, _ = service_returning(
            '```json\n'
            '{"calls": [{"name": "helper", "confidence": 0.9, "reason": "called on return"}],'
            ' "types": ["Config"], "bases": [], "reads": ["LIMIT"]}\n'
            '```'
        )
        proposals = service.propose(CONTEXT)

        assert [(p.target, p.kind) for p in proposals] == [
            ('helper', EdgeKind.CALLS),
            ('Config', EdgeKind.DEFINES),
            ('LIMIT', EdgeKind.READS),
        ]
        assert proposals[0].confidence == 0.9
        assert proposals[0].reason == 'called on return'
        assert proposals[1].confidence == DEFAULT_CONFIDENCE

    def test_confidence_is_clamped(self):
        service, _ = service_returning('{"calls": [{"name": "helper", "confidence": 7}]}')
        assert service.propose(CONTEXT)[0].confidence == 1.0

    def test_names_are_stripped(self):
        service, _ = service_returning('{"calls": ["  helper "], "types": null}')
        assert [p.target for p in service.propose(CONTEXT)] == ['helper']

    @pytest.mark.parametrize('calls', ['[{"confidence": 0.5}]', '[42]', '["  "]'])
    def test_malformed_entries_reject_the_response(self, calls):
        service, _ = service_returning('{"calls": ' + calls + '}')
        with pytest.raises(InferenceResponseError):
            service.propose(CONTEXT)

    def test_category_must_be_a_list(self):
        service, _ = service_returning('{"calls": "helper"}')
        with pytest.raises(InferenceResponseError):
            service.propose(CONTEXT)

    def test_prompt_carries_the_context(self):
        service, client = service_returning('{}')
        service.propose(CONTEXT)

        prompt = client.complete.call_args[0][0]
        assert 'broken.py' in prompt
        assert 'import os' in prompt
        assert 'return helper()' in prompt
        assert '"calls"' in prompt


# ─── Completeness ───────────────────────────────────────────


class TestCheckComplete:

    def test_missing_items(self):
        service, client = service_returning(
            '{"missing": ["retry policy", {"description": "logging", "symbol": "log_it"}]}'
        )
        graph = DependencyGraph(make_node('broken.py::main', 'def main():\n    pass\n'))

        hints = service.check_complete(graph, 'add retries')

        assert hints == [MissingHint('retry policy'), MissingHint('logging', 'log_it')]
        assert 'add retries' in client.complete.call_args[0][0]

    def test_complete_graph(self):
        service, _ = service_returning('{"missing": []}')
        graph = DependencyGraph(make_node('broken.py::main'))
        assert service.check_complete(graph, 'rename') == []

    def test_missing_item_without_description(self):
        service, _ = service_returning('{"missing": [{"symbol": "x"}]}')
        graph = DependencyGraph(make_node('broken.py::main'))
        with pytest.raises(InferenceResponseError):
            service.check_complete(graph, 'rename')

    def test_long_graphs_are_truncated_in_the_prompt(self):
        service, client = service_returning('{"missing": []}')
        service.max_graph_nodes = 2
        graph = DependencyGraph(make_node('a.py::root'))
        for name in ('one', 'two', 'three', 'four'):
            graph.add_node(make_node(f'a.py::{name}'))

        service.check_complete(graph, 'refactor')

        prompt = client.complete.call_args[0][0]
        assert '- one' in prompt
        assert '- three' not in prompt
        assert '... and 2 more' in prompt


# ─── Client ─────────────────────────────────────────────────


class TestLLMClient:

    def test_unsupported_provider(self):
        with pytest.raises(ValueError):
            LLMClient(LLMConfig(provider='carrier-pigeon', model='x'))

    def test_complete_returns_content(self):
        client = LLMClient.__new__(LLMClient)
        client.config = LLMConfig(provider='groq', model='test')
        client.client = MagicMock()
        client.client.invoke.return_value = MagicMock(content='{"missing": []}')

        assert client.complete('prompt') == '{"missing": []}'
        messages = client.client.invoke.call_args[0][0]
        assert messages[-1].content == 'prompt'

    def test_complete_wraps_errors(self):
        client = LLMClient.__new__(LLMClient)
        client.config = LLMConfig(provider='groq', model='test')
        client.client = MagicMock()
        client.client.invoke.side_effect = RuntimeError('rate limited')

        with pytest.raises(InferenceResponseError):
            client.complete('prompt')

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv('LLM_PROVIDER', 'openai')
        monkeypatch.setenv('LLM_API_KEY', 'sk-test')
        monkeypatch.delenv('LLM_MODEL', raising=False)
        monkeypatch.delenv('LLM_BASE_URL', raising=False)

        config = LLMConfig.from_env()

        assert config.provider == 'openai'
        assert config.model == 'gpt-4o'
        assert config.api_key == 'sk-test'
        assert config.api_base is None

    def test_explicit_arguments_win(self, monkeypatch):
        monkeypatch.setenv('LLM_PROVIDER', 'openai')
        monkeypatch.setenv('LLM_MODEL', 'gpt-4o-mini')

        config = LLMConfig.from_env('groq', 'llama-3.1-8b-instant')

        assert config.provider == 'groq'
        assert config.model == 'llama-3.1-8b-instant'

    @pytest.mark.parametrize('provider, module, chat_class', [
        ('groq', 'langchain_groq', 'ChatGroq'),
        ('openai', 'langchain_openai', 'ChatOpenAI'),
    ])
    def test_sampling_settings_reach_the_provider(self, monkeypatch, provider, module, chat_class):
        fake = MagicMock()
        monkeypatch.setitem(sys.modules, module, fake)

        LLMClient(LLMConfig(provider=provider, model='test', api_key='key', temperature=0.3, top_p=0.8))

        kwargs = getattr(fake, chat_class).call_args.kwargs
        assert kwargs['top_p'] == 0.8
        assert kwargs['temperature'] == 0.3
