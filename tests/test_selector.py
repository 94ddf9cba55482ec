"""
Unit tests for compilation-state checks and engine selection.
"""
import pytest

from graphslice.engine import Engine, SyntaxCompilationChecker, select_engine
from graphslice.providers.base import CompilationState


SOURCES = {
    'green.py': b'def f():\n    return 1\n',
    'red.py': b'def f(:\n    return 1\n',
    'yellow.py': b'return 1\n',
}


@pytest.fixture
def checker(parser):
    return SyntaxCompilationChecker(read_source=SOURCES.__getitem__, parser=parser)


class TestCompilationState:

    def test_clean_file_is_green(self, checker):
        assert checker.state('green.py') == CompilationState.GREEN

    def test_syntax_errors_are_red(self, checker):
        assert checker.state('red.py') == CompilationState.RED

    def test_parse_ok_but_rejected_by_compiler_is_yellow(self, checker):
        assert checker.state('yellow.py') == CompilationState.YELLOW


class TestSelectEngine:

    @pytest.mark.parametrize('state,engine', [
        (CompilationState.GREEN, Engine.EXACT),
        (CompilationState.YELLOW, Engine.EXACT),
        (CompilationState.RED, Engine.INFERRED),
    ])
    def test_mapping(self, state, engine):
        assert select_engine(state) == engine
