"""
Engine selection from compilation state
"""
import logging
import warnings
from enum import Enum

from graphslice.parsers.partial_tree import TreeSitterParser
from graphslice.providers.base import CompilationState

logger = logging.getLogger(__name__)


class Engine(str, Enum):
    """Graph-construction disciplines"""
    EXACT = 'exact'
    INFERRED = 'inferred'


def select_engine(state: CompilationState) -> Engine:
    """GREEN and YELLOW files get exact resolution, RED files inference"""
    if state == CompilationState.RED:
        return Engine.INFERRED
    return Engine.EXACT


class SyntaxCompilationChecker:
    """
    Compilation state of a Python file

    RED when tree-sitter finds error or missing nodes, YELLOW when the tree
    is clean but the builtin compiler still rejects the file, GREEN otherwise.
    """

    def __init__(self, read_source=None, parser=None):
        self.read_source = read_source or self._read_file
        self.parser = parser or TreeSitterParser()

    @staticmethod
    def _read_file(path):
        with open(path, 'rb') as f:
            return f.read()

    def state(self, path: str) -> CompilationState:
        source = self.read_source(path)
        tree = self.parser.parse(source, path)
        if tree.has_errors:
            logger.info("%s has %d syntax error regions", path, len(tree.error_ranges()))
            return CompilationState.RED

        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                compile(source, path, 'exec', dont_inherit=True)
        except (SyntaxError, ValueError) as e:
            logger.info("%s parses but does not compile: %s", path, e)
            return CompilationState.YELLOW

        return CompilationState.GREEN
