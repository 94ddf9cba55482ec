"""
Shared fixtures: a small in-memory repository and graph helpers
"""
import pytest

from graphslice.graph import Node, NodeKind
from graphslice.models.location import Span
from graphslice.parsers.partial_tree import TreeSitterParser
from graphslice.providers.symbol_index import RepositoryIndex


# ─── Sample repository ──────────────────────────────────────


MODELS_SOURCE = '''\
class Base:
    def describe(self):
        return "base"


class Config(Base):
    """Settings for a run."""
    retries: int = 3

    def load(self):
        return self.describe()
'''

SERVICE_SOURCE = '''\
from pkg.models import Config

LIMIT = 10


def helper(value):
    return value * 2


def run(config: Config) -> int:
    total = helper(LIMIT)
    config.load()
    return total


def main():
    return run(Config())
'''

TEST_SOURCE = '''\
from pkg.service import run


def test_run():
    assert run(None) == 20
'''

DEAD_CODE_SOURCE = '''\
def helper():
    return 1


def unreachable_fn():
    return 2


def main():
    x = 10
    if x < 5:
        unreachable_fn()
    return helper()
'''

BROKEN_SOURCE = '''\
import os


def main():
    let x = ;
    return helper()


def helper():
    return 1


def config_value():
    return 2


def log_it(message):
    print(message)
'''


def line_of(source, needle):
    """0-based line of the first line containing needle"""
    for number, line in enumerate(source.split('\n')):
        if needle in line:
            return number
    raise ValueError(f"{needle!r} not in source")


def make_node(node_id, source='', kind=NodeKind.FUNCTION, confidence=1.0, comment=''):
    path, qualified = node_id.split('::', 1)
    lines = source.count('\n')
    return Node(
        id=node_id,
        name=qualified.rsplit('.', 1)[-1],
        kind=kind,
        span=Span(path, 0, lines),
        confidence=confidence,
        source=source,
        comment=comment
    )


@pytest.fixture(scope='session')
def parser():
    return TreeSitterParser()


@pytest.fixture
def sample_sources():
    return {
        'pkg/__init__.py': '',
        'pkg/models.py': MODELS_SOURCE,
        'pkg/service.py': SERVICE_SOURCE,
        'tests/test_service.py': TEST_SOURCE,
    }


@pytest.fixture
def index(sample_sources):
    return RepositoryIndex.from_sources(sample_sources)


@pytest.fixture
def dead_code_index():
    return RepositoryIndex.from_sources({'app.py': DEAD_CODE_SOURCE})
