"""
What a graph builder hands back: the graph plus how it was obtained
"""
from dataclasses import dataclass, field
from typing import List, Protocol

from graphslice.graph import DependencyGraph
from graphslice.models.location import Location


@dataclass
class BuildReport:
    """Observability for one build; none of these are errors"""
    engine: str
    iterations: int = 0
    converged: bool = True
    unresolved_hints: int = 0
    unresolved_names: List[str] = field(default_factory=list)
    timeouts: int = 0


@dataclass
class BuildResult:
    graph: DependencyGraph
    report: BuildReport


class GraphBuilder(Protocol):
    """Produces a dependency graph rooted at a target location"""

    def build(self, location: Location, include_tests: bool = False, intent: str = '') -> BuildResult: ...
