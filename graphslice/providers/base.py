"""
Contracts of the external collaborators the core depends on
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from graphslice.graph import DependencyGraph, EdgeKind, Node
from graphslice.models.location import Location, TypeInfo


class SymbolProvider(Protocol):
    """Symbol resolution: exact answers for code that compiles"""

    def define(self, location: Location) -> Optional[Node]: ...

    def references(self, node: Node) -> List[Location]: ...

    def outgoing_calls(self, node: Node) -> List[Node]: ...

    def hover(self, location: Location) -> TypeInfo: ...

    def enclosing(self, location: Location) -> Optional[Node]: ...

    def related_tests(self, node: Node) -> List[Node]: ...

    def lookup(self, name: str) -> List[Node]: ...


class ResilientParser(Protocol):
    def parse(self, text, path: str = ''): ...


@dataclass(frozen=True)
class ProposedEdge:
    """A dependency suggested by the inference service"""
    target: str  # symbol name as written in code
    kind: EdgeKind
    confidence: float
    reason: str = ''


@dataclass(frozen=True)
class MissingHint:
    """Something the inference service believes the graph still lacks"""
    description: str
    symbol: Optional[str] = None


@dataclass(frozen=True)
class InferenceContext:
    """What the inference service sees when proposing edges"""
    target_name: str
    target_source: str
    file_path: str
    surrounding: str = ''
    known_symbols: Sequence[str] = ()
    hints: Sequence[MissingHint] = ()


class InferenceService(Protocol):
    def propose(self, context: InferenceContext) -> List[ProposedEdge]: ...

    def check_complete(self, graph: DependencyGraph, intent: str) -> List[MissingHint]: ...


class SolverResult(str, Enum):
    SAT = 'sat'
    UNSAT = 'unsat'
    UNKNOWN = 'unknown'


class ConstraintSolver(Protocol):
    def check(self, predicate) -> SolverResult: ...


class CompilationState(str, Enum):
    GREEN = 'green'
    YELLOW = 'yellow'
    RED = 'red'


class CompilationChecker(Protocol):
    def state(self, path: str) -> CompilationState: ...
