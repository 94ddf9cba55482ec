"""
External collaborator contracts and the default repository-backed provider
"""
from .base import (
    CompilationChecker,
    CompilationState,
    ConstraintSolver,
    InferenceContext,
    InferenceService,
    MissingHint,
    ProposedEdge,
    ResilientParser,
    SolverResult,
    SymbolProvider,
)
from .symbol_index import RepositoryIndex

__all__ = [
    'CompilationChecker',
    'CompilationState',
    'ConstraintSolver',
    'InferenceContext',
    'InferenceService',
    'MissingHint',
    'ProposedEdge',
    'ResilientParser',
    'SolverResult',
    'SymbolProvider',
    'RepositoryIndex',
]
