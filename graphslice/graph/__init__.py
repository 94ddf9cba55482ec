"""
Dependency graph model
"""
from .dependency_graph import (
    DependencyGraph,
    Direction,
    Edge,
    EdgeKind,
    EdgeTier,
    Node,
    NodeKind,
    Provenance,
    Visit,
)

__all__ = [
    'DependencyGraph',
    'Direction',
    'Edge',
    'EdgeKind',
    'EdgeTier',
    'Node',
    'NodeKind',
    'Provenance',
    'Visit',
]
