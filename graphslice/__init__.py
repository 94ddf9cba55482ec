"""
graphslice - budget-aware dependency slices around a target symbol
"""
from graphslice.graph import DependencyGraph, Edge, EdgeKind, Node, NodeKind, Provenance
from graphslice.compression import InclusionLevel, Slice
from graphslice.slicer import Slicer, SliceRequest, SliceResult

__all__ = [
    'DependencyGraph',
    'Edge',
    'EdgeKind',
    'Node',
    'NodeKind',
    'Provenance',
    'InclusionLevel',
    'Slice',
    'Slicer',
    'SliceRequest',
    'SliceResult',
]
