"""
Value types shared across graphslice
"""
from .location import Location, Span, TypeInfo
from .semantic_node import SemanticNode, Usage

__all__ = [
    'Location',
    'Span',
    'TypeInfo',
    'SemanticNode',
    'Usage',
]
