"""
Graph builders: exact (symbol resolution) and inferred (partial tree + inference)
"""
from .result import BuildReport, BuildResult, GraphBuilder
from .exact_builder import ExactGraphBuilder
from .inferred_builder import InferredGraphBuilder

__all__ = [
    'BuildReport',
    'BuildResult',
    'GraphBuilder',
    'ExactGraphBuilder',
    'InferredGraphBuilder',
]
