"""
Budget-aware slice selection and rendering
"""
from .budget import ContextBudget, InclusionLevel, estimate_tokens
from .compressor import ClosureCompressor, Slice, SliceEntry, SliceMetadata
from .render import NodeRenderer, render_slice

__all__ = [
    'ContextBudget',
    'InclusionLevel',
    'estimate_tokens',
    'ClosureCompressor',
    'Slice',
    'SliceEntry',
    'SliceMetadata',
    'NodeRenderer',
    'render_slice',
]
