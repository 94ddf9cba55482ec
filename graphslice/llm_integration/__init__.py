"""
LLM-backed inference for the inferred graph builder
"""
from .inference_service import LLMInferenceService, parse_response
from .llm_client import LLMClient, LLMConfig
from .schemas import CompletenessReport, DependencyEntry, DependencyProposal, MissingDependency

__all__ = [
    'CompletenessReport',
    'DependencyEntry',
    'DependencyProposal',
    'LLMClient',
    'LLMConfig',
    'LLMInferenceService',
    'MissingDependency',
    'parse_response',
]
