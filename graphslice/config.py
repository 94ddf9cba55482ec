"""
Runtime configuration for slice requests
"""
import os
from dataclasses import dataclass, field
from typing import Set


@dataclass
class SliceConfig:
    """Limits and defaults shared by every slice request"""
    max_iterations: int = 5
    provider_timeout: float = 30.0
    inference_timeout: float = 60.0
    solver_timeout: float = 5.0
    token_budget: int = 8000
    include_tests: bool = False
    ignore_patterns: Set[str] = field(default_factory=set)

    @classmethod
    def from_env(cls) -> 'SliceConfig':
        """
        Build a config from GRAPHSLICE_* environment variables

        Returns:
            SliceConfig with defaults for any variable that is not set
        """
        config = cls()
        config.max_iterations = int(os.getenv('GRAPHSLICE_MAX_ITERATIONS', config.max_iterations))
        config.provider_timeout = float(os.getenv('GRAPHSLICE_PROVIDER_TIMEOUT', config.provider_timeout))
        config.inference_timeout = float(os.getenv('GRAPHSLICE_INFERENCE_TIMEOUT', config.inference_timeout))
        config.solver_timeout = float(os.getenv('GRAPHSLICE_SOLVER_TIMEOUT', config.solver_timeout))
        config.token_budget = int(os.getenv('GRAPHSLICE_TOKEN_BUDGET', config.token_budget))
        config.include_tests = os.getenv('GRAPHSLICE_INCLUDE_TESTS', '').lower() in ('1', 'true', 'yes')

        ignore = os.getenv('GRAPHSLICE_IGNORE', '')
        if ignore:
            config.ignore_patterns = {p.strip() for p in ignore.split(',') if p.strip()}

        return config
