"""
Token budget and inclusion levels
"""
from enum import IntEnum
from typing import Optional


class InclusionLevel(IntEnum):
    """Rendering fidelity; larger values are bigger and more informative"""
    REFERENCE_ONLY = 1
    INTERFACE_SUMMARY = 2
    FULL_SOURCE = 3

    @property
    def label(self) -> str:
        return self.name.lower().replace('_', '-')

    @property
    def marker(self) -> str:
        return _MARKERS[self]

    def demoted(self) -> Optional['InclusionLevel']:
        """The next level down, or None below reference-only"""
        if self == InclusionLevel.REFERENCE_ONLY:
            return None
        return InclusionLevel(self - 1)


_MARKERS = {
    InclusionLevel.FULL_SOURCE: 'FULL',
    InclusionLevel.INTERFACE_SUMMARY: 'INTERFACE',
    InclusionLevel.REFERENCE_ONLY: 'REF',
}


def estimate_tokens(text: str) -> int:
    """
    Estimate token count (rough approximation)
    ~1 token per 4 characters
    """
    return len(text) // 4


class ContextBudget:
    """Token capacity plus a running consumption counter"""

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Budget capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self.consumed = 0

    @property
    def remaining(self) -> int:
        return max(self.capacity - self.consumed, 0)

    @property
    def exhausted(self) -> bool:
        return self.consumed >= self.capacity

    def fits(self, cost: int) -> bool:
        return cost <= self.remaining

    def charge(self, cost: int, force: bool = False) -> bool:
        """
        Consume cost tokens if they fit

        Args:
            cost: Tokens to consume
            force: Charge even past capacity (only the root is charged this way)

        Returns:
            True if the tokens were charged
        """
        if not force and not self.fits(cost):
            return False
        self.consumed += cost
        return True

    def __repr__(self):
        return f"<ContextBudget {self.consumed}/{self.capacity}>"
