"""
Source positions and type information exchanged with providers
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Location:
    """
    A position in a source file (0-based line and column).

    role is set when the location denotes a reference: 'call', 'read'
    or 'write'.
    """
    path: str
    line: int
    column: int = 0
    role: Optional[str] = None

    def __str__(self):
        return f"{self.path}:{self.line + 1}:{self.column}"


@dataclass(frozen=True)
class Span:
    """Extent of a declaration in its file"""
    path: str
    start_line: int
    end_line: int
    start_byte: int = 0
    end_byte: int = 0

    def contains(self, location: Location) -> bool:
        if location.path != self.path:
            return False
        return self.start_line <= location.line <= self.end_line

    def __str__(self):
        return f"{self.path}:{self.start_line + 1}-{self.end_line + 1}"


@dataclass(frozen=True)
class TypeInfo:
    """Hover answer: rendered signature plus the definitions of its types"""
    signature: str = ''
    types: Tuple[Location, ...] = field(default_factory=tuple)
    bases: Tuple[Location, ...] = field(default_factory=tuple)
