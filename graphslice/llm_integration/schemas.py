"""
Structured response schemas for the inference prompts
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIDENCE = 0.7


class DependencyEntry(BaseModel):
    """A symbol the target depends on."""

    name: str = Field(description="Function, class, constant or module name")
    confidence: float = Field(
        default=DEFAULT_CONFIDENCE,
        description="How certain the dependency is, from 0.0 to 1.0"
    )
    reason: str = Field(default='', description="Short reason the target needs it")

    @field_validator('name')
    @classmethod
    def name_is_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator('confidence')
    @classmethod
    def clamp_confidence(cls, value):
        return min(max(value, 0.0), 1.0)

    @field_validator('reason', mode='before')
    @classmethod
    def reason_or_empty(cls, value):
        return '' if value is None else value


class DependencyProposal(BaseModel):
    """Dependencies of one declaration, grouped by how they are used."""

    calls: List[DependencyEntry] = Field(default_factory=list, description="Called functions and methods")
    types: List[DependencyEntry] = Field(default_factory=list, description="Referenced classes")
    reads: List[DependencyEntry] = Field(default_factory=list, description="Read constants and globals")
    writes: List[DependencyEntry] = Field(default_factory=list, description="Written globals")
    bases: List[DependencyEntry] = Field(default_factory=list, description="Base classes")
    imports: List[DependencyEntry] = Field(default_factory=list, description="Imported modules")
    tests: List[DependencyEntry] = Field(default_factory=list, description="Tests exercising this code")

    @field_validator('calls', 'types', 'reads', 'writes', 'bases', 'imports', 'tests', mode='before')
    @classmethod
    def accept_plain_names(cls, value):
        # models often answer ["helper"] instead of [{"name": "helper"}]
        if value is None:
            return []
        if isinstance(value, list):
            return [{'name': item} if isinstance(item, str) else item for item in value]
        return value


class MissingDependency(BaseModel):
    """Something the graph still lacks for the edit."""

    description: str = Field(description="What is missing and why it matters")
    symbol: Optional[str] = Field(default=None, description="Name of the missing symbol, if there is one")

    @field_validator('description')
    @classmethod
    def description_is_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("description must not be blank")
        return value


class CompletenessReport(BaseModel):
    """Verdict on whether the collected dependencies suffice."""

    missing: List[MissingDependency] = Field(
        default_factory=list,
        description="Missing dependencies; empty when the graph is complete"
    )

    @field_validator('missing', mode='before')
    @classmethod
    def accept_plain_descriptions(cls, value):
        if value is None:
            return []
        if isinstance(value, list):
            return [{'description': item} if isinstance(item, str) else item for item in value]
        return value
