"""
Base models for timing-checker metadata.

Provides shared base models with centralized configuration for all
signature and body schema classes.

Architecture Decision:
    Two base policies exist on purpose:
    StrictModel (extra="forbid") is for declaration objects (ports, events,
    statements) where extra fields indicate user typos.
    FrozenModel additionally forbids mutation; signatures are shared by
    reference across every instantiation site and must never change after
    registration.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class TimecraftBaseModel(BaseModel):
    """Base model with shared configuration for all schema models.

    Provides camelCase aliasing, assignment validation, and allows field
    population by either alias or Python name.
    """

    model_config = {
        "validate_assignment": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class StrictModel(TimecraftBaseModel):
    """Base model that forbids unknown fields."""

    model_config = {
        **TimecraftBaseModel.model_config,
        "extra": "forbid",
    }


class FrozenModel(StrictModel):
    """Immutable, hashable strict model."""

    model_config = {
        **StrictModel.model_config,
        "frozen": True,
    }


class SourceLoc(BaseModel):
    """
    Location of a declaration or statement in a design file.

    Note: This model is frozen (immutable) so locations can be attached to
    frozen signature models.
    """

    file: Optional[str] = Field(default=None, description="Design file path")
    line: Optional[int] = Field(default=None, description="1-based line number")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        parts = []
        if self.file:
            parts.append(self.file)
        if self.line is not None:
            parts.append(str(self.line))
        return ":".join(parts) if parts else "<unknown>"


def validate_identifier(v: str) -> str:
    """Strip whitespace and reject empty identifiers."""
    v = v.strip()
    if not v:
        raise ValueError("Identifier cannot be empty")
    return v


class NamedModel(FrozenModel):
    """Frozen model with a validated ``name`` and optional location."""

    name: str = Field(..., description="Identifier")
    loc: Optional[SourceLoc] = Field(default=None, description="Declaration site")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_identifier(v)
