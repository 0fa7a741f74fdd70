"""
Configuration models for topology validation.

Provides type-safe configuration using pydantic with validation,
defaults, and schema enforcement.
"""

from enum import Enum
from typing import Annotated, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.timeout_config import Timeouts


class ComparisonMode(str, Enum):
    """How a declared list attribute is compared against the observed list."""

    EXACT = "exact"
    CONTAINS_ALL = "contains-all"


class KeyStyle(str, Enum):
    """Naming convention of the provisioner's output keys."""

    CAMEL = "camel"
    SNAKE = "snake"


class ValidatorConfig(BaseModel):
    """Settings for a structural validation run."""

    list_mode: ComparisonMode = Field(
        default=ComparisonMode.CONTAINS_ALL,
        description="Default comparison mode for list attributes",
    )
    list_mode_overrides: Dict[str, ComparisonMode] = Field(
        default_factory=dict,
        description="Per-attribute comparison mode, keyed by declared attribute name",
    )
    max_workers: Annotated[int, Field(ge=1, le=32)] = Field(
        default=1,
        description="Number of top-level networks validated concurrently",
    )
    lookup_timeout_seconds: Optional[float] = Field(
        default=float(Timeouts.OUTPUT_QUERY),
        description="Upper bound for a single observed-state lookup (None disables)",
    )
    output_root: Optional[str] = Field(
        default=None,
        description="Provisioner output holding the network mapping, e.g. 'networks'",
    )
    key_style: KeyStyle = Field(
        default=KeyStyle.CAMEL,
        description="Naming convention used by the provisioner's outputs",
    )
    attribute_aliases: Dict[str, str] = Field(
        default_factory=dict,
        description="Declared attribute name -> output key name, applied after key_style",
    )

    @field_validator("lookup_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Reject non-positive timeouts."""
        if v is not None and v <= 0:
            raise ValueError("lookup_timeout_seconds must be positive")
        return v

    @field_validator("output_root")
    @classmethod
    def validate_output_root(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty output root as unset."""
        return v or None

    def list_mode_for(self, attribute: str) -> ComparisonMode:
        """Return the comparison mode for a (possibly dotted) attribute name."""
        if attribute in self.list_mode_overrides:
            return self.list_mode_overrides[attribute]
        leaf = attribute.rsplit(".", 1)[-1]
        return self.list_mode_overrides.get(leaf, self.list_mode)

    model_config = ConfigDict(extra="forbid")
