"""
Configuration management for validation runs.

Provides type-safe configuration loading and validation with support
for multiple configuration sources and priority-based merging.
"""

from src.exceptions import ConfigError

from .loader import ConfigLoader, load_config
from .models import ComparisonMode, KeyStyle, ValidatorConfig

__all__ = [
    "ComparisonMode",
    "ConfigError",
    "ConfigLoader",
    "KeyStyle",
    "ValidatorConfig",
    "load_config",
]
