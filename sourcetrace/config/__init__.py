"""
SourceTrace v0.1.0

Configuration management for SourceTrace.

Author: SourceTrace Development Team
License: MIT
"""

from .schema import (
    DEFAULT_CONFIG,
    load_config,
    merge_overrides,
    save_config_template,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "load_config",
    "merge_overrides",
    "save_config_template",
    "validate_config",
]
