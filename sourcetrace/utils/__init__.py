"""
Utilities module for SourceTrace.

This module provides the config-driven traceback pipeline used by the CLI:
- Logging setup
- Single-method runs, method comparison, scenario inspection
"""

from .pipeline import TracebackPipeline

__all__ = [
    "TracebackPipeline",
]
