#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Package initialization and version metadata.

Author: SourceTrace Development Team
License: MIT
"""

from .version import __version__

__all__ = ["__version__"]

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
