#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Failure taxonomy for source traceback.

Global failures (empty feasible set, zero posterior mass, cancellation) abort a
traceback call. Local failures (singular covariance, trajectory overflow) are
confined to one candidate source by the estimators.

Author: SourceTrace Development Team
License: MIT
"""

from typing import Optional, Tuple


class TracebackError(Exception):
    """Base class for traceback failures."""
    pass


class DegenerateFeasibleSetError(TracebackError):
    """Raised when no farm passes the feasibility filter."""

    def __init__(self, fraction: float, num_contaminated: int):
        self.fraction = fraction
        self.num_contaminated = num_contaminated
        super().__init__(
            f"No feasible source: no farm reaches {fraction:.2f} of the "
            f"{num_contaminated} contaminated node(s)"
        )


class ZeroPosteriorMassError(TracebackError):
    """Raised when every feasible source ends up with zero posterior mass."""
    pass


class SingularCovarianceError(TracebackError):
    """Raised when the observation covariance is not positive definite."""

    def __init__(self, message: str, source: Optional[int] = None):
        self.source = source
        super().__init__(message)


class MissingEdgeError(TracebackError):
    """Raised when a path steps along a (from, to) pair with no edge."""

    def __init__(self, edge: Tuple[int, int]):
        self.edge = edge
        super().__init__(f"Path uses edge {edge[0]} -> {edge[1]} which is not in the network")


class CombinatorialOverflowError(TracebackError):
    """Raised when a source's trajectory count exceeds the configured bound."""

    def __init__(self, source: int, count: int, limit: int):
        self.source = source
        self.count = count
        self.limit = limit
        super().__init__(
            f"Source {source}: {count:,} diffusion trajectories exceeds limit of {limit:,}"
        )


class EnumerationCancelled(TracebackError):
    """Raised when a progress callback asks the exact estimator to stop."""
    pass

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
