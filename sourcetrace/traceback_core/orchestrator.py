#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Traceback orchestrator: runs one of eleven estimator configurations and turns
its evidence into a posterior over farms.

  1. Feasibility filter (once per call)
  2. Evidence for each feasible source (volume, exact, and/or heuristic)
  3. Multiply by the prior and normalize over all farms

Evidence is combined in log space so that many reports cannot underflow the
posterior before normalization.

Author: SourceTrace Development Team
License: MIT
"""

import logging
import math
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from .data_structures import ContaminationReports, SourceLikelihood, SupplyNetwork
from .errors import DegenerateFeasibleSetError, TracebackError, ZeroPosteriorMassError
from .exact_estimator import ExactEstimator, ExactMode, ProgressCallback
from .feasibility import feasible_sources
from .heuristic_estimator import HeuristicEstimator, PathHeuristic, TimeMode
from .time_likelihood import GaussianTimeModel
from .volume_evidence import exact_volume_component

logger = logging.getLogger(__name__)


# ============================================================================
#                         METHOD CATALOGUE
# ============================================================================

class TracebackMethod(IntEnum):
    """The eleven estimator configurations, by id."""
    VOLUME = 1
    EXACT_TIME = 2
    EXACT_TIME_VOLUME = 3
    BFS_INTEGRATED = 4
    BFS_POINT = 5
    BFS_INTEGRATED_VOLUME = 6
    BFS_POINT_VOLUME = 7
    MAXP_INTEGRATED = 8
    MAXP_POINT = 9
    MAXP_INTEGRATED_VOLUME = 10
    MAXP_POINT_VOLUME = 11


@dataclass(frozen=True)
class MethodSpec:
    """Which sub-models a method combines."""
    description: str
    exact_mode: Optional[ExactMode] = None
    heuristic: Optional[PathHeuristic] = None
    time_mode: Optional[TimeMode] = None
    use_volume: bool = False

    @property
    def produces_t_s_star(self) -> bool:
        return self.time_mode is TimeMode.POINT


METHOD_SPECS: Dict[TracebackMethod, MethodSpec] = {
    TracebackMethod.VOLUME: MethodSpec(
        "Volume only (absorption probabilities)", use_volume=True),
    TracebackMethod.EXACT_TIME: MethodSpec(
        "Exact enumeration, integrated time", exact_mode=ExactMode.TIME),
    TracebackMethod.EXACT_TIME_VOLUME: MethodSpec(
        "Exact enumeration, path probability x integrated time", exact_mode=ExactMode.TIME_VOLUME),
    TracebackMethod.BFS_INTEGRATED: MethodSpec(
        "BFS heuristic, integrated time", heuristic=PathHeuristic.BFS, time_mode=TimeMode.INTEGRATED),
    TracebackMethod.BFS_POINT: MethodSpec(
        "BFS heuristic, t_s* point estimate", heuristic=PathHeuristic.BFS, time_mode=TimeMode.POINT),
    TracebackMethod.BFS_INTEGRATED_VOLUME: MethodSpec(
        "BFS heuristic, integrated time x volume", heuristic=PathHeuristic.BFS,
        time_mode=TimeMode.INTEGRATED, use_volume=True),
    TracebackMethod.BFS_POINT_VOLUME: MethodSpec(
        "BFS heuristic, t_s* point estimate x volume", heuristic=PathHeuristic.BFS,
        time_mode=TimeMode.POINT, use_volume=True),
    TracebackMethod.MAXP_INTEGRATED: MethodSpec(
        "MaxP heuristic, integrated time", heuristic=PathHeuristic.MAXP, time_mode=TimeMode.INTEGRATED),
    TracebackMethod.MAXP_POINT: MethodSpec(
        "MaxP heuristic, t_s* point estimate", heuristic=PathHeuristic.MAXP, time_mode=TimeMode.POINT),
    TracebackMethod.MAXP_INTEGRATED_VOLUME: MethodSpec(
        "MaxP heuristic, integrated time x volume", heuristic=PathHeuristic.MAXP,
        time_mode=TimeMode.INTEGRATED, use_volume=True),
    TracebackMethod.MAXP_POINT_VOLUME: MethodSpec(
        "MaxP heuristic, t_s* point estimate x volume", heuristic=PathHeuristic.MAXP,
        time_mode=TimeMode.POINT, use_volume=True),
}

HEURISTIC_METHODS = [m for m in TracebackMethod if METHOD_SPECS[m].heuristic is not None]


def parse_method(value: Any) -> TracebackMethod:
    """Accept a method id (1-11) or name (e.g. 'bfs_point_volume')."""
    if isinstance(value, TracebackMethod):
        return value
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return TracebackMethod[value.strip().upper().replace('-', '_')]
        except KeyError:
            raise ValueError(f"Unknown traceback method: {value}") from None
    try:
        return TracebackMethod(int(value))
    except ValueError:
        raise ValueError(f"Traceback method id must be 1-11, got {value}") from None


# ============================================================================
#                         RESULTS
# ============================================================================

@dataclass
class TracebackResult:
    """Posterior over farms and start-time estimates for one method."""
    method: TracebackMethod
    pmf: np.ndarray                          # posterior over farms, sums to 1
    t_s_stars: np.ndarray                    # NaN where no point estimate exists
    feasible_sources: List[int]
    failures: Dict[int, str] = field(default_factory=dict)
    runtime_seconds: float = 0.0

    def most_likely_source(self) -> int:
        return int(np.argmax(self.pmf))

    def ranked_sources(self, top: Optional[int] = None) -> List[Tuple[int, float]]:
        order = np.argsort(-self.pmf, kind='stable')
        ranked = [(int(s), float(self.pmf[s])) for s in order if self.pmf[s] > 0]
        return ranked[:top] if top else ranked

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to a JSON-friendly dictionary (undefined t_s* as None)."""
        return {
            "method_id": int(self.method),
            "method": self.method.name.lower(),
            "pmf": [float(p) for p in self.pmf],
            "t_s_stars": [None if math.isnan(t) else float(t) for t in self.t_s_stars],
            "feasible_sources": list(self.feasible_sources),
            "most_likely_source": self.most_likely_source(),
            "failures": {str(k): v for k, v in self.failures.items()},
            "runtime_seconds": round(self.runtime_seconds, 4),
        }


# ============================================================================
#                         TRACEBACK
# ============================================================================

def resolve_prior(prior: Optional[Sequence[float]], network: SupplyNetwork) -> np.ndarray:
    """Validate a prior over farms, or return the uniform prior."""
    if prior is None:
        return np.full(network.num_farms, 1.0 / network.num_farms)
    prior = np.asarray(prior, dtype=float).ravel()
    if prior.size != network.num_farms:
        raise ValueError(f"Prior has {prior.size} entries, network has {network.num_farms} farms")
    if np.any(prior < 0):
        raise ValueError("Prior probabilities must be non-negative")
    if not math.isclose(prior.sum(), 1.0, rel_tol=0, abs_tol=1e-9):
        raise ValueError(f"Prior must sum to 1, sums to {prior.sum():.12f}")
    return prior


def _safe_log(values: np.ndarray) -> np.ndarray:
    with np.errstate(divide='ignore'):
        return np.log(values)


def time_traceback(
    method: Any,
    network: SupplyNetwork,
    reports: ContaminationReports,
    prior: Optional[Sequence[float]] = None,
    feasibility_fraction: float = 0.9,
    transport_dev_frac: float = 0.0,
    config: Optional[Dict[str, Any]] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> TracebackResult:
    """
    Posterior over candidate sources for one estimator configuration.

    Args:
        method: TracebackMethod, its id (1-11) or its name
        network: Supply network
        reports: Contamination reports
        prior: Prior over farms (default uniform)
        feasibility_fraction: Fraction P of contaminated nodes a farm must reach
        transport_dev_frac: Transit-time std-dev as a fraction of its mean
        config: SourceTrace configuration; only the 'model', 'exact' and
            'traceback.num_workers' entries are read here
        progress_callback: Progress / cancellation hook for exact enumeration

    Returns:
        TracebackResult

    Raises:
        DegenerateFeasibleSetError: if no farm passes the feasibility filter
        ZeroPosteriorMassError: if every feasible source has zero posterior mass
    """
    start_time = time.time()
    method = parse_method(method)
    spec = METHOD_SPECS[method]
    config = config or {}
    num_workers = config.get('traceback', {}).get('num_workers', 1)
    prior = resolve_prior(prior, network)
    reports.validate_against(network)

    logger.info(f"Traceback method {int(method)} ({spec.description}), {len(reports)} report(s)")

    sources = feasible_sources(network, reports.nodes, feasibility_fraction)
    if not sources:
        raise DegenerateFeasibleSetError(feasibility_fraction, len(reports.distinct_nodes))

    log_evidence = np.zeros(len(sources))
    t_s_stars = np.full(network.num_farms, np.nan)
    failures: Dict[int, str] = {}

    if spec.use_volume:
        log_evidence += _safe_log(exact_volume_component(network, reports, sources))

    if spec.exact_mode is not None or spec.heuristic is not None:
        time_model = GaussianTimeModel.from_config(
            network.edge_table(), transport_dev_frac, config.get('model'))

        if spec.exact_mode is not None:
            exact_config = config.get('exact', {})
            estimator = ExactEstimator(
                network, reports, time_model,
                mode=spec.exact_mode,
                max_trajectories=exact_config.get('max_trajectories', 1_000_000),
                on_overflow=exact_config.get('on_overflow', 'warn'),
                progress_interval=exact_config.get('progress_interval', 10_000),
                progress_callback=progress_callback,
                num_workers=num_workers,
            )
        else:
            estimator = HeuristicEstimator(
                network, reports, time_model,
                heuristic=spec.heuristic,
                time_mode=spec.time_mode,
                num_workers=num_workers,
            )

        evaluations: Dict[int, SourceLikelihood] = estimator.evaluate(sources)
        for i, source in enumerate(sources):
            evaluation = evaluations[source]
            log_evidence[i] += evaluation.log_likelihood
            if evaluation.error is not None:
                failures[source] = evaluation.error
            elif spec.produces_t_s_star:
                t_s_stars[source] = evaluation.t_s_star

    log_posterior = np.full(network.num_farms, -np.inf)
    log_posterior[sources] = _safe_log(prior[sources]) + log_evidence
    total = logsumexp(log_posterior)
    if not np.isfinite(total):
        raise ZeroPosteriorMassError(
            f"All {len(sources)} feasible source(s) have zero posterior mass "
            f"under method {int(method)}"
        )
    pmf = np.exp(log_posterior - total)

    result = TracebackResult(
        method=method,
        pmf=pmf,
        t_s_stars=t_s_stars,
        feasible_sources=sources,
        failures=failures,
        runtime_seconds=time.time() - start_time,
    )
    logger.info(
        f"Method {int(method)}: most likely source {result.most_likely_source()} "
        f"(p={pmf.max():.4f}) in {result.runtime_seconds:.3f}s"
    )
    return result


# ============================================================================
#                         METHOD COMPARISON
# ============================================================================

@dataclass
class ComparisonRow:
    method: TracebackMethod
    result: Optional[TracebackResult] = None
    error: Optional[str] = None


@dataclass
class MethodComparison:
    """Results of several methods on the same scenario."""
    num_farms: int
    rows: List[ComparisonRow] = field(default_factory=list)

    def summary_matrix(self) -> np.ndarray:
        """
        One row per method: [method_id, t_s* of the first farm, pmf...].

        Failed methods have NaN in every column but the id.
        """
        matrix = np.full((len(self.rows), self.num_farms + 2), np.nan)
        for r, row in enumerate(self.rows):
            matrix[r, 0] = int(row.method)
            if row.result is not None:
                matrix[r, 1] = row.result.t_s_stars[0]
                matrix[r, 2:] = row.result.pmf
        return matrix

    def best_sources(self) -> Dict[int, Optional[int]]:
        return {
            int(row.method): row.result.most_likely_source() if row.result is not None else None
            for row in self.rows
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "methods": [
                row.result.to_dict() if row.result is not None
                else {"method_id": int(row.method), "method": row.method.name.lower(), "error": row.error}
                for row in self.rows
            ],
            "best_sources": {str(k): v for k, v in self.best_sources().items()},
        }


def compare_methods(
    methods: Iterable[Any],
    network: SupplyNetwork,
    reports: ContaminationReports,
    **kwargs,
) -> MethodComparison:
    """
    Run several methods on one scenario.

    Global failures of a method are recorded on its row rather than aborting
    the comparison. Keyword arguments are passed to time_traceback().
    """
    comparison = MethodComparison(num_farms=network.num_farms)
    for method in methods:
        method = parse_method(method)
        try:
            result = time_traceback(method, network, reports, **kwargs)
            comparison.rows.append(ComparisonRow(method=method, result=result))
        except TracebackError as e:
            logger.warning(f"Method {int(method)} failed: {e}")
            comparison.rows.append(ComparisonRow(method=method, error=str(e)))
    return comparison

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
