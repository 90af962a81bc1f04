#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Exact estimator: sums likelihood contributions over every diffusion trajectory.

A diffusion trajectory assigns one source-to-node path to every contamination
report. Repeated reports of the same node each choose their own path, so the
trajectory space of a source is the Cartesian product of the per-report path
sets and its size is the product of their lengths. The space is walked as a
mixed-radix counter (itertools.product over path indices, last report varying
fastest), building one incidence matrix per trajectory.

COMPLEXITY
═══════════════════════════════════════════════════════════════════════════════
The number of trajectories is prod_o |paths(source, node_o)|, which grows
exponentially with both the branching of the network and the number of
reports. It is NOT bounded here: count_trajectories() exposes the size before
enumeration, max_trajectories turns an oversized space into a warning or a
per-source failure, and the progress callback can cancel a long run. Use the
heuristic estimators for anything beyond small, sparse networks.

Author: SourceTrace Development Team
License: MIT
"""

import itertools
import logging
import math
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .data_structures import ContaminationReports, SourceLikelihood, SupplyNetwork
from .errors import CombinatorialOverflowError, EnumerationCancelled, SingularCovarianceError
from .graph_algebra import all_paths_between, count_paths_between
from .incidence import build_incidence_matrix
from .time_likelihood import GaussianTimeModel

logger = logging.getLogger(__name__)

# callback(source, trajectories_done, trajectories_total); return False to cancel
ProgressCallback = Callable[[int, int, int], Optional[bool]]


def count_trajectories(network: SupplyNetwork, reports: ContaminationReports, source: int) -> int:
    """Size of the trajectory space of `source`, without enumerating paths."""
    per_node = {
        node: count_paths_between(network, source, node)
        for node in reports.distinct_nodes
    }
    return math.prod(per_node[int(node)] for node in reports.nodes)


class ExactMode(str, Enum):
    """Evidence summed over trajectories."""
    TIME = "time"                  # integrated time likelihood
    TIME_VOLUME = "time_volume"    # path flow probability x integrated time likelihood


class OverflowPolicy(str, Enum):
    WARN = "warn"
    RAISE = "raise"


class ExactEstimator:
    """
    Full-enumeration likelihood for each candidate source.

    Args:
        network: Supply network
        reports: Contamination reports
        time_model: Gaussian time model built on network.edge_table()
        mode: Which evidence to sum over trajectories
        max_trajectories: Advisory bound on trajectories per source
        on_overflow: 'warn' to log and continue, 'raise' to fail the source
        progress_interval: Trajectories between progress callbacks
        progress_callback: Optional progress / cancellation hook; may be called
            from worker threads
        num_workers: Threads evaluating sources in parallel
    """

    def __init__(
        self,
        network: SupplyNetwork,
        reports: ContaminationReports,
        time_model: GaussianTimeModel,
        mode: ExactMode = ExactMode.TIME_VOLUME,
        max_trajectories: int = 1_000_000,
        on_overflow: str = "warn",
        progress_interval: int = 10_000,
        progress_callback: Optional[ProgressCallback] = None,
        num_workers: int = 1,
    ):
        if progress_interval <= 0:
            raise ValueError(f"progress_interval must be positive, got {progress_interval}")
        self.network = network
        self.reports = reports
        self.time_model = time_model
        self.mode = ExactMode(mode)
        self.max_trajectories = max_trajectories
        self.on_overflow = OverflowPolicy(on_overflow)
        self.progress_interval = progress_interval
        self.progress_callback = progress_callback
        self.num_workers = max(1, num_workers)
        self.edge_table = network.edge_table()
        self.logger = logging.getLogger(f"{__name__}.ExactEstimator")

    # ------------------------------------------------------------------
    # Trajectory space
    # ------------------------------------------------------------------

    def path_sets(self, source: int) -> Dict[int, List[List[int]]]:
        """All paths from `source` to each distinct contaminated node."""
        return {
            node: all_paths_between(self.network, source, node)
            for node in self.reports.distinct_nodes
        }

    def count_trajectories(self, source: int) -> int:
        return count_trajectories(self.network, self.reports, source)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_source(self, source: int) -> SourceLikelihood:
        """
        Log-likelihood of one source summed over its trajectory space.

        Raises:
            SingularCovarianceError: if a trajectory's covariance is singular
            CombinatorialOverflowError: if the space is too large and the
                overflow policy is 'raise'
            EnumerationCancelled: if the progress callback returns False
        """
        total = self.count_trajectories(source)
        if total == 0:
            self.logger.debug(f"Source {source}: a reported node is unreachable")
            return SourceLikelihood(source=source, log_likelihood=-math.inf)

        if total > self.max_trajectories:
            if self.on_overflow is OverflowPolicy.RAISE:
                raise CombinatorialOverflowError(source, total, self.max_trajectories)
            self.logger.warning(
                f"Source {source}: enumerating {total:,} trajectories "
                f"(limit {self.max_trajectories:,})"
            )

        path_sets = self.path_sets(source)
        rows = {node: build_incidence_matrix(paths, self.edge_table) for node, paths in path_sets.items()}
        log_path_probs = {node: rows[node] @ self.edge_table.log_probabilities for node in rows}

        nodes = [int(n) for n in self.reports.nodes]
        radices = [len(path_sets[n]) for n in nodes]
        times = self.reports.times

        self.logger.debug(f"Source {source}: {total:,} trajectories, radices {radices}")

        log_total = -math.inf
        for done, digits in enumerate(itertools.product(*(range(r) for r in radices)), start=1):
            c_matrix = np.vstack([rows[n][d] for n, d in zip(nodes, digits)])
            log_term = self.time_model.integrated_log_likelihood(c_matrix, times)
            if self.mode is ExactMode.TIME_VOLUME:
                log_term += sum(log_path_probs[n][d] for n, d in zip(nodes, digits))
            log_total = float(np.logaddexp(log_total, log_term))

            if done % self.progress_interval == 0 or done == total:
                self._report_progress(source, done, total)

        return SourceLikelihood(
            source=source,
            log_likelihood=log_total,
            num_trajectories=total,
        )

    def _report_progress(self, source: int, done: int, total: int):
        self.logger.debug(f"Source {source}: {done:,}/{total:,} trajectories")
        if self.progress_callback is not None and self.progress_callback(source, done, total) is False:
            raise EnumerationCancelled(
                f"Enumeration cancelled at source {source} after {done:,}/{total:,} trajectories"
            )

    def _evaluate_guarded(self, source: int) -> SourceLikelihood:
        try:
            return self.evaluate_source(source)
        except (SingularCovarianceError, CombinatorialOverflowError) as e:
            self.logger.warning(f"Source {source} skipped: {e}")
            return SourceLikelihood.failed(source, str(e))

    def evaluate(self, sources: Sequence[int]) -> Dict[int, SourceLikelihood]:
        """
        Evaluate every source; local failures are recorded per source.

        Returns:
            Mapping source -> SourceLikelihood
        """
        sources = list(sources)
        self.logger.info(
            f"Exact estimator ({self.mode.value}): {len(sources)} source(s), "
            f"{len(self.reports)} report(s), workers={self.num_workers}"
        )
        if self.num_workers == 1:
            return {s: self._evaluate_guarded(s) for s in sources}

        executor = ThreadPoolExecutor(max_workers=self.num_workers)
        try:
            futures = {s: executor.submit(self._evaluate_guarded, s) for s in sources}
            done, _ = wait(futures.values(), return_when=FIRST_EXCEPTION)
            for fut in done:
                fut.result()  # re-raises a worker exception
            return {s: fut.result() for s, fut in futures.items()}
        finally:
            # sources still queued after an error are dropped
            executor.shutdown(wait=False, cancel_futures=True)

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
