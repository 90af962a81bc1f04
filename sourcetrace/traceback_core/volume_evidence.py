#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Volume evidence: how likely contaminated product from a farm ends up at each
reported node, ignoring timing.

The flow matrix is read as an absorbing Markov chain whose absorbing states
are the terminal-stage nodes. With Q the transitions among non-terminal nodes
and R the transitions from non-terminal nodes into the requested columns,
A = (I - Q)^-1 R sums the flow probability of every path of every length.

Author: SourceTrace Development Team
License: MIT
"""

import logging
from typing import Optional, Sequence

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import splu

from .data_structures import ContaminationReports, SupplyNetwork

logger = logging.getLogger(__name__)


def absorption_probabilities(network: SupplyNetwork, columns: Sequence[int]) -> np.ndarray:
    """
    (I - Q)^-1 R for the requested destination columns.

    Args:
        network: Supply network
        columns: Destination node ids

    Returns:
        Dense (num_non_terminal x len(columns)) array. For a terminal column
        the entry is the absorption probability; for a non-terminal column it
        is the probability of passing through that node in at least one step.
    """
    n_transient = network.num_non_terminal
    columns = [int(c) for c in columns]
    if n_transient == 0:
        return np.zeros((0, len(columns)))

    flows = network.flows
    q_block = flows[:n_transient, :n_transient]
    r_block = flows[:n_transient, :][:, columns].toarray()
    fundamental = (sp.identity(n_transient, format='csc') - q_block).tocsc()
    return splu(fundamental).solve(r_block)


def exact_volume_component(
    network: SupplyNetwork,
    reports: ContaminationReports,
    sources: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """
    Volume-only likelihood of each source.

    The likelihood of a source is the product, over every report, of the
    probability that its product reaches the reported node. Each report is an
    independent factor, so a node reported twice contributes twice.

    Args:
        network: Supply network
        reports: Contamination reports
        sources: Farm ids to evaluate (default: all farms)

    Returns:
        Array aligned with `sources`.
    """
    sources = list(network.farm_ids if sources is None else sources)
    distinct = reports.distinct_nodes
    if not sources:
        return np.zeros(0)

    reach = absorption_probabilities(network, distinct)
    column_of = {node: k for k, node in enumerate(distinct)}

    likelihoods = np.ones(len(sources))
    for s, source in enumerate(sources):
        for node, _ in reports:
            if node == source:
                continue
            likelihoods[s] *= reach[source, column_of[node]] if source < reach.shape[0] else 0.0

    logger.debug(f"Volume component over {len(sources)} source(s): {likelihoods}")
    return likelihoods

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
