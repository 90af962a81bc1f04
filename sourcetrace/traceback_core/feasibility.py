#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Feasibility filter for candidate sources.

A farm is a feasible source when it sits upstream of at least a fraction P of
the distinct contaminated nodes.

Author: SourceTrace Development Team
License: MIT
"""

import logging
from typing import Dict, Iterable, List

from .data_structures import SupplyNetwork
from .graph_algebra import root_ancestors

logger = logging.getLogger(__name__)


def reach_counts(network: SupplyNetwork, contaminated_nodes: Iterable[int]) -> Dict[int, int]:
    """Number of distinct contaminated nodes whose ancestry terminates at each farm."""
    counts = {farm: 0 for farm in network.farm_ids}
    for node in sorted(set(contaminated_nodes)):
        for root in root_ancestors(network, node):
            if root in counts:
                counts[root] += 1
    return counts


def feasible_sources(
    network: SupplyNetwork,
    contaminated_nodes: Iterable[int],
    fraction: float,
) -> List[int]:
    """
    Farms reaching at least `fraction` of the distinct contaminated nodes.

    Args:
        network: Supply network
        contaminated_nodes: Reported node ids (duplicates are ignored)
        fraction: Threshold P; values above 1 can never be met

    Returns:
        Sorted feasible farm ids; empty when no farm qualifies.
    """
    if fraction <= 0:
        raise ValueError(f"Feasibility fraction must be positive, got {fraction}")

    distinct = sorted(set(int(n) for n in contaminated_nodes))
    counts = reach_counts(network, distinct)
    required = fraction * len(distinct)
    feasible = [farm for farm, count in sorted(counts.items()) if count >= required]

    logger.info(
        f"Feasibility filter: {len(feasible)}/{network.num_farms} farms reach "
        f">= {fraction:.2f} of {len(distinct)} contaminated node(s)"
    )
    if not feasible:
        logger.warning("Feasibility filter left no candidate source")
    return feasible

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
