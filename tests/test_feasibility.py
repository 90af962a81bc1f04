#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Tests for the candidate-source feasibility filter and incidence matrices.

Author: SourceTrace Development Team
License: MIT
"""

import numpy as np
import pytest

from sourcetrace.traceback_core import MissingEdgeError, build_incidence_matrix
from sourcetrace.traceback_core.feasibility import feasible_sources, reach_counts


class TestFeasibility:
    """Reports at processor 3 (farms 0, 1) and retailer 5 (farms 0, 1, 2)."""

    def test_reach_counts(self, layered_network):
        assert reach_counts(layered_network, [3, 5]) == {0: 2, 1: 2, 2: 1}

    def test_strict_fraction(self, layered_network):
        assert feasible_sources(layered_network, [3, 5], 0.9) == [0, 1]

    def test_loose_fraction(self, layered_network):
        assert feasible_sources(layered_network, [3, 5], 0.5) == [0, 1, 2]

    def test_duplicates_ignored(self, layered_network):
        # Two distinct nodes even though node 5 is reported three times.
        assert feasible_sources(layered_network, [5, 3, 5, 5], 0.9) == [0, 1]

    def test_threshold_is_inclusive(self, layered_network):
        assert feasible_sources(layered_network, [3, 5], 1.0) == [0, 1]

    def test_fraction_above_one_is_empty(self, layered_network):
        assert feasible_sources(layered_network, [3, 5], 1.01) == []

    def test_non_positive_fraction_rejected(self, layered_network):
        with pytest.raises(ValueError):
            feasible_sources(layered_network, [5], 0.0)

    def test_contaminated_farm_is_feasible(self, layered_network):
        assert feasible_sources(layered_network, [1], 1.0) == [1]


class TestIncidence:

    def test_rows_mark_path_edges(self, layered_network):
        table = layered_network.edge_table()
        matrix = build_incidence_matrix([[0, 3, 5], [0, 4, 6]], table)
        assert matrix.shape == (2, 8)
        assert np.flatnonzero(matrix[0]).tolist() == [0, 4]
        assert np.flatnonzero(matrix[1]).tolist() == [1, 7]
        assert set(np.unique(matrix)) <= {0.0, 1.0}

    def test_single_node_path_is_zero_row(self, layered_network):
        matrix = build_incidence_matrix([[2]], layered_network.edge_table())
        assert not matrix.any()

    def test_missing_edge(self, layered_network):
        with pytest.raises(MissingEdgeError) as exc_info:
            build_incidence_matrix([[0, 5]], layered_network.edge_table())
        assert exc_info.value.edge == (0, 5)

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
