#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Tests for supply network and report data structures.

Author: SourceTrace Development Team
License: MIT
"""

import math

import numpy as np
import pytest
import scipy.sparse as sp

from sourcetrace.traceback_core import ContaminationReports, SourceLikelihood, SupplyNetwork


class TestSupplyNetwork:
    """Construction, validation and adjacency queries."""

    def test_shape(self, layered_network):
        assert layered_network.num_nodes == 7
        assert layered_network.num_edges == 8
        assert layered_network.num_stages == 3
        assert layered_network.num_farms == 3
        assert layered_network.farm_ids == [0, 1, 2]
        assert layered_network.terminal_ids == [5, 6]
        assert layered_network.num_non_terminal == 5

    def test_stage_of(self, layered_network):
        assert [layered_network.stage_of(n) for n in range(7)] == [0, 0, 0, 1, 1, 2, 2]

    def test_stage_of_out_of_range(self, layered_network):
        with pytest.raises(ValueError):
            layered_network.stage_of(7)

    def test_adjacency(self, layered_network):
        assert layered_network.predecessors(5) == [3, 4]
        assert layered_network.successors(0) == [3, 4]
        assert layered_network.predecessors(0) == []
        assert layered_network.has_edge(0, 3)
        assert not layered_network.has_edge(3, 0)
        assert layered_network.edge_probability(4, 6) == pytest.approx(0.8)
        assert layered_network.edge_distance(0, 4) == pytest.approx(1000.0)

    def test_zero_flow_is_not_an_edge(self):
        network = SupplyNetwork.from_edges(3, [1, 2], [[0, 2, 1.0, 630.0], [1, 2, 0.0, 630.0]])
        assert network.num_edges == 1
        assert network.predecessors(2) == [0]

    def test_dense_input(self):
        flows = np.array([[0, 0, 1.0], [0, 0, 1.0], [0, 0, 0]])
        distances = flows * 630.0
        network = SupplyNetwork(flows, distances, [1, 2])
        assert sp.issparse(network.flows)
        assert network.num_edges == 2

    def test_input_matrix_not_mutated(self):
        # (data, indices, indptr) keeps the explicit zero at (1, 2)
        flows = sp.csr_matrix(([1.0, 0.0], [2, 2], [0, 1, 2, 2]), shape=(3, 3))
        assert flows.nnz == 2
        SupplyNetwork(flows, flows * 630.0, [1, 2])
        assert flows.nnz == 2

    def test_rejects_non_square(self):
        with pytest.raises(ValueError, match="square"):
            SupplyNetwork(np.zeros((2, 3)), np.zeros((2, 3)), [0, 1])

    def test_rejects_mismatched_distances(self):
        with pytest.raises(ValueError, match="Distance matrix"):
            SupplyNetwork(np.zeros((3, 3)), np.zeros((2, 2)), [1, 2])

    def test_rejects_negative_flow(self):
        with pytest.raises(ValueError, match="non-negative"):
            SupplyNetwork.from_edges(3, [1, 2], [[0, 2, -0.5, 630.0]])

    def test_rejects_bad_stage_ends(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            SupplyNetwork(np.zeros((3, 3)), np.zeros((3, 3)), [2, 1])
        with pytest.raises(ValueError, match="Last stage"):
            SupplyNetwork(np.zeros((3, 3)), np.zeros((3, 3)), [0, 1])

    def test_rejects_short_edge_rows(self):
        with pytest.raises(ValueError, match="4 fields"):
            SupplyNetwork.from_edges(3, [1, 2], [[0, 2, 0.5]])

    def test_edge_table_order(self, layered_network):
        table = layered_network.edge_table()
        pairs = list(zip(table.sources.tolist(), table.targets.tolist()))
        assert pairs == [(0, 3), (0, 4), (1, 3), (2, 4), (3, 5), (3, 6), (4, 5), (4, 6)]
        assert table.column(4, 6) == 7
        assert table.column(0, 5) is None
        assert table.distances[1] == pytest.approx(1000.0)
        assert table.probabilities[5] == pytest.approx(0.3)

    def test_edge_table_is_cached(self, layered_network):
        assert layered_network.edge_table() is layered_network.edge_table()

    def test_empty_network(self):
        network = SupplyNetwork(np.zeros((2, 2)), np.zeros((2, 2)), [0, 1])
        assert len(network.edge_table()) == 0
        assert network.to_edges() == []

    def test_to_edges_round_trip(self, layered_network):
        rebuilt = SupplyNetwork.from_edges(7, [2, 4, 6], layered_network.to_edges())
        assert (rebuilt.flows != layered_network.flows).nnz == 0
        assert (rebuilt.distances != layered_network.distances).nnz == 0


class TestContaminationReports:
    """Report bookkeeping."""

    def test_distinct_and_times(self, retailer_reports):
        assert len(retailer_reports) == 3
        assert retailer_reports.distinct_nodes == [5, 6]
        assert retailer_reports.min_times() == {5: 10.0, 6: 11.0}
        assert retailer_reports.mean_times() == {5: 11.0, 6: 11.0}

    def test_iteration_keeps_order(self, retailer_reports):
        assert list(retailer_reports) == [(5, 12.0), (6, 11.0), (5, 10.0)]

    def test_from_pairs(self):
        reports = ContaminationReports.from_pairs([[2, 10], [3, 4.5]])
        assert reports.to_pairs() == [[2, 10.0], [3, 4.5]]

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="differ in length"):
            ContaminationReports([1, 2], [3.0])

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="At least one"):
            ContaminationReports([], [])

    def test_validate_against(self, two_farm_network):
        with pytest.raises(ValueError, match="unknown node"):
            ContaminationReports([9], [1.0]).validate_against(two_farm_network)


class TestSourceLikelihood:

    def test_failed(self):
        failed = SourceLikelihood.failed(3, "singular")
        assert failed.likelihood == 0.0
        assert math.isnan(failed.t_s_star)
        assert failed.error == "singular"

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
