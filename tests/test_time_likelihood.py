#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Tests for the Gaussian travel-time model.

Author: SourceTrace Development Team
License: MIT
"""

import math

import numpy as np
import pytest

from sourcetrace.traceback_core import GaussianTimeModel, SingularCovarianceError
from sourcetrace.traceback_core.time_likelihood import DELAY_MEAN, DELAY_VARIANCE


@pytest.fixture
def table(two_farm_network):
    # edge 0: 0 -> 2, one day of transport; edge 1: 1 -> 2, two days
    return two_farm_network.edge_table()


class TestMoments:

    def test_transit_parameters(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.1)
        np.testing.assert_allclose(model.mu_theta, [1.0, 2.0])
        np.testing.assert_allclose(model.var_theta, [0.01, 0.04])

    def test_observation_moments(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.1)
        mu_s, sigma_s = model.moments(np.array([[1.0, 0.0], [1.0, 1.0]]))
        np.testing.assert_allclose(mu_s, [1.0 + DELAY_MEAN, 3.0 + DELAY_MEAN])
        expected = np.array([[0.01, 0.01], [0.01, 0.05]]) + DELAY_VARIANCE * np.eye(2)
        np.testing.assert_allclose(sigma_s, expected)

    def test_column_mismatch(self, table):
        model = GaussianTimeModel(table)
        with pytest.raises(ValueError, match="columns"):
            model.moments(np.ones((1, 3)))

    def test_row_mismatch(self, table):
        model = GaussianTimeModel(table)
        with pytest.raises(ValueError, match="rows"):
            model.integrated_log_likelihood(np.eye(2), np.array([1.0]))

    def test_invalid_parameters(self, table):
        with pytest.raises(ValueError):
            GaussianTimeModel(table, transport_dev_frac=-0.1)
        with pytest.raises(ValueError):
            GaussianTimeModel(table, transport_speed=0.0)

    def test_from_config(self, table):
        model = GaussianTimeModel.from_config(
            table, 0.2, {'transport_speed': 315.0, 'delay_mean': 1.0, 'delay_variance': 2.0})
        np.testing.assert_allclose(model.mu_theta, [2.0, 4.0])
        assert model.delay_mean == 1.0
        assert model.delay_variance == 2.0
        assert model.transport_dev_frac == 0.2


class TestIntegratedMode:

    def test_single_observation_integrates_to_one(self, table):
        # With one observation the start-time offset absorbs the whole residual.
        model = GaussianTimeModel(table, transport_dev_frac=0.3)
        for t in (-5.0, 0.0, 10.0, 100.0):
            assert model.integrated_likelihood(np.array([[1.0, 0.0]]), [t]) == pytest.approx(1.0)

    def test_peaks_at_consistent_time_difference(self, table):
        # Mean arrival times differ by one day between the two edges.
        model = GaussianTimeModel(table, transport_dev_frac=0.01, delay_variance=0.01)
        c_matrix = np.eye(2)
        consistent = model.integrated_log_likelihood(c_matrix, [5.0, 6.0])
        shifted = model.integrated_log_likelihood(c_matrix, [20.0, 21.0])
        inconsistent = model.integrated_log_likelihood(c_matrix, [5.0, 8.0])
        assert consistent == pytest.approx(shifted)
        assert consistent > inconsistent + 10

    def test_matches_numerical_integration(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.2)
        c_matrix = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
        times = np.array([10.0, 12.5, 9.0])
        mu_s, sigma_s = model.moments(c_matrix)
        inv = np.linalg.inv(sigma_s)
        norm = 1.0 / math.sqrt((2 * math.pi) ** 3 * np.linalg.det(sigma_s))

        grid = np.linspace(-60.0, 60.0, 24001)
        residuals = times[None, :] - mu_s[None, :] - grid[:, None]
        density = norm * np.exp(-0.5 * np.einsum('ij,jk,ik->i', residuals, inv, residuals))
        numeric = np.sum(density) * (grid[1] - grid[0])

        assert model.integrated_likelihood(c_matrix, times) == pytest.approx(numeric, rel=1e-6)


class TestPointMode:

    def test_single_observation(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.1)
        estimate = model.point_estimate(np.array([[0.0, 1.0]]), [10.0])
        assert estimate.t_s_star == pytest.approx(10.0 - 2.0 - DELAY_MEAN)
        variance = 0.04 + DELAY_VARIANCE
        assert estimate.likelihood == pytest.approx(1.0 / math.sqrt(2 * math.pi * variance))
        assert estimate.log_likelihood == pytest.approx(math.log(estimate.likelihood))

    def test_equal_variances_average_residuals(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.0)
        estimate = model.point_estimate(np.eye(2), [10.0, 12.0])
        # residuals 0.5 and 1.5
        assert estimate.t_s_star == pytest.approx(1.0)

    def test_point_is_maximum_over_start_time(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.3)
        c_matrix = np.array([[1.0, 0.0], [0.0, 1.0]])
        times = np.array([4.0, 9.0])
        estimate = model.point_estimate(c_matrix, times)
        mu_s, sigma_s = model.moments(c_matrix)
        inv = np.linalg.inv(sigma_s)

        def log_density(t_s):
            r = times - mu_s - t_s
            return -0.5 * r @ inv @ r

        best = log_density(estimate.t_s_star)
        for delta in (-0.5, -0.01, 0.01, 0.5):
            assert log_density(estimate.t_s_star + delta) < best


class TestSingularCovariance:

    def test_zero_covariance_raises(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.0, delay_variance=0.0)
        with pytest.raises(SingularCovarianceError):
            model.integrated_log_likelihood(np.array([[1.0, 0.0]]), [3.0])

    def test_rank_deficient_raises_without_fallback(self, table):
        # Unit transit variance on edge 0; identical paths give [[1, 1], [1, 1]].
        model = GaussianTimeModel(table, transport_dev_frac=1.0, delay_variance=0.0)
        c_matrix = np.array([[1.0, 0.0], [1.0, 0.0]])
        with pytest.raises(SingularCovarianceError):
            model.point_estimate(c_matrix, [3.0, 3.0])

    def test_pseudo_inverse_fallback(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=1.0, delay_variance=0.0,
                                  pseudo_inverse_fallback=True)
        c_matrix = np.array([[1.0, 0.0], [1.0, 0.0]])
        estimate = model.point_estimate(c_matrix, [3.0, 3.0])
        assert estimate.t_s_star == pytest.approx(3.0 - 1.0 - DELAY_MEAN)
        assert math.isfinite(estimate.log_likelihood)

    def test_pseudo_inverse_matches_pinv(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=1.0, delay_variance=0.0,
                                  pseudo_inverse_fallback=True)
        _, sigma_s = model.moments(np.array([[1.0, 0.0], [1.0, 0.0]]))
        solve, log_det = model._factor(sigma_s)
        b = np.array([1.0, 3.0])
        np.testing.assert_allclose(solve(b), np.linalg.pinv(sigma_s) @ b, atol=1e-12)
        # [[1, 1], [1, 1]] has the single nonzero eigenvalue 2
        assert log_det == pytest.approx(math.log(2.0))

    def test_pseudo_inverse_of_zero_covariance_raises(self, table):
        model = GaussianTimeModel(table, transport_dev_frac=0.0, delay_variance=0.0,
                                  pseudo_inverse_fallback=True)
        with pytest.raises(SingularCovarianceError):
            model.integrated_log_likelihood(np.array([[1.0, 0.0]]), [3.0])

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
