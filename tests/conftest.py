#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Pytest configuration and shared fixtures.

Author: SourceTrace Development Team
License: MIT
"""

import pytest
from pathlib import Path
import tempfile
import shutil

import yaml

from sourcetrace.traceback_core import ContaminationReports, SupplyNetwork


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="sourcetrace_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


# Two farms feeding one retailer.
TWO_FARM_EDGES = [
    [0, 2, 0.6, 630.0],
    [1, 2, 0.4, 1260.0],
]

# Three stages: farms 0-2, processors 3-4, retailers 5-6.
#
#   0 --0.5--> 3 --0.7--> 5
#   0 --0.5--> 4 --0.3--> 6   (from 3)
#   1 --1.0--> 3     4 --0.2--> 5
#   2 --1.0--> 4     4 --0.8--> 6
LAYERED_EDGES = [
    [0, 3, 0.5, 630.0],
    [0, 4, 0.5, 1000.0],
    [1, 3, 1.0, 630.0],
    [2, 4, 1.0, 630.0],
    [3, 5, 0.7, 630.0],
    [3, 6, 0.3, 1260.0],
    [4, 5, 0.2, 1890.0],
    [4, 6, 0.8, 630.0],
]


@pytest.fixture
def two_farm_network():
    """Farms 0 and 1 both ship to terminal node 2."""
    return SupplyNetwork.from_edges(3, [1, 2], TWO_FARM_EDGES)


@pytest.fixture
def layered_network():
    """Three-stage network with two paths from farm 0 to each retailer."""
    return SupplyNetwork.from_edges(7, [2, 4, 6], LAYERED_EDGES)


@pytest.fixture
def single_report():
    return ContaminationReports([2], [10.0])


@pytest.fixture
def retailer_reports():
    """Node 5 reported twice, node 6 once."""
    return ContaminationReports([5, 6, 5], [12.0, 11.0, 10.0])


@pytest.fixture
def two_farm_scenario_file(temp_output_dir):
    path = temp_output_dir / "two_farm.yaml"
    with open(path, 'w') as f:
        yaml.dump({
            'stage_ends': [1, 2],
            'edges': TWO_FARM_EDGES,
            'reports': [[2, 10.0]],
            'prior': [0.5, 0.5],
        }, f)
    return path


@pytest.fixture
def layered_scenario_file(temp_output_dir):
    path = temp_output_dir / "layered.yaml"
    with open(path, 'w') as f:
        yaml.dump({
            'stage_ends': [2, 4, 6],
            'edges': LAYERED_EDGES,
            'reports': [[5, 12.0], [6, 11.0], [5, 10.0]],
        }, f)
    return path

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
