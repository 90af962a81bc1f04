#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Scenario and result I/O.

A scenario bundles everything a traceback call consumes. It is stored as YAML
(JSON is accepted, being a YAML subset):

    stage_ends: [1, 2]
    num_nodes: 3                  # optional, defaults to stage_ends[-1] + 1
    edges:                        # [from, to, probability, distance]
      - [0, 2, 0.6, 630.0]
      - [1, 2, 0.4, 1260.0]
    reports:                      # [node, detection time in days]
      - [2, 10.0]
    prior: [0.5, 0.5]             # optional, defaults to uniform

Author: SourceTrace Development Team
License: MIT
"""

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml

from ..traceback_core.data_structures import ContaminationReports, SupplyNetwork
from ..traceback_core.orchestrator import MethodComparison, TracebackResult

logger = logging.getLogger(__name__)


@dataclass
class Scenario:
    """Inputs of one traceback: network, reports and optional prior."""
    network: SupplyNetwork
    reports: ContaminationReports
    prior: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'stage_ends': list(self.network.stage_ends),
            'num_nodes': self.network.num_nodes,
            'edges': self.network.to_edges(),
            'reports': self.reports.to_pairs(),
        }
        if self.prior is not None:
            data['prior'] = [float(p) for p in self.prior]
        return data


def scenario_from_dict(data: Dict[str, Any]) -> Scenario:
    """Build a Scenario from its dictionary form."""
    for key in ('stage_ends', 'edges', 'reports'):
        if key not in data:
            raise ValueError(f"Scenario is missing required key '{key}'")

    stage_ends = [int(s) for s in data['stage_ends']]
    num_nodes = int(data.get('num_nodes', stage_ends[-1] + 1))
    network = SupplyNetwork.from_edges(num_nodes, stage_ends, data['edges'])
    reports = ContaminationReports.from_pairs(data['reports'])
    prior = data.get('prior')
    return Scenario(network=network, reports=reports, prior=prior)


def load_scenario(path: Union[str, Path]) -> Scenario:
    """
    Load a scenario from a YAML or JSON file.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the file is not a valid scenario
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML/JSON in scenario file {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Scenario file {path} must contain a mapping")

    scenario = scenario_from_dict(data)
    logger.info(
        f"Loaded scenario {path.name}: {scenario.network.num_nodes} nodes, "
        f"{scenario.network.num_edges} edges, {len(scenario.reports)} reports"
    )
    return scenario


def save_scenario(scenario: Scenario, path: Union[str, Path]):
    """Write a scenario as YAML (or JSON when the suffix is .json)."""
    path = Path(path)
    with open(path, 'w') as f:
        if path.suffix == '.json':
            json.dump(scenario.to_dict(), f, indent=2)
        else:
            yaml.dump(scenario.to_dict(), f, default_flow_style=None, sort_keys=False)
    logger.info(f"Saved scenario to {path}")


def load_reports_csv(path: Union[str, Path]) -> ContaminationReports:
    """
    Read contamination reports from a CSV with `node,time` columns.

    Lines starting with '#' are ignored.
    """
    path = Path(path)
    nodes, times = [], []
    with open(path, 'r', newline='') as f:
        rows = (line for line in f if line.strip() and not line.startswith('#'))
        for row in csv.DictReader(rows):
            try:
                nodes.append(int(row['node']))
                times.append(float(row['time']))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Bad report row in {path}: {row} ({e})")
    logger.info(f"Read {len(nodes)} reports from {path}")
    return ContaminationReports(nodes, times)


def _dump(data: Dict[str, Any], path: Path, fmt: str):
    with open(path, 'w') as f:
        if fmt == 'yaml':
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        elif fmt == 'json':
            json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unknown output format: {fmt}")


def write_result(
    result: TracebackResult,
    output_path: Union[str, Path],
    fmt: str = 'json',
    include_failures: bool = True,
) -> Dict[str, Any]:
    """
    Write a traceback result; undefined t_s* values are written as null.

    Returns:
        The dictionary that was written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = result.to_dict()
    if not include_failures:
        data.pop('failures', None)
    _dump(data, output_path, fmt)
    logger.info(f"Wrote traceback result to {output_path}")
    return data


def write_comparison(comparison: MethodComparison, output_path: Union[str, Path], fmt: str = 'json'):
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _dump(comparison.to_dict(), output_path, fmt)
    logger.info(f"Wrote comparison of {len(comparison.rows)} methods to {output_path}")


def export_summary_tsv(comparison: MethodComparison, output_path: Union[str, Path]):
    """
    Export the comparison summary matrix as TSV.

    Format: method_id\tt_s_star_1\tpmf_0\tpmf_1...
    """
    output_path = Path(output_path)
    matrix = comparison.summary_matrix()
    with open(output_path, 'w') as f:
        f.write("# Traceback method comparison\n")
        header = ['method_id', 't_s_star_1'] + [f"pmf_{s}" for s in range(comparison.num_farms)]
        f.write('\t'.join(header) + '\n')
        for row in matrix:
            cells = [str(int(row[0]))] + ['NA' if np.isnan(v) else f"{v:.6g}" for v in row[1:]]
            f.write('\t'.join(cells) + '\n')
    logger.info(f"Exported summary of {len(matrix)} methods to {output_path}")

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
