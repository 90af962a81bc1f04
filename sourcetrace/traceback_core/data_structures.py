#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Core data structures for supply-chain traceback.

A supply network is a layered directed graph: nodes are numbered stage by stage
(farms first), and flows only move units from one stage towards later ones.
Flow probabilities and transport distances are held as sparse CSR matrices so
that predecessor/successor queries never touch an O(N^2) dense array.

Author: SourceTrace Development Team
License: MIT
"""

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np
import scipy.sparse as sp

logger = logging.getLogger(__name__)

MatrixLike = Union[np.ndarray, sp.spmatrix, Sequence[Sequence[float]]]


# ============================================================================
# Edge table
# ============================================================================

@dataclass
class EdgeTable:
    """
    Enumerated edge list of a supply network.

    Column k of every incidence matrix refers to edge k of this table.
    """
    sources: np.ndarray         # from-node of each edge
    targets: np.ndarray         # to-node of each edge
    distances: np.ndarray       # transport distance of each edge
    probabilities: np.ndarray   # flow probability of each edge
    index: Dict[Tuple[int, int], int] = field(default_factory=dict)

    def __post_init__(self):
        if not self.index:
            self.index = {
                (int(i), int(j)): k
                for k, (i, j) in enumerate(zip(self.sources, self.targets))
            }

    def __len__(self) -> int:
        return len(self.sources)

    def column(self, from_node: int, to_node: int) -> Optional[int]:
        """Column of edge (from_node, to_node), or None if absent."""
        return self.index.get((from_node, to_node))

    @property
    def log_probabilities(self) -> np.ndarray:
        return np.log(self.probabilities)


# ============================================================================
# Supply network
# ============================================================================

class SupplyNetwork:
    """
    Layered supply network with sparse flow and distance matrices.

    Args:
        flows: N x N matrix, entry (i, j) is the probability that units leaving
            node i arrive at node j. Edge (i, j) exists iff this is > 0.
        distances: N x N matrix of transport distances for each edge
        stage_ends: stage_ends[s] is the id of the last node of stage s
    """

    def __init__(self, flows: MatrixLike, distances: MatrixLike, stage_ends: Sequence[int]):
        self.flows = _as_csr(flows)
        self.distances = _as_csr(distances)
        self.stage_ends = [int(s) for s in stage_ends]
        self._validate()

        self.flows.eliminate_zeros()
        self._flows_csc = self.flows.tocsc()
        self._edge_table: Optional[EdgeTable] = None

        logger.debug(
            f"SupplyNetwork: {self.num_nodes} nodes, {self.num_edges} edges, "
            f"{self.num_stages} stages"
        )

    def _validate(self):
        n_rows, n_cols = self.flows.shape
        if n_rows != n_cols:
            raise ValueError(f"Flow matrix must be square, got {self.flows.shape}")
        if self.distances.shape != self.flows.shape:
            raise ValueError(
                f"Distance matrix shape {self.distances.shape} does not match "
                f"flow matrix shape {self.flows.shape}"
            )
        if self.flows.nnz and self.flows.data.min() < 0:
            raise ValueError("Flow probabilities must be non-negative")
        if not self.stage_ends:
            raise ValueError("stage_ends must name at least one stage")
        if any(b <= a for a, b in zip(self.stage_ends, self.stage_ends[1:])) or self.stage_ends[0] < 0:
            raise ValueError(f"stage_ends must be strictly increasing: {self.stage_ends}")
        if self.stage_ends[-1] != n_rows - 1:
            raise ValueError(
                f"Last stage must end at node {n_rows - 1}, got {self.stage_ends[-1]}"
            )

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def num_nodes(self) -> int:
        return self.flows.shape[0]

    @property
    def num_edges(self) -> int:
        return self.flows.nnz

    @property
    def num_stages(self) -> int:
        return len(self.stage_ends)

    @property
    def num_farms(self) -> int:
        return self.stage_ends[0] + 1

    @property
    def farm_ids(self) -> List[int]:
        """Stage-1 nodes, the candidate sources."""
        return list(range(self.num_farms))

    @property
    def terminal_ids(self) -> List[int]:
        """Nodes of the last stage."""
        first = self.stage_ends[-2] + 1 if self.num_stages > 1 else 0
        return list(range(first, self.num_nodes))

    @property
    def num_non_terminal(self) -> int:
        return self.stage_ends[-2] + 1 if self.num_stages > 1 else 0

    def stage_of(self, node: int) -> int:
        """0-based stage index of a node."""
        self._check_node(node)
        return bisect_left(self.stage_ends, node)

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------

    def predecessors(self, node: int) -> List[int]:
        """Nodes with a positive flow into `node`, ascending."""
        self._check_node(node)
        col = self._flows_csc
        start, end = col.indptr[node], col.indptr[node + 1]
        return sorted(int(i) for i in col.indices[start:end])

    def successors(self, node: int) -> List[int]:
        """Nodes receiving a positive flow from `node`, ascending."""
        self._check_node(node)
        start, end = self.flows.indptr[node], self.flows.indptr[node + 1]
        return sorted(int(j) for j in self.flows.indices[start:end])

    def has_edge(self, from_node: int, to_node: int) -> bool:
        return self.edge_probability(from_node, to_node) > 0

    def edge_probability(self, from_node: int, to_node: int) -> float:
        return float(self.flows[from_node, to_node])

    def edge_distance(self, from_node: int, to_node: int) -> float:
        return float(self.distances[from_node, to_node])

    def edge_table(self) -> EdgeTable:
        """Edge list in CSR order (row by row, columns ascending)."""
        if self._edge_table is None:
            flows = self.flows.tocoo()
            order = np.lexsort((flows.col, flows.row))
            rows = flows.row[order].astype(np.int64)
            cols = flows.col[order].astype(np.int64)
            if len(rows):
                dists = np.asarray(self.distances[rows, cols]).ravel().astype(float)
            else:
                dists = np.zeros(0)
            self._edge_table = EdgeTable(
                sources=rows,
                targets=cols,
                distances=dists,
                probabilities=flows.data[order].astype(float),
            )
        return self._edge_table

    def _check_node(self, node: int):
        if not 0 <= node < self.num_nodes:
            raise ValueError(f"Node {node} out of range [0, {self.num_nodes})")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_edges(
        cls,
        num_nodes: int,
        stage_ends: Sequence[int],
        edges: Sequence[Sequence[float]],
    ) -> "SupplyNetwork":
        """
        Build a network from (from, to, probability, distance) rows.

        Args:
            num_nodes: Total number of nodes
            stage_ends: Last node id of each stage
            edges: Iterable of [from, to, probability, distance]
        """
        flows = sp.lil_matrix((num_nodes, num_nodes), dtype=float)
        distances = sp.lil_matrix((num_nodes, num_nodes), dtype=float)
        for row in edges:
            if len(row) != 4:
                raise ValueError(f"Edge rows need 4 fields (from, to, probability, distance), got {row}")
            i, j, prob, dist = int(row[0]), int(row[1]), float(row[2]), float(row[3])
            flows[i, j] = prob
            distances[i, j] = dist
        return cls(flows.tocsr(), distances.tocsr(), stage_ends)

    def to_edges(self) -> List[List[float]]:
        table = self.edge_table()
        return [
            [int(i), int(j), float(p), float(d)]
            for i, j, p, d in zip(table.sources, table.targets, table.probabilities, table.distances)
        ]

    def __repr__(self) -> str:
        return (
            f"SupplyNetwork(nodes={self.num_nodes}, edges={self.num_edges}, "
            f"stage_ends={self.stage_ends})"
        )


def _as_csr(matrix: MatrixLike) -> sp.csr_matrix:
    if sp.issparse(matrix):
        return sp.csr_matrix(matrix, dtype=float, copy=True)
    return sp.csr_matrix(np.asarray(matrix, dtype=float))


# ============================================================================
# Per-source evidence
# ============================================================================

@dataclass
class SourceLikelihood:
    """Evidence for one candidate source from one estimator."""
    source: int
    log_likelihood: float
    t_s_star: float = math.nan     # NaN when no point estimate exists
    num_trajectories: int = 0      # Trajectories / incidence matrices evaluated
    error: Optional[str] = None    # Local failure that zeroed this source

    @property
    def likelihood(self) -> float:
        return math.exp(self.log_likelihood)

    @classmethod
    def failed(cls, source: int, error: str) -> "SourceLikelihood":
        return cls(source=source, log_likelihood=-math.inf, error=error)


# ============================================================================
# Contamination reports
# ============================================================================

class ContaminationReports:
    """
    Ordered (node, detection time) observations.

    A node may be reported more than once; every report is kept.
    """

    def __init__(self, nodes: Sequence[int], times: Sequence[float]):
        if len(nodes) != len(times):
            raise ValueError(
                f"Report nodes and times differ in length ({len(nodes)} vs {len(times)})"
            )
        if len(nodes) == 0:
            raise ValueError("At least one contamination report is required")
        self.nodes = np.asarray(nodes, dtype=np.int64)
        self.times = np.asarray(times, dtype=float)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Sequence[float]]) -> "ContaminationReports":
        pairs = list(pairs)
        return cls([int(p[0]) for p in pairs], [float(p[1]) for p in pairs])

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        for node, time in zip(self.nodes, self.times):
            yield int(node), float(time)

    @property
    def distinct_nodes(self) -> List[int]:
        return sorted(set(int(n) for n in self.nodes))

    def times_at(self, node: int) -> np.ndarray:
        return self.times[self.nodes == node]

    def min_times(self) -> Dict[int, float]:
        """Earliest report time per distinct node."""
        return {n: float(self.times_at(n).min()) for n in self.distinct_nodes}

    def mean_times(self) -> Dict[int, float]:
        """Mean report time per distinct node."""
        return {n: float(self.times_at(n).mean()) for n in self.distinct_nodes}

    def validate_against(self, network: SupplyNetwork):
        bad = [n for n in self.distinct_nodes if not 0 <= n < network.num_nodes]
        if bad:
            raise ValueError(f"Reports reference unknown node(s): {bad}")

    def to_pairs(self) -> List[List[float]]:
        return [[node, time] for node, time in self]

    def __repr__(self) -> str:
        return f"ContaminationReports(n={len(self)}, nodes={self.distinct_nodes})"

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
