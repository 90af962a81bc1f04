#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Edge-incidence ("c") matrices.

Row o of an incidence matrix marks the edges on the path attributed to
observation o; columns follow the network's EdgeTable order.

Author: SourceTrace Development Team
License: MIT
"""

from typing import List, Sequence

import numpy as np

from .data_structures import EdgeTable
from .errors import MissingEdgeError


def path_edge_columns(path: Sequence[int], edge_table: EdgeTable) -> List[int]:
    """Edge-table columns of the consecutive (from, to) pairs of a path."""
    columns = []
    for i, j in zip(path, path[1:]):
        k = edge_table.column(int(i), int(j))
        if k is None:
            raise MissingEdgeError((int(i), int(j)))
        columns.append(k)
    return columns


def incidence_row(path: Sequence[int], edge_table: EdgeTable) -> np.ndarray:
    row = np.zeros(len(edge_table))
    row[path_edge_columns(path, edge_table)] = 1.0
    return row


def build_incidence_matrix(paths: Sequence[Sequence[int]], edge_table: EdgeTable) -> np.ndarray:
    """
    O x K binary matrix for O paths over the K edges of `edge_table`.

    A single-node path gives an all-zero row.

    Raises:
        MissingEdgeError: if a path steps along a pair with no edge
    """
    matrix = np.zeros((len(paths), len(edge_table)))
    for o, path in enumerate(paths):
        matrix[o] = incidence_row(path, edge_table)
    return matrix

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
