#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Graph algebra over a layered supply network.

Provides the path queries both evidence models depend on:
  1. Ancestor queries (parents, root ancestors) used by the feasibility filter.
  2. Full path enumeration between a farm and a contaminated node, needed by
     the exact estimator which sums over every diffusion trajectory.
  3. Shortest-distance and most-probable single paths used by the heuristics.

Supply networks are acyclic (flows move stage to stage), so every path found
here is simple.

Author: SourceTrace Development Team
License: MIT
"""

import heapq
import logging
import math
from collections import deque
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .data_structures import SupplyNetwork

logger = logging.getLogger(__name__)

Path = List[int]


# ============================================================================
#                         ANCESTOR / DESCENDANT QUERIES
# ============================================================================

def parents(network: SupplyNetwork, node_set: Iterable[int]) -> Set[int]:
    """Union of the direct predecessors of every node in `node_set`."""
    result: Set[int] = set()
    for node in node_set:
        result.update(network.predecessors(node))
    return result


def ancestors(network: SupplyNetwork, node: int) -> Set[int]:
    """Every node with a directed path into `node` (excluding `node`)."""
    seen: Set[int] = set()
    frontier = {node}
    while frontier:
        frontier = parents(network, frontier) - seen
        seen.update(frontier)
    return seen


def descendants(network: SupplyNetwork, node: int) -> Set[int]:
    """Every node reachable from `node` (excluding `node`)."""
    seen: Set[int] = set()
    queue = deque([node])
    while queue:
        current = queue.popleft()
        for child in network.successors(current):
            if child not in seen:
                seen.add(child)
                queue.append(child)
    return seen


def root_ancestors(network: SupplyNetwork, node: int) -> Set[int]:
    """
    Ancestors of `node` that have no predecessors themselves.

    The frontier of parents is walked upward until it empties; any node met on
    the way without parents is a root. A node with no parents is its own root.
    """
    if not network.predecessors(node):
        return {node}

    roots: Set[int] = set()
    seen: Set[int] = set()
    frontier = {node}
    while frontier:
        next_frontier: Set[int] = set()
        for current in frontier:
            preds = network.predecessors(current)
            if not preds and current != node:
                roots.add(current)
            next_frontier.update(p for p in preds if p not in seen)
        seen.update(next_frontier)
        frontier = next_frontier
    return roots


# ============================================================================
#                         PATH ENUMERATION
# ============================================================================

def all_paths_between(network: SupplyNetwork, start: int, end: int) -> List[Path]:
    """
    Enumerate every simple path from `start` to `end`.

    Paths are grown one hop upstream from `end`; a fragment is complete when
    its first node is `start`. Branches through nodes that `start` cannot
    reach are dropped early since they can never begin at `start`.

    The number of paths grows with the product of branching factors across
    stages, so this is exponential in the worst case. It is deliberately not
    capped: the exact estimator needs the complete set. Use
    count_paths_between() to size the enumeration first.

    Returns:
        Paths sorted lexicographically; empty if `end` is unreachable.
    """
    if start == end:
        return [[start]]

    reachable = descendants(network, start)
    if end not in reachable:
        return []
    reachable.add(start)

    paths: List[Path] = []
    stack: List[Path] = [[end]]
    while stack:
        fragment = stack.pop()
        head = fragment[0]
        if head == start:
            paths.append(fragment)
            continue
        for parent in network.predecessors(head):
            if parent in reachable and parent not in fragment:
                stack.append([parent] + fragment)

    paths.sort()
    return paths


def count_paths_between(network: SupplyNetwork, start: int, end: int) -> int:
    """Number of paths from `start` to `end`, counted without enumerating them."""
    if start == end:
        return 1

    reachable = descendants(network, start)
    if end not in reachable:
        return 0
    reachable.add(start)

    counts: Dict[int, int] = {start: 1}

    def count_into(node: int) -> int:
        if node in counts:
            return counts[node]
        total = 0
        for parent in network.predecessors(node):
            if parent in reachable:
                total += count_into(parent)
        counts[node] = total
        return total

    return count_into(end)


# ============================================================================
#                         SINGLE-PATH SEARCH
# ============================================================================

def _dijkstra(
    network: SupplyNetwork,
    start: int,
    end: int,
    weight: Callable[[int, int], Optional[float]],
) -> Optional[Tuple[Path, float]]:
    """
    Dijkstra's algorithm over edge weights from `weight(i, j)`.

    `weight` returns None for edges that must not be traversed.
    """
    best: Dict[int, float] = {start: 0.0}
    previous: Dict[int, int] = {}
    settled: Set[int] = set()
    heap = [(0.0, start)]

    while heap:
        distance, current = heapq.heappop(heap)
        if current in settled:
            continue
        settled.add(current)
        if current == end:
            break

        for neighbor in network.successors(current):
            if neighbor in settled:
                continue
            edge_weight = weight(current, neighbor)
            if edge_weight is None:
                continue
            if edge_weight < 0:
                raise ValueError(
                    f"Negative edge weight {edge_weight} on {current} -> {neighbor}"
                )
            new_distance = distance + edge_weight
            if new_distance < best.get(neighbor, math.inf):
                best[neighbor] = new_distance
                previous[neighbor] = current
                heapq.heappush(heap, (new_distance, neighbor))

    if end not in settled:
        return None

    path = [end]
    while path[-1] != start:
        path.append(previous[path[-1]])
    path.reverse()
    return path, best[end]


def shortest_path(network: SupplyNetwork, start: int, end: int) -> Optional[Path]:
    """Shortest path by transport distance, or None if `end` is unreachable."""
    found = _dijkstra(network, start, end, network.edge_distance)
    return found[0] if found else None


def _log_transformed_weight(network: SupplyNetwork) -> Callable[[int, int], Optional[float]]:
    def weight(i: int, j: int) -> Optional[float]:
        p = network.edge_probability(i, j)
        if p <= 0:
            return None
        return 1.0 - math.log(p)
    return weight


def most_probable_path(
    network: SupplyNetwork, start: int, end: int
) -> Optional[Tuple[Path, float]]:
    """
    Highest-probability path, searched as a shortest path over 1 - log(w).

    Zero-probability edges are absent from the transformed graph.

    Returns:
        (path, probability) with probability the product of the edge flow
        probabilities along the path, or None if `end` is unreachable.
    """
    found = _dijkstra(network, start, end, _log_transformed_weight(network))
    if found is None:
        return None
    path = found[0]
    return path, path_probability(network, path)


def path_probability(network: SupplyNetwork, path: Path) -> float:
    prob = 1.0
    for i, j in zip(path, path[1:]):
        prob *= network.edge_probability(i, j)
    return prob


def path_distance(network: SupplyNetwork, path: Path) -> float:
    return sum(network.edge_distance(i, j) for i, j in zip(path, path[1:]))

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
