"""
SourceTrace v0.1.0

Traceback core: source inference for contamination events in layered supply
networks.

- data_structures: SupplyNetwork, EdgeTable, ContaminationReports
- graph_algebra: ancestors, path enumeration, shortest / most-probable paths
- feasibility: candidate-source filter
- incidence: edge-incidence matrices
- time_likelihood: Gaussian travel-time model
- volume_evidence: absorption-probability evidence
- exact_estimator / heuristic_estimator: per-source time evidence
- orchestrator: the eleven estimator configurations and posterior assembly

Author: SourceTrace Development Team
License: MIT
"""

from .data_structures import (
    ContaminationReports,
    EdgeTable,
    SourceLikelihood,
    SupplyNetwork,
)
from .errors import (
    CombinatorialOverflowError,
    DegenerateFeasibleSetError,
    EnumerationCancelled,
    MissingEdgeError,
    SingularCovarianceError,
    TracebackError,
    ZeroPosteriorMassError,
)
from .graph_algebra import (
    all_paths_between,
    count_paths_between,
    most_probable_path,
    parents,
    path_probability,
    root_ancestors,
    shortest_path,
)
from .feasibility import feasible_sources, reach_counts
from .incidence import build_incidence_matrix
from .time_likelihood import GaussianTimeModel, PointEstimate
from .volume_evidence import absorption_probabilities, exact_volume_component
from .exact_estimator import ExactEstimator, ExactMode, count_trajectories
from .heuristic_estimator import HeuristicEstimator, PathHeuristic, TimeMode
from .orchestrator import (
    HEURISTIC_METHODS,
    METHOD_SPECS,
    MethodComparison,
    TracebackMethod,
    TracebackResult,
    compare_methods,
    parse_method,
    time_traceback,
)

__all__ = [
    # Data structures
    "ContaminationReports",
    "EdgeTable",
    "SourceLikelihood",
    "SupplyNetwork",
    # Errors
    "CombinatorialOverflowError",
    "DegenerateFeasibleSetError",
    "EnumerationCancelled",
    "MissingEdgeError",
    "SingularCovarianceError",
    "TracebackError",
    "ZeroPosteriorMassError",
    # Graph algebra
    "all_paths_between",
    "count_paths_between",
    "most_probable_path",
    "parents",
    "path_probability",
    "root_ancestors",
    "shortest_path",
    # Evidence models
    "feasible_sources",
    "reach_counts",
    "build_incidence_matrix",
    "GaussianTimeModel",
    "PointEstimate",
    "absorption_probabilities",
    "exact_volume_component",
    "ExactEstimator",
    "ExactMode",
    "count_trajectories",
    "HeuristicEstimator",
    "PathHeuristic",
    "TimeMode",
    # Orchestration
    "HEURISTIC_METHODS",
    "METHOD_SPECS",
    "MethodComparison",
    "TracebackMethod",
    "TracebackResult",
    "compare_methods",
    "parse_method",
    "time_traceback",
]
