"""Skim package exports."""

from .domain_types import (
    ODConnection,
    ODSample,
    RoutePart,
    RoutingOracle,
    RoutingParameters,
    SkimComputationError,
    Stop,
    StopIndex,
    TravelInfo,
)
from .indicator_matrices import FloatMatrix, PtIndicators
from .od_connections import (
    build_od_connections,
    find_fastest_connection,
    sort_and_filter_connections,
)
from .od_evaluator import ODEvaluator, RouteSummary, summarize_route
from .rooftop import calc_average_adaption_time, perceived_frequency
from .skim_matrices import RowWorker, compute_matrices, compute_matrices_from_config
from .stop_candidates import find_stop_candidates, resolve_walk_times, walk_times

__all__ = [
    "FloatMatrix",
    "ODConnection",
    "ODEvaluator",
    "ODSample",
    "PtIndicators",
    "RouteSummary",
    "RoutePart",
    "RoutingOracle",
    "RoutingParameters",
    "RowWorker",
    "SkimComputationError",
    "Stop",
    "StopIndex",
    "TravelInfo",
    "build_od_connections",
    "calc_average_adaption_time",
    "compute_matrices",
    "compute_matrices_from_config",
    "find_fastest_connection",
    "find_stop_candidates",
    "perceived_frequency",
    "resolve_walk_times",
    "sort_and_filter_connections",
    "summarize_route",
    "walk_times",
]
