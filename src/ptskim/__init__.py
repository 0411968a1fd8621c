"""Public transport skim matrices for zone-based travel-demand models."""

from .skims import (
    FloatMatrix,
    ODConnection,
    PtIndicators,
    RoutePart,
    RoutingParameters,
    SkimComputationError,
    Stop,
    TravelInfo,
    compute_matrices,
)

__all__ = [
    "FloatMatrix",
    "ODConnection",
    "PtIndicators",
    "RoutePart",
    "RoutingParameters",
    "SkimComputationError",
    "Stop",
    "TravelInfo",
    "compute_matrices",
]
