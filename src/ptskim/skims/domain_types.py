"""Core dataclasses and collaborator protocols shared across the skims package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Collection, Hashable, Mapping, Optional, Protocol, Tuple

StopId = Hashable
Coord = Tuple[float, float]
TrainDetector = Callable[[Optional[Hashable], Optional[Hashable]], bool]

# 3 km/h walking speed over a beeline distance factor of 1.3
DEFAULT_BEELINE_WALK_SPEED = 3.0 / 3.6 / 1.3


@dataclass(frozen=True)
class Stop:
    """Transit boarding/alighting point with a fixed planar coordinate."""

    id: StopId
    x: float
    y: float

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)


@dataclass(frozen=True)
class RoutingParameters:
    """Walk speed and stop search radii used for access and egress."""

    beeline_walk_speed: float = DEFAULT_BEELINE_WALK_SPEED
    search_radius: float = 1000.0
    extension_radius: float = 200.0

    def __post_init__(self) -> None:
        if self.beeline_walk_speed <= 0:
            raise ValueError("beeline_walk_speed must be positive.")
        if self.search_radius <= 0:
            raise ValueError("search_radius must be positive.")
        if self.extension_radius < 0:
            raise ValueError("extension_radius must be non-negative.")


@dataclass(frozen=True)
class RoutePart:
    """One leg of a routed trip; walk and transfer legs carry no line."""

    from_stop: Optional[StopId]
    to_stop: Optional[StopId]
    boarding_time: float
    arrival_time: float
    distance: float = 0.0
    line_id: Optional[Hashable] = None
    route_id: Optional[Hashable] = None

    @property
    def is_transit(self) -> bool:
        return self.line_id is not None

    @property
    def in_vehicle_time(self) -> float:
        return self.arrival_time - self.boarding_time


@dataclass(frozen=True)
class TravelInfo:
    """Best way to reach one stop of a shortest-path tree."""

    departure_stop: StopId
    pt_departure_time: float
    pt_travel_time: float
    access_time: float = 0.0
    transfer_count: int = 0
    route: Tuple[RoutePart, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ODConnection:
    """Candidate door-to-door trip for one origin/destination sample pair."""

    departure_time: float
    travel_time: float
    access_time: float
    egress_time: float
    transfer_count: float
    travel_info: Optional[TravelInfo] = None

    @property
    def effective_departure_time(self) -> float:
        return self.departure_time - self.access_time

    @property
    def total_travel_time(self) -> float:
        return self.access_time + self.travel_time + self.egress_time


@dataclass(frozen=True)
class ODSample:
    """Indicator values contributed by one evaluated sample pair."""

    adaption_time: float
    access_time: float
    egress_time: float
    transfer_count: float
    travel_time: float
    train_travel_time_share: float
    train_distance_share: float


class RoutingOracle(Protocol):
    """Builds a shortest-path tree from a set of origin stops."""

    def build_tree(
        self,
        origin_stops: Collection[StopId],
        departure_time: float,
        parameters: RoutingParameters,
    ) -> Mapping[StopId, TravelInfo]:
        ...


class StopIndex(Protocol):
    """Spatial lookup of transit stops around a coordinate."""

    def find_nearby_stops(self, x: float, y: float, radius: float) -> Collection[Stop]:
        ...

    def find_nearest_stop(self, x: float, y: float) -> Optional[Stop]:
        ...


class SkimComputationError(RuntimeError):
    """Raised when a matrix run cannot complete for every origin zone."""
