"""Evaluation of a single origin/destination sample-point pair."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence

from .domain_types import (
    Coord,
    ODConnection,
    ODSample,
    RoutePart,
    RoutingParameters,
    StopId,
    StopIndex,
    TrainDetector,
    TravelInfo,
)
from .indicator_matrices import PtIndicators
from .od_connections import (
    build_od_connections,
    find_fastest_connection,
    sort_and_filter_connections,
)
from .rooftop import calc_average_adaption_time
from .stop_candidates import resolve_walk_times

Tree = Mapping[StopId, TravelInfo]


@dataclass(frozen=True)
class RouteSummary:
    """In-vehicle totals of a routed trip, split by train and other modes."""

    total_distance: float
    train_distance: float
    total_in_vehicle_time: float
    train_in_vehicle_time: float

    @property
    def train_distance_share(self) -> float:
        if self.total_distance == 0:
            return math.nan
        return self.train_distance / self.total_distance

    @property
    def train_travel_time_share(self) -> float:
        if self.total_in_vehicle_time == 0:
            return math.nan
        return self.train_in_vehicle_time / self.total_in_vehicle_time


def summarize_route(parts: Iterable[RoutePart], train_detector: TrainDetector) -> RouteSummary:
    total_distance = 0.0
    train_distance = 0.0
    total_time = 0.0
    train_time = 0.0
    for part in parts:
        if not part.is_transit:
            continue
        in_vehicle = part.in_vehicle_time
        total_distance += part.distance
        total_time += in_vehicle
        if train_detector(part.line_id, part.route_id):
            train_distance += part.distance
            train_time += in_vehicle
    return RouteSummary(
        total_distance=total_distance,
        train_distance=train_distance,
        total_in_vehicle_time=total_time,
        train_in_vehicle_time=train_time,
    )


class ODEvaluator:
    """Turns shortest-path trees of one origin sample into OD indicator samples."""

    def __init__(
        self,
        *,
        stop_index: StopIndex,
        parameters: RoutingParameters,
        train_detector: TrainDetector,
        min_departure_time: float,
        max_departure_time: float,
    ) -> None:
        if max_departure_time <= min_departure_time:
            raise ValueError("max_departure_time must be later than min_departure_time.")
        self.stop_index = stop_index
        self.parameters = parameters
        self.train_detector = train_detector
        self.min_departure_time = float(min_departure_time)
        self.max_departure_time = float(max_departure_time)
        self._egress_cache: Dict[Coord, Dict[StopId, float]] = {}

    def egress_times(self, to_coord: Coord) -> Dict[StopId, float]:
        """Walk times from every candidate stop to the destination sample."""
        key = (float(to_coord[0]), float(to_coord[1]))
        cached = self._egress_cache.get(key)
        if cached is None:
            cached = resolve_walk_times(key[0], key[1], self.stop_index, self.parameters)
            self._egress_cache[key] = cached
        return cached

    def connections(self, trees: Sequence[Tree], to_coord: Coord) -> List[ODConnection]:
        connections = build_od_connections(trees, self.egress_times(to_coord))
        return sort_and_filter_connections(connections)

    def evaluate(
        self,
        access_times: Mapping[StopId, float],
        trees: Sequence[Tree],
        to_coord: Coord,
    ) -> Optional[ODSample]:
        """Indicator sample for one sample pair, ``None`` when unreachable."""
        connections = self.connections(trees, to_coord)
        if not connections:
            return None

        avg_adaption = calc_average_adaption_time(
            connections, self.min_departure_time, self.max_departure_time
        )
        fastest = find_fastest_connection(connections)
        info = fastest.travel_info
        access_time = fastest.access_time
        route: Sequence[RoutePart] = ()
        if info is not None:
            access_time = access_times.get(info.departure_stop, fastest.access_time)
            route = info.route
        summary = summarize_route(route, self.train_detector)
        return ODSample(
            adaption_time=avg_adaption,
            access_time=access_time,
            egress_time=fastest.egress_time,
            transfer_count=fastest.transfer_count,
            travel_time=fastest.total_travel_time,
            train_travel_time_share=summary.train_travel_time_share,
            train_distance_share=summary.train_distance_share,
        )

    def evaluate_into(
        self,
        indicators: PtIndicators,
        from_zone: Hashable,
        to_zone: Hashable,
        access_times: Mapping[StopId, float],
        trees: Sequence[Tree],
        to_coord: Coord,
    ) -> bool:
        """Write one sample pair into ``indicators``; returns whether it was valid."""
        sample = self.evaluate(access_times, trees, to_coord)
        if sample is None:
            indicators.invalidate(from_zone, to_zone)
            return False
        indicators.accumulate(from_zone, to_zone, sample)
        return True


__all__ = ["ODEvaluator", "RouteSummary", "summarize_route"]
