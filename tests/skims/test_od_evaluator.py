from __future__ import annotations

import math
from typing import Dict, List

import pytest

from ptskim.skims.domain_types import RoutePart, RoutingParameters, Stop, TravelInfo
from ptskim.skims.indicator_matrices import PtIndicators
from ptskim.skims.od_evaluator import ODEvaluator, summarize_route
from ptskim.skims.stop_candidates import find_stop_candidates, walk_times


class DummyStopIndex:
    def __init__(self, stops: List[Stop]):
        self.stops = stops
        self.nearby_calls: List[float] = []

    def find_nearby_stops(self, x: float, y: float, radius: float):
        self.nearby_calls.append(radius)
        return [s for s in self.stops if math.hypot(s.x - x, s.y - y) <= radius]

    def find_nearest_stop(self, x: float, y: float):
        if not self.stops:
            return None
        return min(self.stops, key=lambda s: math.hypot(s.x - x, s.y - y))


def _is_train(line_id, route_id) -> bool:
    return line_id == "IC"


def _travel_info(departure: float, travel: float, route=()) -> TravelInfo:
    return TravelInfo(
        departure_stop="S1",
        pt_departure_time=departure,
        pt_travel_time=travel,
        access_time=0.0,
        transfer_count=1,
        route=tuple(route),
    )


def _evaluator(stops: List[Stop]) -> ODEvaluator:
    return ODEvaluator(
        stop_index=DummyStopIndex(stops),
        parameters=RoutingParameters(beeline_walk_speed=1.0, search_radius=500.0, extension_radius=100.0),
        train_detector=_is_train,
        min_departure_time=0.0,
        max_departure_time=600.0,
    )


ROUTE = (
    RoutePart("S1", "S1", 0.0, 60.0),  # walk/transfer leg, ignored
    RoutePart("S1", "S5", 60.0, 460.0, distance=8000.0, line_id="IC", route_id="IC-1"),
    RoutePart("S5", "S2", 500.0, 600.0, distance=2000.0, line_id="B12", route_id="B12-a"),
)


def test_summarize_route_splits_train_legs():
    summary = summarize_route(ROUTE, _is_train)
    assert summary.total_distance == pytest.approx(10000.0)
    assert summary.total_in_vehicle_time == pytest.approx(500.0)
    assert summary.train_distance_share == pytest.approx(0.8)
    assert summary.train_travel_time_share == pytest.approx(0.8)


def test_summarize_route_without_transit_is_nan():
    summary = summarize_route([RoutePart("S1", "S2", 0.0, 300.0, distance=400.0)], _is_train)
    assert math.isnan(summary.train_distance_share)
    assert math.isnan(summary.train_travel_time_share)


def test_stop_candidates_extend_search_when_nothing_nearby():
    index = DummyStopIndex([Stop("far", 1200.0, 0.0), Stop("farther", 1350.0, 0.0), Stop("x", 5000.0, 0.0)])
    params = RoutingParameters(beeline_walk_speed=1.0, search_radius=1000.0, extension_radius=200.0)
    stops = find_stop_candidates(0.0, 0.0, index, params)
    assert {s.id for s in stops} == {"far", "farther"}
    assert index.nearby_calls == [1000.0, 1400.0]


def test_stop_candidates_on_empty_network():
    params = RoutingParameters()
    assert list(find_stop_candidates(0.0, 0.0, DummyStopIndex([]), params)) == []


def test_walk_times_use_beeline_distance():
    times = walk_times(0.0, 0.0, [Stop("S", 300.0, 400.0)], walk_speed=2.0)
    assert times == {"S": pytest.approx(250.0)}


def test_evaluate_uses_fastest_connection_breakdown():
    evaluator = _evaluator([Stop("S2", 1000.0, 0.0)])
    trees: List[Dict[str, TravelInfo]] = [
        {"S2": _travel_info(0.0, 600.0, ROUTE)},
        {"S2": _travel_info(600.0, 900.0)},
    ]
    sample = evaluator.evaluate({"S1": 45.0}, trees, (1100.0, 0.0))

    assert sample is not None
    assert sample.adaption_time == pytest.approx(150.0)
    assert sample.access_time == pytest.approx(45.0)
    assert sample.egress_time == pytest.approx(100.0)
    assert sample.transfer_count == 1
    assert sample.travel_time == pytest.approx(700.0)
    assert sample.train_distance_share == pytest.approx(0.8)


def test_evaluate_falls_back_to_connection_access_time():
    evaluator = _evaluator([Stop("S2", 1000.0, 0.0)])
    trees = [{"S2": _travel_info(0.0, 600.0, ROUTE)}]
    sample = evaluator.evaluate({}, trees, (1000.0, 0.0))
    assert sample.access_time == 0.0


def test_unreachable_destination_invalidates_cell():
    evaluator = _evaluator([Stop("S2", 1000.0, 0.0), Stop("S3", 9000.0, 0.0)])
    trees = [{"S2": _travel_info(0.0, 600.0, ROUTE)}]
    pti = PtIndicators(["A", "B"])

    assert evaluator.evaluate({"S1": 0.0}, trees, (9000.0, 0.0)) is None
    assert evaluator.evaluate_into(pti, "A", "B", {"S1": 0.0}, trees, (9000.0, 0.0)) is False
    assert math.isinf(pti.travel_time.get("A", "B"))
    assert evaluator.evaluate_into(pti, "A", "B", {"S1": 0.0}, trees, (1000.0, 0.0)) is True
    assert pti.travel_time.get("A", "B") == pytest.approx(600.0)
    assert pti.data_count.get("A", "B") == 1.0
