"""Connection building and dominance filtering for one OD sample pair."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from .domain_types import ODConnection, StopId, TravelInfo


def build_od_connections(
    trees: Iterable[Mapping[StopId, TravelInfo]],
    egress_times: Mapping[StopId, float],
) -> List[ODConnection]:
    """Emit one connection per tree and egress stop reached by that tree."""
    connections: List[ODConnection] = []
    for tree in trees:
        for stop_id, egress_time in egress_times.items():
            info = tree.get(stop_id)
            if info is None:
                continue
            connections.append(
                ODConnection(
                    departure_time=info.pt_departure_time,
                    travel_time=info.pt_travel_time,
                    access_time=info.access_time,
                    egress_time=egress_time,
                    transfer_count=info.transfer_count,
                    travel_info=info,
                )
            )
    return connections


def _dominance_pass(connections: Iterable[ODConnection], direction: float) -> List[ODConnection]:
    """Keep a connection only if it beats shifting to the last kept one.

    ``direction`` is +1 when scanning forward in time and -1 when scanning
    backward.
    """
    kept: List[ODConnection] = []
    for connection in connections:
        if kept:
            reference = kept[-1]
            shift = direction * (
                connection.effective_departure_time - reference.effective_departure_time
            )
            if reference.total_travel_time + shift <= connection.total_travel_time:
                continue
        kept.append(connection)
    return kept


def sort_and_filter_connections(connections: Sequence[ODConnection]) -> List[ODConnection]:
    """Reduce connections to the set no traveller would rule out.

    The forward pass drops connections that are worse than waiting for an
    earlier kept one; the backward pass drops those worse than waiting for a
    later kept one. The result is ascending by effective departure time.
    """
    ordered = sorted(connections, key=lambda c: c.effective_departure_time)
    forward = _dominance_pass(ordered, 1.0)
    backward = _dominance_pass(reversed(forward), -1.0)
    return backward[::-1]


def find_fastest_connection(connections: Iterable[ODConnection]) -> Optional[ODConnection]:
    """Connection with the lowest total travel time; the first one wins ties."""
    fastest: Optional[ODConnection] = None
    for connection in connections:
        if fastest is None or connection.total_travel_time < fastest.total_travel_time:
            fastest = connection
    return fastest


__all__ = [
    "build_od_connections",
    "find_fastest_connection",
    "sort_and_filter_connections",
]
