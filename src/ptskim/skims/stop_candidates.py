"""Access/egress stop resolution around a sample coordinate."""

from __future__ import annotations

import logging
import math
from typing import Collection, Dict, Iterable

from .domain_types import RoutingParameters, Stop, StopId, StopIndex

logger = logging.getLogger(__name__)


def find_stop_candidates(
    x: float, y: float, stop_index: StopIndex, parameters: RoutingParameters
) -> Collection[Stop]:
    """Return the stops a traveller at (x, y) may walk to.

    Stops within the search radius are preferred. When none exist, the radius is
    widened to the nearest stop's distance plus the extension radius so that at
    least one stop is returned on a non-empty network.
    """
    stops = stop_index.find_nearby_stops(x, y, parameters.search_radius)
    if stops:
        return stops
    nearest = stop_index.find_nearest_stop(x, y)
    if nearest is None:
        logger.debug("No transit stop available near (%.1f, %.1f).", x, y)
        return []
    nearest_distance = math.hypot(nearest.x - x, nearest.y - y)
    return stop_index.find_nearby_stops(
        x, y, nearest_distance + parameters.extension_radius
    )


def walk_times(
    x: float, y: float, stops: Iterable[Stop], walk_speed: float
) -> Dict[StopId, float]:
    """Beeline walking time in seconds from (x, y) to every stop."""
    return {stop.id: math.hypot(stop.x - x, stop.y - y) / walk_speed for stop in stops}


def resolve_walk_times(
    x: float, y: float, stop_index: StopIndex, parameters: RoutingParameters
) -> Dict[StopId, float]:
    stops = find_stop_candidates(x, y, stop_index, parameters)
    return walk_times(x, y, stops, parameters.beeline_walk_speed)


__all__ = ["find_stop_candidates", "resolve_walk_times", "walk_times"]
