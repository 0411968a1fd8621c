"""Rooftop estimation of adaption time and perceived frequency.

For every minute of the departure window the traveller adapts to the closest
usable connection, either earlier or later. The average of these adaption
times over the window is converted into a perceived service frequency.
"""

from __future__ import annotations

import math
from typing import Iterator, Optional, Sequence

from .domain_types import ODConnection

SAMPLE_INTERVAL_SECONDS = 60.0
# calibrated divisor relating average adaption time to vehicles per window
ROOFTOP_DIVISOR = 4.0


def sample_instants(
    min_departure_time: float,
    max_departure_time: float,
    interval: float = SAMPLE_INTERVAL_SECONDS,
) -> Iterator[float]:
    """Instants from the window start (inclusive) to its end (exclusive)."""
    if interval <= 0:
        raise ValueError("Sampling interval must be positive.")
    time = float(min_departure_time)
    while time < max_departure_time:
        yield time
        time += interval


def adaption_time(instant: float, previous: Optional[float], upcoming: Optional[float]) -> float:
    if previous is None:
        return upcoming - instant
    if upcoming is None:
        return instant - previous
    return min(instant - previous, upcoming - instant)


def calc_average_adaption_time(
    connections: Sequence[ODConnection],
    min_departure_time: float,
    max_departure_time: float,
    interval: float = SAMPLE_INTERVAL_SECONDS,
) -> float:
    """Average adaption time over the window for an ascending connection list."""
    if not connections:
        raise ValueError("Adaption time requires at least one connection.")
    departures = [c.effective_departure_time for c in connections]
    cursor = 0
    previous: Optional[float] = None
    total = 0.0
    count = 0
    for instant in sample_instants(min_departure_time, max_departure_time, interval):
        while cursor < len(departures) and instant >= departures[cursor]:
            previous = departures[cursor]
            cursor += 1
        upcoming = departures[cursor] if cursor < len(departures) else None
        total += adaption_time(instant, previous, upcoming)
        count += 1
    if count == 0:
        raise ValueError(
            f"Empty departure window [{min_departure_time}, {max_departure_time})."
        )
    return total / count


def perceived_frequency(window_seconds: float, average_adaption_time: float) -> float:
    if average_adaption_time == 0:
        return math.inf
    return window_seconds / average_adaption_time / ROOFTOP_DIVISOR


__all__ = [
    "ROOFTOP_DIVISOR",
    "SAMPLE_INTERVAL_SECONDS",
    "adaption_time",
    "calc_average_adaption_time",
    "perceived_frequency",
    "sample_instants",
]
