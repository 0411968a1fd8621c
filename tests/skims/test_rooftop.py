from __future__ import annotations

import math

import pytest

from ptskim.skims.domain_types import ODConnection
from ptskim.skims.rooftop import (
    calc_average_adaption_time,
    perceived_frequency,
    sample_instants,
)


def _conn(effective_departure: float, total: float = 600.0) -> ODConnection:
    return ODConnection(
        departure_time=effective_departure,
        travel_time=total,
        access_time=0.0,
        egress_time=0.0,
        transfer_count=0,
    )


def test_single_connection_over_one_hour():
    # instants 0..360 wait for the 420s departure, 420..3540 adapt backwards to it
    expected = (sum(420 - t for t in range(0, 420, 60)) + sum(t - 420 for t in range(420, 3600, 60))) / 60
    assert expected == pytest.approx(1406.0)
    avg = calc_average_adaption_time([_conn(420.0)], 0.0, 3600.0)
    assert avg == pytest.approx(1406.0)


def test_headway_matching_window_gives_one_departure():
    connections = [_conn(0.0), _conn(600.0)]
    avg = calc_average_adaption_time(connections, 0.0, 600.0)
    assert avg == pytest.approx(150.0)
    assert perceived_frequency(600.0, avg) == pytest.approx(1.0)


def test_regular_ten_minute_service_over_an_hour():
    connections = [_conn(float(t)) for t in range(0, 3601, 600)]
    avg = calc_average_adaption_time(connections, 0.0, 3600.0)
    assert avg == pytest.approx(150.0)
    assert perceived_frequency(3600.0, avg) == pytest.approx(6.0)


def test_cursor_passes_every_departure_within_one_minute():
    connections = [_conn(0.0), _conn(10.0), _conn(20.0)]
    # t=0 sits on the first departure, t=60 adapts back to the one at 20s
    assert calc_average_adaption_time(connections, 0.0, 120.0) == pytest.approx(20.0)


def test_adaption_before_first_connection_uses_next_only():
    avg = calc_average_adaption_time([_conn(3600.0)], 0.0, 180.0)
    assert avg == pytest.approx((3600.0 + 3540.0 + 3480.0) / 3)


def test_empty_inputs_are_rejected():
    with pytest.raises(ValueError):
        calc_average_adaption_time([], 0.0, 3600.0)
    with pytest.raises(ValueError):
        calc_average_adaption_time([_conn(0.0)], 600.0, 600.0)


def test_sample_instants_exclude_window_end():
    assert list(sample_instants(0.0, 180.0)) == [0.0, 60.0, 120.0]
    assert list(sample_instants(0.0, 181.0)) == [0.0, 60.0, 120.0, 180.0]


def test_zero_adaption_means_unbounded_frequency():
    assert math.isinf(perceived_frequency(3600.0, 0.0))
