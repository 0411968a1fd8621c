from __future__ import annotations

import math

import numpy as np
import pytest

from ptskim.skims.domain_types import ODSample
from ptskim.skims.indicator_matrices import FloatMatrix, PtIndicators


def _sample(adaption: float = 150.0, travel: float = 900.0, share: float = 1.0) -> ODSample:
    return ODSample(
        adaption_time=adaption,
        access_time=60.0,
        egress_time=120.0,
        transfer_count=1.0,
        travel_time=travel,
        train_travel_time_share=share,
        train_distance_share=share,
    )


def test_float_matrix_operations_cover_diagonal():
    matrix = FloatMatrix(["A", "B"])
    assert matrix.get("A", "A") == 0.0
    matrix.set("A", "A", 2.0)
    matrix.add("A", "A", 1.5)
    assert matrix.get("A", "A") == pytest.approx(3.5)
    assert matrix.multiply("A", "A", 2.0) == pytest.approx(7.0)
    assert matrix.get("A", "B") == 0.0
    assert matrix.data.dtype == np.float32


def test_float_matrix_rejects_unknown_and_duplicate_zones():
    matrix = FloatMatrix(["A", "B"])
    with pytest.raises(KeyError):
        matrix.get("A", "Z")
    with pytest.raises(ValueError):
        FloatMatrix(["A", "A"])


def test_invalidate_marks_every_value_matrix():
    pti = PtIndicators(["A", "B"])
    pti.invalidate("A", "B")
    for name, matrix in pti.value_matrices().items():
        assert math.isinf(matrix.get("A", "B")), name
    assert pti.data_count.get("A", "B") == 0.0
    assert pti.travel_time.get("B", "A") == 0.0


def test_invalidate_never_overwrites_accumulated_samples():
    pti = PtIndicators(["A", "B"])
    pti.accumulate("A", "B", _sample())
    pti.invalidate("A", "B")
    assert pti.travel_time.get("A", "B") == pytest.approx(900.0)
    assert pti.data_count.get("A", "B") == 1.0


def test_accumulate_replaces_earlier_invalidation():
    pti = PtIndicators(["A", "B"])
    pti.invalidate("A", "B")
    pti.accumulate("A", "B", _sample(travel=600.0))
    pti.accumulate("A", "B", _sample(travel=1000.0))
    assert pti.travel_time.get("A", "B") == pytest.approx(1600.0)
    assert pti.frequency.get("A", "B") == 0.0
    assert pti.data_count.get("A", "B") == 2.0


def test_finalize_averages_and_derives_frequency():
    pti = PtIndicators(["A", "B"])
    pti.accumulate("A", "B", _sample(adaption=100.0, travel=600.0))
    pti.accumulate("A", "B", _sample(adaption=200.0, travel=1000.0))
    pti.invalidate("B", "A")
    pti.finalize(3600.0)

    assert pti.adaption_time.get("A", "B") == pytest.approx(150.0)
    assert pti.travel_time.get("A", "B") == pytest.approx(800.0)
    assert pti.access_time.get("A", "B") == pytest.approx(60.0)
    assert pti.transfer_count.get("A", "B") == pytest.approx(1.0)
    assert pti.frequency.get("A", "B") == pytest.approx(6.0)
    assert pti.data_count.get("A", "B") == 2.0
    for matrix in pti.value_matrices().values():
        assert math.isinf(matrix.get("B", "A"))


def test_nan_train_share_survives_finalize():
    pti = PtIndicators(["A"])
    pti.accumulate("A", "A", _sample(share=math.nan))
    pti.accumulate("A", "A", _sample(share=1.0))
    pti.finalize(3600.0)
    assert math.isnan(pti.train_distance_share.get("A", "A"))
    assert pti.travel_time.get("A", "A") == pytest.approx(900.0)


def test_merge_rows_copies_partial_origin_rows():
    pti = PtIndicators(["A", "B"])
    row = PtIndicators(["B"], ["A", "B"])
    row.accumulate("B", "A", _sample())
    row.invalidate("B", "B")
    pti.merge_rows(row)

    assert pti.travel_time.get("B", "A") == pytest.approx(900.0)
    assert pti.data_count.get("B", "A") == 1.0
    assert math.isinf(pti.egress_time.get("B", "B"))
    assert pti.travel_time.get("A", "A") == 0.0


def test_merge_rows_requires_same_destinations():
    pti = PtIndicators(["A", "B"])
    with pytest.raises(ValueError):
        pti.merge_rows(PtIndicators(["A"], ["A"]))


def test_to_dataframe_has_one_row_per_pair():
    pti = PtIndicators(["A", "B"])
    pti.accumulate("A", "B", _sample())
    df = pti.to_dataframe()
    assert len(df) == 4
    assert list(df.columns[:2]) == ["origin", "destination"]
    row = df[(df["origin"] == "A") & (df["destination"] == "B")].iloc[0]
    assert row["travel_time"] == pytest.approx(900.0)
    assert row["data_count"] == 1.0


def test_zero_adaption_gives_infinite_frequency_on_valid_cell():
    pti = PtIndicators(["A", "B"])
    pti.accumulate("A", "B", _sample(adaption=0.0))
    pti.invalidate("B", "A")
    pti.finalize(3600.0)

    assert math.isinf(pti.frequency.get("A", "B"))
    assert math.isinf(pti.frequency.get("B", "A"))
    # only the count tells the reachable cell apart from the unreachable one
    assert pti.data_count.get("A", "B") == 1.0
    assert pti.data_count.get("B", "A") == 0.0
    assert pti.travel_time.get("A", "B") == pytest.approx(900.0)
