"""Dense zone-to-zone float32 matrices and the PT indicator bundle."""

from __future__ import annotations

import math
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .domain_types import ODSample
from .rooftop import ROOFTOP_DIVISOR


class FloatMatrix:
    """Float32 values addressed by (origin zone, destination zone).

    Every cell starts at ``default``. Writes to disjoint cells are independent,
    so workers owning disjoint origin rows never need to coordinate; writes to
    the same cell from two workers are not supported.
    """

    def __init__(
        self,
        origins: Sequence[Hashable],
        destinations: Optional[Sequence[Hashable]] = None,
        default: float = 0.0,
    ) -> None:
        self.origins: List[Hashable] = list(origins)
        self.destinations: List[Hashable] = (
            list(destinations) if destinations is not None else list(self.origins)
        )
        self._origin_idx = _index_keys(self.origins, "origin")
        self._destination_idx = _index_keys(self.destinations, "destination")
        self.data = np.full(
            (len(self.origins), len(self.destinations)), default, dtype=np.float32
        )

    def _cell(self, origin: Hashable, destination: Hashable):
        try:
            return self._origin_idx[origin], self._destination_idx[destination]
        except KeyError as exc:
            raise KeyError(f"Unknown zone pair ({origin!r}, {destination!r})") from exc

    def get(self, origin: Hashable, destination: Hashable) -> float:
        return float(self.data[self._cell(origin, destination)])

    def set(self, origin: Hashable, destination: Hashable, value: float) -> None:
        self.data[self._cell(origin, destination)] = np.float32(value)

    def add(self, origin: Hashable, destination: Hashable, value: float) -> None:
        cell = self._cell(origin, destination)
        self.data[cell] = self.data[cell] + np.float32(value)

    def multiply(self, origin: Hashable, destination: Hashable, factor: float) -> float:
        """Scale one cell in place and return the new value."""
        cell = self._cell(origin, destination)
        self.data[cell] = self.data[cell] * np.float32(factor)
        return float(self.data[cell])

    def row_index(self, origin: Hashable) -> int:
        return self._origin_idx[origin]

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"FloatMatrix({len(self.origins)}x{len(self.destinations)})"


def _index_keys(keys: Sequence[Hashable], label: str) -> Dict[Hashable, int]:
    index: Dict[Hashable, int] = {}
    for idx, key in enumerate(keys):
        if key in index:
            raise ValueError(f"Duplicate {label} zone id {key!r}")
        index[key] = idx
    return index


class PtIndicators:
    """Nine parallel matrices produced by one skim run."""

    MATRIX_NAMES = (
        "adaption_time",
        "frequency",
        "travel_time",
        "access_time",
        "egress_time",
        "transfer_count",
        "train_travel_time_share",
        "train_distance_share",
    )

    def __init__(
        self,
        origins: Iterable[Hashable],
        destinations: Optional[Iterable[Hashable]] = None,
    ) -> None:
        origin_list = list(origins)
        destination_list = list(destinations) if destinations is not None else origin_list
        self.adaption_time = FloatMatrix(origin_list, destination_list)
        self.frequency = FloatMatrix(origin_list, destination_list)
        self.travel_time = FloatMatrix(origin_list, destination_list)
        self.access_time = FloatMatrix(origin_list, destination_list)
        self.egress_time = FloatMatrix(origin_list, destination_list)
        self.transfer_count = FloatMatrix(origin_list, destination_list)
        self.train_travel_time_share = FloatMatrix(origin_list, destination_list)
        self.train_distance_share = FloatMatrix(origin_list, destination_list)
        # number of sample pairs averaged into each cell
        self.data_count = FloatMatrix(origin_list, destination_list)

    @property
    def origins(self) -> List[Hashable]:
        return self.data_count.origins

    @property
    def destinations(self) -> List[Hashable]:
        return self.data_count.destinations

    def value_matrices(self) -> Dict[str, FloatMatrix]:
        return {name: getattr(self, name) for name in self.MATRIX_NAMES}

    # ------------------------------------------------------------------ writes
    def invalidate(self, origin: Hashable, destination: Hashable) -> None:
        """Mark a cell unreachable unless a sample pair already contributed to it."""
        if self.data_count.get(origin, destination) > 0:
            return
        for matrix in self.value_matrices().values():
            matrix.set(origin, destination, math.inf)

    def accumulate(self, origin: Hashable, destination: Hashable, sample: ODSample) -> None:
        """Add one valid sample pair, replacing a previous invalidation."""
        first_sample = self.data_count.get(origin, destination) == 0
        values = {
            "adaption_time": sample.adaption_time,
            "access_time": sample.access_time,
            "egress_time": sample.egress_time,
            "transfer_count": sample.transfer_count,
            "travel_time": sample.travel_time,
            "train_distance_share": sample.train_distance_share,
            "train_travel_time_share": sample.train_travel_time_share,
        }
        for name, value in values.items():
            matrix: FloatMatrix = getattr(self, name)
            if first_sample:
                matrix.set(origin, destination, value)
            else:
                matrix.add(origin, destination, value)
        if first_sample:
            # frequency is derived in finalize(); drop any invalidation marker
            self.frequency.set(origin, destination, 0.0)
        self.data_count.add(origin, destination, 1.0)

    def merge_rows(self, partial: "PtIndicators") -> None:
        """Copy every origin row of ``partial`` into this store."""
        if partial.destinations != self.destinations:
            raise ValueError("Partial indicators must share the destination zones.")
        for origin in partial.origins:
            target = self.data_count.row_index(origin)
            source = partial.data_count.row_index(origin)
            self.data_count.data[target, :] = partial.data_count.data[source, :]
            for name, matrix in self.value_matrices().items():
                matrix.data[target, :] = getattr(partial, name).data[source, :]

    # -------------------------------------------------------------- finalizing
    def finalize(self, window_seconds: float) -> None:
        """Average every accumulated cell and derive the perceived frequency.

        Cells without any contributing sample pair keep their ``+inf`` marker.
        A reachable cell whose average adaption time is 0 also gets a ``+inf``
        frequency, so ``data_count > 0`` is the only reliable validity flag.
        """
        counts = self.data_count.data
        valid = counts > 0
        if not valid.any():
            return
        avg_factor = np.float32(1.0) / counts[valid]
        for name, matrix in self.value_matrices().items():
            if name == "frequency":
                continue
            matrix.data[valid] = matrix.data[valid] * avg_factor
        adaption = self.adaption_time.data[valid].astype(np.float64)
        with np.errstate(divide="ignore"):
            frequency = float(window_seconds) / adaption / ROOFTOP_DIVISOR
        self.frequency.data[valid] = frequency.astype(np.float32)

    # ------------------------------------------------------------------ export
    def to_dataframe(self) -> pd.DataFrame:
        """Long-format table with one row per (origin, destination) pair."""
        columns: Dict[str, object] = {
            "origin": [o for o in self.origins for _ in self.destinations],
            "destination": [d for _ in self.origins for d in self.destinations],
        }
        for name, matrix in self.value_matrices().items():
            columns[name] = matrix.data.ravel()
        columns["data_count"] = self.data_count.data.ravel()
        return pd.DataFrame(columns)


__all__ = ["FloatMatrix", "PtIndicators"]
