"""Spatial lookup of transit stops backed by a shapely STRtree."""

from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd
from shapely.geometry import Point
from shapely.strtree import STRtree

from ptskim.skims.domain_types import Stop


class StopLocator:
    """Finds stops near planar coordinates (metres) for access and egress."""

    def __init__(self, stops: Iterable[Stop]):
        self._stops: List[Stop] = list(stops)
        self._points = [Point(stop.x, stop.y) for stop in self._stops]
        self._sindex = STRtree(self._points) if self._points else None

    def __len__(self) -> int:
        return len(self._stops)

    @property
    def stops(self) -> List[Stop]:
        return list(self._stops)

    def find_nearby_stops(self, x: float, y: float, radius: float) -> List[Stop]:
        """Return every stop within ``radius`` of (x, y), boundary included."""
        if self._sindex is None or radius < 0:
            return []
        candidate_idx = self._sindex.query(Point(x, y), predicate="dwithin", distance=radius)
        return [self._stops[int(idx)] for idx in sorted(candidate_idx)]

    def find_nearest_stop(self, x: float, y: float) -> Optional[Stop]:
        if self._sindex is None:
            return None
        idx = self._sindex.nearest(Point(x, y))
        if idx is None:
            return None
        return self._stops[int(idx)]

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        id_column: str = "stop_id",
        x_column: str = "x",
        y_column: str = "y",
    ) -> "StopLocator":
        missing = {id_column, x_column, y_column} - set(df.columns)
        if missing:
            raise ValueError(f"Stop table is missing columns: {sorted(missing)}")
        stops: List[Stop] = []
        for row in df.itertuples(index=False):
            x = getattr(row, x_column)
            y = getattr(row, y_column)
            if pd.isna(x) or pd.isna(y):
                continue
            stops.append(Stop(id=getattr(row, id_column), x=float(x), y=float(y)))
        return cls(stops)

    @classmethod
    def from_csv(cls, path: str, **columns: str) -> "StopLocator":
        return cls.from_dataframe(pd.read_csv(path), **columns)
