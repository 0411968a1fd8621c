"""Transport-mode lookup used to split in-vehicle time into train and other modes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

import pandas as pd


def _normalize_id(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _normalize_mode(value: object) -> str:
    return _normalize_id(value).lower()


@dataclass
class RouteModeCatalog:
    """Maps (line, route) pairs to transport modes and detects train legs.

    Instances are callable with ``(line_id, route_id)`` and can be passed
    directly as the train detector of a skim run. A route missing from the
    catalogue falls back to the mode registered for its line with an empty
    route id, and is treated as non-train when neither is known.
    """

    modes: Dict[Tuple[str, str], str] = field(default_factory=dict)
    train_modes: FrozenSet[str] = frozenset({"rail"})

    def mode_for(self, line_id: object, route_id: object) -> Optional[str]:
        line = _normalize_id(line_id)
        route = _normalize_id(route_id)
        mode = self.modes.get((line, route))
        if mode is None:
            mode = self.modes.get((line, ""))
        return mode

    def is_train(self, line_id: object, route_id: object) -> bool:
        return self.mode_for(line_id, route_id) in self.train_modes

    def __call__(self, line_id: object, route_id: object) -> bool:
        return self.is_train(line_id, route_id)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        line_column: str = "line_id",
        route_column: str = "route_id",
        mode_column: str = "transport_mode",
        train_modes: Iterable[str] = ("rail",),
    ) -> "RouteModeCatalog":
        if line_column not in df.columns or mode_column not in df.columns:
            raise ValueError(
                f"Route table must provide '{line_column}' and '{mode_column}' columns."
            )
        has_route = route_column in df.columns
        modes: Dict[Tuple[str, str], str] = {}
        for row in df.itertuples(index=False):
            line = _normalize_id(getattr(row, line_column))
            if not line:
                continue
            route = _normalize_id(getattr(row, route_column)) if has_route else ""
            modes[(line, route)] = _normalize_mode(getattr(row, mode_column))
        return cls(modes=modes, train_modes=frozenset(_normalize_mode(m) for m in train_modes))

    @classmethod
    def from_csv(cls, path: str, **kwargs) -> "RouteModeCatalog":
        return cls.from_dataframe(pd.read_csv(path), **kwargs)
