from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from ptskim.skims.domain_types import RoutingParameters

logger = logging.getLogger(__name__)


def _parse_clock(token: object, label: str) -> float:
    """
    Parse a departure time into seconds since midnight.

    Args:
        token: Numeric seconds or an HH:MM / HH:MM:SS string.
        label: Human-readable label for error messages.
    Returns:
        Seconds since midnight. Hours beyond 24 are accepted for overnight windows.
    """
    if isinstance(token, bool):
        raise TypeError(f"Skim {label} must be seconds or an HH:MM[:SS] string")
    if isinstance(token, (int, float)):
        seconds = float(token)
    elif isinstance(token, str) and token.strip():
        text = token.strip()
        parts = text.split(":")
        if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
            raise ValueError(f"Skim {label} must be in HH:MM[:SS] format: {text!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        secs = int(parts[2]) if len(parts) == 3 else 0
        if minutes > 59 or secs > 59:
            raise ValueError(f"Skim {label} out of range: {text!r}")
        seconds = float(hours * 3600 + minutes * 60 + secs)
    else:
        raise TypeError(f"Skim {label} must be seconds or an HH:MM[:SS] string")
    if seconds < 0:
        raise ValueError(f"Skim {label} must be non-negative")
    return seconds


def _format_clock(seconds: float) -> str:
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class SkimConfig:
    min_departure_time: float
    max_departure_time: float
    step_size_seconds: float = 60.0
    worker_count: Optional[int] = None
    routing: RoutingParameters = field(default_factory=RoutingParameters)

    def __post_init__(self) -> None:
        if self.max_departure_time <= self.min_departure_time:
            raise ValueError("Skim window end must be later than its start")
        if self.step_size_seconds <= 0:
            raise ValueError("step_size_seconds must be positive")
        if self.worker_count is not None and self.worker_count <= 0:
            raise ValueError("worker_count must be positive when provided")
        if self.step_size_seconds > self.window_seconds:
            logger.warning(
                "Step size %.0fs exceeds the %.0fs departure window; only one tree per sample point",
                self.step_size_seconds,
                self.window_seconds,
            )

    @property
    def window_seconds(self) -> float:
        return self.max_departure_time - self.min_departure_time

    def resolved_worker_count(self) -> int:
        """Configured worker count, or one less than the CPU count."""
        if self.worker_count is not None:
            return int(self.worker_count)
        cpu_total = os.cpu_count() or 1
        return max(1, cpu_total - 1)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "SkimConfig":
        if not isinstance(data, Mapping):
            raise TypeError("Skim config must be a mapping at the top level")
        window = data.get("window") or {}
        if not isinstance(window, Mapping):
            raise TypeError("'window' must be a mapping with 'start' and 'end'")
        if "start" not in window or "end" not in window:
            raise ValueError("Skim config window requires both 'start' and 'end'")
        routing_raw = data.get("routing") or {}
        if not isinstance(routing_raw, Mapping):
            raise TypeError("'routing' must be a mapping of routing parameters")
        workers = data.get("worker_count")
        return cls(
            min_departure_time=_parse_clock(window["start"], "window start"),
            max_departure_time=_parse_clock(window["end"], "window end"),
            step_size_seconds=float(data.get("step_size_seconds", 60.0)),
            worker_count=int(workers) if workers is not None else None,
            routing=cls._parse_routing(routing_raw),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SkimConfig":
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Skim config YAML not found at {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        return cls.from_mapping(data)

    def to_yaml(self, path: str | Path) -> None:
        output: Dict[str, object] = {
            "window": {
                "start": _format_clock(self.min_departure_time),
                "end": _format_clock(self.max_departure_time),
            },
            "step_size_seconds": float(self.step_size_seconds),
            "routing": {
                "beeline_walk_speed": float(self.routing.beeline_walk_speed),
                "search_radius": float(self.routing.search_radius),
                "extension_radius": float(self.routing.extension_radius),
            },
        }
        if self.worker_count is not None:
            output["worker_count"] = int(self.worker_count)
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(output, handle, sort_keys=True)

    @staticmethod
    def _parse_routing(raw: Mapping[str, object]) -> RoutingParameters:
        known = {"beeline_walk_speed", "search_radius", "extension_radius"}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown routing parameters: {sorted(unknown)}")
        return RoutingParameters(**{key: float(value) for key, value in raw.items()})


__all__ = ["SkimConfig"]
