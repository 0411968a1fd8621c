"""Zone-to-zone public transport skim matrices computed on a worker pool.

Naively, m zones with n sample points each need m^2 * n^2 route searches. Here
every origin sample point builds one shortest-path tree per departure step and
reuses it for all destination zones, so only m * n tree sets are computed.

Origin zones are handed out through the process pool's task queue: each zone is
processed by exactly one worker, which owns a private routing oracle. A worker
fills a one-row partial store and the parent copies that row into the result,
so no two writers ever touch the same cell. The pool join is the only
synchronisation point; a failing worker fails the whole run.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from time import perf_counter
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
)

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .domain_types import (
    Coord,
    RoutingOracle,
    RoutingParameters,
    SkimComputationError,
    StopId,
    StopIndex,
    TrainDetector,
    TravelInfo,
)
from .indicator_matrices import PtIndicators
from .od_evaluator import ODEvaluator
from .stop_candidates import resolve_walk_times

if TYPE_CHECKING:
    from ptskim.config.skim_config import SkimConfig

logger = logging.getLogger(__name__)

OracleFactory = Callable[[], RoutingOracle]
SamplesPerZone = Mapping[Hashable, Optional[Sequence[Coord]]]


@dataclass
class RowResult:
    """Partial indicators for one origin zone plus bookkeeping for logging."""

    zone: Hashable
    indicators: PtIndicators
    trees_built: int
    valid_pairs: int
    invalid_pairs: int
    elapsed: float


class RowWorker:
    """Computes complete origin rows with a routing oracle it owns exclusively."""

    def __init__(
        self,
        *,
        oracle: RoutingOracle,
        stop_index: StopIndex,
        parameters: RoutingParameters,
        train_detector: TrainDetector,
        zones: Sequence[Hashable],
        samples_per_zone: SamplesPerZone,
        min_departure_time: float,
        max_departure_time: float,
        step_size: float,
    ) -> None:
        if step_size <= 0:
            raise ValueError("step_size must be positive.")
        self.oracle = oracle
        self.stop_index = stop_index
        self.parameters = parameters
        self.zones = list(zones)
        self.samples_per_zone = samples_per_zone
        self.min_departure_time = float(min_departure_time)
        self.max_departure_time = float(max_departure_time)
        self.step_size = float(step_size)
        self.evaluator = ODEvaluator(
            stop_index=stop_index,
            parameters=parameters,
            train_detector=train_detector,
            min_departure_time=min_departure_time,
            max_departure_time=max_departure_time,
        )

    def departure_times(self) -> List[float]:
        times: List[float] = []
        time = self.min_departure_time
        while time < self.max_departure_time:
            times.append(time)
            time += self.step_size
        return times

    def build_trees(self, origin_stops: Iterable[StopId]) -> List[Mapping[StopId, TravelInfo]]:
        stop_ids = frozenset(origin_stops)
        return [
            self.oracle.build_tree(stop_ids, departure_time, self.parameters)
            for departure_time in self.departure_times()
        ]

    def compute_row(self, from_zone: Hashable) -> RowResult:
        start = perf_counter()
        row = PtIndicators([from_zone], self.zones)
        trees_built = 0
        valid = 0
        invalid = 0

        from_coords = self.samples_per_zone.get(from_zone)
        if not from_coords:
            # zone without sample points, e.g. missing geometry
            for to_zone in self.zones:
                row.invalidate(from_zone, to_zone)
            logger.debug("Zone %s has no sample points; row invalidated.", from_zone)
            return RowResult(from_zone, row, 0, 0, len(self.zones), perf_counter() - start)

        for from_coord in from_coords:
            x, y = float(from_coord[0]), float(from_coord[1])
            access_times = resolve_walk_times(x, y, self.stop_index, self.parameters)
            trees = self.build_trees(access_times.keys()) if access_times else []
            trees_built += len(trees)
            for to_zone in self.zones:
                to_coords = self.samples_per_zone.get(to_zone)
                if not to_coords:
                    row.invalidate(from_zone, to_zone)
                    invalid += 1
                    continue
                for to_coord in to_coords:
                    if self.evaluator.evaluate_into(
                        row, from_zone, to_zone, access_times, trees, to_coord
                    ):
                        valid += 1
                    else:
                        invalid += 1

        return RowResult(from_zone, row, trees_built, valid, invalid, perf_counter() - start)


WORKER_ROWS: RowWorker | None = None


def _init_worker(payload: dict) -> None:
    """Build the worker's private routing oracle and row state."""

    global WORKER_ROWS
    WORKER_ROWS = _build_row_worker(payload)


def _build_row_worker(payload: dict) -> RowWorker:
    return RowWorker(
        oracle=payload["oracle_factory"](),
        stop_index=payload["stop_index"],
        parameters=payload["parameters"],
        train_detector=payload["train_detector"],
        zones=payload["zones"],
        samples_per_zone=payload["samples_per_zone"],
        min_departure_time=payload["min_departure_time"],
        max_departure_time=payload["max_departure_time"],
        step_size=payload["step_size"],
    )


def _process_origin_zone(zone: Hashable) -> RowResult:
    if WORKER_ROWS is None:
        raise RuntimeError("Worker routing state not initialised.")
    return WORKER_ROWS.compute_row(zone)


def _normalize_samples(
    zones: Sequence[Hashable], samples_per_zone: SamplesPerZone
) -> Dict[Hashable, List[Coord]]:
    normalized: Dict[Hashable, List[Coord]] = {}
    for zone in zones:
        coords = samples_per_zone.get(zone)
        if coords is None:
            continue
        normalized[zone] = [(float(c[0]), float(c[1])) for c in coords]
    return normalized


def _progress(show_progress: bool) -> Progress:
    console = Console(stderr=True)
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TextColumn("{task.completed:,} zones", justify="right"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=not (show_progress and console.is_terminal),
    )


def compute_matrices(
    zones: Iterable[Hashable],
    samples_per_zone: SamplesPerZone,
    min_departure_time: float,
    max_departure_time: float,
    step_size: float,
    routing_parameters: RoutingParameters,
    worker_count: int,
    train_detector: TrainDetector,
    *,
    oracle_factory: OracleFactory,
    stop_index: StopIndex,
    show_progress: bool = False,
) -> PtIndicators:
    """Compute all nine PT indicator matrices for every ordered zone pair.

    Blocks until every origin zone has been processed and returns finalized
    matrices. Raises SkimComputationError when any worker fails, including a
    worker process that exits abnormally.

    With more than one worker, ``oracle_factory``, ``train_detector`` and
    ``stop_index`` are sent to the worker processes. Under the spawn start
    method (Windows) they are pickled, so they must be module-level callables
    or picklable objects; lambdas and closures only work with fork.
    """
    zone_list = list(zones)
    if max_departure_time <= min_departure_time:
        raise ValueError("max_departure_time must be later than min_departure_time.")
    if step_size <= 0:
        raise ValueError("step_size must be positive.")
    worker_count = max(1, int(worker_count))

    indicators = PtIndicators(zone_list)
    payload = {
        "oracle_factory": oracle_factory,
        "stop_index": stop_index,
        "parameters": routing_parameters,
        "train_detector": train_detector,
        "zones": zone_list,
        "samples_per_zone": _normalize_samples(zone_list, samples_per_zone),
        "min_departure_time": float(min_departure_time),
        "max_departure_time": float(max_departure_time),
        "step_size": float(step_size),
    }

    logger.info(
        "Computing PT skims for %s zones in window [%.0f, %.0f) with %s worker(s).",
        f"{len(zone_list):,}",
        min_departure_time,
        max_departure_time,
        worker_count,
    )
    run_start = perf_counter()
    trees_total = 0
    invalid_total = 0

    def _collect(results: Iterable[RowResult], progress: Progress, task_id) -> None:
        nonlocal trees_total, invalid_total
        for result in results:
            indicators.merge_rows(result.indicators)
            trees_total += result.trees_built
            invalid_total += result.invalid_pairs
            progress.advance(task_id, 1)
            logger.debug(
                "Finished zone %s | trees=%s | valid pairs=%s | invalid pairs=%s | elapsed=%.2fs",
                result.zone,
                result.trees_built,
                result.valid_pairs,
                result.invalid_pairs,
                result.elapsed,
            )

    progress = _progress(show_progress)
    try:
        with progress:
            task_id = progress.add_task(
                f"PT skim origins ({len(zone_list):,})", total=len(zone_list) or None
            )
            if worker_count == 1:
                row_worker = _build_row_worker(payload)
                _collect((row_worker.compute_row(z) for z in zone_list), progress, task_id)
            else:
                ctx = mp.get_context("spawn" if os.name == "nt" else "fork")
                # a worker that dies breaks the executor instead of hanging the run
                with ProcessPoolExecutor(
                    max_workers=worker_count,
                    mp_context=ctx,
                    initializer=_init_worker,
                    initargs=(payload,),
                ) as executor:
                    futures = [executor.submit(_process_origin_zone, z) for z in zone_list]
                    try:
                        _collect(
                            (future.result() for future in as_completed(futures)),
                            progress,
                            task_id,
                        )
                    except BaseException:
                        for future in futures:
                            future.cancel()
                        raise
    except Exception as exc:
        logger.error("PT skim computation aborted: %s", exc)
        raise SkimComputationError("PT skim computation did not complete for all zones.") from exc

    indicators.finalize(max_departure_time - min_departure_time)
    unreachable = int((indicators.data_count.data == 0).sum())
    logger.info(
        "PT skims finished in %.2fs | trees built=%s | invalid sample pairs=%s | unreachable cells=%s",
        perf_counter() - run_start,
        f"{trees_total:,}",
        f"{invalid_total:,}",
        f"{unreachable:,}",
    )
    return indicators


def compute_matrices_from_config(
    zones: Iterable[Hashable],
    samples_per_zone: SamplesPerZone,
    config: "SkimConfig",
    train_detector: TrainDetector,
    *,
    oracle_factory: OracleFactory,
    stop_index: StopIndex,
    show_progress: bool = False,
) -> PtIndicators:
    """Run compute_matrices with window, step, workers and routing from a SkimConfig."""
    return compute_matrices(
        zones,
        samples_per_zone,
        config.min_departure_time,
        config.max_departure_time,
        config.step_size_seconds,
        config.routing,
        config.resolved_worker_count(),
        train_detector,
        oracle_factory=oracle_factory,
        stop_index=stop_index,
        show_progress=show_progress,
    )


__all__ = [
    "RowResult",
    "RowWorker",
    "compute_matrices",
    "compute_matrices_from_config",
]
