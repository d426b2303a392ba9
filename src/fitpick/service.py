"""Request resolution and worker-pool dispatch for searches.

A search is a pure function of its inputs, so the service layer only has
to turn loosely-typed requests (CLI flags, query strings) into search
arguments and run independent searches on a bounded pool of workers.
"""

from __future__ import annotations

import concurrent.futures
import logging
import math
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from fitpick.config import ProjectConfig, ServerConfig
from fitpick.data.dataset import Dataset
from fitpick.exceptions import DispatchTimeoutError, InvalidInputError, QueueFullError
from fitpick.search.engine import search
from fitpick.search.models import (
    AntiDominance,
    CandidateResult,
    OversizedCap,
    RawItem,
    SearchOptions,
)

logger = logging.getLogger("fitpick.service")


class SearchRequest(BaseModel):
    """A fully resolved search request."""

    target: float
    top_k: int = 10
    source: str = "AB"
    min_size: float | None = None
    max_size: float | None = None
    communities: list[str] = Field(default_factory=list)
    bonus: float = 0.0

    @property
    def effective_target(self) -> float:
        return self.target + self.bonus


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def resolve_request(
    config: ProjectConfig,
    target: Any,
    top_k: Any = None,
    source: str | None = None,
    min_size: Any = None,
    max_size: Any = None,
    communities: Iterable[str] | None = None,
    bonus: Any = None,
) -> SearchRequest:
    """Merge explicit request values over the configured defaults.

    Size bounds that are not finite numbers are treated as absent, and a
    bonus outside the configured choices falls back to 0.

    Raises:
        InvalidInputError: If the target or top_k is not usable.
    """
    defaults = config.search

    number = _to_float(target)
    if number is None or number <= 0:
        raise InvalidInputError(f"target must be a positive number, got {target!r}")

    if top_k is None or top_k == "":
        k = defaults.top_k
    else:
        k_float = _to_float(top_k)
        if k_float is None or k_float != int(k_float) or k_float < 1:
            raise InvalidInputError(f"top_k must be an integer >= 1, got {top_k!r}")
        k = int(k_float)

    lower = _to_float(min_size) if min_size is not None else _to_float(defaults.min_size)
    upper = _to_float(max_size) if max_size is not None else _to_float(defaults.max_size)

    extra = _to_float(bonus) or 0.0
    if extra not in defaults.bonus_choices:
        extra = 0.0

    return SearchRequest(
        target=number,
        top_k=k,
        source=str(source or defaults.source).strip().upper(),
        min_size=lower,
        max_size=upper,
        communities=[c.strip() for c in communities or () if c and c.strip()],
        bonus=extra,
    )


def build_options(config: ProjectConfig, tags: list[str], request: SearchRequest) -> SearchOptions:
    """Search options from the request bounds and the configured policy."""
    policy = config.policy
    cap = None
    if policy.cap_oversized:
        cap = OversizedCap(
            provenance=config.data.planned_tag,
            threshold=policy.oversized_threshold,
            max_count=policy.max_oversized,
        )
    return SearchOptions(
        min_size=request.min_size,
        max_size=request.max_size,
        sources=tags,
        anti_dominance=AntiDominance(
            enabled=policy.disallow_dominant_with_small_others,
            dominant_threshold=policy.dominant_more_than,
            others_threshold=policy.others_less_than,
        ),
        oversized_cap=cap,
    )


@dataclass
class SearchTask:
    """Everything one search needs. Picklable, so it can cross processes."""

    items: list[RawItem]
    target: float
    must_include: str
    k: int = 10
    options: SearchOptions = field(default_factory=SearchOptions)


def run_search_task(task: SearchTask) -> list[CandidateResult]:
    """Worker entry point."""
    return search(task.items, task.target, task.must_include, task.k, task.options)


def make_task(dataset: Dataset, request: SearchRequest, config: ProjectConfig) -> SearchTask:
    tags = dataset.source_tags(request.source)
    return SearchTask(
        items=dataset.raw_items(request.source, request.communities),
        target=request.effective_target,
        must_include=dataset.ready_tag,
        k=request.top_k,
        options=build_options(config, tags, request),
    )


def solve(dataset: Dataset, request: SearchRequest, config: ProjectConfig) -> list[CandidateResult]:
    """Run one search in the calling thread."""
    task = make_task(dataset, request, config)
    logger.info(
        f"Solving target={request.effective_target:g} top_k={request.top_k} "
        f"source={request.source} candidates={len(task.items)}"
    )
    return run_search_task(task)


class SearchDispatcher:
    """Runs searches on a fixed-size worker pool behind a bounded queue.

    At most ``workers + queue_size`` tasks are in flight at once; further
    submissions fail fast with QueueFullError. A task that outlives its
    timeout keeps its slot until the worker finishes it.
    """

    def __init__(
        self,
        workers: int = 1,
        queue_size: int = 0,
        executor: str = "process",
    ) -> None:
        if executor not in ("process", "thread"):
            raise ValueError(f"Unknown executor kind: {executor}")
        self.workers = max(1, workers)
        self.capacity = self.workers + max(0, queue_size)
        self.kind = executor
        self._slots = threading.BoundedSemaphore(self.capacity)
        self._executor: concurrent.futures.Executor | None = None
        self._lock = threading.Lock()
        self._pending = 0

    @classmethod
    def from_config(cls, server: ServerConfig) -> SearchDispatcher:
        return cls(
            workers=server.worker_count,
            queue_size=server.queue_size,
            executor=server.executor,
        )

    def _get_executor(self) -> concurrent.futures.Executor:
        with self._lock:
            if self._executor is None:
                if self.kind == "process":
                    self._executor = ProcessPoolExecutor(max_workers=self.workers)
                else:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self.workers, thread_name_prefix="fitpick-search"
                    )
                logger.info(f"Started {self.kind} pool with {self.workers} worker(s)")
            return self._executor

    def _release(self, _future: Future) -> None:
        with self._lock:
            self._pending -= 1
        self._slots.release()

    @property
    def pending(self) -> int:
        """Tasks submitted and not yet finished."""
        return self._pending

    def submit(self, task: SearchTask) -> Future:
        """Queue a task. Raises QueueFullError when no slot is free."""
        if not self._slots.acquire(blocking=False):
            logger.warning(f"Search queue full ({self.capacity} pending)")
            raise QueueFullError(self.capacity)
        try:
            future = self._get_executor().submit(run_search_task, task)
        except BaseException:
            self._slots.release()
            raise
        with self._lock:
            self._pending += 1
        future.add_done_callback(self._release)
        return future

    def run(self, task: SearchTask, timeout: float | None = None) -> list[CandidateResult]:
        """Submit a task and wait for its results."""
        future = self.submit(task)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            raise DispatchTimeoutError(timeout or 0.0) from e

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> SearchDispatcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
