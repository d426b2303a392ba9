"""Tests for request resolution and search dispatch."""

from __future__ import annotations

import threading
import time

import pytest

from fitpick import service
from fitpick.config import ProjectConfig, ServerConfig
from fitpick.exceptions import DispatchTimeoutError, InvalidInputError, QueueFullError
from fitpick.service import (
    SearchDispatcher,
    SearchTask,
    build_options,
    make_task,
    resolve_request,
    solve,
)

from conftest import PLANNED, READY, raw


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


@pytest.fixture
def task(scenario_a_items) -> SearchTask:
    return SearchTask(items=scenario_a_items, target=40.0, must_include=READY, k=5)


@pytest.fixture
def blocking(monkeypatch):
    """Make dispatched tasks wait until the returned event is set."""
    release = threading.Event()
    original = service.run_search_task

    def run(task):
        release.wait(timeout=10)
        return original(task)

    monkeypatch.setattr(service, "run_search_task", run)
    yield release
    release.set()


class TestResolveRequest:
    def test_defaults(self):
        config = ProjectConfig()
        request = resolve_request(config, target="318.64")
        assert request.target == 318.64
        assert request.top_k == 10
        assert request.source == "AB"
        assert request.min_size is None
        assert request.communities == []
        assert request.bonus == 0.0
        assert request.effective_target == 318.64

    def test_explicit_values(self):
        request = resolve_request(
            ProjectConfig(),
            target=240,
            top_k="5",
            source=" b ",
            min_size="60",
            max_size=140,
            communities=["East Garden", " ", ""],
            bonus="15",
        )
        assert request.top_k == 5
        assert request.source == "B"
        assert request.min_size == 60.0
        assert request.max_size == 140.0
        assert request.communities == ["East Garden"]
        assert request.effective_target == 255.0

    def test_config_bounds_used(self):
        config = ProjectConfig()
        config.search.min_size = 50
        request = resolve_request(config, target=200)
        assert request.min_size == 50.0

    def test_non_numeric_bounds_ignored(self):
        request = resolve_request(ProjectConfig(), target=200, min_size="", max_size="abc")
        assert request.min_size is None
        assert request.max_size is None

    def test_unknown_bonus_falls_back(self):
        assert resolve_request(ProjectConfig(), target=200, bonus=7).bonus == 0.0
        assert resolve_request(ProjectConfig(), target=200, bonus=30).bonus == 30.0

    @pytest.mark.parametrize("target", [None, "", "abc", 0, -10, "nan", "inf", 10**400])
    def test_bad_target(self, target):
        with pytest.raises(InvalidInputError):
            resolve_request(ProjectConfig(), target=target)

    @pytest.mark.parametrize("top_k", ["abc", 0, "2.5", -1])
    def test_bad_top_k(self, top_k):
        with pytest.raises(InvalidInputError):
            resolve_request(ProjectConfig(), target=100, top_k=top_k)


class TestBuildOptions:
    def test_default_policy(self):
        config = ProjectConfig()
        request = resolve_request(config, target=200)
        options = build_options(config, [PLANNED, READY], request)
        assert options.sources == [PLANNED, READY]
        assert not options.anti_dominance.active
        assert options.oversized_cap.provenance == PLANNED
        assert options.oversized_cap.threshold == 100.0

    def test_configured_policy(self):
        config = ProjectConfig()
        config.policy.disallow_dominant_with_small_others = True
        config.policy.dominant_more_than = 100
        config.policy.others_less_than = 70
        config.policy.cap_oversized = False
        request = resolve_request(config, target=200, min_size=30)
        options = build_options(config, [READY], request)
        assert options.anti_dominance.active
        assert options.oversized_cap is None
        assert options.min_size == 30.0


class TestSolve:
    def test_solve(self, dataset, project_config):
        request = resolve_request(project_config, target=200)
        results = solve(dataset, request, project_config)
        assert results
        for r in results:
            assert r.sum <= 200
            assert any(p.provenance == READY for p in r.picks)
            assert sum(1 for p in r.picks if p.provenance == PLANNED and p.size > 100) <= 1

    def test_bonus_raises_target(self, dataset, project_config):
        request = resolve_request(project_config, target=170, bonus=30)
        results = solve(dataset, request, project_config)
        assert results[0].target == 200.0

    def test_planned_only_has_no_results(self, dataset, project_config):
        request = resolve_request(project_config, target=200, source="A")
        assert solve(dataset, request, project_config) == []

    def test_ready_only(self, dataset, project_config):
        request = resolve_request(project_config, target=200, source="B")
        results = solve(dataset, request, project_config)
        assert [r.sum for r in results] == [165.2]

    def test_community_filter(self, dataset, project_config):
        request = resolve_request(project_config, target=200, communities=["East Garden"])
        results = solve(dataset, request, project_config)
        assert results
        for r in results:
            assert all(p.metadata.get("community") != "West Park" for p in r.picks)

    def test_bad_source(self, dataset, project_config):
        request = resolve_request(project_config, target=200, source="X")
        with pytest.raises(InvalidInputError):
            make_task(dataset, request, project_config)


class TestSearchDispatcher:
    def test_thread_run(self, task):
        with SearchDispatcher(workers=2, executor="thread") as dispatcher:
            results = dispatcher.run(task, timeout=10)
        assert [r.sum for r in results] == [33.0, 23.0]

    def test_process_run(self, task):
        with SearchDispatcher(workers=1, executor="process") as dispatcher:
            results = dispatcher.run(task, timeout=60)
        assert [r.sum for r in results] == [33.0, 23.0]

    def test_unknown_executor(self):
        with pytest.raises(ValueError):
            SearchDispatcher(executor="fiber")

    def test_capacity(self):
        dispatcher = SearchDispatcher(workers=2, queue_size=3, executor="thread")
        assert dispatcher.capacity == 5
        assert dispatcher.pending == 0

    def test_queue_full(self, task, blocking):
        dispatcher = SearchDispatcher(workers=1, queue_size=1, executor="thread")
        try:
            first = dispatcher.submit(task)
            second = dispatcher.submit(task)
            assert dispatcher.pending == 2
            with pytest.raises(QueueFullError):
                dispatcher.submit(task)

            blocking.set()
            assert first.result(timeout=10)
            assert second.result(timeout=10)
            wait_until(lambda: dispatcher.pending == 0)
            assert dispatcher.run(task, timeout=10)
        finally:
            blocking.set()
            dispatcher.shutdown()

    def test_timeout(self, task, blocking):
        dispatcher = SearchDispatcher(workers=1, executor="thread")
        try:
            with pytest.raises(DispatchTimeoutError):
                dispatcher.run(task, timeout=0.05)
            # The slot is held until the worker finishes
            assert dispatcher.pending == 1
            blocking.set()
            wait_until(lambda: dispatcher.pending == 0)
        finally:
            blocking.set()
            dispatcher.shutdown()

    def test_from_config(self):
        dispatcher = SearchDispatcher.from_config(
            ServerConfig(workers=3, queue_size=4, executor="thread")
        )
        assert dispatcher.workers == 3
        assert dispatcher.capacity == 7
        assert dispatcher.kind == "thread"

    def test_independent_tasks(self):
        items = [raw(s, c, READY) for s, c in ((10, "A"), (5, "B"), (8, "C"), (12, "C"))]
        tasks = [
            SearchTask(items=items, target=t, must_include=READY, k=3) for t in (23, 27, 30)
        ]
        with SearchDispatcher(workers=3, executor="thread") as dispatcher:
            futures = [dispatcher.submit(t) for t in tasks]
            sums = [[r.sum for r in f.result(timeout=10)] for f in futures]
        assert sums == [[23.0], [27.0], [27.0]]
