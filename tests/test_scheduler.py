"""Tests for sequential execution and per-task retries."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from crbatch.errors import SeriesFetchError
from crbatch.models import Configuration, Task
from crbatch.scheduler import TaskScheduler, run_tasks


def make_tasks(addresses, retry):
    config = Configuration(retry=retry)
    return [Task(address=address, config=config, retry=retry) for address in addresses]


class FakeFetch:
    """Records calls; fails for addresses listed in *failures* (count or True)."""

    def __init__(self, failures=None, message="boom"):
        self.failures = dict(failures or {})
        self.message = message
        self.calls = []

    def __call__(self, config, address):
        self.calls.append(address)
        remaining = self.failures.get(address, 0)
        if remaining is True:
            raise SeriesFetchError(address, self.message)
        if remaining:
            self.failures[address] = remaining - 1
            raise SeriesFetchError(address, self.message)


def test_successful_tasks_run_once_each_in_order():
    fetch = FakeFetch()
    summary = run_tasks(make_tasks(["A", "B", "C"], retry=2), fetch, retry_budget=2)

    assert fetch.calls == ["A", "B", "C"]
    assert summary.succeeded == ["A", "B", "C"]
    assert summary.failed == []
    assert summary.attempts == 3


@pytest.mark.parametrize("budget", [0, 1, 2, 5])
def test_always_failing_task_is_attempted_budget_plus_one_times(budget, capsys):
    fetch = FakeFetch({"A": True})
    summary = run_tasks(make_tasks(["A", "B"], retry=budget), fetch, retry_budget=budget)

    assert fetch.calls == ["A"] * (budget + 1) + ["B"]
    assert summary.failed == ["A"]
    assert summary.succeeded == ["B"]

    err = capsys.readouterr().err
    assert 'Cannot get episodes from "A", please rerun later' in err
    assert err.count("Retrying to fetch episodes list from A") == budget


def test_task_recovers_after_retries():
    fetch = FakeFetch({"A": 2})
    tasks = make_tasks(["A", "B"], retry=5)
    summary = run_tasks(tasks, fetch, retry_budget=5)

    assert fetch.calls == ["A", "A", "A", "B"]
    assert summary.succeeded == ["A", "B"]
    assert tasks[0].retry == 3
    assert tasks[1].retry == 5


def test_all_attempts_for_a_task_finish_before_the_next_starts():
    fetch = FakeFetch({"A": 1, "B": True, "C": 1})
    run_tasks(make_tasks(["A", "B", "C"], retry=2), fetch, retry_budget=2)

    assert fetch.calls == ["A", "A", "B", "B", "B", "C", "C"]


def test_step_state_machine():
    fetch = FakeFetch({"A": True})
    scheduler = TaskScheduler(make_tasks(["A", "B"], retry=1), fetch, retry_budget=1)

    assert scheduler.index == 0 and not scheduler.done
    scheduler.step()
    assert scheduler.index == 0
    assert scheduler.current.retry == 0
    scheduler.step()
    assert scheduler.index == 1
    scheduler.step()
    assert scheduler.done
    assert scheduler.current is None

    scheduler.step()
    assert fetch.calls == ["A", "A", "B"]


def test_empty_task_list_completes_without_calls():
    fetch = FakeFetch()
    summary = run_tasks([], fetch, retry_budget=5)

    assert fetch.calls == []
    assert summary.total == 0


def test_retry_warning_mentions_remaining_count(capsys):
    fetch = FakeFetch({"A": 1})
    run_tasks(make_tasks(["A"], retry=3), fetch, retry_budget=3)

    assert "Retrying to fetch episodes list from A (3 / 3 retries left)" in capsys.readouterr().err


def test_verbose_prints_each_retry_error(capsys):
    fetch = FakeFetch({"A": 2}, message="network hiccup")
    run_tasks(make_tasks(["A"], retry=3), fetch, retry_budget=3, verbose=True)

    assert capsys.readouterr().err.count("A: network hiccup") == 2


def test_quiet_run_only_prints_final_error(capsys):
    fetch = FakeFetch({"A": True}, message="network hiccup")
    run_tasks(make_tasks(["A"], retry=2), fetch, retry_budget=2)

    assert capsys.readouterr().err.count("A: network hiccup") == 1


def test_unexpected_exceptions_propagate():
    def broken_fetch(config, address):
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        run_tasks(make_tasks(["A"], retry=1), broken_fetch, retry_budget=1)


def test_failures_are_analyzed(capsys):
    fetch = FakeFetch({"A": True}, message="HTTP Error 429: Too Many Requests")
    scheduler = TaskScheduler(make_tasks(["A"], retry=1), fetch, retry_budget=1)
    scheduler.run()

    assert scheduler.analyzer.total_errors == 2
    assert scheduler.analyzer.patterns["rate_limit"].count == 2
    assert scheduler.analyzer.patterns["rate_limit"].addresses == ["A"]
