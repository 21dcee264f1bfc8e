"""Sequential task execution with per-task retries."""

import sys
from typing import Callable, List, Optional, Sequence

from .errors import FailureAnalyzer, SeriesFetchError
from .models import Configuration, RunSummary, Task

FetchFunc = Callable[[Configuration, str], None]


class TaskScheduler:
    """Runs tasks one at a time, retrying each on failure.

    The state is the index of the current task plus each task's remaining
    retry counter. A failed attempt either decrements the counter and keeps
    the index, or, once the counter is exhausted, gives up on the task and
    moves on. Failures never abort the run.
    """

    def __init__(
        self,
        tasks: Sequence[Task],
        fetch: FetchFunc,
        retry_budget: int,
        verbose: bool = False,
        analyzer: Optional[FailureAnalyzer] = None,
    ) -> None:
        self.tasks: List[Task] = list(tasks)
        self.fetch = fetch
        self.retry_budget = retry_budget
        self.verbose = verbose
        self.analyzer = analyzer if analyzer is not None else FailureAnalyzer()
        self.index = 0
        self.summary = RunSummary()

    @property
    def done(self) -> bool:
        return self.index >= len(self.tasks)

    @property
    def current(self) -> Optional[Task]:
        if self.done:
            return None
        return self.tasks[self.index]

    def step(self) -> None:
        """Make one fetch attempt for the current task."""
        task = self.current
        if task is None:
            return

        self.summary.attempts += 1
        try:
            self.fetch(task.config, task.address)
        except SeriesFetchError as exc:
            self._handle_failure(task, exc)
            return

        self.summary.succeeded.append(task.address)
        self.index += 1

    def _handle_failure(self, task: Task, exc: SeriesFetchError) -> None:
        self.analyzer.record(task.address, exc.message)

        if task.retry <= 0:
            print(exc, file=sys.stderr)
            print(
                f'Error: Cannot get episodes from "{task.address}", please rerun later',
                file=sys.stderr,
            )
            self.summary.failed.append(task.address)
            self.index += 1
            return

        if self.verbose:
            print(exc, file=sys.stderr)
        print(
            f"Warning: Retrying to fetch episodes list from {task.address} "
            f"({task.retry} / {self.retry_budget} retries left)",
            file=sys.stderr,
        )
        task.retry -= 1

    def run(self) -> RunSummary:
        total = len(self.tasks)
        last_announced = -1
        while not self.done:
            if self.index != last_announced:
                last_announced = self.index
                print(f"\n[{self.index + 1}/{total}] Fetching {self.tasks[self.index].address}")
            self.step()
        return self.summary


def run_tasks(
    tasks: Sequence[Task],
    fetch: FetchFunc,
    retry_budget: int,
    verbose: bool = False,
    analyzer: Optional[FailureAnalyzer] = None,
) -> RunSummary:
    """Run *tasks* in order and return what happened."""
    scheduler = TaskScheduler(tasks, fetch, retry_budget, verbose=verbose, analyzer=analyzer)
    summary = scheduler.run()

    print("\n" + "=" * 70)
    print("Batch Summary")
    print("=" * 70)
    print(f"Series fetched: {len(summary.succeeded)}")
    print(f"Series failed: {len(summary.failed)}")
    print(f"Fetch attempts: {summary.attempts}")
    print("=" * 70)

    scheduler.analyzer.print_summary()
    return summary
