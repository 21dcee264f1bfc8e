"""Batch run: parse, resolve, build tasks and run them in order."""

from typing import Optional, Sequence

from .cache import rebuild_cache
from .config import describe_config, parse_args, resolve_resolution
from .errors import FailureAnalyzer
from .models import RunSummary
from .scheduler import FetchFunc, run_tasks
from .series import fetch_series
from .sources import batch_file_path, build_tasks


def run_batch(
    argv: Optional[Sequence[str]] = None,
    fetch: Optional[FetchFunc] = None,
    analyzer: Optional[FailureAnalyzer] = None,
) -> RunSummary:
    """Fetch every series named by *argv*.

    Raises :class:`~crbatch.errors.BatchReadError` when the batch file exists
    but cannot be read; nothing is fetched in that case. Failures of single
    series are retried, reported and skipped.
    """
    if fetch is None:
        fetch = fetch_series

    config = resolve_resolution(parse_args(argv))
    batch_path = batch_file_path(config)
    for line in describe_config(config):
        print(line)
    print(f"Batch file: {batch_path}")

    if config.rebuild_cache and not config.no_cache:
        rebuild_cache(config)

    tasks = build_tasks(config, batch_path)
    return run_tasks(tasks, fetch, config.retry, verbose=config.verbose, analyzer=analyzer)
