"""Batch series downloader package."""

__version__ = "1.0.0"

# Import main components for easier access
from .batch import run_batch
from .cache import load_cache, rebuild_cache, write_cache
from .config import (
    apply_credential_defaults,
    merge_config,
    non_negative_int,
    parse_args,
    parse_overrides,
    resolve_resolution,
)
from .errors import BatchLineError, BatchReadError, FailureAnalyzer, SeriesFetchError
from .logger import SeriesLogger
from .models import (
    DEFAULT_BATCH_FILE,
    DEFAULT_RETRY,
    FALLBACK_RESOLUTION,
    RESOLUTION_TABLE,
    Configuration,
    ResolutionData,
    RunSummary,
    Task,
    normalize_address,
)
from .scheduler import TaskScheduler, run_tasks
from .series import fetch_series
from .sources import batch_file_path, build_tasks, split_arguments
from .ytdlp_options import build_ydl_options

__all__ = [
    # Main entry points
    "run_batch",
    "parse_args",
    "fetch_series",
    # Configuration
    "apply_credential_defaults",
    "merge_config",
    "non_negative_int",
    "parse_overrides",
    "resolve_resolution",
    # Task building and scheduling
    "split_arguments",
    "batch_file_path",
    "build_tasks",
    "TaskScheduler",
    "run_tasks",
    # Models and data structures
    "Configuration",
    "ResolutionData",
    "RunSummary",
    "Task",
    "normalize_address",
    "SeriesLogger",
    "FailureAnalyzer",
    "build_ydl_options",
    # Cache
    "load_cache",
    "write_cache",
    "rebuild_cache",
    # Errors
    "BatchLineError",
    "BatchReadError",
    "SeriesFetchError",
    # Constants
    "DEFAULT_BATCH_FILE",
    "DEFAULT_RETRY",
    "FALLBACK_RESOLUTION",
    "RESOLUTION_TABLE",
]
