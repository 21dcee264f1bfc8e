"""Data models, enums, and constants for the batch runner."""

import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


# Defaults for the command-line flags
DEFAULT_SUBTITLE_FORMAT = "ass"
DEFAULT_TAG = "CrunchyRoll"
DEFAULT_RESOLUTION = "1080"
DEFAULT_BATCH_FILE = "CrunchyRoll.txt"
DEFAULT_RETRY = 5
DEFAULT_CONFIG_FILE = "crbatch.json"

# Environment variable names
ENV_USER = "CRBATCH_USER"
ENV_PASS = "CRBATCH_PASS"

# Lines in a batch file starting with one of these are comments
COMMENT_PREFIXES: Tuple[str, ...] = ("//", "#")

CACHE_FILENAME = ".crpersistent"
SERIES_URL_TEMPLATE = "https://www.crunchyroll.com/series/{}"
DEFAULT_SUBTITLE_LANGS = ["en.*"]
MERGED_CONTAINER = "mkv"


@dataclass(frozen=True)
class ResolutionData:
    """Provider codes for one resolution label."""
    quality: str
    format: str
    height: int


# Correspondence between a resolution label and the codes the provider expects
RESOLUTION_TABLE: Dict[str, ResolutionData] = {
    "360": ResolutionData(quality="60", format="106", height=360),
    "480": ResolutionData(quality="61", format="106", height=480),
    "720": ResolutionData(quality="62", format="106", height=720),
    "1080": ResolutionData(quality="80", format="108", height=1080),
}

FALLBACK_RESOLUTION = "1080"


@dataclass(frozen=True)
class Configuration:
    """Settings for one run or one batch-file line.

    The ``video_*`` fields are derived: they stay ``None`` after parsing and
    are filled in by :func:`crbatch.config.resolve_resolution`.
    """
    user: Optional[str] = None
    password: Optional[str] = None
    no_cache: bool = False
    no_merge: bool = False
    subtitle_format: str = DEFAULT_SUBTITLE_FORMAT
    output: Optional[str] = None
    series: Optional[str] = None
    filename: Optional[str] = None
    tag: str = DEFAULT_TAG
    resolution: Optional[str] = DEFAULT_RESOLUTION
    rebuild_cache: bool = False
    batch: str = DEFAULT_BATCH_FILE
    verbose: bool = False
    retry: int = DEFAULT_RETRY
    addresses: Tuple[str, ...] = ()
    video_format: Optional[str] = None
    video_quality: Optional[str] = None
    video_height: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.video_format is not None and self.video_quality is not None

    def output_dir(self, cwd: Optional[str] = None) -> str:
        """Directory downloads and the batch file are relative to."""
        if self.output:
            return self.output
        return cwd if cwd is not None else os.getcwd()


@dataclass
class Task:
    """One scheduled fetch: an address, its configuration and remaining retries."""
    address: str
    config: Configuration
    retry: int


@dataclass
class RunSummary:
    """Outcome of a scheduler run."""
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    attempts: int = 0

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def normalize_address(address: str) -> str:
    """Turn a series URL or bare series id into a URL yt-dlp understands."""
    cleaned = address.strip()
    if not cleaned:
        raise ValueError("missing address")

    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", cleaned):
        return cleaned.rstrip("/")

    # Something like "www.crunchyroll.com/series/..." without a scheme
    if "/" in cleaned or "." in cleaned:
        return "https://" + cleaned.lstrip("/").rstrip("/")

    return SERIES_URL_TEMPLATE.format(cleaned)
