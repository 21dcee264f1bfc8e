"""Persistent cache of episodes that were already downloaded.

The cache is a plain text file of episode ids, one per line, kept in the
output directory. Downloaded files carry the same id in their name as
``... [<id>].<ext>``, so the cache can be rebuilt from disk.
"""

import contextlib
import os
import re
import sys
from typing import Iterable, Optional, Set

from .models import CACHE_FILENAME, Configuration

EPISODE_ID = r"[0-9A-Za-z_-]+"
EPISODE_ID_PATTERN = re.compile(rf"\[({EPISODE_ID})\]\.[0-9A-Za-z]+$")
_CACHE_LINE_PATTERN = re.compile(EPISODE_ID)


def cache_path_for(config: Configuration) -> Optional[str]:
    """Path of the cache file for *config*, or ``None`` when caching is off."""
    if config.no_cache:
        return None
    return os.path.join(config.output_dir(), CACHE_FILENAME)


def episode_id_from(value) -> Optional[str]:
    """Return *value* as a cacheable episode id, or ``None``."""
    if value is None:
        return None
    candidate = str(value).strip()
    if _CACHE_LINE_PATTERN.fullmatch(candidate):
        return candidate
    return None


def _make_parent(path: str) -> bool:
    directory = os.path.dirname(path)
    if not directory:
        return True
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as exc:
        print(f"Warning: Failed to create directory for cache {path}: {exc}", file=sys.stderr)
        return False
    return True


def load_cache(path: Optional[str]) -> Set[str]:
    """Load cached episode ids. Lines that are not ids are ignored."""
    if not path:
        return set()

    try:
        with open(path, "r", encoding="utf-8-sig") as handle:
            lines = handle.read().splitlines()
    except FileNotFoundError:
        return set()
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Warning: Failed to read cache {path}: {exc}", file=sys.stderr)
        return set()

    return {episode_id for episode_id in map(episode_id_from, lines) if episode_id}


def write_cache(path: Optional[str], episode_ids: Iterable[str]) -> None:
    """Replace the cache file with *episode_ids*, sorted and deduplicated."""
    if not path or not _make_parent(path):
        return

    ids = sorted({episode_id for episode_id in map(episode_id_from, episode_ids) if episode_id})
    temp_path = f"{path}.tmp"
    try:
        with open(temp_path, "w", encoding="utf-8") as handle:
            handle.writelines(f"{episode_id}\n" for episode_id in ids)
        os.replace(temp_path, path)
    except OSError as exc:
        print(f"Warning: Failed to update cache {path}: {exc}", file=sys.stderr)
        with contextlib.suppress(OSError):
            os.remove(temp_path)


def append_to_cache(path: Optional[str], episode_id: Optional[str]) -> None:
    """Record one finished episode."""
    episode_id = episode_id_from(episode_id)
    if not path or not episode_id or not _make_parent(path):
        return

    try:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(f"{episode_id}\n")
    except OSError as exc:
        print(f"Warning: Failed to append to cache {path}: {exc}", file=sys.stderr)


def scan_episode_ids(directory: str) -> Set[str]:
    """Collect episode ids from downloaded file names under *directory*."""
    found: Set[str] = set()
    for _root, _dirs, files in os.walk(directory):
        for name in files:
            match = EPISODE_ID_PATTERN.search(name)
            if match:
                found.add(match.group(1))
    return found


def rebuild_cache(config: Configuration) -> Set[str]:
    """Rewrite the cache from the episodes present in the output directory."""
    path = cache_path_for(config)
    if not path:
        return set()

    episode_ids = scan_episode_ids(config.output_dir())
    write_cache(path, episode_ids)
    print(f"Rebuilt cache {path} with {len(episode_ids)} episodes")
    return episode_ids
