"""Fetch every episode of one series with yt-dlp."""

from typing import Optional, Set

import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from .cache import append_to_cache, cache_path_for, load_cache
from .errors import SeriesFetchError
from .logger import SeriesLogger
from .models import Configuration, normalize_address
from .ytdlp_options import build_ydl_options


def describe_episode(info: Optional[dict]) -> str:
    if not isinstance(info, dict):
        return "unknown episode"
    episode_id = info.get("id")
    title = info.get("title")
    number = info.get("episode_number")
    label = title or episode_id or "unknown episode"
    if number is not None:
        label = f"#{number} {label}"
    if episode_id and title:
        label = f"{label} ({episode_id})"
    return label


def fetch_series(config: Configuration, address: str) -> None:
    """Download the episodes of the series at *address*.

    Raises :class:`SeriesFetchError` when the series, or any episode that is
    not simply unavailable to the account, fails to download.
    """
    try:
        url = normalize_address(address)
    except ValueError as exc:
        raise SeriesFetchError(address, str(exc)) from exc

    logger = SeriesLogger(verbose=config.verbose)
    logger.set_context(address)

    cache_path = cache_path_for(config)
    cached_ids: Set[str] = load_cache(cache_path)
    completed_ids: Set[str] = set()
    if cached_ids:
        print(f"Found {len(cached_ids)} cached episodes in {cache_path}")

    def hook(d):
        status = d.get("status")
        info = d.get("info_dict")
        episode_id = info.get("id") if isinstance(info, dict) else None

        if status == "downloading":
            logger.set_episode(episode_id)
        elif status == "finished" and episode_id:
            if episode_id not in completed_ids:
                completed_ids.add(episode_id)
                print(f"[address={address}] Completed download for {describe_episode(info)}")
                if episode_id not in cached_ids:
                    append_to_cache(cache_path, episode_id)
            logger.set_episode(None)

    def cache_filter(info_dict: dict) -> Optional[str]:
        episode_id = info_dict.get("id") if isinstance(info_dict, dict) else None
        if episode_id and episode_id in cached_ids:
            return f"{episode_id} already downloaded (tracked in cache)"
        return None

    ydl_opts = build_ydl_options(config, logger, hook, [cache_filter] if cache_path else None)

    print(f"\n=== Fetching episodes for {url} ===")
    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            retcode = ydl.download([url])
    except (DownloadError, ExtractorError, OSError) as exc:
        raise SeriesFetchError(address, logger.last_error or str(exc)) from exc

    if logger.errors:
        raise SeriesFetchError(address, logger.last_error)
    if retcode and not logger.skipped:
        raise SeriesFetchError(address, f"yt-dlp exited with code {retcode}")

    print(f"[address={address}] {len(completed_ids)} episodes downloaded")
