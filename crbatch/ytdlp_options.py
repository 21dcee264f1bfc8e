"""yt-dlp options builder for one series fetch."""

import os
from typing import Callable, Iterable, List, Optional

from .logger import SeriesLogger
from .models import (
    DEFAULT_SUBTITLE_LANGS,
    FALLBACK_RESOLUTION,
    MERGED_CONTAINER,
    RESOLUTION_TABLE,
    Configuration,
)


def _escape_template(value: str) -> str:
    """Make a user-supplied string safe inside a yt-dlp output template."""
    return value.replace("%", "%%").replace(os.sep, "_")


def _episode_match_filter(
    filters: Iterable[Callable[[dict], Optional[str]]]
) -> Optional[Callable[[dict], Optional[str]]]:
    """Join per-episode filters into one yt-dlp ``match_filter``.

    Entries without an id (the series playlist itself) always pass. For an
    episode the first filter returning a skip reason wins.
    """
    episode_filters = [flt for flt in filters if flt is not None]
    if not episode_filters:
        return None

    def match_filter(info_dict: dict, *, incomplete: bool = False) -> Optional[str]:
        if not isinstance(info_dict, dict) or not info_dict.get("id"):
            return None
        return next(filter(None, (flt(info_dict) for flt in episode_filters)), None)

    return match_filter


def build_output_template(config: Configuration) -> str:
    """Output template: ``<output>/<series>/[<tag>] <name> - <episode> [<id>].<ext>``."""
    if config.series:
        series_dir = _escape_template(config.series)
    else:
        series_dir = "%(series,playlist_title|Unknown Series)s"

    if config.filename:
        name = _escape_template(config.filename)
    else:
        name = "%(series,title)s"

    tag = _escape_template(config.tag) if config.tag else ""
    prefix = f"[{tag}] " if tag else ""
    filename = f"{prefix}{name} - %(episode_number|00)s [%(id)s].%(ext)s"
    return os.path.join(config.output_dir(), series_dir, filename)


def build_format_selector(config: Configuration) -> str:
    height = config.video_height
    if height is None:
        height = RESOLUTION_TABLE[FALLBACK_RESOLUTION].height
    return f"bestvideo[height<={height}]+bestaudio/best[height<={height}]"


def build_postprocessors(config: Configuration) -> List[dict]:
    postprocessors = [
        {"key": "FFmpegSubtitlesConvertor", "format": config.subtitle_format},
    ]
    if not config.no_merge:
        postprocessors.append({"key": "FFmpegEmbedSubtitle", "already_have_subtitle": False})
    return postprocessors


def build_ydl_options(
    config: Configuration,
    logger: SeriesLogger,
    hook,
    additional_filters: Optional[Iterable[Callable[[dict], Optional[str]]]] = None,
) -> dict:
    """Build yt-dlp options dictionary from a resolved configuration."""
    format_selector = build_format_selector(config)

    ydl_opts = {
        "continuedl": True,
        "ignoreerrors": "only_download",
        "noprogress": not config.verbose,
        "retries": 5,
        "fragment_retries": 3,
        "outtmpl": build_output_template(config),
        "restrictfilenames": False,
        "windowsfilenames": True,
        "format": format_selector,
        "writesubtitles": True,
        "subtitleslangs": list(DEFAULT_SUBTITLE_LANGS),
        "subtitlesformat": f"{config.subtitle_format}/best",
        "postprocessors": build_postprocessors(config),
        "quiet": not config.verbose,
        "no_warnings": False,
        "verbose": config.verbose,
        "logger": logger,
        "progress_hooks": [hook],
    }

    if not config.no_merge:
        ydl_opts["merge_output_format"] = MERGED_CONTAINER
    if config.user:
        ydl_opts["username"] = config.user
    if config.password:
        ydl_opts["password"] = config.password

    combined_filter = _episode_match_filter(additional_filters or ())
    if combined_filter:
        ydl_opts["match_filter"] = combined_filter

    debug_parts = [
        f"format={format_selector}",
        f"quality={config.video_quality}",
        f"video_format={config.video_format}",
        f"subtitles={config.subtitle_format}",
        f"merge={'off' if config.no_merge else MERGED_CONTAINER}",
        f"tag={config.tag}",
    ]
    if config.series:
        debug_parts.append(f"series={config.series}")
    if config.filename:
        debug_parts.append(f"filename={config.filename}")
    if config.user:
        debug_parts.append(f"user={config.user}")

    print("Constructed yt-dlp options: " + ", ".join(debug_parts))

    return ydl_opts
