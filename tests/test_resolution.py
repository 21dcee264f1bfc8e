from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from crbatch.config import resolve_resolution
from crbatch.models import RESOLUTION_TABLE, Configuration


@pytest.mark.parametrize(
    "label, quality, video_format, height",
    [
        ("360", "60", "106", 360),
        ("480", "61", "106", 480),
        ("720", "62", "106", 720),
        ("1080", "80", "108", 1080),
    ],
)
def test_known_resolutions_map_to_provider_codes(label, quality, video_format, height, capsys):
    resolved = resolve_resolution(Configuration(resolution=label))

    assert resolved.video_quality == quality
    assert resolved.video_format == video_format
    assert resolved.video_height == height
    assert "Invalid resolution" not in capsys.readouterr().err


@pytest.mark.parametrize("label", ["240", "4k", "abc", "1080p", "-1"])
def test_unknown_resolution_falls_back_to_1080_with_one_warning(label, capsys):
    resolved = resolve_resolution(Configuration(resolution=label))

    fallback = RESOLUTION_TABLE["1080"]
    assert resolved.video_quality == fallback.quality
    assert resolved.video_format == fallback.format
    assert resolved.video_height == fallback.height

    err = capsys.readouterr().err
    assert err.count("Invalid resolution") == 1
    assert f"Invalid resolution {label}p" in err


@pytest.mark.parametrize("label", [None, ""])
def test_unset_resolution_uses_1080_silently(label, capsys):
    resolved = resolve_resolution(Configuration(resolution=label))

    assert resolved.video_quality == "80"
    assert resolved.video_format == "108"
    assert capsys.readouterr().err == ""


def test_resolution_returns_new_configuration():
    raw = Configuration(resolution="720")
    resolved = resolve_resolution(raw)

    assert raw.video_format is None
    assert not raw.is_resolved
    assert resolved.is_resolved
    assert resolved.resolution == "720"
