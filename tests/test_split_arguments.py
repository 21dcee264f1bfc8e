"""Tests for splitting batch-file lines into arguments."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from crbatch.sources import is_comment_line, split_arguments


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('a "b c" d', ["a", "b c", "d"]),
        ('"only one"', ["only one"]),
        ("single", ["single"]),
        ("-r 720 https://example.com/series/X", ["-r", "720", "https://example.com/series/X"]),
        ('-s "My Series" -n "Ep name" GY8VEQ95Y', ["-s", "My Series", "-n", "Ep name", "GY8VEQ95Y"]),
    ],
)
def test_split_arguments_honours_quotes(raw, expected):
    assert split_arguments(raw) == expected


def test_unterminated_quote_consumes_rest_of_line():
    assert split_arguments('a "b c d') == ["a", "b c d"]


def test_empty_line_has_no_arguments():
    assert split_arguments("") == []


def test_consecutive_spaces_do_not_produce_empty_arguments():
    assert split_arguments("a   b") == ["a", "b"]
    assert split_arguments("   ") == []


def test_quote_in_the_middle_of_a_token_is_kept():
    assert split_arguments('--series=My" "Show x') == ['--series=My" "Show', "x"]


@pytest.mark.parametrize(
    "line, expected",
    [
        ("# comment", True),
        ("// comment", True),
        ("#", True),
        ("  # indented", False),
        ("https://example.com/#anchor", False),
        ("", False),
    ],
)
def test_is_comment_line(line, expected):
    assert is_comment_line(line) is expected
