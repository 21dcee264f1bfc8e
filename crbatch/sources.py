"""Batch file parsing and task list construction."""

import os
import re
import sys
from typing import List, Optional

from .config import merge_config, parse_overrides
from .errors import BatchLineError, BatchReadError
from .models import COMMENT_PREFIXES, Configuration, Task

# At most one pair of surrounding double quotes is stripped from a token.
_TOKEN_PATTERN = re.compile(r'"?(.+?)"?', re.DOTALL)


def _strip_quotes(piece: str) -> Optional[str]:
    match = _TOKEN_PATTERN.fullmatch(piece)
    return match.group(1) if match else None


def split_arguments(value: str) -> List[str]:
    """Split a batch-file line into shell-like arguments.

    Spaces separate arguments except inside double quotes. An unterminated
    quote runs to the end of the line. Empty pieces (from consecutive spaces)
    are dropped.
    """
    in_quote = False
    pieces: List[str] = []
    previous = 0

    for i, char in enumerate(value):
        if char == '"':
            in_quote = not in_quote

        if not in_quote and char == " ":
            piece = _strip_quotes(value[previous:i])
            if piece is not None:
                pieces.append(piece)
            previous = i + 1

    last_piece = _strip_quotes(value[previous:])
    if last_piece is not None:
        pieces.append(last_piece)

    return pieces


def is_comment_line(line: str) -> bool:
    return line.startswith(COMMENT_PREFIXES)


def batch_file_path(config: Configuration) -> str:
    """Location of the batch file: ``config.batch`` under the output path."""
    return os.path.join(config.output_dir(), config.batch)


def parse_batch_line(line: str, base: Configuration) -> Configuration:
    """Build the configuration for one batch-file line."""
    overrides = parse_overrides(split_arguments(line))
    return merge_config(base, overrides)


def build_tasks(config: Configuration, batch_path: str) -> List[Task]:
    """Build the ordered task list for a run.

    Addresses given on the command line win; the batch file is only read
    when there are none. A missing batch file yields no tasks. Every task's
    retry budget comes from *config*, even for batch lines that set their own.
    """
    if config.addresses:
        return [
            Task(address=address, config=config, retry=config.retry)
            for address in config.addresses
        ]

    if not os.path.exists(batch_path):
        print(f"No addresses given and batch file {batch_path} not found; nothing to do.")
        return []

    try:
        with open(batch_path, "r", encoding="utf-8-sig") as handle:
            data = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise BatchReadError(f"Failed to read batch file {batch_path}: {exc}") from exc

    tasks: List[Task] = []
    for idx, line in enumerate(data.splitlines(), start=1):
        if is_comment_line(line):
            continue

        try:
            line_config = parse_batch_line(line, config)
        except BatchLineError as exc:
            print(f"Warning: Skipping {batch_path}:{idx}: {exc}", file=sys.stderr)
            continue

        for address in line_config.addresses:
            if not address:
                continue
            tasks.append(Task(address=address, config=line_config, retry=config.retry))

    print(f"Loaded {len(tasks)} tasks from {batch_path}")
    return tasks
