"""Command-line entry point."""

import sys
from typing import Optional, Sequence

from .batch import run_batch
from .errors import BatchReadError


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a batch and return the process exit code."""

    print("=" * 70)
    print("Series Batch Downloader")
    print("=" * 70)

    try:
        summary = run_batch(argv)
    except BatchReadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted; stopping the batch.", file=sys.stderr)
        return 130

    if summary.total == 0:
        print("Nothing to fetch.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
