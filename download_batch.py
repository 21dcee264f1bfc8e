#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
download_batch.py

Fetch one or more series, one after the other, retrying failed fetches.

Usage:
    python download_batch.py https://www.crunchyroll.com/series/GY8VEQ95Y
    python download_batch.py --output ./anime --retry 3
    python download_batch.py -b MyList.txt -r 720

Without addresses, each non-comment line of the batch file (default
CrunchyRoll.txt in the output directory) is read as extra flags plus
addresses, e.g.:

    # comment
    -r 720 -s "My Series" https://www.crunchyroll.com/series/GY8VEQ95Y
"""

import sys

from crbatch.cli import main


if __name__ == "__main__":
    sys.exit(main())
