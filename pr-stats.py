#!/usr/bin/env python3
"""
PR Stats
Fetches merged pull requests with the gh CLI and writes leaderboards to stats/Stats.md.
"""

import sys

from pr_stats.cli import main


if __name__ == "__main__":
    sys.exit(main())
