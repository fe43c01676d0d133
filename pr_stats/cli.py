"""Command line entry point: `pr-stats fetch` and `pr-stats analyze`."""

import argparse
import logging
from typing import List, Optional

from .analyzer import PRStatsAnalyzer
from .config import (
    DEFAULT_LIMIT,
    ConfigError,
    configure_logging,
    load_environment,
    load_fetch_options,
    resolve_stats_dir,
)
from .fetcher import fetch_repositories
from .file_filters import FileFilter, load_ignore_rules
from .output import OutputFormatter
from .storage import MissingDataError, PRDataStore

STATS_DIR_HELP = "Directory for PR data and the report (env: STATS_DIR, default: stats)"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pr-stats',
        description="Pull request statistics for GitHub repositories (via the gh CLI)."
    )
    parser.add_argument('--stats-dir', help=STATS_DIR_HELP)
    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    # Accepted after the sub-command too; SUPPRESS keeps a value given before it
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--stats-dir', default=argparse.SUPPRESS, help=STATS_DIR_HELP)

    fetch = subparsers.add_parser('fetch', parents=[common], help="Fetch merged PRs via gh and store them as JSON")
    fetch.add_argument('--repos', help="Comma-separated list of repositories (env: REPOS)")
    fetch.add_argument('--since', help="Only PRs merged after YYYY-MM-DD, exclusive (env: FROM)")
    fetch.add_argument('--until', help="Only PRs merged on or before YYYY-MM-DD (env: UNTIL, default: today)")
    fetch.add_argument('--limit', help=f"Max PRs per repository (env: LIMIT, default: {DEFAULT_LIMIT})")

    analyze = subparsers.add_parser('analyze', parents=[common], help="Analyze stored PR data and write Stats.md")
    analyze.add_argument('--ignore-config', help="Ignore rules JSON file (env: IGNORE_CONFIG)")

    return parser


def run_fetch(args: argparse.Namespace, store: PRDataStore) -> int:
    try:
        options = load_fetch_options(args.repos, args.since, args.until, args.limit)
    except ConfigError as e:
        logging.error(str(e))
        return 1

    saved = fetch_repositories(options.repos, options.since, options.limit, store, until=options.until)
    failed = len(options.repos) - len(saved)
    if failed:
        logging.warning(f"{failed} of {len(options.repos)} repositories could not be fetched")
    return 0 if saved else 1


def run_analyze(args: argparse.Namespace, store: PRDataStore) -> int:
    file_filter = FileFilter(load_ignore_rules(args.ignore_config))

    try:
        prs = store.load_pull_requests()
    except MissingDataError as e:
        logging.error(str(e))
        return 1

    if not prs:
        logging.error(f"No PR data found in {store.stats_dir}.")
        return 1

    result = PRStatsAnalyzer(file_filter).analyze(prs)

    formatter = OutputFormatter()
    report_path = store.write_report(formatter.generate_markdown(result))
    formatter.print_summary(result, report_path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    load_environment()
    configure_logging()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    store = PRDataStore(resolve_stats_dir(args.stats_dir))
    if args.command == 'fetch':
        return run_fetch(args, store)
    return run_analyze(args, store)


if __name__ == '__main__':
    raise SystemExit(main())
