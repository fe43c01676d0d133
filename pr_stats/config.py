"""
Configuration for PR Stats.

Settings come from environment variables (optionally loaded from a .env
file); command line flags override them.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv

from .storage import DEFAULT_STATS_DIR

DEFAULT_LIMIT = 200

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s'
LOG_DATE_FORMAT = '%m/%d/%Y %I:%M:%S %p'


class ConfigError(ValueError):
    """Raised when required settings are missing or invalid."""


@dataclass
class FetchOptions:
    """Settings for the fetch command."""
    repos: List[str]
    since: str
    until: str
    limit: int


def load_environment() -> None:
    """Load environment variables from a .env file if it exists."""
    load_dotenv()


def configure_logging(level: str = None) -> None:
    """Configure root logging (can be overridden by the LOG_LEVEL environment variable)."""
    level = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT
    )


def csv_to_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated string, dropping blank entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def load_fetch_options(
    repos: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    limit: Optional[str] = None
) -> FetchOptions:
    """Build fetch settings from explicit values, falling back to the environment.

    Args:
        repos: Comma-separated repositories (REPOS)
        since: Start date YYYY-MM-DD, exclusive (FROM)
        until: End date YYYY-MM-DD, inclusive (UNTIL, defaults to today)
        limit: Maximum PRs per repository (LIMIT, defaults to 200)

    Returns:
        FetchOptions

    Raises:
        ConfigError: Listing every missing or invalid setting
    """
    repo_list = csv_to_list(repos if repos is not None else os.environ.get('REPOS'))
    since = (since or os.environ.get('FROM') or '').strip()
    until = (until or os.environ.get('UNTIL') or '').strip() or date.today().isoformat()
    limit_value = str(limit if limit is not None else os.environ.get('LIMIT') or DEFAULT_LIMIT).strip()

    errors = []
    if not repo_list:
        errors.append("REPOS must be set (comma-separated list)")
    if not since:
        errors.append("FROM must be set (YYYY-MM-DD)")
    elif not _is_iso_date(since):
        errors.append(f"FROM must be a date in format YYYY-MM-DD (got '{since}')")
    if not _is_iso_date(until):
        errors.append(f"UNTIL must be a date in format YYYY-MM-DD (got '{until}')")

    try:
        limit_int = int(limit_value)
    except ValueError:
        limit_int = 0
    if limit_int <= 0:
        errors.append(f"LIMIT must be a positive integer (got '{limit_value}')")

    if errors:
        help_text = "Missing or invalid configuration. Set the required environment variables or flags."
        raise ConfigError(help_text + "\n- " + "\n- ".join(errors))

    logging.info(f"Fetch settings: {len(repo_list)} repositories, merged after {since} up to {until}, limit {limit_int}")
    return FetchOptions(repos=repo_list, since=since, until=until, limit=limit_int)


def resolve_stats_dir(value: Optional[str] = None) -> str:
    """Directory for PR data and the report (STATS_DIR, default 'stats')."""
    return value or os.environ.get('STATS_DIR', '').strip() or DEFAULT_STATS_DIR
