"""Storage of fetched pull request data and the rendered report."""

import json
import logging
import os
from typing import Dict, List

from .models import PullRequest

DEFAULT_STATS_DIR = 'stats'
DATA_FILE_PREFIX = 'pr-data-'
DATA_FILE_SUFFIX = '.json'
REPORT_FILE_NAME = 'Stats.md'


class MissingDataError(Exception):
    """Raised when there is no stored pull request data to analyze."""


def data_file_name(repository: str) -> str:
    """File name for a repository's PR data ('owner/repo' -> 'pr-data-owner_repo.json')."""
    return f"{DATA_FILE_PREFIX}{repository.replace('/', '_')}{DATA_FILE_SUFFIX}"


def repository_from_file_name(file_name: str) -> str:
    """Recover the repository identifier from a data file name.

    Only the first underscore separates owner from name; GitHub owners cannot
    contain underscores but repository names can.
    """
    stem = file_name[len(DATA_FILE_PREFIX):-len(DATA_FILE_SUFFIX)]
    return stem.replace('_', '/', 1)


class PRDataStore:
    """Reads and writes per-repository PR data files and the Markdown report."""

    def __init__(self, stats_dir: str = DEFAULT_STATS_DIR):
        """Initialize the store.

        Args:
            stats_dir: Directory holding the PR data files and the report
        """
        self.stats_dir = stats_dir

    @property
    def report_path(self) -> str:
        return os.path.join(self.stats_dir, REPORT_FILE_NAME)

    def data_path(self, repository: str) -> str:
        return os.path.join(self.stats_dir, data_file_name(repository))

    def list_data_files(self) -> List[str]:
        """List PR data file names in sorted order.

        Raises:
            MissingDataError: If the directory does not exist or holds no data files
        """
        if not os.path.isdir(self.stats_dir):
            raise MissingDataError(f"No stats directory found at {os.path.abspath(self.stats_dir)}. "
                                   f"Run 'pr-stats fetch' first.")

        names = sorted(
            name for name in os.listdir(self.stats_dir)
            if name.startswith(DATA_FILE_PREFIX) and name.endswith(DATA_FILE_SUFFIX)
        )
        if not names:
            raise MissingDataError(f"No stats files found in {os.path.abspath(self.stats_dir)}. "
                                   f"Run 'pr-stats fetch' first.")
        return names

    def _load_file(self, file_name: str) -> List[PullRequest]:
        repository = repository_from_file_name(file_name)
        with open(os.path.join(self.stats_dir, file_name), 'r', encoding='utf-8') as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError("expected a JSON array of pull requests")
        return [PullRequest.from_dict(record, repository) for record in records]

    def load_pull_requests(self) -> List[PullRequest]:
        """Load all stored pull requests, tagged with their repository.

        Files that cannot be read or parsed are skipped with a warning.

        Returns:
            Pull requests in file order, then stored order

        Raises:
            MissingDataError: If there are no data files at all
        """
        prs = []
        for file_name in self.list_data_files():
            try:
                loaded = self._load_file(file_name)
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logging.warning(f"Failed to read {file_name}: {e}")
                continue
            logging.debug(f"Loaded {len(loaded)} PRs from {file_name}")
            prs.extend(loaded)

        logging.info(f"Loaded {len(prs)} PRs from {self.stats_dir}")
        return prs

    def save_repository(self, repository: str, records: List[Dict]) -> str:
        """Persist one repository's PR records.

        Returns:
            Path of the written file
        """
        os.makedirs(self.stats_dir, exist_ok=True)
        path = self.data_path(repository)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        logging.info(f"Saved {len(records)} PRs for {repository} to {path}")
        return path

    def write_report(self, text: str) -> str:
        """Write the Markdown report.

        Returns:
            Path of the written report
        """
        os.makedirs(self.stats_dir, exist_ok=True)
        with open(self.report_path, 'w', encoding='utf-8') as f:
            f.write(text)
        return self.report_path
