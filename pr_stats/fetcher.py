"""Fetching merged pull requests through the GitHub CLI (gh)."""

import json
import logging
import subprocess
from typing import Dict, List, Optional

from .storage import PRDataStore

# Fields requested from `gh pr list --json`
PR_JSON_FIELDS = [
    'additions',
    'assignees',
    'author',
    'changedFiles',
    'number',
    'title',
    'deletions',
    'files',
    'latestReviews',
    'url',
    'createdAt',
    'mergedAt',
]


class GhError(Exception):
    """Raised when a gh command fails."""

    def __init__(self, message: str, stderr: str = ''):
        super().__init__(message)
        self.stderr = stderr


class GhClient:
    """Runs gh commands."""

    def __init__(self, executable: str = 'gh', timeout: int = 300):
        """Initialize the client.

        Args:
            executable: gh executable name or path
            timeout: Seconds before a gh call is aborted
        """
        self.executable = executable
        self.timeout = timeout

    def run(self, args: List[str]) -> str:
        """Run gh and return its stripped stdout.

        Raises:
            GhError: If gh is missing, times out or exits non-zero
        """
        logging.debug(f"Running {self.executable} {' '.join(args)}")
        try:
            proc = subprocess.run(
                [self.executable, *args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise GhError(f"gh executable not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise GhError(f"gh command timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or '').strip()
            raise GhError(f"gh command failed: {stderr or f'exit code {proc.returncode}'}", stderr)
        return proc.stdout.strip()

    def list_merged_pull_requests(self, repo: str, since: str, limit: int, until: str = None) -> List[Dict]:
        """List merged PRs of a repository.

        Args:
            repo: Repository name in format 'owner/repo'
            since: Only PRs merged after this date, exclusive (YYYY-MM-DD)
            limit: Maximum number of PRs
            until: Only PRs merged on or before this date (YYYY-MM-DD)

        Returns:
            Raw PR records as returned by gh
        """
        search = f"merged:>{since}"
        if until:
            search += f" merged:<={until}"
        out = self.run([
            'pr', 'list',
            '--repo', repo,
            '--state', 'merged',
            '--search', search,
            '--json', ','.join(PR_JSON_FIELDS),
            '-L', str(limit),
        ])
        try:
            data = json.loads(out) if out else []
        except ValueError as e:
            raise GhError(f"gh returned invalid JSON: {e}") from e
        if not isinstance(data, list):
            raise GhError("gh returned unexpected JSON (expected an array)")
        return data


def is_bot_author(pr: Dict) -> bool:
    return bool((pr.get('author') or {}).get('is_bot', False))


def ensure_assignee(pr: Dict) -> Dict:
    """Make the author the assignee of a PR that has none."""
    if not pr.get('assignees'):
        author = pr.get('author') or {}
        pr['assignees'] = [{
            'id': author.get('id', ''),
            'login': author.get('login'),
            'name': author.get('name', ''),
        }]
    return pr


def keep_approved_reviews(pr: Dict) -> Dict:
    """Drop every review that is not an approval."""
    pr['latestReviews'] = [r for r in pr.get('latestReviews') or [] if r.get('state') == 'APPROVED']
    return pr


def prepare_records(records: List[Dict]) -> List[Dict]:
    """Apply the stored-data policies: no bot authors, at least one assignee, approvals only."""
    prepared = []
    for pr in records:
        if is_bot_author(pr):
            logging.debug(f"Skipping bot PR #{pr.get('number')}")
            continue
        prepared.append(keep_approved_reviews(ensure_assignee(pr)))
    return prepared


def fetch_repositories(
    repos: List[str],
    since: str,
    limit: int,
    store: PRDataStore,
    client: Optional[GhClient] = None,
    until: str = None
) -> Dict[str, int]:
    """Fetch and store merged PRs for each repository, one at a time.

    A failing repository is reported and skipped; files already written for
    other repositories are kept.

    Args:
        repos: Repository names in format 'owner/repo'
        since: Only PRs merged after this date (YYYY-MM-DD)
        limit: Maximum number of PRs per repository
        store: Destination for the PR data files
        client: gh client (created if None)
        until: Only PRs merged on or before this date (YYYY-MM-DD)

    Returns:
        Number of stored PRs per successfully fetched repository
    """
    client = client or GhClient()
    saved = {}

    for repo in repos:
        print(f"Processing repo '{repo}'...")
        try:
            records = prepare_records(client.list_merged_pull_requests(repo, since, limit, until))
            store.save_repository(repo, records)
        except GhError as e:
            print("ERR")
            if e.stderr:
                print(f"gh error: {e.stderr.splitlines()[0]}")
            logging.warning(f"Skipping {repo}: {e}")
            continue
        except OSError as e:
            print("ERR")
            logging.warning(f"Skipping {repo}: could not save PR data: {e}")
            continue

        saved[repo] = len(records)
        print(f"  Stored {len(records)} PRs")

    return saved
