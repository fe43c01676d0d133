"""File ignore rules for excluding files from line count metrics."""

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .models import ChangedFile, EffectiveMetrics, PullRequest

# Rule key applied to repositories without their own entry
WILDCARD_REPOSITORY = '*'

# Rules file looked up in the working directory when IGNORE_CONFIG is unset
DEFAULT_IGNORE_RULES_FILE = 'ignore.rules.json'


def normalize_path(path: str) -> str:
    """Convert backslashes to forward slashes."""
    return path.replace('\\', '/')


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it has a leading dot.

    Returns an empty string for blank entries.
    """
    extension = extension.strip()
    if not extension:
        return ''
    extension = extension.lower()
    return extension if extension.startswith('.') else '.' + extension


def _string_tuple(data: Dict, key: str) -> Tuple[str, ...]:
    values = data.get(key)
    if values is None:
        return ()
    # A bare string would otherwise be split into single-character entries
    if not isinstance(values, list):
        raise ValueError(f"'{key}' must be a JSON array (got {type(values).__name__})")
    return tuple(str(v) for v in values)


@dataclass(frozen=True)
class IgnoreRule:
    """Ignore rule for one repository (or the wildcard entry)."""
    path_prefixes: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict) -> 'IgnoreRule':
        """Build a rule from its JSON form ({"pathPrefixes": [...], "extensions": [...]}).

        Raises:
            ValueError: If pathPrefixes or extensions is present but not a list
        """
        return cls(
            path_prefixes=_string_tuple(data, 'pathPrefixes'),
            extensions=_string_tuple(data, 'extensions')
        )

    def matches(self, file_path: str) -> bool:
        path = normalize_path(file_path)
        if any(path.startswith(normalize_path(prefix)) for prefix in self.path_prefixes):
            return True

        lower = path.lower()
        for extension in self.extensions:
            normalized = normalize_extension(extension)
            if not normalized:
                continue  # A blank entry must never match everything
            if lower.endswith(normalized):
                return True
        return False


IgnoreRules = Dict[str, IgnoreRule]


def should_ignore_file(repository: str, file_path: str, rules: Optional[IgnoreRules]) -> bool:
    """Check whether a file's line changes are excluded for a repository.

    The repository's own rule applies if present, otherwise the wildcard rule.
    The two are never merged.

    Args:
        repository: Repository identifier in format 'owner/repo'
        file_path: Repo-relative file path
        rules: Mapping of repository identifier (or '*') to IgnoreRule

    Returns:
        True if the file should be ignored, False otherwise
    """
    if not rules:
        return False
    rule = rules.get(repository) or rules.get(WILDCARD_REPOSITORY)
    if rule is None:
        return False
    return rule.matches(file_path)


def parse_ignore_rules(data: Dict) -> IgnoreRules:
    """Convert the JSON rules document into IgnoreRule objects.

    Raises:
        ValueError: If the document or one of its entries is not an object
    """
    if not isinstance(data, dict):
        raise ValueError("ignore rules must be a JSON object keyed by repository")

    rules = {}
    for repository, entry in data.items():
        if not isinstance(entry, dict):
            raise ValueError(f"rule for '{repository}' must be a JSON object")
        rules[repository] = IgnoreRule.from_dict(entry)
    return rules


def load_ignore_rules(path: Optional[str] = None) -> IgnoreRules:
    """Load ignore rules, degrading to "ignore nothing" on any problem.

    Args:
        path: Rules file path (defaults to IGNORE_CONFIG, then ./ignore.rules.json)

    Returns:
        Mapping of repository identifier to IgnoreRule (empty if unavailable)
    """
    path = path or os.environ.get('IGNORE_CONFIG', '').strip()
    if not path:
        if not os.path.exists(DEFAULT_IGNORE_RULES_FILE):
            logging.debug("No ignore rules configured")
            return {}
        path = DEFAULT_IGNORE_RULES_FILE

    try:
        with open(path, 'r', encoding='utf-8') as f:
            rules = parse_ignore_rules(json.load(f))
    except (OSError, ValueError) as e:
        logging.warning(f"Failed to load ignore rules from {path}: {e}")
        return {}

    logging.info(f"Loaded ignore rules for {len(rules)} repository entries from {path}")
    return rules


def uses_raw_totals(pr: PullRequest) -> bool:
    """Whether a PR's effective metrics fall back to its raw totals.

    Per-file rules cannot be applied without a file list, so such PRs are
    counted unfiltered.
    """
    return not pr.files


class FileFilter:
    """Applies ignore rules to pull request file lists."""

    def __init__(self, rules: Optional[IgnoreRules] = None):
        """Initialize the file filter.

        Args:
            rules: Ignore rules keyed by repository (None ignores nothing)
        """
        self.rules = rules or {}

    def is_excluded(self, repository: str, file_path: str) -> bool:
        return should_ignore_file(repository, file_path, self.rules)

    def kept_files(self, pr: PullRequest) -> Iterable[ChangedFile]:
        return (f for f in pr.files if not self.is_excluded(pr.repository, f.path))

    def effective_metrics(self, pr: PullRequest) -> EffectiveMetrics:
        """Calculate line counts of a PR excluding ignored files.

        Args:
            pr: Pull request tagged with its repository

        Returns:
            EffectiveMetrics over non-ignored files, or the raw totals if the PR has no file list
        """
        if uses_raw_totals(pr):
            return EffectiveMetrics(
                additions=pr.additions,
                deletions=pr.deletions,
                changed_files=pr.changed_files
            )

        kept = tuple(self.kept_files(pr))
        metrics = EffectiveMetrics(
            additions=sum(f.additions for f in kept),
            deletions=sum(f.deletions for f in kept),
            changed_files=len(kept),
            files=kept
        )

        excluded_count = len(pr.files) - len(kept)
        if excluded_count > 0:
            excluded_additions = sum(f.additions for f in pr.files) - metrics.additions
            excluded_deletions = sum(f.deletions for f in pr.files) - metrics.deletions
            logging.debug(f"{pr.repository}#{pr.number}: excluded {excluded_count} file(s) "
                          f"(+{excluded_additions:,}/-{excluded_deletions:,})")

        return metrics
