"""Aggregation of pull requests into global and per-repository leaderboards."""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .file_filters import FileFilter
from .models import (
    AnalysisResult,
    FileAggregate,
    Leaderboards,
    LeadTime,
    LocTotals,
    PullRequest,
    RepoBucket,
    ReviewHighlight,
    ScoredPullRequest,
)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp as returned by gh (e.g. '2025-01-01T00:00:00Z').

    Naive timestamps are taken as UTC. Returns None for missing or unparseable values.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def lead_time_seconds(pr: PullRequest) -> Optional[int]:
    """Seconds between creation and merge of a PR.

    Returns None if a timestamp is missing or unparseable, or if the merge
    precedes the creation.
    """
    created = parse_timestamp(pr.created_at)
    merged = parse_timestamp(pr.merged_at)
    if created is None or merged is None:
        return None
    delta = (merged - created).total_seconds()
    if delta < 0:
        return None
    return int(delta)


def humanize_duration(seconds: int) -> str:
    """Format a duration like '1d 1h 0m'; seconds are shown only below one minute."""
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    if minutes or hours or days:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{seconds % 60}s")
    return ' '.join(parts)


def _count_assignees(stats: Leaderboards, pr: PullRequest, loc: int):
    for login in pr.assignee_logins:
        stats.prs_by_assignee[login] = stats.prs_by_assignee.get(login, 0) + 1
        totals = stats.assignee_loc.setdefault(login, LocTotals())
        totals.total += loc
        totals.count += 1


def _count_reviews(stats: Leaderboards, pr: PullRequest, loc: int):
    reviewers_in_pr = set()
    for review in pr.reviews:
        login = review.login
        stats.reviews_by_user[login] = stats.reviews_by_user.get(login, 0) + 1

        # LOC is credited once per reviewer per PR
        if login in reviewers_in_pr:
            continue
        reviewers_in_pr.add(login)

        totals = stats.reviewer_loc.setdefault(login, LocTotals())
        totals.total += loc
        totals.count += 1

        best = stats.reviewer_max.get(login)
        if best is None or loc > best.loc:
            stats.reviewer_max[login] = ReviewHighlight(loc=loc, pr=pr)


def _count_files(stats: Leaderboards, scored: ScoredPullRequest):
    seen_in_pr = set()
    for changed in scored.metrics.files:
        agg = stats.files.setdefault(changed.path, FileAggregate())
        agg.additions += changed.additions
        agg.deletions += changed.deletions
        if changed.path not in seen_in_pr:
            seen_in_pr.add(changed.path)
            agg.prs += 1


def _count_pairs(stats: Leaderboards, pr: PullRequest):
    author = pr.author.login
    for review in pr.reviews:
        reviewer = review.reviewer
        if not author or not reviewer or author == reviewer:
            continue
        pair = tuple(sorted((author, reviewer)))
        stats.pair_counts[pair] = stats.pair_counts.get(pair, 0) + 1


def _track_top_prs(stats: Leaderboards, scored: ScoredPullRequest):
    metrics = scored.metrics
    if stats.top_additions is None or metrics.additions > stats.top_additions.metrics.additions:
        stats.top_additions = scored
    if stats.top_deletions is None or metrics.deletions > stats.top_deletions.metrics.deletions:
        stats.top_deletions = scored
    if stats.top_changed_files is None or metrics.changed_files > stats.top_changed_files.metrics.changed_files:
        stats.top_changed_files = scored


def _track_lead_time(stats: Leaderboards, pr: PullRequest):
    seconds = lead_time_seconds(pr)
    if seconds is None:
        return
    if stats.shortest_lead is None or seconds < stats.shortest_lead.seconds:
        stats.shortest_lead = LeadTime(pr=pr, seconds=seconds)
    if stats.longest_lead is None or seconds > stats.longest_lead.seconds:
        stats.longest_lead = LeadTime(pr=pr, seconds=seconds)


def build_leaderboards(scored_prs: Sequence[ScoredPullRequest], include_pairs: bool = True) -> Leaderboards:
    """Fold scored pull requests into one complete set of leaderboards.

    Used for the global scope and, unchanged, for every repository scope so
    that repository sums always partition the global sums.

    Args:
        scored_prs: Pull requests with their effective metrics, in iteration order
        include_pairs: Whether to count author/reviewer pairs

    Returns:
        Populated Leaderboards
    """
    stats = Leaderboards()
    for scored in scored_prs:
        pr = scored.pr
        loc = scored.metrics.loc

        stats.pr_count += 1
        stats.total_loc += loc

        _count_assignees(stats, pr, loc)
        _count_reviews(stats, pr, loc)
        _count_files(stats, scored)
        if include_pairs:
            _count_pairs(stats, pr)
        _track_top_prs(stats, scored)
        _track_lead_time(stats, pr)

    return stats


class PRStatsAnalyzer:
    """Builds global and per-repository leaderboards from tagged pull requests."""

    def __init__(self, file_filter: FileFilter = None):
        """Initialize the analyzer.

        Args:
            file_filter: Filter applying the ignore rules (None ignores nothing)
        """
        self.file_filter = file_filter or FileFilter()

    def score(self, prs: Sequence[PullRequest]) -> List[ScoredPullRequest]:
        """Compute effective metrics once per PR."""
        return [ScoredPullRequest(pr=pr, metrics=self.file_filter.effective_metrics(pr)) for pr in prs]

    def analyze(self, prs: Sequence[PullRequest]) -> AnalysisResult:
        """Aggregate all pull requests.

        Args:
            prs: Pull requests tagged with their repository

        Returns:
            AnalysisResult with overall leaderboards and one RepoBucket per repository

        Raises:
            ValueError: If no pull requests are given
        """
        if not prs:
            raise ValueError("Cannot analyze an empty pull request collection")

        scored_prs = self.score(prs)
        overall = build_leaderboards(scored_prs)

        scored_by_repo: Dict[str, List[ScoredPullRequest]] = defaultdict(list)
        for scored in scored_prs:
            scored_by_repo[scored.pr.repository].append(scored)

        repositories = {}
        for repository in sorted(scored_by_repo):
            repo_scored = scored_by_repo[repository]
            repositories[repository] = RepoBucket(
                repository=repository,
                prs=[scored.pr for scored in repo_scored],
                stats=build_leaderboards(repo_scored, include_pairs=False)
            )
            logging.debug(f"{repository}: {len(repo_scored)} PRs, {repositories[repository].total_loc:,} effective LOC")

        logging.info(f"Analyzed {overall.pr_count} PRs across {len(repositories)} repositories")
        return AnalysisResult(overall=overall, repositories=repositories)
