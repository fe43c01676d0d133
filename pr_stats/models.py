"""Data models for pull request statistics."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

# Login reported when a user record has no login
UNKNOWN_LOGIN = 'unknown'


@dataclass(frozen=True)
class Author:
    """Author of a pull request."""
    login: Optional[str]
    name: str = ''
    is_bot: bool = False
    id: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Author':
        data = data or {}
        return cls(
            login=data.get('login'),
            name=data.get('name') or '',
            is_bot=bool(data.get('is_bot', False)),
            id=data.get('id') or ''
        )


@dataclass(frozen=True)
class Assignee:
    """User assigned to a pull request."""
    login: str
    name: str = ''
    id: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Assignee':
        data = data or {}
        return cls(
            login=data.get('login') or UNKNOWN_LOGIN,
            name=data.get('name') or '',
            id=data.get('id') or ''
        )


@dataclass(frozen=True)
class Review:
    """An approving review (only APPROVED reviews are stored upstream)."""
    reviewer: Optional[str]
    state: str = 'APPROVED'
    id: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Review':
        data = data or {}
        author = data.get('author') or {}
        return cls(
            reviewer=author.get('login'),
            state=data.get('state') or 'APPROVED',
            id=data.get('id') or ''
        )

    @property
    def login(self) -> str:
        return self.reviewer or UNKNOWN_LOGIN


@dataclass(frozen=True)
class ChangedFile:
    """Line changes of a single file within a pull request."""
    path: str
    additions: int = 0
    deletions: int = 0

    @classmethod
    def from_dict(cls, data: Dict) -> 'ChangedFile':
        return cls(
            path=data['path'],
            additions=data.get('additions') or 0,
            deletions=data.get('deletions') or 0
        )


@dataclass(frozen=True)
class PullRequest:
    """A merged pull request as stored by the fetch step, tagged with its repository."""
    number: int
    title: str
    url: str
    author: Author
    assignees: Tuple[Assignee, ...] = ()
    reviews: Tuple[Review, ...] = ()
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    files: Tuple[ChangedFile, ...] = ()
    created_at: Optional[str] = None
    merged_at: Optional[str] = None
    repository: str = ''

    @classmethod
    def from_dict(cls, data: Dict, repository: str = '') -> 'PullRequest':
        """Build a PullRequest from a `gh pr list --json` record.

        Args:
            data: Record as returned by gh (camelCase keys)
            repository: Repository identifier in format 'owner/repo'

        Returns:
            PullRequest instance

        Raises:
            KeyError: If the record has no PR number
            TypeError: If the record is not a mapping
        """
        return cls(
            number=data['number'],
            title=data.get('title') or '',
            url=data.get('url') or '',
            author=Author.from_dict(data.get('author')),
            assignees=tuple(Assignee.from_dict(a) for a in data.get('assignees') or []),
            reviews=tuple(Review.from_dict(r) for r in data.get('latestReviews') or []),
            additions=data.get('additions') or 0,
            deletions=data.get('deletions') or 0,
            changed_files=data.get('changedFiles') or 0,
            files=tuple(ChangedFile.from_dict(f) for f in data.get('files') or []),
            created_at=data.get('createdAt'),
            merged_at=data.get('mergedAt'),
            repository=repository
        )

    @property
    def assignee_logins(self) -> List[str]:
        return [a.login for a in self.assignees]


@dataclass(frozen=True)
class EffectiveMetrics:
    """Line and file counts of a PR after applying the ignore policy."""
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    files: Tuple[ChangedFile, ...] = ()  # Non-ignored file entries

    @property
    def loc(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class ScoredPullRequest:
    """A pull request paired with its effective metrics."""
    pr: PullRequest
    metrics: EffectiveMetrics


@dataclass
class LocTotals:
    """Effective LOC summed over a number of PRs."""
    total: int = 0
    count: int = 0

    @property
    def average(self) -> int:
        return round_half_up(self.total / self.count) if self.count else 0


@dataclass
class FileAggregate:
    """Changes to one file path summed over all PRs."""
    additions: int = 0
    deletions: int = 0
    prs: int = 0  # Distinct PRs touching the file


@dataclass(frozen=True)
class ReviewHighlight:
    """The largest single PR a reviewer approved."""
    loc: int
    pr: PullRequest


@dataclass(frozen=True)
class LeadTime:
    """Elapsed time between creation and merge of a PR."""
    pr: PullRequest
    seconds: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def _ranked(items: Dict, metric) -> List[Tuple]:
    """Sort mapping items by metric descending, then by key ascending."""
    return sorted(items.items(), key=lambda item: (-metric(item[1]), item[0]))


def _first(ranked: List[Tuple]) -> Optional[Tuple]:
    return ranked[0] if ranked else None


@dataclass
class Leaderboards:
    """Complete set of accumulators for one scope (all PRs or one repository)."""
    pr_count: int = 0
    total_loc: int = 0
    prs_by_assignee: Dict[str, int] = field(default_factory=dict)
    reviews_by_user: Dict[str, int] = field(default_factory=dict)
    assignee_loc: Dict[str, LocTotals] = field(default_factory=dict)
    reviewer_loc: Dict[str, LocTotals] = field(default_factory=dict)
    reviewer_max: Dict[str, ReviewHighlight] = field(default_factory=dict)
    files: Dict[str, FileAggregate] = field(default_factory=dict)
    pair_counts: Dict[Tuple[str, str], int] = field(default_factory=dict)
    top_additions: Optional[ScoredPullRequest] = None
    top_deletions: Optional[ScoredPullRequest] = None
    top_changed_files: Optional[ScoredPullRequest] = None
    shortest_lead: Optional[LeadTime] = None
    longest_lead: Optional[LeadTime] = None

    @property
    def average_loc(self) -> int:
        return round_half_up(self.total_loc / self.pr_count) if self.pr_count else 0

    def most_prs(self) -> Optional[Tuple[str, int]]:
        return _first(_ranked(self.prs_by_assignee, lambda count: count))

    def most_reviews(self) -> Optional[Tuple[str, int]]:
        return _first(_ranked(self.reviews_by_user, lambda count: count))

    def assignee_ranking(self) -> List[Tuple[str, LocTotals]]:
        return _ranked(self.assignee_loc, lambda totals: totals.total)

    def biggest_assignee_total(self) -> Optional[Tuple[str, LocTotals]]:
        return _first(self.assignee_ranking())

    def reviewer_ranking(self) -> List[Tuple[str, LocTotals]]:
        return _ranked(self.reviewer_loc, lambda totals: totals.total)

    def biggest_reviewer_total(self) -> Optional[Tuple[str, LocTotals]]:
        return _first(self.reviewer_ranking())

    def biggest_single_review(self) -> Optional[Tuple[str, ReviewHighlight]]:
        return _first(_ranked(self.reviewer_max, lambda highlight: highlight.loc))

    def busiest_file_by_additions(self) -> Optional[Tuple[str, FileAggregate]]:
        return _first(_ranked(self.files, lambda agg: agg.additions))

    def busiest_file_by_deletions(self) -> Optional[Tuple[str, FileAggregate]]:
        return _first(_ranked(self.files, lambda agg: agg.deletions))

    def busiest_file_by_prs(self) -> Optional[Tuple[str, FileAggregate]]:
        return _first(_ranked(self.files, lambda agg: agg.prs))

    def top_pair(self) -> Optional[Tuple[Tuple[str, str], int]]:
        return _first(_ranked(self.pair_counts, lambda count: count))


@dataclass
class RepoBucket:
    """All aggregate state scoped to a single repository."""
    repository: str
    prs: List[PullRequest] = field(default_factory=list)
    stats: Leaderboards = field(default_factory=Leaderboards)

    @property
    def total_loc(self) -> int:
        return self.stats.total_loc


@dataclass
class AnalysisResult:
    """Global leaderboards plus one RepoBucket per repository."""
    overall: Leaderboards
    repositories: Dict[str, RepoBucket] = field(default_factory=dict)

    @property
    def pr_count(self) -> int:
        return self.overall.pr_count

    def buckets(self) -> Iterator[RepoBucket]:
        """Iterate repository buckets ordered by repository identifier."""
        for repository in sorted(self.repositories):
            yield self.repositories[repository]
