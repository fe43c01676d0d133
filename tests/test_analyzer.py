"""
Unit tests for the aggregation of pull requests into leaderboards
"""

import pytest
from pr_stats.analyzer import (
    PRStatsAnalyzer,
    build_leaderboards,
    humanize_duration,
    lead_time_seconds,
)
from pr_stats.file_filters import FileFilter, IgnoreRule
from pr_stats.models import PullRequest


def make_pr(repository, number, author='u1', assignees=None, reviewers=(), files=None,
            additions=None, deletions=None, changed_files=None, created_at=None, merged_at=None):
    """Build a tagged PullRequest from a compact description."""
    files = files or []
    data = {
        'number': number,
        'title': f'PR {number}',
        'url': f'https://github.com/{repository}/pull/{number}',
        'author': {'login': author, 'is_bot': False},
        'assignees': [{'login': login} for login in (assignees or [author])],
        'latestReviews': [{'author': {'login': login}, 'state': 'APPROVED'} for login in reviewers],
        'additions': additions if additions is not None else sum(f[1] for f in files),
        'deletions': deletions if deletions is not None else sum(f[2] for f in files),
        'changedFiles': changed_files if changed_files is not None else len(files),
        'files': [{'path': p, 'additions': a, 'deletions': d} for p, a, d in files],
        'createdAt': created_at,
        'mergedAt': merged_at,
    }
    return PullRequest.from_dict(data, repository)


@pytest.fixture
def collection():
    """PRs across two repositories with overlapping people and files."""
    return [
        make_pr('acme/web', 1, author='alice', assignees=['alice'], reviewers=['bob'],
                files=[('src/app.ts', 10, 2), ('docs/guide.md', 100, 0)],
                created_at='2025-01-01T00:00:00Z', merged_at='2025-01-01T02:00:00Z'),
        make_pr('acme/api', 2, author='bob', assignees=['bob', 'carol'], reviewers=['alice', 'dave'],
                files=[('main.py', 40, 10)],
                created_at='2025-01-03T00:00:00Z', merged_at='2025-01-06T00:00:00Z'),
        make_pr('acme/web', 3, author='carol', assignees=['carol'], reviewers=['alice', 'bob'],
                files=[('src/app.ts', 5, 5), ('src/app.css', 1, 1)],
                created_at='2025-01-05T00:00:00Z', merged_at='2025-01-05T00:00:30Z'),
        make_pr('acme/api', 4, author='alice', assignees=['alice'], reviewers=['bob'],
                additions=7, deletions=3, changed_files=2),
    ]


class TestSpecScenarios:
    """End-to-end scenarios with a single PR."""

    @pytest.fixture
    def single_pr(self):
        return make_pr('A', 1, author='u1', assignees=['u1'], reviewers=['u2'],
                       files=[('x.ts', 10, 0)], additions=10, deletions=0)

    def test_single_pr_leaderboards(self, single_pr):
        result = PRStatsAnalyzer().analyze([single_pr])

        assert result.overall.most_prs() == ('u1', 1)
        assert result.overall.most_reviews() == ('u2', 1)
        assert result.overall.top_pair() == (('u1', 'u2'), 1)

        path, agg = result.repositories['A'].stats.busiest_file_by_additions()
        assert path == 'x.ts'
        assert agg.additions == 10
        assert list(result.repositories) == ['A']

    def test_ignored_extension_removes_file(self, single_pr):
        file_filter = FileFilter({'A': IgnoreRule(extensions=('.ts',))})
        result = PRStatsAnalyzer(file_filter).analyze([single_pr])

        assert result.overall.top_additions.metrics.additions == 0
        assert 'x.ts' not in result.overall.files
        assert result.repositories['A'].stats.files == {}

    def test_lead_time_humanized(self):
        pr = make_pr('A', 1, created_at='2025-01-01T00:00:00Z', merged_at='2025-01-02T01:00:00Z')

        assert lead_time_seconds(pr) == 25 * 3600
        assert humanize_duration(lead_time_seconds(pr)) == '1d 1h 0m'


class TestCounting:
    """Test cases for count-based leaderboards."""

    def test_most_prs_counts_every_assignee(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.prs_by_assignee == {'alice': 2, 'bob': 1, 'carol': 2}
        assert stats.most_prs() == ('alice', 2)  # tie with carol, alphabetical

    def test_most_reviews(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.reviews_by_user == {'bob': 3, 'alice': 2, 'dave': 1}
        assert stats.most_reviews() == ('bob', 3)

    def test_pairs_are_unordered_and_exclude_self(self):
        prs = [
            make_pr('r', 1, author='alice', reviewers=['bob', 'alice']),
            make_pr('r', 2, author='bob', reviewers=['alice']),
        ]
        stats = build_leaderboards(PRStatsAnalyzer().score(prs))

        assert stats.pair_counts == {('alice', 'bob'): 2}

    def test_repository_buckets_have_no_pairs(self, collection):
        result = PRStatsAnalyzer().analyze(collection)

        assert result.overall.pair_counts
        assert all(bucket.stats.pair_counts == {} for bucket in result.buckets())


class TestLocLeaderboards:
    """Test cases for LOC-based leaderboards."""

    def test_reviewer_loc_deduplicated_per_pr(self):
        pr = make_pr('r', 1, reviewers=['bob', 'bob'],
                     files=[('a.py', 10, 0), ('b.py', 10, 0), ('c.py', 10, 0)])
        stats = PRStatsAnalyzer().analyze([pr]).overall

        assert stats.reviews_by_user['bob'] == 2
        assert stats.reviewer_loc['bob'].total == 30
        assert stats.reviewer_loc['bob'].count == 1

    def test_biggest_single_review_records_pr(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        login, highlight = stats.biggest_single_review()
        assert login == 'bob'
        assert highlight.loc == 112
        assert highlight.pr.number == 1

    def test_assignee_loc_not_split(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.assignee_loc['bob'].total == 50
        assert stats.assignee_loc['carol'].total == 62
        assert stats.assignee_loc['carol'].count == 2
        assert stats.assignee_loc['carol'].average == 31

    def test_total_and_average_loc(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.total_loc == 112 + 50 + 12 + 10
        assert stats.average_loc == 46


class TestTopPullRequests:
    """Test cases for the biggest single PR trackers."""

    def test_first_seen_wins_ties(self):
        prs = [
            make_pr('r', 1, files=[('a', 5, 0)]),
            make_pr('r', 2, files=[('b', 5, 0)]),
        ]
        stats = PRStatsAnalyzer().analyze(prs).overall

        assert stats.top_additions.pr.number == 1

    def test_each_dimension_independent(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.top_additions.pr.number == 1
        assert stats.top_deletions.pr.number == 2
        assert stats.top_changed_files.pr.number == 1

    def test_ignored_files_change_winner(self, collection):
        file_filter = FileFilter({'*': IgnoreRule(path_prefixes=('docs/',))})
        stats = PRStatsAnalyzer(file_filter).analyze(collection).overall

        assert stats.top_additions.pr.number == 2
        assert stats.top_additions.metrics.additions == 40


class TestFileAggregation:
    """Test cases for busiest files."""

    def test_file_totals_across_prs(self, collection):
        stats = PRStatsAnalyzer().analyze(collection).overall

        assert stats.files['src/app.ts'].additions == 15
        assert stats.files['src/app.ts'].deletions == 7
        assert stats.files['src/app.ts'].prs == 2
        assert stats.busiest_file_by_prs() == ('src/app.ts', stats.files['src/app.ts'])
        assert stats.busiest_file_by_additions()[0] == 'docs/guide.md'

    def test_duplicate_file_entry_counts_pr_once(self):
        pr = make_pr('r', 1, files=[('a.py', 3, 0), ('a.py', 4, 1)])
        stats = PRStatsAnalyzer().analyze([pr]).overall

        assert stats.files['a.py'].additions == 7
        assert stats.files['a.py'].prs == 1


class TestLeadTime:
    """Test cases for lead time tracking."""

    def test_extremes(self, collection):
        result = PRStatsAnalyzer().analyze(collection)

        assert result.overall.shortest_lead.pr.number == 3
        assert result.overall.shortest_lead.seconds == 30
        assert result.overall.longest_lead.pr.number == 2
        assert result.repositories['acme/web'].stats.longest_lead.pr.number == 1
        assert result.repositories['acme/api'].stats.shortest_lead.pr.number == 2

    def test_missing_unparseable_and_negative_are_skipped(self):
        assert lead_time_seconds(make_pr('r', 1)) is None
        assert lead_time_seconds(make_pr('r', 2, created_at='yesterday', merged_at='2025-01-01T00:00:00Z')) is None
        assert lead_time_seconds(make_pr('r', 3, created_at='2025-01-02T00:00:00Z',
                                         merged_at='2025-01-01T00:00:00Z')) is None
        assert lead_time_seconds(make_pr('r', 4, created_at='2025-01-01T00:00:00.900Z',
                                         merged_at='2025-01-01T00:00:00.100Z')) is None

    def test_fractional_seconds_are_truncated(self):
        pr = make_pr('r', 1, created_at='2025-01-01T00:00:00.100Z', merged_at='2025-01-01T00:00:01.900Z')
        assert lead_time_seconds(pr) == 1

    def test_humanize_duration(self):
        assert humanize_duration(0) == '0s'
        assert humanize_duration(45) == '45s'
        assert humanize_duration(90) == '1m'
        assert humanize_duration(3600) == '1h 0m'
        assert humanize_duration(86400 + 59) == '1d 0h 0m'


class TestRepositoryPartition:
    """Repository buckets must partition the global aggregates."""

    @pytest.fixture
    def result(self, collection):
        file_filter = FileFilter({'acme/web': IgnoreRule(extensions=('.css',))})
        return PRStatsAnalyzer(file_filter).analyze(collection)

    def test_every_pr_in_exactly_one_bucket(self, result, collection):
        assert sum(len(bucket.prs) for bucket in result.buckets()) == len(collection)
        assert [bucket.repository for bucket in result.buckets()] == ['acme/api', 'acme/web']

    def test_loc_sums_match(self, result):
        buckets = list(result.buckets())
        overall = result.overall

        assert sum(b.total_loc for b in buckets) == overall.total_loc
        for login, totals in overall.assignee_loc.items():
            assert sum(b.stats.assignee_loc.get(login).total for b in buckets
                       if login in b.stats.assignee_loc) == totals.total
        for login, totals in overall.reviewer_loc.items():
            assert sum(b.stats.reviewer_loc.get(login).total for b in buckets
                       if login in b.stats.reviewer_loc) == totals.total

    def test_file_sums_match(self, result):
        buckets = list(result.buckets())
        for path, agg in result.overall.files.items():
            assert sum(b.stats.files[path].additions for b in buckets if path in b.stats.files) == agg.additions
            assert sum(b.stats.files[path].deletions for b in buckets if path in b.stats.files) == agg.deletions

    def test_ignored_file_size_does_not_matter(self, collection):
        """Changing an ignored file's additions leaves every effective metric unchanged."""
        file_filter = FileFilter({'acme/web': IgnoreRule(path_prefixes=('docs/',))})
        bigger = list(collection)
        bigger[0] = make_pr('acme/web', 1, author='alice', assignees=['alice'], reviewers=['bob'],
                            files=[('src/app.ts', 10, 2), ('docs/guide.md', 500, 0)],
                            created_at='2025-01-01T00:00:00Z', merged_at='2025-01-01T02:00:00Z')

        first = PRStatsAnalyzer(file_filter).analyze(collection).repositories['acme/web'].stats
        second = PRStatsAnalyzer(file_filter).analyze(bigger).repositories['acme/web'].stats

        assert first.total_loc == second.total_loc
        assert first.files == second.files
        assert first.reviewer_loc == second.reviewer_loc
        assert first.assignee_loc == second.assignee_loc


class TestEdgeCases:
    """Test cases for edge cases."""

    def test_empty_collection_raises(self):
        with pytest.raises(ValueError):
            PRStatsAnalyzer().analyze([])

    def test_deterministic(self, collection):
        first = PRStatsAnalyzer().analyze(collection)
        second = PRStatsAnalyzer().analyze(collection)

        assert first.overall.most_prs() == second.overall.most_prs()
        assert first.overall.biggest_single_review() == second.overall.biggest_single_review()
        assert first.overall.files == second.overall.files


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
