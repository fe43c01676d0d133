"""Markdown report and console summary for PR statistics."""

from datetime import datetime, timezone
from typing import List, Optional

from .analyzer import humanize_duration
from .models import (
    UNKNOWN_LOGIN,
    AnalysisResult,
    Leaderboards,
    PullRequest,
    RepoBucket,
)


# ANSI color codes
CYAN = '\033[96m'
BOLD = '\033[1m'
RESET = '\033[0m'


def pr_label(pr: PullRequest) -> str:
    """Markdown label 'Title ([#number](url))'."""
    return f"{pr.title} ([#{pr.number}]({pr.url}))"


def assignees_label(pr: PullRequest) -> str:
    logins = pr.assignee_logins
    if len(logins) > 1:
        return f"Assignees: {', '.join(logins)}"
    return f"Assignee: {logins[0] if logins else UNKNOWN_LOGIN}"


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


class OutputFormatter:
    """Formats analysis results as Markdown and prints a console summary."""

    def __init__(self, title: str = 'Repository Stats'):
        """Initialize the output formatter.

        Args:
            title: Top-level heading of the Markdown report
        """
        self.title = title

    def generate_markdown(self, result: AnalysisResult, generated_at: Optional[datetime] = None) -> str:
        """Render the full Markdown report.

        Args:
            result: Analysis result to render
            generated_at: Timestamp for the header (defaults to now)

        Returns:
            Markdown document
        """
        generated_at = generated_at or datetime.now(timezone.utc)

        lines = [f"# {self.title}", ""]
        lines.append(f"Generated: {format_timestamp(generated_at)}")
        lines.append("")
        lines.extend(self._overall_lines(result.overall))
        lines.append("")
        lines.append("## By Repository")
        lines.append("")
        for bucket in result.buckets():
            lines.extend(self._repository_lines(bucket))
            lines.append("")

        return '\n'.join(lines)

    def _overall_lines(self, stats: Leaderboards) -> List[str]:
        lines = ["## Overall", ""]

        most_prs = stats.most_prs()
        if most_prs:
            lines.append(f"- Most PRs: {most_prs[0]} ({most_prs[1]})")
        most_reviews = stats.most_reviews()
        if most_reviews:
            lines.append(f"- Most reviews: {most_reviews[0]} ({most_reviews[1]})")

        ranking = stats.assignee_ranking()
        if ranking:
            lines.extend(["", "### Assignee LOC (overall)", ""])
            for login, totals in ranking:
                lines.append(f"- {login}: {totals.total} LOC total, {totals.count} PRs, avg {totals.average} LOC/PR")

        lines.extend(["", "### LOC per PR (overall)", ""])
        lines.append(f"- Total LOC (effective): {stats.total_loc}")
        lines.append(f"- Average LOC per PR: {stats.average_loc}")

        lines.extend(["", "### PRs with most changes", ""])
        if stats.top_additions:
            lines.append(f"- Additions: {stats.top_additions.metrics.additions} — {pr_label(stats.top_additions.pr)}")
        if stats.top_deletions:
            lines.append(f"- Deletions: {stats.top_deletions.metrics.deletions} — {pr_label(stats.top_deletions.pr)}")
        if stats.top_changed_files:
            lines.append(f"- Changed files: {stats.top_changed_files.metrics.changed_files} — "
                         f"{pr_label(stats.top_changed_files.pr)}")

        lines.extend(["", "### Files with most changes", ""])
        by_additions = stats.busiest_file_by_additions()
        if by_additions:
            lines.append(f"- Additions: {by_additions[0]} ({by_additions[1].additions})")
        by_deletions = stats.busiest_file_by_deletions()
        if by_deletions:
            lines.append(f"- Deletions: {by_deletions[0]} ({by_deletions[1].deletions})")
        by_prs = stats.busiest_file_by_prs()
        if by_prs:
            lines.append(f"- Most PRs touching: {by_prs[0]} ({by_prs[1].prs})")

        top_pair = stats.top_pair()
        if top_pair:
            (first, second), count = top_pair
            lines.extend(["", "### Top author-reviewer pair", ""])
            lines.append(f"- {first} & {second} ({count} reviews)")

        lines.extend(["", "### Lead time to merge (overall)", ""])
        if stats.shortest_lead:
            lines.append(f"- Shortest: {humanize_duration(stats.shortest_lead.seconds)} — "
                         f"{pr_label(stats.shortest_lead.pr)}")
        if stats.longest_lead:
            lines.append(f"- Longest: {humanize_duration(stats.longest_lead.seconds)} — "
                         f"{pr_label(stats.longest_lead.pr)}")

        lines.extend(["", "### Biggest reviews (overall by LOC)", ""])
        reviewer_total = stats.biggest_reviewer_total()
        if reviewer_total:
            lines.append(f"- Largest total: {reviewer_total[0]} ({reviewer_total[1].total} LOC reviewed)")
        single_review = stats.biggest_single_review()
        if single_review:
            login, highlight = single_review
            lines.append(f"- Largest single review: {login} ({highlight.loc} LOC, {assignees_label(highlight.pr)}) — "
                         f"{pr_label(highlight.pr)}")

        lines.extend(["", "### Biggest PRs total (assignee by LOC)", ""])
        assignee_total = stats.biggest_assignee_total()
        if assignee_total:
            lines.append(f"- Largest total as assignee: {assignee_total[0]} ({assignee_total[1].total} LOC)")

        return lines

    def _repository_lines(self, bucket: RepoBucket) -> List[str]:
        stats = bucket.stats
        lines = [f"### {bucket.repository}", ""]
        lines.append(f"- Total PRs: {len(bucket.prs)}")

        most_prs = stats.most_prs()
        if most_prs:
            lines.append(f"- Most PRs: {most_prs[0]} ({most_prs[1]})")
        most_reviews = stats.most_reviews()
        if most_reviews:
            lines.append(f"- Most reviews: {most_reviews[0]} ({most_reviews[1]})")

        lines.append(f"- Total LOC (effective, repo): {bucket.total_loc}")
        lines.append(f"- Average LOC per PR (repo): {stats.average_loc}")

        ranking = stats.assignee_ranking()
        if ranking:
            lines.extend(["", "- Assignee LOC (repo):"])
            for login, totals in ranking:
                lines.append(f"  - {login}: {totals.total} LOC total, {totals.count} PRs, avg {totals.average} LOC/PR")

        if stats.shortest_lead:
            lines.append(f"- Shortest lead time: {humanize_duration(stats.shortest_lead.seconds)} — "
                         f"{pr_label(stats.shortest_lead.pr)}")
        if stats.longest_lead:
            lines.append(f"- Longest lead time: {humanize_duration(stats.longest_lead.seconds)} — "
                         f"{pr_label(stats.longest_lead.pr)}")

        assignee_total = stats.biggest_assignee_total()
        if assignee_total:
            lines.append(f"- Biggest PRs total (assignee): {assignee_total[0]} ({assignee_total[1].total} LOC)")

        if stats.top_additions:
            lines.append(f"- Most additions: {stats.top_additions.metrics.additions} — "
                         f"{pr_label(stats.top_additions.pr)}")
        if stats.top_deletions:
            lines.append(f"- Most deletions: {stats.top_deletions.metrics.deletions} — "
                         f"{pr_label(stats.top_deletions.pr)}")
        if stats.top_changed_files:
            lines.append(f"- Most changed files: {stats.top_changed_files.metrics.changed_files} — "
                         f"{pr_label(stats.top_changed_files.pr)}")

        by_additions = stats.busiest_file_by_additions()
        if by_additions:
            lines.append(f"- File additions: {by_additions[0]} ({by_additions[1].additions})")
        by_deletions = stats.busiest_file_by_deletions()
        if by_deletions:
            lines.append(f"- File deletions: {by_deletions[0]} ({by_deletions[1].deletions})")
        by_prs = stats.busiest_file_by_prs()
        if by_prs:
            lines.append(f"- File PRs touching: {by_prs[0]} ({by_prs[1].prs})")

        reviewer_total = stats.biggest_reviewer_total()
        if reviewer_total:
            lines.append(f"- Biggest reviews total: {reviewer_total[0]} ({reviewer_total[1].total} LOC reviewed)")
        single_review = stats.biggest_single_review()
        if single_review:
            login, highlight = single_review
            lines.append(f"- Biggest single review: {login} ({highlight.loc} LOC, {assignees_label(highlight.pr)}) — "
                         f"{pr_label(highlight.pr)}")

        return lines

    def print_summary(self, result: AnalysisResult, report_path: str):
        """Print a short console summary.

        Args:
            result: Analysis result
            report_path: Where the Markdown report was written
        """
        print("\n" + "="*80)
        print(f"{BOLD}ANALYSIS{RESET}")
        print("="*80)

        most_prs = result.overall.most_prs()
        if most_prs:
            print(f"Most PRs: {most_prs[0]} with {most_prs[1]} PRs")
        most_reviews = result.overall.most_reviews()
        if most_reviews:
            print(f"Most reviews: {most_reviews[0]} with {most_reviews[1]} approvals")
        print(f"Report written to: {CYAN}{report_path}{RESET}")
