"""
Commit aggregator.
"""
from datetime import datetime
from typing import Dict, Optional, Sequence

from normalize.models import PullRequest, Commit
from scoring.models import CommitAnalytics
from scoring.utils import (
    millis_between,
    mean_interval,
    span_millis,
    pr_duration_days,
    rate_averages,
    bucket_counts,
)


def _author_key(commit: Commit) -> str:
    return commit.author_login or commit.author_name or 'unknown'


def analyze_commits(pull_request: PullRequest, commits: Sequence[Commit], now: Optional[datetime] = None) -> CommitAnalytics:
    """
    Summarize the commits of one pull request.

    Returns the all-zero CommitAnalytics when there are no commits. The per-day average
    divides by the inclusive lifetime of the pull request (open ones run until now).
    """
    if not commits:
        return CommitAnalytics.empty()

    per_contributor: Dict[str, int] = {}
    for commit in commits:
        key = _author_key(commit)
        per_contributor[key] = per_contributor.get(key, 0) + 1

    timestamps = sorted(c.authored_at for c in commits if c.authored_at is not None)
    to_close = 0
    if timestamps and pull_request.closed_at is not None:
        to_close = millis_between(timestamps[-1], pull_request.closed_at)

    duration = pr_duration_days(pull_request.created_at, pull_request.closed_at, now)
    per_day, per_week, per_month = rate_averages(len(commits), duration)
    by_day, by_week, by_month = bucket_counts(timestamps)

    return CommitAnalytics(
        total_commits=len(commits),
        lines_added=sum(c.additions for c in commits),
        lines_removed=sum(c.deletions for c in commits),
        commits_per_contributor=per_contributor,
        time_from_first_commit_to_last_commit=span_millis(timestamps),
        time_from_last_commit_to_close=to_close,
        average_time_between_commits=mean_interval(timestamps),
        pr_duration_days=duration,
        average_commits_per_day=per_day,
        average_commits_per_week=per_week,
        average_commits_per_month=per_month,
        total_commits_per_day=by_day,
        total_commits_per_week=by_week,
        total_commits_per_month=by_month,
    )
