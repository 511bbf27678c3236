"""
Analytics record types produced by the aggregators.
Attributes are snake_case; to_dict() emits the camelCase keys read by the report viewer.
"""
from typing import Dict, List, Optional, Any


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def _serialize(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    return value


class _Record:
    """Base for analytics records: FIELDS lists the attributes in output order."""

    FIELDS: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(name): _serialize(getattr(self, name)) for name in self.FIELDS}

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"{type(self).__name__}({self.to_dict()!r})"


class CommitAnalytics(_Record):
    """Commit activity of one pull request. Durations are milliseconds."""

    FIELDS = (
        'total_commits', 'lines_added', 'lines_removed', 'commits_per_contributor',
        'time_from_first_commit_to_last_commit', 'time_from_last_commit_to_close',
        'average_time_between_commits', 'pr_duration_days',
        'average_commits_per_day', 'average_commits_per_week', 'average_commits_per_month',
        'total_commits_per_day', 'total_commits_per_week', 'total_commits_per_month',
    )

    def __init__(self, total_commits: int = 0, lines_added: int = 0, lines_removed: int = 0, commits_per_contributor: Optional[Dict[str, int]] = None,
                 time_from_first_commit_to_last_commit: int = 0, time_from_last_commit_to_close: int = 0, average_time_between_commits: float = 0,
                 pr_duration_days: int = 0, average_commits_per_day: float = 0, average_commits_per_week: float = 0, average_commits_per_month: float = 0,
                 total_commits_per_day: Optional[Dict[str, int]] = None, total_commits_per_week: Optional[Dict[str, int]] = None,
                 total_commits_per_month: Optional[Dict[str, int]] = None):
        self.total_commits = total_commits
        self.lines_added = lines_added
        self.lines_removed = lines_removed
        self.commits_per_contributor = commits_per_contributor or {}
        self.time_from_first_commit_to_last_commit = time_from_first_commit_to_last_commit
        self.time_from_last_commit_to_close = time_from_last_commit_to_close
        self.average_time_between_commits = average_time_between_commits
        self.pr_duration_days = pr_duration_days
        self.average_commits_per_day = average_commits_per_day
        self.average_commits_per_week = average_commits_per_week
        self.average_commits_per_month = average_commits_per_month
        self.total_commits_per_day = total_commits_per_day or {}
        self.total_commits_per_week = total_commits_per_week or {}
        self.total_commits_per_month = total_commits_per_month or {}

    @classmethod
    def empty(cls) -> 'CommitAnalytics':
        return cls()


class PullRequestAnalytics(_Record):
    """Lifecycle of one pull request. Durations are milliseconds; open/merge durations are None until they happen."""

    FIELDS = (
        'time_from_open_to_close', 'time_from_open_to_merge', 'total_commits', 'total_comments',
        'total_reviews', 'total_reviewers', 'total_review_requests', 'total_review_comments',
        'total_review_comments_addressed', 'total_review_comments_ignored', 'total_persons_involved',
        'total_files_changed',
        'average_time_from_review_request_to_review_completion',
        'average_time_from_review_completion_to_review_addressed',
    )

    def __init__(self, time_from_open_to_close: Optional[int], time_from_open_to_merge: Optional[int], total_commits: int, total_comments: int,
                 total_reviews: int, total_reviewers: int, total_review_requests: int, total_review_comments: int,
                 total_review_comments_addressed: int, total_review_comments_ignored: int, total_persons_involved: int,
                 average_time_from_review_request_to_review_completion: float, average_time_from_review_completion_to_review_addressed: float,
                 total_files_changed: int = 0):
        self.time_from_open_to_close = time_from_open_to_close
        self.time_from_open_to_merge = time_from_open_to_merge
        self.total_commits = total_commits
        self.total_comments = total_comments
        self.total_reviews = total_reviews
        self.total_reviewers = total_reviewers
        self.total_review_requests = total_review_requests
        self.total_review_comments = total_review_comments
        self.total_review_comments_addressed = total_review_comments_addressed
        self.total_review_comments_ignored = total_review_comments_ignored
        self.total_persons_involved = total_persons_involved
        self.total_files_changed = total_files_changed
        self.average_time_from_review_request_to_review_completion = average_time_from_review_request_to_review_completion
        self.average_time_from_review_completion_to_review_addressed = average_time_from_review_completion_to_review_addressed


class ReviewAnalytics(_Record):
    """Review activity across all reviewers of one pull request."""

    FIELDS = (
        'total_reviews', 'total_time_spent_reviewing', 'total_review_comments',
        'total_review_comments_addressed', 'total_review_comments_ignored', 'total_review_requests',
        'average_time_spent_reviewing', 'average_time_between_reviews',
        'average_reviews_per_day', 'average_reviews_per_week', 'average_reviews_per_month',
        'total_reviews_per_day', 'total_reviews_per_week', 'total_reviews_per_month',
        'total_review_comments_per_day', 'total_review_comments_per_week', 'total_review_comments_per_month',
        'request_to_completion_times', 'completion_to_addressed_times', 'reviews_per_reviewer',
    )

    def __init__(self, **values):
        for name in self.FIELDS:
            setattr(self, name, values.get(name))


class ReviewerStats(_Record):
    """Review activity of a single login on one pull request."""

    FIELDS = (
        'login', 'total_reviews', 'total_review_comments', 'total_review_comments_addressed',
        'total_review_comments_ignored', 'average_time_spent_reviewing', 'total_time_spent_reviewing',
        'average_time_between_reviews', 'average_reviews_per_day', 'average_reviews_per_week',
        'average_reviews_per_month', 'total_reviews_per_day', 'total_reviews_per_week',
        'total_reviews_per_month', 'total_review_comments_per_day', 'total_review_comments_per_week',
        'total_review_comments_per_month', 'request_to_completion_times', 'completion_to_addressed_times',
    )

    def __init__(self, login: str):
        self.login = login
        self.total_reviews = 0
        self.total_review_comments = 0
        self.total_review_comments_addressed = 0
        self.total_review_comments_ignored = 0
        self.average_time_spent_reviewing = 0.0
        self.total_time_spent_reviewing = 0
        self.average_time_between_reviews = 0.0
        self.average_reviews_per_day = 0.0
        self.average_reviews_per_week = 0.0
        self.average_reviews_per_month = 0.0
        self.total_reviews_per_day: Dict[str, int] = {}
        self.total_reviews_per_week: Dict[str, int] = {}
        self.total_reviews_per_month: Dict[str, int] = {}
        self.total_review_comments_per_day: Dict[str, int] = {}
        self.total_review_comments_per_week: Dict[str, int] = {}
        self.total_review_comments_per_month: Dict[str, int] = {}
        self.request_to_completion_times: Dict[str, int] = {}
        self.completion_to_addressed_times: Dict[str, int] = {}


class AnalyticsRecord(_Record):
    """Everything computed for one linked pull request and the issue it closes."""

    FIELDS = (
        'time_from_open_to_close', 'time_from_pr_open_to_issue_close', 'total_contributors_that_attempted',
        'has_linked_pr', 'has_multiple_linked_prs', 'total_prs_from_author_that_closed_issue',
        'total_comments_from_contributor_that_closed_issue', 'issue_sentiment_score', 'pr_sentiment_score',
        'pull_request_analytics', 'review_analytics', 'reviewer_stats', 'commit_analytics',
        'issue', 'pull_request',
    )

    def __init__(self, **values):
        for name in self.FIELDS:
            setattr(self, name, values.get(name))

    @property
    def reviewer_logins(self) -> List[str]:
        return [s.login for s in self.reviewer_stats or []]
