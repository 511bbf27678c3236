"""
Issue-level analytics record.
Combines the issue a pull request closes with the four pull request aggregators.
"""
from datetime import datetime
from typing import Dict, Optional, Sequence, Any

from correlate.models import LinkageIndex
from normalize.models import (
    Issue,
    IssueComment,
    IssueEvent,
    PullRequest,
    Review,
    ReviewComment,
    Commit,
    ChangedFile,
)
from scoring.commits import analyze_commits
from scoring.models import AnalyticsRecord
from scoring.pull_request import analyze_pull_request
from scoring.reviewers import analyze_reviewers
from scoring.reviews import analyze_reviews
from scoring.sentiment import sentiment_score
from scoring.utils import millis_between


def _iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat().replace('+00:00', 'Z') if moment else None


def issue_summary(issue: Optional[Issue]) -> Optional[Dict[str, Any]]:
    if issue is None:
        return None
    return {
        'number': issue.number,
        'title': issue.title,
        'author': issue.author,
        'state': issue.state,
        'labels': list(issue.labels),
        'createdAt': _iso(issue.created_at),
        'closedAt': _iso(issue.closed_at),
    }


def pull_request_summary(pr: Optional[PullRequest]) -> Optional[Dict[str, Any]]:
    if pr is None:
        return None
    return {
        'number': pr.number,
        'title': pr.title,
        'author': pr.author,
        'state': pr.state,
        'draft': pr.draft,
        'requestedReviewers': list(pr.requested_reviewers),
        'createdAt': _iso(pr.created_at),
        'closedAt': _iso(pr.closed_at),
        'mergedAt': _iso(pr.merged_at),
    }


def count_attempted(events: Sequence[IssueEvent]) -> int:
    """Distinct logins the issue was assigned to."""
    return len({e.actor for e in events or [] if e.event == 'assigned' and e.actor})


def analyze_issue(
    issue: Optional[Issue],
    pull_request: PullRequest,
    linkage: LinkageIndex,
    issue_comments: Sequence[IssueComment] = (),
    issue_events: Sequence[IssueEvent] = (),
    reviews: Sequence[Review] = (),
    review_comments: Sequence[ReviewComment] = (),
    commits: Sequence[Commit] = (),
    files: Sequence[ChangedFile] = (),
    pull_requests_by_number: Optional[Dict[int, PullRequest]] = None,
    now: Optional[datetime] = None,
) -> AnalyticsRecord:
    """
    Build the AnalyticsRecord for one linked pull request.

    Parameters:
        issue: the canonical issue, or None when it could not be fetched.
        pull_request: the pull request detail.
        linkage: the repository's LinkageIndex; issue_to_prs drives the multiple-link flag.
        issue_comments / issue_events: activity on the issue.
        reviews / review_comments / commits / files: activity on the pull request.
        pull_requests_by_number: the repository's pull request listing, used to find other
            linked pull requests by the same author.
        now: end of the lifetime of pull requests still open.
    """
    pull_requests_by_number = pull_requests_by_number or {}
    linked = linkage.prs_for(linkage.issue_for(pull_request.number))
    author = pull_request.author

    same_author_prs = 0
    for number in linked:
        other = pull_requests_by_number.get(number)
        if number == pull_request.number:
            other = pull_request
        if other is not None and author and other.author == author:
            same_author_prs += 1

    author_comments = sum(1 for c in issue_comments or [] if author and c.author == author)

    return AnalyticsRecord(
        time_from_open_to_close=millis_between(issue.created_at, issue.closed_at) if issue else None,
        time_from_pr_open_to_issue_close=millis_between(pull_request.created_at, issue.closed_at) if issue else None,
        total_contributors_that_attempted=count_attempted(issue_events),
        has_linked_pr=True,
        has_multiple_linked_prs=len(linked) > 1,
        total_prs_from_author_that_closed_issue=same_author_prs,
        total_comments_from_contributor_that_closed_issue=author_comments,
        issue_sentiment_score=sentiment_score(issue.body if issue else ''),
        pr_sentiment_score=sentiment_score(pull_request.body),
        pull_request_analytics=analyze_pull_request(pull_request, reviews, review_comments, issue_comments, commits, files),
        review_analytics=analyze_reviews(pull_request, reviews, review_comments, issue_comments, now),
        reviewer_stats=analyze_reviewers(pull_request, reviews, review_comments, now),
        commit_analytics=analyze_commits(pull_request, commits, now),
        issue=issue_summary(issue),
        pull_request=pull_request_summary(pull_request),
    )
