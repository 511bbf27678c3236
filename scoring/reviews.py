"""
Review aggregator.
Review activity across every reviewer of a pull request; scoring.reviewers applies the
same measures to one login at a time through review_activity().
"""
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Any

from normalize.models import PullRequest, Review, ReviewComment, IssueComment
from scoring.models import ReviewAnalytics
from scoring.utils import (
    millis_between,
    mean,
    mean_interval,
    span_millis,
    pr_duration_days,
    rate_averages,
    bucket_counts,
    reviews_by_id,
    count_addressed,
)


def _timestamps(reviews: Sequence[Review]) -> List[datetime]:
    return sorted(r.submitted_at for r in reviews if r.submitted_at is not None)


UNKNOWN_LOGIN = 'unknown'


def author_key(item) -> str:
    """Login of a review or comment; deleted accounts come back without one."""
    return item.author or UNKNOWN_LOGIN


def _group_by_author(items) -> Dict[str, list]:
    groups: Dict[str, list] = {}
    for item in items:
        groups.setdefault(author_key(item), []).append(item)
    return groups


def time_spent_reviewing(reviews: Sequence[Review]) -> int:
    """Sum over reviewers of the span between their first and last review."""
    return sum(span_millis(_timestamps(group)) for group in _group_by_author(reviews).values())


def review_activity(
    pr: PullRequest,
    reviews: Sequence[Review],
    review_comments: Sequence[ReviewComment],
    known_reviews: Dict,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Counts, timings, rates and calendar buckets shared by the review and reviewer aggregators."""
    review_times = _timestamps(reviews)
    total_time = time_spent_reviewing(reviews)
    addressed, ignored = count_addressed(review_comments, known_reviews)
    per_day, per_week, per_month = rate_averages(len(reviews), pr_duration_days(pr.created_at, pr.closed_at, now))
    reviews_day, reviews_week, reviews_month = bucket_counts(review_times)
    comments_day, comments_week, comments_month = bucket_counts(c.created_at for c in review_comments)
    return {
        'total_reviews': len(reviews),
        'total_time_spent_reviewing': total_time,
        'total_review_comments': len(review_comments),
        'total_review_comments_addressed': addressed,
        'total_review_comments_ignored': ignored,
        'average_time_spent_reviewing': total_time / len(reviews) if reviews else 0.0,
        'average_time_between_reviews': mean_interval(review_times),
        'average_reviews_per_day': per_day,
        'average_reviews_per_week': per_week,
        'average_reviews_per_month': per_month,
        'total_reviews_per_day': reviews_day,
        'total_reviews_per_week': reviews_week,
        'total_reviews_per_month': reviews_month,
        'total_review_comments_per_day': comments_day,
        'total_review_comments_per_week': comments_week,
        'total_review_comments_per_month': comments_month,
    }


def analyze_reviews(
    pr: PullRequest,
    reviews: Sequence[Review],
    review_comments: Sequence[ReviewComment],
    issue_comments: Sequence[IssueComment] = (),
    now: Optional[datetime] = None,
) -> ReviewAnalytics:
    """
    Aggregate review behaviour for one pull request.

    request_to_completion_times maps each reviewer to the mean of (submitted - pr created);
    completion_to_addressed_times maps each review commenter to the mean of
    (comment created - parent review submitted) over comments whose review is known.
    Issue comments are accepted for a uniform call signature but do not count as reviews.
    """
    reviews = list(reviews or [])
    review_comments = list(review_comments or [])
    known = reviews_by_id(reviews)

    reviews_per_reviewer = {login: len(group) for login, group in _group_by_author(reviews).items()}

    request_to_completion: Dict[str, float] = {}
    for login, group in _group_by_author(reviews).items():
        elapsed = [millis_between(pr.created_at, r.submitted_at) for r in group]
        request_to_completion[login] = mean([e for e in elapsed if e is not None])

    completion_to_addressed: Dict[str, float] = {}
    for login, group in _group_by_author(review_comments).items():
        elapsed = []
        for comment in group:
            parent = known.get(comment.review_id)
            if parent is not None:
                elapsed.append(millis_between(parent.submitted_at, comment.created_at))
        completion_to_addressed[login] = mean([e for e in elapsed if e is not None])

    return ReviewAnalytics(
        total_review_requests=len(pr.requested_reviewers),
        request_to_completion_times=request_to_completion,
        completion_to_addressed_times=completion_to_addressed,
        reviews_per_reviewer=reviews_per_reviewer,
        **review_activity(pr, reviews, review_comments, known, now),
    )
