"""
Per-reviewer statistics.
"""
from datetime import datetime
from typing import List, Optional, Sequence

from normalize.models import PullRequest, Review, ReviewComment
from scoring.models import ReviewerStats
from scoring.reviews import review_activity, author_key
from scoring.utils import millis_between, reviews_by_id


def _logins_in_order(reviews: Sequence[Review], review_comments: Sequence[ReviewComment]) -> List[str]:
    seen: List[str] = []
    for item in list(reviews) + list(review_comments):
        login = author_key(item)
        if login not in seen:
            seen.append(login)
    return seen


def analyze_reviewers(
    pr: PullRequest,
    reviews: Sequence[Review],
    review_comments: Sequence[ReviewComment],
    now: Optional[datetime] = None,
) -> List[ReviewerStats]:
    """
    One ReviewerStats per login that reviewed or left review comments, in order of first
    appearance. A login that only commented gets a record with zero reviews.

    Both timing maps are measured from pull request creation since the time each review
    was requested is not available.
    """
    reviews = list(reviews or [])
    review_comments = list(review_comments or [])
    known = reviews_by_id(reviews)

    results: List[ReviewerStats] = []
    for login in _logins_in_order(reviews, review_comments):
        own_reviews = [r for r in reviews if author_key(r) == login]
        own_comments = [c for c in review_comments if author_key(c) == login]
        stats = ReviewerStats(login)
        for name, value in review_activity(pr, own_reviews, own_comments, known, now).items():
            setattr(stats, name, value)
        for review in own_reviews:
            elapsed = millis_between(pr.created_at, review.submitted_at)
            if elapsed is not None:
                stats.request_to_completion_times[str(review.id)] = elapsed
        for comment in own_comments:
            elapsed = millis_between(pr.created_at, comment.created_at)
            if elapsed is not None:
                stats.completion_to_addressed_times[str(comment.id)] = elapsed
        results.append(stats)
    return results
