"""
Pull request lifecycle aggregator.
"""
from typing import List, Optional, Sequence

from normalize.models import PullRequest, Review, ReviewComment, IssueComment, Commit, ChangedFile
from scoring.models import PullRequestAnalytics
from scoring.utils import millis_between, mean, reviews_by_id, count_addressed


def _persons_involved(pr: PullRequest, reviews, review_comments, issue_comments) -> int:
    logins = {pr.author}
    logins.update(r.author for r in reviews)
    logins.update(c.author for c in review_comments)
    logins.update(c.author for c in issue_comments)
    logins.discard(None)
    return len(logins)


def analyze_pull_request(
    pr: PullRequest,
    reviews: Sequence[Review],
    review_comments: Sequence[ReviewComment],
    issue_comments: Sequence[IssueComment],
    commits: Sequence[Commit],
    files: Optional[Sequence[ChangedFile]] = None,
) -> PullRequestAnalytics:
    reviews = list(reviews or [])
    review_comments = list(review_comments or [])
    issue_comments = list(issue_comments or [])
    known = reviews_by_id(reviews)
    addressed, ignored = count_addressed(review_comments, known)

    request_to_completion: List[float] = []
    for review in reviews:
        elapsed = millis_between(pr.created_at, review.submitted_at)
        if elapsed is not None:
            request_to_completion.append(elapsed)

    completion_to_addressed: List[float] = []
    for comment in review_comments:
        parent = known.get(comment.review_id)
        if parent is None:
            continue
        elapsed = millis_between(parent.submitted_at, comment.created_at)
        if elapsed is not None:
            completion_to_addressed.append(elapsed)

    return PullRequestAnalytics(
        time_from_open_to_close=millis_between(pr.created_at, pr.closed_at),
        time_from_open_to_merge=millis_between(pr.created_at, pr.merged_at),
        total_commits=len(commits or []),
        total_comments=len(issue_comments) + len(review_comments) + len(reviews),
        total_reviews=len(reviews),
        total_reviewers=len({r.author for r in reviews if r.author}),
        total_review_requests=len(pr.requested_reviewers),
        total_review_comments=len(review_comments),
        total_review_comments_addressed=addressed,
        total_review_comments_ignored=ignored,
        total_persons_involved=_persons_involved(pr, reviews, review_comments, issue_comments),
        average_time_from_review_request_to_review_completion=mean(request_to_completion),
        average_time_from_review_completion_to_review_addressed=mean(completion_to_addressed),
        total_files_changed=len(files or []),
    )
