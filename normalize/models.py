"""
Typed snapshots of forge entities.
Built once at the fetcher boundary by normalize.util; aggregators only read them.
Timestamps are timezone-aware UTC datetimes or None.
"""

from datetime import datetime
from typing import List, Optional


class Repository:
    """A repository owned by an organization or user."""

    def __init__(self, owner: str, name: str):
        self.owner = owner
        self.name = name

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __repr__(self):
        return f"Repository({self.full_name!r})"


class Issue:
    """
    Normalized issue entity.
    """
    def __init__(self, number: int, title: str = '', body: str = '', author: Optional[str] = None, state: str = 'open', created_at: Optional[datetime] = None, closed_at: Optional[datetime] = None, labels: Optional[List[str]] = None):
        self.number = number
        self.title = title
        self.body = body
        self.author = author
        self.state = state
        self.created_at = created_at
        self.closed_at = closed_at
        self.labels = labels or []

    def __repr__(self):
        return f"Issue(#{self.number})"


class IssueComment:
    """A conversation comment on an issue or pull request."""

    def __init__(self, comment_id: int, author: Optional[str], created_at: Optional[datetime], body: str = ''):
        self.id = comment_id
        self.author = author
        self.created_at = created_at
        self.body = body


class IssueEvent:
    """A timeline event such as 'assigned' or 'closed'."""

    def __init__(self, event: str, actor: Optional[str], created_at: Optional[datetime] = None):
        self.event = event
        self.actor = actor
        self.created_at = created_at


class PullRequest:
    """
    Normalized pull request entity.
    """
    def __init__(self, number: int, title: str = '', body: str = '', author: Optional[str] = None, state: str = 'open', created_at: Optional[datetime] = None, closed_at: Optional[datetime] = None, merged_at: Optional[datetime] = None, requested_reviewers: Optional[List[str]] = None, draft: bool = False):
        self.number = number
        self.title = title
        self.body = body
        self.author = author
        self.state = state
        self.created_at = created_at
        self.closed_at = closed_at
        self.merged_at = merged_at
        self.requested_reviewers = requested_reviewers or []
        self.draft = draft

    def __repr__(self):
        return f"PullRequest(#{self.number})"


class Review:
    """A submitted (or pending) pull request review."""

    def __init__(self, review_id: int, author: Optional[str], submitted_at: Optional[datetime], state: str = '', body: str = ''):
        self.id = review_id
        self.author = author
        self.submitted_at = submitted_at
        self.state = state
        self.body = body


class ReviewComment:
    """
    An inline code review comment.
    review_id points at the review it was submitted with; in_reply_to_id is set for replies.
    """
    def __init__(self, comment_id: int, author: Optional[str], created_at: Optional[datetime], review_id: Optional[int] = None, in_reply_to_id: Optional[int] = None, body: str = ''):
        self.id = comment_id
        self.author = author
        self.created_at = created_at
        self.review_id = review_id
        self.in_reply_to_id = in_reply_to_id
        self.body = body


class Commit:
    """A commit on a pull request with its line statistics."""

    def __init__(self, sha: str, author_login: Optional[str] = None, author_name: Optional[str] = None, authored_at: Optional[datetime] = None, additions: int = 0, deletions: int = 0):
        self.sha = sha
        self.author_login = author_login
        self.author_name = author_name
        self.authored_at = authored_at
        self.additions = additions
        self.deletions = deletions


class ChangedFile:
    """A file touched by a pull request."""

    def __init__(self, filename: str, status: str = '', additions: int = 0, deletions: int = 0):
        self.filename = filename
        self.status = status
        self.additions = additions
        self.deletions = deletions
