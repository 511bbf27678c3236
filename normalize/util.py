"""
Normalization utility helpers.
Convert raw GitHub REST/GraphQL payloads into normalize.models entities so that
aggregators never deal with missing keys or unparsed timestamps.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List
from normalize.models import (
    Repository,
    Issue,
    IssueComment,
    IssueEvent,
    PullRequest,
    Review,
    ReviewComment,
    Commit,
    ChangedFile,
)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp ('2024-01-01T00:00:00Z') into an aware UTC datetime.
    Returns None for empty or unparseable values.
    """
    if not raw or not isinstance(raw, str):
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _login(raw: Any) -> Optional[str]:
    """Return the login of a nested user object ({'login': ...}) or None."""
    if isinstance(raw, dict):
        return raw.get('login') or None
    return None


def _int_or_none(raw: Any) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def normalize_repository(raw: Dict[str, Any]) -> Repository:
    owner = _login(raw.get('owner')) or raw.get('owner_login') or ''
    return Repository(owner=owner, name=raw.get('name') or '')


def normalize_issue(raw: Dict[str, Any]) -> Issue:
    """Create a normalized Issue from a REST issue payload."""
    labels = []
    for label in raw.get('labels') or []:
        name = label.get('name') if isinstance(label, dict) else label
        if name:
            labels.append(name)
    return Issue(
        number=int(raw['number']),
        title=raw.get('title') or '',
        body=raw.get('body') or '',
        author=_login(raw.get('user')),
        state=raw.get('state') or 'open',
        created_at=parse_timestamp(raw.get('created_at')),
        closed_at=parse_timestamp(raw.get('closed_at')),
        labels=labels,
    )


def normalize_pull_request(raw: Dict[str, Any]) -> PullRequest:
    """Create a normalized PullRequest from a REST pull request payload (list or detail form)."""
    requested = [login for login in (_login(r) for r in raw.get('requested_reviewers') or []) if login]
    return PullRequest(
        number=int(raw['number']),
        title=raw.get('title') or '',
        body=raw.get('body') or '',
        author=_login(raw.get('user')),
        state=raw.get('state') or 'open',
        created_at=parse_timestamp(raw.get('created_at')),
        closed_at=parse_timestamp(raw.get('closed_at')),
        merged_at=parse_timestamp(raw.get('merged_at')),
        requested_reviewers=requested,
        draft=bool(raw.get('draft')),
    )


def normalize_issue_comment(raw: Dict[str, Any]) -> IssueComment:
    return IssueComment(
        comment_id=_int_or_none(raw.get('id')) or 0,
        author=_login(raw.get('user')),
        created_at=parse_timestamp(raw.get('created_at')),
        body=raw.get('body') or '',
    )


def normalize_issue_event(raw: Dict[str, Any]) -> IssueEvent:
    # for 'assigned' events the assignee is the interesting login; fall back to the actor
    actor = _login(raw.get('assignee')) or _login(raw.get('actor'))
    return IssueEvent(event=raw.get('event') or '', actor=actor, created_at=parse_timestamp(raw.get('created_at')))


def normalize_review(raw: Dict[str, Any]) -> Review:
    return Review(
        review_id=_int_or_none(raw.get('id')) or 0,
        author=_login(raw.get('user')),
        submitted_at=parse_timestamp(raw.get('submitted_at')),
        state=raw.get('state') or '',
        body=raw.get('body') or '',
    )


def normalize_review_comment(raw: Dict[str, Any]) -> ReviewComment:
    return ReviewComment(
        comment_id=_int_or_none(raw.get('id')) or 0,
        author=_login(raw.get('user')),
        created_at=parse_timestamp(raw.get('created_at')),
        review_id=_int_or_none(raw.get('pull_request_review_id')),
        in_reply_to_id=_int_or_none(raw.get('in_reply_to_id')),
        body=raw.get('body') or '',
    )


def normalize_commit(node: Dict[str, Any]) -> Commit:
    """Create a Commit from a GraphQL PullRequestCommit node ({'commit': {...}})."""
    commit = node.get('commit') if isinstance(node.get('commit'), dict) else node
    author = commit.get('author') or {}
    return Commit(
        sha=commit.get('oid') or '',
        author_login=_login(author.get('user')),
        author_name=author.get('name') or None,
        authored_at=parse_timestamp(author.get('date') or commit.get('authoredDate')),
        additions=int(commit.get('additions') or 0),
        deletions=int(commit.get('deletions') or 0),
    )


def normalize_changed_file(raw: Dict[str, Any]) -> ChangedFile:
    return ChangedFile(
        filename=raw.get('filename') or '',
        status=raw.get('status') or '',
        additions=int(raw.get('additions') or 0),
        deletions=int(raw.get('deletions') or 0),
    )


def reference_numbers(nodes: List[Dict[str, Any]], repository: Optional[str] = None) -> List[int]:
    """
    Extract issue/pull request numbers from GraphQL reference nodes, keeping order and dropping duplicates.
    When `repository` ("owner/name") is given, nodes that belong to another repository are skipped.
    """
    numbers: List[int] = []
    for node in nodes:
        node = node or {}
        owner_name = (node.get('repository') or {}).get('nameWithOwner')
        if repository and owner_name and owner_name.lower() != repository.lower():
            continue
        number = _int_or_none(node.get('number'))
        if number is not None and number not in numbers:
            numbers.append(number)
    return numbers
