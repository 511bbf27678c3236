"""
GitHub ingestion client used by the linker and the orchestrator.
All list endpoints go through fetch_all, which paginates, checks the request quota before
every page and retries rate-limited pages. Per-entity accessors degrade to empty results
(and log) instead of raising, so one deleted issue does not fail a whole organization.
"""
import logging
import time
from typing import List, Dict, Any, Optional, Callable, Tuple, TypeVar

import requests

from errors import NotFoundError, RateLimitedError, TransientNetworkError, RetryExhaustedError
from normalize.models import Repository, Issue, IssueComment, IssueEvent, PullRequest, Review, ReviewComment, Commit, ChangedFile
from normalize.util import (
    normalize_repository,
    normalize_issue,
    normalize_issue_comment,
    normalize_issue_event,
    normalize_pull_request,
    normalize_review,
    normalize_review_comment,
    normalize_commit,
    normalize_changed_file,
    reference_numbers,
)
from storage.retry import QuotaGuard, RetryPolicy, call_with_rate_limit_retry, parse_rate_headers, LOW_WATER_MARK, RESET_MARGIN

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PER_PAGE = 100

# failures absorbed by the per-entity accessors
_DEGRADED_ERRORS = (NotFoundError, TransientNetworkError, RetryExhaustedError)

CLOSED_BY_PULL_REQUESTS_QUERY = """
query closedByPullRequests($owner: String!, $repo: String!, $number: Int!, $after: String) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      closedByPullRequestsReferences(first: 100, includeClosedPrs: true, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes { number state repository { nameWithOwner } }
      }
    }
  }
}
"""

CLOSING_ISSUES_QUERY = """
query closingIssues($owner: String!, $repo: String!, $number: Int!, $after: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      closingIssuesReferences(first: 100, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes { number state repository { nameWithOwner } }
      }
    }
  }
}
"""

PULL_REQUEST_COMMITS_QUERY = """
query pullRequestCommits($owner: String!, $repo: String!, $number: Int!, $after: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      commits(first: 100, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes {
          commit {
            oid
            additions
            deletions
            authoredDate
            author { name date user { login } }
          }
        }
      }
    }
  }
}
"""


class GitHubClient:
    """Paginating, quota-aware GitHub client returning normalized entities."""

    def __init__(
        self,
        token: str,
        base_url: str = None,
        graphql_url: str = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        per_page: int = DEFAULT_PER_PAGE,
        retry_policy: Optional[RetryPolicy] = None,
        low_water_mark: int = LOW_WATER_MARK,
        reset_margin: float = RESET_MARGIN,
        check_quota: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.token = token
        self.base_url = (base_url or DEFAULT_API_URL).rstrip('/')
        self.graphql_url = graphql_url or f"{self.base_url}/graphql"
        self.headers = {
            "Authorization": f"Bearer {self.token}" if self.token else "",
            "Accept": "application/vnd.github+json",
        }
        self.session = session or requests.Session()
        self.timeout = timeout
        self.per_page = per_page
        self.retry_policy = retry_policy or RetryPolicy()
        self.quota_guard = QuotaGuard(self.rate_limit, low_water_mark, reset_margin, sleep=sleep, clock=clock) if check_quota else None
        self._sleep = sleep

    # --- transport -------------------------------------------------------

    def _check_response(self, resp) -> Any:
        status = getattr(resp, 'status_code', 0)
        if 200 <= status < 300:
            try:
                return resp.json()
            except ValueError as exc:
                raise TransientNetworkError(f"Malformed JSON from {resp.url}", status=status) from exc

        remaining, reset_at = parse_rate_headers(getattr(resp, 'headers', None))
        text = str(getattr(resp, 'text', '') or '')
        if status in (403, 429) and (remaining == 0 or 'rate limit' in text.lower()):
            raise RateLimitedError(f"Rate limited by {resp.url}", reset_at=reset_at)
        if status in (404, 410):
            raise NotFoundError(f"Not found: {resp.url}")
        raise TransientNetworkError(f"GitHub returned {status} for {resp.url}", status=status)

    def _get(self, path: str, params: Dict[str, Any] = None) -> Any:
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, headers=self.headers, params=params or {}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransientNetworkError(f"GET {url} failed: {exc}") from exc
        return self._check_response(resp)

    def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.post(self.graphql_url, headers=self.headers, json={"query": query, "variables": variables}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransientNetworkError(f"GraphQL request failed: {exc}") from exc
        data = self._check_response(resp)
        if not isinstance(data, dict):
            raise TransientNetworkError("GraphQL response is not an object")
        errors = [e for e in data.get('errors') or [] if isinstance(e, dict)]
        if errors:
            types = {e.get('type') for e in errors}
            message = '; '.join(str(e.get('message', '')) for e in errors)
            if 'RATE_LIMITED' in types:
                raise RateLimitedError(f"GraphQL rate limited: {message}")
            if 'NOT_FOUND' in types:
                raise NotFoundError(f"GraphQL not found: {message}")
            raise TransientNetworkError(f"GraphQL errors: {message}")
        return data.get('data') or {}

    # --- pagination ------------------------------------------------------

    def fetch_all(
        self,
        query: Callable[[Any], Any],
        cursor_advance: Callable[[Any, Any], Tuple[List[Any], Any]],
        start: Any = None,
        description: str = 'request',
    ) -> List[Any]:
        """Paginate until cursor_advance reports no further page.

        query(cursor) performs one request; cursor_advance(payload, cursor) returns
        (items, next_cursor) with next_cursor None on the last page. Items keep request order.
        """
        items: List[Any] = []
        cursor = start
        while True:
            payload = self._call(lambda: query(cursor), description)
            page_items, next_cursor = cursor_advance(payload, cursor)
            items.extend(page_items)
            if next_cursor is None:
                return items
            cursor = next_cursor

    def _call(self, request: Callable[[], T], description: str) -> T:
        return call_with_rate_limit_retry(request, self.retry_policy, guard=self.quota_guard, sleep=self._sleep, description=description)

    def _fetch_rest(self, path: str, params: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        base_params = dict(params or {})
        base_params['per_page'] = self.per_page

        def query(page):
            return self._get(path, dict(base_params, page=page))

        def advance(payload, page):
            data = payload if isinstance(payload, list) else []
            return data, (page + 1 if len(data) >= self.per_page else None)

        return self.fetch_all(query, advance, start=1, description=path)

    def _fetch_connection(self, query_text: str, variables: Dict[str, Any], path: Tuple[str, ...]) -> List[Dict[str, Any]]:
        description = '.'.join(path)

        def query(after):
            return self._graphql(query_text, dict(variables, after=after))

        def advance(payload, after):
            conn = payload
            for key in path:
                conn = conn.get(key) if isinstance(conn, dict) else None
            if not isinstance(conn, dict):
                raise NotFoundError(f"{description} missing from response for {variables}")
            nodes = [n for n in conn.get('nodes') or [] if n]
            page_info = conn.get('pageInfo') or {}
            return nodes, (page_info.get('endCursor') if page_info.get('hasNextPage') else None)

        return self.fetch_all(query, advance, description=description)

    def _degrade(self, description: str, fetch: Callable[[], T], default: T) -> T:
        try:
            return fetch()
        except _DEGRADED_ERRORS as exc:
            log.error("Error in %s: %s", description, exc)
            return default

    # --- quota -----------------------------------------------------------

    def rate_limit(self) -> Optional[Tuple[int, float]]:
        """Return (remaining, reset epoch seconds) for the core quota, or None when unavailable."""
        try:
            data = self._get('/rate_limit')
        except (NotFoundError, RateLimitedError, TransientNetworkError) as exc:
            log.debug("Could not read rate limit: %s", exc)
            return None
        core = ((data or {}).get('resources') or {}).get('core') or {}
        if 'remaining' not in core:
            return None
        return int(core.get('remaining') or 0), float(core.get('reset') or 0)

    # --- listings --------------------------------------------------------

    def list_org_repos(self, org: str) -> List[Repository]:
        raw = self._degrade(f"list_org_repos({org})", lambda: self._fetch_rest(f"/orgs/{org}/repos", {"type": "all"}), [])
        return [normalize_repository(r) for r in raw]

    def list_pull_requests(self, owner: str, repo: str) -> List[PullRequest]:
        raw = self._degrade(f"list_pull_requests({owner}/{repo})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/pulls", {"state": "all"}), [])
        return [normalize_pull_request(r) for r in raw]

    def list_issues(self, owner: str, repo: str) -> List[Issue]:
        """List issues in every state. Pull requests, which the endpoint also returns, are dropped."""
        raw = self._degrade(f"list_issues({owner}/{repo})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/issues", {"state": "all"}), [])
        return [normalize_issue(r) for r in raw if 'pull_request' not in r]

    # --- single entities -------------------------------------------------

    def get_issue(self, owner: str, repo: str, number: int) -> Optional[Issue]:
        raw = self._degrade(f"get_issue({owner}/{repo}#{number})", lambda: self._call(lambda: self._get(f"/repos/{owner}/{repo}/issues/{number}"), 'get_issue'), None)
        return normalize_issue(raw) if raw else None

    def get_pull_request(self, owner: str, repo: str, number: int) -> Optional[PullRequest]:
        raw = self._degrade(f"get_pull_request({owner}/{repo}#{number})", lambda: self._call(lambda: self._get(f"/repos/{owner}/{repo}/pulls/{number}"), 'get_pull_request'), None)
        return normalize_pull_request(raw) if raw else None

    def list_issue_comments(self, owner: str, repo: str, number: int) -> List[IssueComment]:
        raw = self._degrade(f"list_issue_comments({owner}/{repo}#{number})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/issues/{number}/comments"), [])
        return [normalize_issue_comment(r) for r in raw]

    def list_issue_events(self, owner: str, repo: str, number: int) -> List[IssueEvent]:
        raw = self._degrade(f"list_issue_events({owner}/{repo}#{number})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/issues/{number}/events"), [])
        return [normalize_issue_event(r) for r in raw]

    def list_reviews(self, owner: str, repo: str, number: int) -> List[Review]:
        raw = self._degrade(f"list_reviews({owner}/{repo}#{number})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/pulls/{number}/reviews"), [])
        return [normalize_review(r) for r in raw]

    def list_review_comments(self, owner: str, repo: str, number: int) -> List[ReviewComment]:
        raw = self._degrade(f"list_review_comments({owner}/{repo}#{number})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/pulls/{number}/comments"), [])
        return [normalize_review_comment(r) for r in raw]

    def list_pull_request_files(self, owner: str, repo: str, number: int) -> List[ChangedFile]:
        raw = self._degrade(f"list_pull_request_files({owner}/{repo}#{number})", lambda: self._fetch_rest(f"/repos/{owner}/{repo}/pulls/{number}/files"), [])
        return [normalize_changed_file(r) for r in raw]

    def list_commits(self, owner: str, repo: str, number: int) -> List[Commit]:
        """List pull request commits with additions/deletions (GraphQL, since REST listings omit stats)."""
        variables = {"owner": owner, "repo": repo, "number": number}
        nodes = self._degrade(
            f"list_commits({owner}/{repo}#{number})",
            lambda: self._fetch_connection(PULL_REQUEST_COMMITS_QUERY, variables, ('repository', 'pullRequest', 'commits')),
            [],
        )
        return [normalize_commit(n) for n in nodes]

    # --- linkage references ----------------------------------------------

    def closing_pull_requests(self, owner: str, repo: str, issue_number: int) -> List[int]:
        """Forward lookup: numbers of pull requests whose merge closes the issue."""
        variables = {"owner": owner, "repo": repo, "number": issue_number}
        nodes = self._degrade(
            f"closing_pull_requests({owner}/{repo}#{issue_number})",
            lambda: self._fetch_connection(CLOSED_BY_PULL_REQUESTS_QUERY, variables, ('repository', 'issue', 'closedByPullRequestsReferences')),
            [],
        )
        return reference_numbers(nodes, f"{owner}/{repo}")

    def closing_issues(self, owner: str, repo: str, pr_number: int) -> List[int]:
        """Reverse lookup: numbers of issues the pull request closes."""
        variables = {"owner": owner, "repo": repo, "number": pr_number}
        nodes = self._degrade(
            f"closing_issues({owner}/{repo}#{pr_number})",
            lambda: self._fetch_connection(CLOSING_ISSUES_QUERY, variables, ('repository', 'pullRequest', 'closingIssuesReferences')),
            [],
        )
        return reference_numbers(nodes, f"{owner}/{repo}")
