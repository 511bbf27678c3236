"""
Linker resolving which pull requests close which issues in a repository.

Two passes:
- forward: ask every issue which pull requests are configured to close it
- reverse: for pull requests the forward pass did not reach, ask which issues they close
  and keep the first one. Reverse links are not added to issue_to_prs.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from correlate.models import LinkageIndex
from normalize.models import Repository, Issue, PullRequest

log = logging.getLogger(__name__)

DEFAULT_LINKER_WORKERS = 4


def _lookup_all(lookup, numbers: List[int], max_workers: int) -> List[List[int]]:
    """Run lookup(number) for every number, returning results in input order."""
    if max_workers <= 1 or len(numbers) <= 1:
        return [lookup(n) for n in numbers]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lookup, numbers))


def forward_pass(client, repo: Repository, issues: Sequence[Issue], index: LinkageIndex, max_workers: int = DEFAULT_LINKER_WORKERS):
    numbers = [issue.number for issue in issues]
    results = _lookup_all(lambda n: client.closing_pull_requests(repo.owner, repo.name, n), numbers, max_workers)
    for issue_number, linked_prs in zip(numbers, results):
        if not linked_prs:
            index.untracked.append({'owner': repo.owner, 'repo': repo.name, 'issue': issue_number})
            continue
        for pr_number in linked_prs:
            index.add_forward_link(issue_number, pr_number)
        if len(linked_prs) > 1:
            index.multiply_linked.append({'owner': repo.owner, 'repo': repo.name, 'issue': issue_number, 'linkedPrs': list(linked_prs)})
        log.debug("Issue %s/%s#%s closed by %s", repo.owner, repo.name, issue_number, linked_prs)


def reverse_pass(client, repo: Repository, pull_requests: Sequence[PullRequest], index: LinkageIndex, max_workers: int = DEFAULT_LINKER_WORKERS):
    missing = [pr.number for pr in pull_requests if not index.is_linked(pr.number)]
    if missing:
        log.info("No linked issue found for %d PR(s) in %s, trying reverse lookup...", len(missing), repo.full_name)
    results = _lookup_all(lambda n: client.closing_issues(repo.owner, repo.name, n), missing, max_workers)
    for pr_number, closing_issues in zip(missing, results):
        if not closing_issues:
            log.info("No linked issue found using reverse lookup for %s#%s", repo.full_name, pr_number)
            continue
        index.add_reverse_link(pr_number, closing_issues[0])
        if len(closing_issues) > 1:
            index.multiply_linked.append({'owner': repo.owner, 'repo': repo.name, 'pr': pr_number, 'linkedIssues': list(closing_issues)})
        log.info("Found linked issue #%s for %s#%s using reverse lookup", closing_issues[0], repo.full_name, pr_number)


def link_issues_to_pull_requests(
    client,
    repo: Repository,
    issues: Sequence[Issue],
    pull_requests: Sequence[PullRequest],
    max_workers: int = DEFAULT_LINKER_WORKERS,
) -> LinkageIndex:
    """
    Build the LinkageIndex for one repository.

    Parameters:
        client: object exposing closing_pull_requests(owner, repo, issue) and closing_issues(owner, repo, pr).
        repo: the repository being linked.
        issues / pull_requests: the repository's listings.
        max_workers: concurrent lookups per pass; results are applied in input order so
            the index is identical across runs over the same data.

    Returns:
        LinkageIndex; pull requests absent from pr_to_issue are not analyzed.
    """
    index = LinkageIndex(repo.owner, repo.name)
    forward_pass(client, repo, issues, index, max_workers)
    reverse_pass(client, repo, pull_requests, index, max_workers)
    return index
