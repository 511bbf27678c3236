"""
Orchestrator for a pr-analytics run.
Expands organizations into repositories, links issues to pull requests, analyzes every
linked pull request on a bounded worker pool and persists the results.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from correlate import InteractionGraph, link_issues_to_pull_requests, record_interactions
from correlate.linker import DEFAULT_LINKER_WORKERS
from correlate.models import LinkageIndex
from errors import PersistenceError
from normalize.models import Issue, PullRequest, Repository
from report.renderer import render_summary
from scoring.issue import analyze_issue
from scoring.models import AnalyticsRecord
from storage.writer import ReportWriter

log = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
DEFAULT_REPO_WORKERS = 2


class AnalysisResultTree:
    """org -> repo -> pull request number -> AnalyticsRecord; each key is written once."""

    def __init__(self):
        self._tree: Dict[str, Dict[str, Dict[int, AnalyticsRecord]]] = {}
        self._lock = threading.Lock()

    def insert(self, org: str, repo: str, number: int, record: AnalyticsRecord):
        with self._lock:
            prs = self._tree.setdefault(org, {}).setdefault(repo, {})
            if number in prs:
                raise ValueError(f"Result for {org}/{repo}#{number} already recorded")
            prs[number] = record

    def get(self, org: str, repo: str, number: int) -> Optional[AnalyticsRecord]:
        with self._lock:
            return self._tree.get(org, {}).get(repo, {}).get(number)

    def __len__(self):
        with self._lock:
            return sum(len(prs) for repos in self._tree.values() for prs in repos.values())

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Serializable copy with pull request numbers as string keys, in ascending order."""
        with self._lock:
            return {
                org: {
                    repo: {str(n): prs[n].to_dict() for n in sorted(prs)}
                    for repo, prs in sorted(repos.items())
                }
                for org, repos in sorted(self._tree.items())
            }


class AnalysisRun:
    """
    One analysis run over a set of organizations.

    Parameters:
        client: a GitHubClient (or any object with the same accessors).
        writer: ReportWriter receiving every artifact.
        orgs: organization logins to analyze.
        max_workers: size of the pull request pool.
        repo_workers: number of repositories processed at once; repository tasks wait on the
            pull request pool, never on their own pool.
        linker_workers: concurrent closing-reference lookups per linker pass.
        write_summary: also render summary.md at the end of the run.
        now: end of the lifetime of pull requests that are still open (defaults to the run start).
    """

    def __init__(
        self,
        client,
        writer: ReportWriter,
        orgs: List[str],
        max_workers: int = DEFAULT_MAX_WORKERS,
        repo_workers: int = DEFAULT_REPO_WORKERS,
        linker_workers: int = DEFAULT_LINKER_WORKERS,
        write_summary: bool = True,
        now: Optional[datetime] = None,
    ):
        self.client = client
        self.writer = writer
        self.orgs = list(orgs)
        self.max_workers = max(1, int(max_workers))
        self.repo_workers = max(1, int(repo_workers))
        self.linker_workers = max(1, int(linker_workers))
        self.write_summary = write_summary
        self.now = now or datetime.now(timezone.utc)
        self.tree = AnalysisResultTree()
        self.graph = InteractionGraph()
        self._reports_lock = threading.Lock()
        self._untracked: Dict[str, List[Dict[str, Any]]] = {}
        self._multiply_linked: Dict[str, List[Dict[str, Any]]] = {}
        self.failed_repositories: List[str] = []
        self.failed_pull_requests: List[str] = []
        self.written: List[str] = []

    @property
    def untracked(self) -> List[Dict[str, Any]]:
        with self._reports_lock:
            return [e for key in sorted(self._untracked) for e in self._untracked[key]]

    @property
    def multiply_linked(self) -> List[Dict[str, Any]]:
        with self._reports_lock:
            return [e for key in sorted(self._multiply_linked) for e in self._multiply_linked[key]]

    def _expand_orgs(self) -> List[Tuple[str, Repository]]:
        work = []
        for org in self.orgs:
            repos = self.client.list_org_repos(org)
            if not repos:
                log.warning("No repositories found for organization %s", org)
            log.info("Organization %s: %d repositories", org, len(repos))
            work.extend((org, repo) for repo in repos)
        return work

    def run(self) -> AnalysisResultTree:
        work = self._expand_orgs()
        with ThreadPoolExecutor(max_workers=self.repo_workers, thread_name_prefix='repo') as repo_pool, \
                ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='pr') as pr_pool:
            futures = {repo_pool.submit(self.process_repository, org, repo, pr_pool): (org, repo) for org, repo in work}
            try:
                for fut in as_completed(futures):
                    org, repo = futures[fut]
                    try:
                        fut.result()
                    except PersistenceError:
                        raise
                    except Exception as exc:
                        log.error("Skipping repository %s: %s", repo.full_name, exc)
                        self.failed_repositories.append(repo.full_name)
            except PersistenceError:
                repo_pool.shutdown(wait=False, cancel_futures=True)
                pr_pool.shutdown(wait=False, cancel_futures=True)
                raise
        self._write_run_artifacts()
        log.info("Analyzed %d pull request(s) across %d repositories", len(self.tree), len(work))
        return self.tree

    def _fetch_listings(self, repo: Repository) -> Tuple[List[PullRequest], List[Issue]]:
        with ThreadPoolExecutor(max_workers=2) as pool:
            prs = pool.submit(self.client.list_pull_requests, repo.owner, repo.name)
            issues = pool.submit(self.client.list_issues, repo.owner, repo.name)
            return prs.result(), issues.result()

    def process_repository(self, org: str, repo: Repository, pr_pool: ThreadPoolExecutor):
        pull_requests, issues = self._fetch_listings(repo)
        log.info("%s: %d pull requests, %d issues", repo.full_name, len(pull_requests), len(issues))
        index = link_issues_to_pull_requests(self.client, repo, issues, pull_requests, max_workers=self.linker_workers)
        with self._reports_lock:
            self._untracked[repo.full_name] = list(index.untracked)
            self._multiply_linked[repo.full_name] = list(index.multiply_linked)

        eligible = [pr for pr in pull_requests if index.is_linked(pr.number)]
        if not eligible:
            log.info("%s: no linked pull requests", repo.full_name)
            return
        prs_by_number = {pr.number: pr for pr in pull_requests}
        issues_by_number = {issue.number: issue for issue in issues}

        futures = {
            pr_pool.submit(self.process_pull_request, org, repo, pr, index, prs_by_number, issues_by_number): pr.number
            for pr in eligible
        }
        for fut in as_completed(futures):
            number = futures[fut]
            try:
                fut.result()
            except PersistenceError:
                raise
            except Exception as exc:
                log.error("Skipping %s#%s: %s", repo.full_name, number, exc)
                self.failed_pull_requests.append(f"{repo.full_name}#{number}")

    def process_pull_request(
        self,
        org: str,
        repo: Repository,
        listed: PullRequest,
        index: LinkageIndex,
        prs_by_number: Dict[int, PullRequest],
        issues_by_number: Dict[int, Issue],
    ) -> AnalyticsRecord:
        owner, name, number = repo.owner, repo.name, listed.number
        pull_request = self.client.get_pull_request(owner, name, number) or listed

        issue_number = index.issue_for(number)
        issue = issues_by_number.get(issue_number)
        if issue is None and issue_number is not None:
            issue = self.client.get_issue(owner, name, issue_number)

        issue_comments, issue_events = [], []
        if issue_number is not None:
            issue_comments = self.client.list_issue_comments(owner, name, issue_number)
            issue_events = self.client.list_issue_events(owner, name, issue_number)
        reviews = self.client.list_reviews(owner, name, number)
        review_comments = self.client.list_review_comments(owner, name, number)
        commits = self.client.list_commits(owner, name, number)
        files = self.client.list_pull_request_files(owner, name, number)

        record = analyze_issue(
            issue,
            pull_request,
            index,
            issue_comments=issue_comments,
            issue_events=issue_events,
            reviews=reviews,
            review_comments=review_comments,
            commits=commits,
            files=files,
            pull_requests_by_number=prs_by_number,
            now=self.now,
        )
        record_interactions(pull_request, reviews, review_comments, issue_comments, self.graph)
        self.writer.write_pull_request(org, name, number, record)
        self.tree.insert(org, name, number, record)
        log.info("Analyzed %s#%s (issue #%s)", repo.full_name, number, issue_number)
        return record

    def _write_run_artifacts(self):
        tree = self.tree.to_dict()
        graph = self.graph.to_list()
        untracked = self.untracked
        multiply_linked = self.multiply_linked
        self.written.append(self.writer.write_results(tree))
        self.written.append(self.writer.write_untracked(untracked))
        self.written.append(self.writer.write_multiply_linked(multiply_linked))
        self.written.append(self.writer.write_graph(graph))
        if self.write_summary:
            markdown = render_summary(
                tree,
                untracked=untracked,
                multiply_linked=multiply_linked,
                graph=graph,
                generated_at=self.now.isoformat(),
                orgs=self.orgs,
            )
            self.written.append(self.writer.write_summary(markdown))
