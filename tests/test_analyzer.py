import json
import threading
import unittest
from unittest.mock import patch

import pytest

from analyzer import AnalysisRun, AnalysisResultTree
from errors import PersistenceError
from normalize.models import Repository, IssueComment, IssueEvent
from scoring.models import CommitAnalytics
from storage.writer import ReportWriter
from fakes import FakeClient, ts, make_pr, make_issue, make_review, make_comment, make_commit

NOW = ts('2024-02-01T00:00:00Z')


def _client(**overrides):
    """Two repositories: app links issues 42 -> [10, 11] and 5 <- 7 (reverse); lib has nothing linked."""
    params = dict(
        repos={'org': [Repository('org', 'app'), Repository('org', 'lib')]},
        pull_requests={
            'app': [
                make_pr(10, author='alice', created='2024-01-02T00:00:00Z', closed='2024-01-05T00:00:00Z'),
                make_pr(11, author='bob', created='2024-01-03T00:00:00Z'),
                make_pr(7, author='alice', created='2024-01-04T00:00:00Z', closed='2024-01-06T00:00:00Z'),
                make_pr(8, author='dora', created='2024-01-04T00:00:00Z'),
            ],
            'lib': [make_pr(1, author='erin')],
        },
        issues={'app': [make_issue(42, closed='2024-01-05T00:00:00Z'), make_issue(5), make_issue(6)]},
        forward={('app', 42): [10, 11]},
        reverse={('app', 7): [5]},
        reviews={('app', 10): [make_review(1, 'bob', '2024-01-03T00:00:00Z')]},
        review_comments={('app', 10): [make_comment(2, 'carl', '2024-01-03T00:00:00Z', review_id=1)]},
        issue_comments={('app', 42): [IssueComment(3, 'alice', ts('2024-01-02T00:00:00Z'))]},
        issue_events={('app', 42): [IssueEvent('assigned', 'alice')]},
        commits={('app', 10): [make_commit('a', '2024-01-02T10:00:00Z'), make_commit('b', '2024-01-04T10:00:00Z')]},
    )
    params.update(overrides)
    return FakeClient(**params)


def _run(tmp_path, client, **kwargs):
    run = AnalysisRun(client, ReportWriter(str(tmp_path)), ['org'], max_workers=3, repo_workers=2, now=NOW, **kwargs)
    return run, run.run()


class TestAnalysisResultTree(unittest.TestCase):
    def test_insert_is_write_once(self):
        tree = AnalysisResultTree()
        tree.insert('org', 'app', 1, CommitAnalytics())
        with self.assertRaises(ValueError):
            tree.insert('org', 'app', 1, CommitAnalytics())
        self.assertEqual(len(tree), 1)

    def test_concurrent_inserts(self):
        tree = AnalysisResultTree()

        def worker(repo):
            for n in range(100):
                tree.insert('org', repo, n, CommitAnalytics(total_commits=n))

        threads = [threading.Thread(target=worker, args=(f"r{i}",)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(tree), 600)
        self.assertEqual(list(tree.to_dict()['org']['r0'])[:3], ['0', '1', '2'])


def test_full_run_writes_every_artifact(tmp_path):
    run, tree = _run(tmp_path, _client())

    assert len(tree) == 3
    assert tree.get('org', 'app', 8) is None
    for number in (10, 11, 7):
        assert (tmp_path / 'analytics' / 'org' / 'app' / f"{number}.json").exists()

    results = json.loads((tmp_path / 'complete-analytics.json').read_text())
    assert sorted(results['org']['app']) == ['10', '11', '7']
    record = results['org']['app']['10']
    assert record['hasMultipleLinkedPrs'] is True
    assert record['commitAnalytics']['totalCommits'] == 2
    assert record['totalContributorsThatAttempted'] == 1
    assert record['totalCommentsFromContributorThatClosedIssue'] == 1
    assert results['org']['app']['7']['hasMultipleLinkedPrs'] is False
    assert results['org']['app']['7']['issue']['number'] == 5

    untracked = json.loads((tmp_path / 'untracked-issues.json').read_text())
    assert untracked == [{'owner': 'org', 'repo': 'app', 'issue': 5}, {'owner': 'org', 'repo': 'app', 'issue': 6}]
    multiply = json.loads((tmp_path / 'multiply-linked.json').read_text())
    assert multiply == [{'owner': 'org', 'repo': 'app', 'issue': 42, 'linkedPrs': [10, 11]}]
    graph = json.loads((tmp_path / 'interaction-graph.json').read_text())
    assert graph == [{'author': 'alice', 'participants': ['bob', 'carl']}, {'author': 'bob', 'participants': ['alice']}]
    assert (tmp_path / 'summary.md').exists()
    assert len(run.written) == 5


def test_failed_pull_request_is_omitted(tmp_path, caplog):
    run, tree = _run(tmp_path, _client(broken_prs={11}))
    assert tree.get('org', 'app', 11) is None
    assert tree.get('org', 'app', 10) is not None
    assert run.failed_pull_requests == ['org/app#11']
    assert 'Skipping org/app#11' in caplog.text


def test_failed_repository_is_omitted(tmp_path):
    client = _client()
    original = client.list_issues

    def list_issues(owner, repo):
        if repo == 'lib':
            raise RuntimeError('listing exploded')
        return original(owner, repo)

    client.list_issues = list_issues
    run, tree = _run(tmp_path, client)
    assert run.failed_repositories == ['org/lib']
    assert len(tree) == 3


def test_persistence_failure_aborts_run(tmp_path):
    client = _client()
    with patch.object(ReportWriter, 'write_pull_request', side_effect=PersistenceError('disk full')):
        with pytest.raises(PersistenceError):
            _run(tmp_path, client)
    assert not (tmp_path / 'complete-analytics.json').exists()


def test_summary_can_be_skipped(tmp_path):
    run, _ = _run(tmp_path, _client(), write_summary=False)
    assert not (tmp_path / 'summary.md').exists()
    assert len(run.written) == 4


def test_empty_organization(tmp_path):
    run, tree = _run(tmp_path, FakeClient())
    assert len(tree) == 0
    assert json.loads((tmp_path / 'complete-analytics.json').read_text()) == {}
    assert json.loads((tmp_path / 'interaction-graph.json').read_text()) == []
