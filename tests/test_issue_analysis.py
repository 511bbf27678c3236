import unittest

from correlate.models import LinkageIndex
from normalize.models import IssueComment, IssueEvent, ChangedFile
from scoring.issue import analyze_issue, count_attempted
from scoring.sentiment import sentiment_score
from fakes import DAY_MS, ts, make_pr, make_issue, make_review, make_commit


def _index(links):
    index = LinkageIndex('org', 'app')
    for issue, prs in links.items():
        for pr in prs:
            index.add_forward_link(issue, pr)
    return index


class TestIssueRecord(unittest.TestCase):
    def setUp(self):
        self.issue = make_issue(42, created='2024-01-01T00:00:00Z', closed='2024-01-08T00:00:00Z', body='This is great work')
        self.pr10 = make_pr(10, author='alice', created='2024-01-03T00:00:00Z', closed='2024-01-08T00:00:00Z')
        self.pr11 = make_pr(11, author='alice', created='2024-01-04T00:00:00Z')
        self.pr12 = make_pr(12, author='bob', created='2024-01-04T00:00:00Z')

    def test_multiple_linked_prs(self):
        index = _index({42: [10, 11, 12]})
        record = analyze_issue(
            self.issue, self.pr10, index,
            issue_comments=[IssueComment(1, 'alice', ts('2024-01-02T00:00:00Z')), IssueComment(2, 'carol', None)],
            issue_events=[IssueEvent('assigned', 'alice'), IssueEvent('assigned', 'bob'), IssueEvent('assigned', 'alice'), IssueEvent('labeled', 'zed')],
            reviews=[make_review(1, 'bob', '2024-01-04T00:00:00Z')],
            commits=[make_commit('a', '2024-01-03T00:00:00Z')],
            files=[ChangedFile('x.py')],
            pull_requests_by_number={10: self.pr10, 11: self.pr11, 12: self.pr12},
        )
        self.assertTrue(record.has_linked_pr)
        self.assertTrue(record.has_multiple_linked_prs)
        self.assertEqual(record.time_from_open_to_close, 7 * DAY_MS)
        self.assertEqual(record.time_from_pr_open_to_issue_close, 5 * DAY_MS)
        self.assertEqual(record.total_contributors_that_attempted, 2)
        self.assertEqual(record.total_prs_from_author_that_closed_issue, 2)
        self.assertEqual(record.total_comments_from_contributor_that_closed_issue, 1)
        self.assertEqual(record.pull_request_analytics.total_files_changed, 1)
        self.assertEqual(record.commit_analytics.total_commits, 1)
        self.assertEqual(record.reviewer_logins, ['bob'])

    def test_reverse_linked_pr_is_not_multiple(self):
        index = _index({42: [10]})
        index.add_reverse_link(11, 42)
        record = analyze_issue(self.issue, self.pr11, index, now=ts('2024-01-10T00:00:00Z'))
        self.assertFalse(record.has_multiple_linked_prs)
        self.assertEqual(record.total_prs_from_author_that_closed_issue, 0)
        self.assertEqual(record.commit_analytics, record.commit_analytics.empty())

    def test_missing_issue_keeps_multiple_link_flag(self):
        index = _index({42: [10, 11]})
        record = analyze_issue(None, self.pr10, index, pull_requests_by_number={10: self.pr10, 11: self.pr11})
        self.assertTrue(record.has_multiple_linked_prs)
        self.assertEqual(record.total_prs_from_author_that_closed_issue, 2)
        self.assertIsNone(record.issue)

    def test_missing_issue(self):
        index = _index({})
        index.add_reverse_link(10, 99)
        record = analyze_issue(None, self.pr10, index)
        data = record.to_dict()
        self.assertIsNone(data['timeFromOpenToClose'])
        self.assertIsNone(data['timeFromPrOpenToIssueClose'])
        self.assertIsNone(data['issue'])
        self.assertEqual(data['issueSentimentScore'], 0.0)
        self.assertEqual(data['pullRequest']['number'], 10)
        self.assertEqual(data['pullRequest']['createdAt'], '2024-01-03T00:00:00Z')

    def test_wire_keys(self):
        record = analyze_issue(self.issue, self.pr10, _index({42: [10]}))
        data = record.to_dict()
        for key in ('hasLinkedPr', 'hasMultipleLinkedPrs', 'pullRequestAnalytics', 'reviewAnalytics',
                    'reviewerStats', 'commitAnalytics', 'issueSentimentScore', 'prSentimentScore',
                    'totalContributorsThatAttempted', 'totalPrsFromAuthorThatClosedIssue'):
            self.assertIn(key, data)
        self.assertEqual(data['issue']['labels'], [])
        self.assertGreater(data['issueSentimentScore'], 0)


class TestSentiment(unittest.TestCase):
    def test_empty_text(self):
        self.assertEqual(sentiment_score(''), 0.0)
        self.assertEqual(sentiment_score(None), 0.0)
        self.assertEqual(sentiment_score('!!! ...'), 0.0)

    def test_polarity(self):
        self.assertGreater(sentiment_score('Great fix, thank you, this is excellent'), 0)
        self.assertLess(sentiment_score('This is a terrible, awful bug'), 0)

    def test_neutral_text(self):
        self.assertEqual(sentiment_score('the table has four legs'), 0.0)

    def test_count_attempted_ignores_other_events(self):
        self.assertEqual(count_attempted([IssueEvent('assigned', None), IssueEvent('closed', 'x')]), 0)


if __name__ == '__main__':
    unittest.main()
