import threading
import unittest

from correlate.graph import InteractionGraph, record_interactions
from normalize.models import IssueComment
from fakes import make_pr, make_review, make_comment


class TestInteractionGraph(unittest.TestCase):
    def test_edges_from_author_to_participants(self):
        graph = InteractionGraph()
        pr = make_pr(1, author='alice')
        reviews = [make_review(1, 'bob', '2024-01-02T00:00:00Z'), make_review(2, 'alice', '2024-01-02T00:00:00Z')]
        comments = [make_comment(3, 'carl', '2024-01-02T00:00:00Z')]
        issue_comments = [IssueComment(4, 'dora', None), IssueComment(5, None, None)]

        record_interactions(pr, reviews, comments, issue_comments, graph)

        self.assertEqual(graph.participants('alice'), {'bob', 'carl', 'dora'})
        self.assertEqual(graph.to_list(), [{'author': 'alice', 'participants': ['bob', 'carl', 'dora']}])

    def test_repeated_interactions_are_no_ops(self):
        graph = InteractionGraph()
        pr = make_pr(1, author='alice')
        reviews = [make_review(1, 'bob', '2024-01-02T00:00:00Z')]
        record_interactions(pr, reviews, [], [], graph)
        record_interactions(pr, reviews + reviews, [], [], graph)
        self.assertEqual(graph.edge_count(), 1)

    def test_missing_pr_or_author_records_nothing(self):
        graph = InteractionGraph()
        record_interactions(None, [make_review(1, 'bob', None)], [], [], graph)
        record_interactions(make_pr(2, author=None), [make_review(1, 'bob', None)], [], [], graph)
        self.assertEqual(graph.to_list(), [])

    def test_author_without_other_participants_has_no_entry(self):
        graph = InteractionGraph()
        record_interactions(make_pr(1, author='alice'), [], [], [], graph)
        self.assertEqual(graph.authors(), [])

    def test_concurrent_updates(self):
        graph = InteractionGraph()

        def worker(offset):
            for i in range(200):
                graph.add_interactions(f"author{i % 5}", [f"user{offset}-{i}"])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(graph.edge_count(), 8 * 200)
        self.assertEqual(sorted(graph.authors()), [f"author{i}" for i in range(5)])


if __name__ == '__main__':
    unittest.main()
