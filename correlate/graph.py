"""
Contributor interaction graph.
An edge author -> participant means the participant reviewed or commented on a pull
request opened by author. Edges are a set; repeating an interaction changes nothing.
"""
import threading
from typing import Dict, List, Iterable, Optional, Set, Any, Sequence

from normalize.models import PullRequest, Review, ReviewComment, IssueComment


class InteractionGraph:
    """Run-scoped adjacency sets, safe to update from concurrent workers."""

    def __init__(self):
        self._edges: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def add_interactions(self, author: str, participants: Iterable[Optional[str]]):
        with self._lock:
            for participant in participants:
                if not participant or participant == author:
                    continue
                self._edges.setdefault(author, set()).add(participant)

    def participants(self, author: str) -> Set[str]:
        with self._lock:
            return set(self._edges.get(author, set()))

    def authors(self) -> List[str]:
        with self._lock:
            return list(self._edges.keys())

    def edge_count(self) -> int:
        with self._lock:
            return sum(len(p) for p in self._edges.values())

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize as [{'author': ..., 'participants': [...]}], authors and participants sorted."""
        with self._lock:
            return [{'author': author, 'participants': sorted(participants)} for author, participants in sorted(self._edges.items())]


def record_interactions(
    pull_request: Optional[PullRequest],
    reviews: Sequence[Review],
    review_comments: Sequence[ReviewComment],
    issue_comments: Sequence[IssueComment],
    graph: InteractionGraph,
):
    """Add author -> participant edges for everyone who reviewed or commented on the pull request."""
    if pull_request is None or not pull_request.author:
        return
    participants = [r.author for r in reviews or []]
    participants.extend(c.author for c in review_comments or [])
    participants.extend(c.author for c in issue_comments or [])
    graph.add_interactions(pull_request.author, participants)
