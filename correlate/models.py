"""
Linkage models produced by correlate.linker.
"""
from typing import Dict, List, Any, Optional


class LinkageIndex:
    """
    Resolved issue <-> pull request relationship for one repository.

    issue_to_prs is multi-valued (ordered, no duplicates); pr_to_issue holds the single
    canonical issue of each pull request. untracked and multiply_linked collect report
    entries for issues without a closing pull request and for ambiguous linkage.
    """

    def __init__(self, owner: str, repo: str):
        self.owner = owner
        self.repo = repo
        self.issue_to_prs: Dict[int, List[int]] = {}
        self.pr_to_issue: Dict[int, int] = {}
        self.untracked: List[Dict[str, Any]] = []
        self.multiply_linked: List[Dict[str, Any]] = []

    def add_forward_link(self, issue_number: int, pr_number: int):
        prs = self.issue_to_prs.setdefault(issue_number, [])
        if pr_number not in prs:
            prs.append(pr_number)
        # a pull request keeps the first issue it was linked to
        self.pr_to_issue.setdefault(pr_number, issue_number)

    def add_reverse_link(self, pr_number: int, issue_number: int):
        self.pr_to_issue.setdefault(pr_number, issue_number)

    def issue_for(self, pr_number: int) -> Optional[int]:
        return self.pr_to_issue.get(pr_number)

    def prs_for(self, issue_number: Optional[int]) -> List[int]:
        if issue_number is None:
            return []
        return list(self.issue_to_prs.get(issue_number, []))

    def is_linked(self, pr_number: int) -> bool:
        return pr_number in self.pr_to_issue
