"""
Correlate package: issue/pull request linkage and the contributor interaction graph.
"""

from .linker import link_issues_to_pull_requests
from .graph import InteractionGraph, record_interactions

__all__ = ["link_issues_to_pull_requests", "InteractionGraph", "record_interactions"]
