"""
Report renderer: Markdown summary of an analysis run.
Renders report/templates/summary.md.j2 with Jinja2 from the result tree and the side reports.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from scoring.utils import MS_PER_DAY, mean

TEMPLATE_NAME = 'summary.md.j2'


def _environment() -> Environment:
    tmpl_dir = os.path.join(os.path.dirname(__file__), 'templates')
    return Environment(loader=FileSystemLoader(tmpl_dir), trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)


def _days(millis: Optional[float]) -> Optional[float]:
    if millis is None:
        return None
    return round(millis / MS_PER_DAY, 2)


def _record_dict(record: Any) -> Dict[str, Any]:
    return record.to_dict() if hasattr(record, 'to_dict') else dict(record)


def repository_rows(tree: Dict[str, Dict[str, Dict[Any, Any]]]) -> List[Dict[str, Any]]:
    """One row per analyzed repository with pull request counts and averages."""
    rows = []
    for org in sorted(tree):
        for repo in sorted(tree[org]):
            records = [_record_dict(r) for r in tree[org][repo].values()]
            pr_stats = [r.get('pullRequestAnalytics') or {} for r in records]
            commit_stats = [r.get('commitAnalytics') or {} for r in records]
            to_close = [s['timeFromOpenToClose'] for s in pr_stats if s.get('timeFromOpenToClose') is not None]
            rows.append({
                'name': f"{org}/{repo}",
                'pull_requests': len(records),
                'commits': sum(s.get('totalCommits', 0) for s in commit_stats),
                'reviews': sum(s.get('totalReviews', 0) for s in pr_stats),
                'avg_days_to_close': _days(mean(to_close)) if to_close else None,
                'multiple_linked': sum(1 for r in records if r.get('hasMultipleLinkedPrs')),
            })
    return rows


def top_collaborators(graph: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    """Authors with the most distinct participants, ties broken by login."""
    ranked = sorted(graph or [], key=lambda e: (-len(e.get('participants') or []), e.get('author') or ''))
    return [{'author': e['author'], 'count': len(e.get('participants') or [])} for e in ranked[:limit]]


def render_summary(
    tree: Dict[str, Dict[str, Dict[Any, Any]]],
    untracked: Optional[List[Dict[str, Any]]] = None,
    multiply_linked: Optional[List[Dict[str, Any]]] = None,
    graph: Optional[List[Dict[str, Any]]] = None,
    generated_at: Optional[str] = None,
    orgs: Optional[List[str]] = None,
) -> str:
    """Render the run summary as Markdown."""
    rows = repository_rows(tree)
    context = {
        'generated_at': generated_at or datetime.now(timezone.utc).isoformat(),
        'orgs': orgs or sorted(tree),
        'repositories': rows,
        'total_pull_requests': sum(r['pull_requests'] for r in rows),
        'untracked': untracked or [],
        'multiply_linked': multiply_linked or [],
        'collaborators': top_collaborators(graph or []),
        'edge_count': sum(len(e.get('participants') or []) for e in graph or []),
    }
    return _environment().get_template(TEMPLATE_NAME).render(**context)
