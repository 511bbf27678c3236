"""
Persistence of analysis artifacts under an output directory.

Layout:
    analytics/{org}/{repo}/{pr}.json   one AnalyticsRecord per pull request
    complete-analytics.json            the full result tree
    untracked-issues.json              issues without a closing pull request
    multiply-linked.json               issues / pull requests with several candidates
    interaction-graph.json             [{"author": ..., "participants": [...]}]
    summary.md                         run summary

Every file is written to a temporary sibling first and moved into place with os.replace,
so a reader never observes a half-written artifact. Any OSError is raised as
PersistenceError.
"""
import json
import logging
import os
import tempfile
from typing import Any

from errors import PersistenceError

log = logging.getLogger(__name__)

ANALYTICS_DIR = 'analytics'
RESULTS_FILE = 'complete-analytics.json'
UNTRACKED_FILE = 'untracked-issues.json'
MULTIPLY_LINKED_FILE = 'multiply-linked.json'
GRAPH_FILE = 'interaction-graph.json'
SUMMARY_FILE = 'summary.md'


def _to_jsonable(obj: Any) -> Any:
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    return str(obj)


class ReportWriter:
    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def path_for(self, *parts: str) -> str:
        return os.path.join(self.output_dir, *parts)

    def _write_text(self, path: str, content: str) -> str:
        directory = os.path.dirname(path) or '.'
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix=os.path.basename(path))
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                fh.write(content)
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    log.debug("Could not remove temporary file %s", tmp_path)
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
        log.debug("Wrote %s", path)
        return path

    def _write_json(self, path: str, payload: Any) -> str:
        return self._write_text(path, json.dumps(payload, indent=2, default=_to_jsonable))

    def write_pull_request(self, org: str, repo: str, number: int, record: Any) -> str:
        return self._write_json(self.path_for(ANALYTICS_DIR, org, repo, f"{number}.json"), record)

    def write_results(self, tree: Any) -> str:
        return self._write_json(self.path_for(RESULTS_FILE), tree)

    def write_untracked(self, entries: list) -> str:
        return self._write_json(self.path_for(UNTRACKED_FILE), entries)

    def write_multiply_linked(self, entries: list) -> str:
        return self._write_json(self.path_for(MULTIPLY_LINKED_FILE), entries)

    def write_graph(self, graph: Any) -> str:
        return self._write_json(self.path_for(GRAPH_FILE), graph.to_list() if hasattr(graph, 'to_list') else graph)

    def write_summary(self, markdown: str) -> str:
        return self._write_text(self.path_for(SUMMARY_FILE), markdown)
