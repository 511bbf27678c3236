"""
CLI entry point for pr-analytics. Wires the pipeline: config -> fetch -> link -> analyze -> report
"""

import argparse
import logging
import sys

from analyzer import AnalysisRun
from config import load_settings, ENV_VARS
from errors import PersistenceError
from ingest.github import GitHubClient
from storage.retry import RetryPolicy
from storage.writer import ReportWriter

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pull request analytics for GitHub organizations")
    parser.add_argument("--org", action="append", dest="orgs", default=None, help="Organization to analyze (repeatable; or set PR_ANALYTICS_ORGS)")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML settings file (default: ./pr-analytics.yaml when present)")
    parser.add_argument("--output-dir", type=str, default=None, help="Directory receiving the analytics files")
    parser.add_argument("--workers", type=int, default=None, help="Pull requests analyzed concurrently")
    parser.add_argument("--github_token", type=str, default=None, help="GitHub API token (or set GITHUB_TOKEN env var)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    parser.add_argument("--max-rate-limit-retries", type=int, default=None, help="Give up on a rate-limited request after this many retries (default: retry forever)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--no-summary", action="store_true", help="Do not render summary.md")
    return parser


def _resolve_settings(args, parser):
    """Merge CLI flags over config file and environment; calls parser.error() on missing values."""
    try:
        settings = load_settings(
            args.config,
            github_token=args.github_token,
            orgs=args.orgs,
            output_dir=args.output_dir,
            max_workers=args.workers,
            timeout=args.timeout,
            max_rate_limit_retries=args.max_rate_limit_retries,
            write_summary=False if args.no_summary else None,
        )
    except (OSError, ValueError) as exc:
        parser.error(f"Invalid configuration: {exc}")

    missing = []
    if not settings.github_token:
        missing.append(f"github_token (CLI flag --github_token or env {ENV_VARS['github_token']})")
    if not settings.orgs:
        missing.append(f"organizations (CLI flag --org or env {ENV_VARS['orgs']})")
    if missing:
        parser.error('Missing required settings: ' + ', '.join(missing))
    return settings


def build_run(settings) -> AnalysisRun:
    policy = RetryPolicy(max_retries=settings.max_rate_limit_retries, wait_seconds=settings.rate_limit_wait)
    client = GitHubClient(
        settings.github_token,
        timeout=settings.timeout,
        retry_policy=policy,
        low_water_mark=settings.low_water_mark,
    )
    return AnalysisRun(
        client,
        ReportWriter(settings.output_dir),
        settings.orgs,
        max_workers=settings.max_workers,
        repo_workers=settings.repo_workers,
        write_summary=settings.write_summary,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT, datefmt="%H:%M:%S")

    settings = _resolve_settings(args, parser)
    run = build_run(settings)
    try:
        tree = run.run()
    except PersistenceError as exc:
        log.error("Aborting run: %s", exc)
        return 1

    for path in run.written:
        print(f"Wrote {path}")
    print(f"Analyzed {len(tree)} pull request(s) into {settings.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
