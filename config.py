"""
Run configuration.
Values are layered: built-in defaults, then an optional YAML file, then environment
variables, then explicit overrides (normally the CLI flags). Later layers win; None never
overrides a value.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from storage.retry import LOW_WATER_MARK, RATE_LIMIT_WAIT

log = logging.getLogger(__name__)

CONFIG_FILENAME = 'pr-analytics.yaml'

ENV_VARS = {
    'github_token': 'GITHUB_TOKEN',
    'orgs': 'PR_ANALYTICS_ORGS',
    'output_dir': 'PR_ANALYTICS_OUTPUT_DIR',
    'max_workers': 'PR_ANALYTICS_MAX_WORKERS',
    'timeout': 'PR_ANALYTICS_TIMEOUT',
    'low_water_mark': 'PR_ANALYTICS_LOW_WATER_MARK',
    'rate_limit_wait': 'PR_ANALYTICS_RATE_LIMIT_WAIT',
    'max_rate_limit_retries': 'PR_ANALYTICS_MAX_RATE_LIMIT_RETRIES',
}

_CONVERTERS = {
    'max_workers': int,
    'repo_workers': int,
    'timeout': float,
    'low_water_mark': int,
    'rate_limit_wait': float,
    'max_rate_limit_retries': int,
}


def _split_orgs(value: Any) -> List[str]:
    raw = value.split(',') if isinstance(value, str) else (value or [])
    orgs: List[str] = []
    for item in raw:
        org = str(item).strip()
        if org and org not in orgs:
            orgs.append(org)
    return orgs


class Settings:
    """Resolved settings for one run."""

    def __init__(
        self,
        github_token: Optional[str] = None,
        orgs: Optional[List[str]] = None,
        output_dir: str = 'output',
        max_workers: int = 8,
        repo_workers: int = 2,
        timeout: float = 30.0,
        low_water_mark: int = LOW_WATER_MARK,
        rate_limit_wait: float = RATE_LIMIT_WAIT,
        max_rate_limit_retries: Optional[int] = None,
        write_summary: bool = True,
    ):
        self.github_token = github_token
        self.orgs = orgs or []
        self.output_dir = output_dir
        self.max_workers = max_workers
        self.repo_workers = repo_workers
        self.timeout = timeout
        self.low_water_mark = low_water_mark
        self.rate_limit_wait = rate_limit_wait
        self.max_rate_limit_retries = max_rate_limit_retries
        self.write_summary = write_summary

    def update(self, values: Dict[str, Any], source: str = 'overrides'):
        for key, value in values.items():
            if value is None:
                continue
            if not hasattr(self, key):
                log.warning("Ignoring unknown setting %r from %s", key, source)
                continue
            if key == 'orgs':
                value = _split_orgs(value)
            elif key in _CONVERTERS:
                try:
                    value = _CONVERTERS[key](value)
                except (TypeError, ValueError) as exc:
                    raise ValueError(f"Invalid value for {key} from {source}: {value!r}") from exc
            setattr(self, key, value)

    def __repr__(self):
        return f"Settings(orgs={self.orgs!r}, output_dir={self.output_dir!r}, max_workers={self.max_workers})"


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Read a YAML mapping of settings; an empty file yields {}."""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def env_settings(environ=None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    return {key: environ.get(var) or None for key, var in ENV_VARS.items()}


def load_settings(config_path: Optional[str] = None, environ=None, **overrides) -> Settings:
    """
    Resolve Settings from defaults, YAML, environment and overrides.

    config_path defaults to ./pr-analytics.yaml when that file exists; an explicit path
    that does not exist raises FileNotFoundError.
    """
    settings = Settings()
    path = config_path
    if path is None and os.path.exists(CONFIG_FILENAME):
        path = CONFIG_FILENAME
    if path:
        settings.update(load_yaml_config(path), source=path)
    settings.update(env_settings(environ), source='environment')
    settings.update(overrides)
    return settings
