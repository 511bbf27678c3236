import pytest

from config import load_settings, Settings


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={})
    assert settings.orgs == []
    assert settings.output_dir == 'output'
    assert settings.max_rate_limit_retries is None
    assert settings.low_water_mark == 100
    assert settings.rate_limit_wait == 60.0


def test_layering_yaml_env_overrides(tmp_path):
    cfg = tmp_path / 'settings.yaml'
    cfg.write_text('orgs: [from-yaml]\nmax_workers: 3\ntimeout: 5\noutput_dir: yaml-out\n', encoding='utf-8')
    env = {'PR_ANALYTICS_MAX_WORKERS': '6', 'GITHUB_TOKEN': 'env-token', 'PR_ANALYTICS_ORGS': ''}

    settings = load_settings(str(cfg), environ=env, output_dir='cli-out', orgs=None)

    assert settings.orgs == ['from-yaml']
    assert settings.max_workers == 6
    assert settings.timeout == 5.0
    assert settings.github_token == 'env-token'
    assert settings.output_dir == 'cli-out'


def test_env_org_list_is_split(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={'PR_ANALYTICS_ORGS': 'one, two,,three'})
    assert settings.orgs == ['one', 'two', 'three']


def test_repeated_orgs_are_deduplicated_in_order(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_settings(environ={'PR_ANALYTICS_ORGS': 'a, b,a'}).orgs == ['a', 'b']
    assert load_settings(environ={}, orgs=['x', 'y', 'x']).orgs == ['x', 'y']


def test_default_config_file_in_working_directory(tmp_path, monkeypatch):
    (tmp_path / 'pr-analytics.yaml').write_text('max_rate_limit_retries: 4\n', encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    assert load_settings(environ={}).max_rate_limit_retries == 4


def test_invalid_values_raise(tmp_path):
    cfg = tmp_path / 'bad.yaml'
    cfg.write_text('max_workers: lots\n', encoding='utf-8')
    with pytest.raises(ValueError):
        load_settings(str(cfg), environ={})
    cfg.write_text('- just\n- a list\n', encoding='utf-8')
    with pytest.raises(ValueError):
        load_settings(str(cfg), environ={})


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / 'nope.yaml'), environ={})


def test_unknown_keys_are_ignored(caplog):
    settings = Settings()
    settings.update({'colour': 'blue', 'repo_workers': '4'}, source='test')
    assert settings.repo_workers == 4
    assert not hasattr(settings, 'colour')
    assert "Ignoring unknown setting 'colour'" in caplog.text
