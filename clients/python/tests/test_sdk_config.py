from __future__ import annotations

import pytest

from tally_client_sdk import ConfigError, load_config

_ENV_KEYS = [
    "TALLY_ENV",
    "TALLY_API_BASE_URL",
    "TALLY_API_BASE_URL_PROD",
    "TALLY_TIMEOUT_SECONDS",
    "TALLY_RETRIES",
    "TALLY_SYNC_INTERVAL_SECONDS",
    "TALLY_QUEUE_DIR",
    "TALLY_VERIFY_SSL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TALLY_API_BASE_URL", "https://api.example.com/")
    cfg = load_config(str(tmp_path / "missing.env"))
    assert cfg.api_base_url == "https://api.example.com"
    assert cfg.normalized_env == "dev"
    assert cfg.retries == 3
    assert cfg.sync_interval_seconds == 5.0
    assert cfg.queue_dir is None
    assert cfg.verify_ssl is True


def test_load_config_env_specific_url(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TALLY_ENV", "prod")
    monkeypatch.setenv("TALLY_API_BASE_URL", "https://fallback.example.com")
    monkeypatch.setenv("TALLY_API_BASE_URL_PROD", "https://prod.example.com")
    monkeypatch.setenv("TALLY_VERIFY_SSL", "false")
    monkeypatch.setenv("TALLY_QUEUE_DIR", str(tmp_path))
    cfg = load_config(str(tmp_path / "missing.env"))
    assert cfg.api_base_url == "https://prod.example.com"
    assert cfg.verify_ssl is False
    assert cfg.queue_dir == str(tmp_path)


def test_load_config_from_env_file(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("TALLY_API_BASE_URL=https://file.example.com\nTALLY_SYNC_INTERVAL_SECONDS=2\n")
    cfg = load_config(str(env_file))
    assert cfg.api_base_url == "https://file.example.com"
    assert cfg.sync_interval_seconds == 2.0


def test_load_config_requires_base_url(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.env"))


@pytest.mark.parametrize(
    "key,value",
    [("TALLY_RETRIES", "-1"), ("TALLY_RETRIES", "many"), ("TALLY_SYNC_INTERVAL_SECONDS", "0")],
)
def test_load_config_rejects_bad_values(monkeypatch, tmp_path, key, value) -> None:
    monkeypatch.setenv("TALLY_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.env"))
