"""Tests for assistant_transport.core.config: TOML, env var, and .env loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from assistant_transport.core.config import (
    ENV_API,
    ENV_TIMEOUT,
    ENV_TOKEN,
    load_env_config,
    load_toml_config,
    resolve_config,
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch):
    for var in (ENV_API, ENV_TOKEN, ENV_TIMEOUT):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


def _write_toml(root: Path, text: str) -> None:
    config_dir = root / ".assistant-transport"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.toml").write_text(text)


class TestEnvConfig:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_API, "http://env.test")
        monkeypatch.setenv(ENV_TOKEN, "secret")
        monkeypatch.setenv(ENV_TIMEOUT, "12.5")
        assert load_env_config() == {"api": "http://env.test", "token": "secret", "timeout": 12.5}

    def test_bad_timeout_is_ignored(self, monkeypatch):
        monkeypatch.setenv(ENV_TIMEOUT, "soon")
        assert "timeout" not in load_env_config()

    def test_dotenv_file_is_loaded(self, tmp_path: Path, monkeypatch):
        # Registers ENV_API with monkeypatch so teardown removes what .env sets.
        monkeypatch.setenv(ENV_API, "placeholder")
        monkeypatch.delenv(ENV_API)
        (tmp_path / ".env").write_text(f"{ENV_API}=http://dotenv.test\n")
        assert load_env_config()["api"] == "http://dotenv.test"


class TestTomlConfig:
    def test_reads_transport_table(self, tmp_path: Path):
        _write_toml(tmp_path, '[transport]\napi = "http://toml.test"\ntimeout = 5\n')
        assert load_toml_config(str(tmp_path)) == {"api": "http://toml.test", "timeout": 5}

    def test_missing_file(self, tmp_path: Path):
        assert load_toml_config(str(tmp_path)) == {}

    def test_invalid_toml_is_skipped(self, tmp_path: Path):
        _write_toml(tmp_path, "[transport\n")
        assert load_toml_config(str(tmp_path)) == {}


class TestResolveConfig:
    def test_explicit_values_win(self, tmp_path: Path, monkeypatch):
        _write_toml(tmp_path, '[transport]\napi = "http://toml.test"\n')
        monkeypatch.setenv(ENV_API, "http://env.test")
        config = resolve_config("http://cli.test", token="tok", timeout=3)
        assert config.api == "http://cli.test"
        assert config.headers == {"Authorization": "Bearer tok"}
        assert config.timeout == 3.0

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        _write_toml(tmp_path, '[transport]\napi = "http://toml.test"\n\n[transport.body]\nmodel = "m"\n')
        monkeypatch.setenv(ENV_API, "http://env.test")
        config = resolve_config(cwd=str(tmp_path))
        assert config.api == "http://env.test"
        assert config.body == {"model": "m"}

    def test_missing_api_raises(self):
        with pytest.raises(ValueError, match=ENV_API):
            resolve_config()
