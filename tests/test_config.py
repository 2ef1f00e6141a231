"""Tests for configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from bastion.config import DEFAULT_RESTRICTED_INDICES, Config
from bastion.core.cache import RoleCache, RoleCompiler
from bastion.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BASTION_HOME", "BASTION_LOG_LEVEL", "BASTION_RESTRICTED_INDICES"):
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path: Path) -> None:
    config = Config.load(tmp_path)
    assert config.home == tmp_path
    assert config.log_level == "INFO"
    assert config.restricted_indices == DEFAULT_RESTRICTED_INDICES
    assert config.service_account_namespace == "bastion"
    assert config.privileges_file is None
    assert config.role_cache_size == 1000


def test_defaults_are_not_shared() -> None:
    a, b = Config(), Config()
    a.restricted_indices.append(".extra")
    assert ".extra" not in b.restricted_indices


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BASTION_HOME", str(tmp_path / "env-home"))
    monkeypatch.setenv("BASTION_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("BASTION_RESTRICTED_INDICES", ".a, .b-*,")
    config = Config.load(tmp_path)
    assert config.home == tmp_path / "env-home"
    assert config.log_level == "DEBUG"
    assert config.restricted_indices == [".a", ".b-*"]


def test_yaml_file(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(
        "log_level: WARNING\n"
        "role_cache_size: '50'\n"
        "restricted_indices: ['.internal*']\n"
        "privileges_file: /etc/bastion/privileges.yaml\n"
        "unknown_key: ignored\n"
    )
    config = Config.load(tmp_path)
    assert config.log_level == "WARNING"
    assert config.role_cache_size == 50
    assert config.restricted_indices == [".internal*"]
    assert config.privileges_file == Path("/etc/bastion/privileges.yaml")
    assert not hasattr(config, "unknown_key")


def test_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("log_level: [unclosed\n")
    with pytest.raises(ConfigurationError, match="Invalid config file"):
        Config.load(tmp_path)


def test_save_round_trip(tmp_path: Path) -> None:
    config = Config(
        home=tmp_path / "home",
        log_level="DEBUG",
        restricted_indices=[".x"],
        service_account_namespace="acme",
        reserved_roles_file=tmp_path / "roles.yaml",
        role_cache_size=10,
    )
    config.save()
    assert config.config_file.exists()

    loaded = Config.load(tmp_path / "home")
    assert loaded.log_level == "DEBUG"
    assert loaded.restricted_indices == [".x"]
    assert loaded.service_account_namespace == "acme"
    assert loaded.reserved_roles_file == tmp_path / "roles.yaml"
    assert loaded.privileges_file is None
    assert loaded.role_cache_size == 10


def test_configure_logging(config: Config, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    config.log_level = "debug"
    config.configure_logging()
    assert calls["level"] == "DEBUG"


def test_compiler_and_cache_from_config(config: Config) -> None:
    config.restricted_indices = [".private*"]
    config.role_cache_size = 5
    compiler = RoleCompiler.from_config(config)
    assert compiler.restricted.is_restricted(".private-1")
    assert not compiler.restricted.is_restricted(".security")
    assert "read" in compiler.catalog.index.names()

    cache = RoleCache.from_config(config)
    assert cache.max_size == 5
