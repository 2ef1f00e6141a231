"""Bastion configuration management."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from bastion.errors import ConfigurationError

DEFAULT_RESTRICTED_INDICES = [
    ".security",
    ".security-*",
    ".fleet-*",
    ".async-search*",
    ".tasks",
]


@dataclass
class Config:
    """Bastion configuration."""

    home: Path = field(default_factory=lambda: Path.home() / ".bastion")
    log_level: str = "INFO"
    restricted_indices: list[str] = field(
        default_factory=lambda: list(DEFAULT_RESTRICTED_INDICES)
    )
    service_account_namespace: str = "bastion"

    # Catalog overrides; None means the bundled data files
    privileges_file: Path | None = None
    service_accounts_file: Path | None = None
    reserved_roles_file: Path | None = None

    role_cache_size: int = 1000

    @classmethod
    def load(cls, home: Path | None = None) -> Config:
        """Load config from defaults, env vars, then YAML file."""
        config = cls()

        if home:
            config.home = home

        # Override from env
        env_home = os.environ.get("BASTION_HOME")
        if env_home:
            config.home = Path(env_home)

        env_log = os.environ.get("BASTION_LOG_LEVEL")
        if env_log:
            config.log_level = env_log

        env_restricted = os.environ.get("BASTION_RESTRICTED_INDICES")
        if env_restricted:
            config.restricted_indices = [
                p.strip() for p in env_restricted.split(",") if p.strip()
            ]

        # Load YAML config if exists
        config_file = config.home / "config.yaml"
        if config_file.exists():
            try:
                with open(config_file) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid config file {config_file}: {e}") from e
            for key, value in data.items():
                if key in _PATH_FIELDS:
                    setattr(config, key, Path(value) if value else None)
                elif key == "restricted_indices":
                    config.restricted_indices = [str(p) for p in value or []]
                elif hasattr(config, key):
                    expected_type = type(getattr(config, key))
                    setattr(config, key, expected_type(value))

        return config

    @property
    def config_file(self) -> Path:
        return self.home / "config.yaml"

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=self.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    def save(self) -> None:
        """Save current config to YAML."""
        self.home.mkdir(parents=True, exist_ok=True)
        data = {
            "log_level": self.log_level,
            "restricted_indices": self.restricted_indices,
            "service_account_namespace": self.service_account_namespace,
            "role_cache_size": self.role_cache_size,
        }
        for key in _PATH_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = str(value)
        with open(self.config_file, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


_PATH_FIELDS = ("privileges_file", "service_accounts_file", "reserved_roles_file")
