"""Bundled YAML catalogs and the loader shared by everything that reads them."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from bastion.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_yaml(resource: str, path: Path | None = None) -> dict[str, Any]:
    """Read a YAML mapping from ``path`` or from the bundled data directory."""
    try:
        if path is not None:
            with open(path) as f:
                data = yaml.safe_load(f)
        else:
            data = yaml.safe_load(resources.files(__name__).joinpath(resource).read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load %s: %s", path or resource, e)
        raise ConfigurationError(f"Cannot load {path or resource}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path or resource} must contain a mapping")
    return data
