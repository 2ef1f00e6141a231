"""Built-in reserved roles."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from bastion.data import load_yaml
from bastion.models.descriptor import RoleDescriptor

logger = logging.getLogger(__name__)

RESERVED_METADATA_KEY = "_reserved"


class ReservedRolesStore:
    """Read-only lookup of reserved role descriptors."""

    def __init__(self, descriptors: Mapping[str, RoleDescriptor]) -> None:
        self._descriptors = dict(descriptors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReservedRolesStore:
        return cls({name: RoleDescriptor.from_dict(name, entry) for name, entry in data.items()})

    @classmethod
    def load(cls, path: Path | None = None) -> ReservedRolesStore:
        store = cls.from_dict(load_yaml("reserved_roles.yaml", path))
        logger.info("Loaded %d reserved roles", len(store.names()))
        return store

    def names(self) -> frozenset[str]:
        return frozenset(self._descriptors)

    def is_reserved(self, name: str) -> bool:
        return name in self._descriptors

    def descriptor(self, name: str) -> RoleDescriptor | None:
        return self._descriptors.get(name)
