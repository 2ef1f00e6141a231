"""Compiled role cache and the swappable role snapshot."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass

from bastion.config import Config
from bastion.core.conditional import PredicateRegistry
from bastion.core.patterns import RestrictedIndices
from bastion.core.privileges import PrivilegeCatalog
from bastion.core.role import Role
from bastion.models.application import ApplicationPrivilegeDescriptor
from bastion.models.descriptor import RoleDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleCompiler:
    """Everything role compilation needs besides the descriptors."""

    catalog: PrivilegeCatalog
    restricted: RestrictedIndices
    predicates: PredicateRegistry
    application_privileges: tuple[ApplicationPrivilegeDescriptor, ...] = ()

    @classmethod
    def from_config(cls, config: Config) -> RoleCompiler:
        return cls(
            catalog=PrivilegeCatalog.load(config.privileges_file),
            restricted=RestrictedIndices(config.restricted_indices),
            predicates=PredicateRegistry(),
        )

    def compile(self, descriptors: Iterable[RoleDescriptor]) -> Role:
        return Role.from_descriptors(
            descriptors,
            catalog=self.catalog,
            restricted=self.restricted,
            predicates=self.predicates,
            application_privileges=self.application_privileges,
        )


def descriptors_key(descriptors: Iterable[RoleDescriptor]) -> str:
    """Stable digest of a descriptor set, independent of order."""
    dumped = sorted(
        json.dumps(d.model_dump(mode="json"), sort_keys=True, default=str) for d in descriptors
    )
    return hashlib.sha256("\n".join(dumped).encode()).hexdigest()


class RoleCache:
    """LRU cache of compiled roles keyed by descriptor set."""

    def __init__(self, compiler: RoleCompiler, max_size: int = 1000) -> None:
        self.compiler = compiler
        self.max_size = max_size
        self._roles: OrderedDict[str, Role] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> RoleCache:
        return cls(RoleCompiler.from_config(config), max_size=config.role_cache_size)

    def get(self, descriptors: Iterable[RoleDescriptor]) -> Role:
        descriptors = list(descriptors)
        key = descriptors_key(descriptors)
        with self._lock:
            role = self._roles.get(key)
            if role is not None:
                self._roles.move_to_end(key)
                return role
        # Compile outside the lock; a concurrent compile of the same key is harmless.
        role = self.compiler.compile(descriptors)
        with self._lock:
            self._roles[key] = role
            self._roles.move_to_end(key)
            while len(self._roles) > self.max_size:
                self._roles.popitem(last=False)
        return role

    def invalidate(self) -> None:
        """Drop every compiled role. Called when the descriptor source changes."""
        with self._lock:
            count = len(self._roles)
            self._roles.clear()
        logger.info("Invalidated %d cached roles", count)

    def __len__(self) -> int:
        return len(self._roles)


class LiveRole:
    """Holds the current role; readers take the snapshot, writers swap it."""

    def __init__(self, role: Role) -> None:
        self._role = role
        self._write_lock = threading.Lock()
        self._generation = 0

    @property
    def current(self) -> Role:
        return self._role

    @property
    def generation(self) -> int:
        return self._generation

    def publish(self, role: Role) -> Role:
        """Replace the current role, returning the previous snapshot."""
        with self._write_lock:
            previous = self._role
            self._role = role
            self._generation += 1
            generation = self._generation
        logger.info("Published role %s (generation %d)", ",".join(role.names), generation)
        return previous
