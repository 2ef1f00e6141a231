"""Compiles role descriptors into immutable roles."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from bastion.core.application import ApplicationPermission
from bastion.core.cluster import ClusterPermission
from bastion.core.conditional import PredicateRegistry
from bastion.core.indices import IndicesPermission
from bastion.core.patterns import PatternSet, RestrictedIndices
from bastion.core.privileges import PrivilegeCatalog
from bastion.errors import ConfigurationError, InvariantViolation
from bastion.models.application import ApplicationPrivilegeDescriptor
from bastion.models.descriptor import RoleDescriptor

logger = logging.getLogger(__name__)


class RunAsPermission:
    """Identities a role may impersonate."""

    def __init__(self, pattern_sets: Iterable[PatternSet] = ()) -> None:
        self._pattern_sets = tuple(p for p in pattern_sets if not p.is_empty())

    @classmethod
    def build(cls, names: Iterable[str]) -> RunAsPermission:
        return cls([PatternSet.parse(names)])

    @property
    def pattern_sets(self) -> tuple[PatternSet, ...]:
        return self._pattern_sets

    def check(self, username: str) -> bool:
        return any(p.matches(username) for p in self._pattern_sets)

    def merge(self, other: RunAsPermission) -> RunAsPermission:
        return RunAsPermission(self._pattern_sets + other.pattern_sets)


@dataclass(frozen=True)
class Role:
    """A compiled role. Never mutated; recompilation produces a new value."""

    names: tuple[str, ...]
    cluster: ClusterPermission = field(default_factory=ClusterPermission)
    indices: IndicesPermission = field(default_factory=IndicesPermission)
    application: ApplicationPermission = field(default_factory=ApplicationPermission)
    run_as: RunAsPermission = field(default_factory=RunAsPermission)

    @classmethod
    def from_descriptor(
        cls,
        descriptor: RoleDescriptor,
        *,
        catalog: PrivilegeCatalog,
        restricted: RestrictedIndices,
        predicates: PredicateRegistry | None = None,
        application_privileges: Iterable[ApplicationPrivilegeDescriptor] = (),
    ) -> Role:
        return cls.from_descriptors(
            [descriptor],
            catalog=catalog,
            restricted=restricted,
            predicates=predicates,
            application_privileges=application_privileges,
        )

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Iterable[RoleDescriptor],
        *,
        catalog: PrivilegeCatalog,
        restricted: RestrictedIndices,
        predicates: PredicateRegistry | None = None,
        application_privileges: Iterable[ApplicationPrivilegeDescriptor] = (),
    ) -> Role:
        """Compile and union one or more descriptors into a role."""
        descriptors = list(descriptors)
        if any(d is None for d in descriptors):
            raise InvariantViolation("Role descriptor cannot be null")
        if not descriptors:
            raise ConfigurationError("At least one role descriptor is required")
        predicates = predicates or PredicateRegistry()
        stored = tuple(application_privileges)

        role = cls(names=(), indices=IndicesPermission(restricted=restricted))
        for descriptor in descriptors:
            descriptor.validate_name()
            role = role._merge(
                cls(
                    names=(descriptor.name,),
                    cluster=ClusterPermission.build(
                        descriptor.cluster,
                        descriptor.conditional_cluster,
                        privileges=catalog.cluster,
                        predicates=predicates,
                    ),
                    indices=IndicesPermission.build(
                        descriptor.indices, privileges=catalog.index, restricted=restricted
                    ),
                    application=ApplicationPermission.build(descriptor.applications, stored),
                    run_as=RunAsPermission.build(descriptor.run_as),
                ),
            )
        logger.debug(
            "Compiled role %s: %d cluster grants, %d index groups, %d application groups",
            ",".join(role.names),
            len(role.cluster),
            len(role.indices),
            len(role.application),
        )
        return role

    def _merge(self, other: Role) -> Role:
        return Role(
            names=tuple(dict.fromkeys(self.names + other.names)),
            cluster=self.cluster.merge(other.cluster),
            indices=self.indices.merge(other.indices),
            application=self.application.merge(other.application),
            run_as=self.run_as.merge(other.run_as),
        )
