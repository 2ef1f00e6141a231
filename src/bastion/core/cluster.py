"""Cluster-level grants, unconditional and conditional."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from bastion.core.conditional import ConditionalPrivilege, PredicateRegistry, all_of
from bastion.core.privileges import Privilege, PrivilegeIndex
from bastion.models.authentication import Authentication
from bastion.models.descriptor import ConditionalClusterPrivilege
from bastion.models.requests import TransportRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnconditionalPrivilege:
    """A cluster grant decided by the action name alone."""

    privilege: Privilege

    def check(
        self, action: str, request: TransportRequest, authentication: Authentication
    ) -> bool:
        return self.privilege.check(action)


ClusterGrant = UnconditionalPrivilege | ConditionalPrivilege


class ClusterPermission:
    """An immutable list of unconditional and conditional cluster grants."""

    def __init__(self, grants: Iterable[ClusterGrant] = ()) -> None:
        self._grants: tuple[ClusterGrant, ...] = tuple(grants)

    @classmethod
    def build(
        cls,
        names: Iterable[str],
        conditional: Iterable[ConditionalClusterPrivilege],
        *,
        privileges: PrivilegeIndex,
        predicates: PredicateRegistry,
    ) -> ClusterPermission:
        grants: list[ClusterGrant] = []
        for name in names:
            privilege = privileges.resolve(name)
            if privilege.predicate:
                grants.append(
                    ConditionalPrivilege(
                        privilege, privilege.predicate, predicates.bind(privilege.predicate)
                    )
                )
            else:
                grants.append(UnconditionalPrivilege(privilege))
        for entry in conditional:
            privilege = privileges.resolve(entry.privilege)
            name = entry.predicate
            predicate = predicates.bind(entry.predicate, entry.parameters)
            # The catalog's own predicate still applies
            if privilege.predicate:
                name = f"{privilege.predicate}+{entry.predicate}"
                predicate = all_of(predicates.bind(privilege.predicate), predicate)
            grants.append(ConditionalPrivilege(privilege, name, predicate))
        return cls(grants)

    @property
    def grants(self) -> tuple[ClusterGrant, ...]:
        return self._grants

    def privileges(self) -> list[str]:
        """Names of the granted privileges, in grant order."""
        return [grant.privilege.name for grant in self._grants]

    def check(
        self, action: str, request: TransportRequest, authentication: Authentication
    ) -> bool:
        """Check whether any grant permits ``action`` for this request."""
        for grant in self._grants:
            if grant.check(action, request, authentication):
                return True
        logger.debug("Cluster action %s denied for %s", action, authentication.principal)
        return False

    def merge(self, other: ClusterPermission) -> ClusterPermission:
        grants = list(self._grants)
        for grant in other.grants:
            if isinstance(grant, UnconditionalPrivilege) and grant in grants:
                continue
            grants.append(grant)
        return ClusterPermission(grants)

    def __len__(self) -> int:
        return len(self._grants)
