"""Indices permission — allow-list grants over named indices."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache

from bastion.core.patterns import PatternSet, RestrictedIndices, matches_any
from bastion.core.privileges import Privilege, PrivilegeIndex
from bastion.models.descriptor import FieldSecurity, IndicesPrivileges
from bastion.models.resource import IndexAbstraction

logger = logging.getLogger(__name__)

IndexMatcher = Callable[[IndexAbstraction | str], bool]


def _name_of(resource: IndexAbstraction | str) -> str:
    return resource if isinstance(resource, str) else resource.name


@dataclass(frozen=True)
class IndexGroup:
    """A compiled index grant."""

    privilege: Privilege
    indices: PatternSet
    field_security: FieldSecurity | None = None
    query: str | None = None
    allow_restricted_indices: bool = False

    def check_action(self, action: str) -> bool:
        return self.privilege.check(action)

    def check_index(self, name: str, restricted: RestrictedIndices) -> bool:
        if not self.allow_restricted_indices and restricted.is_restricted(name):
            return False
        return self.indices.matches(name)


@dataclass(frozen=True)
class IndexAccessControl:
    """The decision for one index plus the data restrictions that apply to it.

    ``field_security`` is ``None`` when all fields are visible, otherwise a field
    is visible if any of the listed restrictions allows it. ``queries`` is
    ``None`` when all documents are visible, otherwise a document is visible if
    it matches any query.
    """

    granted: bool
    field_security: tuple[FieldSecurity, ...] | None = None
    queries: frozenset[str] | None = None

    def field_allowed(self, field: str) -> bool:
        if not self.granted:
            return False
        if self.field_security is None:
            return True
        return any(
            matches_any(fs.grant, field) and not matches_any(fs.except_, field)
            for fs in self.field_security
        )

    @classmethod
    def from_groups(cls, groups: list[IndexGroup]) -> IndexAccessControl:
        if not groups:
            return DENIED
        field_security: tuple[FieldSecurity, ...] | None = None
        if all(g.field_security is not None for g in groups):
            field_security = tuple(dict.fromkeys(g.field_security for g in groups))
        queries: frozenset[str] | None = None
        if all(g.query is not None for g in groups):
            queries = frozenset(g.query for g in groups)
        return cls(granted=True, field_security=field_security, queries=queries)


DENIED = IndexAccessControl(granted=False)


class IndicesPermission:
    """An ordered list of index grants, unioned at check time."""

    def __init__(
        self, groups: Iterable[IndexGroup] = (), restricted: RestrictedIndices | None = None
    ) -> None:
        self._groups: tuple[IndexGroup, ...] = tuple(groups)
        self._restricted = restricted or RestrictedIndices()
        self._matcher_for = lru_cache(maxsize=512)(self._build_matcher)

    @classmethod
    def build(
        cls,
        indices: Iterable[IndicesPrivileges],
        *,
        privileges: PrivilegeIndex,
        restricted: RestrictedIndices,
    ) -> IndicesPermission:
        groups = [
            IndexGroup(
                privilege=privileges.resolve_all(entry.privileges),
                indices=PatternSet.parse(entry.names),
                field_security=entry.field_security,
                query=entry.query,
                allow_restricted_indices=entry.allow_restricted_indices,
            )
            for entry in indices
        ]
        return cls(groups, restricted)

    @property
    def groups(self) -> tuple[IndexGroup, ...]:
        return self._groups

    @property
    def restricted(self) -> RestrictedIndices:
        return self._restricted

    def allowed_indices_matcher(self, action: str) -> IndexMatcher:
        """Return a reusable predicate over indices for ``action``."""
        return self._matcher_for(action)

    def allows(self, action: str, resource: IndexAbstraction | str) -> bool:
        return self.allowed_indices_matcher(action)(resource)

    def authorize(
        self, action: str, resources: Iterable[IndexAbstraction | str]
    ) -> dict[str, IndexAccessControl]:
        """Decide each resource and attach its field and document restrictions."""
        groups = self._groups_for(action)
        result: dict[str, IndexAccessControl] = {}
        for resource in resources:
            name = _name_of(resource)
            matching = [g for g in groups if g.check_index(name, self._restricted)]
            result[name] = IndexAccessControl.from_groups(matching)
        denied = [name for name, control in result.items() if not control.granted]
        if denied:
            logger.debug("Action %s denied on indices %s", action, denied)
        return result

    def merge(self, other: IndicesPermission) -> IndicesPermission:
        return IndicesPermission(self._groups + other.groups, self._restricted)

    def _groups_for(self, action: str) -> tuple[IndexGroup, ...]:
        return tuple(g for g in self._groups if g.check_action(action))

    def _build_matcher(self, action: str) -> IndexMatcher:
        groups = self._groups_for(action)
        restricted = self._restricted
        if not groups:
            return lambda resource: False

        def matcher(resource: IndexAbstraction | str) -> bool:
            name = _name_of(resource)
            return any(g.check_index(name, restricted) for g in groups)

        return matcher

    def __len__(self) -> int:
        return len(self._groups)
