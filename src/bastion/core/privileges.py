"""Privilege catalog — named privileges flattened into action patterns.

The catalog is data: each entry is either a leaf (``actions`` with an optional
``except`` list) or a group (``includes`` naming other entries). Groups are
flattened once when the index is built, so checks never recurse.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bastion.core.patterns import PatternSet, validate_pattern
from bastion.data import load_yaml
from bastion.errors import ConfigurationError

logger = logging.getLogger(__name__)

CLUSTER = "cluster"
INDEX = "index"


def _list_of(name: str, data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list | tuple) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"Privilege [{name}] {key} must be a list of strings")
    return list(value)


@dataclass(frozen=True)
class PrivilegeDefinition:
    """One catalog entry, before flattening."""

    name: str
    actions: frozenset[str] = frozenset()
    excluded: frozenset[str] = frozenset()
    includes: tuple[str, ...] = ()
    predicate: str | None = None

    @property
    def is_group(self) -> bool:
        return bool(self.includes)

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any] | None) -> PrivilegeDefinition:
        data = data or {}
        unknown = set(data) - {"actions", "except", "includes", "predicate"}
        if unknown:
            raise ConfigurationError(f"Privilege [{name}] has unknown keys: {sorted(unknown)}")
        actions = frozenset(validate_pattern(a) for a in _list_of(name, data, "actions"))
        excluded = frozenset(validate_pattern(a) for a in _list_of(name, data, "except"))
        includes = tuple(_list_of(name, data, "includes"))
        if includes and (actions or excluded):
            raise ConfigurationError(
                f"Privilege [{name}] must either list actions or include other privileges"
            )
        return cls(
            name=name,
            actions=actions,
            excluded=excluded,
            includes=includes,
            predicate=data.get("predicate"),
        )


@dataclass(frozen=True)
class Privilege:
    """A flattened privilege: a union of action pattern sets."""

    name: str
    clauses: tuple[PatternSet, ...] = ()
    predicate: str | None = None

    def check(self, action: str) -> bool:
        return any(clause.matches(action) for clause in self.clauses)

    @classmethod
    def union(cls, privileges: Iterable[Privilege]) -> Privilege:
        privileges = list(privileges)
        clauses: list[PatternSet] = []
        for privilege in privileges:
            for clause in privilege.clauses:
                if clause not in clauses:
                    clauses.append(clause)
        name = ",".join(sorted({p.name for p in privileges}))
        return cls(name=name, clauses=tuple(clauses))


NONE = Privilege(name="none")


class PrivilegeIndex:
    """Immutable lookup from privilege names to flattened privileges."""

    def __init__(
        self,
        kind: str,
        definitions: Mapping[str, PrivilegeDefinition],
        action_prefixes: Iterable[str] = (),
    ) -> None:
        self.kind = kind
        self.action_prefixes = tuple(action_prefixes)
        self._definitions = dict(definitions)
        if kind != CLUSTER:
            for definition in self._definitions.values():
                if definition.predicate:
                    raise ConfigurationError(
                        f"{kind} privilege [{definition.name}] cannot have a predicate; "
                        f"only cluster privileges may be conditional"
                    )
        self._resolved = self._flatten()

    @classmethod
    def from_dict(cls, kind: str, data: Mapping[str, Any], action_prefixes: Iterable[str] = ()):
        definitions = {
            name: PrivilegeDefinition.from_dict(name, entry) for name, entry in data.items()
        }
        return cls(kind, definitions, action_prefixes)

    def names(self) -> frozenset[str]:
        return frozenset(self._resolved)

    def is_action(self, name: str) -> bool:
        return any(name.startswith(prefix) for prefix in self.action_prefixes)

    def resolve(self, name: str) -> Privilege:
        """Resolve a privilege name, or a raw action pattern, to a privilege."""
        privilege = self._resolved.get(name)
        if privilege is not None:
            return privilege
        if self.is_action(name):
            return Privilege(name=name, clauses=(PatternSet.parse([name]),))
        raise ConfigurationError(
            f"unknown {self.kind} privilege [{name}]. a privilege must be either "
            f"one of the predefined fixed {self.kind} privileges "
            f"{sorted(self._resolved)} or a pattern over one of the available "
            f"{self.kind} actions"
        )

    def resolve_all(self, names: Iterable[str]) -> Privilege:
        names = list(names)
        if not names:
            return NONE
        if len(names) == 1:
            return self.resolve(names[0])
        return Privilege.union(self.resolve(name) for name in names)

    def _flatten(self) -> dict[str, Privilege]:
        resolved: dict[str, Privilege] = {}
        visiting: list[str] = []

        def visit(name: str) -> Privilege:
            if name in resolved:
                return resolved[name]
            if name in visiting:
                cycle = " -> ".join([*visiting[visiting.index(name) :], name])
                raise ConfigurationError(f"Cyclic {self.kind} privilege group: {cycle}")
            definition = self._definitions.get(name)
            if definition is None:
                raise ConfigurationError(
                    f"{self.kind} privilege [{visiting[-1]}] includes unknown privilege [{name}]"
                )
            visiting.append(name)
            if definition.is_group:
                members = [visit(member) for member in definition.includes]
                for member in members:
                    if member.predicate:
                        raise ConfigurationError(
                            f"{self.kind} privilege [{name}] cannot include "
                            f"conditional privilege [{member.name}]"
                        )
                clauses = Privilege.union(members).clauses
            elif definition.actions:
                clauses = (PatternSet(definition.actions, definition.excluded),)
            else:
                clauses = ()
            visiting.pop()
            privilege = Privilege(name=name, clauses=clauses, predicate=definition.predicate)
            resolved[name] = privilege
            return privilege

        for name in self._definitions:
            visit(name)
        logger.debug("Flattened %d %s privileges", len(resolved), self.kind)
        return resolved


@dataclass(frozen=True)
class PrivilegeCatalog:
    """The cluster and index privilege indexes loaded from one catalog."""

    cluster: PrivilegeIndex
    index: PrivilegeIndex
    source: str = field(default="<memory>")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: str = "<memory>") -> PrivilegeCatalog:
        prefixes = data.get("action_prefixes") or {}
        return cls(
            cluster=PrivilegeIndex.from_dict(
                CLUSTER, data.get(CLUSTER) or {}, prefixes.get(CLUSTER) or ()
            ),
            index=PrivilegeIndex.from_dict(INDEX, data.get(INDEX) or {}, prefixes.get(INDEX) or ()),
            source=source,
        )

    @classmethod
    def load(cls, path: Path | None = None) -> PrivilegeCatalog:
        """Load a YAML catalog, defaulting to the bundled one."""
        data = load_yaml("privileges.yaml", path)
        catalog = cls.from_dict(data, source=str(path or "privileges.yaml"))
        logger.info(
            "Loaded privilege catalog from %s (%d cluster, %d index privileges)",
            catalog.source,
            len(catalog.cluster.names()),
            len(catalog.index.names()),
        )
        return catalog
