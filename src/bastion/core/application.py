"""Application permission — opaque application privileges over application resources."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from bastion.core.patterns import PatternSet, covers
from bastion.models.application import ApplicationPrivilegeDescriptor
from bastion.models.descriptor import ApplicationResourcePrivileges

logger = logging.getLogger(__name__)

_PRIVILEGE_NAME = re.compile(r"^[a-z][a-zA-Z0-9_.-]*$")


def is_action_pattern(name: str) -> bool:
    """Anything that is not a valid application privilege name is an action pattern."""
    return _PRIVILEGE_NAME.match(name) is None


@dataclass(frozen=True)
class ApplicationGroup:
    """Granted action patterns for matching applications and resources."""

    application: PatternSet
    actions: frozenset[str]
    resources: PatternSet

    def grants(self, privilege: ApplicationPrivilegeDescriptor, resource: str) -> bool:
        return (
            self.application.matches(privilege.application)
            and self.resources.matches(resource)
            and covers(self.actions, privilege.actions)
        )


def resolve_groups(
    entry: ApplicationResourcePrivileges, stored: Iterable[ApplicationPrivilegeDescriptor]
) -> list[ApplicationGroup]:
    """Expand one descriptor entry into groups, one per concrete stored application."""
    application = PatternSet.parse([entry.application])
    resources = PatternSet.parse(entry.resources)
    action_patterns = frozenset(n for n in entry.privileges if is_action_pattern(n))
    names = {n for n in entry.privileges if not is_action_pattern(n)}

    actions_by_app: dict[str, set[str]] = defaultdict(set)
    found: set[str] = set()
    for descriptor in stored:
        if descriptor.name in names and application.matches(descriptor.application):
            actions_by_app[descriptor.application] |= descriptor.actions
            found.add(descriptor.name)
    missing = names - found
    if missing:
        logger.debug(
            "No stored application privileges %s for application %s",
            sorted(missing),
            entry.application,
        )

    groups = [
        ApplicationGroup(
            application=PatternSet.parse([app]),
            actions=frozenset(actions) | action_patterns,
            resources=resources,
        )
        for app, actions in sorted(actions_by_app.items())
    ]
    if action_patterns:
        groups.append(ApplicationGroup(application, action_patterns, resources))
    return groups


class ApplicationPermission:
    """The union of a role's application grants."""

    def __init__(self, groups: Iterable[ApplicationGroup] = ()) -> None:
        self._groups: tuple[ApplicationGroup, ...] = tuple(groups)

    @classmethod
    def build(
        cls,
        entries: Iterable[ApplicationResourcePrivileges],
        stored: Iterable[ApplicationPrivilegeDescriptor] = (),
    ) -> ApplicationPermission:
        stored = tuple(stored)
        groups: list[ApplicationGroup] = []
        for entry in entries:
            groups.extend(resolve_groups(entry, stored))
        return cls(groups)

    @property
    def groups(self) -> tuple[ApplicationGroup, ...]:
        return self._groups

    def grants(self, privilege: ApplicationPrivilegeDescriptor, resource: str) -> bool:
        """Check that some group covers every action of ``privilege`` on ``resource``."""
        return any(group.grants(privilege, resource) for group in self._groups)

    def merge(self, other: ApplicationPermission) -> ApplicationPermission:
        groups = list(self._groups)
        groups.extend(g for g in other.groups if g not in groups)
        return ApplicationPermission(groups)

    def __len__(self) -> int:
        return len(self._groups)
