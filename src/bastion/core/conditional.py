"""Conditional cluster privileges and the predicates they dispatch to."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from bastion.core.patterns import PatternSet
from bastion.core.privileges import Privilege
from bastion.errors import ConfigurationError
from bastion.models.authentication import Authentication
from bastion.models.requests import (
    ApplicationPrivilegesRequest,
    CreateApiKeyRequest,
    GetApiKeyRequest,
    InvalidateApiKeyRequest,
    TransportRequest,
)

logger = logging.getLogger(__name__)

Predicate = Callable[..., bool]


def owned_api_keys(request: TransportRequest, authentication: Authentication) -> bool:
    """Allow API key creation, and reads or invalidations of the caller's own keys."""
    if isinstance(request, CreateApiKeyRequest):
        return True
    if isinstance(request, GetApiKeyRequest | InvalidateApiKeyRequest):
        if request.owned_by_authenticated_user:
            return True
        if authentication.api_key_id:
            if isinstance(request, InvalidateApiKeyRequest):
                ids = request.ids
            else:
                ids = (request.api_key_id,) if request.api_key_id else ()
            if ids and all(key_id == authentication.api_key_id for key_id in ids):
                return True
        if request.user_name and request.realm_name:
            return (
                request.user_name == authentication.principal
                and request.realm_name == authentication.realm
            )
    return False


def no_role_descriptors(request: TransportRequest, authentication: Authentication) -> bool:
    """Allow API key creation only when no role descriptors are requested."""
    return isinstance(request, CreateApiKeyRequest) and not request.role_descriptors


def application_names(
    request: TransportRequest,
    authentication: Authentication,
    *,
    applications: list[str] | tuple[str, ...] = (),
) -> bool:
    """Allow requests that touch only applications matching ``applications``."""
    if not isinstance(request, ApplicationPrivilegesRequest) or not request.applications:
        return False
    allowed = PatternSet.parse(applications)
    return all(allowed.matches(app) for app in request.applications)


def all_of(*predicates: Predicate) -> Predicate:
    """Combine predicates so that every one of them must hold."""

    def predicate(request: TransportRequest, authentication: Authentication) -> bool:
        return all(p(request, authentication) for p in predicates)

    return predicate


BUILTIN_PREDICATES: dict[str, Predicate] = {
    "owned_api_keys": owned_api_keys,
    "no_role_descriptors": no_role_descriptors,
    "application_names": application_names,
}


class PredicateRegistry:
    """Dispatch table from predicate ids to pure request predicates."""

    def __init__(self, predicates: Mapping[str, Predicate] | None = None) -> None:
        self._predicates = dict(BUILTIN_PREDICATES if predicates is None else predicates)

    def register(self, name: str, predicate: Predicate) -> PredicateRegistry:
        """Return a new registry with ``predicate`` added."""
        if name in self._predicates:
            raise ConfigurationError(f"Predicate [{name}] is already registered")
        return PredicateRegistry({**self._predicates, name: predicate})

    def names(self) -> frozenset[str]:
        return frozenset(self._predicates)

    def bind(self, name: str, parameters: Mapping[str, Any] | None = None) -> Predicate:
        predicate = self._predicates.get(name)
        if predicate is None:
            raise ConfigurationError(
                f"Unknown privilege predicate [{name}]. Known: {sorted(self._predicates)}"
            )
        if parameters:
            return partial(predicate, **parameters)
        return predicate


@dataclass(frozen=True)
class ConditionalPrivilege:
    """A privilege whose grant also depends on the concrete request."""

    privilege: Privilege
    predicate_name: str
    predicate: Predicate = field(compare=False, repr=False)

    def check(
        self, action: str, request: TransportRequest, authentication: Authentication
    ) -> bool:
        if not self.privilege.check(action):
            return False
        allowed = bool(self.predicate(request, authentication))
        if not allowed:
            logger.debug(
                "Predicate %s rejected %s for %s",
                self.predicate_name,
                action,
                authentication.principal,
            )
        return allowed
