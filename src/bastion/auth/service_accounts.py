"""Service accounts — fixed roles bound one-to-one to namespaced identities."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from bastion.auth.reserved_roles import ReservedRolesStore
from bastion.config import Config
from bastion.core.cache import RoleCompiler
from bastion.core.role import Role
from bastion.data import load_yaml
from bastion.errors import ConfigurationError, InvariantViolation
from bastion.models.authentication import User
from bastion.models.descriptor import RoleDescriptor

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "bastion"


@dataclass(frozen=True)
class ServiceAccountId:
    """A service account identity, ``<namespace>/<service_name>``."""

    namespace: str
    service_name: str

    def __post_init__(self) -> None:
        for part, value in (("namespace", self.namespace), ("service name", self.service_name)):
            if not value or "/" in value:
                raise ConfigurationError(f"Invalid service account {part}: {value!r}")

    @classmethod
    def from_principal(cls, principal: str) -> ServiceAccountId:
        namespace, sep, service_name = principal.partition("/")
        if not sep:
            raise ConfigurationError(
                f"a service account ID must be in the form {{namespace}}/{{service-name}}, "
                f"but was [{principal}]"
            )
        return cls(namespace, service_name)

    def as_principal(self) -> str:
        return f"{self.namespace}/{self.service_name}"

    def __str__(self) -> str:
        return self.as_principal()


class ServiceAccount:
    """A built-in account whose role descriptor carries the account's own name."""

    def __init__(
        self,
        service_name: str,
        role_descriptor: RoleDescriptor | None,
        *,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self._id = ServiceAccountId(namespace, service_name)
        if role_descriptor is None:
            raise InvariantViolation("Role descriptor cannot be null")
        principal = self._id.as_principal()
        if role_descriptor.name != principal:
            raise ConfigurationError(
                f"the provided role descriptor [{role_descriptor.name}] must have the same "
                f"name as the service account [{principal}]"
            )
        self._role_descriptor = role_descriptor

    @property
    def id(self) -> ServiceAccountId:
        return self._id

    @property
    def principal(self) -> str:
        return self._id.as_principal()

    @property
    def role_descriptor(self) -> RoleDescriptor:
        return self._role_descriptor

    def as_user(self) -> User:
        return User(
            username=self.principal,
            roles=(),
            full_name=f"Service account - {self.principal}",
            email=None,
            metadata={f"_{self._id.namespace}_service_account": True},
            enabled=True,
        )

    def __repr__(self) -> str:
        return f"ServiceAccount({self.principal!r})"


class ServiceAccountRegistry:
    """The fixed catalog of built-in service accounts."""

    def __init__(self, accounts: Iterable[ServiceAccount]) -> None:
        self._accounts: dict[str, ServiceAccount] = {}
        for account in accounts:
            if account.principal in self._accounts:
                raise ConfigurationError(f"Duplicate service account [{account.principal}]")
            self._accounts[account.principal] = account

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        *,
        namespace: str = DEFAULT_NAMESPACE,
        reserved: ReservedRolesStore | None = None,
    ) -> ServiceAccountRegistry:
        accounts = []
        for service_name, entry in data.items():
            principal = ServiceAccountId(namespace, service_name).as_principal()
            entry = dict(entry or {})
            reserved_role = entry.pop("reserved_role", None)
            if reserved_role is not None:
                if entry:
                    raise ConfigurationError(
                        f"Service account [{principal}] cannot combine reserved_role "
                        f"with inline privileges"
                    )
                base = reserved.descriptor(reserved_role) if reserved else None
                if base is None:
                    raise ConfigurationError(
                        f"Service account [{principal}] references unknown reserved role "
                        f"[{reserved_role}]"
                    )
                descriptor = base.renamed(principal)
            else:
                descriptor = RoleDescriptor.from_dict(principal, entry)
            accounts.append(ServiceAccount(service_name, descriptor, namespace=namespace))
        return cls(accounts)

    @classmethod
    def load(
        cls, config: Config | None = None, reserved: ReservedRolesStore | None = None
    ) -> ServiceAccountRegistry:
        config = config or Config()
        reserved = reserved or ReservedRolesStore.load(config.reserved_roles_file)
        registry = cls.from_dict(
            load_yaml("service_accounts.yaml", config.service_accounts_file),
            namespace=config.service_account_namespace,
            reserved=reserved,
        )
        logger.info("Loaded %d service accounts", len(registry))
        return registry

    def principals(self) -> list[str]:
        return sorted(self._accounts)

    def get(self, principal: str) -> ServiceAccount | None:
        return self._accounts.get(principal)

    def role(self, principal: str, compiler: RoleCompiler) -> Role:
        """Compile the role of the account named ``principal``."""
        account = self._accounts.get(principal)
        if account is None:
            raise ConfigurationError(f"Unknown service account [{principal}]")
        return compiler.compile([account.role_descriptor])

    def __len__(self) -> int:
        return len(self._accounts)
