"""Role descriptor models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bastion.errors import ConfigurationError


class FieldSecurity(BaseModel):
    """Field-level restriction attached to an index grant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    grant: tuple[str, ...] = ("*",)
    except_: tuple[str, ...] = Field(default=(), alias="except")


class IndicesPrivileges(BaseModel):
    """One index grant: patterns, privileges and data restrictions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    names: tuple[str, ...]
    privileges: tuple[str, ...]
    field_security: FieldSecurity | None = None
    query: str | None = None
    allow_restricted_indices: bool = False


class ApplicationResourcePrivileges(BaseModel):
    """Application privileges granted over a set of application resources."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    application: str
    privileges: tuple[str, ...]
    resources: tuple[str, ...]


class ConditionalClusterPrivilege(BaseModel):
    """A cluster privilege that applies only when a request predicate holds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    privilege: str
    predicate: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class RoleDescriptor(BaseModel):
    """Declarative definition of a role's grants."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    cluster: tuple[str, ...] = ()
    conditional_cluster: tuple[ConditionalClusterPrivilege, ...] = ()
    indices: tuple[IndicesPrivileges, ...] = ()
    applications: tuple[ApplicationResourcePrivileges, ...] = ()
    run_as: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any] | None) -> RoleDescriptor:
        """Parse the wire shape used by role catalogs."""
        try:
            descriptor = cls.model_validate({"name": name, **(data or {})})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid role descriptor [{name}]: {e}") from e
        return descriptor.validate_name()

    def validate_name(self) -> RoleDescriptor:
        if not self.name or not self.name.strip():
            raise ConfigurationError("Role descriptor name cannot be empty")
        return self

    def renamed(self, name: str) -> RoleDescriptor:
        """Return a copy of this descriptor under another name."""
        return self.model_copy(update={"name": name})

    def same_privileges(self, other: RoleDescriptor) -> bool:
        return self.model_dump(exclude={"name"}) == other.model_dump(exclude={"name"})

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_defaults=True)
