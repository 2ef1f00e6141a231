"""Application privilege descriptors, stored and defined by applications."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApplicationPrivilegeDescriptor(BaseModel):
    """A named set of opaque application actions."""

    model_config = ConfigDict(frozen=True)

    application: str
    name: str
    actions: frozenset[str]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(cls, application: str, name: str, *actions: str) -> ApplicationPrivilegeDescriptor:
        return cls(application=application, name=name, actions=frozenset(actions))
