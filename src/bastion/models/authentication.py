"""Authentication context and user identity views."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Authentication(BaseModel):
    """The authenticated caller, as established by the authentication layer."""

    model_config = ConfigDict(frozen=True)

    principal: str
    realm: str = "native"
    is_service_account: bool = False
    api_key_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_service_account(cls, principal: str) -> Authentication:
        return cls(principal=principal, realm="_service_account", is_service_account=True)


class User(BaseModel):
    """A user identity."""

    model_config = ConfigDict(frozen=True)

    username: str
    roles: tuple[str, ...] = ()
    full_name: str | None = None
    email: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
