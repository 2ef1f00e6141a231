"""Read-only request views evaluated by conditional privileges."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TransportRequest(BaseModel):
    """Base request view. Carries no data of its own."""

    model_config = ConfigDict(frozen=True)


class CreateApiKeyRequest(TransportRequest):
    name: str
    expiration: str | None = None
    role_descriptors: tuple[dict[str, Any], ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)


class GetApiKeyRequest(TransportRequest):
    user_name: str | None = None
    realm_name: str | None = None
    api_key_id: str | None = None
    api_key_name: str | None = None
    owned_by_authenticated_user: bool = False

    @classmethod
    def for_owned_api_keys(cls) -> GetApiKeyRequest:
        return cls(owned_by_authenticated_user=True)


class InvalidateApiKeyRequest(TransportRequest):
    user_name: str | None = None
    realm_name: str | None = None
    ids: tuple[str, ...] = ()
    name: str | None = None
    owned_by_authenticated_user: bool = False

    @classmethod
    def for_owned_api_keys(cls) -> InvalidateApiKeyRequest:
        return cls(owned_by_authenticated_user=True)

    @classmethod
    def using_user_name(cls, user_name: str) -> InvalidateApiKeyRequest:
        return cls(user_name=user_name)


class ApplicationPrivilegesRequest(TransportRequest):
    """A request that reads or writes privileges of the named applications."""

    applications: tuple[str, ...] = ()
