"""Bastion data models."""

from bastion.models.application import ApplicationPrivilegeDescriptor
from bastion.models.authentication import Authentication, User
from bastion.models.descriptor import (
    ApplicationResourcePrivileges,
    ConditionalClusterPrivilege,
    FieldSecurity,
    IndicesPrivileges,
    RoleDescriptor,
)
from bastion.models.requests import (
    ApplicationPrivilegesRequest,
    CreateApiKeyRequest,
    GetApiKeyRequest,
    InvalidateApiKeyRequest,
    TransportRequest,
)
from bastion.models.resource import IndexAbstraction, IndexAbstractionType

__all__ = [
    "ApplicationPrivilegeDescriptor",
    "ApplicationPrivilegesRequest",
    "ApplicationResourcePrivileges",
    "Authentication",
    "ConditionalClusterPrivilege",
    "CreateApiKeyRequest",
    "FieldSecurity",
    "GetApiKeyRequest",
    "IndexAbstraction",
    "IndexAbstractionType",
    "IndicesPrivileges",
    "InvalidateApiKeyRequest",
    "RoleDescriptor",
    "TransportRequest",
    "User",
]
