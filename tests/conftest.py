"""Shared test fixtures for Bastion."""

from __future__ import annotations

import pytest

from bastion.auth.reserved_roles import ReservedRolesStore
from bastion.auth.service_accounts import ServiceAccountRegistry
from bastion.config import DEFAULT_RESTRICTED_INDICES, Config
from bastion.core.cache import RoleCompiler
from bastion.core.conditional import PredicateRegistry
from bastion.core.patterns import RestrictedIndices
from bastion.core.privileges import PrivilegeCatalog
from bastion.models.authentication import Authentication


@pytest.fixture(scope="session")
def catalog() -> PrivilegeCatalog:
    return PrivilegeCatalog.load()


@pytest.fixture(scope="session")
def restricted() -> RestrictedIndices:
    return RestrictedIndices(DEFAULT_RESTRICTED_INDICES)


@pytest.fixture
def compiler(catalog: PrivilegeCatalog, restricted: RestrictedIndices) -> RoleCompiler:
    return RoleCompiler(catalog=catalog, restricted=restricted, predicates=PredicateRegistry())


@pytest.fixture(scope="session")
def reserved() -> ReservedRolesStore:
    return ReservedRolesStore.load()


@pytest.fixture(scope="session")
def registry(reserved: ReservedRolesStore) -> ServiceAccountRegistry:
    return ServiceAccountRegistry.load(Config(), reserved)


@pytest.fixture
def service_auth() -> Authentication:
    return Authentication.for_service_account("bastion/fleet-server")


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(home=tmp_path)
