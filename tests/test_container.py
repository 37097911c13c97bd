"""
Tests for backend registration and container wiring.
"""

import pytest

from tenantguard.core.auth.identity import HTTPIdentityProvider, JWTIdentityProvider
from tenantguard.core.auth.types import TenantLevel, TenantRef
from tenantguard.core.auth.registry import AuthRegistry
from tenantguard.core.config import AuthSettings
from tenantguard.core.container import Container
from tenantguard.implementations import MemoryPolicyStore, MemoryTokenRegistry
from tenantguard.implementations.directory.database import DatabaseTenantDirectory
from tenantguard.implementations.policy_store.database import DatabasePolicyStore
from tenantguard.implementations.register import register_backends


@pytest.fixture(autouse=True)
def backends():
    register_backends()


def test_registry_lists_backends():
    assert {"memory", "database"} <= set(AuthRegistry.list_policy_stores())
    assert {"memory", "database"} <= set(AuthRegistry.list_token_registries())
    assert {"jwt", "http"} <= set(AuthRegistry.list_identity_providers())
    assert {"memory", "database"} <= set(AuthRegistry.list_tenant_directories())


def test_registry_unknown_backend():
    with pytest.raises(ValueError) as exc_info:
        AuthRegistry.get_policy_store("casbin")

    assert "Available" in str(exc_info.value)


def test_database_backends_need_session_factory():
    with pytest.raises(ValueError):
        AuthRegistry.get_policy_store("database")

    with pytest.raises(ValueError):
        AuthRegistry.get_token_registry("database")


def test_container_builds_memory_backends():
    container = Container()
    container.configure(AuthSettings(policy_store="memory", token_registry="memory"))

    assert isinstance(container.policy_store, MemoryPolicyStore)
    assert isinstance(container.token_registry, MemoryTokenRegistry)
    assert isinstance(container.identity_provider, JWTIdentityProvider)
    assert container.authorization.credentials is container.credentials
    assert container.roles.store is container.policy_store
    assert container.bootstrapper is container.bootstrapper


def test_container_selects_http_provider_when_endpoint_set():
    container = Container()
    container.configure(
        AuthSettings(
            policy_store="memory",
            token_registry="memory",
            identity_provider_endpoint="https://identity.test/auth/v1/user",
        )
    )

    assert isinstance(container.identity_provider, HTTPIdentityProvider)


@pytest.mark.asyncio
async def test_container_database_backend(session_factory):
    container = Container()
    container.configure(AuthSettings(), session_factory=session_factory)

    assert isinstance(container.policy_store, DatabasePolicyStore)
    assert isinstance(container.tenant_directory, DatabaseTenantDirectory)


def test_configure_drops_built_instances():
    container = Container()
    container.configure(AuthSettings(policy_store="memory", token_registry="memory"))
    first = container.policy_store

    container.configure(AuthSettings(policy_store="memory", token_registry="memory"))

    assert container.policy_store is not first


def test_invalid_backend_name_rejected():
    with pytest.raises(ValueError):
        AuthSettings(policy_store="redis")


def test_variable_length_hash_rejected():
    with pytest.raises(ValueError):
        AuthSettings(token_hash_algorithm="shake_256")

    assert AuthSettings(token_hash_algorithm="sha512").token_hash_algorithm == "sha512"


@pytest.mark.asyncio
async def test_memory_tenant_directory_seeded_from_settings():
    container = Container()
    container.configure(
        AuthSettings(
            policy_store="memory",
            token_registry="memory",
            tenants=["organization:org_1", "project:project_7"],
        )
    )

    assert await container.tenant_directory.list_tenants() == [
        TenantRef("org_1", TenantLevel.ORGANIZATION),
        TenantRef("project_7", TenantLevel.PROJECT),
    ]


@pytest.mark.asyncio
async def test_startup_warm_up_uses_configured_tenants():
    container = Container()
    container.configure(
        AuthSettings(policy_store="memory", token_registry="memory", tenants=["project:project_7"])
    )

    results = await container.bootstrapper.warm_up(container.tenant_directory)

    assert [r.tenant_id for r in results] == ["project_7"]
    assert await container.policy_store.count_policies("project_7") > 0


def test_invalid_tenant_entries_rejected():
    for entry in ("workspace:w_1", "org_1", "project:", "project:*"):
        with pytest.raises(ValueError):
            AuthSettings(tenants=[entry])
