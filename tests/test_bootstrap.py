"""
Tests for tenant policy bootstrap and warm-up.
"""

import asyncio

import pytest

from tenantguard.core.auth.bootstrap import ORGANIZATION_ROLES, PROJECT_ROLES, TenantPolicyBootstrapper
from tenantguard.core.auth.errors import InvalidRuleError, UnknownTenantLevelError
from tenantguard.core.auth.types import PolicyRule, TenantLevel
from tenantguard.implementations.directory.memory import MemoryTenantDirectory


def _expected_rules(templates, tenant_id):
    return {
        PolicyRule(t.name, resource.value, action.value, tenant_id)
        for t in templates
        for resource, action in t.grants
    }


@pytest.mark.asyncio
async def test_bootstrap_organization(policy_store, bootstrapper):
    """Test organization bootstrap seeds roles, grants and inheritance."""
    result = await bootstrapper.bootstrap("org_1", TenantLevel.ORGANIZATION)

    assert result.created
    assert result.existing == 0
    assert set(await policy_store.list_policies("org_1")) == _expected_rules(ORGANIZATION_ROLES, "org_1")

    edges = await policy_store.list_role_inheritance("org_1")
    assert [(e.role, e.parent) for e in edges] == [("admin", "owner")]

    roles = await policy_store.list_roles("org_1")
    assert {r.name for r in roles} == {"owner", "admin", "member", "viewer"}
    assert bootstrapper.is_bootstrapped("org_1")


@pytest.mark.asyncio
async def test_bootstrap_is_idempotent(policy_store, bootstrapper):
    first = await bootstrapper.bootstrap("project_7", "project")
    before = await policy_store.list_policies("project_7")

    second = await bootstrapper.bootstrap("project_7", "project")

    assert second.added == 0
    assert second.existing == first.added
    assert await policy_store.list_policies("project_7") == before


@pytest.mark.asyncio
async def test_concurrent_bootstrap_yields_one_copy(policy_store):
    """Test two bootstrappers sharing a store race on the same tenant."""
    one = TenantPolicyBootstrapper(policy_store)
    two = TenantPolicyBootstrapper(policy_store)

    results = await asyncio.gather(
        *(b.bootstrap("org_9", "organization") for b in (one, two, one, two))
    )

    rules = await policy_store.list_policies("org_9")
    assert len(rules) == len(set(rules))
    assert set(rules) == _expected_rules(ORGANIZATION_ROLES, "org_9")
    assert sum(r.added for r in results) == results[0].added + results[0].existing


@pytest.mark.asyncio
async def test_levels_are_independent(policy_store, bootstrapper):
    """Test organization grants never reach projects."""
    await bootstrapper.bootstrap("org_1", "organization", members=[("user_1", "admin")])
    await bootstrapper.bootstrap("project_7", "project")

    assert set(await policy_store.list_policies("project_7")) == _expected_rules(PROJECT_ROLES, "project_7")
    assert await policy_store.roles_of("user_1", "project_7") == []


@pytest.mark.asyncio
async def test_bootstrap_assigns_members(policy_store, bootstrapper):
    await bootstrapper.bootstrap(
        "project_7",
        "project",
        members=[("user_1", "owner"), ("user_2", "viewer")],
    )

    assert await policy_store.roles_of("user_1", "project_7") == ["owner"]
    assert await policy_store.roles_of("user_2", "project_7") == ["viewer"]


@pytest.mark.asyncio
async def test_bootstrap_rejects_bad_input(policy_store, bootstrapper):
    with pytest.raises(UnknownTenantLevelError):
        await bootstrapper.bootstrap("org_1", "workspace")

    with pytest.raises(InvalidRuleError):
        await bootstrapper.bootstrap("*", "organization")

    with pytest.raises(InvalidRuleError):
        await bootstrapper.bootstrap("org_1", "organization", members=[("user_1", "superuser")])

    assert await policy_store.list_policies() == []


@pytest.mark.asyncio
async def test_ensure_bootstrapped_runs_once(bootstrapper):
    first = await bootstrapper.ensure_bootstrapped("org_1", "organization")
    second = await bootstrapper.ensure_bootstrapped("org_1", "organization")

    assert first is not None and first.created
    assert second is None


@pytest.mark.asyncio
async def test_warm_up_skips_seeded_tenants_and_runs_once(policy_store, bootstrapper):
    directory = MemoryTenantDirectory()
    directory.add("org_1", TenantLevel.ORGANIZATION)
    directory.add("project_7", TenantLevel.PROJECT)
    await policy_store.add_policy(PolicyRule("custom", "customer", "read", "project_7"))

    results = await bootstrapper.warm_up(directory)

    assert [r.tenant_id for r in results] == ["org_1"]
    assert bootstrapper.warmed_up
    assert bootstrapper.is_bootstrapped("project_7")
    assert await policy_store.count_policies("project_7") == 1

    directory.add("org_2", TenantLevel.ORGANIZATION)
    assert await bootstrapper.warm_up(directory) == []
