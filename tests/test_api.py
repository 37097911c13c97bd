"""
Tests for the HTTP surface: permission check, tokens, bootstrap, policies, warm-up.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from tenantguard.core.auth.errors import PolicyStoreUnavailable
from tenantguard.core.auth.types import GLOBAL_TENANT, PolicyRule, Role, TenantLevel
from tenantguard.implementations.policy_store.memory import MemoryPolicyStore

from tests.helpers import bearer_headers, session_headers


@pytest_asyncio.fixture
async def platform_admin(policy_store):
    """User holding policy:manage in the global domain."""
    await policy_store.add_policy(PolicyRule("platform_admin", "policy", "manage", GLOBAL_TENANT))
    await policy_store.assign_role("ops_1", "platform_admin", GLOBAL_TENANT)
    return "ops_1"


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# ============ Permission check ============


@pytest.mark.asyncio
async def test_check_allowed_and_denied(client: AsyncClient, bootstrapper):
    """Test allow and deny both answer 200."""
    await bootstrapper.bootstrap("org_1", "organization", members=[("u1", "admin")])

    allowed = await client.post(
        "/api/tenants/org_1/auth/check",
        json={"resource": "campaign", "action": "delete"},
        headers=session_headers("u1"),
    )
    denied = await client.post(
        "/api/tenants/org_2/auth/check",
        json={"resource": "campaign", "action": "delete"},
        headers=session_headers("u1"),
    )

    assert allowed.status_code == 200
    assert allowed.json() == {"allowed": True, "status": "allowed", "reason": "Granted by policy"}
    assert denied.status_code == 200
    assert denied.json()["allowed"] is False
    assert denied.json()["status"] == "denied"


@pytest.mark.asyncio
async def test_check_unauthenticated(client: AsyncClient):
    response = await client.post(
        "/api/tenants/org_1/auth/check",
        json={"resource": "customer", "action": "read"},
    )

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_check_unknown_permission(client: AsyncClient, audit_sink):
    response = await client.post(
        "/api/tenants/org_1/auth/check",
        json={"resource": "customers", "action": "read"},
        headers=session_headers("u1"),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "UnknownPermissionError"
    assert audit_sink.events == []


@pytest.mark.asyncio
async def test_request_id_reaches_audit(client: AsyncClient, audit_sink):
    response = await client.post(
        "/api/tenants/org_1/auth/check",
        json={"resource": "customer", "action": "read"},
        headers={**session_headers("u1"), "X-Request-ID": "req-42"},
    )

    assert response.headers["X-Request-ID"] == "req-42"
    assert audit_sink.events[-1].request_id == "req-42"


@pytest.mark.asyncio
async def test_store_outage_returns_503(client: AsyncClient, wired_container):
    class DownStore(MemoryPolicyStore):
        async def roles_of(self, subject, tenant):
            raise PolicyStoreUnavailable("connection refused")

    wired_container.set("policy_store", DownStore())

    response = await client.post(
        "/api/tenants/org_1/auth/check",
        json={"resource": "customer", "action": "read"},
        headers=session_headers("u1"),
    )

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"


# ============ Tokens ============


@pytest.mark.asyncio
async def test_token_lifecycle(client: AsyncClient, bootstrapper):
    """Test issue, use, list and revoke of a project token."""
    await bootstrapper.bootstrap("project_7", "project", members=[("u1", "owner")])

    created = await client.post(
        "/api/tenants/project_7/tokens",
        json={"name": "ci", "preset": "read"},
        headers=session_headers("u1"),
    )
    assert created.status_code == 201
    data = created.json()
    secret = data["secret"]
    token_id = data["token"]["id"]
    assert data["token"]["created_by"] == "u1"
    assert data["token"]["scopes"] == ["customer:read", "reward:read", "campaign:read"]

    check = await client.post(
        "/api/tenants/project_7/auth/check",
        json={"resource": "customer", "action": "read"},
        headers=bearer_headers(secret),
    )
    assert check.json()["allowed"] is True

    listed = await client.get("/api/tenants/project_7/tokens", headers=session_headers("u1"))
    assert listed.status_code == 200
    tokens = listed.json()["tokens"]
    assert [t["id"] for t in tokens] == [token_id]
    assert "secret" not in tokens[0]
    assert "token_hash" not in tokens[0]
    assert secret.startswith(tokens[0]["key_prefix"])

    revoked = await client.delete(f"/api/tenants/project_7/tokens/{token_id}", headers=session_headers("u1"))
    assert revoked.status_code == 204

    after = await client.post(
        "/api/tenants/project_7/auth/check",
        json={"resource": "customer", "action": "read"},
        headers=bearer_headers(secret),
    )
    assert after.status_code == 401

    again = await client.delete(f"/api/tenants/project_7/tokens/{token_id}", headers=session_headers("u1"))
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_token_cannot_mint_tokens(client: AsyncClient, token_service):
    issued = await token_service.issue("project_7", preset="write")

    response = await client.post(
        "/api/tenants/project_7/tokens",
        json={"preset": "admin"},
        headers=bearer_headers(issued.secret),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_viewer_cannot_create_tokens(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u2", "viewer")])

    response = await client.post(
        "/api/tenants/project_7/tokens",
        json={"preset": "read"},
        headers=session_headers("u2"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Permission denied"


@pytest.mark.asyncio
async def test_create_token_validation(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u1", "owner")])

    empty = await client.post("/api/tenants/project_7/tokens", json={"name": "x"}, headers=session_headers("u1"))
    unknown = await client.post(
        "/api/tenants/project_7/tokens",
        json={"scopes": ["customers:read"]},
        headers=session_headers("u1"),
    )

    assert empty.status_code == 422
    assert unknown.status_code == 422


# ============ Bootstrap ============


@pytest.mark.asyncio
async def test_bootstrap_endpoint(client: AsyncClient, platform_admin, policy_store):
    response = await client.post(
        "/api/tenants/project_9/bootstrap",
        json={"level": "project", "members": [{"user_id": "u5", "role": "owner"}]},
        headers=session_headers(platform_admin),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["tenant_id"] == "project_9"
    assert data["level"] == "project"
    assert data["added"] > 0
    assert await policy_store.roles_of("u5", "project_9") == ["owner"]

    again = await client.post(
        "/api/tenants/project_9/bootstrap",
        json={"level": "project"},
        headers=session_headers(platform_admin),
    )
    assert again.json()["added"] == 0


@pytest.mark.asyncio
async def test_bootstrap_requires_policy_manage(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u3", "member")])

    forbidden = await client.post(
        "/api/tenants/project_7/bootstrap",
        json={"level": "project"},
        headers=session_headers("u3"),
    )
    anonymous = await client.post("/api/tenants/project_7/bootstrap", json={"level": "project"})

    assert forbidden.status_code == 403
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_bootstrap_rejects_unknown_level(client: AsyncClient, platform_admin):
    response = await client.post(
        "/api/tenants/project_9/bootstrap",
        json={"level": "workspace"},
        headers=session_headers(platform_admin),
    )

    assert response.status_code == 422


# ============ Warm-up ============


@pytest.mark.asyncio
async def test_init_policies_runs_once(client: AsyncClient, platform_admin, tenant_directory):
    tenant_directory.add("org_1", TenantLevel.ORGANIZATION)
    tenant_directory.add("project_7", TenantLevel.PROJECT)

    first = await client.post("/api/system/init-policies", headers=session_headers(platform_admin))
    second = await client.post("/api/system/init-policies", headers=session_headers(platform_admin))

    assert first.status_code == 200
    assert first.json()["initialized"] is True
    assert {b["tenant_id"] for b in first.json()["bootstrapped"]} == {"org_1", "project_7"}
    assert second.json() == {"initialized": False, "bootstrapped": []}


@pytest.mark.asyncio
async def test_init_policies_requires_global_permission(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("org_1", "organization", members=[("u1", "owner")])

    response = await client.post("/api/system/init-policies", headers=session_headers("u1"))

    assert response.status_code == 403


# ============ Policy administration ============


@pytest.mark.asyncio
async def test_policy_rule_lifecycle(client: AsyncClient, bootstrapper, policy_store):
    await bootstrapper.bootstrap("project_7", "project", members=[("u5", "owner")])
    rule = {"subject": "u9", "resource": "reward", "action": "read"}

    created = await client.post("/api/tenants/project_7/policies", json=rule, headers=session_headers("u5"))
    repeated = await client.post("/api/tenants/project_7/policies", json=rule, headers=session_headers("u5"))

    assert created.status_code == 201
    assert created.json() == {"changed": True}
    assert repeated.json() == {"changed": False}
    assert PolicyRule("u9", "reward", "read", "project_7") in await policy_store.list_policies("project_7")

    listed = await client.get("/api/tenants/project_7/policies", headers=session_headers("u5"))
    assert listed.status_code == 200
    assert {**rule, "tenant": "project_7"} in listed.json()["policies"]
    assert {"role": "member", "parent": "viewer", "tenant": "project_7"} in listed.json()["inheritance"]

    removed = await client.delete("/api/tenants/project_7/policies", params=rule, headers=session_headers("u5"))
    missing = await client.delete("/api/tenants/project_7/policies", params=rule, headers=session_headers("u5"))

    assert removed.status_code == 204
    assert missing.status_code == 404
    assert PolicyRule("u9", "reward", "read", "project_7") not in await policy_store.list_policies("project_7")


@pytest.mark.asyncio
async def test_add_policy_rejects_unknown_permission(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u5", "owner")])

    response = await client.post(
        "/api/tenants/project_7/policies",
        json={"subject": "u9", "resource": "rewards", "action": "read"},
        headers=session_headers("u5"),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidRuleError"


@pytest.mark.asyncio
async def test_role_assignment_routes(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u5", "owner")])
    base = "/api/tenants/project_7/users/u9/roles"

    assigned = await client.put(f"{base}/member", headers=session_headers("u5"))
    roles = await client.get(base, headers=session_headers("u5"))
    allowed = await client.post(
        "/api/tenants/project_7/auth/check",
        json={"resource": "campaign", "action": "update"},
        headers=session_headers("u9"),
    )

    assert assigned.json() == {"changed": True}
    assert roles.json() == {"user_id": "u9", "tenant_id": "project_7", "roles": ["member"]}
    assert allowed.json()["allowed"] is True

    unassigned = await client.delete(f"{base}/member", headers=session_headers("u5"))
    again = await client.delete(f"{base}/member", headers=session_headers("u5"))
    denied = await client.post(
        "/api/tenants/project_7/auth/check",
        json={"resource": "campaign", "action": "update"},
        headers=session_headers("u9"),
    )

    assert unassigned.status_code == 204
    assert again.status_code == 404
    assert denied.json()["allowed"] is False


@pytest.mark.asyncio
async def test_role_inheritance_routes(client: AsyncClient, bootstrapper, policy_store):
    await bootstrapper.bootstrap("project_7", "project", members=[("u5", "owner")])
    await policy_store.assign_role("u9", "auditor", "project_7")
    path = "/api/tenants/project_7/roles/auditor/parents/member"

    added = await client.put(path, headers=session_headers("u5"))
    elevated = await client.post(
        "/api/tenants/project_7/auth/check",
        json={"resource": "campaign", "action": "update"},
        headers=session_headers("u9"),
    )

    assert added.json() == {"changed": True}
    assert elevated.json()["allowed"] is True

    removed = await client.delete(path, headers=session_headers("u5"))
    missing = await client.delete(path, headers=session_headers("u5"))

    assert removed.status_code == 204
    assert missing.status_code == 404
    assert all(e.role != "auditor" for e in await policy_store.list_role_inheritance("project_7"))


@pytest.mark.asyncio
async def test_delete_role_routes(client: AsyncClient, bootstrapper, policy_store):
    await bootstrapper.bootstrap("project_7", "project", members=[("u5", "owner")])
    await policy_store.create_role(Role(id="auditor", name="auditor", tenant_id="project_7"))

    in_use = await client.delete("/api/tenants/project_7/roles/member", headers=session_headers("u5"))
    deleted = await client.delete("/api/tenants/project_7/roles/auditor", headers=session_headers("u5"))
    missing = await client.delete("/api/tenants/project_7/roles/auditor", headers=session_headers("u5"))

    assert in_use.status_code == 409
    assert in_use.json()["error"] == "RoleInUseError"
    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_policy_routes_require_policy_manage(client: AsyncClient, bootstrapper):
    await bootstrapper.bootstrap("project_7", "project", members=[("u3", "member")])

    forbidden = [
        await client.get("/api/tenants/project_7/policies", headers=session_headers("u3")),
        await client.post(
            "/api/tenants/project_7/policies",
            json={"subject": "u3", "resource": "policy", "action": "manage"},
            headers=session_headers("u3"),
        ),
        await client.put("/api/tenants/project_7/users/u3/roles/owner", headers=session_headers("u3")),
        await client.put("/api/tenants/project_7/roles/member/parents/owner", headers=session_headers("u3")),
        await client.delete("/api/tenants/project_7/roles/viewer", headers=session_headers("u3")),
    ]
    anonymous = await client.get("/api/tenants/project_7/policies")

    assert [r.status_code for r in forbidden] == [403] * 5
    assert anonymous.status_code == 401
