"""
In-memory policy store.

For development and testing. Data is lost on restart.
"""

import asyncio
from collections import defaultdict

from tenantguard.core.auth.errors import RoleInUseError
from tenantguard.core.auth.interfaces import PolicyStore
from tenantguard.core.auth.types import (
    GLOBAL_TENANT,
    PolicyRule,
    Role,
    RoleAssignment,
    RoleInheritance,
    TenantMembership,
)
from tenantguard.core.auth.validation import (
    check_assignment,
    check_edge,
    check_role,
    check_rule,
)


class MemoryPolicyStore(PolicyStore):
    """
    Set-backed policy storage.

    Useful for:
    - Development without database
    - Unit testing
    - Single-process deployments with static policies

    Writes are serialized per tenant with an asyncio lock; reads never
    await and therefore always see a consistent snapshot.
    """

    def __init__(self):
        self._rules: set[PolicyRule] = set()
        self._edges: set[RoleInheritance] = set()
        self._assignments: set[RoleAssignment] = set()
        self._roles: dict[tuple[str, str], Role] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _add(self, collection: set, item, tenant: str) -> bool:
        async with self._locks[tenant]:
            if item in collection:
                return False
            collection.add(item)
            return True

    async def _remove(self, collection: set, item, tenant: str) -> bool:
        async with self._locks[tenant]:
            if item not in collection:
                return False
            collection.discard(item)
            return True

    # ============================================================
    # RULES
    # ============================================================

    async def add_policy(self, rule: PolicyRule) -> bool:
        check_rule(rule)
        return await self._add(self._rules, rule, rule.tenant)

    async def remove_policy(self, rule: PolicyRule) -> bool:
        return await self._remove(self._rules, rule, rule.tenant)

    async def list_policies(
        self,
        tenant: str | None = None,
        subjects: list[str] | None = None,
    ) -> list[PolicyRule]:
        rules = self._rules
        if tenant is not None:
            rules = {r for r in rules if r.applies_to(tenant)}
        if subjects is not None:
            wanted = set(subjects)
            rules = {r for r in rules if r.subject in wanted}
        return sorted(rules, key=PolicyRule.as_tuple)

    async def count_policies(self, tenant: str) -> int:
        return sum(1 for r in self._rules if r.tenant == tenant)

    # ============================================================
    # ROLE INHERITANCE
    # ============================================================

    async def add_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        check_edge(role, parent, tenant)
        return await self._add(self._edges, RoleInheritance(role, parent, tenant), tenant)

    async def remove_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        return await self._remove(self._edges, RoleInheritance(role, parent, tenant), tenant)

    async def list_role_inheritance(self, tenant: str) -> list[RoleInheritance]:
        edges = [e for e in self._edges if e.tenant in (tenant, GLOBAL_TENANT)]
        return sorted(edges, key=lambda e: (e.tenant, e.role, e.parent))

    # ============================================================
    # ROLE ASSIGNMENTS
    # ============================================================

    async def assign_role(self, subject: str, role: str, tenant: str) -> bool:
        check_assignment(subject, role, tenant)
        return await self._add(self._assignments, RoleAssignment(subject, role, tenant), tenant)

    async def unassign_role(self, subject: str, role: str, tenant: str) -> bool:
        return await self._remove(self._assignments, RoleAssignment(subject, role, tenant), tenant)

    async def roles_of(self, subject: str, tenant: str) -> list[str]:
        return sorted({
            a.role for a in self._assignments
            if a.subject == subject and a.tenant in (tenant, GLOBAL_TENANT)
        })

    async def memberships_of(self, subject: str) -> list[TenantMembership]:
        by_tenant: dict[str, set[str]] = defaultdict(set)
        for a in self._assignments:
            if a.subject == subject:
                by_tenant[a.tenant].add(a.role)
        return [
            TenantMembership(tenant_id=tenant, role_ids=tuple(sorted(roles)))
            for tenant, roles in sorted(by_tenant.items())
        ]

    # ============================================================
    # ROLE DEFINITIONS
    # ============================================================

    async def create_role(self, role: Role) -> bool:
        check_role(role)
        tenant = role.tenant_id or GLOBAL_TENANT
        async with self._locks[tenant]:
            key = (role.name, tenant)
            if key in self._roles:
                return False
            self._roles[key] = role
            return True

    async def list_roles(self, tenant: str | None = None) -> list[Role]:
        roles = [
            role for (_, role_tenant), role in self._roles.items()
            if tenant is None or role_tenant in (tenant, GLOBAL_TENANT)
        ]
        return sorted(roles, key=lambda r: (r.tenant_id or "", r.name))

    async def delete_role(self, name: str, tenant: str | None = None) -> bool:
        tenant = tenant or GLOBAL_TENANT
        async with self._locks[tenant]:
            in_use = (
                any(r.subject == name and r.tenant == tenant for r in self._rules)
                or any(a.role == name and a.tenant == tenant for a in self._assignments)
                or any(name in (e.role, e.parent) and e.tenant == tenant for e in self._edges)
            )
            if in_use:
                raise RoleInUseError(
                    f"Role '{name}' is still referenced in tenant '{tenant}'",
                    role=name,
                    tenant=tenant,
                )
            return self._roles.pop((name, tenant), None) is not None
