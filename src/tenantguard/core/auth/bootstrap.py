"""
Tenant policy bootstrap.

Seeds the default roles, grants and inheritance edges for a new
organization or project. Every write is check-then-add keyed by the exact
tuple, so bootstrapping a tenant any number of times (concurrently or
after a restart) leaves exactly one copy of each default rule.

Organization and project levels are seeded independently: organization
grants are never inherited by the organization's projects.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable

import structlog

from .errors import InvalidRuleError
from .interfaces import PolicyStore, TenantDirectory
from .permissions import ActionVerb, ResourceType
from .types import GLOBAL_TENANT, PolicyRule, Role, TenantLevel

logger = structlog.get_logger()

R = ResourceType
A = ActionVerb


@dataclass(frozen=True)
class RoleTemplate:
    """A default role: its grants and the roles it inherits from."""
    name: str
    grants: tuple[tuple[ResourceType, ActionVerb], ...] = ()
    inherits: tuple[str, ...] = ()


def _grid(resources: Iterable[ResourceType], actions: Iterable[ActionVerb]) -> tuple[tuple[ResourceType, ActionVerb], ...]:
    return tuple((r, a) for r in resources for a in actions)


ORGANIZATION_ROLES: tuple[RoleTemplate, ...] = (
    RoleTemplate("owner", grants=((R.ALL, A.ALL),)),
    RoleTemplate(
        "admin",
        inherits=("owner",),
        grants=(
            (R.PROJECT, A.ALL),
            (R.USER, A.ALL),
            (R.BILLING, A.READ),
            (R.ORGANIZATION, A.READ),
            (R.POLICY, A.MANAGE),
        ),
    ),
    RoleTemplate("member", grants=((R.ORGANIZATION, A.READ),)),
    RoleTemplate("viewer", grants=((R.ORGANIZATION, A.READ),)),
)

PROJECT_ROLES: tuple[RoleTemplate, ...] = (
    RoleTemplate("owner", grants=((R.ALL, A.ALL),)),
    RoleTemplate("admin", inherits=("owner",)),
    RoleTemplate(
        "member",
        inherits=("viewer",),
        grants=_grid(
            (R.CUSTOMER, R.REWARD, R.CAMPAIGN),
            (A.CREATE, A.READ, A.UPDATE, A.WRITE),
        ) + (
            (R.MEMBERSHIP, A.READ),
            (R.API_TOKEN, A.READ),
            (R.AUDIT_LOG, A.READ),
        ),
    ),
    RoleTemplate(
        "viewer",
        grants=_grid(
            (R.PROJECT, R.CUSTOMER, R.REWARD, R.CAMPAIGN, R.MEMBERSHIP),
            (A.READ,),
        ),
    ),
)

DEFAULT_ROLE_SETS: dict[TenantLevel, tuple[RoleTemplate, ...]] = {
    TenantLevel.ORGANIZATION: ORGANIZATION_ROLES,
    TenantLevel.PROJECT: PROJECT_ROLES,
}


@dataclass
class BootstrapResult:
    tenant_id: str
    level: TenantLevel
    added: int = 0
    existing: int = 0

    @property
    def created(self) -> bool:
        """True when this call wrote anything."""
        return self.added > 0


class TenantPolicyBootstrapper:
    """
    Seeds default policies per tenant.

    Owns the only process-wide mutable state of the authorization core:
    the set of tenants already handled and the warm-up flag. Both live on
    the instance, so tests and restarts get a fresh guard.
    """

    def __init__(
        self,
        store: PolicyStore,
        role_sets: dict[TenantLevel, tuple[RoleTemplate, ...]] | None = None,
    ):
        self.store = store
        self.role_sets = role_sets or DEFAULT_ROLE_SETS
        self._bootstrapped: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}
        self._warm_up_lock = asyncio.Lock()
        self._warmed_up = False

    @property
    def warmed_up(self) -> bool:
        return self._warmed_up

    def is_bootstrapped(self, tenant_id: str) -> bool:
        return tenant_id in self._bootstrapped

    def _lock_for(self, tenant_id: str) -> asyncio.Lock:
        return self._locks.setdefault(tenant_id, asyncio.Lock())

    # ============================================================
    # BOOTSTRAP
    # ============================================================

    async def bootstrap(
        self,
        tenant_id: str,
        level: TenantLevel | str,
        members: Iterable[tuple[str, str]] = (),
    ) -> BootstrapResult:
        """
        Seed the default role set for `level` in `tenant_id`.

        Args:
            tenant_id: Organization or project id
            level: TenantLevel (or its string value)
            members: Optional (user_id, role) pairs to assign

        Raises:
            UnknownTenantLevelError: If level is not organization/project
            InvalidRuleError: For an empty/global tenant id or an unknown member role
        """
        level = TenantLevel.parse(level)
        if not tenant_id or tenant_id == GLOBAL_TENANT:
            raise InvalidRuleError(f"Cannot bootstrap tenant '{tenant_id}'", tenant=tenant_id)

        templates = self.role_sets[level]
        role_names = {t.name for t in templates}
        members = list(members)
        for user_id, role in members:
            if role not in role_names:
                raise InvalidRuleError(
                    f"Unknown {level.value} role '{role}' for member '{user_id}'",
                    role=role,
                )

        result = BootstrapResult(tenant_id=tenant_id, level=level)

        async with self._lock_for(tenant_id):
            for template in templates:
                self._count(result, await self.store.create_role(
                    Role(id=template.name, name=template.name, tenant_id=tenant_id)
                ))

            for template in templates:
                for resource, action in template.grants:
                    rule = PolicyRule(template.name, resource.value, action.value, tenant_id)
                    self._count(result, await self.store.add_policy(rule))
                for parent in template.inherits:
                    self._count(result, await self.store.add_role_inheritance(template.name, parent, tenant_id))

            for user_id, role in members:
                self._count(result, await self.store.assign_role(user_id, role, tenant_id))

        self._bootstrapped.add(tenant_id)

        logger.info(
            "Tenant policies bootstrapped",
            tenant=tenant_id,
            level=level.value,
            added=result.added,
            existing=result.existing,
        )
        return result

    @staticmethod
    def _count(result: BootstrapResult, added: bool) -> None:
        if added:
            result.added += 1
        else:
            result.existing += 1

    async def ensure_bootstrapped(
        self,
        tenant_id: str,
        level: TenantLevel | str,
    ) -> BootstrapResult | None:
        """Bootstrap once per process. Returns None if already handled."""
        if tenant_id in self._bootstrapped:
            return None
        return await self.bootstrap(tenant_id, level)

    # ============================================================
    # WARM-UP
    # ============================================================

    async def warm_up(self, directory: TenantDirectory) -> list[BootstrapResult]:
        """
        Bootstrap every known tenant that has no tenant-scoped policies.

        Runs at most once per instance; concurrent callers wait for the
        first one and then return an empty list. A failure leaves the flag
        unset so the next call retries.
        """
        async with self._warm_up_lock:
            if self._warmed_up:
                return []

            results: list[BootstrapResult] = []
            skipped = 0
            for ref in await directory.list_tenants():
                if await self.store.count_policies(ref.tenant_id) > 0:
                    self._bootstrapped.add(ref.tenant_id)
                    skipped += 1
                    continue
                results.append(await self.bootstrap(ref.tenant_id, ref.level))

            self._warmed_up = True

        logger.info("Policy warm-up complete", bootstrapped=len(results), skipped=skipped)
        return results


__all__ = [
    "RoleTemplate",
    "ORGANIZATION_ROLES",
    "PROJECT_ROLES",
    "DEFAULT_ROLE_SETS",
    "BootstrapResult",
    "TenantPolicyBootstrapper",
]
