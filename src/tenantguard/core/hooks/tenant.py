"""
Tenant lifecycle hooks.

Creating an organization or project in the host application triggers
policy bootstrap for that tenant:

    await hooks.trigger(
        ORGANIZATION_CREATED,
        tenant_id="org_1",
        members=[("user_1", "owner")],
    )

Members are never copied between an organization and its projects; the
caller passes the members for each tenant explicitly.
"""

from typing import Iterable

from tenantguard.core.auth.bootstrap import BootstrapResult, TenantPolicyBootstrapper
from tenantguard.core.auth.interfaces import TenantDirectory
from tenantguard.core.auth.types import TenantLevel

from .manager import HookManager, HookPriority

ORGANIZATION_CREATED = "tenant.organization.created"
PROJECT_CREATED = "tenant.project.created"

_SOURCE = "tenantguard.bootstrap"


def register_tenant_hooks(
    manager: HookManager,
    bootstrapper: TenantPolicyBootstrapper,
    directory: TenantDirectory | None = None,
) -> None:
    """
    Wire tenant creation events to policy bootstrap. Safe to call repeatedly.

    With a directory, the new tenant is recorded first so a later warm-up
    can re-seed it if its policies are ever missing.
    """

    async def seed(tenant_id: str, level: TenantLevel, members: Iterable[tuple[str, str]]) -> BootstrapResult:
        if directory is not None:
            await directory.record(tenant_id, level)
        return await bootstrapper.bootstrap(tenant_id, level, members)

    async def on_organization_created(
        tenant_id: str,
        members: Iterable[tuple[str, str]] = (),
        **_: object,
    ) -> BootstrapResult:
        return await seed(tenant_id, TenantLevel.ORGANIZATION, members)

    async def on_project_created(
        tenant_id: str,
        members: Iterable[tuple[str, str]] = (),
        **_: object,
    ) -> BootstrapResult:
        return await seed(tenant_id, TenantLevel.PROJECT, members)

    manager.unregister_source(_SOURCE)
    manager.register(ORGANIZATION_CREATED, on_organization_created, priority=HookPriority.FIRST, source=_SOURCE)
    manager.register(PROJECT_CREATED, on_project_created, priority=HookPriority.FIRST, source=_SOURCE)
