"""
Tenant authorization routes: permission check and policy bootstrap.
"""

from fastapi import APIRouter, Depends, Request

from tenantguard.core.auth.bootstrap import TenantPolicyBootstrapper
from tenantguard.core.auth.decorators import require
from tenantguard.core.auth.dependencies import Authorize, unauthenticated_exception
from tenantguard.core.auth.interfaces import DecisionStatus
from tenantguard.core.container import get_bootstrapper
from tenantguard.schemas.auth import (
    BootstrapRequest,
    BootstrapResponse,
    DecisionResponse,
    PermissionCheckRequest,
)

router = APIRouter()


@router.post("/{tenant_id}/auth/check", response_model=DecisionResponse)
async def check_permission(
    tenant_id: str,
    data: PermissionCheckRequest,
    auth: Authorize,
):
    """
    Ask whether the caller may perform an action in this tenant.

    Answers 200 for both allow and deny; 401 when the caller is unknown.
    """
    decision = await auth.check(data.resource, data.action, tenant_id)
    if decision.status is DecisionStatus.UNAUTHENTICATED:
        raise unauthenticated_exception()

    return DecisionResponse(
        allowed=decision.allowed,
        status=decision.status,
        reason=decision.reason,
    )


@router.post("/{tenant_id}/bootstrap", response_model=BootstrapResponse)
@require("policy", "manage")
async def bootstrap_tenant(
    request: Request,
    tenant_id: str,
    data: BootstrapRequest,
    bootstrapper: TenantPolicyBootstrapper = Depends(get_bootstrapper),
):
    """
    Seed the default roles and policies for a tenant.

    Idempotent: calling it again reports every rule as existing.
    """
    result = await bootstrapper.bootstrap(
        tenant_id,
        data.level,
        members=[(m.user_id, m.role) for m in data.members],
    )
    return BootstrapResponse(
        tenant_id=result.tenant_id,
        level=result.level,
        added=result.added,
        existing=result.existing,
    )
