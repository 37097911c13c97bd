"""
System routes: policy warm-up.
"""

from fastapi import APIRouter, Depends

from tenantguard.core.auth.bootstrap import TenantPolicyBootstrapper
from tenantguard.core.auth.dependencies import Authorize
from tenantguard.core.auth.interfaces import TenantDirectory
from tenantguard.core.auth.types import GLOBAL_TENANT
from tenantguard.core.container import get_bootstrapper, get_tenant_directory
from tenantguard.schemas.auth import BootstrapResponse, InitPoliciesResponse

router = APIRouter()


@router.post("/init-policies", response_model=InitPoliciesResponse)
async def init_policies(
    auth: Authorize,
    bootstrapper: TenantPolicyBootstrapper = Depends(get_bootstrapper),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    """
    Bootstrap every tenant that has no policies yet.

    Runs once per process; later calls report `initialized: false`.
    Requires `policy:manage` in the global domain.
    """
    await auth.require("policy", "manage", GLOBAL_TENANT)

    already = bootstrapper.warmed_up
    results = await bootstrapper.warm_up(directory)

    return InitPoliciesResponse(
        initialized=not already,
        bootstrapped=[
            BootstrapResponse(
                tenant_id=r.tenant_id,
                level=r.level,
                added=r.added,
                existing=r.existing,
            )
            for r in results
        ],
    )
