"""
FastAPI dependencies for authorization.

Usage:
    from tenantguard.core.auth.dependencies import Authorize

    @router.get("/tenants/{tenant_id}/customers")
    async def handler(tenant_id: str, auth: Authorize):
        await auth.require("customer", "read", tenant_id)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from tenantguard.core.container import get_authorization_service

from .interfaces import AuthContext, Decision, DecisionStatus
from .service import AuthorizationService


# ============================================================
# HTTP MAPPING
# ============================================================

def unauthenticated_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def raise_for_decision(decision: Decision) -> None:
    """
    Raises:
        HTTPException 401: Unauthenticated
        HTTPException 403: Denied
    """
    if decision.status is DecisionStatus.UNAUTHENTICATED:
        raise unauthenticated_exception()
    if decision.status is DecisionStatus.DENIED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)


def build_auth_context(request: Request, deadline: float | None = None) -> AuthContext:
    """Snapshot the request's credentials into an AuthContext."""
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    return AuthContext(
        headers=request.headers,
        cookies=request.cookies,
        request_id=request_id,
        deadline=deadline,
    )


# ============================================================
# REQUEST AUTHORIZER
# ============================================================

class RequestAuthorizer:
    """
    Authorization bound to one request.

    The AuthContext (and its role cache) is shared by every check made
    through this object, so repeated checks in one handler resolve roles
    once.
    """

    def __init__(self, service: AuthorizationService, context: AuthContext):
        self.service = service
        self.context = context

    async def check(self, resource: str, action: str, tenant_id: str) -> Decision:
        return await self.service.authorize(self.context, resource, action, tenant_id)

    async def require(self, resource: str, action: str, tenant_id: str) -> Decision:
        """Return the decision or raise HTTPException 401/403."""
        decision = await self.check(resource, action, tenant_id)
        raise_for_decision(decision)
        return decision

    async def can(self, resource: str, action: str, tenant_id: str) -> bool:
        """
        Check if action is allowed (returns bool, no exception).

        Usage:
            if await auth.can("customer", "delete", tenant_id):
                # show delete button
        """
        decision = await self.check(resource, action, tenant_id)
        return decision.allowed


async def get_authorizer(
    request: Request,
    service: AuthorizationService = Depends(get_authorization_service),
) -> RequestAuthorizer:
    return RequestAuthorizer(service, build_auth_context(request))


# ============================================================
# TYPE ALIASES FOR CLEAN SIGNATURES
# ============================================================

# Authorization bound to the current request
Authorize = Annotated[RequestAuthorizer, Depends(get_authorizer)]
