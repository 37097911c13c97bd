"""
Authorization decorators for route handlers.

`authorize_handler` is the one guard: it takes the next handler and
returns a handler that runs only when the caller is allowed. `require`
is the same guard in decorator form.

Usage:
    from tenantguard.core.auth.decorators import require

    @router.get("/tenants/{tenant_id}/customers")
    @require("customer", "read")
    async def list_customers(request: Request, tenant_id: str):
        ...

The wrapped handler must accept the `Request` (any parameter name) and
the tenant id parameter (default name `tenant_id`).
"""

from functools import wraps
from typing import Any, Awaitable, Callable

from fastapi import Request

from tenantguard.core.container import container

from .dependencies import build_auth_context, raise_for_decision
from .permissions import Permission

Handler = Callable[..., Awaitable[Any]]


def _find_request(args: tuple, kwargs: dict) -> Request:
    for value in (*kwargs.values(), *args):
        if isinstance(value, Request):
            return value
    raise TypeError("Guarded handler must declare a `request: Request` parameter")


def authorize_handler(
    resource: str,
    action: str,
    *,
    tenant_param: str = "tenant_id",
) -> Callable[[Handler], Handler]:
    """
    Build a guard for (resource, action), tenant taken from `tenant_param`.

    The permission is validated when the guard is built, so a typo in a
    route declaration fails at import time.

    Raises (at request time):
        HTTPException 401/403: Unauthenticated / denied
    """
    Permission.of(resource, action)

    def guard(next_handler: Handler) -> Handler:
        @wraps(next_handler)
        async def handler(*args: Any, **kwargs: Any) -> Any:
            request = _find_request(args, kwargs)
            tenant_id = kwargs.get(tenant_param) or request.path_params.get(tenant_param)

            decision = await container.authorization.authorize(
                build_auth_context(request),
                resource,
                action,
                tenant_id,
            )
            raise_for_decision(decision)
            return await next_handler(*args, **kwargs)

        return handler
    return guard


def require(resource: str, action: str, tenant_param: str = "tenant_id") -> Callable[[Handler], Handler]:
    """
    Decorator to require a permission in the route's tenant.

    Usage:
        @require("api_token", "create")
        async def create_token(request: Request, tenant_id: str):
            ...
    """
    return authorize_handler(resource, action, tenant_param=tenant_param)
