"""
Policy administration routes: rules, role assignments and role inheritance.

Every route requires policy:manage in the path tenant. Rules written here
are always scoped to that tenant; global rules are managed out of band.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from tenantguard.core.auth.decorators import require
from tenantguard.core.auth.interfaces import PolicyStore
from tenantguard.core.auth.types import PolicyRule
from tenantguard.core.container import get_policy_store
from tenantguard.schemas.auth import (
    PolicyChangeResponse,
    PolicyListResponse,
    PolicyRuleCreate,
    PolicyRuleResponse,
    RoleInheritanceResponse,
    UserRolesResponse,
)

router = APIRouter()


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# ============ Rules ============

@router.get("/{tenant_id}/policies", response_model=PolicyListResponse)
@require("policy", "manage")
async def list_policies(
    request: Request,
    tenant_id: str,
    store: PolicyStore = Depends(get_policy_store),
):
    """List the rules that apply in this tenant and its inheritance edges."""
    return PolicyListResponse(
        policies=[PolicyRuleResponse.model_validate(r) for r in await store.list_policies(tenant_id)],
        inheritance=[
            RoleInheritanceResponse.model_validate(e) for e in await store.list_role_inheritance(tenant_id)
        ],
    )


@router.post("/{tenant_id}/policies", response_model=PolicyChangeResponse, status_code=status.HTTP_201_CREATED)
@require("policy", "manage")
async def add_policy(
    request: Request,
    tenant_id: str,
    data: PolicyRuleCreate,
    store: PolicyStore = Depends(get_policy_store),
):
    """
    Grant `subject` the permission in this tenant.

    Idempotent: an existing rule answers `changed: false`.
    """
    added = await store.add_policy(PolicyRule(data.subject, data.resource, data.action, tenant_id))
    return PolicyChangeResponse(changed=added)


@router.delete("/{tenant_id}/policies", status_code=status.HTTP_204_NO_CONTENT)
@require("policy", "manage")
async def remove_policy(
    request: Request,
    tenant_id: str,
    subject: str = Query(min_length=1),
    resource: str = Query(min_length=1),
    action: str = Query(min_length=1),
    store: PolicyStore = Depends(get_policy_store),
):
    """Remove one tenant rule, identified by its query parameters."""
    if not await store.remove_policy(PolicyRule(subject, resource, action, tenant_id)):
        raise _not_found("Policy not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============ Role assignments ============

@router.get("/{tenant_id}/users/{user_id}/roles", response_model=UserRolesResponse)
@require("policy", "manage")
async def get_user_roles(
    request: Request,
    tenant_id: str,
    user_id: str,
    store: PolicyStore = Depends(get_policy_store),
):
    """Direct roles of a user in this tenant (global assignments included)."""
    return UserRolesResponse(
        user_id=user_id,
        tenant_id=tenant_id,
        roles=await store.roles_of(user_id, tenant_id),
    )


@router.put("/{tenant_id}/users/{user_id}/roles/{role}", response_model=PolicyChangeResponse)
@require("policy", "manage")
async def assign_role(
    request: Request,
    tenant_id: str,
    user_id: str,
    role: str,
    store: PolicyStore = Depends(get_policy_store),
):
    return PolicyChangeResponse(changed=await store.assign_role(user_id, role, tenant_id))


@router.delete("/{tenant_id}/users/{user_id}/roles/{role}", status_code=status.HTTP_204_NO_CONTENT)
@require("policy", "manage")
async def unassign_role(
    request: Request,
    tenant_id: str,
    user_id: str,
    role: str,
    store: PolicyStore = Depends(get_policy_store),
):
    if not await store.unassign_role(user_id, role, tenant_id):
        raise _not_found("Role assignment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============ Roles and inheritance ============

@router.delete("/{tenant_id}/roles/{role}", status_code=status.HTTP_204_NO_CONTENT)
@require("policy", "manage")
async def delete_role(
    request: Request,
    tenant_id: str,
    role: str,
    store: PolicyStore = Depends(get_policy_store),
):
    """
    Delete a tenant role definition.

    Answers 409 while rules, assignments or inheritance edges still name it.
    """
    if not await store.delete_role(role, tenant_id):
        raise _not_found("Role not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{tenant_id}/roles/{role}/parents/{parent}", response_model=PolicyChangeResponse)
@require("policy", "manage")
async def add_role_inheritance(
    request: Request,
    tenant_id: str,
    role: str,
    parent: str,
    store: PolicyStore = Depends(get_policy_store),
):
    """Make `role` inherit every grant of `parent` in this tenant."""
    return PolicyChangeResponse(changed=await store.add_role_inheritance(role, parent, tenant_id))


@router.delete("/{tenant_id}/roles/{role}/parents/{parent}", status_code=status.HTTP_204_NO_CONTENT)
@require("policy", "manage")
async def remove_role_inheritance(
    request: Request,
    tenant_id: str,
    role: str,
    parent: str,
    store: PolicyStore = Depends(get_policy_store),
):
    if not await store.remove_role_inheritance(role, parent, tenant_id):
        raise _not_found("Inheritance edge not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
