"""
API token management routes.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from tenantguard.core.auth.dependencies import Authorize
from tenantguard.core.auth.tokens import TokenService
from tenantguard.core.container import get_token_service
from tenantguard.schemas.auth import (
    TokenCreate,
    TokenCreatedResponse,
    TokenListResponse,
    TokenResponse,
)

router = APIRouter()


@router.post("/{tenant_id}/tokens", response_model=TokenCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_token(
    tenant_id: str,
    data: TokenCreate,
    auth: Authorize,
    tokens: TokenService = Depends(get_token_service),
):
    """
    Create a new API token bound to this tenant.

    Returns the full secret only once - store it securely.
    """
    decision = await auth.require("api_token", "create", tenant_id)

    issued = await tokens.issue(
        tenant_id,
        data.scopes,
        preset=data.preset,
        name=data.name,
        expires_in_days=data.expires_in_days,
        created_by=decision.principal.id if decision.principal else None,
    )
    return TokenCreatedResponse(
        secret=issued.secret,
        token=TokenResponse.model_validate(issued.token),
    )


@router.get("/{tenant_id}/tokens", response_model=TokenListResponse)
async def list_tokens(
    tenant_id: str,
    auth: Authorize,
    tokens: TokenService = Depends(get_token_service),
):
    """List the tenant's tokens (masked)."""
    await auth.require("api_token", "read", tenant_id)

    return TokenListResponse(
        tokens=[TokenResponse.model_validate(t) for t in await tokens.list_tokens(tenant_id)],
    )


@router.delete("/{tenant_id}/tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_token(
    tenant_id: str,
    token_id: str,
    auth: Authorize,
    tokens: TokenService = Depends(get_token_service),
):
    """Revoke a token. Takes effect for every request that starts afterwards."""
    await auth.require("api_token", "delete", tenant_id)

    if not await tokens.revoke(token_id, tenant_id=tenant_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Token not found or already revoked",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
