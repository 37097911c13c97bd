"""
Authorization schemas.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tenantguard.core.auth.interfaces import DecisionStatus
from tenantguard.core.auth.types import TenantLevel


# ============ Permission check ============

class PermissionCheckRequest(BaseModel):
    """Ask whether the caller may perform an action in the path tenant."""
    resource: str = Field(min_length=1, max_length=64)
    action: str = Field(min_length=1, max_length=64)


class DecisionResponse(BaseModel):
    allowed: bool
    status: DecisionStatus
    reason: str


# ============ Bootstrap ============

class MemberAssignment(BaseModel):
    user_id: str = Field(min_length=1, max_length=255)
    role: str = Field(min_length=1, max_length=64)


class BootstrapRequest(BaseModel):
    """Seed default policies for a tenant."""
    level: TenantLevel
    members: list[MemberAssignment] = []


class BootstrapResponse(BaseModel):
    tenant_id: str
    level: TenantLevel
    added: int
    existing: int


class InitPoliciesResponse(BaseModel):
    initialized: bool  # False when warm-up already ran in this process
    bootstrapped: list[BootstrapResponse]


# ============ Tokens ============

class TokenCreate(BaseModel):
    """Token creation schema. Give scopes, a preset, or both."""
    name: str = Field(default="", max_length=255)
    scopes: list[str] = []
    preset: Literal["read", "write", "admin"] | None = None
    expires_in_days: int | None = Field(default=None, ge=1, le=3650)

    @model_validator(mode="after")
    def require_scopes(self) -> "TokenCreate":
        if not self.scopes and self.preset is None:
            raise ValueError("Provide scopes or a preset")
        return self


class TokenResponse(BaseModel):
    """Token response schema (never includes the secret)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    tenant_id: str
    key_prefix: str
    scopes: list[str]
    created_by: str | None = None
    created_at: datetime
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    last_used_at: datetime | None = None


class TokenCreatedResponse(BaseModel):
    """Response when a token is created (includes the secret once)."""
    secret: str  # Full token, only shown once
    token: TokenResponse


class TokenListResponse(BaseModel):
    tokens: list[TokenResponse]


# ============ Policy administration ============

class PolicyRuleCreate(BaseModel):
    """A grant in the path tenant. `subject` is a role name or a user id."""
    subject: str = Field(min_length=1, max_length=255)
    resource: str = Field(min_length=1, max_length=64)
    action: str = Field(min_length=1, max_length=64)


class PolicyRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject: str
    resource: str
    action: str
    tenant: str


class RoleInheritanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: str
    parent: str
    tenant: str


class PolicyListResponse(BaseModel):
    """Rules visible in the tenant (global ones included) and its inheritance edges."""
    policies: list[PolicyRuleResponse]
    inheritance: list[RoleInheritanceResponse]


class PolicyChangeResponse(BaseModel):
    changed: bool  # False when the store already held the requested state


class UserRolesResponse(BaseModel):
    user_id: str
    tenant_id: str
    roles: list[str]
