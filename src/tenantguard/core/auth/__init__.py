"""
Authorization module - multi-tenant policy-based access control.

Decides whether a caller may perform an action on a resource inside a
tenant (organization or project).

Usage Levels:
=============

Level 1: Route decorator
------------------------
    from tenantguard.core.auth.decorators import require

    @router.post("/tenants/{tenant_id}/customers")
    @require("customer", "create")
    async def create_customer(request: Request, tenant_id: str):
        ...

Level 2: Request authorizer
---------------------------
    from tenantguard.core.auth.dependencies import Authorize

    @router.get("/tenants/{tenant_id}/rewards")
    async def list_rewards(tenant_id: str, auth: Authorize):
        await auth.require("reward", "read", tenant_id)
        ...

Level 3: Facade
---------------
    decision = await container.authorization.authorize(
        AuthContext(headers=..., cookies=...),
        "campaign", "update", "project_7",
    )

Credentials:
============
- Authorization: Bearer <token>  -> scope check, token bound to one tenant
- session cookie                 -> roles + policies of the user

Configuration:
==============
Environment variables (AUTH_ prefix):
- AUTH_POLICY_STORE / AUTH_TOKEN_REGISTRY: "database" (default), "memory"
- AUTH_IDENTITY_PROVIDER: "jwt" or "http" (http if an endpoint is set)
- AUTH_IDENTITY_PROVIDER_ENDPOINT, AUTH_SESSION_COOKIE_NAME
- AUTH_TOKEN_HASH_ALGORITHM, AUTH_TOKEN_HASH_SECRET, AUTH_TOKEN_PREFIX
- AUTH_POLICY_BOOTSTRAP_ON_STARTUP
"""

from .audit import AuditEmitter, InMemoryAuditSink, LoggingAuditSink
from .bootstrap import BootstrapResult, TenantPolicyBootstrapper
from .credentials import CredentialResolver
from .enforcer import EnforcementResult, Enforcer, evaluate
from .errors import (
    AuthorizationError,
    CyclicRoleInheritanceError,
    DeadlineExceededError,
    ForbiddenError,
    IdentityProviderUnavailable,
    InvalidRuleError,
    InvalidTokenError,
    PolicyStoreUnavailable,
    RoleInUseError,
    StoreUnavailableError,
    TokenExpiredError,
    TokenRegistryUnavailable,
    TokenRevokedError,
    UnauthenticatedError,
    UnknownPermissionError,
    UnknownTenantLevelError,
)
from .interfaces import (
    AuditSink,
    AuthContext,
    Decision,
    DecisionStatus,
    IdentityClaims,
    IdentityProvider,
    PolicyStore,
    TenantDirectory,
    TokenRegistry,
    UserDirectory,
)
from .permissions import ActionVerb, Permission, ResourceType
from .registry import AuthRegistry
from .roles import ResolvedRoles, RoleResolver
from .service import AuthorizationService
from .tokens import SCOPE_PRESETS, IssuedToken, TokenService
from .types import (
    GLOBAL_TENANT,
    AuditEvent,
    Outcome,
    PolicyRule,
    Principal,
    PrincipalKind,
    Role,
    RoleAssignment,
    RoleInheritance,
    TenantLevel,
    TenantMembership,
    TenantRef,
    Token,
)

__all__ = [
    # Facade
    "AuthorizationService",
    "AuthContext",
    "Decision",
    "DecisionStatus",
    # Components
    "CredentialResolver",
    "RoleResolver",
    "ResolvedRoles",
    "Enforcer",
    "EnforcementResult",
    "evaluate",
    "TenantPolicyBootstrapper",
    "BootstrapResult",
    "TokenService",
    "IssuedToken",
    "SCOPE_PRESETS",
    "AuditEmitter",
    "LoggingAuditSink",
    "InMemoryAuditSink",
    "AuthRegistry",
    # Interfaces
    "PolicyStore",
    "TokenRegistry",
    "IdentityProvider",
    "IdentityClaims",
    "UserDirectory",
    "TenantDirectory",
    "AuditSink",
    # Vocabulary and data
    "Permission",
    "ResourceType",
    "ActionVerb",
    "GLOBAL_TENANT",
    "PolicyRule",
    "RoleInheritance",
    "RoleAssignment",
    "Role",
    "TenantLevel",
    "TenantMembership",
    "TenantRef",
    "Token",
    "Principal",
    "PrincipalKind",
    "AuditEvent",
    "Outcome",
    # Errors
    "AuthorizationError",
    "UnauthenticatedError",
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenRevokedError",
    "ForbiddenError",
    "StoreUnavailableError",
    "PolicyStoreUnavailable",
    "TokenRegistryUnavailable",
    "IdentityProviderUnavailable",
    "DeadlineExceededError",
    "InvalidRuleError",
    "UnknownPermissionError",
    "UnknownTenantLevelError",
    "RoleInUseError",
    "CyclicRoleInheritanceError",
]
