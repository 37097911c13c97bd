"""
Authorization service - Main facade for authorization.

This is the single decision entry point. Every call ends in exactly one
of ALLOWED, DENIED or UNAUTHENTICATED and emits exactly one audit event.

    bearer token -> registry gate (revoked / expired) -> scope check
    session      -> role resolution -> policy enforcement

Usage:
    decision = await service.authorize(ctx, "customer", "read", "project_7")
    if not decision.allowed:
        ...

Infrastructure errors (stores, identity provider, deadline) propagate
unchanged and are never turned into a deny.
"""

from .audit import AuditEmitter
from .credentials import CredentialResolver
from .enforcer import Enforcer
from .errors import ForbiddenError, UnauthenticatedError
from .interfaces import AuthContext, Decision, DecisionStatus
from .permissions import Permission, scope_grants
from .roles import RoleResolver
from .types import AuditEvent, Outcome, Principal


class AuthorizationService:
    """
    Default authorization facade.

    Combines:
    - Credential resolver: who is calling
    - Role resolver + enforcer: what a user may do
    - Token scopes: what a bearer token may do
    - Audit emitter: record of every decision
    """

    def __init__(
        self,
        credentials: CredentialResolver,
        roles: RoleResolver,
        enforcer: Enforcer,
        audit: AuditEmitter,
    ):
        self.credentials = credentials
        self.roles = roles
        self.enforcer = enforcer
        self.audit = audit

    async def authorize(
        self,
        context: AuthContext,
        resource: str,
        action: str,
        tenant_id: str,
    ) -> Decision:
        """
        Decide whether the caller may perform `action` on `resource` in `tenant_id`.

        Returns:
            Decision (does not raise for a deny)

        Raises:
            UnknownPermissionError: resource/action outside the vocabulary
            StoreUnavailableError: a backing store could not answer
            DeadlineExceededError: the caller's deadline passed
        """
        permission = Permission.of(resource, action)
        if not tenant_id:
            raise ValueError("tenant_id is required")
        context.check_deadline()

        try:
            principal = await self.credentials.resolve(context.headers, context.cookies, context)
        except UnauthenticatedError as e:
            decision = Decision.unauthenticated(audit_reason=e.reason)
            await self._record(context, None, permission, tenant_id, decision)
            return decision

        if principal.is_token:
            decision = self._check_scopes(principal, permission, tenant_id)
        else:
            decision = await self._check_policies(principal, permission, tenant_id, context)

        await self._record(context, principal, permission, tenant_id, decision)
        return decision

    async def authorize_or_raise(
        self,
        context: AuthContext,
        resource: str,
        action: str,
        tenant_id: str,
    ) -> Decision:
        """
        Check authorization or raise.

        Raises:
            UnauthenticatedError: No valid credential
            ForbiddenError: Valid credential, insufficient policy or scope
        """
        decision = await self.authorize(context, resource, action, tenant_id)
        if decision.status is DecisionStatus.UNAUTHENTICATED:
            raise UnauthenticatedError(reason=decision.metadata.get("audit_reason"))
        if not decision.allowed:
            raise ForbiddenError(decision.reason, tenant=tenant_id)
        return decision

    async def can(self, context: AuthContext, resource: str, action: str, tenant_id: str) -> bool:
        decision = await self.authorize(context, resource, action, tenant_id)
        return decision.allowed

    # ============================================================
    # DECISION PATHS
    # ============================================================

    @staticmethod
    def _check_scopes(principal: Principal, permission: Permission, tenant_id: str) -> Decision:
        if principal.token_tenant_id != tenant_id:
            return Decision.deny(
                "Token is not valid for this tenant",
                principal,
                audit_reason="tenant_mismatch",
            )

        scope = scope_grants(principal.scopes, permission)
        if scope is None:
            return Decision.deny(
                f"Token scope does not include '{permission}'",
                principal,
                audit_reason="missing_scope",
            )

        return Decision.allow(f"Granted by scope '{scope}'", principal, scope=scope, audit_reason="scope")

    async def _check_policies(
        self,
        principal: Principal,
        permission: Permission,
        tenant_id: str,
        context: AuthContext,
    ) -> Decision:
        resolved = await self.roles.resolve(principal.id, tenant_id, context)
        context.check_deadline()

        result = await self.enforcer.enforce(
            principal.id,
            resolved.roles,
            permission.resource.value,
            permission.action.value,
            tenant_id,
        )
        if not result:
            return Decision.deny(
                "Permission denied",
                principal,
                roles=sorted(resolved.roles),
                audit_reason="no_matching_policy",
            )

        return Decision.allow(
            "Granted by policy",
            principal,
            roles=sorted(resolved.roles),
            matched_rule=result.matched_rule,
            audit_reason="policy",
        )

    # ============================================================
    # AUDIT
    # ============================================================

    async def _record(
        self,
        context: AuthContext,
        principal: Principal | None,
        permission: Permission,
        tenant_id: str,
        decision: Decision,
    ) -> None:
        event = AuditEvent(
            principal_id=principal.id if principal else None,
            principal_kind=principal.kind if principal else None,
            resource=permission.resource.value,
            action=permission.action.value,
            tenant=tenant_id,
            outcome=Outcome.ALLOW if decision.allowed else Outcome.DENY,
            reason=decision.metadata.get("audit_reason", decision.reason),
            request_id=context.request_id,
        )
        await self.audit.emit(event)
