"""
Authorization interfaces - Core abstractions.

These define the contracts that all storage and collaborator
implementations must follow. The authorization core depends ONLY on these
interfaces, never on a concrete backend.

Backends:
- PolicyStore: rules, role inheritance, role assignments (memory, database)
- TokenRegistry: issued bearer tokens (memory, database)
- IdentityProvider: validates session credentials (jwt, http)
- UserDirectory: maps identity-provider subjects to user ids
- TenantDirectory: known organizations and projects (memory, database)
- AuditSink: receives one AuditEvent per decision
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .errors import DeadlineExceededError
from .types import (
    AuditEvent,
    PolicyRule,
    Principal,
    Role,
    RoleInheritance,
    TenantLevel,
    TenantMembership,
    TenantRef,
    Token,
)


# ============================================================
# DECISION
# ============================================================

class DecisionStatus(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    UNAUTHENTICATED = "unauthenticated"


@dataclass
class Decision:
    """
    Result of an authorization call.

    Attributes:
        status: Terminal state of the call
        reason: Caller-facing explanation (never leaks token lifecycle)
        principal: Resolved principal, when one was found
        metadata: Extra data (matched rule, scope, audit reason, ...)
    """
    status: DecisionStatus
    reason: str
    principal: Principal | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.status is DecisionStatus.ALLOWED

    @classmethod
    def allow(cls, reason: str, principal: Principal | None = None, **metadata: Any) -> "Decision":
        return cls(DecisionStatus.ALLOWED, reason, principal, metadata)

    @classmethod
    def deny(cls, reason: str = "Permission denied", principal: Principal | None = None, **metadata: Any) -> "Decision":
        return cls(DecisionStatus.DENIED, reason, principal, metadata)

    @classmethod
    def unauthenticated(cls, **metadata: Any) -> "Decision":
        return cls(DecisionStatus.UNAUTHENTICATED, "Not authenticated", None, metadata)

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason}


# ============================================================
# REQUEST CONTEXT
# ============================================================

@dataclass
class AuthContext:
    """
    Per-request input to the authorization facade.

    `deadline` is an absolute `time.monotonic()` value supplied by the
    caller; the core only propagates it. `role_cache` memoizes role
    resolution for the lifetime of this one request.
    """
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    request_id: str | None = None
    deadline: float | None = None
    role_cache: dict[tuple[str, str], Any] = field(default_factory=dict)

    @classmethod
    def with_timeout(cls, seconds: float, **kwargs: Any) -> "AuthContext":
        return cls(deadline=time.monotonic() + seconds, **kwargs)

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check_deadline(self) -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("Authorization deadline exceeded")


# ============================================================
# POLICY STORE
# ============================================================

class PolicyStore(ABC):
    """
    Durable storage of policy rules, role inheritance and role assignments.

    Tenant-scoped queries always include the global domain ("*").
    Writes return False when the exact tuple already exists, which makes
    check-then-add idempotent.

    Raises:
        InvalidRuleError: Synchronously, for malformed input (permanent)
        PolicyStoreUnavailable: When the backend cannot be reached (transient)
    """

    # Rules
    @abstractmethod
    async def add_policy(self, rule: PolicyRule) -> bool:
        pass

    @abstractmethod
    async def remove_policy(self, rule: PolicyRule) -> bool:
        pass

    @abstractmethod
    async def list_policies(
        self,
        tenant: str | None = None,
        subjects: list[str] | None = None,
    ) -> list[PolicyRule]:
        """Rules for `tenant` plus global rules; all rules when tenant is None."""
        pass

    @abstractmethod
    async def count_policies(self, tenant: str) -> int:
        """Count rules scoped to exactly `tenant` (global rules excluded)."""
        pass

    # Role inheritance
    @abstractmethod
    async def add_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        pass

    @abstractmethod
    async def remove_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        pass

    @abstractmethod
    async def list_role_inheritance(self, tenant: str) -> list[RoleInheritance]:
        pass

    # Role assignments
    @abstractmethod
    async def assign_role(self, subject: str, role: str, tenant: str) -> bool:
        pass

    @abstractmethod
    async def unassign_role(self, subject: str, role: str, tenant: str) -> bool:
        pass

    @abstractmethod
    async def roles_of(self, subject: str, tenant: str) -> list[str]:
        """Direct role assignments of `subject` in `tenant` and the global domain."""
        pass

    @abstractmethod
    async def memberships_of(self, subject: str) -> list[TenantMembership]:
        pass

    # Role definitions
    @abstractmethod
    async def create_role(self, role: Role) -> bool:
        pass

    @abstractmethod
    async def list_roles(self, tenant: str | None = None) -> list[Role]:
        pass

    @abstractmethod
    async def delete_role(self, name: str, tenant: str | None = None) -> bool:
        """
        Delete an unreferenced role.

        Raises:
            RoleInUseError: If rules, assignments or edges still reference it
        """
        pass


# ============================================================
# TOKEN REGISTRY
# ============================================================

class TokenRegistry(ABC):
    """
    Durable storage of issued bearer tokens.

    Lookups always read through to the backend so that a committed
    revocation is visible to every call that starts afterwards.
    """

    @abstractmethod
    async def save(self, token: Token) -> Token:
        pass

    @abstractmethod
    async def get(self, token_id: str) -> Token | None:
        pass

    @abstractmethod
    async def get_by_hash(self, token_hash: str) -> Token | None:
        pass

    @abstractmethod
    async def list_for_tenant(self, tenant_id: str) -> list[Token]:
        pass

    @abstractmethod
    async def revoke(self, token_id: str, revoked_at: Any) -> bool:
        """Set revoked_at. Returns False if unknown or already revoked."""
        pass

    @abstractmethod
    async def touch(self, token_id: str, used_at: Any) -> None:
        """Record last usage (best effort)."""
        pass


# ============================================================
# COLLABORATORS
# ============================================================

@dataclass(frozen=True)
class IdentityClaims:
    """What the identity provider tells us about a session."""
    external_id: str
    email: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class IdentityProvider(ABC):
    """Validates a session credential (external collaborator)."""

    @abstractmethod
    async def validate_session(
        self,
        credential: str,
        context: AuthContext | None = None,
    ) -> IdentityClaims | None:
        """
        Returns claims for a valid session, None for an invalid one.

        Raises:
            IdentityProviderUnavailable: When the provider cannot be reached
        """
        pass


class UserDirectory(ABC):
    """Maps identity-provider subjects to internal user ids."""

    @abstractmethod
    async def get_user_id(self, external_id: str) -> str | None:
        pass


class TenantDirectory(ABC):
    """Lists existing tenants (organizations and projects)."""

    @abstractmethod
    async def list_tenants(self) -> list[TenantRef]:
        pass

    @abstractmethod
    async def record(self, tenant_id: str, level: TenantLevel) -> bool:
        """Remember a newly created tenant. Returns False if already known."""
        pass


class AuditSink(ABC):
    """Receives audit events. Implementations may raise; callers absorb."""

    @abstractmethod
    async def write(self, event: AuditEvent) -> None:
        pass
