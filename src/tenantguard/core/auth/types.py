"""
Authorization data model.

Plain dataclasses shared by every layer. Storage adapters convert their
rows into these; nothing here knows about SQLAlchemy or HTTP.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import UnknownTenantLevelError
from .permissions import WILDCARD

# Domain under which rules apply to every tenant
GLOBAL_TENANT = WILDCARD


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TenantLevel(str, Enum):
    """Two-level tenant hierarchy. Levels are bootstrapped independently."""
    ORGANIZATION = "organization"
    PROJECT = "project"

    @classmethod
    def parse(cls, value: "str | TenantLevel") -> "TenantLevel":
        try:
            return cls(value)
        except ValueError:
            raise UnknownTenantLevelError(f"Unknown tenant level: '{value}'") from None


class PrincipalKind(str, Enum):
    USER = "user"
    API_TOKEN = "api_token"


class Outcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


# ============================================================
# POLICY
# ============================================================

@dataclass(frozen=True)
class PolicyRule:
    """
    Whitelist grant: `subject` may perform `action` on `resource` in `tenant`.

    subject is a role name or a user id. "*" in resource/action is a wildcard,
    "*" in tenant is the global domain.
    """
    subject: str
    resource: str
    action: str
    tenant: str

    def applies_to(self, tenant: str) -> bool:
        return self.tenant == tenant or self.tenant == GLOBAL_TENANT

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.subject, self.resource, self.action, self.tenant)


@dataclass(frozen=True)
class RoleInheritance:
    """`role` inherits every grant of `parent` within `tenant`."""
    role: str
    parent: str
    tenant: str


@dataclass(frozen=True)
class RoleAssignment:
    subject: str
    role: str
    tenant: str


@dataclass(frozen=True)
class Role:
    id: str
    name: str
    tenant_id: str | None = None  # None = global

    @property
    def is_global(self) -> bool:
        return self.tenant_id is None


@dataclass(frozen=True)
class TenantMembership:
    tenant_id: str
    role_ids: tuple[str, ...]


@dataclass(frozen=True)
class TenantRef:
    """An existing tenant as reported by the tenant directory."""
    tenant_id: str
    level: TenantLevel


# ============================================================
# TOKENS
# ============================================================

@dataclass
class Token:
    """
    Issued bearer token. Only the hash of the secret is ever stored.

    Immutable after issuance except for `revoked_at` and usage stamps.
    """
    id: str
    token_hash: str
    tenant_id: str
    scopes: list[str]
    name: str = ""
    key_prefix: str = ""
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    last_used_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or utc_now()
        return as_utc(now) >= as_utc(self.expires_at)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


# ============================================================
# PRINCIPAL
# ============================================================

@dataclass(frozen=True)
class Principal:
    """Resolved identity for one request. Never persisted."""
    id: str
    kind: PrincipalKind
    tenant_memberships: tuple[TenantMembership, ...] = ()
    scopes: frozenset[str] = frozenset()
    token_tenant_id: str | None = None

    @property
    def is_token(self) -> bool:
        return self.kind is PrincipalKind.API_TOKEN

    def roles_in(self, tenant_id: str) -> tuple[str, ...]:
        for membership in self.tenant_memberships:
            if membership.tenant_id == tenant_id:
                return membership.role_ids
        return ()

    def is_member_of(self, tenant_id: str) -> bool:
        return any(m.tenant_id == tenant_id for m in self.tenant_memberships)


# ============================================================
# AUDIT
# ============================================================

@dataclass(frozen=True)
class AuditEvent:
    """One authorization decision. Write-once, append-only."""
    principal_id: str | None
    resource: str
    action: str
    tenant: str
    outcome: Outcome
    reason: str
    principal_kind: PrincipalKind | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "principal_id": self.principal_id,
            "principal_kind": self.principal_kind.value if self.principal_kind else None,
            "resource": self.resource,
            "action": self.action,
            "tenant": self.tenant,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
        }
