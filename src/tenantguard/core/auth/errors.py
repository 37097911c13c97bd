"""
Authorization error taxonomy.

Two families:
- Outcome errors (Unauthenticated, Forbidden): terminal, never retried.
- Infrastructure errors (StoreUnavailable and friends): transient, surface
  to the caller as 5xx-class failures and are never converted into a deny.

Permanent input errors (InvalidRule, UnknownPermission, ...) are raised
synchronously at the boundary that received the bad input.
"""

from typing import Any


class AuthorizationError(Exception):
    """Base class for every error raised by the authorization core."""

    retryable: bool = False

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


# ============================================================
# OUTCOMES
# ============================================================

class UnauthenticatedError(AuthorizationError):
    """No valid credential was found for the request."""

    reason: str = "unauthenticated"

    def __init__(self, reason: str | None = None, message: str = "Not authenticated", **details: Any):
        super().__init__(message, **details)
        if reason is not None:
            self.reason = reason


class InvalidTokenError(UnauthenticatedError):
    """Bearer header present but the token is unknown or malformed."""

    reason = "invalid_token"


class TokenExpiredError(UnauthenticatedError):
    """Token exists but its expiry is in the past."""

    reason = "token_expired"


class TokenRevokedError(UnauthenticatedError):
    """Token exists but has been revoked."""

    reason = "token_revoked"


class ForbiddenError(AuthorizationError):
    """Valid principal, insufficient policy."""

    def __init__(self, message: str = "Insufficient permissions", **details: Any):
        super().__init__(message, **details)


# ============================================================
# INFRASTRUCTURE (transient)
# ============================================================

class StoreUnavailableError(AuthorizationError):
    """A backing store could not be reached."""

    retryable = True


class PolicyStoreUnavailable(StoreUnavailableError):
    pass


class TokenRegistryUnavailable(StoreUnavailableError):
    pass


class IdentityProviderUnavailable(StoreUnavailableError):
    pass


class DeadlineExceededError(AuthorizationError):
    """The caller-supplied deadline passed before the decision was reached."""

    retryable = True


# ============================================================
# PERMANENT INPUT ERRORS
# ============================================================

class InvalidRuleError(AuthorizationError, ValueError):
    """Rejected policy rule, inheritance edge or role assignment."""


class UnknownPermissionError(AuthorizationError, ValueError):
    """Resource or action outside the closed vocabulary."""


class UnknownTenantLevelError(AuthorizationError, ValueError):
    pass


class RoleInUseError(AuthorizationError):
    """Role still referenced by rules, assignments or inheritance edges."""


class CyclicRoleInheritanceError(AuthorizationError):
    """
    Inheritance graph contains a cycle.

    Never raised out of the resolver: instances are logged and attached to
    the resolution result so callers can inspect them.
    """

    def __init__(self, tenant: str, roles: list[str]):
        super().__init__(
            f"Cyclic role inheritance in tenant '{tenant}': {' -> '.join(roles)}",
            tenant=tenant,
            roles=roles,
        )
        self.tenant = tenant
        self.roles = roles
