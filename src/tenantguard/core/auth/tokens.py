"""
Bearer token service.

Issues opaque tokens, validates presented secrets against the registry
and answers scope questions. Only a hash of each secret is stored; the
plain secret is returned exactly once, at issuance.

Secrets look like "<prefix>_<urlsafe random>". The prefix only helps
humans and secret scanners recognise a token; it is never trusted.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

import structlog

from .errors import (
    InvalidRuleError,
    InvalidTokenError,
    StoreUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
)
from .interfaces import TokenRegistry
from .permissions import Permission, scope_grants, validate_scopes
from .types import GLOBAL_TENANT, Token, utc_now

logger = structlog.get_logger()


_CONTENT = ("customer", "reward", "campaign")

SCOPE_PRESETS: dict[str, list[str]] = {
    "read": [f"{r}:read" for r in _CONTENT],
    "write": [f"{r}:{a}" for r in _CONTENT for a in ("read", "create", "update")],
    "admin": ["*"],
}


@dataclass
class IssuedToken:
    """A freshly issued token. `secret` is never retrievable again."""
    token: Token
    secret: str


class TokenService:
    """
    Token lifecycle: issue, validate, revoke, list.

    Usage:
        service = TokenService(registry, prefix="tgk")
        issued = await service.issue("project_7", preset="read")
        token = await service.validate(issued.secret)
    """

    PREFIX_DISPLAY_LENGTH = 4

    def __init__(
        self,
        registry: TokenRegistry,
        *,
        hash_algorithm: str = "sha256",
        hash_secret: str = "",
        prefix: str = "tgk",
        token_bytes: int = 32,
    ):
        self.registry = registry
        self.hash_algorithm = hash_algorithm
        self._hash_key = hash_secret.encode() if hash_secret else b""
        self.prefix = prefix
        self.token_bytes = token_bytes

    # ============================================================
    # SECRETS
    # ============================================================

    def generate_secret(self) -> str:
        return f"{self.prefix}_{secrets.token_urlsafe(self.token_bytes)}"

    def hash_secret(self, secret: str) -> str:
        """Keyed HMAC when a hashing secret is configured, plain digest otherwise."""
        if self._hash_key:
            return hmac.new(self._hash_key, secret.encode(), self.hash_algorithm).hexdigest()
        return hashlib.new(self.hash_algorithm, secret.encode()).hexdigest()

    def display_prefix(self, secret: str) -> str:
        return secret[: len(self.prefix) + 1 + self.PREFIX_DISPLAY_LENGTH]

    # ============================================================
    # LIFECYCLE
    # ============================================================

    async def issue(
        self,
        tenant_id: str,
        scopes: list[str] | None = None,
        *,
        preset: str | None = None,
        name: str = "",
        expires_in_days: int | None = None,
        expires_at: datetime | None = None,
        created_by: str | None = None,
    ) -> IssuedToken:
        """
        Issue a token bound to one tenant.

        Either `scopes` or a `preset` ("read", "write", "admin") must be
        given. `expires_in_days` and `expires_at` are mutually exclusive;
        with neither the token never expires.

        Raises:
            UnknownPermissionError: If a scope is outside the vocabulary
            InvalidRuleError: For a missing tenant, scopes or a bad expiry
        """
        if not tenant_id or tenant_id == GLOBAL_TENANT:
            raise InvalidRuleError("Tokens must be bound to a concrete tenant", tenant=tenant_id)

        if preset is not None:
            if preset not in SCOPE_PRESETS:
                raise InvalidRuleError(f"Unknown scope preset: '{preset}'", preset=preset)
            scopes = [*SCOPE_PRESETS[preset], *(scopes or [])]

        scopes = validate_scopes(scopes or [])
        if not scopes:
            raise InvalidRuleError("A token needs at least one scope")

        if expires_in_days is not None:
            if expires_at is not None:
                raise InvalidRuleError("Pass either expires_in_days or expires_at, not both")
            if expires_in_days <= 0:
                raise InvalidRuleError("expires_in_days must be positive")
            expires_at = utc_now() + timedelta(days=expires_in_days)

        secret = self.generate_secret()
        token = Token(
            id=str(uuid4()),
            token_hash=self.hash_secret(secret),
            tenant_id=tenant_id,
            scopes=scopes,
            name=name or (f"api_{preset}" if preset else "api_token"),
            key_prefix=self.display_prefix(secret),
            expires_at=expires_at,
            created_by=created_by,
        )
        token = await self.registry.save(token)

        logger.info(
            "Token issued",
            token_id=token.id,
            tenant=tenant_id,
            scopes=scopes,
            expires_at=expires_at.isoformat() if expires_at else None,
        )
        return IssuedToken(token=token, secret=secret)

    async def validate(self, secret: str, now: datetime | None = None) -> Token:
        """
        Resolve a presented secret to an active token.

        Revocation and expiry are hard gates checked before any scope
        evaluation can happen.

        Raises:
            InvalidTokenError: Unknown secret
            TokenRevokedError: Token was revoked
            TokenExpiredError: Token expired
            TokenRegistryUnavailable: Registry unreachable
        """
        if not secret:
            raise InvalidTokenError()

        token = await self.registry.get_by_hash(self.hash_secret(secret))
        if token is None:
            raise InvalidTokenError()

        now = now or utc_now()
        if token.is_revoked:
            raise TokenRevokedError(token_id=token.id)
        if token.is_expired(now):
            raise TokenExpiredError(token_id=token.id)

        try:
            await self.registry.touch(token.id, now)
        except StoreUnavailableError as e:
            # Usage stamps are advisory; the decision does not depend on them
            logger.warning("Failed to record token usage", token_id=token.id, error=str(e))
        else:
            token.last_used_at = now

        return token

    async def revoke(self, token_id: str, tenant_id: str | None = None) -> bool:
        """Revoke a token. With `tenant_id`, only a token of that tenant."""
        token = await self.registry.get(token_id)
        if token is None or (tenant_id is not None and token.tenant_id != tenant_id):
            return False

        revoked = await self.registry.revoke(token_id, utc_now())
        if revoked:
            logger.info("Token revoked", token_id=token_id, tenant=token.tenant_id)
        return revoked

    async def list_tokens(self, tenant_id: str) -> list[Token]:
        return await self.registry.list_for_tenant(tenant_id)

    # ============================================================
    # SCOPES
    # ============================================================

    @staticmethod
    def grants(token: Token, permission: Permission, tenant_id: str) -> str | None:
        """The scope granting `permission` in `tenant_id`, or None."""
        if token.tenant_id != tenant_id:
            return None
        return scope_grants(token.scopes, permission)
