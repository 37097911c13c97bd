"""
In-memory token registry.

For development and testing. Tokens are lost on restart.
"""

import asyncio
from dataclasses import replace
from datetime import datetime

from tenantguard.core.auth.interfaces import TokenRegistry
from tenantguard.core.auth.types import Token


class MemoryTokenRegistry(TokenRegistry):
    """Dict-backed token storage. Hands out copies so callers cannot mutate state."""

    def __init__(self):
        self._tokens: dict[str, Token] = {}
        self._by_hash: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def save(self, token: Token) -> Token:
        async with self._lock:
            if token.token_hash in self._by_hash and self._by_hash[token.token_hash] != token.id:
                raise ValueError("Token hash collision")
            self._tokens[token.id] = replace(token, scopes=list(token.scopes))
            self._by_hash[token.token_hash] = token.id
        return replace(token)

    async def get(self, token_id: str) -> Token | None:
        token = self._tokens.get(token_id)
        return replace(token) if token else None

    async def get_by_hash(self, token_hash: str) -> Token | None:
        token_id = self._by_hash.get(token_hash)
        if token_id is None:
            return None
        return await self.get(token_id)

    async def list_for_tenant(self, tenant_id: str) -> list[Token]:
        tokens = [replace(t) for t in self._tokens.values() if t.tenant_id == tenant_id]
        return sorted(tokens, key=lambda t: t.created_at, reverse=True)

    async def revoke(self, token_id: str, revoked_at: datetime) -> bool:
        async with self._lock:
            token = self._tokens.get(token_id)
            if token is None or token.is_revoked:
                return False
            token.revoked_at = revoked_at
            return True

    async def touch(self, token_id: str, used_at: datetime) -> None:
        token = self._tokens.get(token_id)
        if token is not None:
            token.last_used_at = used_at
