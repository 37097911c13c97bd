"""
Database token registry.

Every lookup reads through to the database: there is no cache, so a
committed revocation is seen by the very next validation.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.core.auth.errors import TokenRegistryUnavailable
from tenantguard.core.auth.interfaces import TokenRegistry
from tenantguard.core.auth.types import Token, as_utc
from tenantguard.implementations.sql import transaction
from tenantguard.models.token import AccessTokenModel


def _optional_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class DatabaseTokenRegistry(TokenRegistry):
    """SQLAlchemy-backed token storage."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _transaction(self):
        return transaction(self.session_factory, TokenRegistryUnavailable)

    @staticmethod
    def _model_to_token(model: AccessTokenModel) -> Token:
        return Token(
            id=model.id,
            token_hash=model.token_hash,
            tenant_id=model.tenant_id,
            scopes=list(model.scopes or []),
            name=model.name,
            key_prefix=model.key_prefix,
            expires_at=_optional_utc(model.expires_at),
            revoked_at=_optional_utc(model.revoked_at),
            created_by=model.created_by,
            created_at=as_utc(model.created_at),
            last_used_at=_optional_utc(model.last_used_at),
        )

    async def save(self, token: Token) -> Token:
        model = AccessTokenModel(
            id=token.id,
            token_hash=token.token_hash,
            tenant_id=token.tenant_id,
            name=token.name,
            key_prefix=token.key_prefix,
            scopes=list(token.scopes),
            created_by=token.created_by,
            created_at=token.created_at,
            expires_at=token.expires_at,
            revoked_at=token.revoked_at,
            last_used_at=token.last_used_at,
        )
        async with self._transaction() as session:
            session.add(model)
        return token

    async def get(self, token_id: str) -> Token | None:
        async with self._transaction() as session:
            model = await session.get(AccessTokenModel, token_id)
            return self._model_to_token(model) if model else None

    async def get_by_hash(self, token_hash: str) -> Token | None:
        query = select(AccessTokenModel).where(AccessTokenModel.token_hash == token_hash)
        async with self._transaction() as session:
            model = (await session.execute(query)).scalar_one_or_none()
            return self._model_to_token(model) if model else None

    async def list_for_tenant(self, tenant_id: str) -> list[Token]:
        query = (
            select(AccessTokenModel)
            .where(AccessTokenModel.tenant_id == tenant_id)
            .order_by(AccessTokenModel.created_at.desc())
        )
        async with self._transaction() as session:
            models = (await session.execute(query)).scalars().all()
            return [self._model_to_token(m) for m in models]

    async def revoke(self, token_id: str, revoked_at: datetime) -> bool:
        statement = (
            update(AccessTokenModel)
            .where(AccessTokenModel.id == token_id, AccessTokenModel.revoked_at.is_(None))
            .values(revoked_at=revoked_at)
        )
        async with self._transaction() as session:
            result = await session.execute(statement)
        return result.rowcount > 0

    async def touch(self, token_id: str, used_at: datetime) -> None:
        statement = (
            update(AccessTokenModel)
            .where(AccessTokenModel.id == token_id)
            .values(last_used_at=used_at)
        )
        async with self._transaction() as session:
            await session.execute(statement)
