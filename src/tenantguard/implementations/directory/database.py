"""
Database tenant directory.

Reads the `tenants` table, so startup warm-up can seed policies for
tenants created while the policy tables were empty or unreachable.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.core.auth.errors import PolicyStoreUnavailable
from tenantguard.core.auth.interfaces import TenantDirectory
from tenantguard.core.auth.types import TenantLevel, TenantRef
from tenantguard.implementations.sql import transaction
from tenantguard.models.tenant import TenantModel


class DatabaseTenantDirectory(TenantDirectory):
    """Tenants stored next to the policy tables; failures surface as PolicyStoreUnavailable."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _transaction(self):
        return transaction(self.session_factory, PolicyStoreUnavailable)

    async def list_tenants(self) -> list[TenantRef]:
        async with self._transaction() as session:
            models = (await session.execute(select(TenantModel).order_by(TenantModel.id))).scalars().all()
        return [TenantRef(tenant_id=m.tenant_id, level=TenantLevel.parse(m.level)) for m in models]

    async def record(self, tenant_id: str, level: TenantLevel) -> bool:
        level = TenantLevel.parse(level)
        query = select(TenantModel.id).where(TenantModel.tenant_id == tenant_id)
        try:
            async with self._transaction() as session:
                if (await session.execute(query)).first() is not None:
                    return False
                session.add(TenantModel(tenant_id=tenant_id, level=level.value))
        except IntegrityError:
            return False
        return True
