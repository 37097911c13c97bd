"""
In-memory user and tenant directories.

The host application owns users, organizations and projects. These
implementations stand in for it during development and tests, and can be
populated at startup by applications with a static tenant list.
"""

from tenantguard.core.auth.interfaces import TenantDirectory, UserDirectory
from tenantguard.core.auth.types import TenantLevel, TenantRef


class MemoryUserDirectory(UserDirectory):
    """
    Maps identity-provider subjects to internal user ids.

    With `passthrough=True` an unmapped subject is used as the user id
    as-is, which suits deployments where both ids are the same.
    """

    def __init__(self, mapping: dict[str, str] | None = None, passthrough: bool = False):
        self._mapping = dict(mapping or {})
        self.passthrough = passthrough

    def link(self, external_id: str, user_id: str) -> None:
        self._mapping[external_id] = user_id

    async def get_user_id(self, external_id: str) -> str | None:
        user_id = self._mapping.get(external_id)
        if user_id is None and self.passthrough:
            return external_id
        return user_id


class MemoryTenantDirectory(TenantDirectory):
    """Organizations and projects seeded at startup or recorded by tenant hooks."""

    def __init__(self, tenants: list[TenantRef] | None = None):
        self._tenants: dict[str, TenantRef] = {t.tenant_id: t for t in tenants or []}

    def add(self, tenant_id: str, level: TenantLevel | str) -> TenantRef:
        ref = TenantRef(tenant_id=tenant_id, level=TenantLevel.parse(level))
        self._tenants[tenant_id] = ref
        return ref

    async def list_tenants(self) -> list[TenantRef]:
        return list(self._tenants.values())

    async def record(self, tenant_id: str, level: TenantLevel) -> bool:
        if tenant_id in self._tenants:
            return False
        self.add(tenant_id, level)
        return True
