"""
Tenant directory model.

One row per organization or project known to tenantguard. Rows are
written by the tenant creation hooks or directly by the host application.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IntegerIdMixin, TimestampMixin


class TenantModel(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    level: Mapped[str] = mapped_column(String(32), nullable=False)

    def __repr__(self) -> str:
        return f"<Tenant {self.level}:{self.tenant_id}>"
