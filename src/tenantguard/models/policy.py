"""
Policy models.

Every table carries a unique constraint over its full tuple: concurrent
inserts of the same rule collapse to a single row, whichever transaction
commits first.

The global domain is stored as "*" (never NULL) so it takes part in the
unique constraints.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IntegerIdMixin, TimestampMixin


class PolicyRuleModel(Base, IntegerIdMixin, TimestampMixin):
    """(subject, resource, action, tenant) grant."""

    __tablename__ = "policy_rules"
    __table_args__ = (
        UniqueConstraint("subject", "resource", "action", "tenant", name="uq_policy_rule"),
        Index("ix_policy_rules_tenant_subject", "tenant", "subject"),
    )

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    resource: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<PolicyRule {self.subject} {self.resource}:{self.action} @{self.tenant}>"


class RoleInheritanceModel(Base, IntegerIdMixin, TimestampMixin):
    """`role` inherits from `parent` within `tenant`."""

    __tablename__ = "role_inheritance"
    __table_args__ = (
        UniqueConstraint("role", "parent", "tenant", name="uq_role_inheritance"),
    )

    role: Mapped[str] = mapped_column(String(255), nullable=False)
    parent: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False, index=True)


class RoleAssignmentModel(Base, IntegerIdMixin, TimestampMixin):
    """`subject` holds `role` within `tenant`."""

    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint("subject", "role", "tenant", name="uq_role_assignment"),
        Index("ix_role_assignments_subject_tenant", "subject", "tenant"),
    )

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False)


class RoleModel(Base, IntegerIdMixin, TimestampMixin):
    """Named role definition in a tenant (or globally)."""

    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("name", "tenant", name="uq_role"),
    )

    role_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
