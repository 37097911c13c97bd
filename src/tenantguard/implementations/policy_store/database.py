"""
Database policy store.

SQLAlchemy async backend. Each operation runs in its own transaction;
uniqueness of every tuple is enforced by the schema, so two concurrent
adds of the same rule leave one row and one of them reports False.
"""

from collections import defaultdict

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.core.auth.errors import PolicyStoreUnavailable, RoleInUseError
from tenantguard.core.auth.interfaces import PolicyStore
from tenantguard.core.auth.types import (
    GLOBAL_TENANT,
    PolicyRule,
    Role,
    RoleInheritance,
    TenantMembership,
)
from tenantguard.core.auth.validation import (
    check_assignment,
    check_edge,
    check_role,
    check_rule,
)
from tenantguard.implementations.sql import transaction
from tenantguard.models.policy import (
    PolicyRuleModel,
    RoleAssignmentModel,
    RoleInheritanceModel,
    RoleModel,
)

logger = structlog.get_logger()


class DatabasePolicyStore(PolicyStore):
    """
    Relational policy storage.

    Reads run concurrently; writes rely on transaction isolation plus the
    unique constraints on each table.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _transaction(self):
        return transaction(self.session_factory, PolicyStoreUnavailable)

    async def _insert(self, model, exists_query) -> bool:
        """Check-then-add. A lost race on the unique constraint reports False."""
        try:
            async with self._transaction() as session:
                if (await session.execute(exists_query)).first() is not None:
                    return False
                session.add(model)
        except IntegrityError:
            logger.debug("Concurrent insert collapsed", table=model.__tablename__)
            return False
        return True

    async def _delete(self, statement) -> bool:
        async with self._transaction() as session:
            result = await session.execute(statement)
        return result.rowcount > 0

    # ============================================================
    # RULES
    # ============================================================

    async def add_policy(self, rule: PolicyRule) -> bool:
        check_rule(rule)
        query = select(PolicyRuleModel.id).where(
            PolicyRuleModel.subject == rule.subject,
            PolicyRuleModel.resource == rule.resource,
            PolicyRuleModel.action == rule.action,
            PolicyRuleModel.tenant == rule.tenant,
        )
        model = PolicyRuleModel(
            subject=rule.subject,
            resource=rule.resource,
            action=rule.action,
            tenant=rule.tenant,
        )
        return await self._insert(model, query)

    async def remove_policy(self, rule: PolicyRule) -> bool:
        return await self._delete(
            delete(PolicyRuleModel).where(
                PolicyRuleModel.subject == rule.subject,
                PolicyRuleModel.resource == rule.resource,
                PolicyRuleModel.action == rule.action,
                PolicyRuleModel.tenant == rule.tenant,
            )
        )

    async def list_policies(
        self,
        tenant: str | None = None,
        subjects: list[str] | None = None,
    ) -> list[PolicyRule]:
        query = select(PolicyRuleModel)
        if tenant is not None:
            query = query.where(PolicyRuleModel.tenant.in_([tenant, GLOBAL_TENANT]))
        if subjects is not None:
            query = query.where(PolicyRuleModel.subject.in_(list(subjects)))
        query = query.order_by(
            PolicyRuleModel.subject,
            PolicyRuleModel.resource,
            PolicyRuleModel.action,
            PolicyRuleModel.tenant,
        )

        async with self._transaction() as session:
            models = (await session.execute(query)).scalars().all()

        return [PolicyRule(m.subject, m.resource, m.action, m.tenant) for m in models]

    async def count_policies(self, tenant: str) -> int:
        query = select(func.count()).select_from(PolicyRuleModel).where(PolicyRuleModel.tenant == tenant)
        async with self._transaction() as session:
            return (await session.execute(query)).scalar_one()

    # ============================================================
    # ROLE INHERITANCE
    # ============================================================

    async def add_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        check_edge(role, parent, tenant)
        query = select(RoleInheritanceModel.id).where(
            RoleInheritanceModel.role == role,
            RoleInheritanceModel.parent == parent,
            RoleInheritanceModel.tenant == tenant,
        )
        return await self._insert(RoleInheritanceModel(role=role, parent=parent, tenant=tenant), query)

    async def remove_role_inheritance(self, role: str, parent: str, tenant: str) -> bool:
        return await self._delete(
            delete(RoleInheritanceModel).where(
                RoleInheritanceModel.role == role,
                RoleInheritanceModel.parent == parent,
                RoleInheritanceModel.tenant == tenant,
            )
        )

    async def list_role_inheritance(self, tenant: str) -> list[RoleInheritance]:
        query = (
            select(RoleInheritanceModel)
            .where(RoleInheritanceModel.tenant.in_([tenant, GLOBAL_TENANT]))
            .order_by(RoleInheritanceModel.tenant, RoleInheritanceModel.role, RoleInheritanceModel.parent)
        )
        async with self._transaction() as session:
            models = (await session.execute(query)).scalars().all()
        return [RoleInheritance(m.role, m.parent, m.tenant) for m in models]

    # ============================================================
    # ROLE ASSIGNMENTS
    # ============================================================

    async def assign_role(self, subject: str, role: str, tenant: str) -> bool:
        check_assignment(subject, role, tenant)
        query = select(RoleAssignmentModel.id).where(
            RoleAssignmentModel.subject == subject,
            RoleAssignmentModel.role == role,
            RoleAssignmentModel.tenant == tenant,
        )
        return await self._insert(RoleAssignmentModel(subject=subject, role=role, tenant=tenant), query)

    async def unassign_role(self, subject: str, role: str, tenant: str) -> bool:
        return await self._delete(
            delete(RoleAssignmentModel).where(
                RoleAssignmentModel.subject == subject,
                RoleAssignmentModel.role == role,
                RoleAssignmentModel.tenant == tenant,
            )
        )

    async def roles_of(self, subject: str, tenant: str) -> list[str]:
        query = (
            select(RoleAssignmentModel.role)
            .where(
                RoleAssignmentModel.subject == subject,
                RoleAssignmentModel.tenant.in_([tenant, GLOBAL_TENANT]),
            )
            .distinct()
            .order_by(RoleAssignmentModel.role)
        )
        async with self._transaction() as session:
            return list((await session.execute(query)).scalars().all())

    async def memberships_of(self, subject: str) -> list[TenantMembership]:
        query = (
            select(RoleAssignmentModel.tenant, RoleAssignmentModel.role)
            .where(RoleAssignmentModel.subject == subject)
            .order_by(RoleAssignmentModel.tenant, RoleAssignmentModel.role)
        )
        async with self._transaction() as session:
            rows = (await session.execute(query)).all()

        by_tenant: dict[str, list[str]] = defaultdict(list)
        for tenant, role in rows:
            by_tenant[tenant].append(role)
        return [TenantMembership(tenant_id=t, role_ids=tuple(roles)) for t, roles in by_tenant.items()]

    # ============================================================
    # ROLE DEFINITIONS
    # ============================================================

    async def create_role(self, role: Role) -> bool:
        check_role(role)
        tenant = role.tenant_id or GLOBAL_TENANT
        query = select(RoleModel.id).where(RoleModel.name == role.name, RoleModel.tenant == tenant)
        return await self._insert(RoleModel(role_id=role.id, name=role.name, tenant=tenant), query)

    async def list_roles(self, tenant: str | None = None) -> list[Role]:
        query = select(RoleModel).order_by(RoleModel.tenant, RoleModel.name)
        if tenant is not None:
            query = query.where(RoleModel.tenant.in_([tenant, GLOBAL_TENANT]))
        async with self._transaction() as session:
            models = (await session.execute(query)).scalars().all()
        return [
            Role(id=m.role_id, name=m.name, tenant_id=None if m.tenant == GLOBAL_TENANT else m.tenant)
            for m in models
        ]

    async def delete_role(self, name: str, tenant: str | None = None) -> bool:
        tenant = tenant or GLOBAL_TENANT
        references = [
            select(PolicyRuleModel.id).where(PolicyRuleModel.subject == name, PolicyRuleModel.tenant == tenant),
            select(RoleAssignmentModel.id).where(RoleAssignmentModel.role == name, RoleAssignmentModel.tenant == tenant),
            select(RoleInheritanceModel.id).where(
                (RoleInheritanceModel.role == name) | (RoleInheritanceModel.parent == name),
                RoleInheritanceModel.tenant == tenant,
            ),
        ]

        async with self._transaction() as session:
            for query in references:
                if (await session.execute(query.limit(1))).first() is not None:
                    raise RoleInUseError(
                        f"Role '{name}' is still referenced in tenant '{tenant}'",
                        role=name,
                        tenant=tenant,
                    )
            result = await session.execute(
                delete(RoleModel).where(RoleModel.name == name, RoleModel.tenant == tenant)
            )
        return result.rowcount > 0
