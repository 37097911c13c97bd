"""
Role resolution.

Expands a subject's direct role assignments through the tenant's
inheritance edges into the full set of effective roles.

Expansion is an iterative depth-first walk. An edge that leads back onto
the current path closes a cycle: it is logged, dropped and the walk
continues with the roles resolved so far. Every role on the cycle keeps
its own grants.
"""

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from .errors import CyclicRoleInheritanceError
from .interfaces import AuthContext, PolicyStore
from .types import GLOBAL_TENANT, RoleInheritance

logger = structlog.get_logger()


# Default hierarchy of the built-in roles, lowest first
ROLE_HIERARCHY: tuple[str, ...] = ("viewer", "member", "admin", "owner")


@dataclass(frozen=True)
class ResolvedRoles:
    """Effective roles of one subject in one tenant."""

    roles: frozenset[str]
    direct: tuple[str, ...]
    # (role, parent) edges skipped because they closed a cycle
    dropped_edges: frozenset[tuple[str, str]] = frozenset()
    errors: tuple[CyclicRoleInheritanceError, ...] = field(default=(), compare=False)

    def __contains__(self, role: object) -> bool:
        return role in self.roles


def _build_graph(edges: Iterable[RoleInheritance], tenant: str) -> dict[str, list[str]]:
    graph: dict[str, set[str]] = {}
    for edge in edges:
        if edge.tenant not in (tenant, GLOBAL_TENANT):
            continue
        graph.setdefault(edge.role, set()).add(edge.parent)
    return {role: sorted(parents) for role, parents in graph.items()}


def expand_roles(direct: Iterable[str], edges: Iterable[RoleInheritance], tenant: str) -> ResolvedRoles:
    """
    Pure expansion of direct roles through inheritance edges.

    Each reachable role and edge is visited once, so the walk is O(R + E)
    and terminates whatever the shape of the graph. Every cycle contains
    at least one edge back onto the walk's path; that edge is the one
    dropped.
    """
    direct = tuple(dict.fromkeys(direct))
    graph = _build_graph(edges, tenant)

    resolved: set[str] = set()
    dropped: set[tuple[str, str]] = set()
    errors: list[CyclicRoleInheritanceError] = []

    for root in direct:
        if root in resolved:
            continue
        resolved.add(root)
        path = [root]
        on_path = {root}
        work = [(root, iter(graph.get(root, ())))]

        while work:
            role, parents = work[-1]
            for parent in parents:
                if parent in on_path:
                    dropped.add((role, parent))
                    errors.append(CyclicRoleInheritanceError(tenant, path[path.index(parent):] + [parent]))
                    continue
                if parent in resolved:
                    continue
                resolved.add(parent)
                path.append(parent)
                on_path.add(parent)
                work.append((parent, iter(graph.get(parent, ()))))
                break
            else:
                work.pop()
                on_path.discard(path.pop())

    return ResolvedRoles(
        roles=frozenset(resolved),
        direct=direct,
        dropped_edges=frozenset(dropped),
        errors=tuple(errors),
    )


class RoleResolver:
    """
    Resolves effective roles against a PolicyStore.

    Usage:
        resolver = RoleResolver(store)
        resolved = await resolver.resolve("user_123", "org_1")
        if "admin" in resolved: ...
    """

    def __init__(self, store: PolicyStore):
        self.store = store

    async def resolve(
        self,
        subject: str,
        tenant: str,
        context: AuthContext | None = None,
    ) -> ResolvedRoles:
        key = (subject, tenant)
        if context is not None and key in context.role_cache:
            return context.role_cache[key]

        direct = await self.store.roles_of(subject, tenant)
        edges = await self.store.list_role_inheritance(tenant)
        resolved = expand_roles(direct, edges, tenant)

        for error in resolved.errors:
            logger.error(
                "Cyclic role inheritance",
                tenant=tenant,
                subject=subject,
                roles=error.roles,
            )

        if context is not None:
            context.role_cache[key] = resolved
        return resolved

    async def has_role(
        self,
        subject: str,
        tenant: str,
        minimum_role: str,
        context: AuthContext | None = None,
    ) -> bool:
        """
        Check a directly assigned built-in role against the default hierarchy.

        Only direct assignments count: with the default policies admin
        inherits owner's grants, but admin is still ranked below owner.
        """
        if minimum_role not in ROLE_HIERARCHY:
            raise ValueError(f"Unknown role in hierarchy: '{minimum_role}'")

        resolved = await self.resolve(subject, tenant, context)
        ranks = [ROLE_HIERARCHY.index(r) for r in resolved.direct if r in ROLE_HIERARCHY]
        return bool(ranks) and max(ranks) >= ROLE_HIERARCHY.index(minimum_role)
