"""
Policy enforcer.

Whitelist evaluation over (subject, resource, action, tenant) rules:

1. a rule for any of the subjects with resource "*" allows
2. otherwise a rule whose resource matches exactly and whose action
   matches exactly or is "*" allows
3. otherwise deny

Matches are OR-combined, so the outcome never depends on rule order.
There are no negative rules.
"""

from dataclasses import dataclass
from typing import Iterable

from .interfaces import PolicyStore
from .permissions import WILDCARD, Permission
from .types import PolicyRule


@dataclass(frozen=True)
class EnforcementResult:
    allowed: bool
    matched_rule: PolicyRule | None = None

    def __bool__(self) -> bool:
        return self.allowed


DENY = EnforcementResult(allowed=False)


def evaluate(
    rules: Iterable[PolicyRule],
    subjects: Iterable[str],
    resource: str,
    action: str,
    tenant: str,
) -> EnforcementResult:
    """Pure decision over an already-fetched rule set."""
    subjects = set(subjects)
    candidates = sorted(
        (r for r in rules if r.subject in subjects and r.applies_to(tenant)),
        key=PolicyRule.as_tuple,
    )

    for rule in candidates:
        if rule.resource == WILDCARD:
            return EnforcementResult(True, rule)

    for rule in candidates:
        if rule.resource == resource and rule.action in (action, WILDCARD):
            return EnforcementResult(True, rule)

    return DENY


class Enforcer:
    """Fetches the applicable rules per call and evaluates them."""

    def __init__(self, store: PolicyStore):
        self.store = store

    async def enforce(
        self,
        subject: str,
        roles: Iterable[str],
        resource: str,
        action: str,
        tenant: str,
    ) -> EnforcementResult:
        permission = Permission.of(resource, action)
        subjects = [subject, *roles]
        rules = await self.store.list_policies(tenant, subjects=subjects)
        return evaluate(
            rules,
            subjects,
            permission.resource.value,
            permission.action.value,
            tenant,
        )
