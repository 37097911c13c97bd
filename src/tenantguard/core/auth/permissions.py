"""
Closed permission vocabulary.

Every resource/action pair crossing the authorization boundary is parsed
into a `Permission`. Unknown resources or actions raise
`UnknownPermissionError` instead of silently requiring nothing.

Scope strings used by bearer tokens:
    "customer:read"   exact grant
    "customer:*"      every action on one resource
    "*"               full access
"""

from dataclasses import dataclass
from enum import Enum

from .errors import UnknownPermissionError

WILDCARD = "*"


class ResourceType(str, Enum):
    """Resources protected by the policy engine."""
    ALL = WILDCARD
    ORGANIZATION = "organization"
    PROJECT = "project"
    PROJECT_SETTINGS = "project_settings"
    USER = "user"
    BILLING = "billing"
    POLICY = "policy"
    API_TOKEN = "api_token"
    API_KEY = "api_key"
    AUTH_TOKEN = "auth_token"
    AUDIT_LOG = "audit_log"
    CUSTOMER = "customer"
    REWARD = "reward"
    CAMPAIGN = "campaign"
    MEMBERSHIP = "membership"
    INTEGRATION = "integration"


class ActionVerb(str, Enum):
    """Actions that can be granted on a resource."""
    ALL = WILDCARD
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    WRITE = "write"
    DELETE = "delete"
    MANAGE = "manage"


def _parse_resource(value: str | ResourceType) -> ResourceType:
    if isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(value)
    except ValueError:
        raise UnknownPermissionError(f"Unknown resource: '{value}'", resource=value) from None


def _parse_action(value: str | ActionVerb) -> ActionVerb:
    if isinstance(value, ActionVerb):
        return value
    try:
        return ActionVerb(value)
    except ValueError:
        raise UnknownPermissionError(f"Unknown action: '{value}'", action=value) from None


@dataclass(frozen=True)
class Permission:
    """A validated (resource, action) pair."""

    resource: ResourceType
    action: ActionVerb

    @classmethod
    def of(cls, resource: str | ResourceType, action: str | ActionVerb) -> "Permission":
        return cls(_parse_resource(resource), _parse_action(action))

    @classmethod
    def parse(cls, value: str) -> "Permission":
        """Parse "resource:action" (or "*") into a Permission."""
        if value == WILDCARD:
            return cls(ResourceType.ALL, ActionVerb.ALL)
        resource, sep, action = value.partition(":")
        if not sep or not resource or not action:
            raise UnknownPermissionError(f"Malformed permission string: '{value}'", value=value)
        return cls.of(resource, action)

    @property
    def is_wildcard(self) -> bool:
        return self.resource is ResourceType.ALL

    def __str__(self) -> str:
        if self.resource is ResourceType.ALL and self.action is ActionVerb.ALL:
            return WILDCARD
        return f"{self.resource.value}:{self.action.value}"

    def scope_candidates(self) -> tuple[str, ...]:
        """Scope strings that would grant this permission."""
        return (
            f"{self.resource.value}:{self.action.value}",
            f"{self.resource.value}:{WILDCARD}",
            WILDCARD,
        )


def validate_scopes(scopes: list[str]) -> list[str]:
    """
    Validate token scope strings, preserving order and dropping duplicates.

    Raises:
        UnknownPermissionError: If any scope is outside the vocabulary
    """
    seen: list[str] = []
    for scope in scopes:
        permission = Permission.parse(scope)
        normalized = str(permission)
        if normalized not in seen:
            seen.append(normalized)
    return seen


def scope_grants(scopes: frozenset[str] | set[str] | list[str], permission: Permission) -> str | None:
    """Return the scope that grants `permission`, or None. Exact or wildcard only."""
    granted = set(scopes)
    for candidate in permission.scope_candidates():
        if candidate in granted:
            return candidate
    return None
