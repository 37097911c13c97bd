"""Input checks shared by every PolicyStore implementation."""

from .errors import InvalidRuleError, UnknownPermissionError
from .permissions import Permission
from .types import PolicyRule, Role


def _require(**fields: str | None) -> None:
    for name, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            raise InvalidRuleError(f"'{name}' must be a non-empty string", field=name, value=value)


def check_rule(rule: PolicyRule) -> None:
    """
    Raises:
        InvalidRuleError: empty fields or resource/action outside the vocabulary
    """
    _require(subject=rule.subject, resource=rule.resource, action=rule.action, tenant=rule.tenant)
    try:
        Permission.of(rule.resource, rule.action)
    except UnknownPermissionError as e:
        raise InvalidRuleError(e.message, **e.details) from e


def check_edge(role: str, parent: str, tenant: str) -> None:
    _require(role=role, parent=parent, tenant=tenant)


def check_assignment(subject: str, role: str, tenant: str) -> None:
    _require(subject=subject, role=role, tenant=tenant)


def check_role(role: Role) -> None:
    _require(id=role.id, name=role.name)
    if role.tenant_id is not None:
        _require(tenant_id=role.tenant_id)
