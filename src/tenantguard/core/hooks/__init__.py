"""
Lifecycle hooks.
"""

from .manager import Hook, HookManager, HookPriority, HookResult, hooks
from .tenant import ORGANIZATION_CREATED, PROJECT_CREATED, register_tenant_hooks

__all__ = [
    "Hook",
    "HookManager",
    "HookPriority",
    "HookResult",
    "hooks",
    "ORGANIZATION_CREATED",
    "PROJECT_CREATED",
    "register_tenant_hooks",
]
