"""
Backend implementations for core interfaces.
"""

from tenantguard.implementations.directory.memory import MemoryTenantDirectory, MemoryUserDirectory
from tenantguard.implementations.policy_store.memory import MemoryPolicyStore
from tenantguard.implementations.token_registry.memory import MemoryTokenRegistry

__all__ = [
    "MemoryPolicyStore",
    "MemoryTokenRegistry",
    "MemoryUserDirectory",
    "MemoryTenantDirectory",
]
