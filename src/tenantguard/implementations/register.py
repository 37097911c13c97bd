"""
Register all backend implementations with the auth registry.

Import this module in app startup to register all implementations.
Database backends need a session factory, passed through as a keyword
argument by the container.
"""

from tenantguard.core.auth.registry import AuthRegistry


def register_backends() -> None:
    """Register all backend implementations."""

    # ============ Policy Stores ============

    def create_memory_policy_store(**config):
        from tenantguard.implementations.policy_store.memory import MemoryPolicyStore
        return MemoryPolicyStore()

    def create_database_policy_store(**config):
        from tenantguard.implementations.policy_store.database import DatabasePolicyStore
        session_factory = config.get("session_factory")
        if session_factory is None:
            raise ValueError("database policy store requires a session_factory")
        return DatabasePolicyStore(session_factory)

    AuthRegistry.policy_store("memory")(create_memory_policy_store)
    AuthRegistry.policy_store("database")(create_database_policy_store)

    # ============ Token Registries ============

    def create_memory_token_registry(**config):
        from tenantguard.implementations.token_registry.memory import MemoryTokenRegistry
        return MemoryTokenRegistry()

    def create_database_token_registry(**config):
        from tenantguard.implementations.token_registry.database import DatabaseTokenRegistry
        session_factory = config.get("session_factory")
        if session_factory is None:
            raise ValueError("database token registry requires a session_factory")
        return DatabaseTokenRegistry(session_factory)

    AuthRegistry.token_registry("memory")(create_memory_token_registry)
    AuthRegistry.token_registry("database")(create_database_token_registry)

    # ============ Tenant Directories ============

    def create_memory_tenant_directory(**config):
        from tenantguard.implementations.directory.memory import MemoryTenantDirectory
        directory = MemoryTenantDirectory()
        for entry in config.get("tenants", ()):
            level, _, tenant_id = entry.partition(":")
            directory.add(tenant_id, level)
        return directory

    def create_database_tenant_directory(**config):
        from tenantguard.implementations.directory.database import DatabaseTenantDirectory
        session_factory = config.get("session_factory")
        if session_factory is None:
            raise ValueError("database tenant directory requires a session_factory")
        return DatabaseTenantDirectory(session_factory)

    AuthRegistry.tenant_directory("memory")(create_memory_tenant_directory)
    AuthRegistry.tenant_directory("database")(create_database_tenant_directory)

    # ============ Identity Providers ============

    # Registered by decorator on import
    from tenantguard.core.auth import identity  # noqa: F401
