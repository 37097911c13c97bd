"""
Dependency injection container.
Centralizes authorization component instantiation and configuration.
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .auth.audit import AuditEmitter, LoggingAuditSink
from .auth.bootstrap import TenantPolicyBootstrapper
from .auth.credentials import CredentialResolver
from .auth.enforcer import Enforcer
from .auth.interfaces import (
    IdentityProvider,
    PolicyStore,
    TenantDirectory,
    TokenRegistry,
    UserDirectory,
)
from .auth.registry import AuthRegistry
from .auth.roles import RoleResolver
from .auth.service import AuthorizationService
from .auth.tokens import TokenService
from .config import AuthSettings


@dataclass
class Container:
    """
    Dependency injection container.

    Holds every authorization component and builds each one lazily from
    the configured backends. Tests swap in instances with `set()`.

    Example:
    ```python
    from tenantguard.core.container import container

    container.configure(settings.auth, session_factory=session_factory)
    decision = await container.authorization.authorize(ctx, "customer", "read", "project_7")
    ```
    """

    _instances: dict[str, Any] = field(default_factory=dict)
    auth: AuthSettings = field(default_factory=AuthSettings)
    session_factory: async_sessionmaker[AsyncSession] | None = None

    # Backend type selections (from config)
    policy_store_type: str = "database"
    token_registry_type: str = "database"
    identity_provider_type: str | None = None

    def configure(
        self,
        auth: AuthSettings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Configure the container from settings. Drops previously built instances."""
        self._instances.clear()
        self.auth = auth
        self.session_factory = session_factory
        self.policy_store_type = auth.policy_store
        self.token_registry_type = auth.token_registry
        self.identity_provider_type = auth.identity_provider or (
            "http" if auth.identity_provider_endpoint else "jwt"
        )

    def _lazy(self, name: str, build) -> Any:
        if name not in self._instances:
            self._instances[name] = build()
        return self._instances[name]

    # ============================================================
    # BACKENDS
    # ============================================================

    @property
    def policy_store(self) -> PolicyStore:
        return self._lazy(
            "policy_store",
            lambda: AuthRegistry.get_policy_store(self.policy_store_type, session_factory=self.session_factory),
        )

    @property
    def token_registry(self) -> TokenRegistry:
        return self._lazy(
            "token_registry",
            lambda: AuthRegistry.get_token_registry(self.token_registry_type, session_factory=self.session_factory),
        )

    @property
    def identity_provider(self) -> IdentityProvider | None:
        def build():
            if self.identity_provider_type is None:
                return None
            return AuthRegistry.get_identity_provider(
                self.identity_provider_type,
                endpoint=self.auth.identity_provider_endpoint,
                timeout=self.auth.identity_timeout_seconds,
                secret_key=self.auth.session_secret_key,
                algorithm=self.auth.session_algorithm,
            )
        return self._lazy("identity_provider", build)

    @property
    def user_directory(self) -> UserDirectory:
        from tenantguard.implementations.directory.memory import MemoryUserDirectory
        return self._lazy("user_directory", lambda: MemoryUserDirectory(passthrough=True))

    @property
    def tenant_directory(self) -> TenantDirectory:
        return self._lazy(
            "tenant_directory",
            lambda: AuthRegistry.get_tenant_directory(
                self.auth.tenant_directory_backend,
                session_factory=self.session_factory,
                tenants=self.auth.tenants,
            ),
        )

    @property
    def audit(self) -> AuditEmitter:
        return self._lazy(
            "audit",
            lambda: AuditEmitter([LoggingAuditSink()], timeout=self.auth.audit_sink_timeout_seconds),
        )

    # ============================================================
    # SERVICES
    # ============================================================

    @property
    def tokens(self) -> TokenService:
        return self._lazy(
            "tokens",
            lambda: TokenService(
                self.token_registry,
                hash_algorithm=self.auth.token_hash_algorithm,
                hash_secret=self.auth.token_hash_secret,
                prefix=self.auth.token_prefix,
                token_bytes=self.auth.token_bytes,
            ),
        )

    @property
    def roles(self) -> RoleResolver:
        return self._lazy("roles", lambda: RoleResolver(self.policy_store))

    @property
    def enforcer(self) -> Enforcer:
        return self._lazy("enforcer", lambda: Enforcer(self.policy_store))

    @property
    def bootstrapper(self) -> TenantPolicyBootstrapper:
        return self._lazy("bootstrapper", lambda: TenantPolicyBootstrapper(self.policy_store))

    @property
    def credentials(self) -> CredentialResolver:
        return self._lazy(
            "credentials",
            lambda: CredentialResolver(
                self.tokens,
                self.policy_store,
                identity_provider=self.identity_provider,
                user_directory=self.user_directory,
                session_cookie_name=self.auth.session_cookie_name,
            ),
        )

    @property
    def authorization(self) -> AuthorizationService:
        return self._lazy(
            "authorization",
            lambda: AuthorizationService(self.credentials, self.roles, self.enforcer, self.audit),
        )

    # ============================================================
    # OVERRIDES
    # ============================================================

    def get(self, name: str) -> Any:
        """Get any built instance by name."""
        return self._instances.get(name)

    def set(self, name: str, instance: Any) -> None:
        """Set a custom instance (must happen before dependents are built)."""
        self._instances[name] = instance

    def clear(self) -> None:
        """Clear all instances (for testing)."""
        self._instances.clear()


# Global container instance
container = Container()


# FastAPI dependency functions
async def get_authorization_service() -> AuthorizationService:
    """FastAPI dependency for the authorization facade."""
    return container.authorization


async def get_token_service() -> TokenService:
    """FastAPI dependency for token administration."""
    return container.tokens


async def get_bootstrapper() -> TenantPolicyBootstrapper:
    """FastAPI dependency for tenant bootstrap."""
    return container.bootstrapper


async def get_tenant_directory() -> TenantDirectory:
    """FastAPI dependency for the tenant directory."""
    return container.tenant_directory


async def get_policy_store() -> PolicyStore:
    """FastAPI dependency for policy administration."""
    return container.policy_store
