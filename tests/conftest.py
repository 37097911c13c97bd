"""
Pytest fixtures for testing.

Provides:
- In-memory backends and a fully wired AuthorizationService
- Async SQLite engine/session factory for the database backends
- Test client with the global container wired to in-memory backends
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tenantguard.core.auth.audit import AuditEmitter, InMemoryAuditSink
from tenantguard.core.auth.bootstrap import TenantPolicyBootstrapper
from tenantguard.core.auth.credentials import CredentialResolver
from tenantguard.core.auth.enforcer import Enforcer
from tenantguard.core.auth.identity import JWTIdentityProvider
from tenantguard.core.auth.roles import RoleResolver
from tenantguard.core.auth.service import AuthorizationService
from tenantguard.core.auth.tokens import TokenService
from tenantguard.core.config import AuthSettings
from tenantguard.core.container import container
from tenantguard.implementations.directory.memory import MemoryTenantDirectory, MemoryUserDirectory
from tenantguard.implementations.policy_store.memory import MemoryPolicyStore
from tenantguard.implementations.register import register_backends
from tenantguard.implementations.token_registry.memory import MemoryTokenRegistry
from tenantguard.main import app
from tenantguard.models.base import Base

from tests.helpers import SESSION_COOKIE, SESSION_SECRET

# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============ In-memory components ============


@pytest.fixture
def policy_store() -> MemoryPolicyStore:
    return MemoryPolicyStore()


@pytest.fixture
def token_registry() -> MemoryTokenRegistry:
    return MemoryTokenRegistry()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink: InMemoryAuditSink) -> AuditEmitter:
    return AuditEmitter([audit_sink])


@pytest.fixture
def token_service(token_registry: MemoryTokenRegistry) -> TokenService:
    return TokenService(token_registry, prefix="tgk")


@pytest.fixture
def bootstrapper(policy_store: MemoryPolicyStore) -> TenantPolicyBootstrapper:
    return TenantPolicyBootstrapper(policy_store)


@pytest.fixture
def role_resolver(policy_store: MemoryPolicyStore) -> RoleResolver:
    return RoleResolver(policy_store)


@pytest.fixture
def credentials(token_service: TokenService, policy_store: MemoryPolicyStore) -> CredentialResolver:
    return CredentialResolver(
        token_service,
        policy_store,
        identity_provider=JWTIdentityProvider(SESSION_SECRET),
        user_directory=MemoryUserDirectory(passthrough=True),
        session_cookie_name=SESSION_COOKIE,
    )


@pytest.fixture
def auth_service(
    credentials: CredentialResolver,
    role_resolver: RoleResolver,
    policy_store: MemoryPolicyStore,
    audit: AuditEmitter,
) -> AuthorizationService:
    return AuthorizationService(credentials, role_resolver, Enforcer(policy_store), audit)


# ============ Database ============


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


# ============ HTTP ============


@pytest.fixture
def tenant_directory() -> MemoryTenantDirectory:
    return MemoryTenantDirectory()


@pytest.fixture
def wired_container(
    policy_store: MemoryPolicyStore,
    token_registry: MemoryTokenRegistry,
    audit: AuditEmitter,
    tenant_directory: MemoryTenantDirectory,
):
    """Global container wired to the in-memory fixtures."""
    register_backends()
    container.configure(
        AuthSettings(
            policy_store="memory",
            token_registry="memory",
            identity_provider="jwt",
            session_secret_key=SESSION_SECRET,
            session_cookie_name=SESSION_COOKIE,
        )
    )
    container.set("policy_store", policy_store)
    container.set("token_registry", token_registry)
    container.set("audit", audit)
    container.set("tenant_directory", tenant_directory)

    yield container

    container.clear()


@pytest_asyncio.fixture(scope="function")
async def client(wired_container) -> AsyncGenerator[AsyncClient, None]:
    """Test client against the app with in-memory backends."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
