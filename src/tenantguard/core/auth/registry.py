"""
Authorization backend registry.

Policy stores, token registries, identity providers and tenant
directories are looked up by name, so the configured backend can change
without touching factory code. Implementations register either with a
class decorator or, when they need wiring from settings, through
`implementations/register.py`.

Usage:
    @AuthRegistry.identity_provider("jwt")
    class JWTIdentityProvider(IdentityProvider):
        ...

    provider = AuthRegistry.get_identity_provider("jwt", secret_key="...")
"""

from typing import Any, Callable, TypeVar

T = TypeVar("T")

Factory = Callable[..., Any]


class AuthRegistry:
    """
    Central registry for authorization backends.

    Factories are any callable returning an instance: a class or a
    function.
    """

    _policy_stores: dict[str, Factory] = {}
    _token_registries: dict[str, Factory] = {}
    _identity_providers: dict[str, Factory] = {}
    _tenant_directories: dict[str, Factory] = {}

    # ============================================================
    # REGISTRATION
    # ============================================================

    @classmethod
    def policy_store(cls, name: str) -> Callable[[T], T]:
        """Decorator to register a policy store factory."""
        def decorator(factory: T) -> T:
            cls._policy_stores[name] = factory
            return factory
        return decorator

    @classmethod
    def token_registry(cls, name: str) -> Callable[[T], T]:
        """Decorator to register a token registry factory."""
        def decorator(factory: T) -> T:
            cls._token_registries[name] = factory
            return factory
        return decorator

    @classmethod
    def identity_provider(cls, name: str) -> Callable[[T], T]:
        """
        Decorator to register an identity provider.

        Usage:
            @AuthRegistry.identity_provider("http")
            class HTTPIdentityProvider(IdentityProvider):
                ...
        """
        def decorator(factory: T) -> T:
            cls._identity_providers[name] = factory
            return factory
        return decorator

    @classmethod
    def tenant_directory(cls, name: str) -> Callable[[T], T]:
        """Decorator to register a tenant directory factory."""
        def decorator(factory: T) -> T:
            cls._tenant_directories[name] = factory
            return factory
        return decorator

    # ============================================================
    # GETTERS
    # ============================================================

    @staticmethod
    def _build(kind: str, factories: dict[str, Factory], name: str, kwargs: dict[str, Any]) -> Any:
        factory = factories.get(name)
        if not factory:
            raise ValueError(
                f"Unknown {kind}: '{name}'. "
                f"Available: {sorted(factories)}"
            )
        return factory(**kwargs)

    @classmethod
    def get_policy_store(cls, name: str, **kwargs: Any) -> Any:
        """
        Build a policy store by name.

        Raises:
            ValueError: If no store is registered under `name`
        """
        return cls._build("policy store", cls._policy_stores, name, kwargs)

    @classmethod
    def get_token_registry(cls, name: str, **kwargs: Any) -> Any:
        return cls._build("token registry", cls._token_registries, name, kwargs)

    @classmethod
    def get_identity_provider(cls, name: str, **kwargs: Any) -> Any:
        return cls._build("identity provider", cls._identity_providers, name, kwargs)

    @classmethod
    def get_tenant_directory(cls, name: str, **kwargs: Any) -> Any:
        return cls._build("tenant directory", cls._tenant_directories, name, kwargs)

    # ============================================================
    # INTROSPECTION
    # ============================================================

    @classmethod
    def list_policy_stores(cls) -> list[str]:
        return sorted(cls._policy_stores)

    @classmethod
    def list_token_registries(cls) -> list[str]:
        return sorted(cls._token_registries)

    @classmethod
    def list_identity_providers(cls) -> list[str]:
        return sorted(cls._identity_providers)

    @classmethod
    def list_tenant_directories(cls) -> list[str]:
        return sorted(cls._tenant_directories)
