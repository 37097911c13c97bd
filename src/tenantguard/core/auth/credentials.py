"""
Credential resolution.

Turns request headers and cookies into a Principal:

1. An Authorization header, when present, must carry a valid bearer
   token. A bad header is final: the session cookie is NOT consulted.
2. Otherwise the session cookie is validated by the identity provider
   and mapped to an internal user id.
3. Otherwise the request is unauthenticated.
"""

from typing import Mapping

from .errors import InvalidTokenError, UnauthenticatedError
from .interfaces import AuthContext, IdentityProvider, PolicyStore, UserDirectory
from .tokens import TokenService
from .types import Principal, PrincipalKind

BEARER = "bearer"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case-sensitive
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def parse_bearer(value: str) -> str:
    """
    Extract the secret from an Authorization header value.

    Raises:
        InvalidTokenError: Any other scheme, or an empty credential
    """
    scheme, _, credential = value.strip().partition(" ")
    credential = credential.strip()
    if scheme.lower() != BEARER or not credential or " " in credential:
        raise InvalidTokenError(reason="malformed_authorization", scheme=scheme or None)
    return credential


class CredentialResolver:
    """Resolves the caller of one request."""

    def __init__(
        self,
        tokens: TokenService,
        store: PolicyStore,
        identity_provider: IdentityProvider | None = None,
        user_directory: UserDirectory | None = None,
        session_cookie_name: str = "session",
    ):
        self.tokens = tokens
        self.store = store
        self.identity_provider = identity_provider
        self.user_directory = user_directory
        self.session_cookie_name = session_cookie_name

    async def resolve(
        self,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
        context: AuthContext | None = None,
    ) -> Principal:
        """
        Raises:
            UnauthenticatedError: (or a subtype) when no valid credential is found
            StoreUnavailableError: When a backing store cannot answer
        """
        authorization = _header(headers, "authorization")
        if authorization is not None:
            return await self._resolve_bearer(authorization, context)

        session = cookies.get(self.session_cookie_name)
        if session:
            return await self._resolve_session(session, context)

        raise UnauthenticatedError(reason="missing_credentials")

    async def _resolve_bearer(self, authorization: str, context: AuthContext | None) -> Principal:
        secret = parse_bearer(authorization)
        if context is not None:
            context.check_deadline()

        token = await self.tokens.validate(secret)
        return Principal(
            id=token.id,
            kind=PrincipalKind.API_TOKEN,
            scopes=frozenset(token.scopes),
            token_tenant_id=token.tenant_id,
        )

    async def _resolve_session(self, session: str, context: AuthContext | None) -> Principal:
        if self.identity_provider is None:
            raise UnauthenticatedError(reason="sessions_not_supported")
        if context is not None:
            context.check_deadline()

        claims = await self.identity_provider.validate_session(session, context)
        if claims is None:
            raise UnauthenticatedError(reason="invalid_session")

        user_id = claims.external_id
        if self.user_directory is not None:
            user_id = await self.user_directory.get_user_id(claims.external_id)
            if user_id is None:
                raise UnauthenticatedError(reason="unknown_user")

        memberships = await self.store.memberships_of(user_id)
        return Principal(
            id=user_id,
            kind=PrincipalKind.USER,
            tenant_memberships=tuple(memberships),
        )
