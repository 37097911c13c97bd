"""
Session identity providers.

Two ways to turn a session cookie into an external user id:

- "jwt":  the cookie is a signed JWT, verified locally with python-jose
- "http": the cookie is handed to an identity service (GoTrue/Supabase
          style `GET /user` with a bearer credential) over httpx

Both return None for a credential that is simply not valid and raise
IdentityProviderUnavailable when the answer cannot be obtained.
"""

import httpx
import structlog
from jose import JWTError, jwt

from .errors import DeadlineExceededError, IdentityProviderUnavailable
from .interfaces import AuthContext, IdentityClaims, IdentityProvider
from .registry import AuthRegistry

logger = structlog.get_logger()


@AuthRegistry.identity_provider("jwt")
class JWTIdentityProvider(IdentityProvider):
    """Validates HMAC/RSA signed session JWTs."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", **_: object):
        self.secret_key = secret_key
        self.algorithm = algorithm

    async def validate_session(
        self,
        credential: str,
        context: AuthContext | None = None,
    ) -> IdentityClaims | None:
        try:
            payload = jwt.decode(credential, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        subject = payload.get("sub")
        if not subject:
            return None

        return IdentityClaims(external_id=str(subject), email=payload.get("email"), raw=payload)


@AuthRegistry.identity_provider("http")
class HTTPIdentityProvider(IdentityProvider):
    """
    Asks a remote identity service who owns a session.

    The request timeout is the smaller of the configured timeout and the
    time left before the caller's deadline.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
        **_: object,
    ):
        if not endpoint:
            raise ValueError("HTTP identity provider requires an endpoint")
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    async def validate_session(
        self,
        credential: str,
        context: AuthContext | None = None,
    ) -> IdentityClaims | None:
        timeout = self.timeout
        remaining = context.remaining() if context else None
        if remaining is not None:
            if remaining <= 0:
                raise DeadlineExceededError("Authorization deadline exceeded before identity lookup")
            timeout = min(timeout, remaining)

        headers = {"Authorization": f"Bearer {credential}"}
        try:
            if self._client is not None:
                response = await self._client.get(self.endpoint, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.get(self.endpoint, headers=headers)
        except httpx.TimeoutException as e:
            if context is not None and context.remaining() is not None and context.remaining() <= 0:
                raise DeadlineExceededError("Authorization deadline exceeded during identity lookup") from e
            raise IdentityProviderUnavailable(f"Identity provider timed out: {e}") from e
        except httpx.HTTPError as e:
            raise IdentityProviderUnavailable(f"Identity provider unreachable: {e}") from e

        if response.status_code in (400, 401, 403, 404):
            return None
        if response.status_code >= 400:
            logger.warning("Identity provider error", status_code=response.status_code, endpoint=self.endpoint)
            raise IdentityProviderUnavailable(
                f"Identity provider returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityProviderUnavailable("Identity provider returned invalid JSON") from e

        # Some providers wrap the user object
        user = data.get("user", data) if isinstance(data, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            return None

        return IdentityClaims(external_id=str(user["id"]), email=user.get("email"), raw=user)
