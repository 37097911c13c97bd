"""Credential helpers shared by the test modules."""

from jose import jwt

from tenantguard.core.auth.interfaces import AuthContext

SESSION_SECRET = "test-session-secret"
SESSION_COOKIE = "session"


def session_token(user_id: str, **claims) -> str:
    """Signed session JWT for `user_id`."""
    return jwt.encode({"sub": user_id, **claims}, SESSION_SECRET, algorithm="HS256")


def session_context(user_id: str, **kwargs) -> AuthContext:
    return AuthContext(cookies={SESSION_COOKIE: session_token(user_id)}, **kwargs)


def bearer_context(secret: str, **kwargs) -> AuthContext:
    return AuthContext(headers={"Authorization": f"Bearer {secret}"}, **kwargs)


def session_headers(user_id: str) -> dict[str, str]:
    return {"Cookie": f"{SESSION_COOKIE}={session_token(user_id)}"}


def bearer_headers(secret: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {secret}"}
