"""
Tests for bearer token issuance and validation.
"""

from datetime import timedelta

import pytest

from tenantguard.core.auth.errors import (
    InvalidRuleError,
    InvalidTokenError,
    TokenExpiredError,
    TokenRegistryUnavailable,
    TokenRevokedError,
    UnknownPermissionError,
)
from tenantguard.core.auth.permissions import Permission
from tenantguard.core.auth.tokens import SCOPE_PRESETS, TokenService
from tenantguard.core.auth.types import utc_now
from tenantguard.implementations.token_registry.memory import MemoryTokenRegistry


@pytest.mark.asyncio
async def test_issue_returns_secret_once(token_service, token_registry):
    issued = await token_service.issue("project_7", ["customer:read"], name="ci")

    assert issued.secret.startswith("tgk_")
    assert issued.token.key_prefix == issued.secret[:8]
    assert issued.token.name == "ci"

    stored = await token_registry.get(issued.token.id)
    assert stored.token_hash == token_service.hash_secret(issued.secret)
    assert stored.token_hash != issued.secret


@pytest.mark.asyncio
async def test_hmac_hashing_depends_on_secret(token_registry):
    plain = TokenService(token_registry)
    keyed = TokenService(token_registry, hash_secret="pepper")

    assert plain.hash_secret("tgk_abc") != keyed.hash_secret("tgk_abc")
    assert keyed.hash_secret("tgk_abc") == keyed.hash_secret("tgk_abc")


@pytest.mark.asyncio
async def test_keyed_service_issues_and_validates(token_registry):
    keyed = TokenService(token_registry, hash_secret="pepper")
    plain = TokenService(token_registry)
    issued = await keyed.issue("project_7", ["customer:read"])

    token = await keyed.validate(issued.secret)

    assert token.id == issued.token.id
    assert token.token_hash == keyed.hash_secret(issued.secret)
    with pytest.raises(InvalidTokenError):
        await plain.validate(issued.secret)


@pytest.mark.asyncio
async def test_validate_resolves_token_and_stamps_usage(token_service, token_registry):
    issued = await token_service.issue("project_7", ["customer:read"])

    token = await token_service.validate(issued.secret)

    assert token.id == issued.token.id
    assert token.last_used_at is not None
    assert (await token_registry.get(token.id)).last_used_at is not None


@pytest.mark.asyncio
async def test_unknown_secret_rejected(token_service):
    with pytest.raises(InvalidTokenError):
        await token_service.validate("tgk_not_a_real_token")

    with pytest.raises(InvalidTokenError):
        await token_service.validate("")


@pytest.mark.asyncio
async def test_expired_token_rejected(token_service):
    """Test a token whose expiry has passed is denied, whatever its scopes."""
    issued = await token_service.issue(
        "project_7",
        ["*"],
        expires_at=utc_now() - timedelta(seconds=1),
    )

    with pytest.raises(TokenExpiredError):
        await token_service.validate(issued.secret)


@pytest.mark.asyncio
async def test_expiry_checked_against_given_time(token_service):
    issued = await token_service.issue("project_7", ["customer:read"], expires_in_days=1)

    await token_service.validate(issued.secret)
    with pytest.raises(TokenExpiredError):
        await token_service.validate(issued.secret, now=utc_now() + timedelta(days=2))


@pytest.mark.asyncio
async def test_revoked_token_rejected(token_service):
    issued = await token_service.issue("project_7", ["customer:read"])

    assert await token_service.revoke(issued.token.id)
    assert not await token_service.revoke(issued.token.id)

    with pytest.raises(TokenRevokedError):
        await token_service.validate(issued.secret)


@pytest.mark.asyncio
async def test_revoked_reported_before_expired(token_service):
    issued = await token_service.issue("project_7", ["customer:read"], expires_at=utc_now() - timedelta(days=1))
    await token_service.revoke(issued.token.id)

    with pytest.raises(TokenRevokedError):
        await token_service.validate(issued.secret)


@pytest.mark.asyncio
async def test_revoke_checks_tenant(token_service):
    issued = await token_service.issue("project_7", ["customer:read"])

    assert not await token_service.revoke(issued.token.id, tenant_id="project_8")
    assert not await token_service.revoke("missing")
    assert await token_service.revoke(issued.token.id, tenant_id="project_7")


@pytest.mark.asyncio
async def test_presets(token_service):
    read = await token_service.issue("project_7", preset="read")
    admin = await token_service.issue("project_7", preset="admin")
    write = await token_service.issue("project_7", ["audit_log:read"], preset="write")

    assert read.token.scopes == SCOPE_PRESETS["read"]
    assert read.token.name == "api_read"
    assert admin.token.scopes == ["*"]
    assert "campaign:update" in write.token.scopes
    assert write.token.scopes[-1] == "audit_log:read"


@pytest.mark.asyncio
async def test_issue_rejects_bad_input(token_service):
    with pytest.raises(InvalidRuleError):
        await token_service.issue("project_7", [])

    with pytest.raises(InvalidRuleError):
        await token_service.issue("*", ["customer:read"])

    with pytest.raises(InvalidRuleError):
        await token_service.issue("project_7", preset="superuser")

    with pytest.raises(InvalidRuleError):
        await token_service.issue("project_7", ["customer:read"], expires_in_days=0)

    with pytest.raises(UnknownPermissionError):
        await token_service.issue("project_7", ["customers:read"])


@pytest.mark.asyncio
async def test_grants_are_tenant_bound(token_service):
    issued = await token_service.issue("project_7", ["reward:read"])
    permission = Permission.of("reward", "read")

    assert TokenService.grants(issued.token, permission, "project_7") == "reward:read"
    assert TokenService.grants(issued.token, permission, "project_8") is None
    assert TokenService.grants(issued.token, Permission.of("reward", "write"), "project_7") is None


@pytest.mark.asyncio
async def test_list_tokens(token_service):
    await token_service.issue("project_7", preset="read")
    await token_service.issue("project_7", preset="write")
    await token_service.issue("project_8", preset="read")

    tokens = await token_service.list_tokens("project_7")

    assert len(tokens) == 2
    assert all(t.tenant_id == "project_7" for t in tokens)


class FlakyTouchRegistry(MemoryTokenRegistry):
    async def touch(self, token_id, used_at):
        raise TokenRegistryUnavailable("usage table locked")


@pytest.mark.asyncio
async def test_usage_stamp_failure_does_not_block_validation():
    service = TokenService(FlakyTouchRegistry())
    issued = await service.issue("project_7", ["customer:read"])

    token = await service.validate(issued.secret)

    assert token.id == issued.token.id
    assert token.last_used_at is None
