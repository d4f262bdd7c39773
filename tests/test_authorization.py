#!/usr/bin/env python3
"""
Tests for token verification and the owner-or-admin gate.
"""

import pytest
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.api.auth import TokenVerifier
from app.core.business import Role
from app.core.errors import ConfigurationError, ForbiddenError, NotFoundError, UnauthorizedError
from app.main import create_app
from app.schemas.auth import Principal
from app.services.authorization import authorize, is_owner
from tests.conftest import TEST_JWT_SECRET


def owned_by(*user_ids):
    return SimpleNamespace(owner_ids=lambda: set(user_ids))


@pytest.mark.unit
class TestTokenVerifier:
    """Signing and verifying principal tokens"""

    def test_round_trip_keeps_id_and_role(self):
        verifier = TokenVerifier(TEST_JWT_SECRET)
        token = verifier.sign(Principal(id="u-1", role=Role.ADMIN))

        principal = verifier.verify(token)

        assert principal.id == "u-1"
        assert principal.role is Role.ADMIN
        assert principal.is_admin

    def test_role_defaults_to_user(self):
        token = jwt.encode({"id": "u-2"}, TEST_JWT_SECRET, algorithm="HS256")
        principal = TokenVerifier(TEST_JWT_SECRET).verify(token)
        assert principal.role is Role.USER
        assert not principal.is_admin

    def test_wrong_secret_is_rejected(self):
        token = TokenVerifier("another-secret").sign(Principal(id="u-1"))
        with pytest.raises(UnauthorizedError):
            TokenVerifier(TEST_JWT_SECRET).verify(token)

    def test_garbage_token_is_rejected(self):
        with pytest.raises(UnauthorizedError):
            TokenVerifier(TEST_JWT_SECRET).verify("not-a-jwt")

    def test_expired_token_is_rejected(self):
        verifier = TokenVerifier(TEST_JWT_SECRET)
        token = verifier.sign(Principal(id="u-1"), expires_in=timedelta(seconds=-30))
        with pytest.raises(UnauthorizedError):
            verifier.verify(token)

    def test_unknown_role_is_rejected(self):
        token = jwt.encode({"id": "u-1", "role": "ROOT"}, TEST_JWT_SECRET, algorithm="HS256")
        with pytest.raises(UnauthorizedError):
            TokenVerifier(TEST_JWT_SECRET).verify(token)

    def test_missing_secret_is_a_server_fault(self):
        verifier = TokenVerifier(None)
        with pytest.raises(ConfigurationError, match="JWT secret not set") as exc_info:
            verifier.verify("anything")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_app_without_secret_answers_500(self, test_settings):
        settings = test_settings.model_copy(update={"JWT_SECRET": None})
        app = create_app(settings)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/appointments", headers={"Authorization": "Bearer whatever"})
        await app.state.engine.dispose()

        assert response.status_code == 500
        assert response.json()["error"] == "ConfigurationError"


@pytest.mark.unit
class TestGate:
    """Owner-or-admin authorization"""

    @pytest.mark.asyncio
    async def test_admin_passes_without_loading(self):
        load = AsyncMock()
        result = await authorize(Principal(id="root", role=Role.ADMIN), "appt-1", load)

        assert result is None
        load.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_passes_and_gets_resource(self):
        resource = owned_by("alice", "bob")
        load = AsyncMock(return_value=resource)

        result = await authorize(Principal(id="alice"), "appt-1", load)

        assert result is resource
        load.assert_awaited_once_with("appt-1")

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self):
        load = AsyncMock(return_value=owned_by("alice"))
        with pytest.raises(ForbiddenError):
            await authorize(Principal(id="mallory"), "appt-1", load)

    @pytest.mark.asyncio
    async def test_unowned_resource_is_forbidden(self):
        load = AsyncMock(return_value=owned_by())
        with pytest.raises(ForbiddenError):
            await authorize(Principal(id="alice"), "appt-1", load)

    @pytest.mark.asyncio
    async def test_missing_resource_is_not_found(self):
        load = AsyncMock(side_effect=NotFoundError("Appointment appt-9 not found"))
        with pytest.raises(NotFoundError):
            await authorize(Principal(id="alice"), "appt-9", load)

    def test_is_owner(self):
        assert is_owner(Principal(id="a"), owned_by("a"))
        assert not is_owner(Principal(id="a"), owned_by("b"))
