"""
Authentication and authorization dependencies for the booking API.

Bearer tokens are issued by the identity provider (HS256 JWT carrying
``id`` and ``role``). This module only verifies them and turns the claims
into a ``Principal``; ownership checks go through the authorization gate.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConfigurationError, ForbiddenError, UnauthorizedError
from app.core.logging import set_user_context
from app.crud.appointment import get_appointment
from app.crud.user import get_user
from app.db.session import get_session
from app.schemas.auth import Principal
from app.services.authorization import authorize


class TokenVerifier:
    """Verifies (and, for tooling and tests, signs) principal tokens."""

    def __init__(self, secret: Optional[str], algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def _require_secret(self) -> str:
        if not self.secret:
            raise ConfigurationError("JWT secret not set")
        return self.secret

    def sign(self, principal: Principal, expires_in: Optional[timedelta] = None) -> str:
        claims: Dict[str, Any] = {"id": principal.id, "role": principal.role.value}
        if expires_in is not None:
            claims["exp"] = datetime.now(timezone.utc) + expires_in
        return jwt.encode(claims, self._require_secret(), algorithm=self.algorithm)

    def verify(self, token: str) -> Principal:
        secret = self._require_secret()
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise UnauthorizedError(f"Token invalid: {e}")

        try:
            return Principal(id=str(claims.get("id") or ""), role=claims.get("role") or "USER")
        except ValidationError:
            raise UnauthorizedError("Token carries an unknown role")


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_principal(
    authorization: Optional[str] = Header(None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Principal:
    """
    Require a valid bearer token.

    Raises:
        UnauthorizedError: header missing, not a bearer token, or token invalid
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Bearer token required")

    principal = verifier.verify(authorization[len("Bearer "):].strip())
    if not principal.id:
        raise UnauthorizedError("Token carries no principal id")

    set_user_context(user_id=principal.id, role=principal.role.value)
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Access restricted to administrator", principal_id=principal.id)
    return principal


async def authorize_appointment(
    appointment_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_session),
) -> Principal:
    """Owner-or-admin gate for /appointments/{appointment_id} paths."""
    await authorize(principal, appointment_id, lambda key: get_appointment(db, key))
    return principal


async def authorize_user(
    user_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_session),
) -> Principal:
    """Self-or-admin gate for /appointments/user/{user_id}."""
    await authorize(principal, user_id, lambda key: get_user(db, key))
    return principal
