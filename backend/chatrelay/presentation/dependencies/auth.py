"""
Authentication Dependency.

- Verifies the bearer JWT (HTTP Authorization header or Socket.IO auth payload)
- Required claims: exp, iat, aud, iss, sub (user id as UUID), email
- Optional claim: name
- Records the user in the ConversationStore so it can be embedded as a sender

The same verifier backs both transports; an invalid token raises
UnauthenticatedError, which HTTP maps to 401 and the socket handshake turns
into a refused connection.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chatrelay.config.settings import Config
from chatrelay.domain.entities.user import User
from chatrelay.domain.exceptions import UnauthenticatedError
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.user_email import UserEmail
from chatrelay.domain.value_objects.user_id import UserId

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: UserId
    email: UserEmail
    name: Optional[str] = None

    def to_entity(self) -> User:
        return User(id=self.id, email=self.email, name=self.name)


class IdentityVerifier:
    def __init__(
        self,
        store: ConversationStore,
        secret: str = Config.SERVICE_AUTH_SECRET,
        audience: str = Config.SERVICE_AUTH_AUDIENCE,
        issuer: str = Config.SERVICE_AUTH_ISSUER,
    ):
        self._store = store
        self._secret = secret
        self._audience = audience
        self._issuer = issuer

    def decode(self, token: Optional[str]) -> AuthUser:
        if not token:
            raise UnauthenticatedError()
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "aud", "iss", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise UnauthenticatedError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected token: {e}")
            raise UnauthenticatedError(f"Invalid token: {str(e)}") from e

        try:
            return AuthUser(
                id=UserId(str(claims["sub"])),
                email=UserEmail(claims.get("email") or ""),
                name=claims.get("name") or None,
            )
        except ValueError as e:
            raise UnauthenticatedError("Missing required claims in token") from e

    async def authenticate(self, token: Optional[str]) -> AuthUser:
        user = self.decode(token)
        await self._store.save_user(user.to_entity())
        return user


security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthUser:
    """Extract and validate user from the bearer token; 401 via UnauthenticatedError."""
    verifier = await request.state.dishka_container.get(IdentityVerifier)
    token = credentials.credentials if credentials else None
    return await verifier.authenticate(token)
