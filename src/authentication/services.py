"""JWT issuance and the register/login/refresh/logout session lifecycle."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from django.conf import settings
from django.db import IntegrityError
from rest_framework.exceptions import AuthenticationFailed

from core.exceptions import Conflict, InternalError
from .hashing import BcryptHasher
from .repositories import CredentialRepository


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """Sign and decode access/refresh JWTs carrying ``{sub, login}``."""

    ALGORITHM = "HS256"

    def __init__(self, secret: str, access_ttl: timedelta, refresh_ttl: timedelta):
        self.secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls) -> "TokenService":
        return cls(
            secret=settings.JWT_SECRET,
            access_ttl=settings.JWT_ACCESS_EXPIRES,
            refresh_ttl=settings.JWT_REFRESH_EXPIRES,
        )

    def generate_tokens(self, user_id, login: str) -> TokenPair:
        """Generate signed access and refresh tokens for the given subject."""

        now = datetime.now(timezone.utc)
        access_payload = self._build_payload(user_id, login, "access", now, self.access_ttl)
        refresh_payload = self._build_payload(user_id, login, "refresh", now, self.refresh_ttl)

        return TokenPair(
            access_token=jwt.encode(access_payload, self.secret, algorithm=self.ALGORITHM),
            refresh_token=jwt.encode(refresh_payload, self.secret, algorithm=self.ALGORITHM),
        )

    @staticmethod
    def _build_payload(
        user_id, login: str, token_type: str, issued_at: datetime, ttl: timedelta
    ) -> dict[str, Any]:
        exp = issued_at + ttl
        return {
            "sub": str(user_id),
            "login": login,
            # Unique per token so two pairs minted in the same second differ.
            "jti": str(uuid.uuid4()),
            "exp": int(exp.timestamp()),
            "iat": int(issued_at.timestamp()),
            "type": token_type,
        }

    def decode_token(self, token: str, expected_type: str | None = None) -> dict[str, Any]:
        """Decode and validate a JWT; optionally enforce token type."""

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationFailed("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationFailed("Invalid token") from exc

        if expected_type and payload.get("type") != expected_type:
            raise AuthenticationFailed("Invalid token type")

        return payload


class AuthService:
    """Owns the refresh-token rotation invariant.

    A credential is either without session (``refresh_token_hash`` is null) or
    holds the digest of the single refresh token that may be exchanged next.
    Every login or refresh replaces the digest, so older refresh tokens stop
    verifying.
    """

    INVALID_CREDENTIALS = "Invalid credentials"

    def __init__(
        self,
        credentials: CredentialRepository,
        tokens: TokenService,
        hasher: BcryptHasher,
        logger: logging.Logger | None = None,
    ):
        self.credentials = credentials
        self.tokens = tokens
        self.hasher = hasher
        self.logger = logger or logging.getLogger(__name__)

    async def register(self, *, login: str, password: str, first_name: str, last_name: str) -> TokenPair:
        if await self.credentials.find_by_login(login) is not None:
            raise Conflict("User with this login already exists")

        user_id = uuid.uuid4()
        password_hash = await self.hasher.make(password)
        tokens = self.tokens.generate_tokens(user_id, login)
        refresh_token_hash = await self.hasher.make(tokens.refresh_token)

        try:
            credential = await self.credentials.create_account(
                {"id": user_id, "first_name": first_name, "last_name": last_name},
                {
                    "login": login,
                    "password_hash": password_hash,
                    "refresh_token_hash": refresh_token_hash,
                },
            )
        except IntegrityError as exc:
            # Lost a race against a concurrent registration of the same login.
            raise Conflict("User with this login already exists") from exc
        if credential is None:
            raise InternalError("Failed to create user")

        self.logger.info("Registered user %s", user_id)
        return tokens

    async def login(self, *, login: str, password: str) -> TokenPair:
        credential = await self.credentials.find_by_login(login)
        if credential is None or not await self.hasher.verify(password, credential.password_hash):
            self.logger.info("Rejected login attempt")
            raise AuthenticationFailed(self.INVALID_CREDENTIALS)

        tokens = self.tokens.generate_tokens(credential.user_id, credential.login)
        refresh_token_hash = await self.hasher.make(tokens.refresh_token)
        affected = await self.credentials.update(
            {"user_id": credential.user_id}, refresh_token_hash=refresh_token_hash
        )
        if not affected:
            raise InternalError("Failed to update refresh token")

        self.logger.info("User %s logged in", credential.user_id)
        return tokens

    async def refresh_tokens(self, user_id, refresh_token: str) -> TokenPair:
        credential = await self.credentials.find_by_user_id(user_id)
        if credential is None or not credential.has_active_session:
            raise AuthenticationFailed("No active session")

        current_hash = credential.refresh_token_hash
        if not await self.hasher.verify(refresh_token, current_hash):
            self.logger.warning("Stale or foreign refresh token presented for user %s", user_id)
            raise AuthenticationFailed("Invalid refresh token")

        tokens = self.tokens.generate_tokens(credential.user_id, credential.login)
        new_hash = await self.hasher.make(tokens.refresh_token)

        # Compare-and-swap: only the request that verified the current digest
        # may replace it.
        affected = await self.credentials.update(
            {"user_id": credential.user_id, "refresh_token_hash": current_hash},
            refresh_token_hash=new_hash,
        )
        if affected is None:
            raise InternalError("Failed to update refresh token")
        if affected == 0:
            self.logger.warning("Concurrent refresh lost rotation race for user %s", user_id)
            raise AuthenticationFailed("Invalid refresh token")

        return tokens

    async def logout(self, user_id) -> int:
        affected = await self.credentials.update({"user_id": user_id}, refresh_token_hash=None)
        if not affected:
            raise InternalError("Failed to logout")

        self.logger.info("User %s logged out", user_id)
        return affected


def build_auth_service() -> AuthService:
    """Wire an AuthService from settings."""
    return AuthService(
        credentials=CredentialRepository(),
        tokens=TokenService.from_settings(),
        hasher=BcryptHasher.from_settings(),
    )


__all__ = ["TokenPair", "TokenService", "AuthService", "build_auth_service"]
