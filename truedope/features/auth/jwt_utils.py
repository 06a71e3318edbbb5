"""JWT utilities for authentication."""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from truedope.config.settings import JwtConfig, settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class TokenClaims:
    """Verified access token claims."""

    user_id: int
    role: str
    is_admin: bool
    email: str | None


class TokenSigner:
    """Issue and verify signed access tokens.

    Stateless: the only inputs are the signing configuration and the clock.
    """

    def __init__(self, config: JwtConfig):
        self.config = config

    @property
    def expires_in_seconds(self) -> int:
        return self.config.access_token_expire_minutes * 60

    def issue(self, user_id: int, role: str, email: str | None = None, now: datetime | None = None) -> str:
        """Create a signed access token for a user.

        Args:
            user_id: Subject of the token
            role: Role value (``user`` or ``admin``)
            email: Optional email claim
            now: Issue time, defaults to the current time

        Returns:
            Encoded JWT token string

        """
        issued_at = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "role": role,
            "is_admin": role == "admin",
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.config.access_token_expire_minutes),
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "jti": uuid.uuid4().hex,
            "type": ACCESS_TOKEN_TYPE,
        }
        if email is not None:
            payload["email"] = email

        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)

    def verify(self, token: str) -> TokenClaims | None:
        """Decode and verify an access token.

        Returns None on any failure: bad signature, wrong issuer or audience,
        expiry, missing claims or a non-access token type.
        """
        try:
            payload = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                leeway=0,
                options={"require": ["exp", "iat", "sub", "iss", "aud"]},
            )
        except InvalidTokenError as e:
            logger.debug(f"Access token rejected: {e}")
            return None

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            return None

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            return None

        role = payload.get("role")
        if not isinstance(role, str):
            return None

        return TokenClaims(
            user_id=user_id,
            role=role,
            is_admin=bool(payload.get("is_admin", False)),
            email=payload.get("email"),
        )


@lru_cache
def get_token_signer() -> TokenSigner:
    """FastAPI dependency returning the signer built from application settings."""
    return TokenSigner(settings.jwt)
