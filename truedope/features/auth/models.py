"""Authentication models (opaque token records kept in the token store)."""

import hashlib
from dataclasses import dataclass
from datetime import datetime

from pydantic import AwareDatetime, BaseModel


def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the store key; raw tokens are never stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenRecord(BaseModel):
    """Stored value for a refresh or password reset token."""

    user_id: int
    generation: int = 0
    issued_at: AwareDatetime
    expires_at: AwareDatetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted opaque token and its expiry."""

    token: str
    expires_at: datetime
