"""Password reset ledger: single-use reset tokens."""

import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from truedope.cache.store import TokenStore
from truedope.database.base import utcnow

from .models import IssuedToken, TokenRecord, hash_token


def _token_key(token_hash: str) -> str:
    return f"password_reset:{token_hash}"


def _user_key(user_id: int) -> str:
    return f"password_reset:user:{user_id}"


class PasswordResetLedger:
    """At most one outstanding reset token per user; each token is consumed once."""

    def __init__(self, store: TokenStore, lifetime: timedelta, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.lifetime = lifetime
        self.clock = clock

    async def create(self, user_id: int) -> IssuedToken:
        """Issue a reset token, invalidating any previous one for the same user."""
        user_key = _user_key(user_id)
        previous = await self.store.get(user_key)
        if previous is not None:
            await self.store.delete(_token_key(previous))

        token = secrets.token_urlsafe(32)
        token_hash = hash_token(token)
        now = self.clock()
        record = TokenRecord(user_id=user_id, issued_at=now, expires_at=now + self.lifetime)
        ttl = int(self.lifetime.total_seconds())

        await self.store.set(_token_key(token_hash), record.model_dump_json(), ttl)
        await self.store.set(user_key, token_hash, ttl)
        return IssuedToken(token=token, expires_at=record.expires_at)

    async def consume(self, token: str) -> int | None:
        """Atomically use up ``token``. Returns the owner's id, or None if not valid."""
        token_hash = hash_token(token)
        raw = await self.store.getdel(_token_key(token_hash))
        if raw is None:
            return None

        record = TokenRecord.model_validate_json(raw)
        user_key = _user_key(record.user_id)
        if await self.store.get(user_key) == token_hash:
            await self.store.delete(user_key)

        if record.is_expired(self.clock()):
            return None
        return record.user_id
