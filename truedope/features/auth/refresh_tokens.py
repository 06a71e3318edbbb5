"""Refresh token ledger: create, rotate and revoke opaque refresh tokens."""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Literal

from truedope.cache.store import TokenStore
from truedope.database.base import utcnow

from .models import IssuedToken, TokenRecord, hash_token

logger = logging.getLogger(__name__)

ReusePolicy = Literal["revoke_all", "reject"]


def _token_key(token_hash: str) -> str:
    return f"refresh_token:{token_hash}"


def _rotated_key(token_hash: str) -> str:
    return f"refresh_token:rotated:{token_hash}"


def _user_key(user_id: int) -> str:
    return f"refresh_tokens:user:{user_id}"


def _generation_key(user_id: int) -> str:
    return f"refresh_tokens:generation:{user_id}"


class RefreshTokenLedger:
    """Refresh tokens keyed by hash, with a per-user index for bulk revocation.

    Rotation consumes the old record and writes its ``rotated`` marker in one
    atomic store call, so of two concurrent refreshes with the same token
    exactly one succeeds and the loser always finds the marker. The marker
    lives for the rest of the token's lifetime so replays can be told apart
    from unknown tokens.

    Each user has a generation counter that ``revoke_all`` bumps before it
    deletes anything. Records carry the generation they were issued under and
    a record from an older generation is never rotated, which closes the gap
    between a rotation's consume and its replacement landing in the index.
    """

    def __init__(
        self,
        store: TokenStore,
        lifetime: timedelta,
        reuse_policy: ReusePolicy = "revoke_all",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.lifetime = lifetime
        self.reuse_policy = reuse_policy
        self.clock = clock

    @property
    def _ttl(self) -> int:
        return int(self.lifetime.total_seconds())

    async def _generation(self, user_id: int) -> int:
        # Incrementing by zero reads the counter and keeps it alive as long as the newest token.
        return await self.store.incr(_generation_key(user_id), self._ttl, amount=0)

    async def create(self, user_id: int, generation: int | None = None) -> IssuedToken:
        if generation is None:
            generation = await self._generation(user_id)

        token = secrets.token_urlsafe(64)
        token_hash = hash_token(token)
        now = self.clock()
        record = TokenRecord(
            user_id=user_id,
            generation=generation,
            issued_at=now,
            expires_at=now + self.lifetime,
        )

        await self.store.set(_token_key(token_hash), record.model_dump_json(), self._ttl)
        await self.store.sadd(_user_key(user_id), token_hash, self._ttl)
        return IssuedToken(token=token, expires_at=record.expires_at)

    async def validate_and_rotate(self, token: str) -> tuple[IssuedToken, int] | None:
        """Consume ``token`` and issue its replacement.

        Returns the new token and the owner's id, or None when the token is
        unknown, expired, revoked or already rotated.
        """
        token_hash = hash_token(token)
        raw = await self.store.consume(_token_key(token_hash), _rotated_key(token_hash))
        if raw is None:
            await self._handle_reuse(token_hash)
            return None

        record = TokenRecord.model_validate_json(raw)
        await self.store.srem(_user_key(record.user_id), token_hash)

        if record.is_expired(self.clock()):
            return None

        generation = await self._generation(record.user_id)
        if record.generation != generation:
            logger.info(f"Refresh token for user {record.user_id} predates a revocation, not rotating")
            return None

        issued = await self.create(record.user_id, generation)
        return issued, record.user_id

    async def _handle_reuse(self, token_hash: str) -> None:
        raw = await self.store.get(_rotated_key(token_hash))
        if raw is None:
            return

        owner = TokenRecord.model_validate_json(raw).user_id
        logger.warning(f"Rotated refresh token replayed for user {owner}")
        if self.reuse_policy == "revoke_all":
            revoked = await self.revoke_all(owner)
            logger.warning(f"Revoked {revoked} refresh token(s) for user {owner} after replay")

    async def revoke(self, token: str) -> bool:
        """Delete a single refresh token. Returns False when it was not live."""
        token_hash = hash_token(token)
        raw = await self.store.getdel(_token_key(token_hash))
        if raw is None:
            return False

        record = TokenRecord.model_validate_json(raw)
        await self.store.srem(_user_key(record.user_id), token_hash)
        return True

    async def revoke_all(self, user_id: int) -> int:
        """Delete every live refresh token of a user. Returns how many were removed."""
        await self.store.incr(_generation_key(user_id), self._ttl)

        user_key = _user_key(user_id)
        hashes = await self.store.smembers(user_key)
        revoked = await self.store.delete(*(_token_key(h) for h in hashes)) if hashes else 0
        await self.store.delete(user_key)
        return revoked
