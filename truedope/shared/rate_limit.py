"""Shared slowapi limiter used by rate-limited endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from truedope.config.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
