"""Redis cache of link records, keyed by the code a visitor used."""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from .models import Link

KEY_PREFIX = "link:gate:"


class RedisCache:
    """Read-through cache in front of the link store.

    Entries hold the full link record (password hash included) as JSON under
    every code it was resolved by. Any Redis error is logged and treated as a
    miss, so the store stays the source of truth. Expiry is not trusted from
    here; the resolver re-checks it on every hit.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 60,
        client: Optional[redis.Redis] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Lifetime of a cached record
            client: Already connected client (tests); skips connect()
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.client = client
        self.enabled = redis_url is not None or client is not None

        if self.enabled:
            self.logger.info(f"Redis link cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis; on failure caching is disabled, not fatal."""
        if not self.enabled or self.client is not None:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    @property
    def available(self) -> bool:
        return self.enabled and self.client is not None

    @staticmethod
    def key_for(code: str) -> str:
        return f"{KEY_PREFIX}{code}"

    async def get_link(self, code: str) -> Optional[Link]:
        """Cached record for a code, or None on a miss or any error."""
        if not self.available:
            return None

        key = self.key_for(code)
        try:
            raw = await self.client.get(key)
        except Exception as e:
            self.logger.error(f"Cache get error for {code}: {e}")
            return None

        if not raw:
            return None

        try:
            return Link.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Discarding unreadable cache entry for {code}: {e}")
            await self._delete(key)
            return None

    async def set_link(self, code: str, link: Link) -> bool:
        """Cache a record under the code it was resolved by."""
        if not self.available:
            return False

        try:
            await self.client.setex(
                self.key_for(code),
                self.ttl_seconds,
                json.dumps(link.to_dict(include_secret=True)),
            )
            return True
        except Exception as e:
            self.logger.error(f"Cache set error for {code}: {e}")
            return False

    async def invalidate_link(self, link: Link) -> bool:
        """Drop the entries of a link under both its short code and alias."""
        keys = [self.key_for(link.short_code)]
        if link.custom_code:
            keys.append(self.key_for(link.custom_code))
        return await self._delete(*keys)

    async def _delete(self, *keys: str) -> bool:
        if not self.available:
            return False

        try:
            return await self.client.delete(*keys) > 0
        except Exception as e:
            self.logger.error(f"Cache delete error: {e}")
            return False

    async def ping(self) -> bool:
        if not self.available:
            return False
        try:
            await self.client.ping()
            return True
        except Exception as e:
            self.logger.error(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client is not None:
            await self.client.aclose()
            self.logger.info("Redis connection closed")
