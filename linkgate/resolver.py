"""Short code to link record resolution."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .database.base import LinkStoreBase
from .database.cache import RedisCache
from .database.models import Link
from .errors import NotResolvable
from .rules.expiration import is_expired


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a code: a live link, or why there is none."""

    code: str
    link: Optional[Link] = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.link is not None


class IdentityResolver:
    """Maps a short code or custom alias to a live link record."""

    def __init__(
        self,
        store: LinkStoreBase,
        cache: Optional[RedisCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize resolver.

        Args:
            store: Link store
            cache: Optional Redis cache of link records
            clock: Returns the current time (injectable for tests)
            logger: Optional logger
        """
        self.store = store
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(self, code: str) -> Resolution:
        """Resolve a raw code from the URL path.

        The code is trimmed but otherwise matched exactly against both the
        short code and the custom alias. When storage holds several matches,
        the first by (created_at, id) that has not expired wins.

        Args:
            code: Raw code

        Returns:
            Resolution with the link, or with reason not_found / expired
        """
        code = (code or "").strip()
        if not code:
            return Resolution(code=code, reason=NotResolvable.NOT_FOUND)

        now = self.clock()

        if self.cache and self.cache.enabled:
            cached = await self.cache.get_link(code)
            if cached is not None and not is_expired(cached.expires_at, now):
                self.logger.debug(f"Cache hit for {code}")
                return Resolution(code=code, link=cached)

        candidates = await self.store.find_links_by_code(code)
        if not candidates:
            self.logger.info(f"Code not found: {code}")
            return Resolution(code=code, reason=NotResolvable.NOT_FOUND)

        if len(candidates) > 1:
            self.logger.warning(
                f"Code {code} matches {len(candidates)} links; using the oldest live one"
            )

        for link in candidates:
            if not is_expired(link.expires_at, now):
                if self.cache and self.cache.enabled:
                    await self.cache.set_link(code, link)
                return Resolution(code=code, link=link)

        self.logger.info(f"Code expired: {code}")
        return Resolution(code=code, reason=NotResolvable.EXPIRED)
