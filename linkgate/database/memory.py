"""In-memory link store, for development and tests."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from .base import LinkStoreBase
from .models import Link, Click


class InMemoryLinkStore(LinkStoreBase):
    """Keeps links and clicks in process memory.

    Click counter increments are serialized by an asyncio lock, so concurrent
    visits on one event loop never lose updates.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__("memory://")
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, Link] = {}
        self._clicks: Dict[str, List[Click]] = {}
        self._lock = asyncio.Lock()

    async def create_link(self, link: Link) -> bool:
        async with self._lock:
            codes = {link.short_code}
            if link.custom_code:
                codes.add(link.custom_code)
            for existing in self._links.values():
                if codes & {existing.short_code, existing.custom_code}:
                    self.logger.warning(f"Code already exists: {link.short_code}")
                    return False
            self._links[link.id] = link
            self._clicks[link.id] = []
        self.logger.info(f"Created link: {link.short_code} -> {link.original_url}")
        return True

    def add_link(self, link: Link) -> None:
        """Insert a link without uniqueness checks (used to seed corrupt states in tests)."""
        self._links[link.id] = link
        self._clicks.setdefault(link.id, [])

    async def find_links_by_code(self, code: str) -> List[Link]:
        matches = [
            link for link in self._links.values()
            if link.short_code == code or (link.custom_code and link.custom_code == code)
        ]
        return sorted(matches, key=lambda link: (link.created_at, link.id))

    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        return self._links.get(link_id)

    async def code_exists(self, code: str) -> bool:
        return bool(await self.find_links_by_code(code))

    async def record_click(self, link_id: str, click: Click) -> bool:
        if link_id not in self._links:
            self.logger.warning(f"Cannot record click - link not found: {link_id}")
            return False
        click.id = click.id or str(uuid.uuid4())
        self._clicks[link_id].append(click)
        return True

    async def increment_click_counter(self, link_id: str) -> int:
        async with self._lock:
            link = self._links.get(link_id)
            if link is None:
                self.logger.warning(f"Cannot increment clicks - link not found: {link_id}")
                return 0
            link.clicks += 1
            link.last_clicked_at = datetime.now(timezone.utc)
            return link.clicks

    async def set_click_counter(self, link_id: str, clicks: int) -> None:
        link = self._links.get(link_id)
        if link is not None:
            link.clicks = clicks
            link.last_clicked_at = datetime.now(timezone.utc)

    async def list_clicks(self, link_id: str, limit: int = 100) -> List[Click]:
        clicks = self._clicks.get(link_id, [])
        return list(reversed(clicks))[:limit]

    async def delete_link(self, link_id: str) -> bool:
        async with self._lock:
            if self._links.pop(link_id, None) is None:
                return False
            self._clicks.pop(link_id, None)
        self.logger.info(f"Deleted link: {link_id}")
        return True

    async def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_links": len(self._links),
            "total_clicks": sum(link.clicks for link in self._links.values()),
            "database": "memory",
            "status": "healthy",
        }

    async def close(self) -> None:
        pass

    async def health_check(self) -> bool:
        return True
