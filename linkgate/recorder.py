"""Fire-and-forget click recording."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Set

from .analytics import detect_device_info
from .context import RequestContext
from .database.base import LinkStoreBase
from .database.models import Click, Link
from .errors import AtomicIncrementUnavailable
from .geolocation import Location


class ClickRecorder:
    """Records accepted visits without holding up the redirect.

    Each recording runs in its own task, detached from the request that
    triggered it, so a visitor disconnecting does not cancel it. Failures are
    logged and dropped.
    """

    def __init__(
        self,
        store: LinkStoreBase,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Set[asyncio.Task] = set()

    def build_click(
        self,
        link: Link,
        context: RequestContext,
        location: Optional[Location] = None,
    ) -> Click:
        device = detect_device_info(context.user_agent)
        location = location or Location.unknown(context.ip)
        return Click(
            link_id=link.id,
            clicked_at=datetime.now(timezone.utc),
            user_agent=context.user_agent,
            browser=device.browser,
            device=device.device,
            os=device.os,
            referrer=context.referrer or "Direct",
            ip=context.ip,
            country=location.country,
            city=location.city,
        )

    def record(
        self,
        link: Link,
        context: RequestContext,
        location: Optional[Location] = None,
    ) -> asyncio.Task:
        """Schedule recording of one click and return immediately.

        Args:
            link: The link that was visited
            context: Request context of the visit
            location: Visitor location, if already resolved

        Returns:
            The background task (callers normally ignore it)
        """
        click = self.build_click(link, context, location)
        task = asyncio.get_running_loop().create_task(self._record(link, click))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _record(self, link: Link, click: Click) -> None:
        try:
            await self.store.record_click(link.id, click)
        except Exception as e:
            self.logger.error(f"Failed to record click for {link.short_code}: {e}")

        try:
            await self._increment(link)
        except Exception as e:
            self.logger.error(f"Failed to increment clicks for {link.short_code}: {e}")

    async def _increment(self, link: Link) -> None:
        try:
            clicks = await self.store.increment_click_counter(link.id)
        except AtomicIncrementUnavailable:
            # Read-modify-write may undercount under heavy concurrency
            current = await self.store.get_link_by_id(link.id)
            if current is None:
                self.logger.warning(f"Cannot increment clicks - link gone: {link.short_code}")
                return
            clicks = current.clicks + 1
            await self.store.set_click_counter(link.id, clicks)

        self.logger.debug(f"Recorded click for {link.short_code} (total {clicks})")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight recordings (shutdown, tests)."""
        if not self._pending:
            return
        done, not_done = await asyncio.wait(set(self._pending), timeout=timeout)
        if not_done:
            self.logger.warning(f"{len(not_done)} click recordings still pending after drain")
