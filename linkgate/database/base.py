"""Abstract base class for link store implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from .models import Link, Click


class LinkStoreBase(ABC):
    """Abstract base class for link storage operations."""

    def __init__(self, db_config: str):
        """Initialize store.

        Args:
            db_config: Database connection string
        """
        self.db_config = db_config

    @abstractmethod
    async def create_link(self, link: Link) -> bool:
        """Persist a new link.

        Args:
            link: The link to store (id and created_at already set)

        Returns:
            True if created, False if its short or custom code is taken
        """
        pass

    @abstractmethod
    async def find_links_by_code(self, code: str) -> List[Link]:
        """Find every link whose short_code or custom_code equals ``code``.

        Args:
            code: The code to look up (exact, case-sensitive)

        Returns:
            Matching links ordered by (created_at, id)
        """
        pass

    async def find_link_by_code(self, code: str) -> Optional[Link]:
        """Find the first link matching ``code`` by (created_at, id).

        Args:
            code: The code to look up

        Returns:
            The link, or None if nothing matches
        """
        links = await self.find_links_by_code(code)
        return links[0] if links else None

    @abstractmethod
    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        """Get a link by its storage id."""
        pass

    @abstractmethod
    async def code_exists(self, code: str) -> bool:
        """Check whether a code is used as a short_code or custom_code."""
        pass

    @abstractmethod
    async def record_click(self, link_id: str, click: Click) -> bool:
        """Store one click record.

        Raises:
            RecordingFailure: If the write fails
        """
        pass

    @abstractmethod
    async def increment_click_counter(self, link_id: str) -> int:
        """Atomically add one to the link's click counter and stamp last_clicked_at.

        Returns:
            The new counter value

        Raises:
            AtomicIncrementUnavailable: If the store cannot do this atomically
            RecordingFailure: If the write fails
        """
        pass

    @abstractmethod
    async def set_click_counter(self, link_id: str, clicks: int) -> None:
        """Overwrite the click counter (read-modify-write fallback)."""
        pass

    @abstractmethod
    async def list_clicks(self, link_id: str, limit: int = 100) -> List[Click]:
        """List the most recent clicks of a link, newest first."""
        pass

    @abstractmethod
    async def delete_link(self, link_id: str) -> bool:
        """Delete a link and its clicks.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def get_statistics(self) -> Dict[str, Any]:
        """Get store statistics (total_links, total_clicks...)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close store connections."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is healthy."""
        pass
