"""Storage layer for the link gate service."""

from .base import LinkStoreBase
from .memory import InMemoryLinkStore
from .postgres import PostgresLinkStore
from .cache import RedisCache
from .models import Link, Click

__all__ = [
    "LinkStoreBase",
    "InMemoryLinkStore",
    "PostgresLinkStore",
    "RedisCache",
    "Link",
    "Click",
]
