"""Tests for short code resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from linkgate.errors import NotResolvable
from linkgate.resolver import IdentityResolver
from tests.conftest import make_link


NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolver(store, logger):
    return IdentityResolver(store, clock=lambda: NOW, logger=logger)


@pytest.mark.asyncio
class TestIdentityResolver:
    """Lookup by short code or alias."""

    async def test_resolves_short_code(self, store, resolver):
        link = make_link("abc123")
        store.add_link(link)

        resolution = await resolver.resolve("abc123")

        assert resolution.found
        assert resolution.link.id == link.id

    async def test_resolves_custom_alias(self, store, resolver):
        link = make_link("abc123", custom_code="promo")
        store.add_link(link)

        resolution = await resolver.resolve("promo")

        assert resolution.link.id == link.id

    async def test_unknown_code(self, resolver):
        resolution = await resolver.resolve("nothere")
        assert not resolution.found
        assert resolution.reason == NotResolvable.NOT_FOUND

    async def test_surrounding_whitespace_is_trimmed(self, store, resolver):
        store.add_link(make_link("abc123"))
        assert (await resolver.resolve("  abc123\n")).found

    async def test_lookup_is_case_sensitive(self, store, resolver):
        store.add_link(make_link("abc123"))
        assert not (await resolver.resolve("ABC123")).found

    @pytest.mark.parametrize("code", ["", "   ", None])
    async def test_blank_code(self, resolver, code):
        assert (await resolver.resolve(code)).reason == NotResolvable.NOT_FOUND

    async def test_expired_link(self, store, resolver):
        store.add_link(make_link("old", expires_at=NOW - timedelta(minutes=1)))

        resolution = await resolver.resolve("old")

        assert not resolution.found
        assert resolution.reason == NotResolvable.EXPIRED

    async def test_future_expiry_resolves(self, store, resolver):
        store.add_link(make_link("soon", expires_at=NOW + timedelta(minutes=1)))
        assert (await resolver.resolve("soon")).found

    async def test_duplicates_pick_oldest(self, store, resolver):
        """Several links sharing a code: the earliest created wins."""
        older = make_link("dup", created_at=NOW - timedelta(days=2), original_url="https://example.com/old")
        newer = make_link("dup", created_at=NOW - timedelta(days=1), original_url="https://example.com/new")
        store.add_link(newer)
        store.add_link(older)

        resolution = await resolver.resolve("dup")

        assert resolution.link.id == older.id

    async def test_duplicates_skip_expired(self, store, resolver):
        """An expired oldest duplicate falls through to the next live one."""
        older = make_link("dup", created_at=NOW - timedelta(days=2), expires_at=NOW - timedelta(hours=1))
        newer = make_link("dup", created_at=NOW - timedelta(days=1))
        store.add_link(older)
        store.add_link(newer)

        resolution = await resolver.resolve("dup")

        assert resolution.link.id == newer.id

    async def test_duplicates_all_expired(self, store, resolver):
        store.add_link(make_link("dup", created_at=NOW - timedelta(days=2), expires_at=NOW - timedelta(hours=2)))
        store.add_link(make_link("dup", created_at=NOW - timedelta(days=1), expires_at=NOW - timedelta(hours=1)))

        assert (await resolver.resolve("dup")).reason == NotResolvable.EXPIRED
