"""Tests for best-effort geolocation."""

import asyncio

import httpx
import pytest

from linkgate.common.ttl_cache import TTLCache
from linkgate.geolocation import (
    CountryIsProvider,
    GeoProvider,
    GeoLocator,
    IpapiProvider,
    Location,
    is_public_ip,
)
from tests.conftest import AU_IP, RU_IP, US_IP, geo_handler


def make_locator(handler, total_timeout_seconds=3.0, cache=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    providers = [
        IpapiProvider("https://ipapi.co/{ip}/json/", timeout_seconds=1.5),
        CountryIsProvider("https://api.country.is/{ip}", timeout_seconds=1.5),
    ]
    return GeoLocator(providers, client=client, total_timeout_seconds=total_timeout_seconds, cache=cache)


class CountingHandler:
    def __init__(self, inner=geo_handler):
        self.inner = inner
        self.hosts = []

    def __call__(self, request):
        self.hosts.append(request.url.host)
        return self.inner(request)


@pytest.mark.asyncio
class TestGeoLocator:

    async def test_primary_provider(self):
        locator = make_locator(geo_handler)

        location = await locator.locate(US_IP)

        assert location == Location(US_IP, "United States", "Mountain View", "ipapi")
        assert location.is_known

    async def test_fallback_provider_after_api_error(self):
        """ipapi.co reports an error payload, api.country.is answers."""
        handler = CountingHandler()
        locator = make_locator(handler)

        location = await locator.locate(AU_IP)

        assert location.country == "AU"
        assert location.city == "Inconnu"
        assert location.provider == "country.is"
        assert handler.hosts == ["ipapi.co", "api.country.is"]

    async def test_fallback_after_timeout(self):
        def handler(request):
            if request.url.host == "ipapi.co":
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"country": "FR"})

        location = await make_locator(handler).locate(RU_IP)

        assert location.country == "FR"

    async def test_all_providers_fail(self):
        def handler(request):
            return httpx.Response(503)

        location = await make_locator(handler).locate(US_IP)

        assert location.country == "Inconnu"
        assert not location.is_known

    async def test_invalid_json_is_a_failure(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>nope</html>")

        assert (await make_locator(handler).locate(US_IP)).country == "Inconnu"

    async def test_total_timeout(self):
        """A hanging provider is cut off by the overall bound."""
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"country_name": "Nowhere"})

        location = await make_locator(handler, total_timeout_seconds=0.05).locate(US_IP)

        assert location.country == "Inconnu"

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "192.168.0.10", "::1", "Inconnu", "", None])
    async def test_non_public_addresses_are_not_looked_up(self, ip):
        handler = CountingHandler()

        location = await make_locator(handler).locate(ip)

        assert location.country == "Inconnu"
        assert handler.hosts == []

    async def test_results_are_cached(self):
        handler = CountingHandler()
        locator = make_locator(handler, cache=TTLCache(ttl_seconds=60))

        await locator.locate(US_IP)
        await locator.locate(US_IP)

        assert handler.hosts == ["ipapi.co"]

    async def test_failures_are_not_cached(self):
        handler = CountingHandler(lambda request: httpx.Response(503))
        locator = make_locator(handler, cache=TTLCache(ttl_seconds=60))

        await locator.locate(US_IP)
        await locator.locate(US_IP)

        assert len(handler.hosts) == 4

    async def test_from_config(self, config, geo_client):
        locator = GeoLocator.from_config(config, client=geo_client)

        assert [provider.name for provider in locator.providers] == ["ipapi", "country.is"]
        assert (await locator.locate(RU_IP)).country == "Russia"


def test_is_public_ip():
    assert is_public_ip("8.8.8.8") is True
    assert is_public_ip("2001:4860:4860::8888") is True
    assert is_public_ip("10.0.0.1") is False
    assert is_public_ip("not an ip") is False


def test_provider_must_implement_parse():
    with pytest.raises(TypeError):
        GeoProvider("https://geo.example/{ip}")
