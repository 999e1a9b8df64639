"""Best-effort IP geolocation.

Providers are tried in order, each with its own timeout, and the whole lookup
is bounded by a total timeout. Every failure path ends in an unknown location
rather than an error, so blocking rules fail open when geolocation is down.
"""

import asyncio
import ipaddress
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx

from .common.ttl_cache import TTLCache
from .errors import TransientLookupFailure
from .rules.geo import UNKNOWN_COUNTRY


@dataclass(frozen=True)
class Location:
    """Where a visitor appears to be. Unknown parts are "Inconnu"."""

    ip: str
    country: str = UNKNOWN_COUNTRY
    city: str = UNKNOWN_COUNTRY
    provider: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.country != UNKNOWN_COUNTRY

    @classmethod
    def unknown(cls, ip: Optional[str] = None) -> "Location":
        return cls(ip=ip or UNKNOWN_COUNTRY)


class GeoProvider(ABC):
    """One HTTP geolocation endpoint."""

    name = "provider"

    def __init__(self, url_template: str, timeout_seconds: float = 1.5):
        self.url_template = url_template
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def parse(self, ip: str, data: dict) -> Location:
        """Build a Location from the decoded JSON body.

        Raises:
            TransientLookupFailure: If the payload carries no usable country
        """
        pass

    async def lookup(self, client: httpx.AsyncClient, ip: str) -> Location:
        """Query the endpoint.

        Raises:
            TransientLookupFailure: On timeouts, HTTP errors or unusable payloads
        """
        url = self.url_template.format(ip=ip)
        try:
            response = await client.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
            if response.status_code != 200:
                raise TransientLookupFailure(f"{self.name}: HTTP {response.status_code}")
            data = response.json()
        except httpx.HTTPError as e:
            raise TransientLookupFailure(f"{self.name}: {e.__class__.__name__}: {e}") from e
        except ValueError as e:
            raise TransientLookupFailure(f"{self.name}: invalid JSON") from e

        if not isinstance(data, dict):
            raise TransientLookupFailure(f"{self.name}: unexpected payload")

        return self.parse(ip, data)


class IpapiProvider(GeoProvider):
    """ipapi.co: country name and city."""

    name = "ipapi"

    def parse(self, ip: str, data: dict) -> Location:
        if data.get("error"):
            raise TransientLookupFailure(f"{self.name}: {data.get('reason') or 'API error'}")
        return Location(
            ip=ip,
            country=data.get("country_name") or UNKNOWN_COUNTRY,
            city=data.get("city") or UNKNOWN_COUNTRY,
            provider=self.name,
        )


class CountryIsProvider(GeoProvider):
    """api.country.is: ISO country code only."""

    name = "country.is"

    def parse(self, ip: str, data: dict) -> Location:
        return Location(
            ip=ip,
            country=data.get("country") or UNKNOWN_COUNTRY,
            city=UNKNOWN_COUNTRY,
            provider=self.name,
        )


def is_public_ip(ip: Optional[str]) -> bool:
    """Whether an address is worth sending to a geolocation service."""
    try:
        address = ipaddress.ip_address((ip or "").strip())
    except ValueError:
        return False
    return address.is_global


class GeoLocator:
    """Resolves IPs to locations with fallback providers and a bounded total time."""

    def __init__(
        self,
        providers: Sequence[GeoProvider],
        client: Optional[httpx.AsyncClient] = None,
        total_timeout_seconds: float = 3.0,
        cache: Optional[TTLCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize locator.

        Args:
            providers: Providers in the order they are tried
            client: Shared HTTP client (created and owned here if omitted)
            total_timeout_seconds: Upper bound on one locate() call
            cache: Optional cache of locations per IP
            logger: Optional logger
        """
        self.providers: List[GeoProvider] = list(providers)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        self.total_timeout_seconds = total_timeout_seconds
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config, client: Optional[httpx.AsyncClient] = None, logger=None) -> "GeoLocator":
        providers = [
            IpapiProvider(config.geo_primary_url, config.geo_provider_timeout_seconds),
            CountryIsProvider(config.geo_fallback_url, config.geo_provider_timeout_seconds),
        ]
        return cls(
            providers=providers,
            client=client,
            total_timeout_seconds=config.geo_total_timeout_seconds,
            cache=TTLCache(ttl_seconds=config.geo_cache_ttl_seconds),
            logger=logger,
        )

    async def locate(self, ip: Optional[str]) -> Location:
        """Locate an IP. Never raises; returns an unknown location on any failure."""
        if not is_public_ip(ip):
            return Location.unknown(ip)

        if self.cache is not None:
            cached = self.cache.get(ip)
            if cached is not None:
                return cached

        try:
            location = await asyncio.wait_for(self._lookup(ip), self.total_timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning(f"Geolocation timed out for {ip} after {self.total_timeout_seconds}s")
            return Location.unknown(ip)

        if location.is_known and self.cache is not None:
            self.cache.set(ip, location)

        return location

    async def _lookup(self, ip: str) -> Location:
        for provider in self.providers:
            try:
                location = await provider.lookup(self.client, ip)
                self.logger.debug(f"Located {ip} via {provider.name}: {location.country}")
                return location
            except TransientLookupFailure as e:
                self.logger.warning(f"Geolocation provider failed for {ip}: {e}")

        return Location.unknown(ip)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
