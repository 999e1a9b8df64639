"""Pytest configuration and fixtures."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from config import Config
from linkgate.common.logging_config import setup_logging
from linkgate.database.memory import InMemoryLinkStore
from linkgate.database.models import Link
from linkgate.geolocation import GeoLocator, Location
from linkgate.passwords import hash_password
from linkgate.service import LinkGateService
from web_app import create_app


BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
FACEBOOK_UA = "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)"
BORDERLINE_UA = "python-requests/2.31.0"

# Public addresses known to the mocked geolocation providers
US_IP = "8.8.8.8"
RU_IP = "77.88.8.8"
AU_IP = "1.1.1.1"

GEO_DATA = {
    US_IP: {"country_name": "United States", "city": "Mountain View"},
    RU_IP: {"country_name": "Russia", "city": "Moscow"},
}
FALLBACK_DATA = {
    AU_IP: {"country": "AU"},
}

TEST_PASSWORD = "correct horse"


def geo_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for ipapi.co and api.country.is."""
    if request.url.host == "ipapi.co":
        ip = request.url.path.strip("/").split("/")[0]
        if ip in GEO_DATA:
            return httpx.Response(200, json={"ip": ip, **GEO_DATA[ip]})
        return httpx.Response(200, json={"ip": ip, "error": True, "reason": "RateLimited"})

    if request.url.host == "api.country.is":
        ip = request.url.path.strip("/")
        if ip in FALLBACK_DATA:
            return httpx.Response(200, json={"ip": ip, **FALLBACK_DATA[ip]})
        return httpx.Response(404, json={"error": "Not found"})

    return httpx.Response(404)


class StaticLocator:
    """Locator double returning fixed countries and counting lookups."""

    def __init__(self, countries: Optional[dict] = None):
        self.countries = countries or {}
        self.calls: List[str] = []

    async def locate(self, ip):
        self.calls.append(ip)
        if ip in self.countries:
            return Location(ip=ip, country=self.countries[ip], city="Somewhere", provider="static")
        return Location.unknown(ip)

    async def close(self):
        pass


def make_link(
    short_code: str = "abc123",
    original_url: str = "https://example.com/landing",
    **kwargs,
) -> Link:
    """Build a link record with sensible defaults."""
    kwargs.setdefault("id", str(uuid.uuid4()))
    kwargs.setdefault("created_at", datetime.now(timezone.utc) - timedelta(days=1))
    return Link(short_code=short_code, original_url=original_url, **kwargs)


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt hash of TEST_PASSWORD (low cost factor for speed)."""
    return hash_password(TEST_PASSWORD, rounds=4)


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        database_backend="memory",
        base_url="http://testserver",
        secret_key="test-secret",
        geo_cache_ttl_seconds=60,
        trust_forwarded_headers=True,
    )


@pytest.fixture
def store(logger) -> InMemoryLinkStore:
    return InMemoryLinkStore(logger=logger)


@pytest.fixture
async def geo_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(geo_handler)) as client:
        yield client


@pytest.fixture
def locator(config, geo_client, logger) -> GeoLocator:
    return GeoLocator.from_config(config, client=geo_client, logger=logger)


@pytest.fixture
async def service(config, store, locator, logger) -> AsyncGenerator[LinkGateService, None]:
    service = LinkGateService.from_config(
        config,
        store=store,
        locator=locator,
        logger=logger,
        password_rounds=4,
    )
    yield service
    await service.recorder.drain(timeout=5)


@pytest.fixture
def app(service, config):
    return create_app(service=service, config=config)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
        headers={"User-Agent": BROWSER_UA},
    ) as ac:
        yield ac


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
