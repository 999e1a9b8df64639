"""Tests for API endpoints."""

import pytest

from tests.conftest import BROWSER_UA, FACEBOOK_UA, US_IP


@pytest.mark.asyncio
class TestAPIEndpoints:
    """Test API endpoints."""

    async def test_create_link(self, client, sample_urls):
        """Test POST /api/links."""
        response = await client.post("/api/links", json={"url": sample_urls[0]})

        assert response.status_code == 201
        data = response.json()
        assert data["original_url"] == sample_urls[0]
        assert data["short_url"] == f"http://testserver/{data['short_code']}"
        assert data["requires_password"] is False
        assert "password_hash" not in data
        assert "id" not in data

    async def test_create_direct_link(self, client, sample_urls):
        created = await client.post("/api/links", json={"url": sample_urls[0], "direct_link": True})
        code = created.json()["short_code"]

        response = await client.get(f"/{code}")

        assert created.json()["direct_link"] is True
        assert response.status_code == 307
        assert response.headers["location"] == sample_urls[0]

    async def test_create_with_custom_code(self, client, sample_urls):
        response = await client.post(
            "/api/links",
            json={"url": sample_urls[0], "custom_code": "test123"},
        )

        assert response.status_code == 201
        assert response.json()["custom_code"] == "test123"

    async def test_create_duplicate_custom_code(self, client, sample_urls):
        await client.post("/api/links", json={"url": sample_urls[0], "custom_code": "dupe1"})

        response = await client.post("/api/links", json={"url": sample_urls[1], "custom_code": "dupe1"})

        assert response.status_code == 409

    async def test_create_invalid_url(self, client):
        response = await client.post("/api/links", json={"url": "not-a-url"})

        assert response.status_code == 422

    async def test_create_private_url(self, client):
        response = await client.post("/api/links", json={"url": "http://127.0.0.1:9000/"})

        assert response.status_code == 400

    async def test_create_invalid_ip_rule(self, client, sample_urls):
        response = await client.post(
            "/api/links",
            json={"url": sample_urls[0], "blocked_ips": ["999.1.1.1"]},
        )

        assert response.status_code == 400
        assert "999.1.1.1" in response.json()["detail"]

    async def test_blank_custom_code_is_ignored(self, client, sample_urls):
        response = await client.post(
            "/api/links",
            json={"url": sample_urls[0], "custom_code": "  ", "password": ""},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["custom_code"] is None
        assert data["requires_password"] is False

    async def test_get_link_info_hides_password(self, client, sample_urls):
        created = await client.post(
            "/api/links",
            json={"url": sample_urls[0], "password": "s3cret", "blocked_countries": ["CN"]},
        )
        code = created.json()["short_code"]

        response = await client.get(f"/api/links/{code}")

        assert response.status_code == 200
        data = response.json()
        assert data["requires_password"] is True
        assert data["blocked_countries"] == ["CN"]
        assert "password_hash" not in data

    async def test_get_link_info_not_found(self, client):
        response = await client.get("/api/links/nonexistent")

        assert response.status_code == 404

    async def test_short_url_honors_forwarded_host(self, client, sample_urls):
        response = await client.post(
            "/api/links",
            json={"url": sample_urls[0]},
            headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "sho.rt"},
        )

        data = response.json()
        assert data["short_url"] == f"https://sho.rt/{data['short_code']}"

    async def test_list_clicks(self, client, service, sample_urls):
        created = await client.post("/api/links", json={"url": sample_urls[0]})
        code = created.json()["short_code"]

        await client.get(f"/{code}", headers={"X-Forwarded-For": US_IP})
        await service.recorder.drain()

        response = await client.get(f"/api/links/{code}/clicks")

        assert response.status_code == 200
        data = response.json()
        assert data["short_code"] == code
        assert data["count"] == 1
        click = data["clicks"][0]
        assert click["country"] == "United States"
        assert click["browser"] == "Chrome"
        assert click["referrer"] == "Direct"

    async def test_list_clicks_not_found(self, client):
        response = await client.get("/api/links/missing/clicks")

        assert response.status_code == 404

    async def test_delete_link(self, client, sample_urls):
        created = await client.post("/api/links", json={"url": sample_urls[0]})
        code = created.json()["short_code"]

        response = await client.delete(f"/api/links/{code}")
        assert response.status_code == 204

        response = await client.delete(f"/api/links/{code}")
        assert response.status_code == 404

        response = await client.get(f"/{code}")
        assert response.status_code == 404

    async def test_statistics(self, client, sample_urls):
        for url in sample_urls:
            await client.post("/api/links", json={"url": url})

        response = await client.get("/api/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_links"] == len(sample_urls)
        assert data["total_clicks"] == 0
        assert data["database"] == "memory"

    async def test_bot_check_browser(self, client):
        response = await client.get("/api/bot-check", headers={"User-Agent": BROWSER_UA})

        assert response.status_code == 200
        data = response.json()
        assert data["is_bot"] is False
        assert data["confidence"] == 0

    async def test_bot_check_social(self, client):
        response = await client.get("/api/bot-check", headers={"User-Agent": FACEBOOK_UA})

        data = response.json()
        assert data["is_bot"] is True
        assert data["bot_type"] == "social"
        assert data["confidence"] == 98
        assert data["suggested_diversion_url"] == "https://www.facebook.com"

    async def test_health_check(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"


@pytest.mark.asyncio
class TestAPIKey:
    """Management endpoints with a configured API key."""

    @pytest.fixture
    def config(self, config):
        config.api_key = "k3y"
        return config

    async def test_missing_key_rejected(self, client, sample_urls):
        response = await client.post("/api/links", json={"url": sample_urls[0]})

        assert response.status_code == 401

    async def test_wrong_key_rejected(self, client):
        response = await client.get("/api/stats", headers={"X-API-Key": "nope"})

        assert response.status_code == 401

    async def test_correct_key_accepted(self, client, sample_urls):
        response = await client.post(
            "/api/links",
            json={"url": sample_urls[0]},
            headers={"X-API-Key": "k3y"},
        )

        assert response.status_code == 201

    async def test_open_endpoints_need_no_key(self, client):
        assert (await client.get("/api/health")).status_code == 200
        assert (await client.get("/api/bot-check")).status_code == 200
