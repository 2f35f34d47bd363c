import json
import re
from unittest.mock import AsyncMock

import pytest
from fastapi import status

from lnkz.core.exceptions import StoreError
from lnkz.core.runtime import get_link_store
from lnkz.db.interface import LinkStore
from lnkz.main import app

EXAMPLE_URL = "https://example.com/a/b"
SHORT_URL_PATTERN = re.compile(r"^https://lnkz\.my/([a-z0-9]{6})$")


async def shorten(client, payload, headers=None):
    return await client.post("/shorten", json=payload, headers=headers)


def slug_of(response) -> str:
    return SHORT_URL_PATTERN.match(response.json()["shortUrl"]).group(1)


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}


class TestShortenEndpoint:

    @pytest.mark.asyncio
    async def test_shorten_then_redirect_counts_click(self, client, store):
        response = await shorten(client, {"url": EXAMPLE_URL})

        assert response.status_code == status.HTTP_200_OK
        assert set(response.json()) == {"shortUrl"}
        slug = slug_of(response)

        redirect = await client.get(f"/{slug}")

        assert redirect.status_code == status.HTTP_302_FOUND
        assert redirect.headers["location"] == EXAMPLE_URL
        assert (await store.find_by_slug(slug)).clicks == 1

    @pytest.mark.asyncio
    async def test_success_carries_security_headers(self, client):
        response = await shorten(client, {"url": EXAMPLE_URL})

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"

    @pytest.mark.asyncio
    async def test_custom_code(self, client):
        response = await shorten(client, {"url": EXAMPLE_URL, "shortCode": "mycode"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"shortUrl": "https://lnkz.my/mycode"}

    @pytest.mark.asyncio
    async def test_custom_code_taken(self, client, store):
        await shorten(client, {"url": EXAMPLE_URL, "shortCode": "mycode"})

        response = await shorten(client, {"url": "https://other.example.com", "shortCode": "mycode"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert (await store.find_by_slug("mycode")).url == EXAMPLE_URL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"url": "not-a-url"},
            {"url": "ftp://example.com"},
            {"url": "https://lnkz.my/abc123"},
            {"url": "javascript:alert(1)"},
            {"url": EXAMPLE_URL, "shortCode": "UPPER1"},
            {"url": EXAMPLE_URL, "shortCode": "abc"},
            {"url": 42},
            {"shortCode": "abc123"},
            ["https://example.com"],
        ],
    )
    async def test_bad_input_is_400(self, client, payload):
        response = await shorten(client, payload)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, client):
        response = await client.post(
            "/shorten", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_wrong_content_type_is_415(self, client):
        response = await client.post(
            "/shorten", content=json.dumps({"url": EXAMPLE_URL}), headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    @pytest.mark.asyncio
    async def test_content_type_with_charset_is_accepted(self, client):
        response = await client.post(
            "/shorten",
            content=json.dumps({"url": EXAMPLE_URL}),
            headers={"Content-Type": "application/json; charset=utf-8"},
        )
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_oversized_body_is_413(self, client):
        response = await shorten(client, {"url": EXAMPLE_URL, "padding": "x" * 5000})
        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    @pytest.mark.asyncio
    async def test_sixth_request_is_rate_limited(self, client, clock):
        responses = []
        for _ in range(6):
            responses.append(await shorten(client, {"url": EXAMPLE_URL}))
            clock.advance(1.5)

        assert [r.status_code for r in responses[:5]] == [status.HTTP_200_OK] * 5
        assert responses[5].status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert responses[5].headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_rate_limit_is_per_forwarded_client(self, client):
        for _ in range(5):
            await shorten(client, {"url": EXAMPLE_URL}, headers={"X-Forwarded-For": "203.0.113.1"})

        limited = await shorten(client, {"url": EXAMPLE_URL}, headers={"X-Forwarded-For": "203.0.113.1"})
        other = await shorten(client, {"url": EXAMPLE_URL}, headers={"X-Forwarded-For": "203.0.113.2, 10.0.0.1"})

        assert limited.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert other.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_quota_exceeded_is_403(self, client):
        store = AsyncMock(spec=LinkStore)
        store.count_by_ip.return_value = 100
        app.dependency_overrides[get_link_store] = lambda: store

        response = await shorten(client, {"url": EXAMPLE_URL})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_store_failure_is_generic_500(self, client):
        store = AsyncMock(spec=LinkStore)
        store.count_by_ip.return_value = 0
        store.insert.side_effect = StoreError("disk I/O error at /var/lib/db")
        app.dependency_overrides[get_link_store] = lambda: store

        response = await shorten(client, {"url": EXAMPLE_URL})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"detail": "Failed to shorten URL"}


class TestRedirectEndpoint:

    @pytest.mark.asyncio
    async def test_unknown_slug_is_404(self, client):
        response = await client.get("/zzzzzz")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_malformed_slug_is_404(self, client):
        response = await client.get("/NOT-A-SLUG")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_each_redirect_counts(self, client, store):
        slug = slug_of(await shorten(client, {"url": EXAMPLE_URL}))

        for _ in range(3):
            await client.get(f"/{slug}")

        assert (await store.find_by_slug(slug)).clicks == 3

    @pytest.mark.asyncio
    async def test_increment_failure_does_not_fail_redirect(self, client, store):
        slug = slug_of(await shorten(client, {"url": EXAMPLE_URL}))
        link = await store.find_by_slug(slug)

        failing_store = AsyncMock(spec=LinkStore)
        failing_store.find_by_slug.return_value = link
        failing_store.increment_clicks.side_effect = StoreError("down")
        failing_store.record_visit.side_effect = StoreError("down")
        app.dependency_overrides[get_link_store] = lambda: failing_store

        response = await client.get(f"/{slug}")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == EXAMPLE_URL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target, location",
        [
            ("https://example.com/search?q=a|b&x={y}", "https://example.com/search?q=a|b&x={y}"),
            ("https://example.com/a%20b?c=%7E", "https://example.com/a%20b?c=%7E"),
            ("https://example.com/caf\u00e9", "https://example.com/caf%C3%A9"),
        ],
    )
    async def test_location_is_the_stored_url(self, client, target, location):
        slug = slug_of(await shorten(client, {"url": target}))

        response = await client.get(f"/{slug}")

        assert response.headers["location"] == location


class TestStatsEndpoint:

    @pytest.mark.asyncio
    async def test_stats(self, client):
        slug = slug_of(await shorten(client, {"url": EXAMPLE_URL}))
        await client.get(f"/{slug}")

        response = await client.get(f"/stats/{slug}")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["slug"] == slug
        assert body["url"] == EXAMPLE_URL
        assert body["clicks"] == 1
        assert "createdAt" in body

    @pytest.mark.asyncio
    async def test_stats_miss(self, client):
        response = await client.get("/stats/zzzzzz")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_stats_route_is_throttled_per_client(self, client):
        codes = [(await client.get("/stats/zzzzzz")).status_code for _ in range(31)]

        assert codes[:30] == [status.HTTP_404_NOT_FOUND] * 30
        assert codes[30] == status.HTTP_429_TOO_MANY_REQUESTS

        other = await client.get("/stats/zzzzzz", headers={"X-Forwarded-For": "198.51.100.9"})
        assert other.status_code == status.HTTP_404_NOT_FOUND
