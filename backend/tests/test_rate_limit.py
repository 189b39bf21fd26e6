"""
Tourbook Backend — Rate Limiter Tests
======================================

What we test:
    ✅ The 101st /api request from one IP within an hour → 429
    ✅ Clients behind a proxy are counted by X-Forwarded-For
    ✅ Paths outside /api are never limited
    ✅ The window slides: old requests expire (fake clock)
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from tourbook.middleware.rate_limit import RateLimitMiddleware

LIMIT_MESSAGE = "Too many requests from this IP, please try again in an hour!"


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_limited_app(clock: FakeClock, max_requests: int = 2, window_seconds: int = 60) -> Starlette:
    async def ping(request):
        return PlainTextResponse("pong")

    return Starlette(
        routes=[Route("/api/ping", ping), Route("/ping", ping)],
        middleware=[
            Middleware(
                RateLimitMiddleware,
                max_requests=max_requests,
                window_seconds=window_seconds,
                clock=clock,
            )
        ],
    )


class TestRateLimitPipeline:
    @pytest.mark.asyncio
    async def test_101st_request_is_rejected(self, make_client):
        async with make_client() as client:
            for i in range(100):
                response = await client.get("/api/v1/unknown")
                assert response.status_code == 404
            assert response.headers["x-ratelimit-remaining"] == "0"

            response = await client.get("/api/v1/unknown")

        assert response.status_code == 429
        body = response.json()
        assert body["status"] == "fail"
        assert body["message"] == LIMIT_MESSAGE
        assert int(response.headers["retry-after"]) > 0
        assert response.headers["x-ratelimit-limit"] == "100"

    @pytest.mark.asyncio
    async def test_forwarded_clients_are_counted_separately(self, make_client):
        async with make_client(rate_limit_requests=3) as client:
            for _ in range(3):
                await client.get("/api/v1/unknown", headers={"X-Forwarded-For": "203.0.113.7"})

            blocked = await client.get("/api/v1/unknown", headers={"X-Forwarded-For": "203.0.113.7"})
            other = await client.get("/api/v1/unknown", headers={"X-Forwarded-For": "198.51.100.20"})

        assert blocked.status_code == 429
        assert other.status_code == 404
        assert other.headers["x-ratelimit-remaining"] == "2"

    @pytest.mark.asyncio
    async def test_paths_outside_api_are_not_limited(self, make_client):
        async with make_client(rate_limit_requests=2) as client:
            responses = [await client.get("/not-api") for _ in range(5)]

        assert [r.status_code for r in responses] == [404] * 5
        assert "x-ratelimit-limit" not in responses[-1].headers

    @pytest.mark.asyncio
    async def test_prefix_does_not_match_lookalike_paths(self, make_client):
        async with make_client(rate_limit_requests=1) as client:
            await client.get("/apiary")
            response = await client.get("/apiary")

        assert response.status_code == 404


class TestSlidingWindow:
    @pytest.mark.asyncio
    async def test_requests_expire_after_window(self):
        clock = FakeClock()
        transport = ASGITransport(app=build_limited_app(clock))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/api/ping")).status_code == 200
            clock.now = 10
            assert (await client.get("/api/ping")).status_code == 200

            clock.now = 20
            blocked = await client.get("/api/ping")
            assert blocked.status_code == 429
            # Oldest request (t=0) leaves the window at t=60
            assert blocked.headers["retry-after"] == "41"

            clock.now = 61
            assert (await client.get("/api/ping")).status_code == 200

    @pytest.mark.asyncio
    async def test_default_message_mentions_wait_time(self):
        clock = FakeClock()
        transport = ASGITransport(app=build_limited_app(clock, max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/api/ping")
            response = await client.get("/api/ping")

        assert response.status_code == 429
        assert "Please wait 61 seconds" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_unlimited_path_passes_through(self):
        clock = FakeClock()
        transport = ASGITransport(app=build_limited_app(clock, max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [(await client.get("/ping")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]

    def test_applies_to(self):
        limiter = RateLimitMiddleware(app=None, path_prefix="/api/")
        assert limiter.applies_to("/api")
        assert limiter.applies_to("/api/v1/tours")
        assert not limiter.applies_to("/apiary")
        assert not limiter.applies_to("/health")
