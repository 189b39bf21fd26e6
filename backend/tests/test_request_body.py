"""
Tourbook Backend — Body Parser, Sanitizer and Parameter Pollution Tests
========================================================================

What:  The three middlewares that read or rewrite request input.
How:   Pure helper functions are tested directly; the middlewares are mounted
       in front of a small echo endpoint that returns what the route saw.

What we test:
    ✅ Bodies over 10 KB → 413; malformed JSON → 400
    ✅ "$" / dotted keys stripped from bodies and query strings
    ✅ "<" escaped in keys and values
    ✅ Repeated query params collapse to the last value unless whitelisted
"""

import json
from urllib.parse import parse_qsl

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from tourbook.middleware.body_parser import BodyParserMiddleware
from tourbook.middleware.parameter_pollution import ParameterPollutionMiddleware, collapse_polluted
from tourbook.middleware.sanitize import (
    SanitizeMiddleware,
    escape_html_data,
    is_operator_query_key,
    sanitize_data,
    sanitize_query_items,
    strip_operator_keys,
)

WHITELIST = ["duration", "ratingsQuantity", "ratingsAverage", "maxGroupSize", "difficulty", "price"]


async def echo(request: Request) -> JSONResponse:
    raw = await request.body()
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json") and raw:
        body = json.loads(raw)
    elif content_type.startswith("application/x-www-form-urlencoded"):
        body = [list(item) for item in parse_qsl(raw.decode("utf-8"), keep_blank_values=True)]
    else:
        body = raw.decode("utf-8")
    return JSONResponse({
        "query": [list(item) for item in request.query_params.multi_items()],
        "body": body,
        "content_length": request.headers.get("content-length"),
        "query_polluted": getattr(request.state, "query_polluted", None),
        "body_polluted": getattr(request.state, "body_polluted", None),
    })


def build_echo_app(limit: int = 10_240) -> Starlette:
    return Starlette(
        routes=[Route("/echo", echo, methods=["GET", "POST"])],
        middleware=[
            Middleware(BodyParserMiddleware, limit=limit),
            Middleware(SanitizeMiddleware),
            Middleware(ParameterPollutionMiddleware, whitelist=WHITELIST),
        ],
    )


@pytest.fixture
def echo_client():
    transport = ASGITransport(app=build_echo_app())
    return AsyncClient(transport=transport, base_url="http://test")


# ══════════════════════════════════════════════════════════════════════════
# Body parser
# ══════════════════════════════════════════════════════════════════════════

class TestBodyParser:
    @pytest.mark.asyncio
    async def test_body_over_limit_is_rejected(self, echo_client):
        async with echo_client as client:
            response = await client.post("/echo", json={"summary": "x" * 11_000})

        assert response.status_code == 413
        body = response.json()
        assert body["error"] == "payload_too_large"
        assert body["details"]["limit"] == 10_240

    @pytest.mark.asyncio
    async def test_body_at_limit_is_accepted(self):
        payload = json.dumps({"a": "x" * 100}).encode()
        app = build_echo_app(limit=len(payload))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/echo", content=payload, headers={"Content-Type": "application/json"}
            )

        assert response.status_code == 200
        assert response.json()["body"] == {"a": "x" * 100}

    @pytest.mark.asyncio
    async def test_urlencoded_body_over_limit_is_rejected(self, echo_client):
        async with echo_client as client:
            response = await client.post("/echo", data={"review": "y" * 11_000})

        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_malformed_json_is_rejected(self, echo_client):
        async with echo_client as client:
            response = await client.post(
                "/echo", content=b'{"name": "The Sea', headers={"Content-Type": "application/json"}
            )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid JSON in request body"
        assert body["details"]["field"] == "body"

    @pytest.mark.asyncio
    async def test_other_content_types_pass_through(self, echo_client):
        async with echo_client as client:
            response = await client.post(
                "/echo", content=b"z" * 20_000, headers={"Content-Type": "text/plain"}
            )

        assert response.status_code == 200
        assert len(response.json()["body"]) == 20_000

    @pytest.mark.asyncio
    async def test_full_app_rejects_large_tour(self, make_client, tour_payload):
        async with make_client() as client:
            response = await client.post(
                "/api/v1/tours", json={**tour_payload, "description": "d" * 12_000}
            )

        assert response.status_code == 413


# ══════════════════════════════════════════════════════════════════════════
# Sanitizer
# ══════════════════════════════════════════════════════════════════════════

class TestSanitizeHelpers:
    def test_strip_operator_keys_nested(self):
        data = {"email": {"$gt": ""}, "name": "x", "a.b": 1, "list": [{"$where": "1"}, 2]}
        assert strip_operator_keys(data) == {"email": {}, "name": "x", "list": [{}, 2]}

    def test_escape_html_keys_and_values(self):
        data = {"<b>": "<script>alert(1)</script>", "n": 5}
        assert escape_html_data(data) == {"&lt;b>": "&lt;script>alert(1)&lt;/script>", "n": 5}

    def test_sanitize_data_leaves_clean_data_alone(self):
        data = {"name": "The Forest Hiker", "price": 397, "images": ["a.jpg"]}
        assert sanitize_data(data) == data

    def test_operator_query_keys(self):
        assert is_operator_query_key("$where")
        assert is_operator_query_key("price[$gt]")
        assert is_operator_query_key("user.role")
        assert not is_operator_query_key("price[gte]")

    def test_sanitize_query_items(self):
        items = [("price[$gt]", "0"), ("name", "<i>"), ("duration", "5")]
        assert sanitize_query_items(items) == [("name", "&lt;i>"), ("duration", "5")]


class TestSanitizeMiddleware:
    @pytest.mark.asyncio
    async def test_json_body_is_sanitized(self, echo_client):
        async with echo_client as client:
            response = await client.post(
                "/echo", json={"email": {"$gt": ""}, "name": "<script>x</script>"}
            )

        body = response.json()
        assert body["body"] == {"email": {}, "name": "&lt;script>x&lt;/script>"}
        assert int(body["content_length"]) == len(json.dumps(body["body"], ensure_ascii=False).encode())

    @pytest.mark.asyncio
    async def test_query_operators_removed(self, echo_client):
        async with echo_client as client:
            response = await client.get("/echo", params={"price[$gt]": "0", "price[gte]": "100"})

        assert response.json()["query"] == [["price[gte]", "100"]]

    @pytest.mark.asyncio
    async def test_form_body_is_sanitized(self, echo_client):
        async with echo_client as client:
            response = await client.post("/echo", data={"$where": "1", "review": "<b>nice</b>"})

        assert response.json()["body"] == [["review", "&lt;b>nice&lt;/b>"]]


# ══════════════════════════════════════════════════════════════════════════
# Parameter pollution
# ══════════════════════════════════════════════════════════════════════════

class TestParameterPollution:
    def test_collapse_keeps_last_value(self):
        cleaned, polluted = collapse_polluted(
            [("sort", "price"), ("duration", "5"), ("sort", "-price"), ("duration", "9")],
            ["duration"],
        )
        assert cleaned == [("sort", "-price"), ("duration", "5"), ("duration", "9")]
        assert polluted == {"sort": ["price", "-price"]}

    def test_whitelist_matches_bracketed_keys(self):
        cleaned, polluted = collapse_polluted(
            [("price[gte]", "100"), ("price[gte]", "200")], ["price"]
        )
        assert cleaned == [("price[gte]", "100"), ("price[gte]", "200")]
        assert polluted == {}

    @pytest.mark.asyncio
    async def test_query_is_collapsed_before_routing(self, echo_client):
        async with echo_client as client:
            response = await client.get(
                "/echo?sort=duration&sort=price&duration=5&duration=9&fields=name"
            )

        body = response.json()
        assert body["query"] == [["sort", "price"], ["duration", "5"], ["duration", "9"], ["fields", "name"]]
        assert body["query_polluted"] == {"sort": ["duration", "price"]}

    @pytest.mark.asyncio
    async def test_form_body_is_collapsed(self, echo_client):
        async with echo_client as client:
            response = await client.post(
                "/echo",
                content=b"role=user&role=admin&difficulty=easy&difficulty=medium",
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

        body = response.json()
        assert body["body"] == [["role", "admin"], ["difficulty", "easy"], ["difficulty", "medium"]]
        assert body["body_polluted"] == {"role": ["user", "admin"]}
