"""
Tourbook Backend — Input Sanitization Middleware
=================================================

What:  Cleans body and query data before it reaches route handlers.
How:   Two passes over every JSON body, urlencoded body and query string:

    1. Operator-key stripping (NoSQL injection)
       Keys that start with "$" or contain "." are removed, at any depth:
           {"email": {"$gt": ""}, "name": "x"}  →  {"email": {}, "name": "x"}
       Query keys are checked per bracket segment, so price[$gt]=0 and
       $where=1 are dropped while price[gte]=100 is kept.

    2. HTML escaping (XSS)
       Every "<" in string keys and values becomes "&lt;":
           "<script>alert(1)</script>"  →  "&lt;script>alert(1)&lt;/script>"

A body that is left unchanged keeps its original bytes. A rewritten body is
re-encoded with a matching Content-Length. Malformed JSON is passed through
as-is; rejecting it is the body parser's job.
"""

import json
import logging
import re
from typing import Any, Iterable, List, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

from tourbook.middleware.asgi_utils import (
    FORM_MEDIA_TYPE,
    is_json_media_type,
    media_type,
    read_body,
    replay_receive,
    with_body_length,
)

logger = logging.getLogger(__name__)

_KEY_SEGMENT = re.compile(r"[^\[\]]+")

QueryItems = List[Tuple[str, str]]


# ══════════════════════════════════════════════════════════════════════════
# Pure sanitizers
# ══════════════════════════════════════════════════════════════════════════

def is_operator_key(key: str) -> bool:
    return key.startswith("$") or "." in key


def is_operator_query_key(key: str) -> bool:
    """True when any bracket segment of a query key is an operator key."""
    return any(is_operator_key(segment) for segment in _KEY_SEGMENT.findall(key))


def strip_operator_keys(value: Any) -> Any:
    """Recursively drop dict keys starting with "$" or containing "."."""
    if isinstance(value, dict):
        return {
            key: strip_operator_keys(item)
            for key, item in value.items()
            if not is_operator_key(key)
        }
    if isinstance(value, list):
        return [strip_operator_keys(item) for item in value]
    return value


def escape_html(text: str) -> str:
    return text.replace("<", "&lt;")


def escape_html_data(value: Any) -> Any:
    """Recursively escape "<" in every string key and value."""
    if isinstance(value, str):
        return escape_html(value)
    if isinstance(value, dict):
        return {escape_html(key): escape_html_data(item) for key, item in value.items()}
    if isinstance(value, list):
        return [escape_html_data(item) for item in value]
    return value


def sanitize_data(value: Any) -> Any:
    return escape_html_data(strip_operator_keys(value))


def sanitize_query_items(items: Iterable[Tuple[str, str]]) -> QueryItems:
    return [
        (escape_html(key), escape_html(value))
        for key, value in items
        if not is_operator_query_key(key)
    ]


# ══════════════════════════════════════════════════════════════════════════
# Middleware
# ══════════════════════════════════════════════════════════════════════════

class SanitizeMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = self._sanitize_query(scope)

        kind = media_type(scope)
        if not is_json_media_type(kind) and kind != FORM_MEDIA_TYPE:
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        cleaned = self._sanitize_json(body) if kind != FORM_MEDIA_TYPE else self._sanitize_form(body)
        if cleaned is not None and cleaned != body:
            logger.debug("Sanitized request body on %s", scope["path"])
            scope = with_body_length(scope, len(cleaned))
            body = cleaned

        await self.app(scope, replay_receive(body, receive), send)

    def _sanitize_query(self, scope: Scope) -> Scope:
        raw = scope.get("query_string", b"")
        if not raw:
            return scope
        items = parse_qsl(raw.decode("latin-1"), keep_blank_values=True)
        cleaned = sanitize_query_items(items)
        if cleaned == items:
            return scope
        logger.debug("Sanitized query string on %s", scope["path"])
        new_scope = dict(scope)
        new_scope["query_string"] = urlencode(cleaned).encode("latin-1")
        return new_scope

    @staticmethod
    def _sanitize_json(body: bytes) -> bytes | None:
        if not body.strip():
            return None
        try:
            data = json.loads(body)
        except ValueError:
            return None
        cleaned = sanitize_data(data)
        if cleaned == data:
            return None
        return json.dumps(cleaned, ensure_ascii=False).encode("utf-8")

    @staticmethod
    def _sanitize_form(body: bytes) -> bytes | None:
        if not body:
            return None
        items = parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        cleaned = sanitize_query_items(items)
        if cleaned == items:
            return None
        return urlencode(cleaned).encode("ascii")
