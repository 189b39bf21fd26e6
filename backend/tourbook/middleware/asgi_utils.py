"""
Helpers shared by the ASGI-level middleware that read or rewrite the request
body (body parser, sanitizer, parameter pollution).

Those middlewares cannot use BaseHTTPMiddleware: a dispatch() function can
read the body, but it cannot hand a different body to the downstream app.
Instead they buffer the body from `receive` and give the inner app a
`receive` that replays the (possibly rewritten) bytes.
"""

from typing import List, Optional, Tuple

from starlette.datastructures import Headers
from starlette.types import Message, Receive, Scope

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


class BodyTooLarge(Exception):
    def __init__(self, limit: int):
        super().__init__(limit)
        self.limit = limit


def media_type(scope: Scope) -> str:
    """Lowercased media type without parameters ("application/json; charset=utf-8" → "application/json")."""
    content_type = Headers(scope=scope).get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower()


def is_json_media_type(value: str) -> bool:
    return value == JSON_MEDIA_TYPE or value.endswith("+json")


async def read_body(receive: Receive, limit: Optional[int] = None) -> bytes:
    """
    Drain the request body from `receive`.

    Raises BodyTooLarge as soon as more than `limit` bytes have arrived, without
    reading the rest of the stream.
    """
    chunks: List[bytes] = []
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        size += len(chunk)
        if limit is not None and size > limit:
            raise BodyTooLarge(limit)
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay_receive(body: bytes, receive: Receive) -> Receive:
    """A receive callable that yields `body` once, then defers to the original."""
    sent = False

    async def wrapped() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return wrapped


def with_body_length(scope: Scope, length: int) -> Scope:
    """Copy of `scope` whose Content-Length header matches a rewritten body."""
    headers: List[Tuple[bytes, bytes]] = [
        (name, value) for name, value in scope["headers"] if name.lower() != b"content-length"
    ]
    headers.append((b"content-length", str(length).encode("latin-1")))
    new_scope = dict(scope)
    new_scope["headers"] = headers
    return new_scope


def request_state(scope: Scope) -> dict:
    """The dict backing request.state for this scope."""
    return scope.setdefault("state", {})
