"""
Tourbook Backend — Body Parser Middleware
==========================================

What:  Enforces the request body limit and rejects malformed JSON before any
       route code runs.
How:   For JSON and urlencoded requests the body is buffered (up to `limit`
       bytes) and replayed to the inner app:
         - Content-Length above the limit → 413 without reading the body
         - streamed body above the limit  → 413 as soon as it crosses the limit
         - JSON that does not decode      → 400 "Invalid JSON in request body"
       Requests with other content types are passed through untouched.

Default limit: 10 KB (10 240 bytes), from settings.body_limit.

Cookies need no middleware: Starlette parses the Cookie header lazily into
request.cookies.
"""

import json
import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from tourbook.errors import error_response
from tourbook.exceptions import PayloadTooLargeError, ValidationError
from tourbook.middleware.asgi_utils import (
    FORM_MEDIA_TYPE,
    BodyTooLarge,
    is_json_media_type,
    media_type,
    read_body,
    replay_receive,
)

logger = logging.getLogger(__name__)


class BodyParserMiddleware:
    def __init__(self, app: ASGIApp, limit: int = 10_240) -> None:
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        kind = media_type(scope)
        is_json = is_json_media_type(kind)
        if not is_json and kind != FORM_MEDIA_TYPE:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.limit:
            await self._reject_too_large(scope, receive, send, int(declared))
            return

        try:
            body = await read_body(receive, limit=self.limit)
        except BodyTooLarge:
            await self._reject_too_large(scope, receive, send, None)
            return

        if is_json and body.strip():
            try:
                json.loads(body)
            except ValueError as e:
                logger.warning("Rejected malformed JSON body on %s: %s", scope["path"], e)
                exc = ValidationError(message="Invalid JSON in request body", field="body")
                await error_response(exc)(scope, receive, send)
                return

        await self.app(scope, replay_receive(body, receive), send)

    async def _reject_too_large(self, scope: Scope, receive: Receive, send: Send, size: int | None) -> None:
        logger.warning(
            "Rejected %s body on %s: %s bytes exceeds limit of %d",
            media_type(scope),
            scope["path"],
            size if size is not None else "streamed",
            self.limit,
        )
        await error_response(PayloadTooLargeError(limit=self.limit))(scope, receive, send)
