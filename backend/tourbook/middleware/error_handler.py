"""
Tourbook Backend — Unhandled Error Middleware
==============================================

What:  Renders exceptions that no exception handler claimed as the standard
       500 error payload.
How:   Innermost middleware, directly around routing. FastAPI runs the
       catch-all Exception handler in ServerErrorMiddleware, outside every
       user middleware, so a 500 rendered there would miss the request ID,
       CORS and security headers. Catching here keeps the response inside
       the chain.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tourbook.errors import unexpected_error_response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return unexpected_error_response(exc, debug=self.debug)
