"""
Tourbook Backend — Static Asset Middleware
===========================================

What:  Serves files from the public directory at the site root
       (public/css/style.css → GET /css/style.css).
How:   Wraps Starlette's StaticFiles. GET/HEAD requests whose path resolves to a
       regular file inside the directory are answered directly; everything
       else (misses, directories, other methods) falls through to the rest of
       the chain.

StaticFiles.lookup_path resolves symlinks and refuses anything outside the
directory, so "../" traversal falls through as a miss.

A missing public directory is not an error: every lookup simply misses.
"""

import logging
import os

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class StaticFilesMiddleware(BaseHTTPMiddleware):
    """Serve existing files from `directory`, pass every other request on."""

    def __init__(self, app: ASGIApp, directory: str):
        super().__init__(app)
        self.directory = directory
        self.static = StaticFiles(directory=directory, check_dir=False)
        if not os.path.isdir(directory):
            logger.warning("Public directory %s does not exist; static assets disabled", directory)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method not in ("GET", "HEAD"):
            return await call_next(request)

        route_path = request.url.path.strip("/")
        if not route_path:
            return await call_next(request)

        path = os.path.normpath(os.path.join(*route_path.split("/")))
        try:
            return await self.static.get_response(path, request.scope)
        except HTTPException:
            return await call_next(request)
