"""
Tourbook Backend — Security Headers Middleware
===============================================

What:  Adds a fixed set of security response headers to every response that
       passes through it, including the Content-Security-Policy built from
       the configured directives.
How:   Headers are computed once at construction; dispatch copies them onto
       the response unless the route already set the same header.

Header set:
    Content-Security-Policy            from settings.csp_directives
    Cross-Origin-Opener-Policy         same-origin
    Cross-Origin-Resource-Policy       same-origin
    Origin-Agent-Cluster               ?1
    Referrer-Policy                    no-referrer
    Strict-Transport-Security          max-age=<hsts_max_age>; includeSubDomains
    X-Content-Type-Options             nosniff
    X-DNS-Prefetch-Control             off
    X-Download-Options                 noopen
    X-Frame-Options                    SAMEORIGIN
    X-Permitted-Cross-Domain-Policies  none
    X-XSS-Protection                   0   (legacy auditor disabled; CSP covers it)
"""

from typing import Dict, List, Mapping

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


def build_content_security_policy(directives: Mapping[str, List[str]]) -> str:
    """
    Serialize CSP directives in declaration order.

    A directive with no sources (upgrade-insecure-requests) is emitted bare:

        {"default-src": ["'self'"], "upgrade-insecure-requests": []}
        → "default-src 'self';upgrade-insecure-requests"
    """
    parts = []
    for name, sources in directives.items():
        if sources:
            parts.append(f"{name} {' '.join(sources)}")
        else:
            parts.append(name)
    return ";".join(parts)


def build_security_headers(csp_directives: Mapping[str, List[str]], hsts_max_age: int) -> Dict[str, str]:
    headers = {
        "Content-Security-Policy": build_content_security_policy(csp_directives),
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Origin-Agent-Cluster": "?1",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": f"max-age={hsts_max_age}; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Download-Options": "noopen",
        "X-Frame-Options": "SAMEORIGIN",
        "X-Permitted-Cross-Domain-Policies": "none",
        "X-XSS-Protection": "0",
    }
    if not csp_directives:
        del headers["Content-Security-Policy"]
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        csp_directives: Mapping[str, List[str]],
        hsts_max_age: int = 15_552_000,
    ):
        super().__init__(app)
        self.headers = build_security_headers(csp_directives, hsts_max_age)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
