# Middleware package init
"""
Tourbook Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request before routing.

Middleware Chain (outermost first, order matters!):
    Request
      → [Proxy Headers]       client IP from X-Forwarded-For (uvicorn)
      → [Request ID]          correlation ID in ContextVar + response header
      → [CORS]                answers preflight OPTIONS for any path
      → [Static Files]        serves files from the public directory
      → [Security Headers]    CSP and related headers
      → [Access Log]          development only
      → [Rate Limit]          /api only, 100 requests per IP per hour
      → [Body Parser]         10 KB limit, malformed JSON → 400
      → [Sanitize]            operator keys stripped, "<" escaped
      → [Parameter Pollution] repeated params collapsed except whitelist
      → [GZip]                response compression
      → [Unhandled Error]     uncaught exceptions → 500 payload
      → Route Handler / catch-all 404

Request ID, static files, security headers, access log, rate limit and
unhandled error are BaseHTTPMiddleware subclasses. Body parser, sanitize and
parameter pollution are plain ASGI callables because they replace the
request body.
"""
