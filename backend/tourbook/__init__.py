"""
Tourbook Backend — Application Package
=======================================

REST API and server-rendered pages for a tour-booking site.

Layers:

    ┌─────────────────────────────────────┐
    │   Middleware (security pipeline)    │  ← CORS, CSP, rate limit, sanitize
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← CRUD, query features, ratings
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
