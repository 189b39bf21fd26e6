# Schemas package init
"""
Tourbook Backend — API Schemas
===============================

Pydantic models for request validation and response serialization, one
module per resource plus shared models in common.py. Kept separate from the
SQLAlchemy models so the API contract (camelCase, hidden fields such as
User.active) can differ from the table layout.
"""
