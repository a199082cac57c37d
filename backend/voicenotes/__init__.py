"""
VoiceNotes Backend: Application Package
=======================================

Layered layout:

    ┌─────────────────────────────────────┐
    │        Routes (HTTP surface)        │  ← status codes, auth dependencies
    ├─────────────────────────────────────┤
    │     Services (notes, auth, AI)      │  ← business rules, typed errors
    ├─────────────────────────────────────┤
    │  Repositories (persistence adapter) │  ← owner-scoped queries, search
    ├─────────────────────────────────────┤
    │   Models & Schemas / Database       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

Every layer below the routes can be exercised without HTTP.
"""

__version__ = "1.0.0"
