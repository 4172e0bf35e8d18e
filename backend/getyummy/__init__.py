"""
Get Yummy Backend - Application Package
=======================================

What: Recipe-sharing API: accounts, recipes, favorites, image upload and
      cookie/bearer JWT authentication.
Who:  Imported by uvicorn (`getyummy.main:app`), Alembic, the CLI and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes + auth dependencies (API)  │  ← HTTP concerns, cookie handling
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth flow, reconciliation, uploads
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
