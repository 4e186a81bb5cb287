"""
Evanescent Backend: Application Package Initializer
=====================================================

What: Marks the `evanescent` directory as a Python package.
Why:  Enables module imports like `from evanescent.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered shape for both of its concerns,
    sessions (signup, login, token refresh) and bottles (writeups that can be
    liked and claimed):

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, cookies, status codes
    ├─────────────────────────────────────┤
    │   Dependencies (Authentication)     │  ← Bearer token → user id
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Session + claim state machines
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Explicit store handle, async sessions
    └─────────────────────────────────────┘

    All shared state lives in the database. Services never hold per-request
    state, so the same instances serve every concurrent request.
"""

__version__ = "1.0.0"
