"""
Merit Badge Counselor Backend — Application Package Initializer
================================================================

What: Marks the `counselor` directory as a Python package.
Why:  Enables module imports like `from counselor.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, form parsing
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Upload gate, writer, reader
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes validate the submitted form, services own the transaction and the
    staged files, models describe the four tables.
"""

__version__ = "1.0.0"
