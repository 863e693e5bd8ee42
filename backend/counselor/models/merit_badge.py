"""
Merit Badge Counselor Backend — MeritBadge SQLAlchemy Model
============================================================

What:  ORM model for the read-only `merit_badges` catalog table.
Why:   Applications reference badges by id; the form sends names.
Who:   Queried by BadgeCatalog (listing, name → id resolution) and joined by
       the application reader (id → name).
When:  Rows are seeded externally (see scripts/seed_merit_badges.py); this
       service never inserts, updates or deletes them.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from counselor.database import Base


class MeritBadge(Base):
    """A merit badge in the catalog, identified by its unique name."""

    __tablename__ = "merit_badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Exact-match lookups by name: unique constraint doubles as the index
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Official merit badge name as shown on the form",
    )

    def __repr__(self) -> str:
        return f"<MeritBadge(id={self.id}, name='{self.name}')>"
