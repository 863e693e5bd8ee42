"""
Merit Badge Counselor Backend — Application SQLAlchemy Models
==============================================================

What:  ORM models for `applications`, `application_badges` and `certifications`.
Why:   One submission becomes one application row plus its child rows; the
       three tables are always written together in a single transaction.
Who:   Written by ApplicationService.create(), read by ApplicationService.get_by_id().

Table Design:
    applications        — one row per submitted form
    application_badges  — junction (application, merit badge, role)
                          role is 'counsel' or 'drop'
    certifications      — one row per accepted uploaded file

    Child rows are never updated or deleted by this service. Files whose
    transaction failed are removed by the upload gate, not by a cascade.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from counselor.database import Base

BADGE_ROLE_COUNSEL = "counsel"
BADGE_ROLE_DROP = "drop"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    """
    A merit badge counselor application.

    Volunteer credentials (bsa_member_id, district) are only stored when
    is_bsa_volunteer is true; the form layer clears them otherwise.
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Applicant ─────────────────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Volunteer status ──────────────────────────────────────────────────
    is_bsa_volunteer: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    bsa_member_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ── Request ───────────────────────────────────────────────────────────
    # One of: Become a Counselor, Change/Add Badges, Drop Badges, Update Certifications
    purpose: Mapped[str] = mapped_column(String(50), nullable=False)
    qualifications: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    additional_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("age >= 18", name="ck_applications_age_adult"),
        Index("idx_applications_email", "email"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, name='{self.first_name} {self.last_name}', "
            f"purpose='{self.purpose}')>"
        )


class ApplicationBadge(Base):
    """Junction row: an application counsels or drops one merit badge."""

    __tablename__ = "application_badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    merit_badge_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("merit_badges.id"),
        nullable=False,
    )
    badge_type: Mapped[str] = mapped_column(String(10), nullable=False)

    __table_args__ = (
        CheckConstraint(
            f"badge_type IN ('{BADGE_ROLE_COUNSEL}', '{BADGE_ROLE_DROP}')",
            name="ck_application_badges_badge_type",
        ),
        UniqueConstraint(
            "application_id",
            "merit_badge_id",
            "badge_type",
            name="uq_application_badges_role",
        ),
        Index("idx_application_badges_application_id", "application_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ApplicationBadge(application_id={self.application_id}, "
            f"merit_badge_id={self.merit_badge_id}, badge_type='{self.badge_type}')>"
        )


class Certification(Base):
    """Metadata for one uploaded certification file."""

    __tablename__ = "certifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Original client-side filename, as uploaded
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    # Final location on disk (after promotion out of staging)
    filepath: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_certifications_application_id", "application_id"),
    )

    def __repr__(self) -> str:
        return f"<Certification(id={self.id}, filename='{self.filename}', size={self.file_size})>"
