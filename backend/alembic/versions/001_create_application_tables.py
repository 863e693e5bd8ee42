"""Create merit badge and application tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the read-only `merit_badges` catalog plus the three tables one
       submission writes: `applications`, `application_badges`,
       `certifications`.
How:   Mirrors counselor/models/*.py; the catalog itself is filled by
       scripts/seed_merit_badges.py.

Rollback: downgrade() drops all four tables (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "merit_badges",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(100),
            nullable=False,
            comment="Official merit badge name as shown on the form",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "is_bsa_volunteer",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("bsa_member_id", sa.String(50), nullable=True),
        sa.Column("district", sa.String(100), nullable=True),
        sa.Column("purpose", sa.String(50), nullable=False),
        sa.Column("qualifications", sa.Text(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.CheckConstraint("age >= 18", name="ck_applications_age_adult"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_applications_email", "applications", ["email"])

    op.create_table(
        "application_badges",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=False),
        sa.Column("merit_badge_id", sa.Integer(), nullable=False),
        sa.Column("badge_type", sa.String(10), nullable=False),
        sa.CheckConstraint(
            "badge_type IN ('counsel', 'drop')",
            name="ck_application_badges_badge_type",
        ),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["merit_badge_id"], ["merit_badges.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "application_id",
            "merit_badge_id",
            "badge_type",
            name="uq_application_badges_role",
        ),
    )
    op.create_index(
        "idx_application_badges_application_id",
        "application_badges",
        ["application_id"],
    )

    op.create_table(
        "certifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("filepath", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_certifications_application_id",
        "certifications",
        ["application_id"],
    )


def downgrade() -> None:
    """Drop every table, children first."""
    op.drop_index("idx_certifications_application_id", table_name="certifications")
    op.drop_table("certifications")
    op.drop_index("idx_application_badges_application_id", table_name="application_badges")
    op.drop_table("application_badges")
    op.drop_index("idx_applications_email", table_name="applications")
    op.drop_table("applications")
    op.drop_table("merit_badges")
