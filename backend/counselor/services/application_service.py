"""
Merit Badge Counselor Backend — Application Service (Writer, Reader, Orchestrator)
===================================================================================

What:  Creates applications atomically, reads them back as one composite record,
       and orchestrates a full submission around the upload gate.
Why:   Keeps every business rule about the four tables out of the routes.
How:   Takes the request's AsyncSession for each call; holds no state.
Who:   Called by the /api/applications route handlers.

Submission Flow (POST /api/applications):
    ┌───────────┐    ┌──────────────┐    ┌────────────────┐    ┌───────────┐
    │  Form     │───▶│ Upload gate  │───▶│ Writer (one    │───▶│ Promote   │
    │ validated │    │ check+stage  │    │ transaction)   │    │ staged    │
    │  (route)  │    └──────────────┘    └────────────────┘    │ files     │
    └───────────┘                               │              └───────────┘
                                                ▼ failure
                                         rollback + discard staged files

Writer transaction:
    1. INSERT applications                 → generated id
    2. SELECT merit_badges WHERE name IN   → one lookup for both roles
    3. INSERT application_badges (batch)   → unknown names skipped
    4. INSERT certifications               → one row per staged file
    5. COMMIT, or ROLLBACK everything and raise DatabaseError
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from counselor.exceptions import CounselorAppError, DatabaseError
from counselor.models.application import (
    BADGE_ROLE_COUNSEL,
    BADGE_ROLE_DROP,
    Application,
    ApplicationBadge,
    Certification,
)
from counselor.models.merit_badge import MeritBadge
from counselor.schemas.application import (
    ApplicationDetail,
    ApplicationForm,
    CertificationOut,
)
from counselor.services.badge_catalog import badge_catalog
from counselor.services.upload_gate import StoredFile, UploadGate

logger = logging.getLogger(__name__)


def _unique(names: Iterable[str]) -> List[str]:
    """Order-preserving de-duplication."""
    return list(dict.fromkeys(names))


MAX_APPLICATION_ID = 2_147_483_647


def _underlying_message(exc: Exception) -> str:
    """Driver message for SQLAlchemy errors (exc.orig), str(exc) otherwise."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class ApplicationService:
    """
    Business logic for merit badge counselor applications.

    Responsibilities:
        - create():    atomic multi-table write, returns the new id
        - get_by_id(): composite read, None when the id does not exist
        - submit():    upload gate + create() + promote/discard
    """

    async def create(
        self,
        db: AsyncSession,
        form: ApplicationForm,
        certifications: Sequence[StoredFile] = (),
    ) -> int:
        """
        Insert the application and all of its child rows in one transaction.

        Args:
            db: Async database session (no transaction may be open on it yet
                that the caller expects to keep separate)
            form: Validated form fields
            certifications: Files accepted by the upload gate

        Returns:
            The generated application id.

        Raises:
            DatabaseError: any failure; the transaction is rolled back first,
                           so no row from this submission survives.
        """
        try:
            application = Application(
                first_name=form.first_name,
                last_name=form.last_name,
                age=form.age,
                phone=form.phone,
                email=form.email,
                is_bsa_volunteer=form.is_bsa_volunteer,
                bsa_member_id=form.bsa_member_id,
                district=form.district,
                purpose=form.purpose,
                qualifications=form.qualifications,
                additional_info=form.additional_info,
            )
            db.add(application)
            await db.flush()  # assigns application.id
            application_id = application.id

            # ── Badge associations: one lookup, one insert ───────────────
            requested = {
                BADGE_ROLE_COUNSEL: _unique(form.badges_to_counsel),
                BADGE_ROLE_DROP: _unique(form.badges_to_drop),
            }
            badge_ids = await badge_catalog.resolve_ids(
                db, [name for names in requested.values() for name in names]
            )

            rows = []
            skipped = []
            for role, names in requested.items():
                for name in names:
                    badge_id = badge_ids.get(name)
                    if badge_id is None:
                        skipped.append(name)
                        continue
                    rows.append(
                        {
                            "application_id": application_id,
                            "merit_badge_id": badge_id,
                            "badge_type": role,
                        }
                    )
            if rows:
                await db.execute(insert(ApplicationBadge), rows)
            if skipped:
                logger.warning(
                    "Application %s: skipped unknown merit badge names %s",
                    application_id,
                    skipped,
                )

            # ── Certification metadata ────────────────────────────────────
            if certifications:
                db.add_all(
                    [
                        Certification(
                            application_id=application_id,
                            filename=stored.filename,
                            filepath=stored.filepath,
                            file_size=stored.size,
                        )
                        for stored in certifications
                    ]
                )
                await db.flush()

            await db.commit()

        except Exception as e:
            await db.rollback()
            if isinstance(e, CounselorAppError):
                raise
            logger.error("Application write rolled back: %s", str(e), exc_info=True)
            raise DatabaseError(
                message=_underlying_message(e),
                context={"original_error": type(e).__name__},
            )

        logger.info(
            "Application %s created: %d badge rows, %d certifications",
            application_id,
            len(rows),
            len(certifications),
        )
        return application_id

    async def get_by_id(
        self, db: AsyncSession, application_id: int
    ) -> Optional[ApplicationDetail]:
        """
        Rebuild the full record of one application.

        Returns:
            ApplicationDetail, or None when no application has this id.

        Raises:
            DatabaseError: a query failed.
        """
        # No row can carry an id outside the INTEGER column range
        if not 1 <= application_id <= MAX_APPLICATION_ID:
            return None

        try:
            result = await db.execute(
                select(Application).where(Application.id == application_id)
            )
            application = result.scalar_one_or_none()
            if application is None:
                return None

            # id → name translation mirrors the writer's name → id lookup
            badge_rows = await db.execute(
                select(ApplicationBadge.badge_type, MeritBadge.name)
                .join(MeritBadge, ApplicationBadge.merit_badge_id == MeritBadge.id)
                .where(ApplicationBadge.application_id == application_id)
                .order_by(ApplicationBadge.id)
            )
            counsel: List[str] = []
            drop: List[str] = []
            for badge_type, name in badge_rows:
                if badge_type == BADGE_ROLE_COUNSEL:
                    counsel.append(name)
                elif badge_type == BADGE_ROLE_DROP:
                    drop.append(name)

            cert_rows = await db.execute(
                select(Certification)
                .where(Certification.application_id == application_id)
                .order_by(Certification.id)
            )
            certifications = [
                CertificationOut.model_validate(cert) for cert in cert_rows.scalars().all()
            ]

        except Exception as e:
            logger.error("Database error fetching application %s: %s", application_id, str(e))
            raise DatabaseError(
                message=_underlying_message(e),
                context={"application_id": application_id},
            )

        columns = {column.key: getattr(application, column.key) for column in Application.__table__.columns}
        return ApplicationDetail(
            **columns,
            badges_to_counsel=counsel,
            badges_to_drop=drop,
            certifications=certifications,
        )

    async def submit(
        self,
        db: AsyncSession,
        form: ApplicationForm,
        uploads: Optional[Sequence[Any]],
        gate: UploadGate,
    ) -> int:
        """
        Full submission: stage uploads, write rows, then promote or discard.

        The form must already be validated; nothing is written to disk
        before this point.

        Raises:
            UploadRejectedError: batch policy violated (nothing on disk, no rows)
            FileStorageError:    staging failed (nothing on disk, no rows)
            DatabaseError:       transaction rolled back (staged files discarded)
        """
        uploads = gate.filter_uploads(uploads)
        stored = await gate.stage(uploads)

        try:
            application_id = await self.create(db, form, stored)
        except Exception:
            await gate.discard(stored)
            raise

        await gate.promote(stored)
        return application_id


application_service = ApplicationService()
