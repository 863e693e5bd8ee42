"""
Merit Badge Counselor Backend — Badge Catalog Reader
=====================================================

What:  Read-only access to the `merit_badges` catalog.
Why:   The form lists badges by name and submits names; the database stores
       ids. This is the one place that maps between the two on the way in.
Who:   GET /api/applications/merit-badges (list_all) and the application
       writer (resolve_ids).
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from counselor.models.merit_badge import MeritBadge
from counselor.schemas.application import MeritBadgeOut

logger = logging.getLogger(__name__)


class BadgeCatalog:
    """Stateless reader over the merit badge catalog."""

    async def list_all(self, db: AsyncSession) -> List[MeritBadgeOut]:
        """Every badge as {id, name}, sorted by name ascending."""
        result = await db.execute(
            select(MeritBadge.id, MeritBadge.name).order_by(MeritBadge.name.asc())
        )
        return [MeritBadgeOut(id=row.id, name=row.name) for row in result]

    async def resolve_ids(self, db: AsyncSession, names: Iterable[str]) -> Dict[str, int]:
        """
        Map badge names to ids with a single IN query.

        Matching is exact. Names absent from the catalog are simply missing
        from the returned dict.
        """
        wanted = set(names)
        if not wanted:
            return {}
        result = await db.execute(
            select(MeritBadge.name, MeritBadge.id).where(MeritBadge.name.in_(wanted))
        )
        return {row.name: row.id for row in result}


badge_catalog = BadgeCatalog()
