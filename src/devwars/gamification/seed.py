"""Keeps the ``badges`` table in line with ``BADGE_CATALOG``."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.base import dialect_insert
from devwars.db.models import Badge
from devwars.gamification.badges import BADGE_CATALOG, BadgeVariant

logger = logging.getLogger(__name__)


def catalog_rows() -> list[dict[str, Any]]:
    return [
        {
            "id": int(entry["id"]),
            "name": entry["name"],
            "description": entry["description"],
            "awarding_experience": entry.get("xp", 0),
            "awarding_coins": entry["coins"],
            "variant": int(entry.get("variant", BadgeVariant.BRONZE)),
        }
        for entry in BADGE_CATALOG
    ]


async def seed_badges(db: AsyncSession) -> int:
    """Insert missing badges and refresh changed ones in one statement. Safe to rerun."""
    rows = catalog_rows()
    stmt = dialect_insert(db, Badge.__table__).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_={column: stmt.excluded[column] for column in rows[0] if column != "id"},
    )
    await db.execute(stmt)
    await db.commit()
    logger.info("Badge catalog in sync (%d badges)", len(rows))
    return len(rows)
