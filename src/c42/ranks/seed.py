"""Rank seed data loader (idempotent, runs at startup)."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c42.db.models import Rank
from c42.ranks.system_ranks import (
    SPECIAL_RANK_SEED_DATA,
    SYSTEM_RANK_SEED_DATA,
    validate_rank_table,
)

logger = structlog.get_logger()


async def seed_ranks(db: AsyncSession) -> int:
    """Insert missing system and special ranks. Returns the number inserted."""
    result = await db.execute(select(Rank.name))
    existing = set(result.scalars().all())

    inserted = 0
    for data in SYSTEM_RANK_SEED_DATA:
        if data["name"] in existing:
            continue
        db.add(Rank(is_system=True, **data))
        inserted += 1
    for data in SPECIAL_RANK_SEED_DATA:
        if data["name"] in existing:
            continue
        db.add(Rank(is_system=False, level=0, **data))
        inserted += 1

    await db.commit()
    if inserted:
        logger.info("ranks_seeded", inserted=inserted)
    return inserted


async def load_and_validate_rank_table(db: AsyncSession) -> list[Rank]:
    """Load system ranks from the store and validate their shape.

    Raises:
        RankTableError: If the stored table is inconsistent.
    """
    result = await db.execute(select(Rank).where(Rank.is_system.is_(True)).order_by(Rank.level))
    ranks = list(result.scalars().all())
    validate_rank_table(ranks)
    return ranks
