"""System rank table and points -> rank resolution.

Thresholds are per level. The top tier is additionally split by gender:
exactly one rank per gender value exists on that level.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from c42.errors import RankTableError

GENDERS: tuple[str, ...] = ("male", "female", "other")

TOP_LEVEL = 4

LEVEL_THRESHOLDS: dict[int, int] = {
    1: 0,
    2: 25,
    3: 50,
    4: 100,
}

DEFAULT_RANK_NAME = "Чебоксарец"

SYSTEM_RANK_SEED_DATA: list[dict] = [
    {"name": "Чебоксарец", "description": "Начальное звание", "level": 1, "gender": None},
    {"name": "Чебоксарец +", "description": "Продвинутый начальный уровень", "level": 2, "gender": None},
    {"name": "Начинающий 42", "description": "Средний уровень", "level": 3, "gender": None},
    {"name": "42-БРАТУХА", "description": "Высокий уровень (мужской)", "level": 4, "gender": "male"},
    {"name": "42-СЕСТРУХА", "description": "Высокий уровень (женский)", "level": 4, "gender": "female"},
    {"name": "42!", "description": "Высокий уровень (другой пол)", "level": 4, "gender": "other"},
]

SPECIAL_RANK_SEED_DATA: list[dict] = [
    {"name": "Сырок", "description": "Спец. звание от администратора"},
    {"name": "Дихлорид Оганесона", "description": "Спец. звание от администратора"},
    {"name": "Валера Вишньа", "description": "Спец. звание от администратора"},
    {"name": "Deathstroke", "description": "Спец. звание от администратора"},
    {"name": "Радиант", "description": "Спец. звание от администратора"},
]


class SystemRankLike(Protocol):
    name: str
    level: int
    gender: str | None


def qualifies(rank: SystemRankLike, points: int, gender: str | None) -> bool:
    """Whether a user with ``points`` and ``gender`` reaches ``rank``."""
    threshold = LEVEL_THRESHOLDS.get(rank.level)
    if threshold is None or points < threshold:
        return False
    if rank.level == TOP_LEVEL:
        return gender is not None and rank.gender == gender
    return True


def resolve_rank(
    points: int,
    gender: str | None,
    system_ranks: Iterable[SystemRankLike],
) -> SystemRankLike | None:
    """Pick the highest-level system rank the user qualifies for.

    Returns None when nothing qualifies, which cannot happen for points >= 0
    against a table that passed ``validate_rank_table``.
    """
    best: SystemRankLike | None = None
    for rank in system_ranks:
        if not qualifies(rank, points, gender):
            continue
        if best is None or rank.level > best.level:
            best = rank
    return best


def validate_rank_table(system_ranks: Iterable[SystemRankLike]) -> None:
    """Check the table shape.

    Raises:
        RankTableError: a lower tier carries a gender, a level has no
            threshold, or the top tier does not hold exactly one rank per gender.
    """
    top_by_gender: dict[str, list[str]] = {g: [] for g in GENDERS}
    levels_seen: set[int] = set()

    for rank in system_ranks:
        if rank.level not in LEVEL_THRESHOLDS:
            msg = f"System rank {rank.name!r} has unknown level {rank.level}"
            raise RankTableError(msg)
        levels_seen.add(rank.level)
        if rank.level < TOP_LEVEL:
            if rank.gender is not None:
                msg = f"System rank {rank.name!r} below the top tier must not have a gender"
                raise RankTableError(msg)
            continue
        if rank.gender not in top_by_gender:
            msg = f"Top-tier rank {rank.name!r} has invalid gender {rank.gender!r}"
            raise RankTableError(msg)
        top_by_gender[rank.gender].append(rank.name)

    if 1 not in levels_seen:
        msg = "System rank table has no level-1 rank"
        raise RankTableError(msg)

    for gender, names in top_by_gender.items():
        if len(names) != 1:
            msg = f"Expected exactly one top-tier rank for gender {gender!r}, found {len(names)}"
            raise RankTableError(msg)
