"""Skill tiers: mapping experience points to discrete levels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settlement_sim.core.config import SKILL_TIERS


@dataclass(frozen=True)
class SkillTier:
    """One rung of a skill progression table."""

    level: int       # 0-based index into the table
    title: str
    min_xp: int


@dataclass(frozen=True)
class LevelUp:
    """A villager crossed a tier threshold in one skill."""

    villager_id: int
    name: str
    skill: str
    old_tier: SkillTier
    new_tier: SkillTier
    xp: float


class SkillTierTable:
    """Ordered experience thresholds for a family of skills."""

    def __init__(self, table_id: str, tiers: list[tuple[str, int]]) -> None:
        if not tiers:
            raise ValueError(f"Skill tier table {table_id!r} has no tiers")
        thresholds = [min_xp for _, min_xp in tiers]
        if thresholds != sorted(thresholds) or thresholds[0] != 0:
            raise ValueError(f"Skill tier table {table_id!r} must start at 0 and ascend")
        self.table_id = table_id
        self.tiers: list[SkillTier] = [
            SkillTier(level=i, title=title, min_xp=min_xp)
            for i, (title, min_xp) in enumerate(tiers)
        ]

    def tier_for(self, xp: float) -> SkillTier:
        current = self.tiers[0]
        for tier in self.tiers:
            if xp >= tier.min_xp:
                current = tier
            else:
                break
        return current

    def level_for(self, xp: float) -> int:
        return self.tier_for(xp).level

    @property
    def max_level(self) -> int:
        return len(self.tiers) - 1


# -----------------------------------------------------------------------------
# Table registry
# -----------------------------------------------------------------------------

_TABLES: dict[str, SkillTierTable] = {}


def register_tier_table(table: SkillTierTable) -> None:
    """Register a tier table. Registering the same id twice is a programming error."""
    if table.table_id in _TABLES:
        raise ValueError(f"Skill tier table {table.table_id!r} already registered")
    _TABLES[table.table_id] = table


def get_tier_table(table_id: str = "default") -> Optional[SkillTierTable]:
    return _TABLES.get(table_id)


DEFAULT_TIERS = SkillTierTable("default", SKILL_TIERS)
register_tier_table(DEFAULT_TIERS)


def add_experience(villager: "Villager", skill: str, xp: float) -> Optional[LevelUp]:  # noqa: F821
    """Add XP to one of a villager's skills; returns a LevelUp if a tier was crossed.

    XP never decreases: negative awards are ignored.
    """
    if xp <= 0:
        return None
    before = villager.skills.get(skill, 0.0)
    after = before + xp
    villager.skills[skill] = after

    old_tier = DEFAULT_TIERS.tier_for(before)
    new_tier = DEFAULT_TIERS.tier_for(after)
    if new_tier.level > old_tier.level:
        return LevelUp(
            villager_id=villager.villager_id,
            name=villager.name,
            skill=skill,
            old_tier=old_tier,
            new_tier=new_tier,
            xp=after,
        )
    return None


def best_skill(villager: "Villager") -> tuple[str, float]:  # noqa: F821
    """The villager's highest-XP skill, or ("none", 0.0)."""
    if not villager.skills:
        return "none", 0.0
    name = max(villager.skills, key=villager.skills.get)
    return name, villager.skills[name]
