"""Worker capability: how effective a villager is at a task today.

One function shared by construction and job reporting, parameterized by
task type so the health/happiness floors can differ per task.
"""

from __future__ import annotations

from typing import Optional, Sequence

from settlement_sim.agents.skills import DEFAULT_TIERS
from settlement_sim.core.config import (
    AGE_FACTOR_CURVE,
    BUILDER_BASE_EFFICIENCY,
    BUILDER_MIN_EFFICIENCY,
    BUILDER_TIER_BONUS,
    CAPABILITY_FLOORS,
    ELDER_AGE_FACTOR,
)


def age_factor(age: int) -> float:
    """Bell-shaped: ramps up through youth, peaks in adulthood, tails off."""
    for upper, factor in AGE_FACTOR_CURVE:
        if age < upper:
            return factor
    return ELDER_AGE_FACTOR


def skill_bonus(villager: "Villager", relevant_skills: Sequence[str]) -> float:  # noqa: F821
    """Average tier bonus across the relevant skills the villager has any XP in."""
    bonuses = [
        BUILDER_TIER_BONUS[min(DEFAULT_TIERS.level_for(villager.skills[s]), len(BUILDER_TIER_BONUS) - 1)]
        for s in relevant_skills
        if villager.skills.get(s, 0.0) > 0
    ]
    if not bonuses:
        return 0.0
    return sum(bonuses) / len(bonuses)


def worker_capability(
    villager: "Villager",  # noqa: F821
    task: str = "construction",
    relevant_skills: Optional[Sequence[str]] = None,
) -> float:
    """Efficiency multiplier for one worker, never below the minimum."""
    health_floor, happiness_floor = CAPABILITY_FLOORS.get(task, CAPABILITY_FLOORS["construction"])

    value = BUILDER_BASE_EFFICIENCY + skill_bonus(villager, relevant_skills or ())
    value *= age_factor(villager.age)
    value *= max(health_floor, villager.health / 100.0)
    value *= max(happiness_floor, villager.happiness / 100.0)
    return max(BUILDER_MIN_EFFICIENCY, value)
