"""Population ledger: the authoritative villager roster.

Owns aging, death removal, birth-chance calculation and read-only
demographic summaries. Domain-rule violations come back as ``Outcome``
failures; nothing here raises for bad ids.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterator, Optional

from numpy.random import Generator

from settlement_sim.agents.skills import DEFAULT_TIERS, LevelUp, add_experience
from settlement_sim.agents.villager import (
    Gender,
    LifeStage,
    UNEMPLOYED,
    Villager,
    VillagerStatus,
    WORKING_STAGES,
    random_gender,
    random_name,
    seed_ages,
)
from settlement_sim.core.config import (
    BASE_BIRTH_CHANCE,
    BIRTH_BONUS_CLAMP,
    BREEDING_AGE_RANGE,
    DEATH_AGE,
    DEATH_RISK_BUCKETS,
    DEATH_RISK_CURVES,
    DEFAULT_HAPPINESS,
    DEFAULT_HEALTH,
    FOOD_ABUNDANT_BIRTH_BONUS,
    FOOD_SCARCE_BIRTH_PENALTY,
    NEWBORN_HAPPINESS,
    TWIN_CHANCE,
)
from settlement_sim.core.results import Failure, Outcome
from settlement_sim.simulation.events import SKILL_LEVEL_UP, VILLAGER_BORN, VILLAGER_DIED, EventBus

# Statuses that keep a villager from being counted as a parent
_NON_BREEDING_STATUSES = frozenset({VillagerStatus.SICK, VillagerStatus.TRAVELING})

# Keyword attributes add_villager passes through to Villager
_VILLAGER_ATTRS = frozenset({"role", "status", "health", "happiness", "skills"})


@dataclass(frozen=True)
class DeathRecord:
    villager_id: int
    name: str
    role: str
    age: int


@dataclass(frozen=True)
class GrowthResult:
    """Births rolled for one day. No villagers are created here."""

    births: int
    twins: int
    bonus: float
    eligible_couples: int
    birth_chance: float


@dataclass(frozen=True)
class DeathProjection:
    horizon_days: int
    by_bucket: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.by_bucket.values())


class PopulationLedger:
    """Roster of living villagers keyed by id."""

    def __init__(self, rng: Generator, bus: Optional[EventBus] = None) -> None:
        self._rng = rng
        self._bus = bus
        self._villagers: dict[int, Villager] = {}
        self._next_id: int = 0

    # ------------------------------------------------------------------
    # Roster access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._villagers)

    def __iter__(self) -> Iterator[Villager]:
        return iter(list(self._villagers.values()))

    def __contains__(self, villager_id: object) -> bool:
        return villager_id in self._villagers

    @property
    def villagers(self) -> list[Villager]:
        return list(self._villagers.values())

    @property
    def next_id(self) -> int:
        return self._next_id

    def get(self, villager_id: int) -> Optional[Villager]:
        return self._villagers.get(villager_id)

    # ------------------------------------------------------------------
    # Roster mutation
    # ------------------------------------------------------------------

    def add_villager(
        self,
        name: Optional[str] = None,
        age: int = 0,
        gender: Optional[Gender] = None,
        villager_id: Optional[int] = None,
        **attrs,
    ) -> Outcome:
        """Add a villager. The new ``Villager`` is the outcome's value."""
        if villager_id is None:
            villager_id = self._next_id
        elif villager_id in self._villagers:
            return Outcome.failure(Failure.DUPLICATE_ID, f"villager {villager_id} already exists")

        unknown = sorted(set(attrs) - _VILLAGER_ATTRS)
        if unknown:
            return Outcome.failure(Failure.INVALID_ATTRIBUTE, f"unknown villager attribute(s): {', '.join(unknown)}")

        if gender is None:
            gender = random_gender(self._rng)
        if name is None:
            name = random_name(gender, self._rng)

        try:
            villager = Villager(villager_id, name, max(0, int(age)), gender, **attrs)
        except (TypeError, ValueError) as exc:
            return Outcome.failure(Failure.INVALID_ATTRIBUTE, str(exc))
        self._villagers[villager_id] = villager
        self._next_id = max(self._next_id, villager_id + 1)
        return Outcome.success(villager)

    def restore(self, villager: Villager) -> None:
        """Insert a fully-formed villager, e.g. when loading a snapshot."""
        self._villagers[villager.villager_id] = villager
        self._next_id = max(self._next_id, villager.villager_id + 1)

    def restore_next_id(self, next_id: int) -> None:
        self._next_id = max(self._next_id, next_id)

    def remove_villager(self, villager_id: int) -> Outcome:
        villager = self._villagers.pop(villager_id, None)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        return Outcome.success(villager)

    def add_newborn(self) -> Villager:
        """Create a newborn villager and announce the birth."""
        gender = random_gender(self._rng)
        name = random_name(gender, self._rng)
        if any(v.name == name for v in self._villagers.values()):
            name = f"{name} the Younger"
        villager = self.add_villager(
            name=name, age=0, gender=gender, happiness=NEWBORN_HAPPINESS,
        ).value
        self._emit(
            VILLAGER_BORN,
            f"{villager.name} was born",
            [villager.villager_id],
            name=villager.name,
            gender=villager.gender.value,
        )
        return villager

    def generate_initial_population(self, n: int) -> list[Villager]:
        """Seed the roster with a founding population of working-age-weighted ages."""
        created: list[Villager] = []
        for age in seed_ages(n, self._rng):
            outcome = self.add_villager(age=age, health=DEFAULT_HEALTH, happiness=DEFAULT_HAPPINESS)
            created.append(outcome.value)
        return created

    # ------------------------------------------------------------------
    # Daily passes
    # ------------------------------------------------------------------

    def advance_day(self) -> list[DeathRecord]:
        """Age everyone by one day, then remove those who reached the death age."""
        for villager in self._villagers.values():
            villager.grow_older()

        deaths: list[DeathRecord] = []
        for villager in [v for v in self._villagers.values() if v.age >= DEATH_AGE]:
            del self._villagers[villager.villager_id]
            record = DeathRecord(villager.villager_id, villager.name, villager.role, villager.age)
            deaths.append(record)
            self._emit(
                VILLAGER_DIED,
                f"{villager.name} died of old age at {villager.age} days",
                [villager.villager_id],
                name=villager.name,
                role=villager.role,
                age=villager.age,
                building_id=villager.assigned_building_id,
            )
        return deaths

    def eligible_parents(self) -> tuple[list[Villager], list[Villager]]:
        lo, hi = BREEDING_AGE_RANGE
        males: list[Villager] = []
        females: list[Villager] = []
        for v in self._villagers.values():
            if not (lo <= v.age <= hi) or v.status in _NON_BREEDING_STATUSES:
                continue
            (males if v.gender == Gender.MALE else females).append(v)
        return males, females

    def calculate_daily_growth(self, food_abundant: bool, food_scarce: bool) -> GrowthResult:
        """Roll today's births for every eligible couple."""
        males, females = self.eligible_parents()
        couples = min(len(males), len(females))

        bonus = 0.0
        if food_abundant:
            bonus += FOOD_ABUNDANT_BIRTH_BONUS
        if food_scarce:
            bonus -= FOOD_SCARCE_BIRTH_PENALTY
        bonus = max(BIRTH_BONUS_CLAMP[0], min(BIRTH_BONUS_CLAMP[1], bonus))
        chance = BASE_BIRTH_CHANCE * (1.0 + bonus)

        births = 0
        twins = 0
        for _ in range(couples):
            if self._rng.random() < chance:
                births += 1
                if self._rng.random() < TWIN_CHANCE:
                    births += 1
                    twins += 1

        return GrowthResult(
            births=births,
            twins=twins,
            bonus=bonus,
            eligible_couples=couples,
            birth_chance=chance,
        )

    # ------------------------------------------------------------------
    # Experience
    # ------------------------------------------------------------------

    def award_experience(self, villager_id: int, skill: str, xp: float) -> Outcome:
        """Add XP to a villager's skill. The outcome's value is a LevelUp or None."""
        villager = self._villagers.get(villager_id)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        level_up = add_experience(villager, skill, xp)
        if level_up is not None:
            self.announce_level_up(level_up)
        return Outcome.success(level_up)

    def announce_level_up(self, level_up: LevelUp) -> None:
        self._emit(
            SKILL_LEVEL_UP,
            f"{level_up.name} is now {level_up.new_tier.title} in {level_up.skill}",
            [level_up.villager_id],
            skill=level_up.skill,
            old_tier=level_up.old_tier.title,
            new_tier=level_up.new_tier.title,
            level=level_up.new_tier.level,
            xp=level_up.xp,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def group_by_life_stage(self) -> dict[LifeStage, list[Villager]]:
        groups: dict[LifeStage, list[Villager]] = defaultdict(list)
        for v in self._villagers.values():
            groups[v.life_stage].append(v)
        return dict(groups)

    def group_by_role(self) -> dict[str, list[Villager]]:
        groups: dict[str, list[Villager]] = defaultdict(list)
        for v in self._villagers.values():
            groups[v.role].append(v)
        return dict(groups)

    def project_deaths(self, horizon_days: int = 1) -> DeathProjection:
        """Expected old-age deaths within the horizon. Never removes anyone."""
        weights = DEATH_RISK_CURVES.get(horizon_days)
        if weights is None:
            weights = tuple(_bucket_reach_fraction(lo, hi, horizon_days) for _, lo, hi in DEATH_RISK_BUCKETS)

        by_bucket: dict[str, int] = {}
        for (bucket, lo, hi), weight in zip(DEATH_RISK_BUCKETS, weights):
            count = sum(1 for v in self._villagers.values() if lo <= v.age <= hi)
            # Rounded first so float noise such as 3.0000000000000004 doesn't bump the ceiling
            by_bucket[bucket] = math.ceil(round(count * weight, 9))
        return DeathProjection(horizon_days=horizon_days, by_bucket=by_bucket)

    def summary(self) -> dict:
        villagers = list(self._villagers.values())
        n = len(villagers)
        stages = self.group_by_life_stage()
        roles = self.group_by_role()

        skill_overview: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for v in villagers:
            for skill, xp in v.skills.items():
                skill_overview[skill][DEFAULT_TIERS.tier_for(xp).title] += 1

        tomorrow = self.project_deaths(1)
        month = self.project_deaths(30)
        return {
            "total": n,
            "by_life_stage": {stage.value: len(vs) for stage, vs in stages.items()},
            "by_role": {role: len(vs) for role, vs in roles.items()},
            "demographics": {
                "average_age": sum(v.age for v in villagers) / n if n else 0.0,
                "average_health": sum(v.health for v in villagers) / n if n else 0.0,
                "average_happiness": sum(v.happiness for v in villagers) / n if n else 0.0,
                "males": sum(1 for v in villagers if v.gender == Gender.MALE),
                "females": sum(1 for v in villagers if v.gender == Gender.FEMALE),
                "working_age": sum(1 for v in villagers if v.life_stage in WORKING_STAGES),
                "employed": sum(1 for v in villagers if v.role != UNEMPLOYED),
            },
            "skills": {skill: dict(tiers) for skill, tiers in skill_overview.items()},
            "death_projection": {
                "tomorrow": tomorrow.total,
                "next_30_days": month.total,
                "by_bucket_30_days": dict(month.by_bucket),
            },
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _emit(self, event_type: str, description: str, villager_ids: list[int], **data) -> None:
        if self._bus is not None:
            self._bus.emit(event_type, description, villager_ids, **data)


def _bucket_reach_fraction(lo: int, hi: int, horizon_days: int) -> float:
    """Share of a bucket's age span that reaches the death age within the horizon."""
    threshold = DEATH_AGE - horizon_days
    if horizon_days <= 0 or threshold > hi:
        return 0.0
    reaching = hi - max(lo, threshold) + 1
    return reaching / (hi - lo + 1)
