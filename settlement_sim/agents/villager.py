"""Core villager record: identity, age, life stage, work state, skills."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np
from numpy.random import Generator

from settlement_sim.core.config import (
    ADULT_AGE,
    DEATH_AGE,
    DEFAULT_HAPPINESS,
    DEFAULT_HEALTH,
    ELDER_AGE,
    MIDDLE_AGED_AGE,
    SEED_AGE_DISTRIBUTION,
    SEED_CHILD_FRACTION,
    YOUNG_ADULT_AGE,
)


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class VillagerStatus(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    TRAVELING = "traveling"
    SICK = "sick"
    DRAFTED = "drafted"


class LifeStage(str, Enum):
    CHILD = "child"
    YOUNG_ADULT = "young_adult"
    ADULT = "adult"
    MIDDLE_AGED = "middle_aged"
    ELDER = "elder"
    DEAD = "dead"


UNEMPLOYED = "unemployed"
BUILDER_ROLE = "builder"

# Stages allowed to take ordinary jobs and construction work
WORKING_STAGES: frozenset[LifeStage] = frozenset(
    {LifeStage.YOUNG_ADULT, LifeStage.ADULT, LifeStage.MIDDLE_AGED}
)
# Soldier-class jobs accept the adult bracket only
SOLDIER_STAGES: frozenset[LifeStage] = frozenset({LifeStage.ADULT})
# Statuses that keep a villager out of any new assignment
UNAVAILABLE_STATUSES: frozenset[VillagerStatus] = frozenset(
    {VillagerStatus.SICK, VillagerStatus.TRAVELING, VillagerStatus.DRAFTED}
)


def life_stage_for(age: int) -> LifeStage:
    """Life stage is always a pure function of age."""
    if age >= DEATH_AGE:
        return LifeStage.DEAD
    if age >= ELDER_AGE:
        return LifeStage.ELDER
    if age >= MIDDLE_AGED_AGE:
        return LifeStage.MIDDLE_AGED
    if age >= ADULT_AGE:
        return LifeStage.ADULT
    if age >= YOUNG_ADULT_AGE:
        return LifeStage.YOUNG_ADULT
    return LifeStage.CHILD


# Simple name lists
_MALE_NAMES: list[str] = [
    "Aldric", "Bran", "Cedric", "Darian", "Edwin", "Finn", "Gareth", "Hadric",
    "Ivor", "Jasper", "Kael", "Leoric", "Magnus", "Nolan", "Oswin", "Perin",
    "Quentin", "Rodric", "Silas", "Theron", "Ulric", "Voss", "Wren", "Yorick",
]

_FEMALE_NAMES: list[str] = [
    "Adara", "Brynn", "Celia", "Dara", "Elara", "Fiona", "Gwen", "Helena",
    "Iris", "Jessa", "Kira", "Lyra", "Maren", "Nessa", "Olwen", "Petra",
    "Quinn", "Rhea", "Seren", "Thea", "Una", "Vera", "Willa", "Yara",
]


def random_name(gender: Gender, rng: Generator) -> str:
    names = _MALE_NAMES if gender == Gender.MALE else _FEMALE_NAMES
    return str(rng.choice(names))


def random_gender(rng: Generator) -> Gender:
    return Gender.MALE if rng.random() < 0.5 else Gender.FEMALE


def _clamp_stat(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class Villager:
    """A single settlement inhabitant."""

    def __init__(
        self,
        villager_id: int,
        name: str,
        age: int,
        gender: Gender,
        role: str = UNEMPLOYED,
        status: VillagerStatus = VillagerStatus.IDLE,
        health: float = DEFAULT_HEALTH,
        happiness: float = DEFAULT_HAPPINESS,
        skills: Optional[dict[str, float]] = None,
    ) -> None:
        self.villager_id = villager_id
        self.name = name
        self.age = max(0, int(age))
        self.gender = Gender(gender)
        self.role = role
        self.status = VillagerStatus(status)
        self.health = _clamp_stat(health)
        self.happiness = _clamp_stat(happiness)
        self.skills: dict[str, float] = dict(skills or {})
        # Written only by the job registry and construction engine
        self.assigned_building_id: Optional[int] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def life_stage(self) -> LifeStage:
        return life_stage_for(self.age)

    @property
    def can_work(self) -> bool:
        return self.life_stage in WORKING_STAGES

    @property
    def is_busy(self) -> bool:
        return self.status == VillagerStatus.WORKING or self.assigned_building_id is not None

    @property
    def is_available(self) -> bool:
        return self.status not in UNAVAILABLE_STATUSES

    def skill_xp(self, skill: str) -> float:
        return self.skills.get(skill, 0.0)

    # ------------------------------------------------------------------
    # Daily update
    # ------------------------------------------------------------------

    def grow_older(self) -> None:
        self.age += 1

    def release(self) -> None:
        """Return to idle after leaving a job slot or construction site."""
        self.status = VillagerStatus.IDLE
        self.role = UNEMPLOYED
        self.assigned_building_id = None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.villager_id,
            "name": self.name,
            "age": self.age,
            "gender": self.gender.value,
            "role": self.role,
            "status": self.status.value,
            "health": self.health,
            "happiness": self.happiness,
            "skills": dict(self.skills),
            "assigned_building_id": self.assigned_building_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Villager:
        v = cls(
            villager_id=int(data["id"]),
            name=data["name"],
            age=int(data["age"]),
            gender=Gender(data["gender"]),
            role=data.get("role", UNEMPLOYED),
            status=VillagerStatus(data.get("status", VillagerStatus.IDLE.value)),
            health=data.get("health", DEFAULT_HEALTH),
            happiness=data.get("happiness", DEFAULT_HAPPINESS),
            skills={k: float(x) for k, x in data.get("skills", {}).items()},
        )
        v.assigned_building_id = data.get("assigned_building_id")
        return v

    def __repr__(self) -> str:
        return f"Villager({self.villager_id}, {self.name!r}, age={self.age}, {self.life_stage.value})"


# ------------------------------------------------------------------
# Initial population generation
# ------------------------------------------------------------------

def seed_ages(n: int, rng: Generator) -> list[int]:
    """Ages for a founding population, weighted toward working age."""
    mean, std, lo, hi = SEED_AGE_DISTRIBUTION
    ages: list[int] = []
    for _ in range(n):
        if rng.random() < SEED_CHILD_FRACTION:
            ages.append(int(rng.integers(0, YOUNG_ADULT_AGE)))
        else:
            ages.append(int(np.clip(rng.normal(mean, std), lo, hi)))
    return ages
