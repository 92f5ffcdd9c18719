"""Job definitions and job slots."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class JobDefinition:
    """What a worker in this job produces and consumes per day."""

    job_id: str
    building_type: str
    production: Mapping[str, float] = field(default_factory=dict)
    consumption: Mapping[str, float] = field(default_factory=dict)
    required_skill: Optional[str] = None
    skill_gained: Optional[str] = None
    seasonal_modifiers: Mapping[str, float] = field(default_factory=dict)
    soldier_class: bool = False

    def __post_init__(self) -> None:
        # Read-only views over private copies
        for name in ("production", "consumption", "seasonal_modifiers"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def seasonal_multiplier(self, season: str) -> float:
        return self.seasonal_modifiers.get(season, 1.0)


@dataclass
class JobSlot:
    """One position for one worker at one building."""

    slot_id: int
    building_id: int
    building_type: str
    job_id: str
    index: int
    occupant_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.occupant_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.slot_id,
            "building_id": self.building_id,
            "building_type": self.building_type,
            "job_id": self.job_id,
            "index": self.index,
            "occupant_id": self.occupant_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> JobSlot:
        return cls(
            slot_id=int(data["id"]),
            building_id=int(data["building_id"]),
            building_type=data["building_type"],
            job_id=data["job_id"],
            index=int(data["index"]),
            occupant_id=data.get("occupant_id"),
        )


# =============================================================================
# JOB TABLE
# =============================================================================
DEFAULT_JOBS: list[JobDefinition] = [
    JobDefinition(
        "gatherer", "village",
        production={"food": 1.0, "wood": 0.5},
        seasonal_modifiers={"spring": 1.2, "summer": 1.0, "autumn": 0.8, "winter": 0.5},
        skill_gained="gathering",
    ),
    JobDefinition(
        "farmer", "farm",
        production={"food": 3.5},
        required_skill="farming", skill_gained="farming",
        seasonal_modifiers={
            "spring": 1.2, "sprummer": 1.35, "summer": 1.5, "sumtumn": 1.25,
            "autumn": 1.0, "autinter": 0.9, "winter": 0.7, "winting": 0.8,
        },
    ),
    JobDefinition(
        "woodcutter", "woodcutterLodge",
        production={"wood": 3.0},
        required_skill="woodworking", skill_gained="woodworking",
        seasonal_modifiers={"spring": 1.0, "summer": 0.8, "autumn": 1.3, "winter": 1.5},
    ),
    JobDefinition(
        "sawyer", "lumberMill",
        production={"planks": 2.0}, consumption={"wood": 2.0},
        required_skill="woodworking", skill_gained="woodworking",
    ),
    JobDefinition(
        "rockcutter", "quarry",
        production={"stone": 3.0},
        required_skill="mining", skill_gained="mining",
        seasonal_modifiers={"summer": 1.2, "winter": 0.8},
    ),
    JobDefinition(
        "miner", "mine",
        production={"stone": 2.0, "metal": 1.0},
        required_skill="mining", skill_gained="mining",
    ),
    JobDefinition(
        "engineer", "workshop",
        production={"production": 3.0, "tools": 1.0}, consumption={"metal": 0.5},
        required_skill="engineering", skill_gained="engineering",
    ),
    JobDefinition(
        "blacksmith", "blacksmith",
        production={"weapons": 1.0, "tools": 2.0}, consumption={"metal": 1.0},
        required_skill="smithing", skill_gained="smithing",
    ),
    JobDefinition(
        "trader", "market",
        production={"gold": 2.0},
        required_skill="trading", skill_gained="trading",
    ),
    JobDefinition(
        "scholar", "academy",
        production={"research": 1.0},
        required_skill="scholarship", skill_gained="scholarship",
    ),
    JobDefinition(
        "drillInstructor", "barracks",
        production={"training": 1.0}, consumption={"gold": 0.5},
        required_skill="combat", skill_gained="teaching",
        soldier_class=True,
    ),
]
