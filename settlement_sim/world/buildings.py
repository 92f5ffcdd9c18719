"""Building definitions and the records of buildings placed in the settlement."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from settlement_sim.core.config import (
    DEFAULT_CONSTRUCTION_POINTS,
    HOUSING_LEVEL_MULTIPLIER,
    TOWN_CENTER_CAPACITY,
)

VILLAGE = "village"


@dataclass(frozen=True)
class BuildingDefinition:
    """Static data for one building type."""

    building_type: str
    construction_points: int = DEFAULT_CONSTRUCTION_POINTS
    difficulty: float = 1.0
    relevant_skills: tuple[str, ...] = ("carpentry", "masonry")
    jobs: dict[str, int] = field(default_factory=dict)  # job id -> base slots per level
    population_capacity: int = 0


def _define(building_type: str, points: int, difficulty: float, skills: tuple[str, ...],
            jobs: Optional[dict[str, int]] = None, population_capacity: int = 0) -> BuildingDefinition:
    return BuildingDefinition(
        building_type=building_type,
        construction_points=points,
        difficulty=difficulty,
        relevant_skills=skills,
        jobs=dict(jobs or {}),
        population_capacity=population_capacity,
    )


BUILDING_DEFINITIONS: dict[str, BuildingDefinition] = {
    d.building_type: d
    for d in [
        # Pseudo-building hosting the village-wide gatherer slots; never constructed
        _define(VILLAGE, 0, 1.0, (), {"gatherer": 2}),
        _define("townCenter", 10, 1.5, ("masonry", "engineering", "administration"), {"gatherer": 2}),
        _define("house", 5, 1.0, ("carpentry", "forestry"), {"gatherer": 1}, population_capacity=8),
        _define("farm", 7, 1.0, ("agriculture", "carpentry"), {"farmer": 2}),
        _define("storehouse", 10, 1.0, ("carpentry", "masonry"), {"gatherer": 1}),
        _define("woodcutterLodge", 15, 1.2, ("forestry", "carpentry"), {"woodcutter": 3}),
        _define("quarry", 60, 1.4, ("quarrying", "mining", "engineering"), {"rockcutter": 3}),
        _define("lumberMill", 55, 1.0, ("forestry", "carpentry"), {"sawyer": 3}),
        _define("mine", 75, 1.0, ("mining", "engineering"), {"miner": 3}),
        _define("workshop", 50, 1.3, ("carpentry", "masonry", "engineering"), {"engineer": 3}),
        _define("blacksmith", 55, 1.4, ("blacksmithing", "engineering", "masonry"), {"blacksmith": 2}),
        _define("market", 70, 1.6, ("carpentry", "masonry", "trade"), {"trader": 3}),
        _define("academy", 100, 1.8, ("masonry", "carpentry", "scholarship", "engineering"), {"scholar": 1}),
        _define("barracks", 20, 1.5, ("masonry", "carpentry", "military engineering"), {"drillInstructor": 1}),
        _define("temple", DEFAULT_CONSTRUCTION_POINTS, 1.7, ("masonry", "carpentry", "scholarship")),
        _define("keep", DEFAULT_CONSTRUCTION_POINTS, 2.0, ("masonry", "carpentry", "engineering", "administration")),
        _define("castle", DEFAULT_CONSTRUCTION_POINTS, 2.5, ("masonry", "engineering", "military engineering")),
    ]
}


def get_definition(building_type: str) -> BuildingDefinition:
    """Definition for a building type; unknown types get the defaults."""
    definition = BUILDING_DEFINITIONS.get(building_type)
    if definition is None:
        return BuildingDefinition(building_type=building_type)
    return definition


@dataclass
class Building:
    """A building placed in the settlement, either under construction or complete."""

    building_id: int
    building_type: str
    position: tuple[int, int] = (0, 0)
    level: int = 1
    built: bool = False

    @property
    def definition(self) -> BuildingDefinition:
        return get_definition(self.building_type)

    def to_dict(self) -> dict:
        return {
            "id": self.building_id,
            "type": self.building_type,
            "position": list(self.position),
            "level": self.level,
            "built": self.built,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Building:
        return cls(
            building_id=int(data["id"]),
            building_type=data["type"],
            position=tuple(data.get("position", (0, 0))),
            level=max(1, int(data.get("level", 1))),
            built=bool(data.get("built", False)),
        )


class BuildingRegistry:
    """Manages every building record in the settlement."""

    def __init__(self) -> None:
        self._buildings: dict[int, Building] = {}
        self._next_id: int = 0

    @property
    def buildings(self) -> list[Building]:
        return list(self._buildings.values())

    @property
    def completed(self) -> list[Building]:
        return [b for b in self._buildings.values() if b.built]

    @property
    def next_id(self) -> int:
        return self._next_id

    def _next_building_id(self) -> int:
        bid = self._next_id
        self._next_id += 1
        return bid

    def add_building(self, building: Building) -> None:
        self._buildings[building.building_id] = building
        self._next_id = max(self._next_id, building.building_id + 1)

    def create_building(
        self,
        building_type: str,
        position: tuple[int, int] = (0, 0),
        level: int = 1,
        built: bool = False,
    ) -> Building:
        """Create and register a new building."""
        b = Building(
            building_id=self._next_building_id(),
            building_type=building_type,
            position=position,
            level=max(1, level),
            built=built,
        )
        self.add_building(b)
        return b

    def get(self, building_id: int) -> Optional[Building]:
        return self._buildings.get(building_id)

    def by_type(self, building_type: str) -> list[Building]:
        return [b for b in self._buildings.values() if b.building_type == building_type]

    def count_completed(self, building_type: str) -> int:
        return sum(1 for b in self.by_type(building_type) if b.built)

    def population_capacity(self) -> int:
        """Housing from completed buildings; each level above 1 adds a share of base capacity."""
        total = 0
        for b in self.completed:
            base = b.definition.population_capacity
            if base:
                total += int(base * (1 + (b.level - 1) * HOUSING_LEVEL_MULTIPLIER))
            if b.building_type == "townCenter":
                total += TOWN_CENTER_CAPACITY
        return total
