"""Construction progress: work points accrued daily by assigned builders.

Each site needs ``total_points``. Builders contribute their capability,
scaled by a teamwork bonus, the seasonal factor and construction technology.
Only the earliest-registered unfinished site advances on a given day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from numpy.random import Generator

from settlement_sim.agents.capability import worker_capability
from settlement_sim.agents.population import PopulationLedger
from settlement_sim.agents.skills import LevelUp
from settlement_sim.agents.villager import BUILDER_ROLE, Villager, VillagerStatus
from settlement_sim.core.config import (
    COMPLETION_TOLERANCE,
    COMPLETION_XP_PER_DIFFICULTY,
    CONSTRUCTION_TECH_DISCOUNT,
    LEVEL_POINT_MULTIPLIER,
    MAX_BUILDERS_PER_SITE,
    TEAMWORK_EXTRA_PER_HEAD,
    TEAMWORK_STEPS,
)
from settlement_sim.core.results import Failure, Outcome
from settlement_sim.economy.allocation import assignment_blocker
from settlement_sim.simulation.events import BUILDING_COMPLETED, EventBus
from settlement_sim.world.buildings import Building, BuildingRegistry, get_definition
from settlement_sim.world.modifiers import ModifierLedger

ACTIVE = "active"
COMPLETE = "complete"


@dataclass(frozen=True)
class BuilderContribution:
    villager_id: int
    name: str
    efficiency: float


@dataclass
class ConstructionSite:
    """Progress record for one building under construction."""

    building_id: int
    building_type: str
    building_level: int
    position: tuple[int, int]
    total_points: int
    started_day: int = 0
    current_points: float = 0.0
    builder_ids: list[int] = field(default_factory=list)
    builders: list[BuilderContribution] = field(default_factory=list)
    skill_efficiency: float = 0.0
    teamwork_bonus: float = 1.0
    seasonal_efficiency: float = 1.0
    technology_efficiency: float = 1.0
    daily_progress: float = 0.0
    status: str = ACTIVE

    @property
    def remaining_points(self) -> float:
        return max(0.0, self.total_points - self.current_points)

    @property
    def percent_complete(self) -> float:
        if self.total_points <= 0:
            return 100.0
        return 100.0 * self.current_points / self.total_points

    def to_dict(self) -> dict:
        return {
            "building_id": self.building_id,
            "building_type": self.building_type,
            "building_level": self.building_level,
            "position": list(self.position),
            "total_points": self.total_points,
            "current_points": self.current_points,
            "builder_ids": list(self.builder_ids),
            "status": self.status,
            "started_day": self.started_day,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ConstructionSite:
        total = int(data["total_points"])
        return cls(
            building_id=int(data["building_id"]),
            building_type=data["building_type"],
            building_level=int(data.get("building_level", 1)),
            position=tuple(data.get("position", (0, 0))),
            total_points=total,
            started_day=int(data.get("started_day", 0)),
            current_points=min(float(total), max(0.0, float(data.get("current_points", 0.0)))),
            builder_ids=[int(i) for i in data.get("builder_ids", [])],
            status=data.get("status", ACTIVE),
        )


@dataclass
class ConstructionReport:
    """What happened on the construction front today."""

    day: int
    building_id: Optional[int] = None
    progress_added: float = 0.0
    completed: list[int] = field(default_factory=list)
    xp_awarded: int = 0
    level_ups: list[LevelUp] = field(default_factory=list)


def required_points(building_type: str, level: int, construction_tech: int) -> int:
    base = get_definition(building_type).construction_points
    level_mult = 1 + (level - 1) * LEVEL_POINT_MULTIPLIER
    tech_discount = max(0.0, 1 - construction_tech * CONSTRUCTION_TECH_DISCOUNT)
    return max(1, math.ceil(base * level_mult * tech_discount))


def teamwork_bonus(builder_count: int) -> float:
    """Step function on headcount; beyond the last step each extra head adds a little."""
    if builder_count <= 0:
        return 1.0
    for upper, bonus in TEAMWORK_STEPS:
        if builder_count <= upper:
            return bonus
    last_upper, last_bonus = TEAMWORK_STEPS[-1]
    return last_bonus + TEAMWORK_EXTRA_PER_HEAD * (builder_count - last_upper)


class _SiteTarget:
    """Adapts a construction site to the job registry's auto-assignment."""

    index = 0

    def __init__(self, engine: ConstructionEngine, site: ConstructionSite) -> None:
        self._engine = engine
        self._site = site
        self.building_id = site.building_id

    @property
    def filled(self) -> int:
        return len(self._site.builder_ids)

    @property
    def capacity(self) -> int:
        return MAX_BUILDERS_PER_SITE

    def accepts(self, villager: Villager) -> bool:
        return assignment_blocker(villager) is None

    def assign(self, villager_id: int) -> Outcome:
        return self._engine.assign_builder(villager_id, self.building_id)


class ConstructionEngine:
    """Owns construction sites and the builders assigned to them."""

    def __init__(
        self,
        population: PopulationLedger,
        buildings: BuildingRegistry,
        modifiers: ModifierLedger,
        rng: Generator,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._population = population
        self._buildings = buildings
        self._modifiers = modifiers
        self._rng = rng
        self._bus = bus
        self._sites: dict[int, ConstructionSite] = {}  # registration order
        self._builder_site: dict[int, int] = {}  # villager id -> building id

    # ------------------------------------------------------------------
    # Sites
    # ------------------------------------------------------------------

    @property
    def sites(self) -> list[ConstructionSite]:
        return list(self._sites.values())

    def get_site(self, building_id: int) -> Optional[ConstructionSite]:
        return self._sites.get(building_id)

    def focus_site(self) -> Optional[ConstructionSite]:
        """The earliest-registered site still needing work."""
        for site in self._sites.values():
            if site.status == ACTIVE and site.remaining_points > 0:
                return site
        return None

    def initialize_site(self, building_id: int, current_day: int = 0) -> Outcome:
        building = self._buildings.get(building_id)
        if building is None:
            return Outcome.failure(Failure.UNKNOWN_BUILDING, f"no building {building_id}")
        if building.built:
            return Outcome.failure(Failure.ALREADY_BUILT, f"building {building_id} is already built")
        if building_id in self._sites:
            return Outcome.failure(Failure.SITE_EXISTS, f"building {building_id} already has a site")

        site = ConstructionSite(
            building_id=building_id,
            building_type=building.building_type,
            building_level=building.level,
            position=building.position,
            total_points=required_points(
                building.building_type,
                building.level,
                self._modifiers.technology_level("construction"),
            ),
            started_day=current_day,
        )
        self._sites[building_id] = site
        self.recompute_efficiency(site)
        return Outcome.success(site)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def assign_builder(self, villager_id: int, building_id: int) -> Outcome:
        villager = self._population.get(villager_id)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        site = self._sites.get(building_id)
        if site is None:
            return Outcome.failure(Failure.UNKNOWN_BUILDING, f"no construction site for building {building_id}")
        if villager_id in self._builder_site:
            return Outcome.failure(Failure.ALREADY_ASSIGNED, f"{villager.name} is already building")
        if len(site.builder_ids) >= MAX_BUILDERS_PER_SITE:
            return Outcome.failure(Failure.SITE_FULL, f"site {building_id} has no room for more builders")
        blocker = assignment_blocker(villager)
        if blocker is not None:
            return blocker

        site.builder_ids.append(villager_id)
        self._builder_site[villager_id] = building_id
        villager.status = VillagerStatus.WORKING
        villager.role = BUILDER_ROLE
        villager.assigned_building_id = building_id
        self.recompute_efficiency(site)
        return Outcome.success(site)

    def unassign_builder(self, villager_id: int) -> Outcome:
        villager = self._population.get(villager_id)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        building_id = self._builder_site.pop(villager_id, None)
        if building_id is None:
            return Outcome.failure(Failure.NOT_ASSIGNED, f"{villager.name} is not building anything")
        site = self._sites[building_id]
        site.builder_ids.remove(villager_id)
        villager.release()
        self.recompute_efficiency(site)
        return Outcome.success(site)

    def release_villager(self, villager_id: int) -> Outcome:
        """Drop a villager who has left the roster from their site."""
        building_id = self._builder_site.pop(villager_id, None)
        if building_id is None:
            return Outcome.failure(Failure.NOT_ASSIGNED, f"villager {villager_id} is not building anything")
        site = self._sites[building_id]
        if villager_id in site.builder_ids:
            site.builder_ids.remove(villager_id)
        self.recompute_efficiency(site)
        return Outcome.success(site)

    def assignment_targets(self) -> list[_SiteTarget]:
        """Only the focus site takes new builders."""
        site = self.focus_site()
        return [_SiteTarget(self, site)] if site is not None else []

    # ------------------------------------------------------------------
    # Efficiency
    # ------------------------------------------------------------------

    def recompute_efficiency(self, site: ConstructionSite) -> None:
        relevant = get_definition(site.building_type).relevant_skills
        builders: list[BuilderContribution] = []
        kept: list[int] = []
        for vid in site.builder_ids:
            villager = self._population.get(vid)
            if villager is None:
                self._builder_site.pop(vid, None)
                continue
            kept.append(vid)
            builders.append(BuilderContribution(
                villager_id=vid,
                name=villager.name,
                efficiency=worker_capability(villager, task="construction", relevant_skills=relevant),
            ))
        site.builder_ids = kept
        site.builders = builders

        site.skill_efficiency = sum(b.efficiency for b in builders)
        site.teamwork_bonus = teamwork_bonus(len(builders))
        site.seasonal_efficiency = self._modifiers.effect_multiplier("constructionEfficiency")
        site.technology_efficiency = self._modifiers.technology_multiplier("constructionEfficiency")
        site.daily_progress = (
            site.skill_efficiency
            * site.teamwork_bonus
            * site.seasonal_efficiency
            * site.technology_efficiency
        )

    # ------------------------------------------------------------------
    # Daily pass
    # ------------------------------------------------------------------

    def process_daily_construction(self, current_day: int) -> ConstructionReport:
        report = ConstructionReport(day=current_day)
        # Full sites, e.g. restored from a snapshot, complete without a focus turn
        for site in [s for s in self._sites.values() if s.status == ACTIVE and s.remaining_points <= 0]:
            self.recompute_efficiency(site)
            self.complete_construction(site.building_id, current_day)
            report.completed.append(site.building_id)

        for site in self._sites.values():
            self.recompute_efficiency(site)

        site = self.focus_site()
        if site is None:
            return report

        gain = min(site.daily_progress, site.remaining_points)
        site.current_points = min(float(site.total_points), site.current_points + gain)
        if site.total_points - site.current_points <= COMPLETION_TOLERANCE:
            site.current_points = float(site.total_points)
        report.building_id = site.building_id
        report.progress_added = gain

        definition = get_definition(site.building_type)
        for vid in list(site.builder_ids):
            for skill in definition.relevant_skills:
                xp = round((1 + self._rng.random()) * definition.difficulty)
                self._award(report, vid, skill, xp)

        if site.remaining_points <= 0:
            completion_xp = round(definition.difficulty * COMPLETION_XP_PER_DIFFICULTY)
            for vid in list(site.builder_ids):
                for skill in definition.relevant_skills:
                    self._award(report, vid, skill, completion_xp)
            self.complete_construction(site.building_id, current_day)
            report.completed.append(site.building_id)
        return report

    def _award(self, report: ConstructionReport, villager_id: int, skill: str, xp: int) -> None:
        outcome = self._population.award_experience(villager_id, skill, xp)
        if outcome:
            report.xp_awarded += xp
            if outcome.value is not None:
                report.level_ups.append(outcome.value)

    def complete_construction(self, building_id: int, current_day: int = 0) -> Outcome:
        site = self._sites.get(building_id)
        if site is None:
            return Outcome.failure(Failure.UNKNOWN_BUILDING, f"no construction site for building {building_id}")
        building: Optional[Building] = self._buildings.get(building_id)
        if building is None:
            return Outcome.failure(Failure.UNKNOWN_BUILDING, f"no building {building_id}")

        builder_names = [b.name for b in site.builders]
        builder_ids = list(site.builder_ids)
        for vid in builder_ids:
            self._builder_site.pop(vid, None)
            villager = self._population.get(vid)
            if villager is not None:
                villager.release()

        site.status = COMPLETE
        del self._sites[building_id]
        building.level = site.building_level
        building.built = True

        if self._bus is not None:
            self._bus.emit(
                BUILDING_COMPLETED,
                f"{building.building_type} (level {building.level}) completed after "
                f"{current_day - site.started_day} days",
                builder_ids,
                building_id=building_id,
                building_type=building.building_type,
                level=building.level,
                position=building.position,
                total_points=site.total_points,
                builders=builder_names,
            )
        return Outcome.success(building)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def progress(self, building_id: int) -> Optional[dict]:
        site = self._sites.get(building_id)
        if site is None:
            return None
        remaining = site.remaining_points
        estimated = math.ceil(remaining / site.daily_progress) if site.daily_progress > 0 else None
        return {
            "building_id": site.building_id,
            "building_type": site.building_type,
            "level": site.building_level,
            "percent": site.percent_complete,
            "current_points": site.current_points,
            "total_points": site.total_points,
            "points_remaining": remaining,
            "builder_count": len(site.builder_ids),
            "estimated_days": estimated,
            "efficiency": {
                "skill": site.skill_efficiency,
                "teamwork": site.teamwork_bonus,
                "seasonal": site.seasonal_efficiency,
                "technology": site.technology_efficiency,
                "daily_progress": site.daily_progress,
            },
            "builders": [
                {"id": b.villager_id, "name": b.name, "efficiency": b.efficiency}
                for b in site.builders
            ],
        }

    def all_progress(self) -> list[dict]:
        return [self.progress(bid) for bid in self._sites]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {"sites": [s.to_dict() for s in self._sites.values()]}

    def load_dict(self, data: dict) -> None:
        self._sites = {}
        self._builder_site = {}
        for raw in data.get("sites", []):
            site = ConstructionSite.from_dict(raw)
            self._sites[site.building_id] = site
            for vid in site.builder_ids:
                self._builder_site[vid] = site.building_id
        for site in self._sites.values():
            self.recompute_efficiency(site)
