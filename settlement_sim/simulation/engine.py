"""Main simulation loop: the daily tick cycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
from numpy.random import Generator

from settlement_sim.agents.population import PopulationLedger
from settlement_sim.core.clock import SimClock
from settlement_sim.core.config import (
    DAILY_FOOD_UPKEEP,
    FOOD_ABUNDANT_THRESHOLD,
    FOOD_SCARCE_THRESHOLD,
    INITIAL_POPULATION,
    STARTING_STOCKPILE,
)
from settlement_sim.core.results import Outcome
from settlement_sim.economy.allocation import JobAllocationRegistry
from settlement_sim.simulation.events import (
    BIRTH_BLOCKED,
    BUILDING_COMPLETED,
    SKILL_LEVEL_UP,
    VILLAGER_BORN,
    VILLAGER_DIED,
    Event,
    EventBus,
)
from settlement_sim.simulation.metrics import MetricsCollector
from settlement_sim.viz.logger import SimLogger
from settlement_sim.world.buildings import BUILDING_DEFINITIONS, VILLAGE, BuildingRegistry
from settlement_sim.world.climate import Climate
from settlement_sim.world.construction import ConstructionEngine
from settlement_sim.world.modifiers import ModifierLedger


@dataclass
class EngineSettings:
    """Per-run options, validated once on creation."""

    seed: int = 42
    population: int = INITIAL_POPULATION
    starting_stockpile: dict[str, float] = field(default_factory=lambda: dict(STARTING_STOCKPILE))
    population_cap: bool = True
    weather: bool = True
    starting_buildings: list[str] = field(
        default_factory=lambda: ["townCenter", "house", "house", "house"]
    )
    construction_queue: list[str] = field(
        default_factory=lambda: ["farm", "house", "woodcutterLodge", "storehouse"]
    )

    def __post_init__(self) -> None:
        if self.population < 0:
            raise ValueError(f"population must be >= 0, got {self.population}")
        for resource, amount in self.starting_stockpile.items():
            if amount < 0:
                raise ValueError(f"starting {resource} must be >= 0, got {amount}")
        for building_type in [*self.starting_buildings, *self.construction_queue]:
            if building_type not in BUILDING_DEFINITIONS or building_type == VILLAGE:
                raise ValueError(f"unknown building type {building_type!r}")


class SimulationEngine:
    """Orchestrates the settlement simulation.

    Builds every component, hands each the collaborators it needs and wires
    the event handlers between them. Components never call each other's
    daily passes; only ``tick`` sequences them.
    """

    def __init__(self, settings: Optional[EngineSettings] = None, logger: Optional[SimLogger] = None) -> None:
        self.settings = settings or EngineSettings()
        self.rng: Generator = np.random.default_rng(self.settings.seed)

        # Core systems
        self.bus = EventBus()
        self.clock = SimClock()
        self.population = PopulationLedger(self.rng, self.bus)
        self.buildings = BuildingRegistry()
        self.modifiers = ModifierLedger(self.bus)
        self.climate = Climate(self.rng)
        self.jobs = JobAllocationRegistry(self.population, self.modifiers)
        self.construction = ConstructionEngine(
            self.population, self.buildings, self.modifiers, self.rng, self.bus,
        )
        self.stockpile: dict[str, float] = dict(self.settings.starting_stockpile)

        # Simulation systems
        self.metrics = MetricsCollector()
        self.logger = logger or SimLogger(stdout=False)

        self.last_production: dict[str, float] = {}
        self.last_consumption: dict[str, float] = {}

        self._wire_events()

        # Dashboard callback (set externally)
        self._dashboard_callback: Optional[Callable[[int, MetricsCollector], None]] = None

    def _wire_events(self) -> None:
        self.bus.subscribe_all(self._log_event)
        self.bus.subscribe(BUILDING_COMPLETED, self._on_building_completed)
        self.bus.subscribe(VILLAGER_BORN, lambda e: self.metrics.record_birth())
        self.bus.subscribe(VILLAGER_DIED, lambda e: self.metrics.record_death())
        self.bus.subscribe(BIRTH_BLOCKED, lambda e: self.metrics.record_blocked_birth(e.data.get("count", 1)))
        self.bus.subscribe(SKILL_LEVEL_UP, lambda e: self.metrics.record_level_up())

    def _log_event(self, event: Event) -> None:
        self.logger.log_event(event)

    def _on_building_completed(self, event: Event) -> None:
        building = self.buildings.get(event.data["building_id"])
        if building is not None:
            self.jobs.create_slots_for_building(building)
        self.metrics.record_completion()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Found the settlement: buildings, villagers, first construction sites."""
        village = self.buildings.create_building(VILLAGE, built=True)
        self.jobs.create_slots_for_building(village)
        for i, building_type in enumerate(self.settings.starting_buildings):
            building = self.buildings.create_building(building_type, position=(i, 0), built=True)
            self.jobs.create_slots_for_building(building)

        self.population.generate_initial_population(self.settings.population)

        for i, building_type in enumerate(self.settings.construction_queue):
            self.place_building(building_type, position=(i, 1))

        self._refresh_season_effect()

        self.logger.log(
            SimLogger.LIFECYCLE,
            f"Settlement founded with {len(self.population)} villagers",
            day=self.clock.day,
        )

    def set_dashboard_callback(self, callback: Callable[[int, MetricsCollector], None]) -> None:
        """Set a callback function for per-day dashboard updates."""
        self._dashboard_callback = callback

    def place_building(self, building_type: str, position: tuple[int, int] = (0, 0), level: int = 1) -> Outcome:
        """Register a new building and open a construction site for it."""
        building = self.buildings.create_building(building_type, position=position, level=level)
        return self.construction.initialize_site(building.building_id, self.clock.day)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run(self, days: int) -> None:
        """Run the simulation for a number of days."""
        for _ in range(days):
            self.tick()
            if self._dashboard_callback:
                self._dashboard_callback(self.clock.day, self.metrics)

    def tick(self) -> None:
        """One day of simulation."""
        # 1. DAWN - time moves on
        self.clock.advance()
        day = self.clock.day
        season = self.clock.season
        self.bus.day = day
        # Yesterday's events were logged at its flush; pending holds today's only
        self.bus.clear_pending()

        # 2. Modifier expiry, then today's season and weather
        self.modifiers.expire_daily(day)
        self._refresh_season_effect()
        if self.settings.weather:
            self.climate.advance_day(season)
            self.climate.apply_to(self.modifiers, day)

        # 3. Population: aging, deaths, births
        for record in self.population.advance_day():
            self.jobs.release_villager(record.villager_id)
            self.construction.release_villager(record.villager_id)
        self._process_births()

        # 4. Jobs: staffing, output, stockpile
        self.jobs.auto_assign(self.construction.assignment_targets())
        self.last_production = self.jobs.calculate_production(season)
        self.last_consumption = self.jobs.calculate_consumption()
        self._update_stockpile()
        self.jobs.award_daily_experience()
        if self.last_production:
            produced = ", ".join(f"{amt:.1f} {res}" for res, amt in sorted(self.last_production.items()))
            self.logger.log(SimLogger.JOBS, f"Workers produced {produced}", day=day)

        # 5. Construction
        self.construction.process_daily_construction(day)

        # 6. METRICS & LOG
        self.metrics.collect_daily(
            day, season, self.population, self.jobs, self.construction,
            self.stockpile, self.last_production, self.last_consumption,
        )
        self.logger.flush_day(day)

    # ------------------------------------------------------------------
    # Daily helpers
    # ------------------------------------------------------------------

    @property
    def food_abundant(self) -> bool:
        return self.stockpile.get("food", 0.0) > FOOD_ABUNDANT_THRESHOLD

    @property
    def food_scarce(self) -> bool:
        return self.stockpile.get("food", 0.0) < FOOD_SCARCE_THRESHOLD

    def population_capacity(self) -> int:
        return self.buildings.population_capacity()

    def _refresh_season_effect(self) -> None:
        effect_type = f"season_{self.clock.season}"
        if self.modifiers.get_effect_by_type(effect_type) is None:
            self.modifiers.apply(effect_type, self.clock.days_left_in_season, self.clock.day)

    def _process_births(self) -> None:
        growth = self.population.calculate_daily_growth(self.food_abundant, self.food_scarce)
        births = growth.births
        if self.settings.population_cap:
            room = max(0, self.population_capacity() - len(self.population))
            blocked = max(0, births - room)
            births -= blocked
            if blocked:
                self.bus.emit(
                    BIRTH_BLOCKED,
                    f"{blocked} birth(s) prevented: housing is full "
                    f"({len(self.population)}/{self.population_capacity()})",
                    count=blocked,
                    capacity=self.population_capacity(),
                )
        for _ in range(births):
            self.population.add_newborn()

    def _update_stockpile(self) -> None:
        for resource, amount in self.last_production.items():
            self.stockpile[resource] = self.stockpile.get(resource, 0.0) + amount
        for resource, amount in self.last_consumption.items():
            self.stockpile[resource] = max(0.0, self.stockpile.get(resource, 0.0) - amount)
        upkeep = DAILY_FOOD_UPKEEP * len(self.population)
        self.stockpile["food"] = max(0.0, self.stockpile.get("food", 0.0) - upkeep)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def summary(self) -> dict:
        return {
            "day": self.clock.day,
            "year": self.clock.year,
            "season": self.clock.season,
            "weather": self.climate.current_weather,
            "population": self.population.summary(),
            "capacity": self.population_capacity(),
            "employment": self.jobs.employment_summary(self.clock.season),
            "construction": self.construction.all_progress(),
            "modifiers": self.modifiers.summary(self.clock.day),
            "stockpile": dict(self.stockpile),
        }
