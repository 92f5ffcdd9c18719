from types import SimpleNamespace

import numpy as np
import pytest

from settlement_sim.agents.population import PopulationLedger
from settlement_sim.agents.villager import Gender
from settlement_sim.economy.allocation import JobAllocationRegistry
from settlement_sim.simulation.events import EventBus
from settlement_sim.world.buildings import BuildingRegistry
from settlement_sim.world.construction import ConstructionEngine
from settlement_sim.world.modifiers import ModifierLedger


class FixedRng:
    """Stand-in generator whose random() always returns the same value."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def fixed_rng():
    return FixedRng


@pytest.fixture
def world():
    """A settlement with no villagers or buildings, all components wired."""
    rng = np.random.default_rng(7)
    bus = EventBus()
    events = []
    bus.subscribe_all(events.append)
    population = PopulationLedger(rng, bus)
    buildings = BuildingRegistry()
    modifiers = ModifierLedger(bus)
    jobs = JobAllocationRegistry(population, modifiers)
    construction = ConstructionEngine(population, buildings, modifiers, rng, bus)

    def add(age=60, gender=Gender.MALE, **attrs):
        attrs.setdefault("happiness", 100.0)
        return population.add_villager(name=f"V{len(population)}", age=age, gender=gender, **attrs).value

    return SimpleNamespace(
        rng=rng,
        bus=bus,
        events=events,
        population=population,
        buildings=buildings,
        modifiers=modifiers,
        jobs=jobs,
        construction=construction,
        add=add,
    )
