"""Save and restore a running simulation as plain JSON-compatible data.

The core never decides when to persist; callers use these functions.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from typing import Optional

from settlement_sim.agents.villager import Villager
from settlement_sim.simulation.engine import EngineSettings, SimulationEngine
from settlement_sim.viz.logger import SimLogger
from settlement_sim.world.buildings import Building

SNAPSHOT_VERSION = 1


def engine_to_dict(engine: SimulationEngine) -> dict:
    """Everything needed to resume the simulation exactly where it stopped."""
    return {
        "version": SNAPSHOT_VERSION,
        "settings": asdict(engine.settings),
        "clock": {"day": engine.clock.day},
        "rng_state": engine.rng.bit_generator.state,
        "villagers": [v.to_dict() for v in engine.population.villagers],
        "next_villager_id": engine.population.next_id,
        "buildings": [b.to_dict() for b in engine.buildings.buildings],
        "jobs": engine.jobs.to_dict(),
        "construction": engine.construction.to_dict(),
        "modifiers": engine.modifiers.to_dict(),
        "climate": {
            "weather": engine.climate.current_weather,
            "consecutive_dry_days": engine.climate.consecutive_dry_days,
        },
        "stockpile": dict(engine.stockpile),
    }


def engine_from_dict(data: dict, logger: Optional[SimLogger] = None) -> SimulationEngine:
    """Rebuild an engine from ``engine_to_dict`` output.

    Components are loaded in dependency order: roster and buildings first,
    then the slot and site tables that refer to them.
    """
    version = data.get("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version {version}")

    engine = SimulationEngine(EngineSettings(**data["settings"]), logger=logger)
    engine.clock.day = int(data["clock"]["day"])
    engine.bus.day = engine.clock.day
    engine.rng.bit_generator.state = data["rng_state"]

    for raw in data.get("villagers", []):
        engine.population.restore(Villager.from_dict(raw))
    engine.population.restore_next_id(int(data.get("next_villager_id", 0)))
    for raw in data.get("buildings", []):
        engine.buildings.add_building(Building.from_dict(raw))

    engine.modifiers.load_dict(data.get("modifiers", {}))
    engine.jobs.load_dict(data.get("jobs", {}))
    engine.construction.load_dict(data.get("construction", {}))

    climate = data.get("climate", {})
    engine.climate.current_weather = climate.get("weather", "clear")
    engine.climate.consecutive_dry_days = int(climate.get("consecutive_dry_days", 0))
    engine.stockpile = {k: float(v) for k, v in data.get("stockpile", {}).items()}
    return engine


def save_snapshot(engine: SimulationEngine, filepath: str) -> None:
    os.makedirs(os.path.dirname(filepath) if os.path.dirname(filepath) else ".", exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(engine_to_dict(engine), f, indent=2)


def load_snapshot(filepath: str, logger: Optional[SimLogger] = None) -> SimulationEngine:
    with open(filepath, "r", encoding="utf-8") as f:
        return engine_from_dict(json.load(f), logger=logger)
