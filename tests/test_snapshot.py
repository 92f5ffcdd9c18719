import json

import pytest

from settlement_sim.simulation.engine import EngineSettings, SimulationEngine
from settlement_sim.simulation.snapshot import (
    engine_from_dict,
    engine_to_dict,
    load_snapshot,
    save_snapshot,
)


@pytest.fixture
def running_engine():
    engine = SimulationEngine(EngineSettings(seed=11, population=15))
    engine.initialize()
    engine.run(12)
    return engine


def _fingerprint(engine):
    return {
        "day": engine.clock.day,
        "villagers": [v.to_dict() for v in engine.population],
        "slots": [(s.slot_id, s.occupant_id) for s in engine.jobs.slots],
        "sites": [(s.building_id, round(s.current_points, 6), list(s.builder_ids)) for s in engine.construction.sites],
        "built": sorted(b.building_id for b in engine.buildings.completed),
        "effects": sorted(e.effect_type for e in engine.modifiers.active_effects),
        "stockpile": {k: round(v, 6) for k, v in engine.stockpile.items()},
    }


def test_round_trip_preserves_state(running_engine):
    data = json.loads(json.dumps(engine_to_dict(running_engine)))
    restored = engine_from_dict(data)
    assert _fingerprint(restored) == _fingerprint(running_engine)
    assert restored.population.next_id == running_engine.population.next_id


def test_restored_engine_continues_identically(running_engine):
    restored = engine_from_dict(json.loads(json.dumps(engine_to_dict(running_engine))))
    running_engine.run(10)
    restored.run(10)
    assert _fingerprint(restored) == _fingerprint(running_engine)


def test_unknown_version_rejected(running_engine):
    data = engine_to_dict(running_engine)
    data["version"] = 99
    with pytest.raises(ValueError):
        engine_from_dict(data)


def test_save_and_load_file(running_engine, tmp_path):
    path = tmp_path / "snaps" / "day12.json"
    save_snapshot(running_engine, str(path))
    assert path.exists()
    loaded = load_snapshot(str(path))
    assert loaded.clock.day == 12
    assert len(loaded.population) == len(running_engine.population)
