import csv
import json

from settlement_sim.simulation.engine import EngineSettings, SimulationEngine
from settlement_sim.simulation.events import Event, EventBus
from settlement_sim.simulation.metrics import MetricsCollector
from settlement_sim.viz.logger import SimLogger


def test_events_are_logged_under_their_category():
    logger = SimLogger(stdout=False)
    bus = EventBus()
    bus.subscribe_all(logger.log_event)
    bus.day = 3

    bus.emit("building_completed", "House #4 completed", [1, 2], building_id=4)
    bus.emit("effect_applied", "Rain applied", effect_type="weather_rainy", category="weather")
    bus.emit("skill_level_up", "Bran is now an Apprentice mason", [1])
    logger.flush_day(3)

    categories = [e.category for e in logger.entries]
    assert categories == [SimLogger.CONSTRUCTION, SimLogger.EFFECT, SimLogger.SKILL]
    assert logger.entries[0].villager_ids == [1, 2]
    assert logger.entries[1].data["category"] == "weather"
    assert logger.entries[1].data["event_type"] == "effect_applied"


def test_verbosity_filters_output_not_history(tmp_path):
    log_path = tmp_path / "sim.log"
    logger = SimLogger(verbosity=0, log_file=str(log_path), stdout=False)
    logger.log_event(Event("villager_died", "Old Tam died", day=5))
    logger.log_event(Event("effect_expired", "Sunshine faded", day=5))
    logger.flush_day(5)
    logger.close()

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert "Old Tam died" in lines[0]
    assert len(logger.entries) == 2


def test_narrative_and_json_export(tmp_path):
    logger = SimLogger(stdout=False)
    assert "Nothing notable" in logger.get_narrative(1)

    logger.log(SimLogger.JOBS, "Workers produced 7.0 food", day=1)
    logger.flush_day(1)
    assert "[JOBS] Workers produced 7.0 food" in logger.get_narrative(1)

    out = tmp_path / "events.json"
    logger.export_json(str(out))
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0]["category"] == "JOBS"


def test_metrics_track_a_run(tmp_path):
    engine = SimulationEngine(EngineSettings(seed=3, population=10))
    engine.initialize()
    engine.run(15)
    metrics = engine.metrics

    assert metrics.series("day") == list(range(1, 16))
    last = metrics.snapshots[-1]
    assert last.population == len(engine.population)
    assert last.total_slots == len(engine.jobs.slots)
    assert 0.0 <= last.vacancy_rate <= 1.0
    assert sum(last.role_counts.values()) == len(engine.population)

    out = tmp_path / "metrics.csv"
    metrics.export_csv(str(out))
    with open(out, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "day"
    assert len(rows) == 16

    report = metrics.summary_report()
    assert "Simulation Summary: Day 1 to Day 15" in report
    assert "Births blocked by housing" in report


def test_empty_metrics_report():
    assert MetricsCollector().summary_report() == "No data available for the specified period."
