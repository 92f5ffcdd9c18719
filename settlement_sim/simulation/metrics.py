"""Data collection, statistics and export."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass, field
from typing import Optional

from settlement_sim.core.config import DAYS_PER_YEAR


@dataclass
class DailySnapshot:
    """A snapshot of simulation state for one day."""

    day: int = 0
    season: str = ""
    population: int = 0
    births: int = 0
    deaths: int = 0
    births_blocked: int = 0
    employed: int = 0
    builders: int = 0
    total_slots: int = 0
    vacancy_rate: float = 0.0
    production_total: float = 0.0
    consumption_total: float = 0.0
    food_stockpile: float = 0.0
    active_sites: int = 0
    construction_progress: float = 0.0
    buildings_completed: int = 0
    level_ups: int = 0
    avg_age: float = 0.0
    avg_happiness: float = 0.0
    role_counts: dict[str, int] = field(default_factory=dict)


class MetricsCollector:
    """Collects time-series data every day."""

    def __init__(self) -> None:
        self.snapshots: list[DailySnapshot] = []
        self._daily_births: int = 0
        self._daily_deaths: int = 0
        self._daily_blocked: int = 0
        self._daily_completions: int = 0
        self._daily_level_ups: int = 0

    def record_birth(self, count: int = 1) -> None:
        self._daily_births += count

    def record_death(self, count: int = 1) -> None:
        self._daily_deaths += count

    def record_blocked_birth(self, count: int = 1) -> None:
        self._daily_blocked += count

    def record_completion(self) -> None:
        self._daily_completions += 1

    def record_level_up(self) -> None:
        self._daily_level_ups += 1

    def collect_daily(
        self,
        day: int,
        season: str,
        population: "PopulationLedger",  # noqa: F821
        jobs: "JobAllocationRegistry",  # noqa: F821
        construction: "ConstructionEngine",  # noqa: F821
        stockpile: dict[str, float],
        production: Optional[dict[str, float]] = None,
        consumption: Optional[dict[str, float]] = None,
    ) -> DailySnapshot:
        """Collect all metrics for this day."""
        villagers = population.villagers
        n = len(villagers)

        role_counts: dict[str, int] = {}
        for v in villagers:
            role_counts[v.role] = role_counts.get(v.role, 0) + 1

        slots = jobs.slots
        filled = sum(1 for s in slots if not s.is_open)
        sites = construction.sites
        focus = construction.focus_site()

        snapshot = DailySnapshot(
            day=day,
            season=season,
            population=n,
            births=self._daily_births,
            deaths=self._daily_deaths,
            births_blocked=self._daily_blocked,
            employed=filled,
            builders=sum(len(s.builder_ids) for s in sites),
            total_slots=len(slots),
            vacancy_rate=(len(slots) - filled) / len(slots) if slots else 0.0,
            production_total=sum((production or {}).values()),
            consumption_total=sum((consumption or {}).values()),
            food_stockpile=stockpile.get("food", 0.0),
            active_sites=len(sites),
            construction_progress=focus.percent_complete if focus else 0.0,
            buildings_completed=self._daily_completions,
            level_ups=self._daily_level_ups,
            avg_age=sum(v.age for v in villagers) / max(1, n),
            avg_happiness=sum(v.happiness for v in villagers) / max(1, n),
            role_counts=role_counts,
        )
        self.snapshots.append(snapshot)

        # Reset daily counters
        self._daily_births = 0
        self._daily_deaths = 0
        self._daily_blocked = 0
        self._daily_completions = 0
        self._daily_level_ups = 0

        return snapshot

    def series(self, attribute: str) -> list:
        return [getattr(s, attribute) for s in self.snapshots]

    def export_csv(self, filepath: str) -> None:
        """Export all snapshots to CSV."""
        os.makedirs(os.path.dirname(filepath) if os.path.dirname(filepath) else ".", exist_ok=True)
        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow([
                "day", "season", "population", "births", "deaths", "births_blocked",
                "employed", "builders", "total_slots", "vacancy_rate",
                "production", "consumption", "food", "active_sites",
                "construction_progress", "buildings_completed", "level_ups",
                "avg_age", "avg_happiness",
            ])
            for s in self.snapshots:
                writer.writerow([
                    s.day, s.season, s.population, s.births, s.deaths, s.births_blocked,
                    s.employed, s.builders, s.total_slots, f"{s.vacancy_rate:.3f}",
                    f"{s.production_total:.2f}", f"{s.consumption_total:.2f}",
                    f"{s.food_stockpile:.1f}", s.active_sites,
                    f"{s.construction_progress:.1f}", s.buildings_completed,
                    s.level_ups, f"{s.avg_age:.1f}", f"{s.avg_happiness:.1f}",
                ])

    def summary_report(self, start_day: int = 0, end_day: Optional[int] = None) -> str:
        """Generate a human-readable summary of the simulation period."""
        relevant = [
            s for s in self.snapshots
            if s.day >= start_day and (end_day is None or s.day <= end_day)
        ]
        if not relevant:
            return "No data available for the specified period."

        first = relevant[0]
        last = relevant[-1]
        days = last.day - first.day + 1
        total_births = sum(s.births for s in relevant)
        total_deaths = sum(s.deaths for s in relevant)
        total_blocked = sum(s.births_blocked for s in relevant)
        total_completed = sum(s.buildings_completed for s in relevant)
        total_level_ups = sum(s.level_ups for s in relevant)

        lines = [
            f"=== Simulation Summary: Day {first.day} to Day {last.day} ===",
            f"Duration: {days} days ({days / DAYS_PER_YEAR:.1f} years)",
            "",
            f"Population: {first.population} -> {last.population}",
            f"  Total births: {total_births}",
            f"  Total deaths: {total_deaths}",
            f"  Births blocked by housing: {total_blocked}",
            "",
            "Economy:",
            f"  Filled job slots: {last.employed}/{last.total_slots} "
            f"(vacancy {last.vacancy_rate:.0%})",
            f"  Avg production/day: {sum(s.production_total for s in relevant) / len(relevant):.1f}",
            f"  Food stockpile: {first.food_stockpile:.0f} -> {last.food_stockpile:.0f}",
            "",
            "Construction:",
            f"  Buildings completed: {total_completed}",
            f"  Open sites (final day): {last.active_sites}",
            f"  Skill level-ups: {total_level_ups}",
            "",
            "Final Metrics:",
            f"  Avg age: {last.avg_age:.1f} days",
            f"  Avg happiness: {last.avg_happiness:.1f}/100",
        ]

        if last.role_counts:
            lines.append("")
            lines.append("Role Distribution (final day):")
            total = sum(last.role_counts.values())
            for role, count in sorted(last.role_counts.items(), key=lambda x: -x[1]):
                pct = count / max(1, total) * 100
                lines.append(f"  {role}: {count} ({pct:.0f}%)")

        return "\n".join(lines)
