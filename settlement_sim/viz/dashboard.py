"""Matplotlib dashboard: a live overview figure plus static post-run reports."""

from __future__ import annotations

import os

import matplotlib
matplotlib.use("Agg")  # Headless backend; figures are only written to disk
import matplotlib.pyplot as plt

from settlement_sim.core.config import DASHBOARD_UPDATE_INTERVAL


class Dashboard:
    """Four-panel overview redrawn every few days and saved on demand."""

    def __init__(self) -> None:
        self._initialized = False
        self._fig = None
        self._axes = None
        self._update_counter = 0

    def initialize(self) -> None:
        """Set up the matplotlib figure and subplots."""
        self._fig, axes = plt.subplots(2, 2, figsize=(14, 9))
        self._fig.suptitle("Settlement Simulation Dashboard", fontsize=14)
        self._axes = {
            "population": axes[0, 0],
            "food": axes[0, 1],
            "employment": axes[1, 0],
            "construction": axes[1, 1],
        }
        for ax in axes.flat:
            ax.grid(True, alpha=0.3)
        self._initialized = True

    def update(self, day: int, metrics: "MetricsCollector") -> None:  # noqa: F821
        """Redraw with the latest metrics."""
        self._update_counter += 1
        if self._update_counter % DASHBOARD_UPDATE_INTERVAL != 0:
            return

        if not self._initialized:
            self.initialize()

        snapshots = metrics.snapshots
        if not snapshots:
            return
        days = [s.day for s in snapshots]

        ax = self._axes["population"]
        ax.clear()
        ax.set_title("Population")
        ax.plot(days, [s.population for s in snapshots], "b-", linewidth=1.5)
        ax.grid(True, alpha=0.3)

        ax = self._axes["food"]
        ax.clear()
        ax.set_title("Food Stockpile")
        ax.plot(days, [s.food_stockpile for s in snapshots], "g-", linewidth=1.5)
        ax.grid(True, alpha=0.3)

        ax = self._axes["employment"]
        ax.clear()
        ax.set_title("Workforce")
        ax.plot(days, [s.employed for s in snapshots], "m-", label="Employed", linewidth=1.5)
        ax.plot(days, [s.builders for s in snapshots], "orange", label="Builders", linewidth=1.5)
        ax.legend(fontsize=8)
        ax.grid(True, alpha=0.3)

        ax = self._axes["construction"]
        ax.clear()
        ax.set_title("Current Construction Progress (%)")
        ax.plot(days, [s.construction_progress for s in snapshots], "r-", linewidth=1.5)
        ax.set_ylim(0, 100)
        ax.grid(True, alpha=0.3)

        self._fig.suptitle(f"Settlement Simulation - Day {day}", fontsize=14)
        self._fig.tight_layout()

    def save(self, filepath: str) -> None:
        """Save the current dashboard as an image."""
        if self._fig:
            self._fig.savefig(filepath, dpi=150, bbox_inches="tight")

    def close(self) -> None:
        """Close the dashboard."""
        if self._fig:
            plt.close(self._fig)

    # ------------------------------------------------------------------
    # Post-hoc static plots
    # ------------------------------------------------------------------

    @staticmethod
    def comprehensive_report(metrics: "MetricsCollector", output_dir: str) -> list[str]:  # noqa: F821
        """Generate all plots and save to output directory. Returns the files written."""
        os.makedirs(output_dir, exist_ok=True)

        snapshots = metrics.snapshots
        if not snapshots:
            return []

        days = [s.day for s in snapshots]
        written: list[str] = []

        def _save(fig, name: str) -> None:
            path = os.path.join(output_dir, name)
            fig.savefig(path, dpi=150)
            plt.close(fig)
            written.append(path)

        # Population over time
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.plot(days, [s.population for s in snapshots], label="Population")
        ax.bar(days, [s.births for s in snapshots], color="g", alpha=0.4, label="Births")
        ax.bar(days, [-s.deaths for s in snapshots], color="r", alpha=0.4, label="Deaths")
        ax.set_title("Population Over Time")
        ax.set_xlabel("Day")
        ax.set_ylabel("Villagers")
        ax.legend(fontsize=8)
        ax.grid(True, alpha=0.3)
        _save(fig, "population.png")

        # Food stockpile
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.plot(days, [s.food_stockpile for s in snapshots])
        ax.set_title("Food Stockpile Over Time")
        ax.set_xlabel("Day")
        ax.set_ylabel("Food Units")
        ax.grid(True, alpha=0.3)
        _save(fig, "food.png")

        # Employment
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.plot(days, [s.employed for s in snapshots], label="Employed")
        ax.plot(days, [s.total_slots for s in snapshots], "--", label="Job slots")
        ax.plot(days, [s.builders for s in snapshots], label="Builders")
        ax.set_title("Employment Over Time")
        ax.set_xlabel("Day")
        ax.set_ylabel("Workers")
        ax.legend(fontsize=8)
        ax.grid(True, alpha=0.3)
        _save(fig, "employment.png")

        # Construction
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.plot(days, [s.construction_progress for s in snapshots], "r-")
        completed_days = [s.day for s in snapshots if s.buildings_completed]
        for d in completed_days:
            ax.axvline(x=d, color="g", linestyle="--", alpha=0.5)
        ax.set_title("Construction Progress (vertical lines: completions)")
        ax.set_xlabel("Day")
        ax.set_ylabel("Current Site (%)")
        ax.set_ylim(0, 100)
        ax.grid(True, alpha=0.3)
        _save(fig, "construction.png")

        print(f"Reports saved to {output_dir}/")
        return written
