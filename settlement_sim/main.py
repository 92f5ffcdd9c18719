"""Entry point for the settlement simulation."""

from __future__ import annotations

import argparse
import os
import time
from typing import Optional


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Idle Settlement Simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--days", type=int, default=200, help="Number of days to simulate")
    parser.add_argument("--population", type=int, default=20, help="Initial population size")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")
    parser.add_argument("--verbosity", type=int, default=0, choices=[0, 1, 2, 3], help="Log verbosity level")
    parser.add_argument("--output-dir", type=str, default="results", help="Output directory for results")
    parser.add_argument("--log-file", type=str, default=None, help="Path to log file")
    parser.add_argument("--no-report", action="store_true", help="Skip the matplotlib report")
    parser.add_argument("--save-snapshot", type=str, default=None, help="Write a JSON snapshot when done")
    parser.add_argument("--load-snapshot", type=str, default=None, help="Resume from a JSON snapshot")

    args = parser.parse_args(argv)

    # Import here to allow --help without loading everything
    from settlement_sim.simulation.engine import EngineSettings, SimulationEngine
    from settlement_sim.simulation.snapshot import load_snapshot, save_snapshot
    from settlement_sim.viz.logger import SimLogger

    logger = SimLogger(
        verbosity=args.verbosity,
        log_file=args.log_file or os.path.join(args.output_dir, "simulation.log"),
        stdout=(args.verbosity > 0),
    )

    print("=== Idle Settlement Simulation ===")
    if args.load_snapshot:
        engine = load_snapshot(args.load_snapshot, logger=logger)
        print(f"Resumed from {args.load_snapshot} at day {engine.clock.day}")
    else:
        print(f"Population: {args.population} | Days: {args.days} | Seed: {args.seed}")
        engine = SimulationEngine(
            EngineSettings(seed=args.seed, population=args.population),
            logger=logger,
        )
        engine.initialize()
    print(f"Output: {args.output_dir}")
    print(f"  Villagers: {len(engine.population)} (housing for {engine.population_capacity()})")
    print(f"  Buildings: {len(engine.buildings.completed)} complete, {len(engine.construction.sites)} under construction")
    print()

    print(f"Running simulation for {args.days} days...")
    start_day = engine.clock.day
    t0 = time.time()

    try:
        engine.run(args.days)
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user")

    elapsed = time.time() - t0
    days_run = engine.clock.day - start_day
    print(f"\nSimulation complete: {days_run} days in {elapsed:.2f}s ({days_run / max(0.01, elapsed):.0f} days/sec)")

    # Export results
    os.makedirs(args.output_dir, exist_ok=True)

    csv_path = os.path.join(args.output_dir, "metrics.csv")
    engine.metrics.export_csv(csv_path)
    print(f"Metrics exported to {csv_path}")

    if not args.no_report:
        try:
            from settlement_sim.viz.dashboard import Dashboard
            Dashboard.comprehensive_report(engine.metrics, args.output_dir)
        except (OSError, ValueError) as e:
            print(f"Could not generate plots: {e}")

    print()
    print(engine.metrics.summary_report())

    if args.save_snapshot:
        save_snapshot(engine, args.save_snapshot)
        print(f"\nSnapshot saved to {args.save_snapshot}")

    engine.logger.export_json(os.path.join(args.output_dir, "events.json"))
    engine.logger.close()

    print(f"\nAll results saved to {args.output_dir}/")


if __name__ == "__main__":
    main()
