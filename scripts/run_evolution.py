"""
Run a few generations headlessly on the bundled track.

Usage:
    python scripts/run_evolution.py --generations 5 --population 10 --seed 7

Each generation races until every car is out or the time budget runs out,
then the two best agents are picked automatically as parents. Progress is
saved to the configured storage directory unless --no-save is given.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

import numpy as np

# Ensure repo root is on sys.path when script is executed from anywhere
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from evo_racer.engine import (  # noqa: E402
    ArcadeWorld,
    EvolutionStore,
    GeneticManager,
    TrackLayout,
    format_time,
)
from evo_racer.engine.data_models import EvolutionSettings  # noqa: E402


def run_generation(manager: GeneticManager) -> int:
    """Ticks until the budget is spent or every agent is terminal."""
    budget_ticks = int(manager.settings.generation_time_budget * manager.settings.tick_rate)
    ticks = 0
    while ticks < budget_ticks and not all(agent.is_terminal for agent in manager.agents):
        manager.update()
        ticks += 1
    return ticks


def main() -> None:
    parser = argparse.ArgumentParser(description="Evolve racing agents headlessly.")
    parser.add_argument("--generations", type=int, default=5, help="Generations to run.")
    parser.add_argument("--population", type=int, default=None, help="Agents per generation.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for genomes.")
    parser.add_argument("--no-save", action="store_true", help="Do not read or write saved evolution.")
    parser.add_argument("--fresh", action="store_true", help="Discard saved evolution before starting.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = EvolutionSettings.from_config()
    track = TrackLayout()
    world = ArcadeWorld(track)
    store = None if args.no_save else EvolutionStore(settings.storage_dir, track.track_id)

    manager = GeneticManager(world, track, store=store, settings=settings, rng=np.random.default_rng(args.seed))
    if args.fresh:
        manager.reset_evolution()
    if args.population is not None:
        manager.initialize_population(args.population)

    for _ in range(args.generations):
        ticks = run_generation(manager)
        finished = sum(1 for agent in manager.agents if agent.is_finished)
        best = manager.rank_by_fitness()[0].fitness() if manager.agents else 0.0
        print(
            f"Generation {manager.generation}: {ticks} ticks, "
            f"{finished}/{len(manager.agents)} finished, best fitness {best:.1f}"
        )
        manager.auto_select()
        result = manager.evolve()
        if not result:
            print(f"Could not evolve: {result.message}")
            break

    print("\nLeaderboard:")
    entries = manager.scores()
    if not entries:
        print("  (no finishes yet)")
    for position, entry in enumerate(entries[:10], start=1):
        print(f"{position}. {format_time(entry.time)}  gen {entry.generation}  car {entry.agent_id}")


if __name__ == "__main__":
    main()
