#!/usr/bin/env python3
"""Run a baseline Tactica full game and print per-round results."""

from tactica.core.config import SimulationConfig
from tactica.experiment.runner import ExperimentRunner


def main():
    config = SimulationConfig(
        experiment_name="baseline",
        rounds_to_run=15,
        random_seed=42,
    )

    print(f"=== Tactica: {config.experiment_name} ===")
    print(f"Players: {', '.join(config.players)}")
    print(f"Rounds: {config.rounds_to_run}")
    print(f"Balance: {config.balance_parameters()}")
    print()

    result = ExperimentRunner().run_game(config)

    print(f"{'Rnd':>4} {'MeanGold':>8} {'Units':>5} {'Diversity':>9} {'PriceIdx':>8}")
    print("-" * 40)
    for r in result.rounds:
        print(
            f"{r.round:4d} {r.mean_gold:8.1f} {r.total_units:5d} "
            f"{r.composition_diversity:9.3f} {r.market_price_index:8.3f}"
        )

    print()
    print("=== Final Standings ===")
    for p in sorted(result.final_state.players, key=lambda p: p.rank):
        print(f"  #{p.rank} {p.name:<16} level {p.level}  gold {p.gold:3d}  "
              f"W/L {p.wins}/{p.losses}")

    print()
    print("=== Summary ===")
    for key, value in sorted(result.summary.items()):
        print(f"  {key:<28} {value:.3f}")


if __name__ == "__main__":
    main()
