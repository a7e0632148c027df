#!/usr/bin/env python3
"""Search the default parameter space for the best-balanced configuration."""

import argparse
import logging

import numpy as np

from tactica.core.config import SimulationConfig
from tactica.experiment.balancer import AutoBalancer
from tactica.experiment.sampling import DEFAULT_SPACE


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--iterations", type=int, default=20)
    parser.add_argument("--seeds", type=int, default=2, help="trials per evaluation")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--mode", choices=("game", "skirmish"), default="skirmish")
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    balancer = AutoBalancer(
        DEFAULT_SPACE,
        np.random.default_rng(args.seed),
        base_config=SimulationConfig(experiment_name="auto_balance", random_seed=args.seed),
        mode=args.mode,
        seeds_per_set=args.seeds,
        workers=args.workers,
    )
    result = balancer.optimize(iterations=args.iterations)

    print(f"\nBest balance score: {result.best_score:.1f}")
    for name, value in result.best_params.items():
        print(f"  {name:<20} {value:.4f}")
    print("\nSensitivity (score change per unit change):")
    for name, value in sorted(result.sensitivity.items(), key=lambda kv: -kv[1]):
        print(f"  {name:<20} {value:.2f}")


if __name__ == "__main__":
    main()
