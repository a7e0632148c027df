#!/usr/bin/env python3
"""Sample balance parameters, rank them by balance score and report sensitivity."""

import argparse

from tactica.core.config import SimulationConfig
from tactica.experiment.balancer import parameter_sensitivity
from tactica.experiment.runner import ExperimentRunner
from tactica.experiment.sampling import DEFAULT_SPACE, SAMPLERS


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-n", type=int, default=16, help="parameter sets to sample")
    parser.add_argument("--method", choices=SAMPLERS, default="low_discrepancy")
    parser.add_argument("--seeds", type=int, default=2, help="seeds per parameter set")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--mode", choices=("game", "skirmish"), default="skirmish")
    args = parser.parse_args()

    base = SimulationConfig(experiment_name="balance_batch", random_seed=7)
    results = ExperimentRunner().sample_and_run(
        DEFAULT_SPACE, args.n, args.method,
        seeds_per_set=args.seeds, workers=args.workers, base_config=base, mode=args.mode,
    )

    ok = [r for r in results if r.ok]
    ok.sort(key=lambda r: -r.summary.get("balance_score", 0.0))
    print(f"{len(ok)}/{len(results)} trials succeeded; most balanced first:\n")
    for r in ok[:10]:
        params = " ".join(f"{k}={v:.3f}" for k, v in r.params.items())
        print(f"score={r.summary.get('balance_score', 0.0):.1f} "
              f"spread={r.summary.get('win_rate_spread', 0.0):.3f} seed={r.seed} {params}")

    print("\nCorrelation with balance score:")
    for name, corr in parameter_sensitivity(results).items():
        print(f"  {name:<20} {corr:+.3f}")


if __name__ == "__main__":
    main()
