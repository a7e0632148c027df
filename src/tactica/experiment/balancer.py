"""
Auto-balancer — searches a parameter space for the best balance score.

Each iteration suggests one parameter set, evaluates it as a small batch
through ``ExperimentRunner.run_batch`` and keeps the best-scoring set seen so
far. Suggestions mix three strategies:

1. Explore: a uniform draw from the whole space
2. Exploit: the best set so far, nudged by up to 10% of each range
3. Recombine: each parameter taken from a past evaluation, weighted by score

Every draw comes from the ``numpy.random.Generator`` handed in, so a search is
reproducible from its seed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from tactica.core.config import SimulationConfig
from tactica.experiment.runner import ExperimentRunner, TrialResult
from tactica.experiment.sampling import ParameterSpace, random_samples, validate_space

logger = logging.getLogger(__name__)

DEFAULT_OBJECTIVE = "balance_score"

# Strategy split for suggestions after the first
EXPLORE_PROBABILITY = 0.3
EXPLOIT_PROBABILITY = 0.4
PERTURBATION_FRACTION = 0.1


@dataclass
class Evaluation:
    """One evaluated parameter set: its score and the trials behind it."""
    iteration: int
    strategy: str
    params: dict[str, float]
    score: float
    trials: list[TrialResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "strategy": self.strategy,
            "params": self.params,
            "score": self.score,
            "trials": [t.to_dict() for t in self.trials],
        }


@dataclass
class OptimizationResult:
    best_params: dict[str, float]
    best_score: float
    history: list[Evaluation]
    sensitivity: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "best_params": self.best_params,
            "best_score": self.best_score,
            "history": [e.to_dict() for e in self.history],
            "sensitivity": self.sensitivity,
        }


class AutoBalancer:
    """
    Iterative parameter search driven by batch trials.

    Args:
        space: parameter name -> inclusive (low, high) range
        rng: generator for every suggestion
        base_config: config the balance parameters are applied to
        mode: trial mode passed to ``run_batch`` ("game" or "skirmish")
        seeds_per_set: trials averaged into each evaluation
        objective: summary key maximised (higher is better)
    """

    def __init__(
        self,
        space: ParameterSpace,
        rng: np.random.Generator,
        base_config: SimulationConfig | None = None,
        mode: str = "skirmish",
        seeds_per_set: int = 1,
        workers: int = 1,
        objective: str = DEFAULT_OBJECTIVE,
        runner: ExperimentRunner | None = None,
    ):
        if not space:
            raise ValueError("Parameter space is empty")
        validate_space(space)
        self.space = dict(space)
        self.rng = rng
        self.base_config = base_config or SimulationConfig()
        self.mode = mode
        self.seeds_per_set = seeds_per_set
        self.workers = workers
        self.objective = objective
        self.runner = runner or ExperimentRunner()
        # Every evaluation reuses the same trial seeds so scores differ only by parameters
        seed = self.base_config.random_seed
        self.trial_seed = int(rng.integers(0, 2**31 - 1)) if seed is None else seed
        self.history: list[Evaluation] = []
        self.best: Evaluation | None = None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def optimize(
        self,
        iterations: int = 20,
        initial_params: dict[str, float] | None = None,
    ) -> OptimizationResult:
        """
        Evaluate the initial set, then ``iterations`` suggestions.

        The initial set defaults to the base config's values for every
        parameter in the space (range midpoint for names it lacks).
        """
        self.history = []
        self.best = None
        initial = self._clamp(initial_params or self._initial_params())
        self.evaluate(initial, "initial")

        for i in range(iterations):
            strategy, params = self.suggest()
            evaluation = self.evaluate(params, strategy)
            logger.info(
                "Iteration %d/%d (%s): score %.2f, best %.2f",
                i + 1, iterations, strategy, evaluation.score, self.best.score,
            )

        logger.info("Best %s %.2f with %s", self.objective, self.best.score, self.best.params)
        return OptimizationResult(
            best_params=dict(self.best.params),
            best_score=self.best.score,
            history=list(self.history),
            sensitivity=history_sensitivity(self.history, list(self.space)),
        )

    def suggest(self) -> tuple[str, dict[str, float]]:
        """Next parameter set and the strategy that produced it."""
        if len(self.history) <= 1 or self.best is None:
            return "explore", self._explore()
        draw = self.rng.random()
        if draw < EXPLORE_PROBABILITY:
            return "explore", self._explore()
        if draw < EXPLORE_PROBABILITY + EXPLOIT_PROBABILITY:
            return "exploit", self._perturb_best()
        return "recombine", self._recombine()

    def evaluate(self, params: dict[str, float], strategy: str = "manual") -> Evaluation:
        """
        Run ``seeds_per_set`` trials of ``params`` and record their mean score.

        Failed trials are left out of the mean; a set whose trials all fail
        scores 0.
        """
        trials = self.runner.run_batch(
            [params], self.seeds_per_set, self.workers, self._trial_config(), self.mode,
        )
        scores = [t.summary.get(self.objective, 0.0) for t in trials if t.ok]
        if not scores:
            logger.warning("Every trial failed for %s", params)
        evaluation = Evaluation(
            iteration=len(self.history),
            strategy=strategy,
            params=dict(params),
            score=float(np.mean(scores)) if scores else 0.0,
            trials=trials,
        )
        self.history.append(evaluation)
        if self.best is None or evaluation.score > self.best.score:
            self.best = evaluation
        return evaluation

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def _explore(self) -> dict[str, float]:
        return random_samples(self.space, 1, self.rng)[0]

    def _perturb_best(self) -> dict[str, float]:
        out: dict[str, float] = {}
        for name, (low, high) in self.space.items():
            nudge = self.rng.uniform(-1.0, 1.0) * (high - low) * PERTURBATION_FRACTION
            out[name] = self.best.params[name] + nudge
        return self._clamp(out)

    def _recombine(self) -> dict[str, float]:
        weights = np.array([(e.score / 100.0) ** 2 for e in self.history])
        if weights.sum() <= 0:
            weights = np.ones(len(self.history))
        probs = weights / weights.sum()
        out: dict[str, float] = {}
        for name in self.space:
            donor = self.history[int(self.rng.choice(len(self.history), p=probs))]
            out[name] = donor.params[name]
        return self._clamp(out)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _initial_params(self) -> dict[str, float]:
        base = self.base_config.to_dict()
        out: dict[str, float] = {}
        for name, (low, high) in self.space.items():
            value = base.get(name)
            numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
            out[name] = float(value) if numeric else (low + high) / 2
        return out

    def _clamp(self, params: dict[str, float]) -> dict[str, float]:
        return {
            name: float(np.clip(params[name], low, high))
            for name, (low, high) in self.space.items()
        }

    def _trial_config(self) -> SimulationConfig:
        config = SimulationConfig.from_dict(self.base_config.to_dict())
        config.random_seed = self.trial_seed
        return config


# ----------------------------------------------------------------------
# Sensitivity analysis
# ----------------------------------------------------------------------
def history_sensitivity(history: list[Evaluation], names: list[str]) -> dict[str, float]:
    """
    Mean absolute score change per unit parameter change between consecutive
    evaluations. Pairs where a parameter did not move are skipped for it.
    """
    ratios: dict[str, list[float]] = {name: [] for name in names}
    for prev, curr in zip(history, history[1:]):
        delta_score = curr.score - prev.score
        for name in names:
            delta = curr.params[name] - prev.params[name]
            if abs(delta) > 1e-9:
                ratios[name].append(abs(delta_score / delta))
    return {name: float(np.mean(r)) if r else 0.0 for name, r in ratios.items()}


def parameter_sensitivity(
    results: list[TrialResult],
    metric: str = DEFAULT_OBJECTIVE,
) -> dict[str, float]:
    """
    Pearson correlation of each parameter with ``metric`` over batch results.

    Only successful trials that report the metric count. A parameter that
    never varies (or too few trials) correlates 0. Sorted by absolute
    correlation, strongest first.
    """
    usable = [r for r in results if r.ok and metric in r.summary]
    names = sorted({name for r in usable for name in r.params})

    out: dict[str, float] = {}
    for name in names:
        rows = [(r.params[name], r.summary[metric]) for r in usable if name in r.params]
        if len(rows) < 2:
            out[name] = 0.0
            continue
        x, y = np.array(rows, dtype=float).T
        if np.ptp(x) == 0 or np.ptp(y) == 0:
            out[name] = 0.0
            continue
        out[name] = float(np.corrcoef(x, y)[0, 1])
    return dict(sorted(out.items(), key=lambda kv: -abs(kv[1])))
