"""
Experiment Runner — battle, economy and full-game trials, parameter sweeps,
and batch execution.

One trial owns one ``numpy.random.Generator`` seeded from its config; every
stochastic call inside the trial draws from it, so a trial is reproducible
from ``(config, seed)`` alone. Batch trials share nothing and can run in
worker processes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from tactica.core.combat import DRAW, BattleState, CombatResolver, Team
from tactica.core.config import SimulationConfig
from tactica.core.economy import EconomyEngine, EconomyPhase, EconomyState, Player
from tactica.core.market import MarketItem
from tactica.core.terrain import TerrainMap
from tactica.core.unit import Position, Unit
from tactica.experiment.player import SyntheticPlayer
from tactica.experiment.presets import UNIT_TEMPLATES, build_roster, build_unit, default_catalog
from tactica.experiment.sampling import ParameterSpace, sample
from tactica.metrics.collector import BattleMetrics, MetricsCollector, RoundMetrics

logger = logging.getLogger(__name__)

# Market trader profile used for each archetype's background trading
ARCHETYPE_PROFILES = {
    "aggressive": "aggressive",
    "economy": "economy",
    "balanced": "economy",
    "flexible": "flipper",
    "conservative": "hoarder",
    "opportunist": "flipper",
}

TRIAL_MODES = ("game", "skirmish")


@dataclass
class BattleResult:
    """Result of a single battle."""
    state: BattleState
    metrics: BattleMetrics


@dataclass
class EconomyResult:
    """Result of an economy-only run (no battles)."""
    final_state: EconomyState
    rounds: list[RoundMetrics]
    decisions: list[dict[str, Any]]


@dataclass
class GameResult:
    """Result of a full game: economy rounds alternating with battles."""
    config: SimulationConfig
    final_state: EconomyState
    rounds: list[RoundMetrics]
    battles: list[BattleMetrics]
    standings: dict[str, int]  # player id -> final rank
    summary: dict[str, float]


@dataclass
class TrialResult:
    """One batch trial, reduced to its summary mapping."""
    params: dict[str, float]
    seed: int | None
    summary: dict[str, float] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "params": self.params,
            "seed": self.seed,
            "summary": self.summary,
            "error": self.error,
        }


class ExperimentRunner:
    """
    Run, sweep and batch simulation trials.
    """

    # ------------------------------------------------------------------
    # Single trials
    # ------------------------------------------------------------------
    def run_battle(
        self,
        config: SimulationConfig,
        roster_a: list[Unit] | list[str],
        roster_b: list[Unit] | list[str],
        terrain: TerrainMap | None = None,
        rng: np.random.Generator | None = None,
    ) -> BattleResult:
        """Fight one battle. Rosters may be units or unit type names."""
        rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        resolver = CombatResolver(config, rng)
        resolver.initialize(
            self._as_units(roster_a, "a", config, column=0),
            self._as_units(roster_b, "b", config, column=config.grid_width - 1),
            terrain,
        )
        state = resolver.run()
        return BattleResult(state=state, metrics=MetricsCollector().collect_battle(state))

    def run_skirmishes(
        self,
        config: SimulationConfig,
        n_battles: int = 20,
        rng: np.random.Generator | None = None,
    ) -> MetricsCollector:
        """Battles between random compositions of ``board_size`` units."""
        rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        types = list(UNIT_TEMPLATES)
        collector = MetricsCollector()
        for _ in range(n_battles):
            comp_a = [types[int(i)] for i in rng.integers(len(types), size=config.board_size)]
            comp_b = [types[int(i)] for i in rng.integers(len(types), size=config.board_size)]
            result = self.run_battle(config, comp_a, comp_b, rng=rng)
            collector.battles.append(result.metrics)
        return collector

    def run_economy(
        self,
        config: SimulationConfig,
        rounds: int | None = None,
        items: list[MarketItem] | None = None,
        rng: np.random.Generator | None = None,
    ) -> EconomyResult:
        """Economy rounds with synthetic decisions and market activity, no battles."""
        rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        engine = self.new_economy(config, items, rng)
        players = self.synthetic_players(engine, config, rng)
        collector = MetricsCollector()
        decisions: list[dict[str, Any]] = []

        for _ in range(rounds or config.rounds_to_run):
            income = engine.start_round()
            collector.collect_round(engine.get_state(), income)
            decisions.extend(self.play_shopping_phase(engine, players, config))

        return EconomyResult(
            final_state=engine.get_state(), rounds=collector.rounds, decisions=decisions,
        )

    def run_game(
        self,
        config: SimulationConfig,
        items: list[MarketItem] | None = None,
        rng: np.random.Generator | None = None,
    ) -> GameResult:
        """
        Full game loop. Each round:

        1. Economy round (income, repricing, shop rolls)
        2. Shopping phase: synthetic decisions and background market trading
        3. Combat phase: players paired at random, boards fight, streaks update
        """
        rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        engine = self.new_economy(config, items, rng)
        players = self.synthetic_players(engine, config, rng)
        collector = MetricsCollector()

        for _ in range(config.rounds_to_run):
            self.play_round(engine, players, config, rng, collector)

        final = engine.get_state()
        return GameResult(
            config=config,
            final_state=final,
            rounds=collector.rounds,
            battles=collector.battles,
            standings={p.id: p.rank for p in final.players},
            summary=collector.summary(),
        )

    def run_trial(
        self,
        config: SimulationConfig,
        mode: str = "game",
    ) -> dict[str, float]:
        """Run one trial and reduce it to its summary mapping."""
        if mode == "game":
            return self.run_game(config).summary
        if mode == "skirmish":
            return self.run_skirmishes(config).summary()
        raise ValueError(f"Unknown trial mode '{mode}'. Available: {list(TRIAL_MODES)}")

    # ------------------------------------------------------------------
    # Sweeps & batches
    # ------------------------------------------------------------------
    def run_parameter_sweep(
        self,
        base_config: SimulationConfig,
        param_name: str,
        values: list[Any],
        mode: str = "game",
    ) -> dict[str, TrialResult]:
        """
        Sweep a single parameter across multiple values.

        Returns:
            Dict mapping value label -> TrialResult
        """
        results: dict[str, TrialResult] = {}
        for val in values:
            config_dict = base_config.to_dict()
            config_dict[param_name] = val
            config_dict["experiment_name"] = f"sweep_{param_name}={val}"
            config = SimulationConfig.from_dict(config_dict)

            label = f"{param_name}={val}"
            results[label] = TrialResult(
                params={param_name: val},
                seed=config.random_seed,
                summary=self.run_trial(config, mode),
            )
        return results

    def run_multi_seed(
        self,
        config: SimulationConfig,
        seeds: list[int],
        mode: str = "game",
    ) -> list[TrialResult]:
        """
        Run the same configuration with multiple random seeds.

        Useful for measuring variance in outcomes.
        """
        results: list[TrialResult] = []
        for seed in seeds:
            config_dict = config.to_dict()
            config_dict["random_seed"] = seed
            config_dict["experiment_name"] = f"{config.experiment_name}_seed{seed}"
            seed_config = SimulationConfig.from_dict(config_dict)
            results.append(TrialResult(
                params=config.balance_parameters(),
                seed=seed,
                summary=self.run_trial(seed_config, mode),
            ))
        return results

    def run_batch(
        self,
        param_sets: list[dict[str, float]],
        seeds_per_set: int = 1,
        workers: int = 1,
        base_config: SimulationConfig | None = None,
        mode: str = "game",
    ) -> list[TrialResult]:
        """
        Run every parameter set under ``seeds_per_set`` seeds.

        Trial ``k`` of set ``i`` uses seed ``base_seed + i * seeds_per_set + k``.
        With ``workers > 1`` trials run in a process pool; results always come
        back in submission order. A failing trial is reported with its error
        instead of aborting the batch.
        """
        if mode not in TRIAL_MODES:
            raise ValueError(f"Unknown trial mode '{mode}'. Available: {list(TRIAL_MODES)}")
        base = base_config or SimulationConfig()
        base_seed = base.random_seed or 0
        base_dict = base.to_dict()

        tasks = [
            (base_dict, params, base_seed + i * seeds_per_set + k, mode)
            for i, params in enumerate(param_sets)
            for k in range(seeds_per_set)
        ]
        logger.info("Running batch of %d trials (%d workers)", len(tasks), workers)

        if workers <= 1:
            results = []
            for n, task in enumerate(tasks):
                try:
                    results.append(_run_trial_task(*task))
                except Exception as e:
                    logger.exception("Trial %d (seed %d) failed", n, task[2])
                    results.append(TrialResult(params=task[1], seed=task[2], error=str(e)))
                if n % 10 == 0:
                    logger.info("Completed %d/%d trials", n + 1, len(tasks))
            return results

        results_by_idx: list[TrialResult | None] = [None] * len(tasks)
        with ProcessPoolExecutor(max_workers=workers) as executor:
            future_to_idx = {
                executor.submit(_run_trial_task, *task): i for i, task in enumerate(tasks)
            }
            for future in as_completed(future_to_idx):
                idx = future_to_idx[future]
                _, params, seed, _ = tasks[idx]
                try:
                    results_by_idx[idx] = future.result()
                except Exception as e:
                    logger.exception("Trial %d (seed %d) failed in worker", idx, seed)
                    results_by_idx[idx] = TrialResult(params=params, seed=seed, error=str(e))
        return [r for r in results_by_idx if r is not None]

    def sample_and_run(
        self,
        space: ParameterSpace,
        n: int,
        method: str = "low_discrepancy",
        seeds_per_set: int = 1,
        workers: int = 1,
        base_config: SimulationConfig | None = None,
        mode: str = "game",
    ) -> list[TrialResult]:
        """Sample ``n`` parameter sets from ``space`` and batch-run them."""
        base = base_config or SimulationConfig()
        param_sets = sample(space, n, method, np.random.default_rng(base.random_seed))
        return self.run_batch(param_sets, seeds_per_set, workers, base, mode)

    # ------------------------------------------------------------------
    # Game loop pieces (also driven step-by-step by API sessions)
    # ------------------------------------------------------------------
    def play_round(
        self,
        engine: EconomyEngine,
        players: dict[str, SyntheticPlayer],
        config: SimulationConfig,
        rng: np.random.Generator,
        collector: MetricsCollector,
    ) -> None:
        """One full-game round: economy, shopping, then pairwise battles."""
        income = engine.start_round()
        collector.collect_round(engine.get_state(), income)
        self.play_shopping_phase(engine, players, config)

        engine.set_phase(EconomyPhase.COMBAT)
        order = [list(engine.players)[int(i)] for i in rng.permutation(len(engine.players))]
        for a_id, b_id in zip(order[::2], order[1::2]):
            self._play_match(engine, a_id, b_id, config, rng, collector)

    @staticmethod
    def _as_units(
        roster: list[Unit] | list[str], prefix: str, config: SimulationConfig, column: int,
    ) -> list[Unit]:
        if all(isinstance(u, str) for u in roster):
            return build_roster(list(roster), prefix, config=config, column=column)
        return list(roster)

    @staticmethod
    def new_economy(
        config: SimulationConfig,
        items: list[MarketItem] | None,
        rng: np.random.Generator,
    ) -> EconomyEngine:
        engine = EconomyEngine(config, items if items is not None else default_catalog(), rng)
        for i, archetype in enumerate(config.players):
            engine.create_player(f"p{i}", archetype=archetype, name=f"{archetype} #{i}")
        return engine

    @staticmethod
    def synthetic_players(
        engine: EconomyEngine, config: SimulationConfig, rng: np.random.Generator,
    ) -> dict[str, SyntheticPlayer]:
        return {
            pid: SyntheticPlayer(p.archetype, rng, config)
            for pid, p in engine.players.items()
        }

    @staticmethod
    def play_shopping_phase(
        engine: EconomyEngine,
        players: dict[str, SyntheticPlayer],
        config: SimulationConfig,
    ) -> list[dict[str, Any]]:
        """Let every player act until it saves or runs out of actions."""
        engine.set_phase(EconomyPhase.SHOPPING)
        log: list[dict[str, Any]] = []
        for pid, bot in players.items():
            player = engine.players[pid]
            for _ in range(config.max_actions_per_round):
                decision = bot.decide(player.gold, player.level, list(player.shop))
                applied = engine.apply_decision(pid, decision)
                log.append({
                    "round": engine.round, "player": pid, "applied": applied,
                    **decision.to_dict(),
                })
                if decision.action.value == "save" or not applied:
                    break
            engine.market.simulate_activity(ARCHETYPE_PROFILES.get(player.archetype, "economy"), pid)
        return log

    def _play_match(
        self,
        engine: EconomyEngine,
        a_id: str,
        b_id: str,
        config: SimulationConfig,
        rng: np.random.Generator,
        collector: MetricsCollector,
    ) -> None:
        board_a = self._board(engine.players[a_id], config, column=0)
        board_b = self._board(engine.players[b_id], config, column=config.grid_width - 1)
        if not board_a and not board_b:
            return
        if not board_a or not board_b:
            winner = a_id if board_a else b_id
            engine.update_player_status(winner, True)
            engine.update_player_status(b_id if winner == a_id else a_id, False)
            return

        result = self.run_battle(config, board_a, board_b, rng=rng)
        collector.battles.append(result.metrics)
        if result.state.winner == DRAW:
            return
        alpha_won = result.state.winner == Team.ALPHA.value
        engine.update_player_status(a_id, alpha_won)
        engine.update_player_status(b_id, not alpha_won)

    @staticmethod
    def _board(player: Player, config: SimulationConfig, column: int) -> list[Unit]:
        """The player's strongest ``board_size`` units as fresh combatants."""
        best = sorted(player.units, key=lambda u: -u.level)[:config.board_size]
        return [
            build_unit(u.unit_type, u.id, u.level, config, Position(column, row),
                       name=f"{player.name} {u.unit_type}")
            for row, u in enumerate(best)
        ]


def _run_trial_task(
    config_dict: dict[str, Any],
    params: dict[str, float],
    seed: int,
    mode: str,
) -> TrialResult:
    """Module-level so it can be pickled into worker processes."""
    config = SimulationConfig.from_dict(config_dict).with_balance(params)
    config.random_seed = seed
    return TrialResult(
        params=dict(params),
        seed=seed,
        summary=ExperimentRunner().run_trial(config, mode),
    )
