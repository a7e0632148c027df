"""
In-memory session manager for battles and full games.

A battle session wraps one ``CombatResolver``; a game session wraps one
``EconomyEngine`` plus its synthetic players and metrics. Each session owns
its own seeded generator. Sessions live only as long as the process.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any

import numpy as np

from tactica.core.combat import BattleState, CombatResolver
from tactica.core.config import SimulationConfig
from tactica.core.economy import EconomyEngine
from tactica.core.terrain import TerrainMap
from tactica.core.unit import Unit
from tactica.experiment.player import SyntheticPlayer
from tactica.experiment.presets import build_roster
from tactica.experiment.runner import ExperimentRunner
from tactica.metrics.collector import MetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 100


@dataclass
class BattleSession:
    id: str
    name: str
    config: SimulationConfig
    resolver: CombatResolver

    @property
    def status(self) -> str:
        return self.resolver.state.status.value


@dataclass
class GameSession:
    id: str
    name: str
    config: SimulationConfig
    engine: EconomyEngine
    players: dict[str, SyntheticPlayer]
    collector: MetricsCollector
    rng: np.random.Generator
    max_rounds: int = 0

    @property
    def status(self) -> str:
        if self.engine.round == 0:
            return "created"
        return "completed" if self.engine.round >= self.max_rounds else "running"


class SessionManager:
    """Holds battle and game sessions, bounded by ``max_sessions`` in total."""

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.max_sessions = max_sessions
        self.battles: dict[str, BattleSession] = {}
        self.games: dict[str, GameSession] = {}
        self._lock = threading.Lock()
        self._runner = ExperimentRunner()

    # ------------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------------
    def create_battle(
        self,
        roster_a: list[str] | list[dict[str, Any]],
        roster_b: list[str] | list[dict[str, Any]],
        config: SimulationConfig | None = None,
        name: str | None = None,
        terrain: TerrainMap | None = None,
    ) -> BattleSession:
        """
        Start a battle. Rosters are unit type names or serialized units.

        Raises ValueError for malformed rosters or when the session limit is hit.
        """
        config = config or SimulationConfig()
        rng = np.random.default_rng(config.random_seed)
        resolver = CombatResolver(config, rng)
        resolver.initialize(
            self._roster(roster_a, "a", config, 0),
            self._roster(roster_b, "b", config, config.grid_width - 1),
            terrain,
        )
        session = BattleSession(
            id=uuid.uuid4().hex[:12],
            name=name or f"battle-{resolver.state.id}",
            config=config,
            resolver=resolver,
        )
        self._add(self.battles, session)
        return session

    def restore_battle(
        self,
        state: dict[str, Any],
        config: SimulationConfig | None = None,
        name: str | None = None,
    ) -> BattleSession:
        """Open a new session resuming a serialized battle snapshot."""
        config = config or SimulationConfig()
        resolver = CombatResolver.from_state(
            BattleState.from_dict(state), config, np.random.default_rng(config.random_seed),
        )
        session = BattleSession(
            id=uuid.uuid4().hex[:12],
            name=name or f"restored-{resolver.state.id}",
            config=config,
            resolver=resolver,
        )
        self._add(self.battles, session)
        return session

    def get_battle(self, session_id: str) -> BattleSession:
        """Raises KeyError if not found."""
        session = self.battles.get(session_id)
        if session is None:
            raise KeyError(f"Battle session '{session_id}' not found")
        return session

    def step_battle(self, session_id: str, n: int = 1) -> BattleSession:
        session = self.get_battle(session_id)
        for _ in range(n):
            if not session.resolver.step():
                break
        return session

    def run_battle(self, session_id: str) -> BattleSession:
        session = self.get_battle(session_id)
        session.resolver.run()
        return session

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------
    def create_game(
        self,
        config: SimulationConfig | None = None,
        name: str | None = None,
    ) -> GameSession:
        config = config or SimulationConfig()
        rng = np.random.default_rng(config.random_seed)
        engine = self._runner.new_economy(config, None, rng)
        session = GameSession(
            id=uuid.uuid4().hex[:12],
            name=name or config.experiment_name,
            config=config,
            engine=engine,
            players=self._runner.synthetic_players(engine, config, rng),
            collector=MetricsCollector(),
            rng=rng,
            max_rounds=config.rounds_to_run,
        )
        self._add(self.games, session)
        return session

    def get_game(self, session_id: str) -> GameSession:
        """Raises KeyError if not found."""
        session = self.games.get(session_id)
        if session is None:
            raise KeyError(f"Game session '{session_id}' not found")
        return session

    def step_game(self, session_id: str, n: int = 1) -> GameSession:
        """Play ``n`` full rounds (never past the configured round count)."""
        session = self.get_game(session_id)
        for _ in range(n):
            if session.engine.round >= session.max_rounds:
                break
            self._runner.play_round(
                session.engine, session.players, session.config, session.rng, session.collector,
            )
        return session

    def run_game(self, session_id: str) -> GameSession:
        session = self.get_game(session_id)
        return self.step_game(session_id, session.max_rounds - session.engine.round)

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------
    def delete_session(self, session_id: str) -> None:
        with self._lock:
            if self.battles.pop(session_id, None) is not None:
                return
            if self.games.pop(session_id, None) is not None:
                return
        raise KeyError(f"Session '{session_id}' not found")

    def list_sessions(self) -> list[dict[str, Any]]:
        out = [
            {"id": s.id, "name": s.name, "kind": "battle", "status": s.status,
             "round": s.resolver.state.round}
            for s in self.battles.values()
        ]
        out.extend(
            {"id": s.id, "name": s.name, "kind": "game", "status": s.status,
             "round": s.engine.round}
            for s in self.games.values()
        )
        return out

    def __len__(self) -> int:
        return len(self.battles) + len(self.games)

    def _add(self, bucket: dict[str, Any], session: BattleSession | GameSession) -> None:
        with self._lock:
            if len(self) >= self.max_sessions:
                raise ValueError(f"Session limit reached ({self.max_sessions})")
            bucket[session.id] = session
        logger.info("Created session %s (%s)", session.id, session.name)

    @staticmethod
    def _roster(
        roster: list[str] | list[dict[str, Any]],
        prefix: str,
        config: SimulationConfig,
        column: int,
    ) -> list[Unit]:
        if all(isinstance(u, str) for u in roster):
            try:
                return build_roster(list(roster), prefix, config=config, column=column)
            except KeyError as e:
                raise ValueError(str(e.args[0])) from e
        try:
            return [Unit.from_dict(u) for u in roster]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed unit in roster: {e}") from e

