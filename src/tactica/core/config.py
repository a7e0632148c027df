"""
Master configuration for the Tactica simulation core.

Every engine receives a ``SimulationConfig`` at construction; there is no
process-wide "current configuration".
"""

from __future__ import annotations

import copy
import json
import logging
import numbers
from dataclasses import MISSING, dataclass, field, fields
from typing import Any

logger = logging.getLogger(__name__)

# Balance parameters that batch sweeps are allowed to override.
BALANCE_PARAMETERS = (
    "physical_defense",
    "magic_resistance",
    "critical_rate",
    "healing_efficiency",
    "gold_scaling",
    "interest_rate",
)


@dataclass
class SimulationConfig:
    """
    Master configuration: combat constants, balance parameters, economy and
    market settings for one trial.

    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison.
    """

    # === Experiment identity ===
    experiment_name: str = "default"
    random_seed: int | None = None

    # === Combat ===
    max_rounds: int = 50
    skill_mana_threshold: int = 50
    mana_regen_fraction: float = 0.1
    buff_stack_factor: float = 1.2
    grid_width: int = 8
    grid_height: int = 6
    terrain_enabled: bool = False  # False: battles fight on plain terrain

    # === Balance parameters (flat numeric surface for sweeps) ===
    # physical_defense / magic_resistance: damage reduction gained per unit level
    # critical_rate: crit chance given to units built from templates
    physical_defense: float = 0.035
    magic_resistance: float = 0.028
    critical_rate: float = 0.15
    healing_efficiency: float = 1.0
    gold_scaling: float = 1.2
    interest_rate: float = 0.1

    # === Economy ===
    starting_gold: int = 10
    interest_cap: int = 5
    level_costs: list[int] = field(default_factory=lambda: [2, 6, 10, 20, 36, 56, 80, 100])
    level_up_cost: int = 4
    reroll_cost: int = 2
    unit_cost: int = 3
    shop_size: int = 5
    unit_pool_size: dict[str, int] = field(default_factory=lambda: {
        "Warrior": 29, "Mage": 22, "Archer": 22, "Knight": 18,
        "Priest": 18, "Assassin": 13, "Merchant": 10,
    })
    item_pool_size: dict[str, int] = field(default_factory=lambda: {
        "unit": 10, "equipment": 6, "consumable": 12, "upgrade": 3,
    })
    round_income: dict[str, int] = field(default_factory=lambda: {
        "base": 5, "win_bonus": 1, "lose_bonus": 1,
    })
    streak_bonus: dict[str, list[int]] = field(default_factory=lambda: {
        "win": [1, 2, 3, 4],
        "lose": [1, 2, 2, 3],
    })
    selling_return: float = 0.7

    # === Market ===
    market_volatility: float = 0.05
    price_jitter: float = 0.01
    reprice_every: int = 5
    price_history_window: int = 10
    price_floor_ratio: float = 0.5
    price_ceiling_ratio: float = 2.0

    # === Full-game trials ===
    rounds_to_run: int = 20
    players: list[str] = field(default_factory=lambda: [
        "aggressive", "economy", "balanced", "flexible",
    ])
    max_actions_per_round: int = 6
    board_size: int = 5

    # === Invariants ===
    # True: raise InvariantViolation; False: clamp and log.
    strict_invariants: bool = False

    def __post_init__(self) -> None:
        """Reject values whose type does not match the field's default."""
        for f in fields(self):
            value = getattr(self, f.name)
            default = f.default if f.default is not MISSING else f.default_factory()
            if default is None:
                ok = value is None or isinstance(value, numbers.Integral)
            elif isinstance(default, bool):
                ok = isinstance(value, bool)
            elif isinstance(default, (int, float)):
                ok = isinstance(value, numbers.Real) and not isinstance(value, bool)
            else:
                ok = isinstance(value, type(default))
            if not ok:
                raise TypeError(
                    f"Config field '{f.name}' expects {type(default).__name__}, got {value!r}"
                )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if k.startswith("_"):
                continue
            d[k] = v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SimulationConfig:
        """Deserialize from a dict."""
        return cls(**{k: v for k, v in d.items() if not k.startswith("_")})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_json(cls, s: str) -> SimulationConfig:
        return cls.from_dict(json.loads(s))

    def diff(self, other: SimulationConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs

    def balance_parameters(self) -> dict[str, float]:
        """The flat balance-parameter mapping for this config."""
        return {name: float(getattr(self, name)) for name in BALANCE_PARAMETERS}

    def with_balance(self, params: dict[str, float]) -> SimulationConfig:
        """
        Return a copy with balance parameters overridden.

        Sampled parameter sets may carry names this engine does not know
        about; those are skipped with a warning so a batch keeps running.
        """
        d = copy.deepcopy(self.to_dict())
        known = {f.name for f in fields(self)}
        for name, value in params.items():
            if name in BALANCE_PARAMETERS or (
                name in known and isinstance(d[name], (int, float))
                and not isinstance(d[name], bool)
            ):
                d[name] = int(round(value)) if isinstance(d[name], int) else float(value)
            else:
                logger.warning("Ignoring unknown balance parameter '%s'", name)
        return SimulationConfig.from_dict(d)
