"""
Synthetic player policy.

A fixed-priority rule chain over an archetype's parameters:

  1. save: gold below the archetype's save threshold
  2. level up: affordable and a draw lands under the level-up threshold
  3. buy: a preferred unit is offered, affordable, and a draw lands
     under the buy ratio (the unit itself is chosen uniformly)
  4. reroll: affordable and a draw lands under the reroll rate
  5. save: fallback

Every decision records which rule fired so batch results stay explainable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from tactica.core.config import SimulationConfig
from tactica.experiment.archetypes import ArchetypeDefinition, get_archetype


class Action(str, Enum):
    BUY = "buy"
    REROLL = "reroll"
    LEVEL_UP = "levelup"
    SAVE = "save"


@dataclass(frozen=True)
class Decision:
    action: Action
    unit_type: str | None = None
    rule: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "unit_type": self.unit_type, "rule": self.rule}


class SyntheticPlayer:
    """Decides one action per call from gold, level and the current shop offer."""

    def __init__(
        self,
        archetype: ArchetypeDefinition | str,
        rng: np.random.Generator | None = None,
        config: SimulationConfig | None = None,
    ):
        if isinstance(archetype, str):
            archetype = get_archetype(archetype)
        self.archetype = archetype
        self.rng = rng if rng is not None else np.random.default_rng()
        self.config = config or SimulationConfig()

    def decide(self, gold: int, level: int, available_units: list[str]) -> Decision:
        arch = self.archetype
        cfg = self.config

        if gold < arch.save_gold_threshold:
            return Decision(Action.SAVE, rule="below_save_threshold")

        if self.rng.random() < arch.level_up_threshold and gold >= cfg.level_up_cost:
            return Decision(Action.LEVEL_UP, rule="level_up")

        preferred = [u for u in available_units if u in arch.preferred_units]
        if preferred and self.rng.random() < arch.buy_unit_ratio and gold >= cfg.unit_cost:
            pick = preferred[int(self.rng.integers(len(preferred)))]
            return Decision(Action.BUY, unit_type=pick, rule="buy_preferred")

        if self.rng.random() < arch.reroll_rate and gold >= cfg.reroll_cost:
            return Decision(Action.REROLL, rule="reroll")

        return Decision(Action.SAVE, rule="default_save")
