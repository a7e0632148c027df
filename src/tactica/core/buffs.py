"""
Buff/status engine — timed stat-modifying effects attached to a unit.

Stacking rule: re-applying a stackable effect from the same (source, name)
multiplies the *existing* magnitude and deltas by the stack factor, so
repeated identical buffs compound geometrically rather than summing.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tactica.core.stats import Stat, parse_stat_deltas

DEFAULT_STACK_FACTOR = 1.2


class EffectType(str, Enum):
    BENEFICIAL = "beneficial"
    HARMFUL = "harmful"


@dataclass
class StatusEffect:
    """A timed modifier identified by its (source, name) pair."""
    name: str
    source: str
    effect_type: EffectType
    magnitude: float
    duration: int
    stackable: bool = False
    deltas: dict[Stat, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.effect_type = EffectType(self.effect_type)
        self.deltas = parse_stat_deltas(self.deltas)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "effect_type": self.effect_type.value,
            "magnitude": self.magnitude,
            "duration": self.duration,
            "stackable": self.stackable,
            "deltas": {s.value: v for s, v in self.deltas.items()},
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> StatusEffect:
        return cls(**d)


class BuffStack:
    """Ordered collection of status effects on one unit."""

    def __init__(
        self,
        effects: list[StatusEffect] | None = None,
        stack_factor: float = DEFAULT_STACK_FACTOR,
    ):
        self.stack_factor = stack_factor
        self._effects: list[StatusEffect] = [copy.deepcopy(e) for e in effects or []]

    def add_effect(self, effect: StatusEffect) -> StatusEffect:
        """Add or merge an effect; returns the entry now held."""
        existing = self._find(effect.key)
        if existing is not None and existing.stackable:
            existing.duration = max(existing.duration, effect.duration)
            existing.magnitude *= self.stack_factor
            for stat in existing.deltas:
                existing.deltas[stat] *= self.stack_factor
            return existing
        if existing is not None:
            existing.duration = effect.duration
            return existing
        added = copy.deepcopy(effect)
        self._effects.append(added)
        return added

    def active_effects(self) -> list[StatusEffect]:
        return [e for e in self._effects if e.duration > 0]

    def apply_to(self, base_stats: dict[Stat, float]) -> dict[Stat, float]:
        """Sum every active delta onto a copy of ``base_stats``."""
        modified = dict(base_stats)
        for effect in self.active_effects():
            for stat, delta in effect.deltas.items():
                if stat in modified:
                    modified[stat] += delta
        return modified

    def tick(self) -> list[StatusEffect]:
        """Advance one round; returns the effects that expired."""
        for effect in self._effects:
            effect.duration -= 1
        expired = [e for e in self._effects if e.duration <= 0]
        self._effects = [e for e in self._effects if e.duration > 0]
        return expired

    def clear(self) -> None:
        self._effects = []

    def _find(self, key: tuple[str, str]) -> StatusEffect | None:
        for e in self._effects:
            if e.key == key:
                return e
        return None

    def __len__(self) -> int:
        return len(self._effects)

    def __iter__(self):
        return iter(self._effects)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BuffStack):
            return NotImplemented
        return self._effects == other._effects and self.stack_factor == other.stack_factor

    def to_dict(self) -> dict[str, Any]:
        return {
            "stack_factor": self.stack_factor,
            "effects": [e.to_dict() for e in self._effects],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BuffStack:
        return cls(
            effects=[StatusEffect.from_dict(e) for e in d.get("effects", [])],
            stack_factor=d.get("stack_factor", DEFAULT_STACK_FACTOR),
        )
