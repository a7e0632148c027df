"""
Closed vocabularies shared by the combat model.

Stat identifiers, skill effect kinds and target shapes are enums so an
unknown stat name fails when an effect is built, not silently at apply time.
"""

from __future__ import annotations

from enum import Enum


class Stat(str, Enum):
    """Numeric unit attributes that items and status effects may modify."""

    MAX_HP = "max_hp"
    MAX_MANA = "max_mana"
    ATTACK = "attack"
    DEFENSE = "defense"
    MAGIC_POWER = "magic_power"
    MAGIC_RESISTANCE = "magic_resistance"
    SPEED = "speed"
    CRIT_RATE = "crit_rate"
    CRIT_MULTIPLIER = "crit_multiplier"

    @classmethod
    def parse(cls, name: str | Stat) -> Stat:
        """Resolve a stat from its name. Raises ValueError for unknown names."""
        if isinstance(name, Stat):
            return name
        try:
            return cls(name)
        except ValueError:
            raise ValueError(
                f"Unknown stat: '{name}'. Available: {[s.value for s in cls]}"
            ) from None


def parse_stat_deltas(deltas: dict) -> dict[Stat, float]:
    """Validate a free-form ``{stat: delta}`` mapping into a closed one."""
    return {Stat.parse(k): float(v) for k, v in deltas.items()}


class EffectKind(str, Enum):
    """Secondary effects a skill can carry."""

    DAMAGE = "damage"
    HEAL = "heal"
    BUFF = "buff"
    DEBUFF = "debuff"
    STUN = "stun"
    MOVEMENT = "movement"


class TargetShape(str, Enum):
    SINGLE = "single"
    AREA = "area"
    ALL = "all"
    SELF = "self"
    ALLY = "ally"

    @property
    def is_supportive(self) -> bool:
        return self in (TargetShape.SELF, TargetShape.ALLY)


class UnitType(str, Enum):
    WARRIOR = "Warrior"
    MAGE = "Mage"
    ARCHER = "Archer"
    KNIGHT = "Knight"
    PRIEST = "Priest"
    ASSASSIN = "Assassin"
    MERCHANT = "Merchant"
