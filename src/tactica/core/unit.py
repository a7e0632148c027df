"""
Combat unit model: units, skills, skill effects and carried items.

Units carry their own ``BuffStack`` and full vitals; everything here is plain
data plus small derived-stat helpers used by the combat resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tactica.core.buffs import BuffStack
from tactica.core.stats import EffectKind, Stat, TargetShape, parse_stat_deltas


@dataclass
class Position:
    x: int = 0
    y: int = 0

    def distance(self, other: Position) -> int:
        """Chebyshev distance (8-neighbour grid)."""
        return max(abs(self.x - other.x), abs(self.y - other.y))


@dataclass
class SkillEffect:
    """
    A secondary effect of a skill.

    ``stat`` is required for buff/debuff and names the stat modified by
    ``value`` for ``duration`` rounds. ``chance`` of None means always fires.
    """
    kind: EffectKind
    value: float = 0.0
    duration: int = 0
    chance: float | None = None
    stat: Stat | None = None

    def __post_init__(self) -> None:
        self.kind = EffectKind(self.kind)
        if self.stat is not None:
            self.stat = Stat.parse(self.stat)
        if self.kind in (EffectKind.BUFF, EffectKind.DEBUFF) and self.stat is None:
            raise ValueError(f"{self.kind.value} effect requires a stat")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "duration": self.duration,
            "chance": self.chance,
            "stat": self.stat.value if self.stat is not None else None,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SkillEffect:
        return cls(**d)


@dataclass
class Skill:
    id: str
    name: str
    mana_cost: int
    cooldown: int
    damage: float
    target_shape: TargetShape = TargetShape.SINGLE
    area_radius: int = 1
    current_cooldown: int = 0
    effects: list[SkillEffect] = field(default_factory=list)
    description: str = ""

    def __post_init__(self) -> None:
        self.target_shape = TargetShape(self.target_shape)

    def is_ready(self, mana: float) -> bool:
        return self.current_cooldown == 0 and self.mana_cost <= mana

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mana_cost": self.mana_cost,
            "cooldown": self.cooldown,
            "damage": self.damage,
            "target_shape": self.target_shape.value,
            "area_radius": self.area_radius,
            "current_cooldown": self.current_cooldown,
            "effects": [e.to_dict() for e in self.effects],
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Skill:
        d = dict(d)
        d["effects"] = [SkillEffect.from_dict(e) for e in d.get("effects", [])]
        return cls(**d)


@dataclass
class Item:
    """A carried item; its stat bonuses count as part of the unit's base stats."""
    id: str
    name: str
    item_type: str = "equipment"
    stats: dict[Stat, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.stats = parse_stat_deltas(self.stats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "item_type": self.item_type,
            "stats": {s.value: v for s, v in self.stats.items()},
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Item:
        return cls(**d)


@dataclass
class Unit:
    """A combatant on one of the two teams."""

    # === Identity ===
    id: str
    name: str
    unit_type: str
    level: int = 1
    team: str = "alpha"
    position: Position = field(default_factory=Position)

    # === Vitals ===
    max_hp: int = 100
    current_hp: int = 100
    max_mana: int = 100
    current_mana: int = 0

    # === Combat stats ===
    attack: float = 10.0
    defense: float = 0.0
    magic_power: float = 0.0
    magic_resistance: float = 0.0
    speed: float = 1.0
    crit_rate: float = 0.0
    crit_multiplier: float = 1.5

    # === Kit ===
    skills: list[Skill] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    effects: BuffStack = field(default_factory=BuffStack)

    # === Transient battle state ===
    stunned: bool = False

    @property
    def is_alive(self) -> bool:
        return self.current_hp > 0

    def base_stats(self) -> dict[Stat, float]:
        """Intrinsic stats plus carried item bonuses (no status effects)."""
        stats = {stat: float(getattr(self, stat.value)) for stat in Stat}
        for item in self.items:
            for stat, delta in item.stats.items():
                stats[stat] += delta
        return stats

    def effective_stats(self) -> dict[Stat, float]:
        """Base stats with every active status effect applied."""
        return self.effects.apply_to(self.base_stats())

    def validate(self) -> None:
        """Raise ValueError if the unit violates its construction contract."""
        if self.max_hp <= 0:
            raise ValueError(f"Unit '{self.id}' has non-positive max_hp {self.max_hp}")
        if not 0 <= self.current_hp <= self.max_hp:
            raise ValueError(
                f"Unit '{self.id}' current_hp {self.current_hp} outside [0, {self.max_hp}]"
            )
        if self.max_mana < 0 or not 0 <= self.current_mana <= self.max_mana:
            raise ValueError(f"Unit '{self.id}' has invalid mana")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unit_type": self.unit_type,
            "level": self.level,
            "team": self.team,
            "position": {"x": self.position.x, "y": self.position.y},
            "max_hp": self.max_hp,
            "current_hp": self.current_hp,
            "max_mana": self.max_mana,
            "current_mana": self.current_mana,
            "attack": self.attack,
            "defense": self.defense,
            "magic_power": self.magic_power,
            "magic_resistance": self.magic_resistance,
            "speed": self.speed,
            "crit_rate": self.crit_rate,
            "crit_multiplier": self.crit_multiplier,
            "skills": [s.to_dict() for s in self.skills],
            "items": [i.to_dict() for i in self.items],
            "effects": self.effects.to_dict(),
            "stunned": self.stunned,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Unit:
        d = dict(d)
        d["position"] = Position(**d.get("position", {}))
        d["skills"] = [Skill.from_dict(s) for s in d.get("skills", [])]
        d["items"] = [Item.from_dict(i) for i in d.get("items", [])]
        d["effects"] = BuffStack.from_dict(d.get("effects", {}))
        return cls(**d)
