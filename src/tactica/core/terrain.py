"""
Terrain model for the battle grid.

Pure lookup from terrain category to modifiers, plus a seeded terrain
assignment over a rectangular grid. Positions outside the generated grid
read as plain terrain.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

import numpy as np


class TerrainType(str, Enum):
    PLAIN = "plain"
    FOREST = "forest"
    DESERT = "desert"
    MOUNTAIN = "mountain"
    WATER = "water"


@dataclass(frozen=True)
class TerrainEffect:
    """
    Multiplicative modifiers for a unit standing on a tile.

    Attributes:
        speed: Multiplier on speed (acting order).
        healing: Multiplier on healing received from skills.
        mana_regen: Multiplier on per-round mana regeneration.
        damage_modifier: Multiplier on outgoing damage.
        burn_damage: Flat damage taken at the end of each round (non-lethal).
    """
    speed: float = 1.0
    healing: float = 1.0
    mana_regen: float = 1.0
    damage_modifier: float = 1.0
    burn_damage: int = 0


TERRAIN_EFFECTS: dict[TerrainType, TerrainEffect] = {
    TerrainType.PLAIN: TerrainEffect(),
    TerrainType.FOREST: TerrainEffect(speed=0.8, healing=1.2),
    TerrainType.DESERT: TerrainEffect(mana_regen=0.5, burn_damage=5),
    TerrainType.MOUNTAIN: TerrainEffect(speed=0.6, damage_modifier=1.1),
    TerrainType.WATER: TerrainEffect(speed=0.7, mana_regen=1.3),
}


def terrain_impact(terrain_type: TerrainType | str) -> TerrainEffect:
    """Look up the modifiers for a terrain type; unknown names read as plain."""
    try:
        return TERRAIN_EFFECTS[TerrainType(terrain_type)]
    except ValueError:
        return TERRAIN_EFFECTS[TerrainType.PLAIN]


class TerrainMap:
    """Terrain assignment over a ``width`` x ``height`` grid."""

    def __init__(
        self,
        width: int,
        height: int,
        tiles: dict[tuple[int, int], TerrainType] | None = None,
    ):
        self.width = width
        self.height = height
        self.tiles: dict[tuple[int, int], TerrainType] = dict(tiles or {})

    @classmethod
    def generate(
        cls,
        width: int,
        height: int,
        rng: np.random.Generator,
        weights: dict[TerrainType, float] | None = None,
    ) -> TerrainMap:
        """Assign a terrain type to every cell, uniformly or by ``weights``."""
        types = list(TerrainType)
        probs = None
        if weights:
            raw = np.array([weights.get(t, 0.0) for t in types], dtype=float)
            if raw.sum() > 0:
                probs = raw / raw.sum()
        tiles: dict[tuple[int, int], TerrainType] = {}
        for x in range(width):
            for y in range(height):
                tiles[(x, y)] = types[int(rng.choice(len(types), p=probs))]
        return cls(width, height, tiles)

    @classmethod
    def uniform(cls, width: int, height: int, terrain_type: TerrainType) -> TerrainMap:
        tiles = {(x, y): terrain_type for x in range(width) for y in range(height)}
        return cls(width, height, tiles)

    def terrain_at(self, x: int, y: int) -> TerrainType:
        return self.tiles.get((x, y), TerrainType.PLAIN)

    def effect_at(self, x: int, y: int) -> TerrainEffect:
        return terrain_impact(self.terrain_at(x, y))

    def clamp(self, x: int, y: int) -> tuple[int, int]:
        """Clamp a coordinate into the grid bounds."""
        return (
            min(max(x, 0), max(self.width - 1, 0)),
            min(max(y, 0), max(self.height - 1, 0)),
        )

    def counts(self) -> dict[str, int]:
        out = {t.value: 0 for t in TerrainType}
        for t in self.tiles.values():
            out[t.value] += 1
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TerrainMap):
            return NotImplemented
        return (self.width, self.height, self.tiles) == (other.width, other.height, other.tiles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "tiles": [[x, y, t.value] for (x, y), t in sorted(self.tiles.items())],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TerrainMap:
        tiles = {(x, y): TerrainType(t) for x, y, t in d.get("tiles", [])}
        return cls(d["width"], d["height"], tiles)


def effect_to_dict(effect: TerrainEffect) -> dict[str, Any]:
    return asdict(effect)
