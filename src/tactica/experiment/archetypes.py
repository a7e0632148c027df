"""
Archetype definitions — six synthetic player strategies.

Each archetype is a fixed bundle of probabilities and thresholds consumed by
``SyntheticPlayer``. Archetypes are used to populate full-game trials with a
mix of playstyles, e.g. "how does an economy player fare against three
aggressive ones?"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchetypeDefinition:
    """Decision parameters for one synthetic playstyle."""
    name: str
    reroll_rate: float        # probability of rerolling when nothing else fires
    level_up_threshold: float  # probability of levelling when affordable
    save_gold_threshold: int   # below this much gold the player always saves
    buy_unit_ratio: float      # probability of buying an offered preferred unit
    risk_tolerance: float      # [0, 1]
    preferred_units: tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# 6 Archetype definitions
# ---------------------------------------------------------------------------
ARCHETYPES: dict[str, ArchetypeDefinition] = {
    "aggressive": ArchetypeDefinition(
        name="Aggressive",
        reroll_rate=0.7, level_up_threshold=0.3, save_gold_threshold=10,
        buy_unit_ratio=0.8, risk_tolerance=0.8,
        preferred_units=("Warrior", "Assassin", "Mage"),
    ),
    "economy": ArchetypeDefinition(
        name="Economy",
        reroll_rate=0.3, level_up_threshold=0.6, save_gold_threshold=30,
        buy_unit_ratio=0.4, risk_tolerance=0.3,
        preferred_units=("Merchant", "Knight", "Priest"),
    ),
    "balanced": ArchetypeDefinition(
        name="Balanced",
        reroll_rate=0.5, level_up_threshold=0.5, save_gold_threshold=20,
        buy_unit_ratio=0.6, risk_tolerance=0.5,
        preferred_units=("Knight", "Archer", "Mage"),
    ),
    "flexible": ArchetypeDefinition(
        name="Flexible",
        reroll_rate=0.6, level_up_threshold=0.4, save_gold_threshold=15,
        buy_unit_ratio=0.7, risk_tolerance=0.6,
        preferred_units=("Archer", "Assassin", "Priest"),
    ),
    "conservative": ArchetypeDefinition(
        name="Conservative",
        reroll_rate=0.2, level_up_threshold=0.7, save_gold_threshold=40,
        buy_unit_ratio=0.3, risk_tolerance=0.2,
        preferred_units=("Knight", "Priest", "Merchant"),
    ),
    "opportunist": ArchetypeDefinition(
        name="Opportunist",
        reroll_rate=0.8, level_up_threshold=0.2, save_gold_threshold=5,
        buy_unit_ratio=0.9, risk_tolerance=0.9,
        preferred_units=("Assassin", "Mage", "Warrior"),
    ),
}
DEFAULT_ARCHETYPE = "balanced"


def get_archetype(name: str) -> ArchetypeDefinition:
    """Get an archetype by name (case-insensitive); unknown names fall back to balanced."""
    key = name.lower().replace(" ", "_")
    if key not in ARCHETYPES:
        logger.warning(
            "Unknown archetype '%s'; using '%s'. Available: %s",
            name, DEFAULT_ARCHETYPE, list(ARCHETYPES.keys()),
        )
        return ARCHETYPES[DEFAULT_ARCHETYPE]
    return ARCHETYPES[key]


def list_archetypes() -> list[str]:
    """Return list of available archetype names."""
    return list(ARCHETYPES.keys())
