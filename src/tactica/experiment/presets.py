"""
Experiment presets — unit templates, the default market catalog, and
pre-configured simulation configs.

Unit templates are scaled by the config's balance parameters when built, so a
parameter sweep changes the units that actually fight:

- ``physical_defense`` / ``magic_resistance``: percentage points of damage
  reduction gained per unit level (0.035 → +3.5 defense per level)
- ``critical_rate``: crit chance for every template-built unit (assassins get
  an extra 0.1)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tactica.core.config import SimulationConfig
from tactica.core.market import MarketItem, Rarity
from tactica.core.stats import EffectKind, TargetShape, UnitType
from tactica.core.unit import Position, Skill, SkillEffect, Unit


# ---------------------------------------------------------------------------
# Unit templates
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class UnitTemplate:
    """Level-1 stats and skill kit for one unit type."""
    unit_type: UnitType
    max_hp: int
    max_mana: int
    attack: float
    defense: float
    magic_power: float
    magic_resistance: float
    speed: float
    crit_bonus: float = 0.0
    skills: tuple[Skill, ...] = field(default_factory=tuple)


UNIT_TEMPLATES: dict[str, UnitTemplate] = {
    "Warrior": UnitTemplate(
        UnitType.WARRIOR, max_hp=650, max_mana=100, attack=55, defense=20,
        magic_power=0, magic_resistance=10, speed=0.7,
        skills=(Skill("cleave", "Cleave", mana_cost=50, cooldown=2, damage=60,
                      target_shape=TargetShape.AREA, area_radius=1),),
    ),
    "Mage": UnitTemplate(
        UnitType.MAGE, max_hp=450, max_mana=100, attack=30, defense=5,
        magic_power=40, magic_resistance=20, speed=0.8,
        skills=(Skill("fireball", "Fireball", mana_cost=50, cooldown=2, damage=90,
                      target_shape=TargetShape.AREA, area_radius=1,
                      effects=[SkillEffect(EffectKind.DAMAGE, value=20, chance=0.5)]),),
    ),
    "Archer": UnitTemplate(
        UnitType.ARCHER, max_hp=500, max_mana=100, attack=60, defense=8,
        magic_power=10, magic_resistance=10, speed=1.0,
        skills=(Skill("piercing_shot", "Piercing Shot", mana_cost=50, cooldown=2, damage=70,
                      effects=[SkillEffect(EffectKind.DEBUFF, value=10, duration=2,
                                           stat="defense")]),),
    ),
    "Knight": UnitTemplate(
        UnitType.KNIGHT, max_hp=750, max_mana=100, attack=45, defense=30,
        magic_power=0, magic_resistance=20, speed=0.6,
        skills=(Skill("shield_bash", "Shield Bash", mana_cost=50, cooldown=3, damage=40,
                      effects=[
                          SkillEffect(EffectKind.STUN, duration=1),
                          SkillEffect(EffectKind.BUFF, value=10, duration=2, stat="defense"),
                      ]),),
    ),
    "Priest": UnitTemplate(
        UnitType.PRIEST, max_hp=480, max_mana=100, attack=25, defense=8,
        magic_power=35, magic_resistance=25, speed=0.8,
        skills=(Skill("mend", "Mend", mana_cost=50, cooldown=2, damage=80,
                      target_shape=TargetShape.ALLY),),
    ),
    "Assassin": UnitTemplate(
        UnitType.ASSASSIN, max_hp=420, max_mana=100, attack=70, defense=5,
        magic_power=0, magic_resistance=5, speed=1.3, crit_bonus=0.1,
        skills=(Skill("backstab", "Backstab", mana_cost=50, cooldown=2, damage=110),),
    ),
    "Merchant": UnitTemplate(
        UnitType.MERCHANT, max_hp=500, max_mana=100, attack=35, defense=10,
        magic_power=20, magic_resistance=10, speed=0.9,
        skills=(Skill("coin_toss", "Coin Toss", mana_cost=50, cooldown=2, damage=30,
                      target_shape=TargetShape.ALL,
                      effects=[SkillEffect(EffectKind.MOVEMENT, value=1, chance=0.5)]),),
    ),
}

LEVEL_GROWTH = 0.1  # hp/attack/magic power growth per level above 1


def build_unit(
    unit_type: str,
    unit_id: str,
    level: int = 1,
    config: SimulationConfig | None = None,
    position: Position | None = None,
    name: str | None = None,
) -> Unit:
    """Instantiate a template at ``level`` under ``config``'s balance parameters."""
    if unit_type not in UNIT_TEMPLATES:
        raise KeyError(f"Unknown unit type: '{unit_type}'. Available: {list(UNIT_TEMPLATES.keys())}")
    if level < 1:
        raise ValueError(f"Unit level must be >= 1, got {level}")
    cfg = config or SimulationConfig()
    t = UNIT_TEMPLATES[unit_type]
    growth = 1 + LEVEL_GROWTH * (level - 1)
    max_hp = int(t.max_hp * growth)

    return Unit(
        id=unit_id,
        name=name or f"{unit_type} {unit_id}",
        unit_type=unit_type,
        level=level,
        position=position or Position(),
        max_hp=max_hp,
        current_hp=max_hp,
        max_mana=t.max_mana,
        current_mana=0,
        attack=t.attack * growth,
        defense=t.defense + cfg.physical_defense * 100 * level,
        magic_power=t.magic_power * growth,
        magic_resistance=t.magic_resistance + cfg.magic_resistance * 100 * level,
        speed=t.speed,
        crit_rate=min(1.0, cfg.critical_rate + t.crit_bonus),
        skills=[Skill.from_dict(s.to_dict()) for s in t.skills],
    )


def build_roster(
    unit_types: list[str],
    prefix: str,
    level: int = 1,
    config: SimulationConfig | None = None,
    column: int = 0,
) -> list[Unit]:
    """Units lined up in one grid column, ids ``{prefix}-{n}``."""
    return [
        build_unit(t, f"{prefix}-{i}", level, config, Position(column, i))
        for i, t in enumerate(unit_types)
    ]


# ---------------------------------------------------------------------------
# Market catalog
# ---------------------------------------------------------------------------
def default_catalog() -> list[MarketItem]:
    """A fresh copy of the default item catalog."""
    return [
        MarketItem("long_sword", "Long Sword", 10, quantity=6, rarity=Rarity.COMMON,
                   item_type="equipment", stats={"attack": 15}),
        MarketItem("chain_vest", "Chain Vest", 10, quantity=6, rarity=Rarity.COMMON,
                   item_type="equipment", stats={"defense": 20}),
        MarketItem("arcane_tome", "Arcane Tome", 12, quantity=4, rarity=Rarity.UNCOMMON,
                   item_type="equipment", stats={"magic_power": 20}),
        MarketItem("swift_boots", "Swift Boots", 14, quantity=4, rarity=Rarity.UNCOMMON,
                   item_type="equipment", stats={"speed": 0.2}),
        MarketItem("health_potion", "Health Potion", 3, quantity=12, item_type="consumable"),
        MarketItem("mana_potion", "Mana Potion", 3, quantity=12, item_type="consumable"),
        MarketItem("recruit_contract", "Recruit Contract", 5, quantity=10, item_type="unit"),
        MarketItem("star_shard", "Star Shard", 25, quantity=2, rarity=Rarity.RARE,
                   item_type="upgrade"),
        MarketItem("crown_of_ages", "Crown of Ages", 40, quantity=1, rarity=Rarity.LEGENDARY,
                   item_type="upgrade", stats={"max_hp": 200, "attack": 20}),
    ]


# ---------------------------------------------------------------------------
# Config presets
# ---------------------------------------------------------------------------
def baseline() -> SimulationConfig:
    """Standard configuration with default parameters."""
    return SimulationConfig(experiment_name="baseline")


def terrain_battles() -> SimulationConfig:
    """Battles on randomly generated terrain instead of open plains."""
    return SimulationConfig(experiment_name="terrain_battles", terrain_enabled=True)


def high_interest() -> SimulationConfig:
    """Interest-heavy economy that rewards saving over spending."""
    return SimulationConfig(
        experiment_name="high_interest",
        interest_rate=0.2,
        interest_cap=10,
        gold_scaling=1.0,
    )


def glass_cannon() -> SimulationConfig:
    """Low defensive growth and high crit for short, swingy battles."""
    return SimulationConfig(
        experiment_name="glass_cannon",
        physical_defense=0.01,
        magic_resistance=0.01,
        critical_rate=0.3,
        max_rounds=30,
    )


def volatile_market() -> SimulationConfig:
    """Prices react strongly to trade pressure."""
    return SimulationConfig(
        experiment_name="volatile_market",
        market_volatility=0.2,
        price_jitter=0.05,
        reprice_every=2,
    )


def long_game() -> SimulationConfig:
    """Six-player, forty-round full games."""
    return SimulationConfig(
        experiment_name="long_game",
        rounds_to_run=40,
        players=["aggressive", "economy", "balanced", "flexible", "conservative", "opportunist"],
    )


def strict() -> SimulationConfig:
    """Invariant violations raise instead of being clamped."""
    return SimulationConfig(experiment_name="strict", strict_invariants=True)


PRESETS = {
    "baseline": baseline,
    "terrain_battles": terrain_battles,
    "high_interest": high_interest,
    "glass_cannon": glass_cannon,
    "volatile_market": volatile_market,
    "long_game": long_game,
    "strict": strict,
}


def get_preset(name: str) -> SimulationConfig:
    """Get a preset config by name."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]()


def list_presets() -> list[str]:
    """Return list of available preset names."""
    return list(PRESETS.keys())
