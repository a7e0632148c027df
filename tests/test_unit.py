"""Tests for the unit model and stat vocabulary."""

import pytest

from tactica.core.buffs import EffectType, StatusEffect
from tactica.core.stats import EffectKind, Stat, TargetShape
from tactica.core.unit import Item, Position, Skill, SkillEffect, Unit


def _unit(**overrides) -> Unit:
    defaults = dict(id="u1", name="Tester", unit_type="Warrior", attack=50, defense=20)
    defaults.update(overrides)
    return Unit(**defaults)


class TestStat:
    def test_parse_name(self):
        assert Stat.parse("magic_power") is Stat.MAGIC_POWER

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Stat.parse("charisma")

    def test_supportive_shapes(self):
        assert TargetShape.SELF.is_supportive
        assert TargetShape.ALLY.is_supportive
        assert not TargetShape.AREA.is_supportive


class TestSkill:
    def test_buff_requires_stat(self):
        with pytest.raises(ValueError):
            SkillEffect(EffectKind.BUFF, value=5, duration=2)

    def test_is_ready(self):
        s = Skill("s", "Strike", mana_cost=30, cooldown=2, damage=10)
        assert s.is_ready(30)
        assert not s.is_ready(29)
        s.current_cooldown = 1
        assert not s.is_ready(100)

    def test_dict_roundtrip(self):
        s = Skill("s", "Strike", mana_cost=30, cooldown=2, damage=10,
                  target_shape="area", effects=[SkillEffect("debuff", 5, 2, 0.5, "defense")])
        assert Skill.from_dict(s.to_dict()) == s


class TestUnit:
    def test_position_distance_is_chebyshev(self):
        assert Position(0, 0).distance(Position(3, 1)) == 3

    def test_base_stats_include_items(self):
        u = _unit(items=[Item("sword", "Sword", stats={"attack": 15})])
        assert u.base_stats()[Stat.ATTACK] == 65.0

    def test_effective_stats_include_effects(self):
        u = _unit()
        u.effects.add_effect(StatusEffect(
            name="sunder", source="x", effect_type=EffectType.HARMFUL,
            magnitude=5, duration=2, deltas={"defense": -5},
        ))
        assert u.effective_stats()[Stat.DEFENSE] == 15.0
        assert u.base_stats()[Stat.DEFENSE] == 20.0

    def test_is_alive(self):
        assert _unit().is_alive
        assert not _unit(current_hp=0).is_alive

    @pytest.mark.parametrize("overrides", [
        {"max_hp": 0, "current_hp": 0},
        {"current_hp": 150},
        {"current_hp": -1},
        {"current_mana": 500},
    ])
    def test_validate_rejects_bad_vitals(self, overrides):
        with pytest.raises(ValueError):
            _unit(**overrides).validate()

    def test_dict_roundtrip(self):
        u = _unit(
            position=Position(2, 3),
            skills=[Skill("s", "Strike", mana_cost=30, cooldown=2, damage=10)],
            items=[Item("sword", "Sword", stats={"attack": 15})],
        )
        u.effects.add_effect(StatusEffect(
            name="rally", source="u1", effect_type="beneficial",
            magnitude=4, duration=2, stackable=True, deltas={"speed": 0.2},
        ))
        assert Unit.from_dict(u.to_dict()) == u
