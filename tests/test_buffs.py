"""Tests for status effects and the buff stack."""

import pytest

from tactica.core.buffs import BuffStack, EffectType, StatusEffect
from tactica.core.stats import Stat


def _effect(**overrides) -> StatusEffect:
    defaults = dict(
        name="war_cry", source="u1", effect_type=EffectType.BENEFICIAL,
        magnitude=10, duration=3, stackable=True, deltas={"attack": 10},
    )
    defaults.update(overrides)
    return StatusEffect(**defaults)


class TestStatusEffect:
    def test_deltas_parsed_to_stats(self):
        e = _effect()
        assert e.deltas == {Stat.ATTACK: 10.0}

    def test_unknown_stat_rejected(self):
        with pytest.raises(ValueError, match="Unknown stat"):
            _effect(deltas={"luck": 5})

    def test_identity_is_source_and_name(self):
        assert _effect().key == ("u1", "war_cry")

    def test_dict_roundtrip(self):
        e = _effect(effect_type="harmful", stackable=False)
        assert StatusEffect.from_dict(e.to_dict()) == e


class TestStacking:
    def test_stack_twice_multiplies_existing(self):
        stack = BuffStack()
        stack.add_effect(_effect())
        held = stack.add_effect(_effect())
        assert held.magnitude == pytest.approx(12.0)
        assert held.deltas[Stat.ATTACK] == pytest.approx(12.0)
        assert len(stack) == 1

    def test_stack_three_times_compounds(self):
        stack = BuffStack()
        for _ in range(3):
            held = stack.add_effect(_effect())
        assert held.magnitude == pytest.approx(10 * 1.2 * 1.2)

    def test_stack_keeps_longer_duration(self):
        stack = BuffStack()
        stack.add_effect(_effect(duration=5))
        held = stack.add_effect(_effect(duration=2))
        assert held.duration == 5

    def test_custom_stack_factor(self):
        stack = BuffStack(stack_factor=1.5)
        stack.add_effect(_effect())
        held = stack.add_effect(_effect())
        assert held.magnitude == pytest.approx(15.0)

    def test_non_stackable_refreshes_duration(self):
        stack = BuffStack()
        stack.add_effect(_effect(stackable=False, duration=1))
        held = stack.add_effect(_effect(stackable=False, duration=4))
        assert held.duration == 4
        assert held.magnitude == 10

    def test_different_sources_held_separately(self):
        stack = BuffStack()
        stack.add_effect(_effect(source="u1"))
        stack.add_effect(_effect(source="u2"))
        assert len(stack) == 2

    def test_added_effect_is_copied(self):
        stack = BuffStack()
        e = _effect()
        stack.add_effect(e)
        stack.add_effect(_effect())
        assert e.magnitude == 10


class TestTick:
    def test_removed_exactly_after_duration_ticks(self):
        stack = BuffStack()
        stack.add_effect(_effect(duration=3))
        for _ in range(2):
            assert stack.tick() == []
            assert len(stack.active_effects()) == 1
        expired = stack.tick()
        assert [e.name for e in expired] == ["war_cry"]
        assert stack.active_effects() == []

    def test_zero_duration_effect_is_inactive(self):
        stack = BuffStack()
        stack.add_effect(_effect(duration=0))
        assert stack.active_effects() == []

    def test_clear(self):
        stack = BuffStack([_effect()])
        stack.clear()
        assert len(stack) == 0


class TestApply:
    def test_apply_sums_deltas(self):
        stack = BuffStack([
            _effect(),
            _effect(name="sunder", source="u9", effect_type="harmful",
                    stackable=False, deltas={"defense": -5}),
        ])
        base = {Stat.ATTACK: 50.0, Stat.DEFENSE: 20.0}
        assert stack.apply_to(base) == {Stat.ATTACK: 60.0, Stat.DEFENSE: 15.0}

    def test_apply_does_not_mutate_base(self):
        stack = BuffStack([_effect()])
        base = {Stat.ATTACK: 50.0}
        stack.apply_to(base)
        assert base == {Stat.ATTACK: 50.0}

    def test_apply_ignores_absent_stats(self):
        stack = BuffStack([_effect()])
        assert stack.apply_to({Stat.DEFENSE: 1.0}) == {Stat.DEFENSE: 1.0}


class TestSerialization:
    def test_dict_roundtrip(self):
        stack = BuffStack([_effect(), _effect(name="ward", deltas={"magic_resistance": 8})],
                          stack_factor=1.3)
        assert BuffStack.from_dict(stack.to_dict()) == stack
