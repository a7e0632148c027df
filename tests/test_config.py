"""Tests for SimulationConfig."""

import logging

import pytest

from tactica.core.config import BALANCE_PARAMETERS, SimulationConfig


class TestConfigDefaults:
    def test_default_experiment_name(self):
        c = SimulationConfig()
        assert c.experiment_name == "default"

    def test_default_balance_parameters(self):
        c = SimulationConfig()
        assert c.balance_parameters() == {
            "physical_defense": 0.035,
            "magic_resistance": 0.028,
            "critical_rate": 0.15,
            "healing_efficiency": 1.0,
            "gold_scaling": 1.2,
            "interest_rate": 0.1,
        }

    def test_default_combat_constants(self):
        c = SimulationConfig()
        assert c.skill_mana_threshold == 50
        assert c.buff_stack_factor == 1.2
        assert c.max_rounds == 50

    def test_default_streak_tables(self):
        c = SimulationConfig()
        assert c.streak_bonus == {"win": [1, 2, 3, 4], "lose": [1, 2, 2, 3]}

    def test_mutable_defaults_not_shared(self):
        a = SimulationConfig()
        b = SimulationConfig()
        a.unit_pool_size["Warrior"] = 0
        assert b.unit_pool_size["Warrior"] == 29


class TestSerialization:
    def test_to_dict_roundtrip(self):
        c = SimulationConfig(experiment_name="test", starting_gold=25)
        c2 = SimulationConfig.from_dict(c.to_dict())
        assert c2.experiment_name == "test"
        assert c2.starting_gold == 25
        assert c2 == c

    def test_to_json_roundtrip(self):
        c = SimulationConfig(experiment_name="json_test", random_seed=7)
        c2 = SimulationConfig.from_json(c.to_json())
        assert c2 == c

    def test_diff(self):
        a = SimulationConfig()
        b = SimulationConfig(interest_rate=0.2, max_rounds=10)
        assert a.diff(b) == {"interest_rate": (0.1, 0.2), "max_rounds": (50, 10)}

    def test_diff_identical(self):
        assert SimulationConfig().diff(SimulationConfig()) == {}


class TestWithBalance:
    def test_overrides_balance_parameters(self):
        c = SimulationConfig().with_balance({"critical_rate": 0.3, "gold_scaling": 1.5})
        assert c.critical_rate == 0.3
        assert c.gold_scaling == 1.5

    def test_original_unchanged(self):
        base = SimulationConfig()
        base.with_balance({"critical_rate": 0.3})
        assert base.critical_rate == 0.15

    def test_int_fields_rounded(self):
        c = SimulationConfig().with_balance({"unit_cost": 3.6})
        assert c.unit_cost == 4
        assert isinstance(c.unit_cost, int)

    def test_unknown_parameter_ignored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            c = SimulationConfig().with_balance({"bond_bonus": 0.2})
        assert "bond_bonus" in caplog.text
        assert c == SimulationConfig()

    def test_every_balance_parameter_is_a_field(self):
        c = SimulationConfig()
        for name in BALANCE_PARAMETERS:
            assert isinstance(getattr(c, name), float)


class TestFieldTypes:
    def test_string_for_int_field_rejected(self):
        with pytest.raises(TypeError, match="max_rounds"):
            SimulationConfig.from_dict({"max_rounds": "x"})

    def test_string_for_float_field_rejected(self):
        with pytest.raises(TypeError, match="critical_rate"):
            SimulationConfig(critical_rate="high")

    def test_non_bool_flag_rejected(self):
        with pytest.raises(TypeError, match="strict_invariants"):
            SimulationConfig(strict_invariants="yes")

    def test_wrong_container_rejected(self):
        with pytest.raises(TypeError, match="players"):
            SimulationConfig(players="aggressive")

    def test_int_accepted_for_float_field(self):
        assert SimulationConfig(healing_efficiency=2).healing_efficiency == 2

    def test_seed_may_be_none_or_int(self):
        assert SimulationConfig(random_seed=None).random_seed is None
        with pytest.raises(TypeError, match="random_seed"):
            SimulationConfig(random_seed="7")
