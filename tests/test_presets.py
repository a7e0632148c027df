"""Tests for experiment presets."""

import pytest

from tactica.core.config import SimulationConfig
from tactica.core.stats import TargetShape
from tactica.experiment.presets import (
    PRESETS,
    UNIT_TEMPLATES,
    build_roster,
    build_unit,
    default_catalog,
    get_preset,
    list_presets,
)


class TestPresetCount:
    def test_seven_presets_defined(self):
        assert len(PRESETS) == 7

    def test_list_presets(self):
        names = list_presets()
        assert "baseline" in names
        assert "glass_cannon" in names


class TestPresetReturnTypes:
    def test_all_presets_return_config(self):
        for name, factory in PRESETS.items():
            config = factory()
            assert isinstance(config, SimulationConfig), f"{name} failed"
            assert config.experiment_name == name


class TestGetPreset:
    def test_get_known_preset(self):
        assert get_preset("strict").strict_invariants is True

    def test_get_unknown_raises(self):
        with pytest.raises(KeyError, match="Unknown preset"):
            get_preset("nonexistent")

    def test_presets_are_fresh(self):
        a = get_preset("long_game")
        a.players.append("aggressive")
        assert len(get_preset("long_game").players) == 6


class TestUnitTemplates:
    def test_seven_unit_types(self):
        assert set(UNIT_TEMPLATES) == {
            "Warrior", "Mage", "Archer", "Knight", "Priest", "Assassin", "Merchant",
        }

    def test_every_template_has_a_castable_skill(self):
        for name, t in UNIT_TEMPLATES.items():
            assert t.skills, name
            assert all(s.mana_cost <= t.max_mana for s in t.skills)

    def test_priest_heals_allies(self):
        assert UNIT_TEMPLATES["Priest"].skills[0].target_shape is TargetShape.ALLY


class TestBuildUnit:
    def test_level_one_warrior(self):
        unit = build_unit("Warrior", "w1")
        assert unit.max_hp == unit.current_hp == 650
        assert unit.current_mana == 0
        assert unit.defense == pytest.approx(23.5)
        assert unit.crit_rate == pytest.approx(0.15)
        unit.validate()

    def test_assassin_crit_bonus(self):
        assert build_unit("Assassin", "x").crit_rate == pytest.approx(0.25)

    def test_balance_parameters_flow_into_stats(self):
        config = SimulationConfig(physical_defense=0.05, critical_rate=0.2)
        unit = build_unit("Knight", "k", level=2, config=config)
        assert unit.defense == pytest.approx(30 + 10.0)
        assert unit.crit_rate == pytest.approx(0.2)

    def test_level_growth(self):
        unit = build_unit("Mage", "m", level=3)
        assert unit.max_hp == 540
        assert unit.attack == pytest.approx(36.0)

    def test_skills_are_independent_copies(self):
        a = build_unit("Mage", "a")
        b = build_unit("Mage", "b")
        a.skills[0].current_cooldown = 2
        assert b.skills[0].current_cooldown == 0
        assert UNIT_TEMPLATES["Mage"].skills[0].current_cooldown == 0

    def test_unknown_type(self):
        with pytest.raises(KeyError, match="Unknown unit type"):
            build_unit("Dragon", "d")

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            build_unit("Mage", "m", level=0)


class TestBuildRoster:
    def test_ids_and_positions(self):
        roster = build_roster(["Warrior", "Priest"], "blue", column=7)
        assert [u.id for u in roster] == ["blue-0", "blue-1"]
        assert [(u.position.x, u.position.y) for u in roster] == [(7, 0), (7, 1)]


class TestCatalog:
    def test_catalog_items(self):
        items = default_catalog()
        assert len(items) == 9
        assert len({i.id for i in items}) == 9
        assert all(i.current_price == i.base_price for i in items)

    def test_catalog_is_fresh(self):
        default_catalog()[0].quantity = 0
        assert default_catalog()[0].quantity == 6
