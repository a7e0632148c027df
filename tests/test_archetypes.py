"""Tests for Archetypes."""

import pytest

from tactica.experiment.archetypes import (
    ARCHETYPES,
    DEFAULT_ARCHETYPE,
    ArchetypeDefinition,
    get_archetype,
    list_archetypes,
)


class TestArchetypeDefinitions:
    def test_six_archetypes_defined(self):
        assert len(ARCHETYPES) == 6

    def test_probabilities_in_range(self):
        for name, arch in ARCHETYPES.items():
            for value in (arch.reroll_rate, arch.level_up_threshold,
                          arch.buy_unit_ratio, arch.risk_tolerance):
                assert 0.0 <= value <= 1.0, f"{name} has {value} out of range"
            assert arch.save_gold_threshold >= 0

    def test_preferred_units_are_known_types(self):
        known = {"Warrior", "Mage", "Archer", "Knight", "Priest", "Assassin", "Merchant"}
        for name, arch in ARCHETYPES.items():
            assert arch.preferred_units, f"{name} has no preferred units"
            assert set(arch.preferred_units) <= known

    def test_definitions_are_frozen(self):
        with pytest.raises(AttributeError):
            ARCHETYPES["economy"].reroll_rate = 1.0

    def test_economy_saves_more_than_aggressive(self):
        assert (ARCHETYPES["economy"].save_gold_threshold
                > ARCHETYPES["aggressive"].save_gold_threshold)


class TestArchetypeLookup:
    def test_get_archetype(self):
        assert get_archetype("aggressive").name == "Aggressive"

    def test_case_insensitive(self):
        assert get_archetype("Opportunist") is ARCHETYPES["opportunist"]

    def test_unknown_falls_back(self, caplog):
        arch = get_archetype("berserker")
        assert arch is ARCHETYPES[DEFAULT_ARCHETYPE]
        assert "berserker" in caplog.text

    def test_list_archetypes(self):
        names = list_archetypes()
        assert "balanced" in names
        assert len(names) == 6
        assert all(isinstance(ARCHETYPES[n], ArchetypeDefinition) for n in names)
