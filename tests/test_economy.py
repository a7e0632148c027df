"""Tests for the economy engine."""

import copy
import json

import numpy as np
import pytest

from tactica.core.config import SimulationConfig
from tactica.core.economy import (
    EconomyEngine,
    EconomyEvent,
    EconomyPhase,
    EconomyState,
    EventEffect,
    Player,
)
from tactica.core.errors import InvariantViolation
from tactica.core.market import MarketItem
from tactica.experiment.player import Action, Decision


def _config(**overrides) -> SimulationConfig:
    defaults = dict(random_seed=11, gold_scaling=1.0, price_jitter=0.0)
    defaults.update(overrides)
    return SimulationConfig(**defaults)


def _engine(config=None, **players_gold) -> EconomyEngine:
    items = [
        MarketItem("sword", "Sword", base_price=10, quantity=5),
        MarketItem("gem", "Gem", base_price=3, quantity=5, item_type="upgrade"),
    ]
    engine = EconomyEngine(config or _config(), items, np.random.default_rng(11))
    for pid, gold in (players_gold or {"p0": 10}).items():
        engine.add_player(Player(id=pid, name=pid, gold=gold))
    return engine


class TestPlayers:
    def test_create_player_uses_starting_gold(self):
        engine = EconomyEngine(_config(starting_gold=25))
        player = engine.create_player("p9", archetype="economy")
        assert player.gold == 25
        assert engine.get_player("p9") is player

    def test_duplicate_player_rejected(self):
        engine = _engine()
        with pytest.raises(ValueError):
            engine.add_player(Player(id="p0", name="again"))

    def test_negative_gold_rejected(self):
        engine = _engine()
        with pytest.raises(ValueError):
            engine.add_player(Player(id="p1", name="p1", gold=-1))

    def test_unknown_player_lookup(self):
        assert _engine().get_player("nobody") is None


class TestIncome:
    def test_base_plus_interest(self):
        engine = _engine(p0=10)
        incomes = engine.start_round()
        assert incomes == {"p0": 6}
        assert engine.get_player("p0").gold == 16
        assert engine.round == 1
        assert engine.phase is EconomyPhase.PREPARATION

    def test_interest_is_capped(self):
        engine = _engine(p0=100)
        assert engine.start_round()["p0"] == 10

    def test_gold_scaling_applies_to_base(self):
        engine = _engine(_config(gold_scaling=1.2), p0=0)
        assert engine.start_round()["p0"] == 6

    def test_streak_bonus_lookup(self):
        engine = _engine()
        player = engine.get_player("p0")
        assert engine.streak_bonus_for(player) == 0
        player.win_streak = 2
        assert engine.streak_bonus_for(player) == 2
        player.win_streak, player.lose_streak = 0, 9
        assert engine.streak_bonus_for(player) == 3

    def test_streak_bonus_added_to_income(self):
        engine = _engine(p0=0)
        engine.get_player("p0").win_streak = 1
        assert engine.start_round()["p0"] == 6

    def test_status_updates(self):
        engine = _engine()
        assert engine.update_player_status("p0", won=True)
        assert engine.update_player_status("p0", won=True)
        player = engine.get_player("p0")
        assert (player.win_streak, player.wins) == (2, 2)
        engine.update_player_status("p0", won=False)
        assert (player.win_streak, player.lose_streak, player.losses) == (0, 1, 1)
        assert not engine.update_player_status("ghost", won=True)

    def test_ranking_by_level_then_gold(self):
        engine = _engine(p0=0, p1=50)
        engine.get_player("p0").level = 3
        engine.start_round()
        assert engine.get_player("p0").rank == 1
        assert engine.get_player("p1").rank == 2

    def test_set_phase(self):
        engine = _engine()
        engine.set_phase("combat")
        assert engine.phase is EconomyPhase.COMBAT


class TestEvents:
    def test_gold_income_event(self):
        engine = _engine(p0=0)
        engine.add_event(EconomyEvent("boom", "Boom", rounds_left=1,
                                      effects=[EventEffect("gold_income", 2.0)]))
        assert engine.start_round()["p0"] == 10
        assert engine.events == []
        assert engine.start_round()["p0"] == 6

    def test_interest_rate_event(self):
        engine = _engine(p0=8)
        engine.add_event(EconomyEvent("rates", "Rate hike", rounds_left=2,
                                      effects=[EventEffect("interest_rate", 0.4)]))
        assert engine.start_round()["p0"] == 5 + 4
        assert len(engine.events) == 1

    def test_market_price_event(self):
        engine = _engine()
        engine.add_event(EconomyEvent("rush", "Gold rush", rounds_left=1,
                                      effects=[EventEffect("market_price", 1.5)]))
        engine.start_round()
        assert engine.market.price_of("sword") == pytest.approx(15.0)


class TestMarketRouting:
    def test_purchase(self):
        engine = _engine(p0=10)
        assert engine.purchase("p0", "gem")
        player = engine.get_player("p0")
        assert player.gold == 7
        assert engine.market.stock_of("gem") == 4
        assert player.find_item("p0:gem").count == 1
        assert engine.purchase("p0", "gem")
        assert player.find_item("p0:gem").count == 2
        assert len(player.items) == 1

    def test_purchase_charges_price_rounded_up(self):
        engine = _engine(p0=10)
        engine.market.items["gem"].current_price = 2.4
        assert engine.purchase("p0", "gem")
        assert engine.get_player("p0").gold == 7

    def test_purchase_fails_when_gold_below_fractional_price(self):
        engine = _engine(p0=2)
        engine.market.items["gem"].current_price = 2.4
        assert not engine.purchase("p0", "gem")
        assert engine.get_player("p0").gold == 2
        assert engine.market.stock_of("gem") == 5

    def test_failed_purchase_changes_nothing(self):
        engine = _engine(p0=2)
        assert not engine.purchase("p0", "gem")
        assert engine.get_player("p0").gold == 2
        assert engine.market.stock_of("gem") == 5
        assert engine.market.transactions == []

    def test_purchase_out_of_stock(self):
        engine = _engine(p0=100)
        engine.market.items["sword"].quantity = 0
        assert not engine.purchase("p0", "sword")

    def test_purchase_unknown(self):
        engine = _engine()
        assert not engine.purchase("ghost", "gem")
        assert not engine.purchase("p0", "ghost")

    def test_sell(self):
        engine = _engine(p0=30)
        engine.purchase("p0", "sword")
        engine.purchase("p0", "sword")
        gold = engine.get_player("p0").gold
        assert engine.sell("p0", "p0:sword")
        assert engine.get_player("p0").gold == gold + 7
        assert engine.get_player("p0").find_item("p0:sword").count == 1
        assert engine.sell("p0", "p0:sword")
        assert engine.get_player("p0").items == []
        assert not engine.sell("p0", "p0:sword")

    def test_transactions_recorded(self):
        engine = _engine(p0=30)
        engine.purchase("p0", "sword")
        engine.sell("p0", "p0:sword")
        directions = [t.direction.value for t in engine.market.transactions]
        assert directions == ["buy", "sell"]


class TestShop:
    def test_start_round_rolls_shops(self):
        engine = _engine(p0=0, p1=0)
        engine.start_round()
        for player in engine.players.values():
            assert len(player.shop) == engine.config.shop_size
            assert set(player.shop) <= set(engine.config.unit_pool_size)

    def test_reroll(self):
        engine = _engine(p0=10)
        assert engine.reroll("p0")
        assert engine.get_player("p0").gold == 8
        assert len(engine.get_player("p0").shop) == 5

    def test_reroll_needs_gold(self):
        engine = _engine(p0=1)
        assert not engine.reroll("p0")
        assert engine.get_player("p0").gold == 1

    def test_buy_unit(self):
        engine = _engine(p0=10)
        player = engine.get_player("p0")
        player.shop = ["Mage"]
        pool = engine.unit_pool["Mage"]
        assert engine.buy_unit("p0", "Mage")
        assert player.gold == 7
        assert engine.unit_pool["Mage"] == pool - 1
        assert player.units[0].id == "p0-u0001"
        assert player.shop == []

    def test_buy_unit_not_offered(self):
        engine = _engine(p0=10)
        engine.get_player("p0").shop = ["Mage"]
        assert not engine.buy_unit("p0", "Knight")
        assert engine.get_player("p0").gold == 10

    def test_buy_unit_needs_gold(self):
        engine = _engine(p0=2)
        engine.get_player("p0").shop = ["Mage"]
        assert not engine.buy_unit("p0", "Mage")

    def test_exhausted_pool(self):
        engine = _engine(_config(unit_pool_size={"Mage": 1}), p0=10)
        engine.get_player("p0").shop = ["Mage", "Mage"]
        assert engine.buy_unit("p0", "Mage")
        assert not engine.buy_unit("p0", "Mage")
        assert engine.roll_shop("p0") == []


class TestLevelling:
    def test_level_up_thresholds(self):
        engine = _engine(p0=10)
        player = engine.get_player("p0")
        assert engine.level_up("p0")
        assert (player.gold, player.level, player.experience) == (6, 2, 2)
        assert engine.level_up("p0")
        assert (player.gold, player.level, player.experience) == (2, 3, 0)
        assert not engine.level_up("p0")
        assert player.gold == 2


class TestDecisions:
    def test_apply_decisions(self):
        engine = _engine(p0=10)
        engine.get_player("p0").shop = ["Priest"]
        assert engine.apply_decision("p0", Decision(Action.BUY, unit_type="Priest"))
        assert engine.apply_decision("p0", Decision(Action.LEVEL_UP))
        assert engine.apply_decision("p0", Decision(Action.SAVE))
        assert not engine.apply_decision("ghost", Decision(Action.SAVE))
        assert not engine.apply_decision("p0", Decision(Action.BUY))


class TestInvariants:
    def test_strict_gold_bounds(self):
        engine = _engine(_config(strict_invariants=True))
        with pytest.raises(InvariantViolation):
            engine._set_gold(engine.get_player("p0"), -5)

    def test_lenient_gold_bounds(self):
        engine = _engine()
        engine._set_gold(engine.get_player("p0"), -5)
        assert engine.get_player("p0").gold == 0

    def test_gold_never_negative_over_many_rounds(self):
        engine = _engine(p0=0, p1=5, p2=50)
        for _ in range(15):
            engine.start_round()
            for pid in engine.players:
                engine.reroll(pid)
                engine.level_up(pid)
                engine.purchase(pid, "gem")
            assert all(p.gold >= 0 for p in engine.players.values())


class TestSnapshot:
    def _played(self) -> EconomyEngine:
        engine = _engine(p0=10, p1=20)
        engine.add_event(EconomyEvent("boom", "Boom", rounds_left=3,
                                      effects=[EventEffect("gold_income", 1.5)]))
        for _ in range(2):
            engine.start_round()
            engine.purchase("p0", "gem")
            engine.buy_unit("p1", engine.get_player("p1").shop[0])
        return engine

    def test_state_dict_roundtrip(self):
        d = json.loads(json.dumps(self._played().get_state().to_dict()))
        assert EconomyState.from_dict(d).to_dict() == d

    def test_resumed_engine_matches(self):
        engine = self._played()
        d = json.loads(json.dumps(engine.get_state().to_dict()))
        resumed = EconomyEngine.from_state(
            EconomyState.from_dict(d), engine.config, copy.deepcopy(engine.rng),
        )
        assert engine.start_round() == resumed.start_round()
        assert engine.get_state().to_dict() == resumed.get_state().to_dict()

    def test_snapshot_is_by_value(self):
        engine = _engine()
        state = engine.get_state()
        state.players[0].gold = 999
        assert engine.get_player("p0").gold == 10
