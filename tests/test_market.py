"""Tests for the market engine."""

import numpy as np
import pytest

from tactica.core.config import SimulationConfig
from tactica.core.market import (
    BEHAVIOR_PROFILES,
    MarketEngine,
    MarketItem,
    TradeDirection,
    Transaction,
    get_behavior_profile,
)


def _config(**overrides) -> SimulationConfig:
    defaults = dict(random_seed=3, price_jitter=0.0, market_volatility=0.1, reprice_every=2)
    defaults.update(overrides)
    return SimulationConfig(**defaults)


def _market(config=None, **stock) -> MarketEngine:
    items = [
        MarketItem("sword", "Sword", base_price=10, quantity=stock.get("sword", 5)),
        MarketItem("potion", "Potion", base_price=4, quantity=stock.get("potion", 5),
                   item_type="consumable"),
    ]
    return MarketEngine(items, config or _config(), np.random.default_rng(3))


def _tx(item_id="sword", quantity=1, direction=TradeDirection.BUY) -> Transaction:
    return Transaction(item_id=item_id, quantity=quantity, direction=direction,
                       price=10.0, player_id="p0")


class TestMarketItem:
    def test_current_price_defaults_to_base(self):
        assert MarketItem("a", "A", base_price=7).current_price == 7.0

    def test_non_positive_base_price_rejected(self):
        with pytest.raises(ValueError):
            MarketItem("a", "A", base_price=0)

    def test_rarity_parsed(self):
        item = MarketItem("a", "A", base_price=1, rarity="rare")
        assert item.to_dict()["rarity"] == "rare"


class TestTransactions:
    def test_unknown_item_rejected(self):
        m = _market()
        assert m.record_transaction(_tx("ghost")) is None
        assert m.transactions == []

    def test_timestamps_are_assigned(self):
        m = _market(_config(reprice_every=100))
        stamps = [m.record_transaction(_tx()).timestamp for _ in range(3)]
        assert stamps == [1, 2, 3]

    def test_recent_transactions_newest_first(self):
        m = _market(_config(reprice_every=100))
        for q in (1, 2, 3):
            m.record_transaction(_tx(quantity=q))
        m.record_transaction(_tx("potion"))
        recent = m.recent_transactions("sword", 2)
        assert [t.quantity for t in recent] == [3, 2]


class TestPricing:
    def test_reprice_after_every_nth_transaction(self):
        m = _market()
        m.record_transaction(_tx(quantity=3))
        assert m.price_of("sword") == pytest.approx(10.0)
        m.record_transaction(_tx(quantity=1))
        assert m.price_of("sword") == pytest.approx(11.0)
        assert m.price_of("potion") == pytest.approx(4.0)
        assert m.items["sword"].demand == 4

    def test_selling_pressure_lowers_price(self):
        m = _market()
        m.record_transaction(_tx(direction=TradeDirection.SELL))
        m.record_transaction(_tx(direction=TradeDirection.SELL))
        assert m.price_of("sword") == pytest.approx(9.0)

    def test_price_modifier(self):
        m = _market()
        m.update_prices(price_modifier=1.5)
        assert m.price_of("sword") == pytest.approx(15.0)

    def test_prices_clamped_to_bounds(self):
        m = _market(_config(market_volatility=5.0))
        for _ in range(6):
            m.update_prices(price_modifier=3.0)
        assert m.price_of("sword") == pytest.approx(20.0)
        for _ in range(6):
            m.update_prices(price_modifier=0.1)
        assert m.price_of("sword") == pytest.approx(5.0)

    def test_jitter_stays_in_bounds(self):
        m = _market(_config(price_jitter=0.5))
        for _ in range(50):
            m.update_prices()
            for item in m.items.values():
                assert item.base_price * 0.5 <= item.current_price <= item.base_price * 2.0


class TestStock:
    def test_reserve(self):
        m = _market(sword=2)
        assert not m.reserve("sword", 3)
        assert m.reserve("sword", 2)
        assert m.stock_of("sword") == 0
        assert not m.reserve("sword")

    def test_reserve_rejects_unknown_and_zero(self):
        m = _market()
        assert not m.reserve("ghost")
        assert not m.reserve("sword", 0)
        assert m.stock_of("ghost") == 0

    def test_restock_never_reduces(self):
        m = _market(sword=100)
        m.restock({"equipment": 5})
        assert m.stock_of("sword") == 100

    def test_restock_bounded_by_pool(self):
        m = _market(sword=0, potion=0)
        for _ in range(20):
            m.items["sword"].quantity = 0
            m.restock({"equipment": 5, "consumable": 10})
            assert 0 <= m.stock_of("sword") < 5


class TestSyntheticActivity:
    def test_quantity_within_profile_range(self):
        m = _market(_config(reprice_every=1000))
        low, high = BEHAVIOR_PROFILES["flipper"].quantity_range
        for _ in range(30):
            tx = m.simulate_activity("flipper", "bot")
            assert low <= tx.quantity <= high
        assert len(m.transactions) == 30

    def test_empty_market(self):
        assert MarketEngine([], _config()).simulate_activity("economy", "bot") is None

    def test_unknown_profile_falls_back(self):
        assert get_behavior_profile("nonsense") == BEHAVIOR_PROFILES["economy"]
        assert get_behavior_profile("HOARDER") == BEHAVIOR_PROFILES["hoarder"]


class TestSerialization:
    def test_roundtrip(self):
        m = _market()
        for _ in range(5):
            m.simulate_activity("aggressive", "bot")
        d = m.to_dict()
        restored = MarketEngine.from_dict(d, _config())
        assert restored.to_dict() == d

    def test_snapshot_is_by_value(self):
        m = _market()
        snap = m.snapshot()
        snap[0].current_price = 999.0
        assert m.price_of("sword") == pytest.approx(10.0)
