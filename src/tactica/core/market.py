"""
Market engine — per-item price, supply and demand driven by a transaction log.

The transaction log is the only input to repricing. Every ``reprice_every``
recorded transactions trigger a pricing pass; prices always stay inside
``[price_floor_ratio, price_ceiling_ratio] x base_price``.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator

import numpy as np

from tactica.core.config import SimulationConfig

logger = logging.getLogger(__name__)


class TradeDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass
class MarketItem:
    """A tradeable item. ``current_price`` and ``quantity`` belong to the engine."""
    id: str
    name: str
    base_price: float
    current_price: float | None = None
    quantity: int = 0
    rarity: Rarity = Rarity.COMMON
    item_type: str = "equipment"
    supply: int = 0
    demand: int = 0
    description: str = ""
    stats: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.rarity = Rarity(self.rarity)
        if self.base_price <= 0:
            raise ValueError(f"Item '{self.id}' has non-positive base price {self.base_price}")
        if self.current_price is None:
            self.current_price = float(self.base_price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "base_price": self.base_price,
            "current_price": self.current_price,
            "quantity": self.quantity,
            "rarity": self.rarity.value,
            "item_type": self.item_type,
            "supply": self.supply,
            "demand": self.demand,
            "description": self.description,
            "stats": dict(self.stats),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MarketItem:
        return cls(**d)


@dataclass(frozen=True)
class Transaction:
    item_id: str
    quantity: int
    direction: TradeDirection
    price: float
    player_id: str
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "quantity": self.quantity,
            "direction": self.direction.value,
            "price": self.price,
            "player_id": self.player_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Transaction:
        d = dict(d)
        d["direction"] = TradeDirection(d["direction"])
        return cls(**d)


@dataclass(frozen=True)
class BehaviorProfile:
    """How a class of simulated trader behaves in the market."""
    buy_probability: float
    sell_probability: float
    quantity_range: tuple[int, int]


BEHAVIOR_PROFILES: dict[str, BehaviorProfile] = {
    "aggressive": BehaviorProfile(0.7, 0.3, (2, 5)),
    "economy": BehaviorProfile(0.4, 0.6, (1, 3)),
    "hoarder": BehaviorProfile(0.8, 0.1, (3, 7)),
    "flipper": BehaviorProfile(0.5, 0.5, (4, 10)),
}
DEFAULT_PROFILE = "economy"


def get_behavior_profile(name: str) -> BehaviorProfile:
    """Look up a trader profile; unknown names get the default profile."""
    profile = BEHAVIOR_PROFILES.get(name.lower())
    if profile is None:
        logger.warning("Unknown behaviour profile '%s'; using '%s'", name, DEFAULT_PROFILE)
        return BEHAVIOR_PROFILES[DEFAULT_PROFILE]
    return profile


class MarketEngine:
    """Owns the item catalog and the transaction log for one trial."""

    def __init__(
        self,
        items: list[MarketItem] | None = None,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self.items: dict[str, MarketItem] = {}
        for item in items or []:
            self.items[item.id] = copy.deepcopy(item)
        self.transactions: list[Transaction] = []
        self._clock = 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def record_transaction(self, tx: Transaction) -> Transaction | None:
        """
        Append a transaction with an engine-assigned timestamp.

        Returns the stored record, or None if the item is unknown.
        """
        if tx.item_id not in self.items:
            logger.warning("Rejecting transaction for unknown item '%s'", tx.item_id)
            return None
        self._clock += 1
        stored = replace(tx, timestamp=self._clock)
        self.transactions.append(stored)

        if len(self.transactions) % self.config.reprice_every == 0:
            self.update_prices()
        return stored

    def recent_transactions(self, item_id: str, count: int) -> list[Transaction]:
        """The ``count`` most recent transactions for an item, newest first."""
        matching = (t for t in reversed(self.transactions) if t.item_id == item_id)
        recent = []
        for t in matching:
            recent.append(t)
            if len(recent) >= count:
                break
        return sorted(recent, key=lambda t: t.timestamp, reverse=True)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def update_prices(self, price_modifier: float = 1.0) -> None:
        """Reprice every item from its recent buy/sell pressure."""
        cfg = self.config
        for item in self.items.values():
            buys = sells = 0
            for t in self.recent_transactions(item.id, cfg.price_history_window):
                if t.direction is TradeDirection.BUY:
                    buys += t.quantity
                else:
                    sells += t.quantity
            item.demand = buys
            item.supply = sells

            price = item.current_price
            price *= 1 + cfg.market_volatility * (buys - sells) / max(1, buys + sells)
            price *= price_modifier
            price *= 1 + self.rng.uniform(-cfg.price_jitter, cfg.price_jitter)

            low = item.base_price * cfg.price_floor_ratio
            high = item.base_price * cfg.price_ceiling_ratio
            item.current_price = float(np.clip(price, low, high))

    def restock(self, pool_size: dict[str, int]) -> None:
        """Top stock back up towards a random fraction of the per-type pool."""
        for item in self.items.values():
            base = pool_size.get(item.item_type, 5)
            item.quantity = max(item.quantity, math.floor(base * self.rng.random()))

    def reserve(self, item_id: str, quantity: int = 1) -> bool:
        """Take ``quantity`` units out of stock; False if not enough remain."""
        item = self.items.get(item_id)
        if item is None or quantity <= 0 or item.quantity < quantity:
            return False
        item.quantity -= quantity
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def price_of(self, item_id: str) -> float | None:
        item = self.items.get(item_id)
        return item.current_price if item is not None else None

    def stock_of(self, item_id: str) -> int:
        item = self.items.get(item_id)
        return item.quantity if item is not None else 0

    def snapshot(self) -> list[MarketItem]:
        """All items, by value."""
        return [copy.deepcopy(item) for item in self.items.values()]

    def __iter__(self) -> Iterator[MarketItem]:
        return iter(self.snapshot())

    # ------------------------------------------------------------------
    # Synthetic activity
    # ------------------------------------------------------------------
    def simulate_activity(self, archetype_name: str, player_id: str) -> Transaction | None:
        """Record one synthetic trade shaped by a behaviour profile."""
        if not self.items:
            return None
        profile = get_behavior_profile(archetype_name)
        item_ids = list(self.items)
        item = self.items[item_ids[int(self.rng.integers(len(item_ids)))]]

        buy_share = profile.buy_probability / (profile.buy_probability + profile.sell_probability)
        direction = TradeDirection.BUY if self.rng.random() < buy_share else TradeDirection.SELL
        low, high = profile.quantity_range
        quantity = int(self.rng.integers(low, high + 1))

        return self.record_transaction(Transaction(
            item_id=item.id,
            quantity=quantity,
            direction=direction,
            price=item.current_price,
            player_id=player_id,
        ))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items.values()],
            "transactions": [t.to_dict() for t in self.transactions],
            "clock": self._clock,
        }

    @classmethod
    def from_dict(
        cls,
        d: dict[str, Any],
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> MarketEngine:
        engine = cls([MarketItem.from_dict(i) for i in d.get("items", [])], config, rng)
        engine.transactions = [Transaction.from_dict(t) for t in d.get("transactions", [])]
        engine._clock = d.get("clock", len(engine.transactions))
        return engine
