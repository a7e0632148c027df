"""
Economy engine — per-round player income, streaks, shop and market routing.

Round flow (``start_round``):
1. Advance the round counter, enter the preparation phase
2. Reprice and restock the market (with any active event modifiers)
3. Pay income: base x gold scaling + capped interest + streak bonus
4. Roll each player's unit shop, expire finished events, rank players

Every buy/sell/reroll/level operation validates first and only then mutates,
returning False on failure with nothing changed.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from tactica.core.config import SimulationConfig
from tactica.core.errors import enforce_bounds
from tactica.core.market import MarketEngine, MarketItem, TradeDirection, Transaction

if TYPE_CHECKING:
    from tactica.experiment.player import Decision

logger = logging.getLogger(__name__)


class EconomyPhase(str, Enum):
    PREPARATION = "preparation"
    COMBAT = "combat"
    SHOPPING = "shopping"


class EventEffectType(str, Enum):
    GOLD_INCOME = "gold_income"      # multiplies base income
    INTEREST_RATE = "interest_rate"  # added to the interest rate
    MARKET_PRICE = "market_price"    # multiplies prices at repricing


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------
@dataclass
class PlayerUnit:
    id: str
    unit_type: str
    level: int = 1
    stars: int = 1


@dataclass
class PlayerItem:
    """A stack of one market item held by a player."""
    id: str
    item_id: str
    count: int = 1
    equipped: bool = False


@dataclass
class Player:
    id: str
    name: str
    gold: int = 0
    level: int = 1
    experience: int = 0
    archetype: str = "balanced"
    units: list[PlayerUnit] = field(default_factory=list)
    items: list[PlayerItem] = field(default_factory=list)
    win_streak: int = 0
    lose_streak: int = 0
    wins: int = 0
    losses: int = 0
    rank: int = 0
    shop: list[str] = field(default_factory=list)

    def find_item(self, player_item_id: str) -> PlayerItem | None:
        for held in self.items:
            if held.id == player_item_id:
                return held
        return None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Player:
        d = dict(d)
        d["units"] = [PlayerUnit(**u) for u in d.get("units", [])]
        d["items"] = [PlayerItem(**i) for i in d.get("items", [])]
        return cls(**d)


@dataclass
class EventEffect:
    effect_type: EventEffectType
    modifier: float
    target: str = "all"

    def __post_init__(self) -> None:
        self.effect_type = EventEffectType(self.effect_type)


@dataclass
class EconomyEvent:
    """A global event that modifies economy rates for a number of rounds."""
    id: str
    name: str
    rounds_left: int
    effects: list[EventEffect] = field(default_factory=list)
    description: str = ""

    @property
    def active(self) -> bool:
        return self.rounds_left > 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EconomyEvent:
        d = dict(d)
        d["effects"] = [EventEffect(**e) for e in d.get("effects", [])]
        return cls(**d)


@dataclass
class EconomyState:
    """Point-in-time snapshot of an economy."""
    round: int
    phase: EconomyPhase
    players: list[Player]
    market: list[MarketItem]
    interest_rate: float
    streak_bonus: dict[str, list[int]]
    events: list[EconomyEvent] = field(default_factory=list)
    unit_pool: dict[str, int] = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "phase": self.phase.value,
            "players": [_plain(p) for p in self.players],
            "market": [i.to_dict() for i in self.market],
            "interest_rate": self.interest_rate,
            "streak_bonus": copy.deepcopy(self.streak_bonus),
            "events": [_plain(e) for e in self.events],
            "unit_pool": dict(self.unit_pool),
            "transactions": [t.to_dict() for t in self.transactions],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EconomyState:
        return cls(
            round=d["round"],
            phase=EconomyPhase(d["phase"]),
            players=[Player.from_dict(p) for p in d["players"]],
            market=[MarketItem.from_dict(i) for i in d["market"]],
            interest_rate=d["interest_rate"],
            streak_bonus=copy.deepcopy(d["streak_bonus"]),
            events=[EconomyEvent.from_dict(e) for e in d.get("events", [])],
            unit_pool=dict(d.get("unit_pool", {})),
            transactions=[Transaction.from_dict(t) for t in d.get("transactions", [])],
        )


def _plain(obj: Any) -> Any:
    """Dataclass → JSON-safe dict with enums flattened to their values."""
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "__dataclass_fields__"):
        return {k: _plain(getattr(obj, k)) for k in obj.__dataclass_fields__}
    if isinstance(obj, list):
        return [_plain(v) for v in obj]
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    return obj


# ---------------------------------------------------------------------------
# Economy Engine
# ---------------------------------------------------------------------------
class EconomyEngine:
    """Advances one trial's economy. Owns its players, market and events."""

    def __init__(
        self,
        config: SimulationConfig | None = None,
        items: list[MarketItem] | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self.market = MarketEngine(items, self.config, self.rng)

        self.round = 0
        self.phase = EconomyPhase.PREPARATION
        self.players: dict[str, Player] = {}
        self.interest_rate = self.config.interest_rate
        self.streak_bonus = copy.deepcopy(self.config.streak_bonus)
        self.events: list[EconomyEvent] = []
        self.unit_pool: dict[str, int] = dict(self.config.unit_pool_size)
        self._next_unit_id = 0

    @classmethod
    def from_state(
        cls,
        state: EconomyState,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> EconomyEngine:
        """Resume an economy from a snapshot."""
        engine = cls(config, state.market, rng)
        engine.round = state.round
        engine.phase = state.phase
        engine.players = {p.id: copy.deepcopy(p) for p in state.players}
        engine.interest_rate = state.interest_rate
        engine.streak_bonus = copy.deepcopy(state.streak_bonus)
        engine.events = copy.deepcopy(state.events)
        engine.unit_pool = dict(state.unit_pool)
        engine.market.transactions = list(state.transactions)
        engine.market._clock = max((t.timestamp for t in state.transactions), default=0)
        engine._next_unit_id = sum(len(p.units) for p in state.players)
        return engine

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------
    def add_player(self, player: Player) -> Player:
        if player.id in self.players:
            raise ValueError(f"Duplicate player id '{player.id}'")
        if player.gold < 0:
            raise ValueError(f"Player '{player.id}' starts with negative gold")
        self.players[player.id] = player
        return player

    def create_player(
        self, player_id: str, archetype: str = "balanced", name: str | None = None,
    ) -> Player:
        """Add a player with the configured starting gold."""
        return self.add_player(Player(
            id=player_id,
            name=name or player_id,
            gold=self.config.starting_gold,
            archetype=archetype,
        ))

    def get_player(self, player_id: str) -> Player | None:
        return self.players.get(player_id)

    # ------------------------------------------------------------------
    # Round flow
    # ------------------------------------------------------------------
    def start_round(self) -> dict[str, int]:
        """Advance to the next round; returns the income paid to each player."""
        self.round += 1
        self.phase = EconomyPhase.PREPARATION

        income_mod = self._event_modifier(EventEffectType.GOLD_INCOME)
        price_mod = self._event_modifier(EventEffectType.MARKET_PRICE)
        rate = self.interest_rate + self._event_bonus(EventEffectType.INTEREST_RATE)

        self.market.update_prices(price_modifier=price_mod)
        self.market.restock(self.config.item_pool_size)

        incomes: dict[str, int] = {}
        for player in self.players.values():
            income = self._income(player, rate, income_mod)
            self._set_gold(player, player.gold + income)
            incomes[player.id] = income

        for player_id in self.players:
            self.roll_shop(player_id)

        self._expire_events()
        self._rank_players()
        logger.debug("Economy round %d paid %s", self.round, incomes)
        return incomes

    def set_phase(self, phase: EconomyPhase | str) -> None:
        self.phase = EconomyPhase(phase)

    def _income(self, player: Player, rate: float, income_mod: float) -> int:
        base = math.floor(self.config.round_income["base"] * self.config.gold_scaling * income_mod)
        interest = min(math.floor(player.gold * rate), self.config.interest_cap)
        return max(0, base) + max(0, interest) + self.streak_bonus_for(player)

    def streak_bonus_for(self, player: Player) -> int:
        """Bonus from the win or lose table; streaks past the end use the last entry."""
        if player.win_streak > 0:
            table = self.streak_bonus.get("win", [])
            streak = player.win_streak
        elif player.lose_streak > 0:
            table = self.streak_bonus.get("lose", [])
            streak = player.lose_streak
        else:
            return 0
        if not table:
            return 0
        return table[min(streak - 1, len(table) - 1)]

    def update_player_status(self, player_id: str, won: bool) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False
        if won:
            player.win_streak += 1
            player.lose_streak = 0
            player.wins += 1
        else:
            player.lose_streak += 1
            player.win_streak = 0
            player.losses += 1
        return True

    # ------------------------------------------------------------------
    # Market routing
    # ------------------------------------------------------------------
    def purchase(self, player_id: str, item_id: str) -> bool:
        """Buy one unit of a market item. All-or-nothing."""
        player = self.players.get(player_id)
        price = self.market.price_of(item_id)
        if player is None or price is None:
            return False
        # Gold is integral; charge the price rounded up so nothing is underpaid
        cost = math.ceil(price)
        if self.market.stock_of(item_id) <= 0 or player.gold < cost:
            return False
        if not self.market.reserve(item_id):
            return False

        self._set_gold(player, player.gold - cost)
        held_id = f"{player.id}:{item_id}"
        held = player.find_item(held_id)
        if held is not None:
            held.count += 1
        else:
            player.items.append(PlayerItem(id=held_id, item_id=item_id))

        self.market.record_transaction(Transaction(
            item_id=item_id, quantity=1, direction=TradeDirection.BUY,
            price=price, player_id=player.id,
        ))
        return True

    def sell(self, player_id: str, player_item_id: str) -> bool:
        """Sell one unit of a held item back for ``selling_return`` of its price."""
        player = self.players.get(player_id)
        if player is None:
            return False
        held = player.find_item(player_item_id)
        if held is None:
            return False
        price = self.market.price_of(held.item_id)
        if price is None:
            return False

        proceeds = math.floor(price * self.config.selling_return)
        self._set_gold(player, player.gold + proceeds)
        if held.count > 1:
            held.count -= 1
        else:
            player.items.remove(held)

        self.market.record_transaction(Transaction(
            item_id=held.item_id, quantity=1, direction=TradeDirection.SELL,
            price=price, player_id=player.id,
        ))
        return True

    # ------------------------------------------------------------------
    # Unit shop & levelling
    # ------------------------------------------------------------------
    def roll_shop(self, player_id: str) -> list[str]:
        """Draw a fresh shop offer weighted by the remaining unit pool."""
        player = self.players.get(player_id)
        if player is None:
            return []
        types = [t for t, n in self.unit_pool.items() if n > 0]
        if not types:
            player.shop = []
            return []
        weights = np.array([self.unit_pool[t] for t in types], dtype=float)
        picks = self.rng.choice(len(types), size=self.config.shop_size, p=weights / weights.sum())
        player.shop = [types[int(i)] for i in picks]
        return list(player.shop)

    def reroll(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        if player is None or player.gold < self.config.reroll_cost:
            return False
        self._set_gold(player, player.gold - self.config.reroll_cost)
        self.roll_shop(player_id)
        return True

    def buy_unit(self, player_id: str, unit_type: str) -> bool:
        player = self.players.get(player_id)
        if player is None or unit_type not in player.shop:
            return False
        if self.unit_pool.get(unit_type, 0) <= 0 or player.gold < self.config.unit_cost:
            return False

        self._set_gold(player, player.gold - self.config.unit_cost)
        self.unit_pool[unit_type] -= 1
        player.shop.remove(unit_type)
        self._next_unit_id += 1
        player.units.append(PlayerUnit(
            id=f"{player.id}-u{self._next_unit_id:04d}",
            unit_type=unit_type,
            level=player.level,
        ))
        return True

    def level_up(self, player_id: str) -> bool:
        """Buy experience; levels are gained as ``level_costs`` thresholds are met."""
        player = self.players.get(player_id)
        cost = self.config.level_up_cost
        if player is None or player.gold < cost:
            return False
        self._set_gold(player, player.gold - cost)
        player.experience += cost
        costs = self.config.level_costs
        while player.level - 1 < len(costs) and player.experience >= costs[player.level - 1]:
            player.experience -= costs[player.level - 1]
            player.level += 1
        return True

    def apply_decision(self, player_id: str, decision: Decision) -> bool:
        """Execute a synthetic player's decision. Saving always succeeds."""
        action = decision.action.value
        if action == "buy":
            return decision.unit_type is not None and self.buy_unit(player_id, decision.unit_type)
        if action == "levelup":
            return self.level_up(player_id)
        if action == "reroll":
            return self.reroll(player_id)
        return player_id in self.players

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def add_event(self, event: EconomyEvent) -> None:
        self.events.append(event)

    def _event_modifier(self, effect_type: EventEffectType) -> float:
        mod = 1.0
        for event in self.events:
            if event.active:
                for effect in event.effects:
                    if effect.effect_type is effect_type:
                        mod *= effect.modifier
        return mod

    def _event_bonus(self, effect_type: EventEffectType) -> float:
        return sum(
            effect.modifier
            for event in self.events if event.active
            for effect in event.effects if effect.effect_type is effect_type
        )

    def _expire_events(self) -> None:
        for event in self.events:
            event.rounds_left -= 1
        self.events = [e for e in self.events if e.active]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _rank_players(self) -> None:
        ordered = sorted(self.players.values(), key=lambda p: (-p.level, -p.gold))
        for rank, player in enumerate(ordered, start=1):
            player.rank = rank

    def _set_gold(self, player: Player, value: int) -> None:
        player.gold = int(enforce_bounds(
            value, 0, None, f"gold of {player.id}", self.config.strict_invariants,
        ))

    def get_state(self) -> EconomyState:
        """Deep-copied snapshot."""
        return EconomyState(
            round=self.round,
            phase=self.phase,
            players=copy.deepcopy(list(self.players.values())),
            market=self.market.snapshot(),
            interest_rate=self.interest_rate,
            streak_bonus=copy.deepcopy(self.streak_bonus),
            events=copy.deepcopy(self.events),
            unit_pool=dict(self.unit_pool),
            transactions=list(self.market.transactions),
        )
