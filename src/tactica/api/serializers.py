"""
Serializers for converting engine objects to JSON-safe dicts.

Handles numpy scalars, enums and the battle/game session views.
"""

from __future__ import annotations

from typing import Any

from tactica.api.sessions import BattleSession, GameSession
from tactica.core.combat import BattleLogEntry
from tactica.core.economy import Player
from tactica.core.market import MarketItem
from tactica.core.unit import Unit

RECENT_LOG_LIMIT = 50


def _int(v) -> int:
    """Safely convert numpy int to Python int."""
    return int(v) if v is not None else 0


def serialize_unit(unit: Unit) -> dict[str, Any]:
    return {
        "id": unit.id,
        "name": unit.name,
        "unit_type": unit.unit_type,
        "team": unit.team,
        "level": _int(unit.level),
        "current_hp": _int(unit.current_hp),
        "max_hp": _int(unit.max_hp),
        "current_mana": _int(unit.current_mana),
        "max_mana": _int(unit.max_mana),
        "stunned": unit.stunned,
        "effects": [e.name for e in unit.effects.active_effects()],
    }


def serialize_log_entry(entry: BattleLogEntry) -> dict[str, Any]:
    return entry.to_dict()


def serialize_battle(session: BattleSession, log_limit: int = RECENT_LOG_LIMIT) -> dict[str, Any]:
    state = session.resolver.state
    return {
        "id": session.id,
        "name": session.name,
        "battle_id": state.id,
        "status": state.status.value,
        "round": state.round,
        "winner": state.winner,
        "alpha": [serialize_unit(u) for u in state.alpha],
        "beta": [serialize_unit(u) for u in state.beta],
        "recent_log": [serialize_log_entry(e) for e in state.log[:log_limit]],
    }


def serialize_player(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "archetype": player.archetype,
        "gold": _int(player.gold),
        "level": _int(player.level),
        "rank": _int(player.rank),
        "win_streak": _int(player.win_streak),
        "lose_streak": _int(player.lose_streak),
        "units": len(player.units),
        "items": sum(i.count for i in player.items),
        "shop": list(player.shop),
    }


def serialize_market_item(item: MarketItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "base_price": float(item.base_price),
        "current_price": round(float(item.current_price), 4),
        "quantity": _int(item.quantity),
        "rarity": item.rarity.value,
        "item_type": item.item_type,
    }


def serialize_game(session: GameSession) -> dict[str, Any]:
    engine = session.engine
    return {
        "id": session.id,
        "name": session.name,
        "status": session.status,
        "round": engine.round,
        "max_rounds": session.max_rounds,
        "phase": engine.phase.value,
        "players": [serialize_player(p) for p in engine.players.values()],
        "market": [serialize_market_item(i) for i in engine.market.items.values()],
    }
