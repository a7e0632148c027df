"""
Pydantic models for API request/response validation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any


# === Battles ===

class CreateBattleRequest(BaseModel):
    roster_a: list[str] | list[dict[str, Any]]
    roster_b: list[str] | list[dict[str, Any]]
    config: dict[str, Any] | None = None
    preset: str | None = None
    name: str | None = None


class RestoreBattleRequest(BaseModel):
    state: dict[str, Any]
    config: dict[str, Any] | None = None
    name: str | None = None


class StepRequest(BaseModel):
    n: int = Field(default=1, ge=1)


class BattleLogEntryResponse(BaseModel):
    round: int
    timestamp: int
    actor_id: str
    action: str
    target_id: str | None
    value: int
    message: str
    skill_id: str | None = None


class UnitSummary(BaseModel):
    id: str
    name: str
    unit_type: str
    team: str
    level: int
    current_hp: int
    max_hp: int
    current_mana: int
    max_mana: int
    stunned: bool
    effects: list[str]


class BattleResponse(BaseModel):
    id: str
    name: str
    battle_id: str
    status: str
    round: int
    winner: str | None
    alpha: list[UnitSummary]
    beta: list[UnitSummary]
    recent_log: list[BattleLogEntryResponse]


class SessionSummary(BaseModel):
    id: str
    name: str
    kind: str
    status: str
    round: int


# === Games ===

class CreateGameRequest(BaseModel):
    config: dict[str, Any] | None = None
    preset: str | None = None
    name: str | None = None


class PlayerSummary(BaseModel):
    id: str
    name: str
    archetype: str
    gold: int
    level: int
    rank: int
    win_streak: int
    lose_streak: int
    units: int
    items: int
    shop: list[str]


class MarketItemResponse(BaseModel):
    id: str
    name: str
    base_price: float
    current_price: float
    quantity: int
    rarity: str
    item_type: str


class GameResponse(BaseModel):
    id: str
    name: str
    status: str
    round: int
    max_rounds: int
    phase: str
    players: list[PlayerSummary]
    market: list[MarketItemResponse]


class TradeRequest(BaseModel):
    player_id: str
    item_id: str


class TradeResponse(BaseModel):
    success: bool
    gold: int


# === Experiments ===

class PresetInfo(BaseModel):
    name: str
    config: dict[str, Any]


class ArchetypeInfo(BaseModel):
    name: str
    display_name: str
    reroll_rate: float
    level_up_threshold: float
    save_gold_threshold: int
    buy_unit_ratio: float
    risk_tolerance: float
    preferred_units: list[str]


class SampleRequest(BaseModel):
    space: dict[str, tuple[float, float]] | None = None
    n: int = Field(default=10, ge=0, le=10_000)
    method: str = "low_discrepancy"
    seed: int | None = None


class BatchRequest(BaseModel):
    space: dict[str, tuple[float, float]] | None = None
    n: int = Field(default=4, ge=1, le=256)
    method: str = "low_discrepancy"
    seeds_per_set: int = Field(default=1, ge=1, le=32)
    mode: str = "skirmish"
    config: dict[str, Any] | None = None
    preset: str | None = None


class TrialResponse(BaseModel):
    params: dict[str, float]
    seed: int | None
    summary: dict[str, float]
    error: str | None = None


class OptimizeRequest(BaseModel):
    space: dict[str, tuple[float, float]] | None = None
    iterations: int = Field(default=10, ge=0, le=100)
    seeds_per_set: int = Field(default=1, ge=1, le=16)
    mode: str = "skirmish"
    seed: int | None = None
    config: dict[str, Any] | None = None
    preset: str | None = None


class EvaluationResponse(BaseModel):
    iteration: int
    strategy: str
    params: dict[str, float]
    score: float


class OptimizeResponse(BaseModel):
    best_params: dict[str, float]
    best_score: float
    history: list[EvaluationResponse]
    sensitivity: dict[str, float]
