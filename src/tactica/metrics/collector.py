"""
Metrics Collector — balance statistics across battles and economy rounds.

Derives per-battle and per-round records from engine snapshots and aggregates
them into the flat numeric mapping that batch runs compare: win rates per unit
type and per composition, battle length, comeback rate, gold per round and
composition diversity. Those metrics are then scored against healthy ranges
into a 0-100 balance score.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np

from tactica.core.combat import DRAW, ActionKind, BattleState, Team
from tactica.core.economy import EconomyState

_DAMAGE_ACTIONS = (ActionKind.ATTACK, ActionKind.SKILL, ActionKind.DAMAGE)


@dataclass(frozen=True)
class BalanceTarget:
    """Healthy range for one summary metric and its weight in the balance score."""
    metric: str
    category: str  # combat | economy | diversity
    low: float
    high: float
    weight: float = 1.0

    def score(self, value: float) -> float:
        """1.0 inside ``[low, high]``, falling linearly to 0 one range-width outside."""
        if self.low <= value <= self.high:
            return 1.0
        distance = self.low - value if value < self.low else value - self.high
        return max(0.0, 1.0 - distance / (self.high - self.low))


BALANCE_TARGETS = (
    # Mean squared distance of per-unit-type win rates from 0.5
    BalanceTarget("win_rate_deviation", "combat", 0.0, 0.01, weight=2.0),
    BalanceTarget("mean_battle_rounds", "combat", 4.0, 15.0, weight=1.0),
    BalanceTarget("draw_rate", "combat", 0.0, 0.1, weight=0.8),
    BalanceTarget("comeback_rate", "combat", 0.15, 0.35, weight=0.9),
    BalanceTarget("mean_income", "economy", 5.0, 12.0, weight=0.8),
    BalanceTarget("final_price_index", "economy", 0.8, 1.25, weight=0.8),
    BalanceTarget("win_rate_spread", "diversity", 0.0, 0.3, weight=1.0),
    BalanceTarget("composition_diversity", "diversity", 1.5, 2.81, weight=0.7),
)


@dataclass
class Imbalance:
    """A summary metric outside its healthy range."""
    metric: str
    category: str
    value: float
    direction: str  # "low" | "high"
    severity: int   # 1..3
    message: str


def score_balance(
    summary: dict[str, float],
    targets: tuple[BalanceTarget, ...] = BALANCE_TARGETS,
) -> dict[str, float]:
    """
    Reduce a summary mapping to balance scores on a 0-100 scale.

    Returns ``{"balance_score": overall, "balance_score.<category>": ...}``
    as weighted means over the targets whose metric is present. Empty when
    none is.
    """
    scored: dict[str, list[tuple[float, float]]] = {}
    for t in targets:
        if t.metric in summary:
            scored.setdefault(t.category, []).append((t.score(summary[t.metric]), t.weight))
    if not scored:
        return {}

    def weighted(pairs: list[tuple[float, float]]) -> float:
        return 100.0 * sum(s * w for s, w in pairs) / sum(w for _, w in pairs)

    out = {"balance_score": weighted([p for pairs in scored.values() for p in pairs])}
    for category, pairs in sorted(scored.items()):
        out[f"balance_score.{category}"] = weighted(pairs)
    return out


def check_imbalances(
    summary: dict[str, float],
    targets: tuple[BalanceTarget, ...] = BALANCE_TARGETS,
) -> list[Imbalance]:
    """Every present metric outside its healthy range, most severe first."""
    alerts: list[Imbalance] = []
    for t in targets:
        if t.metric not in summary:
            continue
        value = summary[t.metric]
        if t.low <= value <= t.high:
            continue
        direction = "low" if value < t.low else "high"
        bound = t.low if direction == "low" else t.high
        severity = min(3, max(1, math.ceil(abs(value - bound) / (t.high - t.low) * 3)))
        alerts.append(Imbalance(
            metric=t.metric,
            category=t.category,
            value=value,
            direction=direction,
            severity=severity,
            message=f"{t.metric} is too {direction} ({value:.3f}, healthy {t.low}..{t.high})",
        ))
    alerts.sort(key=lambda a: -a.severity)
    return alerts


@dataclass
class BattleMetrics:
    """Outcome of one completed (or abandoned) battle."""
    battle_id: str
    winner: str | None
    rounds: int
    alpha_composition: list[str]
    beta_composition: list[str]
    alpha_survivors: int
    beta_survivors: int
    total_damage: int
    total_healing: int
    skill_casts: int
    comeback: bool  # winner suffered the first defeat


@dataclass
class RoundMetrics:
    """Economy picture at the start of one round."""
    round: int
    gold: dict[str, int]
    income: dict[str, int]
    levels: dict[str, int]
    mean_gold: float
    total_units: int
    composition_diversity: float  # Shannon entropy (bits) of owned unit types
    market_price_index: float     # mean current/base price ratio
    active_events: int = 0
    ranks: dict[str, int] = field(default_factory=dict)


class MetricsCollector:
    """
    Collects and aggregates balance metrics.

    Feed it battle snapshots with ``collect_battle`` and economy snapshots
    with ``collect_round``; ``summary()`` reduces everything collected so far.
    """

    def __init__(self) -> None:
        self.battles: list[BattleMetrics] = []
        self.rounds: list[RoundMetrics] = []

    def collect_battle(self, state: BattleState) -> BattleMetrics:
        """Record one battle's outcome."""
        teams = {u.id: u.team for u in state.units()}
        total_damage = total_healing = 0
        casts: set[tuple[int, str, str | None]] = set()
        first_defeated_team: str | None = None

        # Log is newest-first; walk it oldest-first
        for entry in reversed(state.log):
            actor_team = teams.get(entry.actor_id)
            target_team = teams.get(entry.target_id) if entry.target_id else None
            if entry.action is ActionKind.SKILL:
                # One cast logs an entry per target hit
                casts.add((entry.round, entry.actor_id, entry.skill_id))
            if entry.action in _DAMAGE_ACTIONS and target_team not in (None, actor_team):
                total_damage += entry.value
            elif entry.action in (ActionKind.SKILL, ActionKind.HEAL) and target_team == actor_team:
                total_healing += entry.value
            elif entry.action is ActionKind.DEFEAT and first_defeated_team is None:
                first_defeated_team = target_team

        winner = state.winner
        metrics = BattleMetrics(
            battle_id=state.id,
            winner=winner,
            rounds=state.round,
            alpha_composition=sorted(u.unit_type for u in state.alpha),
            beta_composition=sorted(u.unit_type for u in state.beta),
            alpha_survivors=len(state.living(Team.ALPHA)),
            beta_survivors=len(state.living(Team.BETA)),
            total_damage=total_damage,
            total_healing=total_healing,
            skill_casts=len(casts),
            comeback=winner not in (None, DRAW) and first_defeated_team == winner,
        )
        self.battles.append(metrics)
        return metrics

    def collect_round(
        self,
        state: EconomyState,
        income: dict[str, int] | None = None,
    ) -> RoundMetrics:
        """Record one economy round."""
        gold = {p.id: p.gold for p in state.players}
        owned = Counter(u.unit_type for p in state.players for u in p.units)
        ratios = [i.current_price / i.base_price for i in state.market]

        metrics = RoundMetrics(
            round=state.round,
            gold=gold,
            income=dict(income or {}),
            levels={p.id: p.level for p in state.players},
            mean_gold=float(np.mean(list(gold.values()))) if gold else 0.0,
            total_units=sum(owned.values()),
            composition_diversity=_entropy(list(owned.values())),
            market_price_index=float(np.mean(ratios)) if ratios else 1.0,
            active_events=len(state.events),
            ranks={p.id: p.rank for p in state.players},
        )
        self.rounds.append(metrics)
        return metrics

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------
    def unit_type_win_rates(self) -> dict[str, float]:
        """
        Per unit type: share of appearances on a winning side.

        A unit type counts once per side per battle; draws count as appearances
        without a win.
        """
        appearances: Counter[str] = Counter()
        wins: Counter[str] = Counter()
        for b in self.battles:
            for team, comp in ((Team.ALPHA.value, b.alpha_composition),
                               (Team.BETA.value, b.beta_composition)):
                for unit_type in set(comp):
                    appearances[unit_type] += 1
                    if b.winner == team:
                        wins[unit_type] += 1
        return {t: wins[t] / n for t, n in sorted(appearances.items())}

    def composition_win_rates(self) -> dict[str, float]:
        """Win rate per exact composition, keyed ``"Knight+Mage+Mage"``."""
        appearances: Counter[str] = Counter()
        wins: Counter[str] = Counter()
        for b in self.battles:
            for team, comp in ((Team.ALPHA.value, b.alpha_composition),
                               (Team.BETA.value, b.beta_composition)):
                key = "+".join(comp)
                appearances[key] += 1
                if b.winner == team:
                    wins[key] += 1
        return {k: wins[k] / n for k, n in sorted(appearances.items())}

    def summary(self) -> dict[str, float]:
        """Flat numeric mapping over everything collected."""
        out: dict[str, float] = {
            "battles": float(len(self.battles)),
            "rounds": float(len(self.rounds)),
        }
        if self.battles:
            n = len(self.battles)
            decided = [b for b in self.battles if b.winner not in (None, DRAW)]
            out["alpha_win_rate"] = sum(b.winner == Team.ALPHA.value for b in self.battles) / n
            out["draw_rate"] = sum(b.winner == DRAW for b in self.battles) / n
            out["mean_battle_rounds"] = float(np.mean([b.rounds for b in self.battles]))
            out["mean_damage"] = float(np.mean([b.total_damage for b in self.battles]))
            out["mean_healing"] = float(np.mean([b.total_healing for b in self.battles]))
            out["comeback_rate"] = (
                sum(b.comeback for b in decided) / len(decided) if decided else 0.0
            )
            for unit_type, rate in self.unit_type_win_rates().items():
                out[f"win_rate.{unit_type}"] = rate
            rates = list(self.unit_type_win_rates().values())
            out["win_rate_spread"] = float(max(rates) - min(rates)) if rates else 0.0
            if rates:
                out["win_rate_deviation"] = float(np.mean((np.array(rates) - 0.5) ** 2))
        if self.rounds:
            out["mean_gold_per_round"] = float(np.mean([r.mean_gold for r in self.rounds]))
            incomes = [v for r in self.rounds for v in r.income.values()]
            out["mean_income"] = float(np.mean(incomes)) if incomes else 0.0
            out["composition_diversity"] = float(
                np.mean([r.composition_diversity for r in self.rounds])
            )
            out["final_price_index"] = self.rounds[-1].market_price_index
        out.update(score_balance(out))
        return out

    def balance_score(self) -> dict[str, float]:
        """Overall and per-category balance scores (0-100) of everything collected."""
        return score_balance(self.summary())

    def imbalances(self) -> list[Imbalance]:
        return check_imbalances(self.summary())

    def time_series(self, field_name: str) -> list[Any]:
        """Extract a per-round series, falling back to per-battle fields."""
        if self.rounds and hasattr(self.rounds[0], field_name):
            return [getattr(r, field_name) for r in self.rounds]
        if self.battles and hasattr(self.battles[0], field_name):
            return [getattr(b, field_name) for b in self.battles]
        raise KeyError(f"Unknown metric field: '{field_name}'")

    def export(self) -> dict[str, list[dict[str, Any]]]:
        """All collected records as JSON-serializable dicts."""
        return {
            "battles": [asdict(b) for b in self.battles],
            "rounds": [asdict(r) for r in self.rounds],
        }


def _entropy(counts: list[int]) -> float:
    total = sum(counts)
    if total == 0:
        return 0.0
    probs = np.array([c for c in counts if c > 0], dtype=float) / total
    return float(-np.sum(probs * np.log2(probs)))
