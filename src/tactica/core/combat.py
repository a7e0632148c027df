"""
Combat resolver — advances a battle between two rosters one round at a time.

Each round:
1. Mana regeneration for living units
2. Acting order: descending speed, ties by roster order (alpha then beta)
3. Each living actor attacks or casts at the lowest-health enemy
4. End of round: terrain burn, cooldowns, status effect decay
5. Termination check

Turn order and targeting are fixed policies so that repeated trials with the
same seed differ only in the stats and skills under test.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

import numpy as np

from tactica.core.buffs import EffectType, StatusEffect
from tactica.core.config import SimulationConfig
from tactica.core.errors import enforce_bounds
from tactica.core.stats import EffectKind, Stat, TargetShape
from tactica.core.terrain import TerrainEffect, TerrainMap, TerrainType
from tactica.core.unit import Skill, SkillEffect, Unit

logger = logging.getLogger(__name__)


class BattleStatus(str, Enum):
    PREPARING = "preparing"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Team(str, Enum):
    ALPHA = "alpha"
    BETA = "beta"

    @property
    def opponent(self) -> Team:
        return Team.BETA if self is Team.ALPHA else Team.ALPHA


DRAW = "draw"


class ActionKind(str, Enum):
    ATTACK = "attack"
    SKILL = "skill"
    DAMAGE = "damage"
    HEAL = "heal"
    BUFF = "buff"
    DEBUFF = "debuff"
    STUN = "stun"
    MOVE = "move"
    RECOVER = "recover"
    DEFEAT = "defeat"
    TERRAIN = "terrain"


@dataclass
class BattleLogEntry:
    round: int
    timestamp: int
    actor_id: str
    action: ActionKind
    target_id: str | None
    value: int
    message: str
    skill_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "timestamp": self.timestamp,
            "actor_id": self.actor_id,
            "action": self.action.value,
            "target_id": self.target_id,
            "value": self.value,
            "message": self.message,
            "skill_id": self.skill_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BattleLogEntry:
        d = dict(d)
        d["action"] = ActionKind(d["action"])
        return cls(**d)


@dataclass
class BattleState:
    """Full battle state. The log is ordered most-recent-first."""
    id: str
    round: int = 0
    status: BattleStatus = BattleStatus.PREPARING
    alpha: list[Unit] = field(default_factory=list)
    beta: list[Unit] = field(default_factory=list)
    terrain: TerrainMap = field(default_factory=lambda: TerrainMap(0, 0))
    log: list[BattleLogEntry] = field(default_factory=list)
    winner: str | None = None

    def roster(self, team: Team | str) -> list[Unit]:
        return self.alpha if Team(team) is Team.ALPHA else self.beta

    def units(self) -> list[Unit]:
        return self.alpha + self.beta

    def living(self, team: Team | str) -> list[Unit]:
        return [u for u in self.roster(team) if u.is_alive]

    def find_unit(self, unit_id: str) -> Unit | None:
        for u in self.units():
            if u.id == unit_id:
                return u
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round,
            "status": self.status.value,
            "alpha": [u.to_dict() for u in self.alpha],
            "beta": [u.to_dict() for u in self.beta],
            "terrain": self.terrain.to_dict(),
            "log": [e.to_dict() for e in self.log],
            "winner": self.winner,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BattleState:
        return cls(
            id=d["id"],
            round=d["round"],
            status=BattleStatus(d["status"]),
            alpha=[Unit.from_dict(u) for u in d["alpha"]],
            beta=[Unit.from_dict(u) for u in d["beta"]],
            terrain=TerrainMap.from_dict(d["terrain"]),
            log=[BattleLogEntry.from_dict(e) for e in d["log"]],
            winner=d.get("winner"),
        )


class CombatResolver:
    """Owns one ``BattleState`` and mutates it only through ``step()``."""

    def __init__(
        self,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self.state = BattleState(id=uuid4().hex[:8])
        self._sequence = 0

    @classmethod
    def from_state(
        cls,
        state: BattleState,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> CombatResolver:
        """
        Resume a battle from a snapshot.

        Raises ValueError if the snapshot's rosters are malformed, exactly as
        ``initialize`` does.
        """
        _validate_rosters(state.alpha + state.beta)
        resolver = cls(config, rng)
        resolver.state = copy.deepcopy(state)
        resolver._sequence = max((e.timestamp for e in state.log), default=-1) + 1
        return resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def initialize(
        self,
        roster_a: list[Unit],
        roster_b: list[Unit],
        terrain: TerrainMap | None = None,
    ) -> None:
        """
        Install both rosters and reset the battle.

        Raises ValueError for malformed rosters (non-positive max HP, health
        out of range, duplicate unit ids).
        """
        _validate_rosters(list(roster_a) + list(roster_b))

        self.state.alpha = self._install(roster_a, Team.ALPHA)
        self.state.beta = self._install(roster_b, Team.BETA)
        self.state.round = 0
        self.state.status = BattleStatus.PREPARING
        self.state.log = []
        self.state.winner = None
        self.state.terrain = copy.deepcopy(terrain) if terrain is not None else self._default_terrain()
        self._sequence = 0

    def step(self) -> bool:
        """
        Advance exactly one round.

        Returns False without doing anything once the battle is completed.
        """
        state = self.state
        if state.status is BattleStatus.COMPLETED:
            return False
        state.status = BattleStatus.IN_PROGRESS
        state.round += 1

        self._regenerate_mana()

        cast_this_round: set[tuple[str, str]] = set()
        for unit in self._acting_order():
            if not unit.is_alive:
                continue
            if unit.stunned:
                unit.stunned = False
                self._log(unit, unit, ActionKind.RECOVER, 0, f"{unit.name} recovers from stun")
                continue
            self._act(unit, cast_this_round)

        self._end_of_round(cast_this_round)
        self._check_termination()
        logger.debug(
            "Battle %s round %d: alpha=%d beta=%d alive",
            state.id, state.round, len(state.living(Team.ALPHA)), len(state.living(Team.BETA)),
        )
        return True

    def run(self, max_rounds: int | None = None) -> BattleState:
        """Step until the battle completes (bounded by ``max_rounds``)."""
        limit = self.config.max_rounds if max_rounds is None else max_rounds
        while self.state.status is not BattleStatus.COMPLETED and self.state.round < limit:
            self.step()
        return self.get_state()

    def get_state(self) -> BattleState:
        """Deep copy of the battle state."""
        return copy.deepcopy(self.state)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------
    def _install(self, roster: list[Unit], team: Team) -> list[Unit]:
        units = copy.deepcopy(list(roster))
        for unit in units:
            unit.team = team.value
            unit.stunned = False
            unit.effects.stack_factor = self.config.buff_stack_factor
        return units

    def _default_terrain(self) -> TerrainMap:
        w, h = self.config.grid_width, self.config.grid_height
        if self.config.terrain_enabled:
            return TerrainMap.generate(w, h, self.rng)
        return TerrainMap.uniform(w, h, TerrainType.PLAIN)

    # ------------------------------------------------------------------
    # Round phases
    # ------------------------------------------------------------------
    def _regenerate_mana(self) -> None:
        for unit in self.state.units():
            if not unit.is_alive:
                continue
            regen = math.floor(
                unit.max_mana * self.config.mana_regen_fraction * self._terrain(unit).mana_regen
            )
            unit.current_mana = min(unit.max_mana, unit.current_mana + regen)

    def _acting_order(self) -> list[Unit]:
        living = [u for u in self.state.units() if u.is_alive]
        # sorted() is stable: equal speeds keep roster order
        return sorted(living, key=lambda u: -self._speed(u))

    def _act(self, unit: Unit, cast_this_round: set[tuple[str, str]]) -> None:
        enemies = self.state.living(Team(unit.team).opponent)
        if not enemies:
            return
        target = min(enemies, key=lambda u: u.current_hp)

        skill = self._choose_skill(unit)
        if skill is None:
            self._attack(unit, target)
        else:
            self._cast(unit, skill, target)
            cast_this_round.add((unit.id, skill.id))

    def _choose_skill(self, unit: Unit) -> Skill | None:
        """First ready skill, but only once mana reaches the casting threshold."""
        if not unit.skills or unit.current_mana < self.config.skill_mana_threshold:
            return None
        for skill in unit.skills:
            if skill.is_ready(unit.current_mana):
                return skill
        return None

    def _end_of_round(self, cast_this_round: set[tuple[str, str]]) -> None:
        for unit in self.state.units():
            if unit.is_alive:
                burn = self._terrain(unit).burn_damage
                if burn > 0 and unit.current_hp > 1:
                    before = unit.current_hp
                    self._set_hp(unit, max(1, unit.current_hp - burn))
                    self._log(
                        unit, unit, ActionKind.TERRAIN, before - unit.current_hp,
                        f"{unit.name} takes {before - unit.current_hp} terrain burn damage",
                    )
            for skill in unit.skills:
                if (unit.id, skill.id) not in cast_this_round and skill.current_cooldown > 0:
                    skill.current_cooldown -= 1
            unit.effects.tick()

    def _check_termination(self) -> None:
        state = self.state
        alpha_alive = bool(state.living(Team.ALPHA))
        beta_alive = bool(state.living(Team.BETA))
        if alpha_alive and beta_alive:
            if state.round >= self.config.max_rounds:
                logger.info("Battle %s hit the %d-round limit; declaring a draw",
                            state.id, self.config.max_rounds)
                state.status = BattleStatus.COMPLETED
                state.winner = DRAW
            return
        state.status = BattleStatus.COMPLETED
        if alpha_alive:
            state.winner = Team.ALPHA.value
        elif beta_alive:
            state.winner = Team.BETA.value
        else:
            state.winner = DRAW

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _attack(self, attacker: Unit, target: Unit) -> None:
        atk = attacker.effective_stats()
        dfn = target.effective_stats()
        raw = atk[Stat.ATTACK] * (1 - dfn[Stat.DEFENSE] / 100)
        crit = bool(self.rng.random() < atk[Stat.CRIT_RATE])
        if crit:
            raw *= atk[Stat.CRIT_MULTIPLIER]
        damage = self._to_damage(raw * self._terrain(attacker).damage_modifier)
        self._deal(target, damage)

        verb = "critically strikes" if crit else "attacks"
        self._log(
            attacker, target, ActionKind.ATTACK, damage,
            f"{attacker.name} {verb} {target.name} for {damage} damage",
        )
        self._log_defeat(attacker, target)

    def _cast(self, caster: Unit, skill: Skill, target: Unit) -> None:
        caster.current_mana -= skill.mana_cost
        skill.current_cooldown = skill.cooldown
        stats = caster.effective_stats()

        if skill.target_shape.is_supportive:
            recipient = caster if skill.target_shape is TargetShape.SELF else self._most_wounded_ally(caster)
            amount = (skill.damage + stats[Stat.MAGIC_POWER])
            healed = self._heal(recipient, amount)
            self._log(
                caster, recipient, ActionKind.SKILL, healed,
                f"{caster.name} casts {skill.name} on {recipient.name}, restoring {healed} health",
                skill.id,
            )
            primary = recipient
        else:
            targets = self._skill_targets(caster, skill, target)
            for t in targets:
                damage = self._magic_damage(caster, t, skill.damage + stats[Stat.MAGIC_POWER])
                self._deal(t, damage)
                self._log(
                    caster, t, ActionKind.SKILL, damage,
                    f"{caster.name} casts {skill.name} on {t.name} for {damage} damage",
                    skill.id,
                )
                self._log_defeat(caster, t)
            primary = target

        for effect in skill.effects:
            if effect.chance is not None and self.rng.random() >= effect.chance:
                continue
            self._apply_effect(caster, primary, skill, effect)

    def _skill_targets(self, caster: Unit, skill: Skill, target: Unit) -> list[Unit]:
        enemies = self.state.living(Team(caster.team).opponent)
        if skill.target_shape is TargetShape.ALL:
            return enemies
        if skill.target_shape is TargetShape.AREA:
            return [target] + [
                e for e in enemies
                if e is not target and e.position.distance(target.position) <= skill.area_radius
            ]
        return [target]

    def _most_wounded_ally(self, unit: Unit) -> Unit:
        allies = self.state.living(unit.team)
        return min(allies, key=lambda u: u.current_hp / u.max_hp)

    def _apply_effect(
        self, caster: Unit, target: Unit, skill: Skill, effect: SkillEffect,
    ) -> None:
        kind = effect.kind
        if kind is EffectKind.HEAL:
            healed = self._heal(caster, effect.value)
            self._log(caster, caster, ActionKind.HEAL, healed,
                      f"{caster.name} recovers {healed} health", skill.id)
            return
        if kind is EffectKind.BUFF:
            caster.effects.add_effect(StatusEffect(
                name=skill.name, source=caster.id, effect_type=EffectType.BENEFICIAL,
                magnitude=effect.value, duration=effect.duration, stackable=True,
                deltas={effect.stat: effect.value},
            ))
            self._log(caster, caster, ActionKind.BUFF, int(effect.value),
                      f"{caster.name} gains {effect.value:g} {effect.stat.value}", skill.id)
            return

        # Remaining effects land on the (enemy) target and need it alive
        if not target.is_alive:
            return
        if kind is EffectKind.DAMAGE:
            damage = self._magic_damage(caster, target, effect.value)
            self._deal(target, damage)
            self._log(caster, target, ActionKind.DAMAGE, damage,
                      f"{target.name} takes {damage} extra damage", skill.id)
            self._log_defeat(caster, target)
        elif kind is EffectKind.DEBUFF:
            target.effects.add_effect(StatusEffect(
                name=skill.name, source=caster.id, effect_type=EffectType.HARMFUL,
                magnitude=effect.value, duration=effect.duration, stackable=False,
                deltas={effect.stat: -effect.value},
            ))
            self._log(caster, target, ActionKind.DEBUFF, -int(effect.value),
                      f"{target.name} loses {effect.value:g} {effect.stat.value}", skill.id)
        elif kind is EffectKind.STUN:
            target.stunned = True
            self._log(caster, target, ActionKind.STUN, 0,
                      f"{target.name} is stunned and will miss a turn", skill.id)
        elif kind is EffectKind.MOVEMENT:
            direction = np.sign(target.position.x - caster.position.x)
            if direction == 0:
                direction = 1 if caster.team == Team.ALPHA.value else -1
            x, y = self.state.terrain.clamp(
                target.position.x + int(direction) * int(effect.value), target.position.y,
            )
            moved = abs(x - target.position.x)
            target.position.x, target.position.y = x, y
            self._log(caster, target, ActionKind.MOVE, moved,
                      f"{target.name} is pushed {moved} tiles", skill.id)

    # ------------------------------------------------------------------
    # Numeric helpers
    # ------------------------------------------------------------------
    def _magic_damage(self, caster: Unit, target: Unit, power: float) -> int:
        resistance = target.effective_stats()[Stat.MAGIC_RESISTANCE]
        raw = power * (1 - resistance / 100)
        return self._to_damage(raw * self._terrain(caster).damage_modifier)

    @staticmethod
    def _to_damage(raw: float) -> int:
        return max(0, math.floor(raw))

    def _deal(self, target: Unit, damage: int) -> None:
        self._set_hp(target, max(0, target.current_hp - damage))

    def _heal(self, unit: Unit, amount: float) -> int:
        boosted = amount * self.config.healing_efficiency * self._terrain(unit).healing
        before = unit.current_hp
        self._set_hp(unit, min(unit.max_hp, unit.current_hp + max(0, math.floor(boosted))))
        return unit.current_hp - before

    def _set_hp(self, unit: Unit, value: int) -> None:
        unit.current_hp = int(enforce_bounds(
            value, 0, unit.max_hp, f"health of {unit.id}", self.config.strict_invariants,
        ))

    def _speed(self, unit: Unit) -> float:
        return unit.effective_stats()[Stat.SPEED] * self._terrain(unit).speed

    def _terrain(self, unit: Unit) -> TerrainEffect:
        return self.state.terrain.effect_at(unit.position.x, unit.position.y)

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------
    def _log(
        self,
        actor: Unit,
        target: Unit | None,
        action: ActionKind,
        value: int,
        message: str,
        skill_id: str | None = None,
    ) -> None:
        entry = BattleLogEntry(
            round=self.state.round,
            timestamp=self._sequence,
            actor_id=actor.id,
            action=action,
            target_id=target.id if target is not None else None,
            value=int(value),
            message=message,
            skill_id=skill_id,
        )
        self._sequence += 1
        self.state.log.insert(0, entry)

    def _log_defeat(self, actor: Unit, target: Unit) -> None:
        if target.current_hp == 0:
            self._log(actor, target, ActionKind.DEFEAT, 0, f"{target.name} is defeated")


def _validate_rosters(units: list[Unit]) -> None:
    """Raise ValueError for a malformed unit or a duplicate unit id."""
    seen: set[str] = set()
    for unit in units:
        unit.validate()
        if unit.id in seen:
            raise ValueError(f"Duplicate unit id '{unit.id}'")
        seen.add(unit.id)
