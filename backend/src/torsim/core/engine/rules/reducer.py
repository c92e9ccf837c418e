from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from torsim.core.engine.commands import (
    COMBAT_EVENT_ADAPTER,
    AddHeroParryBonus,
    ApplyEnemyEndurance,
    ApplyEnemyWound,
    AttemptEscape,
    AutoEngage,
    EndCombat,
    EnemyActionUsed,
    EventBase,
    HeroActionUsed,
    Log,
    RoundBegin,
    SetEnemyDicePenalty,
    SetEnemyPosition,
    SetEngagement,
    SetHeroSeized,
    SetHeroStance,
    StartCombat,
)
from torsim.core.engine.rules.engagement import (
    auto_engage,
    empty_engagement,
    prune_defeated,
)
from torsim.core.engine.state import (
    ActionsUsed,
    CombatEnemy,
    CombatLogEntry,
    CombatState,
    EnemyEndurance,
    HeroCombatState,
    RoundMods,
    new_id,
)

logger = logging.getLogger(__name__)


def create_combat_id() -> str:
    return new_id("combat")


def _parse_event(event: Union[EventBase, Mapping[str, Any]]) -> Optional[EventBase]:
    if isinstance(event, EventBase):
        return event
    try:
        return COMBAT_EVENT_ADAPTER.validate_python(dict(event))
    except (PydanticValidationError, TypeError, ValueError):
        logger.debug("dropping malformed combat event: %r", event)
        return None


def _log(s: CombatState, text: str, data: Any = None) -> None:
    s.log.append(CombatLogEntry(text=text, data=data))


def _normalise_enemy(e: CombatEnemy) -> CombatEnemy:
    mx = max(0, e.endurance.max)
    cur = max(0, min(mx, e.endurance.current))
    return e.model_copy(
        update={"endurance": EnemyEndurance(max=mx, current=cur), "wounds": 0}
    )


def _prune(s: CombatState) -> None:
    s.engagement = prune_defeated(s.engagement, s.enemies, s.hero_id)


def _start(ev: StartCombat) -> CombatState:
    enemies = [_normalise_enemy(e) for e in ev.enemies]
    s = CombatState(
        id=create_combat_id(),
        campaign_id=ev.campaign_id,
        hero_id=ev.hero_id,
        phase="roundStart",
        round=1,
        distance="close",
        hero=HeroCombatState(stance="open"),
        surprise=ev.surprise,
        round_mods=RoundMods(),
        enemies=enemies,
        engagement=empty_engagement(),
        options=ev.options,
        log=[],
        actions_used=ActionsUsed(),
    )
    _log(s, "Combat started.")
    return s


def combat_reducer(
    state: Optional[CombatState], event: Union[EventBase, Mapping[str, Any]]
) -> Optional[CombatState]:
    """
    Pure transition (state, event) -> state.

    The input state is never mutated: every transition works on a deep copy.
    Unknown or malformed events return the input state object as is.
    """
    ev = _parse_event(event)
    if ev is None:
        return state

    if isinstance(ev, StartCombat):
        s = _start(ev)
        logger.debug("combat %s started with %d enemies", s.id, len(s.enemies))
        return s

    if state is None:
        logger.debug("no active combat, ignoring %s", ev.type)
        return None

    s = state.model_copy(deep=True)

    if isinstance(ev, EndCombat):
        s.phase = "combatEnd"
        _log(s, f"Combat ended: {ev.reason}")
        return s

    if isinstance(ev, RoundBegin):
        s.round += 1
        s.phase = "roundStart"
        s.engagement = empty_engagement()
        s.round_mods = RoundMods()
        s.actions_used = ActionsUsed()
        _log(s, f"Round {s.round} begins.")
        return s

    if isinstance(ev, SetHeroStance):
        s.hero.stance = ev.stance
        s.phase = "engagement"
        _log(s, f"Hero stance: {ev.stance}.")
        return s

    if isinstance(ev, AutoEngage):
        s.engagement = auto_engage(s.hero_id, s.hero.stance, s.enemies)
        s.phase = "heroTurn"
        _prune(s)
        _log(s, "Engagement set.")
        return s

    if isinstance(ev, SetEngagement):
        # caller validates capacity before dispatch
        s.engagement = ev.engagement.model_copy(deep=True)
        s.phase = "heroTurn"
        _log(s, "Engagement updated.")
        return s

    if isinstance(ev, AttemptEscape):
        s.actions_used.hero = True
        if ev.mode == "FREE":
            s.phase = "combatEnd"
            _log(s, "Escaped combat (Rearward stance).")
        elif not ev.roll_passed:
            _log(s, "Escape attempt failed (remains engaged).")
        else:
            s.phase = "combatEnd"
            _log(s, "Escaped combat (Defensive stance success).")
        return s

    if isinstance(ev, Log):
        _log(s, ev.text, ev.data)
        return s

    if isinstance(ev, SetHeroSeized):
        s.hero.seized = ev.seized
        if ev.reason:
            _log(s, ev.reason, ev.data)
        return s

    if isinstance(ev, AddHeroParryBonus):
        s.round_mods.hero_parry_bonus += ev.delta
        if ev.reason:
            _log(s, ev.reason, ev.data)
        return s

    if isinstance(ev, SetEnemyDicePenalty):
        s.round_mods.enemy_dice_penalty[ev.enemy_id] = ev.penalty
        if ev.reason:
            _log(s, ev.reason, ev.data)
        return s

    if isinstance(ev, SetEnemyPosition):
        enemy = s.enemy(ev.enemy_id)
        if enemy is not None:
            enemy.position = ev.position
        if ev.reason:
            _log(s, ev.reason, ev.data)
        return s

    if isinstance(ev, HeroActionUsed):
        s.actions_used.hero = True
        _log(s, f"Hero action: {ev.kind}.", ev.data)
        return s

    if isinstance(ev, EnemyActionUsed):
        s.actions_used.enemies[ev.enemy_id] = True
        _log(s, f"Enemy action ({ev.enemy_id}): {ev.kind}.", ev.data)
        return s

    if isinstance(ev, ApplyEnemyEndurance):
        enemy = s.enemy(ev.enemy_id)
        label = enemy.name if enemy is not None else "Enemy"
        if enemy is not None:
            mx = enemy.endurance.max
            enemy.endurance.current = max(0, min(mx, enemy.endurance.current + ev.delta))
        _prune(s)
        sign = "+" if ev.delta >= 0 else ""
        reason = f" ({ev.reason})" if ev.reason else ""
        _log(s, f"{label} Endurance {sign}{ev.delta}{reason}.", ev.data)
        return s

    if isinstance(ev, ApplyEnemyWound):
        enemy = s.enemy(ev.enemy_id)
        label = enemy.name if enemy is not None else "Enemy"
        prev = enemy.wounds if enemy is not None else 0
        might = max(1, enemy.might if enemy is not None else 1)

        if enemy is not None and not ev.resisted:
            enemy.wounds = prev + 1
            if enemy.wounds >= might:
                enemy.endurance.current = 0
        _prune(s)

        if ev.resisted:
            text = f"{label} resists the Piercing Blow (TN {ev.injury_tn})."
        else:
            slain = " - slain!" if prev + 1 >= might else ""
            text = (
                f"{label} suffers a Wound (TN {ev.injury_tn}) - "
                f"Wounds {prev + 1}/{might}{slain}"
            )
        _log(s, text, ev.data)
        return s

    return state
