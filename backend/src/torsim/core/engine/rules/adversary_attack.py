from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel

from torsim.core.character.derived import DerivedStats
from torsim.core.character.hero import Hero
from torsim.core.engine.commands import (
    EnemyActionUsed,
    EventBase,
    Log,
    SetEnemyPosition,
    SetHeroSeized,
)
from torsim.core.engine.dice import (
    MAX_FEAT_VALUE,
    PIERCE_BONUS,
    DiceSource,
    FeatMode,
    RollResult,
    adversary_feat_value,
    recompute_adversary_total,
    roll_adversary,
    roll_check,
    roll_feat_die,
)
from torsim.core.engine.state import CombatState, EnemyPosition, WeaponProfile

logger = logging.getLogger(__name__)

EnemySpecialPick = Literal["None", "PIERCE", "HEAVY BLOW", "BREAK SHIELD", "SEIZE"]

_RANGED_MARKERS = ("bow", "sling", "ranged")


class PendingAdversaryAttack(BaseModel):
    """A rolled enemy attack waiting for its special success picks."""

    enemy_id: str
    enemy_name: str
    attribute_level: int = 0
    weapon: WeaponProfile
    dice: int
    spend: int = 0
    target_number: int
    roll: RollResult

    @property
    def needs_picks(self) -> bool:
        return self.roll.icons > 0


@dataclass
class AttackOutcome:
    hero: Hero
    events: List[EventBase] = field(default_factory=list)
    passed: bool = False
    damage: int = 0
    total: int = 0
    picks: List[str] = field(default_factory=list)
    piercing_blow: bool = False
    resisted: Optional[bool] = None


def weapon_position(weapon_name: str) -> EnemyPosition:
    name = weapon_name.lower()
    return "ranged" if any(m in name for m in _RANGED_MARKERS) else "melee"


def _has_special(weapon: WeaponProfile, label: str) -> bool:
    needle = label.strip().lower()
    return any(s.strip().lower() == needle for s in weapon.special_damage)


def normalise_picks(picks: Optional[Sequence[str]], icons: int) -> List[str]:
    """One pick per icon: short lists are padded with None, long ones cut."""
    out = list(picks or [])[: max(0, icons)]
    out.extend(["None"] * (max(0, icons) - len(out)))
    return out


def begin_adversary_attack(
    state: CombatState,
    derived: DerivedStats,
    enemy_id: str,
    weapon_name: str,
    *,
    spend: int = 0,
    weary: bool = False,
    feat_mode: FeatMode = "normal",
    rng: Optional[DiceSource] = None,
) -> Optional[PendingAdversaryAttack]:
    if state.surprise is not None and state.surprise.enemies_surprised and state.round == 1:
        logger.debug("enemies are surprised in round 1, attack refused")
        return None

    enemy = state.enemy(enemy_id)
    if enemy is None or enemy.is_defeated:
        logger.debug("enemy %s missing or defeated", enemy_id)
        return None
    weapon = enemy.weapon(weapon_name)
    if weapon is None:
        logger.debug("enemy %s has no weapon %r", enemy_id, weapon_name)
        return None

    pool = enemy.hate_or_resolve.value if enemy.hate_or_resolve is not None else 0
    spend = max(0, min(int(spend), enemy.might, pool))
    penalty = state.round_mods.enemy_dice_penalty.get(enemy.id, 0)
    dice = max(0, weapon.rating + spend + penalty)
    tn = derived.parry.total + state.round_mods.hero_parry_bonus

    roll = roll_adversary(dice, feat_mode, weary, tn, rng=rng)
    return PendingAdversaryAttack(
        enemy_id=enemy.id,
        enemy_name=enemy.name,
        attribute_level=enemy.attribute_level,
        weapon=weapon,
        dice=dice,
        spend=spend,
        target_number=tn,
        roll=roll,
    )


def suggest_special_picks(pending: PendingAdversaryAttack) -> List[str]:
    """Picks an automated enemy would make for its icons."""
    picks = ["None"] * pending.roll.icons
    if not picks:
        return picks

    w = pending.weapon
    base = adversary_feat_value(pending.roll.feat)
    if _has_special(w, "Pierce") and base < MAX_FEAT_VALUE:
        if min(MAX_FEAT_VALUE, base + PIERCE_BONUS) >= MAX_FEAT_VALUE:
            picks[0] = "PIERCE"
    if _has_special(w, "Heavy Blow"):
        picks = [p if p != "None" else "HEAVY BLOW" for p in picks]
    return picks


def _break_shield(hero: Hero, derived: DerivedStats) -> Hero:
    shield = derived.equipped_shield
    if shield is None or not shield.item_id:
        return hero
    inventory = list(hero.inventory)
    for i, item in enumerate(inventory):
        if item.id != shield.item_id or not item.equipped or item.dropped:
            continue
        if item.override is not None and item.override.rewards:
            return hero
        inventory[i] = item.model_copy(update={"equipped": False, "dropped": True})
        return hero.model_copy(update={"inventory": inventory})
    return hero


def _suffer_wound(hero: Hero, rng: Optional[DiceSource]) -> Hero:
    if hero.conditions.wounded:
        conditions = hero.conditions.model_copy(update={"dying": True})
        return hero.model_copy(update={"conditions": conditions})

    conditions = hero.conditions.model_copy(update={"wounded": True})
    severity = roll_feat_die(rng)
    if severity.is_eye:
        conditions = conditions.model_copy(update={"dying": True})
        return hero.model_copy(update={"conditions": conditions}).with_endurance(0)
    if severity.is_gandalf:
        return hero.model_copy(update={"conditions": conditions})

    days = f"{severity.value} days"
    injury = f"{hero.injury.strip()}; {days}" if hero.injury.strip() else days
    return hero.model_copy(update={"conditions": conditions, "injury": injury})


def finalize_adversary_attack(
    pending: PendingAdversaryAttack,
    picks: Optional[Sequence[str]],
    hero: Hero,
    derived: DerivedStats,
    *,
    rng: Optional[DiceSource] = None,
) -> AttackOutcome:
    """
    Apply special successes, damage and Piercing Blow to a copy of the hero.

    The returned events still have to be dispatched into the combat state.
    """
    chosen = [p for p in normalise_picks(picks, pending.roll.icons) if p != "None"]
    pierce = chosen.count("PIERCE")
    heavy = chosen.count("HEAVY BLOW")

    roll = recompute_adversary_total(pending.roll, pierce, pending.target_number)
    passed = bool(roll.passed)
    feat_value = min(
        MAX_FEAT_VALUE, adversary_feat_value(roll.feat) + PIERCE_BONUS * pierce
    )
    piercing_blow = passed and (roll.feat.is_eye or feat_value >= MAX_FEAT_VALUE)

    damage = pending.weapon.damage + heavy * pending.attribute_level if passed else 0
    out = AttackOutcome(
        hero=hero, passed=passed, damage=damage, total=roll.total, picks=chosen,
        piercing_blow=piercing_blow,
    )

    if passed and damage > 0:
        out.hero = out.hero.with_endurance((out.hero.endurance.current or 0) - damage)
    if passed and "BREAK SHIELD" in chosen:
        out.hero = _break_shield(out.hero, derived)

    piercing_line = ""
    if piercing_blow:
        injury_tn = pending.weapon.injury
        bonus = derived.protection_piercing_bonus
        pr = roll_check(
            derived.protection.total, "normal", hero.conditions.weary, injury_tn, rng=rng
        )
        out.resisted = pr.feat.is_gandalf or pr.total + bonus >= injury_tn
        piercing_line = (
            f"Piercing - {'RESISTED' if out.resisted else 'NOT RESISTED'} (TN {injury_tn})"
            + (f" (+{bonus})" if bonus else "")
        )
        if not out.resisted:
            out.hero = _suffer_wound(out.hero, rng)

    weapon = pending.weapon.name
    if passed:
        pb = " - PIERCING BLOW" if piercing_blow else ""
        extra = f" [{', '.join(chosen)}]" if chosen else ""
        text = f"{pending.enemy_name} hits ({roll.degree}) with {weapon}{pb}{extra}. Damage {damage}."
    else:
        text = f"{pending.enemy_name} misses with {weapon} (total {roll.total}, TN {pending.target_number})."

    out.events.append(
        Log(
            text=text,
            data={
                "enemy_id": pending.enemy_id,
                "weapon": weapon,
                "total": roll.total,
                "tn": pending.target_number,
                "specials": chosen,
            },
        )
    )
    if passed and "SEIZE" in chosen:
        out.events.append(SetHeroSeized(seized=True, reason="Seized by the enemy."))
    if piercing_line:
        out.events.append(Log(text=piercing_line, data={"enemy_id": pending.enemy_id, "weapon": weapon}))
    out.events.append(
        SetEnemyPosition(enemy_id=pending.enemy_id, position=weapon_position(weapon))
    )
    out.events.append(
        EnemyActionUsed(enemy_id=pending.enemy_id, kind="attack", data={"weapon": weapon})
    )

    logger.debug(
        "adversary attack %s/%s: passed=%s damage=%s picks=%s",
        pending.enemy_id,
        weapon,
        passed,
        damage,
        chosen,
    )
    return out
