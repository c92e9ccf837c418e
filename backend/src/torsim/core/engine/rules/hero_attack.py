from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel

from torsim.core.character.derived import DerivedStats, ResolvedEquipment
from torsim.core.character.hero import Hero, ProficiencyKey
from torsim.core.engine.commands import (
    AddHeroParryBonus,
    ApplyEnemyEndurance,
    ApplyEnemyWound,
    EventBase,
    HeroActionUsed,
    Log,
    SetEnemyDicePenalty,
    SetHeroSeized,
)
from torsim.core.engine.dice import (
    MAX_FEAT_VALUE,
    DiceSource,
    FeatDie,
    FeatMode,
    RollResult,
    classify_degree,
    hero_feat_value,
    roll_check,
    success_sum,
)
from torsim.core.engine.rules.adversary_attack import normalise_picks
from torsim.core.engine.state import RANGED_STANCES, CombatState, Stance

logger = logging.getLogger(__name__)

HeroSpecialPick = Literal[
    "None", "HEAVY BLOW", "FEND OFF", "PIERCE", "SHIELD THRUST", "BREAK FREE"
]
WieldMode = Literal["1h", "2h"]

_VERSATILE_INJURY_RE = re.compile(r"(\d+)\s*\(1h\)\s*/\s*(\d+)\s*\(2h\)", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\s*(\d+)")

_PIERCE_PER_PICK = {"swords": 1, "bows": 2, "spears": 3}
_FEND_OFF_PER_PICK = {"swords": 2, "spears": 3}


def proficiency_key(value: Optional[str]) -> Optional[ProficiencyKey]:
    s = (value or "").strip().lower()
    if "brawling" in s:
        return "brawling"
    if s.startswith("axe"):
        return "axes"
    if s.startswith("bow"):
        return "bows"
    if s.startswith("spear"):
        return "spears"
    if s.startswith("sword"):
        return "swords"
    return None


def is_ranged_capable(weapon: ResolvedEquipment) -> bool:
    return weapon.ranged or proficiency_key(weapon.proficiency) == "bows"


def can_use_weapon_in_stance(weapon: ResolvedEquipment, stance: Stance, seized: bool) -> bool:
    # seized heroes brawl, which needs a close combat stance
    ranged_stance = stance in RANGED_STANCES
    if seized:
        return not ranged_stance
    return is_ranged_capable(weapon) if ranged_stance else not is_ranged_capable(weapon)


def injury_tn(raw: Optional[str], wield_mode: WieldMode = "1h") -> int:
    """Parse "14", or a versatile value such as "12 (1h) / 14 (2h)"."""
    text = str(raw or "")
    m = _VERSATILE_INJURY_RE.search(text)
    if m:
        return int(m.group(2) if wield_mode == "2h" else m.group(1))
    m = _LEADING_INT_RE.match(text)
    return int(m.group(1)) if m else 0


class PendingHeroAttack(BaseModel):
    target_id: str
    target_name: str
    target_attribute_level: int = 0
    target_armour: int = 0
    weapon: ResolvedEquipment
    proficiency: Optional[str] = None
    seized: bool = False
    wield_mode: WieldMode = "1h"
    has_shield: bool = False
    strength: int = 0
    target_number: int = 0
    roll: RollResult

    @property
    def needs_picks(self) -> bool:
        return bool(self.roll.passed) and self.roll.icons > 0


@dataclass
class HeroAttackOutcome:
    events: List[EventBase] = field(default_factory=list)
    passed: bool = False
    damage: int = 0
    total: int = 0
    picks: List[str] = field(default_factory=list)
    piercing_blow: bool = False
    resisted: Optional[bool] = None


def begin_hero_attack(
    state: CombatState,
    hero: Hero,
    derived: DerivedStats,
    target_id: str,
    weapon_name: str,
    *,
    feat_mode: FeatMode = "normal",
    wield_mode: WieldMode = "1h",
    rng: Optional[DiceSource] = None,
) -> Optional[PendingHeroAttack]:
    if state.actions_used.hero:
        logger.debug("hero already used its action in round %s", state.round)
        return None

    target = state.enemy(target_id)
    if target is None or target.is_defeated:
        logger.debug("target %s missing or defeated", target_id)
        return None

    stance = state.hero.stance
    if stance not in RANGED_STANCES:
        engaged = state.engagement.hero_to_enemies.get(state.hero_id, [])
        if target.id not in engaged:
            logger.debug("target %s is not engaged in stance %s", target_id, stance)
            return None

    weapon = next((w for w in derived.equipped_weapons if w.name == weapon_name), None)
    if weapon is None:
        logger.debug("weapon %r is not equipped", weapon_name)
        return None

    seized = state.hero.seized
    if not can_use_weapon_in_stance(weapon, stance, seized):
        logger.debug("weapon %r not usable in stance %s", weapon_name, stance)
        return None

    key = proficiency_key(weapon.proficiency)
    profs = derived.combat_proficiencies
    if seized:
        dice = max(0, profs.best() - 1)
    else:
        dice = profs.rating(key)

    has_shield = derived.equipped_shield is not None
    tn = target.parry or 0
    roll = roll_check(dice, feat_mode, derived.weary, tn, rng=rng)

    return PendingHeroAttack(
        target_id=target.id,
        target_name=target.name,
        target_attribute_level=target.attribute_level,
        target_armour=target.armour or 0,
        weapon=weapon,
        proficiency=key,
        seized=seized,
        wield_mode="1h" if has_shield else wield_mode,
        has_shield=has_shield,
        strength=hero.attributes.strength,
        target_number=tn,
        roll=roll,
    )


def allowed_hero_picks(pending: PendingHeroAttack) -> List[str]:
    options = ["None", "HEAVY BLOW", "FEND OFF"]
    if not pending.seized and pending.proficiency in _PIERCE_PER_PICK:
        options.append("PIERCE")
    if pending.has_shield and pending.strength > pending.target_attribute_level:
        options.append("SHIELD THRUST")
    if pending.seized:
        options.append("BREAK FREE")
    return options


def _pb_feat_value(feat: FeatDie) -> int:
    # Gandalf reaches the Piercing Blow threshold on hero rolls
    if feat.is_gandalf:
        return MAX_FEAT_VALUE
    return hero_feat_value(feat)


def finalize_hero_attack(
    pending: PendingHeroAttack,
    picks: Optional[Sequence[str]] = None,
    *,
    rng: Optional[DiceSource] = None,
) -> HeroAttackOutcome:
    r = pending.roll
    icons = r.icons if r.passed else 0
    chosen = [p for p in normalise_picks(picks, icons) if p != "None"]

    key = pending.proficiency
    brawling = pending.seized or key == "brawling"
    pierce_per = 0 if brawling else _PIERCE_PER_PICK.get(key or "", 0)
    feat_number = min(
        MAX_FEAT_VALUE, _pb_feat_value(r.feat) + chosen.count("PIERCE") * pierce_per
    )
    succ = success_sum(r.success, r.weary)
    total = feat_number + succ
    passed = r.feat.is_gandalf or total >= pending.target_number

    two_hand = 1 if pending.wield_mode == "2h" else 0
    heavy = chosen.count("HEAVY BLOW") * (pending.strength + two_hand)
    damage = (pending.weapon.damage or 0) + heavy if passed else 0

    out = HeroAttackOutcome(passed=passed, damage=damage, total=total, picks=chosen)
    events = out.events
    w = pending.weapon

    if "BREAK FREE" in chosen:
        events.append(SetHeroSeized(seized=False, reason="Broke free from Seize."))

    if passed and damage > 0:
        events.append(
            ApplyEnemyEndurance(
                enemy_id=pending.target_id,
                delta=-damage,
                reason="Hit",
                data={"weapon": w.name, "wield_mode": pending.wield_mode},
            )
        )

    fend = chosen.count("FEND OFF")
    if passed and fend:
        bonus = _FEND_OFF_PER_PICK.get(key or "", 1) * fend
        events.append(
            AddHeroParryBonus(delta=bonus, reason=f"Fend Off: Parry +{bonus} this round.")
        )

    if passed and "SHIELD THRUST" in chosen:
        if pending.has_shield and pending.strength > pending.target_attribute_level:
            events.append(
                SetEnemyDicePenalty(
                    enemy_id=pending.target_id,
                    penalty=-1,
                    reason=f"Shield Thrust: {pending.target_name} loses (1d) this round.",
                )
            )
        else:
            events.append(
                Log(
                    text="Shield Thrust not applied (missing shield or Strength "
                    "not greater than target Attribute Level)."
                )
            )

    piercing_line = ""
    out.piercing_blow = passed and not brawling and (
        r.feat.is_gandalf or feat_number >= MAX_FEAT_VALUE
    )
    if out.piercing_blow:
        tn = injury_tn(w.injury, pending.wield_mode)
        if tn > 0:
            pr = roll_check(pending.target_armour, "normal", False, tn, rng=rng)
            out.resisted = bool(pr.passed)
            piercing_line = f"Piercing - {'RESISTED' if out.resisted else 'NOT RESISTED'} (TN {tn})"
            events.append(
                ApplyEnemyWound(
                    enemy_id=pending.target_id,
                    injury_tn=tn,
                    resisted=out.resisted,
                    data={"weapon": w.name, "armour_dice": pending.target_armour},
                )
            )

    events.append(
        HeroActionUsed(
            kind="attack",
            data={"weapon": w.name, "target_id": pending.target_id, "selections": chosen},
        )
    )

    pb = " - PIERCING BLOW" if out.piercing_blow else ""
    extra = f" [{', '.join(chosen)}]" if chosen else ""
    if passed:
        degree = classify_degree(r.icons)
        text = f"{w.name} hits {pending.target_name} ({degree}){pb}, TN {pending.target_number}. Damage {damage}.{extra}"
    else:
        text = f"{w.name} misses {pending.target_name} (total {total}, TN {pending.target_number})."
    events.append(
        Log(
            text=text,
            data={"weapon": w.name, "tn": pending.target_number, "passed": passed, "selections": chosen},
        )
    )
    if piercing_line:
        events.append(Log(text=piercing_line, data={"weapon": w.name, "target_id": pending.target_id}))

    logger.debug(
        "hero attack on %s with %s: passed=%s damage=%s", pending.target_id, w.name, passed, damage
    )
    return out
