from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from torsim.core.character.hero import AttributeKey, Hero, InventoryItem
from torsim.core.compendium import Compendium, CultureEntry, EquipmentEntry

DEFAULT_TN_BASE = 20
STRIDER_TN_BASE = 18

CLOSE_FITTING_BONUS = 2

_PROTECTION_RE = re.compile(r"([+-]?)(\d+)d", re.IGNORECASE)
_PARRY_RE = re.compile(r"([+-]?)(\d+)")

# Reward tags printed first on weapons, in this order; the rest alphabetically.
_WEAPON_REWARD_ORDER = ("keen", "fell", "grievous")

_HALF_ARMOUR_LOAD_CULTURES = ("dwarves",)

SKILL_ATTRIBUTE: Dict[str, AttributeKey] = {
    # Personality
    "awe": "strength",
    "enhearten": "heart",
    "persuade": "wits",
    # Movement
    "athletics": "strength",
    "travel": "heart",
    "stealth": "wits",
    # Perception
    "awareness": "strength",
    "insight": "heart",
    "scan": "wits",
    # Survival
    "hunting": "strength",
    "healing": "heart",
    "explore": "wits",
    # Custom
    "song": "strength",
    "courtesy": "heart",
    "riddle": "wits",
    # Vocation
    "craft": "strength",
    "battle": "heart",
    "lore": "wits",
}


@dataclass(frozen=True)
class ParryBreakdown:
    base: int = 0
    shield: int = 0
    other: int = 0
    total: int = 0


@dataclass(frozen=True)
class ProtectionBreakdown:
    armour: int = 0
    helm: int = 0
    other: int = 0
    total: int = 0


@dataclass(frozen=True)
class ResolvedProficiencies:
    axes: int = 0
    bows: int = 0
    spears: int = 0
    swords: int = 0
    brawling: int = 0

    def rating(self, key: Optional[str]) -> int:
        if not key:
            return 0
        return int(getattr(self, key, 0) or 0)

    def best(self) -> int:
        return max(self.axes, self.bows, self.spears, self.swords, self.brawling)


class ResolvedEquipment(EquipmentEntry):
    """Compendium entry with the inventory item's overrides merged in."""

    item_id: Optional[str] = None
    base_name: str = ""
    rewards: Tuple[str, ...] = ()
    piercing_protection_bonus: int = 0


@dataclass(frozen=True)
class DerivedStats:
    strength_tn: int
    heart_tn: int
    wits_tn: int
    load_total: int
    parry: ParryBreakdown
    protection: ProtectionBreakdown
    favoured_skills: FrozenSet[str]
    combat_proficiencies: ResolvedProficiencies
    equipped_weapons: List[ResolvedEquipment] = field(default_factory=list)
    equipped_armour: Optional[ResolvedEquipment] = None
    equipped_helm: Optional[ResolvedEquipment] = None
    equipped_shield: Optional[ResolvedEquipment] = None
    protection_piercing_bonus: int = 0
    weary: bool = False
    tn_base: int = DEFAULT_TN_BASE

    def attribute_tn(self, attr: AttributeKey) -> int:
        return int(getattr(self, f"{attr}_tn"))


# --- parsing helpers ---


def _clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def tn_from_rating(rating: int, base: int = DEFAULT_TN_BASE) -> int:
    return base - _clamp(int(rating), 1, 10)


def parse_protection_dice(value: Any) -> int:
    # "1d", "3d", "+1d", "-1d", "—"
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return 0
    v = value.strip()
    if not v or v in ("—", "-"):
        return 0
    m = _PROTECTION_RE.search(v)
    if not m:
        return 0
    sign = -1 if m.group(1) == "-" else 1
    return sign * int(m.group(2))


def parse_parry_modifier(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return 0
    m = _PARRY_RE.search(value.strip())
    if not m:
        return 0
    sign = -1 if m.group(1) == "-" else 1
    return sign * int(m.group(2))


def order_rewards(rewards: List[str], is_weapon: bool) -> List[str]:
    seen: List[str] = []
    for r in rewards:
        r = str(r).strip()
        if r and r.lower() not in [s.lower() for s in seen]:
            seen.append(r)

    if not is_weapon:
        return sorted(seen, key=str.lower)

    head = [
        r
        for key in _WEAPON_REWARD_ORDER
        for r in seen
        if r.lower() == key
    ]
    rest = sorted((r for r in seen if r.lower() not in _WEAPON_REWARD_ORDER), key=str.lower)
    return head + rest


def display_name(name: str, rewards: List[str], is_weapon: bool) -> str:
    tags = order_rewards(rewards, is_weapon)
    return f"{name} ({', '.join(tags)})" if tags else name


# --- equipment resolution ---


def resolve_item(entry: EquipmentEntry, item: Optional[InventoryItem]) -> ResolvedEquipment:
    """Merge an inventory item's overrides into a copy of the compendium entry."""
    ov = item.override if item is not None else None
    data = entry.model_dump()
    data["item_id"] = item.id if item is not None else None
    data["base_name"] = entry.name

    if ov is None:
        return ResolvedEquipment(**data)

    is_weapon = entry.category == "Weapon"

    if entry.load is not None or ov.load_delta:
        data["load"] = int(entry.load or 0) + ov.load_delta
    if entry.damage is not None or ov.damage_delta:
        data["damage"] = int(entry.damage or 0) + ov.damage_delta
    if ov.protection_delta:
        dice = parse_protection_dice(entry.protection) + parse_protection_dice(
            ov.protection_delta
        )
        data["protection"] = f"{dice}d"
    if ov.parry_modifier_delta:
        mod = parse_parry_modifier(entry.parry_modifier) + ov.parry_modifier_delta
        data["parry_modifier"] = f"{mod:+d}"
    if ov.piercing_threshold is not None:
        data["piercing_threshold"] = ov.piercing_threshold
    if ov.injury:
        data["injury"] = ov.injury
    if ov.notes_append:
        data["notes"] = f"{entry.notes} {ov.notes_append}".strip() if entry.notes else ov.notes_append

    rewards = order_rewards(ov.rewards, is_weapon)
    data["rewards"] = tuple(rewards)
    data["name"] = display_name(entry.name, rewards, is_weapon)

    bonus = 0
    if any(r.lower() == "close-fitting" for r in rewards):
        bonus = CLOSE_FITTING_BONUS
    if ov.piercing_protection_bonus is not None:
        bonus = max(bonus, ov.piercing_protection_bonus)
    data["piercing_protection_bonus"] = bonus

    return ResolvedEquipment(**data)


def _item_entry(item: InventoryItem, compendium: Compendium) -> Optional[EquipmentEntry]:
    return compendium.equipment_entry(item.equipment_id)


def _first_of(items: List[ResolvedEquipment], category: str) -> Optional[ResolvedEquipment]:
    for it in items:
        if it.category == category:
            return it
    return None


def _legacy(compendium: Compendium, equipment_id: Optional[str]) -> Optional[ResolvedEquipment]:
    entry = compendium.equipment_entry(equipment_id)
    return resolve_item(entry, None) if entry is not None else None


# --- proficiencies / favoured skills ---


def _culture_proficiencies(culture: Optional[CultureEntry]) -> Dict[str, int]:
    out = {"axes": 0, "bows": 0, "spears": 0, "swords": 0}
    if culture is None:
        return out
    for block in culture.combat_proficiencies:
        # an "or" list cannot be chosen without the player; the first option gets it
        if not block.options or not block.rating:
            continue
        first = str(block.options[0]).lower()
        for key, needle in (("axes", "axe"), ("bows", "bow"), ("spears", "spear"), ("swords", "sword")):
            if needle in first:
                out[key] = max(out[key], int(block.rating))
    return out


def resolve_proficiencies(hero: Hero, culture: Optional[CultureEntry]) -> ResolvedProficiencies:
    base = _culture_proficiencies(culture)
    hp = hero.combat_proficiencies
    return ResolvedProficiencies(
        axes=hp.axes if hp.axes is not None else base["axes"],
        bows=hp.bows if hp.bows is not None else base["bows"],
        spears=hp.spears if hp.spears is not None else base["spears"],
        swords=hp.swords if hp.swords is not None else base["swords"],
        brawling=hp.brawling if hp.brawling is not None else 0,
    )


def favoured_skill_set(hero: Hero) -> FrozenSet[str]:
    fav: set[str] = set()
    if hero.culture_favoured_skill:
        fav.add(str(hero.culture_favoured_skill))
    fav.update(str(s) for s in hero.calling_favoured_skills if s)
    fav.update(str(s) for s in hero.favoured_skill_ids if s)
    fav.update(str(k) for k, v in hero.skill_favoured.items() if v)
    return frozenset(fav)


# --- load ---


def _item_load(item: InventoryItem, entry: Optional[EquipmentEntry]) -> int:
    if item.load is not None:
        return int(item.load)
    if entry is None:
        return 0
    delta = item.override.load_delta if item.override is not None else 0
    return int(entry.load or 0) + delta


def _halves_armour_load(culture: Optional[CultureEntry]) -> bool:
    if culture is None:
        return False
    keys = (culture.name.strip().lower(), culture.id.strip().lower())
    return any(k.startswith(c) for k in keys for c in _HALF_ARMOUR_LOAD_CULTURES)


def compute_load(hero: Hero, compendium: Compendium, culture: Optional[CultureEntry] = None) -> int:
    armour_load = 0
    other_load = 0
    for item in hero.inventory:
        if item.dropped:
            continue
        entry = _item_entry(item, compendium)
        l = _item_load(item, entry) * item.qty
        if entry is not None and entry.category in ("Armour", "Headgear"):
            armour_load += l
        else:
            other_load += l

    if _halves_armour_load(culture):
        armour_load = math.ceil(armour_load / 2)

    return armour_load + other_load + int(hero.carried_treasure or 0)


# --- main entry ---


def skill_tn(hero: Hero, skill_id: str, tn_base: int = DEFAULT_TN_BASE) -> int:
    attr = SKILL_ATTRIBUTE.get(str(skill_id).lower(), "wits")
    tn = tn_from_rating(hero.attributes.rating(attr), tn_base)
    if hero.prowess_attribute == attr:
        tn -= 1
    return tn


def compute_derived(
    hero: Hero, compendium: Compendium, tn_base: int = DEFAULT_TN_BASE
) -> DerivedStats:
    culture = compendium.culture(hero.culture_id)

    tns: Dict[str, int] = {}
    for attr in ("strength", "heart", "wits"):
        tn = tn_from_rating(hero.attributes.rating(attr), tn_base)
        if hero.prowess_attribute == attr:
            tn -= 1
        tns[attr] = tn

    # equipped & not dropped, inventory order
    resolved: List[ResolvedEquipment] = []
    for item in hero.inventory:
        if not item.equipped or item.dropped:
            continue
        entry = _item_entry(item, compendium)
        if entry is not None:
            resolved.append(resolve_item(entry, item))

    weapons = [r for r in resolved if r.category == "Weapon"]
    armour = _first_of(resolved, "Armour")
    helm = _first_of(resolved, "Headgear")
    shield = _first_of(resolved, "Shield")

    eq = hero.equipped
    if not weapons:
        legacy_weapon = _legacy(compendium, eq.weapon_id)
        weapons = [legacy_weapon] if legacy_weapon is not None else []
    armour = armour or _legacy(compendium, eq.armour_id)
    helm = helm or _legacy(compendium, eq.helm_id)
    shield = shield or _legacy(compendium, eq.shield_id)

    if hero.parry.base is not None:
        parry_base = int(hero.parry.base)
    else:
        parry_base = hero.attributes.wits + (culture.parry_bonus if culture else 0)
        if hero.has_virtue("nimbleness"):
            parry_base += 1
    parry_shield = parse_parry_modifier(shield.parry_modifier) if shield else 0
    parry_other = int(hero.parry.other or 0)

    prot_armour = parse_protection_dice(armour.protection) if armour else 0
    prot_helm = parse_protection_dice(helm.protection) if helm else 0
    prot_other = int(hero.protection_other or 0)

    piercing_bonus = max(
        [r.piercing_protection_bonus for r in (armour, helm) if r is not None] or [0]
    )

    load_total = compute_load(hero, compendium, culture)
    current = int(hero.endurance.current or 0)
    weary = hero.conditions.weary or current <= load_total + hero.endurance.fatigue

    return DerivedStats(
        strength_tn=tns["strength"],
        heart_tn=tns["heart"],
        wits_tn=tns["wits"],
        load_total=load_total,
        parry=ParryBreakdown(
            base=parry_base,
            shield=parry_shield,
            other=parry_other,
            total=parry_base + parry_shield + parry_other,
        ),
        protection=ProtectionBreakdown(
            armour=prot_armour,
            helm=prot_helm,
            other=prot_other,
            total=prot_armour + prot_helm + prot_other,
        ),
        favoured_skills=favoured_skill_set(hero),
        combat_proficiencies=resolve_proficiencies(hero, culture),
        equipped_weapons=weapons,
        equipped_armour=armour,
        equipped_helm=helm,
        equipped_shield=shield,
        protection_piercing_bonus=max(0, piercing_bonus),
        weary=weary,
        tn_base=tn_base,
    )
