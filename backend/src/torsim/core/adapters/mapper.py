from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass
from typing import Any, Optional, cast

from torsim.core.character.hero import Hero
from torsim.core.compendium import AdversaryEntry
from torsim.core.engine.state import (
    CombatEnemy,
    EnemyEndurance,
    EnemyPosition,
    EnemySize,
    HateOrResolvePool,
    WeaponProfile,
    new_id,
)

_LARGE_NAME_MARKERS = ("troll", "great spider")
_LARGE_ID_MARKERS = ("troll", "great-spider")

_ATTRIBUTE_RANGE = (1, 10)
_RATING_RANGE = (0, 6)


@dataclass(frozen=True)
class EnemyOverrides:
    endurance_current: Optional[int] = None
    size: Optional[EnemySize] = None
    position: Optional[EnemyPosition] = None


def _as_dict(obj: Any) -> dict[str, Any]:
    """pydantic model / mapping / None -> plain dict."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return cast(dict[str, Any], obj)
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        res = dump()
        if isinstance(res, ABCMapping):
            return dict(cast(ABCMapping[str, Any], res))
        return {}
    if isinstance(obj, ABCMapping):
        return dict(cast(ABCMapping[str, Any], obj))
    return {}


def _first_present(d: ABCMapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _clamp(value: Any, lo: int, hi: int, default: int) -> int:
    return max(lo, min(hi, _to_int(value, default)))


def infer_size(name: str, entry_id: str = "") -> EnemySize:
    n = name.lower()
    i = entry_id.lower()
    if any(m in n for m in _LARGE_NAME_MARKERS) or any(m in i for m in _LARGE_ID_MARKERS):
        return "large"
    return "human"


def enemy_from_adversary(
    adversary: AdversaryEntry | ABCMapping[str, Any],
    *,
    enemy_id: Optional[str] = None,
    overrides: EnemyOverrides | None = None,
) -> CombatEnemy:
    """Compendium adversary -> fresh CombatEnemy at full endurance."""
    if isinstance(adversary, AdversaryEntry):
        a = adversary
    else:
        a = AdversaryEntry.model_validate(dict(adversary))
    ov = overrides or EnemyOverrides()

    end = max(0, a.endurance)
    current = end if ov.endurance_current is None else max(0, min(end, ov.endurance_current))

    pool = None
    if a.hate_or_resolve is not None:
        pool = HateOrResolvePool(
            type=a.hate_or_resolve.type, value=max(0, a.hate_or_resolve.value)
        )

    weapons = [
        WeaponProfile(
            name=w.name or "Weapon",
            rating=max(0, w.rating),
            damage=max(0, w.damage),
            injury=max(0, w.injury),
            special_damage=[str(s) for s in w.special_damage],
        )
        for w in a.combat_proficiencies
    ]

    return CombatEnemy(
        id=enemy_id or a.id or new_id("enemy"),
        name=a.name or "Enemy",
        size=ov.size or a.size or infer_size(a.name, a.id),
        endurance=EnemyEndurance(max=end, current=current),
        might=max(1, a.might),
        attribute_level=max(0, a.attribute_level),
        parry=a.parry if a.parry is not None else 0,
        armour=a.armour if a.armour is not None else 0,
        wounds=0,
        position=ov.position,
        hate_or_resolve=pool,
        combat_proficiencies=weapons,
        distinctive_features=[str(f) for f in a.distinctive_features],
    )


def hero_from_dict(raw: Hero | ABCMapping[str, Any] | Any) -> Hero:
    """
    Untyped hero document -> Hero.

    Missing fields take model defaults; attributes are clamped to 1..10,
    combat proficiencies and skill ratings to 0..6.
    """
    if isinstance(raw, Hero):
        return raw
    h = dict(_as_dict(raw))

    attrs = _as_dict(_first_present(h, "attributes", default={}))
    lo, hi = _ATTRIBUTE_RANGE
    h["attributes"] = {
        k: _clamp(_first_present(attrs, k, default=_first_present(h, k, default=2)), lo, hi, 2)
        for k in ("strength", "heart", "wits")
    }

    profs = _as_dict(_first_present(h, "combatProficiencies", "combat_proficiencies", default={}))
    lo, hi = _RATING_RANGE
    h.pop("combatProficiencies", None)
    h["combat_proficiencies"] = {
        k: (None if v is None else _clamp(v, lo, hi, 0)) for k, v in profs.items()
    }

    skills = _as_dict(_first_present(h, "skillRatings", "skill_ratings", default={}))
    h.pop("skillRatings", None)
    h["skill_ratings"] = {str(k): _clamp(v, lo, hi, 0) for k, v in skills.items()}

    endurance = dict(_as_dict(_first_present(h, "endurance", default={})))
    if endurance:
        mx = max(0, _to_int(_first_present(endurance, "max", "maximum", default=20), 20))
        endurance["max"] = mx
        endurance.pop("maximum", None)
        if endurance.get("current") is not None:
            endurance["current"] = max(0, min(mx, _to_int(endurance["current"], mx)))
        if "fatigue" in endurance:
            endurance["fatigue"] = max(0, _to_int(endurance["fatigue"]))
        h["endurance"] = endurance

    for key in ("shadow", "carriedTreasure", "carried_treasure"):
        if key in h:
            h[key] = max(0, _to_int(h[key]))

    return Hero.model_validate(h)
