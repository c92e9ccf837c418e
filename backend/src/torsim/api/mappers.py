from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional, Union

from torsim.api.schemas import AttackOutcomeOut, HeroOut
from torsim.core.character.derived import DerivedStats, ResolvedEquipment
from torsim.core.engine.rules.adversary_attack import AttackOutcome
from torsim.core.engine.rules.hero_attack import HeroAttackOutcome
from torsim.db.models import HeroRow


def _equipment(e: Optional[ResolvedEquipment]) -> Optional[Dict[str, Any]]:
    if e is None:
        return None
    return e.model_dump(mode="json")


def derived_to_dict(d: DerivedStats) -> Dict[str, Any]:
    return {
        "strength_tn": d.strength_tn,
        "heart_tn": d.heart_tn,
        "wits_tn": d.wits_tn,
        "tn_base": d.tn_base,
        "load_total": d.load_total,
        "weary": d.weary,
        "parry": asdict(d.parry),
        "protection": asdict(d.protection),
        "protection_piercing_bonus": d.protection_piercing_bonus,
        "favoured_skills": sorted(d.favoured_skills),
        "combat_proficiencies": asdict(d.combat_proficiencies),
        "equipped_weapons": [_equipment(w) for w in d.equipped_weapons],
        "equipped_armour": _equipment(d.equipped_armour),
        "equipped_helm": _equipment(d.equipped_helm),
        "equipped_shield": _equipment(d.equipped_shield),
    }


def hero_out(row: HeroRow) -> HeroOut:
    return HeroOut(
        id=row.id,
        name=row.name,
        campaign_id=row.campaign_id,
        data=row.data_json,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def outcome_out(o: Union[AttackOutcome, HeroAttackOutcome]) -> AttackOutcomeOut:
    hero_endurance = None
    if isinstance(o, AttackOutcome):
        hero_endurance = o.hero.endurance.current
    return AttackOutcomeOut(
        passed=o.passed,
        damage=o.damage,
        total=o.total,
        picks=list(o.picks),
        piercing_blow=o.piercing_blow,
        resisted=o.resisted,
        hero_endurance=hero_endurance,
    )
