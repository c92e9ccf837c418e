from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from torsim.core.engine.state import (
    RANGED_STANCES,
    CombatEnemy,
    EngagementState,
    Stance,
)

HUMAN_SIZED_CAP = 3
LARGE_CAP = 6


@dataclass
class ValidationError:
    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    ok: bool
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]


def empty_engagement() -> EngagementState:
    return EngagementState(hero_to_enemies={}, enemy_to_heroes={})


def max_heroes_per_enemy(enemy: CombatEnemy) -> int:
    # up to 3 heroes on a human-sized enemy, 6 on a large foe
    return LARGE_CAP if enemy.size == "large" else HUMAN_SIZED_CAP


def auto_engage(
    hero_id: str, hero_stance: Stance, enemies: Sequence[CombatEnemy]
) -> EngagementState:
    out = empty_engagement()

    # ranged stances never engage
    if hero_stance in RANGED_STANCES:
        out.hero_to_enemies[hero_id] = []
        for e in enemies:
            out.enemy_to_heroes[e.id] = []
        return out

    if not enemies:
        out.hero_to_enemies[hero_id] = []
        return out

    # solo hero: engage the first enemy in list order
    # TODO: distribute several heroes across enemies once multi-hero combat is supported
    target = enemies[0]
    out.hero_to_enemies[hero_id] = [target.id]
    for e in enemies:
        out.enemy_to_heroes[e.id] = [hero_id] if e.id == target.id else []
    return out


def validate_engagement(
    engagement: EngagementState, enemies: Sequence[CombatEnemy]
) -> ValidationResult:
    """Capacity check only; never mutates the engagement."""
    by_id = {e.id: e for e in enemies}
    errors: List[ValidationError] = []

    for enemy_id, hero_ids in engagement.enemy_to_heroes.items():
        enemy = by_id.get(enemy_id)
        if enemy is None:
            continue
        cap = max_heroes_per_enemy(enemy)
        if len(hero_ids or []) > cap:
            errors.append(
                ValidationError(
                    code="ENGAGEMENT_CAPACITY",
                    message=f"Too many heroes engaging {enemy.name} (max {cap}).",
                    meta={"enemy_id": enemy_id, "max": cap, "count": len(hero_ids)},
                )
            )

    return ValidationResult(ok=not errors, errors=errors)


def prune_defeated(engagement: EngagementState, enemies: Sequence[CombatEnemy], hero_id: str) -> EngagementState:
    alive = {e.id for e in enemies if not e.is_defeated}
    hero_to_enemies = {
        hid: [eid for eid in eids if eid in alive]
        for hid, eids in engagement.hero_to_enemies.items()
    }
    enemy_to_heroes = {
        eid: [hid for hid in hids if hid == hero_id]
        for eid, hids in engagement.enemy_to_heroes.items()
        if eid in alive
    }
    return EngagementState(hero_to_enemies=hero_to_enemies, enemy_to_heroes=enemy_to_heroes)
