from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from torsim.core.character.derived import DerivedStats, compute_derived
from torsim.core.character.hero import Hero
from torsim.core.compendium import EMPTY_COMPENDIUM, Compendium
from torsim.core.engine.commands import EventBase, SetEngagement, StartCombat
from torsim.core.engine.dice import DiceSource, FeatMode
from torsim.core.engine.rules.adversary_attack import (
    AttackOutcome,
    PendingAdversaryAttack,
    begin_adversary_attack,
    finalize_adversary_attack,
    suggest_special_picks,
)
from torsim.core.engine.rules.engagement import ValidationResult, validate_engagement
from torsim.core.engine.rules.hero_attack import (
    HeroAttackOutcome,
    PendingHeroAttack,
    WieldMode,
    begin_hero_attack,
    finalize_hero_attack,
)
from torsim.core.engine.rules.reducer import combat_reducer
from torsim.core.engine.state import (
    CombatEnemy,
    CombatOptions,
    CombatState,
    EngagementState,
    Surprise,
)

logger = logging.getLogger(__name__)

EventLike = Union[EventBase, Mapping[str, Any]]


class HeroStore(Protocol):
    def get(self, hero_id: str) -> Optional[Hero]: ...

    def replace(self, hero: Hero) -> None:
        """Swap the stored hero with the same id in one step."""
        ...


class InMemoryHeroStore:
    def __init__(self, heroes: Iterable[Hero] = ()) -> None:
        self._heroes: Dict[str, Hero] = {h.id: h for h in heroes}

    def get(self, hero_id: str) -> Optional[Hero]:
        return self._heroes.get(hero_id)

    def replace(self, hero: Hero) -> None:
        self._heroes[hero.id] = hero

    def all(self) -> List[Hero]:
        return list(self._heroes.values())


@dataclass
class EnemyAttackStep:
    pending: PendingAdversaryAttack
    outcome: Optional[AttackOutcome] = None


@dataclass
class HeroAttackStep:
    pending: PendingHeroAttack
    outcome: Optional[HeroAttackOutcome] = None


@dataclass
class CombatSession:
    """
    The encounter context owned by the host: one per campaign.

    Holds the current CombatState and any half-resolved attack; every state
    change goes through combat_reducer.
    """

    campaign_id: str
    heroes: HeroStore
    compendium: Compendium = EMPTY_COMPENDIUM
    rng: Optional[DiceSource] = None
    tn_base: int = 20
    strider_tn_base: int = 18

    state: Optional[CombatState] = None
    pending_enemy_attack: Optional[PendingAdversaryAttack] = None
    pending_hero_attack: Optional[PendingHeroAttack] = None

    @property
    def active(self) -> bool:
        return self.state is not None

    # --- dispatch ---

    def dispatch(self, event: EventLike) -> Optional[CombatState]:
        self.state = combat_reducer(self.state, event)
        return self.state

    def dispatch_many(self, events: Sequence[EventLike]) -> Optional[CombatState]:
        # each event reduces against the state produced by the previous one
        for ev in events:
            self.state = combat_reducer(self.state, ev)
        return self.state

    def start(
        self,
        hero_id: str,
        enemies: Sequence[CombatEnemy],
        options: Optional[CombatOptions] = None,
        surprise: Optional[Surprise] = None,
    ) -> CombatState:
        self.pending_enemy_attack = None
        self.pending_hero_attack = None
        state = combat_reducer(
            None,
            StartCombat(
                campaign_id=self.campaign_id,
                hero_id=hero_id,
                enemies=list(enemies),
                options=options or CombatOptions(),
                surprise=surprise,
            )
        )
        self.state = state
        logger.debug("session %s: combat %s started", self.campaign_id, state.id)
        return state

    def teardown(self) -> None:
        self.state = None
        self.pending_enemy_attack = None
        self.pending_hero_attack = None

    # --- hero / derived ---

    def active_hero(self) -> Optional[Hero]:
        if self.state is None:
            return None
        return self.heroes.get(self.state.hero_id)

    def derived(self, hero: Hero) -> DerivedStats:
        strider = self.state is not None and self.state.options.strider_mode
        tn_base = self.strider_tn_base if strider else self.tn_base
        return compute_derived(hero, self.compendium, tn_base)

    def _hero_and_derived(self) -> Optional[Tuple[Hero, DerivedStats]]:
        hero = self.active_hero()
        if hero is None:
            return None
        return hero, self.derived(hero)

    # --- engagement ---

    def validate_engagement(self, engagement: EngagementState) -> ValidationResult:
        enemies = self.state.enemies if self.state is not None else []
        return validate_engagement(engagement, enemies)

    def set_engagement(self, engagement: EngagementState) -> ValidationResult:
        """Validate, then dispatch SET_ENGAGEMENT only when the mapping is legal."""
        result = self.validate_engagement(engagement)
        if result.ok:
            self.dispatch(SetEngagement(engagement=engagement))
        return result

    # --- enemy attacks ---

    def begin_enemy_attack(
        self,
        enemy_id: str,
        weapon_name: str,
        *,
        spend: int = 0,
        weary: bool = False,
        feat_mode: FeatMode = "normal",
    ) -> Optional[EnemyAttackStep]:
        ctx = self._hero_and_derived()
        if self.state is None or ctx is None:
            return None
        _, derived = ctx

        pending = begin_adversary_attack(
            self.state,
            derived,
            enemy_id,
            weapon_name,
            spend=spend,
            weary=weary,
            feat_mode=feat_mode,
            rng=self.rng,
        )
        if pending is None:
            return None
        self.pending_enemy_attack = pending

        if not pending.needs_picks:
            return EnemyAttackStep(pending, self.finalize_enemy_attack([]))
        if self.state.options.enemy_automation == "auto":
            return EnemyAttackStep(
                pending, self.finalize_enemy_attack(suggest_special_picks(pending))
            )
        return EnemyAttackStep(pending)

    def suggest_enemy_picks(self) -> List[str]:
        if self.pending_enemy_attack is None:
            return []
        return suggest_special_picks(self.pending_enemy_attack)

    def finalize_enemy_attack(self, picks: Optional[Sequence[str]]) -> Optional[AttackOutcome]:
        pending = self.pending_enemy_attack
        ctx = self._hero_and_derived()
        if pending is None or ctx is None:
            return None
        hero, derived = ctx

        outcome = finalize_adversary_attack(pending, picks, hero, derived, rng=self.rng)
        if outcome.hero is not hero:
            self.heroes.replace(outcome.hero)
        self.dispatch_many(outcome.events)
        self.pending_enemy_attack = None
        return outcome

    # --- hero attacks ---

    def begin_hero_attack(
        self,
        target_id: str,
        weapon_name: str,
        *,
        feat_mode: FeatMode = "normal",
        wield_mode: WieldMode = "1h",
    ) -> Optional[HeroAttackStep]:
        ctx = self._hero_and_derived()
        if self.state is None or ctx is None:
            return None
        hero, derived = ctx

        pending = begin_hero_attack(
            self.state,
            hero,
            derived,
            target_id,
            weapon_name,
            feat_mode=feat_mode,
            wield_mode=wield_mode,
            rng=self.rng,
        )
        if pending is None:
            return None
        self.pending_hero_attack = pending

        if not pending.needs_picks:
            return HeroAttackStep(pending, self.finalize_hero_attack([]))
        return HeroAttackStep(pending)

    def finalize_hero_attack(self, picks: Optional[Sequence[str]]) -> Optional[HeroAttackOutcome]:
        pending = self.pending_hero_attack
        if pending is None or self.state is None:
            return None
        if self.state.actions_used.hero:
            self.pending_hero_attack = None
            return None

        outcome = finalize_hero_attack(pending, picks, rng=self.rng)
        self.dispatch_many(outcome.events)
        self.pending_hero_attack = None
        return outcome
