from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from torsim.api.deps import (
    SessionRegistry,
    get_existing_session,
    get_registry,
    get_session,
    require_active,
)
from torsim.api.mappers import outcome_out
from torsim.api.schemas import (
    CombatStateOut,
    DispatchRequest,
    EnemyAttackOut,
    EnemyAttackRequest,
    EngagementValidateOut,
    FinalizeAttackRequest,
    HeroAttackOut,
    HeroAttackRequest,
    StartCombatRequest,
    ValidationErrorOut,
)
from torsim.core.adapters.mapper import enemy_from_adversary
from torsim.core.engine.rules.hero_attack import allowed_hero_picks
from torsim.core.engine.state import EngagementState
from torsim.core.session import CombatSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/combat", tags=["combat"])


def _state_out(session: CombatSession) -> CombatStateOut:
    return CombatStateOut(campaign_id=session.campaign_id, state=session.state)


@router.post("/{campaign_id}/start", response_model=CombatStateOut)
def start_combat(payload: StartCombatRequest, session: CombatSession = Depends(get_session)):
    if session.heroes.get(payload.hero_id) is None:
        raise HTTPException(status_code=404, detail="Hero not found")

    enemies = list(payload.enemies)
    for adversary_id in payload.adversary_ids:
        entry = session.compendium.adversary(adversary_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Adversary not found: {adversary_id}")
        # suffix repeated adversaries so every enemy id stays unique
        taken = {e.id for e in enemies}
        enemy_id = entry.id
        n = 2
        while enemy_id in taken:
            enemy_id = f"{entry.id}-{n}"
            n += 1
        enemies.append(enemy_from_adversary(entry, enemy_id=enemy_id))

    state = session.start(payload.hero_id, enemies, payload.options, payload.surprise)
    logger.info(
        "combat %s started for campaign %s (%d enemies)",
        state.id,
        session.campaign_id,
        len(state.enemies),
    )
    return _state_out(session)


@router.get("/{campaign_id}", response_model=CombatStateOut)
def get_combat(session: CombatSession = Depends(get_existing_session)):
    return _state_out(session)


@router.delete("/{campaign_id}", response_model=CombatStateOut)
def teardown_combat(campaign_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.get(campaign_id) is None:
        raise HTTPException(status_code=404, detail="Campaign has no combat session")
    registry.close(campaign_id)
    logger.info("combat torn down for campaign %s", campaign_id)
    return CombatStateOut(campaign_id=campaign_id, state=None)


@router.post("/{campaign_id}/events", response_model=CombatStateOut)
def dispatch_event(payload: DispatchRequest, session: CombatSession = Depends(require_active)):
    session.dispatch(payload.event)
    if session.state is not None and session.state.phase == "combatEnd":
        logger.info("combat %s ended", session.state.id)
    return _state_out(session)


@router.post("/{campaign_id}/engagement:validate", response_model=EngagementValidateOut)
def validate_engagement(engagement: EngagementState, session: CombatSession = Depends(require_active)):
    result = session.validate_engagement(engagement)
    return EngagementValidateOut(
        ok=result.ok,
        errors=[ValidationErrorOut(code=e.code, message=e.message, meta=e.meta) for e in result.errors],
    )


@router.post("/{campaign_id}/enemy-attack", response_model=EnemyAttackOut)
def enemy_attack(payload: EnemyAttackRequest, session: CombatSession = Depends(require_active)):
    if session.active_hero() is None:
        raise HTTPException(status_code=404, detail="Hero not found")
    step = session.begin_enemy_attack(
        payload.enemy_id,
        payload.weapon_name,
        spend=payload.spend,
        weary=payload.weary,
        feat_mode=payload.feat_mode,
    )
    if step is None:
        raise HTTPException(status_code=409, detail="Enemy cannot attack with that weapon now")

    if step.outcome is None:
        return EnemyAttackOut(
            status="awaiting_picks",
            pending=step.pending,
            suggested_picks=session.suggest_enemy_picks(),
            state=session.state,
        )
    return EnemyAttackOut(
        status="resolved",
        pending=step.pending,
        outcome=outcome_out(step.outcome),
        state=session.state,
    )


@router.post("/{campaign_id}/enemy-attack:finalize", response_model=EnemyAttackOut)
def finalize_enemy_attack(payload: FinalizeAttackRequest, session: CombatSession = Depends(require_active)):
    if session.pending_enemy_attack is None:
        raise HTTPException(status_code=409, detail="No pending enemy attack")
    outcome = session.finalize_enemy_attack(payload.picks)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Hero not found")
    return EnemyAttackOut(status="resolved", outcome=outcome_out(outcome), state=session.state)


@router.post("/{campaign_id}/hero-attack", response_model=HeroAttackOut)
def hero_attack(payload: HeroAttackRequest, session: CombatSession = Depends(require_active)):
    if session.active_hero() is None:
        raise HTTPException(status_code=404, detail="Hero not found")
    step = session.begin_hero_attack(
        payload.target_id,
        payload.weapon_name,
        feat_mode=payload.feat_mode,
        wield_mode=payload.wield_mode,
    )
    if step is None:
        raise HTTPException(status_code=409, detail="Hero cannot make that attack now")

    outcome = step.outcome
    if outcome is None and payload.picks is not None:
        outcome = session.finalize_hero_attack(payload.picks)
    if outcome is None:
        return HeroAttackOut(
            status="awaiting_picks",
            pending=step.pending,
            allowed_picks=allowed_hero_picks(step.pending),
            state=session.state,
        )
    return HeroAttackOut(status="resolved", pending=step.pending, outcome=outcome_out(outcome), state=session.state)


@router.post("/{campaign_id}/hero-attack:finalize", response_model=HeroAttackOut)
def finalize_hero_attack(payload: FinalizeAttackRequest, session: CombatSession = Depends(require_active)):
    if session.pending_hero_attack is None:
        raise HTTPException(status_code=409, detail="No pending hero attack")
    outcome = session.finalize_hero_attack(payload.picks)
    if outcome is None:
        raise HTTPException(status_code=409, detail="Hero action already used this round")
    return HeroAttackOut(status="resolved", outcome=outcome_out(outcome), state=session.state)
