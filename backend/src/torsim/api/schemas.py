from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from torsim.core.engine.dice import FeatMode, RollResult, RollSide
from torsim.core.engine.rules.adversary_attack import PendingAdversaryAttack
from torsim.core.engine.rules.hero_attack import PendingHeroAttack, WieldMode
from torsim.core.engine.state import CombatEnemy, CombatOptions, CombatState, Surprise

# ---- heroes ----


class HeroCreate(BaseModel):
    name: Optional[str] = None
    campaign_id: Optional[str] = None
    # hero document, camelCase or snake_case keys
    data: Dict[str, Any] = Field(default_factory=dict)


class HeroUpdate(BaseModel):
    name: Optional[str] = None
    campaign_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class HeroOut(BaseModel):
    id: str
    name: str
    campaign_id: Optional[str] = None
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


# ---- dice ----


class RollRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dice_count: int = 0
    feat_mode: FeatMode = "normal"
    weary: bool = False
    target_number: Optional[int] = None
    side: RollSide = "hero"
    label: Optional[str] = None


class RollResponse(BaseModel):
    result: RollResult
    text: str


# ---- combat ----


class StartCombatRequest(BaseModel):
    hero_id: str
    enemies: List[CombatEnemy] = Field(default_factory=list)
    # compendium adversaries, turned into enemies after the explicit list
    adversary_ids: List[str] = Field(default_factory=list)
    options: CombatOptions = Field(default_factory=CombatOptions)
    surprise: Optional[Surprise] = None


class DispatchRequest(BaseModel):
    event: Dict[str, Any]


class CombatStateOut(BaseModel):
    campaign_id: str
    state: Optional[CombatState] = None


class ValidationErrorOut(BaseModel):
    code: str
    message: str
    meta: Dict[str, Any] = Field(default_factory=dict)


class EngagementValidateOut(BaseModel):
    ok: bool
    errors: List[ValidationErrorOut] = Field(default_factory=list)


class EnemyAttackRequest(BaseModel):
    enemy_id: str
    weapon_name: str
    spend: int = 0
    weary: bool = False
    feat_mode: FeatMode = "normal"


class FinalizeAttackRequest(BaseModel):
    picks: List[str] = Field(default_factory=list)


class AttackOutcomeOut(BaseModel):
    passed: bool
    damage: int
    total: int
    picks: List[str] = Field(default_factory=list)
    piercing_blow: bool = False
    resisted: Optional[bool] = None
    hero_endurance: Optional[int] = None


class EnemyAttackOut(BaseModel):
    status: Literal["awaiting_picks", "resolved"]
    pending: Optional[PendingAdversaryAttack] = None
    suggested_picks: List[str] = Field(default_factory=list)
    outcome: Optional[AttackOutcomeOut] = None
    state: Optional[CombatState] = None


class HeroAttackRequest(BaseModel):
    target_id: str
    weapon_name: str
    feat_mode: FeatMode = "normal"
    wield_mode: WieldMode = "1h"
    # used right away when the roll earns special successes
    picks: Optional[List[str]] = None


class HeroAttackOut(BaseModel):
    status: Literal["awaiting_picks", "resolved"]
    pending: Optional[PendingHeroAttack] = None
    allowed_picks: List[str] = Field(default_factory=list)
    outcome: Optional[AttackOutcomeOut] = None
    state: Optional[CombatState] = None
