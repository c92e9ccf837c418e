# backend/src/torsim/core/engine/commands.py

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from torsim.core.engine.state import (
    CombatEnemy,
    CombatOptions,
    EngagementState,
    EnemyPosition,
    Stance,
    Surprise,
)


class EventBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    type: str


class StartCombat(EventBase):
    type: Literal["START_COMBAT"] = "START_COMBAT"
    campaign_id: str
    hero_id: str
    enemies: List[CombatEnemy] = []
    options: CombatOptions = Field(default_factory=CombatOptions)
    surprise: Optional[Surprise] = None


class EndCombat(EventBase):
    type: Literal["END_COMBAT"] = "END_COMBAT"
    reason: str = "ended"


class RoundBegin(EventBase):
    type: Literal["ROUND_BEGIN"] = "ROUND_BEGIN"


class SetHeroStance(EventBase):
    type: Literal["SET_HERO_STANCE"] = "SET_HERO_STANCE"
    stance: Stance


class AutoEngage(EventBase):
    type: Literal["AUTO_ENGAGE"] = "AUTO_ENGAGE"


class SetEngagement(EventBase):
    type: Literal["SET_ENGAGEMENT"] = "SET_ENGAGEMENT"
    engagement: EngagementState


class AttemptEscape(EventBase):
    type: Literal["ATTEMPT_ESCAPE"] = "ATTEMPT_ESCAPE"
    mode: Literal["FREE", "ROLL"]
    roll_passed: Optional[bool] = None


class Log(EventBase):
    type: Literal["LOG"] = "LOG"
    text: str
    data: Optional[Any] = None


class SetHeroSeized(EventBase):
    type: Literal["SET_HERO_SEIZED"] = "SET_HERO_SEIZED"
    seized: bool
    reason: Optional[str] = None
    data: Optional[Any] = None


class AddHeroParryBonus(EventBase):
    type: Literal["ADD_HERO_PARRY_BONUS"] = "ADD_HERO_PARRY_BONUS"
    delta: int
    reason: Optional[str] = None
    data: Optional[Any] = None


class SetEnemyDicePenalty(EventBase):
    type: Literal["SET_ENEMY_DICE_PENALTY"] = "SET_ENEMY_DICE_PENALTY"
    enemy_id: str
    penalty: int
    reason: Optional[str] = None
    data: Optional[Any] = None


class SetEnemyPosition(EventBase):
    type: Literal["SET_ENEMY_POSITION"] = "SET_ENEMY_POSITION"
    enemy_id: str
    position: EnemyPosition
    reason: Optional[str] = None
    data: Optional[Any] = None


class HeroActionUsed(EventBase):
    type: Literal["HERO_ACTION_USED"] = "HERO_ACTION_USED"
    kind: Literal["attack", "task", "escape"]
    data: Optional[Any] = None


class EnemyActionUsed(EventBase):
    type: Literal["ENEMY_ACTION_USED"] = "ENEMY_ACTION_USED"
    enemy_id: str
    kind: Literal["attack", "other"] = "attack"
    data: Optional[Any] = None


class ApplyEnemyEndurance(EventBase):
    type: Literal["APPLY_ENEMY_ENDURANCE"] = "APPLY_ENEMY_ENDURANCE"
    enemy_id: str
    delta: int
    reason: Optional[str] = None
    data: Optional[Any] = None


class ApplyEnemyWound(EventBase):
    type: Literal["APPLY_ENEMY_WOUND"] = "APPLY_ENEMY_WOUND"
    enemy_id: str
    injury_tn: int
    resisted: bool
    data: Optional[Any] = None


CombatEvent = Annotated[
    Union[
        StartCombat,
        EndCombat,
        RoundBegin,
        SetHeroStance,
        AutoEngage,
        SetEngagement,
        AttemptEscape,
        Log,
        SetHeroSeized,
        AddHeroParryBonus,
        SetEnemyDicePenalty,
        SetEnemyPosition,
        HeroActionUsed,
        EnemyActionUsed,
        ApplyEnemyEndurance,
        ApplyEnemyWound,
    ],
    Field(discriminator="type"),
]

COMBAT_EVENT_ADAPTER: TypeAdapter = TypeAdapter(CombatEvent)
