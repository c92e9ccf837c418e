from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

Stance = Literal["forward", "open", "defensive", "rearward", "skirmish"]
EnemySize = Literal["human", "large"]
Distance = Literal["far", "near", "close"]
EnemyPosition = Literal["melee", "ranged"]
EnemyAutomation = Literal["manual", "manualWithSuggestions", "auto"]

CombatPhase = Literal[
    "setup",
    "openingVolleys",
    "roundStart",
    "engagement",
    "heroTurn",
    "enemyTurn",
    "followup",
    "roundEnd",
    "combatEnd",
]

RANGED_STANCES: tuple[Stance, ...] = ("rearward", "skirmish")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4()}"


class _CombatModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EnemyEndurance(_CombatModel):
    max: int = 0
    current: Optional[int] = None  # None -> max

    @model_validator(mode="after")
    def _default_current(self) -> "EnemyEndurance":
        if self.current is None:
            self.current = self.max
        return self


class WeaponProfile(_CombatModel):
    name: str
    rating: int = 0
    damage: int = 0
    injury: int = 0
    special_damage: List[str] = Field(default_factory=list)


class HateOrResolvePool(_CombatModel):
    type: Literal["Hate", "Resolve"]
    value: int = 0


class CombatEnemy(_CombatModel):
    id: str
    name: str
    size: EnemySize = "human"
    endurance: EnemyEndurance = Field(default_factory=EnemyEndurance)
    might: int = 1
    attribute_level: int = 0
    parry: Optional[int] = None
    armour: Optional[int] = None
    wounds: int = 0
    position: Optional[EnemyPosition] = None
    hate_or_resolve: Optional[HateOrResolvePool] = None
    combat_proficiencies: List[WeaponProfile] = Field(default_factory=list)
    distinctive_features: List[str] = Field(default_factory=list)

    @property
    def is_defeated(self) -> bool:
        return self.endurance.current <= 0

    def weapon(self, name: str) -> Optional[WeaponProfile]:
        for w in self.combat_proficiencies:
            if w.name == name:
                return w
        return None


class EngagementState(_CombatModel):
    hero_to_enemies: Dict[str, List[str]] = Field(default_factory=dict)
    enemy_to_heroes: Dict[str, List[str]] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(self.hero_to_enemies.values()) and not any(
            self.enemy_to_heroes.values()
        )


class CombatOptions(_CombatModel):
    strider_mode: bool = False
    enemy_automation: EnemyAutomation = "manualWithSuggestions"

    @property
    def tn_base(self) -> int:
        return 18 if self.strider_mode else 20


class HeroCombatState(_CombatModel):
    stance: Stance = "open"
    # seized heroes attack only with Brawling
    seized: bool = False


class Surprise(_CombatModel):
    hero_caught_off_guard: bool = False
    enemies_surprised: bool = False


class RoundMods(_CombatModel):
    hero_parry_bonus: int = 0
    enemy_dice_penalty: Dict[str, int] = Field(default_factory=dict)


class ActionsUsed(_CombatModel):
    hero: bool = False
    enemies: Dict[str, bool] = Field(default_factory=dict)


class CombatLogEntry(_CombatModel):
    id: str = Field(default_factory=lambda: new_id("log"))
    at: str = Field(default_factory=now_iso)
    text: str
    data: Optional[Any] = None


class CombatState(_CombatModel):
    id: str
    campaign_id: str
    hero_id: str

    phase: CombatPhase = "roundStart"
    round: int = 1
    distance: Distance = "close"

    hero: HeroCombatState = Field(default_factory=HeroCombatState)
    surprise: Optional[Surprise] = None
    round_mods: RoundMods = Field(default_factory=RoundMods)

    enemies: List[CombatEnemy] = Field(default_factory=list)
    engagement: EngagementState = Field(default_factory=EngagementState)
    options: CombatOptions = Field(default_factory=CombatOptions)

    log: List[CombatLogEntry] = Field(default_factory=list)
    actions_used: ActionsUsed = Field(default_factory=ActionsUsed)

    def enemy(self, enemy_id: str) -> Optional[CombatEnemy]:
        for e in self.enemies:
            if e.id == enemy_id:
                return e
        return None

    def alive_enemies(self) -> List[CombatEnemy]:
        return [e for e in self.enemies if not e.is_defeated]
