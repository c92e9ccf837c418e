from __future__ import annotations

from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

AttributeKey = Literal["strength", "heart", "wits"]
ProficiencyKey = Literal["axes", "bows", "spears", "swords", "brawling"]


class _HeroPart(BaseModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )


class Attributes(_HeroPart):
    strength: int = Field(default=2, ge=1, le=10)
    heart: int = Field(default=2, ge=1, le=10)
    wits: int = Field(default=2, ge=1, le=10)

    def rating(self, attr: AttributeKey) -> int:
        return int(getattr(self, attr))


class Endurance(_HeroPart):
    max: int = Field(default=20, ge=0)
    current: Optional[int] = None  # None -> max
    load: int = 0
    fatigue: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _default_current(self) -> "Endurance":
        if self.current is None:
            self.current = self.max
        self.current = max(0, int(self.current))
        return self


class Hope(_HeroPart):
    max: int = Field(default=10, ge=0)
    current: Optional[int] = None

    @model_validator(mode="after")
    def _default_current(self) -> "Hope":
        if self.current is None:
            self.current = self.max
        return self


class CombatProficiencies(_HeroPart):
    # None = no hero override, culture default applies
    axes: Optional[int] = Field(default=None, ge=0, le=6)
    bows: Optional[int] = Field(default=None, ge=0, le=6)
    spears: Optional[int] = Field(default=None, ge=0, le=6)
    swords: Optional[int] = Field(default=None, ge=0, le=6)
    brawling: Optional[int] = Field(default=None, ge=0, le=6)


class ParryOverrides(_HeroPart):
    base: Optional[int] = None
    other: Optional[int] = None


class Conditions(_HeroPart):
    weary: bool = False
    miserable: bool = False
    wounded: bool = False
    dying: bool = False


class ItemOverride(_HeroPart):
    """Per-item tweaks layered over the compendium entry (never written back to it)."""

    load_delta: int = 0
    damage_delta: int = 0
    protection_delta: Optional[str] = None  # dice notation, "+1d"
    parry_modifier_delta: int = 0
    piercing_threshold: Optional[int] = None
    injury: Optional[str] = None
    notes_append: Optional[str] = None
    rewards: List[str] = Field(default_factory=list)
    piercing_protection_bonus: Optional[int] = None


class InventoryItem(_HeroPart):
    id: str = Field(default_factory=lambda: f"item-{uuid4()}")
    name: str = ""
    kind: Literal["equipment", "treasure", "other"] = "equipment"
    equipment_id: Optional[str] = None
    qty: int = Field(default=1, ge=0)
    load: Optional[int] = None  # manual load, wins over compendium + delta
    equipped: bool = False
    dropped: bool = False
    notes: str = ""
    override: Optional[ItemOverride] = None


class LegacyEquipped(_HeroPart):
    weapon_id: Optional[str] = None
    armour_id: Optional[str] = None
    helm_id: Optional[str] = None
    shield_id: Optional[str] = None


class Hero(_HeroPart):
    id: str = Field(default_factory=lambda: f"hero-{uuid4()}")
    name: str = "Unnamed hero"
    campaign_id: Optional[str] = None

    culture_id: Optional[str] = None
    calling_id: Optional[str] = None

    attributes: Attributes = Field(default_factory=Attributes)
    endurance: Endurance = Field(default_factory=Endurance)
    hope: Hope = Field(default_factory=Hope)
    shadow: int = Field(default=0, ge=0)

    combat_proficiencies: CombatProficiencies = Field(
        default_factory=CombatProficiencies
    )
    skill_ratings: Dict[str, int] = Field(default_factory=dict)

    # favoured skills: culture pick + calling picks + legacy records
    culture_favoured_skill: Optional[str] = None
    calling_favoured_skills: List[str] = Field(default_factory=list)
    favoured_skill_ids: List[str] = Field(default_factory=list)
    skill_favoured: Dict[str, bool] = Field(default_factory=dict)

    virtues: List[str] = Field(default_factory=list)
    prowess_attribute: Optional[AttributeKey] = None

    parry: ParryOverrides = Field(default_factory=ParryOverrides)
    protection_other: Optional[int] = None

    inventory: List[InventoryItem] = Field(default_factory=list)
    equipped: LegacyEquipped = Field(default_factory=LegacyEquipped)
    carried_treasure: int = Field(default=0, ge=0)

    conditions: Conditions = Field(default_factory=Conditions)
    injury: str = ""

    def has_virtue(self, name: str) -> bool:
        needle = name.strip().lower()
        return any(v.strip().lower() == needle for v in self.virtues)

    def with_endurance(self, current: int) -> "Hero":
        end = self.endurance.model_copy(update={"current": max(0, int(current))})
        return self.model_copy(update={"endurance": end})
