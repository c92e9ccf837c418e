from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AttributeName = Literal["Strength", "Heart", "Wits"]
EquipmentCategory = Literal[
    "Weapon", "Armour", "Headgear", "Shield", "Gear", "Treasure", "Other"
]


class CompendiumEntry(BaseModel):
    # compendium packs are camelCase JSON; unknown keys are ignored
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    name: str
    description: Optional[str] = None


class SkillEntry(CompendiumEntry):
    group: Optional[str] = None
    attribute: Optional[AttributeName] = None


class CultureProficiencyBlock(BaseModel):
    # {"or": ["Bows", "Swords"], "rating": 2}
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    options: List[str] = Field(default_factory=list, alias="or")
    rating: int = 0


class CultureEntry(CompendiumEntry):
    parry_bonus: int = 0
    endurance_base: Optional[int] = None
    hope_base: Optional[int] = None
    favoured_skill_choices: List[str] = Field(default_factory=list)
    combat_proficiencies: List[CultureProficiencyBlock] = Field(default_factory=list)
    cultural_blessing: Optional[str] = None


class CallingEntry(CompendiumEntry):
    favoured_skills: List[str] = Field(default_factory=list)
    additional_feature: Optional[str] = None
    shadow_path: Optional[str] = None


class EquipmentEntry(CompendiumEntry):
    category: EquipmentCategory = "Gear"
    load: Optional[int] = None

    # weapons
    proficiency: Optional[str] = None
    damage: Optional[int] = None
    injury: Optional[str] = None
    piercing_threshold: Optional[int] = None
    ranged: bool = False

    # armour / headgear / shield
    protection: Optional[str] = None
    parry_modifier: Optional[str] = None

    notes: Optional[str] = None


class AdversaryWeapon(CompendiumEntry):
    id: str = ""
    rating: int = 0
    damage: int = 0
    injury: int = 0
    special_damage: List[str] = Field(default_factory=list)


class HateOrResolve(BaseModel):
    type: Literal["Hate", "Resolve"]
    value: int = 0


class AdversaryEntry(CompendiumEntry):
    attribute_level: int = 0
    endurance: int = 0
    might: int = 1
    parry: Optional[int] = None
    armour: Optional[int] = None
    size: Optional[Literal["human", "large"]] = None
    hate_or_resolve: Optional[HateOrResolve] = None
    combat_proficiencies: List[AdversaryWeapon] = Field(default_factory=list)
    distinctive_features: List[str] = Field(default_factory=list)


AnyEntry = Union[SkillEntry, CultureEntry, CallingEntry, EquipmentEntry, AdversaryEntry]

PACK_KEYS: Dict[str, type[CompendiumEntry]] = {
    "skills": SkillEntry,
    "cultures": CultureEntry,
    "callings": CallingEntry,
    "equipment": EquipmentEntry,
    "adversaries": AdversaryEntry,
}
