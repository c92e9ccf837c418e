from .definitions import (
    AdversaryEntry,
    AdversaryWeapon,
    CallingEntry,
    CultureEntry,
    CultureProficiencyBlock,
    EquipmentEntry,
    HateOrResolve,
    SkillEntry,
)
from .registry import (
    EMPTY_COMPENDIUM,
    Compendium,
    compendium_from_dict,
    find_entry_by_id,
    load_compendium,
)

__all__ = [
    "AdversaryEntry",
    "AdversaryWeapon",
    "CallingEntry",
    "CultureEntry",
    "CultureProficiencyBlock",
    "EquipmentEntry",
    "HateOrResolve",
    "SkillEntry",
    "EMPTY_COMPENDIUM",
    "Compendium",
    "compendium_from_dict",
    "find_entry_by_id",
    "load_compendium",
]
