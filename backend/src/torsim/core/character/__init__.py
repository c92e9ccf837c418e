from .derived import (
    DEFAULT_TN_BASE,
    STRIDER_TN_BASE,
    DerivedStats,
    ResolvedEquipment,
    compute_derived,
    parse_parry_modifier,
    parse_protection_dice,
    skill_tn,
    tn_from_rating,
)
from .hero import Hero, InventoryItem, ItemOverride

__all__ = [
    "DEFAULT_TN_BASE",
    "STRIDER_TN_BASE",
    "DerivedStats",
    "ResolvedEquipment",
    "compute_derived",
    "parse_parry_modifier",
    "parse_protection_dice",
    "skill_tn",
    "tn_from_rating",
    "Hero",
    "InventoryItem",
    "ItemOverride",
]
