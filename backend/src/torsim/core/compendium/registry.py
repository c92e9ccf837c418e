from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from torsim.core.compendium.definitions import (
    PACK_KEYS,
    AdversaryEntry,
    CallingEntry,
    CompendiumEntry,
    CultureEntry,
    EquipmentEntry,
    SkillEntry,
)

TEntry = TypeVar("TEntry", bound=CompendiumEntry)


def find_entry_by_id(entries: Sequence[TEntry], entry_id: Optional[str]) -> Optional[TEntry]:
    if not entry_id:
        return None
    for e in entries:
        if e.id == entry_id:
            return e
    return None


class Compendium(BaseModel):
    """Read-only lookup tables. Nothing in the engine writes to these lists."""

    model_config = ConfigDict(frozen=True)

    skills: tuple[SkillEntry, ...] = Field(default_factory=tuple)
    cultures: tuple[CultureEntry, ...] = Field(default_factory=tuple)
    callings: tuple[CallingEntry, ...] = Field(default_factory=tuple)
    equipment: tuple[EquipmentEntry, ...] = Field(default_factory=tuple)
    adversaries: tuple[AdversaryEntry, ...] = Field(default_factory=tuple)

    def culture(self, culture_id: Optional[str]) -> Optional[CultureEntry]:
        return find_entry_by_id(self.cultures, culture_id)

    def calling(self, calling_id: Optional[str]) -> Optional[CallingEntry]:
        return find_entry_by_id(self.callings, calling_id)

    def equipment_entry(self, equipment_id: Optional[str]) -> Optional[EquipmentEntry]:
        return find_entry_by_id(self.equipment, equipment_id)

    def adversary(self, adversary_id: Optional[str]) -> Optional[AdversaryEntry]:
        return find_entry_by_id(self.adversaries, adversary_id)


def _entries(raw: Any) -> List[dict]:
    # accepts either a bare list or a pack {"pack": ..., "entries": [...]}
    if isinstance(raw, dict):
        raw = raw.get("entries", [])
    if not isinstance(raw, list):
        return []
    return [e for e in raw if isinstance(e, dict)]


def compendium_from_dict(data: Dict[str, Any]) -> Compendium:
    packs: Dict[str, Iterable[CompendiumEntry]] = {}
    for key, model in PACK_KEYS.items():
        packs[key] = tuple(model.model_validate(e) for e in _entries(data.get(key)))
    return Compendium(**packs)


def load_compendium(path: str | Path) -> Compendium:
    with open(path, "r", encoding="utf-8") as f:
        return compendium_from_dict(json.load(f))


EMPTY_COMPENDIUM = Compendium()
