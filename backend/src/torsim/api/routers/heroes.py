from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from torsim.api.deps import get_compendium
from torsim.api.mappers import derived_to_dict, hero_out
from torsim.api.schemas import HeroCreate, HeroOut, HeroUpdate
from torsim.config import settings
from torsim.core.adapters.mapper import hero_from_dict
from torsim.core.character.derived import compute_derived
from torsim.core.character.hero import Hero
from torsim.core.compendium import Compendium
from torsim.db.deps import get_db
from torsim.db.hero_store import hero_to_row_data
from torsim.db.models import HeroRow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/heroes", tags=["heroes"])


def _parse_hero(data: dict) -> Hero:
    try:
        return hero_from_dict(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))


@router.get("", response_model=list[HeroOut])
def list_heroes(campaign_id: str | None = None, db: Session = Depends(get_db)):
    q = db.query(HeroRow)
    if campaign_id is not None:
        q = q.filter(HeroRow.campaign_id == campaign_id)
    return [hero_out(h) for h in q.order_by(HeroRow.created_at.desc()).all()]


@router.post("", response_model=HeroOut)
def create_hero(payload: HeroCreate, db: Session = Depends(get_db)):
    data = dict(payload.data)
    if payload.name is not None:
        data["name"] = payload.name
    if payload.campaign_id is not None:
        data["campaignId"] = payload.campaign_id
    hero = _parse_hero(data)

    if db.get(HeroRow, hero.id) is not None:
        raise HTTPException(status_code=409, detail="Hero already exists")

    obj = HeroRow(
        id=hero.id,
        name=hero.name,
        campaign_id=hero.campaign_id,
        data_json=hero_to_row_data(hero),
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("hero %s created", hero.id)
    return hero_out(obj)


@router.get("/{hero_id}", response_model=HeroOut)
def get_hero(hero_id: str, db: Session = Depends(get_db)):
    obj = db.get(HeroRow, hero_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Hero not found")
    return hero_out(obj)


@router.put("/{hero_id}", response_model=HeroOut)
def update_hero(hero_id: str, payload: HeroUpdate, db: Session = Depends(get_db)):
    obj = db.get(HeroRow, hero_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Hero not found")

    data = dict(payload.data) if payload.data is not None else dict(obj.data_json)
    data["id"] = hero_id
    if payload.name is not None:
        data["name"] = payload.name
    if payload.campaign_id is not None:
        data["campaignId"] = payload.campaign_id
    hero = _parse_hero(data)

    obj.name = hero.name
    obj.campaign_id = hero.campaign_id
    obj.data_json = hero_to_row_data(hero)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("hero %s updated", hero_id)
    return hero_out(obj)


@router.get("/{hero_id}/derived")
def get_hero_derived(
    hero_id: str,
    strider: bool = False,
    db: Session = Depends(get_db),
    compendium: Compendium = Depends(get_compendium),
):
    obj = db.get(HeroRow, hero_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Hero not found")
    hero = hero_from_dict(obj.data_json)
    derived = compute_derived(hero, compendium, settings.tn_base_for(strider))
    return derived_to_dict(derived)
