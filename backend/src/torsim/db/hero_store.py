from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from torsim.core.adapters.mapper import hero_from_dict
from torsim.core.character.hero import Hero
from torsim.db.models import HeroRow

logger = logging.getLogger(__name__)


def hero_to_row_data(hero: Hero) -> dict:
    return hero.model_dump(mode="json", by_alias=True)


class SqlHeroStore:
    """HeroStore backed by the heroes table; one short session per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, hero_id: str) -> Optional[Hero]:
        db = self._session_factory()
        try:
            row = db.get(HeroRow, hero_id)
            if row is None:
                return None
            return hero_from_dict(row.data_json)
        finally:
            db.close()

    def replace(self, hero: Hero) -> None:
        db = self._session_factory()
        try:
            row = db.get(HeroRow, hero.id)
            if row is None:
                row = HeroRow(id=hero.id, name=hero.name, campaign_id=hero.campaign_id, data_json={})
            row.name = hero.name
            row.campaign_id = hero.campaign_id
            row.data_json = hero_to_row_data(hero)
            db.add(row)
            db.commit()
            logger.debug("hero %s replaced", hero.id)
        finally:
            db.close()
