from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request

from torsim.config import settings
from torsim.core.compendium import EMPTY_COMPENDIUM, Compendium, load_compendium
from torsim.core.engine.dice import DiceSource
from torsim.core.session import CombatSession, HeroStore
from torsim.db import session as db_session
from torsim.db.hero_store import SqlHeroStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_compendium(path: Optional[str]) -> Compendium:
    if not path:
        return EMPTY_COMPENDIUM
    logger.info("loading compendium from %s", path)
    return load_compendium(path)


def get_compendium() -> Compendium:
    return _load_compendium(settings.compendium_path)


def get_dice_source() -> Optional[DiceSource]:
    # None -> module-level random
    return None


def get_hero_store() -> HeroStore:
    return SqlHeroStore(lambda: db_session.SessionLocal())


class SessionRegistry:
    """In-process CombatSession per campaign, owned by the app."""

    def __init__(self) -> None:
        self._sessions: Dict[str, CombatSession] = {}

    def get(self, campaign_id: str) -> Optional[CombatSession]:
        return self._sessions.get(campaign_id)

    def open(
        self,
        campaign_id: str,
        heroes: HeroStore,
        compendium: Compendium,
        rng: Optional[DiceSource] = None,
    ) -> CombatSession:
        s = self._sessions.get(campaign_id)
        if s is None:
            s = CombatSession(campaign_id=campaign_id, heroes=heroes)
            self._sessions[campaign_id] = s
        # collaborators are refreshed on every request
        s.heroes = heroes
        s.compendium = compendium
        s.rng = rng
        s.tn_base = settings.tn_base_for(False)
        s.strider_tn_base = settings.tn_base_for(True)
        return s

    def close(self, campaign_id: str) -> None:
        s = self._sessions.pop(campaign_id, None)
        if s is not None:
            s.teardown()


def get_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        registry = SessionRegistry()
        request.app.state.sessions = registry
    return registry


def get_session(
    campaign_id: str,
    registry: SessionRegistry = Depends(get_registry),
    heroes: HeroStore = Depends(get_hero_store),
    compendium: Compendium = Depends(get_compendium),
    rng: Optional[DiceSource] = Depends(get_dice_source),
) -> CombatSession:
    return registry.open(campaign_id, heroes, compendium, rng)


def get_existing_session(
    campaign_id: str,
    registry: SessionRegistry = Depends(get_registry),
    heroes: HeroStore = Depends(get_hero_store),
    compendium: Compendium = Depends(get_compendium),
    rng: Optional[DiceSource] = Depends(get_dice_source),
) -> CombatSession:
    if registry.get(campaign_id) is None:
        raise HTTPException(status_code=404, detail="Campaign has no combat session")
    return registry.open(campaign_id, heroes, compendium, rng)


def require_active(session: CombatSession = Depends(get_existing_session)) -> CombatSession:
    if session.state is None:
        raise HTTPException(status_code=409, detail="No active combat")
    return session
