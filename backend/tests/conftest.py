from __future__ import annotations

from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from torsim.api.deps import get_compendium, get_dice_source
from torsim.api.main import app
from torsim.core.compendium import compendium_from_dict
from torsim.db.base import Base
import torsim.db.session as db_session
import torsim.db.init_db as db_init
from torsim.db.deps import get_db


class ScriptedDice:
    """randint() that returns queued values in order; feat dice use 1..12 (11 Eye, 12 Gandalf)."""

    def __init__(self, values: List[int]) -> None:
        self.values = list(values)
        self.calls: List[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        if not self.values:
            raise AssertionError(f"dice script exhausted on randint({a}, {b})")
        v = self.values.pop(0)
        assert a <= v <= b, f"scripted {v} outside {a}..{b}"
        return v

    def queue(self, *values: int) -> None:
        self.values.extend(values)


@pytest.fixture()
def dice():
    return ScriptedDice([])


COMPENDIUM_DATA = {
    "skills": {"entries": [{"id": "awareness", "name": "Awareness", "attribute": "Strength"}]},
    "cultures": {
        "entries": [
            {
                "id": "bardings",
                "name": "Bardings",
                "parryBonus": 1,
                "combatProficiencies": [{"or": ["Swords", "Spears"], "rating": 2}],
            },
            {"id": "dwarves-of-durins-folk", "name": "Dwarves of Durin's Folk", "parryBonus": 0},
        ]
    },
    "callings": {"entries": [{"id": "warden", "name": "Warden", "favouredSkills": ["awareness"]}]},
    "equipment": {
        "entries": [
            {
                "id": "long-sword",
                "name": "Long Sword",
                "category": "Weapon",
                "load": 3,
                "proficiency": "Swords",
                "damage": 5,
                "injury": "16 (1h) / 18 (2h)",
            },
            {
                "id": "spear",
                "name": "Spear",
                "category": "Weapon",
                "load": 2,
                "proficiency": "Spears",
                "damage": 4,
                "injury": "14",
            },
            {
                "id": "bow",
                "name": "Bow",
                "category": "Weapon",
                "load": 2,
                "proficiency": "Bows",
                "damage": 3,
                "injury": "14",
                "ranged": True,
            },
            {"id": "mail-shirt", "name": "Mail-shirt", "category": "Armour", "load": 10, "protection": "3d"},
            {"id": "leather-shirt", "name": "Leather shirt", "category": "Armour", "load": 3, "protection": "1d"},
            {"id": "helm", "name": "Helm", "category": "Headgear", "load": 4, "protection": "+1d"},
            {"id": "shield", "name": "Shield", "category": "Shield", "load": 2, "parryModifier": "+2"},
        ]
    },
    "adversaries": {
        "entries": [
            {
                "id": "orc-soldier",
                "name": "Orc Soldier",
                "attributeLevel": 3,
                "endurance": 12,
                "might": 1,
                "parry": 14,
                "armour": 2,
                "hateOrResolve": {"type": "Hate", "value": 3},
                "combatProficiencies": [
                    {"name": "Scimitar", "rating": 2, "damage": 4, "injury": 14, "specialDamage": ["Heavy Blow"]},
                    {"name": "Bow of Horn", "rating": 2, "damage": 3, "injury": 14, "specialDamage": ["Pierce"]},
                ],
            },
            {
                "id": "hill-troll",
                "name": "Hill-troll",
                "attributeLevel": 7,
                "endurance": 84,
                "might": 3,
                "parry": 12,
                "armour": 3,
                "combatProficiencies": [
                    {"name": "Crush", "rating": 3, "damage": 7, "injury": 16, "specialDamage": ["Break Shield", "Seize"]}
                ],
            },
        ]
    },
}


@pytest.fixture(scope="session")
def compendium():
    return compendium_from_dict(COMPENDIUM_DATA)


@pytest.fixture(scope="session")
def engine():
    # SQLite in-memory, one shared connection for the whole test session
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    return eng


@pytest.fixture(scope="session")
def TestingSessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(scope="session", autouse=True)
def _patch_db(engine, TestingSessionLocal):
    # swap the real engine/SessionLocal for the test ones
    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    db_init.engine = engine

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(TestingSessionLocal, compendium, dice):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_compendium] = lambda: compendium
    app.dependency_overrides[get_dice_source] = lambda: dice
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
