import pytest

from torsim.core.adapters.mapper import enemy_from_adversary
from torsim.core.character.hero import Hero
from torsim.core.engine.state import CombatOptions, EngagementState
from torsim.core.session import CombatSession, InMemoryHeroStore


def _hero():
    return Hero.model_validate(
        {
            "id": "hero-1",
            "name": "Beran",
            "cultureId": "bardings",
            "attributes": {"strength": 5, "heart": 3, "wits": 4},
            "endurance": {"max": 26},
            "parry": {"base": 12},
            "inventory": [
                {"id": "i-sword", "equipmentId": "long-sword", "equipped": True},
                {"id": "i-shield", "equipmentId": "shield", "equipped": True},
            ],
        }
    )


@pytest.fixture()
def store():
    return InMemoryHeroStore([_hero()])


@pytest.fixture()
def session(store, compendium, dice):
    s = CombatSession(campaign_id="camp-1", heroes=store, compendium=compendium, rng=dice)
    s.start(
        "hero-1",
        [
            enemy_from_adversary(compendium.adversary("orc-soldier"), enemy_id="orc-1"),
            enemy_from_adversary(compendium.adversary("hill-troll"), enemy_id="troll-1"),
        ],
    )
    return s


def test_start_and_teardown(session):
    assert session.active
    assert session.state.campaign_id == "camp-1"
    assert [e.id for e in session.state.enemies] == ["orc-1", "troll-1"]

    session.teardown()
    assert session.active is False
    assert session.active_hero() is None


def test_dispatch_many_threads_state(session):
    session.dispatch_many([{"type": "SET_HERO_STANCE", "stance": "forward"}, {"type": "AUTO_ENGAGE"}])
    assert session.state.hero.stance == "forward"
    assert session.state.engagement.hero_to_enemies == {"hero-1": ["orc-1"]}


def test_strider_mode_changes_derived_tns(store, compendium):
    s = CombatSession(campaign_id="c", heroes=store, compendium=compendium)
    s.start("hero-1", [], options=CombatOptions(strider_mode=True))
    assert s.derived(s.active_hero()).strength_tn == 13


def test_configured_tn_base_reaches_combat_derived(store, compendium):
    s = CombatSession(campaign_id="c", heroes=store, compendium=compendium, tn_base=22, strider_tn_base=19)
    s.start("hero-1", [])
    assert s.derived(s.active_hero()).strength_tn == 17

    s.start("hero-1", [], options=CombatOptions(strider_mode=True))
    assert s.derived(s.active_hero()).strength_tn == 14


def test_set_engagement_rejects_overfull_mapping(session):
    bad = EngagementState(enemy_to_heroes={"orc-1": ["a", "b", "c", "d"]})
    before = session.state
    result = session.set_engagement(bad)
    assert result.ok is False
    assert session.state is before

    good = EngagementState(
        hero_to_enemies={"hero-1": ["troll-1"]},
        enemy_to_heroes={"orc-1": [], "troll-1": ["hero-1"]},
    )
    assert session.set_engagement(good).ok is True
    assert session.state.engagement.hero_to_enemies == {"hero-1": ["troll-1"]}
    assert session.state.phase == "heroTurn"


def test_enemy_attack_without_icons_resolves_and_stores_hero(session, store, dice):
    dice.queue(8, 4, 3)
    step = session.begin_enemy_attack("orc-1", "Scimitar")
    assert step.outcome is not None
    assert step.outcome.damage == 4
    assert store.get("hero-1").endurance.current == 22
    assert session.pending_enemy_attack is None
    assert session.state.actions_used.enemies == {"orc-1": True}
    assert session.state.enemy("orc-1").position == "melee"


def test_enemy_attack_with_icons_waits_for_picks(session, store, dice):
    dice.queue(9, 6, 6, 1)
    step = session.begin_enemy_attack("troll-1", "Crush")
    assert step.outcome is None
    assert session.pending_enemy_attack is step.pending
    assert session.suggest_enemy_picks() == ["None", "None"]

    outcome = session.finalize_enemy_attack(["BREAK SHIELD", "SEIZE"])
    assert outcome.damage == 7
    assert session.state.hero.seized is True
    hero = store.get("hero-1")
    assert hero.endurance.current == 19
    assert [i.id for i in hero.inventory if i.equipped] == ["i-sword"]
    assert session.finalize_enemy_attack([]) is None


def test_auto_automation_applies_suggested_picks(store, compendium, dice):
    s = CombatSession(campaign_id="c", heroes=store, compendium=compendium, rng=dice)
    s.start(
        "hero-1",
        [enemy_from_adversary(compendium.adversary("orc-soldier"), enemy_id="orc-1")],
        options=CombatOptions(enemy_automation="auto"),
    )
    dice.queue(5, 6, 4)
    step = s.begin_enemy_attack("orc-1", "Scimitar")
    assert step.outcome.picks == ["HEAVY BLOW"]
    assert step.outcome.damage == 7


def test_hero_attack_flow(session, dice):
    session.dispatch({"type": "AUTO_ENGAGE"})

    dice.queue(6, 5, 4)
    step = session.begin_hero_attack("orc-1", "Long Sword")
    assert step.outcome is not None
    assert session.state.enemy("orc-1").endurance.current == 7
    assert session.state.actions_used.hero is True

    # one action per round
    assert session.begin_hero_attack("orc-1", "Long Sword") is None


def test_hero_attack_waits_for_picks(session, dice):
    session.dispatch({"type": "AUTO_ENGAGE"})
    dice.queue(5, 6, 6)
    step = session.begin_hero_attack("orc-1", "Long Sword")
    assert step.outcome is None
    assert session.pending_hero_attack is step.pending

    outcome = session.finalize_hero_attack(["FEND OFF", "None"])
    assert outcome.picks == ["FEND OFF"]
    assert session.state.round_mods.hero_parry_bonus == 2
    assert session.pending_hero_attack is None


def test_stale_hero_attack_is_dropped(session, dice):
    session.dispatch({"type": "AUTO_ENGAGE"})
    dice.queue(5, 6, 6)
    session.begin_hero_attack("orc-1", "Long Sword")
    session.dispatch({"type": "HERO_ACTION_USED", "kind": "task"})
    assert session.finalize_hero_attack([]) is None
    assert session.pending_hero_attack is None
