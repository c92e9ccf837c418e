import pytest

from torsim.core.engine.commands import (
    ApplyEnemyEndurance,
    ApplyEnemyWound,
    AttemptEscape,
    AutoEngage,
    EndCombat,
    RoundBegin,
    SetEnemyDicePenalty,
    SetHeroStance,
    StartCombat,
)
from torsim.core.engine.rules.reducer import combat_reducer
from torsim.core.engine.state import CombatEnemy, CombatOptions


def _orc(eid="orc-1", current=12, might=1, wounds=0):
    return CombatEnemy(
        id=eid,
        name="Orc Soldier",
        endurance={"max": 12, "current": current},
        might=might,
        wounds=wounds,
        parry=14,
        armour=2,
    )


@pytest.fixture()
def started():
    return combat_reducer(
        None,
        StartCombat(campaign_id="camp-1", hero_id="hero-1", enemies=[_orc(), _orc("orc-2")]),
    )


def _texts(state):
    return [entry.text for entry in state.log]


def test_start_combat_sets_up_round_one():
    s = combat_reducer(
        None,
        StartCombat(
            campaign_id="camp-1",
            hero_id="hero-1",
            enemies=[_orc(current=40, wounds=2)],
            options=CombatOptions(strider_mode=True),
        ),
    )
    assert s.id.startswith("combat-")
    assert s.round == 1
    assert s.phase == "roundStart"
    assert s.distance == "close"
    assert s.hero.stance == "open"
    assert s.engagement.is_empty()
    assert s.options.tn_base == 18
    assert s.enemies[0].endurance.current == 12
    assert s.enemies[0].wounds == 0
    assert _texts(s) == ["Combat started."]


def test_enemy_endurance_without_current_starts_full():
    s = combat_reducer(
        None,
        {
            "type": "START_COMBAT",
            "campaign_id": "camp-1",
            "hero_id": "hero-1",
            "enemies": [{"id": "orc", "name": "Orc", "endurance": {"max": 20}}],
        },
    )
    assert s.enemies[0].endurance.current == 20
    assert s.enemies[0].is_defeated is False

    s = combat_reducer(s, AutoEngage())
    assert s.engagement.hero_to_enemies == {"hero-1": ["orc"]}
    assert [e.id for e in s.alive_enemies()] == ["orc"]


def test_events_without_combat_are_ignored():
    assert combat_reducer(None, RoundBegin()) is None
    assert combat_reducer(None, {"type": "LOG", "text": "hi"}) is None


def test_reducer_never_mutates_its_input(started):
    before = started.model_dump()
    after = combat_reducer(started, SetHeroStance(stance="forward"))
    assert after is not started
    assert started.model_dump() == before
    assert after.hero.stance == "forward"
    assert after.phase == "engagement"
    assert _texts(after)[-1] == "Hero stance: forward."


def test_unknown_and_malformed_events_return_same_state(started):
    assert combat_reducer(started, {"type": "DANCE"}) is started
    assert combat_reducer(started, {"type": "SET_HERO_STANCE", "stance": "sideways"}) is started
    assert combat_reducer(started, {"type": "LOG"}) is started


def test_dict_events_are_accepted(started):
    s = combat_reducer(started, {"type": "LOG", "text": "Wind rises."})
    assert _texts(s)[-1] == "Wind rises."


def test_round_begin_resets_round_state(started):
    s = combat_reducer(started, AutoEngage())
    s = combat_reducer(s, SetEnemyDicePenalty(enemy_id="orc-1", penalty=-1))
    s = combat_reducer(s, {"type": "HERO_ACTION_USED", "kind": "attack"})
    s = combat_reducer(s, {"type": "ADD_HERO_PARRY_BONUS", "delta": 2, "reason": "Fend off"})
    assert s.round_mods.hero_parry_bonus == 2
    assert s.actions_used.hero is True

    s = combat_reducer(s, RoundBegin())
    assert s.round == 2
    assert s.phase == "roundStart"
    assert s.engagement.is_empty()
    assert s.round_mods.hero_parry_bonus == 0
    assert s.round_mods.enemy_dice_penalty == {}
    assert s.actions_used.hero is False
    assert _texts(s)[-1] == "Round 2 begins."


def test_auto_engage_uses_stance(started):
    s = combat_reducer(started, AutoEngage())
    assert s.phase == "heroTurn"
    assert s.engagement.hero_to_enemies == {"hero-1": ["orc-1"]}

    s = combat_reducer(combat_reducer(started, SetHeroStance(stance="rearward")), AutoEngage())
    assert s.engagement.hero_to_enemies == {"hero-1": []}
    assert _texts(s)[-1] == "Engagement set."


def test_set_engagement_replaces_mapping(started):
    s = combat_reducer(
        started,
        {
            "type": "SET_ENGAGEMENT",
            "engagement": {
                "hero_to_enemies": {"hero-1": ["orc-2"]},
                "enemy_to_heroes": {"orc-1": [], "orc-2": ["hero-1"]},
            },
        },
    )
    assert s.engagement.hero_to_enemies == {"hero-1": ["orc-2"]}
    assert _texts(s)[-1] == "Engagement updated."


def test_endurance_is_clamped_and_logged(started):
    s = combat_reducer(started, ApplyEnemyEndurance(enemy_id="orc-1", delta=-5, reason="Hit"))
    assert s.enemies[0].endurance.current == 7
    assert _texts(s)[-1] == "Orc Soldier Endurance -5 (Hit)."

    s = combat_reducer(s, ApplyEnemyEndurance(enemy_id="orc-1", delta=20))
    assert s.enemies[0].endurance.current == 12
    assert _texts(s)[-1] == "Orc Soldier Endurance +20."


def test_defeated_enemy_drops_out_of_engagement(started):
    s = combat_reducer(started, AutoEngage())
    s = combat_reducer(s, ApplyEnemyEndurance(enemy_id="orc-1", delta=-99))
    assert s.enemies[0].is_defeated
    assert s.engagement.hero_to_enemies == {"hero-1": []}
    assert "orc-1" not in s.engagement.enemy_to_heroes
    assert [e.id for e in s.alive_enemies()] == ["orc-2"]


def test_wound_kills_at_might(started):
    s = combat_reducer(started, ApplyEnemyWound(enemy_id="orc-1", injury_tn=14, resisted=False))
    assert s.enemies[0].wounds == 1
    assert s.enemies[0].endurance.current == 0
    assert _texts(s)[-1] == "Orc Soldier suffers a Wound (TN 14) - Wounds 1/1 - slain!"


def test_wound_below_might_and_resisted():
    s = combat_reducer(
        None, StartCombat(campaign_id="c", hero_id="h", enemies=[_orc(might=2)])
    )
    s = combat_reducer(s, ApplyEnemyWound(enemy_id="orc-1", injury_tn=16, resisted=False))
    assert s.enemies[0].wounds == 1
    assert s.enemies[0].endurance.current == 12
    assert _texts(s)[-1] == "Orc Soldier suffers a Wound (TN 16) - Wounds 1/2"

    s = combat_reducer(s, ApplyEnemyWound(enemy_id="orc-1", injury_tn=16, resisted=True))
    assert s.enemies[0].wounds == 1
    assert _texts(s)[-1] == "Orc Soldier resists the Piercing Blow (TN 16)."


@pytest.mark.parametrize(
    "event,phase,text",
    [
        (AttemptEscape(mode="FREE"), "combatEnd", "Escaped combat (Rearward stance)."),
        (AttemptEscape(mode="ROLL", roll_passed=True), "combatEnd", "Escaped combat (Defensive stance success)."),
        (AttemptEscape(mode="ROLL", roll_passed=False), "roundStart", "Escape attempt failed (remains engaged)."),
    ],
)
def test_escape(started, event, phase, text):
    s = combat_reducer(started, event)
    assert s.phase == phase
    assert s.actions_used.hero is True
    assert _texts(s)[-1] == text


def test_enemy_bookkeeping_events(started):
    s = combat_reducer(started, {"type": "SET_ENEMY_POSITION", "enemy_id": "orc-2", "position": "ranged"})
    s = combat_reducer(s, {"type": "ENEMY_ACTION_USED", "enemy_id": "orc-2"})
    s = combat_reducer(s, {"type": "SET_HERO_SEIZED", "seized": True, "reason": "Seized!"})
    assert s.enemy("orc-2").position == "ranged"
    assert s.actions_used.enemies == {"orc-2": True}
    assert s.hero.seized is True
    assert _texts(s)[-2:] == ["Enemy action (orc-2): attack.", "Seized!"]


def test_end_combat(started):
    s = combat_reducer(started, EndCombat(reason="foes fled"))
    assert s.phase == "combatEnd"
    assert _texts(s)[-1] == "Combat ended: foes fled"
