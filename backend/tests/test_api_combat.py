import pytest


HERO_DATA = {
    "id": "hero-combat",
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


@pytest.fixture()
def hero_id(client):
    # the heroes table outlives a single test: reset the document every time
    hid = HERO_DATA["id"]
    if client.get(f"/heroes/{hid}").status_code == 404:
        r = client.post("/heroes", json={"data": HERO_DATA})
    else:
        r = client.put(f"/heroes/{hid}", json={"data": HERO_DATA})
    assert r.status_code == 200, r.text
    return hid


def _start(client, hero_id, **extra):
    body = {"hero_id": hero_id, "adversary_ids": ["orc-soldier", "orc-soldier"], **extra}
    r = client.post("/combat/camp-1/start", json=body)
    assert r.status_code == 200, r.text
    return r.json()["state"]


def test_start_get_and_teardown(client, hero_id):
    state = _start(client, hero_id)
    assert [e["id"] for e in state["enemies"]] == ["orc-soldier", "orc-soldier-2"]
    assert state["log"][0]["text"] == "Combat started."

    r = client.get("/combat/camp-1")
    assert r.json()["state"]["id"] == state["id"]

    r = client.delete("/combat/camp-1")
    assert r.status_code == 200
    assert r.json()["state"] is None
    assert client.get("/combat/camp-1").status_code == 404
    assert client.delete("/combat/camp-9").status_code == 404


def test_start_with_unknown_hero_or_adversary(client, hero_id):
    r = client.post("/combat/camp-1/start", json={"hero_id": "nobody"})
    assert r.status_code == 404
    r = client.post("/combat/camp-1/start", json={"hero_id": hero_id, "adversary_ids": ["balrog"]})
    assert r.status_code == 404


def test_unknown_campaign_is_not_found(client):
    assert client.get("/combat/no-such-campaign").status_code == 404
    r = client.post("/combat/camp-2/events", json={"event": {"type": "ROUND_BEGIN"}})
    assert r.status_code == 404
    r = client.post("/combat/camp-2/enemy-attack", json={"enemy_id": "orc", "weapon_name": "Axe"})
    assert r.status_code == 404
    r = client.post("/combat/camp-2/engagement:validate", json={})
    assert r.status_code == 404
    # lookups do not register a session
    assert client.delete("/combat/no-such-campaign").status_code == 404


def test_events_need_active_combat(client):
    # a failed start leaves an idle session behind
    r = client.post("/combat/camp-3/start", json={"hero_id": "nobody"})
    assert r.status_code == 404
    r = client.post("/combat/camp-3/events", json={"event": {"type": "ROUND_BEGIN"}})
    assert r.status_code == 409


def test_dispatch_events(client, hero_id):
    _start(client, hero_id)
    r = client.post("/combat/camp-1/events", json={"event": {"type": "SET_HERO_STANCE", "stance": "forward"}})
    assert r.json()["state"]["hero"]["stance"] == "forward"

    # malformed events leave the state alone
    before = r.json()["state"]
    r = client.post("/combat/camp-1/events", json={"event": {"type": "SET_HERO_STANCE", "stance": "sideways"}})
    assert r.status_code == 200
    assert r.json()["state"] == before

    r = client.post("/combat/camp-1/events", json={"event": {"type": "END_COMBAT", "reason": "fled"}})
    assert r.json()["state"]["phase"] == "combatEnd"


def test_validate_engagement(client, hero_id):
    _start(client, hero_id)
    r = client.post(
        "/combat/camp-1/engagement:validate",
        json={"enemy_to_heroes": {"orc-soldier": ["a", "b", "c", "d"]}},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False
    assert body["errors"][0]["code"] == "ENGAGEMENT_CAPACITY"
    assert body["errors"][0]["meta"] == {"enemy_id": "orc-soldier", "max": 3, "count": 4}


def test_enemy_attack_round_trip(client, hero_id, dice):
    _start(client, hero_id)

    dice.queue(5, 6, 4)
    r = client.post("/combat/camp-1/enemy-attack", json={"enemy_id": "orc-soldier", "weapon_name": "Scimitar"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "awaiting_picks"
    assert body["suggested_picks"] == ["HEAVY BLOW"]

    r = client.post("/combat/camp-1/enemy-attack:finalize", json={"picks": ["HEAVY BLOW"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "resolved"
    assert body["outcome"]["damage"] == 7
    assert body["outcome"]["hero_endurance"] == 19
    assert body["state"]["log"][-2]["text"].startswith("Orc Soldier hits (Great Success)")

    assert client.get(f"/heroes/{hero_id}").json()["data"]["endurance"]["current"] == 19
    assert client.post("/combat/camp-1/enemy-attack:finalize", json={"picks": []}).status_code == 409


def test_enemy_attack_refused_while_surprised(client, hero_id):
    _start(client, hero_id, surprise={"enemies_surprised": True})
    r = client.post("/combat/camp-1/enemy-attack", json={"enemy_id": "orc-soldier", "weapon_name": "Scimitar"})
    assert r.status_code == 409


def test_hero_attack_with_picks_in_one_call(client, hero_id, dice):
    _start(client, hero_id)
    client.post("/combat/camp-1/events", json={"event": {"type": "AUTO_ENGAGE"}})

    dice.queue(5, 6, 6)
    r = client.post(
        "/combat/camp-1/hero-attack",
        json={"target_id": "orc-soldier", "weapon_name": "Long Sword", "picks": ["FEND OFF", "FEND OFF"]},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "resolved"
    assert body["outcome"]["damage"] == 5
    assert body["state"]["round_mods"]["hero_parry_bonus"] == 4

    r = client.post("/combat/camp-1/hero-attack", json={"target_id": "orc-soldier", "weapon_name": "Long Sword"})
    assert r.status_code == 409


def test_hero_attack_two_step(client, hero_id, dice):
    _start(client, hero_id)
    client.post("/combat/camp-1/events", json={"event": {"type": "AUTO_ENGAGE"}})

    dice.queue(5, 6, 4)
    r = client.post("/combat/camp-1/hero-attack", json={"target_id": "orc-soldier", "weapon_name": "Long Sword"})
    body = r.json()
    assert body["status"] == "awaiting_picks"
    assert "SHIELD THRUST" in body["allowed_picks"]

    r = client.post("/combat/camp-1/hero-attack:finalize", json={"picks": ["SHIELD THRUST"]})
    assert r.status_code == 200
    state = r.json()["state"]
    assert state["round_mods"]["enemy_dice_penalty"] == {"orc-soldier": -1}
    assert client.post("/combat/camp-1/hero-attack:finalize", json={"picks": []}).status_code == 409
