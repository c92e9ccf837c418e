def _payload(hero_id, **data):
    return {
        "name": "Beran",
        "campaign_id": "camp-heroes",
        "data": {
            "id": hero_id,
            "cultureId": "bardings",
            "attributes": {"strength": 5, "heart": 3, "wits": 4},
            "endurance": {"max": 26},
            "inventory": [
                {"id": "i-sword", "equipmentId": "long-sword", "equipped": True},
                {"id": "i-mail", "equipmentId": "mail-shirt", "equipped": True},
                {"id": "i-shield", "equipmentId": "shield", "equipped": True},
            ],
            **data,
        },
    }


def test_heroes_create_get_update(client):
    r = client.post("/heroes", json=_payload("hero-crud", attributes={"strength": 12, "heart": 3, "wits": 4}))
    assert r.status_code == 200, r.text
    created = r.json()
    assert created["id"] == "hero-crud"
    assert created["campaign_id"] == "camp-heroes"
    # ratings are clamped on the way in
    assert created["data"]["attributes"]["strength"] == 10
    assert created["data"]["campaignId"] == "camp-heroes"

    r = client.get("/heroes/hero-crud")
    assert r.status_code == 200
    assert r.json()["name"] == "Beran"

    r = client.put("/heroes/hero-crud", json={"name": "Beran son of Bard"})
    assert r.status_code == 200, r.text
    updated = r.json()
    assert updated["name"] == "Beran son of Bard"
    assert updated["data"]["name"] == "Beran son of Bard"
    assert updated["data"]["attributes"]["strength"] == 10

    r = client.put("/heroes/hero-crud", json={"data": {"name": "Beran", "shadow": 2}})
    assert r.status_code == 200
    assert r.json()["data"]["shadow"] == 2
    assert r.json()["data"]["id"] == "hero-crud"


def test_heroes_list_by_campaign(client):
    for hid, camp in (("hero-list-1", "camp-list"), ("hero-list-2", "camp-list"), ("hero-list-3", "camp-other")):
        body = _payload(hid)
        body["campaign_id"] = camp
        assert client.post("/heroes", json=body).status_code == 200

    r = client.get("/heroes", params={"campaign_id": "camp-list"})
    assert r.status_code == 200
    assert sorted(h["id"] for h in r.json()) == ["hero-list-1", "hero-list-2"]


def test_duplicate_and_missing_heroes(client):
    assert client.post("/heroes", json=_payload("hero-dup")).status_code == 200
    assert client.post("/heroes", json=_payload("hero-dup")).status_code == 409

    assert client.get("/heroes/nope").status_code == 404
    assert client.put("/heroes/nope", json={"name": "x"}).status_code == 404
    assert client.get("/heroes/nope/derived").status_code == 404


def test_invalid_hero_document_is_422(client):
    r = client.post("/heroes", json=_payload("hero-bad", conditions={"weary": "very"}))
    assert r.status_code == 422


def test_hero_derived_stats(client):
    assert client.post("/heroes", json=_payload("hero-derived")).status_code == 200

    r = client.get("/heroes/hero-derived/derived")
    assert r.status_code == 200, r.text
    d = r.json()
    assert (d["strength_tn"], d["heart_tn"], d["wits_tn"]) == (15, 17, 16)
    assert d["parry"] == {"base": 5, "shield": 2, "other": 0, "total": 7}
    assert d["protection"]["total"] == 3
    assert d["load_total"] == 15
    assert d["weary"] is False
    assert d["combat_proficiencies"]["swords"] == 2
    assert [w["id"] for w in d["equipped_weapons"]] == ["long-sword"]

    r = client.get("/heroes/hero-derived/derived", params={"strider": True})
    assert r.json()["strength_tn"] == 13
