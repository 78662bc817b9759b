"""Association Routes — end-to-end linking over HTTP with SQLite and the in-process hub.

Tests cover:
    - POST farm/1/animals {Jimmy}: creates, links, returns the populated farm
    - Same request again: identical body, no second animal, X-Link-Status already_linked
    - Key-based routes (plain and /add/ alias), control fields stripped from values
    - 404 for missing parent / undeclared relation, 400 for missing or invalid child
    - Observers receive one added_to event; the originating channel is skipped
"""

from sqlalchemy import func, select

from resource_links.models import Animal, Caretaker

JIMMY = {"name": "Jimmy", "species": "horse"}


async def _animal_count(test_db) -> int:
    result = await test_db.execute(select(func.count()).select_from(Animal))
    return result.scalar_one()


def _drain(hub, channel_id) -> list:
    queue = hub._channels[channel_id]
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


# --- Linking -----------------------------------------------------------------

async def test_link_new_child_by_values(client, seed_farm, test_db):
    res = await client.post("/api/v1/farm/1/animals", json=JIMMY)

    assert res.status_code == 200
    assert res.headers["X-Link-Status"] == "linked"
    body = res.json()
    assert body["id"] == 1
    assert [(a["name"], a["species"]) for a in body["animals"]] == [("Jimmy", "horse")]
    assert await _animal_count(test_db) == 1


async def test_repeated_link_returns_same_state(client, seed_farm, test_db):
    first = await client.post("/api/v1/farm/1/animals", json=JIMMY)
    second = await client.post("/api/v1/farm/1/animals", json=JIMMY)

    assert second.status_code == 200
    assert second.headers["X-Link-Status"] == "already_linked"
    assert second.json() == first.json()
    assert len(second.json()["animals"]) == 1
    assert await _animal_count(test_db) == 1


async def test_link_existing_child_by_key(client, seed_farm, seed_animal):
    res = await client.post(f"/api/v1/farm/1/animals/{seed_animal.id}")

    assert res.status_code == 200
    assert [a["name"] for a in res.json()["animals"]] == ["Bessie"]


async def test_add_alias_links_by_key(client, seed_farm, seed_animal):
    res = await client.post(f"/api/v1/farm/1/animals/add/{seed_animal.id}")

    assert res.status_code == 200
    assert [a["id"] for a in res.json()["animals"]] == [seed_animal.id]


async def test_id_in_body_is_a_child_key(client, seed_farm, seed_animal, test_db):
    res = await client.post(
        "/api/v1/farm/1/animals", json={"id": seed_animal.id, "name": "ignored"},
    )

    assert [a["name"] for a in res.json()["animals"]] == ["Bessie"]
    assert await _animal_count(test_db) == 1


async def test_control_fields_are_stripped(client, seed_farm):
    res = await client.post(
        "/api/v1/farm/1/animals?limit=10&sort=name&name=Jimmy",
        json={"skip": 2, "parentid": 1, "species": "horse"},
    )

    assert res.status_code == 200
    assert [(a["name"], a["species"]) for a in res.json()["animals"]] == [("Jimmy", "horse")]


async def test_one_to_many_relation(client, seed_farm, test_db):
    res = await client.post("/api/v1/farm/1/caretakers", json={"name": "Ada", "role": "vet"})

    assert res.status_code == 200
    caretakers = res.json()["caretakers"]
    assert [c["name"] for c in caretakers] == ["Ada"]
    caretaker = await test_db.get(Caretaker, caretakers[0]["id"])
    assert caretaker.farm_id == 1


async def test_link_visible_from_inverse_side(client, seed_farm, seed_animal):
    await client.post(f"/api/v1/farm/1/animals/{seed_animal.id}")

    res = await client.post(f"/api/v1/animal/{seed_animal.id}/farms/1")

    assert res.headers["X-Link-Status"] == "already_linked"
    assert [f["id"] for f in res.json()["farms"]] == [1]


# --- Errors ------------------------------------------------------------------

async def test_missing_parent_is_404(client):
    res = await client.post("/api/v1/farm/999/animals", json=JIMMY)

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "PARENT_NOT_FOUND"


async def test_undeclared_relation_is_404(client, seed_farm, test_db):
    res = await client.post("/api/v1/farm/1/tractors", json=JIMMY)

    assert res.status_code == 404
    assert res.json()["error"]["context"]["relation"] == "tractors"
    assert await _animal_count(test_db) == 0


async def test_unknown_model_is_404(client):
    res = await client.post("/api/v1/spaceship/1/crew", json=JIMMY)
    assert res.status_code == 404


async def test_missing_child_is_400(client, seed_farm):
    res = await client.post("/api/v1/farm/1/animals?limit=5")

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "REQUEST_INVALID"
    assert "primary key" in res.json()["error"]["message"]


async def test_non_object_body_is_400(client, seed_farm):
    res = await client.post("/api/v1/farm/1/animals", json=["Jimmy"])
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_malformed_json_is_400(client, seed_farm):
    res = await client.post(
        "/api/v1/farm/1/animals", content=b"{name:",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_unknown_child_field_is_400(client, seed_farm, test_db):
    res = await client.post("/api/v1/farm/1/animals", json={"wings": 2})

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_CHILD"
    assert await _animal_count(test_db) == 0


async def test_malformed_child_key_is_400(client, seed_farm):
    res = await client.post("/api/v1/farm/1/animals/not-a-number")
    assert res.status_code == 400


async def test_nested_object_value_is_400_without_sql(client, seed_farm, test_db):
    res = await client.post("/api/v1/farm/1/animals", json={"name": {"x": 1}})

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INVALID_CHILD"
    assert "SELECT" not in error["message"]
    assert "[SQL" not in res.text
    assert await _animal_count(test_db) == 0


async def test_wrong_typed_value_is_400_without_sql(client, seed_farm, test_db):
    res = await client.post(
        "/api/v1/farm/1/animals", json={"name": "Jimmy", "created_at": "2020-01-01"},
    )

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_CHILD"
    assert "INSERT" not in res.text
    assert "sqlalche.me" not in res.text
    assert await _animal_count(test_db) == 0


# --- Notification ------------------------------------------------------------

async def test_observer_receives_one_event(client, hub, seed_farm):
    observer = hub.open_channel()
    await hub.subscribe(observer, "farm", 1)

    res = await client.post("/api/v1/farm/1/animals", json=JIMMY)
    await client.post("/api/v1/farm/1/animals", json=JIMMY)

    events = _drain(hub, observer)
    assert len(events) == 1
    assert events[0].data.model_dump() == {
        "model": "farm", "id": 1, "attribute": "animals",
        "added_model": "animal", "added_id": res.json()["animals"][0]["id"],
    }


async def test_channel_header_subscribes_and_skips_origin(client, hub, seed_farm, seed_animal):
    origin = hub.open_channel()

    await client.post(
        "/api/v1/farm/1/animals", json=JIMMY, headers={"X-Channel-Id": origin},
    )

    assert origin in hub.subscribers("farm", 1)
    assert _drain(hub, origin) == []

    await client.post(f"/api/v1/farm/1/animals/{seed_animal.id}")
    events = _drain(hub, origin)
    assert [e.data.added_id for e in events] == [seed_animal.id]


async def test_unknown_channel_header_is_not_subscribed(client, hub, seed_farm):
    res = await client.post(
        "/api/v1/farm/1/animals", json=JIMMY, headers={"X-Channel-Id": "stale"},
    )

    assert res.status_code == 200
    assert hub.subscribers("farm", 1) == set()
