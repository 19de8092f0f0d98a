import pytest
from sqlalchemy import select

from tamtrack import models


@pytest.fixture
def owner(make_user):
    return make_user("bench@example.com", display_name="Bench")[1]


@pytest.fixture
def intruder(make_user):
    return make_user("other@example.com", display_name="Other")[1]


@pytest.fixture
def model_id(client, owner, model_payload):
    return client.post("/api/models", json=model_payload(), headers=owner).json()["id"]


def add_item(client, headers, kind, name, **extra):
    response = client.post(
        "/api/electronics", json={"kind": kind, "name": name, **extra}, headers=headers
    )
    assert response.status_code == 201
    return response.json()


def test_electronics_crud(client, owner):
    motor = add_item(
        client,
        owner,
        "motor",
        "Sport Tuned",
        manufacturer="Tamiya",
        cost="24.00",
        specs={"motor_type": "brushed", "turns": "23"},
    )
    assert motor["specs"]["motor_type"] == "brushed"
    assert motor["specs"]["is_sensored"] is False
    assert float(motor["cost"]) == 24.0
    add_item(client, owner, "servo", "TSU-03")

    assert len(client.get("/api/electronics", headers=owner).json()) == 2
    motors = client.get("/api/electronics?kind=motor", headers=owner).json()
    assert [m["name"] for m in motors] == ["Sport Tuned"]

    response = client.put(
        f"/api/electronics/{motor['id']}",
        json={"notes": "runs hot", "specs": {"motor_type": "brushless", "kv": 3300}},
        headers=owner,
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "runs hot"
    assert response.json()["specs"]["kv"] == 3300
    assert response.json()["kind"] == "motor"

    response = client.delete(f"/api/electronics/{motor['id']}", headers=owner)
    assert response.json() == {"ok": True}
    assert client.get(f"/api/electronics/{motor['id']}", headers=owner).status_code == 404
    assert client.delete(f"/api/electronics/{motor['id']}", headers=owner).status_code == 404


def test_specs_are_checked_against_the_kind(client, owner):
    response = client.post(
        "/api/electronics",
        json={"kind": "esc", "name": "TBLE-02S", "specs": {"kv": 3000}},
        headers=owner,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["loc"] == ["specs", "kv"]

    response = client.post(
        "/api/electronics",
        json={"kind": "servo", "name": "Metal", "specs": {"gear_type": "wood"}},
        headers=owner,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["loc"][:2] == ["specs", "gear_type"]

    response = client.post(
        "/api/electronics", json={"kind": "battery", "name": "7.2V"}, headers=owner
    )
    assert response.status_code == 422

    receiver = add_item(client, owner, "receiver", "RX-471")
    response = client.put(
        f"/api/electronics/{receiver['id']}",
        json={"specs": {"channels": 0}},
        headers=owner,
    )
    assert response.status_code == 422
    response = client.put(
        f"/api/electronics/{receiver['id']}", json={"name": None}, headers=owner
    )
    assert response.status_code == 422


def test_electronics_isolated_from_other_users(client, owner, intruder, model_id):
    motor = add_item(client, owner, "motor", "Torque Tuned")
    assert client.get(f"/api/electronics/{motor['id']}", headers=intruder).status_code == 404
    assert client.put(
        f"/api/electronics/{motor['id']}", json={"name": "Mine"}, headers=intruder
    ).status_code == 404
    assert client.get("/api/electronics", headers=intruder).json() == []
    assert client.get(
        f"/api/models/{model_id}/electronics", headers=intruder
    ).status_code == 404
    assert client.put(
        f"/api/models/{model_id}/electronics",
        json={"motor_id": motor["id"]},
        headers=intruder,
    ).status_code == 404


def test_fit_electronics_to_model(client, owner, model_id):
    base = f"/api/models/{model_id}/electronics"
    assert client.get(base, headers=owner).status_code == 404

    motor = add_item(client, owner, "motor", "Sport Tuned")
    esc = add_item(client, owner, "esc", "TBLE-02S")
    response = client.put(
        base, json={"motor_id": motor["id"], "esc_id": esc["id"]}, headers=owner
    )
    assert response.status_code == 200
    body = response.json()
    assert body["model_id"] == model_id
    assert body["motor"]["name"] == "Sport Tuned"
    assert body["esc"]["name"] == "TBLE-02S"
    assert body["servo"] is None

    # частичное обновление не трогает остальные слоты
    response = client.put(base, json={"notes": "stock setup"}, headers=owner)
    assert response.json()["motor"]["id"] == motor["id"]
    assert response.json()["notes"] == "stock setup"

    response = client.put(base, json={"motor_id": None}, headers=owner)
    assert response.json()["motor"] is None
    assert response.json()["esc"]["id"] == esc["id"]

    assert client.delete(base, headers=owner).json() == {"ok": True}
    assert client.get(base, headers=owner).status_code == 404
    assert client.delete(base, headers=owner).status_code == 404


def test_fitting_rejects_wrong_kind_and_foreign_items(client, owner, intruder, model_id):
    base = f"/api/models/{model_id}/electronics"
    servo = add_item(client, owner, "servo", "TSU-03")
    foreign = add_item(client, intruder, "esc", "Borrowed ESC")

    response = client.put(
        base, json={"motor_id": servo["id"], "esc_id": foreign["id"]}, headers=owner
    )
    assert response.status_code == 422
    fields = {err["loc"][-1] for err in response.json()["errors"]}
    assert fields == {"motor_id", "esc_id"}
    assert client.get(base, headers=owner).status_code == 404


def test_deleting_item_empties_its_slot(client, owner, model_id):
    base = f"/api/models/{model_id}/electronics"
    motor = add_item(client, owner, "motor", "Sport Tuned")
    servo = add_item(client, owner, "servo", "TSU-03")
    client.put(base, json={"motor_id": motor["id"], "servo_id": servo["id"]}, headers=owner)

    client.delete(f"/api/electronics/{motor['id']}", headers=owner)

    body = client.get(base, headers=owner).json()
    assert body["motor"] is None
    assert body["servo"]["id"] == servo["id"]


def test_deleting_model_removes_fitting_not_items(client, db_session, owner, model_id):
    motor = add_item(client, owner, "motor", "Sport Tuned")
    client.put(
        f"/api/models/{model_id}/electronics", json={"motor_id": motor["id"]}, headers=owner
    )

    assert client.delete(f"/api/models/{model_id}", headers=owner).status_code == 200

    assert db_session.execute(select(models.ModelElectronics)).first() is None
    assert client.get(f"/api/electronics/{motor['id']}", headers=owner).status_code == 200


def test_shared_electronics_hide_cost(client, owner, model_payload):
    client.patch(
        "/api/users/me/share-preference",
        json={"share_preference": "public"},
        headers=owner,
    )
    model = client.post("/api/models", json=model_payload(), headers=owner).json()
    slug = client.put(
        f"/api/models/{model['id']}", json={"is_shared": True}, headers=owner
    ).json()["public_slug"]

    response = client.get(f"/api/shared/{slug}/electronics")
    assert response.status_code == 200
    assert response.json() is None

    motor = add_item(client, owner, "motor", "Sport Tuned", cost="24.00", notes="spare")
    client.put(
        f"/api/models/{model['id']}/electronics",
        json={"motor_id": motor["id"], "notes": "private note"},
        headers=owner,
    )

    body = client.get(f"/api/shared/{slug}/electronics").json()
    assert body["motor"]["name"] == "Sport Tuned"
    assert "cost" not in body["motor"]
    assert "notes" not in body["motor"]
    assert "notes" not in body
    assert client.get("/api/shared/missing-slug/electronics").status_code == 404
