from pathlib import Path

from tamtrack.config import settings

ERRORS = "https://tamtrack.example.com/errors"
JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


def create_model(client, headers, payload):
    response = client.post("/api/models", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def upload(client, headers, model_id, name="box.jpg", **form):
    return client.post(
        f"/api/models/{model_id}/photos",
        files={"file": (name, JPEG, "image/jpeg")},
        data=form,
        headers=headers,
    )


def test_models_require_auth(client):
    assert client.get("/api/models").status_code == 401
    assert client.post("/api/models", json={}).status_code == 401


def test_create_and_get_model(client, make_user, model_payload):
    _, headers = make_user("builder@example.com")
    created = create_model(client, headers, model_payload(total_cost="45.00"))
    assert created["build_status"] == "planning"
    assert created["build_type"] == "kit"
    assert created["photos"] == []

    response = client.get(f"/api/models/{created['id']}", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Grasshopper"
    assert float(body["total_investment"]) == 45.0


def test_create_model_validation_error(client, make_user):
    _, headers = make_user("invalid@example.com")
    response = client.post(
        "/api/models",
        json={"name": "", "item_number": "1", "build_status": "flying"},
        headers=headers,
    )
    assert response.status_code == 422
    body = response.json()
    assert body["type"] == f"{ERRORS}/validation_error"
    fields = {err["loc"][-1] for err in body["errors"]}
    assert {"name", "build_status"} <= fields


def test_model_of_other_user_is_not_found(client, make_user, model_payload):
    _, owner = make_user("first@example.com")
    _, intruder = make_user("second@example.com")
    model_id = create_model(client, owner, model_payload())["id"]

    response = client.get(f"/api/models/{model_id}", headers=intruder)
    assert response.status_code == 404
    body = response.json()
    assert body["type"] == f"{ERRORS}/model_not_found"
    assert body["detail"] == "Model not found"
    assert "correlation_id" in body

    assert client.put(
        f"/api/models/{model_id}", json={"name": "Stolen"}, headers=intruder
    ).status_code == 404
    assert client.delete(f"/api/models/{model_id}", headers=intruder).status_code == 404
    assert client.get("/api/models", headers=intruder).json() == []


def test_update_model_partial(client, make_user, model_payload):
    _, headers = make_user("partial@example.com")
    model = create_model(client, headers, model_payload(build_status="building"))
    response = client.put(
        f"/api/models/{model['id']}", json={"notes": "Rebuilt gearbox"}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["notes"] == "Rebuilt gearbox"
    assert body["build_status"] == "building"


def test_share_model_assigns_slug(client, make_user, model_payload):
    _, headers = make_user("sharer@example.com")
    model = create_model(client, headers, model_payload(name="Wild One"))
    response = client.put(
        f"/api/models/{model['id']}", json={"is_shared": True}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["public_slug"].startswith("wild-one-")


def test_model_quota_enforced(client, make_user, model_payload):
    _, headers = make_user("quota@example.com")
    create_model(client, headers, model_payload(item_number="1"))
    create_model(client, headers, model_payload(item_number="2"))

    response = client.post("/api/models", json=model_payload(), headers=headers)
    assert response.status_code == 403
    body = response.json()
    assert body["type"] == f"{ERRORS}/model_limit_reached"
    assert "Purchase a model pack" in body["detail"]


def test_list_models_includes_children(client, make_user, model_payload):
    _, headers = make_user("lister@example.com")
    model = create_model(client, headers, model_payload())
    for n in range(4):
        client.post(
            f"/api/models/{model['id']}/build-logs",
            json={"title": f"Step {n}", "entry_date": f"2024-03-0{n + 1}T10:00:00"},
            headers=headers,
        )
    response = client.get("/api/models", headers=headers)
    assert response.status_code == 200
    [listed] = response.json()
    titles = [e["title"] for e in listed["recent_build_log_entries"]]
    assert titles == ["Step 3", "Step 2", "Step 1"]


def test_stats(client, make_user, model_payload):
    _, headers = make_user("stats@example.com")
    model = create_model(client, headers, model_payload(total_cost=100))
    client.put(
        f"/api/models/{model['id']}", json={"build_status": "building"}, headers=headers
    )
    client.post(
        f"/api/models/{model['id']}/hop-up-parts",
        json={"name": "Bearings", "category": "drivetrain", "cost": 50},
        headers=headers,
    )
    response = client.get("/api/stats", headers=headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_models"] == 1
    assert stats["active_builds"] == 1
    assert stats["total_photos"] == 0
    assert float(stats["total_investment"]) == 100.0

    detail = client.get(f"/api/models/{model['id']}", headers=headers).json()
    assert float(detail["total_investment"]) == 150.0


def test_upload_photo(client, make_user, model_payload, storage):
    _, headers = make_user("photos@example.com")
    model = create_model(client, headers, model_payload())
    response = upload(client, headers, model["id"], caption="Box art", is_box_art="true")
    assert response.status_code == 201, response.text
    photo = response.json()
    assert photo["original_name"] == "box.jpg"
    assert photo["is_box_art"] is True
    assert photo["url"].startswith("/uploads/")
    assert photo["metadata"]["content_type"] == "image/jpeg"
    assert (Path(storage.root) / photo["filename"]).read_bytes() == JPEG


def test_upload_rejects_non_image(client, make_user, model_payload, storage):
    _, headers = make_user("pdf@example.com")
    model = create_model(client, headers, model_payload())
    response = client.post(
        f"/api/models/{model['id']}/photos",
        files={"file": ("manual.pdf", b"%PDF-1.4", "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["loc"] == ["file"]
    assert not Path(storage.root).exists() or not any(Path(storage.root).iterdir())


def test_upload_over_size_limit_is_rejected(
    client, make_user, model_payload, storage, monkeypatch
):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
    _, headers = make_user("big@example.com")
    model = create_model(client, headers, model_payload())
    response = client.post(
        f"/api/models/{model['id']}/photos",
        files={"file": ("big.jpg", b"\xff\xd8" + b"x" * 64, "image/jpeg")},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["loc"] == ["file"]
    assert not Path(storage.root).exists()


def test_upload_to_foreign_model_stores_nothing(client, make_user, model_payload, storage):
    _, owner = make_user("photo-owner@example.com")
    _, intruder = make_user("photo-intruder@example.com")
    model = create_model(client, owner, model_payload())
    response = upload(client, intruder, model["id"])
    assert response.status_code == 404
    assert not Path(storage.root).exists()


def test_box_art_endpoints(client, make_user, model_payload):
    _, headers = make_user("boxart@example.com")
    model = create_model(client, headers, model_payload())
    first = upload(client, headers, model["id"], "1.jpg", is_box_art="true").json()
    second = upload(client, headers, model["id"], "2.jpg").json()

    response = client.post(
        f"/api/models/{model['id']}/photos/{second['id']}/box-art", headers=headers
    )
    assert response.status_code == 200
    photos = client.get(f"/api/models/{model['id']}/photos", headers=headers).json()
    assert [p["id"] for p in photos if p["is_box_art"]] == [second["id"]]

    client.put(
        f"/api/models/{model['id']}/photos/{first['id']}",
        json={"is_box_art": True, "caption": "Front"},
        headers=headers,
    )
    photos = client.get(f"/api/models/{model['id']}/photos", headers=headers).json()
    assert [p["id"] for p in photos if p["is_box_art"]] == [first["id"]]

    response = client.delete(f"/api/models/{model['id']}/box-art", headers=headers)
    assert response.status_code == 200
    photos = client.get(f"/api/models/{model['id']}/photos", headers=headers).json()
    assert not any(p["is_box_art"] for p in photos)


def test_delete_photo_removes_file(client, make_user, model_payload, storage):
    _, headers = make_user("rmphoto@example.com")
    model = create_model(client, headers, model_payload())
    photo = upload(client, headers, model["id"]).json()
    stored = Path(storage.root) / photo["filename"]
    assert stored.exists()

    response = client.delete(
        f"/api/models/{model['id']}/photos/{photo['id']}", headers=headers
    )
    assert response.status_code == 200
    assert not stored.exists()
    assert client.delete(
        f"/api/models/{model['id']}/photos/{photo['id']}", headers=headers
    ).status_code == 404


def test_delete_model_removes_children_and_files(client, make_user, model_payload, storage):
    _, headers = make_user("rmmodel@example.com")
    model = create_model(client, headers, model_payload())
    photo = upload(client, headers, model["id"]).json()
    client.post(
        f"/api/models/{model['id']}/build-logs",
        json={"title": "Unboxing", "photo_ids": [photo["id"]]},
        headers=headers,
    )

    response = client.delete(f"/api/models/{model['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert not (Path(storage.root) / photo["filename"]).exists()
    assert client.get(f"/api/models/{model['id']}", headers=headers).status_code == 404
    assert client.get("/api/build-logs", headers=headers).json() == []
