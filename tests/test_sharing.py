import pytest


def shared_model(client, headers, model_payload, **overrides):
    model = client.post("/api/models", json=model_payload(**overrides), headers=headers).json()
    response = client.put(
        f"/api/models/{model['id']}", json={"is_shared": True}, headers=headers
    )
    assert response.status_code == 200
    return response.json()


def set_preference(client, headers, preference):
    response = client.patch(
        "/api/users/me/share-preference",
        json={"share_preference": preference},
        headers=headers,
    )
    assert response.status_code == 200


@pytest.fixture
def owner(make_user):
    return make_user("sharer@example.com", display_name="Sharer")[1]


@pytest.fixture
def viewer(make_user):
    return make_user("viewer@example.com", display_name="Viewer")[1]


def test_public_model_visible_to_anyone(client, owner, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)

    response = client.get(f"/api/shared/{model['public_slug']}")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Grasshopper"
    assert body["owner"] == {"id": model["owner_id"], "display_name": "Sharer"}
    assert "total_cost" not in body
    assert "email" not in body["owner"]

    listing = client.get("/api/community/models").json()
    assert [m["public_slug"] for m in listing] == [model["public_slug"]]


def test_shared_hop_ups_hide_cost(client, owner, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    client.post(
        f"/api/models/{model['id']}/hop-up-parts",
        json={"name": "Alloy wheels", "category": "wheels", "cost": "59.99"},
        headers=owner,
    )

    parts = client.get(f"/api/shared/{model['public_slug']}/hop-up-parts").json()
    assert [p["name"] for p in parts] == ["Alloy wheels"]
    assert "cost" not in parts[0]

    own = client.get(f"/api/models/{model['id']}/hop-up-parts", headers=owner).json()
    assert float(own[0]["cost"]) == 59.99


def test_private_preference_hides_shared_model(client, owner, viewer, model_payload):
    model = shared_model(client, owner, model_payload)
    slug = model["public_slug"]

    response = client.get(f"/api/shared/{slug}", headers=viewer)
    assert response.status_code == 404
    assert response.json()["type"].endswith("/shared_model_not_found")
    assert client.get(f"/api/shared/{slug}").status_code == 404
    assert client.get("/api/community/models", headers=viewer).json() == []

    # владелец всегда видит свою модель
    assert client.get(f"/api/shared/{slug}", headers=owner).status_code == 200


def test_authenticated_preference(client, owner, viewer, model_payload):
    set_preference(client, owner, "authenticated")
    model = shared_model(client, owner, model_payload)
    slug = model["public_slug"]

    assert client.get(f"/api/shared/{slug}").status_code == 404
    assert client.get(f"/api/shared/{slug}", headers=viewer).status_code == 200
    assert client.get("/api/community/models").json() == []
    assert len(client.get("/api/community/models", headers=viewer).json()) == 1


def test_preference_change_applies_immediately(client, owner, viewer, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    slug = model["public_slug"]
    assert client.get(f"/api/shared/{slug}", headers=viewer).status_code == 200

    set_preference(client, owner, "private")
    assert client.get(f"/api/shared/{slug}", headers=viewer).status_code == 404
    assert client.get(f"/api/shared/{slug}/photos", headers=viewer).status_code == 404
    assert client.get(f"/api/shared/{slug}/build-logs", headers=viewer).status_code == 404


def test_unshared_model_is_hidden(client, owner, viewer, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    client.put(f"/api/models/{model['id']}", json={"is_shared": False}, headers=owner)
    assert client.get(f"/api/shared/{model['public_slug']}", headers=viewer).status_code == 404


def test_unknown_slug(client, viewer):
    assert client.get("/api/shared/no-such-model-abc123", headers=viewer).status_code == 404


def test_shared_photos_and_build_logs(client, owner, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    client.post(
        f"/api/models/{model['id']}/photos",
        files={"file": ("front.jpg", b"\xff\xd8jpeg", "image/jpeg")},
        headers=owner,
    )
    client.post(
        f"/api/models/{model['id']}/build-logs",
        json={"title": "Finished"},
        headers=owner,
    )
    slug = model["public_slug"]
    assert [p["original_name"] for p in client.get(f"/api/shared/{slug}/photos").json()] == [
        "front.jpg"
    ]
    assert [e["title"] for e in client.get(f"/api/shared/{slug}/build-logs").json()] == [
        "Finished"
    ]


def test_comments(client, owner, viewer, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    slug = model["public_slug"]

    assert client.post(
        f"/api/shared/{slug}/comments", json={"content": "Nice build!"}
    ).status_code == 401
    response = client.post(
        f"/api/shared/{slug}/comments", json={"content": "Nice build!"}, headers=viewer
    )
    assert response.status_code == 201
    comment = response.json()
    assert comment["author"]["display_name"] == "Viewer"

    comments = client.get(f"/api/shared/{slug}/comments").json()
    assert [c["content"] for c in comments] == ["Nice build!"]

    assert client.post(
        f"/api/shared/{slug}/comments", json={"content": ""}, headers=viewer
    ).status_code == 422

    # удалить комментарий может только автор
    assert client.delete(f"/api/comments/{comment['id']}", headers=owner).status_code == 404
    assert client.delete(f"/api/comments/{comment['id']}", headers=viewer).status_code == 200
    assert client.get(f"/api/shared/{slug}/comments").json() == []


def test_cannot_comment_on_hidden_model(client, owner, viewer, model_payload):
    model = shared_model(client, owner, model_payload)
    response = client.post(
        f"/api/shared/{model['public_slug']}/comments",
        json={"content": "Hello?"},
        headers=viewer,
    )
    assert response.status_code == 404


def test_owner_cannot_comment_after_unsharing(client, owner, model_payload):
    set_preference(client, owner, "public")
    model = shared_model(client, owner, model_payload)
    slug = model["public_slug"]
    client.put(f"/api/models/{model['id']}", json={"is_shared": False}, headers=owner)

    # владелец всё ещё видит модель по ссылке, но писать в неё нельзя
    assert client.get(f"/api/shared/{slug}", headers=owner).status_code == 200
    response = client.post(
        f"/api/shared/{slug}/comments", json={"content": "Still here"}, headers=owner
    )
    assert response.status_code == 404
    assert client.get(f"/api/shared/{slug}/comments", headers=owner).json() == []
