"""
Tests for API key management endpoints.
"""
from fastapi import status

from app.models.activity_log import ActivityLog
from app.models.api_key import APIKey
from app.models.quote import Quote
from app.services.key_store import hash_token


def create_key(client, admin_headers, **body):
    body.setdefault("name", "Integration Key")
    response = client.post("/api/v1/keys", headers=admin_headers, json=body)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_admin_can_create_api_key(client, admin_headers, db_session):
    """The full key comes back once; only its hash lands in the database."""
    data = create_key(client, admin_headers, name="New Test Key", description="for docs")

    assert data["name"] == "New Test Key"
    assert data["description"] == "for docs"
    assert data["key"].startswith("qk_")
    assert "created_at" in data

    db_key = db_session.query(APIKey).filter(APIKey.id == data["id"]).first()
    assert db_key is not None
    assert db_key.key_hash == hash_token(data["key"])
    assert db_key.is_active is True
    assert db_key.usage_count == 0
    assert db_key.permissions == ["read"]


def test_create_api_key_requires_name(client, admin_headers):
    response = client.post("/api/v1/keys", headers=admin_headers, json={"description": "no name"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.post("/api/v1/keys", headers=admin_headers, json={"name": "   "})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_non_admin_cannot_create_api_key(client):
    response = client.post("/api/v1/keys", json={"name": "Should Fail"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_never_contains_secret(client, admin_headers):
    first = create_key(client, admin_headers, name="Key 1")
    second = create_key(client, admin_headers, name="Key 2")

    response = client.get("/api/v1/keys", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    for item in data["items"]:
        assert "key" not in item
        assert "key_hash" not in item
        assert item["key_prefix"].startswith("qk_")
        assert item["usage_count"] == 0
        assert item["active"] is True
    assert first["key"] not in response.text
    assert second["key"] not in response.text


def test_listing_shows_only_a_short_hint_of_the_key(client, admin_headers):
    created = create_key(client, admin_headers)

    item = client.get("/api/v1/keys", headers=admin_headers).json()["items"][0]

    assert item["key_prefix"] == "qk_..." + created["key"][-4:]
    assert created["key"][:8] not in item["key_prefix"]


def test_get_single_key_omits_secret(client, admin_headers):
    created = create_key(client, admin_headers)

    response = client.get(f"/api/v1/keys/{created['id']}", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert "key" not in response.json()
    assert created["key"] not in response.text


def test_get_nonexistent_key_returns_404(client, admin_headers):
    response = client.get("/api/v1/keys/99999", headers=admin_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_admin_can_update_name_and_description(client, admin_headers):
    created = create_key(client, admin_headers, name="Old Name")

    response = client.patch(
        f"/api/v1/keys/{created['id']}",
        headers=admin_headers,
        json={"name": "New Name", "description": "updated"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == "New Name"
    assert data["description"] == "updated"
    assert data["active"] is True
    assert "key" not in data


def test_deactivated_key_cannot_authenticate(client, admin_headers, db_session):
    """PATCH active=false, then a catalog request with that key fails with InvalidKey."""
    db_session.add(Quote(text="Nothing about us without us.", author="Disability rights movement"))
    db_session.commit()
    created = create_key(client, admin_headers)
    headers = {"X-API-Key": created["key"]}
    assert client.get("/api/v1/quotes/random", headers=headers).status_code == status.HTTP_200_OK

    response = client.patch(f"/api/v1/keys/{created['id']}", headers=admin_headers, json={"active": False})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["active"] is False

    response = client.get("/api/v1/quotes/random", headers=headers)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "InvalidKeyError"

    # Reactivating restores access and keeps the usage history
    client.patch(f"/api/v1/keys/{created['id']}", headers=admin_headers, json={"active": True})
    assert client.get("/api/v1/quotes/random", headers=headers).status_code == status.HTTP_200_OK
    db_key = db_session.query(APIKey).filter(APIKey.id == created["id"]).one()
    assert db_key.usage_count == 2


def test_update_nonexistent_key_returns_404(client, admin_headers):
    response = client.patch("/api/v1/keys/99999", headers=admin_headers, json={"active": False})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_admin_can_delete_api_key(client, admin_headers, db_session):
    created = create_key(client, admin_headers)

    response = client.delete(f"/api/v1/keys/{created['id']}", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == created["id"]
    assert db_session.query(APIKey).filter(APIKey.id == created["id"]).first() is None
    response = client.get("/api/v1/quotes/random", headers={"X-API-Key": created["key"]})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_delete_nonexistent_key_returns_404(client, admin_headers):
    response = client.delete("/api/v1/keys/99999", headers=admin_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_key_management_is_recorded_in_activity_log(client, admin_headers, db_session):
    created = create_key(client, admin_headers)
    client.patch(f"/api/v1/keys/{created['id']}", headers=admin_headers, json={"active": False})
    client.delete(f"/api/v1/keys/{created['id']}", headers=admin_headers)

    actions = [
        log.action
        for log in db_session.query(ActivityLog).order_by(ActivityLog.id).all()
    ]
    assert actions == ["key_create", "key_update", "key_delete"]

    response = client.get("/api/v1/activity", headers=admin_headers, params={"resource_type": "api_key"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["total"] == 3
    assert created["key"] not in response.text
