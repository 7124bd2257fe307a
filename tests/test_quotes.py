"""
Tests for the quote catalog endpoints.
"""
import pytest
from fastapi import status

from app.models.quote import Quote


@pytest.fixture
def key_headers(issued_key):
    return {"X-API-Key": issued_key.token}


@pytest.fixture
def catalog(db_session):
    quotes = [
        Quote(text=f"Quote number {i}", author=f"Author {i}", tags=["test"])
        for i in range(12)
    ]
    quotes.append(Quote(text="Draft quote", author="Editor", is_published=False))
    db_session.add_all(quotes)
    db_session.commit()
    return quotes


def test_random_quote_from_empty_catalog_returns_404(client, key_headers):
    response = client.get("/api/v1/quotes/random", headers=key_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "No quotes found"


def test_random_quote_is_published(client, key_headers, catalog):
    for _ in range(5):
        response = client.get("/api/v1/quotes/random", headers=key_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["text"] != "Draft quote"


def test_list_quotes_paginates(client, key_headers, catalog):
    response = client.get("/api/v1/quotes", headers=key_headers, params={"page": 2, "limit": 5})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 12
    assert data["page"] == 2
    assert data["pages"] == 3
    assert len(data["items"]) == 5


def test_list_quotes_rejects_bad_paging(client, key_headers):
    response = client.get("/api/v1/quotes", headers=key_headers, params={"limit": 0})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "ValidationError"


def test_get_quote_by_id(client, key_headers, catalog):
    quote_id = catalog[0].id

    response = client.get(f"/api/v1/quotes/{quote_id}", headers=key_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["author"] == "Author 0"


def test_unpublished_quote_is_hidden(client, key_headers, catalog):
    response = client.get(f"/api/v1/quotes/{catalog[-1].id}", headers=key_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_catalog_requires_key_on_every_route(client, catalog):
    for path in ("/api/v1/quotes/random", "/api/v1/quotes", f"/api/v1/quotes/{catalog[0].id}"):
        assert client.get(path).status_code == status.HTTP_401_UNAUTHORIZED


def test_admin_secret_does_not_unlock_catalog(client, admin_headers, catalog):
    response = client.get("/api/v1/quotes/random", headers=admin_headers)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
