import pytest

from lifecycle import create_listing
from conftest import LEELA_BHAWAN, THAPAR, auth_header, listing_data


def signup(client, name="Asha", email="asha@example.com", password="secret"):
    return client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_signup_returns_token_and_default_location(client):
    res = signup(client)

    assert res.status_code == 200
    body = res.json()
    assert body["token"]
    assert body["user"]["name"] == "Asha"
    assert body["user"]["rating"] == 0.0
    assert body["user"]["reviewCount"] == 0
    assert body["user"]["location"] == {"lat": 30.3398, "lng": 76.3869, "address": "Sector 22, Patiala"}


def test_signup_duplicate_email(client):
    signup(client)
    res = signup(client, name="Other", email="ASHA@example.com")
    assert res.status_code == 400
    assert res.json()["detail"] == "Email already registered"


def test_login(client):
    signup(client)

    ok = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret"})
    bad = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "wrong"})
    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret"})

    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "asha@example.com"
    assert bad.status_code == 400
    assert unknown.status_code == 400


def test_token_from_signup_authenticates(client):
    token = signup(client).json()["token"]

    res = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 200
    assert res.json()["name"] == "Asha"


def test_me_requires_valid_token(client):
    assert client.get("/api/users/me").status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_update_location_leaves_existing_listings(client, session, provider):
    listing = create_listing(session, provider, listing_data())

    res = client.put(
        "/api/users/location",
        json={"lat": LEELA_BHAWAN[0], "lng": LEELA_BHAWAN[1], "address": "Leela Bhawan"},
        headers=auth_header(provider),
    )

    assert res.status_code == 200
    assert res.json()["location"]["address"] == "Leela Bhawan"
    detail = client.get(f"/api/listings/{listing.id}").json()
    assert detail["location"]["lat"] == THAPAR[0]
    assert detail["location"]["address"] == "Thapar University"


def test_public_profile_hides_email(client, provider):
    res = client.get(f"/api/users/{provider.id}")

    assert res.status_code == 200
    assert res.json()["name"] == "Asha"
    assert res.json()["email"] is None
    assert client.get("/api/users/999").status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        '{"lat": NaN, "lng": 76.36, "address": "Nowhere"}',
        '{"lat": 30.34, "lng": Infinity, "address": "Nowhere"}',
        '{"lat": 91, "lng": 76.36, "address": "Nowhere"}',
        '{"lat": 30.34, "lng": -180.5, "address": "Nowhere"}',
    ],
)
def test_update_location_rejects_impossible_coordinates(client, provider, body):
    res = client.put(
        "/api/users/location",
        content=body,
        headers={**auth_header(provider), "Content-Type": "application/json"},
    )

    assert res.status_code == 422
    assert client.get("/api/users/me", headers=auth_header(provider)).json()["location"]["lat"] == THAPAR[0]
