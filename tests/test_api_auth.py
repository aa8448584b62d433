import pytest
from sqlmodel import Session

from songrank.models import User

from conftest import PASSWORD

STRONG = "Viola#2024"


def register(client, email="moda@songrank.io", password=STRONG, confirmation=None, name="Moda Fan"):
    return client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
        "password_confirmation": confirmation if confirmation is not None else password,
    })


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_logs_the_user_in(client):
    response = register(client, email="Moda@SongRank.io")

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 60 * 60
    assert body["user"]["email"] == "moda@songrank.io"
    assert body["user"]["role"] == "user"

    me = client.get("/api/auth/me", headers=bearer(body["access_token"]))
    assert me.status_code == 200
    assert me.json()["name"] == "Moda Fan"


def test_register_duplicate_email_is_409(client):
    register(client)

    response = register(client)

    assert response.status_code == 409
    assert response.json()["message"] == "Email already registered"


@pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
def test_register_weak_password_is_422(client, password):
    response = register(client, password=password)

    assert response.status_code == 422
    assert "password" in response.json()["errors"]


def test_register_confirmation_mismatch_is_422(client):
    response = register(client, confirmation="Different#2024")

    assert response.status_code == 422
    assert response.json()["errors"]["password_confirmation"] == ["Password confirmation does not match"]


def test_login(client, regular_user):
    response = client.post("/api/auth/login", json={"email": regular_user.email, "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(regular_user.id)


def test_login_with_wrong_password_is_401(client, regular_user):
    response = client.post("/api/auth/login", json={"email": regular_user.email, "password": "Wrong#1234"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"


def test_inactive_user_cannot_login(client, engine, make_user):
    user = make_user()
    with Session(engine) as session:
        stored = session.get(User, user.id)
        stored.is_active = False
        session.add(stored)
        session.commit()

    response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

    assert response.status_code == 403


def test_me_requires_a_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_me_aliases(client, user_headers, regular_user):
    for path in ("/api/auth/me", "/api/auth/profile", "/api/auth/user"):
        response = client.get(path, headers=user_headers)
        assert response.status_code == 200
        assert response.json()["email"] == regular_user.email


def test_refresh_rotates_tokens(client):
    tokens = register(client).json()

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["refresh_token"] != tokens["refresh_token"]

    reused = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 401

    again = client.post("/api/auth/refresh", json={"refresh_token": refreshed.json()["refresh_token"]})
    assert again.status_code == 200


def test_access_token_is_not_a_refresh_token(client):
    tokens = register(client).json()

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


def test_logout_revokes_tokens(client):
    tokens = register(client).json()
    headers = bearer(tokens["access_token"])

    response = client.post(
        "/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers
    )

    assert response.status_code == 204
    assert client.get("/api/auth/me", headers=headers).status_code == 401
    assert client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    ).status_code == 401


def test_logout_without_body(client):
    tokens = register(client).json()

    response = client.post("/api/auth/logout", headers=bearer(tokens["access_token"]))

    assert response.status_code == 204


def test_revoked_token_reads_public_data_as_guest(client):
    tokens = register(client).json()
    headers = bearer(tokens["access_token"])
    client.post("/api/auth/logout", headers=headers)

    assert client.get("/api/songs/top5", headers=headers).status_code == 200
    assert client.post(
        "/api/songs", json={"youtube_url": "https://youtu.be/vid00000001"}, headers=headers
    ).status_code == 401
