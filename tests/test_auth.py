import pytest

from core.config import settings
from core.errors import AuthError
from core.security import decode_access_token, user_from_claims
from services import auth as auth_service
from tests.conftest import make_token


def test_decode_access_token_round_trip():
    claims = decode_access_token(make_token("user-9", email="nine@example.com"))
    assert user_from_claims(claims) == {"id": "user-9", "email": "nine@example.com", "role": "authenticated"}


def test_decode_rejects_expired_and_forged_tokens():
    with pytest.raises(AuthError):
        decode_access_token(make_token("user-9", expires_in=-60))
    with pytest.raises(AuthError):
        decode_access_token(make_token("user-9"), secret="another-secret")
    with pytest.raises(AuthError):
        decode_access_token("not-a-jwt")


def test_me_requires_a_token(client):
    assert client.get("/auth/me").status_code == 401
    response = client.get("/auth/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_me_accepts_bearer_or_cookie(client, auth_headers):
    response = client.get("/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == "user-1"

    client.cookies.set(settings.access_cookie_name, make_token("user-3"))
    assert client.get("/auth/me").json()["id"] == "user-3"


def test_login_sets_session_cookies(client, monkeypatch):
    async def fake_sign_in(email, password):
        if password != "correct-horse":
            raise AuthError("Invalid login credentials")
        return {
            "access_token": "access",
            "refresh_token": "refresh",
            "token_type": "bearer",
            "expires_in": 3600,
            "user": {"id": "user-1", "email": email},
        }

    monkeypatch.setattr(auth_service, "sign_in", fake_sign_in)

    bad = client.post("/auth/login", data={"username": "a@example.com", "password": "wrong"})
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid credentials"

    ok = client.post("/auth/login", data={"username": "a@example.com", "password": "correct-horse"})
    assert ok.status_code == 200
    assert ok.json()["access_token"] == "access"
    assert ok.cookies.get(settings.access_cookie_name) == "access"
    assert ok.cookies.get(settings.refresh_cookie_name) == "refresh"


def test_signup_reports_supabase_errors(client, monkeypatch):
    async def fake_sign_up(email, password):
        raise AuthError("User already registered")

    monkeypatch.setattr(auth_service, "sign_up", fake_sign_up)
    response = client.post("/auth/signup", json={"email": "a@example.com", "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["detail"] == "User already registered"


def test_callback_redirects(client, monkeypatch):
    async def fake_exchange(code, code_verifier=None):
        if code != "good":
            raise AuthError("bad code")
        return {"access_token": "access", "refresh_token": "refresh", "expires_in": 3600}

    monkeypatch.setattr(auth_service, "exchange_code", fake_exchange)

    no_code = client.get("/auth/callback", follow_redirects=False)
    assert no_code.headers["location"] == "/"

    failed = client.get("/auth/callback?code=bad", follow_redirects=False)
    assert failed.headers["location"] == "/?error=Authentication%20failed"

    ok = client.get("/auth/callback?code=good", follow_redirects=False)
    assert ok.headers["location"] == "/upload"
    assert ok.cookies.get(settings.access_cookie_name) == "access"


def test_route_guard_redirects_anonymous_users(client):
    for path in ("/upload", "/chat/some-file.pdf"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login"


def test_route_guard_sends_signed_in_users_away_from_login(client, auth_headers):
    response = client.get("/login", headers=auth_headers, follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/upload"

    assert client.get("/upload", headers=auth_headers).status_code == 200
    assert client.get("/login", follow_redirects=False).status_code == 200


def test_route_guard_leaves_api_routes_alone(client):
    response = client.get("/api/pdfs", follow_redirects=False)
    assert response.status_code == 401


def test_route_guard_matches_whole_path_segments(client):
    response = client.get("/chatter", follow_redirects=False)
    assert response.status_code == 404
    response = client.get("/uploads-archive", follow_redirects=False)
    assert response.status_code == 404
