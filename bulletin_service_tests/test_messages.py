"""Tests for the message routes and the bearer-token gate."""
from datetime import timedelta

import pytest

from bulletin_service.auth import TokenService
from bulletin_service.models import Message

from .conftest import TEST_SECRET

MESSAGE = {"title": "Hello", "text": "First message", "timestamp": "2024-01-15 10:30"}


def post_message(client, headers, **overrides):
    payload = dict(MESSAGE, **overrides)
    return client.post("/mensagens", json=payload, headers=headers)


def count_messages(app):
    db = app.state.session_factory()
    try:
        return db.query(Message).count()
    finally:
        db.close()


# ---------------- Auth gate ----------------

@pytest.mark.parametrize("method,path", [
    ("post", "/mensagens"),
    ("put", "/mensagens/1"),
    ("delete", "/mensagens/1"),
])
def test_mutations_require_token(client, method, path):
    response = client.request(method.upper(), path, json=MESSAGE)
    assert response.status_code == 401
    assert response.json()["detail"] == "Token not provided."
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.parametrize("header", ["Bearer", "Bearer a b", "Basic dXNlcjpwYXNz", "token-without-scheme"])
def test_header_without_bearer_token_is_401(client, header):
    response = post_message(client, {"Authorization": header})
    assert response.status_code == 401


@pytest.mark.parametrize("token", ["garbage", "a.b.c", "eyJhbGciOiJIUzI1NiJ9.e30.invalid"])
def test_invalid_token_is_403(app, client, token):
    response = post_message(client, {"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid token."
    assert count_messages(app) == 0


def test_token_signed_with_other_secret_is_403(client):
    token = TokenService("a-completely-different-secret-value").issue(1, "A", "a@example.com")
    response = post_message(client, {"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_expired_token_is_403(app, client):
    # Issued exactly one TTL ago, so it expires now
    tokens = app.state.tokens
    issued_long_ago = TokenService(
        TEST_SECRET,
        ttl=tokens.ttl,
        clock=lambda: tokens._clock() - tokens.ttl,
    )
    token = issued_long_ago.issue(1, "A", "a@example.com")

    response = post_message(client, {"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_token_close_to_expiry_still_accepted(app, client):
    tokens = app.state.tokens
    almost_expired = TokenService(
        TEST_SECRET,
        ttl=tokens.ttl,
        clock=lambda: tokens._clock() - tokens.ttl + timedelta(minutes=5),
    )
    token = almost_expired.issue(1, "A", "a@example.com")

    response = post_message(client, {"Authorization": f"Bearer {token}"})
    assert response.status_code == 201


def test_scheme_is_case_insensitive(client, auth_header):
    token = auth_header["Authorization"].split(" ", 1)[1]
    response = post_message(client, {"Authorization": f"bearer {token}"})
    assert response.status_code == 201


def test_reads_do_not_require_token(client):
    assert client.get("/mensagens").status_code == 200
    assert client.get("/usuarios").status_code == 200
    assert client.get("/").status_code == 200


# ---------------- CRUD ----------------

def test_create_message(client, auth_header):
    response = post_message(client, auth_header)
    assert response.status_code == 201
    data = response.json()
    assert data["id"] > 0
    assert data["title"] == "Hello"
    assert data["text"] == "First message"
    assert data["timestamp"] == "2024-01-15 10:30"
    assert "createdAt" in data and "updatedAt" in data


def test_create_message_accepts_portuguese_field_names(client, auth_header):
    response = client.post(
        "/mensagens",
        json={"titulo": "Oi", "texto": "Mensagem", "dataHora": "15/01/2024 10:30"},
        headers=auth_header,
    )
    assert response.status_code == 201
    assert response.json()["title"] == "Oi"


@pytest.mark.parametrize("overrides", [
    {"title": ""},
    {"text": ""},
    {"timestamp": ""},
    {"title": "   "},
    {"title": None},
])
def test_create_message_missing_fields(app, client, auth_header, overrides):
    response = post_message(client, auth_header, **overrides)
    assert response.status_code == 400
    assert response.json()["detail"] == "Title, text and timestamp are required."
    assert count_messages(app) == 0


def test_list_messages_newest_first(client, auth_header):
    ids = [post_message(client, auth_header, title=f"m{i}").json()["id"] for i in range(3)]

    listed = client.get("/mensagens").json()
    assert [m["id"] for m in listed] == sorted(ids, reverse=True)
    assert [m["title"] for m in listed] == ["m2", "m1", "m0"]


def test_update_message(client, auth_header):
    created = post_message(client, auth_header).json()

    response = client.put(
        f"/mensagens/{created['id']}",
        json={"title": "Edited", "text": "Changed"},
        headers=auth_header,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == created["id"]
    assert data["title"] == "Edited"
    assert data["text"] == "Changed"
    assert data["timestamp"] == created["timestamp"]


def test_update_message_missing_fields(client, auth_header):
    created = post_message(client, auth_header).json()

    response = client.put(f"/mensagens/{created['id']}", json={"title": "Edited"}, headers=auth_header)
    assert response.status_code == 400

    unchanged = client.get("/mensagens").json()[0]
    assert unchanged["title"] == "Hello"


def test_update_missing_message_is_404(client, auth_header):
    response = client.put("/mensagens/999", json={"title": "x", "text": "y"}, headers=auth_header)
    assert response.status_code == 404
    assert response.json()["detail"] == "Message not found."


def test_update_missing_message_is_404_even_with_invalid_body(client, auth_header):
    response = client.put("/mensagens/999", json={}, headers=auth_header)
    assert response.status_code == 404


def test_delete_message(client, auth_header):
    first = post_message(client, auth_header, title="keep").json()
    second = post_message(client, auth_header, title="drop").json()

    response = client.delete(f"/mensagens/{second['id']}", headers=auth_header)
    assert response.status_code == 200
    assert response.json() == {"message": "Message deleted successfully."}

    listed = client.get("/mensagens").json()
    assert [m["id"] for m in listed] == [first["id"]]


def test_delete_missing_message_is_404(client, auth_header):
    response = client.delete("/mensagens/999", headers=auth_header)
    assert response.status_code == 404


def test_delete_twice_is_404(client, auth_header):
    created = post_message(client, auth_header).json()
    assert client.delete(f"/mensagens/{created['id']}", headers=auth_header).status_code == 200
    assert client.delete(f"/mensagens/{created['id']}", headers=auth_header).status_code == 404


def test_non_integer_id_is_400(client, auth_header):
    response = client.delete("/mensagens/abc", headers=auth_header)
    assert response.status_code == 400
