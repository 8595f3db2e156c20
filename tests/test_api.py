"""
HTTP adapter smoke tests: status mapping, cascade, paging over the API.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Garante que o pacote seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from postboard.app import create_app  # noqa: E402
from postboard.core import config as core_config  # noqa: E402
from postboard.core.errors import StorageError  # noqa: E402


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "db.json"))
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("API_BASE_PATH", raising=False)
    core_config.get_settings.cache_clear()
    yield core_config.get_settings()
    core_config.get_settings.cache_clear()


@pytest.fixture()
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _new_user(client, name="Ada", email="ada@example.com", roles=None):
    res = client.post("/api/users", json={"name": name, "email": email, "roles": roles or []})
    assert res.status_code == 201, res.text
    return res.json()


def test_create_and_fetch_account(client):
    created = _new_user(client, roles=["admin"])

    assert created["id"] == 1
    assert created["postCount"] == 0
    res = client.get("/api/users/1")
    assert res.status_code == 200
    assert res.json()["email"] == "ada@example.com"
    assert res.json()["roles"] == ["admin"]


def test_duplicate_email_is_conflict(client):
    _new_user(client, email="X@Y.com")

    res = client.post("/api/users", json={"name": "Other", "email": "x@y.com"})

    assert res.status_code == 409
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"


def test_missing_records_are_404(client):
    assert client.get("/api/users/99").status_code == 404
    assert client.delete("/api/users/99").status_code == 404
    assert client.get("/api/microposts/5").status_code == 404
    assert client.post("/api/users/99/microposts", json={"content": "hi"}).status_code == 404
    assert client.get("/api/users/99/microposts").status_code == 404


def test_bad_input_is_400(client):
    _new_user(client)

    assert client.post("/api/users", json={"email": "a@b.co"}).status_code == 400
    assert client.post("/api/users/1/microposts", json={"content": "    "}).status_code == 400
    assert client.post("/api/users/1/microposts", json={"content": "z" * 281}).status_code == 400
    assert client.patch("/api/users/1", json={"email": "nope"}).status_code == 400
    assert client.get("/api/users?sort=loudest").status_code == 400


def test_update_account_and_post(client):
    _new_user(client)
    post = client.post("/api/users/1/microposts", json={"content": " first "}).json()

    res = client.patch("/api/users/1", json={"name": "Ada Lovelace"})
    assert res.status_code == 200
    assert res.json()["name"] == "Ada Lovelace"
    assert res.json()["postCount"] == 1

    res = client.patch(f"/api/microposts/{post['id']}", json={"content": "edited"})
    assert res.status_code == 200
    assert res.json()["content"] == "edited"
    assert "updatedAt" in res.json()


def test_delete_account_cascades(client):
    _new_user(client, "A", "a@example.com")
    _new_user(client, "B", "b@example.com")
    for n in range(3):
        client.post("/api/users/1/microposts", json={"content": f"note {n}"})

    assert client.delete("/api/users/1").status_code == 204

    users = client.get("/api/users").json()
    assert [u["id"] for u in users["data"]] == [2]
    assert client.get("/api/microposts").json()["pagination"]["total"] == 0
    res = client.post("/api/users/2/microposts", json={"content": "next"})
    assert res.json()["id"] == 4


def test_post_listing_paginates(client):
    _new_user(client)
    for n in range(7):
        client.post("/api/users/1/microposts", json={"content": f"Match {n}"})
    client.post("/api/users/1/microposts", json={"content": "other"})

    sizes = []
    for page in (1, 2, 3, 4):
        res = client.get(f"/api/users/1/microposts?search=match&limit=3&page={page}")
        assert res.status_code == 200
        body = res.json()
        assert body["pagination"]["totalPages"] == 3
        sizes.append(len(body["data"]))

    assert sizes == [3, 3, 1, 0]


def test_stats_and_health(client):
    _new_user(client, roles=["admin"])
    client.post("/api/users/1/microposts", json={"content": "hello"})

    stats = client.get("/api/users/stats").json()
    assert stats["totalAccounts"] == 1
    assert stats["totalPosts"] == 1
    assert stats["accountsByRole"] == {"admin": 1}
    assert client.get("/health").json()["ok"] is True


def test_write_rate_limit(settings):
    limited = replace(settings, rate_limit_max_requests=2)
    with TestClient(create_app(limited)) as client:
        assert client.post("/api/users", json={"name": "A", "email": "a@example.com"}).status_code == 201
        assert client.post("/api/users", json={"name": "B", "email": "b@example.com"}).status_code == 201
        assert client.post("/api/users", json={"name": "C", "email": "c@example.com"}).status_code == 429
        assert client.get("/api/users").status_code == 200


def test_rate_limited_response_uses_error_body(settings):
    limited = replace(settings, rate_limit_max_requests=1)
    with TestClient(create_app(limited)) as client:
        _new_user(client)
        res = client.post("/api/users", json={"name": "B", "email": "b@example.com"})

    assert res.status_code == 429
    assert int(res.headers["retry-after"]) >= 1
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMITED"


def test_unknown_route_and_missing_owner_use_error_body(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"

    res = client.get("/api/users/42/microposts")
    assert res.status_code == 404
    assert res.json() == {
        "success": False,
        "error": {"code": "NOT_FOUND", "message": "Account 42 not found"},
    }


def test_storage_failure_is_logged_with_traceback(client, settings, caplog):
    Path(settings.db_path).write_text("[[[", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="postboard.app"):
        res = client.get("/api/users")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "STORAGE_ERROR"
    failures = [r for r in caplog.records if r.name == "postboard.app"]
    assert failures and failures[0].exc_info is not None
    assert isinstance(failures[0].exc_info[1], StorageError)


def test_unexpected_error_is_500_with_error_body(settings, caplog):
    app = create_app(settings)

    def broken_stats():
        raise RuntimeError("boom")

    app.state.accounts.get_stats = broken_stats
    with TestClient(app, raise_server_exceptions=False) as client:
        with caplog.at_level(logging.ERROR, logger="postboard.app"):
            res = client.get("/api/users/stats")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "INTERNAL_ERROR"
    assert any(r.exc_info for r in caplog.records if r.name == "postboard.app")


def test_malformed_store_blocks_startup(settings):
    Path(settings.db_path).write_text("[[[", encoding="utf-8")

    with pytest.raises(StorageError):
        create_app(settings)
