from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from bridge_server.auth import resolve_token
from bridge_server.server import create_app


def _write_cfg(tmp_path: Path, text: str) -> str:
    path = tmp_path / "bridge.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.fixture
def secured(tmp_path: Path, clean_env) -> TestClient:
    cfg = _write_cfg(tmp_path, "auth:\n  enabled: true\n  token: s3cret\n")
    return TestClient(create_app(config_path=cfg))


def test_resolve_token_disabled_by_default():
    assert resolve_token({}) is None
    assert resolve_token({"auth": {"enabled": False, "token": "x"}}) is None


def test_resolve_token_requires_token_when_enabled():
    with pytest.raises(RuntimeError):
        resolve_token({"auth": {"enabled": True}})
    with pytest.raises(RuntimeError):
        resolve_token({"auth": {"enabled": True, "token": "  "}})


def test_resolve_token_stringifies_numeric_token():
    assert resolve_token({"auth": {"enabled": True, "token": 1234}}) == "1234"


def test_enabled_without_token_fails_at_startup(tmp_path: Path, clean_env):
    cfg = _write_cfg(tmp_path, "auth:\n  enabled: true\n")
    with pytest.raises(RuntimeError):
        create_app(config_path=cfg)


def test_missing_token_rejected(secured: TestClient):
    r = secured.post("/messages", json={"body": "hi"})
    assert r.status_code == 401
    assert r.json()["error"]["kind"] == "unauthorized"
    assert secured.get("/status").json()["pending"] == 0


@pytest.mark.parametrize("header", ["Bearer wrong", "Basic s3cret", "s3cret"])
def test_bad_token_rejected(secured: TestClient, header: str):
    r = secured.get("/replies", headers={"Authorization": header})
    assert r.status_code == 401


def test_valid_token_accepted(secured: TestClient):
    headers = {"Authorization": "Bearer s3cret"}
    r = secured.post("/messages", json={"body": "hi"}, headers=headers)
    assert r.status_code == 201
    assert secured.get("/messages/pending", headers=headers).json()["count"] == 1


def test_status_and_health_stay_open(secured: TestClient):
    assert secured.get("/status").status_code == 200
    health = secured.get("/health").json()
    assert health["auth_enabled"] is True


def test_token_from_env(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BRIDGE_SERVER__AUTH__ENABLED", "true")
    monkeypatch.setenv("BRIDGE_SERVER__AUTH__TOKEN", "9876")
    client = TestClient(create_app(config_path=str(tmp_path / "missing.yaml")))
    assert client.get("/replies").status_code == 401
    assert client.get("/replies", headers={"Authorization": "Bearer 9876"}).status_code == 200
