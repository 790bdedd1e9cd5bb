"""
Tests for app/deps.py: get_current_user, require_scopes, can_run_maintenance
and the trigger token check.
These tests use the real dep functions (no overrides) to get coverage.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.deps import CurrentUser, can_run_maintenance, get_current_user
from app.schemas import TriggerResult
from app.scopes import SyncScope

from .factories import ARTIST_ID, change_payload, make_admin, make_user

LIST_ALERTS_PATH = "app.routers.alerts.list_alerts"
BOOKING_HANDLER_PATH = "app.routers.events.handle_booking_change"


def _headers(user_id: str = ARTIST_ID, scopes: str = "alerts:read") -> dict:
    return {"X-User-Id": user_id, "X-Username": "artist", "X-User-Scopes": scopes}


class TestGetCurrentUser:
    def test_valid_headers_authenticate(self, anon_app):
        with patch(LIST_ALERTS_PATH, new=AsyncMock(return_value=[])) as mock:
            with TestClient(anon_app) as c:
                resp = c.get("/alerts", headers=_headers())
        assert resp.status_code == 200
        mock.assert_awaited_once_with(ARTIST_ID)

    def test_path_like_user_id_returns_401(self, anon_app):
        with TestClient(anon_app) as c:
            resp = c.get("/alerts", headers=_headers(user_id="a/alerts/b"))
        assert resp.status_code == 401

    def test_missing_headers_returns_422(self, anon_app):
        with TestClient(anon_app) as c:
            resp = c.get("/alerts")
        assert resp.status_code == 422

    def test_scopes_and_username_are_parsed(self):
        app = FastAPI()
        captured = {}

        @app.get("/me")
        async def me(user: CurrentUser = Depends(get_current_user)):
            captured["user"] = user
            return {}

        with TestClient(app) as c:
            c.get(
                "/me",
                headers={
                    "X-User-Id": ARTIST_ID,
                    "X-Username": "lil%20artist",
                    "X-User-Scopes": "alerts:read alerts:write",
                },
            )
        user = captured["user"]
        assert user.username == "lil artist"
        assert user.scopes == ["alerts:read", "alerts:write"]

    def test_empty_scopes_string_parsed_as_empty_list(self):
        app = FastAPI()
        captured = {}

        @app.get("/me")
        async def me(user: CurrentUser = Depends(get_current_user)):
            captured["user"] = user
            return {}

        with TestClient(app) as c:
            c.get("/me", headers=_headers(scopes=""))
        assert captured["user"].scopes == []


class TestRequireScopes:
    def test_missing_scope_returns_403(self, anon_app):
        with TestClient(anon_app) as c:
            resp = c.get("/alerts", headers=_headers(scopes="alerts:write"))
        assert resp.status_code == 403
        assert "alerts:read" in resp.json()["detail"]


class TestCanRunMaintenance:
    def _app_for(self, current_user) -> FastAPI:
        app = FastAPI()

        @app.post("/job")
        async def job(user: CurrentUser = Depends(can_run_maintenance)):
            return {"id": user.id}

        async def _user():
            return current_user

        app.dependency_overrides[get_current_user] = _user
        return app

    def test_admin_passes(self):
        with TestClient(self._app_for(make_admin())) as c:
            assert c.post("/job").status_code == 200

    def test_maintenance_scope_passes(self):
        user = make_user(scopes=[SyncScope.ADMIN_MAINTENANCE])
        with TestClient(self._app_for(user)) as c:
            assert c.post("/job").status_code == 200

    def test_regular_user_gets_403(self):
        with TestClient(self._app_for(make_user())) as c:
            assert c.post("/job").status_code == 403

    def test_is_admin_flag(self):
        assert make_admin().is_admin is True
        assert make_user().is_admin is False


class TestVerifyTriggerToken:
    def test_no_configured_token_accepts_any_call(self, anon_app, monkeypatch):
        monkeypatch.setattr("app.settings.TRIGGER_TOKEN", "")
        with patch(BOOKING_HANDLER_PATH, new=AsyncMock()) as mock:
            mock.return_value = TriggerResult(
                trigger="booking_sync", document="bookings/b"
            )
            with TestClient(anon_app) as c:
                resp = c.post("/triggers/bookings/b", json=change_payload())
        assert resp.status_code == 200

    def test_wrong_token_returns_401(self, anon_app, monkeypatch):
        monkeypatch.setattr("app.settings.TRIGGER_TOKEN", "s3cret")
        with patch(BOOKING_HANDLER_PATH, new=AsyncMock()) as mock:
            with TestClient(anon_app) as c:
                resp = c.post(
                    "/triggers/bookings/b",
                    json=change_payload(),
                    headers={"X-Trigger-Token": "guess"},
                )
        assert resp.status_code == 401
        mock.assert_not_awaited()

    def test_missing_token_returns_401(self, anon_app, monkeypatch):
        monkeypatch.setattr("app.settings.TRIGGER_TOKEN", "s3cret")
        with TestClient(anon_app) as c:
            resp = c.post("/triggers/bookings/b", json=change_payload())
        assert resp.status_code == 401

    def test_matching_token_passes(self, anon_app, monkeypatch):
        monkeypatch.setattr("app.settings.TRIGGER_TOKEN", "s3cret")
        with patch(BOOKING_HANDLER_PATH, new=AsyncMock()) as mock:
            mock.return_value = TriggerResult(
                trigger="booking_sync", document="bookings/b"
            )
            with TestClient(anon_app) as c:
                resp = c.post(
                    "/triggers/bookings/b",
                    json=change_payload(),
                    headers={"X-Trigger-Token": "s3cret"},
                )
        assert resp.status_code == 200
