"""Backend API tests for the planmap FastAPI app."""

from __future__ import annotations

import csv
import io
from unittest.mock import MagicMock

import pytest
from planmap.advisor import UNAVAILABLE_REPLY
from planmap.errors import ACCESS_RESTRICTED


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    import planmap_web.app as web

    monkeypatch.setenv("PLANMAP_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("PLANMAP_DB", raising=False)
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PLANMAP_LLM_PROVIDER"):
        monkeypatch.delenv(var, raising=False)
    # Fresh singletons per test
    monkeypatch.setattr(web, "_store", None)
    monkeypatch.setattr(web, "_session", None)
    monkeypatch.setattr(web, "_advisor", None)
    monkeypatch.setattr(web, "_tokens", {})


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from planmap_web.app import app

    return TestClient(app)


@pytest.fixture
def admin_headers(client) -> dict:
    resp = client.post("/api/login", json={"username": "SuperAdmin", "passcode": "SUPER"})
    assert resp.status_code == 200
    return {"X-Planmap-Token": resp.json()["token"]}


class TestPublic:
    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "ok"
        assert data["bundles"] == 7

    def test_bundles(self, client):
        bundles = client.get("/api/bundles").json()["bundles"]
        assert [b["id"] for b in bundles][:3] == ["m365-bb", "m365-bs", "m365-bp"]

    def test_capabilities_filtered(self, client):
        caps = client.get("/api/capabilities", params={"category": "Compliance"}).json()["capabilities"]
        assert {c["category"] for c in caps} == {"Compliance"}
        caps = client.get("/api/capabilities", params={"search": "PBX"}).json()["capabilities"]
        assert [c["id"] for c in caps] == ["teams-phone"]

    def test_capability_detail(self, client):
        data = client.get("/api/capabilities/exchange-online").json()
        assert data["entitlements"]["m365-f3"]["tier_name"] == "Kiosk"

    def test_capability_missing(self, client):
        assert client.get("/api/capabilities/ghost").status_code == 404

    def test_aggregate(self, client):
        resp = client.post("/api/aggregate", json={"bundle_ids": ["m365-e3", "m365-e5"], "frequency": "annual"})
        totals = resp.json()["totals"]
        assert totals["total_usd"] == 1116.0
        assert totals["frequency"] == "annual"

    def test_aggregate_empty(self, client):
        totals = client.post("/api/aggregate", json={"bundle_ids": []}).json()["totals"]
        assert totals == {"total_usd": 0.0, "total_inr": 0.0, "unique_capability_count": 0, "frequency": "monthly"}

    def test_aggregate_unknown_bundle(self, client):
        assert client.post("/api/aggregate", json={"bundle_ids": ["nope"]}).status_code == 404

    def test_compare(self, client):
        data = client.post("/api/compare", json={"bundle_ids": ["m365-bb", "m365-e5-sec"]}).json()
        assert data["categories"] == ["Productivity", "Security", "Voice & Collaboration"]
        rows = {r["capability"]["id"]: r["labels"] for r in data["rows"]}
        assert rows["entra-id"] == ["No", "Plan 2"]
        assert len(rows) == 8

    def test_selection_toggle(self, client):
        resp = client.post("/api/selection/toggle", json={"bundle_ids": ["m365-e3"], "bundle_id": "m365-e5"})
        assert resp.json()["bundle_ids"] == ["m365-e3", "m365-e5"]
        resp = client.post("/api/selection/toggle", json={"bundle_ids": ["m365-e3", "m365-e5"], "bundle_id": "m365-e3"})
        assert resp.json()["bundle_ids"] == ["m365-e5"]
        resp = client.post("/api/selection/toggle", json={"bundle_ids": ["m365-e5"], "bundle_id": "m365-e5"})
        assert resp.json()["bundle_ids"] == ["m365-e5"]

    def test_selection_toggle_unknown_bundle(self, client):
        resp = client.post("/api/selection/toggle", json={"bundle_ids": ["m365-e3"], "bundle_id": "ghost"})
        assert resp.status_code == 404

    def test_export_csv(self, client):
        data = client.post("/api/export", json={"bundle_ids": ["m365-bb"], "format": "csv"}).json()
        rows = list(csv.reader(io.StringIO(data["content"])))
        assert rows[0][-1] == "Business Basic ($6.00/₹145)"
        assert data["filename"].startswith("m365_comparison_")

    def test_export_bad_format(self, client):
        assert client.post("/api/export", json={"bundle_ids": [], "format": "pdf"}).status_code == 400

    def test_download(self, client):
        resp = client.post("/api/download", json={"bundle_ids": ["m365-bb"], "format": "csv"})
        assert resp.status_code == 200
        assert "attachment; filename=m365_comparison_" in resp.headers["content-disposition"]


class TestChat:
    def test_chat_without_provider_never_errors(self, client):
        resp = client.post("/api/chat", json={"message": "Which plan?"})
        assert resp.status_code == 200
        assert resp.json()["reply"] == UNAVAILABLE_REPLY

    def test_chat_with_mocked_llm(self, client, monkeypatch):
        import planmap_web.app as web
        from planmap.advisor import LicensingAdvisor

        llm = MagicMock()
        llm.generate.return_value = ("E3 covers that.", {})
        monkeypatch.setattr(web, "_advisor", LicensingAdvisor(llm=llm))
        resp = client.post("/api/chat", json={"message": "Do I need E5?"})
        assert resp.json()["reply"] == "E3 covers that."
        prompt = llm.generate.call_args.args[0][0]["content"]
        assert "Business Basic at $6.00" in prompt

    def test_chat_rejects_empty(self, client):
        assert client.post("/api/chat", json={"message": ""}).status_code == 422


class TestAdmin:
    def test_requires_admin(self, client):
        resp = client.delete("/api/admin/bundles/m365-e3")
        assert resp.status_code == 403
        assert resp.json()["detail"] == ACCESS_RESTRICTED
        assert client.get("/api/health").json()["bundles"] == 7

    def test_unknown_user_header(self, client):
        resp = client.post("/api/admin/reset", headers={"X-Planmap-Token": "nobody"})
        assert resp.status_code == 403

    def test_login_errors(self, client):
        assert client.post("/api/login", json={"username": "x", "passcode": "bad"}).status_code == 401
        resp = client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"})
        assert resp.status_code == 401
        assert "Registration successful" in resp.json()["detail"]

    def test_pending_admin_is_refused(self, client):
        client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"})
        import planmap_web.app as web

        alex = web.get_session().load_registry().find("Alex")
        resp = client.post("/api/admin/reset", headers={"X-Planmap-Token": alex.id})
        assert resp.status_code == 403

    def test_account_id_is_not_a_token(self, client):
        resp = client.delete("/api/admin/bundles/m365-e5", headers={"X-Planmap-Token": "sa-1"})
        assert resp.status_code == 403
        resp = client.delete("/api/admin/bundles/m365-e5", headers={"X-Planmap-User": "sa-1"})
        assert resp.status_code == 403
        assert len(client.get("/api/bundles").json()["bundles"]) == 7

    def test_login_issues_distinct_tokens(self, client):
        first = client.post("/api/login", json={"username": "SuperAdmin", "passcode": "SUPER"}).json()
        second = client.post("/api/login", json={"username": "SuperAdmin", "passcode": "SUPER"}).json()
        assert first["token"] != second["token"]
        assert first["token"] != first["user"]["id"]

    def test_logout_revokes_token(self, client, admin_headers):
        assert client.post("/api/admin/reset", headers=admin_headers).status_code == 200
        assert client.post("/api/logout", headers=admin_headers).json() == {"logged_out": True}
        assert client.post("/api/admin/reset", headers=admin_headers).status_code == 403
        assert client.post("/api/logout", headers=admin_headers).json() == {"logged_out": False}

    def test_deleted_account_token_is_refused(self, client, admin_headers):
        client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"})
        users = client.get("/api/admin/users", headers=admin_headers).json()["users"]
        alex = next(u for u in users if u["username"] == "Alex")
        client.post(f"/api/admin/users/{alex['id']}/approve", headers=admin_headers)
        token = client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"}).json()["token"]
        assert client.get("/api/admin/users", headers={"X-Planmap-Token": token}).status_code == 200

        client.delete(f"/api/admin/users/{alex['id']}", headers=admin_headers)
        assert client.get("/api/admin/users", headers={"X-Planmap-Token": token}).status_code == 403

    def test_capability_crud(self, client, admin_headers):
        body = {"id": "loop", "name": "Loop", "category": "Productivity"}
        assert client.post("/api/admin/capabilities", json=body, headers=admin_headers).status_code == 201
        assert client.post("/api/admin/capabilities", json=body, headers=admin_headers).status_code == 409

        body["name"] = "Microsoft Loop"
        resp = client.put("/api/admin/capabilities/loop", json=body, headers=admin_headers)
        assert resp.json()["capability"]["name"] == "Microsoft Loop"

        assert client.delete("/api/admin/capabilities/loop", headers=admin_headers).status_code == 200
        assert client.delete("/api/admin/capabilities/loop", headers=admin_headers).status_code == 404

    def test_delete_bundle_cascades(self, client, admin_headers):
        assert client.delete("/api/admin/bundles/m365-e5-sec", headers=admin_headers).status_code == 200
        cap = client.get("/api/capabilities/entra-id").json()["capability"]
        for tier in cap["tier_structure"]["tiers"]:
            assert "m365-e5-sec" not in tier["included_in_bundle_ids"]

    def test_bundle_update_and_reset(self, client, admin_headers):
        bundle = client.get("/api/bundles").json()["bundles"][0]
        bundle["monthly_price_usd"] = "$7.00"
        resp = client.put(f"/api/admin/bundles/{bundle['id']}", json=bundle, headers=admin_headers)
        assert resp.json()["bundle"]["monthly_price_usd"] == "$7.00"

        client.post("/api/admin/reset", headers=admin_headers)
        assert client.get("/api/bundles").json()["bundles"][0]["monthly_price_usd"] == "$6.00"

    def test_invalid_bundle_rejected(self, client, admin_headers):
        resp = client.post("/api/admin/bundles", json={"id": "x", "type": "Consumer"}, headers=admin_headers)
        assert resp.status_code == 422

    def test_user_management(self, client, admin_headers):
        client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"})
        users = client.get("/api/admin/users", headers=admin_headers).json()["users"]
        alex = next(u for u in users if u["username"] == "Alex")

        resp = client.post(f"/api/admin/users/{alex['id']}/approve", headers=admin_headers)
        assert resp.json()["user"]["is_approved"] is True
        assert client.post("/api/login", json={"username": "Alex", "passcode": "ADMIN"}).status_code == 200

        assert client.delete(f"/api/admin/users/{alex['id']}", headers=admin_headers).status_code == 200
        assert client.delete("/api/admin/users/missing", headers=admin_headers).status_code == 404
