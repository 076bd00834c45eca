"""Tests for the prompt API and the admin prompt API."""

import uuid

import pytest
from fastapi.testclient import TestClient

from aura_prompts.lib.prompts.registry import get_registry
from aura_prompts.lib.prompts.service import (
    get_prompt_cache,
    get_prompt_store,
    get_resolver,
    get_version_manager,
)
from aura_prompts.models.sql.database import get_db

USER = {"X-User-Id": "u1"}
ADMIN = {"X-User-Id": "admin", "X-User-Email": "admin@example.com"}


@pytest.fixture
def client(monkeypatch, store, sql_store, cache, resolver, manager, session_factory):
    monkeypatch.setenv("ADMIN_EMAILS", "admin@example.com")

    from aura_prompts.main import app

    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides.clear()
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_version_manager] = lambda: manager
    app.dependency_overrides[get_prompt_cache] = lambda: cache
    app.dependency_overrides[get_prompt_store] = lambda: sql_store
    app.dependency_overrides[get_registry] = lambda: manager.registry
    app.dependency_overrides[get_db] = _db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _save(client, template="Mine {{topic}}", **extra):
    body = {
        "system_instruction": "sys",
        "prompt_template": template,
        "temperature": 0.4,
        "top_p": 0.8,
        **extra,
    }
    return client.put("/api/prompts/content_blog", json=body, headers=USER)


class TestUserEndpoints:

    def test_requires_user_header(self, client):
        response = client.get("/api/prompts/content_blog/resolve")
        assert response.status_code == 401

    def test_resolve_registry_default(self, client):
        response = client.get("/api/prompts/sales_outreach/resolve", headers=USER)

        assert response.status_code == 200
        data = response.json()
        assert data["is_custom"] is False
        assert data["prompt_version"] == 0
        assert data["source"] == "fallback"
        assert data["prompt_template"]

    def test_resolve_unknown_key_is_404(self, client):
        response = client.get("/api/prompts/not_in_registry/resolve", headers=USER)

        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "PROMPT_NOT_FOUND_001"

    def test_editor_shows_synthetic_default(self, client):
        response = client.get("/api/prompts/content_blog", headers=USER)

        data = response.json()
        assert response.status_code == 200
        assert data["is_custom"] is False
        assert data["config"]["is_synthetic"] is True
        assert data["config"]["version"] == 0
        assert data["config"]["id"] == "registry-content_blog"
        assert data["expected_version"] == 0

    def test_save_then_resolve(self, client):
        response = _save(client)
        assert response.status_code == 200
        assert response.json()["version"] == 1

        resolved = client.get("/api/prompts/content_blog/resolve", headers=USER).json()
        assert resolved["is_custom"] is True
        assert resolved["prompt_version"] == 1

    def test_invalid_temperature_is_400_with_field(self, client):
        response = _save(client, temperature=1.5)

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "temperature"

    def test_stale_expected_version_is_409(self, client):
        _save(client, template="one")
        _save(client, template="two", expected_version=1)

        response = _save(client, template="late", expected_version=1)
        assert response.status_code == 409

    def test_save_against_unseen_override_is_409(self, client):
        editor = client.get("/api/prompts/content_blog", headers=USER).json()
        _save(client, template="theirs")

        response = _save(client, template="mine", expected_version=editor["expected_version"])

        assert response.status_code == 409
        current = client.get("/api/prompts/content_blog", headers=USER).json()
        assert current["config"]["prompt_template"] == "theirs"
        assert current["expected_version"] == 1

    def test_history_and_restore(self, client):
        _save(client, template="one")
        _save(client, template="two")

        history = client.get("/api/prompts/content_blog/history", headers=USER).json()
        assert history["current_version"] == 2
        assert [v["version"] for v in history["versions"]] == [1]

        snapshot_id = history["versions"][0]["id"]
        response = client.post(f"/api/prompts/content_blog/restore/{snapshot_id}", headers=USER)

        assert response.status_code == 200
        assert response.json()["version"] == 3
        assert response.json()["prompt_template"] == "one"

    def test_restore_unknown_snapshot_is_404(self, client):
        _save(client)
        response = client.post(f"/api/prompts/content_blog/restore/{uuid.uuid4()}", headers=USER)
        assert response.status_code == 404

    def test_reset_is_idempotent(self, client):
        _save(client)

        first = client.delete("/api/prompts/content_blog", headers=USER).json()
        second = client.delete("/api/prompts/content_blog", headers=USER).json()

        assert first["reset"] is True
        assert second["reset"] is False
        history = client.get("/api/prompts/content_blog/history", headers=USER).json()
        assert history["versions"] == []

    def test_catalog_marks_custom_prompts(self, client, registry):
        _save(client)

        data = client.get("/api/prompts/catalog", headers=USER).json()

        assert data["total"] == len(registry)
        assert data["custom_count"] == 1
        prompts = {p["prompt_key"]: p for c in data["categories"] for p in c["prompts"]}
        assert prompts["content_blog"]["is_custom"] is True
        assert prompts["content_blog"]["version"] == 1
        assert prompts["sales_outreach"]["is_custom"] is False

    def test_store_outage_is_503_for_writes(self, client, store):
        store.down = True
        response = _save(client)
        assert response.status_code == 503


class TestAdminEndpoints:

    def test_non_admin_forbidden(self, client):
        response = client.get("/api/admin/prompts/cache/status", headers=USER)
        assert response.status_code == 403

    def test_seed_and_list(self, client, registry):
        response = client.post("/api/admin/prompts/seed", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["created"] == len(registry)

        listing = client.get(
            "/api/admin/prompts", params={"owner_id": "system", "page_size": 5}, headers=ADMIN
        ).json()
        assert listing["total"] == len(registry)
        assert len(listing["configs"]) == 5

    def test_cache_status_and_invalidate(self, client):
        client.get("/api/prompts/content_blog/resolve", headers=USER)
        client.get("/api/prompts/sales_outreach/resolve", headers=USER)

        status = client.get("/api/admin/prompts/cache/status", headers=ADMIN).json()
        assert status["entries"] == 2
        assert "u1_content_blog" in status["keys"]

        response = client.post(
            "/api/admin/prompts/cache/invalidate", params={"prompt_key": "content_blog"}, headers=ADMIN
        )
        assert response.json()["removed"] == 1

        response = client.post("/api/admin/prompts/cache/invalidate", headers=ADMIN)
        assert response.json()["removed"] == 1
