"""Unit tests for seeding system defaults from the registry."""

from dataclasses import replace

import pytest

from aura_prompts.lib.prompts.registry import PromptRegistry
from aura_prompts.lib.prompts.seeding import seed_system_defaults
from aura_prompts.lib.prompts.types import ResolvedPrompt
from aura_prompts.models.sql.prompts import PromptConfig, PromptVersion


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def test_first_seed_creates_every_default(db, registry):
    counts = seed_system_defaults(db, registry)

    assert counts == {"created": len(registry), "updated": 0, "unchanged": 0}
    rows = db.query(PromptConfig).filter(PromptConfig.owner_id.is_(None)).all()
    assert len(rows) == len(registry)
    assert all(r.is_default and r.is_active and r.version == 1 for r in rows)


def test_reseed_is_idempotent(db, registry):
    seed_system_defaults(db, registry)
    counts = seed_system_defaults(db, registry)

    assert counts == {"created": 0, "updated": 0, "unchanged": len(registry)}
    assert db.query(PromptVersion).count() == 0


def test_changed_registry_bumps_version_with_snapshot(db, registry):
    seed_system_defaults(db, registry)

    entries = [
        replace(e, default_prompt_template="New template {{topic}}") if e.prompt_key == "content_blog" else e
        for e in registry.entries()
    ]
    counts = seed_system_defaults(db, PromptRegistry(entries))

    assert counts["updated"] == 1
    row = db.query(PromptConfig).filter(
        PromptConfig.owner_id.is_(None), PromptConfig.prompt_key == "content_blog"
    ).one()
    assert row.version == 2
    assert row.prompt_template == "New template {{topic}}"

    snapshot = db.query(PromptVersion).filter(PromptVersion.config_id == row.id).one()
    assert snapshot.version == 1
    assert snapshot.prompt_template == registry.lookup("content_blog").default_prompt_template


def test_seed_clears_cache(db, registry, cache):
    cache.set("u1", "content_blog", ResolvedPrompt("s", "t", 0.5, 0.5, True, 1))

    seed_system_defaults(db, registry, cache=cache)

    assert len(cache) == 0


def test_requires_session(registry):
    with pytest.raises(ValueError):
        seed_system_defaults(None, registry)
