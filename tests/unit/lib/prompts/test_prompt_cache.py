"""Unit tests for the resolution cache."""

import pytest

from aura_prompts.lib.prompts.cache import PromptCache, cache_key
from aura_prompts.lib.prompts.types import ResolvedPrompt

TTL_SECONDS = 300.0


def _resolved(template: str = "t", version: int = 1) -> ResolvedPrompt:
    return ResolvedPrompt(
        system_instruction="s",
        prompt_template=template,
        temperature=0.7,
        top_p=0.9,
        is_custom=True,
        prompt_version=version,
    )


def test_cache_key_format():
    assert cache_key("u1", "content_blog") == "u1_content_blog"
    assert cache_key(None, "content_blog") == "system_content_blog"


def test_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        PromptCache(ttl_seconds=0)


def test_ttl_boundary(cache, clock):
    prompt = _resolved()
    cache.set("u1", "sales_outreach", prompt)

    clock.advance(TTL_SECONDS - 0.001)
    assert cache.get("u1", "sales_outreach") is prompt

    clock.advance(0.002)
    assert cache.get("u1", "sales_outreach") is None
    # Lazily dropped on the expired read
    assert len(cache) == 0


def test_set_refreshes_ttl(cache, clock):
    cache.set("u1", "k", _resolved(version=1))
    clock.advance(TTL_SECONDS - 1)
    cache.set("u1", "k", _resolved(version=2))
    clock.advance(TTL_SECONDS - 1)

    assert cache.get("u1", "k").prompt_version == 2


def test_system_and_owner_entries_are_separate(cache):
    cache.set(None, "k", _resolved("system"))
    cache.set("u1", "k", _resolved("custom"))

    assert cache.get(None, "k").prompt_template == "system"
    assert cache.get("u1", "k").prompt_template == "custom"
    assert sorted(cache.keys()) == ["system_k", "u1_k"]


class TestInvalidate:

    @pytest.fixture
    def filled(self, cache):
        cache.set("u1", "content_blog", _resolved())
        cache.set("u1", "sales_outreach", _resolved())
        cache.set("u1_content", "blog", _resolved())
        cache.set("u2", "content_blog", _resolved())
        cache.set(None, "content_blog", _resolved())
        return cache

    def test_exact_key(self, filled):
        assert filled.invalidate("u1", "content_blog") == 1
        assert filled.get("u1", "content_blog") is None
        assert filled.get("u1", "sales_outreach") is not None
        assert filled.get("u1_content", "blog") is not None

    def test_owner_only(self, filled):
        assert filled.invalidate("u1") == 2
        assert filled.get("u1_content", "blog") is not None
        assert filled.get("u2", "content_blog") is not None

    def test_key_only_hits_every_owner(self, filled):
        assert filled.invalidate(prompt_key="content_blog") == 3
        assert filled.get("u1_content", "blog") is not None
        assert filled.get("u1", "sales_outreach") is not None

    def test_everything(self, filled):
        assert filled.invalidate() == 5
        assert len(filled) == 0

    def test_missing_entry_is_a_no_op(self, filled):
        assert filled.invalidate("nobody", "content_blog") == 0
        assert len(filled) == 5


def test_info_counts_hits_and_misses(cache):
    cache.set("u1", "k", _resolved())
    cache.get("u1", "k")
    cache.get("u1", "other")

    info = cache.info()
    assert info == {"entries": 1, "ttl_seconds": TTL_SECONDS, "hits": 1, "misses": 1}
