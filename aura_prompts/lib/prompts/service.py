"""Process-wide prompt engine components.

The resolver and version manager share one cache so an edit made in this
process is visible to the next resolution immediately.

Usage:
    from aura_prompts.lib.prompts.service import get_resolver, get_version_manager

    prompt = await get_resolver().resolve("sales_outreach", owner_id=user_id)
    await get_version_manager().reset_to_default("sales_outreach", user_id)
"""

import threading
from typing import Optional

from aura_prompts.config import get_prompt_cache_ttl_seconds

from .cache import PromptCache
from .registry import get_registry
from .resolver import PromptResolver
from .store import SqlPromptStore
from .versioning import PromptVersionManager

_lock = threading.Lock()
_cache: Optional[PromptCache] = None
_store: Optional[SqlPromptStore] = None
_resolver: Optional[PromptResolver] = None
_version_manager: Optional[PromptVersionManager] = None


def get_prompt_cache() -> PromptCache:
    global _cache
    if _cache is None:
        with _lock:
            if _cache is None:
                _cache = PromptCache(ttl_seconds=get_prompt_cache_ttl_seconds())
    return _cache


def get_prompt_store() -> SqlPromptStore:
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = SqlPromptStore()
    return _store


def get_resolver() -> PromptResolver:
    global _resolver
    if _resolver is None:
        resolver = PromptResolver(get_prompt_store(), get_prompt_cache(), get_registry())
        with _lock:
            if _resolver is None:
                _resolver = resolver
    return _resolver


def get_version_manager() -> PromptVersionManager:
    global _version_manager
    if _version_manager is None:
        manager = PromptVersionManager(get_prompt_store(), get_prompt_cache(), get_registry())
        with _lock:
            if _version_manager is None:
                _version_manager = manager
    return _version_manager


def reset_services() -> None:
    """Forget every component (tests and config reloads)."""
    global _cache, _store, _resolver, _version_manager
    with _lock:
        _cache = None
        _store = None
        _resolver = None
        _version_manager = None
