"""Process-local TTL cache of resolved prompts.

Every generation call re-resolves its prompt, so the cache bounds store
traffic to one round-trip per TTL window per (user, prompt) pair. Entries
expire lazily: an expired entry is dropped when it is next read. There is no
cross-process invalidation; writers in this process call invalidate() right
after committing.

Usage:
    from aura_prompts.lib.prompts.cache import PromptCache

    cache = PromptCache(ttl_seconds=300)
    cache.set("u1", "sales_outreach", resolved)
    cache.get("u1", "sales_outreach")      # resolved until the TTL passes
    cache.invalidate("u1")                 # every entry for u1
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .types import ResolvedPrompt

logger = logging.getLogger(__name__)

SYSTEM_OWNER_KEY = "system"

Clock = Callable[[], float]


def cache_key(owner_id: Optional[str], prompt_key: str) -> str:
    """Display key for an owner (or the system when owner_id is None) and prompt key."""
    return f"{owner_id or SYSTEM_OWNER_KEY}_{prompt_key}"


@dataclass(frozen=True)
class CacheEntry:
    prompt: ResolvedPrompt
    expires_at: float


class PromptCache:
    """TTL cache keyed by (owner_id, prompt_key).

    Entries are stored under (owner, prompt_key) tuples rather than the joined
    string so owner and key invalidation never confuse 'u1_content' + 'blog'
    with 'u1' + 'content_blog'.

    Args:
        ttl_seconds: Lifetime of an entry
        clock: Returns the current time in seconds; injectable for tests
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Clock = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, owner_id: Optional[str], prompt_key: str) -> Optional[ResolvedPrompt]:
        """Return the cached prompt, or None when absent or expired."""
        key = (owner_id or SYSTEM_OWNER_KEY, prompt_key)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.prompt

    def set(self, owner_id: Optional[str], prompt_key: str, prompt: ResolvedPrompt) -> None:
        """Store a prompt with a fresh TTL."""
        key = (owner_id or SYSTEM_OWNER_KEY, prompt_key)
        entry = CacheEntry(prompt=prompt, expires_at=self._clock() + self.ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, owner_id: Optional[str] = None, prompt_key: Optional[str] = None) -> int:
        """Drop cached entries and return how many were removed.

        - owner_id and prompt_key: that single entry
        - owner_id only: every entry for that owner
        - prompt_key only: that key for every owner (system default changed)
        - neither: everything
        """
        owner_id = owner_id or None
        prompt_key = prompt_key or None
        with self._lock:
            if owner_id is None and prompt_key is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed: List[Tuple[str, str]] = [
                    key for key in self._entries
                    if (owner_id is None or key[0] == owner_id)
                    and (prompt_key is None or key[1] == prompt_key)
                ]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)

        logger.debug(
            'Invalidated %s prompt cache entries (owner=%s, key=%s)',
            removed, owner_id or "*", prompt_key or "*",
        )
        return removed

    def keys(self) -> List[str]:
        """Display keys of the current entries (expired ones included)."""
        with self._lock:
            return [cache_key(owner, prompt_key) for owner, prompt_key in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def info(self) -> dict:
        """Return cache status for health checks."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
            }
