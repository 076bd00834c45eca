"""Prompt resolution for generation calls.

resolve() always tries, in order:
1. the cache
2. the caller's active override (when owner_id is given)
3. the active system default row
4. the caller-supplied fallback, else the registry defaults

Whatever tier answers is cached, including the fallback, so a store outage
costs at most one failed round-trip per TTL window.

Usage:
    from aura_prompts.lib.prompts.service import get_resolver

    prompt = await get_resolver().resolve("sales_outreach", owner_id=user_id)
    prompt.prompt_template  # never empty for a registry key
"""

import logging
from typing import Optional

from aura_prompts.lib.exceptions import PromptNotFoundError, StoreUnavailableError

from .cache import PromptCache
from .registry import PromptRegistry
from .store import PromptStore
from .types import (
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    PromptFallback,
    ResolutionSource,
    ResolvedPrompt,
)

logger = logging.getLogger(__name__)


class PromptResolver:
    """Resolves the effective prompt for a (prompt_key, owner) pair."""

    def __init__(self, store: PromptStore, cache: PromptCache, registry: PromptRegistry):
        self.store = store
        self.cache = cache
        self.registry = registry

    async def resolve(
        self,
        prompt_key: str,
        owner_id: Optional[str] = None,
        fallback: Optional[PromptFallback] = None,
    ) -> ResolvedPrompt:
        """Return the effective prompt; store failures degrade to the fallback tier.

        Raises:
            PromptNotFoundError: If nothing is stored for the key, it is not in
                the registry and no fallback was given
        """
        owner_id = owner_id or None

        cached = self.cache.get(owner_id, prompt_key)
        if cached is not None:
            return cached

        resolved = await self._from_store(prompt_key, owner_id)
        if resolved is None:
            resolved = self._from_fallback(prompt_key, fallback)

        self.cache.set(owner_id, prompt_key, resolved)
        return resolved

    def invalidate(self, owner_id: Optional[str] = None, prompt_key: Optional[str] = None) -> int:
        return self.cache.invalidate(owner_id, prompt_key)

    async def _from_store(self, prompt_key: str, owner_id: Optional[str]) -> Optional[ResolvedPrompt]:
        try:
            if owner_id:
                override = await self.store.get_active_override(owner_id, prompt_key)
                if override is not None:
                    return ResolvedPrompt.from_config(override, is_custom=True)

            default = await self.store.get_system_default(prompt_key)
            if default is not None:
                return ResolvedPrompt.from_config(default, is_custom=False)
        except StoreUnavailableError as e:
            logger.warning(
                'Prompt store unavailable resolving %s for %s, using fallback: %s',
                prompt_key, owner_id or "system", e,
                extra={"prompt_key": prompt_key, "owner_id": owner_id, "error_code": e.error_code},
            )
        except Exception as e:
            logger.error(
                'Unexpected prompt store error resolving %s for %s, using fallback: %s',
                prompt_key, owner_id or "system", e, exc_info=True,
                extra={"prompt_key": prompt_key, "owner_id": owner_id},
            )
        return None

    def _from_fallback(self, prompt_key: str, fallback: Optional[PromptFallback]) -> ResolvedPrompt:
        if fallback is not None:
            return ResolvedPrompt(
                system_instruction=fallback.system_instruction,
                prompt_template=fallback.prompt_template,
                temperature=DEFAULT_TEMPERATURE if fallback.temperature is None else fallback.temperature,
                top_p=DEFAULT_TOP_P if fallback.top_p is None else fallback.top_p,
                is_custom=False,
                prompt_version=0,
                source=ResolutionSource.FALLBACK,
            )

        entry = self.registry.get(prompt_key)
        if entry is None:
            raise PromptNotFoundError(
                f"No stored config, registry entry or fallback for prompt '{prompt_key}'"
            )

        logger.debug('Resolved %s from registry defaults', prompt_key)
        return ResolvedPrompt(
            system_instruction=entry.default_system_instruction,
            prompt_template=entry.default_prompt_template,
            temperature=entry.default_temperature,
            top_p=entry.default_top_p,
            is_custom=False,
            prompt_version=0,
            source=ResolutionSource.FALLBACK,
        )
