"""Prompt resolution and versioning.

This module provides:
- The built-in prompt registry (registry.yaml)
- A TTL cache of resolved prompts
- The resolver used by every generation call
- The version manager used by the prompt editor

Usage:
    from aura_prompts.lib.prompts import get_resolver, get_version_manager

    prompt = await get_resolver().resolve("content_blog", owner_id="u1")
"""

from .cache import PromptCache, cache_key
from .commands import CommandStatus, EditCommand, OptimisticEditor
from .registry import PromptCategory, PromptRegistry, RegistryEntry, get_registry
from .rendering import PromptTestResult, find_placeholders, render_template
from .resolver import PromptResolver
from .seeding import seed_system_defaults
from .service import get_prompt_cache, get_prompt_store, get_resolver, get_version_manager
from .store import PromptStore, PromptValues, SqlPromptStore
from .types import (
    EditorView,
    PromptEdit,
    PromptFallback,
    ResolutionSource,
    ResolvedPrompt,
    SyntheticFallback,
)
from .versioning import NO_OVERRIDE_VERSION, PromptVersionManager

__all__ = [
    "PromptCache",
    "cache_key",
    "CommandStatus",
    "EditCommand",
    "OptimisticEditor",
    "PromptCategory",
    "PromptRegistry",
    "RegistryEntry",
    "get_registry",
    "PromptTestResult",
    "find_placeholders",
    "render_template",
    "PromptResolver",
    "seed_system_defaults",
    "get_prompt_cache",
    "get_prompt_store",
    "get_resolver",
    "get_version_manager",
    "PromptStore",
    "PromptValues",
    "SqlPromptStore",
    "EditorView",
    "PromptEdit",
    "PromptFallback",
    "ResolutionSource",
    "ResolvedPrompt",
    "SyntheticFallback",
    "NO_OVERRIDE_VERSION",
    "PromptVersionManager",
]
