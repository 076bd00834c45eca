"""Built-in prompt catalog.

The registry is the static list of every prompt the dashboard knows about:
its category, placeholders, where it is used, and the hard-coded defaults that
act as the last resolution tier. Definitions live in registry.yaml and are
parsed once per process.

Usage:
    from aura_prompts.lib.prompts.registry import get_registry

    registry = get_registry()
    entry = registry.lookup("sales_outreach")
    grouped = registry.by_category()
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from aura_prompts.config import get_prompt_registry_path
from aura_prompts.lib.exceptions import ConfigurationError, PromptNotFoundError

from .types import SyntheticFallback, is_unit_interval

logger = logging.getLogger(__name__)

SYNTHETIC_ID_PREFIX = "registry-"


class PromptCategory(str, Enum):
    """Fixed topic tags for prompts."""

    SALES_OUTREACH = "sales_outreach"
    ANALYTICS = "analytics"
    EMAIL = "email"
    CONTENT = "content"
    LEAD_RESEARCH = "lead_research"
    BLOG = "blog"
    SOCIAL = "social"
    AUTOMATION = "automation"
    STRATEGY = "strategy"


@dataclass(frozen=True)
class PromptUsageLocation:
    """A dashboard page/feature that runs a prompt."""

    page: str
    route: str
    feature: str


@dataclass(frozen=True)
class RegistryEntry:
    """Static definition of one prompt."""

    prompt_key: str
    category: PromptCategory
    display_name: str
    description: str
    placeholders: Tuple[str, ...]
    used_in: Tuple[PromptUsageLocation, ...]
    default_system_instruction: str
    default_prompt_template: str
    default_temperature: float
    default_top_p: float


_REQUIRED_FIELDS = (
    "prompt_key",
    "category",
    "display_name",
    "default_system_instruction",
    "default_prompt_template",
    "default_temperature",
    "default_top_p",
)


def _parse_entry(raw: Mapping[str, Any], source: str) -> RegistryEntry:
    """Build a RegistryEntry from one YAML mapping, validating as we go."""
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{source}: prompt entry must be a mapping, got {type(raw).__name__}")

    missing = [name for name in _REQUIRED_FIELDS if raw.get(name) is None]
    if missing:
        key = raw.get("prompt_key", "<unknown>")
        raise ConfigurationError(f"{source}: prompt '{key}' is missing {', '.join(missing)}")

    key = str(raw["prompt_key"])

    try:
        category = PromptCategory(raw["category"])
    except ValueError as exc:
        raise ConfigurationError(
            f"{source}: prompt '{key}' has unknown category '{raw['category']}'"
        ) from exc

    for field in ("default_temperature", "default_top_p"):
        if not is_unit_interval(raw[field]):
            raise ConfigurationError(
                f"{source}: prompt '{key}' {field} must be within [0, 1], got {raw[field]!r}"
            )

    used_in = tuple(
        PromptUsageLocation(
            page=str(item.get("page", "")),
            route=str(item.get("route", "")),
            feature=str(item.get("feature", "")),
        )
        for item in raw.get("used_in") or []
    )

    return RegistryEntry(
        prompt_key=key,
        category=category,
        display_name=str(raw["display_name"]),
        description=str(raw.get("description") or ""),
        placeholders=tuple(str(p) for p in raw.get("placeholders") or []),
        used_in=used_in,
        default_system_instruction=str(raw["default_system_instruction"]),
        default_prompt_template=str(raw["default_prompt_template"]),
        default_temperature=float(raw["default_temperature"]),
        default_top_p=float(raw["default_top_p"]),
    )


class PromptRegistry:
    """Immutable, ordered catalog of RegistryEntry objects keyed by prompt_key."""

    def __init__(self, entries: Iterable[RegistryEntry]):
        by_key: Dict[str, RegistryEntry] = {}
        for entry in entries:
            if entry.prompt_key in by_key:
                raise ConfigurationError(f"Duplicate prompt_key '{entry.prompt_key}' in registry")
            by_key[entry.prompt_key] = entry
        self._entries = by_key

    @classmethod
    def from_yaml(cls, path: Path) -> "PromptRegistry":
        """Load and validate a registry YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Prompt registry not found at {path}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in prompt registry {path}: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("prompts"), list):
            raise ConfigurationError(f"{path}: expected a top-level 'prompts' list")

        registry = cls(_parse_entry(raw, str(path)) for raw in data["prompts"])
        logger.info('Loaded %s prompts from %s', len(registry), path)
        return registry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, prompt_key: object) -> bool:
        return prompt_key in self._entries

    def get(self, prompt_key: str) -> Optional[RegistryEntry]:
        return self._entries.get(prompt_key)

    def lookup(self, prompt_key: str) -> RegistryEntry:
        """Return the entry for prompt_key.

        Raises:
            PromptNotFoundError: If the key is not in the catalog
        """
        entry = self._entries.get(prompt_key)
        if entry is None:
            raise PromptNotFoundError(f"Unknown prompt key '{prompt_key}'")
        return entry

    def keys(self) -> List[str]:
        return list(self._entries)

    def entries(self) -> List[RegistryEntry]:
        return list(self._entries.values())

    def by_category(self) -> Dict[PromptCategory, List[RegistryEntry]]:
        """Group entries by category, keeping catalog order within each group."""
        grouped: Dict[PromptCategory, List[RegistryEntry]] = {}
        for entry in self._entries.values():
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def build_fallback(self, prompt_key: str) -> SyntheticFallback:
        """Editor config for a prompt with no stored row (version 0, system-owned)."""
        entry = self.lookup(prompt_key)
        return SyntheticFallback(
            id=f"{SYNTHETIC_ID_PREFIX}{prompt_key}",
            prompt_key=prompt_key,
            category=entry.category.value,
            display_name=entry.display_name,
            description=entry.description,
            system_instruction=entry.default_system_instruction,
            prompt_template=entry.default_prompt_template,
            temperature=entry.default_temperature,
            top_p=entry.default_top_p,
        )


_registry: Optional[PromptRegistry] = None
_lock = threading.Lock()


def get_registry() -> PromptRegistry:
    """Return the process-wide registry, loading it on first use."""
    global _registry
    if _registry is None:
        with _lock:
            if _registry is None:
                _registry = PromptRegistry.from_yaml(get_prompt_registry_path())
    return _registry
