"""Seed system default prompt rows from the registry.

The registry is the source of truth for system defaults. Each entry gets one
active, default, owner-less row:
1. No row yet: insert it at v1
2. Row exists and content hash matches: leave it alone
3. Row exists and content differs: snapshot it, overwrite it as v+1

Runs at startup (PROMPT_SEED_DEFAULTS) and from the admin API.
"""

import hashlib
import json
import logging
import threading
from typing import Dict, Optional

from sqlalchemy.orm import Session

from aura_prompts.models.sql.prompts import PromptConfig, PromptVersion

from .cache import PromptCache
from .registry import PromptRegistry, RegistryEntry

logger = logging.getLogger(__name__)

_seed_lock = threading.Lock()


def _content_hash(system_instruction: str, prompt_template: str, temperature: float, top_p: float) -> str:
    """SHA256 (first 16 chars) of the versioned fields."""
    payload = json.dumps(
        [system_instruction, prompt_template, round(float(temperature), 6), round(float(top_p), 6)],
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def _entry_hash(entry: RegistryEntry) -> str:
    return _content_hash(
        entry.default_system_instruction,
        entry.default_prompt_template,
        entry.default_temperature,
        entry.default_top_p,
    )


def _config_hash(config: PromptConfig) -> str:
    return _content_hash(config.system_instruction, config.prompt_template, config.temperature, config.top_p)


def _upsert_default(db: Session, entry: RegistryEntry) -> str:
    """Bring one system default row in line with its registry entry.

    Returns:
        "created", "updated" or "unchanged"
    """
    existing = db.query(PromptConfig).filter(
        PromptConfig.owner_id.is_(None),
        PromptConfig.prompt_key == entry.prompt_key,
        PromptConfig.is_default.is_(True),
        PromptConfig.is_active.is_(True),
    ).first()

    if existing is None:
        db.add(PromptConfig(
            owner_id=None,
            prompt_key=entry.prompt_key,
            category=entry.category.value,
            display_name=entry.display_name,
            description=entry.description,
            system_instruction=entry.default_system_instruction,
            prompt_template=entry.default_prompt_template,
            temperature=entry.default_temperature,
            top_p=entry.default_top_p,
            version=1,
            is_active=True,
            is_default=True,
        ))
        logger.info('Created system default prompt %s v1', entry.prompt_key)
        return "created"

    # Display metadata follows the registry without a version bump
    existing.category = entry.category.value
    existing.display_name = entry.display_name
    existing.description = entry.description

    if _config_hash(existing) == _entry_hash(entry):
        logger.debug('System default prompt %s v%s unchanged', entry.prompt_key, existing.version)
        return "unchanged"

    new_version = existing.version + 1
    db.add(PromptVersion(
        config_id=existing.id,
        owner_id=None,
        prompt_key=existing.prompt_key,
        version=existing.version,
        system_instruction=existing.system_instruction,
        prompt_template=existing.prompt_template,
        temperature=existing.temperature,
        top_p=existing.top_p,
        change_note=f"Registry defaults changed, updated to v{new_version}",
    ))
    existing.system_instruction = entry.default_system_instruction
    existing.prompt_template = entry.default_prompt_template
    existing.temperature = entry.default_temperature
    existing.top_p = entry.default_top_p
    existing.version = new_version
    logger.info('Updated system default prompt %s v%s -> v%s', entry.prompt_key, new_version - 1, new_version)
    return "updated"


def seed_system_defaults(
    db: Session,
    registry: PromptRegistry,
    cache: Optional[PromptCache] = None,
) -> Dict[str, int]:
    """Upsert a system default row for every registry entry and commit.

    Args:
        db: Database session (required)
        registry: Catalog to seed from
        cache: Resolution cache to clear afterwards (optional)

    Returns:
        Counts {"created": N, "updated": M, "unchanged": K}

    Raises:
        ValueError: If db is not provided
    """
    if db is None:
        raise ValueError("Database session is required for prompt seeding")

    counts = {"created": 0, "updated": 0, "unchanged": 0}
    with _seed_lock:
        try:
            for entry in registry.entries():
                counts[_upsert_default(db, entry)] += 1
            db.commit()
        except Exception:
            db.rollback()
            raise

    if cache is not None:
        cache.invalidate()

    logger.info(
        'Seeded system default prompts: %s created, %s updated, %s unchanged',
        counts["created"], counts["updated"], counts["unchanged"],
    )
    return counts
