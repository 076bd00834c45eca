"""Admin API for prompt configuration management.

Provides endpoints for:
- Listing stored prompt configs with filtering
- Inspecting and invalidating the resolution cache
- Re-seeding system defaults from the registry

Authorization: Email allowlist via ADMIN_EMAILS environment variable.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_prompts.api.auth import require_admin
from aura_prompts.api.errors import to_http_exception
from aura_prompts.api.prompts import PromptConfigResponse, config_response
from aura_prompts.lib.exceptions import PromptEngineError
from aura_prompts.lib.prompts.cache import PromptCache
from aura_prompts.lib.prompts.registry import PromptRegistry, get_registry
from aura_prompts.lib.prompts.seeding import seed_system_defaults
from aura_prompts.lib.prompts.service import get_prompt_cache, get_prompt_store
from aura_prompts.lib.prompts.store import SqlPromptStore
from aura_prompts.models.sql.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/prompts", tags=["Admin - Prompts"])

SYSTEM_OWNER_FILTER = "system"


# =============================================================================
# Response Models
# =============================================================================


class PromptConfigListResponse(BaseModel):
    configs: List[PromptConfigResponse]
    total: int
    page: int
    page_size: int


class CacheStatusResponse(BaseModel):
    entries: int
    ttl_seconds: float
    hits: int
    misses: int
    keys: List[str]


class CacheInvalidateResponse(BaseModel):
    status: str
    removed: int
    invalidated_at: datetime


class SeedResponse(BaseModel):
    status: str
    created: int
    updated: int
    unchanged: int


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_model=PromptConfigListResponse)
async def list_prompt_configs(
    owner_id: Optional[str] = Query(None, description="Filter by owner (use 'system' for defaults)"),
    prompt_key: Optional[str] = Query(None, description="Filter by prompt key"),
    active_only: bool = Query(False, description="Only return active configs"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    store: SqlPromptStore = Depends(get_prompt_store),
    _admin: dict = Depends(require_admin),
) -> PromptConfigListResponse:
    """List stored prompt configs with optional filtering."""
    system_only = (owner_id or "").lower() == SYSTEM_OWNER_FILTER
    try:
        configs, total = await store.list_configs(
            owner_id=None if system_only else owner_id,
            system_only=system_only,
            prompt_key=prompt_key,
            active_only=active_only,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
    except PromptEngineError as e:
        raise to_http_exception(e)

    return PromptConfigListResponse(
        configs=[config_response(c) for c in configs],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/cache/status", response_model=CacheStatusResponse)
async def get_cache_status(
    cache: PromptCache = Depends(get_prompt_cache),
    _admin: dict = Depends(require_admin),
) -> CacheStatusResponse:
    """Resolution cache statistics."""
    info = cache.info()
    return CacheStatusResponse(keys=cache.keys(), **info)


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
async def invalidate_cache(
    owner_id: Optional[str] = Query(None, description="Only this owner's entries ('system' for defaults)"),
    prompt_key: Optional[str] = Query(None, description="Only entries for this prompt key"),
    cache: PromptCache = Depends(get_prompt_cache),
    admin: dict = Depends(require_admin),
) -> CacheInvalidateResponse:
    """Drop cached resolutions (everything when no filter is given)."""
    removed = cache.invalidate(owner_id=owner_id, prompt_key=prompt_key)
    logger.info(
        'Prompt cache invalidated by %s: %s entries (owner=%s, key=%s)',
        admin.get("email") or admin.get("sub"), removed, owner_id or "*", prompt_key or "*",
    )
    return CacheInvalidateResponse(
        status="invalidated",
        removed=removed,
        invalidated_at=datetime.now(timezone.utc),
    )


@router.post("/seed", response_model=SeedResponse)
async def seed_defaults(
    db: Session = Depends(get_db),
    registry: PromptRegistry = Depends(get_registry),
    cache: PromptCache = Depends(get_prompt_cache),
    admin: dict = Depends(require_admin),
) -> SeedResponse:
    """Bring system default rows in line with the registry."""
    try:
        counts = seed_system_defaults(db, registry, cache=cache)
    except SQLAlchemyError as e:
        logger.error('Seeding system default prompts failed: %s', e)
        raise HTTPException(status_code=503, detail="Prompt store unavailable, seeding failed")

    logger.info('System default prompts seeded by %s', admin.get("email") or admin.get("sub"))
    return SeedResponse(status="seeded", **counts)
