"""Prompt API for the dashboard's prompt editor and generation features.

Provides endpoints for:
- Browsing the prompt catalog with the caller's customizations
- Resolving the effective prompt for a generation call
- Viewing, saving, restoring and resetting the caller's overrides
- Listing an override's version history

The acting user comes from the X-User-Id header (see api/auth.py).
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from aura_prompts.api.auth import get_current_user
from aura_prompts.api.errors import to_http_exception
from aura_prompts.lib.exceptions import PromptEngineError
from aura_prompts.lib.prompts.registry import PromptRegistry, get_registry
from aura_prompts.lib.prompts.resolver import PromptResolver
from aura_prompts.lib.prompts.service import get_resolver, get_version_manager
from aura_prompts.lib.prompts.types import EditorConfig, PromptEdit, SyntheticFallback
from aura_prompts.lib.prompts.versioning import NO_OVERRIDE_VERSION, PromptVersionManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/prompts", tags=["Prompts"])


# =============================================================================
# Request/Response Models
# =============================================================================


class UsageLocationResponse(BaseModel):
    page: str
    route: str
    feature: str


class CatalogPromptResponse(BaseModel):
    """One registry entry plus the caller's override state."""

    prompt_key: str
    display_name: str
    description: str
    placeholders: List[str]
    used_in: List[UsageLocationResponse]
    is_custom: bool
    version: int


class CatalogCategoryResponse(BaseModel):
    category: str
    prompts: List[CatalogPromptResponse]


class CatalogResponse(BaseModel):
    categories: List[CatalogCategoryResponse]
    total: int
    custom_count: int


class ResolvedPromptResponse(BaseModel):
    """Effective prompt for a generation call."""

    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    is_custom: bool
    prompt_version: int
    source: str


class PromptConfigResponse(BaseModel):
    """A stored prompt config, or the registry synthesis (version 0)."""

    id: str
    owner_id: Optional[str]
    prompt_key: str
    category: str
    display_name: str
    description: str
    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    version: int
    is_active: bool
    is_default: bool
    is_synthetic: bool = False
    last_tested_at: Optional[datetime] = None
    test_result: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EditorResponse(BaseModel):
    prompt_key: str
    is_custom: bool
    expected_version: int
    config: PromptConfigResponse
    system_default: PromptConfigResponse


class SavePromptRequest(BaseModel):
    """Request model for saving an override.

    Range checks happen in the version manager so errors name the field.
    """

    system_instruction: str = Field("", description="System instruction (may be empty)")
    prompt_template: str = Field(..., description="Prompt template with {{placeholders}}")
    temperature: float = Field(..., description="Sampling temperature, 0-1")
    top_p: float = Field(..., description="Nucleus sampling top-p, 0-1")
    change_note: Optional[str] = Field(None, description="Why this version was saved")
    expected_version: Optional[int] = Field(
        None,
        description=(
            "Override version being edited, as reported by the editor "
            "(0 when there was no override). Omit to skip the check."
        ),
    )


class VersionResponse(BaseModel):
    """Response model for a version snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    config_id: UUID
    prompt_key: str
    version: int
    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    change_note: Optional[str]
    created_at: datetime


class HistoryResponse(BaseModel):
    prompt_key: str
    config_id: Optional[UUID]
    current_version: Optional[int]
    versions: List[VersionResponse]


class ResetResponse(BaseModel):
    prompt_key: str
    reset: bool
    message: str


def config_response(config: EditorConfig) -> PromptConfigResponse:
    """Build the response for either a stored row or a synthetic fallback."""
    return PromptConfigResponse(
        id=str(config.id),
        owner_id=config.owner_id,
        prompt_key=config.prompt_key,
        category=config.category,
        display_name=config.display_name,
        description=config.description or "",
        system_instruction=config.system_instruction,
        prompt_template=config.prompt_template,
        temperature=config.temperature,
        top_p=config.top_p,
        version=config.version,
        is_active=config.is_active,
        is_default=config.is_default,
        is_synthetic=isinstance(config, SyntheticFallback),
        last_tested_at=getattr(config, "last_tested_at", None),
        test_result=getattr(config, "test_result", None),
        created_at=getattr(config, "created_at", None),
        updated_at=getattr(config, "updated_at", None),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog(
    user: dict = Depends(get_current_user),
    registry: PromptRegistry = Depends(get_registry),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> CatalogResponse:
    """Registry grouped by category, flagged with the caller's overrides."""
    try:
        overrides = await manager.list_overrides(user["sub"])
    except PromptEngineError as e:
        raise to_http_exception(e)

    versions: Dict[str, int] = {config.prompt_key: config.version for config in overrides}

    categories = []
    for category, entries in registry.by_category().items():
        categories.append(CatalogCategoryResponse(
            category=category.value,
            prompts=[
                CatalogPromptResponse(
                    prompt_key=entry.prompt_key,
                    display_name=entry.display_name,
                    description=entry.description,
                    placeholders=list(entry.placeholders),
                    used_in=[
                        UsageLocationResponse(page=u.page, route=u.route, feature=u.feature)
                        for u in entry.used_in
                    ],
                    is_custom=entry.prompt_key in versions,
                    version=versions.get(entry.prompt_key, 0),
                )
                for entry in entries
            ],
        ))

    return CatalogResponse(
        categories=categories,
        total=len(registry),
        custom_count=sum(1 for key in versions if key in registry),
    )


@router.get("/{prompt_key}/resolve", response_model=ResolvedPromptResponse)
async def resolve_prompt(
    prompt_key: str,
    user: dict = Depends(get_current_user),
    resolver: PromptResolver = Depends(get_resolver),
) -> ResolvedPromptResponse:
    """Effective prompt for the caller (override, system default or registry)."""
    try:
        resolved = await resolver.resolve(prompt_key, owner_id=user["sub"])
    except PromptEngineError as e:
        raise to_http_exception(e)

    return ResolvedPromptResponse(
        system_instruction=resolved.system_instruction,
        prompt_template=resolved.prompt_template,
        temperature=resolved.temperature,
        top_p=resolved.top_p,
        is_custom=resolved.is_custom,
        prompt_version=resolved.prompt_version,
        source=resolved.source.value,
    )


@router.get("/{prompt_key}", response_model=EditorResponse)
async def get_prompt(
    prompt_key: str,
    user: dict = Depends(get_current_user),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> EditorResponse:
    """Editor config for the caller, with the system default for comparison."""
    try:
        view = await manager.get_editor_config(prompt_key, user["sub"])
        system_default = view.config if not view.is_custom else await manager.get_system_default_config(prompt_key)
    except PromptEngineError as e:
        raise to_http_exception(e)

    return EditorResponse(
        prompt_key=prompt_key,
        is_custom=view.is_custom,
        expected_version=view.config.version if view.is_custom else NO_OVERRIDE_VERSION,
        config=config_response(view.config),
        system_default=config_response(system_default),
    )


@router.put("/{prompt_key}", response_model=PromptConfigResponse)
async def save_prompt(
    prompt_key: str,
    request: SavePromptRequest,
    user: dict = Depends(get_current_user),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> PromptConfigResponse:
    """Create the caller's override (v1) or save a new version of it.

    Raises:
        HTTPException 400: If a field is invalid
        HTTPException 409: If the override changed since expected_version
    """
    edit = PromptEdit(
        system_instruction=request.system_instruction,
        prompt_template=request.prompt_template,
        temperature=request.temperature,
        top_p=request.top_p,
        change_note=request.change_note,
    )
    try:
        config = await manager.create_or_update_override(
            prompt_key, user["sub"], edit, expected_version=request.expected_version
        )
    except PromptEngineError as e:
        raise to_http_exception(e)

    return config_response(config)


@router.post("/{prompt_key}/restore/{snapshot_id}", response_model=PromptConfigResponse)
async def restore_prompt_version(
    prompt_key: str,
    snapshot_id: UUID,
    expected_version: Optional[int] = Query(None, description="Override version being edited"),
    user: dict = Depends(get_current_user),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> PromptConfigResponse:
    """Save an earlier version's values as a new version."""
    try:
        config = await manager.restore_version(
            prompt_key, user["sub"], snapshot_id, expected_version=expected_version
        )
    except PromptEngineError as e:
        raise to_http_exception(e)

    return config_response(config)


@router.delete("/{prompt_key}", response_model=ResetResponse)
async def reset_prompt(
    prompt_key: str,
    user: dict = Depends(get_current_user),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> ResetResponse:
    """Delete the caller's override; version history is kept."""
    try:
        deleted = await manager.reset_to_default(prompt_key, user["sub"])
    except PromptEngineError as e:
        raise to_http_exception(e)

    return ResetResponse(
        prompt_key=prompt_key,
        reset=deleted,
        message="Reset to default" if deleted else "No custom prompt to reset",
    )


@router.get("/{prompt_key}/history", response_model=HistoryResponse)
async def get_prompt_history(
    prompt_key: str,
    user: dict = Depends(get_current_user),
    manager: PromptVersionManager = Depends(get_version_manager),
) -> HistoryResponse:
    """Snapshots of the caller's active override, newest first."""
    try:
        view = await manager.get_editor_config(prompt_key, user["sub"])
        if not view.is_custom:
            return HistoryResponse(prompt_key=prompt_key, config_id=None, current_version=None, versions=[])
        versions = await manager.list_version_history(view.config.id)
    except PromptEngineError as e:
        raise to_http_exception(e)

    return HistoryResponse(
        prompt_key=prompt_key,
        config_id=view.config.id,
        current_version=view.config.version,
        versions=[VersionResponse.model_validate(v) for v in versions],
    )
