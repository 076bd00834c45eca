"""Version manager: the write side of prompt configuration.

State transitions on a user's override of a prompt:
- create: no active override yet, insert it at v1 (no snapshot)
- update: snapshot the current row, overwrite it as v+1
- restore: update with the field values of an earlier snapshot
- reset: delete the override; its snapshots are kept

Writes are conditioned on the version that was read. A caller that pins
expected_version gets ConcurrentModificationError as soon as the stored
version moved on; an unpinned caller is re-read and retried once first.
Every successful transition drops the cached resolution for the owner and key.
Errors always propagate.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable, List, Optional, TypeVar

from aura_prompts.lib.exceptions import (
    ConcurrentModificationError,
    PromptNotFoundError,
    SnapshotNotFoundError,
    ValidationError,
)
from aura_prompts.models.sql.prompts import PromptConfig, PromptVersion

from .cache import PromptCache
from .registry import PromptRegistry
from .rendering import GenerationClient, PromptTestResult, render_template, sample_values
from .store import PromptStore, PromptValues
from .types import EditorConfig, EditorView, PromptEdit, is_unit_interval

logger = logging.getLogger(__name__)

TEST_RESULT_MAX_LENGTH = 500

# expected_version meaning "the caller saw no override"; None skips the check
NO_OVERRIDE_VERSION = 0

CHANGE_NOTE_MAX_LENGTH = 500

T = TypeVar("T")


def validate_edit(edit: PromptEdit) -> None:
    """Reject an edit before anything is written.

    Raises:
        ValidationError: naming the first offending field
    """
    if not isinstance(edit.prompt_template, str) or not edit.prompt_template.strip():
        raise ValidationError("Prompt template must not be empty", field="prompt_template")
    if not isinstance(edit.system_instruction, str):
        raise ValidationError("System instruction must be text", field="system_instruction")
    if not is_unit_interval(edit.temperature):
        raise ValidationError(
            f"Temperature must be between 0 and 1, got {edit.temperature!r}", field="temperature"
        )
    if not is_unit_interval(edit.top_p):
        raise ValidationError(f"Top-p must be between 0 and 1, got {edit.top_p!r}", field="top_p")
    if edit.change_note is not None and len(edit.change_note) > CHANGE_NOTE_MAX_LENGTH:
        raise ValidationError(
            f"Change note must be at most {CHANGE_NOTE_MAX_LENGTH} characters", field="change_note"
        )


def _require_owner(owner_id: Optional[str]) -> str:
    if not owner_id:
        raise ValidationError("An owner is required to edit a prompt", field="owner_id")
    return owner_id


class PromptVersionManager:
    """Create, update, restore and reset per-user prompt overrides."""

    def __init__(self, store: PromptStore, cache: PromptCache, registry: PromptRegistry):
        self.store = store
        self.cache = cache
        self.registry = registry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_editor_config(self, prompt_key: str, owner_id: Optional[str]) -> EditorView:
        """Config the editor should show: override, else system default, else registry."""
        if owner_id:
            override = await self.store.get_active_override(owner_id, prompt_key)
            if override is not None:
                return EditorView(config=override, is_custom=True)
        return EditorView(config=await self.get_system_default_config(prompt_key), is_custom=False)

    async def get_system_default_config(self, prompt_key: str) -> EditorConfig:
        """Stored system default, or the registry synthesis when none is stored.

        Raises:
            PromptNotFoundError: If the key is neither stored nor in the registry
        """
        default = await self.store.get_system_default(prompt_key)
        if default is not None:
            return default
        return self.registry.build_fallback(prompt_key)

    async def list_version_history(self, config_id: uuid.UUID) -> List[PromptVersion]:
        return await self.store.list_versions(config_id)

    async def list_overrides(self, owner_id: str) -> List[PromptConfig]:
        """Active overrides of owner_id, ordered by prompt key."""
        overrides, _ = await self.store.list_configs(owner_id=_require_owner(owner_id), active_only=True)
        return overrides

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def create_or_update_override(
        self,
        prompt_key: str,
        owner_id: str,
        edit: PromptEdit,
        expected_version: Optional[int] = None,
    ) -> PromptConfig:
        """Save edit as owner_id's override of prompt_key and return the stored row.

        Args:
            prompt_key: Registry key of the prompt
            owner_id: User the override belongs to
            edit: New field values and optional change note
            expected_version: Override version the caller edited,
                NO_OVERRIDE_VERSION when it saw none, or None to skip the check

        Raises:
            ValidationError: If the edit is malformed (nothing is written)
            PromptNotFoundError: If the key is unknown
            ConcurrentModificationError: If the override changed elsewhere
            StoreUnavailableError: If the store write failed
        """
        owner_id = _require_owner(owner_id)
        validate_edit(edit)
        values = PromptValues(
            system_instruction=edit.system_instruction,
            prompt_template=edit.prompt_template,
            temperature=float(edit.temperature),
            top_p=float(edit.top_p),
        )

        async def attempt() -> PromptConfig:
            current = await self.store.get_active_override(owner_id, prompt_key)
            if current is None:
                if expected_version not in (None, NO_OVERRIDE_VERSION):
                    raise ConcurrentModificationError(
                        f"Override of {prompt_key} no longer exists, please reload",
                        expected_version=expected_version,
                    )
                return await self._create_override(prompt_key, owner_id, values)

            self._check_expected(current, expected_version)
            note = edit.change_note or f"Updated to v{current.version + 1}"
            return await self.store.write_version(current.id, current.version, values, note)

        config = await self._with_retry(attempt, pinned=expected_version is not None)
        self.cache.invalidate(owner_id, prompt_key)
        logger.info(
            'Saved prompt %s for %s as v%s', prompt_key, owner_id, config.version,
            extra={"prompt_key": prompt_key, "owner_id": owner_id, "version": config.version},
        )
        return config

    async def restore_version(
        self,
        prompt_key: str,
        owner_id: str,
        snapshot_id: uuid.UUID,
        expected_version: Optional[int] = None,
    ) -> PromptConfig:
        """Write an earlier snapshot's values back as a new, higher version.

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist or does not
                belong to the active override
            ConcurrentModificationError: If the override changed elsewhere
        """
        owner_id = _require_owner(owner_id)
        snapshot = await self.store.get_snapshot(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Version snapshot {snapshot_id} not found")

        values = PromptValues(
            system_instruction=snapshot.system_instruction,
            prompt_template=snapshot.prompt_template,
            temperature=snapshot.temperature,
            top_p=snapshot.top_p,
        )

        async def attempt() -> PromptConfig:
            current = await self.store.get_active_override(owner_id, prompt_key)
            if current is None or current.id != snapshot.config_id:
                raise SnapshotNotFoundError(
                    f"Snapshot {snapshot_id} does not belong to the active {prompt_key} override"
                )
            self._check_expected(current, expected_version)
            return await self.store.write_version(
                current.id, current.version, values, f"Rolled back to v{snapshot.version}"
            )

        config = await self._with_retry(attempt, pinned=expected_version is not None)
        self.cache.invalidate(owner_id, prompt_key)
        logger.info(
            'Restored prompt %s for %s from v%s as v%s',
            prompt_key, owner_id, snapshot.version, config.version,
            extra={"prompt_key": prompt_key, "owner_id": owner_id, "version": config.version},
        )
        return config

    async def reset_to_default(self, prompt_key: str, owner_id: str) -> bool:
        """Delete owner_id's override of prompt_key.

        Returns:
            True if an override was deleted, False if there was none
        """
        owner_id = _require_owner(owner_id)
        current = await self.store.get_active_override(owner_id, prompt_key)
        deleted = False
        if current is not None:
            deleted = await self.store.delete_config(current.id)
        self.cache.invalidate(owner_id, prompt_key)

        if deleted:
            logger.info(
                'Reset prompt %s for %s to default (was v%s)', prompt_key, owner_id, current.version,
                extra={"prompt_key": prompt_key, "owner_id": owner_id},
            )
        return deleted

    async def record_test_result(self, prompt_key: str, owner_id: Optional[str], result: str) -> bool:
        """Store a test run's output on the active override, if there is one."""
        if not owner_id:
            return False
        current = await self.store.get_active_override(owner_id, prompt_key)
        if current is None:
            return False
        await self.store.record_test_result(current.id, (result or "")[:TEST_RESULT_MAX_LENGTH])
        return True

    async def test_prompt(
        self,
        prompt_key: str,
        owner_id: Optional[str],
        client: GenerationClient,
        draft: Optional[PromptEdit] = None,
        test_input: Optional[str] = None,
    ) -> PromptTestResult:
        """Run a prompt once against client with sample placeholder values.

        The unsaved draft is used when given, otherwise the editor config.
        """
        if draft is None:
            config = (await self.get_editor_config(prompt_key, owner_id)).config
            draft = PromptEdit(
                system_instruction=config.system_instruction,
                prompt_template=config.prompt_template,
                temperature=config.temperature,
                top_p=config.top_p,
            )
        validate_edit(draft)

        prompt = render_template(draft.prompt_template, sample_values(test_input))
        start = time.perf_counter()
        output = await client.generate(
            system_instruction=draft.system_instruction,
            prompt=prompt,
            temperature=draft.temperature,
            top_p=draft.top_p,
        )
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        output = output or "No output generated."

        await self.record_test_result(prompt_key, owner_id, output)
        logger.info('Test run of %s for %s took %sms', prompt_key, owner_id or "system", elapsed_ms)
        return PromptTestResult(output=output, elapsed_ms=elapsed_ms)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _create_override(self, prompt_key: str, owner_id: str, values: PromptValues) -> PromptConfig:
        entry = self.registry.get(prompt_key)
        if entry is not None:
            category, display_name, description = entry.category.value, entry.display_name, entry.description
        else:
            default = await self.store.get_system_default(prompt_key)
            if default is None:
                raise PromptNotFoundError(f"Unknown prompt key '{prompt_key}'")
            category, display_name, description = default.category, default.display_name, default.description

        config = PromptConfig(
            owner_id=owner_id,
            prompt_key=prompt_key,
            category=category,
            display_name=display_name,
            description=description or "",
            system_instruction=values.system_instruction,
            prompt_template=values.prompt_template,
            temperature=values.temperature,
            top_p=values.top_p,
            version=1,
            is_active=True,
            is_default=False,
        )
        return await self.store.insert_config(config)

    @staticmethod
    def _check_expected(current: PromptConfig, expected_version: Optional[int]) -> None:
        if expected_version is not None and current.version != expected_version:
            raise ConcurrentModificationError(
                f"Prompt {current.prompt_key} changed elsewhere (now v{current.version}), please reload",
                expected_version=expected_version,
                actual_version=current.version,
            )

    @staticmethod
    async def _with_retry(attempt: Callable[[], Awaitable[T]], pinned: bool) -> T:
        try:
            return await attempt()
        except ConcurrentModificationError as e:
            if pinned:
                raise
            logger.info('Concurrent prompt modification, retrying once: %s', e.message)
        try:
            return await attempt()
        except ConcurrentModificationError as e:
            raise ConcurrentModificationError(
                "Prompt changed elsewhere, please reload",
                expected_version=e.expected_version,
                actual_version=e.actual_version,
            ) from e
