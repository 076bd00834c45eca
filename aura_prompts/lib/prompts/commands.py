"""Optimistic edit commands for a prompt editor session.

The editor shows a change as soon as it is submitted and reconciles with the
server afterwards. Each submission is an EditCommand that starts PENDING and
ends CONFIRMED (local view replaced by the stored row) or ROLLED_BACK (local
view restored, error re-raised).

Usage:
    editor = OptimisticEditor(get_version_manager(), owner_id="u1")
    await editor.load("content_blog")
    command = await editor.save("content_blog", PromptEdit(...))
    command.status  # CommandStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Union

from aura_prompts.models.sql.prompts import PromptVersion

from .types import EditorConfig, EditorView, PromptEdit
from .versioning import NO_OVERRIDE_VERSION, PromptVersionManager

logger = logging.getLogger(__name__)


class CommandStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class CommandKind(str, Enum):
    SAVE = "save"
    RESTORE = "restore"
    RESET = "reset"


@dataclass(frozen=True)
class PendingConfig:
    """Locally displayed values that the server has not confirmed yet."""

    prompt_key: str
    owner_id: Optional[str]
    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    version: int


@dataclass(frozen=True)
class LocalView:
    """What the editor currently displays for one prompt key."""

    config: Union[EditorConfig, PendingConfig]
    is_custom: bool

    @property
    def is_pending(self) -> bool:
        return isinstance(self.config, PendingConfig)

    @classmethod
    def from_editor_view(cls, view: EditorView) -> "LocalView":
        return cls(config=view.config, is_custom=view.is_custom)


@dataclass
class EditCommand:
    kind: CommandKind
    prompt_key: str
    previous: LocalView
    optimistic: LocalView
    status: CommandStatus = CommandStatus.PENDING
    result: Optional[LocalView] = None
    error: Optional[Exception] = None


class OptimisticEditor:
    """Local editor state for one user, kept in step with the version manager."""

    def __init__(self, manager: PromptVersionManager, owner_id: str):
        self.manager = manager
        self.owner_id = owner_id
        self.commands: List[EditCommand] = []
        self._views: Dict[str, LocalView] = {}

    def current(self, prompt_key: str) -> Optional[LocalView]:
        return self._views.get(prompt_key)

    async def load(self, prompt_key: str) -> LocalView:
        """Fetch the server's editor config and display it."""
        view = LocalView.from_editor_view(
            await self.manager.get_editor_config(prompt_key, self.owner_id)
        )
        self._views[prompt_key] = view
        return view

    async def save(self, prompt_key: str, edit: PromptEdit) -> EditCommand:
        previous = await self._displayed(prompt_key)
        expected = previous.config.version if previous.is_custom else NO_OVERRIDE_VERSION
        optimistic = self._pending(
            prompt_key,
            previous,
            edit.system_instruction,
            edit.prompt_template,
            edit.temperature,
            edit.top_p,
        )

        async def operation() -> LocalView:
            config = await self.manager.create_or_update_override(
                prompt_key, self.owner_id, edit, expected_version=expected
            )
            return LocalView(config=config, is_custom=True)

        return await self._submit(CommandKind.SAVE, prompt_key, previous, optimistic, operation)

    async def restore(self, prompt_key: str, snapshot: PromptVersion) -> EditCommand:
        previous = await self._displayed(prompt_key)
        expected = previous.config.version if previous.is_custom else None
        optimistic = self._pending(
            prompt_key,
            previous,
            snapshot.system_instruction,
            snapshot.prompt_template,
            snapshot.temperature,
            snapshot.top_p,
        )

        async def operation() -> LocalView:
            config = await self.manager.restore_version(
                prompt_key, self.owner_id, snapshot.id, expected_version=expected
            )
            return LocalView(config=config, is_custom=True)

        return await self._submit(CommandKind.RESTORE, prompt_key, previous, optimistic, operation)

    async def reset(self, prompt_key: str) -> EditCommand:
        previous = await self._displayed(prompt_key)
        if prompt_key in self.manager.registry:
            optimistic = LocalView(config=self.manager.registry.build_fallback(prompt_key), is_custom=False)
        else:
            optimistic = LocalView(config=previous.config, is_custom=False)

        async def operation() -> LocalView:
            await self.manager.reset_to_default(prompt_key, self.owner_id)
            return LocalView.from_editor_view(
                await self.manager.get_editor_config(prompt_key, self.owner_id)
            )

        return await self._submit(CommandKind.RESET, prompt_key, previous, optimistic, operation)

    async def _displayed(self, prompt_key: str) -> LocalView:
        view = self._views.get(prompt_key)
        if view is None:
            view = await self.load(prompt_key)
        return view

    def _pending(
        self,
        prompt_key: str,
        previous: LocalView,
        system_instruction: str,
        prompt_template: str,
        temperature: float,
        top_p: float,
    ) -> LocalView:
        next_version = previous.config.version + 1 if previous.is_custom else 1
        return LocalView(
            config=PendingConfig(
                prompt_key=prompt_key,
                owner_id=self.owner_id,
                system_instruction=system_instruction,
                prompt_template=prompt_template,
                temperature=temperature,
                top_p=top_p,
                version=next_version,
            ),
            is_custom=True,
        )

    async def _submit(
        self,
        kind: CommandKind,
        prompt_key: str,
        previous: LocalView,
        optimistic: LocalView,
        operation: Callable[[], Awaitable[LocalView]],
    ) -> EditCommand:
        command = EditCommand(kind=kind, prompt_key=prompt_key, previous=previous, optimistic=optimistic)
        self.commands.append(command)
        self._views[prompt_key] = optimistic

        try:
            confirmed = await operation()
        except Exception as e:
            self._views[prompt_key] = previous
            command.status = CommandStatus.ROLLED_BACK
            command.error = e
            logger.warning('Rolled back %s of %s for %s: %s', kind.value, prompt_key, self.owner_id, e)
            raise

        self._views[prompt_key] = confirmed
        command.status = CommandStatus.CONFIRMED
        command.result = confirmed
        return command
