"""Unit tests for optimistic editor commands."""

import pytest

from aura_prompts.lib.exceptions import ConcurrentModificationError, StoreUnavailableError, ValidationError
from aura_prompts.lib.prompts.commands import CommandKind, CommandStatus, OptimisticEditor, PendingConfig
from aura_prompts.lib.prompts.types import PromptEdit, SyntheticFallback


def _edit(template: str) -> PromptEdit:
    return PromptEdit("sys", template, 0.5, 0.9)


@pytest.fixture
def editor(manager):
    return OptimisticEditor(manager, owner_id="u1")


@pytest.mark.asyncio
async def test_save_confirms_with_server_row(editor):
    command = await editor.save("content_blog", _edit("mine"))

    assert command.kind is CommandKind.SAVE
    assert command.status is CommandStatus.CONFIRMED
    assert isinstance(command.optimistic.config, PendingConfig)
    assert command.optimistic.config.version == 1
    assert isinstance(command.previous.config, SyntheticFallback)

    current = editor.current("content_blog")
    assert current is command.result
    assert not current.is_pending
    assert current.is_custom
    assert current.config.version == 1


@pytest.mark.asyncio
async def test_failed_save_rolls_back_and_reraises(editor):
    await editor.load("content_blog")
    before = editor.current("content_blog")

    with pytest.raises(ValidationError):
        await editor.save("content_blog", _edit(""))

    command = editor.commands[-1]
    assert command.status is CommandStatus.ROLLED_BACK
    assert isinstance(command.error, ValidationError)
    assert editor.current("content_blog") is before


@pytest.mark.asyncio
async def test_store_outage_rolls_back(editor, store):
    await editor.save("content_blog", _edit("v1"))
    confirmed = editor.current("content_blog")

    store.down = True
    with pytest.raises(StoreUnavailableError):
        await editor.save("content_blog", _edit("v2"))

    assert editor.current("content_blog") is confirmed
    assert editor.commands[-1].status is CommandStatus.ROLLED_BACK


@pytest.mark.asyncio
async def test_stale_editor_is_rejected(manager, editor):
    await editor.save("content_blog", _edit("v1"))
    # Another session saves v2 behind this editor's back
    await manager.create_or_update_override("content_blog", "u1", _edit("elsewhere"))

    with pytest.raises(ConcurrentModificationError):
        await editor.save("content_blog", _edit("stale"))

    assert editor.current("content_blog").config.prompt_template == "v1"
    reloaded = await editor.load("content_blog")
    assert reloaded.config.prompt_template == "elsewhere"


@pytest.mark.asyncio
async def test_override_created_elsewhere_after_load_is_rejected(manager, editor):
    await editor.load("content_blog")
    # Another session creates the first override while this editor shows the default
    await manager.create_or_update_override("content_blog", "u1", _edit("theirs"))

    with pytest.raises(ConcurrentModificationError):
        await editor.save("content_blog", _edit("mine"))

    command = editor.commands[-1]
    assert command.status is CommandStatus.ROLLED_BACK
    assert isinstance(editor.current("content_blog").config, SyntheticFallback)
    view = await manager.get_editor_config("content_blog", "u1")
    assert view.config.prompt_template == "theirs"
    assert view.config.version == 1


@pytest.mark.asyncio
async def test_restore_and_reset(manager, editor):
    await editor.save("content_blog", _edit("v1"))
    await editor.save("content_blog", _edit("v2"))
    config = editor.current("content_blog").config
    snapshot = (await manager.list_version_history(config.id))[0]

    restored = await editor.restore("content_blog", snapshot)
    assert restored.status is CommandStatus.CONFIRMED
    assert restored.result.config.version == 3
    assert restored.result.config.prompt_template == "v1"

    reset = await editor.reset("content_blog")
    assert reset.status is CommandStatus.CONFIRMED
    assert isinstance(reset.optimistic.config, SyntheticFallback)
    assert reset.result.is_custom is False
    assert [c.kind for c in editor.commands] == [
        CommandKind.SAVE,
        CommandKind.SAVE,
        CommandKind.RESTORE,
        CommandKind.RESET,
    ]
