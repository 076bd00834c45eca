"""Prompt store: persistence of prompt configs and their version history.

The resolver and version manager only talk to the store through the
PromptStore protocol. SqlPromptStore implements it on SQLAlchemy: each call
opens its own session, runs in a worker thread (asyncio.to_thread) and commits
or rolls back as one transaction.

Error mapping:
- IntegrityError -> ConcurrentModificationError (unique active-row or
  snapshot-version collisions are the only constraints writers can hit after
  validation)
- any other SQLAlchemyError -> StoreUnavailableError
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from aura_prompts.lib.exceptions import (
    ConcurrentModificationError,
    PromptNotFoundError,
    StoreUnavailableError,
)
from aura_prompts.models.sql.prompts import PromptConfig, PromptVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptValues:
    """The versioned fields of a prompt config."""

    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float


class PromptStore(Protocol):
    """Operations the engine needs from persistent storage.

    Implementations raise StoreUnavailableError when the backend cannot be
    reached, ConcurrentModificationError when a uniqueness or version check
    fails, and PromptNotFoundError when write_version targets a missing row.
    """

    async def get_active_override(self, owner_id: str, prompt_key: str) -> Optional[PromptConfig]: ...

    async def get_system_default(self, prompt_key: str) -> Optional[PromptConfig]: ...

    async def get_config(self, config_id: uuid.UUID) -> Optional[PromptConfig]: ...

    async def get_snapshot(self, snapshot_id: uuid.UUID) -> Optional[PromptVersion]: ...

    async def list_configs(
        self,
        owner_id: Optional[str] = None,
        system_only: bool = False,
        prompt_key: Optional[str] = None,
        active_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[PromptConfig], int]: ...

    async def insert_config(self, config: PromptConfig) -> PromptConfig: ...

    async def write_version(
        self,
        config_id: uuid.UUID,
        expected_version: int,
        values: PromptValues,
        change_note: Optional[str],
    ) -> PromptConfig: ...

    async def delete_config(self, config_id: uuid.UUID) -> bool: ...

    async def list_versions(self, config_id: uuid.UUID) -> List[PromptVersion]: ...

    async def record_test_result(self, config_id: uuid.UUID, result: str) -> None: ...


class SqlPromptStore:
    """SQLAlchemy-backed PromptStore.

    Args:
        session_factory: sessionmaker to open sessions from (defaults to the
            application SessionLocal)
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        if session_factory is None:
            from aura_prompts.models.sql.database import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._transaction, fn, *args)

    def _transaction(self, fn: Callable[..., Any], *args: Any) -> Any:
        db: Session = self._session_factory()
        try:
            result = fn(db, *args)
            db.commit()
            return result
        except IntegrityError as exc:
            db.rollback()
            logger.warning('Prompt store integrity violation in %s: %s', fn.__name__, exc.orig)
            raise ConcurrentModificationError(
                "Prompt was changed elsewhere, please reload"
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error('Prompt store operation %s failed: %s', fn.__name__, exc)
            raise StoreUnavailableError(f"Prompt store unavailable: {exc}") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _active_override(db: Session, owner_id: str, prompt_key: str) -> Optional[PromptConfig]:
        return db.query(PromptConfig).filter(
            PromptConfig.owner_id == owner_id,
            PromptConfig.prompt_key == prompt_key,
            PromptConfig.is_active == True,  # noqa: E712
        ).first()

    @staticmethod
    def _system_default(db: Session, prompt_key: str) -> Optional[PromptConfig]:
        return db.query(PromptConfig).filter(
            PromptConfig.owner_id.is_(None),
            PromptConfig.prompt_key == prompt_key,
            PromptConfig.is_default == True,  # noqa: E712
            PromptConfig.is_active == True,  # noqa: E712
        ).first()

    async def get_active_override(self, owner_id: str, prompt_key: str) -> Optional[PromptConfig]:
        return await self._run(self._active_override, owner_id, prompt_key)

    async def get_system_default(self, prompt_key: str) -> Optional[PromptConfig]:
        return await self._run(self._system_default, prompt_key)

    async def get_config(self, config_id: uuid.UUID) -> Optional[PromptConfig]:
        def _get_config(db: Session) -> Optional[PromptConfig]:
            return db.get(PromptConfig, config_id)

        return await self._run(_get_config)

    async def get_snapshot(self, snapshot_id: uuid.UUID) -> Optional[PromptVersion]:
        def _get_snapshot(db: Session) -> Optional[PromptVersion]:
            return db.get(PromptVersion, snapshot_id)

        return await self._run(_get_snapshot)

    async def list_versions(self, config_id: uuid.UUID) -> List[PromptVersion]:
        """Version history of a config, newest first."""
        def _list_versions(db: Session) -> List[PromptVersion]:
            return db.query(PromptVersion).filter(
                PromptVersion.config_id == config_id
            ).order_by(PromptVersion.version.desc(), PromptVersion.created_at.desc()).all()

        return await self._run(_list_versions)

    async def list_configs(
        self,
        owner_id: Optional[str] = None,
        system_only: bool = False,
        prompt_key: Optional[str] = None,
        active_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[PromptConfig], int]:
        """Filtered page of stored configs plus the total match count."""
        def _list_configs(db: Session) -> Tuple[List[PromptConfig], int]:
            query = db.query(PromptConfig)
            if system_only:
                query = query.filter(PromptConfig.owner_id.is_(None))
            elif owner_id:
                query = query.filter(PromptConfig.owner_id == owner_id)
            if prompt_key:
                query = query.filter(PromptConfig.prompt_key == prompt_key)
            if active_only:
                query = query.filter(PromptConfig.is_active.is_(True))

            total = query.count()
            query = query.order_by(
                PromptConfig.prompt_key,
                PromptConfig.owner_id,
                PromptConfig.version.desc(),
            ).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return query.all(), total

        return await self._run(_list_configs)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_config(self, config: PromptConfig) -> PromptConfig:
        def _insert_config(db: Session) -> PromptConfig:
            db.add(config)
            db.flush()
            return config

        return await self._run(_insert_config)

    async def write_version(
        self,
        config_id: uuid.UUID,
        expected_version: int,
        values: PromptValues,
        change_note: Optional[str],
    ) -> PromptConfig:
        """Snapshot the current row and overwrite it as version expected_version + 1.

        Both statements run in one transaction. The update is conditioned on
        expected_version; if another writer got there first nothing is kept,
        not even the snapshot.

        Raises:
            PromptNotFoundError: If the config row no longer exists
            ConcurrentModificationError: If the stored version differs
        """
        def _write_version(db: Session) -> PromptConfig:
            current = db.get(PromptConfig, config_id)
            if current is None:
                raise PromptNotFoundError(f"Prompt config {config_id} not found")
            if current.version != expected_version:
                raise ConcurrentModificationError(
                    f"Prompt {current.prompt_key} is at v{current.version}, expected v{expected_version}",
                    expected_version=expected_version,
                    actual_version=current.version,
                )

            db.add(PromptVersion(
                config_id=current.id,
                owner_id=current.owner_id,
                prompt_key=current.prompt_key,
                version=current.version,
                system_instruction=current.system_instruction,
                prompt_template=current.prompt_template,
                temperature=current.temperature,
                top_p=current.top_p,
                change_note=change_note,
            ))
            db.flush()

            result = db.execute(
                update(PromptConfig)
                .where(
                    PromptConfig.id == config_id,
                    PromptConfig.version == expected_version,
                )
                .values(
                    system_instruction=values.system_instruction,
                    prompt_template=values.prompt_template,
                    temperature=values.temperature,
                    top_p=values.top_p,
                    version=expected_version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError(
                    f"Prompt {current.prompt_key} changed while saving v{expected_version + 1}",
                    expected_version=expected_version,
                )

            db.refresh(current)
            return current

        return await self._run(_write_version)

    async def delete_config(self, config_id: uuid.UUID) -> bool:
        """Delete a config row; its version history is left in place."""
        def _delete_config(db: Session) -> bool:
            deleted = db.query(PromptConfig).filter(
                PromptConfig.id == config_id
            ).delete(synchronize_session=False)
            return deleted > 0

        return await self._run(_delete_config)

    async def record_test_result(self, config_id: uuid.UUID, result: str) -> None:
        def _record_test_result(db: Session) -> None:
            db.execute(
                update(PromptConfig)
                .where(PromptConfig.id == config_id)
                .values(last_tested_at=datetime.now(timezone.utc), test_result=result)
                .execution_options(synchronize_session=False)
            )

        await self._run(_record_test_result)
