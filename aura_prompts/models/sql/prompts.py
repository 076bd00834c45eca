"""Prompt configuration and version history models.

This module defines the database models for:
- PromptConfig: the active prompt configuration rows (system defaults and
  per-user overrides)
- PromptVersion: append-only snapshots of a PromptConfig taken before each save

Key structure for PromptConfig: owner_id + prompt_key
- System defaults: NULL:sales_outreach (is_default = true)
- User overrides: <user id>:sales_outreach
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    and_,
    func,
)

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptConfig(Base):
    """Active prompt configuration for one owner (or the system) and prompt key.

    Exactly one active row may exist per (owner_id, prompt_key); for
    owner_id NULL the active row is also the system default.
    """

    __tablename__ = "user_prompts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Identity
    owner_id = Column(String(255), nullable=True, index=True)  # NULL for system defaults
    prompt_key = Column(String(100), nullable=False, index=True)  # Registry key, e.g. 'sales_outreach'
    category = Column(String(50), nullable=False)
    display_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")

    # Content
    system_instruction = Column(Text, nullable=False, default="")
    prompt_template = Column(Text, nullable=False, default="")
    temperature = Column(Float, nullable=False, default=0.7)
    top_p = Column(Float, nullable=False, default=0.9)

    # Versioning
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)

    # Last "test prompt" run from the editor
    last_tested_at = Column(DateTime(timezone=True), nullable=True)
    test_result = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        # One active override per user and key
        Index(
            "uq_user_prompts_active_override",
            "owner_id",
            "prompt_key",
            unique=True,
            postgresql_where=and_(is_active.is_(True), owner_id.isnot(None)),
            sqlite_where=and_(is_active.is_(True), owner_id.isnot(None)),
        ),
        # NULLs never collide in a unique index, so system defaults need their own
        Index(
            "uq_user_prompts_active_default",
            "prompt_key",
            unique=True,
            postgresql_where=and_(is_active.is_(True), is_default.is_(True), owner_id.is_(None)),
            sqlite_where=and_(is_active.is_(True), is_default.is_(True), owner_id.is_(None)),
        ),
        Index("idx_user_prompts_category", "category"),
        CheckConstraint("temperature >= 0 AND temperature <= 1", name="ck_user_prompts_temperature"),
        CheckConstraint("top_p >= 0 AND top_p <= 1", name="ck_user_prompts_top_p"),
        CheckConstraint("version >= 0", name="ck_user_prompts_version"),
    )

    @property
    def is_custom(self) -> bool:
        return self.owner_id is not None

    def __repr__(self) -> str:
        owner_str = self.owner_id or "system"
        active_str = " [ACTIVE]" if self.is_active else ""
        return f"<PromptConfig {owner_str}:{self.prompt_key} v{self.version}{active_str}>"


class PromptVersion(Base):
    """Snapshot of a PromptConfig taken before it was overwritten.

    `version` is the version being superseded. Rows are never updated or
    deleted; config_id is not a cascading foreign key so history survives a
    reset to default.
    """

    __tablename__ = "user_prompt_versions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    config_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # Denormalized for auditing orphaned history
    owner_id = Column(String(255), nullable=True)
    prompt_key = Column(String(100), nullable=False)

    version = Column(Integer, nullable=False)
    system_instruction = Column(Text, nullable=False, default="")
    prompt_template = Column(Text, nullable=False, default="")
    temperature = Column(Float, nullable=False, default=0.7)
    top_p = Column(Float, nullable=False, default=0.9)
    change_note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    __table_args__ = (
        Index("uq_user_prompt_versions_version", "config_id", "version", unique=True),
    )

    def __repr__(self) -> str:
        return f"<PromptVersion config_id={self.config_id} v{self.version}>"
