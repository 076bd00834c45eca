"""SQL models module."""

from .database import Base, SessionLocal, engine, get_db, init_db
from .prompts import PromptConfig, PromptVersion

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "PromptConfig",
    "PromptVersion",
]
