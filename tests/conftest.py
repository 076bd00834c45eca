"""
Pytest configuration and fixtures for prompt engine tests.
"""
import os
from pathlib import Path

# Must be set before aura_prompts is imported: the module-level engine reads them
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AURA_ENV_FILE"] = str(Path(__file__).parent / "no-such.env")
os.environ["PROMPT_SEED_DEFAULTS"] = "false"
os.environ.setdefault("LOG_FORMAT", "simple")

import pytest

from aura_prompts.lib.exceptions import StoreUnavailableError
from aura_prompts.lib.prompts.cache import PromptCache
from aura_prompts.lib.prompts.registry import get_registry
from aura_prompts.lib.prompts.resolver import PromptResolver
from aura_prompts.lib.prompts.store import SqlPromptStore
from aura_prompts.lib.prompts.versioning import PromptVersionManager
from aura_prompts.models.sql.database import Base, build_engine, build_session_factory

TTL_SECONDS = 300.0


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SwitchableStore:
    """Wraps a store; every call raises StoreUnavailableError while `down` is set."""

    def __init__(self, inner):
        self.inner = inner
        self.down = False
        self.calls = []

    def __getattr__(self, name):
        target = getattr(self.inner, name)

        async def call(*args, **kwargs):
            self.calls.append(name)
            if self.down:
                raise StoreUnavailableError("database is unreachable")
            return await target(*args, **kwargs)

        return call


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlPromptStore(session_factory)


@pytest.fixture
def store(sql_store):
    return SwitchableStore(sql_store)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return PromptCache(ttl_seconds=TTL_SECONDS, clock=clock)


@pytest.fixture
def registry():
    return get_registry()


@pytest.fixture
def resolver(store, cache, registry):
    return PromptResolver(store, cache, registry)


@pytest.fixture
def manager(store, cache, registry):
    return PromptVersionManager(store, cache, registry)
