"""Value types shared by the resolver, the version manager and the API."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from aura_prompts.models.sql.prompts import PromptConfig

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.9


class ResolutionSource(str, Enum):
    """Which tier produced a resolved prompt."""

    OVERRIDE = "override"
    SYSTEM_DEFAULT = "system_default"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ResolvedPrompt:
    """The concrete prompt configuration handed to a generation call."""

    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    is_custom: bool
    prompt_version: int
    source: ResolutionSource = ResolutionSource.FALLBACK

    @classmethod
    def from_config(cls, config: PromptConfig, is_custom: bool) -> "ResolvedPrompt":
        return cls(
            system_instruction=config.system_instruction,
            prompt_template=config.prompt_template,
            temperature=config.temperature,
            top_p=config.top_p,
            is_custom=is_custom,
            prompt_version=config.version,
            source=ResolutionSource.OVERRIDE if is_custom else ResolutionSource.SYSTEM_DEFAULT,
        )


@dataclass(frozen=True)
class PromptFallback:
    """Inline defaults a caller may supply for the last resolution tier."""

    system_instruction: str = ""
    prompt_template: str = ""
    temperature: Optional[float] = None
    top_p: Optional[float] = None


@dataclass(frozen=True)
class PromptEdit:
    """Field values an operator submits when saving a prompt."""

    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    change_note: Optional[str] = None


@dataclass(frozen=True)
class SyntheticFallback:
    """Editor view of a prompt that has no stored row yet.

    Built from the registry. It is a separate type from PromptConfig so it can
    never be handed to the store and persisted by accident.
    """

    id: str
    prompt_key: str
    category: str
    display_name: str
    description: str
    system_instruction: str
    prompt_template: str
    temperature: float
    top_p: float
    owner_id: Optional[str] = None
    version: int = 0
    is_active: bool = True
    is_default: bool = True

    @property
    def is_custom(self) -> bool:
        return False


EditorConfig = Union[PromptConfig, SyntheticFallback]


@dataclass(frozen=True)
class EditorView:
    """What the prompt editor shows for one prompt key and user."""

    config: EditorConfig
    is_custom: bool

    @property
    def is_synthetic(self) -> bool:
        return isinstance(self.config, SyntheticFallback)


def is_unit_interval(value) -> bool:
    """True for a real number in [0, 1] (bools and NaN are rejected)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if math.isnan(value):
        return False
    return 0.0 <= value <= 1.0
