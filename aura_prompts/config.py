"""Configuration management for the Aura prompt engine."""

import logging
import os
from pathlib import Path
from typing import Optional, Set

from dotenv import load_dotenv

from aura_prompts.lib.exceptions import ConfigurationError

PACKAGE_ROOT = Path(__file__).resolve().parent

DEFAULT_PROMPT_CACHE_TTL_SECONDS = 300.0

# Load .env from AURA_ENV_FILE, or from ~/.aura_prompts/.env when unset.
# Values already present in the process environment win over the file.
_env_loaded_from: Optional[str] = None


def _load_env_file() -> Optional[str]:
    """Load the .env file if one exists."""
    explicit = os.getenv("AURA_ENV_FILE")
    env_path = Path(explicit) if explicit else Path.home() / ".aura_prompts" / ".env"

    if env_path.exists():
        load_dotenv(env_path)
        return str(env_path)

    return None


_env_loaded_from = _load_env_file()

logger = logging.getLogger(__name__)

if not _env_loaded_from:
    logger.debug("No .env file found, using process environment only")


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_log_level() -> str:
    """Get log level from environment, default to INFO."""
    level = os.getenv('LOG_LEVEL', 'INFO').upper()
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

    if level not in valid_levels:
        logger.warning(f"Invalid log level '{level}', defaulting to INFO")
        return 'INFO'

    return level


def get_database_url() -> str:
    """Get PostgreSQL connection URL from the individual POSTGRES_* variables."""
    db_user = os.getenv('POSTGRES_USER', 'postgres')
    db_pass = os.getenv('POSTGRES_PASSWORD', 'postgres')
    db_host = os.getenv('POSTGRES_HOST', 'postgres')
    db_port = os.getenv('POSTGRES_PORT', '5432')
    db_name = os.getenv('POSTGRES_DB', 'aura')

    return f"postgresql://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


def get_app_database_url() -> str:
    """Get the application database URL.

    Reads from DATABASE_URL, falling back to a URL built from the
    POSTGRES_* variables.
    """
    return os.getenv('DATABASE_URL', get_database_url())


def get_prompt_cache_ttl_seconds() -> float:
    """Get the resolution cache TTL (PROMPT_CACHE_TTL_SECONDS, default 5 minutes)."""
    raw = os.getenv('PROMPT_CACHE_TTL_SECONDS')
    if raw is None or raw.strip() == "":
        return DEFAULT_PROMPT_CACHE_TTL_SECONDS

    try:
        ttl = float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"PROMPT_CACHE_TTL_SECONDS must be a number, got '{raw}'"
        ) from exc

    if ttl <= 0:
        raise ConfigurationError(
            f"PROMPT_CACHE_TTL_SECONDS must be positive, got {ttl}"
        )
    return ttl


def get_prompt_registry_path() -> Path:
    """Return the YAML file holding the built-in prompt catalog.

    PROMPT_REGISTRY_PATH overrides the copy bundled with the package.
    """
    env_path = os.getenv('PROMPT_REGISTRY_PATH')
    if env_path:
        return Path(env_path)
    return PACKAGE_ROOT / "lib" / "prompts" / "registry.yaml"


def should_seed_prompt_defaults() -> bool:
    """Whether startup upserts registry defaults as system-default rows."""
    return _get_bool('PROMPT_SEED_DEFAULTS', True)


def get_admin_emails() -> Set[str]:
    """Parse the ADMIN_EMAILS comma-separated allowlist."""
    admin_emails_str = os.getenv("ADMIN_EMAILS", "")
    if not admin_emails_str:
        return set()
    return {email.strip().lower() for email in admin_emails_str.split(",") if email.strip()}


def is_dev_mode() -> bool:
    """Check DEV_MODE (relaxes the admin allowlist when it is empty)."""
    return _get_bool('DEV_MODE', False)
