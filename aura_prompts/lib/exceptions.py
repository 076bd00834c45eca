"""Custom exception classes for the Aura prompt engine."""

from typing import Any, Dict, Optional


class PromptEngineError(Exception):
    """Base exception for prompt engine errors."""

    ERROR_CODE = "PROMPT_001"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize exception with message, code, and optional details.

        Args:
            message: Error message
            error_code: Optional error code override
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.ERROR_CODE
        self.details = details or {}


class ConfigurationError(PromptEngineError):
    """Raised when configuration or the prompt catalog is invalid."""

    ERROR_CODE = "CONFIG_001"


class PromptNotFoundError(PromptEngineError):
    """Raised when a prompt key has no stored config, registry entry or fallback."""

    ERROR_CODE = "PROMPT_NOT_FOUND_001"


class SnapshotNotFoundError(PromptEngineError):
    """Raised when a version snapshot does not exist for the active override."""

    ERROR_CODE = "SNAPSHOT_NOT_FOUND_001"


class StoreUnavailableError(PromptEngineError):
    """Raised when a prompt store query or write fails transiently."""

    ERROR_CODE = "STORE_001"


class ConcurrentModificationError(PromptEngineError):
    """Raised when a version-conditioned write finds a different version."""

    ERROR_CODE = "CONFLICT_001"

    def __init__(
        self,
        message: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        super().__init__(
            message,
            details={
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class ValidationError(PromptEngineError):
    """Raised when a prompt edit is rejected before any write."""

    ERROR_CODE = "VALIDATION_001"

    def __init__(self, message: str, field: str):
        super().__init__(message, details={"field": field})
        self.field = field
