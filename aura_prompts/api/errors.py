"""Translate prompt engine errors into HTTP errors."""

import logging

from fastapi import HTTPException

from aura_prompts.lib.exceptions import (
    ConcurrentModificationError,
    PromptEngineError,
    PromptNotFoundError,
    SnapshotNotFoundError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (PromptNotFoundError, 404),
    (SnapshotNotFoundError, 404),
    (ValidationError, 400),
    (ConcurrentModificationError, 409),
    (StoreUnavailableError, 503),
)


def status_for(exc: PromptEngineError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def to_http_exception(exc: PromptEngineError) -> HTTPException:
    """HTTPException whose detail carries message, error_code and details."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error('Prompt operation failed (%s): %s', exc.error_code, exc.message)
    return HTTPException(
        status_code=status_code,
        detail={
            "message": exc.message,
            "error_code": exc.error_code,
            **exc.details,
        },
    )
