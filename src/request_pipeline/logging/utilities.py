"""Logging utility functions."""

import logging
from typing import Any


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (request_id, url, http_status, etc.)

    Example:
        log_with_context(
            logger, logging.DEBUG, "Request succeeded",
            request_id=request_id,
            url=wire.url,
            http_status=200,
        )
    """
    logger.log(level, msg, extra=kwargs)


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from PipelineError subclasses.

    Args:
        logger: Logger instance
        exc: Exception to log
        msg: Context message
        level: Log level (default: ERROR)
        include_traceback: Include full traceback (default: True)
        **kwargs: Additional context fields
    """
    error_category = kwargs.get("error_category")
    if error_category is None and hasattr(exc, "category"):
        cat = exc.category
        error_category = cat.value if hasattr(cat, "value") else str(cat)
        kwargs["error_category"] = error_category

    error_msg = str(exc)
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."
    kwargs["error_message"] = error_msg
    kwargs.setdefault("error_type", type(exc).__name__)

    if include_traceback and exc.__traceback__ is not None:
        logger.log(level, msg, exc_info=exc, extra=kwargs)
    else:
        logger.log(level, msg, extra=kwargs)


def assert_failure(
    logger: logging.Logger,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Report a condition that should never happen.

    Logs at CRITICAL with the current stack so the broken assumption can be
    traced. The caller still resolves the failure normally.

    Args:
        logger: Logger instance
        msg: Description of the broken assumption
        **kwargs: Additional context fields
    """
    logger.critical(msg, stack_info=True, extra=kwargs)
