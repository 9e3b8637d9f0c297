"""
Exception logging helpers for proxy failures.

Transport errors raised by httpx chain their cause (socket errors, TLS errors),
and errors surfacing through anyio task groups may arrive as exception groups.
Both are flattened into one readable log line here. These helpers never raise.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back to repr or the type name."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(exception.exceptions)
    except Exception:
        return []


def _describe(exception) -> str:
    """Type and message, followed by the chained cause when there is one."""
    text = f"{type(exception).__name__}: {_safe_str(exception)}"
    cause = getattr(exception, "__cause__", None)
    if cause is not None and cause is not exception:
        text += f" (caused by {type(cause).__name__}: {_safe_str(cause)})"
    return text


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception as a single line, including sub-exceptions of an
    exception group and the direct cause of a chained exception.

    Args:
        exception: The exception to format

    Returns:
        A formatted string describing the exception
    """
    try:
        if exception is None:
            return "None"
        sub_exceptions = _sub_exceptions(exception)
        if sub_exceptions:
            joined = "; ".join(_describe(sub) for sub in sub_exceptions)
            return f"{_safe_str(exception)} (Sub-exceptions: {joined})"
        return _describe(exception)
    except Exception:
        return f"<{type(exception).__name__} (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
    include_traceback: bool = False,
) -> None:
    """
    Log an exception with its details. Sub-exceptions of an exception group are
    logged one per line after the summary.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]", "[Relay]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
        include_traceback: Attach the traceback to the log record
    """
    try:
        exc_info = exception if include_traceback and exception is not None else False
        sub_exceptions = _sub_exceptions(exception) if exception is not None else []
        if sub_exceptions:
            logger.log(
                level,
                f"{prefix} Exception with {len(sub_exceptions)} sub-exceptions: "
                f"{_safe_str(exception)}",
            )
            for i, sub_exc in enumerate(sub_exceptions):
                logger.log(
                    level,
                    f"{prefix} Sub-exception {i+1}: {_describe(sub_exc)}",
                    exc_info=sub_exc if include_traceback else False,
                )
        else:
            logger.log(
                level,
                f"{prefix} Exception: {format_exception_message(exception)}",
                exc_info=exc_info,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception logging failed")
        except Exception:
            # Logging must never take the request down with it
            return
