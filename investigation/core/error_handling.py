"""Error handling utilities: structured logging and error responses."""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def log_error_with_context(
    error: Exception,
    component: str,
    case_id: str | None = None,
    operation: str | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Log an error with the engine context it happened in, plus the stack trace.

    Args:
        error: The exception that occurred
        component: Engine component (e.g., 'persistence', 'accusation')
        case_id: Loaded case for context
        operation: Operation being executed (e.g., 'save', 'present_evidence')
        extra_context: Additional context dict to include in log
    """
    context_parts = []
    if case_id:
        context_parts.append(f"case_id={case_id}")
    if operation:
        context_parts.append(f"operation={operation}")
    context_str = ", ".join(context_parts) if context_parts else "no context"

    extra: dict[str, Any] = {}
    if extra_context:
        extra.update(extra_context)
    if case_id:
        extra["case_id"] = case_id
    if operation:
        extra["operation"] = operation
    extra["component"] = component

    logger.error(
        f"[{component}] Error: {type(error).__name__}: {str(error)} ({context_str})",
        exc_info=True,
        extra=extra,
    )


def create_error_response(
    error_code: str,
    message: str,
    component: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a structured error response for API endpoints.

    Args:
        error_code: Error code (e.g., 'CONVERSATION_ALREADY_OPEN', 'UNKNOWN_CLUE')
        message: Human-readable error message
        component: Engine component that rejected the command
        details: Additional error details

    Returns:
        Structured error dict
    """
    response: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
    }
    if component:
        response["component"] = component
    if details:
        response["details"] = details
    return response
