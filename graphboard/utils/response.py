"""Standardized response envelopes for board tools."""

from typing import Any, Callable, Dict, List, Optional

from graphboard.core.errors import GraphError, OperationResult


def is_success(result: Dict[str, Any]) -> bool:
    """Check if a tool response reports success."""
    return bool(result.get("ok"))


def success_response(
    data: Any,
    warnings: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create a successful response envelope.

    Args:
        data: The response data
        warnings: Optional list of warning messages

    Returns:
        Standardized success response
    """
    response = {
        "ok": True,
        "data": data
    }

    if warnings:
        response["warnings"] = warnings

    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create an error response envelope.

    Args:
        message: Error message
        code: Optional error code
        details: Optional error details

    Returns:
        Standardized error response
    """
    error = {"message": message}

    if code:
        error["code"] = code

    if details:
        error["details"] = details

    return {
        "ok": False,
        "error": error
    }


def graph_error_response(error: GraphError) -> Dict[str, Any]:
    """Error envelope carrying a GraphError's code and details."""
    return error_response(error.message, code=error.code, details=error.details)


def result_response(
    result: OperationResult,
    serialize: Callable[[Any], Any] = lambda value: value,
) -> Dict[str, Any]:
    """Envelope for an OperationResult.

    Args:
        result: Outcome of a model or controller operation
        serialize: Converts the produced value to JSON-friendly data;
            not called for no-op successes (value None)
    """
    if not result.ok:
        return graph_error_response(result.error)
    if result.value is None:
        return success_response(None, warnings=["No matching item; nothing changed"])
    return success_response(serialize(result.value))
