"""Error taxonomy and operation results for graph mutations.

Model and controller operations do not raise on expected failures. They
return an ``OperationResult`` carrying either the produced value or one of
the errors below, so an editor can show inline feedback and carry on.

Error classes are still real exceptions: ``OperationResult.unwrap()`` raises
the carried error for callers (scripts, tests, importers) that prefer
exceptions.

Usage:
    result = graph.add_edge("A", "B")
    if not result.ok:
        print(result.error.code, result.error)
    edge = result.unwrap()
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


class GraphError(Exception):
    """Base class for recoverable graph errors."""

    code = "GRAPH_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class InvalidEndpoint(GraphError):
    """Raised when an edge references a node that does not exist."""

    code = "INVALID_ENDPOINT"

    def __init__(self, node_id: str, role: str = "endpoint"):
        self.node_id = node_id
        self.role = role
        super().__init__(
            f"Cannot connect: {role} node '{node_id}' not found",
            details={"node_id": node_id, "role": role},
        )


class InvalidDocument(GraphError):
    """Raised when an import payload is malformed or inconsistent."""

    code = "INVALID_DOCUMENT"


class DuplicateId(GraphError):
    """Raised when an explicitly assigned id collides with an existing one."""

    code = "DUPLICATE_ID"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"Duplicate {entity} id '{entity_id}'",
            details={"entity": entity, "id": entity_id},
        )


class InvalidField(GraphError):
    """Raised when a field value is outside the graph profile."""

    code = "INVALID_FIELD"

    def __init__(self, field_name: str, value: Any, allowed=None):
        self.field_name = field_name
        self.value = value
        details: Dict[str, Any] = {"field": field_name, "value": value}
        message = f"Invalid {field_name}: {value!r}"
        if allowed is not None:
            details["allowed"] = list(allowed)
            message += f". Allowed: {', '.join(allowed)}"
        super().__init__(message, details=details)


class ConnectionRejected(GraphError):
    """Raised when the editor's connection policy refuses an edge."""

    code = "CONNECTION_REJECTED"

    def __init__(self, source: str, target: str, reason: str):
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(
            f"Cannot connect {source} -> {target}: {reason}",
            details={"source": source, "target": target, "reason": reason},
        )


class BoardNotFound(GraphError):
    """Raised when a storage key holds no board document."""

    code = "BOARD_NOT_FOUND"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No board stored under key '{key}'", details={"key": key})


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a graph operation.

    Attributes:
        ok: True if the operation succeeded (including no-op successes)
        value: Produced entity, or None for no-ops
        error: The GraphError when ok is False
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[GraphError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: GraphError) -> "OperationResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> Optional[T]:
        """Return the value or raise the carried error."""
        if not self.ok:
            raise self.error
        return self.value

    def __bool__(self) -> bool:
        return self.ok
