# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Exception hierarchy for the artifact relationship graph engine.

All engine errors derive from DecisionLinksError and carry a stable
machine-readable code plus a JSON-compatible context dict, so the MCP layer
can report them without knowing the concrete type.
"""

from typing import Any, Dict, Optional


class DecisionLinksError(Exception):
    """Base class for all engine errors."""

    code = "DECISION_LINKS_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class NotFoundError(DecisionLinksError):
    """Raised when a link endpoint does not exist in the artifact store."""

    code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationError(DecisionLinksError):
    """Raised for out-of-vocabulary link, reference or graph options."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(context or {})
        merged["field"] = field
        super().__init__(message, merged)
        self.field = field


class StorageError(DecisionLinksError):
    """Raised when an artifact store backend cannot read or write a record."""

    code = "STORAGE_ERROR"
