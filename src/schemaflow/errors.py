"""
Error types for schemaflow.

Most engine failures are recovered locally (placeholder nodes, ``"NaN"``
text, ``None`` channel data). The exceptions below cover the cases that
callers are expected to handle.
"""

from pathlib import Path

from pydantic import ValidationError


class SchemaFlowError(Exception):
    """Base exception for all schemaflow errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CatalogError(SchemaFlowError):
    """
    Raised when a schema catalog cannot serve a lookup.

    Examples:
    - Catalog directory missing
    - Backing store unavailable
    """

    pass


class CatalogLoadError(CatalogError):
    """Raised when a schema document in a catalog cannot be loaded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class SchemaValidationError(SchemaFlowError):
    """Raised when a schema document does not match the node format."""

    def __init__(self, source: str, error: ValidationError):
        self.source = source
        self.error = error
        super().__init__(f"Invalid schema document {source}: {error.error_count()} error(s)\n{error}")


class ResolutionCancelled(SchemaFlowError):
    """
    Raised when a schema resolution is superseded.

    Resolution checks its cancellation token after every catalog lookup; the
    caller discards the partial result.
    """

    def __init__(self, widget_key: str | None = None):
        self.widget_key = widget_key
        detail = f" while resolving {widget_key}" if widget_key else ""
        super().__init__(f"Schema resolution cancelled{detail}")
