"""
Error taxonomy for catalog operations.

The HTTP layer maps these onto status codes; nothing here knows about HTTP.
"""

from typing import Any, Dict, List, Optional


class CatalogError(Exception):
    """Base class for expected catalog failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CatalogError):
    """A referenced or requested entity does not exist."""


class ValidationFailure(CatalogError):
    """Input failed validation; carries field-level errors when available."""

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(CatalogError):
    """The write conflicts with existing data (duplicate keys, blocked deletes)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}
