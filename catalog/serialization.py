"""
Conversion between MongoDB documents and JSON-safe values.
"""

from datetime import date, datetime
from typing import Any

from bson import ObjectId

from .errors import NotFoundError


def to_json_document(value: Any) -> Any:
    """
    Recursively convert a stored document into JSON-safe values.

    ObjectIds become hex strings and datetimes become ISO 8601 strings.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_json_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_document(item) for item in value]
    return value


def parse_object_id(value: Any, not_found_message: str) -> ObjectId:
    """
    Parse a path identifier, treating malformed ids as missing entities.

    Raises:
        NotFoundError: if ``value`` is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise NotFoundError(not_found_message)
    return ObjectId(value)

