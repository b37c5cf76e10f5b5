"""
Translate query-string parameters into MongoDB filters, sorts and pages.

Every builder takes a plain mapping of string keys to string values (the raw
query string), ignores keys it does not recognize, and raises
ValidationFailure for recognized keys whose values cannot be used.
"""

import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel, Field

from .errors import ValidationFailure

BOOK_SORT_FIELDS = ("createdAt", "updatedAt", "title", "rating", "price", "pages", "publishedDate")
AUTHOR_SORT_FIELDS = ("name", "nationality", "birthDate", "createdAt", "updatedAt")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    """A page window over a result set."""
    page: int = Field(1, ge=1, description="One-based page number")
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, description="Items per page")

    @property
    def skip(self) -> int:
        """Number of documents to skip before this page."""
        return (self.page - 1) * self.limit


class ListQuery(BaseModel):
    """Filter, sort and page window for a single find() call."""
    filter: Dict[str, Any] = Field(default_factory=dict)
    sort: List[Tuple[str, int]] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    class Config:
        """Pydantic configuration."""
        arbitrary_types_allowed = True


def parse_positive_int(params: Mapping[str, str], key: str, default: int, maximum: Optional[int] = None) -> int:
    """Read ``key`` as an integer >= 1, falling back to ``default`` when absent."""
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{key} must be a positive integer")
    if value < 1:
        raise ValidationFailure(f"{key} must be a positive integer")
    if maximum is not None and value > maximum:
        raise ValidationFailure(f"{key} must not exceed {maximum}")
    return value


def parse_pagination(
    params: Mapping[str, str],
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> Pagination:
    """Read ``page`` and ``limit``; both default (1 and ``default_limit``) when absent."""
    return Pagination(
        page=parse_positive_int(params, "page", 1),
        limit=parse_positive_int(params, "limit", default_limit, max_limit),
    )


def parse_bool(params: Mapping[str, str], key: str) -> Optional[bool]:
    """Only the literal strings "true" and "false" are booleans."""
    raw = params.get(key)
    if raw is None:
        return None
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ValidationFailure(f"{key} must be 'true' or 'false'")


def parse_float(params: Mapping[str, str], key: str) -> Optional[float]:
    raw = params.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValidationFailure(f"{key} must be a number")
    if not math.isfinite(value):
        raise ValidationFailure(f"{key} must be a number")
    return value


def parse_sort(
    params: Mapping[str, str],
    allowed: Tuple[str, ...],
    default_field: str,
    default_order: str,
) -> List[Tuple[str, int]]:
    sort_by = params.get("sortBy") or default_field
    order = params.get("order") or default_order
    if sort_by not in allowed:
        raise ValidationFailure(f"sortBy must be one of: {', '.join(allowed)}")
    if order not in ("asc", "desc"):
        raise ValidationFailure("order must be 'asc' or 'desc'")
    return [(sort_by, 1 if order == "asc" else -1)]


def parse_object_id_param(params: Mapping[str, str], key: str) -> Optional[ObjectId]:
    raw = params.get(key)
    if not raw:
        return None
    if not ObjectId.is_valid(raw):
        raise ValidationFailure(f"{key} must be a valid id")
    return ObjectId(raw)


def contains_pattern(text: str) -> Dict[str, str]:
    """Case-insensitive substring match; the text is matched literally."""
    return {"$regex": re.escape(text), "$options": "i"}


def rating_range(min_rating: Optional[float], max_rating: Optional[float]) -> Optional[Dict[str, float]]:
    """Combine optional bounds into one range predicate, or None when both are absent."""
    predicate = {}
    if min_rating is not None:
        predicate["$gte"] = min_rating
    if max_rating is not None:
        predicate["$lte"] = max_rating
    return predicate or None


def build_book_query(
    params: Mapping[str, str],
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> ListQuery:
    """
    Build the book listing query.

    Recognized keys: page, limit, genre, category, inStock, search,
    minRating, maxRating, sortBy, order. ``search`` uses the text index over
    title and description rather than substring matching.
    """
    filter_query: Dict[str, Any] = {}

    genre = params.get("genre")
    if genre:
        filter_query["genre"] = genre

    category = parse_object_id_param(params, "category")
    if category is not None:
        filter_query["category"] = category

    in_stock = parse_bool(params, "inStock")
    if in_stock is not None:
        filter_query["inStock"] = in_stock

    search = params.get("search")
    if search:
        filter_query["$text"] = {"$search": search}

    rating = rating_range(parse_float(params, "minRating"), parse_float(params, "maxRating"))
    if rating is not None:
        filter_query["rating"] = rating

    return ListQuery(
        filter=filter_query,
        sort=parse_sort(params, BOOK_SORT_FIELDS, "createdAt", "desc"),
        pagination=parse_pagination(params, default_limit, max_limit),
    )


def build_author_query(
    params: Mapping[str, str],
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> ListQuery:
    """
    Build the author listing query.

    Recognized keys: page, limit, nationality, search (name substring,
    case-insensitive), sortBy, order.
    """
    filter_query: Dict[str, Any] = {}

    nationality = params.get("nationality")
    if nationality:
        filter_query["nationality"] = nationality

    search = params.get("search")
    if search:
        filter_query["name"] = contains_pattern(search)

    return ListQuery(
        filter=filter_query,
        sort=parse_sort(params, AUTHOR_SORT_FIELDS, "name", "asc"),
        pagination=parse_pagination(params, default_limit, max_limit),
    )


def build_author_search(
    params: Mapping[str, str],
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> ListQuery:
    """
    Build the author search query: ``query`` matched against name or biography.

    Only the first ``limit`` matches are returned, so the page is always 1.
    """
    text = (params.get("query") or "").strip()
    if not text:
        raise ValidationFailure("Search query is required")

    filter_query: Dict[str, Any] = {
        "$or": [
            {"name": contains_pattern(text)},
            {"biography": contains_pattern(text)},
        ]
    }
    nationality = params.get("nationality")
    if nationality:
        filter_query["nationality"] = nationality

    return ListQuery(
        filter=filter_query,
        sort=[("name", 1)],
        pagination=Pagination(page=1, limit=parse_positive_int(params, "limit", default_limit, max_limit)),
    )


def build_nationality_query(
    nationality: str,
    params: Mapping[str, str],
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> ListQuery:
    """Authors of one nationality, sorted by name."""
    return ListQuery(
        filter={"nationality": nationality},
        sort=[("name", 1)],
        pagination=parse_pagination(params, default_limit, max_limit),
    )
