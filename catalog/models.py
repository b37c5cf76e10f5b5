"""
Pydantic models for catalog entities and their explicit validation.

Each entity has a ``*Fields`` model carrying the per-field rules (used for
partial updates) and a ``*Create`` model that adds required fields and
defaults. The ``validate_*`` functions are the only entry points used before
a write: they return a store-ready document plus a list of field errors.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from bson import ObjectId
from pydantic import BaseModel, Field, ValidationError, validator

# Same language as the usual "simple email" pattern, without nested quantifiers.
EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")
ISBN_PATTERN = re.compile(r"^(?:\d{10}|\d{13})$")

AUTHOR_REQUIRED_MESSAGES = {"name": "Author name is required"}
BOOK_REQUIRED_MESSAGES = {
    "title": "Book title is required",
    "author": "Author is required",
}
CATEGORY_REQUIRED_MESSAGES = {"name": "Category name is required"}

DATE_MESSAGES = {
    "birthDate": "Birth date must be an ISO 8601 date",
    "publishedDate": "Published date must be an ISO 8601 date",
}


class Genre(str, Enum):
    """Fixed set of book genres."""
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    MYSTERY = "Mystery"
    THRILLER = "Thriller"
    ROMANCE = "Romance"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SCIENCE = "Science"
    SELF_HELP = "Self-Help"
    OTHER = "Other"


class FieldError(BaseModel):
    """A single field-level validation error."""
    field: str = Field(..., description="Payload field that failed validation")
    message: str = Field(..., description="Human-readable reason")


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def _require_object_id(v: Any, label: str) -> Any:
    if isinstance(v, ObjectId):
        return str(v)
    if not isinstance(v, str) or not ObjectId.is_valid(v):
        raise ValueError(f"{label} must be a valid id")
    return v


def slugify(value: str) -> str:
    """Lowercase ``value`` and collapse runs of non-alphanumerics into dashes."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


class CatalogModel(BaseModel):
    """Shared configuration: camelCase aliases, trimmed strings, unknown keys dropped."""

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
        use_enum_values = True
        extra = "ignore"

    @validator('*', pre=True)
    def strip_strings(cls, v):
        """Trim surrounding whitespace from every string value."""
        if isinstance(v, str):
            return v.strip()
        return v


class AuthorFields(CatalogModel):
    """Author field rules; every field optional so partial updates validate alone."""
    name: Optional[str] = Field(None, description="Author's full name")
    biography: Optional[str] = Field(None, description="Short biography")
    birth_date: Optional[datetime] = Field(None, alias="birthDate", description="Date of birth")
    nationality: Optional[str] = Field(None, description="Nationality")
    email: Optional[str] = Field(None, description="Contact email, stored lowercased")
    website: Optional[str] = Field(None, description="Official website")

    @validator('name')
    def validate_name(cls, v):
        if not v:
            raise ValueError('Author name is required')
        return v
    @validator('email')
    def validate_email(cls, v):
        if not v:
            return None
        v = v.lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Please enter a valid email')
        return v


class AuthorCreate(AuthorFields):
    """Author payload for creation."""
    name: str = Field(..., description="Author's full name")


class BookFields(CatalogModel):
    """Book field rules; every field optional so partial updates validate alone."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Id of an existing author")
    isbn: Optional[str] = Field(None, description="10 or 13 digit ISBN")
    published_date: Optional[datetime] = Field(None, alias="publishedDate")
    publisher: Optional[str] = None
    pages: Optional[int] = None
    genre: Optional[Genre] = None
    description: Optional[str] = None
    language: Optional[str] = None
    price: Optional[float] = None
    in_stock: Optional[bool] = Field(None, alias="inStock")
    rating: Optional[float] = None
    category: Optional[str] = Field(None, description="Id of an existing category")

    @validator('title')
    def validate_title(cls, v):
        if not v:
            raise ValueError('Book title is required')
        return v

    @validator('author', pre=True)
    def validate_author_ref(cls, v):
        v = _strip(v)
        if v is None or v == "":
            raise ValueError('Author is required')
        return _require_object_id(v, "Author")

    @validator('category', pre=True)
    def validate_category_ref(cls, v):
        v = _strip(v)
        if v is None or v == "":
            return None
        return _require_object_id(v, "Category")

    @validator('isbn')
    def validate_isbn(cls, v):
        if not v:
            return None
        if not ISBN_PATTERN.match(v):
            raise ValueError('ISBN must be 10 or 13 digits')
        return v
    @validator('pages')
    def validate_pages(cls, v):
        if v is not None and v < 1:
            raise ValueError('Pages must be at least 1')
        return v

    @validator('genre', pre=True)
    def validate_genre(cls, v):
        v = _strip(v)
        if v is not None and (not isinstance(v, str) or v not in {genre.value for genre in Genre}):
            raise ValueError(f'{v} is not a valid genre')
        return v

    @validator('price')
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError('Price cannot be negative')
        return v

    @validator('rating')
    def validate_rating(cls, v):
        if v is not None and not 0 <= v <= 5:
            raise ValueError('Rating must be between 0 and 5')
        return v


class BookCreate(BookFields):
    """Book payload for creation, with catalog defaults applied."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Id of an existing author")
    genre: Genre = Genre.OTHER.value
    language: str = "English"
    in_stock: bool = Field(True, alias="inStock")
    rating: float = 0


class CategoryFields(CatalogModel):
    """Category field rules."""
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None

    @validator('name')
    def validate_name(cls, v):
        if not v:
            raise ValueError('Category name is required')
        return v

    @validator('slug')
    def normalize_slug(cls, v):
        if not v:
            return None
        slug = slugify(v)
        if not slug:
            raise ValueError('Slug must contain letters or digits')
        return slug


class CategoryCreate(CategoryFields):
    """Category payload for creation."""
    name: str


# Fields that may be omitted from an update but never set to null.
AUTHOR_NON_CLEARABLE = {"name"}
BOOK_NON_CLEARABLE = {"title", "author", "genre", "language", "inStock", "rating"}
CATEGORY_NON_CLEARABLE = {"name", "slug"}
OBJECT_ID_FIELDS = {"author", "category"}


def _collect_errors(exc: ValidationError, required_messages: Dict[str, str]) -> List[FieldError]:
    errors = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "body"
        if error["type"] == "missing":
            message = required_messages.get(field, f"{field} is required")
        elif field in DATE_MESSAGES and error["type"].startswith("datetime"):
            message = DATE_MESSAGES[field]
        else:
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
        errors.append(FieldError(field=field, message=message))
    return errors


def _validate(
    model_class: Type[CatalogModel],
    payload: Any,
    partial: bool,
    non_clearable: Set[str],
    required_messages: Dict[str, str],
) -> Tuple[Dict[str, Any], List[FieldError]]:
    if not isinstance(payload, dict):
        return {}, [FieldError(field="body", message="Request body must be a JSON object")]

    try:
        model = model_class.parse_obj(payload)
    except ValidationError as exc:
        return {}, _collect_errors(exc, required_messages)

    document = model.dict(by_alias=True, exclude_unset=partial)
    if partial:
        errors = [
            FieldError(field=key, message=f"{key} cannot be cleared")
            for key, value in document.items()
            if value is None and key in non_clearable
        ]
        if errors:
            return {}, errors
    else:
        document = {key: value for key, value in document.items() if value is not None}

    for key in OBJECT_ID_FIELDS & document.keys():
        if document[key] is not None:
            document[key] = ObjectId(document[key])
    return document, []


def validate_author(payload: Any, partial: bool = False) -> Tuple[Dict[str, Any], List[FieldError]]:
    """
    Validate an author payload.

    Args:
        payload: Decoded JSON body
        partial: Validate only the supplied fields (updates)

    Returns:
        Tuple of (store-ready document, field errors); the document is empty
        whenever errors are returned. In partial mode a ``None`` value means
        "remove this field".
    """
    model_class = AuthorFields if partial else AuthorCreate
    return _validate(model_class, payload, partial, AUTHOR_NON_CLEARABLE, AUTHOR_REQUIRED_MESSAGES)


def validate_book(payload: Any, partial: bool = False) -> Tuple[Dict[str, Any], List[FieldError]]:
    """
    Validate a book payload.

    ``author`` and ``category`` come back as ObjectIds; create payloads get
    the genre, language, stock and rating defaults.
    """
    model_class = BookFields if partial else BookCreate
    return _validate(model_class, payload, partial, BOOK_NON_CLEARABLE, BOOK_REQUIRED_MESSAGES)


def validate_category(payload: Any, partial: bool = False) -> Tuple[Dict[str, Any], List[FieldError]]:
    """Validate a category payload, deriving the slug from the name on create."""
    model_class = CategoryFields if partial else CategoryCreate
    document, errors = _validate(model_class, payload, partial, CATEGORY_NON_CLEARABLE, CATEGORY_REQUIRED_MESSAGES)
    if errors or partial:
        return document, errors

    if not document.get("slug"):
        slug = slugify(document["name"])
        if not slug:
            return {}, [FieldError(field="slug", message="Slug must contain letters or digits")]
        document["slug"] = slug
    return document, []
