"""
Database service layer for the FastAPI application.

One method per endpoint: build the query, run it against the store, resolve
references and hand back JSON-safe data. Validation and integrity failures
are raised as catalog errors for the HTTP layer to map.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from api.models import PageResult
from catalog.aggregations import (
    overview_pipeline, shape_overview, summarize_author_books,
    top_authors_by_book_count_pipeline, top_authors_by_rating_pipeline,
    top_rated_by_category_pipeline,
)
from catalog.database import CatalogDatabase
from catalog.errors import NotFoundError, ValidationFailure, ConflictError
from catalog.integrity import IntegrityGuard
from catalog.models import FieldError, validate_author, validate_book, validate_category
from catalog.query_builder import (
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ListQuery,
    build_author_query, build_author_search, build_book_query,
    build_nationality_query, parse_positive_int,
)
from catalog.serialization import parse_object_id, to_json_document

logger = structlog.get_logger(__name__)

AUTHOR_SUMMARY = {"name": 1, "nationality": 1}
CATEGORY_SUMMARY = {"name": 1, "slug": 1}

BOOK_NOT_FOUND = "Book not found"
AUTHOR_NOT_FOUND = "Author not found"
CATEGORY_NOT_FOUND = "Category not found"


def _raise_if_invalid(errors: List[FieldError]) -> None:
    if errors:
        raise ValidationFailure("Validation failed", errors=errors)


def _update_operation(document: Dict[str, Any]) -> Dict[str, Any]:
    """$set the supplied values, $unset fields explicitly set to None."""
    to_set = {key: value for key, value in document.items() if value is not None}
    to_unset = {key: "" for key, value in document.items() if value is None}
    to_set["updatedAt"] = datetime.utcnow()

    operation: Dict[str, Any] = {"$set": to_set}
    if to_unset:
        operation["$unset"] = to_unset
    return operation


class CatalogService:
    """Catalog operations backing every API endpoint."""

    def __init__(
        self,
        database: CatalogDatabase,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.database = database
        self.guard = IntegrityGuard(database)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    async def _find_page(self, collection: AsyncIOMotorCollection, query: ListQuery) -> Dict[str, Any]:
        pagination = query.pagination
        total = await collection.count_documents(query.filter)
        cursor = collection.find(query.filter).sort(query.sort).skip(pagination.skip).limit(pagination.limit)
        documents = await cursor.to_list(length=pagination.limit)
        return {"documents": documents, "total": total}

    async def _fetch_by_ids(
        self,
        collection: AsyncIOMotorCollection,
        ids: Iterable[ObjectId],
        projection: Optional[Dict[str, int]] = None,
    ) -> Dict[ObjectId, Dict[str, Any]]:
        """One $in query for a whole set of ids."""
        ids = list(ids)
        if not ids:
            return {}
        cursor = collection.find({"_id": {"$in": ids}}, projection)
        documents = await cursor.to_list(length=None)
        return {document["_id"]: document for document in documents}

    async def _populate_books(
        self,
        books: List[Dict[str, Any]],
        author_projection: Optional[Dict[str, int]] = AUTHOR_SUMMARY,
        category_projection: Optional[Dict[str, int]] = CATEGORY_SUMMARY,
        populate_author: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Replace author and category ids with the referenced documents.

        References that no longer resolve become None.
        """
        if populate_author:
            author_ids = {book["author"] for book in books if isinstance(book.get("author"), ObjectId)}
            authors = await self._fetch_by_ids(self.database.authors, author_ids, author_projection)
            for book in books:
                if isinstance(book.get("author"), ObjectId):
                    book["author"] = authors.get(book["author"])

        category_ids = {book["category"] for book in books if isinstance(book.get("category"), ObjectId)}
        categories = await self._fetch_by_ids(self.database.categories, category_ids, category_projection)
        for book in books:
            if isinstance(book.get("category"), ObjectId):
                book["category"] = categories.get(book["category"])
        return books

    async def _insert(
        self,
        collection: AsyncIOMotorCollection,
        document: Dict[str, Any],
        duplicate_message: str,
    ) -> Dict[str, Any]:
        now = datetime.utcnow()
        document["createdAt"] = now
        document["updatedAt"] = now
        try:
            result = await collection.insert_one(document)
        except DuplicateKeyError:
            logger.warning("Duplicate key on insert", collection=collection.name)
            raise ConflictError(duplicate_message)
        document["_id"] = result.inserted_id
        return document

    async def _update(
        self,
        collection: AsyncIOMotorCollection,
        object_id: ObjectId,
        document: Dict[str, Any],
        not_found_message: str,
        duplicate_message: str,
    ) -> Dict[str, Any]:
        try:
            updated = await collection.find_one_and_update(
                {"_id": object_id},
                _update_operation(document),
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning("Duplicate key on update", collection=collection.name, id=str(object_id))
            raise ConflictError(duplicate_message)
        if updated is None:
            raise NotFoundError(not_found_message)
        return updated

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    async def list_books(self, params: Mapping[str, str]) -> PageResult:
        """
        Get books with filtering, sorting, and pagination.

        Args:
            params: Raw query-string parameters

        Returns:
            PageResult with authors and categories resolved
        """
        query = build_book_query(params, self.default_page_size, self.max_page_size)
        try:
            page = await self._find_page(self.database.books, query)
        except PyMongoError as e:
            logger.error("Failed to get books", error=str(e), filter=str(query.filter))
            raise

        books = await self._populate_books(page["documents"])
        return PageResult(
            items=to_json_document(books),
            total=page["total"],
            page=query.pagination.page,
            limit=query.pagination.limit,
        )

    async def get_book(self, book_id: str) -> Dict[str, Any]:
        """Get one book with its full author and its category resolved."""
        object_id = parse_object_id(book_id, BOOK_NOT_FOUND)
        book = await self.database.books.find_one({"_id": object_id})
        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND)

        await self._populate_books([book], author_projection=None)
        return to_json_document(book)

    async def create_book(self, payload: Any) -> Dict[str, Any]:
        """
        Validate, check references, then insert a book.

        Raises:
            ValidationFailure: payload breaks a field rule
            NotFoundError: author or category does not exist
            ConflictError: isbn already used by another book
        """
        document, errors = validate_book(payload)
        _raise_if_invalid(errors)
        await self.guard.ensure_references(document)

        book = await self._insert(self.database.books, document, "Book with this ISBN already exists")
        logger.info("Book created", book_id=str(book["_id"]), title=book["title"])
        return to_json_document(book)

    async def update_book(self, book_id: str, payload: Any) -> Dict[str, Any]:
        """Merge the supplied fields into a book after the same checks as create."""
        object_id = parse_object_id(book_id, BOOK_NOT_FOUND)
        document, errors = validate_book(payload, partial=True)
        _raise_if_invalid(errors)
        await self.guard.ensure_references(document)

        book = await self._update(
            self.database.books, object_id, document,
            BOOK_NOT_FOUND, "Book with this ISBN already exists",
        )
        logger.info("Book updated", book_id=book_id, fields=sorted(document))
        return to_json_document(book)

    async def update_stock(self, book_id: str, payload: Any) -> Dict[str, Any]:
        """Set only the stock flag; the body must carry a JSON boolean."""
        object_id = parse_object_id(book_id, BOOK_NOT_FOUND)
        if not isinstance(payload, dict) or "inStock" not in payload:
            raise ValidationFailure("inStock is required", errors=[FieldError(field="inStock", message="inStock is required")])
        if not isinstance(payload["inStock"], bool):
            raise ValidationFailure(
                "Validation failed",
                errors=[FieldError(field="inStock", message="inStock must be true or false")],
            )

        book = await self._update(
            self.database.books, object_id, {"inStock": payload["inStock"]},
            BOOK_NOT_FOUND, "Book with this ISBN already exists",
        )
        logger.info("Book stock updated", book_id=book_id, in_stock=payload["inStock"])
        return to_json_document(book)

    async def update_rating(self, book_id: str, payload: Any) -> Dict[str, Any]:
        """Set only the rating; values outside [0, 5] leave the stored rating unchanged."""
        object_id = parse_object_id(book_id, BOOK_NOT_FOUND)
        if not isinstance(payload, dict) or "rating" not in payload:
            raise ValidationFailure("rating is required", errors=[FieldError(field="rating", message="rating is required")])

        rating = payload["rating"]
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise ValidationFailure(
                "Validation failed",
                errors=[FieldError(field="rating", message="Rating must be a number")],
            )
        document, errors = validate_book({"rating": rating}, partial=True)
        _raise_if_invalid(errors)

        book = await self._update(
            self.database.books, object_id, document,
            BOOK_NOT_FOUND, "Book with this ISBN already exists",
        )
        logger.info("Book rating updated", book_id=book_id, rating=rating)
        return to_json_document(book)

    async def delete_book(self, book_id: str) -> None:
        object_id = parse_object_id(book_id, BOOK_NOT_FOUND)
        book = await self.database.books.find_one_and_delete({"_id": object_id})
        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND)
        logger.info("Book deleted", book_id=book_id)

    async def books_by_author(self, author_id: str) -> List[Dict[str, Any]]:
        """All books of one author, newest first."""
        object_id = parse_object_id(author_id, AUTHOR_NOT_FOUND)
        cursor = self.database.books.find({"author": object_id}).sort("createdAt", -1)
        books = await cursor.to_list(length=None)
        await self._populate_books(books)
        return to_json_document(books)

    async def books_by_category(self, category_id: str) -> List[Dict[str, Any]]:
        """All books of one category, newest first."""
        object_id = parse_object_id(category_id, CATEGORY_NOT_FOUND)
        cursor = self.database.books.find({"category": object_id}).sort("createdAt", -1)
        books = await cursor.to_list(length=None)
        await self._populate_books(books)
        return to_json_document(books)

    async def book_overview(self) -> Dict[str, Any]:
        """Catalog-wide statistics, recomputed on every call."""
        pipeline = overview_pipeline(
            self.database.authors_collection_name,
            self.database.categories_collection_name,
        )
        result = await self.database.books.aggregate(pipeline).to_list(length=None)
        return to_json_document(shape_overview(result))

    async def top_rated_by_category(self) -> List[Dict[str, Any]]:
        pipeline = top_rated_by_category_pipeline(
            self.database.authors_collection_name,
            self.database.categories_collection_name,
        )
        result = await self.database.books.aggregate(pipeline).to_list(length=None)
        return to_json_document(result)

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    async def list_authors(self, params: Mapping[str, str]) -> PageResult:
        """Get authors with nationality filter, name search, sorting and pagination."""
        query = build_author_query(params, self.default_page_size, self.max_page_size)
        try:
            page = await self._find_page(self.database.authors, query)
        except PyMongoError as e:
            logger.error("Failed to get authors", error=str(e), filter=str(query.filter))
            raise

        return PageResult(
            items=to_json_document(page["documents"]),
            total=page["total"],
            page=query.pagination.page,
            limit=query.pagination.limit,
        )

    async def search_authors(self, params: Mapping[str, str]) -> List[Dict[str, Any]]:
        """Case-insensitive match of ``query`` against name or biography."""
        query = build_author_search(params, self.default_page_size, self.max_page_size)
        cursor = self.database.authors.find(query.filter).sort(query.sort).limit(query.pagination.limit)
        authors = await cursor.to_list(length=query.pagination.limit)
        return to_json_document(authors)

    async def authors_by_nationality(self, nationality: str, params: Mapping[str, str]) -> PageResult:
        query = build_nationality_query(nationality, params, self.default_page_size, self.max_page_size)
        page = await self._find_page(self.database.authors, query)
        return PageResult(
            items=to_json_document(page["documents"]),
            total=page["total"],
            page=query.pagination.page,
            limit=query.pagination.limit,
        )

    async def nationalities(self) -> List[str]:
        """Distinct non-empty nationalities, sorted."""
        values = await self.database.authors.distinct("nationality")
        return sorted(value for value in values if value)

    async def get_author(self, author_id: str) -> Dict[str, Any]:
        """One author with their books, categories resolved."""
        object_id = parse_object_id(author_id, AUTHOR_NOT_FOUND)
        author = await self.database.authors.find_one({"_id": object_id})
        if author is None:
            raise NotFoundError(AUTHOR_NOT_FOUND)

        books = await self.database.books.find({"author": object_id}).to_list(length=None)
        author["books"] = await self._populate_books(books, populate_author=False)
        return to_json_document(author)

    async def author_stats(self, author_id: str) -> Dict[str, Any]:
        """Per-author statistics derived from a fresh read of their books."""
        object_id = parse_object_id(author_id, AUTHOR_NOT_FOUND)
        author = await self.database.authors.find_one({"_id": object_id})
        if author is None:
            raise NotFoundError(AUTHOR_NOT_FOUND)

        books = await self.database.books.find({"author": object_id}).to_list(length=None)
        await self._populate_books(books, populate_author=False, category_projection={"name": 1})
        return to_json_document({
            "author": author,
            "statistics": summarize_author_books(books),
        })

    async def create_author(self, payload: Any) -> Dict[str, Any]:
        document, errors = validate_author(payload)
        _raise_if_invalid(errors)

        author = await self._insert(self.database.authors, document, "Author with this email already exists")
        logger.info("Author created", author_id=str(author["_id"]), name=author["name"])
        return to_json_document(author)

    async def update_author(self, author_id: str, payload: Any) -> Dict[str, Any]:
        object_id = parse_object_id(author_id, AUTHOR_NOT_FOUND)
        document, errors = validate_author(payload, partial=True)
        _raise_if_invalid(errors)

        author = await self._update(
            self.database.authors, object_id, document,
            AUTHOR_NOT_FOUND, "Author with this email already exists",
        )
        logger.info("Author updated", author_id=author_id, fields=sorted(document))
        return to_json_document(author)

    async def delete_author(self, author_id: str) -> None:
        """
        Delete an author that no book references.

        The reference count is taken right before the delete; a book created
        in between is not detected.
        """
        object_id = parse_object_id(author_id, AUTHOR_NOT_FOUND)
        author = await self.database.authors.find_one({"_id": object_id}, {"_id": 1})
        if author is None:
            raise NotFoundError(AUTHOR_NOT_FOUND)

        await self.guard.ensure_author_deletable(object_id)
        await self.database.authors.delete_one({"_id": object_id})
        logger.info("Author deleted", author_id=author_id)

    async def top_authors_by_books(self, params: Mapping[str, str]) -> List[Dict[str, Any]]:
        limit = parse_positive_int(params, "limit", 10, self.max_page_size)
        pipeline = top_authors_by_book_count_pipeline(limit, self.database.authors_collection_name)
        result = await self.database.books.aggregate(pipeline).to_list(length=None)
        return to_json_document(result)

    async def top_authors_by_rating(self, params: Mapping[str, str]) -> List[Dict[str, Any]]:
        limit = parse_positive_int(params, "limit", 10, self.max_page_size)
        min_books = parse_positive_int(params, "minBooks", 1)
        pipeline = top_authors_by_rating_pipeline(limit, min_books, self.database.authors_collection_name)
        result = await self.database.books.aggregate(pipeline).to_list(length=None)
        return to_json_document(result)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> List[Dict[str, Any]]:
        categories = await self.database.categories.find({}).sort("name", 1).to_list(length=None)
        return to_json_document(categories)

    async def get_category(self, category_id: str) -> Dict[str, Any]:
        object_id = parse_object_id(category_id, CATEGORY_NOT_FOUND)
        category = await self.database.categories.find_one({"_id": object_id})
        if category is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)
        return to_json_document(category)

    async def create_category(self, payload: Any) -> Dict[str, Any]:
        document, errors = validate_category(payload)
        _raise_if_invalid(errors)

        category = await self._insert(self.database.categories, document, "Category with this slug already exists")
        logger.info("Category created", category_id=str(category["_id"]), slug=category["slug"])
        return to_json_document(category)

    async def delete_category(self, category_id: str) -> None:
        object_id = parse_object_id(category_id, CATEGORY_NOT_FOUND)
        category = await self.database.categories.find_one({"_id": object_id}, {"_id": 1})
        if category is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)

        await self.guard.ensure_category_deletable(object_id)
        await self.database.categories.delete_one({"_id": object_id})
        logger.info("Category deleted", category_id=category_id)
