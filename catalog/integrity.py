"""
Referential integrity checks between books, authors and categories.

The checks run against the store immediately before a write and are not
atomic with it: a book created while its author is being deleted can still
slip through. No transactions are used.
"""

from bson import ObjectId
import structlog

from .database import CatalogDatabase
from .errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class IntegrityGuard:
    """Existence checks for references and reference counts for deletes."""

    def __init__(self, database: CatalogDatabase):
        self.database = database

    async def ensure_author_exists(self, author_id: ObjectId) -> None:
        """Raise NotFoundError unless the author exists."""
        author = await self.database.authors.find_one({"_id": author_id}, {"_id": 1})
        if author is None:
            logger.warning("Referenced author does not exist", author_id=str(author_id))
            raise NotFoundError("Author not found")

    async def ensure_category_exists(self, category_id: ObjectId) -> None:
        """Raise NotFoundError unless the category exists."""
        category = await self.database.categories.find_one({"_id": category_id}, {"_id": 1})
        if category is None:
            logger.warning("Referenced category does not exist", category_id=str(category_id))
            raise NotFoundError("Category not found")

    async def ensure_references(self, document: dict) -> None:
        """Check the author, then the category, of a book write when present."""
        if document.get("author") is not None:
            await self.ensure_author_exists(document["author"])
        if document.get("category") is not None:
            await self.ensure_category_exists(document["category"])

    async def ensure_author_deletable(self, author_id: ObjectId) -> None:
        """
        Refuse to delete an author that books still reference.

        The count is taken now, never from a cached value.

        Raises:
            ConflictError: carrying ``bookCount`` when any book references the author
        """
        book_count = await self.database.books.count_documents({"author": author_id})
        if book_count > 0:
            logger.warning("Author deletion blocked", author_id=str(author_id), book_count=book_count)
            raise ConflictError(
                f"Cannot delete author with {book_count} associated books. "
                "Delete books first or reassign them to another author.",
                details={"bookCount": book_count},
            )

    async def ensure_category_deletable(self, category_id: ObjectId) -> None:
        """Refuse to delete a category that books still reference."""
        book_count = await self.database.books.count_documents({"category": category_id})
        if book_count > 0:
            logger.warning("Category deletion blocked", category_id=str(category_id), book_count=book_count)
            raise ConflictError(
                f"Cannot delete category with {book_count} associated books. "
                "Move the books to another category first.",
                details={"bookCount": book_count},
            )
