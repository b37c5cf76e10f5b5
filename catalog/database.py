"""
MongoDB store handle for the catalog.
Handles connection lifecycle, collection handles and index creation.
"""

from typing import Any, Dict, Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ASCENDING, TEXT
from pymongo.errors import ConnectionFailure
import structlog

logger = structlog.get_logger(__name__)


class CatalogDatabase:
    """
    Explicitly opened and closed handle on the catalog database.

    Constructed once at startup and passed to whatever needs the store;
    there is no module-level connection.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        authors_collection: str = "authors",
        books_collection: str = "books",
        categories_collection: str = "categories",
    ):
        """
        Initialize the store handle without connecting.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            authors_collection: Name of the authors collection
            books_collection: Name of the books collection
            categories_collection: Name of the categories collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.authors_collection_name = authors_collection
        self.books_collection_name = books_collection
        self.categories_collection_name = categories_collection
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.authors: Optional[AsyncIOMotorCollection] = None
        self.books: Optional[AsyncIOMotorCollection] = None
        self.categories: Optional[AsyncIOMotorCollection] = None

    @classmethod
    def from_config(cls, config) -> "CatalogDatabase":
        """Build a handle from a CatalogConfig."""
        return cls(
            connection_url=config.mongodb_url,
            database_name=config.mongodb_database,
            authors_collection=config.authors_collection,
            books_collection=config.books_collection,
            categories_collection=config.categories_collection,
        )

    async def connect(self) -> None:
        """Establish connection to MongoDB and make sure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.authors = self.database[self.authors_collection_name]
            self.books = self.database[self.books_collection_name]
            self.categories = self.database[self.categories_collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self.authors = None
            self.books = None
            self.categories = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create the indexes the catalog relies on.

        Uniqueness of isbn and email only applies when the field is present,
        hence sparse indexes.
        """
        try:
            # Full-text search over title and description
            await self.books.create_index([("title", TEXT), ("description", TEXT)], name="book_text")

            # Reference lookups and delete guards
            await self.books.create_index("author")
            await self.books.create_index("category")

            await self.books.create_index("isbn", unique=True, sparse=True)
            await self.books.create_index([("createdAt", ASCENDING)])

            await self.authors.create_index("name")
            await self.authors.create_index("nationality")
            await self.authors.create_index("email", unique=True, sparse=True)

            await self.categories.create_index("slug", unique=True)

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status and collection counts
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "authors_count": await self.authors.estimated_document_count(),
                "books_count": await self.books.estimated_document_count(),
                "categories_count": await self.categories.estimated_document_count(),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
