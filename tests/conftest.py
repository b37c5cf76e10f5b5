"""
Pytest configuration and shared fixtures.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.database import CatalogService
from api.dependencies import get_catalog_service
from api.main import create_app


class FakeCursor:
    """Stands in for a Motor cursor: records chained calls, returns canned documents."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = documents or []
        self.sort_args = None
        self.skip_value = None
        self.limit_value = None

    def sort(self, *args):
        self.sort_args = args
        return self

    def skip(self, value):
        self.skip_value = value
        return self

    def limit(self, value):
        self.limit_value = value
        return self

    async def to_list(self, length=None):
        return list(self.documents)


def make_collection(name: str) -> MagicMock:
    """Collection mock: find/aggregate are synchronous, everything else awaitable."""
    collection = MagicMock()
    collection.name = name
    collection.find.return_value = FakeCursor()
    collection.aggregate.return_value = FakeCursor()
    collection.find_one = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock()
    collection.distinct = AsyncMock(return_value=[])
    return collection


@pytest.fixture
def mock_database():
    """Catalog store handle with mocked collections."""
    database = MagicMock()
    database.authors = make_collection("authors")
    database.books = make_collection("books")
    database.categories = make_collection("categories")
    database.authors_collection_name = "authors"
    database.books_collection_name = "books"
    database.categories_collection_name = "categories"
    return database


@pytest.fixture
def catalog_service(mock_database):
    """Service under test, wired to the mocked store."""
    return CatalogService(mock_database)


@pytest.fixture
def author_id():
    return ObjectId()


@pytest.fixture
def sample_author(author_id):
    """Stored author document."""
    return {
        "_id": author_id,
        "name": "Frank Herbert",
        "nationality": "American",
        "email": "frank@example.com",
        "createdAt": datetime(2024, 1, 15, 10, 30),
        "updatedAt": datetime(2024, 1, 15, 10, 30),
    }


@pytest.fixture
def sample_book(author_id):
    """Stored book document referencing ``sample_author``."""
    return {
        "_id": ObjectId(),
        "title": "Dune",
        "author": author_id,
        "isbn": "9780441013593",
        "genre": "Science Fiction",
        "language": "English",
        "inStock": True,
        "rating": 4,
        "pages": 412,
        "createdAt": datetime(2024, 1, 15, 10, 30),
        "updatedAt": datetime(2024, 1, 15, 10, 30),
    }


@asynccontextmanager
async def no_store_lifespan(app):
    yield


@pytest.fixture
def mock_service():
    """Service double for route tests."""
    return AsyncMock(spec=CatalogService)


@pytest.fixture
def client(mock_service):
    """Test client whose routes talk to ``mock_service``."""
    app = create_app(lifespan_handler=no_store_lifespan)
    app.dependency_overrides[get_catalog_service] = lambda: mock_service
    return TestClient(app, raise_server_exceptions=False)
