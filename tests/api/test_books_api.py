"""
Tests for the book and category endpoints.
"""

from unittest.mock import patch

from api.models import PageResult
from catalog.errors import ConflictError, NotFoundError, ValidationFailure
from catalog.models import FieldError


def test_health_check(client):
    """Health endpoint answers without a store attached."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database_status"] == "unavailable"
    assert "timestamp" in data
    assert "version" in data


def test_list_books_envelope(client, mock_service):
    mock_service.list_books.return_value = PageResult(
        items=[{"_id": "b1", "title": "Dune"}], total=12, page=2, limit=5,
    )

    response = client.get("/api/books?genre=Fantasy&page=2&limit=5")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [{"_id": "b1", "title": "Dune"}],
        "totalPages": 3,
        "currentPage": 2,
        "total": 12,
    }
    params = mock_service.list_books.await_args.args[0]
    assert params["genre"] == "Fantasy"
    assert params["limit"] == "5"


def test_list_books_empty(client, mock_service):
    mock_service.list_books.return_value = PageResult(items=[], total=0, page=1, limit=10)

    data = client.get("/api/books").json()

    assert data["data"] == []
    assert data["totalPages"] == 0
    assert data["total"] == 0


def test_list_books_bad_parameter(client, mock_service):
    mock_service.list_books.side_effect = ValidationFailure("inStock must be 'true' or 'false'")

    response = client.get("/api/books?inStock=maybe")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "inStock must be 'true' or 'false'"}


def test_get_book(client, mock_service):
    mock_service.get_book.return_value = {"_id": "b1", "title": "Dune", "author": {"name": "Frank Herbert"}}

    response = client.get("/api/books/b1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": mock_service.get_book.return_value}
    mock_service.get_book.assert_awaited_once_with("b1")


def test_get_book_not_found(client, mock_service):
    mock_service.get_book.side_effect = NotFoundError("Book not found")

    response = client.get("/api/books/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Book not found"}


def test_create_book_returns_201(client, mock_service):
    mock_service.create_book.return_value = {"_id": "b1", "title": "Dune"}

    response = client.post("/api/books", json={"title": "Dune", "author": "a1"})

    assert response.status_code == 201
    assert response.json()["data"]["_id"] == "b1"
    mock_service.create_book.assert_awaited_once_with({"title": "Dune", "author": "a1"})


def test_create_book_validation_errors(client, mock_service):
    mock_service.create_book.side_effect = ValidationFailure(
        errors=[FieldError(field="title", message="Book title is required")],
    )

    response = client.post("/api/books", json={})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Validation failed",
        "errors": [{"field": "title", "message": "Book title is required"}],
    }


def test_create_book_unknown_author(client, mock_service):
    mock_service.create_book.side_effect = NotFoundError("Author not found")

    response = client.post("/api/books", json={"title": "Dune", "author": "a1"})

    assert response.status_code == 404
    assert response.json()["message"] == "Author not found"


def test_create_book_duplicate_isbn(client, mock_service):
    mock_service.create_book.side_effect = ConflictError("Book with this ISBN already exists")

    response = client.post("/api/books", json={"title": "Dune", "author": "a1", "isbn": "9780441013593"})

    assert response.status_code == 400
    assert response.json()["message"] == "Book with this ISBN already exists"


def test_malformed_json_body(client):
    response = client.post(
        "/api/books", content="{not json", headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid request body"}


def test_update_stock(client, mock_service):
    mock_service.update_stock.return_value = {"_id": "b1", "inStock": False}

    response = client.patch("/api/books/b1/stock", json={"inStock": False})

    assert response.status_code == 200
    assert response.json()["data"]["inStock"] is False
    mock_service.update_stock.assert_awaited_once_with("b1", {"inStock": False})


def test_update_rating_out_of_range(client, mock_service):
    mock_service.update_rating.side_effect = ValidationFailure(
        errors=[FieldError(field="rating", message="Rating must be between 0 and 5")],
    )

    response = client.patch("/api/books/b1/rating", json={"rating": 6})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "rating"


def test_delete_book(client, mock_service):
    response = client.delete("/api/books/b1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Book deleted successfully"}


def test_overview_route_is_not_shadowed_by_book_id(client, mock_service):
    mock_service.book_overview.return_value = {"totalBooks": 0}

    response = client.get("/api/books/stats/overview")

    assert response.status_code == 200
    assert response.json()["data"] == {"totalBooks": 0}
    mock_service.get_book.assert_not_awaited()


def test_top_rated_by_category_is_counted(client, mock_service):
    mock_service.top_rated_by_category.return_value = [
        {"category": {"name": "Classics"}, "books": [], "bookCount": 0},
        {"category": {"name": "Uncategorized"}, "books": [], "bookCount": 0},
    ]

    data = client.get("/api/books/top-rated-by-category").json()

    assert data["success"] is True
    assert data["count"] == 2


def test_books_by_author(client, mock_service):
    mock_service.books_by_author.return_value = [{"_id": "b1"}]

    data = client.get("/api/books/author/a1").json()

    assert data == {"success": True, "data": [{"_id": "b1"}], "count": 1}


def test_unexpected_error_hides_details(client, mock_service):
    mock_service.get_book.side_effect = RuntimeError("connection reset")

    response = client.get("/api/books/b1")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Server Error"}


def test_unexpected_error_shows_details_in_debug(client, mock_service):
    mock_service.get_book.side_effect = RuntimeError("connection reset")

    with patch("api.main.api_config.debug", True):
        response = client.get("/api/books/b1")

    assert response.status_code == 500
    assert response.json()["error"] == "connection reset"


def test_unknown_route(client):
    response = client.get("/api/shelves")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_list_categories(client, mock_service):
    mock_service.list_categories.return_value = [{"_id": "c1", "name": "Classics", "slug": "classics"}]

    data = client.get("/api/categories").json()

    assert data["count"] == 1
    assert data["data"][0]["slug"] == "classics"


def test_create_category(client, mock_service):
    mock_service.create_category.return_value = {"_id": "c1", "name": "Classics", "slug": "classics"}

    response = client.post("/api/categories", json={"name": "Classics"})

    assert response.status_code == 201
    assert response.json()["data"]["slug"] == "classics"


def test_delete_category_in_use(client, mock_service):
    mock_service.delete_category.side_effect = ConflictError("Cannot delete category with 2 associated books.")

    response = client.delete("/api/categories/c1")

    assert response.status_code == 400
    assert response.json()["success"] is False
