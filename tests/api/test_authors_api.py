"""
Tests for the author endpoints.
"""

from api.models import PageResult
from catalog.errors import ConflictError, NotFoundError, ValidationFailure


def test_list_authors(client, mock_service):
    mock_service.list_authors.return_value = PageResult(
        items=[{"_id": "a1", "name": "Chinua Achebe"}], total=1, page=1, limit=10,
    )

    response = client.get("/api/authors?nationality=Nigerian")

    assert response.status_code == 200
    data = response.json()
    assert data["totalPages"] == 1
    assert data["currentPage"] == 1
    assert data["data"][0]["name"] == "Chinua Achebe"


def test_search_requires_query(client, mock_service):
    mock_service.search_authors.side_effect = ValidationFailure("Search query is required")

    response = client.get("/api/authors/search")

    assert response.status_code == 400
    assert response.json()["message"] == "Search query is required"


def test_search_authors(client, mock_service):
    mock_service.search_authors.return_value = [{"_id": "a1"}, {"_id": "a2"}]

    data = client.get("/api/authors/search?query=an").json()

    assert data["count"] == 2
    assert mock_service.search_authors.await_args.args[0]["query"] == "an"


def test_nationalities(client, mock_service):
    mock_service.nationalities.return_value = ["American", "British"]

    data = client.get("/api/authors/nationalities").json()

    assert data == {"success": True, "data": ["American", "British"], "count": 2}
    mock_service.get_author.assert_not_awaited()


def test_authors_by_nationality(client, mock_service):
    mock_service.authors_by_nationality.return_value = PageResult(items=[], total=0, page=1, limit=10)

    response = client.get("/api/authors/nationality/Japanese")

    assert response.status_code == 200
    assert mock_service.authors_by_nationality.await_args.args[0] == "Japanese"


def test_get_author_not_found(client, mock_service):
    mock_service.get_author.side_effect = NotFoundError("Author not found")

    response = client.get("/api/authors/a404")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Author not found"}


def test_author_stats(client, mock_service):
    mock_service.author_stats.return_value = {"author": {"name": "X"}, "statistics": {"totalBooks": 0}}

    data = client.get("/api/authors/a1/stats").json()

    assert data["data"]["statistics"]["totalBooks"] == 0


def test_create_author(client, mock_service):
    mock_service.create_author.return_value = {"_id": "a1", "name": "Octavia Butler"}

    response = client.post("/api/authors", json={"name": "Octavia Butler"})

    assert response.status_code == 201
    assert response.json() == {
        "success": True,
        "data": {"_id": "a1", "name": "Octavia Butler"},
        "message": "Author created successfully",
    }


def test_update_author(client, mock_service):
    mock_service.update_author.return_value = {"_id": "a1", "nationality": "American"}

    response = client.put("/api/authors/a1", json={"nationality": "American"})

    assert response.status_code == 200
    assert response.json()["message"] == "Author updated successfully"
    mock_service.update_author.assert_awaited_once_with("a1", {"nationality": "American"})


def test_delete_author_with_books(client, mock_service):
    mock_service.delete_author.side_effect = ConflictError(
        "Cannot delete author with 3 associated books. "
        "Delete books first or reassign them to another author.",
        details={"bookCount": 3},
    )

    response = client.delete("/api/authors/a1")

    assert response.status_code == 400
    assert "3 associated books" in response.json()["message"]


def test_delete_author(client, mock_service):
    response = client.delete("/api/authors/a1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Author deleted successfully"}


def test_top_authors_by_rating(client, mock_service):
    mock_service.top_authors_by_rating.return_value = [{"name": "X", "averageRating": 4.5}]

    data = client.get("/api/authors/top-by-rating?minBooks=2").json()

    assert data["count"] == 1
    assert mock_service.top_authors_by_rating.await_args.args[0]["minBooks"] == "2"
