"""
Book endpoints.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status

from api.database import CatalogService
from api.dependencies import get_catalog_service
from api.models import ERROR_RESPONSES, acknowledged, counted, paginated, single

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("")
async def list_books(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """
    Get books with filtering, sorting, and pagination.

    - **page**: Page number (starts from 1, default 1)
    - **limit**: Items per page (default 10)
    - **genre**: Filter by genre
    - **category**: Filter by category id
    - **inStock**: `true` or `false`
    - **search**: Full-text search over title and description
    - **minRating** / **maxRating**: Rating range, either bound optional
    - **sortBy**: createdAt (default), updatedAt, title, rating, price, pages, publishedDate
    - **order**: asc or desc (default)
    """
    result = await service.list_books(request.query_params)
    return paginated(result)


@router.get("/stats/overview")
async def get_overview(service: CatalogService = Depends(get_catalog_service)):
    """Catalog totals, stock counts, average rating, genre and category breakdowns, top 5 books."""
    return single(await service.book_overview())


@router.get("/top-rated-by-category")
async def get_top_rated_by_category(service: CatalogService = Depends(get_catalog_service)):
    """Up to 10 best-rated books per category."""
    groups = await service.top_rated_by_category()
    return counted(groups)


@router.get("/author/{author_id}")
async def get_books_by_author(author_id: str, service: CatalogService = Depends(get_catalog_service)):
    """All books written by one author."""
    return counted(await service.books_by_author(author_id))


@router.get("/category/{category_id}")
async def get_books_by_category(category_id: str, service: CatalogService = Depends(get_catalog_service)):
    """All books in one category."""
    return counted(await service.books_by_category(category_id))


@router.get("/{book_id}")
async def get_book(book_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Get a single book with its author and category."""
    return single(await service.get_book(book_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    """
    Create a new book.

    The author (and category, when given) must already exist; a duplicate
    ISBN is rejected.
    """
    return single(await service.create_book(payload))


@router.put("/{book_id}")
async def update_book(book_id: str, payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    """Update the supplied fields of a book."""
    return single(await service.update_book(book_id, payload))


@router.patch("/{book_id}/stock")
async def update_book_stock(book_id: str, payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    """Set the stock flag: `{"inStock": true|false}`."""
    return single(await service.update_stock(book_id, payload))


@router.patch("/{book_id}/rating")
async def update_book_rating(book_id: str, payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    """Set the rating: `{"rating": 0..5}`."""
    return single(await service.update_rating(book_id, payload))


@router.delete("/{book_id}")
async def delete_book(book_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Delete a book."""
    await service.delete_book(book_id)
    return acknowledged("Book deleted successfully")
