"""
Author endpoints.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status

from api.database import CatalogService
from api.dependencies import get_catalog_service
from api.models import ERROR_RESPONSES, acknowledged, counted, paginated, single

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("")
async def list_authors(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """
    Get authors with filtering, sorting, and pagination.

    - **page** / **limit**: Pagination (defaults 1 and 10)
    - **nationality**: Exact nationality
    - **search**: Case-insensitive substring of the name
    - **sortBy**: name (default), nationality, birthDate, createdAt, updatedAt
    - **order**: asc (default) or desc
    """
    return paginated(await service.list_authors(request.query_params))


@router.get("/search")
async def search_authors(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """
    Search authors by name or biography.

    - **query**: Text to look for (required)
    - **nationality**: Exact nationality
    - **limit**: Maximum results (default 10)
    """
    return counted(await service.search_authors(request.query_params))


@router.get("/top-by-books")
async def top_authors_by_books(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """Authors with the most books (**limit**, default 10)."""
    return counted(await service.top_authors_by_books(request.query_params))


@router.get("/top-by-rating")
async def top_authors_by_rating(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """Authors with the best average rating (**limit**, default 10; **minBooks**, default 1)."""
    return counted(await service.top_authors_by_rating(request.query_params))


@router.get("/nationalities")
async def list_nationalities(service: CatalogService = Depends(get_catalog_service)):
    return counted(await service.nationalities())


@router.get("/nationality/{nationality}")
async def authors_by_nationality(
    nationality: str,
    request: Request,
    service: CatalogService = Depends(get_catalog_service),
):
    """Authors of one nationality, sorted by name, paginated."""
    return paginated(await service.authors_by_nationality(nationality, request.query_params))


@router.get("/{author_id}")
async def get_author(author_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Get a single author with their books."""
    return single(await service.get_author(author_id))


@router.get("/{author_id}/stats")
async def get_author_stats(author_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Totals, ratings, genres and notable books of one author."""
    return single(await service.author_stats(author_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_author(payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    return single(await service.create_author(payload), message="Author created successfully")


@router.put("/{author_id}")
async def update_author(author_id: str, payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    return single(await service.update_author(author_id, payload), message="Author updated successfully")


@router.delete("/{author_id}")
async def delete_author(author_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Delete an author; refused while any book references them."""
    await service.delete_author(author_id)
    return acknowledged("Author deleted successfully")
