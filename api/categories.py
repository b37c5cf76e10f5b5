"""
Category endpoints.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status

from api.database import CatalogService
from api.dependencies import get_catalog_service
from api.models import ERROR_RESPONSES, acknowledged, counted, single

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("")
async def list_categories(service: CatalogService = Depends(get_catalog_service)):
    """All categories, sorted by name."""
    return counted(await service.list_categories())


@router.get("/{category_id}")
async def get_category(category_id: str, service: CatalogService = Depends(get_catalog_service)):
    return single(await service.get_category(category_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(payload: Any = Body(None), service: CatalogService = Depends(get_catalog_service)):
    """Create a category; the slug is derived from the name when omitted."""
    return single(await service.create_category(payload))


@router.delete("/{category_id}")
async def delete_category(category_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Delete a category; refused while any book references it."""
    await service.delete_category(category_id)
    return acknowledged("Category deleted successfully")
