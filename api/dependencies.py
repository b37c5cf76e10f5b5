"""
FastAPI dependencies.
"""

from fastapi import Request

from api.database import CatalogService


def get_catalog_service(request: Request) -> CatalogService:
    """Service bound to the store handle opened in the application lifespan."""
    return request.app.state.catalog_service
