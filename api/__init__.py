"""
FastAPI RESTful API for the Library Catalog.

This package provides:
- Author, book and category CRUD endpoints
- Filtering, pagination and full-text search on listings
- Catalog and per-author statistics
- A uniform JSON response envelope
"""
