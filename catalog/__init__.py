"""
Library catalog core.

This package holds everything below the HTTP layer:
- MongoDB store handle and indexes
- Author, Book and Category models with explicit validation
- Query building from query-string parameters
- Aggregation pipelines for catalog statistics
- Referential integrity checks for writes and deletes
"""
