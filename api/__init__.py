"""
FastAPI RESTful API for the Book Library.

This module provides a REST API for:
- Creating, reading, updating and deleting book records
- Paginated, sortable listing and substring search
- Bulk deletion by identifier list
- Catalog statistics
"""
