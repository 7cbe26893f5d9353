"""
FastAPI RESTful API for the Bookshelf book catalog.

This module provides a REST API for:
- User registration and login
- Bearer-token authentication for write operations
- Book catalog create, read, update and delete
"""
