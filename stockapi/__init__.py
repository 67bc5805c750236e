"""
Stock API Package

This package contains a small REST service for managing stock records
stored in a PostgreSQL table.

Modules:
- config: Environment configuration and settings
- errors: Error kinds raised by the data access layer
- models: Pydantic request/response models
- db_client: SQLAlchemy-based data access for the stocks table
- fastapi_server: REST API routes and handlers
- cli: Command-line entry point (serve, status)
"""

__version__ = "0.1.0"
