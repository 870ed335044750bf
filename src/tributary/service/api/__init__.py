"""
REST API module for Tributary.

Provides HTTP endpoints for lineage queries and edge reporting.
"""

from tributary.service.api.routes import setup_routes

__all__ = ["setup_routes"]
