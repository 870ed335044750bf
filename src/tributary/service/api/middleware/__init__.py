"""
API middleware components.
"""

from tributary.service.api.middleware.error import error_middleware

__all__ = ["error_middleware"]
