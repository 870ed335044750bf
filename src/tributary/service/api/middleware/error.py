"""
Error handling middleware.

Provides consistent error responses and request ID tracking.
"""

import json
import traceback
import uuid
from typing import Callable

from aiohttp import web

from tributary.exceptions import TributaryError
from tributary.service.api.errors import APIError, ErrorCode, api_error_from
from tributary.utils.logging import get_logger

logger = get_logger("tributary.api.middleware.error")


def _error_response(error: APIError, request: web.Request, request_id: str) -> web.Response:
    logger.warning(
        f"API error: {error.code.value} - {error.message}",
        extra={
            "request_id": request_id,
            "error_code": error.code.value,
            "status": error.status,
            "path": request.path,
            "method": request.method,
        },
    )
    return web.json_response(
        error.to_dict(request_id),
        status=error.status,
        headers={"X-Request-ID": request_id},
    )


@web.middleware
async def error_middleware(request: web.Request, handler: Callable) -> web.Response:
    """
    Middleware for consistent error handling.

    - Adds request_id to all requests
    - Converts APIError and domain errors into structured JSON responses
    - Catches unexpected errors and returns generic 500
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    request["request_id"] = request_id

    try:
        response = await handler(request)
        response.headers["X-Request-ID"] = request_id
        return response

    except APIError as e:
        return _error_response(e, request, request_id)

    except TributaryError as e:
        return _error_response(api_error_from(e), request, request_id)

    except json.JSONDecodeError as e:
        logger.warning(
            f"JSON decode error: {e}",
            extra={"request_id": request_id, "path": request.path},
        )
        return web.json_response(
            {
                "error": {
                    "code": ErrorCode.INVALID_REQUEST.value,
                    "message": "Invalid JSON in request body",
                    "request_id": request_id,
                }
            },
            status=400,
            headers={"X-Request-ID": request_id},
        )

    except web.HTTPException:
        # Let aiohttp handle its own HTTP exceptions
        raise

    except Exception as e:
        logger.error(
            f"Unexpected error: {e}",
            extra={
                "request_id": request_id,
                "path": request.path,
                "method": request.method,
                "traceback": traceback.format_exc(),
            },
            exc_info=True,
        )
        return web.json_response(
            {
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": "An internal error occurred",
                    "request_id": request_id,
                }
            },
            status=500,
            headers={"X-Request-ID": request_id},
        )
