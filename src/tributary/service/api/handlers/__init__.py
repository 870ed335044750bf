"""
API endpoint handlers.

Each handler class manages a resource type (objects, edges, lineage, etc.).
"""

import datetime
import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from aiohttp import web

from tributary.core.traversal import CancellationToken
from tributary.service.api.errors import ValidationError

if TYPE_CHECKING:
    from tributary.core.context import LineageContext
    from tributary.service.server import TributaryService


def _sanitize(obj: Any) -> Any:
    """Recursively convert datetimes and enums for JSON serialization."""
    if isinstance(obj, Enum):
        return obj.value
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_sanitize(x) for x in obj]
    return str(obj)


class BaseHandler:
    """
    Base class for API handlers.

    Provides access to the lineage context and common utilities.
    """

    def __init__(self, service: "TributaryService"):
        self.service = service

    @property
    def context(self) -> "LineageContext":
        return self.service.context

    @property
    def config(self) -> Any:
        """Get service configuration."""
        return self.service.context.config

    def get_request_id(self, request: web.Request) -> str | None:
        """Get request ID from request context."""
        return request.get("request_id")

    def cancel_token(self) -> CancellationToken:
        """Token bounded by ``traversal.timeout_s`` (no deadline when unset)."""
        timeout_s = self.config.get("traversal.timeout_s")
        return CancellationToken(timeout_s=float(timeout_s) if timeout_s else None)

    def optional_int(self, request: web.Request, name: str) -> int | None:
        raw = request.query.get(name)
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError:
            raise ValidationError(f"'{name}' must be an integer", details={name: raw}) from None

    async def read_json(self, request: web.Request) -> dict[str, Any]:
        """Parse a JSON object body."""
        try:
            body = await request.json()
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in request body: {e.msg}") from e
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    async def json_response(
        self,
        data: Any,
        status: int = 200,
        request: web.Request | None = None,
    ) -> web.Response:
        """Create JSON response with standard headers."""
        headers = {}
        if request:
            request_id = self.get_request_id(request)
            if request_id:
                headers["X-Request-ID"] = request_id
        return web.json_response(_sanitize(data), status=status, headers=headers)
