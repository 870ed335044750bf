"""
Health endpoint.
"""

import time

from aiohttp import web

from tributary import __version__
from tributary.service.api.handlers import BaseHandler


class HealthHandler(BaseHandler):
    """Handler for the health check endpoint."""

    def __init__(self, service):
        super().__init__(service)
        self._start_time = time.time()

    async def health(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/health

        Returns service health and graph size.
        """
        context = self.context
        data = {
            "status": "ok",
            "version": __version__,
            "uptime_seconds": round(time.time() - self._start_time, 2),
            "objects": len(context.catalog),
            "edges": len(context.edges),
            "state_enabled": context.state_store is not None,
            "background_running": self.service.background_running,
            "snapshot": context.queries.snapshot_status(),
        }
        return await self.json_response(data, request=request)
