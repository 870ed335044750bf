"""
Edge reporting endpoint.
"""

import asyncio

from aiohttp import web

from tributary.core.ingestion import EdgeObservation
from tributary.service.api.errors import ValidationError
from tributary.service.api.handlers import BaseHandler

_REQUIRED = ("source", "source_kind", "target", "target_kind")


class EdgesHandler(BaseHandler):
    """Handler for reported derivations."""

    async def create(self, request: web.Request) -> web.Response:
        """
        POST /api/v1/edges

        Body:
            {"source": "raw.sales", "source_kind": "raw-table",
             "target": "staging.stg_sales", "target_kind": "staging-table",
             "relation": "COPY INTO"}

        Both endpoints are registered on first reference.
        """
        body = await self.read_json(request)
        missing = [key for key in _REQUIRED if key not in body]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}", details={"missing": missing})

        observation = EdgeObservation.from_dict(body)
        edge = await asyncio.to_thread(self.context.ingestor.report_observation, observation)
        return await self.json_response(edge.to_dict(), status=201, request=request)
