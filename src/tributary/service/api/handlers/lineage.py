"""
Impact, lineage and lineage map endpoints.
"""

import asyncio

from aiohttp import web

from tributary.core.catalog import parse_layer
from tributary.service.api.handlers import BaseHandler
from tributary.utils.logging import get_logger

logger = get_logger("tributary.api.lineage")


class LineageHandler(BaseHandler):
    """Handler for traversals and the materialized snapshot."""

    async def impact(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/objects/{object_id}/impact

        Query params:
            max_depth: Hops to follow (default from config)
        """
        result = await self.context.queries.impact_of_async(
            request.match_info["object_id"],
            self.optional_int(request, "max_depth"),
            self.cancel_token(),
        )
        return await self.json_response(result.to_dict(), request=request)

    async def lineage(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/objects/{object_id}/lineage

        Query params:
            max_depth: Hops to follow (default from config)
        """
        result = await self.context.queries.lineage_of_async(
            request.match_info["object_id"],
            self.optional_int(request, "max_depth"),
            self.cancel_token(),
        )
        return await self.json_response(result.to_dict(), request=request)

    async def map(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/lineage/map

        The latest published snapshot, never a live traversal.

        Query params:
            layer: Only rows whose source or target is in this layer
        """
        layer = request.query.get("layer")
        snapshot = self.context.queries.full_map()
        return await self.json_response(
            snapshot.to_dict(parse_layer(layer) if layer else None),
            request=request,
        )

    async def snapshot_status(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/lineage/snapshot
        """
        return await self.json_response(self.context.queries.snapshot_status(), request=request)

    async def rebuild_snapshot(self, request: web.Request) -> web.Response:
        """
        POST /api/v1/lineage/snapshot

        Rebuild and publish a snapshot now.
        """
        snapshot = await asyncio.to_thread(self.context.materializer.rebuild)
        logger.info(f"Snapshot v{snapshot.version} rebuilt on request {self.get_request_id(request)}")
        return await self.json_response(
            {
                "version": snapshot.version,
                "built_at": snapshot.built_at,
                "edge_count": snapshot.edge_count,
                "object_count": snapshot.object_count,
            },
            status=201,
            request=request,
        )
