"""
Object catalog endpoints.
"""

import asyncio

from aiohttp import web

from tributary.core.catalog import parse_kind, parse_layer
from tributary.service.api.errors import ValidationError
from tributary.service.api.handlers import BaseHandler


class ObjectsHandler(BaseHandler):
    """Handler for catalogued objects and their direct edges."""

    async def list(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/objects

        Query params:
            layer: Filter by layer
            kind: Filter by object kind
            active: "true" to hide dropped objects
        """
        layer = request.query.get("layer")
        kind = request.query.get("kind")
        active_only = request.query.get("active", "").lower() in ("1", "true", "yes")

        objects = self.context.catalog.list(
            layer=parse_layer(layer) if layer else None,
            kind=parse_kind(kind) if kind else None,
            include_inactive=not active_only,
        )
        return await self.json_response(
            {"objects": [obj.to_dict() for obj in objects], "total": len(objects)},
            request=request,
        )

    async def get(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/objects/{object_id}
        """
        obj = self.context.catalog.get(request.match_info["object_id"])
        data = obj.to_dict()
        data["downstream_edges"] = len(self.context.edges.edges_from(obj.id))
        data["upstream_edges"] = len(self.context.edges.edges_to(obj.id))
        return await self.json_response(data, request=request)

    async def create(self, request: web.Request) -> web.Response:
        """
        POST /api/v1/objects

        Body: {"id": "raw.sales", "kind": "raw-table", "layer": "landing"}
        Layer is optional when it can be inferred from the schema.
        """
        body = await self.read_json(request)
        if "id" not in body or "kind" not in body:
            raise ValidationError("'id' and 'kind' are required")

        obj = await asyncio.to_thread(self.context.catalog.register, body["id"], body["kind"], body.get("layer"))
        return await self.json_response(obj.to_dict(), status=201, request=request)

    async def edges(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/objects/{object_id}/edges

        Direct (one-hop) edges in both directions.
        """
        obj = self.context.catalog.get(request.match_info["object_id"])
        outgoing = sorted(self.context.edges.edges_from(obj.id), key=lambda e: e.target_id)
        incoming = sorted(self.context.edges.edges_to(obj.id), key=lambda e: e.source_id)
        return await self.json_response(
            {
                "object_id": obj.id,
                "outgoing": [edge.to_dict() for edge in outgoing],
                "incoming": [edge.to_dict() for edge in incoming],
            },
            request=request,
        )
