"""
API route registration.

Registers all API endpoints with versioned prefix.
"""

from typing import TYPE_CHECKING

from aiohttp import web

from tributary.service.api.handlers.edges import EdgesHandler
from tributary.service.api.handlers.health import HealthHandler
from tributary.service.api.handlers.lineage import LineageHandler
from tributary.service.api.handlers.objects import ObjectsHandler
from tributary.service.api.handlers.rules import RulesHandler

if TYPE_CHECKING:
    from tributary.service.server import TributaryService


def setup_routes(app: web.Application, service: "TributaryService") -> None:
    """
    Register all API routes.

    Args:
        app: aiohttp Application
        service: TributaryService instance for handler access
    """
    health = HealthHandler(service)
    objects = ObjectsHandler(service)
    edges = EdgesHandler(service)
    lineage = LineageHandler(service)
    rules = RulesHandler(service)

    prefix = "/api/v1"

    app.router.add_routes(
        [
            # Health
            web.get(f"{prefix}/health", health.health),
            # Objects
            web.get(f"{prefix}/objects", objects.list),
            web.post(f"{prefix}/objects", objects.create),
            web.get(f"{prefix}/objects/{{object_id}}", objects.get),
            web.get(f"{prefix}/objects/{{object_id}}/edges", objects.edges),
            # Traversals
            web.get(f"{prefix}/objects/{{object_id}}/impact", lineage.impact),
            web.get(f"{prefix}/objects/{{object_id}}/lineage", lineage.lineage),
            # Edges
            web.post(f"{prefix}/edges", edges.create),
            # Lineage map and snapshot
            web.get(f"{prefix}/lineage/map", lineage.map),
            web.get(f"{prefix}/lineage/snapshot", lineage.snapshot_status),
            web.post(f"{prefix}/lineage/snapshot", lineage.rebuild_snapshot),
            # Rules
            web.get(f"{prefix}/rules", rules.list),
        ]
    )
