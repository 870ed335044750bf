"""
Tests for the HTTP API: routes, handlers and error mapping.
"""

from __future__ import annotations

import asyncio
import time
from unittest.mock import patch

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from tributary.config import Config
from tributary.core.context import LineageContext
from tributary.exceptions import StoreUnavailableError, TraversalCancelledError, TributaryError
from tributary.service.api.errors import APIError, ErrorCode, api_error_from
from tributary.service.server import TributaryService, create_app


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


def _retail_context(config: dict | None = None) -> LineageContext:
    context = LineageContext(Config(config or {}))
    report = context.ingestor.report
    report("raw.sales", "raw-table", "staging.stg_sales", "staging-table", "COPY INTO")
    report("staging.stg_sales", "staging-table", "curated.fact_sales", "curated-fact", "INSERT SELECT")
    report("curated.fact_sales", "curated-fact", "analytics.mv_daily_summary", "materialized-view", "AGGREGATE")
    return context


async def _make_client(app: web.Application) -> TestClient:
    server = TestServer(app)
    client = TestClient(server)
    await client.start_server()
    return client


@pytest.fixture
def service():
    return TributaryService(context=_retail_context())


@pytest.fixture
async def client(service):
    client = await _make_client(create_app(service, enable_background=False))
    yield client
    await client.close()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error, code, status",
        [
            (StoreUnavailableError("down"), ErrorCode.SERVICE_UNAVAILABLE, 503),
            (TraversalCancelledError("raw.sales", 2, "timed out"), ErrorCode.CANCELLED, 408),
            (TributaryError("odd"), ErrorCode.INTERNAL_ERROR, 500),
        ],
    )
    def test_api_error_from(self, error, code, status):
        api_error = api_error_from(error)
        assert api_error.code == code
        assert api_error.status == status
        assert api_error.message == error.message

    def test_to_dict(self):
        error = APIError(ErrorCode.OBJECT_NOT_FOUND, "Unknown object: x.y", 404, {"object_id": "x.y"})
        assert error.to_dict("req_1") == {
            "error": {
                "code": "OBJECT_NOT_FOUND",
                "message": "Unknown object: x.y",
                "details": {"object_id": "x.y"},
                "request_id": "req_1",
            }
        }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status == 200
        assert resp.headers["X-Request-ID"].startswith("req_")
        body = await resp.json()
        assert body["status"] == "ok"
        assert body["objects"] == 4
        assert body["edges"] == 3
        assert body["snapshot"]["version"] == 0


class TestObjects:
    async def test_list(self, client):
        resp = await client.get("/api/v1/objects", params={"layer": "curated"})
        assert resp.status == 200
        body = await resp.json()
        assert body["total"] == 1
        assert body["objects"][0]["id"] == "curated.fact_sales"

    async def test_list_unknown_layer(self, client):
        resp = await client.get("/api/v1/objects", params={"layer": "gold"})
        assert resp.status == 400
        assert (await resp.json())["error"]["code"] == "VALIDATION_ERROR"

    async def test_get(self, client):
        resp = await client.get("/api/v1/objects/STAGING.STG_SALES")
        assert resp.status == 200
        body = await resp.json()
        assert body["id"] == "staging.stg_sales"
        assert body["upstream_edges"] == 1
        assert body["downstream_edges"] == 1

    async def test_get_unknown(self, client):
        resp = await client.get("/api/v1/objects/raw.customers")
        assert resp.status == 404
        body = await resp.json()
        assert body["error"]["code"] == "OBJECT_NOT_FOUND"
        assert body["error"]["request_id"].startswith("req_")

    async def test_create(self, client, service):
        resp = await client.post("/api/v1/objects", json={"id": "raw.customers", "kind": "raw-table"})
        assert resp.status == 201
        assert (await resp.json())["layer"] == "landing"
        assert service.context.catalog.exists("raw.customers")

    async def test_create_missing_fields(self, client):
        resp = await client.post("/api/v1/objects", json={"id": "raw.customers"})
        assert resp.status == 400

    async def test_create_invalid_id(self, client):
        resp = await client.post("/api/v1/objects", json={"id": "customers", "kind": "raw-table"})
        assert resp.status == 400
        assert (await resp.json())["error"]["code"] == "VALIDATION_ERROR"

    async def test_direct_edges(self, client):
        resp = await client.get("/api/v1/objects/staging.stg_sales/edges")
        body = await resp.json()
        assert [e["source_id"] for e in body["incoming"]] == ["raw.sales"]
        assert [e["target_id"] for e in body["outgoing"]] == ["curated.fact_sales"]


class TestEdges:
    async def test_report_edge(self, client):
        resp = await client.post(
            "/api/v1/edges",
            json={
                "source": "curated.fact_sales",
                "source_kind": "curated-fact",
                "target": "analytics.agg_daily_sales",
                "target_kind": "aggregate-table",
                "relation": "AGGREGATE",
            },
        )
        assert resp.status == 201
        body = await resp.json()
        assert body["target_id"] == "analytics.agg_daily_sales"
        assert body["relation_kind"] == "AGGREGATE"

        resp = await client.get("/api/v1/objects/raw.sales/impact")
        ids = [s["object_id"] for s in (await resp.json())["steps"]]
        assert "analytics.agg_daily_sales" in ids

    async def test_self_edge(self, client):
        resp = await client.post(
            "/api/v1/edges",
            json={"source": "raw.sales", "source_kind": "raw-table", "target": "raw.sales", "target_kind": "raw-table"},
        )
        assert resp.status == 400

    async def test_missing_fields(self, client):
        resp = await client.post("/api/v1/edges", json={"source": "raw.sales"})
        assert resp.status == 400
        body = await resp.json()
        assert body["error"]["details"]["missing"] == ["source_kind", "target", "target_kind"]

    async def test_invalid_json(self, client):
        resp = await client.post("/api/v1/edges", data="{not json", headers={"Content-Type": "application/json"})
        assert resp.status == 400

    async def test_store_unavailable(self, client, service):
        with patch.object(
            service.context.ingestor, "report_observation", side_effect=StoreUnavailableError("db down")
        ):
            resp = await client.post(
                "/api/v1/edges",
                json={"source": "raw.a", "source_kind": "raw-table", "target": "staging.b", "target_kind": "staging-table"},
            )
        assert resp.status == 503
        assert (await resp.json())["error"]["code"] == "SERVICE_UNAVAILABLE"


class TestTraversals:
    async def test_impact(self, client):
        resp = await client.get("/api/v1/objects/raw.sales/impact", params={"max_depth": "5"})
        assert resp.status == 200
        body = await resp.json()
        assert [(s["level"], s["object_id"]) for s in body["steps"]] == [
            (1, "staging.stg_sales"),
            (2, "curated.fact_sales"),
            (3, "analytics.mv_daily_summary"),
        ]

    async def test_lineage(self, client):
        resp = await client.get("/api/v1/objects/analytics.mv_daily_summary/lineage")
        body = await resp.json()
        assert body["direction"] == "backward"
        assert [s["object_id"] for s in body["steps"]] == ["curated.fact_sales", "staging.stg_sales", "raw.sales"]

    @pytest.mark.parametrize("max_depth", ["abc", "-1", "51"])
    async def test_invalid_depth(self, client, max_depth):
        resp = await client.get("/api/v1/objects/raw.sales/impact", params={"max_depth": max_depth})
        assert resp.status == 400

    async def test_unknown_root(self, client):
        resp = await client.get("/api/v1/objects/raw.customers/lineage")
        assert resp.status == 404

    async def test_timeout_returns_408(self):
        svc = TributaryService(context=_retail_context({"traversal": {"timeout_s": 0.05}}))
        client = await _make_client(create_app(svc, enable_background=False))
        original = svc.context.edges.edges_from

        def slow_edges_from(object_id):
            time.sleep(0.1)
            return original(object_id)

        try:
            with patch.object(svc.context.edges, "edges_from", side_effect=slow_edges_from):
                resp = await client.get("/api/v1/objects/raw.sales/impact")
            assert resp.status == 408
            body = await resp.json()
            assert body["error"]["code"] == "CANCELLED"
            assert body["error"]["details"]["reason"] == "timed out"
        finally:
            await client.close()


class TestLineageMap:
    async def test_map_empty_until_rebuilt(self, client):
        body = await (await client.get("/api/v1/lineage/map")).json()
        assert body["version"] == 0
        assert body["rows"] == []

    async def test_rebuild_then_map(self, client):
        resp = await client.post("/api/v1/lineage/snapshot")
        assert resp.status == 201
        assert (await resp.json())["version"] == 1

        body = await (await client.get("/api/v1/lineage/map")).json()
        assert [r["source_layer"] for r in body["rows"]] == ["curated", "landing", "staging"]

        body = await (await client.get("/api/v1/lineage/map", params={"layer": "landing"})).json()
        assert [r["source_path"] for r in body["rows"]] == ["raw.sales"]

    async def test_snapshot_status(self, client):
        await client.post("/api/v1/lineage/snapshot")
        body = await (await client.get("/api/v1/lineage/snapshot")).json()
        assert body["version"] == 1
        assert body["edge_count"] == 3
        assert body["age_seconds"] >= 0


class TestRules:
    async def test_rules_listing(self, client, service):
        from tributary.core.rules import Rule

        service.context.rules.register(Rule("always", lambda queries: True, action=lambda r, o: None))
        service.context.rules.tick(now=0.0)
        body = await (await client.get("/api/v1/rules")).json()
        assert body["total"] == 1
        assert body["rules"][0]["name"] == "always"
        assert body["rules"][0]["last_evaluation"]["triggered"] is True


class TestBackgroundLoops:
    async def test_snapshot_loop_rebuilds_on_start(self):
        svc = TributaryService(context=_retail_context({"snapshot": {"every_s": 60}}))
        client = await _make_client(create_app(svc))
        try:
            for _ in range(50):
                if svc.context.materializer.current().version >= 1:
                    break
                await asyncio.sleep(0.05)
            assert svc.context.materializer.current().version == 1
            assert svc.background_running is True
        finally:
            await client.close()
        assert svc.background_running is False

    async def test_snapshot_loop_disabled(self):
        svc = TributaryService(context=_retail_context({"snapshot": {"every_s": 0}}))
        client = await _make_client(create_app(svc))
        try:
            await asyncio.sleep(0.1)
            assert svc.context.materializer.current().version == 0
        finally:
            await client.close()
