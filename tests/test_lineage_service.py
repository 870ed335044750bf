"""
End-to-end tests for impact and lineage queries over a retail pipeline.
"""

import pytest

from tributary.core.context import LineageContext
from tributary.core.types import Direction
from tributary.exceptions import InvalidDepthError, UnknownRootError


@pytest.fixture
def context():
    context = LineageContext()
    report = context.ingestor.report
    report("raw.sales", "raw-table", "staging.stg_sales", "staging-table", "COPY INTO")
    report("staging.stg_sales", "staging-table", "curated.fact_sales", "curated-fact", "INSERT SELECT")
    report("curated.fact_sales", "curated-fact", "analytics.mv_daily_summary", "materialized-view", "AGGREGATE")
    return context


class TestRetailScenario:
    def test_impact_of_raw_sales(self, context):
        result = context.queries.impact_of("raw.sales", max_depth=5)
        assert result.direction == Direction.FORWARD
        assert [(s.level, s.object_id) for s in result] == [
            (1, "staging.stg_sales"),
            (2, "curated.fact_sales"),
            (3, "analytics.mv_daily_summary"),
        ]

    def test_lineage_of_summary(self, context):
        result = context.queries.lineage_of("analytics.mv_daily_summary", max_depth=5)
        assert result.direction == Direction.BACKWARD
        assert [(s.level, s.object_id) for s in result] == [
            (1, "curated.fact_sales"),
            (2, "staging.stg_sales"),
            (3, "raw.sales"),
        ]

    def test_default_depth(self, context):
        assert context.queries.impact_of("raw.sales").max_depth == 5

    def test_depth_bound(self, context):
        assert context.queries.impact_of("raw.sales", max_depth=1).object_ids() == ["staging.stg_sales"]

    def test_leaf_has_no_impact(self, context):
        assert len(context.queries.impact_of("analytics.mv_daily_summary")) == 0

    def test_queries_do_not_mutate(self, context):
        before = (len(context.catalog), len(context.edges))
        context.queries.impact_of("raw.sales")
        context.queries.lineage_of("analytics.mv_daily_summary")
        assert (len(context.catalog), len(context.edges)) == before

    def test_errors(self, context):
        with pytest.raises(UnknownRootError):
            context.queries.impact_of("raw.customers")
        with pytest.raises(InvalidDepthError):
            context.queries.lineage_of("raw.sales", max_depth=-2)

    def test_new_edge_visible_to_later_queries(self, context):
        context.ingestor.report(
            "curated.fact_sales", "curated-fact", "analytics.agg_daily_sales", "aggregate-table"
        )
        assert "analytics.agg_daily_sales" in context.queries.impact_of("raw.sales").object_ids()

    @pytest.mark.asyncio
    async def test_async_variants(self, context):
        impact = await context.queries.impact_of_async("raw.sales")
        lineage = await context.queries.lineage_of_async("analytics.mv_daily_summary")
        assert impact.object_ids()[-1] == "analytics.mv_daily_summary"
        assert lineage.object_ids()[-1] == "raw.sales"

    def test_result_to_dict(self, context):
        data = context.queries.impact_of("raw.sales").to_dict()
        assert data["root_id"] == "raw.sales"
        assert data["direction"] == "forward"
        assert data["total"] == 3
        assert data["steps"][0] == {"level": 1, "object_id": "staging.stg_sales", "object_kind": "staging-table"}


class TestFullMap:
    def test_empty_before_first_rebuild(self, context):
        snapshot = context.queries.full_map()
        assert snapshot.version == 0
        assert snapshot.rows == ()

    def test_map_after_rebuild(self, context):
        context.materializer.rebuild()
        rows = context.queries.full_map().rows
        assert [(r.source_layer.value, r.source_path, r.target_layer.value, r.target_path) for r in rows] == [
            ("curated", "curated.fact_sales", "analytics", "analytics.mv_daily_summary"),
            ("landing", "raw.sales", "staging", "staging.stg_sales"),
            ("staging", "staging.stg_sales", "curated", "curated.fact_sales"),
        ]

    def test_map_does_not_see_unpublished_edges(self, context):
        context.materializer.rebuild()
        context.ingestor.report("raw.customers", "raw-table", "staging.stg_customers", "staging-table")
        assert context.queries.full_map().edge_count == 3

    def test_snapshot_status(self, context):
        status = context.queries.snapshot_status()
        assert status["version"] == 0
        assert status["age_seconds"] is None
        context.materializer.rebuild()
        status = context.queries.snapshot_status()
        assert status["version"] == 1
        assert status["edge_count"] == 3
        assert status["object_count"] == 4
        assert status["age_seconds"] >= 0
        assert status["last_error"] is None
