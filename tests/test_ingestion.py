"""
Tests for edge ingestion and lineage manifests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from tributary.core.catalog import ObjectCatalog
from tributary.core.edges import DependencyEdgeStore
from tributary.core.ingestion import EdgeIngestor, EdgeObservation
from tributary.core.types import Layer, ObjectKind
from tributary.exceptions import ConfigurationError, InvalidIdentityError, SelfReferentialEdgeError


@pytest.fixture
def ingestor():
    catalog = ObjectCatalog()
    return EdgeIngestor(catalog, DependencyEdgeStore(catalog))


class TestReport:
    def test_registers_endpoints(self, ingestor):
        edge = ingestor.report("RAW.SALES", "raw-table", "staging.stg_sales", "staging-table", "COPY INTO")
        assert edge.key == ("raw.sales", "staging.stg_sales")
        assert ingestor.catalog.get("raw.sales").layer == Layer.LANDING
        assert ingestor.catalog.get("staging.stg_sales").kind == ObjectKind.STAGING_TABLE

    def test_explicit_layers(self, ingestor):
        ingestor.report(
            "marketing.campaigns",
            "raw-table",
            "marketing.campaign_summary",
            "view",
            source_layer="landing",
            target_layer="analytics",
        )
        assert ingestor.catalog.get("marketing.campaign_summary").layer == Layer.ANALYTICS

    def test_existing_layer_preserved(self, ingestor):
        ingestor.catalog.register("marketing.campaigns", "raw-table", layer="landing")
        ingestor.report("marketing.campaigns", "raw-table", "staging.stg_campaigns", "staging-table")
        assert ingestor.catalog.get("marketing.campaigns").layer == Layer.LANDING

    def test_rejected_observation_registers_nothing(self, ingestor):
        with pytest.raises(InvalidIdentityError):
            ingestor.report("raw.sales", "raw-table", "staging.stg_sales", "table")
        assert len(ingestor.catalog) == 0
        assert len(ingestor.edges) == 0

    def test_uninferrable_layer(self, ingestor):
        with pytest.raises(InvalidIdentityError, match="cannot infer layer"):
            ingestor.report("raw.sales", "raw-table", "marketing.campaigns", "view")
        assert len(ingestor.catalog) == 0

    def test_self_loop(self, ingestor):
        with pytest.raises(SelfReferentialEdgeError):
            ingestor.report("raw.sales", "raw-table", "Raw.Sales", "raw-table")
        assert len(ingestor.catalog) == 0

    def test_report_many(self, ingestor):
        observations = [
            EdgeObservation.from_dict(
                {"source": "raw.sales", "source_kind": "raw-table",
                 "target": "staging.stg_sales", "target_kind": "staging-table", "relation": "COPY INTO"}
            ),
            EdgeObservation("staging.stg_sales", "staging-table", "curated.fact_sales", "curated-fact"),
        ]
        edges = ingestor.report_many(observations)
        assert [e.relation_kind for e in edges] == ["COPY INTO", ""]
        assert len(ingestor.edges) == 2


class TestManifest:
    def test_load_manifest(self, ingestor, tmp_path):
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text(
            """
objects:
  - {id: landing.sales_pipe, kind: pipe}
edges:
  - {source: raw.sales, source_kind: raw-table,
     target: staging.stg_sales, target_kind: staging-table, relation: COPY INTO}
  - {source: staging.stg_sales, source_kind: staging-table,
     target: curated.fact_sales, target_kind: curated-fact}
"""
        )
        assert ingestor.load_manifest(manifest) == 2
        assert ingestor.catalog.get("landing.sales_pipe").kind == ObjectKind.PIPE
        assert ingestor.edges.get_edge("raw.sales", "staging.stg_sales").relation_kind == "COPY INTO"

    def test_bad_edge_entry_names_index(self, ingestor, tmp_path):
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text(
            """
edges:
  - {source: raw.sales, source_kind: raw-table, target: staging.stg_sales, target_kind: staging-table}
  - {source: raw.sales, source_kind: raw-table, target: raw.sales, target_kind: raw-table}
"""
        )
        with pytest.raises(ConfigurationError, match="entry #1") as exc_info:
            ingestor.load_manifest(manifest)
        assert exc_info.value.details == {"index": 1}

    def test_missing_field(self, ingestor, tmp_path):
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text("edges:\n  - {source: raw.sales, target: staging.stg_sales}\n")
        with pytest.raises(ConfigurationError, match="entry #0"):
            ingestor.load_manifest(manifest)

    def test_bad_object_entry(self, ingestor, tmp_path):
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text("objects:\n  - {id: raw.sales, kind: spreadsheet}\n")
        with pytest.raises(ConfigurationError, match="object entry #0"):
            ingestor.load_manifest(manifest)

    def test_missing_file(self, ingestor, tmp_path):
        with pytest.raises(ConfigurationError, match="Could not read"):
            ingestor.load_manifest(tmp_path / "missing.yaml")

    def test_not_a_mapping(self, ingestor, tmp_path):
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text("- raw.sales\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            ingestor.load_manifest(manifest)


class TestManifestReplay:
    MANIFEST = """
edges:
  - {source: raw.sales, source_kind: raw-table,
     target: staging.stg_sales, target_kind: staging-table, relation: COPY INTO}
  - {source: staging.stg_sales, source_kind: staging-table,
     target: curated.fact_sales, target_kind: curated-fact, relation: INSERT SELECT}
"""

    @pytest.fixture
    def tracked(self):
        start = datetime(2024, 3, 1, tzinfo=UTC)
        ticks = iter(start + timedelta(minutes=i) for i in range(100))
        store = Mock()
        catalog = ObjectCatalog(state_store=store, clock=lambda: next(ticks))
        edges = DependencyEdgeStore(catalog, state_store=store, clock=lambda: next(ticks))
        return EdgeIngestor(catalog, edges), store

    def test_replay_keeps_observed_at(self, tracked, tmp_path):
        ingestor, store = tracked
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text(self.MANIFEST)
        ingestor.load_manifest(manifest)
        first_seen = ingestor.edges.get_edge("raw.sales", "staging.stg_sales").observed_at
        store.reset_mock()

        assert ingestor.load_manifest(manifest) == 2
        assert ingestor.edges.get_edge("raw.sales", "staging.stg_sales").observed_at == first_seen
        store.save_edge.assert_not_called()
        store.save_object.assert_not_called()

    def test_changed_relation_is_rewritten(self, tracked, tmp_path):
        ingestor, store = tracked
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text(self.MANIFEST)
        ingestor.load_manifest(manifest)
        store.reset_mock()

        manifest.write_text(self.MANIFEST.replace("COPY INTO", "SNOWPIPE"))
        ingestor.load_manifest(manifest)
        assert ingestor.edges.get_edge("raw.sales", "staging.stg_sales").relation_kind == "SNOWPIPE"
        store.save_edge.assert_called_once()

    def test_live_report_still_refreshes(self, tracked, tmp_path):
        ingestor, _ = tracked
        manifest = tmp_path / "lineage.yaml"
        manifest.write_text(self.MANIFEST)
        ingestor.load_manifest(manifest)
        first_seen = ingestor.edges.get_edge("raw.sales", "staging.stg_sales").observed_at

        edge = ingestor.report("raw.sales", "raw-table", "staging.stg_sales", "staging-table", "COPY INTO")
        assert edge.observed_at > first_seen
