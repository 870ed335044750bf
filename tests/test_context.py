"""
Tests for building a lineage context from a project directory.
"""

import pytest

from tributary.config import GlobalConfig
from tributary.core.context import LineageContext
from tributary.exceptions import ConfigurationError

MANIFEST = """
edges:
  - {source: raw.sales, source_kind: raw-table,
     target: staging.stg_sales, target_kind: staging-table, relation: COPY INTO}
  - {source: staging.stg_sales, source_kind: staging-table,
     target: curated.fact_sales, target_kind: curated-fact}
"""


@pytest.fixture(autouse=True)
def reset_global_config():
    yield
    GlobalConfig.reset_config()


@pytest.fixture
def project(tmp_path):
    (tmp_path / "lineage.yaml").write_text(MANIFEST)
    (tmp_path / "config.yaml").write_text(
        "name: retail\n"
        "manifest: lineage.yaml\n"
        "traversal:\n  default_max_depth: 2\n  max_depth_limit: 10\n"
        "rules:\n  - {name: stale, type: snapshot_staleness, max_age_s: 60}\n"
    )
    return tmp_path


class TestLineageContext:
    def test_standalone_context(self):
        context = LineageContext()
        assert context.state_store is None
        assert context.engine.default_max_depth == 5
        assert context.engine.max_depth_limit == 50
        assert len(context.catalog) == 0

    def test_contexts_are_independent(self):
        first, second = LineageContext(), LineageContext()
        first.ingestor.report("raw.sales", "raw-table", "staging.stg_sales", "staging-table")
        assert len(second.catalog) == 0

    def test_from_project(self, project):
        context = LineageContext.from_project(project)
        assert len(context.edges) == 2
        assert context.engine.default_max_depth == 2
        assert context.engine.max_depth_limit == 10
        assert [r.name for r in context.rules.rules] == ["stale"]
        assert context.queries.impact_of("raw.sales").object_ids() == ["staging.stg_sales", "curated.fact_sales"]
        assert GlobalConfig.get_config() is context.config

    def test_missing_manifest(self, project):
        (project / "lineage.yaml").unlink()
        with pytest.raises(ConfigurationError, match="lineage manifest"):
            LineageContext.from_project(project)

    def test_bad_rule(self, project):
        (project / "config.yaml").write_text("rules:\n  - {name: x, type: cron}\n")
        with pytest.raises(ConfigurationError, match="unknown type"):
            LineageContext.from_project(project)

    def test_state_hydrates_and_resumes_snapshot_versions(self, project):
        (project / "config.yaml").write_text("state:\n  path: state/tributary.duckdb\n")
        context = LineageContext.from_project(project)
        context.ingestor.report("raw.sales", "raw-table", "staging.stg_sales", "staging-table")
        context.materializer.rebuild()
        context.materializer.rebuild()
        context.close()

        reopened = LineageContext.from_project(project)
        try:
            assert reopened.edges.get_edge("raw.sales", "staging.stg_sales") is not None
            assert reopened.catalog.exists("staging.stg_sales")
            assert reopened.materializer.current().version == 2
            assert reopened.materializer.rebuild().version == 3
        finally:
            reopened.close()
