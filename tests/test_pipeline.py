"""Tests for pipeline.py — dataset paths, loading, caching and tracing."""

import logging
import os

import pytest

import pipeline
from pipeline import (
    DatasetPaths,
    DatasetUnavailableError,
    enrich_trees,
    get_trees,
    load_trees,
    read_dataset_text,
    reset_cache,
    resolve_dataset_paths,
)
from tf_trace import TraceContext, clear_trace, get_trace, set_trace


_PATH_VARS = (
    "TREEFRIENDS_DATA_DIR",
    "TREEFRIENDS_TREE_CSV",
    "TREEFRIENDS_NEIGHBORHOOD_CSV",
    "TREEFRIENDS_RENT_CSV",
)


# =========================================================================
# Path resolution
# =========================================================================

class TestResolveDatasetPaths:
    def test_defaults(self, monkeypatch):
        for var in _PATH_VARS:
            monkeypatch.delenv(var, raising=False)
        assert resolve_dataset_paths() == DatasetPaths(
            trees=os.path.join("Data", "CleanedTreeData.csv"),
            neighborhoods=os.path.join("Data", "NeighborhoodCoordinates.csv"),
            rents=os.path.join("Data", "StreetEasyRentDataCL.csv"),
        )

    def test_data_dir_override(self, monkeypatch):
        for var in _PATH_VARS:
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv("TREEFRIENDS_DATA_DIR", "/srv/data")
        paths = resolve_dataset_paths()
        assert paths.trees == os.path.join("/srv/data", "CleanedTreeData.csv")

    def test_file_override_wins(self, monkeypatch):
        monkeypatch.setenv("TREEFRIENDS_DATA_DIR", "/srv/data")
        monkeypatch.setenv("TREEFRIENDS_RENT_CSV", "/tmp/rents.csv")
        assert resolve_dataset_paths().rents == "/tmp/rents.csv"


# =========================================================================
# Reading and enrichment
# =========================================================================

class TestReadDatasetText:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("a,b\n1,2\n", encoding="utf-8")
        assert read_dataset_text(str(path)) == "a,b\n1,2\n"

    def test_missing_file(self, tmp_path, caplog):
        missing = str(tmp_path / "missing.csv")
        with caplog.at_level(logging.ERROR, logger="pipeline"):
            with pytest.raises(DatasetUnavailableError, match="missing.csv"):
                read_dataset_text(missing)
        assert "Dataset unavailable" in caplog.text

    def test_error_is_runtime_error(self):
        assert issubclass(DatasetUnavailableError, RuntimeError)


class TestEnrichTrees:
    def test_sample_datasets(self, sample_csvs):
        trees = enrich_trees(*sample_csvs)
        assert len(trees) == 4
        assert all(t.accessibility_score is not None for t in trees)

    def test_empty_rent_table(self, sample_csvs):
        trees_csv, neighborhoods_csv, _ = sample_csvs
        trees = enrich_trees(trees_csv, neighborhoods_csv, "")
        assert all(t.expected_rent is None for t in trees)
        assert all(t.affordability_score is None for t in trees)

    def test_empty_tree_table(self, sample_csvs):
        _, neighborhoods_csv, rents_csv = sample_csvs
        assert enrich_trees("", neighborhoods_csv, rents_csv) == []


class TestLoadTrees:
    def test_loads_from_environment(self, dataset_files):
        assert len(load_trees()) == 4

    def test_explicit_paths(self, dataset_files):
        assert [t.tree_id for t in load_trees(dataset_files)] == ["1", "2", "3", "unknown"]

    def test_missing_file_raises(self, missing_datasets):
        with pytest.raises(DatasetUnavailableError):
            load_trees()

    def test_logs_trace_summary(self, dataset_files, caplog):
        with caplog.at_level(logging.INFO):
            load_trees()
        assert "[trace-summary] trace=load-trees" in caplog.text
        assert "outcome=success" in caplog.text
        assert get_trace() is None

    def test_joins_active_trace(self, dataset_files):
        ctx = TraceContext(trace_id="outer")
        set_trace(ctx)
        try:
            load_trees()
            assert get_trace() is ctx
        finally:
            clear_trace()
        assert [s.stage_name for s in ctx.stages] == [
            "parse_rents", "parse_neighborhoods", "parse_trees", "tree_friends", "accessibility",
        ]
        # One bad rent row, one bad neighborhood row, one bad tree row
        assert ctx.summary_dict()["rows_dropped"] == 3


# =========================================================================
# Cache
# =========================================================================

class TestGetTrees:
    def test_cached_between_calls(self, dataset_files):
        first = get_trees()
        assert get_trees() is first

    def test_reset_cache_reloads(self, dataset_files):
        first = get_trees()
        reset_cache()
        assert get_trees() is not first

    def test_failed_load_not_cached(self, missing_datasets, sample_csvs, tmp_path, monkeypatch):
        with pytest.raises(DatasetUnavailableError):
            get_trees()
        assert pipeline._cached_trees is None

        trees_csv, neighborhoods_csv, rents_csv = sample_csvs
        for var, text in (
            ("TREEFRIENDS_TREE_CSV", trees_csv),
            ("TREEFRIENDS_NEIGHBORHOOD_CSV", neighborhoods_csv),
            ("TREEFRIENDS_RENT_CSV", rents_csv),
        ):
            path = tmp_path / f"{var.lower()}.csv"
            path.write_text(text, encoding="utf-8")
            monkeypatch.setenv(var, str(path))

        assert len(get_trees()) == 4
