"""
Unit tests for dxf_intake.project_config module.

Tests:
- Configuration dataclasses
- Conversion to filter thresholds
- JSON serialization/deserialization
- Config file discovery and loading
- Config merging
"""

import json
from pathlib import Path

import pytest

from dxf_intake.filtering.rules import HIDDEN_LAYER_PATTERNS, FilterThresholds
from dxf_intake.project_config import (
    CONFIG_FILENAME,
    ClusteringConfig,
    FilterConfig,
    OutputConfig,
    ProjectConfig,
    SheetConfig,
    create_sample_config,
    find_config_file,
    load_config,
    merge_configs,
)


@pytest.fixture
def isolated_dirs(tmp_path: Path, monkeypatch):
    """Empty working and home directories so no real config is picked up."""
    work = tmp_path / "work"
    home = tmp_path / "home"
    work.mkdir()
    home.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("HOME", str(home))
    return work, home


class TestSections:
    """Tests for the section dataclasses."""

    def test_filter_defaults(self):
        config = FilterConfig()
        assert config.coordinate_limit == 10000.0
        assert config.hidden_layer_patterns == list(HIDDEN_LAYER_PATTERNS)

    def test_pattern_lists_not_shared(self):
        a = FilterConfig()
        b = FilterConfig()
        a.hidden_layer_patterns.append("^ENGRAVE$")
        assert "^ENGRAVE$" not in b.hidden_layer_patterns

    def test_clustering_defaults(self):
        config = ClusteringConfig()
        assert config.enabled
        assert config.radius == 50.0
        assert config.neighbor_ratio == 0.3

    def test_sheet_defaults(self):
        config = SheetConfig()
        assert config.width is None
        assert config.efficiency == 0.85

    def test_output_defaults(self):
        assert OutputConfig().formats == ["json"]


class TestThresholds:
    """Tests for ProjectConfig.thresholds."""

    def test_defaults_match_filter_defaults(self):
        assert ProjectConfig().thresholds() == FilterThresholds()

    def test_overrides_flow_through(self):
        config = ProjectConfig()
        config.filters.coordinate_limit = 20000.0
        config.clustering.radius = 75.0
        config.filters.hidden_layer_patterns = ["^ENGRAVE$"]

        thresholds = config.thresholds()

        assert thresholds.coordinate_limit == 20000.0
        assert thresholds.cluster_radius == 75.0
        assert thresholds.hidden_layer_patterns == ("^ENGRAVE$",)


class TestSerialization:
    """Tests for JSON round trips."""

    def test_to_json_valid(self):
        data = json.loads(ProjectConfig().to_json())
        assert set(data) == {'filters', 'clustering', 'sheet', 'input', 'output'}

    def test_from_dict_partial(self):
        config = ProjectConfig.from_dict({'clustering': {'radius': 80.0}})
        assert config.clustering.radius == 80.0
        assert config.clustering.neighbor_ratio == 0.3
        assert config.filters.coordinate_limit == 10000.0

    def test_unknown_keys_ignored(self):
        config = ProjectConfig.from_dict({
            'filters': {'no_such_threshold': 1, '_comment': 'x'},
            'unknown_section': {'a': 1},
            'sheet': 'not a section',
        })
        assert not hasattr(config.filters, 'no_such_threshold')
        assert config.sheet.width is None

    def test_save_and_load(self, tmp_path: Path):
        config = ProjectConfig()
        config.sheet.width = 1000.0
        config.output.formats = ["json", "dxf"]
        path = tmp_path / CONFIG_FILENAME

        config.save(path)
        loaded = ProjectConfig.load(path)

        assert loaded == config

    def test_load_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ProjectConfig.load(tmp_path / "missing.json")


class TestFindConfigFile:
    """Tests for find_config_file search order."""

    def test_none_found(self, isolated_dirs):
        assert find_config_file() is None

    def test_explicit_first(self, isolated_dirs, tmp_path: Path):
        work, _ = isolated_dirs
        (work / CONFIG_FILENAME).write_text("{}")
        explicit = tmp_path / "custom.json"
        explicit.write_text("{}")

        assert find_config_file(explicit_config=explicit) == explicit

    def test_missing_explicit_falls_back(self, isolated_dirs, tmp_path: Path):
        work, _ = isolated_dirs
        (work / CONFIG_FILENAME).write_text("{}")

        found = find_config_file(explicit_config=tmp_path / "missing.json")
        assert found == Path.cwd() / CONFIG_FILENAME

    def test_dxf_directory_before_cwd(self, isolated_dirs, tmp_path: Path):
        work, _ = isolated_dirs
        designs = tmp_path / "designs"
        designs.mkdir()
        (designs / CONFIG_FILENAME).write_text("{}")
        (work / CONFIG_FILENAME).write_text("{}")

        assert find_config_file(dxf_path=designs / "part.dxf") == designs / CONFIG_FILENAME

    def test_home_last(self, isolated_dirs):
        _, home = isolated_dirs
        (home / CONFIG_FILENAME).write_text("{}")
        assert find_config_file() == Path.home() / CONFIG_FILENAME


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_when_missing(self, isolated_dirs):
        assert load_config() == ProjectConfig()

    def test_loads_found_file(self, isolated_dirs):
        work, _ = isolated_dirs
        (work / CONFIG_FILENAME).write_text(json.dumps({'sheet': {'width': 500.0}}))
        assert load_config().sheet.width == 500.0

    def test_invalid_json_falls_back(self, isolated_dirs, caplog):
        work, _ = isolated_dirs
        (work / CONFIG_FILENAME).write_text("{not json")

        with caplog.at_level("ERROR", logger="dxf_intake"):
            config = load_config()

        assert config == ProjectConfig()
        assert any("Failed to load config" in r.getMessage() for r in caplog.records)


class TestMergeConfigs:
    """Tests for merge_configs."""

    def test_override_non_default_values(self):
        base = ProjectConfig()
        base.sheet.width = 1000.0
        base.clustering.radius = 80.0
        override = ProjectConfig()
        override.clustering.radius = 40.0

        merged = merge_configs(base, override)

        assert merged.sheet.width == 1000.0
        assert merged.clustering.radius == 40.0

    def test_base_untouched(self):
        base = ProjectConfig()
        override = ProjectConfig()
        override.output.formats = ["dxf"]

        merge_configs(base, override)

        assert base.output.formats == ["json"]


class TestCreateSampleConfig:
    """Tests for create_sample_config."""

    def test_sample_loads(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        create_sample_config(path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert '_comment' in data
        assert ProjectConfig.load(path) == ProjectConfig()
