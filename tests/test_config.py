"""Tests for mirrordocs.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from mirrordocs.config import (
    CONFIG_FILENAME,
    BuildConfig,
    build_config,
    find_config_file,
    load_config,
    merge_configs,
)
from mirrordocs.docid import DuplicatePolicy
from mirrordocs.errors import ConfigError


class TestFromMapping:
    def test_defaults(self):
        config = BuildConfig.from_mapping({}, "docs", "out")
        assert config.srcdir == Path("docs")
        assert config.dstdir == Path("out")
        assert config.format == "html"
        assert config.file_suffixes == [".md"]
        assert config.duplicate_docid is DuplicatePolicy.FATAL
        assert config.make_index
        assert config.stylesheet is None
        assert config.resource_dir is None
        assert config.copy_asset_folders is None
        assert not config.git.enabled

    def test_values(self):
        config = BuildConfig.from_mapping(
            {
                "format": "pdf",
                "file_suffixes": ["md", ".markdown"],
                "duplicate_docid": "last",
                "git": {"branch_regex": "^main$", "local_only": True},
                "pdf": {"engine": "lualatex"},
            },
            "docs",
            "out",
        )
        assert config.format == "pdf"
        assert config.file_suffixes == [".md", ".markdown"]
        assert config.duplicate_docid is DuplicatePolicy.LAST_WINS
        assert config.git.enabled
        assert config.git.local_only
        assert config.git.tag_regex == ""
        assert config.pdf_engine == "lualatex"

    @pytest.mark.parametrize(
        "data, message",
        [
            ({"colour": "blue"}, "Unknown configuration key: colour"),
            ({"git": {"branch": "x"}}, "Unknown configuration key: git.branch"),
            ({"git": "main"}, "must be a table"),
            ({"format": "docx"}, "Unknown format"),
            ({"duplicate_docid": "random"}, "Unknown duplicate_docid policy"),
            ({"file_suffixes": ".md"}, "list of strings"),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigError, match=message):
            BuildConfig.from_mapping(data, "docs", "out")


class TestWithOverrides:
    def test_none_is_ignored(self):
        config = BuildConfig.from_mapping({"format": "pdf"}, "docs", "out")
        assert config.with_overrides(format=None).format == "pdf"

    def test_git_settings(self):
        """Git related overrides update the nested git settings."""
        config = BuildConfig.from_mapping({"git": {"tag_regex": "^v"}}, "docs", "out")
        changed = config.with_overrides(branch_regex="main", local_only=True, resolve_docid=True)

        assert changed.git.branch_regex == "main"
        assert changed.git.tag_regex == "^v"
        assert changed.git.local_only
        assert changed.resolve_docid
        assert config.git.branch_regex == ""


def test_merge_configs_is_deep():
    base = {"a": 1, "git": {"x": 1, "y": 2}}
    merged = merge_configs(base, {"git": {"y": 3}})
    assert merged == {"a": 1, "git": {"x": 1, "y": 3}}
    assert base["git"]["y"] == 2


class TestConfigFile:
    def test_find_in_parent(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('format = "pdf"\n')
        docs = tmp_path / "docs" / "deep"
        docs.mkdir(parents=True)
        assert find_config_file(docs) == (tmp_path / CONFIG_FILENAME).resolve()

    def test_load_config(self, tmp_path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text('resolve_docid = true\n\n[git]\nbranch_regex = "^main$"\n')
        assert load_config(path) == {"resolve_docid": True, "git": {"branch_regex": "^main$"}}

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("format = \n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Could not read"):
            load_config(tmp_path / "nope.toml")

    def test_build_config_uses_nearest_file(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('duplicate_docid = "first"\n')
        (tmp_path / "docs").mkdir()
        config = build_config(tmp_path / "docs", tmp_path / "out")
        assert config.duplicate_docid is DuplicatePolicy.FIRST_WINS

    def test_build_config_explicit_path(self, tmp_path):
        explicit = tmp_path / "other.toml"
        explicit.write_text("make_index = false\n")
        config = build_config(tmp_path, tmp_path / "out", config_path=explicit)
        assert not config.make_index
