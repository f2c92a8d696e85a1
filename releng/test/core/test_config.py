"""Tests for releng.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from releng.core.config import (
    ConfigError,
    ConfiguredPlugin,
    NamedPlugin,
    ReleaseConfig,
    load_config,
    parse_config,
)
from releng.core.result import Err, Ok
from releng.release.model import ChannelPolicy

SAMPLE = """
branches = ["main", { name = "alpha", prerelease = true }]
plugins = [
    ["@semantic-release/commit-analyzer", { preset = "angular", release_rules = [{ type = "breaking", release = "major" }], note_keywords = ["BREAKING CHANGE", "BREAKING CHANGES", "breaking:"] }],
    "@semantic-release/git",
    ["@semantic-release/exec", { prepare_cmd = "echo \\"RELEASE_VERSION=${nextRelease.version}\\" >> $GITHUB_ENV" }],
]
"""


class TestLoadConfig:
    def test_load_sample(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text(SAMPLE, encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Ok)
        config = result.value
        assert config.branches == (
            ChannelPolicy(branch_pattern="main"),
            ChannelPolicy(branch_pattern="alpha", prerelease=True),
        )
        assert [p.name for p in config.plugins] == [
            "@semantic-release/commit-analyzer",
            "@semantic-release/git",
            "@semantic-release/exec",
        ]
        assert isinstance(config.plugins[1], NamedPlugin)
        exec_plugin = config.plugins[2]
        assert isinstance(exec_plugin, ConfiguredPlugin)
        assert "RELEASE_VERSION=${nextRelease.version}" in str(exec_plugin.options["prepare_cmd"])

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "missing.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message
        assert result.error.path == tmp_path / "missing.toml"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text("branches = [", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "invalid TOML" in result.error.message

    def test_structure_error_carries_path(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text("branches = []\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert result.error.path == path
        assert str(path) in result.error.pretty()


class TestParseConfig:
    def test_minimal(self) -> None:
        result = parse_config({"branches": ["main"]})
        assert result == Ok(ReleaseConfig(branches=(ChannelPolicy("main"),), plugins=()))

    def test_glob_with_explicit_label(self) -> None:
        result = parse_config({"branches": ["main", {"name": "feature/*", "prerelease": "dev"}]})
        assert isinstance(result, Ok)
        assert result.value.branches[1].identifier == "dev"

    def test_prerelease_label(self) -> None:
        result = parse_config({"branches": [{"name": "next", "prerelease": "beta"}]})
        assert isinstance(result, Ok)
        assert result.value.branches[0] == ChannelPolicy("next", prerelease=True, tag_name="beta")

    @pytest.mark.parametrize(
        "data, fragment",
        [
            ({}, "'branches'"),
            ({"branches": []}, "'branches'"),
            ({"branches": ["main"], "ci": False}, "unknown top-level keys: ci"),
            ({"branches": [""]}, "empty branch name"),
            ({"branches": [42]}, "expected a branch name"),
            ({"branches": [{"prerelease": True}]}, "missing 'name'"),
            ({"branches": [{"name": "a", "channel": "x"}]}, "unknown keys: channel"),
            ({"branches": [{"name": "a", "prerelease": 1}]}, "'prerelease'"),
            ({"branches": ["main", "main"]}, "duplicate branch"),
            ({"branches": ["main", {"name": "next", "prerelease": "rc.x"}]}, "invalid prerelease label 'rc.x'"),
            ({"branches": [{"name": "release/next", "prerelease": True}]}, "invalid prerelease label"),
            ({"branches": [{"name": "feature/*", "prerelease": True}]}, "needs an explicit prerelease label"),
            (
                {"branches": [{"name": "alpha", "prerelease": True}, {"name": "next", "prerelease": "alpha"}]},
                "prerelease label 'alpha' is already used",
            ),
            ({"branches": ["main"], "plugins": "git"}, "'plugins' must be an array"),
            ({"branches": ["main"], "plugins": [["git"]]}, "[identifier, options]"),
            ({"branches": ["main"], "plugins": [["git", "x"]]}, "options must be a table"),
            ({"branches": ["main"], "plugins": [[1, {}]]}, "non-empty string"),
            ({"branches": ["main"], "plugins": [" "]}, "empty plugin identifier"),
        ],
    )
    def test_malformed(self, data: dict[str, object], fragment: str) -> None:
        result = parse_config(data)
        assert isinstance(result, Err)
        assert fragment in result.error


def test_config_error_pretty_without_path() -> None:
    assert ConfigError("boom").pretty() == "boom"
