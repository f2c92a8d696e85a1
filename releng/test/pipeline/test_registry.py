from __future__ import annotations

from pathlib import Path

import pytest

from releng.ci.env import MemoryEnvironment
from releng.core.config import ConfiguredPlugin, NamedPlugin, PluginSpec, ReleaseConfig
from releng.core.result import Err, Ok
from releng.pipeline.registry import Collaborators, build_pipeline, canonical_name
from releng.pipeline.steps import ChangelogStep, ExecStep, ExportStep, NotifyStep, PublishStep, TagStep
from releng.release.classifier import DEFAULT_BREAKING_MARKERS, classify, parse_commit
from releng.release.model import ChannelPolicy, VersionBump
from releng.vcs.git import GitVcs


def _config(*plugins: PluginSpec) -> ReleaseConfig:
    return ReleaseConfig(branches=(ChannelPolicy("main"),), plugins=plugins)


def _deps(tmp_path: Path) -> Collaborators:
    return Collaborators(vcs=GitVcs(tmp_path), env=MemoryEnvironment())


def test_semantic_release_style_config(tmp_path: Path) -> None:
    config = _config(
        ConfiguredPlugin(
            "@semantic-release/commit-analyzer",
            {
                "preset": "angular",
                "releaseRules": [{"type": "breaking", "release": "major"}],
                "parserOpts": {"noteKeywords": ["BREAKING CHANGE", "BREAKING CHANGES", "breaking:"]},
            },
        ),
        NamedPlugin("@semantic-release/git"),
        ConfiguredPlugin(
            "@semantic-release/exec",
            {"prepareCmd": 'echo "RELEASE_VERSION=${nextRelease.version}" >> $GITHUB_ENV'},
        ),
    )

    result = build_pipeline(config, _deps(tmp_path))

    assert isinstance(result, Ok)
    pipeline = result.value
    assert pipeline.analyzer.rules["breaking"] is VersionBump.MAJOR
    assert pipeline.analyzer.rules["feat"] is VersionBump.MINOR
    assert pipeline.analyzer.breaking_markers == ("BREAKING CHANGE", "BREAKING CHANGES", "breaking:")
    assert [s.name for s in pipeline.steps] == ["git", "exec"]
    assert isinstance(pipeline.steps[0], TagStep)
    exec_step = pipeline.steps[1]
    assert isinstance(exec_step, ExecStep)
    assert exec_step.commands[0][0] == "prepare"


def test_defaults_without_analyzer(tmp_path: Path) -> None:
    result = build_pipeline(_config(NamedPlugin("git")), _deps(tmp_path))
    assert isinstance(result, Ok)
    assert result.value.analyzer.rules["fix"] is VersionBump.PATCH
    assert result.value.analyzer.breaking_markers == DEFAULT_BREAKING_MARKERS
    assert result.value.tag_format == "v${version}"


def test_snake_case_options(tmp_path: Path) -> None:
    config = _config(
        ConfiguredPlugin(
            "commit-analyzer",
            {"release_rules": {"docs": "patch", "perf": False}, "note_keywords": ["BREAKING"]},
        ),
        ConfiguredPlugin("git", {"tag_format": "release-${version}", "push": False}),
        ConfiguredPlugin("changelog", {"file": "CHANGELOG.md"}),
        ConfiguredPlugin("export", {"variables": {"NEXT": "${nextRelease.gitTag}"}}),
        ConfiguredPlugin("publish", {"command": "true"}),
    )

    result = build_pipeline(config, _deps(tmp_path))

    assert isinstance(result, Ok)
    pipeline = result.value
    assert pipeline.analyzer.rules["docs"] is VersionBump.PATCH
    assert pipeline.analyzer.rules["perf"] is VersionBump.NONE
    assert pipeline.tag_format == "release-${version}"
    tag = pipeline.steps[0]
    assert isinstance(tag, TagStep) and tag.push is False
    changelog = pipeline.steps[1]
    assert isinstance(changelog, ChangelogStep) and changelog.file == Path("CHANGELOG.md")
    export = pipeline.steps[2]
    assert isinstance(export, ExportStep) and dict(export.variables) == {"NEXT": "${nextRelease.gitTag}"}
    assert isinstance(pipeline.steps[3], PublishStep)


def test_rule_types_match_any_case(tmp_path: Path) -> None:
    config = _config(ConfiguredPlugin("commit-analyzer", {"release_rules": [{"type": "Feat", "release": "major"}]}))

    result = build_pipeline(config, _deps(tmp_path))

    assert isinstance(result, Ok)
    settings = result.value.analyzer
    assert settings.rules["feat"] is VersionBump.MAJOR
    assert "Feat" not in settings.rules
    commit = parse_commit("a" * 40, "feat: add plan output")
    assert classify([commit], settings.rules, settings.breaking_markers) is VersionBump.MAJOR


def test_export_defaults_to_release_version(tmp_path: Path) -> None:
    result = build_pipeline(_config(NamedPlugin("export")), _deps(tmp_path))
    assert isinstance(result, Ok)
    step = result.value.steps[0]
    assert isinstance(step, ExportStep)
    assert dict(step.variables) == {"RELEASE_VERSION": "${nextRelease.version}"}


@pytest.mark.parametrize(
    "plugin, fragment",
    [
        (NamedPlugin("@semantic-release/npm"), "unknown plugin '@semantic-release/npm'"),
        (ConfiguredPlugin("git", {"tagformat": "x"}), "unknown options: tagformat"),
        (ConfiguredPlugin("git", {"tag_format": "v1"}), "must contain ${version}"),
        (NamedPlugin("exec"), "needs prepare_cmd or publish_cmd"),
        (NamedPlugin("publish"), "no publisher available"),
        (NamedPlugin("notify"), "no notifier available"),
        (ConfiguredPlugin("commit-analyzer", {"preset": "eslint"}), "unknown preset"),
        (
            ConfiguredPlugin("commit-analyzer", {"release_rules": [{"type": "x", "release": "huge"}]}),
            "invalid release 'huge'",
        ),
        (ConfiguredPlugin("commit-analyzer", {"release_rules": [{"type": "x"}]}), "needs 'type' and 'release'"),
        (ConfiguredPlugin("commit-analyzer", {"note_keywords": [""]}), "non-empty strings"),
        (ConfiguredPlugin("export", {"variables": {"A": 1}}), "must be a string template"),
    ],
)
def test_config_errors(tmp_path: Path, plugin: PluginSpec, fragment: str) -> None:
    result = build_pipeline(_config(plugin), _deps(tmp_path))
    assert isinstance(result, Err)
    assert fragment in result.error.message


def test_analyzer_configured_twice(tmp_path: Path) -> None:
    result = build_pipeline(
        _config(NamedPlugin("commit-analyzer"), NamedPlugin("@semantic-release/commit-analyzer")),
        _deps(tmp_path),
    )
    assert isinstance(result, Err)
    assert "more than once" in result.error.message


def test_notify_uses_collaborator(tmp_path: Path) -> None:
    class Notifier:
        def notify(self, message: str) -> Ok[None]:
            return Ok(None)

    deps = Collaborators(vcs=GitVcs(tmp_path), notifier=Notifier())
    result = build_pipeline(_config(ConfiguredPlugin("notify", {"message": "shipped ${nextRelease.version}"})), deps)
    assert isinstance(result, Ok)
    step = result.value.steps[0]
    assert isinstance(step, NotifyStep)
    assert step.message == "shipped ${nextRelease.version}"


def test_aliases() -> None:
    assert canonical_name("@semantic-release/git") == "git"
    assert canonical_name("tag") == "git"
    assert canonical_name("notify") == "notify"
