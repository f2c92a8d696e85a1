"""Plugin identifier -> pipeline step lookup.

Turns the `plugins` entries of a ReleaseConfig into commit-analysis settings
plus an ordered list of steps. Any problem (unknown plugin, unknown option,
bad option value) is a ConfigError, reported before a single step runs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from releng.ci.env import CiEnvironment, MemoryEnvironment
from releng.core.config import ConfigError, ReleaseConfig
from releng.core.result import Err, Ok, Result
from releng.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    as_str_list,
    first_str,
    get_bool,
    get_str,
    get_table,
)
from releng.pipeline.executor import PipelineStep
from releng.pipeline.steps import (
    ChangelogStep,
    ExecStep,
    ExportStep,
    Notifier,
    NotifyStep,
    PublishStep,
    Publisher,
    ShellPublisher,
    TagStep,
)
from releng.release.classifier import DEFAULT_BREAKING_MARKERS, release_rules
from releng.release.model import VersionBump
from releng.release.semver import DEFAULT_TAG_FORMAT
from releng.vcs.git import Vcs

__all__ = [
    "ANALYZER",
    "AnalyzerSettings",
    "Collaborators",
    "ConfiguredPipeline",
    "build_pipeline",
    "canonical_name",
    "known_plugins",
]

ANALYZER = "commit-analyzer"

_ALIASES: Mapping[str, str] = {
    "@semantic-release/commit-analyzer": ANALYZER,
    "@semantic-release/git": "git",
    "@semantic-release/changelog": "changelog",
    "@semantic-release/exec": "exec",
    "tag": "git",
}

DEFAULT_EXPORTS: Mapping[str, str] = {"RELEASE_VERSION": "${nextRelease.version}"}


@dataclass(frozen=True, slots=True)
class AnalyzerSettings:
    rules: Mapping[str, VersionBump]
    breaking_markers: tuple[str, ...] = DEFAULT_BREAKING_MARKERS


def _default_rules() -> Mapping[str, VersionBump]:
    return release_rules() or {}


@dataclass(frozen=True, slots=True)
class ConfiguredPipeline:
    analyzer: AnalyzerSettings = field(default_factory=lambda: AnalyzerSettings(_default_rules()))
    steps: tuple[PipelineStep, ...] = ()
    tag_format: str = DEFAULT_TAG_FORMAT


@dataclass(frozen=True, slots=True)
class Collaborators:
    """External systems steps talk to."""

    vcs: Vcs
    env: CiEnvironment = field(default_factory=MemoryEnvironment)
    publisher: Publisher | None = None
    notifier: Notifier | None = None


def canonical_name(name: str) -> str:
    return _ALIASES.get(name, name)


def _check_keys(name: str, options: StrDict, allowed: set[str]) -> Result[None, str]:
    unknown = sorted(set(options) - allowed)
    if unknown:
        return Err(f"plugin '{name}': unknown options: {', '.join(unknown)}")
    return Ok(None)


def _parse_rules(raw: object) -> Result[dict[str, VersionBump], str]:
    """Accept [{type = "breaking", release = "major"}, ...] or {breaking = "major"}."""
    pairs: list[tuple[object, object]] = []
    table = as_str_dict(raw)
    if table is not None:
        pairs = list(table.items())
    else:
        items = as_obj_list(raw)
        if items is None:
            return Err("release_rules must be an array of {type, release} tables or a table")
        for item in items:
            rule = as_str_dict(item)
            if rule is None or "type" not in rule or "release" not in rule:
                return Err("each release rule needs 'type' and 'release'")
            pairs.append((rule["type"], rule["release"]))

    rules: dict[str, VersionBump] = {}
    for commit_type, release in pairs:
        if not isinstance(commit_type, str) or not commit_type.strip():
            return Err(f"invalid commit type in release rule: {commit_type!r}")
        if release is False:
            bump = VersionBump.NONE
        elif isinstance(release, str):
            parsed = VersionBump.parse(release)
            if parsed is None:
                return Err(f"invalid release '{release}' for type '{commit_type}'")
            bump = parsed
        else:
            return Err(f"invalid release {release!r} for type '{commit_type}'")
        rules[commit_type.strip().lower()] = bump
    return Ok(rules)


def _analyzer(options: StrDict) -> Result[AnalyzerSettings, str]:
    keys = _check_keys(ANALYZER, options, {"preset", "release_rules", "releaseRules", "note_keywords", "parserOpts"})
    if isinstance(keys, Err):
        return keys

    preset = get_str(options, "preset") or "angular"

    overrides: dict[str, VersionBump] = {}
    raw_rules = options.get("release_rules", options.get("releaseRules"))
    if raw_rules is not None:
        parsed = _parse_rules(raw_rules)
        if isinstance(parsed, Err):
            return Err(f"plugin '{ANALYZER}': {parsed.error}")
        overrides = parsed.value

    rules = release_rules(preset, overrides)
    if rules is None:
        return Err(f"plugin '{ANALYZER}': unknown preset '{preset}'")

    markers = DEFAULT_BREAKING_MARKERS
    raw_markers: object = options.get("note_keywords")
    if raw_markers is None:
        parser_opts = get_table(options, "parserOpts")
        if parser_opts is not None:
            raw_markers = parser_opts.get("noteKeywords")
    if raw_markers is not None:
        keywords = as_str_list(raw_markers)
        if keywords is None or not all(k.strip() for k in keywords):
            return Err(f"plugin '{ANALYZER}': note keywords must be non-empty strings")
        markers = tuple(keywords)

    return Ok(AnalyzerSettings(rules=rules, breaking_markers=markers))


type _Factory = Callable[[StrDict, Collaborators], Result[PipelineStep, str]]


def _git(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    keys = _check_keys("git", options, {"tag_format", "tagFormat", "push", "remote"})
    if isinstance(keys, Err):
        return keys
    push = get_bool(options, "push")
    remote = get_str(options, "remote") or "origin"
    return Ok(TagStep(vcs=deps.vcs, push=True if push is None else push, remote=remote))


def _changelog(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    keys = _check_keys("changelog", options, {"file", "changelogFile"})
    if isinstance(keys, Err):
        return keys
    file = first_str(options, "file", "changelogFile")
    return Ok(ChangelogStep(file=Path(file) if file else None))


def _exec(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    phases = (("prepare", ("prepare_cmd", "prepareCmd")), ("publish", ("publish_cmd", "publishCmd")))
    keys = _check_keys("exec", options, {k for _, names in phases for k in names})
    if isinstance(keys, Err):
        return keys

    commands: list[tuple[str, str]] = []
    for phase, names in phases:
        cmd = first_str(options, *names)
        if cmd is not None:
            commands.append((phase, cmd))
    if not commands:
        return Err("plugin 'exec': needs prepare_cmd or publish_cmd")
    return Ok(ExecStep(commands=tuple(commands)))


def _export(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    keys = _check_keys("export", options, {"variables"})
    if isinstance(keys, Err):
        return keys
    variables: dict[str, str] = dict(DEFAULT_EXPORTS)
    if "variables" in options:
        table = get_table(options, "variables")
        if table is None:
            return Err("plugin 'export': variables must be a table")
        variables = {}
        for key, value in table.items():
            if not isinstance(value, str):
                return Err(f"plugin 'export': variable {key} must be a string template")
            variables[key] = value
    return Ok(ExportStep(env=deps.env, variables=variables))


def _publish(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    keys = _check_keys("publish", options, {"command"})
    if isinstance(keys, Err):
        return keys
    command = get_str(options, "command")
    if command is not None:
        return Ok(PublishStep(publisher=ShellPublisher(command)))
    if deps.publisher is None:
        return Err("plugin 'publish': no publisher available (set the 'command' option)")
    return Ok(PublishStep(publisher=deps.publisher))


def _notify(options: StrDict, deps: Collaborators) -> Result[PipelineStep, str]:
    keys = _check_keys("notify", options, {"message"})
    if isinstance(keys, Err):
        return keys
    if deps.notifier is None:
        return Err("plugin 'notify': no notifier available")
    message = get_str(options, "message")
    if message is None:
        return Ok(NotifyStep(notifier=deps.notifier))
    return Ok(NotifyStep(notifier=deps.notifier, message=message))


_FACTORIES: Mapping[str, _Factory] = {
    "git": _git,
    "changelog": _changelog,
    "exec": _exec,
    "export": _export,
    "publish": _publish,
    "notify": _notify,
}


def known_plugins() -> list[str]:
    return sorted({ANALYZER, *_FACTORIES})


def build_pipeline(config: ReleaseConfig, deps: Collaborators) -> Result[ConfiguredPipeline, ConfigError]:
    analyzer: AnalyzerSettings | None = None
    tag_format = DEFAULT_TAG_FORMAT
    steps: list[PipelineStep] = []

    for plugin in config.plugins:
        name = canonical_name(plugin.name)
        options = plugin.options

        if name == ANALYZER:
            if analyzer is not None:
                return Err(ConfigError(f"plugin '{ANALYZER}' configured more than once"))
            parsed = _analyzer(options)
            if isinstance(parsed, Err):
                return Err(ConfigError(parsed.error))
            analyzer = parsed.value
            continue

        factory = _FACTORIES.get(name)
        if factory is None:
            return Err(
                ConfigError(f"unknown plugin '{plugin.name}' (known: {', '.join(known_plugins())})")
            )

        step = factory(options, deps)
        if isinstance(step, Err):
            return Err(ConfigError(step.error))
        steps.append(step.value)

        if name == "git":
            fmt = first_str(options, "tag_format", "tagFormat")
            if fmt is not None:
                if "${version}" not in fmt:
                    return Err(ConfigError("plugin 'git': tag_format must contain ${version}"))
                tag_format = fmt

    return Ok(
        ConfiguredPipeline(
            analyzer=analyzer or AnalyzerSettings(_default_rules()),
            steps=tuple(steps),
            tag_format=tag_format,
        )
    )
