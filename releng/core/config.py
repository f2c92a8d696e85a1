"""Typed release configuration loading.

The configuration is a TOML document with exactly two top-level fields:

    branches = ["main", { name = "alpha", prerelease = true }]
    plugins = [
        ["commit-analyzer", { preset = "angular" }],
        "git",
        ["exec", { prepare_cmd = "echo RELEASE_VERSION=${nextRelease.version}" }],
    ]

Branch entries are a name (or glob) or a table with `name` and `prerelease`
(true, or the prerelease label to use). Plugin entries are a bare identifier
or an `[identifier, options]` pair. Plugin identifiers are checked when the
pipeline is built, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from releng.core.result import Err, Ok, Result
from releng.core.structured import StrDict, as_obj_list, as_str_dict, get_str
from releng.release.model import ChannelPolicy
from releng.release.semver import is_prerelease_label

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ConfiguredPlugin",
    "NamedPlugin",
    "PluginSpec",
    "ReleaseConfig",
    "load_config",
    "parse_config",
]

CONFIG_FILENAME = "release.toml"

_TOP_LEVEL_KEYS = frozenset({"branches", "plugins"})
_BRANCH_KEYS = frozenset({"name", "prerelease"})
_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Malformed configuration. Fatal: nothing runs after it."""

    message: str
    path: Path | None = None

    def pretty(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        return self.message


@dataclass(frozen=True, slots=True)
class NamedPlugin:
    name: str

    @property
    def options(self) -> StrDict:
        return {}


@dataclass(frozen=True, slots=True)
class ConfiguredPlugin:
    name: str
    options: StrDict = field(default_factory=dict)


type PluginSpec = NamedPlugin | ConfiguredPlugin


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    branches: tuple[ChannelPolicy, ...]
    plugins: tuple[PluginSpec, ...] = ()


def _parse_branch(index: int, raw: object) -> Result[ChannelPolicy, str]:
    if isinstance(raw, str):
        name = raw.strip()
        if not name:
            return Err(f"branches[{index}]: empty branch name")
        return Ok(ChannelPolicy(branch_pattern=name))

    table = as_str_dict(raw)
    if table is None:
        return Err(f"branches[{index}]: expected a branch name or a table")

    unknown = sorted(set(table) - _BRANCH_KEYS)
    if unknown:
        return Err(f"branches[{index}]: unknown keys: {', '.join(unknown)}")

    name = get_str(table, "name")
    if name is None:
        return Err(f"branches[{index}]: missing 'name'")

    prerelease = table.get("prerelease", False)
    if isinstance(prerelease, bool):
        return Ok(ChannelPolicy(branch_pattern=name, prerelease=prerelease))
    if isinstance(prerelease, str) and prerelease.strip():
        return Ok(ChannelPolicy(branch_pattern=name, prerelease=True, tag_name=prerelease.strip()))
    return Err(f"branches[{index}] ({name}): 'prerelease' must be a boolean or a label")


def _parse_plugin(index: int, raw: object) -> Result[PluginSpec, str]:
    if isinstance(raw, str):
        name = raw.strip()
        if not name:
            return Err(f"plugins[{index}]: empty plugin identifier")
        return Ok(NamedPlugin(name))

    pair = as_obj_list(raw)
    if pair is None or len(pair) != 2:
        return Err(f"plugins[{index}]: expected an identifier or an [identifier, options] pair")

    name_obj, options_obj = pair
    if not isinstance(name_obj, str) or not name_obj.strip():
        return Err(f"plugins[{index}]: plugin identifier must be a non-empty string")
    options = as_str_dict(options_obj)
    if options is None:
        return Err(f"plugins[{index}] ({name_obj}): options must be a table")
    return Ok(ConfiguredPlugin(name_obj.strip(), options))


def parse_config(data: StrDict) -> Result[ReleaseConfig, str]:
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        return Err(f"unknown top-level keys: {', '.join(unknown)}")

    raw_branches = as_obj_list(data.get("branches"))
    if raw_branches is None or not raw_branches:
        return Err("'branches' must be a non-empty array")

    branches: list[ChannelPolicy] = []
    seen: set[str] = set()
    labels: set[str] = set()
    for i, raw in enumerate(raw_branches):
        parsed = _parse_branch(i, raw)
        if isinstance(parsed, Err):
            return parsed
        policy = parsed.value
        if policy.branch_pattern in seen:
            return Err(f"branches[{i}]: duplicate branch '{policy.branch_pattern}'")
        seen.add(policy.branch_pattern)

        label = policy.identifier
        if label is not None:
            if policy.tag_name is None and not _GLOB_CHARS.isdisjoint(policy.branch_pattern):
                return Err(
                    f"branches[{i}] ({policy.branch_pattern}): a branch pattern needs an explicit prerelease label"
                )
            if not is_prerelease_label(label):
                return Err(
                    f"branches[{i}] ({policy.branch_pattern}): invalid prerelease label '{label}'"
                    " (use letters, digits and '-' only)"
                )
            if label in labels:
                return Err(f"branches[{i}] ({policy.branch_pattern}): prerelease label '{label}' is already used")
            labels.add(label)
        branches.append(policy)

    raw_plugins: list[object] = []
    if "plugins" in data:
        plugins_obj = as_obj_list(data["plugins"])
        if plugins_obj is None:
            return Err("'plugins' must be an array")
        raw_plugins = plugins_obj

    plugins: list[PluginSpec] = []
    for i, raw in enumerate(raw_plugins):
        plugin = _parse_plugin(i, raw)
        if isinstance(plugin, Err):
            return plugin
        plugins.append(plugin.value)

    return Ok(ReleaseConfig(branches=tuple(branches), plugins=tuple(plugins)))


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and validate the release configuration.

    Args:
        path: Path to the TOML file (usually release.toml)

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    data = _parse_toml(path)
    if isinstance(data, Err):
        return data

    parsed = parse_config(data.value)
    if isinstance(parsed, Err):
        return Err(ConfigError(parsed.error, path=path))
    return Ok(parsed.value)
