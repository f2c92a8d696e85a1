"""CI environment collaborators.

Exported variables become visible to later CI job steps. Exporting is
fire-and-forget from the pipeline's point of view, but an unwritable env file
is still reported so the export step can fail loudly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from releng.core.result import Err, Ok, Result

__all__ = ["CiEnvironment", "GithubEnvFile", "MemoryEnvironment", "detect_environment"]

GITHUB_ENV_VAR = "GITHUB_ENV"


class CiEnvironment(Protocol):
    def export(self, key: str, value: str) -> Result[None, str]: ...


def _empty_exports() -> dict[str, str]:
    return {}


@dataclass
class MemoryEnvironment:
    """Keeps exports in memory (local runs and tests)."""

    exported: dict[str, str] = field(default_factory=_empty_exports)

    def export(self, key: str, value: str) -> Result[None, str]:
        self.exported[key] = value
        return Ok(None)


@dataclass(frozen=True, slots=True)
class GithubEnvFile:
    """Appends KEY=value lines to the file GitHub Actions reads between steps."""

    path: Path

    def export(self, key: str, value: str) -> Result[None, str]:
        if "\n" in value or "\n" in key:
            return Err(f"cannot export multi-line value for {key}")
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(f"{key}={value}\n")
        except OSError as e:
            return Err(f"failed to write {self.path}: {e}")
        return Ok(None)


def detect_environment(environ: Mapping[str, str] | None = None) -> CiEnvironment:
    env = os.environ if environ is None else environ
    target = env.get(GITHUB_ENV_VAR, "").strip()
    if target:
        return GithubEnvFile(Path(target))
    return MemoryEnvironment()
