"""Blocking subprocess calls for git and release hooks.

Every call captures output and comes back as a Result; nothing here raises
for a failing, missing or hung command.

Usage:
    match run(["git", "tag", "--list"], cwd=repo):
        case Ok(stdout):
            tags = stdout.splitlines()
        case Err(error):
            print(error.detail)
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from releng.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_shell"]

# Exit status reported when the process never ran or was killed on timeout.
NO_EXIT_STATUS = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run or exited non-zero.

    `command` holds the argv, or a single item with the shell line for
    `run_shell`.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def detail(self) -> str:
        """Most useful single message: stderr, then stdout, then a summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def _invoke(
    args: list[str] | str,
    label: tuple[str, ...],
    cwd: Path,
    env: dict[str, str] | None,
    timeout: float | None,
) -> Result[str, ProcessError]:
    try:
        proc = subprocess.run(
            args,
            cwd=str(cwd),
            env=env,
            shell=isinstance(args, str),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(label, NO_EXIT_STATUS, partial, f"command timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(label, NO_EXIT_STATUS, "", str(e)))

    if proc.returncode == 0:
        return Ok(proc.stdout)
    return Err(ProcessError(label, proc.returncode, proc.stdout, proc.stderr))


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run an argv list without a shell and return its stdout."""
    return _invoke(cmd, tuple(cmd), cwd, env, timeout)


def run_shell(
    command: str,
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run a shell line, so redirections and `$VARS` work as in a CI script."""
    return _invoke(command, (command,), cwd, env, timeout)
