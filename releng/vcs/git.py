"""Git-backed VCS and commit source collaborators.

The release core only talks to the `Vcs` and `CommitSource` protocols; this
module provides the default implementation that shells out to `git`.

Usage:
    vcs = GitVcs(Path("."))
    match vcs.commits_since("v1.2.3"):
        case Ok(commits):
            ...
        case Err(e):
            print(f"error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from releng.core.result import Err, Ok, Result
from releng.platform.process import ProcessError
from releng.platform.process import run as run_process
from releng.release.classifier import parse_commit
from releng.release.model import CommitRecord

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Record/field separators for `git log --format`.
_RS = "\x1e"
_FS = "\x1f"

__all__ = ["CommitSource", "GitError", "GitVcs", "Repository", "Vcs", "parse_log"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class CommitSource(Protocol):
    def commits_since(self, tag: str | None) -> Result[list[CommitRecord], GitError]:
        """Commits reachable from HEAD and not from `tag`, oldest first."""
        ...


class Vcs(Protocol):
    def list_tags(self) -> Result[list[str], GitError]: ...

    def create_tag(self, tag: str, message: str) -> Result[None, GitError]: ...

    def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]: ...


class Repository(Vcs, CommitSource, Protocol):
    def current_branch(self) -> Result[str, GitError]: ...


def _to_git_error(subcommand: str, e: ProcessError) -> GitError:
    return GitError(command=subcommand, message=e.detail, returncode=e.returncode)


def parse_log(output: str) -> list[CommitRecord]:
    """Parse `git log --format=%H%x1f%B%x1e` output, returning oldest first."""
    commits: list[CommitRecord] = []
    for record in output.split(_RS):
        record = record.strip("\n")
        if not record.strip():
            continue
        sha, _, body = record.partition(_FS)
        commits.append(parse_commit(sha.strip(), body.strip()))
    commits.reverse()
    return commits


class GitVcs:
    """Git repository adapter."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _git(
        self, *args: str, timeout: float = _GIT_TIMEOUT_SECONDS
    ) -> Result[str, GitError]:
        result = run_process(["git", *args], cwd=self._root, timeout=timeout)
        if isinstance(result, Err):
            return Err(_to_git_error(args[0], result.error))
        return Ok(result.value)

    def current_branch(self) -> Result[str, GitError]:
        out = self._git("rev-parse", "--abbrev-ref", "HEAD")
        if isinstance(out, Err):
            return out
        branch = out.value.strip()
        if not branch or branch == "HEAD":
            return Err(GitError(command="rev-parse", message="detached HEAD: pass --branch"))
        return Ok(branch)

    def list_tags(self) -> Result[list[str], GitError]:
        out = self._git("tag", "--list")
        if isinstance(out, Err):
            return out
        return Ok([line.strip() for line in out.value.splitlines() if line.strip()])

    def commits_since(self, tag: str | None) -> Result[list[CommitRecord], GitError]:
        rev = f"{tag}..HEAD" if tag else "HEAD"
        out = self._git("log", f"--format=%H{_FS}%B{_RS}", rev)
        if isinstance(out, Err):
            return out
        return Ok(parse_log(out.value))

    def create_tag(self, tag: str, message: str) -> Result[None, GitError]:
        out = self._git("tag", "-a", tag, "-m", message)
        if isinstance(out, Err):
            return out
        return Ok(None)

    def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]:
        out = self._git("push", remote, f"refs/tags/{tag}", timeout=_GIT_NETWORK_TIMEOUT_SECONDS)
        if isinstance(out, Err):
            return out
        return Ok(None)
