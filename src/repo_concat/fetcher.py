"""
Repository fetcher module.

Turns the user's input into a working root: remote repository references are cloned
into a scoped temporary directory, local paths are validated and passed through.
"""

from __future__ import annotations

import dataclasses
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union
from urllib.parse import urlparse

from rich.console import Console

from .exceptions import CloneError, InvalidReferenceError, PathNotFoundError

# Used when the caller does not pass its own console
default_console = Console()

# URL schemes that mark an input as a remote reference
REMOTE_SCHEMES = {"http", "https", "ssh", "git"}

# Hosts whose web URLs are normalized to an HTTPS clone URL
KNOWN_FORGES = {"github.com", "gitlab.com", "bitbucket.org", "codeberg.org"}

# scp-like git syntax: user@host:owner/repo.git
_SCP_LIKE = re.compile(r"^(?P<user>[\w.+-]+)@(?P<host>[\w.-]+):(?P<path>[^/\\].*)$")


@dataclass(frozen=True)
class RemoteRepo:
    """A remote repository reference.

    Attributes:
        url: The URL exactly as given by the user.
        clone_url: URL handed to `git clone`.
        name: Repository name, used as the clone directory name.
        ref: Optional branch/tag/SHA to check out after cloning.
    """

    url: str
    clone_url: str
    name: str
    ref: str | None = None


@dataclass(frozen=True)
class LocalPath:
    """A local directory reference."""

    path: Path


InputReference = Union[RemoteRepo, LocalPath]


def is_remote_reference(raw: str) -> bool:
    """Check whether raw input should be treated as a remote repository.

    Args:
        raw: The positional CLI argument.

    Returns:
        True for URLs with a git-capable scheme and for scp-like `user@host:path`.
    """
    if _SCP_LIKE.match(raw):
        return True
    return urlparse(raw).scheme.lower() in REMOTE_SCHEMES


def _split_forge_path(host: str, parts: list[str]) -> tuple[list[str], str | None]:
    """Split a forge web path into `(project_parts, ref)`.

    Supports common formats:
    - `owner/repo/tree/<ref>` and `owner/repo/blob/<ref>/...` (GitHub)
    - `group/sub/repo/-/tree/<ref>` (GitLab)
    - `owner/repo/src/<ref>` (Bitbucket)
    - `owner/repo/src/branch/<ref>` (Codeberg)
    """
    if host == "gitlab.com":
        if "-" in parts:
            idx = parts.index("-")
            project, rest = parts[:idx], parts[idx + 1 :]
            ref = rest[1] if len(rest) >= 2 and rest[0] in ("tree", "blob") else None
            return project, ref
        return parts, None

    project, rest = parts[:2], parts[2:]
    ref = None
    if len(rest) >= 2 and rest[0] in ("tree", "blob", "commit"):
        ref = rest[1]
    elif host == "codeberg.org" and len(rest) >= 3 and rest[0] == "src":
        ref = rest[2]
    elif host == "bitbucket.org" and len(rest) >= 2 and rest[0] == "src":
        ref = rest[1]
    return project, ref


def parse_repo_url(url: str) -> RemoteRepo:
    """Parse a remote repository URL into a `RemoteRepo`.

    Args:
        url: HTTPS, SSH, git:// or scp-like repository URL.

    Returns:
        The parsed reference, with a normalized HTTPS clone URL for known forges.

    Raises:
        InvalidReferenceError: If the URL lacks a host or `owner/repo` segments.
    """
    scp = _SCP_LIKE.match(url)
    if scp:
        host = scp.group("host").lower()
        raw_path = scp.group("path")
    else:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        raw_path = parsed.path

    if not host:
        raise InvalidReferenceError(f"Invalid repository URL (missing host): {url}")

    host = host.removeprefix("www.")
    parts = [p for p in raw_path.split("/") if p]

    if host in KNOWN_FORGES:
        project, ref = _split_forge_path(host, parts)
    else:
        project, ref = parts, None

    if len(project) < 2:
        raise InvalidReferenceError(f"Invalid repository URL (missing owner/repo): {url}")

    project[-1] = project[-1].removesuffix(".git")
    name = project[-1]
    if not name or name in (".", ".."):
        raise InvalidReferenceError(f"Invalid repository URL (bad repository name): {url}")

    if host in KNOWN_FORGES:
        clone_url = f"https://{host}/{'/'.join(project)}.git"
    else:
        clone_url = url

    return RemoteRepo(url=url, clone_url=clone_url, name=name, ref=ref)


def parse_input(raw: str) -> InputReference:
    """Classify the user's input as a remote repository or a local path.

    Raises:
        InvalidReferenceError: If the input looks remote but cannot be parsed.
    """
    if is_remote_reference(raw):
        return parse_repo_url(raw)
    return LocalPath(Path(raw).expanduser())


def validate_local_path(path: Path) -> Path:
    """Validate and resolve a local directory path.

    Args:
        path: Local path to validate.

    Returns:
        Resolved absolute path to a readable directory.

    Raises:
        PathNotFoundError: If the path does not exist, is not a directory, or is not readable.
    """
    resolved = path.resolve()

    if not resolved.exists():
        raise PathNotFoundError(f"Path does not exist: {resolved}")

    if not resolved.is_dir():
        raise PathNotFoundError(f"Path is not a directory: {resolved}")

    if not os.access(resolved, os.R_OK | os.X_OK):
        raise PathNotFoundError(f"Path is not readable: {resolved}")

    return resolved


def clone_repository(
    reference: RemoteRepo, target_dir: Path, console: Console | None = None
) -> Path:
    """Clone a remote repository into `target_dir`.

    Performs a full clone of the default branch, then checks out `reference.ref`
    when one is set. Git is never allowed to prompt for credentials.

    Args:
        reference: The remote repository to clone.
        target_dir: Existing parent directory for the clone.
        console: Console for progress messages; share the caller's while a live
            display is running.

    Returns:
        Path to the cloned repository root directory.

    Raises:
        CloneError: If GitPython or git is unavailable, or the clone/checkout fails.
    """
    try:
        import git
    except ImportError as exc:
        raise CloneError(
            "GitPython and a git executable are required for cloning. "
            "Install with: pip install gitpython"
        ) from exc

    console = console or default_console
    repo_path = target_dir / reference.name

    console.print(f"[cyan]Cloning {reference.clone_url}...[/cyan]")

    try:
        repo = git.Repo.clone_from(
            reference.clone_url,
            repo_path,
            env={"GIT_TERMINAL_PROMPT": "0"},
        )
        if reference.ref:
            repo.git.checkout(reference.ref)
    except git.exc.GitError as e:
        raise CloneError(f"Failed to clone repository {reference.url}: {e}") from e
    except OSError as e:
        raise CloneError(f"Failed to clone repository {reference.url}: {e}") from e

    console.print(f"[green]✓ Cloned to {repo_path}[/green]")
    return repo_path


def cleanup_temp_dir(path: Path, console: Console | None = None) -> None:
    """Delete a temporary clone directory.

    Args:
        path: Path to the temporary directory to remove.
        console: Console for the failure warning.
    """
    try:
        if path.exists():
            shutil.rmtree(path)
    except OSError as e:
        console = console or default_console
        console.print(f"[yellow]Warning: Failed to clean up temp directory {path}: {e}[/yellow]")


class WorkingRoot:
    """
    The directory a run walks, and the owner of any temporary clone behind it.

    Used as a context manager; leaving the context removes a temporary clone exactly
    once, whether the body succeeded, raised, or was interrupted.
    """

    def __init__(
        self,
        path: Path,
        temp_dir: Path | None = None,
        reference: InputReference | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize the working root.

        Args:
            path: Absolute directory to walk.
            temp_dir: Temporary directory owning `path`, removed on cleanup.
            reference: The input reference this root was resolved from.
            console: Console for cleanup warnings.
        """
        self.path = path
        self.temp_dir = temp_dir
        self.reference = reference
        self.console = console
        self._cleaned = False

    @property
    def is_temporary(self) -> bool:
        return self.temp_dir is not None

    def cleanup(self) -> None:
        """Remove the temporary clone, if any. Safe to call more than once."""
        if self.temp_dir is None or self._cleaned:
            return
        self._cleaned = True
        cleanup_temp_dir(self.temp_dir, self.console)

    def __enter__(self) -> WorkingRoot:
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any
    ) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        return f"WorkingRoot({str(self.path)!r}, temporary={self.is_temporary})"


def resolve(raw: str, ref: str | None = None, console: Console | None = None) -> WorkingRoot:
    """Resolve user input into a `WorkingRoot`.

    Args:
        raw: Repository URL or local directory path.
        ref: Optional branch/tag/SHA for remote repositories; overrides any ref in the URL.
        console: Console for clone messages (the module default if omitted).

    Returns:
        A `WorkingRoot`; remote inputs are backed by a temporary directory.

    Raises:
        InvalidReferenceError: If a remote-looking input cannot be parsed.
        CloneError: If cloning fails (the temporary directory is removed first).
        PathNotFoundError: If a local path is missing or not a directory.
    """
    reference = parse_input(raw)

    if isinstance(reference, LocalPath):
        return WorkingRoot(validate_local_path(reference.path), reference=reference)

    if ref:
        reference = dataclasses.replace(reference, ref=ref)

    temp_dir = Path(tempfile.mkdtemp(prefix="repo-concat-"))
    try:
        repo_path = clone_repository(reference, temp_dir, console)
    except BaseException:
        cleanup_temp_dir(temp_dir, console)
        raise

    return WorkingRoot(repo_path, temp_dir=temp_dir, reference=reference, console=console)
