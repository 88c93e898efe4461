"""
Ignore-rule resolver for repo-concat.

Composes tool-specific, generic and git ignore files, hidden-entry suppression,
binary sniffing and symlink exclusion into a single inclusion predicate.

Rule sources are evaluated most-specific first and the first decisive answer wins:

1. `.concatignore` files (deepest directory first)
2. `.ignore` files (deepest directory first)
3. `.gitignore` files up to the repository root, then `.git/info/exclude`,
   then the user's global git excludes file
4. hidden entries, unless one of the sources above whitelisted them
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

import pathspec

from .config import GENERIC_IGNORE_FILENAME, GIT_IGNORE_FILENAME, TOOL_IGNORE_FILENAME
from .utils import is_binary_file

# Directories that hold version-control metadata are never walked
VCS_DIRECTORIES = {".git", ".hg", ".svn"}


class Match(Enum):
    """Outcome of matching a path against a rule source."""

    NONE = "none"
    IGNORE = "ignore"
    WHITELIST = "whitelist"


class IgnorePattern:
    """
    One compiled ignore line, matched against a single entry.

    pathspec's gitignore regexes also hit every path below a matching directory.
    Here a pattern only decides the entry it names; the walker prunes ignored
    directories, so their descendants are never asked about.
    """

    def __init__(self, line: str):
        text = line.rstrip()
        body = text[1:] if text.startswith("!") else text
        # `dir/` is compiled as `dir` and restricted to directories
        self.dir_only = len(body) > 1 and body.endswith("/")
        if self.dir_only:
            text = text.rstrip("/")
            body = body.rstrip("/")
        self.pattern = pathspec.util.lookup_pattern("gitignore")(text)
        self.include = self.pattern.include
        # `dir/**`, `*` and `**` name the entries inside a directory themselves
        self.matches_inside = body.endswith("/**") or body in ("*", "**")

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        """Return True if the pattern names this entry (not merely an ancestor)."""
        if self.dir_only and not is_dir:
            return False
        m = self.pattern.regex.search(rel_path)
        if m is None:
            return False
        return self.matches_inside or m.end() == len(rel_path)


class IgnoreFile:
    """
    Compiled patterns from a single ignore file.

    Patterns are anchored at the directory containing the file. Within one file the
    last matching pattern wins, and a negated pattern (`!foo`) whitelists.
    """

    def __init__(self, base_path: Path, lines: list[str], source: Path | None = None):
        self.base_path = base_path
        self.source = source
        self.patterns: list[IgnorePattern] = []
        for line in lines:
            try:
                pattern = IgnorePattern(line)
            except ValueError:
                # git drops patterns it cannot parse
                continue
            # Comments and blank lines compile to patterns with include=None
            if pattern.include is not None:
                self.patterns.append(pattern)

    @classmethod
    def load(cls, file_path: Path, base_path: Path) -> IgnoreFile | None:
        """Load an ignore file if it exists.

        Args:
            file_path: Path to the ignore file.
            base_path: Directory the patterns are relative to.

        Returns:
            The compiled file, or None if it does not exist or holds no patterns.

        Raises:
            OSError: If the file exists but cannot be read.
        """
        if not file_path.is_file():
            return None
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
        ignore_file = cls(base_path, lines, source=file_path)
        return ignore_file if ignore_file.patterns else None

    def match(self, path: Path, is_dir: bool) -> Match:
        """Match an absolute path against this file's patterns.

        Args:
            path: Absolute path to test.
            is_dir: Whether the path is a directory (enables `dir/` patterns).

        Returns:
            The decision of the last matching pattern, or `Match.NONE`.
        """
        try:
            rel_path = path.relative_to(self.base_path).as_posix()
        except ValueError:
            return Match.NONE
        if rel_path == ".":
            return Match.NONE

        result = Match.NONE
        for pattern in self.patterns:
            if pattern.matches(rel_path, is_dir):
                result = Match.IGNORE if pattern.include else Match.WHITELIST
        return result


class DirectoryRules:
    """
    Ignore files found in one directory, linked to the rules of its parent.
    """

    def __init__(self, path: Path, parent: DirectoryRules | None, warnings: list[str]):
        self.path = path
        self.parent = parent
        self.is_git_root = (path / ".git").exists()
        self.tool = self._load(path / TOOL_IGNORE_FILENAME, warnings)
        self.generic = self._load(path / GENERIC_IGNORE_FILENAME, warnings)
        self.git = self._load(path / GIT_IGNORE_FILENAME, warnings)
        self.git_exclude = (
            self._load(path / ".git" / "info" / "exclude", warnings) if self.is_git_root else None
        )

    def _load(self, file_path: Path, warnings: list[str]) -> IgnoreFile | None:
        try:
            return IgnoreFile.load(file_path, self.path)
        except OSError as e:
            warnings.append(f"{file_path}: could not read ignore file ({e.strerror or e})")
            return None

    @property
    def git_root(self) -> DirectoryRules | None:
        """The nearest enclosing directory that contains `.git`, if any."""
        node: DirectoryRules | None = self
        while node is not None:
            if node.is_git_root:
                return node
            node = node.parent
        return None

    def chain(self):
        """Yield this directory's rules, then each ancestor's, innermost first."""
        node: DirectoryRules | None = self
        while node is not None:
            yield node
            node = node.parent


class RuleSource:
    """A source of ignore decisions consulted by the resolver."""

    def match(self, path: Path, is_dir: bool, rules: DirectoryRules) -> Match:
        raise NotImplementedError


class IgnoreFileSource(RuleSource):
    """Per-directory ignore files where the most specific directory wins."""

    def __init__(self, attr: str):
        self.attr = attr

    def match(self, path: Path, is_dir: bool, rules: DirectoryRules) -> Match:
        for node in rules.chain():
            ignore_file = getattr(node, self.attr)
            if ignore_file is None:
                continue
            m = ignore_file.match(path, is_dir)
            if m is not Match.NONE:
                return m
        return Match.NONE


class GitIgnoreSource(RuleSource):
    """`.gitignore` files up to and including the repository root."""

    def __init__(self, require_git: bool = True):
        self.require_git = require_git

    def match(self, path: Path, is_dir: bool, rules: DirectoryRules) -> Match:
        if self.require_git and rules.git_root is None:
            return Match.NONE
        for node in rules.chain():
            if node.git is not None:
                m = node.git.match(path, is_dir)
                if m is not Match.NONE:
                    return m
            if node.is_git_root:
                break
        return Match.NONE


class GitExcludeSource(RuleSource):
    """The repository's `.git/info/exclude` file."""

    def match(self, path: Path, is_dir: bool, rules: DirectoryRules) -> Match:
        git_root = rules.git_root
        if git_root is None or git_root.git_exclude is None:
            return Match.NONE
        return git_root.git_exclude.match(path, is_dir)


class GlobalGitIgnoreSource(RuleSource):
    """The user's global git excludes file, anchored at the repository root."""

    def __init__(self, lines: list[str], root_path: Path, require_git: bool = True):
        self.lines = lines
        self.root_path = root_path
        self.require_git = require_git
        self._compiled: dict[Path, IgnoreFile] = {}

    def match(self, path: Path, is_dir: bool, rules: DirectoryRules) -> Match:
        git_root = rules.git_root
        if git_root is None and self.require_git:
            return Match.NONE
        base = git_root.path if git_root is not None else self.root_path
        if base not in self._compiled:
            self._compiled[base] = IgnoreFile(base, self.lines)
        return self._compiled[base].match(path, is_dir)


def global_gitignore_path() -> Path:
    """Return the default location of git's global excludes file."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "git" / "ignore"
    return Path.home() / ".config" / "git" / "ignore"


class IgnoreResolver:
    """
    Single inclusion predicate over a directory tree.

    Directory rules are built lazily as the walker descends and cached per directory,
    so each ignore file is read at most once per run.
    """

    def __init__(
        self,
        root_path: Path,
        respect_gitignore: bool = True,
        require_git: bool = True,
        hidden: bool = False,
        git_global: bool = True,
    ):
        """
        Initialize the resolver.

        Args:
            root_path: Root directory of the walk
            respect_gitignore: Whether git ignore sources are consulted at all
            require_git: Only honor git ignore sources inside a git repository
            hidden: Include hidden entries instead of suppressing them
            git_global: Whether the user's global git excludes file is honored
        """
        self.root_path = root_path.resolve()
        self.hidden = hidden
        self.warnings: list[str] = []
        self._rules: dict[Path, DirectoryRules] = {}

        self.sources: list[RuleSource] = [
            IgnoreFileSource("tool"),
            IgnoreFileSource("generic"),
        ]
        if respect_gitignore:
            self.sources.append(GitIgnoreSource(require_git=require_git))
            self.sources.append(GitExcludeSource())
            if git_global:
                lines = self._read_global_gitignore()
                if lines:
                    self.sources.append(
                        GlobalGitIgnoreSource(lines, self.root_path, require_git=require_git)
                    )

        # Seed the cache with the root and all of its ancestors
        parent: DirectoryRules | None = None
        for directory in [*reversed(self.root_path.parents), self.root_path]:
            parent = DirectoryRules(directory, parent, self.warnings)
            self._rules[directory] = parent

    def _read_global_gitignore(self) -> list[str]:
        path = global_gitignore_path()
        if not path.is_file():
            return []
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read().splitlines()
        except OSError as e:
            self.warnings.append(f"{path}: could not read global gitignore ({e.strerror or e})")
            return []

    def rules_for(self, directory: Path) -> DirectoryRules:
        """Return the (cached) rules for a directory inside the root."""
        rules = self._rules.get(directory)
        if rules is None:
            rules = DirectoryRules(directory, self.rules_for(directory.parent), self.warnings)
            self._rules[directory] = rules
        return rules

    def match(self, path: Path, is_dir: bool) -> Match:
        """Apply symlink, ignore-file and hidden rules to a path.

        Binary sniffing is not part of this check; see `is_binary`.

        Args:
            path: Absolute path of the entry (must be inside the root).
            is_dir: Whether the entry is a directory.

        Returns:
            `Match.IGNORE`, `Match.WHITELIST`, or `Match.NONE` when nothing decided.
        """
        if os.path.islink(path):
            return Match.IGNORE
        if is_dir and path.name in VCS_DIRECTORIES:
            return Match.IGNORE

        rules = self.rules_for(path.parent)
        for source in self.sources:
            m = source.match(path, is_dir, rules)
            if m is not Match.NONE:
                return m

        if not self.hidden and path.name.startswith("."):
            return Match.IGNORE
        return Match.NONE

    def is_binary(self, path: Path) -> bool:
        """Return True if the file has a NUL byte in its initial window.

        Raises:
            OSError: If the file cannot be read.
        """
        return is_binary_file(path)

    def is_ignored(self, path: Path, is_dir: bool | None = None) -> bool:
        """
        Full inclusion predicate for a single path.

        Args:
            path: Absolute path to test
            is_dir: Whether the path is a directory; detected when omitted

        Returns:
            True if the path must not appear in the output
        """
        path = Path(os.path.abspath(path))
        if is_dir is None:
            is_dir = path.is_dir() and not path.is_symlink()
        if self.match(path, is_dir) is Match.IGNORE:
            return True
        if not is_dir:
            return self.is_binary(path)
        return False
