"""
File scanner module for repo-concat.

Walks a working root depth-first in name order, pruning ignored directories and
yielding the files that pass the ignore rules, the allowlist and the binary sniff.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .classifier import get_language, normalize_extensions, should_include
from .config import DEFAULT_INCLUDE_EXTENSIONS, KNOWN_EXTENSIONLESS_FILES, FileEntry, RunStats
from .exceptions import WalkEntryError
from .ignore import IgnoreResolver, Match
from .utils import normalize_path


class FileScanner:
    """
    Scans a working root for files to concatenate.

    `scan()` is lazy and single-pass; calling it again restarts the walk. Counters
    accumulate in `stats` across calls.
    """

    def __init__(
        self,
        root_path: Path,
        include_extensions: Optional[set[str]] = None,
        include_names: Optional[set[str]] = None,
        respect_gitignore: bool = True,
        require_git: bool = True,
        hidden: bool = False,
        max_file_bytes: int = 0,
        exclude_paths: Optional[Iterable[Path]] = None,
        stats: Optional[RunStats] = None,
    ):
        """
        Initialize the scanner.

        Args:
            root_path: Root directory to scan
            include_extensions: File extensions to include (None uses the defaults)
            include_names: Extension-less file names to include (None uses the defaults
                unless include_extensions is given, in which case none are)
            respect_gitignore: Whether to respect .gitignore files
            require_git: Only honor .gitignore inside a git repository
            hidden: Include hidden files and directories
            max_file_bytes: Maximum file size in bytes (0 disables the limit)
            exclude_paths: Absolute paths that must never be yielded
            stats: Shared statistics object (a new one is created if omitted)
        """
        self.root_path = root_path.resolve()
        self.include_extensions = (
            normalize_extensions(include_extensions)
            if include_extensions
            else DEFAULT_INCLUDE_EXTENSIONS.copy()
        )
        if include_names is None:
            # An explicit extension allowlist also drops the full-name table
            include_names = set() if include_extensions else KNOWN_EXTENSIONLESS_FILES
        self.include_names = {name.lower() for name in include_names}
        self.max_file_bytes = max_file_bytes
        self.exclude_paths = {Path(p).resolve() for p in exclude_paths or ()}
        self.resolver = IgnoreResolver(
            self.root_path,
            respect_gitignore=respect_gitignore,
            require_git=require_git,
            hidden=hidden,
        )
        self.stats = stats if stats is not None else RunStats()

    def _warn(self, path: Path, error: OSError) -> None:
        """Record an unreadable entry and keep walking."""
        self.stats.files_skipped_error += 1
        reason = error.strerror or str(error)
        self.stats.warnings.append(str(WalkEntryError(self._relative(path), reason)))

    def _relative(self, path: Path) -> str:
        try:
            return normalize_path(str(path.relative_to(self.root_path)))
        except ValueError:
            return str(path)

    def _list_dir(self, directory: Path) -> Iterator[os.DirEntry]:
        """List a directory in name order; an unreadable directory yields nothing."""
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._warn(directory, e)
            return iter(())
        return iter(entries)

    def scan(self) -> Iterator[FileEntry]:
        """
        Walk the root and yield included files in deterministic order.

        Yields:
            FileEntry objects for each included file
        """
        stack = [self._list_dir(self.root_path)]

        try:
            while stack:
                entry = next(stack[-1], None)
                if entry is None:
                    stack.pop()
                    continue

                entry_path = Path(entry.path)
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    is_special = not (
                        is_dir or entry.is_symlink() or entry.is_file(follow_symlinks=False)
                    )
                    if is_special:
                        # Sockets, FIFOs and device files are never content
                        continue

                    if is_dir:
                        if self.resolver.match(entry_path, True) is Match.IGNORE:
                            self.stats.dirs_pruned += 1
                            continue
                        stack.append(self._list_dir(entry_path))
                        continue

                    file_entry = self._check_file(entry, entry_path)
                except OSError as e:
                    self._warn(entry_path, e)
                    continue

                if file_entry is not None:
                    yield file_entry
        finally:
            self.stats.warnings.extend(self.resolver.warnings)
            self.resolver.warnings.clear()

    def _check_file(self, entry: os.DirEntry, file_path: Path) -> Optional[FileEntry]:
        """Run the per-file checks; return an entry if the file is included."""
        self.stats.files_scanned += 1

        if self.resolver.match(file_path, False) is Match.IGNORE:
            self.stats.files_skipped_ignored += 1
            return None

        if file_path in self.exclude_paths:
            return None

        if not should_include(entry.name, self.include_extensions, self.include_names):
            self.stats.files_skipped_extension += 1
            return None

        size = entry.stat(follow_symlinks=False).st_size
        if self.max_file_bytes and size > self.max_file_bytes:
            self.stats.files_skipped_size += 1
            return None

        if self.resolver.is_binary(file_path):
            self.stats.files_skipped_binary += 1
            return None

        ext = file_path.suffix.lower()
        return FileEntry(
            path=file_path,
            relative_path=self._relative(file_path),
            size_bytes=size,
            extension=ext,
            language=get_language(ext, file_path.name),
        )


def scan_repository(
    root_path: Path,
    include_extensions: Optional[set[str]] = None,
    include_names: Optional[set[str]] = None,
    respect_gitignore: bool = True,
    require_git: bool = True,
    hidden: bool = False,
    max_file_bytes: int = 0,
) -> tuple[list[FileEntry], RunStats]:
    """
    Convenience function to scan a repository eagerly.

    Returns:
        Tuple of (list of FileEntry, RunStats)
    """
    scanner = FileScanner(
        root_path=root_path,
        include_extensions=include_extensions,
        include_names=include_names,
        respect_gitignore=respect_gitignore,
        require_git=require_git,
        hidden=hidden,
        max_file_bytes=max_file_bytes,
    )

    files = list(scanner.scan())
    return files, scanner.stats
