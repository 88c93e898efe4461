"""
Error taxonomy for repo-concat.

Fatal errors (resolve, config, write) abort the run. Per-file errors (walk entry,
decode) are recovered locally and surfaced as warnings in the final summary.
"""

from __future__ import annotations

from pathlib import Path


class RepoConcatError(Exception):
    """Base exception for all repo-concat errors."""


class ResolveError(RepoConcatError):
    """The input reference could not be turned into a working root."""


class InvalidReferenceError(ResolveError):
    """The input looks like a remote reference but cannot be parsed."""


class CloneError(ResolveError):
    """A remote repository could not be cloned."""


class PathNotFoundError(ResolveError):
    """A local path does not exist, is not a directory, or is unreadable."""


class ConfigError(RepoConcatError):
    """A configuration file could not be read or parsed."""


class WriteError(RepoConcatError):
    """The output artifact could not be opened or written."""


class WalkEntryError(RepoConcatError):
    """A single entry could not be inspected or read during the walk."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class DecodeError(RepoConcatError):
    """A file passed the filters but is not valid UTF-8 text."""

    def __init__(self, path: Path | str, encoding_guess: str | None = None) -> None:
        self.path = str(path)
        self.encoding_guess = encoding_guess
        detail = "not valid UTF-8"
        if encoding_guess:
            detail += f" (looks like {encoding_guess})"
        super().__init__(f"{self.path}: {detail}")
