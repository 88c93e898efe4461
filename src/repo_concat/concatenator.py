"""
Concatenator module for repo-concat.

Writes each included file to a single output artifact as one record:

    *** <relative/path>
    <file content>
    <blank line>

Files that cannot be read or are not valid UTF-8 are skipped and reported as
warnings; only failing to write the artifact itself is fatal.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Iterator, Union

from .config import FileEntry, RunStats
from .exceptions import DecodeError, WalkEntryError, WriteError
from .utils import compact_text, estimate_tokens, guess_encoding, normalize_line_endings

RECORD_MARKER = "***"

# Reads submitted per worker before the oldest result is written
READ_AHEAD = 4

LoadResult = Union[str, DecodeError, WalkEntryError]


def render_record(relative_path: str, content: str, compact: bool = False) -> str:
    """Render one artifact record.

    Args:
        relative_path: Root-relative path shown in the boundary header.
        content: Decoded file content.
        compact: Strip trailing whitespace and blank lines from the content.

    Returns:
        Header line, newline-terminated content, and a blank separator line.
    """
    text = compact_text(content) if compact else normalize_line_endings(content)
    if text and not text.endswith("\n"):
        text += "\n"
    return f"{RECORD_MARKER} {relative_path}\n{text}\n"


def read_entry(entry: FileEntry) -> bytes:
    """Read the full raw content of a file entry."""
    return entry.path.read_bytes()


def decode_content(entry: FileEntry, data: bytes) -> str:
    """Strictly decode file content as UTF-8, dropping a leading BOM.

    Raises:
        DecodeError: If the bytes are not valid UTF-8.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DecodeError(entry.relative_path, guess_encoding(data)) from e


def load_entry(entry: FileEntry) -> tuple[FileEntry, LoadResult]:
    """Read and decode one entry, returning the error instead of raising it."""
    try:
        data = read_entry(entry)
    except OSError as e:
        return entry, WalkEntryError(entry.relative_path, e.strerror or str(e))
    try:
        return entry, decode_content(entry, data)
    except DecodeError as e:
        return entry, e


def _load_all(entries: Iterable[FileEntry], jobs: int) -> Iterator[tuple[FileEntry, LoadResult]]:
    if jobs <= 1:
        for entry in entries:
            yield load_entry(entry)
        return
    # At most jobs * READ_AHEAD reads are in flight; results leave in walk order
    window = jobs * READ_AHEAD
    pending: deque[Future] = deque()
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        try:
            for entry in entries:
                pending.append(executor.submit(load_entry, entry))
                if len(pending) >= window:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()
        finally:
            for future in pending:
                future.cancel()


def _remove_partial(destination: Path) -> None:
    try:
        destination.unlink()
    except OSError:
        pass


def concatenate(
    entries: Iterable[FileEntry],
    destination: Path,
    *,
    compact: bool = False,
    jobs: int = 1,
    stats: RunStats | None = None,
    on_include: Callable[[FileEntry], None] | None = None,
) -> RunStats:
    """Write all readable text entries into a single artifact.

    Args:
        entries: Files to write, in output order.
        destination: Output file path; created or truncated.
        compact: Strip trailing whitespace and blank lines from each file.
        jobs: Number of reader threads; writes always happen on the calling thread.
        stats: Statistics object to update (a new one is created if omitted).
        on_include: Optional callback invoked after each record is written.

    Returns:
        The updated `RunStats`.

    Raises:
        WriteError: If the destination cannot be opened or written. A partially
            written artifact is removed.
    """
    if stats is None:
        stats = RunStats()
    destination = Path(destination)

    try:
        out = open(destination, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise WriteError(f"Cannot open output file {destination}: {e.strerror or e}") from e

    try:
        with out:
            for entry, result in _load_all(entries, jobs):
                if isinstance(result, DecodeError):
                    stats.files_skipped_decode += 1
                    stats.warnings.append(str(result))
                    continue
                if isinstance(result, WalkEntryError):
                    stats.files_skipped_error += 1
                    stats.warnings.append(str(result))
                    continue

                record = render_record(entry.relative_path, result, compact=compact)
                out.write(record)

                stats.files_included += 1
                stats.bytes_written += len(record.encode("utf-8"))
                stats.tokens_estimated += estimate_tokens(record)
                stats.languages_detected[entry.language] = (
                    stats.languages_detected.get(entry.language, 0) + 1
                )
                if on_include is not None:
                    on_include(entry)
    except OSError as e:
        _remove_partial(destination)
        raise WriteError(f"Failed writing output file {destination}: {e.strerror or e}") from e
    except BaseException:
        # Interrupted runs leave no truncated artifact behind
        _remove_partial(destination)
        raise

    return stats
