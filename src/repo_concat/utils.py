"""
Utility functions for repo-concat.

Binary sniffing, encoding guesses for warnings, path normalization and the
compact text transform.
"""

from __future__ import annotations

from pathlib import Path

import chardet

from .config import BINARY_SNIFF_BYTES


def is_binary_file(file_path: Path, sample_size: int = BINARY_SNIFF_BYTES) -> bool:
    """Determine whether a file is binary by looking for a NUL byte.

    Only the first `sample_size` bytes are read, so large files cost the same as small
    ones.

    Args:
        file_path: Path to the file to test.
        sample_size: Number of bytes to sample from the file start.

    Returns:
        True if a NUL byte occurs within the sampled window.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with open(file_path, "rb") as f:
        sample = f.read(sample_size)
    return b"\x00" in sample


def guess_encoding(data: bytes, sample_size: int = BINARY_SNIFF_BYTES) -> str | None:
    """Guess the encoding of bytes that failed strict UTF-8 decoding.

    Used only to make skip warnings more useful; the guess never drives decoding.

    Args:
        data: Raw file content.
        sample_size: Number of leading bytes handed to `chardet`.

    Returns:
        A lowercased encoding label, or None if `chardet` has no opinion.
    """
    if not data:
        return None
    result = chardet.detect(data[:sample_size])
    encoding = result.get("encoding")
    if not isinstance(encoding, str) or not encoding:
        return None
    return encoding.lower()


def normalize_path(path: str) -> str:
    """Normalize a path for consistent cross-platform comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def normalize_line_endings(content: str) -> str:
    """Normalize line endings to LF (Unix-style).

    Args:
        content: Input text that may contain CRLF/CR/mixed endings.

    Returns:
        Content with all line endings normalized to LF.
    """
    # Replace CRLF first, then remaining CR, to avoid double-transforming CRLF.
    return content.replace("\r\n", "\n").replace("\r", "\n")


def compact_text(content: str) -> str:
    """Strip trailing whitespace from every line and drop blank lines.

    Args:
        content: Decoded file content.

    Returns:
        The remaining lines joined with `\\n`, without a trailing newline.
    """
    lines = (line.rstrip() for line in normalize_line_endings(content).split("\n"))
    return "\n".join(line for line in lines if line)


def estimate_tokens(text: str) -> int:
    """Roughly estimate the token count of a string (~4 characters per token)."""
    return len(text) // 4
