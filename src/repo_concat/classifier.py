"""
Extension classifier for repo-concat.

A closed allowlist: a file is included only when its extension (or its full name,
for well-known build manifests) appears in the tables in `config.py`.
"""

from __future__ import annotations

from pathlib import PurePath

from .config import DEFAULT_INCLUDE_EXTENSIONS, EXTENSION_TO_LANGUAGE, KNOWN_EXTENSIONLESS_FILES


def normalize_extensions(extensions: set[str] | list[str]) -> set[str]:
    """Lowercase extensions and ensure a leading dot.

    Args:
        extensions: Extensions with or without the leading dot (e.g. `"py"`, `".MD"`).

    Returns:
        A set of normalized extensions such as `{".py", ".md"}`.
    """
    result = set()
    for ext in extensions:
        ext = str(ext).strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        result.add(ext)
    return result


def should_include(
    filename: str,
    extensions: set[str] | None = None,
    names: set[str] | None = None,
) -> bool:
    """Decide whether a file name belongs in the output.

    Args:
        filename: Base name or path of the file.
        extensions: Allowlisted extensions; defaults to `DEFAULT_INCLUDE_EXTENSIONS`.
        names: Allowlisted full names; defaults to `KNOWN_EXTENSIONLESS_FILES`.

    Returns:
        True if the extension (case-insensitive) or the full name is allowlisted.
    """
    if extensions is None:
        extensions = DEFAULT_INCLUDE_EXTENSIONS
    if names is None:
        names = KNOWN_EXTENSIONLESS_FILES

    name = PurePath(filename).name.lower()
    if name in names:
        return True

    ext = PurePath(name).suffix
    if not ext:
        return False
    return ext in extensions


def get_language(extension: str, filename: str = "") -> str:
    """Get a display label from a file extension or special filename.

    Args:
        extension: File extension, any case.
        filename: Optional filename used for special cases like `Dockerfile`.

    Returns:
        A language label (e.g., `"python"`, `"markdown"`, `"text"`).
    """
    name_lower = filename.lower()
    if name_lower == "cmakelists.txt":
        return "cmake"

    ext_lower = extension.lower()
    if ext_lower in EXTENSION_TO_LANGUAGE:
        return EXTENSION_TO_LANGUAGE[ext_lower]

    if name_lower in ("dockerfile", "containerfile"):
        return "dockerfile"
    if name_lower in ("makefile", "justfile"):
        return "makefile"
    if name_lower in ("rakefile", "gemfile"):
        return "ruby"

    return "text"
