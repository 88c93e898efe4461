"""
Configuration models and defaults for repo-concat.

Holds the static allowlist tables used by the classifier, the ignore file names
used by the resolver, and the dataclasses passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Default output artifact name
DEFAULT_OUTPUT = "concatenated_output.txt"

# Bytes sampled from the start of a file when sniffing for binary content
BINARY_SNIFF_BYTES = 8192

# Ignore file names, most specific source first
TOOL_IGNORE_FILENAME = ".concatignore"
GENERIC_IGNORE_FILENAME = ".ignore"
GIT_IGNORE_FILENAME = ".gitignore"

# Default file extensions to include
DEFAULT_INCLUDE_EXTENSIONS: set[str] = {
    # Python
    ".py",
    ".pyi",
    ".pyx",
    # JavaScript/TypeScript
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".mjs",
    ".cjs",
    # Go
    ".go",
    # Java/Kotlin
    ".java",
    ".kt",
    ".kts",
    ".gradle",
    # Rust
    ".rs",
    # C/C++
    ".c",
    ".h",
    ".cpp",
    ".hpp",
    ".cc",
    ".cxx",
    ".hh",
    # C#
    ".cs",
    # Ruby
    ".rb",
    # PHP
    ".php",
    # Swift
    ".swift",
    # Scala
    ".scala",
    # Misc languages
    ".lua",
    ".pl",
    ".r",
    ".jl",
    ".ex",
    ".exs",
    ".erl",
    ".hs",
    ".ml",
    ".dart",
    ".zig",
    ".nim",
    ".clj",
    # Shell
    ".sh",
    ".bash",
    ".zsh",
    ".fish",
    ".ps1",
    ".bat",
    # Documentation
    ".md",
    ".rst",
    ".txt",
    ".adoc",
    ".tex",
    # Config
    ".yaml",
    ".yml",
    ".toml",
    ".json",
    ".ini",
    ".cfg",
    ".conf",
    ".xml",
    ".env",
    # Web
    ".html",
    ".htm",
    ".css",
    ".scss",
    ".less",
    ".vue",
    ".svelte",
    # SQL
    ".sql",
    # Build
    ".cmake",
    ".mk",
    # Misc
    ".dockerfile",
    ".graphql",
    ".proto",
    ".tf",
}

# Well-known files matched by full (lowercased) name, with or without a suffix
KNOWN_EXTENSIONLESS_FILES: set[str] = {
    "makefile",
    "dockerfile",
    "containerfile",
    "rakefile",
    "gemfile",
    "procfile",
    "vagrantfile",
    "jenkinsfile",
    "justfile",
    "cmakelists.txt",
    "license",
    "readme",
    "pipfile",
}

# Language detection by extension
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".pyx": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".md": "markdown",
    ".rst": "restructuredtext",
    ".txt": "text",
    ".adoc": "asciidoc",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".json": "json",
    ".ini": "ini",
    ".cfg": "ini",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".less": "less",
    ".vue": "vue",
    ".svelte": "svelte",
    ".sql": "sql",
    ".dockerfile": "dockerfile",
    ".graphql": "graphql",
    ".proto": "protobuf",
}


@dataclass
class FileEntry:
    """A file that survived the walk and will be written to the artifact.

    Attributes:
        path: Absolute path to the file on disk.
        relative_path: Root-relative path using forward slashes.
        size_bytes: File size in bytes at scan time.
        extension: Lowercased file extension including leading dot (may be empty).
        language: Display label used for summary counts.
    """

    path: Path
    relative_path: str
    size_bytes: int
    extension: str
    language: str


@dataclass
class ConcatOptions:
    """Options for a single walk-and-concatenate run.

    Attributes:
        include_extensions: Allowlisted extensions (None uses the defaults).
        include_names: Allowlisted extension-less names (None uses the defaults,
            or none at all when `include_extensions` is set).
        respect_gitignore: Whether `.gitignore`/exclude files are honored at all.
        require_git: Only honor `.gitignore` inside a git repository.
        hidden: Include hidden entries instead of suppressing them.
        compact: Strip trailing whitespace and blank lines from each file.
        max_file_bytes: Skip files larger than this; 0 disables the limit.
        jobs: Number of parallel file readers.
    """

    include_extensions: set[str] | None = None
    include_names: set[str] | None = None
    respect_gitignore: bool = True
    require_git: bool = True
    hidden: bool = False
    compact: bool = False
    max_file_bytes: int = 0
    jobs: int = 1


@dataclass
class RunStats:
    """Counters collected by the scanner and the concatenator.

    Attributes:
        files_scanned: File entries visited during traversal.
        files_included: Records written to the artifact.
        files_skipped_ignored: Files skipped by ignore rules, hidden suppression or symlinks.
        files_skipped_extension: Files skipped by the extension allowlist.
        files_skipped_binary: Files skipped by NUL-byte sniffing.
        files_skipped_size: Files skipped by `max_file_bytes`.
        files_skipped_decode: Files skipped because they are not valid UTF-8.
        files_skipped_error: Entries skipped because they could not be read.
        dirs_pruned: Directories excluded wholesale by ignore rules.
        bytes_written: UTF-8 bytes written to the artifact.
        tokens_estimated: Rough token count of the artifact (chars / 4).
        languages_detected: Counts of included files per language.
        warnings: Human-readable messages for every recovered error.
    """

    files_scanned: int = 0
    files_included: int = 0
    files_skipped_ignored: int = 0
    files_skipped_extension: int = 0
    files_skipped_binary: int = 0
    files_skipped_size: int = 0
    files_skipped_decode: int = 0
    files_skipped_error: int = 0
    dirs_pruned: int = 0
    bytes_written: int = 0
    tokens_estimated: int = 0
    languages_detected: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def files_skipped(self) -> int:
        """Total files skipped after being considered for output.

        Ignore and extension skips are silent filtering and are not counted here.
        """
        return (
            self.files_skipped_binary
            + self.files_skipped_size
            + self.files_skipped_decode
            + self.files_skipped_error
        )
