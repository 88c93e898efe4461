"""
Configuration file loader for repo-concat.

Supports loading configuration from:
- an explicit `--config` path (`.toml`, `.yaml`/`.yml`, or `.json`)
- repo-concat.toml / .repo-concat.toml / repo-concat.y(a)ml in the current directory

CLI flags override config file values.
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .classifier import normalize_extensions
from .config import (
    DEFAULT_INCLUDE_EXTENSIONS,
    DEFAULT_OUTPUT,
    KNOWN_EXTENSIONLESS_FILES,
    ConcatOptions,
)
from .exceptions import ConfigError

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "repo-concat.toml",
    ".repo-concat.toml",
    "repo-concat.yaml",
    ".repo-concat.yaml",
    "repo-concat.yml",
    ".repo-concat.yml",
]

# Nested section names accepted in place of a flat document
SECTION_NAMES = ("repo-concat", "repo_concat")


@dataclass
class ProjectConfig:
    """
    Configuration loaded from a config file.

    All fields are optional - CLI flags will override any values set here.
    """

    include_extensions: set[str] | None = None
    extra_extensions: set[str] | None = None
    output: Path | None = None
    respect_gitignore: bool | None = None
    require_git: bool | None = None
    hidden: bool | None = None
    compact: bool | None = None
    max_file_bytes: int | None = None
    jobs: int | None = None

    # Source file path (for debugging)
    _config_file: Path | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert the set values to a JSON-serializable dictionary with sorted keys."""
        result: dict[str, Any] = {}
        if self.include_extensions is not None:
            result["include_extensions"] = sorted(self.include_extensions)
        if self.extra_extensions is not None:
            result["extra_extensions"] = sorted(self.extra_extensions)
        if self.output is not None:
            result["output"] = str(self.output)
        for key in (
            "respect_gitignore", "require_git", "hidden", "compact", "max_file_bytes", "jobs"
        ):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self._config_file is not None:
            result["_loaded_from"] = str(self._config_file)
        return dict(sorted(result.items()))


def find_config_file(search_dir: Path) -> Path | None:
    """
    Find a configuration file in a directory.

    Args:
        search_dir: Directory to look in (normally the current working directory)

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = search_dir / name
        if config_path.is_file():
            return config_path
    return None


def _unwrap_section(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    for section in SECTION_NAMES:
        if isinstance(data.get(section), dict):
            return dict(data[section])
    return dict(data)


def _parse_file(path: Path) -> dict[str, Any]:
    """Parse a TOML, YAML or JSON config file into a flat dict.

    Raises:
        ConfigError: If the file cannot be read, is malformed, or has an unknown suffix.
    """
    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            with open(path, "rb") as f:
                return _unwrap_section(tomllib.load(f))
        if suffix in (".yml", ".yaml"):
            with open(path, encoding="utf-8") as f:
                return _unwrap_section(yaml.safe_load(f))
        if suffix == ".json":
            with open(path, encoding="utf-8") as f:
                return _unwrap_section(json.load(f))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e.strerror or e}") from e
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    raise ConfigError(f"Unsupported config file type: {path} (use .toml, .yaml, .yml or .json)")


def _as_extensions(value: Any, key: str) -> set[str] | None:
    """Normalize a comma-separated string or list of extensions."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple, set)):
        raise ConfigError(f"'{key}' must be a list of extensions")
    return normalize_extensions(value) or None


def _as_bool(data: dict[str, Any], key: str) -> bool | None:
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false")
    return value


def _as_int(data: dict[str, Any], key: str, minimum: int = 0) -> int | None:
    if key not in data:
        return None
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigError(f"'{key}' must be an integer >= {minimum}")
    return value


def load_config(config_path: Path | None = None, search_dir: Path | None = None) -> ProjectConfig:
    """
    Load configuration from a config file.

    Args:
        config_path: Explicit path to a config file (must exist)
        search_dir: Directory searched for a default config file when no path is given

    Returns:
        ProjectConfig with loaded values (unset values remain None).

    Raises:
        ConfigError: If an explicit file is missing, or any file is malformed.
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(search_dir or Path.cwd())
        if config_path is None:
            return ProjectConfig()

    data = _parse_file(config_path)

    config = ProjectConfig(_config_file=config_path)
    # `file_extensions` is the key used by the original JSON config format
    config.include_extensions = _as_extensions(
        data.get("include_extensions", data.get("file_extensions")), "include_extensions"
    )
    config.extra_extensions = _as_extensions(data.get("extra_extensions"), "extra_extensions")

    if "output" in data:
        config.output = Path(str(data["output"]))
    config.respect_gitignore = _as_bool(data, "respect_gitignore")
    config.require_git = _as_bool(data, "require_git")
    config.hidden = _as_bool(data, "hidden")
    config.compact = _as_bool(data, "compact")
    config.max_file_bytes = _as_int(data, "max_file_bytes")
    config.jobs = _as_int(data, "jobs", minimum=1)

    return config


def _pick(cli_value: Any, config_value: Any, default: Any) -> Any:
    if cli_value is not None:
        return cli_value
    if config_value is not None:
        return config_value
    return default


def merge_cli_with_config(
    config: ProjectConfig,
    *,
    # CLI arguments (None / False means not specified on CLI)
    output: Path | None = None,
    include_ext: str | None = None,
    no_gitignore: bool = False,
    no_require_git: bool = False,
    hidden: bool = False,
    compact: bool = False,
    max_file_bytes: int | None = None,
    jobs: int | None = None,
) -> tuple[Path, ConcatOptions]:
    """Merge CLI arguments with config file values (CLI wins).

    Args:
        config: Config loaded from file (may have unset values).
        output: CLI output path (optional).
        include_ext: Comma-separated extensions from CLI; replaces the allowlist
            and the extension-less name table.
        no_gitignore: CLI flag to disable `.gitignore` respect.
        no_require_git: CLI flag to honor `.gitignore` outside git repositories.
        hidden: CLI flag to include hidden entries.
        compact: CLI flag to compact file content.
        max_file_bytes: CLI override for the per-file size limit (optional).
        jobs: CLI override for reader threads (optional).

    Returns:
        Tuple `(output_path, options)` used by the concatenation pipeline.
    """
    # Include extensions: CLI replaces config, config replaces defaults
    if include_ext:
        extensions = _as_extensions(include_ext, "--include-ext")
    elif config.include_extensions is not None:
        extensions = set(config.include_extensions)
    else:
        extensions = None

    # An explicit list drops the extension-less names; extras alone keep them
    names = None
    if config.extra_extensions:
        if extensions is None:
            names = KNOWN_EXTENSIONLESS_FILES.copy()
        extensions = (extensions or DEFAULT_INCLUDE_EXTENSIONS.copy()) | config.extra_extensions

    options = ConcatOptions(
        include_extensions=extensions,
        include_names=names,
        respect_gitignore=False if no_gitignore else _pick(None, config.respect_gitignore, True),
        require_git=False if no_require_git else _pick(None, config.require_git, True),
        hidden=True if hidden else _pick(None, config.hidden, False),
        compact=True if compact else _pick(None, config.compact, False),
        max_file_bytes=_pick(max_file_bytes, config.max_file_bytes, 0),
        jobs=_pick(jobs, config.jobs, 1),
    )
    output_path = Path(_pick(output, config.output, Path(DEFAULT_OUTPUT)))
    return output_path, options
