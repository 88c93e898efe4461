"""
CLI entry point for repo-concat.

Provides a command-line interface for flattening a repository into a single text file.
"""

from __future__ import annotations

import json
import signal
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .concatenator import concatenate
from .config import FileEntry, RunStats
from .config_loader import load_config, merge_cli_with_config
from .exceptions import ConfigError, ResolveError, WriteError
from .fetcher import resolve
from .scanner import FileScanner

# Initialize CLI app
app = typer.Typer(
    name="repo-concat",
    help="Concatenate a repository's text files into a single file for LLM context.",
    add_completion=False,
)

console = Console()

MAX_WARNINGS_SHOWN = 10


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"repo-concat version {__version__}")
        raise typer.Exit()


def _raise_on_sigterm(signum, frame) -> None:
    # SystemExit unwinds the WorkingRoot context so a temporary clone is removed
    raise SystemExit(128 + signum)


def print_summary(stats: RunStats, output_path: Path, elapsed: float) -> None:
    """Print warnings, statistics and the final result line."""
    if stats.warnings:
        console.print()
        console.print(f"[yellow]Warnings ({len(stats.warnings)}):[/yellow]")
        for warning in stats.warnings[:MAX_WARNINGS_SHOWN]:
            console.print(f"  [yellow]{escape(warning)}[/yellow]", highlight=False)
        if len(stats.warnings) > MAX_WARNINGS_SHOWN:
            console.print(f"  ... and {len(stats.warnings) - MAX_WARNINGS_SHOWN} more")

    console.print()
    console.print("[cyan]Statistics:[/cyan]")
    console.print(f"  Files scanned: {stats.files_scanned}")
    console.print(f"  Files included: {stats.files_included}")
    console.print(f"  Files skipped (binary): {stats.files_skipped_binary}")
    console.print(f"  Files skipped (size): {stats.files_skipped_size}")
    console.print(f"  Files skipped (not UTF-8): {stats.files_skipped_decode}")
    console.print(f"  Files skipped (unreadable): {stats.files_skipped_error}")
    console.print(f"  Directories pruned: {stats.dirs_pruned}")
    console.print(f"  Bytes written: {stats.bytes_written:,}")
    console.print(f"  Estimated tokens: {stats.tokens_estimated:,}")
    console.print(f"  Processing time: {elapsed:.2f}s")

    if stats.languages_detected:
        languages = sorted(stats.languages_detected.items(), key=lambda x: (-x[1], x[0]))
        console.print(
            "  Languages: " + ", ".join(f"{lang} ({count})" for lang, count in languages[:8])
        )

    console.print()
    console.print(
        f"[bold green]✓ Included {stats.files_included} files, "
        f"skipped {stats.files_skipped}, output written to {escape(str(output_path))}[/bold green]"
    )


@app.command()
def concat(
    source: str = typer.Argument(
        ...,
        metavar="INPUT",
        help="Repository URL (e.g., https://github.com/owner/name) or local directory.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file (default: concatenated_output.txt).",
        dir_okay=False,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (.toml, .yaml, .yml or .json).",
        dir_okay=False,
    ),
    ref: Optional[str] = typer.Option(
        None,
        "--ref",
        help="Git ref (branch, tag, or commit SHA) to check out after cloning.",
    ),

    # Filter options
    include_ext: Optional[str] = typer.Option(
        None,
        "--include-ext", "-i",
        help="Comma-separated file extensions that replace the default allowlist.",
    ),
    no_gitignore: bool = typer.Option(
        False,
        "--no-gitignore",
        help="Don't respect .gitignore or git exclude files.",
    ),
    no_require_git: bool = typer.Option(
        False,
        "--no-require-git",
        help="Honor .gitignore files even outside a git repository.",
    ),
    hidden: bool = typer.Option(
        False,
        "--hidden",
        help="Include hidden files and directories.",
    ),
    max_file_bytes: Optional[int] = typer.Option(
        None,
        "--max-file-bytes",
        min=0,
        help="Skip files larger than this many bytes (0 = unlimited).",
    ),

    # Output options
    compact: bool = typer.Option(
        False,
        "--compact",
        help="Strip trailing whitespace and blank lines from each file.",
    ),
    jobs: Optional[int] = typer.Option(
        None,
        "--jobs", "-j",
        min=1,
        help="Number of parallel file readers.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Print each included file and full tracebacks on errors.",
    ),

    # Version
    version: bool = typer.Option(
        False,
        "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Concatenate every relevant text file of a repository into one file.

    Examples:

        # Concatenate a local repository
        repo-concat ./my-project

        # Clone and concatenate a GitHub repository
        repo-concat https://github.com/owner/repo -o repo.txt

        # Only Python and Markdown files, compacted
        repo-concat ./my-project -i py,md --compact
    """
    start_time = time.time()
    previous_handler = signal.signal(signal.SIGTERM, _raise_on_sigterm)

    try:
        project_config = load_config(config)
        if verbose and project_config._config_file is not None:
            console.print(
                f"[dim]Using config: {escape(json.dumps(project_config.to_dict()))}[/dim]",
                highlight=False,
            )
        output_path, options = merge_cli_with_config(
            project_config,
            output=output,
            include_ext=include_ext,
            no_gitignore=no_gitignore,
            no_require_git=no_require_git,
            hidden=hidden,
            compact=compact,
            max_file_bytes=max_file_bytes,
            jobs=jobs,
        )
        output_path = output_path.resolve()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Resolving input...", total=None)

            with resolve(source, ref=ref, console=progress.console) as working_root:
                progress.update(task, description=f"Concatenating {working_root.path.name}...")

                scanner = FileScanner(
                    working_root.path,
                    include_extensions=options.include_extensions,
                    include_names=options.include_names,
                    respect_gitignore=options.respect_gitignore,
                    require_git=options.require_git,
                    hidden=options.hidden,
                    max_file_bytes=options.max_file_bytes,
                    exclude_paths=[output_path],
                )

                def show_included(entry: FileEntry) -> None:
                    progress.console.print(
                        f"[dim]{escape(entry.relative_path)}[/dim]", highlight=False
                    )

                stats = concatenate(
                    scanner.scan(),
                    output_path,
                    compact=options.compact,
                    jobs=options.jobs,
                    stats=scanner.stats,
                    on_include=show_included if verbose else None,
                )

        if stats.files_included == 0:
            console.print("[yellow]Warning: No files found matching criteria.[/yellow]")

        print_summary(stats, output_path, time.time() - start_time)

    except ConfigError as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except ResolveError as e:
        console.print(f"[red]Error resolving input: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except WriteError as e:
        console.print(f"[red]Error writing output: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
