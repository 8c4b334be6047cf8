"""SkillTree CLI — regenerate or check the skill sitemap.

Usage:
    skilltree [PATH]            regenerate SKILL_TREE.md
    skilltree [PATH] --check    verify only (for CI)

Exit codes: 0 = pass, 1 = validation or staleness failure, 2 = I/O error.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .builder import EXIT_IO_ERROR, BuildResult, Mode, TreeStatus, locate_repository, run_build
from .errors import ConfigError

console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _plain(text: str, target: Console) -> None:
    target.print(text, markup=False, highlight=False, soft_wrap=True)


def _report(result: BuildResult, skills_dir: str) -> None:
    tree_name = result.tree_path.name

    for diagnostic in result.report.grouped():
        _plain(diagnostic.format(), err_console)

    if result.diff and result.status != TreeStatus.NOT_WRITTEN:
        _plain(f"\n{tree_name} diff (committed -> generated):", err_console)
        for line in result.diff:
            _plain(line.rstrip("\n"), err_console)

    if result.status == TreeStatus.CREATED:
        console.print(f"[green]{tree_name} created.[/green]")
    elif result.status == TreeStatus.UPDATED:
        console.print(f"[green]{tree_name} updated.[/green]")
    elif result.status == TreeStatus.UP_TO_DATE:
        console.print(f"{tree_name} is up to date.")
    elif result.status == TreeStatus.NOT_WRITTEN:
        console.print(f"[red]{tree_name} not written: fix the errors above first.[/red]")

    errors = len(result.report.errors)
    warnings = len(result.report.warnings)
    console.print(
        f"\nSummary: {result.scanned} skills scanned in {skills_dir}/, "
        f"{result.routers} routers, {errors} errors, {warnings} warnings"
    )
    if result.exit_code == 0:
        console.print("[green]All checks passed.[/green]")


@click.command()
@click.argument("path", default=".", type=click.Path(file_okay=False, path_type=Path))
@click.option("--check", is_flag=True, help="Validate and compare only; never write (for CI).")
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: <repo>/skilltree.yaml).",
)
@click.option(
    "--threshold",
    default=None,
    type=click.IntRange(min=1),
    envvar="SKILLTREE_THRESHOLD",
    help="Warn when a category holds more skills than this.",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr.")
@click.version_option(__version__, prog_name="skilltree")
def main(path: Path, check: bool, config_file: Optional[Path], threshold: Optional[int], verbose: bool) -> None:
    """Build and validate the skill tree.

    PATH is the repository root or its skills directory (default: current
    directory).
    """
    _setup_logging(verbose)
    mode = Mode.CHECK if check else Mode.GENERATE

    try:
        repo_root, config = locate_repository(path, config_file)
        if threshold is not None:
            config = config.model_copy(update={"category_size_threshold": threshold})
        result = run_build(repo_root, config, mode=mode)
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}", highlight=False)
        sys.exit(EXIT_IO_ERROR)
    except (OSError, UnicodeDecodeError) as exc:
        err_console.print(f"[red]I/O error:[/red] {escape(str(exc))}", highlight=False)
        sys.exit(EXIT_IO_ERROR)

    _report(result, config.skills_dir)
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
