"""CLI entry point using Click."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from incontext import __version__
from incontext.config import load_config
from incontext.errors import ConfigurationError, PointerParseError, ResolutionNotFoundError
from incontext.references.context import WorkspaceIndexContext
from incontext.references.maintainer import UnresolvedPointer
from incontext.utilities.logger import get_logger, setup_logging

log = get_logger(__name__)


def _context(ctx: click.Context) -> WorkspaceIndexContext:
    workspace = ctx.obj
    assert isinstance(workspace, WorkspaceIndexContext)
    return workspace


def _built_context(ctx: click.Context) -> WorkspaceIndexContext:
    workspace = _context(ctx)
    workspace.build()
    return workspace


def _display_path(workspace: WorkspaceIndexContext, path: str | Path) -> str:
    p = Path(path)
    try:
        return p.relative_to(workspace.root).as_posix()
    except ValueError:
        return p.as_posix()


@click.group()
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: nearest directory with .incontext/ or .git/)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.version_option(__version__, prog_name="incontext")
@click.pass_context
def main(ctx: click.Context, root: Path | None, debug: bool, json_logs: bool) -> None:
    """Navigate between code pointers (@module/path:L10-15) and the code they describe."""
    try:
        config = load_config(root, cli_args={"debug": debug or None, "json_logs": json_logs or None})
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(debug=config.debug, json_output=config.json_logs)
    log.debug("workspace_opened", root=config.workspace_root, modules=len(config.modules))
    ctx.obj = WorkspaceIndexContext(config)


@main.command("scan")
@click.pass_context
def scan(ctx: click.Context) -> None:
    """Index the whole workspace and print summary statistics."""
    stats = _context(ctx).build()
    click.echo(f"Files scanned:     {stats.files_scanned}")
    click.echo(f"Files failed:      {stats.files_failed}")
    click.echo(f"Pointers found:    {stats.pointers_found}")
    click.echo(f"References added:  {stats.references_added}")
    click.echo(f"Unresolved:        {stats.unresolved}")
    click.echo(f"Parse failures:    {stats.parse_failures}")
    click.echo(f"Elapsed:           {stats.elapsed_seconds:.2f}s")


@main.command("refs")
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("line", type=click.IntRange(min=1))
@click.pass_context
def refs(ctx: click.Context, file: Path, line: int) -> None:
    """List the pointers that reference LINE of FILE."""
    workspace = _built_context(ctx)
    entries = workspace.reference_entries(file, line)
    if not entries:
        click.echo(f"No references to {file}:L{line}")
        return

    table = Table(title=f"References to {file}:L{line}")
    table.add_column("#", justify="right")
    table.add_column("Source")
    table.add_column("Line", justify="right")
    table.add_column("Target range")
    for n, entry in enumerate(entries, start=1):
        ref = entry.reference
        table.add_row(
            str(n),
            _display_path(workspace, ref.source_file),
            str(ref.definition_line),
            f"L{ref.target_start_line}-{ref.target_end_line}",
        )
    Console().print(table)


@main.command("ranges")
@click.argument("file", type=click.Path(path_type=Path))
@click.pass_context
def ranges(ctx: click.Context, file: Path) -> None:
    """List the line ranges of FILE that have references."""
    workspace = _built_context(ctx)
    line_ranges = sorted(
        workspace.line_ranges(file), key=lambda r: (r.start_line, r.end_line),
    )
    if not line_ranges:
        click.echo(f"No referenced ranges in {file}")
        return
    for line_range in line_ranges:
        count = len(workspace.references_at(file, line_range.start_line))
        click.echo(f"L{line_range.start_line}-{line_range.end_line}  ({count} references)")


@main.command("resolve")
@click.argument("pointer")
@click.pass_context
def resolve(ctx: click.Context, pointer: str) -> None:
    """Resolve POINTER to a workspace file."""
    workspace = _context(ctx)
    try:
        resolution = workspace.resolve_pointer(pointer)
    except (PointerParseError, ResolutionNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"{resolution.path}  [{resolution.strategy}]")


@main.command("pointer")
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("start", type=click.IntRange(min=1))
@click.argument("end", type=click.IntRange(min=1), required=False)
@click.pass_context
def pointer(ctx: click.Context, file: Path, start: int, end: int | None) -> None:
    """Print the pointer text for lines START..END of FILE."""
    try:
        text = _context(ctx).pointer_for_selection(file, start, end)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    click.echo(text)


@main.command("check")
@click.pass_context
def check(ctx: click.Context) -> None:
    """Report pointers whose target cannot be found."""
    workspace = _context(ctx)
    workspace.index.clear()
    maintainer = workspace.maintainer

    problems: list[tuple[str, UnresolvedPointer]] = []
    failed = 0
    for path in maintainer.discover_files():
        result = maintainer.reindex_file(path)
        if not result.ok:
            failed += 1
            click.echo(f"{_display_path(workspace, path)}: {result.error}", err=True)
        problems.extend((result.path, unresolved) for unresolved in result.unresolved)

    for source, unresolved in problems:
        click.echo(f"{_display_path(workspace, source)}:{unresolved.line}: {unresolved.text}")

    if problems or failed:
        click.echo(f"{len(problems)} unresolved pointers, {failed} unreadable files")
        sys.exit(1)
    click.echo("All pointers resolved")


if __name__ == "__main__":
    main()
