from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from planmap.exporter import FORMATS, default_filename, export_comparison
from rich.console import Console
from rich.syntax import Syntax

from planmap_cli.utils import get_session, get_store, handle_error, select_bundles, wants_json

console = Console()

_SYNTAX_MAP = {"csv": "text", "markdown": "markdown", "json": "json"}


def export(
    ctx: typer.Context,
    bundle_ids: Annotated[list[str] | None, typer.Argument(help="Bundle ids to include")] = None,
    format: Annotated[str, typer.Option("--format", "-f", help=f"Export format: {', '.join(FORMATS)}")] = "csv",
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file")] = None,
    save: Annotated[bool, typer.Option("--save", help="Write to the default dated file name")] = False,
) -> None:
    """Export a bundle comparison as CSV, Markdown or JSON."""
    fmt = format.lower().strip()
    if fmt not in FORMATS:
        console.print(f"[red]Error:[/red] Unknown format {fmt!r}. Supported: {', '.join(FORMATS)}")
        raise typer.Exit(1)

    store = get_store(ctx)
    try:
        selected = select_bundles(store, bundle_ids, get_session(ctx).selected_bundles)
    except ValueError as e:
        handle_error(ctx, e)

    target = output or (Path(default_filename(fmt)) if save else None)
    content = export_comparison(store.capabilities(), selected, fmt, output=target)

    if wants_json(ctx):
        import json

        print(json.dumps({"format": fmt, "content": content}, ensure_ascii=False))
        return

    if target:
        console.print(f"[green]Written to {target}[/green]")
    else:
        console.print(Syntax(content, _SYNTAX_MAP.get(fmt, "text"), theme="monokai", word_wrap=True))
