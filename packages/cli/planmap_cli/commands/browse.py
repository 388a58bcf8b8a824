from __future__ import annotations

from typing import Annotated

import typer
from planmap.entitlement import cell_label, resolve
from planmap.matrix import matches
from planmap.models import CATEGORIES
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from planmap_cli.utils import get_store, handle_error, wants_json

console = Console()


def bundles(ctx: typer.Context) -> None:
    """List every bundle in the catalog with its prices."""
    store = get_store(ctx)
    items = store.bundles()

    if wants_json(ctx):
        import json

        print(json.dumps({"bundles": [b.model_dump() for b in items]}, ensure_ascii=False))
        return

    table = Table(title="Bundles")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Monthly", justify="right")
    table.add_column("Annual", justify="right")
    table.add_column("Capabilities", justify="right")
    for b in items:
        table.add_row(
            b.id,
            b.name,
            b.type,
            f"{b.monthly_price_usd} / {b.monthly_price_inr}",
            f"{b.annual_price_usd} / {b.annual_price_inr}",
            str(len(b.capability_ids)),
        )
    console.print(table)


def capabilities(
    ctx: typer.Context,
    search: Annotated[str | None, typer.Option("--search", "-s", help="Match name or description")] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Limit to one category")] = None,
    bundle: Annotated[
        list[str] | None, typer.Option("--bundle", "-b", help="Only capabilities in these bundles (repeatable)")
    ] = None,
) -> None:
    """Browse the capability map, optionally filtered by search term, category or bundle."""
    if category and category != "All" and category not in CATEGORIES:
        handle_error(ctx, ValueError(f"Unknown category {category!r}. Choose from: {', '.join(CATEGORIES)}"))

    store = get_store(ctx)
    selected = store.bundles_by_ids(bundle) if bundle else []
    covered = {cid for b in selected for cid in b.capability_ids}
    items = [
        c for c in store.capabilities() if matches(c, search, category) and (not bundle or c.id in covered)
    ]

    if wants_json(ctx):
        import json

        print(json.dumps({"capabilities": [c.model_dump(exclude_none=True) for c in items]}, ensure_ascii=False))
        return

    if not items:
        console.print("[yellow]No capabilities match the current filters.[/yellow]")
        return

    table = Table(title="Capability Map")
    table.add_column("Category", style="magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Tiers", justify="center")
    table.add_column("Description", style="dim")
    for cat in CATEGORIES:
        for c in items:
            if c.category != cat:
                continue
            tiers = str(len(c.tier_structure.tiers)) if c.tier_structure else "-"
            table.add_row(cat, c.id, c.name, tiers, c.description)
    console.print(table)


def show(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
) -> None:
    """Show one capability with its tiers and which bundles include it."""
    store = get_store(ctx)
    cap = store.get_capability(capability_id)
    if cap is None:
        handle_error(ctx, ValueError(f"Capability {capability_id!r} not found"))

    if wants_json(ctx):
        import json

        entitlements = {b.id: resolve(b, cap).model_dump() for b in store.bundles()}
        print(json.dumps({"capability": cap.model_dump(), "entitlements": entitlements}, ensure_ascii=False))
        return

    body = f"[bold]{cap.name}[/bold]  [dim]({cap.category})[/dim]\n{cap.description}"
    if cap.documentation_link:
        body += f"\n[link={cap.documentation_link}]{cap.documentation_link}[/link]"
    console.print(Panel(body, title=cap.id))

    if cap.tier_structure:
        tiers = Table(title=cap.tier_structure.title)
        tiers.add_column("Tier", style="cyan")
        tiers.add_column("Delivers")
        tiers.add_column("Bundles", style="dim")
        for tier in cap.tier_structure.tiers:
            tiers.add_row(tier.name, "\n".join(tier.capability_statements), ", ".join(tier.included_in_bundle_ids))
        console.print(tiers)

    matrix = Table(title="Entitlements")
    matrix.add_column("Bundle", style="cyan")
    matrix.add_column("Included")
    for b in store.bundles():
        matrix.add_row(b.name, cell_label(resolve(b, cap)))
    console.print(matrix)
