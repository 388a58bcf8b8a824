from __future__ import annotations

from typing import Annotated

import typer
from planmap.aggregate import aggregate
from planmap.entitlement import condense_tier_name
from planmap.matrix import build_matrix, toggle_selection
from planmap.models import BillingFrequency
from planmap.money import format_money
from planmap.session import KEYS
from rich.console import Console
from rich.table import Table

from planmap_cli.project import load_project_config
from planmap_cli.utils import get_session, get_store, handle_error, select_bundles, wants_json

console = Console()


def _frequency(ctx: typer.Context, frequency: str | None) -> BillingFrequency:
    if frequency is None:
        session = get_session(ctx)
        if session.storage.get(KEYS["billing_frequency"]) is not None:
            return session.billing_frequency
        frequency = load_project_config().get("billing_frequency", "monthly")
    if frequency not in ("monthly", "annual"):
        handle_error(ctx, ValueError(f"Unknown billing frequency {frequency!r}. Use monthly or annual."))
    return frequency


def compare(
    ctx: typer.Context,
    bundle_ids: Annotated[list[str] | None, typer.Argument(help="Bundle ids to compare")] = None,
    search: Annotated[str | None, typer.Option("--search", "-s", help="Match name or description")] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Limit to one category")] = None,
    frequency: Annotated[str | None, typer.Option("--frequency", "-f", help="monthly or annual")] = None,
) -> None:
    """Compare bundles side by side, capability by capability."""
    store = get_store(ctx)
    try:
        selected = select_bundles(store, bundle_ids, get_session(ctx).selected_bundles)
    except ValueError as e:
        handle_error(ctx, e)
    freq = _frequency(ctx, frequency)
    matrix = build_matrix(store.capabilities(), selected, term=search, category=category)
    totals = aggregate(selected, freq)

    if wants_json(ctx):
        import json

        print(
            json.dumps(
                {
                    "bundles": [b.id for b in selected],
                    "rows": [
                        {"category": r.category, "capability": r.capability.id, "cells": r.labels()}
                        for r in matrix.rows
                    ],
                    "totals": totals.model_dump(),
                },
                ensure_ascii=False,
            )
        )
        return

    table = Table(title="Service & Capability Map", show_footer=True)
    table.add_column("Capability", style="cyan", footer=f"TOTAL ({freq})")
    for b in selected:
        usd, inr = b.price_strings(freq)
        table.add_column(f"{b.name}\n{usd} / {inr}", justify="center")

    for cat in matrix.categories():
        table.add_row(f"[bold magenta]{cat}[/bold magenta]", *[""] * len(selected))
        for row in matrix.rows_for(cat):
            cells = []
            for label in row.labels():
                if label == "No":
                    cells.append("[dim]-[/dim]")
                elif label == "Yes":
                    cells.append("[green]✓[/green]")
                else:
                    cells.append(f"[blue]{condense_tier_name(label)}[/blue]")
            table.add_row(row.capability.name, *cells)

    console.print(table)
    console.print(
        f"[bold]Total:[/bold] {format_money(totals.total_usd, 'USD')} / {format_money(totals.total_inr, 'INR')}"
        f"  ·  [bold]{totals.unique_capability_count}[/bold] unique capabilities"
    )


def select(
    ctx: typer.Context,
    bundle_ids: Annotated[list[str] | None, typer.Argument(help="Bundle ids to add or remove")] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Forget the remembered selection")] = False,
) -> None:
    """Add or remove bundles from the remembered comparison (the last one always stays)."""
    store = get_store(ctx)
    session = get_session(ctx)
    if clear:
        session.selected_bundles = None
    try:
        # Validates the ids before anything is toggled
        select_bundles(store, bundle_ids)
    except ValueError as e:
        handle_error(ctx, e)

    current = [b.id for b in select_bundles(store, None, session.selected_bundles)]
    for bid in bundle_ids or []:
        current = toggle_selection(current, bid)
    if bundle_ids:
        session.selected_bundles = current
    selected = store.bundles_by_ids(current)

    if wants_json(ctx):
        import json

        print(json.dumps({"bundles": [b.id for b in selected]}))
        return

    console.print("[bold]Comparing:[/bold] " + ", ".join(f"[cyan]{b.name}[/cyan] ({b.id})" for b in selected))


def totals(
    ctx: typer.Context,
    bundle_ids: Annotated[list[str], typer.Argument(help="Bundle ids to total")],
    frequency: Annotated[str | None, typer.Option("--frequency", "-f", help="monthly or annual")] = None,
) -> None:
    """Total price and unique capability count for a set of bundles."""
    store = get_store(ctx)
    try:
        selected = select_bundles(store, bundle_ids)
    except ValueError as e:
        handle_error(ctx, e)
    result = aggregate(selected, _frequency(ctx, frequency))

    if wants_json(ctx):
        print(result.model_dump_json())
        return

    console.print(
        f"[bold]{len(selected)}[/bold] bundle(s), {result.frequency}: "
        f"[green]{format_money(result.total_usd, 'USD')}[/green] / "
        f"[green]{format_money(result.total_inr, 'INR')}[/green], "
        f"{result.unique_capability_count} unique capabilities"
    )
