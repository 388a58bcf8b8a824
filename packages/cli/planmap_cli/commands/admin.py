from __future__ import annotations

from typing import Annotated

import typer
from planmap import editor as drafts
from planmap.auth import require_super_admin
from planmap.editor import CatalogEditor
from planmap.errors import AccessDenied, CatalogError, LoginError
from rich.console import Console
from rich.table import Table

from planmap_cli.utils import get_session, get_store, handle_error, wants_json

console = Console()

admin_app = typer.Typer(
    name="admin",
    help="Edit the catalog and manage administrator accounts (sign in first).",
    no_args_is_help=True,
)
capability_app = typer.Typer(name="capability", help="Create, edit and delete capabilities.", no_args_is_help=True)
bundle_app = typer.Typer(name="bundle", help="Create, edit and delete bundles.", no_args_is_help=True)
tier_app = typer.Typer(name="tier", help="Edit the tiers of a capability.", no_args_is_help=True)
admin_app.add_typer(capability_app, name="capability")
admin_app.add_typer(bundle_app, name="bundle")
admin_app.add_typer(tier_app, name="tier")


@admin_app.callback(invoke_without_command=True)
def admin_callback(ctx: typer.Context) -> None:
    # Propagate json/verbose flags from parent ctx into this sub-app's ctx
    if ctx.obj is None and ctx.parent and ctx.parent.obj:
        ctx.obj = ctx.parent.obj
    elif ctx.obj is None:
        ctx.ensure_object(dict)


def _editor(ctx: typer.Context) -> CatalogEditor:
    try:
        return CatalogEditor(get_store(ctx), get_session(ctx).verified_user())
    except AccessDenied as e:
        handle_error(ctx, e)


def _done(ctx: typer.Context, message: str, payload=None) -> None:
    if wants_json(ctx):
        import json

        print(json.dumps({"ok": True, "result": payload}, ensure_ascii=False, default=str))
        return
    console.print(f"[green]{message}[/green]")


def _confirm(ctx: typer.Context, yes: bool, prompt: str) -> None:
    if not yes and not typer.confirm(prompt):
        console.print("[dim]Cancelled.[/dim]")
        raise typer.Exit(0)


def _only(**fields) -> dict:
    return {k: v for k, v in fields.items() if v is not None}


def _edit_capability(ctx: typer.Context, capability_id: str, operation, *args, **kwargs) -> None:
    ed = _editor(ctx)
    try:
        ed.edit_capability(capability_id)
        ed.apply(operation, *args, **kwargs)
        saved = ed.save()
    except CatalogError as e:
        handle_error(ctx, e)
    _done(ctx, f"Saved {saved.id}", saved.model_dump())


# --- capabilities ---


@capability_app.command("add")
def capability_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", help="Display name")],
    description: Annotated[str, typer.Option("--description", "-d", help="Description")] = "",
    category: Annotated[str, typer.Option("--category", "-c", help="Category")] = "Productivity",
    link: Annotated[str | None, typer.Option("--link", help="Documentation URL")] = None,
    capability_id: Annotated[str | None, typer.Option("--id", help="Explicit id")] = None,
) -> None:
    """Add a new capability."""
    ed = _editor(ctx)
    try:
        ed.start_new_capability()
        ed.update_fields(
            **_only(name=name, description=description, category=category, documentation_link=link, id=capability_id)
        )
        saved = ed.save()
    except (CatalogError, ValueError) as e:
        handle_error(ctx, e)
    _done(ctx, f"Created capability {saved.id}", saved.model_dump())


@capability_app.command("edit")
def capability_edit(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    name: Annotated[str | None, typer.Option("--name", help="Display name")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d", help="Description")] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Category")] = None,
    link: Annotated[str | None, typer.Option("--link", help="Documentation URL")] = None,
) -> None:
    """Change the fields of an existing capability."""
    ed = _editor(ctx)
    try:
        ed.edit_capability(capability_id)
        ed.update_fields(**_only(name=name, description=description, category=category, documentation_link=link))
        saved = ed.save()
    except (CatalogError, ValueError) as e:
        handle_error(ctx, e)
    _done(ctx, f"Saved {saved.id}", saved.model_dump())


@capability_app.command("delete")
def capability_delete(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a capability and remove it from every bundle."""
    ed = _editor(ctx)
    _confirm(ctx, yes, f"Are you sure you want to delete capability {capability_id}?")
    try:
        ed.delete_capability(capability_id)
    except CatalogError as e:
        handle_error(ctx, e)
    _done(ctx, f"Deleted capability {capability_id}", capability_id)


# --- bundles ---


@bundle_app.command("add")
def bundle_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", help="Display name")],
    description: Annotated[str, typer.Option("--description", "-d", help="Description")] = "",
    type: Annotated[str, typer.Option("--type", "-t", help="Business, Enterprise, Frontline or Add-on")] = "Enterprise",
    monthly_usd: Annotated[str | None, typer.Option("--monthly-usd", help='e.g. "$36.00"')] = None,
    monthly_inr: Annotated[str | None, typer.Option("--monthly-inr", help='e.g. "₹3,045"')] = None,
    annual_usd: Annotated[str | None, typer.Option("--annual-usd")] = None,
    annual_inr: Annotated[str | None, typer.Option("--annual-inr")] = None,
    color: Annotated[str | None, typer.Option("--color", help="Accent colour")] = None,
    bundle_id: Annotated[str | None, typer.Option("--id", help="Explicit id")] = None,
) -> None:
    """Add a new bundle."""
    ed = _editor(ctx)
    try:
        ed.start_new_bundle()
        ed.update_fields(
            **_only(
                name=name,
                description=description,
                type=type,
                monthly_price_usd=monthly_usd,
                monthly_price_inr=monthly_inr,
                annual_price_usd=annual_usd,
                annual_price_inr=annual_inr,
                accent_color=color,
                id=bundle_id,
            )
        )
        saved = ed.save()
    except (CatalogError, ValueError) as e:
        handle_error(ctx, e)
    _done(ctx, f"Created bundle {saved.id}", saved.model_dump())


@bundle_app.command("edit")
def bundle_edit(
    ctx: typer.Context,
    bundle_id: Annotated[str, typer.Argument(help="Bundle id")],
    name: Annotated[str | None, typer.Option("--name")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    type: Annotated[str | None, typer.Option("--type", "-t")] = None,
    monthly_usd: Annotated[str | None, typer.Option("--monthly-usd")] = None,
    monthly_inr: Annotated[str | None, typer.Option("--monthly-inr")] = None,
    annual_usd: Annotated[str | None, typer.Option("--annual-usd")] = None,
    annual_inr: Annotated[str | None, typer.Option("--annual-inr")] = None,
    color: Annotated[str | None, typer.Option("--color")] = None,
) -> None:
    """Change the fields of an existing bundle."""
    ed = _editor(ctx)
    try:
        ed.edit_bundle(bundle_id)
        ed.update_fields(
            **_only(
                name=name,
                description=description,
                type=type,
                monthly_price_usd=monthly_usd,
                monthly_price_inr=monthly_inr,
                annual_price_usd=annual_usd,
                annual_price_inr=annual_inr,
                accent_color=color,
            )
        )
        saved = ed.save()
    except (CatalogError, ValueError) as e:
        handle_error(ctx, e)
    _done(ctx, f"Saved {saved.id}", saved.model_dump())


@bundle_app.command("delete")
def bundle_delete(
    ctx: typer.Context,
    bundle_id: Annotated[str, typer.Argument(help="Bundle id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a bundle and drop it from every tier."""
    ed = _editor(ctx)
    _confirm(ctx, yes, f"Are you sure you want to delete bundle {bundle_id}?")
    try:
        ed.delete_bundle(bundle_id)
    except CatalogError as e:
        handle_error(ctx, e)
    _done(ctx, f"Deleted bundle {bundle_id}", bundle_id)


@bundle_app.command("toggle-capability")
def bundle_toggle_capability(
    ctx: typer.Context,
    bundle_id: Annotated[str, typer.Argument(help="Bundle id")],
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
) -> None:
    """Include or exclude a capability from a bundle."""
    ed = _editor(ctx)
    try:
        ed.edit_bundle(bundle_id)
        draft = ed.apply(drafts.toggle_capability_in_bundle, capability_id)
        saved = ed.save()
    except CatalogError as e:
        handle_error(ctx, e)
    state = "included in" if capability_id in draft.capability_ids else "removed from"
    _done(ctx, f"{capability_id} {state} {bundle_id}", saved.model_dump())


# --- tiers (numbered from 1) ---


@tier_app.command("add")
def tier_add(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    name: Annotated[str | None, typer.Option("--name", help="Tier name (default: Plan N)")] = None,
) -> None:
    """Append a tier to a capability."""
    _edit_capability(ctx, capability_id, drafts.add_tier, name)


@tier_app.command("remove")
def tier_remove(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    number: Annotated[int, typer.Argument(help="Tier number")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Remove a tier. Removing the last tier removes the tier structure."""
    _confirm(ctx, yes, f"Remove tier {number} from {capability_id}?")
    _edit_capability(ctx, capability_id, drafts.remove_tier, number - 1)


@tier_app.command("move")
def tier_move(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    number: Annotated[int, typer.Argument(help="Tier number")],
    direction: Annotated[str, typer.Argument(help="up or down")],
) -> None:
    """Move a tier up or down one place."""
    if direction not in ("up", "down"):
        handle_error(ctx, ValueError(f"Unknown direction {direction!r}. Use up or down."))
    _edit_capability(ctx, capability_id, drafts.move_tier, number - 1, direction)


@tier_app.command("rename")
def tier_rename(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    number: Annotated[int, typer.Argument(help="Tier number")],
    name: Annotated[str, typer.Argument(help="New tier name")],
) -> None:
    """Rename a tier."""
    _edit_capability(ctx, capability_id, drafts.rename_tier, number - 1, name)


@tier_app.command("title")
def tier_title(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    title: Annotated[str, typer.Argument(help="Tier structure title")],
) -> None:
    """Set the title shown above a capability's tiers."""
    _edit_capability(ctx, capability_id, drafts.set_tier_title, title)


@tier_app.command("toggle-bundle")
def tier_toggle_bundle(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    number: Annotated[int, typer.Argument(help="Tier number")],
    bundle_id: Annotated[str, typer.Argument(help="Bundle id")],
) -> None:
    """Add or remove a bundle from a tier's membership."""
    _edit_capability(ctx, capability_id, drafts.toggle_bundle_in_tier, number - 1, bundle_id)


@tier_app.command("statement")
def tier_statement(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    number: Annotated[int, typer.Argument(help="Tier number")],
    text: Annotated[str | None, typer.Argument(help="Statement text")] = None,
    remove: Annotated[int | None, typer.Option("--remove", help="Remove statement N")] = None,
    replace: Annotated[int | None, typer.Option("--replace", help="Replace statement N with TEXT")] = None,
) -> None:
    """Add, replace or remove a single capability statement on a tier."""
    if remove is not None:
        _edit_capability(ctx, capability_id, drafts.remove_statement, number - 1, remove - 1)
    elif replace is not None:
        _edit_capability(ctx, capability_id, drafts.update_statement, number - 1, replace - 1, text or "")
    else:
        _edit_capability(ctx, capability_id, drafts.add_statement, number - 1, text or "")


@tier_app.command("bulk")
def tier_bulk(
    ctx: typer.Context,
    capability_id: Annotated[str, typer.Argument(help="Capability id")],
    statements: Annotated[str, typer.Argument(help="Comma-separated statements")],
    tiers: Annotated[list[int], typer.Option("--tier", "-t", help="Tier number (repeatable)")],
    mode: Annotated[str, typer.Option("--mode", "-m", help="ADD or REMOVE")] = "ADD",
) -> None:
    """Add or remove statements across several tiers at once."""
    if not drafts.parse_statement_list(statements):
        handle_error(ctx, ValueError("Enter at least one statement."))
    _edit_capability(
        ctx, capability_id, drafts.bulk_update_statements, [n - 1 for n in tiers], statements, mode.upper()
    )


# --- catalog ---


@admin_app.command("reset")
def reset(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Restore the built-in default catalog."""
    ed = _editor(ctx)
    _confirm(ctx, yes, "Reset the catalog to its defaults? All edits will be lost.")
    ed.reset_catalog()
    _done(ctx, "Catalog reset to defaults.")


# --- accounts ---


@admin_app.command("users")
def users(ctx: typer.Context) -> None:
    """List administrator accounts."""
    session = get_session(ctx)
    try:
        require_super_admin(session.verified_user())
    except AccessDenied as e:
        handle_error(ctx, e)
    registry = session.load_registry()

    if wants_json(ctx):
        import json

        print(json.dumps({"users": [a.model_dump() for a in registry.accounts]}))
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Username")
    table.add_column("Role")
    table.add_column("Status")
    for a in registry.accounts:
        status = "[green]approved[/green]" if a.is_approved else "[yellow]pending[/yellow]"
        table.add_row(a.id, a.username, a.role, status)
    console.print(table)


@admin_app.command("approve")
def approve(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Account id")],
) -> None:
    """Approve a pending administrator account."""
    session = get_session(ctx)
    registry = session.load_registry()
    try:
        account = registry.approve(user_id, session.verified_user())
    except (AccessDenied, LoginError) as e:
        handle_error(ctx, e)
    session.save_registry(registry)
    _done(ctx, f"Approved {account.username}", account.model_dump())


@admin_app.command("delete-user")
def delete_user(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Account id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete an administrator account."""
    session = get_session(ctx)
    registry = session.load_registry()
    _confirm(ctx, yes, f"Delete account {user_id}?")
    try:
        registry.delete(user_id, session.verified_user())
    except (AccessDenied, LoginError) as e:
        handle_error(ctx, e)
    session.save_registry(registry)
    _done(ctx, f"Deleted account {user_id}", user_id)
