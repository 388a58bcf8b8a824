from __future__ import annotations

import json
import logging
import os

import typer
from planmap.catalog import CatalogStore, open_store
from planmap.errors import AccessDenied
from planmap.models import Bundle
from planmap.session import Session, default_home
from rich.console import Console
from rich.logging import RichHandler

from planmap_cli.project import load_project_config

_err_console = Console(stderr=True)

DEFAULT_COMPARISON = ["m365-bp", "m365-e3", "m365-e5"]


def ctx_obj(ctx: typer.Context) -> dict:
    """Resolve ctx.obj through the parent chain when invoked via a sub-app."""
    current: typer.Context | None = ctx
    while current is not None:
        if current.obj:
            return current.obj
        current = current.parent
    return {}


def wants_json(ctx: typer.Context) -> bool:
    return bool(ctx_obj(ctx).get("json"))


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )


def handle_error(ctx: typer.Context, e: Exception) -> None:
    """Print a clean error message and exit 1."""
    import yaml

    obj = ctx_obj(ctx)
    verbose = obj.get("verbose", False)

    if isinstance(e, FileNotFoundError):
        msg = f"File not found: {e}"
    elif isinstance(e, yaml.YAMLError):
        msg = f"Invalid YAML: {e}"
    elif isinstance(e, AccessDenied):
        msg = str(e)
    elif "validation" in type(e).__name__.lower():
        msg = f"Invalid data: {e}"
    elif isinstance(e, ValueError):
        msg = str(e)
    else:
        msg = f"Error: {e}"

    if obj.get("json"):
        print(json.dumps({"error": msg}))
    else:
        _err_console.print(f"[red]Error:[/red] {msg}")

    if verbose:
        _err_console.print_exception()

    raise typer.Exit(1)


def get_store(ctx: typer.Context) -> CatalogStore:
    """Open the catalog for this invocation, cached on the root context."""
    obj = ctx_obj(ctx)
    store = obj.get("store")
    if store is None:
        db_path = (
            obj.get("db")
            or os.environ.get("PLANMAP_DB")
            or load_project_config().get("db_path")
            or str(default_home() / "catalog.db")
        )
        store = open_store(db_path)
        obj["store"] = store
    return store


def get_session(ctx: typer.Context) -> Session:
    obj = ctx_obj(ctx)
    session = obj.get("session")
    if session is None:
        session = Session()
        obj["session"] = session
    return session


def select_bundles(
    store: CatalogStore, bundle_ids: list[str] | None, remembered: list[str] | None = None
) -> list[Bundle]:
    """Bundles to compare.

    The given ids win, then the remembered selection, then the configured
    default, then the first three bundles in the catalog.
    """
    if bundle_ids:
        known = {b.id for b in store.bundles()}
        missing = [bid for bid in bundle_ids if bid not in known]
        if missing:
            raise ValueError(f"Unknown bundle id(s): {', '.join(missing)}")
        return store.bundles_by_ids(bundle_ids)

    if remembered:
        # Bundles deleted since the selection was saved drop out silently
        selected = store.bundles_by_ids(remembered)
        if selected:
            return selected

    defaults = load_project_config().get("default_bundles") or DEFAULT_COMPARISON
    selected = store.bundles_by_ids(defaults)
    return selected or store.bundles()[:3]
