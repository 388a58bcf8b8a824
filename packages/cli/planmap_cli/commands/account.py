from __future__ import annotations

from typing import Annotated

import typer
from planmap.errors import LoginError
from rich.console import Console
from rich.prompt import Prompt

from planmap_cli.utils import get_session, handle_error, wants_json

console = Console()


def login(
    ctx: typer.Context,
    username: Annotated[str, typer.Argument(help="Account name")],
    passcode: Annotated[str | None, typer.Option("--passcode", "-p", help="Admin passcode")] = None,
) -> None:
    """Sign in as an administrator. First use registers the account."""
    if passcode is None:
        passcode = Prompt.ask("Passcode", password=True)
    session = get_session(ctx)
    try:
        account = session.login(username, passcode)
    except LoginError as e:
        handle_error(ctx, e)

    if wants_json(ctx):
        print(account.model_dump_json())
        return
    console.print(f"[green]Signed in as {account.username}[/green] [dim]({account.role})[/dim]")


def logout(ctx: typer.Context) -> None:
    """Sign out of the current session."""
    get_session(ctx).logout()
    if not wants_json(ctx):
        console.print("[dim]Signed out.[/dim]")


def whoami(ctx: typer.Context) -> None:
    """Show the signed-in account."""
    account = get_session(ctx).current_user
    if wants_json(ctx):
        import json

        print(json.dumps({"user": account.model_dump() if account else None}))
        return
    if account is None:
        console.print("[yellow]Not signed in.[/yellow]")
        return
    console.print(f"{account.username} [dim]({account.role})[/dim]")


def billing(
    ctx: typer.Context,
    frequency: Annotated[str | None, typer.Argument(help="monthly or annual")] = None,
) -> None:
    """Show or set the remembered billing frequency."""
    session = get_session(ctx)
    if frequency is not None:
        try:
            session.billing_frequency = frequency.lower()
        except ValueError as e:
            handle_error(ctx, e)

    if wants_json(ctx):
        import json

        print(json.dumps({"billing_frequency": session.billing_frequency}))
        return
    console.print(f"Billing frequency: [bold]{session.billing_frequency}[/bold]")
