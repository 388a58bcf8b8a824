import typer

from planmap_cli import __version__
from planmap_cli.commands.account import billing, login, logout, whoami
from planmap_cli.commands.admin import admin_app
from planmap_cli.commands.ask import ask
from planmap_cli.commands.browse import bundles, capabilities, show
from planmap_cli.commands.compare import compare, select, totals
from planmap_cli.commands.export import export
from planmap_cli.commands.serve import serve
from planmap_cli.utils import configure_logging


def _version_callback(value: bool) -> None:
    if value:
        print(f"planmap {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="planmap",
    help="Compare subscription licensing bundles capability by capability",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version", callback=_version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    db: str = typer.Option(None, "--db", help="Catalog database path (default: $PLANMAP_DB)"),
) -> None:
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["json"] = json_output
    ctx.obj["db"] = db


app.command()(bundles)
app.command()(capabilities)
app.command()(show)
app.command()(compare)
app.command()(select)
app.command()(totals)
app.command()(export)
app.command()(ask)
app.command()(serve)
app.command()(login)
app.command()(logout)
app.command()(whoami)
app.command()(billing)
app.add_typer(admin_app, name="admin")
