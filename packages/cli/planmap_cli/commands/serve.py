from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

console = Console()


def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port")] = 8000,
    open_browser: Annotated[bool, typer.Option("--open/--no-open", help="Open a browser tab")] = False,
) -> None:
    """Run the planmap web API."""
    try:
        import planmap_web  # type: ignore
        import uvicorn
    except ImportError:
        console.print("[red]Error:[/red] planmap-web is not installed.\nInstall it with: pip install 'planmap[web]'")
        raise typer.Exit(1)

    url = f"http://{host}:{port}"
    console.print(f"[cyan]Serving planmap on {url}[/cyan]")

    if open_browser:
        import threading
        import time
        import webbrowser

        def _open_browser():
            time.sleep(1.5)
            webbrowser.open(f"{url}/docs")

        threading.Thread(target=_open_browser, daemon=True).start()

    uvicorn.run(planmap_web.app, host=host, port=port)
