from __future__ import annotations

from typing import Annotated

import typer
from planmap.advisor import GREETING, LicensingAdvisor, build_context
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from planmap_cli.utils import get_store, wants_json

console = Console()


def ask(
    ctx: typer.Context,
    question: Annotated[str | None, typer.Argument(help="Question for the licensing advisor")] = None,
) -> None:
    """Ask the licensing advisor a question, or start an interactive chat."""
    context = build_context(get_store(ctx).bundles())
    advisor = LicensingAdvisor()

    if question is not None:
        with console.status("Thinking..."):
            reply = advisor.ask(question, context)
        if wants_json(ctx):
            import json

            print(json.dumps({"question": question, "reply": reply}, ensure_ascii=False))
            return
        console.print(Markdown(reply))
        return

    _run_terminal_chat(advisor, context)


def _run_terminal_chat(advisor: LicensingAdvisor, context: str) -> None:
    console.print(
        Panel(
            f"[bold cyan]Licensing Advisor[/bold cyan]\n{GREETING}",
            subtitle="Type /quit to exit",
        )
    )

    while True:
        try:
            user_input = Prompt.ask("\n[bold cyan]>[/bold cyan]")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Exiting.[/dim]")
            break

        text = user_input.strip()
        if not text:
            continue
        if text.lower() in ("/quit", "/exit", "/q"):
            console.print("[dim]Goodbye.[/dim]")
            break

        with console.status("Thinking..."):
            reply = advisor.ask(text, context)
        console.print(Markdown(reply))
