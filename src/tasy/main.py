"""
Tasy - CLI Entry Point.

Usage:
    tasy walk                Walk through the onboarding flow in the terminal
    tasy walk --signed-in    Start as an authenticated visitor
    tasy steps               Show the onboarding step catalog
    tasy serve               Start the API server
    tasy version             Show version
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="tasy",
    help="Tasy - onboarding flow tools and API server.",
    add_completion=False,
)
console = Console()

WALK_HELP = (
    "[dim]Commands:[/dim]\n"
    "  next                 advance one step\n"
    "  back                 in-page back button\n"
    "  browser-back         browser back button\n"
    "  login                simulate a completed sign-in\n"
    "  set <field> <value>  record an answer (comma-separated for lists)\n"
    "  data                 show collected answers\n"
    "  reset                start over\n"
    "  quit                 exit"
)

LIST_FIELDS = {"creating_for", "aesthetic_vibe", "content_type", "platforms", "generated_images"}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _parse_value(field: str, raw: str):
    if field in LIST_FIELDS:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


@app.command()
def walk(
    signed_in: bool = typer.Option(False, "--signed-in", help="Start as an authenticated visitor"),
    track: bool = typer.Option(False, "--track", help="Write funnel events to onboarding_logs/"),
    access_token: str = typer.Option("", "--access-token", help="Supabase token used to save images on login"),
) -> None:
    """Walk through the onboarding flow with a simulated browser history."""
    from tasy.config import core_settings
    from tasy.observability.onboarding_tracker import OnboardingTracker
    from onboarding import (
        InMemoryHistory,
        JsonFileStorage,
        MemoryStorage,
        OnboardingFlowController,
        PersistedOnboardingStore,
    )
    from onboarding.errors import InvalidOnboardingData
    from onboarding.gateways import HttpBackendGateway
    from onboarding.steps import step_name

    _setup_logging(core_settings.log_level)

    history = InMemoryHistory()
    store = PersistedOnboardingStore(
        primary=MemoryStorage(),
        fallback=JsonFileStorage(core_settings.onboarding_storage_path),
        ttl=core_settings.onboarding_ttl,
    )
    tracker = OnboardingTracker(enabled=track or core_settings.onboarding_track_events)
    backend = HttpBackendGateway(core_settings.tasy_api_url, access_token) if access_token else None
    controller = OnboardingFlowController(
        store=store,
        history=history,
        backend=backend,
        tracker=tracker,
        total_steps=core_settings.onboarding_total_steps,
        flush_max_attempts=core_settings.onboarding_flush_max_attempts,
        flush_backoff_seconds=core_settings.onboarding_flush_backoff_seconds,
    )
    controller.initialize(authenticated=signed_in)

    console.print(Panel.fit(f"[bold green]Tasy onboarding[/bold green]\n\n{WALK_HELP}", title="Walkthrough"))

    while True:
        step = controller.current_step
        prompt = f"\n[dim][{step}/{controller.total_steps} {step_name(step)}][/dim] > "
        try:
            command = console.input(prompt).strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not command:
            continue
        if command in ("quit", "exit", "q"):
            break

        if command == "next":
            controller.advance()
            if controller.is_complete:
                console.print("[green]Onboarding complete, handing off to the app.[/green]")
        elif command == "back":
            controller.retreat()
        elif command == "browser-back":
            history.back()
            if history.at_page_entry:
                console.print("[yellow]Browser left the onboarding page.[/yellow]")
                break
            if controller.current_step == step:
                console.print("[yellow]Still on step 1. Press browser-back again to leave.[/yellow]")
        elif command == "login":
            result = asyncio.run(controller.handle_auth_event("SIGNED_IN"))
            if result is not None:
                console.print(f"[dim]Image flush: {result.status.value}[/dim]")
        elif command.startswith("set "):
            parts = command.split(" ", 2)
            if len(parts) < 3:
                console.print("[red]Usage: set <field> <value>[/red]")
                continue
            field, raw = parts[1], parts[2]
            try:
                controller.merge_data({field: _parse_value(field, raw)})
            except InvalidOnboardingData as e:
                console.print(f"[red]Invalid value for {field}: {escape(str(e))}[/red]")
        elif command == "data":
            _show_data(controller.data)
        elif command == "reset":
            controller.reset()
            console.print("[dim]Session reset.[/dim]")
        else:
            console.print(f"[red]Unknown command: {escape(command)}[/red]")

    controller.teardown()
    log_path = tracker.close()
    if log_path:
        console.print(f"[dim]Funnel events written to {log_path}[/dim]")


def _show_data(data: dict) -> None:
    if not data:
        console.print("[dim]No answers yet.[/dim]")
        return
    table = Table(title="Answers")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in data.items():
        text = str(value)
        table.add_row(escape(key), escape(text if len(text) <= 60 else text[:57] + "..."))
    console.print(table)


@app.command()
def steps() -> None:
    """Show the onboarding step catalog."""
    from onboarding.steps import get_step_catalog

    table = Table(title="Onboarding steps")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Requires auth")
    for step in get_step_catalog():
        name = step["name"]
        if step["is_post_auth_landing"]:
            name += " [dim](post-auth landing)[/dim]"
        table.add_row(str(step["number"]), name, "yes" if step["requires_auth"] else "")
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from tasy import __version__

    console.print(f"Tasy version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    from tasy.config import core_settings

    _setup_logging(core_settings.log_level)
    actual_port = int(os.environ.get("PORT", port))

    console.print(f"\n[bold green]Tasy API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print(f"[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "tasy.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
