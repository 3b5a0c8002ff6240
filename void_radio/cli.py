"""Click CLI -- serve the HTTP API, run a collaboration locally, or check providers."""

import asyncio
import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from void_radio.errors import OperationError
from void_radio.healthcheck import run_health_checks
from void_radio.models import Transmission
from void_radio.output import describe_progress, print_round_summary, print_synthesis
from void_radio.prompts import mode_names
from void_radio.providers.base import AIProvider
from void_radio.providers.registry import build_all_providers
from void_radio.service import CollaborationService

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load() -> tuple[AppConfig, dict[str, AIProvider]]:
    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)
    providers = build_all_providers(config)
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)
    return config, providers


async def _run_local(service: CollaborationService, seed: str, mode: str, extra_rounds: int) -> Transmission:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_update(state: dict) -> None:
            progress.update(task, description=describe_progress(state))

        tracker = service.open_session()
        unsubscribe = tracker.subscribe(on_update)
        try:
            transmission = await service.start_collaboration(seed, mode, tracker=tracker)
        finally:
            unsubscribe()

        for _ in range(extra_rounds):
            tracker = service.open_session()
            unsubscribe = tracker.subscribe(on_update)
            try:
                transmission = await service.extend(transmission, tracker=tracker)
            finally:
                unsubscribe()
    return transmission


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(verbose: bool) -> None:
    """Void Radio -- multi-AI collaborative transmissions."""
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    load_dotenv()
    _setup_logging(verbose)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=3000, type=int, show_default=True, envvar="PORT")
def serve(host: str, port: int) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from void_radio.api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_config=None)


@main.command()
@click.argument("seed")
@click.option("--mode", default="standard", type=click.Choice(mode_names()), show_default=True)
@click.option("--extend", "extra_rounds", default=0, type=click.IntRange(0, 5),
              help="Extra rounds to run after the first two")
def run(seed: str, mode: str, extra_rounds: int) -> None:
    """Run one collaboration on SEED and print it.

    \b
    Examples:
      void-radio run "What is silence?" --mode quick
      void-radio run "What is a boundary?" --mode deep --extend 1
    """
    config, providers = _load()
    service = CollaborationService(config, providers)

    console.print(f"\n[bold cyan]Void Radio[/bold cyan] -- {len(providers)} providers, {mode} mode")
    console.print(f"Panel: {', '.join(p.label() for p in providers.values())}")
    console.print(f"Seed: [italic]{escape(seed[:80])}{'...' if len(seed) > 80 else ''}[/italic]\n")

    try:
        transmission = asyncio.run(_run_local(service, seed, mode, extra_rounds))
    except OperationError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    for rnd in transmission.rounds:
        print_round_summary(rnd.number, rnd.responses)
    print_synthesis(transmission)


@main.command()
def check() -> None:
    """Ping every configured provider and report which ones answer."""
    _, providers = _load()
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(providers))

    for health in results:
        if health.ok:
            console.print(f"  [green]OK  [/green] {health.label} [dim]{health.latency_ms}ms[/dim]")
        else:
            short_err = health.error.splitlines()[0][:120] if health.error else "unknown error"
            console.print(f"  [red]FAIL[/red] {health.label}: {escape(short_err)}")

    if not all(h.ok for h in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
