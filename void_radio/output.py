"""Rich console rendering of transmissions and progress."""

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from void_radio.models import ProviderResponse, Transmission

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _response_preview(response: ProviderResponse, words: int = 50) -> str:
    """Return first N words of a response."""
    all_words = response.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _subtitle(response: ProviderResponse) -> str:
    if not response.ok:
        return "error"
    if response.latency_ms is None:
        return ""
    return f"{response.latency_ms / 1000:.1f}s"


def print_round_summary(round_num: int, responses: list[ProviderResponse]) -> None:
    """Print a brief summary of round responses to the console."""
    console.print(Rule(f"[bold cyan]Round {round_num}[/bold cyan]"))
    for resp in responses:
        console.print(
            Panel(
                Text(_response_preview(resp)),
                title=f"[bold]{resp.provider}[/bold]",
                subtitle=_subtitle(resp),
                border_style="dim" if resp.ok else "red",
            )
        )


def print_synthesis(transmission: Transmission) -> None:
    """Print the synthesis and resonance of a transmission using Rich markdown."""
    console.print(Rule("[bold green]Collective Intelligence[/bold green]"))
    synthesis = transmission.synthesis
    console.print(
        Text(
            f"Synthesized by: {synthesis.provider if synthesis else '-'} | "
            f"Rounds: {len(transmission.rounds)} | "
            f"Mode: {transmission.mode} | "
            f"Resonance: {transmission.resonance:.1f}%",
            style="dim",
        )
    )
    if synthesis is not None:
        console.print(Markdown(synthesis.content))


def describe_progress(state: dict) -> str:
    """One-line description of a progress snapshot, e.g. for a spinner."""
    step = state.get("currentStepName", "")
    message = state.get("steps", {}).get(step, {}).get("message", step)
    thinking = [n for n, p in state.get("providerStates", {}).items() if p.get("status") == "thinking"]
    suffix = f" ({', '.join(thinking)} thinking)" if thinking else ""
    return f"{state.get('overallPercent', 0):>3}% {message}{suffix}"
