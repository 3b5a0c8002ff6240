"""Round orchestration: concurrent provider calls with live progress."""

import asyncio
import logging
import time
from collections.abc import Sequence

from void_radio.models import OUTCOME_ERROR, ProviderResponse, Round, Turn
from void_radio.progress import ProgressTracker
from void_radio.prompts import build_prompt, clean_content
from void_radio.providers.base import AIProvider, ProviderError
from void_radio.providers.history import flatten_rounds

logger = logging.getLogger(__name__)

DEFAULT_TICK_SEC = 0.2
# Simulated progress never claims more than this before the real reply lands.
_SIMULATED_CEILING = 95.0


async def simulate_progress(
    tracker: ProgressTracker,
    provider_name: str,
    expected_sec: float,
    tick_sec: float = DEFAULT_TICK_SEC,
) -> None:
    """Report elapsed/expected progress for one call until cancelled."""
    start = time.monotonic()
    expected = max(expected_sec, 0.001)
    while True:
        await asyncio.sleep(tick_sec)
        elapsed = time.monotonic() - start
        percent = min(elapsed / expected * 100, _SIMULATED_CEILING)
        tracker.update_provider(provider_name, "thinking", percent)


async def call_with_progress(
    provider: AIProvider,
    prompt: str,
    prior_turns: list[Turn],
    tracker: ProgressTracker | None = None,
    tick_sec: float = DEFAULT_TICK_SEC,
) -> tuple[str, int]:
    """Call one provider while a progress simulator runs beside it.

    The simulator is cancelled the moment the call settles, success or not.

    Returns:
        (content, latency_ms)

    Raises:
        ProviderError: If the call fails for any reason.
    """
    name = provider.name()
    ticker: asyncio.Task | None = None
    if tracker is not None:
        tracker.update_provider(name, "thinking", 0)
        ticker = asyncio.create_task(simulate_progress(tracker, name, provider.expected_sec(), tick_sec))

    start = time.monotonic()
    try:
        content = await provider.generate(prompt, prior_turns)
    except ProviderError:
        if tracker is not None:
            tracker.update_provider(name, "error", 0)
        raise
    except Exception as exc:
        if tracker is not None:
            tracker.update_provider(name, "error", 0)
        raise ProviderError(name, f"Unexpected error: {exc}") from exc
    finally:
        if ticker is not None:
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass

    latency_ms = int((time.monotonic() - start) * 1000)
    if tracker is not None:
        tracker.update_provider(name, "complete", 100, latency_ms)
    return content, latency_ms


async def _respond(
    provider: AIProvider,
    prompt: str,
    prior_turns: list[Turn],
    round_number: int,
    labels: Sequence[str],
    tracker: ProgressTracker,
    tick_sec: float,
) -> ProviderResponse:
    """Run one provider call for a round. Never raises; failures become error responses."""
    label = provider.label()
    logger.info("%s thinking (round %d)...", label, round_number)
    try:
        content, latency_ms = await call_with_progress(provider, prompt, prior_turns, tracker, tick_sec)
    except ProviderError as exc:
        logger.warning("Provider %s failed in round %d: %s", provider.name(), round_number, exc)
        return ProviderResponse(
            provider=label,
            content=f"{label} encountered an error: {exc.message}",
            outcome=OUTCOME_ERROR,
            error_detail=str(exc),
        )

    cleaned = clean_content(content, labels)
    logger.info("%s completed round %d (%d chars)", label, round_number, len(cleaned))
    return ProviderResponse(provider=label, content=cleaned, latency_ms=latency_ms)


async def run_round(
    seed: str,
    prior_rounds: Sequence[Round],
    round_number: int,
    mode: str,
    providers: Sequence[AIProvider],
    tracker: ProgressTracker,
    personas: dict[str, str] | None = None,
    tick_sec: float = DEFAULT_TICK_SEC,
) -> list[ProviderResponse]:
    """Run one round across all configured providers concurrently.

    Args:
        seed: The seed thought being explored.
        prior_rounds: Completed rounds, oldest first. Only rounds before
            ``round_number`` are read.
        round_number: 1-indexed number of the round to run.
        mode: Collaboration mode name (unknown names fall back to standard).
        providers: Providers with credentials, in canonical order.
        tracker: Progress session updated as calls start and settle.
        personas: Optional per-provider persona lines for the prompts.
        tick_sec: Interval of the simulated per-provider progress.

    Returns:
        One ProviderResponse per provider, in the order of ``providers``,
        regardless of which call finished first.
    """
    tracker.reset_providers()
    tracker.update_step("aiProcessing", "active", 0, f"Round {round_number}: awakening AI minds...")

    visible_rounds = list(prior_rounds[: max(round_number - 1, 0)])
    previous_round: Round | None = None
    if round_number > 1 and len(visible_rounds) == round_number - 1:
        previous_round = visible_rounds[-1]
    history = flatten_rounds(visible_rounds)
    labels = [p.label() for p in providers]

    logger.info("Starting round %d in %s mode with %d providers", round_number, mode, len(providers))

    total = len(providers)
    settled = 0

    async def tracked(provider: AIProvider) -> ProviderResponse:
        nonlocal settled
        prompt = build_prompt(mode, seed, previous_round, provider.name(), round_number, personas)
        response = await _respond(provider, prompt, history, round_number, labels, tracker, tick_sec)
        settled += 1
        if settled < total:
            tracker.update_step("aiProcessing", "active", settled / total * 100)
        return response

    responses = list(await asyncio.gather(*(tracked(p) for p in providers)))

    ok_count = sum(1 for r in responses if r.ok)
    logger.info("Round %d complete: %d/%d providers succeeded", round_number, ok_count, total)
    tracker.update_step("aiProcessing", "complete", 100, "AI responses complete!")
    return responses
