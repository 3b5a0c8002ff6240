"""Final synthesis: pick the synthesizer, build the transcript prompt, call it."""

import logging
from collections.abc import Mapping, Sequence

from void_radio.errors import OperationError
from void_radio.models import Round, SynthesisResult
from void_radio.orchestrator import DEFAULT_TICK_SEC, call_with_progress
from void_radio.progress import ProgressTracker
from void_radio.prompts import build_synthesis_prompt
from void_radio.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


def pick_synthesizer(providers: Mapping[str, AIProvider], preference: Sequence[str]) -> AIProvider:
    """Return the first provider in ``preference`` that is configured.

    Raises:
        OperationError: If none of the preferred providers has credentials.
    """
    for name in preference:
        if name in providers:
            return providers[name]
    raise OperationError(
        f"No AI available for synthesis: none of {', '.join(preference) or '(empty preference)'} is configured"
    )


async def synthesize(
    seed: str,
    rounds: Sequence[Round],
    mode: str,
    synthesizer: AIProvider,
    tracker: ProgressTracker | None = None,
    tick_sec: float = DEFAULT_TICK_SEC,
) -> SynthesisResult:
    """Run synthesis over the full transcript.

    A failing or empty synthesizer call does not raise: the result carries
    error text and the synthesis step is marked as errored.
    """
    if tracker is not None:
        tracker.update_step("synthesis", "active", 0, "Synthesizing collective insights...")

    prompt = build_synthesis_prompt(mode, seed, rounds)
    logger.info("Running synthesis via %s over %d rounds", synthesizer.name(), len(rounds))

    try:
        content, _latency_ms = await call_with_progress(synthesizer, prompt, [], tracker, tick_sec)
        if not content or not content.strip():
            raise ProviderError(synthesizer.name(), "Synthesizer returned empty content")
    except ProviderError as exc:
        logger.error("Synthesis via %s failed: %s", synthesizer.name(), exc)
        if tracker is not None:
            tracker.update_step("synthesis", "error", 0, "Synthesis failed")
        return SynthesisResult(
            content=f"Failed to generate synthesis: {exc.message}",
            provider=synthesizer.label(),
        )

    if tracker is not None:
        tracker.update_step("synthesis", "complete", 100, "Synthesis complete!")
    return SynthesisResult(content=content.strip(), provider=synthesizer.label())
