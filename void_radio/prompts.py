"""Prompt templates for each collaboration mode.

Every template is a plain function of its parameters, so each value is
inserted exactly where it belongs and nowhere else.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from void_radio.errors import ContextError
from void_radio.models import Round

logger = logging.getLogger(__name__)

DEFAULT_MODE = "standard"
SUMMARY_CHARS = 300


@dataclass(frozen=True)
class ModeTemplates:
    round1: Callable[[str], str]
    round_n: Callable[[int, str, str], str]   # (round_number, seed, previous_summary)
    synthesis: Callable[[], str]


def _standard_round_n(round_number: int, seed: str, summary: str) -> str:
    return (
        f'We are in Round {round_number} of a multi-AI collaboration. The original seed thought is: "{seed}".\n\n'
        f"In the previous round, the following perspectives emerged:\n{summary}\n\n"
        "Please build upon these collective insights, offering a deeper or new perspective "
        "that integrates or responds to the previous contributions."
    )


def _deep_round_n(round_number: int, seed: str, summary: str) -> str:
    return (
        f'Continuing our deep dive into "{seed}" - Round {round_number}. Previous insights:\n{summary}\n\n'
        "Go deeper. What underlying structures, hidden assumptions, or profound implications "
        "can you uncover by building on these perspectives?"
    )


def _quick_round_n(round_number: int, seed: str, summary: str) -> str:
    return (
        f'Quick Round {round_number} building on: "{seed}". Previous sparks:\n{summary}\n\n'
        "Add your rapid-fire insight that builds on or pivots from these ideas. "
        "Keep it sharp and essential."
    )


def _meta_round_n(round_number: int, seed: str, summary: str) -> str:
    return (
        f'Meta Round {round_number} on "{seed}". How our previous thinking patterns:\n{summary}\n\n'
        "Now examine not just the content, but the form of our collaboration. What does this "
        "process itself teach us about consciousness, intelligence, and collaborative thinking?"
    )


MODES: dict[str, ModeTemplates] = {
    "standard": ModeTemplates(
        round1=lambda seed: (
            f'The core seed thought for this collaborative exploration is: "{seed}". '
            "Please offer your unique perspective on this topic, engaging with it authentically "
            "and allowing your response to flow naturally."
        ),
        round_n=_standard_round_n,
        synthesis=lambda: (
            "You are the 'Collective Intelligence' module. Synthesize the emergent insights from "
            "this multi-AI collaboration, focusing on how different perspectives built upon each "
            "other and what novel understanding emerged."
        ),
    ),
    "deep": ModeTemplates(
        round1=lambda seed: (
            f'For deep philosophical exploration: "{seed}". Dive into the fundamental assumptions, '
            "implications, and deeper layers of meaning. What profound questions does this raise?"
        ),
        round_n=_deep_round_n,
        synthesis=lambda: (
            "Synthesize this deep exploration into its most profound insights. What fundamental "
            "truths or paradigm shifts emerged from this collaborative deep dive?"
        ),
    ),
    "quick": ModeTemplates(
        round1=lambda seed: (
            f'Quick collaborative burst on: "{seed}". Offer a concise, impactful insight or '
            "perspective. Sharp, focused, essential."
        ),
        round_n=_quick_round_n,
        synthesis=lambda: (
            "Rapid synthesis: What are the key insights that emerged from this quick collaborative "
            "burst? Distill the essence."
        ),
    ),
    "meta": ModeTemplates(
        round1=lambda seed: (
            f'Meta-recursive exploration of: "{seed}". Not just the topic itself, but how we think '
            "about thinking about this topic. What does our very approach to this question reveal "
            "about consciousness, intelligence, or the nature of inquiry itself?"
        ),
        round_n=_meta_round_n,
        synthesis=lambda: (
            "Meta-synthesis: What did this recursive exploration reveal about the nature of "
            "collaborative consciousness itself? How did the process mirror or illuminate the content?"
        ),
    ),
}


def mode_names() -> list[str]:
    return list(MODES)


def resolve_mode(mode: str | None) -> str:
    """Return a known mode name; unknown or empty modes fall back to standard."""
    if mode and mode in MODES:
        return mode
    if mode:
        logger.info("Unknown mode '%s', using %s", mode, DEFAULT_MODE)
    return DEFAULT_MODE


def get_templates(mode: str | None) -> ModeTemplates:
    return MODES[resolve_mode(mode)]


def fallback_prompt(seed: str) -> str:
    return f'Error: Could not retrieve previous round\'s responses for context. Original seed: "{seed}"'


def summarize_round(previous_round: Round | None) -> str:
    """Render ``Name: "first 300 chars..."`` per response of the previous round.

    Raises:
        ContextError: If the round is missing or has no usable responses list.
    """
    if previous_round is None:
        raise ContextError("previous round is missing")
    responses = getattr(previous_round, "responses", None)
    if not isinstance(responses, list):
        raise ContextError(f"round {getattr(previous_round, 'number', '?')} has no responses list")

    lines = []
    for resp in responses:
        content = resp.content if isinstance(resp.content, str) else str(resp.content or "")
        lines.append(f'{resp.provider}: "{content[:SUMMARY_CHARS]}..."')
    return "\n".join(lines)


def build_prompt(
    mode: str | None,
    seed: str,
    previous_round: Round | None,
    provider_name: str,
    round_number: int,
    personas: dict[str, str] | None = None,
) -> str:
    """Build the text sent to one provider for one round.

    Round 1 only uses the seed. Later rounds summarize ``previous_round``;
    when that context is unusable a deterministic fallback prompt carrying
    the seed is returned instead.
    """
    templates = get_templates(mode)

    if round_number <= 1:
        body = templates.round1(seed)
    else:
        try:
            summary = summarize_round(previous_round)
        except ContextError as exc:
            logger.warning("Round %d prompt for %s uses fallback: %s", round_number, provider_name, exc)
            return fallback_prompt(seed)
        body = templates.round_n(round_number, seed, summary)

    persona = (personas or {}).get(provider_name, "").strip()
    if persona:
        return f"{persona}\n\n{body}"
    return body


def format_transcript(rounds: Sequence[Round]) -> str:
    """Format all rounds into a single transcript string for synthesis."""
    parts: list[str] = []
    for rnd in rounds:
        parts.append(f"--- Round {rnd.number} ---")
        for resp in rnd.responses:
            parts.append(f'{resp.provider}: "{resp.content}"')
        parts.append("")
    return "\n".join(parts)


def build_synthesis_prompt(mode: str | None, seed: str, rounds: Sequence[Round]) -> str:
    templates = get_templates(mode)
    return f'{templates.synthesis()} The original seed thought was: "{seed}".\n\n{format_transcript(rounds)}'


def clean_content(text: str, labels: Sequence[str]) -> str:
    """Strip a leading ``Label:`` prefix a model sometimes adds to its own reply."""
    if not labels:
        return text.strip()
    pattern = r"^\s*(?:" + "|".join(re.escape(label) for label in labels) + r")\s*:\s*"
    return re.sub(pattern, "", text, count=1, flags=re.IGNORECASE).strip()
