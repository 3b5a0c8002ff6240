"""Ask a model to highlight philosophical emergence patterns in a transcript."""

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from void_radio.models import Round, SynthesisResult
from void_radio.providers.base import AIProvider

logger = logging.getLogger(__name__)

PATTERN_TYPES = ("rhizomatic", "assemblage", "flight", "mutation", "difference")
INTENSITIES = ("low", "medium", "high")
MAX_HIGHLIGHTS = 15

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def build_emergence_prompt(seed: str, rounds: Sequence[Round], synthesis: SynthesisResult | None) -> str:
    sections = [f'DELEUZEAN COLLABORATIVE CONSCIOUSNESS ANALYSIS\nSeed: "{seed}"\n']
    for rnd in rounds:
        body = "\n\n".join(f"--- {r.provider} ---\n{r.content}" for r in rnd.responses)
        sections.append(f"=== ROUND {rnd.number} ===\n{body}\n")
    if synthesis is not None:
        sections.append(f"=== COLLECTIVE SYNTHESIS ===\n{synthesis.content}\n")
    content = "\n".join(sections)

    return (
        "Analyze this multi-AI collaborative dialogue for Deleuzean philosophical patterns. Look for:\n\n"
        "1. RHIZOMATIC connections - Non-hierarchical links between ideas that spread horizontally\n"
        "2. ASSEMBLAGES - New configurations where different AI perspectives combine into novel wholes\n"
        "3. LINES OF FLIGHT - Moments where thinking escapes established patterns into creative territories\n"
        "4. MUTATIONS - Where concepts transform or evolve through collaborative interaction\n"
        "5. DIFFERENCE - Genuine novelty or divergence that emerges from the collaboration\n\n"
        f"Return a JSON array (max {MAX_HIGHLIGHTS} items) highlighting specific text phrases:\n"
        '[\n  {"text":"exact phrase from the content","type":"rhizomatic|assemblage|flight|mutation|difference",'
        '"intensity":"low|medium|high","significance":"brief explanation of why this demonstrates the pattern"}\n]\n\n'
        "Focus on text that shows GENUINE AI-TO-AI COLLABORATION and philosophical emergence.\n\n"
        f"CONTENT:\n{content}"
    )


def parse_highlights(raw: str) -> list[dict[str, Any]]:
    """Extract the first JSON array from ``raw`` and keep only well-formed highlights."""
    match = _JSON_ARRAY.search(raw or "")
    if not match:
        return []
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("Emergence reply is not valid JSON: %s", exc)
        return []
    if not isinstance(items, list):
        return []

    cleaned = [
        item for item in items
        if isinstance(item, dict)
        and item.get("type") in PATTERN_TYPES
        and item.get("intensity") in INTENSITIES
        and item.get("text")
        and item.get("significance")
    ]
    return cleaned[:MAX_HIGHLIGHTS]


async def analyze_emergence(
    seed: str,
    rounds: Sequence[Round],
    synthesis: SynthesisResult | None,
    provider: AIProvider,
) -> list[dict[str, Any]]:
    """Return highlighted emergence patterns, or [] when anything goes wrong."""
    if not rounds:
        return []
    prompt = build_emergence_prompt(seed, rounds, synthesis)
    logger.info("Analyzing emergence patterns via %s", provider.name())
    try:
        raw = await provider.generate(prompt, [])
    except Exception as exc:
        logger.error("Emergence analysis failed: %s", exc)
        return []
    highlights = parse_highlights(raw)
    logger.info("Found %d emergence patterns", len(highlights))
    return highlights
