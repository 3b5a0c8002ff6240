"""Resonance: a rough lexical signal of how much providers reference each other."""

from collections.abc import Sequence

from void_radio.models import Round

DEFAULT_TERMS: tuple[str, ...] = (
    "colleague", "perspective", "building on", "resonates", "connects",
    "claude", "gemini", "gpt-4", "deepseek", "fellow", "synthesis",
    "together", "collective", "shared", "weaving", "integrating",
)


def score(rounds: Sequence[Round], terms: Sequence[str] | None = None) -> float:
    """Score cross-round references in [0, 100].

    Every response after the first round earns one point per term found in
    its lowercased text and adds the size of the previous round to the
    number of possible references. Returns 0 with fewer than two rounds.
    """
    if not rounds or len(rounds) < 2:
        return 0.0

    vocabulary = [t.lower() for t in (terms if terms is not None else DEFAULT_TERMS) if t]
    references = 0
    possible = 0

    for idx in range(1, len(rounds)):
        previous_size = len(rounds[idx - 1].responses)
        for response in rounds[idx].responses:
            possible += previous_size
            text = (response.content or "").lower()
            if not text:
                continue
            references += sum(1 for term in vocabulary if term in text)

    if possible == 0:
        return 0.0
    return min(100.0, references / possible * 100)
