"""Map the canonical turn history into a provider's own role scheme."""

from collections.abc import Sequence

from void_radio.models import Round, Turn


def relabel_history(
    turns: list[Turn],
    self_name: str,
    self_role: str = "assistant",
    other_role: str = "user",
) -> list[dict[str, str]]:
    """Return ``[{"role", "content"}]`` messages as seen by ``self_name``.

    A turn is the provider's own when its speaker matches ``self_name``
    (case-insensitive); every other speaker is sent with ``other_role``.
    Turns with empty content are dropped since vendors reject them.
    """
    me = self_name.lower()
    messages: list[dict[str, str]] = []
    for turn in turns:
        if not turn.content:
            continue
        role = self_role if turn.speaker.lower() == me else other_role
        messages.append({"role": role, "content": turn.content})
    return messages


def flatten_rounds(rounds: Sequence[Round]) -> list[Turn]:
    """Flatten every response of every round into one ordered history."""
    turns: list[Turn] = []
    for rnd in rounds:
        for resp in rnd.responses:
            content = resp.content if isinstance(resp.content, str) else str(resp.content or "")
            turns.append(Turn(speaker=resp.provider, content=content))
    return turns
