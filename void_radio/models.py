"""Dataclasses for the collaboration pipeline plus their JSON wire shapes."""

import time
from dataclasses import dataclass, field
from typing import Any

OUTCOME_OK = "ok"
OUTCOME_ERROR = "error"

SYNTHESIS_AUTHOR = "Collective Intelligence"


@dataclass
class Turn:
    speaker: str           # provider label, e.g. "Claude"
    content: str


@dataclass
class ProviderResponse:
    provider: str          # provider label, e.g. "GPT-4"
    content: str
    outcome: str = OUTCOME_OK
    error_detail: str | None = None
    latency_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == OUTCOME_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "providerName": self.provider,
            "content": self.content,
            "outcome": self.outcome,
            "errorDetail": self.error_detail,
            "latencyMs": self.latency_ms,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ProviderResponse":
        """Parse a response posted back by a client.

        Accepts the older ``ai`` key for the provider name.
        """
        if not isinstance(raw, dict):
            raise ValueError("response must be an object")
        provider = raw.get("providerName", raw.get("ai"))
        if not isinstance(provider, str) or not provider:
            raise ValueError("response is missing providerName")
        content = raw.get("content", "")
        error_detail = raw.get("errorDetail", raw.get("error"))
        outcome = raw.get("outcome") or (OUTCOME_ERROR if error_detail else OUTCOME_OK)
        if outcome not in (OUTCOME_OK, OUTCOME_ERROR):
            raise ValueError(f"unknown outcome: {outcome!r}")
        return cls(
            provider=provider,
            content=content if isinstance(content, str) else str(content or ""),
            outcome=outcome,
            error_detail=error_detail,
            latency_ms=raw.get("latencyMs"),
        )


@dataclass
class Round:
    number: int
    responses: list[ProviderResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.number,
            "responses": [r.to_dict() for r in self.responses],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], default_number: int) -> "Round":
        if not isinstance(raw, dict):
            raise ValueError(f"round {default_number} must be an object")
        number = raw.get("index", raw.get("round", default_number))
        responses = raw.get("responses")
        if not isinstance(responses, list):
            raise ValueError(f"round {number} has no responses list")
        return cls(
            number=int(number),
            responses=[ProviderResponse.from_dict(r) for r in responses],
        )


@dataclass
class SynthesisResult:
    content: str
    provider: str | None = None     # which model wrote it
    author: str = SYNTHESIS_AUTHOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "authorLabel": self.author,
            "content": self.content,
            "provider": self.provider,
        }


@dataclass
class Transmission:
    id: str
    seed: str
    mode: str
    rounds: list[Round] = field(default_factory=list)
    synthesis: SynthesisResult | None = None
    resonance: float = 0.0
    session_id: str | None = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "seed": self.seed,
            "mode": self.mode,
            "rounds": [r.to_dict() for r in self.rounds],
            "synthesis": self.synthesis.to_dict() if self.synthesis else None,
            "resonance": self.resonance,
            "sessionId": self.session_id,
            "createdAt": self.created_at,
        }


def rounds_from_payload(raw_rounds: list[dict[str, Any]]) -> list[Round]:
    """Parse client-supplied rounds and renumber them contiguously from 1."""
    parsed = [Round.from_dict(r, default_number=i) for i, r in enumerate(raw_rounds, start=1)]
    for i, rnd in enumerate(parsed, start=1):
        rnd.number = i
    return parsed
