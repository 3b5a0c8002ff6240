"""Per-session progress state, subscriber fan-out, and the in-memory session store.

Everything here runs on the event loop thread. Each mutation and the
notification that follows happen inside one synchronous call, so no
subscriber can observe a half-applied update.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from void_radio.errors import SessionNotFound

logger = logging.getLogger(__name__)

STEP_WEIGHTS: dict[str, int] = {
    "initialize": 10,
    "aiProcessing": 70,
    "synthesis": 15,
    "complete": 5,
}

STEP_MESSAGES: dict[str, str] = {
    "initialize": "Preparing collaborative session...",
    "aiProcessing": "Awakening AI minds...",
    "synthesis": "Synthesizing collective insights...",
    "complete": "Transmission complete!",
}

STEP_STATUSES = ("pending", "active", "complete", "error")
PROVIDER_STATUSES = ("waiting", "thinking", "complete", "error")

Subscriber = Callable[[dict[str, Any]], None]
Clock = Callable[[], float]


@dataclass
class StepState:
    status: str = "pending"
    percent: float = 0.0
    message: str = ""

    def effective_percent(self) -> float:
        if self.status == "complete":
            return 100.0
        if self.status == "active":
            return self.percent
        return 0.0


@dataclass
class ProviderState:
    status: str = "waiting"
    percent: float = 0.0
    started_at: float | None = None
    response_time_ms: int | None = None


def compute_overall(steps: dict[str, StepState]) -> int:
    """Weighted sum of step percents, rounded and clamped to [0, 100]."""
    total = sum(STEP_WEIGHTS.get(name, 0) * step.effective_percent() for name, step in steps.items())
    return max(0, min(100, round(total / 100)))


class ProgressTracker:
    """Mutable progress state of one collaboration or extension run."""

    def __init__(
        self,
        session_id: str,
        provider_names: list[str] | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.session_id = session_id
        self._clock = clock
        self.created_at = clock()
        self.overall = 0
        self.current_step = "initializing"
        self.steps: dict[str, StepState] = {
            name: StepState(message=STEP_MESSAGES[name]) for name in STEP_WEIGHTS
        }
        self.providers: dict[str, ProviderState] = {
            name: ProviderState() for name in (provider_names or [])
        }
        self.estimated_completion_at: float | None = None
        self.finished = False
        self.error: str | None = None
        self._subscribers: list[Subscriber] = []

    def update_step(self, name: str, status: str, percent: float = 0, message: str | None = None) -> None:
        step = self.steps.get(name)
        if step is None:
            logger.debug("Ignoring update for unknown step '%s'", name)
            return
        if status not in STEP_STATUSES:
            raise ValueError(f"Unknown step status: {status}")
        step.status = status
        step.percent = max(0.0, min(100.0, float(percent)))
        if message:
            step.message = message
        self.current_step = name
        self._recompute()
        self._notify()

    def update_provider(
        self,
        name: str,
        status: str,
        percent: float = 0,
        response_time_ms: int | None = None,
    ) -> None:
        if status not in PROVIDER_STATUSES:
            raise ValueError(f"Unknown provider status: {status}")
        state = self.providers.setdefault(name, ProviderState())
        state.status = status
        state.percent = max(0.0, min(100.0, float(percent)))
        if status == "thinking" and state.started_at is None:
            state.started_at = self._clock()
        if status == "complete" and response_time_ms is not None:
            state.response_time_ms = response_time_ms
        self._recompute()
        self._notify()

    def reset_providers(self) -> None:
        """Put every provider back to waiting before a new round, keeping timings."""
        for state in self.providers.values():
            state.status = "waiting"
            state.percent = 0.0
            state.started_at = None

    def complete(self) -> None:
        step = self.steps["complete"]
        step.status = "complete"
        step.percent = 100.0
        step.message = STEP_MESSAGES["complete"]
        self.current_step = "complete"
        self.finished = True
        self._recompute()
        self.overall = 100
        self._notify()

    def fail(self, message: str) -> None:
        """Mark the active step (or initialize) as errored and finish the session."""
        name = next((n for n, s in self.steps.items() if s.status == "active"), self.current_step)
        if name not in self.steps:
            name = "initialize"
        step = self.steps[name]
        step.status = "error"
        step.message = message
        self.current_step = name
        self.error = message
        self.finished = True
        self._recompute()
        self._notify()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def snapshot(self) -> dict[str, Any]:
        return {
            "id": self.session_id,
            "overallPercent": self.overall,
            "currentStepName": self.current_step,
            "steps": {
                name: {"status": s.status, "percent": round(s.percent), "message": s.message}
                for name, s in self.steps.items()
            },
            "providerStates": {
                name: {
                    "status": p.status,
                    "percent": round(p.percent),
                    "startedAt": p.started_at,
                    "responseTimeMs": p.response_time_ms,
                }
                for name, p in self.providers.items()
            },
            "createdAt": self.created_at,
            "estimatedCompletionAt": self.estimated_completion_at,
            "finished": self.finished,
            "error": self.error,
        }

    def _recompute(self) -> None:
        self.overall = compute_overall(self.steps)
        if self.overall > 0:
            elapsed = self._clock() - self.created_at
            self.estimated_completion_at = self.created_at + elapsed / self.overall * 100

    def _notify(self) -> None:
        state = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("Error notifying progress subscriber for session %s", self.session_id)


@dataclass
class _Entry:
    tracker: ProgressTracker
    finished_at: float | None = None


@dataclass
class ProgressStore:
    """Process-wide map of session id to tracker with time-based expiry.

    Sessions are purged ``retention_sec`` after they finish, whether or not
    anyone read the final state. Unfinished sessions are never purged.
    """

    retention_sec: float = 300.0
    clock: Clock = time.time
    _entries: dict[str, _Entry] = field(default_factory=dict)

    def create(self, provider_names: list[str] | None = None, session_id: str | None = None) -> ProgressTracker:
        self.sweep_expired()
        if session_id is None or session_id in self._entries:
            session_id = uuid.uuid4().hex
        tracker = ProgressTracker(session_id, provider_names, clock=self.clock)
        self._entries[session_id] = _Entry(tracker)
        logger.debug("Progress session %s created", session_id)
        return tracker

    def get(self, session_id: str) -> ProgressTracker | None:
        self.sweep_expired()
        entry = self._entries.get(session_id)
        return entry.tracker if entry else None

    def require(self, session_id: str) -> ProgressTracker:
        tracker = self.get(session_id)
        if tracker is None:
            raise SessionNotFound(session_id)
        return tracker

    def finish(self, session_id: str) -> None:
        """Start the retention countdown for a session."""
        entry = self._entries.get(session_id)
        if entry is not None and entry.finished_at is None:
            entry.finished_at = self.clock()

    def delete(self, session_id: str) -> bool:
        return self._entries.pop(session_id, None) is not None

    def sweep_expired(self) -> int:
        now = self.clock()
        expired = [
            sid for sid, entry in self._entries.items()
            if entry.finished_at is not None and now - entry.finished_at >= self.retention_sec
        ]
        for sid in expired:
            del self._entries[sid]
        if expired:
            logger.debug("Purged %d expired progress sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries
