"""Collaboration lifecycle: rounds, synthesis and resonance tied into a Transmission."""

import logging
import uuid
from collections.abc import Mapping

from config.config_loader import AppConfig
from void_radio import resonance
from void_radio.errors import OperationError
from void_radio.models import Round, Transmission
from void_radio.orchestrator import run_round
from void_radio.progress import ProgressStore, ProgressTracker
from void_radio.prompts import resolve_mode
from void_radio.providers.base import AIProvider
from void_radio.synthesis import pick_synthesizer, synthesize

logger = logging.getLogger(__name__)

INITIAL_ROUNDS = 2


class TransmissionStore:
    """In-memory transmissions by id. Nothing is ever evicted."""

    def __init__(self) -> None:
        self._items: dict[str, Transmission] = {}

    def save(self, transmission: Transmission) -> None:
        self._items[transmission.id] = transmission

    def get(self, transmission_id: str) -> Transmission | None:
        return self._items.get(transmission_id)

    def __len__(self) -> int:
        return len(self._items)


class CollaborationService:
    """Runs collaborations and extensions against the configured providers."""

    def __init__(
        self,
        config: AppConfig,
        providers: Mapping[str, AIProvider],
        progress: ProgressStore | None = None,
        transmissions: TransmissionStore | None = None,
    ) -> None:
        self.config = config
        # Dict order is the canonical provider order inside every round.
        self.providers = dict(providers)
        self.progress = progress or ProgressStore(retention_sec=config.defaults.progress_retention_sec)
        self.transmissions = transmissions or TransmissionStore()

    @property
    def provider_names(self) -> list[str]:
        return list(self.providers)

    def synthesizer(self) -> AIProvider:
        return pick_synthesizer(self.providers, self.config.defaults.synthesizer_preference)

    def open_session(self, session_id: str | None = None) -> ProgressTracker:
        return self.progress.create(self.provider_names, session_id=session_id)

    async def start_collaboration(
        self,
        seed: str,
        mode: str | None = None,
        tracker: ProgressTracker | None = None,
    ) -> Transmission:
        """Run two rounds, resonance and synthesis for a new seed.

        Raises:
            OperationError: If the seed is empty or no provider can synthesize.
        """
        if not seed or not seed.strip():
            raise OperationError("Seed thought is required.")
        mode = resolve_mode(mode)
        tracker = tracker or self.open_session()

        transmission = Transmission(id=uuid.uuid4().hex, seed=seed, mode=mode, session_id=tracker.session_id)
        logger.info("Starting %s collaboration %s: %r", mode, transmission.id, seed)

        async def body() -> None:
            synthesizer = self.synthesizer()
            tracker.update_step("initialize", "active", 50, "Preparing collaborative session...")
            tracker.update_step("initialize", "complete", 100, "Session initialized!")
            for number in range(1, INITIAL_ROUNDS + 1):
                await self._append_round(transmission, number, tracker)
            await self._finish(transmission, synthesizer, tracker)

        await self._run(body, tracker)
        self.transmissions.save(transmission)
        logger.info("Collaboration %s complete, resonance %.1f%%", transmission.id, transmission.resonance)
        return transmission

    async def extend(
        self,
        transmission: Transmission,
        mode: str | None = None,
        tracker: ProgressTracker | None = None,
    ) -> Transmission:
        """Append one round to an existing transmission and re-synthesize.

        The transmission is updated in place and returned.
        """
        if not transmission.seed or not transmission.seed.strip():
            raise OperationError("Seed thought is required.")
        if mode:
            transmission.mode = resolve_mode(mode)
        tracker = tracker or self.open_session(f"{transmission.id}-extend-{uuid.uuid4().hex[:8]}")
        transmission.session_id = tracker.session_id
        next_number = len(transmission.rounds) + 1
        logger.info("Extending transmission %s with round %d", transmission.id, next_number)

        async def body() -> None:
            synthesizer = self.synthesizer()
            tracker.update_step("initialize", "active", 50, "Preparing extension...")
            tracker.update_step("initialize", "complete", 100, "Extension initialized!")
            await self._append_round(transmission, next_number, tracker)
            await self._finish(transmission, synthesizer, tracker)

        await self._run(body, tracker)
        self.transmissions.save(transmission)
        logger.info("Extension of %s complete, resonance %.1f%%", transmission.id, transmission.resonance)
        return transmission

    async def _append_round(self, transmission: Transmission, number: int, tracker: ProgressTracker) -> None:
        responses = await run_round(
            seed=transmission.seed,
            prior_rounds=transmission.rounds,
            round_number=number,
            mode=transmission.mode,
            providers=list(self.providers.values()),
            tracker=tracker,
            personas=self.config.personas,
            tick_sec=self.config.defaults.progress_tick_sec,
        )
        transmission.rounds.append(Round(number=number, responses=responses))

    async def _finish(self, transmission: Transmission, synthesizer: AIProvider, tracker: ProgressTracker) -> None:
        transmission.resonance = resonance.score(transmission.rounds, self.config.resonance.terms or None)
        transmission.synthesis = await synthesize(
            transmission.seed,
            transmission.rounds,
            transmission.mode,
            synthesizer,
            tracker,
            self.config.defaults.progress_tick_sec,
        )
        tracker.complete()

    async def _run(self, body, tracker: ProgressTracker) -> None:
        try:
            await body()
        except Exception as exc:
            logger.error("Session %s failed: %s", tracker.session_id, exc)
            tracker.fail(str(exc))
            raise
        finally:
            self.progress.finish(tracker.session_id)
