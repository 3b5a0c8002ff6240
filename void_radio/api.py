"""
HTTP API -- FastAPI application factory.

  POST /collaborate                  -- new transmission: 2 rounds + synthesis
  POST /extend                       -- one more round on an existing transmission
  POST /analyze-emergence            -- highlight emergence patterns in a transcript
  GET  /progress/{session_id}        -- progress snapshot
  GET  /progress/{session_id}/stream -- Server-Sent Events, one event per mutation
  GET  /health                       -- liveness, configured providers, modes

Run with:

    uvicorn void_radio.api:create_app --factory --port 3000
"""

import asyncio
import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from config.config_loader import load_config
from void_radio.emergence import analyze_emergence
from void_radio.errors import OperationError, SessionNotFound
from void_radio.models import SynthesisResult, Transmission, rounds_from_payload
from void_radio.prompts import mode_names
from void_radio.providers.registry import build_all_providers
from void_radio.service import CollaborationService

logger = logging.getLogger(__name__)

KEEPALIVE_SEC = 15.0
SWEEP_INTERVAL_SEC = 60.0
MAX_SEED_LENGTH = 10_000

router = APIRouter()


# =============================================================================
# REQUEST MODELS
# =============================================================================


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CollaborateRequest(_Body):
    seed: str | None = None
    mode: str | None = None
    session_id: str | None = Field(None, alias="sessionId")


class ExtendRequest(_Body):
    transmission_id: str | None = Field(None, alias="transmissionId")
    previous_rounds: list[dict[str, Any]] | None = Field(None, alias="previousRounds")
    seed: str | None = None
    mode: str | None = None
    session_id: str | None = Field(None, alias="sessionId")


class EmergenceRequest(_Body):
    seed: str = ""
    rounds: list[dict[str, Any]] = Field(default_factory=list)
    synthesis: dict[str, Any] | None = None


# =============================================================================
# HELPERS
# =============================================================================


def _service(request: Request) -> CollaborationService:
    return request.app.state.service


def _require_seed(seed: str | None) -> str:
    if not seed or not seed.strip():
        raise HTTPException(status_code=400, detail="Seed thought is required.")
    if len(seed) > MAX_SEED_LENGTH:
        raise HTTPException(status_code=400, detail=f"Seed must be at most {MAX_SEED_LENGTH} characters.")
    return seed.strip()


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


# =============================================================================
# ROUTES
# =============================================================================


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    service = _service(request)
    config = service.config
    try:
        synthesizer = service.synthesizer().name()
    except OperationError:
        synthesizer = None
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "modes": mode_names(),
        "availableProviders": [p.label() for p in service.providers.values()],
        "providers": {name: name in service.providers for name in config.models},
        "synthesizer": synthesizer,
    }


@router.post("/collaborate")
async def collaborate(body: CollaborateRequest, request: Request) -> dict[str, Any]:
    seed = _require_seed(body.seed)
    service = _service(request)
    tracker = service.open_session(body.session_id)
    transmission = await service.start_collaboration(seed, body.mode, tracker=tracker)
    return transmission.to_dict()


@router.post("/extend")
async def extend(body: ExtendRequest, request: Request) -> dict[str, Any]:
    if not body.transmission_id or body.previous_rounds is None:
        raise HTTPException(
            status_code=400,
            detail="transmissionId, previousRounds array, and seed are required for extension.",
        )
    seed = _require_seed(body.seed)
    try:
        rounds = rounds_from_payload(body.previous_rounds)
    except (ValueError, TypeError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid previousRounds: {exc}")

    service = _service(request)
    existing = service.transmissions.get(body.transmission_id)
    transmission = Transmission(
        id=body.transmission_id,
        seed=seed,
        mode=body.mode or (existing.mode if existing else "standard"),
        rounds=rounds,
    )
    if existing is not None:
        transmission.created_at = existing.created_at

    tracker = service.open_session(body.session_id)
    transmission = await service.extend(transmission, body.mode, tracker=tracker)
    return transmission.to_dict()


@router.post("/analyze-emergence")
async def emergence(body: EmergenceRequest, request: Request) -> list[dict[str, Any]]:
    service = _service(request)
    try:
        rounds = rounds_from_payload(body.rounds)
        provider = service.synthesizer()
    except (ValueError, TypeError, OperationError) as exc:
        logger.warning("Emergence analysis skipped: %s", exc)
        return []
    synthesis = None
    if body.synthesis and body.synthesis.get("content"):
        synthesis = SynthesisResult(content=str(body.synthesis["content"]))
    return await analyze_emergence(body.seed, rounds, synthesis, provider)


@router.get("/progress/{session_id}")
async def progress(session_id: str, request: Request) -> dict[str, Any]:
    return _service(request).progress.require(session_id).snapshot()


@router.get("/progress/{session_id}/stream")
async def progress_stream(session_id: str, request: Request) -> StreamingResponse:
    """
    Server-Sent Events stream of a progress session.

    Sends the current snapshot first, then one event per mutation. Ends when
    the client disconnects or after the final snapshot of a finished session.
    Disconnecting only unsubscribes; the collaboration keeps running.
    """
    tracker = _service(request).progress.require(session_id)

    async def event_generator():
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        unsubscribe = tracker.subscribe(queue.put_nowait)
        try:
            current = tracker.snapshot()
            yield _sse(current)
            if current["finished"]:
                return
            while True:
                if await request.is_disconnected():
                    logger.debug("Progress stream %s: client disconnected", session_id)
                    return
                try:
                    state = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SEC)
                except TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(state)
                if state["finished"]:
                    return
        finally:
            unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# =============================================================================
# APPLICATION
# =============================================================================


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": str(exc)})


async def _on_operation_error(request: Request, exc: OperationError) -> JSONResponse:
    logger.error("Operation failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"error": "Operation failed", "details": str(exc)})


async def _on_session_not_found(request: Request, exc: SessionNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Session not found"})


async def _on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal error", "details": str(exc)})


async def _sweep_loop(service: CollaborationService, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        service.progress.sweep_expired()


def create_app(service: CollaborationService | None = None) -> FastAPI:
    """
    Application factory -- creates and configures the FastAPI app.

    Args:
        service: Pre-built collaboration service (built from settings.yaml
            and the environment if None).
    """
    if service is None:
        config = load_config()
        providers = build_all_providers(config)
        if not providers:
            logger.warning("No providers configured -- set at least one API key in .env")
        service = CollaborationService(config, providers)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(_sweep_loop(service, SWEEP_INTERVAL_SEC))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    application = FastAPI(
        title="Void Radio",
        description="Multi-AI collaborative transmissions with live progress",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=service.config.defaults.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    application.add_exception_handler(RequestValidationError, _on_validation_error)
    application.add_exception_handler(OperationError, _on_operation_error)
    application.add_exception_handler(SessionNotFound, _on_session_not_found)
    application.add_exception_handler(Exception, _on_unexpected_error)

    application.state.service = service
    application.include_router(router)

    logger.info(
        "Void Radio API initialized with providers: %s",
        ", ".join(service.provider_names) or "(none)",
    )
    return application
