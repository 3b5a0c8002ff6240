"""Provider reachability checks used by ``void-radio check``."""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

from void_radio.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Hello, AI! Are you online? Reply with the word OK only."
_TIMEOUT_SEC = 15.0


@dataclass
class ProviderHealth:
    name: str
    label: str
    ok: bool
    error: str = ""
    latency_ms: int | None = None


async def _probe(name: str, provider: AIProvider) -> ProviderHealth:
    start = time.monotonic()
    try:
        await asyncio.wait_for(provider.generate(_PING_PROMPT, []), timeout=_TIMEOUT_SEC)
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return ProviderHealth(name, provider.label(), ok=False, error=str(exc) or type(exc).__name__)
    latency_ms = int((time.monotonic() - start) * 1000)
    return ProviderHealth(name, provider.label(), ok=True, latency_ms=latency_ms)


async def run_health_checks(providers: Mapping[str, AIProvider]) -> list[ProviderHealth]:
    """Ping all providers concurrently; results keep the providers' order."""
    return list(await asyncio.gather(*(_probe(n, p) for n, p in providers.items())))
