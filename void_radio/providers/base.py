"""Abstract base for all AI model providers."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Any, TypeVar

from config.config_loader import ModelConfig
from void_radio.models import Turn

T = TypeVar("T")


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    # Role names the vendor uses for this model's own turns and everyone else's.
    self_role: str = "assistant"
    other_role: str = "user"

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    def label(self) -> str:
        """Return the display name used in prompts and transcripts (e.g. 'GPT-4')."""
        return self.name()

    def expected_sec(self) -> float:
        """Typical call duration, used to estimate progress while waiting."""
        return 8.0

    @abstractmethod
    async def generate(self, prompt: str, prior_turns: list[Turn] | None = None) -> str:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            prior_turns: Canonical conversation history from earlier rounds,
                oldest first. Turns spoken by this provider are sent as its
                own role, all others as the other role.

        Returns:
            The generated text.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...


class ConfiguredProvider(AIProvider):
    """Provider backed by a vendor SDK client built from a ModelConfig."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = config.api_key()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = self._make_client(api_key)

    @abstractmethod
    def _make_client(self, api_key: str) -> Any:
        ...

    def name(self) -> str:
        return self._config.name

    def label(self) -> str:
        return self._config.label

    def model_string(self) -> str:
        return self._config.model

    def expected_sec(self) -> float:
        return self._config.expected_sec

    async def _call(self, request: Awaitable[T]) -> T:
        """Await an SDK request under the configured timeout, wrapping failures."""
        try:
            return await asyncio.wait_for(request, timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc
