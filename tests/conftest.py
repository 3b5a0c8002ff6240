"""Shared pytest fixtures."""

from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, ResonanceConfig
from void_radio.models import ProviderResponse, Round, Turn
from void_radio.progress import ProgressStore, ProgressTracker
from void_radio.providers.base import AIProvider
from void_radio.service import CollaborationService


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        label: str | None = None,
    ) -> None:
        self._name = provider_name
        self._label = label or provider_name.title()
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(return_value=response_content)  # type: ignore[assignment]

    def name(self) -> str:
        return self._name

    def label(self) -> str:
        return self._label

    def model_string(self) -> str:
        return "mock-model"

    def expected_sec(self) -> float:
        return 1.0

    async def generate(self, prompt: str, prior_turns: list[Turn] | None = None) -> str:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return self._response_content


def _model(name: str, label: str) -> ModelConfig:
    return ModelConfig(
        name=name,
        label=label,
        sdk="test",
        model=f"{name}-model",
        api_key_env=f"TEST_{name.upper()}_KEY",
        timeout_sec=5,
        max_tokens=256,
        expected_sec=1,
    )


@pytest.fixture
def sample_app_config() -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            synthesizer_preference=["gemini", "claude"],
            progress_retention_sec=300,
            progress_tick_sec=0.01,
        ),
        models={"claude": _model("claude", "Claude"), "gemini": _model("gemini", "Gemini")},
        resonance=ResonanceConfig(terms=["building on", "resonates", "claude", "gemini"]),
        available_providers={"claude", "gemini"},
    )


@pytest.fixture
def two_mock_providers() -> list[MockProvider]:
    return [
        MockProvider("claude", "Response from Claude", label="Claude"),
        MockProvider("gemini", "Response from Gemini", label="Gemini"),
    ]


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker("test-session", ["claude", "gemini"])


@pytest.fixture
def service(sample_app_config, two_mock_providers) -> CollaborationService:
    return CollaborationService(
        sample_app_config,
        {p.name(): p for p in two_mock_providers},
        progress=ProgressStore(retention_sec=300),
    )


@pytest.fixture
def sample_response() -> ProviderResponse:
    return ProviderResponse(provider="Claude", content="Silence is the ground every sound stands on.", latency_ms=1500)


@pytest.fixture
def sample_round(sample_response: ProviderResponse) -> Round:
    return Round(
        number=1,
        responses=[
            sample_response,
            ProviderResponse(provider="Gemini", content="Silence flows like a current beneath speech.", latency_ms=900),
        ],
    )
