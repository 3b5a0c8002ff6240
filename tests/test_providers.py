"""Tests for the vendor providers and registry -- SDK clients are replaced, no network."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig
from void_radio.models import Turn
from void_radio.providers.anthropic import AnthropicProvider
from void_radio.providers.base import ProviderError
from void_radio.providers.deepseek import DEFAULT_BASE_URL, DeepSeekProvider
from void_radio.providers.gemini import GeminiProvider
from void_radio.providers.openai_provider import OpenAIProvider
from void_radio.providers.registry import build_all_providers


def _cfg(name: str, label: str, sdk: str, **kwargs) -> ModelConfig:
    return ModelConfig(
        name=name,
        label=label,
        sdk=sdk,
        model=f"{name}-model",
        api_key_env=f"TEST_{name.upper()}_KEY",
        timeout_sec=kwargs.pop("timeout_sec", 5),
        **kwargs,
    )


@pytest.fixture(autouse=True)
def _keys(monkeypatch):
    for name in ("claude", "gemini", "gpt4", "deepseek"):
        monkeypatch.setenv(f"TEST_{name.upper()}_KEY", f"sk-{name}")


HISTORY = [
    Turn("Claude", "structure"),
    Turn("Gemini", "flow"),
    Turn("GPT-4", ""),
]


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY")
    with pytest.raises(ProviderError, match="Missing API key: TEST_CLAUDE_KEY"):
        AnthropicProvider(_cfg("claude", "Claude", "anthropic"))


def test_fallback_key_env(monkeypatch):
    monkeypatch.delenv("TEST_GEMINI_KEY")
    monkeypatch.setenv("TEST_GEMINI_FALLBACK", "sk-fallback")
    provider = GeminiProvider(_cfg("gemini", "Gemini", "gemini", api_key_fallback_env="TEST_GEMINI_FALLBACK"))
    assert provider.label() == "Gemini"


def test_anthropic_messages_open_with_user_turn():
    provider = AnthropicProvider(_cfg("claude", "Claude", "anthropic"))
    messages = provider.build_messages("Round 2 prompt", HISTORY)
    assert [m["role"] for m in messages] == ["user", "assistant", "user", "user"]
    assert messages[1]["content"] == "structure"
    assert messages[-1] == {"role": "user", "content": "Round 2 prompt"}


def test_anthropic_messages_without_history():
    provider = AnthropicProvider(_cfg("claude", "Claude", "anthropic"))
    assert provider.build_messages("hi", None) == [{"role": "user", "content": "hi"}]


def test_gemini_contents_use_model_role():
    provider = GeminiProvider(_cfg("gemini", "Gemini", "gemini"))
    contents = provider.build_contents("prompt", HISTORY)
    assert [c.role for c in contents] == ["user", "model", "user"]
    assert contents[1].parts[0].text == "flow"
    assert contents[-1].parts[0].text == "prompt"


def test_openai_messages_relabel_own_turns():
    provider = OpenAIProvider(_cfg("gpt4", "GPT-4", "openai"))
    messages = provider.build_messages("prompt", [Turn("GPT-4", "analysis"), Turn("Claude", "structure")])
    assert messages == [
        {"role": "assistant", "content": "analysis"},
        {"role": "user", "content": "structure"},
        {"role": "user", "content": "prompt"},
    ]


def test_deepseek_defaults_base_url_without_touching_shared_config():
    cfg = _cfg("deepseek", "DeepSeek", "deepseek")
    provider = DeepSeekProvider(cfg)
    assert provider._config.base_url == DEFAULT_BASE_URL
    assert provider._config is not cfg
    assert cfg.base_url is None


def test_deepseek_keeps_configured_base_url():
    cfg = _cfg("deepseek", "DeepSeek", "deepseek", base_url="https://proxy.example.com/v1")
    assert DeepSeekProvider(cfg)._config is cfg


def test_deepseek_rejects_plain_http():
    with pytest.raises(ProviderError, match="https"):
        DeepSeekProvider(_cfg("deepseek", "DeepSeek", "deepseek", base_url="http://example.com/v1"))


async def test_anthropic_generate_joins_text_blocks():
    provider = AnthropicProvider(_cfg("claude", "Claude", "anthropic"))
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(
        return_value=SimpleNamespace(
            content=[SimpleNamespace(type="text", text="one"), SimpleNamespace(type="text", text="two")],
            usage=SimpleNamespace(input_tokens=3, output_tokens=4),
        )
    )
    assert await provider.generate("p", []) == "one\ntwo"
    kwargs = provider._client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-model"
    assert kwargs["messages"] == [{"role": "user", "content": "p"}]


async def test_anthropic_empty_response_is_error():
    provider = AnthropicProvider(_cfg("claude", "Claude", "anthropic"))
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=SimpleNamespace(content=[], usage=None))
    with pytest.raises(ProviderError, match="Empty response"):
        await provider.generate("p")


async def test_openai_generate_returns_content():
    provider = OpenAIProvider(_cfg("gpt4", "GPT-4", "openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="analysis"))],
            usage=SimpleNamespace(total_tokens=10),
        )
    )
    assert await provider.generate("p") == "analysis"


async def test_api_failure_is_wrapped():
    provider = OpenAIProvider(_cfg("gpt4", "GPT-4", "openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("429 Too Many Requests"))
    with pytest.raises(ProviderError) as exc_info:
        await provider.generate("p")
    assert exc_info.value.provider_name == "gpt4"
    assert "429" in exc_info.value.message


async def test_gemini_timeout_is_provider_error():
    provider = GeminiProvider(_cfg("gemini", "Gemini", "gemini", timeout_sec=0.05))

    async def hang(**kwargs):
        await asyncio.sleep(9999)

    provider._client = MagicMock()
    provider._client.aio.models.generate_content = AsyncMock(side_effect=hang)
    with pytest.raises(ProviderError, match="timed out after 0.05s"):
        await provider.generate("p")


def test_registry_builds_in_canonical_order_and_skips_unknown(monkeypatch):
    monkeypatch.delenv("TEST_GPT4_KEY")
    models = {
        "claude": _cfg("claude", "Claude", "anthropic"),
        "mystery": _cfg("mystery", "Mystery", "carrier-pigeon"),
        "gemini": _cfg("gemini", "Gemini", "gemini"),
        "gpt4": _cfg("gpt4", "GPT-4", "openai"),
    }
    config = AppConfig(
        defaults=DefaultsConfig(),
        models=models,
        available_providers={"claude", "mystery", "gemini", "gpt4"},
    )

    providers = build_all_providers(config)

    assert list(providers) == ["claude", "gemini"]
    assert isinstance(providers["claude"], AnthropicProvider)
    assert isinstance(providers["gemini"], GeminiProvider)
