"""DeepSeek provider using openai SDK (OpenAI-compatible API)."""

from dataclasses import replace

from config.config_loader import ModelConfig
from void_radio.providers.base import ProviderError
from void_radio.providers.openai_provider import OpenAIProvider

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek chat provider via OpenAI-compatible API."""

    _log_name = "DeepSeek"

    def __init__(self, config: ModelConfig) -> None:
        if not config.base_url:
            config = replace(config, base_url=DEFAULT_BASE_URL)
        if not config.base_url.startswith("https://"):
            raise ProviderError(config.name, f"base_url must be https: {config.base_url}")
        super().__init__(config)
