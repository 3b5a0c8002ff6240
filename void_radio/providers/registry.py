"""Build provider instances from config, in canonical order."""

import logging

from config.config_loader import AppConfig
from void_radio.providers.anthropic import AnthropicProvider
from void_radio.providers.base import AIProvider
from void_radio.providers.deepseek import DeepSeekProvider
from void_radio.providers.gemini import GeminiProvider
from void_radio.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "deepseek": DeepSeekProvider,
}


def build_all_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build every provider that has an API key. Returns dict keyed by name.

    Iteration order follows config.models, which is the order responses
    appear in every round.
    """
    providers: dict[str, AIProvider] = {}
    for name in config.provider_order():
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers
