"""OpenAI provider using openai SDK with native async."""

import logging
import time

from openai import AsyncOpenAI

from void_radio.models import Turn
from void_radio.providers.base import ConfiguredProvider, ProviderError
from void_radio.providers.history import relabel_history

logger = logging.getLogger(__name__)


class OpenAIProvider(ConfiguredProvider):
    """OpenAI chat-completions provider via openai SDK.

    Also serves OpenAI-compatible APIs when ``base_url`` is configured.
    """

    self_role = "assistant"
    other_role = "user"
    _log_name = "OpenAI"

    def _make_client(self, api_key: str) -> AsyncOpenAI:
        if self._config.base_url:
            return AsyncOpenAI(api_key=api_key, base_url=self._config.base_url)
        return AsyncOpenAI(api_key=api_key)

    def build_messages(self, prompt: str, prior_turns: list[Turn] | None) -> list[dict[str, str]]:
        messages = relabel_history(prior_turns or [], self.label(), self.self_role, self.other_role)
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, prior_turns: list[Turn] | None = None) -> str:
        start = time.monotonic()
        response = await self._call(
            self._client.chat.completions.create(
                model=self._config.model,
                messages=self.build_messages(prompt, prior_turns),
                max_tokens=self._config.max_tokens,
            )
        )

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        usage = response.usage
        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._log_name,
            self._config.model,
            time.monotonic() - start,
            usage.total_tokens if usage else None,
        )
        return choice.message.content
