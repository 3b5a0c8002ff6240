"""Anthropic Claude provider using anthropic SDK with native async."""

import logging
import time

import anthropic as anthropic_sdk

from void_radio.models import Turn
from void_radio.providers.base import ConfiguredProvider, ProviderError
from void_radio.providers.history import relabel_history

logger = logging.getLogger(__name__)

# Messages API conversations must open with a user turn.
_HISTORY_OPENER = "Here is our collaboration so far."


class AnthropicProvider(ConfiguredProvider):
    """Anthropic Claude provider via anthropic SDK."""

    self_role = "assistant"
    other_role = "user"

    def _make_client(self, api_key: str) -> anthropic_sdk.AsyncAnthropic:
        return anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def build_messages(self, prompt: str, prior_turns: list[Turn] | None) -> list[dict[str, str]]:
        messages = relabel_history(prior_turns or [], self.label(), self.self_role, self.other_role)
        if messages and messages[0]["role"] != "user":
            messages.insert(0, {"role": "user", "content": _HISTORY_OPENER})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, prior_turns: list[Turn] | None = None) -> str:
        start = time.monotonic()
        response = await self._call(
            self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                messages=self.build_messages(prompt, prior_turns),
            )
        )

        text_blocks = [b.text for b in response.content or [] if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "Empty response content")

        usage = response.usage
        logger.info(
            "Anthropic %s: %.2fs, %s tokens",
            self._config.model,
            time.monotonic() - start,
            usage.input_tokens + usage.output_tokens if usage else None,
        )
        return "\n".join(text_blocks)
