"""Gemini provider using google-genai SDK with native async."""

import logging
import time

from google import genai
from google.genai import types as genai_types

from void_radio.models import Turn
from void_radio.providers.base import ConfiguredProvider, ProviderError
from void_radio.providers.history import relabel_history

logger = logging.getLogger(__name__)


class GeminiProvider(ConfiguredProvider):
    """Google Gemini provider via google-genai SDK."""

    self_role = "model"
    other_role = "user"

    def _make_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    def build_contents(self, prompt: str, prior_turns: list[Turn] | None) -> list[genai_types.Content]:
        messages = relabel_history(prior_turns or [], self.label(), self.self_role, self.other_role)
        messages.append({"role": "user", "content": prompt})
        return [
            genai_types.Content(role=m["role"], parts=[genai_types.Part(text=m["content"])])
            for m in messages
        ]

    async def generate(self, prompt: str, prior_turns: list[Turn] | None = None) -> str:
        start = time.monotonic()
        response = await self._call(
            self._client.aio.models.generate_content(
                model=self._config.model,
                contents=self.build_contents(prompt, prior_turns),
                config=genai_types.GenerateContentConfig(max_output_tokens=self._config.max_tokens),
            )
        )

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        usage = response.usage_metadata
        logger.info(
            "Gemini %s: %.2fs, %s tokens",
            self._config.model,
            time.monotonic() - start,
            usage.total_token_count if usage else None,
        )
        return response.text
