"""OpenAI-compatible structured output (OpenAI, AI gateway, xAI, DeepSeek) via openai SDK."""

import asyncio
import json
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import EndpointConfig
from debate_council.providers.base import ProviderError, StructuredLLM

logger = logging.getLogger(__name__)


class OpenAIStructuredProvider(StructuredLLM):
    """Chat completions with a JSON-schema response format.

    With a base_url pointing at a gateway, model ids are passed through
    unchanged ("anthropic/claude-opus-4.5").
    """

    def __init__(self, config: EndpointConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    async def evaluate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
        model_id: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if options and options.get("reasoning_effort"):
            extra["reasoning_effort"] = options["reasoning_effort"]

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model_id,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=self._config.max_tokens,
                    response_format={
                        "type": "json_schema",
                        "json_schema": {"name": "response", "schema": schema},
                    },
                    **extra,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        try:
            data = json.loads(choice.message.content)
        except json.JSONDecodeError as exc:
            raise ProviderError(self._config.name, f"Response is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError(self._config.name, "Response is not a JSON object")

        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            model_id,
            latency,
            response.usage.total_tokens if response.usage else None,
        )
        return data
