"""Gemini structured output using google-genai SDK with native async."""

import asyncio
import json
import logging
import os
import time
from typing import Any

from google import genai
from google.genai import types as genai_types

from config.config_loader import EndpointConfig
from debate_council.providers.base import ProviderError, StructuredLLM

logger = logging.getLogger(__name__)


class GeminiStructuredProvider(StructuredLLM):
    """Google Gemini provider via google-genai SDK (JSON response schema)."""

    def __init__(self, config: EndpointConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

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
        model = model_id.split("/", 1)[-1]
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=model,
                    contents=user_prompt,
                    config=genai_types.GenerateContentConfig(
                        system_instruction=system_prompt,
                        max_output_tokens=self._config.max_tokens,
                        response_mime_type="application/json",
                        response_json_schema=schema,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")
        try:
            data = json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise ProviderError(self._config.name, f"Response is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError(self._config.name, "Response is not a JSON object")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", model, latency, token_count)
        return data
