"""Anthropic Claude structured output via a forced tool call."""

import asyncio
import logging
import os
import time
from typing import Any

import anthropic as anthropic_sdk

from config.config_loader import EndpointConfig
from debate_council.providers.base import ProviderError, StructuredLLM

logger = logging.getLogger(__name__)

_TOOL_NAME = "submit_response"


class AnthropicStructuredProvider(StructuredLLM):
    """Anthropic Claude provider via anthropic SDK.

    The schema becomes the input schema of a single tool the model is forced
    to call; the tool input is the result. A "provider/" prefix on the model
    id is dropped.
    """

    def __init__(self, config: EndpointConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

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
                self._client.messages.create(
                    model=model,
                    max_tokens=self._config.max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                    tools=[{
                        "name": _TOOL_NAME,
                        "description": "Submit the structured response.",
                        "input_schema": schema,
                    }],
                    tool_choice={"type": "tool", "name": _TOOL_NAME},
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        tool_inputs = [b.input for b in response.content if b.type == "tool_use"]
        if not tool_inputs or not isinstance(tool_inputs[0], dict):
            raise ProviderError(self._config.name, "No tool_use block in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %.2fs, %s tokens", model, latency, token_count)
        return tool_inputs[0]
