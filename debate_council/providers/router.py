"""Route gateway-style model ids ("provider/model") to the endpoint serving them."""

from typing import Any

from debate_council.providers.base import ProviderError, StructuredLLM


class ModelRouter(StructuredLLM):
    """Dispatch by model-id prefix; the first matching route wins.

    `default` serves ids that match no prefix.
    """

    def __init__(
        self,
        routes: list[tuple[str, StructuredLLM]],
        default: StructuredLLM | None = None,
    ) -> None:
        self._routes = routes
        self._default = default

    def name(self) -> str:
        return "router"

    def provider_for(self, model_id: str) -> StructuredLLM:
        for prefix, provider in self._routes:
            if model_id.startswith(prefix):
                return provider
        if self._default is None:
            raise ProviderError("router", f"No endpoint serves model {model_id}")
        return self._default

    async def evaluate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
        model_id: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        provider = self.provider_for(model_id)
        return await provider.evaluate_structured(system_prompt, user_prompt, schema, model_id, options)
